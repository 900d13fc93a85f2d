"""
Best-stream selection for a requested quality.

Audio requests take the highest-bitrate audio-only stream, falling back to
the highest-bitrate combined (video+audio) stream.

Video requests take the combined stream whose height is nearest to the
target. Video-only streams are considered only when no combined stream
exists; the result is then flagged ``video_only`` and carries the best
audio-only URL so the caller knows the audio must be fetched separately.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from .models import ResolutionResult, StreamDescriptor

AUDIO_CODECS = ("mp4a", "opus", "vorbis", "ac-3", "ec-3", "flac")

# Quality labels that do not start with a pixel height
NAMED_HEIGHTS = {
    "4k": 2160,
    "2k": 1440,
    "hd": 720,
    "fhd": 1080,
    "uhd": 2160,
}

_LEADING_DIGITS = re.compile(r"^\s*(\d{2,4})")
_CODECS = re.compile(r'codecs\s*=\s*"?([^";]*)"?', re.IGNORECASE)


def is_audio_only(stream: StreamDescriptor) -> bool:
    return (stream.mime_type or "").lower().startswith("audio/")


def has_audio(stream: StreamDescriptor) -> bool:
    """Audio presence: explicit flag, then mime type, then the codec list."""
    if stream.has_audio is not None:
        return stream.has_audio
    mime = (stream.mime_type or "").lower()
    if mime.startswith("audio/"):
        return True
    match = _CODECS.search(mime)
    if not match:
        return False
    codecs = [c.strip() for c in match.group(1).split(",")]
    return any(c.startswith(AUDIO_CODECS) for c in codecs)


def is_combined(stream: StreamDescriptor) -> bool:
    return not is_audio_only(stream) and has_audio(stream)


def is_video_only(stream: StreamDescriptor) -> bool:
    return not is_audio_only(stream) and not has_audio(stream)


def stream_height(stream: StreamDescriptor) -> Optional[int]:
    """Pixel height from ``height``, else parsed from the quality label."""
    if stream.height:
        return stream.height
    for label in (stream.quality_label, stream.quality):
        if not label:
            continue
        match = _LEADING_DIGITS.match(label)
        if match:
            return int(match.group(1))
        named = NAMED_HEIGHTS.get(label.strip().lower())
        if named:
            return named
    return None


def parse_target_height(quality: str) -> int:
    return int(quality.rstrip("pP"))


def closest_by_height(streams: List[StreamDescriptor], target: int) -> Optional[StreamDescriptor]:
    """Stream minimising |height - target|; unknown heights sort last."""
    if not streams:
        return None

    def distance(stream: StreamDescriptor) -> float:
        height = stream_height(stream)
        if height is None:
            return float("inf")
        return abs(height - target)

    return sorted(streams, key=distance)[0]


def highest_bitrate(streams: List[StreamDescriptor]) -> Optional[StreamDescriptor]:
    if not streams:
        return None
    return sorted(streams, key=lambda s: s.bitrate or 0, reverse=True)[0]


@dataclass
class Selection:
    stream: StreamDescriptor
    type: str
    video_only: bool = False
    audio_url: Optional[str] = None

    def to_result(self, provider: Optional[str] = None) -> ResolutionResult:
        quality = self.stream.quality_label or self.stream.quality
        if self.type == "video" and quality is None:
            height = stream_height(self.stream)
            quality = f"{height}p" if height else None
        return ResolutionResult(
            url=self.stream.url,
            mime_type=self.stream.mime_type,
            type=self.type,
            quality=quality,
            video_only=self.video_only if self.type == "video" else None,
            audio_url=self.audio_url,
            provider=provider,
        )


def select_stream(streams: List[StreamDescriptor], quality: str) -> Optional[Selection]:
    """Pick the best stream for ``quality`` ("audio" or a height such as "720")."""
    usable = [s for s in streams if s.url]
    audio_only = [s for s in usable if is_audio_only(s)]
    combined = [s for s in usable if is_combined(s)]

    if quality == "audio":
        best = highest_bitrate(audio_only) or highest_bitrate(combined)
        if best is None:
            return None
        return Selection(stream=best, type="audio")

    target = parse_target_height(quality)

    best = closest_by_height(combined, target)
    if best is not None:
        return Selection(stream=best, type="video")

    best = closest_by_height([s for s in usable if is_video_only(s)], target)
    if best is None:
        return None

    audio = highest_bitrate(audio_only)
    return Selection(
        stream=best,
        type="video",
        video_only=True,
        audio_url=audio.url if audio else None,
    )
