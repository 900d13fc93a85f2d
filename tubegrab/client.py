"""
Client side of TubeGrab: URL parsing, oEmbed preview, and calls to the resolver.
"""

import logging
import re
from pathlib import Path
from typing import Optional

import httpx

from .config import settings
from .models import QUALITY_CHOICES, ResolutionResult, VideoInfo

logger = logging.getLogger(__name__)

OEMBED_URL = "https://www.youtube.com/oembed"
THUMBNAIL_URL = "https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"

VIDEO_ID_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?(?:.*&)?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/v/)([a-zA-Z0-9_-]{11})"),
    re.compile(r"youtube\.com/shorts/([a-zA-Z0-9_-]{11})"),
]

_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


class ClientError(Exception):
    """A user-facing failure; the message is shown as is."""


class DirectDownloadUnavailable(ClientError):
    """The resolver cannot hand out a direct URL; send the user to the watch page."""

    def __init__(self, fallback_url: str):
        super().__init__("Direct download is not available for this video.")
        self.fallback_url = fallback_url


def extract_video_id(url: str) -> Optional[str]:
    """Return the 11-character video ID from a YouTube URL, or None."""
    for pattern in VIDEO_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def safe_filename(title: str) -> str:
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", title).strip().strip(".")
    return cleaned[:150] or "video"


async def fetch_video_info(video_id: str, client: Optional[httpx.AsyncClient] = None) -> VideoInfo:
    """Title/author preview from YouTube's public oEmbed endpoint."""
    owns_client = client is None
    client = client or httpx.AsyncClient(follow_redirects=True)
    try:
        resp = await client.get(
            OEMBED_URL,
            params={"url": f"https://www.youtube.com/watch?v={video_id}", "format": "json"},
            timeout=10,
        )
        resp.raise_for_status()
        data = resp.json()
        return VideoInfo(
            video_id=video_id,
            title=data["title"],
            author=data.get("author_name", "Unknown"),
            thumbnail=THUMBNAIL_URL.format(video_id=video_id),
        )
    except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
        logger.warning(f"oEmbed lookup failed for {video_id}: {e!r}")
        raise ClientError("Could not fetch video details. Please check the URL.")
    finally:
        if owns_client:
            await client.aclose()


class ResolverClient:
    """Talks to a running resolver service."""

    def __init__(
        self,
        server_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 120,
    ):
        self.server_url = (server_url or settings.server_url).rstrip("/")
        self.transport = transport
        self.timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, timeout=self.timeout, follow_redirects=True)

    async def resolve(self, video_id: str, quality: str) -> ResolutionResult:
        if quality not in QUALITY_CHOICES:
            raise ClientError(f"Unsupported quality '{quality}'.")

        async with self._client() as client:
            try:
                resp = await client.post(
                    f"{self.server_url}/resolve",
                    json={"videoId": video_id, "quality": quality},
                    headers={"Content-Type": "application/json"},
                )
            except httpx.HTTPError as e:
                logger.error(f"Resolver unreachable at {self.server_url}: {e!r}")
                raise ClientError("Download failed. Please try again.")

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if resp.status_code == 422 or data.get("error") == "direct_download_unavailable":
            raise DirectDownloadUnavailable(
                data.get("fallbackUrl") or f"https://www.youtube.com/watch?v={video_id}"
            )

        if not resp.is_success or data.get("error"):
            raise ClientError(data.get("error") or "Download failed.")

        if not data.get("url"):
            raise ClientError("No download link received.")

        return ResolutionResult.model_validate(data)

    async def download(self, result: ResolutionResult, title: str, output_dir: Path) -> Path:
        """Stream the resolved media to ``<output_dir>/<title>.mp4`` (``.mp3`` for audio)."""
        extension = "mp3" if result.type == "audio" else "mp4"
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / f"{safe_filename(title)}.{extension}"
        # Bytes land in a .part file that only takes the final name once complete
        part_path = output_path.with_name(output_path.name + ".part")

        async with self._client() as client:
            try:
                async with client.stream("GET", result.url) as resp:
                    if resp.status_code not in (200, 206):
                        raise ClientError(f"Download failed (HTTP {resp.status_code}).")
                    with open(part_path, "wb") as f:
                        async for chunk in resp.aiter_bytes(65536):
                            f.write(chunk)
            except httpx.HTTPError as e:
                part_path.unlink(missing_ok=True)
                logger.error(f"Media download failed: {e!r}")
                raise ClientError("Download failed. Please try again.")
            except ClientError:
                part_path.unlink(missing_ok=True)
                raise

        if not part_path.exists() or part_path.stat().st_size == 0:
            part_path.unlink(missing_ok=True)
            raise ClientError("Download failed: empty file received.")

        part_path.replace(output_path)
        return output_path
