"""
Unit tests for stream selection.

Run:
    pytest tests/test_selection.py -v
"""

from tubegrab.models import StreamDescriptor
from tubegrab.selection import (
    has_audio,
    is_audio_only,
    select_stream,
    stream_height,
)


def combined(height, url=None, **kw):
    return StreamDescriptor(
        url=url or f"https://cdn.example/c{height}",
        mime_type='video/mp4; codecs="avc1.42001E, mp4a.40.2"',
        height=height,
        **kw,
    )


def video_only(height, url=None, **kw):
    return StreamDescriptor(
        url=url or f"https://cdn.example/v{height}",
        mime_type='video/mp4; codecs="avc1.640028"',
        height=height,
        **kw,
    )


def audio(bitrate, url=None, mime="audio/mp4"):
    return StreamDescriptor(url=url or f"https://cdn.example/a{bitrate}", mime_type=mime, bitrate=bitrate)


# ─── audio requests ──────────────────────────────────────────────────────────

def test_audio_picks_highest_bitrate_audio_only():
    streams = [audio(48000), audio(160000), audio(128000), combined(720, bitrate=2_000_000)]
    sel = select_stream(streams, "audio")
    assert sel.type == "audio"
    assert sel.stream.bitrate == 160000


def test_audio_never_picks_video_only_when_audio_exists():
    streams = [video_only(1080, bitrate=9_000_000), audio(64000)]
    sel = select_stream(streams, "audio")
    assert is_audio_only(sel.stream)


def test_audio_falls_back_to_highest_bitrate_combined():
    streams = [combined(360, bitrate=500_000), combined(720, bitrate=1_500_000), video_only(1080)]
    sel = select_stream(streams, "audio")
    assert sel.type == "audio"
    assert sel.stream.url == "https://cdn.example/c720"


def test_audio_with_only_video_only_streams_selects_nothing():
    assert select_stream([video_only(720), video_only(1080)], "audio") is None


# ─── numeric requests ────────────────────────────────────────────────────────

def test_nearest_height_wins_not_next_higher():
    streams = [combined(144), combined(360), combined(720)]
    sel = select_stream(streams, "480")
    assert stream_height(sel.stream) == 360


def test_exact_height_match():
    streams = [combined(360), combined(720), combined(144)]
    assert select_stream(streams, "720").stream.height == 720


def test_low_only_catalogue_still_resolves():
    sel = select_stream([combined(144)], "1080")
    assert sel.stream.height == 144
    assert sel.video_only is False


def test_combined_preferred_over_closer_video_only():
    streams = [combined(360), video_only(1080), audio(128000)]
    sel = select_stream(streams, "1080")
    assert sel.stream.height == 360
    assert sel.video_only is False
    assert sel.audio_url is None


def test_video_only_fallback_carries_audio_url():
    streams = [video_only(720), video_only(1080), audio(48000), audio(128000, url="https://cdn.example/best-audio")]
    sel = select_stream(streams, "1080")
    assert sel.stream.height == 1080
    assert sel.video_only is True
    assert sel.audio_url == "https://cdn.example/best-audio"

    result = sel.to_result(provider="piped (x)")
    assert result.video_only is True
    assert result.audio_url == "https://cdn.example/best-audio"
    assert result.quality == "1080p"


def test_tie_keeps_first_in_order():
    streams = [combined(360, url="https://cdn.example/first"), combined(600, url="https://cdn.example/second")]
    assert select_stream(streams, "480").stream.url == "https://cdn.example/first"


def test_height_parsed_from_quality_label():
    streams = [
        StreamDescriptor(url="https://cdn.example/a", quality_label="720p60", has_audio=True),
        StreamDescriptor(url="https://cdn.example/b", quality_label="4K", has_audio=True),
    ]
    assert select_stream(streams, "2160").stream.url == "https://cdn.example/b"
    assert select_stream(streams, "480").stream.url == "https://cdn.example/a"


def test_unknown_height_sorts_last():
    streams = [
        StreamDescriptor(url="https://cdn.example/unknown", mime_type="video/mp4", has_audio=True),
        combined(240),
    ]
    assert select_stream(streams, "1080").stream.height == 240


def test_empty_list_selects_nothing():
    assert select_stream([], "720") is None
    assert select_stream([], "audio") is None


def test_audio_only_result_has_no_video_only_flag():
    result = select_stream([audio(128000)], "audio").to_result()
    assert result.type == "audio"
    assert result.video_only is None


# ─── audio detection policy ──────────────────────────────────────────────────

def test_has_audio_explicit_flag_wins():
    s = StreamDescriptor(url="u", mime_type='video/mp4; codecs="avc1, mp4a.40.2"', has_audio=False)
    assert has_audio(s) is False


def test_has_audio_from_codecs():
    assert has_audio(StreamDescriptor(url="u", mime_type='video/webm; codecs="vp8, vorbis"'))
    assert not has_audio(StreamDescriptor(url="u", mime_type='video/webm; codecs="vp9"'))
    assert not has_audio(StreamDescriptor(url="u", mime_type="video/mp4"))
