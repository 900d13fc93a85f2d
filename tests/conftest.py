"""
Shared fixtures and helpers for TubeGrab tests.

Upstreams are never contacted: providers talk to an httpx.MockTransport
whose handler is built per test from canned payloads.
"""

import pathlib
import sys

import httpx
import pytest

# ─── Path setup (must happen before any package import) ──────────────────────

_ROOT = pathlib.Path(__file__).parent.parent
sys.path.insert(0, str(_ROOT))

# ─── Constants ───────────────────────────────────────────────────────────────

TEST_VIDEO_ID = "dQw4w9WgXcQ"
TEST_VIDEO_URL = f"https://www.youtube.com/watch?v={TEST_VIDEO_ID}"

PIPED_A = "https://piped-a.example"
PIPED_B = "https://piped-b.example"


# ─── Canned upstream payloads ────────────────────────────────────────────────

def player_payload():
    """Player endpoint answer with one muxed and several adaptive formats."""
    return {
        "playabilityStatus": {"status": "OK"},
        "streamingData": {
            "formats": [
                {
                    "itag": 18,
                    "url": "https://rr1.googlevideo.com/videoplayback?itag=18",
                    "mimeType": 'video/mp4; codecs="avc1.42001E, mp4a.40.2"',
                    "quality": "medium",
                    "qualityLabel": "360p",
                    "bitrate": 503000,
                    "height": 360,
                    "audioQuality": "AUDIO_QUALITY_LOW",
                },
            ],
            "adaptiveFormats": [
                {
                    "itag": 137,
                    "url": "https://rr1.googlevideo.com/videoplayback?itag=137",
                    "mimeType": 'video/mp4; codecs="avc1.640028"',
                    "quality": "hd1080",
                    "qualityLabel": "1080p",
                    "bitrate": 4400000,
                    "height": 1080,
                },
                {
                    "itag": 140,
                    "url": "https://rr1.googlevideo.com/videoplayback?itag=140",
                    "mimeType": 'audio/mp4; codecs="mp4a.40.2"',
                    "quality": "tiny",
                    "bitrate": 130000,
                    "audioQuality": "AUDIO_QUALITY_MEDIUM",
                },
            ],
        },
    }


def piped_payload():
    return {
        "title": "Never Gonna Give You Up",
        "videoStreams": [
            {"url": "https://proxy.piped.example/v144", "mimeType": "video/mp4", "quality": "144p",
             "videoOnly": False, "height": 144, "bitrate": 100000},
            {"url": "https://proxy.piped.example/v360", "mimeType": "video/mp4", "quality": "360p",
             "videoOnly": False, "height": 360, "bitrate": 500000},
            {"url": "https://proxy.piped.example/v720", "mimeType": "video/mp4", "quality": "720p",
             "videoOnly": False, "height": 720, "bitrate": 1500000},
            {"url": "https://proxy.piped.example/v1080only", "mimeType": "video/mp4", "quality": "1080p",
             "videoOnly": True, "height": 1080, "bitrate": 4000000},
        ],
        "audioStreams": [
            {"url": "https://proxy.piped.example/a48", "mimeType": "audio/webm", "quality": "48 kbps",
             "bitrate": 48000},
            {"url": "https://proxy.piped.example/a128", "mimeType": "audio/mp4", "quality": "128 kbps",
             "bitrate": 128000},
        ],
    }


# ─── Fixtures ────────────────────────────────────────────────────────────────

@pytest.fixture
def settings(monkeypatch):
    """Settings with two fake Piped instances and no RapidAPI key."""
    for name in ("RAPIDAPI_KEY", "INNERTUBE_ENABLED", "INNERTUBE_TIMEOUT", "RAPIDAPI_TIMEOUT", "PIPED_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PIPED_INSTANCES", f"{PIPED_A},{PIPED_B}")
    from tubegrab.config import Settings
    return Settings()


@pytest.fixture
def make_transport():
    """
    Build a MockTransport from a {host: handler} mapping.

    A handler is either an httpx.Response, a callable(request) -> Response,
    or an exception instance to raise. Every request is recorded in
    ``transport.calls`` as (host, path).
    """
    def _make(routes):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append((request.url.host, request.url.path))
            route = routes.get(request.url.host)
            if route is None:
                return httpx.Response(404, json={"error": "no route"})
            if isinstance(route, Exception):
                raise route
            if callable(route):
                return route(request)
            return route

        transport = httpx.MockTransport(handler)
        transport.calls = calls
        return transport

    return _make
