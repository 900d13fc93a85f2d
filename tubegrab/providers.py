"""
Upstream providers that list the streams of a YouTube video.

  innertube         : YouTube's internal player endpoint, Android client context
  rapidapi          : RapidAPI-hosted scraper (needs RAPIDAPI_KEY)
  piped (<host>)    : Public Piped API instances; one provider per instance

Every provider returns a list of StreamDescriptor or raises ProviderError.
Streams without a plain URL (signature-ciphered) are dropped; when a
response contains nothing but such streams PlaybackRestrictedError is raised
so the caller can send the user to the watch page instead.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from .models import StreamDescriptor

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

INNERTUBE_PLAYER_URL = "https://www.youtube.com/youtubei/v1/player"
INNERTUBE_CLIENT = {
    "clientName": "ANDROID",
    "clientVersion": "19.09.37",
    "androidSdkVersion": 30,
    "hl": "en",
    "gl": "US",
}
INNERTUBE_USER_AGENT = "com.google.android.youtube/19.09.37 (Linux; U; Android 11) gzip"


class ProviderError(Exception):
    """The provider could not supply usable streams."""


class PlaybackRestrictedError(ProviderError):
    """The provider answered, but only with streams that cannot be fetched directly."""


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _read_json(resp: httpx.Response, label: str) -> Dict[str, Any]:
    """Return the JSON object body of a 2xx response or raise ProviderError."""
    if not resp.is_success:
        raise ProviderError(f"{label} HTTP {resp.status_code}: {resp.text[:200]}")
    try:
        data = resp.json()
    except ValueError:
        raise ProviderError(f"{label} invalid JSON: {resp.text[:200]}")
    if not isinstance(data, dict):
        raise ProviderError(f"{label} unexpected payload type {type(data).__name__}")
    return data


def parse_player_formats(
    formats: Optional[List[Dict[str, Any]]],
    adaptive_formats: Optional[List[Dict[str, Any]]],
) -> Tuple[List[StreamDescriptor], int]:
    """
    Map player-style ``formats`` / ``adaptiveFormats`` entries to descriptors.

    Entries in ``formats`` are muxed (video+audio). Adaptive entries carry a
    single track: audio when the mime type is ``audio/*``.

    Returns (descriptors, number of ciphered entries skipped).
    """
    streams: List[StreamDescriptor] = []
    ciphered = 0

    for muxed, entries in ((True, formats or []), (False, adaptive_formats or [])):
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            url = entry.get("url")
            if not url:
                if entry.get("signatureCipher") or entry.get("cipher"):
                    ciphered += 1
                continue
            mime = entry.get("mimeType") or ""
            streams.append(StreamDescriptor(
                url=url,
                mime_type=mime or None,
                quality_label=entry.get("qualityLabel"),
                quality=entry.get("quality"),
                bitrate=_as_int(entry.get("bitrate")),
                height=_as_int(entry.get("height")),
                has_audio=True if muxed else mime.lower().startswith("audio/"),
            ))

    return streams, ciphered


def parse_piped_streams(data: Dict[str, Any]) -> List[StreamDescriptor]:
    """Map a Piped ``/streams`` payload to descriptors."""
    streams: List[StreamDescriptor] = []

    for entry in data.get("videoStreams") or []:
        if not isinstance(entry, dict) or not entry.get("url"):
            continue
        streams.append(StreamDescriptor(
            url=entry["url"],
            mime_type=entry.get("mimeType"),
            quality_label=entry.get("quality"),
            bitrate=_as_int(entry.get("bitrate")),
            height=_as_int(entry.get("height")),
            has_audio=not entry.get("videoOnly", True),
        ))

    for entry in data.get("audioStreams") or []:
        if not isinstance(entry, dict) or not entry.get("url"):
            continue
        streams.append(StreamDescriptor(
            url=entry["url"],
            mime_type=entry.get("mimeType") or "audio/mp4",
            quality=entry.get("quality"),
            bitrate=_as_int(entry.get("bitrate")),
            has_audio=True,
        ))

    return streams


class Provider:
    """Base class: a named upstream with its own timeout."""

    kind = "base"

    def __init__(self, name: str, timeout: float):
        self.name = name
        self.timeout = timeout

    async def fetch_streams(self, client: httpx.AsyncClient, video_id: str) -> List[StreamDescriptor]:
        raise NotImplementedError

    def describe(self) -> Dict[str, Any]:
        return {}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class InnertubeProvider(Provider):
    """YouTube's internal player endpoint queried as the Android app."""

    kind = "innertube"

    def __init__(self, timeout: float = 10.0, player_url: str = INNERTUBE_PLAYER_URL):
        super().__init__("innertube", timeout)
        self.player_url = player_url

    def describe(self) -> Dict[str, Any]:
        return {"player_url": self.player_url, "client": INNERTUBE_CLIENT["clientName"]}

    async def fetch_streams(self, client: httpx.AsyncClient, video_id: str) -> List[StreamDescriptor]:
        payload = {
            "context": {"client": INNERTUBE_CLIENT},
            "videoId": video_id,
            "contentCheckOk": True,
            "racyCheckOk": True,
        }
        try:
            resp = await client.post(
                self.player_url,
                params={"prettyPrint": "false"},
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": INNERTUBE_USER_AGENT,
                    "X-YouTube-Client-Name": "3",
                    "X-YouTube-Client-Version": INNERTUBE_CLIENT["clientVersion"],
                },
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"player request failed: {e!r}")

        data = _read_json(resp, "player")

        playability = data.get("playabilityStatus") or {}
        status = playability.get("status", "")
        if status != "OK":
            reason = playability.get("reason") or status or "no playability status"
            if status in ("LOGIN_REQUIRED", "AGE_CHECK_REQUIRED") or "sign in" in reason.lower():
                raise PlaybackRestrictedError(f"player refused playback: {reason}")
            raise ProviderError(f"player status {status or 'missing'}: {reason}")

        streaming = data.get("streamingData") or {}
        streams, ciphered = parse_player_formats(
            streaming.get("formats"), streaming.get("adaptiveFormats")
        )
        logger.debug(f"player: {len(streams)} direct streams, {ciphered} ciphered for {video_id}")
        if not streams:
            if ciphered:
                raise PlaybackRestrictedError(f"player returned only {ciphered} signature-protected streams")
            raise ProviderError("player returned no streams")
        return streams


class RapidApiProvider(Provider):
    """RapidAPI-hosted scraper returning player-style format lists."""

    kind = "rapidapi"

    def __init__(self, api_key: str, host: str, timeout: float = 15.0):
        super().__init__("rapidapi", timeout)
        self.api_key = api_key
        self.host = host

    def describe(self) -> Dict[str, Any]:
        return {"host": self.host}

    async def fetch_streams(self, client: httpx.AsyncClient, video_id: str) -> List[StreamDescriptor]:
        try:
            resp = await client.get(
                f"https://{self.host}/dl",
                params={"id": video_id},
                headers={
                    "x-rapidapi-key": self.api_key,
                    "x-rapidapi-host": self.host,
                    "Accept": "application/json",
                },
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"RapidAPI request failed: {e!r}")

        data = _read_json(resp, "RapidAPI")

        status = str(data.get("status", "OK")).upper()
        if status not in ("OK", "SUCCESS"):
            raise ProviderError(f"RapidAPI status {status}: {data.get('msg') or data.get('message') or ''}".strip())

        streams, ciphered = parse_player_formats(data.get("formats"), data.get("adaptiveFormats"))
        if not streams:
            if ciphered:
                raise PlaybackRestrictedError(f"RapidAPI returned only {ciphered} signature-protected streams")
            raise ProviderError("RapidAPI returned no streams")
        return streams


class PipedProvider(Provider):
    """A public Piped API instance; stream URLs are proxied through Piped's CDN."""

    kind = "piped"

    def __init__(self, instance: str, timeout: float = 8.0):
        host = instance.replace("https://", "").replace("http://", "").rstrip("/")
        super().__init__(f"piped ({host})", timeout)
        self.instance = instance.rstrip("/")

    def describe(self) -> Dict[str, Any]:
        return {"instance": self.instance}

    async def fetch_streams(self, client: httpx.AsyncClient, video_id: str) -> List[StreamDescriptor]:
        try:
            resp = await client.get(
                f"{self.instance}/streams/{video_id}",
                headers={"Accept": "application/json", "User-Agent": BROWSER_USER_AGENT},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"Piped request failed: {e!r}")

        data = _read_json(resp, "Piped")

        if data.get("error"):
            raise ProviderError(f"Piped error: {str(data['error'])[:200]}")

        streams = parse_piped_streams(data)
        if not streams:
            raise ProviderError("Piped returned no streams")
        return streams
