"""
Direct media URL resolution with sequential provider fallback.

Provider order (tried one at a time until one returns streams):
  1. innertube               : YouTube player endpoint, Android client (INNERTUBE_ENABLED)
  2. rapidapi                : RapidAPI scraper (only when RAPIDAPI_KEY is set)
  3. piped (<host>) ...      : every instance listed in PIPED_INSTANCES, in order

A provider that times out, answers with a non-2xx status, sends malformed
JSON or lists no streams is skipped. The first non-empty stream list is
handed to selection; nothing is retried.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from .config import Settings, settings as default_settings
from .models import (
    QUALITY_CHOICES,
    ErrorCode,
    ErrorDetail,
    ResolutionResult,
    StreamDescriptor,
)
from .providers import (
    InnertubeProvider,
    PipedProvider,
    PlaybackRestrictedError,
    Provider,
    ProviderError,
    RapidApiProvider,
)
from .selection import select_stream

logger = logging.getLogger(__name__)

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


def watch_url(video_id: str) -> str:
    return WATCH_URL.format(video_id=video_id)


class StreamResolver:
    """Resolves {videoId, quality} to a direct media URL."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        providers: Optional[List[Provider]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or default_settings
        self.transport = transport
        self.providers = providers if providers is not None else self._build_provider_list()

    # =========================================================================
    # SETUP HELPERS
    # =========================================================================

    def _build_provider_list(self) -> List[Provider]:
        """Ordered provider list derived from settings."""
        providers: List[Provider] = []

        if self.settings.innertube_enabled:
            providers.append(InnertubeProvider(timeout=self.settings.innertube_timeout))

        if self.settings.rapidapi_key:
            providers.append(RapidApiProvider(
                api_key=self.settings.rapidapi_key,
                host=self.settings.rapidapi_host,
                timeout=self.settings.rapidapi_timeout,
            ))
        else:
            logger.info("RAPIDAPI_KEY not set, RapidAPI provider disabled")

        for instance in self.settings.piped_instances:
            providers.append(PipedProvider(instance, timeout=self.settings.piped_timeout))

        return providers

    def list_providers(self) -> List[Tuple[str, str, Dict[str, Any]]]:
        """(name, kind, kwargs) for every provider, in the order they are tried."""
        return [(p.name, p.kind, p.describe()) for p in self.providers]

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, follow_redirects=True)

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def fetch_streams(
        self, video_id: str
    ) -> Tuple[List[StreamDescriptor], Optional[str], Optional[ErrorDetail]]:
        """
        Walk the provider chain until one returns streams.

        Returns (streams, provider_name, None) on success.
        Returns ([], None, error) if no provider produced streams.
        """
        total = len(self.providers)
        if total == 0:
            logger.error("❌ No stream providers configured")
            return [], None, ErrorDetail(
                code=ErrorCode.UPSTREAM_MISCONFIGURED,
                message="No stream providers are configured on this server.",
            )

        logger.info(f"🚀 Resolving {video_id} with {total} providers")

        all_errors: List[str] = []
        restricted = False

        async with self._client() as client:
            for idx, provider in enumerate(self.providers, 1):
                logger.info(f"🎯 Provider {idx}/{total}: {provider.name}")
                try:
                    streams = await asyncio.wait_for(
                        provider.fetch_streams(client, video_id),
                        timeout=provider.timeout,
                    )
                except asyncio.TimeoutError:
                    error_msg = f"timed out after {provider.timeout:g}s"
                except PlaybackRestrictedError as e:
                    restricted = True
                    error_msg = str(e)
                except ProviderError as e:
                    error_msg = str(e)
                except Exception as e:
                    logger.exception(f"💥 Unexpected exception in provider {provider.name}")
                    error_msg = f"unexpected exception: {e!r}"
                else:
                    if streams:
                        logger.info(f"✅ Provider {idx}/{total} ({provider.name}) returned {len(streams)} streams")
                        return streams, provider.name, None
                    error_msg = "empty stream list"

                logger.warning(f"⚠️ Provider {idx}/{total} ({provider.name}) failed: {error_msg[:120]}")
                all_errors.append(f"[{provider.name}]: {error_msg[:200]}")

        logger.error(f"❌ All {total} providers failed for {video_id}")

        if restricted:
            return [], None, ErrorDetail(
                code=ErrorCode.DIRECT_DOWNLOAD_UNAVAILABLE,
                message="Direct download is not available for this video.",
                fallback_url=watch_url(video_id),
                details={"provider_errors": all_errors},
            )

        return [], None, ErrorDetail(
            code=ErrorCode.UPSTREAM_UNAVAILABLE,
            message="Could not retrieve video streams. The video may be unavailable.",
            details={"provider_errors": all_errors},
        )

    async def resolve(
        self, video_id: str, quality: str
    ) -> Tuple[Optional[ResolutionResult], Optional[ErrorDetail]]:
        """
        Resolve a direct media URL for ``video_id`` at ``quality``.

        Returns (result, None) on success, (None, error) otherwise.
        """
        if not video_id:
            return None, ErrorDetail(code=ErrorCode.INVALID_REQUEST, message="videoId is required")
        if quality not in QUALITY_CHOICES:
            return None, ErrorDetail(
                code=ErrorCode.INVALID_REQUEST,
                message=f"quality must be one of: {', '.join(QUALITY_CHOICES)}",
            )

        streams, provider_name, error = await self.fetch_streams(video_id)
        if error:
            return None, error

        selection = select_stream(streams, quality)
        if selection is None:
            logger.warning(f"⚠️ No stream matched quality={quality} among {len(streams)} from {provider_name}")
            message = (
                "No audio stream found for this video."
                if quality == "audio"
                else "No video stream found for the requested quality."
            )
            return None, ErrorDetail(
                code=ErrorCode.STREAM_NOT_FOUND,
                message=message,
                details={"provider": provider_name, "streams": len(streams)},
            )

        result = selection.to_result(provider=provider_name)
        logger.info(
            f"✅ Selected {result.type} stream {result.quality or '?'} "
            f"({result.mime_type or 'unknown type'}) from {provider_name}"
            + (" (video only)" if result.video_only else "")
        )
        return result, None


# Global singleton
resolver = StreamResolver()
