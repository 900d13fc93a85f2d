"""
Runtime configuration read from environment variables.

Environment variables:
  RAPIDAPI_KEY        : RapidAPI key; the RapidAPI provider is skipped when unset
  RAPIDAPI_HOST       : RapidAPI scraper host (default ytstream-download-youtube-videos.p.rapidapi.com)
  PIPED_INSTANCES     : Comma-separated Piped API base URLs, tried in order
  INNERTUBE_ENABLED   : "false" removes the YouTube player-endpoint provider
  INNERTUBE_TIMEOUT   : Seconds before the player endpoint is abandoned (default 10)
  RAPIDAPI_TIMEOUT    : Seconds before RapidAPI is abandoned (default 15)
  PIPED_TIMEOUT       : Seconds before each Piped instance is abandoned (default 8)
  ALLOWED_ORIGINS     : Comma-separated CORS origins (default *)
  LOG_LEVEL           : Root log level (default INFO)
  TUBEGRAB_SERVER     : Resolver base URL used by the command line client
"""

import os
from typing import List, Optional

DEFAULT_PIPED_INSTANCES = [
    "https://pipedapi.kavin.rocks",
    "https://piped-api.garudalinux.org",
    "https://api.piped.projectsegfau.lt",
    "https://pipedapi.tokhmi.xyz",
]

DEFAULT_RAPIDAPI_HOST = "ytstream-download-youtube-videos.p.rapidapi.com"
DEFAULT_SERVER_URL = "http://localhost:8000"

# Provider timeouts are kept inside this window (seconds)
MIN_PROVIDER_TIMEOUT = 8.0
MAX_PROVIDER_TIMEOUT = 20.0


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return list(default)
    return [item.strip().rstrip("/") for item in raw.split(",") if item.strip()]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off")


def _env_timeout(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    try:
        value = float(raw) if raw else default
    except ValueError:
        value = default
    return max(MIN_PROVIDER_TIMEOUT, min(MAX_PROVIDER_TIMEOUT, value))


class Settings:
    """Snapshot of the environment taken when the object is created."""

    def __init__(self) -> None:
        self.rapidapi_key: Optional[str] = os.getenv("RAPIDAPI_KEY") or None
        self.rapidapi_host: str = os.getenv("RAPIDAPI_HOST", DEFAULT_RAPIDAPI_HOST)
        self.piped_instances: List[str] = _env_list("PIPED_INSTANCES", DEFAULT_PIPED_INSTANCES)
        self.innertube_enabled: bool = _env_bool("INNERTUBE_ENABLED", True)
        self.innertube_timeout: float = _env_timeout("INNERTUBE_TIMEOUT", 10.0)
        self.rapidapi_timeout: float = _env_timeout("RAPIDAPI_TIMEOUT", 15.0)
        self.piped_timeout: float = _env_timeout("PIPED_TIMEOUT", 8.0)
        self.allowed_origins: List[str] = _env_list("ALLOWED_ORIGINS", ["*"])
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.server_url: str = os.getenv("TUBEGRAB_SERVER", DEFAULT_SERVER_URL).rstrip("/")


settings = Settings()
