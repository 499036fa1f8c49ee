"""Application settings loaded from environment variables via pydantic-settings.

Settings are read from two sources, in priority order:

  1. **Environment variables** -- e.g. ``SPOTIFY_CLIENT_ID=abc123``
  2. **.env file** -- key=value lines in the project root ``.env`` file

Field ``spotify_client_id`` maps to env var ``SPOTIFY_CLIENT_ID``.  Defaults
apply when neither source defines a field.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """stackdigger application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Canonical-ID enrichment (Spotify client-credentials flow) ===
    # Empty string = "not configured" -> main.py wires a no-op enricher and
    # every track is surfaced without a canonical id.
    spotify_client_id: str = ""
    spotify_client_secret: str = ""
    spotify_api_base: str = "https://api.spotify.com/v1"
    spotify_token_url: str = "https://accounts.spotify.com/api/token"
    enrichment_min_confidence: float = 0.6
    enrichment_concurrency: int = 10

    # === Content sources ===
    nts_base_url: str = "https://www.nts.live/api/v2"
    tracklists_base_url: str = "https://www.1001tracklists.com"
    tracklists_enabled: bool = True
    tracklists_request_delay: float = 3.0
    source_timeout: float = 20.0
    source_concurrency: int = 8
    source_cache_ttl: int = 3600
    source_cache_size: int = 512

    # === Stack building ===
    max_containers_per_seed: int = 5
    stack_build_timeout: float = 120.0

    # === Exposure state ===
    exposure_db_path: str = "data/exposure.db"
    stack_history_limit: int = 50

    # === App Config ===
    app_host: str = "127.0.0.1"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def spotify_configured(self) -> bool:
        """Return ``True`` when both Spotify credentials are present."""
        return bool(self.spotify_client_id and self.spotify_client_secret)
