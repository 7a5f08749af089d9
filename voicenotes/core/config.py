"""
Application configuration via pydantic-settings.

Loads values from .env file with sensible defaults for local development.
Use ``get_settings()`` to obtain the cached singleton instance.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """VoiceNotes device settings loaded from environment / .env file.

    All settings can be overridden via environment variables or a `.env` file.
    Field names map directly to env var names (case-insensitive).

    Attributes:
        device_role: "primary" (listens for peers) or "companion" (connects out).
        peer_url: WebSocket URL of the primary's ``/ws/sync`` endpoint.
        whisper_provider: STT backend ("local" for faster-whisper).
        recordings_dir: Directory that audio references resolve against.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Silently ignore unrecognized env vars
    )

    # --- Device ---
    # The same code runs on both ends of the sync link; the role only decides
    # who dials whom and who asks for the catalog on connect.
    device_role: str = "primary"
    device_name: str = "voicenotes"

    # --- Sync ---
    peer_url: str = ""  # e.g. "ws://phone.local:8000/ws/sync"; companion only
    request_catalog_on_connect: bool | None = None  # None = derive from role
    sync_reconnect_min: float = 1.0  # Seconds, first reconnect delay
    sync_reconnect_max: float = 30.0  # Seconds, backoff ceiling
    sync_send_timeout: float = 5.0  # A push slower than this is dropped
    sync_include_audio: bool = True  # Embed WAV bytes in memo snapshots

    # --- Whisper STT ---
    whisper_provider: str = "local"
    whisper_model: str = "base"  # Model size: tiny, base, small, medium, large-v3
    whisper_device: str = "cpu"
    whisper_compute_type: str = "int8"
    whisper_default_language: str = ""  # Empty = auto-detect; ISO 639-1 code e.g. "en"

    # --- Capture format ---
    # PCM 16-bit mono; what the recording sink writes and the editor expects
    sample_rate: int = 16000
    sample_width: int = 2
    channels: int = 1

    # --- Application ---
    app_host: str = "0.0.0.0"  # Bind address for the FastAPI server
    app_port: int = 8000
    log_level: str = "INFO"  # Python logging level
    cors_origins: list[str] = ["http://localhost:3000"]

    # --- Storage ---
    recordings_dir: str = "data/recordings"  # WAV file storage directory

    @property
    def is_companion(self) -> bool:
        return self.device_role.lower() == "companion"

    @property
    def should_request_catalog(self) -> bool:
        """Whether a (re)established peer link starts with a CatalogRequest."""
        if self.request_catalog_on_connect is not None:
            return self.request_catalog_on_connect
        return self.is_companion


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings singleton.

    Uses ``functools.lru_cache`` so the .env file is read only once.
    Subsequent calls return the same ``Settings`` instance.

    Returns:
        Settings: The device-wide configuration object.
    """
    return Settings()
