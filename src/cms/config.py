"""Configuration loaded from environment variables."""
from functools import lru_cache

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Content hierarchy configuration loaded from environment variables.

    Attributes:
        debug: Enable debug-level logging.
        json_logs: Render log events as JSON instead of console text.
        session_timeout_minutes: Idle minutes before a session expires.
        max_upload_mb: Largest accepted upload, in mebibytes.
        max_body_length: Largest accepted content body, in characters.
    """

    model_config = SettingsConfigDict(
        env_prefix="CMS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    debug: bool = False
    json_logs: bool = True
    session_timeout_minutes: int = 30
    max_upload_mb: int = 10
    max_body_length: int = 1_000_000

    @computed_field
    @property
    def max_upload_bytes(self) -> int:
        """Upload size limit converted to bytes.

        Returns:
            Maximum upload size in bytes.
        """
        return self.max_upload_mb * 1024 * 1024


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process."""
    return Settings()
