from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Worker settings loaded from environment variables.

    Every field can be overridden with a ``MINION_`` prefixed variable,
    e.g. ``MINION_DATA_DIR=/mnt/minion``.

    HTTPS uploads
    ─────────────
    When ``https_enabled`` is true the worker builds one client SSL context
    at startup from the ``ssl_*`` fields and shares it across all uploads
    and downloads. When false, the default (cleartext-capable) transport
    is used and the ``ssl_*`` fields are ignored.
    """

    model_config = SettingsConfigDict(
        env_prefix="MINION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Scratch space: one subdirectory per task type, one tmp dir per run
    data_dir: Path = Path("/tmp/minion")

    # Concurrent task runs per worker process
    max_workers: int = 4

    # Per-attempt socket timeout for segment uploads (10 minutes)
    upload_socket_timeout_ms: int = 600_000

    # Timeout for a single segment download
    fetch_timeout_seconds: float = 300.0

    # TLS for controller uploads
    https_enabled: bool = False
    ssl_ca_file: str = ""
    ssl_cert_file: str = ""
    ssl_key_file: str = ""
    ssl_key_password: str = ""

    # App
    debug: bool = True

    @field_validator("max_workers")
    @classmethod
    def validate_max_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_workers must be at least 1")
        return v


def get_settings() -> Settings:
    return Settings()
