"""Environment-driven settings (``PHOTOGUESS_*`` variables or a ``.env`` file)."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_server_root() -> Path:
    """Walk up from this file to find the directory containing pyproject.toml."""
    current = Path(__file__).resolve().parent
    while current != current.parent:
        if (current / 'pyproject.toml').exists():
            return current
        current = current.parent
    # Installed as a wheel: fall back to the working directory.
    return Path.cwd()


DATA_DIR = _find_server_root() / 'data'


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix='PHOTOGUESS_',
        env_file='.env',
        extra='ignore',
    )

    database_url: str = f'sqlite:///{DATA_DIR / "photoguess.db"}'
    log_level: str = 'INFO'

    # Game rules
    room_code_max_attempts: int = 10
    min_submissions_to_play: int = 2
    allow_multiple_submissions: bool = False

    # Client sync
    sync_poll_interval_s: float = 2.0
    sync_backoff_base_s: float = 1.0
    sync_backoff_max_s: float = 30.0


@lru_cache
def get_settings() -> Settings:
    return Settings()
