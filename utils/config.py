"""
Application settings, read from the environment (prefix FILE_BOOKMARKS_).
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FILE_BOOKMARKS_", extra="ignore")

    app_name: str = "FileBookmarks"

    # Key under which the whole forest is stored in the key-value store
    storage_key: str = "fileBookmarks.data"

    # Register the storage key for syncing when the store supports it
    sync_enabled: bool = True

    data_dir: Optional[Path] = Field(default=None, description="Overrides the per-user data directory")
    log_level: str = "INFO"

    store_filename: str = "bookmarks_store.json"
    export_filename: str = "file-bookmarks-export.json"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
