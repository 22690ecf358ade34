"""FastAPI dependencies for the active config and database."""

from __future__ import annotations

from functools import lru_cache

from slotmatch.config import Config, load_config
from slotmatch.database import Database


@lru_cache
def get_config() -> Config:
    return load_config()


@lru_cache
def get_db() -> Database:
    return Database(get_config().db_path)
