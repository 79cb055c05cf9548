from functools import lru_cache
from typing import Optional

from sqlalchemy import create_engine

from wingman.config import get_settings


def build_engine(database_url: str):
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args, future=True)


@lru_cache(maxsize=1)
def get_engine(database_url: Optional[str] = None):
    url = database_url or get_settings().database_url
    if not url:
        raise RuntimeError("DATABASE_URL environment variable is not set")
    return build_engine(url)
