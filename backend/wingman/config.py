from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

DEFAULT_CENTER = (36.8065, 10.1815)
DEFAULT_ZOOM = 13
SELECTED_MIN_ZOOM = 16
MAX_ZOOM = 19

OSM_TILE_URL = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
OSM_ATTRIBUTION = '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors'


class Settings:
    """Runtime settings read from the environment (and ``.env`` when present)."""

    def __init__(self) -> None:
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./wingman.db")
        self.frontend_origin = os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")
        self.openweather_api_key = os.getenv("OPENWEATHER_API_KEY") or None
        self.nominatim_user_agent = os.getenv("NOMINATIM_USER_AGENT", "Wingman Trip Planner")
        self.tile_url = os.getenv("MAP_TILE_URL", OSM_TILE_URL)
        self.api_url = os.getenv("WINGMAN_API_URL", "http://localhost:8000")
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()


def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str | None = None) -> None:
    root_logger = logging.getLogger()
    resolved = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    root_logger.setLevel(getattr(logging, resolved, logging.INFO))
    if any(getattr(handler, "_wingman", False) for handler in root_logger.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    handler._wingman = True
    root_logger.addHandler(handler)
