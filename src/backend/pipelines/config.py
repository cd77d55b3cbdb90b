from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv


load_dotenv()

_DATA_SOURCES = ("fixtures", "memory")
_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class CanteenConfig:
    timezone: str
    data_source: str
    fixtures_dir: Path | None
    log_level: str
    log_json: bool

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def get_canteen_config() -> CanteenConfig:
    """
    Load canteen verification settings from environment variables.

    Reads:
      CANTEEN_TIMEZONE, CANTEEN_DATA_SOURCE, CANTEEN_FIXTURES_DIR,
      CANTEEN_LOG_LEVEL, CANTEEN_LOG_JSON
    """
    timezone_name = os.getenv("CANTEEN_TIMEZONE", "UTC").strip() or "UTC"
    _validate_timezone(timezone_name)

    data_source = os.getenv("CANTEEN_DATA_SOURCE", "fixtures").strip().lower() or "fixtures"
    if data_source not in _DATA_SOURCES:
        raise ValueError(f"CANTEEN_DATA_SOURCE must be one of {', '.join(_DATA_SOURCES)}.")

    fixtures_dir = os.getenv("CANTEEN_FIXTURES_DIR", "").strip()

    return CanteenConfig(
        timezone=timezone_name,
        data_source=data_source,
        fixtures_dir=Path(fixtures_dir) if fixtures_dir else None,
        log_level=os.getenv("CANTEEN_LOG_LEVEL", "info").strip().lower() or "info",
        log_json=os.getenv("CANTEEN_LOG_JSON", "").strip().lower() in _TRUE_VALUES,
    )


def _validate_timezone(name: str) -> None:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"CANTEEN_TIMEZONE is not a known timezone: {name}") from exc
