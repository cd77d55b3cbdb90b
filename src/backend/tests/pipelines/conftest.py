from datetime import datetime, timezone

import pytest

from pipelines.fixtures import load_fixture_sources
from pipelines.verification import VerificationService


@pytest.fixture
def at():
    def _at(hhmm: str, day: int = 14) -> datetime:
        hour, minute = (int(part) for part in hhmm.split(":"))
        return datetime(2025, 3, day, hour, minute, tzinfo=timezone.utc)

    return _at


@pytest.fixture
def sources(canteen_fixtures_dir):
    return load_fixture_sources(canteen_fixtures_dir)


@pytest.fixture
def service(sources):
    return VerificationService(sources)
