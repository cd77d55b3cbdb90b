import io
import json
from datetime import date
from pathlib import Path

import pytest

from common.log import configure_logging, get_logger
from pipelines.config import get_canteen_config
from pipelines.data_source import get_data_source
from pipelines.fixtures import load_fixture_sources
from pipelines.in_memory import InMemoryRuleStore


_CANTEEN_ENV = (
    "CANTEEN_TIMEZONE",
    "CANTEEN_DATA_SOURCE",
    "CANTEEN_FIXTURES_DIR",
    "CANTEEN_LOG_LEVEL",
    "CANTEEN_LOG_JSON",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in _CANTEEN_ENV:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_fixture_sources_resolve_entities(sources):
    assert sources.employees.get_employee("emp-1").employee_code == "E-1001"
    assert sources.employees.get_employee("missing") is None
    assert sources.meal_sessions.get_meal_session("breakfast").is_active is False
    fact = sources.attendance.get_attendance("emp-2", date(2025, 3, 14))
    assert fact.present is True
    assert fact.overtime_hours == 2.5
    assert sources.attendance.get_attendance("emp-2", date(2025, 3, 15)) is None


def test_fixture_ledger_counts_only_that_day(sources):
    assert sources.ledger.count_approved_meals("emp-4", date(2025, 3, 14)) == 1
    assert sources.ledger.count_approved_meals("emp-1", date(2025, 3, 14)) == 0
    assert sources.ledger.count_approved_meals("emp-1", date(2025, 3, 13)) == 1


def test_missing_fixture_files_are_empty(tmp_path: Path):
    (tmp_path / "employees.json").write_text(json.dumps([{"id": "emp-9", "name": "Solo"}]))
    sources = load_fixture_sources(tmp_path)
    assert sources.employees.get_employee("emp-9").name == "Solo"
    assert sources.rules.rules_for_session("lunch") == []


def test_fixture_file_must_hold_a_list(tmp_path: Path):
    (tmp_path / "rules.json").write_text(json.dumps({"id": "r1"}))
    with pytest.raises(ValueError, match="rules.json"):
        load_fixture_sources(tmp_path)


def test_fixture_dir_must_exist(tmp_path: Path):
    with pytest.raises(ValueError, match="not found"):
        load_fixture_sources(tmp_path / "absent")


def test_get_data_source(canteen_fixtures_dir):
    fixtures = get_data_source("fixtures", fixtures_dir=canteen_fixtures_dir)
    assert fixtures.employees.get_employee("emp-1") is not None

    memory = get_data_source("MEMORY")
    assert isinstance(memory.rules, InMemoryRuleStore)
    assert memory.employees.get_employee("emp-1") is None


def test_get_data_source_errors():
    with pytest.raises(ValueError, match="fixtures directory is required"):
        get_data_source("fixtures")
    with pytest.raises(ValueError, match="Unknown data source"):
        get_data_source("mongo")


def test_config_defaults(clean_env):
    config = get_canteen_config()
    assert config.timezone == "UTC"
    assert config.data_source == "fixtures"
    assert config.fixtures_dir is None
    assert config.log_level == "info"
    assert config.log_json is False


def test_config_from_env(clean_env, tmp_path):
    clean_env.setenv("CANTEEN_TIMEZONE", "Asia/Kolkata")
    clean_env.setenv("CANTEEN_DATA_SOURCE", "Memory")
    clean_env.setenv("CANTEEN_FIXTURES_DIR", str(tmp_path))
    clean_env.setenv("CANTEEN_LOG_LEVEL", "DEBUG")
    clean_env.setenv("CANTEEN_LOG_JSON", "true")
    config = get_canteen_config()
    assert config.tz.key == "Asia/Kolkata"
    assert config.data_source == "memory"
    assert config.fixtures_dir == tmp_path
    assert config.log_level == "debug"
    assert config.log_json is True


def test_config_rejects_unknown_timezone(clean_env):
    clean_env.setenv("CANTEEN_TIMEZONE", "Mars/Olympus")
    with pytest.raises(ValueError, match="CANTEEN_TIMEZONE"):
        get_canteen_config()


def test_config_rejects_unknown_data_source(clean_env):
    clean_env.setenv("CANTEEN_DATA_SOURCE", "postgres")
    with pytest.raises(ValueError, match="CANTEEN_DATA_SOURCE"):
        get_canteen_config()


def test_json_logging_writes_structured_events():
    stream = io.StringIO()
    configure_logging("info", json_output=True, stream=stream)
    get_logger("tests.logging").info("meal_recorded", employee_id="emp-1")
    event = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert event["event"] == "meal_recorded"
    assert event["employee_id"] == "emp-1"
    assert event["level"] == "info"


def test_unknown_log_level_rejected():
    with pytest.raises(ValueError):
        configure_logging("chatty")
