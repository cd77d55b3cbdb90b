from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

EXIT_ELIGIBLE = 0
EXIT_NOT_ELIGIBLE = 1
EXIT_PROVIDER_FAULT = 2
EXIT_CONFIG_ERROR = 3


def _ensure_backend_on_path() -> None:
    backend_dir = Path(__file__).resolve().parents[1]
    if str(backend_dir) not in sys.path:
        sys.path.insert(0, str(backend_dir))


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    # Python < 3.11 does not accept a trailing "Z".
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def _format_text(payload: dict) -> str:
    lines = [
        f"{payload['message']} ({payload['displayColor']})",
        f"Reason: {payload['reason']}",
    ]
    employee = payload.get("employee")
    if employee:
        lines.append(f"Employee: {employee['name']} [{employee['employeeId']}]")
    session = payload.get("mealSession")
    if session:
        lines.append(f"Meal session: {session['name']} {session['startTime']}-{session['endTime']}")
    rule = payload.get("matchedRule")
    if rule:
        lines.append(f"Matched rule: {rule['name']} (priority {rule['priority']})")
    lines.append(f"Timestamp: {payload['timestamp']}")
    return "\n".join(lines)


def load_service(fixtures_dir: Path, *, timezone_name: str = "UTC"):
    _ensure_backend_on_path()
    from pipelines.fixtures import load_fixture_sources
    from pipelines.verification import VerificationService

    return VerificationService(load_fixture_sources(fixtures_dir), tz=ZoneInfo(timezone_name))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Check whether an employee may draw a meal, using a fixtures directory as the data source."
    )
    parser.add_argument(
        "--fixtures-dir",
        required=True,
        help="Directory with employees.json, meal_sessions.json, rules.json, attendance.json, meal_transactions.json.",
    )
    parser.add_argument("--employee", required=True, help="Employee id.")
    parser.add_argument("--session", required=True, help="Meal session id.")
    parser.add_argument(
        "--timestamp",
        default=None,
        help="ISO 8601 evaluation time (defaults to now).",
    )
    parser.add_argument(
        "--timezone",
        default=None,
        help="Canteen timezone used for HH:mm windows (defaults to CANTEEN_TIMEZONE or UTC).",
    )
    parser.add_argument(
        "--format",
        choices=("json", "text"),
        default="json",
        help="Output format (default: json).",
    )
    args = parser.parse_args(argv)

    _ensure_backend_on_path()
    from common.log import configure_logging
    from pipelines.config import get_canteen_config
    from pipelines.errors import ProviderUnavailableError

    try:
        timestamp = _parse_timestamp(args.timestamp)
    except ValueError:
        raise SystemExit(f"Invalid --timestamp: {args.timestamp}")

    # Anything that fails before a verdict is a setup problem, never "not eligible".
    try:
        config = get_canteen_config()
        # stdout carries the verdict; logs go to stderr.
        configure_logging(config.log_level, json_output=config.log_json, stream=sys.stderr)
        service = load_service(
            Path(args.fixtures_dir).resolve(),
            timezone_name=args.timezone or config.timezone,
        )
    except (ValueError, ZoneInfoNotFoundError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        response = service.verify(args.employee, args.session, timestamp)
    except ProviderUnavailableError as exc:
        print(f"Provider fault: {exc}", file=sys.stderr)
        return EXIT_PROVIDER_FAULT

    payload = response.to_payload()
    if args.format == "json":
        print(json.dumps(payload, indent=2))
    else:
        print(_format_text(payload))
    return EXIT_ELIGIBLE if response.eligible else EXIT_NOT_ELIGIBLE


if __name__ == "__main__":
    raise SystemExit(main())
