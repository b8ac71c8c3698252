from datetime import datetime, timedelta, timezone

from teller_dashboard.services.timestamps import now_iso, to_iso


def test_aware_values_are_converted_to_utc() -> None:
    pacific = timezone(timedelta(hours=-8))

    assert to_iso(datetime(2026, 1, 1, 4, 0, 0, tzinfo=pacific)) == "2026-01-01T12:00:00Z"


def test_naive_values_are_taken_as_utc() -> None:
    assert to_iso(datetime(2026, 1, 1, 12, 30)) == "2026-01-01T12:30:00Z"


def test_strings_and_none_pass_through() -> None:
    assert to_iso("2026-01-01T00:00:00Z") == "2026-01-01T00:00:00Z"
    assert to_iso(None) is None


def test_now_ends_in_z() -> None:
    assert now_iso().endswith("Z")
