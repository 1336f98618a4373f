from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from src.claims_system.claims_system.core.enums import DayType, RateKind
from src.claims_system.claims_system.core.exceptions import NotConfiguredError, ValidationError
from src.claims_system.claims_system.rates.day_types import DayTypeCalendar
from src.claims_system.claims_system.rates.resolver import RateResolver

from tests.fakes import mileage, multiplier


def _mileage_history():
    return RateResolver(
        [
            mileage(1, "0.55", date(2024, 1, 1)),
            mileage(2, "0.60", date(2024, 7, 1)),
        ]
    )


def test_picks_latest_effective_entry_on_or_before_reference():
    resolver = _mileage_history()
    assert resolver.resolve_mileage_rate(date(2024, 6, 30)) == Decimal("0.55")
    assert resolver.resolve_mileage_rate(date(2024, 7, 1)) == Decimal("0.60")
    assert resolver.resolve_mileage_rate(date(2025, 3, 1)) == Decimal("0.60")


def test_reference_before_any_entry_is_not_configured():
    with pytest.raises(NotConfiguredError) as exc:
        _mileage_history().resolve_mileage_rate(date(2023, 12, 31))
    assert exc.value.code == "not_configured"


def test_same_effective_date_prefers_latest_created():
    resolver = RateResolver(
        [
            mileage(1, "0.55", date(2024, 1, 1), created=datetime(2024, 1, 1, 8, 0)),
            mileage(2, "0.58", date(2024, 1, 1), created=datetime(2024, 1, 2, 8, 0)),
        ]
    )
    assert resolver.resolve_mileage_rate(date(2024, 2, 1)) == Decimal("0.58")


def test_multiplier_matches_condition_exactly():
    resolver = RateResolver(
        [
            multiplier(1, "1.5", "weekday", date(2024, 1, 1)),
            multiplier(2, "2.0", "weekend", date(2024, 1, 1)),
            multiplier(3, "3.0", "weekend", date(2024, 1, 1), designation="senior"),
        ]
    )
    assert resolver.resolve_overtime_multiplier(date(2024, 6, 1), DayType.WEEKEND, "standard") == Decimal("2.0")
    assert resolver.resolve_overtime_multiplier(date(2024, 6, 1), "weekend", "senior") == Decimal("3.0")
    with pytest.raises(NotConfiguredError):
        resolver.resolve_overtime_multiplier(date(2024, 6, 1), DayType.HOLIDAY, "standard")


def test_incomplete_condition_is_a_validation_error():
    resolver = RateResolver([multiplier(1, "1.5", "weekday", date(2024, 1, 1))])
    with pytest.raises(ValidationError):
        resolver.resolve(RateKind.OVERTIME_MULTIPLIER, date(2024, 6, 1), {"day_type": "weekday"})
    with pytest.raises(ValidationError):
        resolver.resolve("bonus", date(2024, 6, 1))


def test_mileage_never_defaults_when_only_multipliers_exist():
    resolver = RateResolver([multiplier(1, "1.5", "weekday", date(2024, 1, 1))])
    with pytest.raises(NotConfiguredError):
        resolver.resolve("mileage", date(2024, 6, 1))


def test_calendar_holiday_wins_over_weekend():
    saturday = date(2024, 6, 1)
    calendar = DayTypeCalendar(frozenset({saturday}))
    assert calendar.classify(saturday) == DayType.HOLIDAY
    assert calendar.classify(date(2024, 6, 2)) == DayType.WEEKEND
    assert calendar.classify(date(2024, 6, 3)) == DayType.WEEKDAY


def test_mid_year_rate_change():
    resolver = RateResolver([mileage(1, "0.55", date(2024, 1, 1)), mileage(2, "0.60", date(2024, 6, 1))])
    assert resolver.resolve("mileage", date(2024, 3, 1)) == Decimal("0.55")
    assert resolver.resolve("mileage", date(2024, 7, 1)) == Decimal("0.60")
    with pytest.raises(NotConfiguredError):
        resolver.resolve("mileage", date(2023, 1, 1))
