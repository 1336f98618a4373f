from datetime import time
from decimal import Decimal

from src.claims_system.claims_system.core.enums import TripMode
from src.claims_system.claims_system.payroll.calculator.standard_calculator import (
    StandardPayoutCalculator,
    round_money,
    trip_distance,
)
from src.claims_system.claims_system.submissions.model import ClaimExpenses


def test_claim_total_adds_mileage_and_itemized_expenses():
    calc = StandardPayoutCalculator()
    expenses = ClaimExpenses(toll=Decimal("5"), petrol=Decimal("0"), meal=Decimal("12.50"), others=Decimal("0"))
    assert calc.claim_total(Decimal("120"), Decimal("0.55"), expenses) == Decimal("83.50")


def test_claim_total_without_mileage_ignores_rate():
    calc = StandardPayoutCalculator()
    assert calc.claim_total(None, None, ClaimExpenses(meal=Decimal("9.99"))) == Decimal("9.99")


def test_overtime_payout():
    calc = StandardPayoutCalculator()
    assert calc.overtime_payout(Decimal("3.4"), Decimal("42.50"), Decimal("1.5")) == Decimal("216.75")


def test_rounding_is_half_up_at_the_end():
    assert round_money(Decimal("27.775")) == Decimal("27.78")
    calc = StandardPayoutCalculator()
    # 10.1 x 0.55 = 5.555 -> 5.56 (no intermediate rounding)
    assert calc.claim_total(Decimal("10.1"), Decimal("0.55"), ClaimExpenses()) == Decimal("5.56")


def test_worked_hours_wraps_overnight():
    calc = StandardPayoutCalculator()
    assert calc.worked_hours(time(18, 0), time(21, 20)) == Decimal("3.33")
    assert calc.worked_hours(time(22, 0), time(2, 0)) == Decimal("4.00")


def test_return_trip_doubles_one_way_distance():
    assert trip_distance(Decimal("12.5"), TripMode.RETURN) == Decimal("25.0")
    assert trip_distance(Decimal("12.5"), TripMode.ONE_WAY) == Decimal("12.5")


def test_five_hours_at_weekday_multiplier():
    calc = StandardPayoutCalculator()
    assert calc.overtime_payout(Decimal("5"), Decimal("28.90"), Decimal("1.5")) == Decimal("216.75")


def test_mileage_component_rounds_once():
    calc = StandardPayoutCalculator()
    assert calc.mileage_cost(Decimal("50.5"), Decimal("0.55")) == Decimal("27.775")
    assert calc.claim_total(Decimal("50.5"), Decimal("0.55"), ClaimExpenses()) == Decimal("27.78")
