from decimal import Decimal

import pytest

from landed_cost.models import CostBreakdown, CostCategory, WarehouseFeeSchedule
from landed_cost.rules.warehouse import billing_periods, cif_value, simulate_warehouse_fee

STANDARD = WarehouseFeeSchedule(code="TPC", name="TPC", percent_of_cif="0.003", minimum_fee_brl="500")
TECON = WarehouseFeeSchedule(code="TECON", name="Tecon", percent_of_cif="0.0015", minimum_fee_brl="1342.55")


def _breakdown(**totals: str) -> CostBreakdown:
    return CostBreakdown.from_totals({CostCategory[k]: Decimal(v) for k, v in totals.items()})


@pytest.mark.parametrize(
    "days, expected",
    [(0, 0), (-5, 0), (1, 1), (15, 1), (16, 2), (30, 2), (31, 3), (45, 3)],
)
def test_billing_periods_round_up_in_15_day_blocks(days: int, expected: int) -> None:
    assert billing_periods(days) == expected


def test_cif_sums_fob_freight_insurance_only() -> None:
    breakdown = _breakdown(FOB="90000", INTERNATIONAL_FREIGHT="8000", INSURANCE="2000", II="15000")
    assert cif_value(breakdown) == Decimal("100000")


def test_cif_treats_missing_categories_as_zero() -> None:
    assert cif_value(_breakdown(FOB="1000")) == Decimal("1000")
    assert cif_value(CostBreakdown()) == Decimal("0")


@pytest.mark.parametrize(
    "days, expected",
    [(15, Decimal("500")), (16, Decimal("1000")), (30, Decimal("1000")), (31, Decimal("1500"))],
)
def test_minimum_applies_per_period(days: int, expected: Decimal) -> None:
    # 0.30% of 100k is 300, below the 500 floor.
    breakdown = _breakdown(FOB="100000")
    assert simulate_warehouse_fee(breakdown, STANDARD, days) == expected


def test_percentage_wins_over_minimum_on_large_cif() -> None:
    breakdown = _breakdown(FOB="900000", INTERNATIONAL_FREIGHT="80000", INSURANCE="20000")
    # 0.15% of 1,000,000 = 1500 per period, 20 days = 2 periods
    assert simulate_warehouse_fee(breakdown, TECON, 20) == Decimal("3000")


def test_zero_storage_days_bill_nothing() -> None:
    assert simulate_warehouse_fee(_breakdown(FOB="100000"), STANDARD, 0) == Decimal("0")


def test_negative_storage_days_clamp_to_zero() -> None:
    assert simulate_warehouse_fee(_breakdown(FOB="100000"), STANDARD, -30) == Decimal("0")


def test_empty_breakdown_still_bills_minimum() -> None:
    assert simulate_warehouse_fee(CostBreakdown(), TECON, 1) == Decimal("1342.55")
