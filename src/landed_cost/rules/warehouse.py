"""Bonded-warehouse (EADI/porto seco) storage fee simulation.

Operators bill storage as a percentage of the cargo's CIF value per fixed
15-day block, with a minimum charge per block:

  - periods      = ceil(storage_days / 15), partial blocks bill in full
  - per period   = max(CIF × percent_of_cif, minimum_fee_brl)
  - total        = per period × periods

Zero storage days bill zero periods even when a schedule is selected.
"""
from __future__ import annotations

import math
from decimal import Decimal

from ..models import CIF_CATEGORIES, CostBreakdown, WarehouseFeeSchedule

BILLING_PERIOD_DAYS = 15


def billing_periods(storage_days: int) -> int:
    days = max(0, int(storage_days or 0))
    return math.ceil(days / BILLING_PERIOD_DAYS)


def cif_value(breakdown: CostBreakdown) -> Decimal:
    """FOB + international freight + insurance, missing categories as zero."""
    return sum((breakdown.get(category) for category in CIF_CATEGORIES), Decimal("0"))


def fee_per_period(cif: Decimal, schedule: WarehouseFeeSchedule) -> Decimal:
    return max(cif * schedule.percent_of_cif, schedule.minimum_fee_brl)


def simulate_warehouse_fee(
    breakdown: CostBreakdown,
    schedule: WarehouseFeeSchedule,
    storage_days: int,
) -> Decimal:
    periods = billing_periods(storage_days)
    if periods == 0:
        return Decimal("0")
    return fee_per_period(cif_value(breakdown), schedule) * periods
