"""Monthly cash-flow projection: actual (paid) vs projected (still due) BRL.

Buckets are seeded for every month of the window before any item is read,
so quiet months still show up with zeros. Paid items land in their payment
month; open items (not paid, not cancelled) land in their due month at their
provisioned amount when one is set, otherwise at converted face value.
"""
from __future__ import annotations

import calendar
import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from ..models import (
    CashFlowBucket,
    CashFlowProjection,
    CostLineItem,
    DateLike,
    ExchangeRateTable,
    ImportCostProfile,
    ImportedCost,
    PaymentStatus,
    as_date,
)
from .currency import convert

logger = logging.getLogger(__name__)

CLOSED_STATUSES = frozenset({PaymentStatus.PAID, PaymentStatus.CANCELLED})


# -------------------------------
# Window helpers
# -------------------------------

def month_start(on: date) -> date:
    return on.replace(day=1)


def month_end(on: date) -> date:
    return on.replace(day=calendar.monthrange(on.year, on.month)[1])


def add_months(on: date, months: int) -> date:
    """First day of the month ``months`` after ``on``'s month."""
    index = on.year * 12 + (on.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def month_range(start: date, end: date) -> List[date]:
    months: List[date] = []
    current = month_start(start)
    while current <= end:
        months.append(current)
        current = add_months(current, 1)
    return months


def cash_flow_window(preset: str, today: DateLike) -> Tuple[date, date]:
    """Resolve a named range: this_month, next_3_months or this_year."""
    today = as_date(today)
    key = (preset or "").strip().lower()
    if key == "this_month":
        return month_start(today), month_end(today)
    if key == "next_3_months":
        return month_start(today), month_end(add_months(today, 2))
    if key == "this_year":
        return date(today.year, 1, 1), date(today.year, 12, 31)
    raise ValueError(f"unknown cash-flow range {preset!r}")


# -------------------------------
# Selection rules
# -------------------------------

def is_open(item: CostLineItem) -> bool:
    return item.status not in CLOSED_STATUSES


def projected_amount(item: CostLineItem, rates: ExchangeRateTable) -> Decimal:
    """BRL amount an open item contributes to its due month.

    A positive provision overrides the converted face value; a zero or missing
    provision does not.
    """
    if item.monthly_provision is not None and item.monthly_provision > 0:
        return item.monthly_provision
    else:
        return convert(item.value, item.currency, rates)


def flatten_costs(profiles: Iterable[ImportCostProfile]) -> List[ImportedCost]:
    return [
        ImportedCost(item=item, import_id=profile.import_id, import_number=profile.import_number)
        for profile in profiles
        for item in profile.costs
    ]


# -------------------------------
# Projection
# -------------------------------

def project_cash_flow(
    entries: Iterable[ImportedCost],
    start_date: DateLike,
    end_date: DateLike,
    rates: Optional[ExchangeRateTable],
) -> Optional[CashFlowProjection]:
    if rates is None:
        logger.debug("cash-flow projection skipped: no exchange rate table")
        return None

    start, end = as_date(start_date), as_date(end_date)
    if start > end:
        return CashFlowProjection()

    months = month_range(start, end)
    actual: Dict[date, Decimal] = {m: Decimal("0") for m in months}
    projected: Dict[date, Decimal] = {m: Decimal("0") for m in months}
    pending: List[ImportedCost] = []

    for entry in entries:
        item = entry.item
        if item.status is PaymentStatus.PAID:
            if item.payment_date is not None and start <= item.payment_date <= end:
                actual[month_start(item.payment_date)] += convert(item.value, item.currency, rates)
        elif is_open(item):
            if item.due_date is not None and start <= item.due_date <= end:
                projected[month_start(item.due_date)] += projected_amount(item, rates)
                pending.append(entry)

    pending.sort(key=lambda e: e.item.due_date)
    series = tuple(
        CashFlowBucket(month=m, projected_brl=projected[m], actual_brl=actual[m]) for m in months
    )
    return CashFlowProjection(series=series, pending_ledger=tuple(pending))
