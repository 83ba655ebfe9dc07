"""Category roll-up of cost line items in BRL."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Iterable, Optional

from ..models import CostBreakdown, CostCategory, CostLineItem, ExchangeRateTable
from .currency import convert

logger = logging.getLogger(__name__)


def accumulate(totals: Dict[CostCategory, Decimal], category: CostCategory, amount: Decimal) -> None:
    totals[category] = totals.get(category, Decimal("0")) + amount


def aggregate(
    items: Iterable[CostLineItem],
    rates: Optional[ExchangeRateTable],
) -> Optional[CostBreakdown]:
    """Sum converted item values per category.

    Returns ``None`` when no rate table is available; callers must show a
    "rates unavailable" state rather than a zeroed breakdown. Categories that
    have no items never appear in the result.
    """
    if rates is None:
        logger.debug("aggregate skipped: no exchange rate table")
        return None

    totals: Dict[CostCategory, Decimal] = {}
    for item in items:
        accumulate(totals, item.category, convert(item.value, item.currency, rates))
    return CostBreakdown.from_totals(totals)


def monthly_cost_breakdown(
    items: Iterable[CostLineItem],
    year: int,
    month: int,
    rates: Optional[ExchangeRateTable],
) -> Optional[CostBreakdown]:
    """Breakdown of the items dated in one calendar month.

    An item is dated by its payment date when set, otherwise by its due date.
    """
    in_month = []
    for item in items:
        on = item.payment_date or item.due_date
        if on is not None and on.year == year and on.month == month:
            in_month.append(item)
    return aggregate(in_month, rates)
