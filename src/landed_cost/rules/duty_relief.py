"""EX-tariff duty relief applied to import duty (II) line items."""
from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, Optional

from ..models import CostBreakdown, CostCategory, CostLineItem, ExchangeRateTable, Numeric, to_decimal
from .aggregator import accumulate
from .currency import convert

HUNDRED = Decimal("100")


def relief_multiplier(ex_tariff_percent: Numeric) -> Decimal:
    """Share of the duty still owed, always within [0, 1]."""
    pct = min(max(to_decimal(ex_tariff_percent or 0), Decimal("0")), HUNDRED)
    return (HUNDRED - pct) / HUNDRED


def apply_duty_relief(
    items: Iterable[CostLineItem],
    ex_tariff_percent: Numeric,
    enabled: bool,
    rates: Optional[ExchangeRateTable],
) -> Optional[CostBreakdown]:
    """Aggregate ``items`` with the EX-tariff reduction applied per II item.

    Other categories pass through unchanged, so the result can be compared
    side by side with :func:`aggregate`.
    """
    if rates is None:
        return None

    multiplier = relief_multiplier(ex_tariff_percent) if enabled else Decimal("1")
    totals: Dict[CostCategory, Decimal] = {}
    for item in items:
        amount = convert(item.value, item.currency, rates)
        if item.category is CostCategory.II and enabled:
            amount *= multiplier
        accumulate(totals, item.category, amount)
    return CostBreakdown.from_totals(totals)
