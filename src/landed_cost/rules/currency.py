"""BRL conversion against a single exchange-rate snapshot.

Costs are always priced at the *sell* (``venda``) side of the table; the buy
side (``compra``) is carried for display only. CNY is quoted flat.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional, Union

from ..models import Currency, ExchangeRateTable, Numeric, to_decimal

logger = logging.getLogger(__name__)

__all__ = ["RatesUnavailable", "convert"]


class RatesUnavailable(LookupError):
    """Raised when a conversion is attempted without an exchange-rate table."""

    def __str__(self) -> str:  # pragma: no cover - trivial
        return "exchange rates unavailable; BRL conversion is not computable"


def convert(
    amount: Numeric,
    currency: Union[Currency, str],
    rates: Optional[ExchangeRateTable],
) -> Decimal:
    """Convert ``amount`` in ``currency`` to BRL.

    Unrecognised currency tags pass through unchanged (treated as BRL).
    """
    if rates is None:
        raise RatesUnavailable()

    value = to_decimal(amount)
    code = currency.value if isinstance(currency, Currency) else str(currency or "").strip().upper()

    if code == "USD":
        return value * rates.usd.venda
    if code == "EUR":
        return value * rates.eur.venda
    if code == "CNY":
        return value * rates.cny
    if code != "BRL":
        logger.debug("unknown currency tag %r; treating amount as BRL", currency)
    return value
