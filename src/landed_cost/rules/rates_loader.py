"""Bonded-warehouse schedule registry and exchange-rate snapshot parsing."""
from __future__ import annotations

import json
import logging
import os
from datetime import date, datetime
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping

from ..models import CurrencyRate, ExchangeRateTable, WarehouseFeeSchedule
from ..settings import get_settings

__all__ = [
    "MissingRateField",
    "list_warehouse_schedules",
    "load_warehouse_schedule",
    "parse_exchange_rates",
]

logger = logging.getLogger(__name__)


class MissingRateField(KeyError):
    """Raised when an expected field is missing from a rate or schedule record."""

    def __init__(self, field_path: str):
        super().__init__(field_path)
        self.field_path = field_path

    def __str__(self) -> str:  # pragma: no cover - inherited KeyError repr is noisy
        return f"missing required rate field: {self.field_path}"


_DEFAULT_REGISTRY_PATH = Path(__file__).with_name("warehouse_schedules.json")

_REQUIRED_SCHEDULE_KEYS = {"effective", "name", "percent_of_cif", "minimum_fee_brl"}
_REQUIRED_CURRENCY_KEYS = {"compra", "venda"}


def _resolve_registry_path(path: str | os.PathLike[str] | None) -> Path:
    if path is not None:
        return Path(path)
    override = get_settings().warehouse_registry
    if override is not None:
        return override
    return _DEFAULT_REGISTRY_PATH


@lru_cache(maxsize=None)
def _load_registry(path_str: str) -> Dict[str, Any]:
    path = Path(path_str)
    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, Mapping):
        raise ValueError("warehouse registry must be a mapping of schedule code to versions")
    logger.info("Loaded %d warehouse schedules from %s", len(data), path)
    return {str(code).upper(): versions for code, versions in data.items()}


def _to_decimal(value: Any) -> Decimal:
    return Decimal(str(value))


def _to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value)[:10], "%Y-%m-%d").date()


def _normalise_schedule(code: str, record: Mapping[str, Any]) -> WarehouseFeeSchedule:
    for key in sorted(_REQUIRED_SCHEDULE_KEYS):
        if key not in record:
            raise MissingRateField(f"{code}.{key}")
    return WarehouseFeeSchedule(
        code=code,
        name=str(record["name"]),
        percent_of_cif=_to_decimal(record["percent_of_cif"]),
        minimum_fee_brl=_to_decimal(record["minimum_fee_brl"]),
        effective=_to_date(record["effective"]),
    )


def _select_version(code: str, versions: Any, on: date) -> WarehouseFeeSchedule | None:
    if not isinstance(versions, list):
        raise ValueError(f"invalid registry entry for schedule {code}")

    selected: WarehouseFeeSchedule | None = None
    for entry in versions:
        if not isinstance(entry, Mapping):
            raise ValueError(f"invalid registry entry for schedule {code}")
        version = _normalise_schedule(code, entry)
        if version.effective <= on and (selected is None or version.effective > selected.effective):
            selected = version
    return selected


def load_warehouse_schedule(
    code: str,
    on: date | None = None,
    *,
    registry_path: str | os.PathLike[str] | None = None,
) -> WarehouseFeeSchedule:
    """Return the most recent schedule version for ``code`` effective on ``on``."""

    if not code:
        raise ValueError("warehouse schedule code is required")

    key = code.strip().upper()
    on = on or date.today()
    registry = _load_registry(str(_resolve_registry_path(registry_path)))

    versions = registry.get(key)
    if not versions:
        raise KeyError(f"no warehouse schedule configured for {key}")

    selected = _select_version(key, versions, on)
    if selected is None:
        raise ValueError(f"no warehouse schedule effective on {on.isoformat()} for {key}")
    return selected


def list_warehouse_schedules(
    on: date | None = None,
    *,
    registry_path: str | os.PathLike[str] | None = None,
) -> List[WarehouseFeeSchedule]:
    """Every schedule with a version effective on ``on``, ordered by code."""

    on = on or date.today()
    registry = _load_registry(str(_resolve_registry_path(registry_path)))
    catalog: List[WarehouseFeeSchedule] = []
    for key in sorted(registry):
        selected = _select_version(key, registry[key], on)
        if selected is not None:
            catalog.append(selected)
    return catalog


def _currency_rate(record: Mapping[str, Any], name: str) -> CurrencyRate:
    block = record.get(name)
    if not isinstance(block, Mapping):
        raise MissingRateField(name)
    for key in sorted(_REQUIRED_CURRENCY_KEYS):
        if key not in block:
            raise MissingRateField(f"{name}.{key}")
    return CurrencyRate(compra=_to_decimal(block["compra"]), venda=_to_decimal(block["venda"]))


def parse_exchange_rates(record: Mapping[str, Any]) -> ExchangeRateTable:
    """Build an :class:`ExchangeRateTable` from the rate-source payload shape.

    Expected keys: ``date``, ``usd`` and ``eur`` (each with ``compra``/``venda``),
    ``cny`` (flat) and optionally ``time``.
    """
    for key in ("date", "cny"):
        if key not in record:
            raise MissingRateField(key)
    return ExchangeRateTable(
        date=_to_date(record["date"]),
        usd=_currency_rate(record, "usd"),
        eur=_currency_rate(record, "eur"),
        cny=_to_decimal(record["cny"]),
        time=record.get("time"),
    )
