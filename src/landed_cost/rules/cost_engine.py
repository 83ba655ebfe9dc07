# src/landed_cost/rules/cost_engine.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Optional

from ..models import (
    CostBreakdown,
    CostCategory,
    ExchangeRateTable,
    ImportCostProfile,
    SimulationParameters,
    SimulationResult,
)
from .aggregator import aggregate
from .duty_relief import apply_duty_relief
from .warehouse import simulate_warehouse_fee

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_DAYS = 15


def default_parameters(profile: ImportCostProfile) -> SimulationParameters:
    """Fresh simulation controls for an import: EX-tariff on iff it has one."""
    return SimulationParameters(
        apply_ex_tariff=profile.ex_tariff_percent > 0,
        additional_fees_brl=Decimal("0"),
        warehouse_schedule=None,
        storage_days=DEFAULT_STORAGE_DAYS,
    )


def calculate_landed_cost(
    profile: ImportCostProfile,
    rates: Optional[ExchangeRateTable],
    params: Optional[SimulationParameters] = None,
) -> Optional[CostBreakdown]:
    """Landed cost in BRL; the real figures when ``params`` is None.

    With parameters, duty relief is applied per II item, then the simulated
    warehouse fee and any additional fees are added as
    their own categories.
    """
    if params is None:
        return aggregate(profile.costs, rates)

    relieved = apply_duty_relief(
        profile.costs,
        profile.ex_tariff_percent,
        params.apply_ex_tariff,
        rates,
    )
    if relieved is None:
        return None

    totals: Dict[CostCategory, Decimal] = dict(relieved.per_category_totals_brl)

    if params.warehouse_schedule is not None:
        fee = simulate_warehouse_fee(relieved, params.warehouse_schedule, params.storage_days)
        totals[CostCategory.SIMULATED_WAREHOUSE] = fee
        logger.debug(
            "import %s: simulated %s warehousing for %d days = %s",
            profile.import_id,
            params.warehouse_schedule.code,
            params.storage_days,
            fee,
        )

    if params.additional_fees_brl > 0:
        totals[CostCategory.SIMULATED_ADDITIONAL_FEES] = params.additional_fees_brl

    return CostBreakdown.from_totals(totals)


def simulate(
    profile: ImportCostProfile,
    rates: Optional[ExchangeRateTable],
    params: Optional[SimulationParameters] = None,
) -> Optional[SimulationResult]:
    """Original vs simulated landed cost for one import."""
    if rates is None:
        return None
    params = params or default_parameters(profile)
    original = calculate_landed_cost(profile, rates)
    simulated = calculate_landed_cost(profile, rates, params)
    return SimulationResult(original=original, simulated=simulated)
