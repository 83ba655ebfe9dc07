"""Demurrage exposure from routing milestones.

The exposure is derived, never stored: each call recomputes it from the
arrival milestone, the free-time allowance and ``today``.
"""
from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional

from ..models import (
    ContainerDemurrage,
    ContainerStatus,
    DateLike,
    DemurrageExposure,
    ImportCostProfile,
    ImportStage,
    Numeric,
    TrackingEvent,
    as_date,
    to_decimal,
)
from ..settings import get_settings

logger = logging.getLogger(__name__)

# Containers still accruing free time or demurrage at the terminal.
AT_RISK_STATUSES = frozenset({ContainerStatus.AT_PORT, ContainerStatus.CUSTOMS_CLEARED})


def arrival_date(milestones: Iterable[TrackingEvent]) -> Optional[date]:
    for event in milestones:
        if event.stage is ImportStage.ARRIVAL_AT_PORT:
            return as_date(event.date)
    return None


def compute_demurrage_exposure(
    milestones: Iterable[TrackingEvent],
    free_time_days: int,
    today: DateLike,
    daily_rate_usd: Optional[Numeric] = None,
) -> Optional[DemurrageExposure]:
    """Free-time end, signed days remaining and, once overdue, an estimated cost.

    Returns ``None`` while there is no arrival-at-port milestone.
    """
    arrived = arrival_date(milestones)
    if arrived is None:
        return None

    if daily_rate_usd is None:
        daily_rate_usd = get_settings().demurrage_daily_rate_usd
    rate = to_decimal(daily_rate_usd)

    free_time_end = arrived + timedelta(days=max(0, int(free_time_days or 0)))
    days_remaining = (free_time_end - as_date(today)).days

    estimated: Optional[Decimal] = None
    if days_remaining < 0:
        estimated = Decimal(-days_remaining) * rate

    return DemurrageExposure(
        arrival_date=arrived,
        free_time_end_date=free_time_end,
        days_remaining=days_remaining,
        estimated_cost_usd=estimated,
    )


def exposure_for_import(
    profile: ImportCostProfile,
    today: DateLike,
    daily_rate_usd: Optional[Numeric] = None,
) -> Optional[DemurrageExposure]:
    return compute_demurrage_exposure(
        profile.tracking_history,
        profile.demurrage_free_time_days,
        today,
        daily_rate_usd,
    )


def demurrage_report(
    profiles: Iterable[ImportCostProfile],
    today: DateLike,
    daily_rate_usd: Optional[Numeric] = None,
) -> List[ContainerDemurrage]:
    """One row per container at port or cleared, most overdue first."""
    rows: List[ContainerDemurrage] = []
    for profile in profiles:
        exposure = exposure_for_import(profile, today, daily_rate_usd)
        if exposure is None:
            logger.debug("import %s has no arrival milestone; skipped", profile.import_id)
            continue
        for container in profile.containers:
            if container.current_status not in AT_RISK_STATUSES:
                continue
            rows.append(
                ContainerDemurrage(
                    import_id=profile.import_id,
                    import_number=profile.import_number,
                    container=container,
                    exposure=exposure,
                )
            )
    rows.sort(key=lambda row: row.exposure.days_remaining)
    return rows
