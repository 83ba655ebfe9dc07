# src/landed_cost/api/routes.py
"""
Landed-cost, cash-flow and demurrage endpoints.

Notes:
- Request bodies are read-only snapshots; nothing is persisted.
- Money is serialised as 2-dp strings; the engine itself never rounds.
- A missing rate table or arrival milestone answers 200 with
  {"available": false, "reason": ...} so the caller can show a "data not ready"
  state instead of a zero.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ..models import (
    Container,
    CostBreakdown,
    CostLineItem,
    DemurrageExposure,
    ExchangeRateTable,
    ImportCostProfile,
    ImportedCost,
    SimulationParameters,
    TrackingEvent,
)
from ..rules.cash_flow import cash_flow_window, flatten_costs, project_cash_flow
from ..rules.cost_engine import default_parameters, simulate
from ..rules.demurrage import demurrage_report, exposure_for_import
from ..rules.rates_loader import (
    MissingRateField,
    list_warehouse_schedules,
    load_warehouse_schedule,
    parse_exchange_rates,
)
from ..settings import get_settings

logger = logging.getLogger("landed-cost-api")

router = APIRouter(prefix="/api/v1", tags=["Landed Cost"])


def _money(x: Decimal) -> Decimal:
    return x.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _unavailable(reason: str) -> Dict[str, Any]:
    return {"available": False, "reason": reason}


# ============ Pydantic Models ============

class RateIn(BaseModel):
    compra: Decimal = Field(..., examples=[5.25])
    venda: Decimal = Field(..., examples=[5.26])


class ExchangeRatesIn(BaseModel):
    date: date
    time: Optional[str] = None
    usd: RateIn
    eur: RateIn
    cny: Decimal = Field(..., examples=[0.725])

    def to_domain(self) -> ExchangeRateTable:
        return parse_exchange_rates(self.model_dump())


class CostItemIn(BaseModel):
    id: str
    category: str = Field(..., examples=["International Freight"])
    description: str = ""
    value: Decimal = Field(..., ge=0, examples=[1000])
    currency: str = Field("BRL", examples=["USD"])
    status: str = Field("Pending Approval", examples=["Approved"])
    due_date: Optional[date] = None
    payment_date: Optional[date] = None
    monthly_provision: Optional[Decimal] = None

    def to_domain(self) -> CostLineItem:
        return CostLineItem(
            id=self.id,
            category=self.category,
            description=self.description,
            value=self.value,
            currency=self.currency,
            status=self.status,
            due_date=self.due_date,
            payment_date=self.payment_date,
            monthly_provision=self.monthly_provision,
        )


class TrackingEventIn(BaseModel):
    stage: str = Field(..., examples=["Arrival at Port/Airport"])
    date: str = Field(..., examples=["2024-01-01T08:30:00"])
    notes: Optional[str] = None


class ContainerIn(BaseModel):
    id: str
    container_number: str = Field(..., examples=["MSCU1234567"])
    current_status: str = Field("On Vessel", examples=["At Port"])


class ImportIn(BaseModel):
    import_id: str
    import_number: Optional[str] = None
    costs: List[CostItemIn] = Field(default_factory=list)
    ex_tariff_percent: Decimal = Decimal("0")
    tracking_history: List[TrackingEventIn] = Field(default_factory=list)
    demurrage_free_time_days: int = 0
    containers: List[ContainerIn] = Field(default_factory=list)

    def to_domain(self) -> ImportCostProfile:
        return ImportCostProfile(
            import_id=self.import_id,
            import_number=self.import_number,
            costs=tuple(c.to_domain() for c in self.costs),
            ex_tariff_percent=self.ex_tariff_percent,
            tracking_history=tuple(
                TrackingEvent(stage=e.stage, date=e.date, notes=e.notes) for e in self.tracking_history
            ),
            demurrage_free_time_days=self.demurrage_free_time_days,
            containers=tuple(
                Container(id=c.id, container_number=c.container_number, current_status=c.current_status)
                for c in self.containers
            ),
        )


class SimulationRequest(BaseModel):
    profile: ImportIn
    rates: Optional[ExchangeRatesIn] = None
    apply_ex_tariff: Optional[bool] = Field(
        None, description="Defaults to on when the import carries an EX-tariff percentage"
    )
    additional_fees_brl: Decimal = Decimal("0")
    warehouse_code: Optional[str] = Field(None, examples=["TECON"])
    storage_days: int = 15


class CashFlowRequest(BaseModel):
    imports: List[ImportIn] = Field(default_factory=list)
    rates: Optional[ExchangeRatesIn] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    range: Optional[str] = Field(None, examples=["next_3_months"])
    today: Optional[date] = None


class DemurrageRequest(BaseModel):
    profile: ImportIn
    today: Optional[date] = None
    daily_rate_usd: Optional[Decimal] = None


class DemurrageReportRequest(BaseModel):
    imports: List[ImportIn] = Field(default_factory=list)
    today: Optional[date] = None
    daily_rate_usd: Optional[Decimal] = None


# ============ Serialisers ============

def _breakdown_out(breakdown: CostBreakdown) -> Dict[str, Any]:
    return {
        "categories": {
            category.value: str(_money(amount))
            for category, amount in breakdown.per_category_totals_brl.items()
        },
        "total": str(_money(breakdown.total_brl)),
    }


def _exposure_out(exposure: DemurrageExposure) -> Dict[str, Any]:
    return {
        "available": True,
        "arrival_date": exposure.arrival_date.isoformat(),
        "free_time_end_date": exposure.free_time_end_date.isoformat(),
        "days_remaining": exposure.days_remaining,
        "in_demurrage": exposure.in_demurrage,
        "estimated_cost_usd": (
            str(_money(exposure.estimated_cost_usd)) if exposure.estimated_cost_usd is not None else None
        ),
    }


def _ledger_out(entry: ImportedCost) -> Dict[str, Any]:
    item = entry.item
    return {
        "import_id": entry.import_id,
        "import_number": entry.import_number,
        "id": item.id,
        "category": item.category.value,
        "description": item.description,
        "value": str(item.value),
        "currency": item.currency_code,
        "status": item.status.value,
        "due_date": item.due_date.isoformat() if item.due_date else None,
        "monthly_provision": str(item.monthly_provision) if item.monthly_provision is not None else None,
    }


def _rates(payload: Optional[ExchangeRatesIn]) -> Optional[ExchangeRateTable]:
    return payload.to_domain() if payload is not None else None


def _profile(payload: ImportIn) -> ImportCostProfile:
    try:
        return payload.to_domain()
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


# ============ Endpoints ============

@router.get("/warehouse-schedules", tags=["Warehouse"])
def get_warehouse_schedules(on: Optional[date] = None) -> List[Dict[str, Any]]:
    try:
        return [
            {
                "code": s.code,
                "name": s.name,
                "percent_of_cif": str(s.percent_of_cif),
                "minimum_fee_brl": str(_money(s.minimum_fee_brl)),
                "effective": s.effective.isoformat() if s.effective else None,
            }
            for s in list_warehouse_schedules(on)
        ]
    except Exception:
        logger.exception("Failed to list warehouse schedules")
        raise HTTPException(status_code=500, detail="warehouse schedule catalog unavailable")


@router.post("/landed-cost/simulate")
def simulate_landed_cost(req: SimulationRequest) -> Dict[str, Any]:
    profile = _profile(req.profile)
    rates = _rates(req.rates)
    if rates is None:
        return _unavailable("exchange_rates_unavailable")

    try:
        schedule = None
        if req.warehouse_code:
            try:
                schedule = load_warehouse_schedule(req.warehouse_code, rates.date)
            except MissingRateField:
                raise
            except (KeyError, ValueError):
                raise HTTPException(status_code=404, detail=f"unknown warehouse schedule {req.warehouse_code}")

        defaults = default_parameters(profile)
        params = SimulationParameters(
            apply_ex_tariff=defaults.apply_ex_tariff if req.apply_ex_tariff is None else req.apply_ex_tariff,
            additional_fees_brl=req.additional_fees_brl,
            warehouse_schedule=schedule,
            storage_days=req.storage_days,
        )
        result = simulate(profile, rates, params)

        return {
            "available": True,
            "import_id": profile.import_id,
            "rates_date": rates.date.isoformat(),
            "parameters": {
                "apply_ex_tariff": params.apply_ex_tariff,
                "ex_tariff_percent": str(profile.ex_tariff_percent),
                "additional_fees_brl": str(_money(params.additional_fees_brl)),
                "warehouse_code": schedule.code if schedule else None,
                "storage_days": params.storage_days,
            },
            "original": _breakdown_out(result.original),
            "simulated": _breakdown_out(result.simulated),
            "difference": str(_money(result.difference)),
            "percent_change": str(_money(result.percent_change)),
        }
    except HTTPException:
        raise
    except Exception:
        logger.exception("Landed-cost simulation failed for import %s", profile.import_id)
        raise HTTPException(status_code=500, detail="landed cost simulation failed")


@router.post("/cash-flow")
def cash_flow(req: CashFlowRequest) -> Dict[str, Any]:
    rates = _rates(req.rates)
    if rates is None:
        return _unavailable("exchange_rates_unavailable")

    if (req.start_date is None) != (req.end_date is None):
        raise HTTPException(status_code=422, detail="start_date and end_date must be given together")

    if req.start_date and req.end_date:
        start, end = req.start_date, req.end_date
    else:
        preset = req.range or get_settings().default_range
        try:
            start, end = cash_flow_window(preset, req.today or date.today())
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc))

    profiles = [_profile(i) for i in req.imports]
    try:
        projection = project_cash_flow(flatten_costs(profiles), start, end, rates)
        return {
            "available": True,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "series": [
                {
                    "month": b.key,
                    "label": b.label,
                    "projected": str(_money(b.projected_brl)),
                    "actual": str(_money(b.actual_brl)),
                }
                for b in projection.series
            ],
            "pending": [_ledger_out(e) for e in projection.pending_ledger],
        }
    except Exception:
        logger.exception("Cash-flow projection failed")
        raise HTTPException(status_code=500, detail="cash flow projection failed")


@router.post("/demurrage", tags=["Demurrage"])
def demurrage(req: DemurrageRequest) -> Dict[str, Any]:
    profile = _profile(req.profile)
    exposure = exposure_for_import(profile, req.today or date.today(), req.daily_rate_usd)
    if exposure is None:
        return _unavailable("awaiting_port_arrival")
    return {"import_id": profile.import_id, **_exposure_out(exposure)}


@router.post("/demurrage/report", tags=["Demurrage"])
def demurrage_containers(req: DemurrageReportRequest) -> List[Dict[str, Any]]:
    profiles = [_profile(i) for i in req.imports]
    rows = demurrage_report(profiles, req.today or date.today(), req.daily_rate_usd)
    return [
        {
            "import_id": row.import_id,
            "import_number": row.import_number,
            "container_id": row.container.id,
            "container_number": row.container.container_number,
            "container_status": row.container.current_status.value,
            **_exposure_out(row.exposure),
        }
        for row in rows
    ]
