from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Type, TypeVar, Union

DateLike = Union[date, datetime, str]
Numeric = Union[Decimal, int, float, str]

E = TypeVar("E", bound=Enum)


class CostCategory(Enum):
    FOB = "FOB"
    INTERNATIONAL_FREIGHT = "International Freight"
    INSURANCE = "Insurance"
    II = "II"
    IPI = "IPI"
    PIS_COFINS = "PIS/COFINS"
    ICMS = "ICMS"
    BROKER_FEES = "Broker Fees"
    STEVEDORING = "Stevedoring"
    WAREHOUSING = "Warehousing"
    PORT_FEES = "Port Fees"
    DOMESTIC_TRANSPORT = "Domestic Transport"
    BONDED_WAREHOUSE = "Bonded Warehouse"
    DEMURRAGE = "Demurrage"
    OTHER = "Other"
    # only ever produced by the simulation path
    SIMULATED_WAREHOUSE = "Simulated Warehouse"
    SIMULATED_ADDITIONAL_FEES = "Simulated Additional Fees"


CIF_CATEGORIES = (CostCategory.FOB, CostCategory.INTERNATIONAL_FREIGHT, CostCategory.INSURANCE)


class Currency(Enum):
    USD = "USD"
    BRL = "BRL"
    EUR = "EUR"
    CNY = "CNY"


class PaymentStatus(Enum):
    PENDING_APPROVAL = "Pending Approval"
    APPROVED = "Approved"
    PROCESSED = "Processed"
    RECONCILED = "Reconciled"
    PAID = "Paid"
    DISPUTED = "Disputed"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"


class ImportStage(Enum):
    ORDER_PLACED = "Order Placed"
    SHIPMENT_CONFIRMED = "Shipment Confirmed"
    CARGO_PRESENCE = "Cargo Presence"
    ARRIVAL_AT_PORT = "Arrival at Port/Airport"
    CUSTOMS_CLEARANCE = "Customs Clearance"
    DELIVERED = "Delivered"


class ContainerStatus(Enum):
    ON_VESSEL = "On Vessel"
    AT_PORT = "At Port"
    CUSTOMS_CLEARED = "Cleared Customs"
    IN_TRANSIT_TO_FACTORY = "In Transit to Factory"
    DELIVERED_TO_FACTORY = "Delivered to Factory"
    SENT_TO_DEPOT = "Sent to Depot"


# -------------------------------
# Coercion helpers
# -------------------------------

def to_decimal(value: Numeric) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def as_date(value: DateLike) -> date:
    """Truncate a date, datetime or ISO string to a calendar date.

    Aware datetimes keep their own local calendar day; no timezone shifting.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()


def optional_date(value: Optional[DateLike]) -> Optional[date]:
    if value is None or value == "":
        return None
    return as_date(value)


def coerce_enum(enum_cls: Type[E], value: Any) -> E:
    """Accept an enum member, its value ("Port Fees") or its name ("PORT_FEES")."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        pass
    key = str(value).strip().upper().replace(" ", "_").replace("/", "_")
    try:
        return enum_cls[key]
    except KeyError:
        raise ValueError(f"{value!r} is not a valid {enum_cls.__name__}") from None


def coerce_currency(value: Union[Currency, str]) -> Union[Currency, str]:
    """Known tags become Currency members; anything else is kept as the raw tag."""
    if isinstance(value, Currency):
        return value
    tag = str(value or "").strip().upper()
    try:
        return Currency(tag)
    except ValueError:
        return tag


# -------------------------------
# Inputs
# -------------------------------

@dataclass(frozen=True)
class CostLineItem:
    id: str
    category: CostCategory
    value: Decimal
    currency: Union[Currency, str] = Currency.BRL
    status: PaymentStatus = PaymentStatus.PENDING_APPROVAL
    description: str = ""
    due_date: Optional[date] = None
    payment_date: Optional[date] = None
    monthly_provision: Optional[Decimal] = None  # BRL

    def __post_init__(self) -> None:
        value = to_decimal(self.value)
        if value < 0:
            raise ValueError(f"cost item {self.id}: value must be >= 0, got {value}")
        object.__setattr__(self, "value", value)
        object.__setattr__(self, "category", coerce_enum(CostCategory, self.category))
        object.__setattr__(self, "currency", coerce_currency(self.currency))
        object.__setattr__(self, "status", coerce_enum(PaymentStatus, self.status))
        object.__setattr__(self, "due_date", optional_date(self.due_date))
        object.__setattr__(self, "payment_date", optional_date(self.payment_date))
        if self.monthly_provision is not None:
            object.__setattr__(self, "monthly_provision", to_decimal(self.monthly_provision))

    @property
    def currency_code(self) -> str:
        return self.currency.value if isinstance(self.currency, Currency) else self.currency


@dataclass(frozen=True)
class CurrencyRate:
    compra: Decimal
    venda: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "compra", to_decimal(self.compra))
        object.__setattr__(self, "venda", to_decimal(self.venda))


@dataclass(frozen=True)
class ExchangeRateTable:
    """BRL rates for a single valuation instant. Only ``venda`` prices costs."""
    date: date
    usd: CurrencyRate
    eur: CurrencyRate
    cny: Decimal
    time: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", as_date(self.date))
        object.__setattr__(self, "cny", to_decimal(self.cny))


@dataclass(frozen=True)
class TrackingEvent:
    stage: ImportStage
    date: date
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "stage", coerce_enum(ImportStage, self.stage))
        object.__setattr__(self, "date", as_date(self.date))


@dataclass(frozen=True)
class Container:
    id: str
    container_number: str
    current_status: ContainerStatus = ContainerStatus.ON_VESSEL

    def __post_init__(self) -> None:
        object.__setattr__(self, "current_status", coerce_enum(ContainerStatus, self.current_status))


@dataclass(frozen=True)
class ImportCostProfile:
    """The slice of an import record the engine reads."""
    import_id: str
    costs: Tuple[CostLineItem, ...] = ()
    import_number: Optional[str] = None
    ex_tariff_percent: Decimal = Decimal("0")
    tracking_history: Tuple[TrackingEvent, ...] = ()
    demurrage_free_time_days: int = 0
    containers: Tuple[Container, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "costs", tuple(self.costs))
        object.__setattr__(self, "tracking_history", tuple(self.tracking_history))
        object.__setattr__(self, "containers", tuple(self.containers))
        object.__setattr__(self, "ex_tariff_percent", to_decimal(self.ex_tariff_percent or 0))
        object.__setattr__(self, "demurrage_free_time_days", int(self.demurrage_free_time_days or 0))


@dataclass(frozen=True)
class WarehouseFeeSchedule:
    code: str
    name: str
    percent_of_cif: Decimal
    minimum_fee_brl: Decimal
    effective: Optional[date] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "percent_of_cif", to_decimal(self.percent_of_cif))
        object.__setattr__(self, "minimum_fee_brl", to_decimal(self.minimum_fee_brl))


@dataclass(frozen=True)
class SimulationParameters:
    apply_ex_tariff: bool = False
    additional_fees_brl: Decimal = Decimal("0")
    warehouse_schedule: Optional[WarehouseFeeSchedule] = None
    storage_days: int = 15

    def __post_init__(self) -> None:
        object.__setattr__(self, "additional_fees_brl", to_decimal(self.additional_fees_brl or 0))
        object.__setattr__(self, "storage_days", int(self.storage_days or 0))


# -------------------------------
# Outputs
# -------------------------------

@dataclass(frozen=True)
class CostBreakdown:
    # Present categories only; absence and zero mean different things.
    per_category_totals_brl: Dict[CostCategory, Decimal] = field(default_factory=dict)
    total_brl: Decimal = Decimal("0")

    def get(self, category: CostCategory) -> Decimal:
        return self.per_category_totals_brl.get(category, Decimal("0"))

    @classmethod
    def from_totals(cls, totals: Dict[CostCategory, Decimal]) -> "CostBreakdown":
        return cls(per_category_totals_brl=dict(totals), total_brl=sum(totals.values(), Decimal("0")))


@dataclass(frozen=True)
class SimulationResult:
    original: CostBreakdown
    simulated: CostBreakdown

    @property
    def difference(self) -> Decimal:
        return self.simulated.total_brl - self.original.total_brl

    @property
    def percent_change(self) -> Decimal:
        if self.original.total_brl <= 0:
            return Decimal("0")
        return self.difference / self.original.total_brl * Decimal("100")


@dataclass(frozen=True)
class ImportedCost:
    item: CostLineItem
    import_id: str
    import_number: Optional[str] = None


@dataclass(frozen=True)
class CashFlowBucket:
    month: date  # first day of the month
    projected_brl: Decimal = Decimal("0")
    actual_brl: Decimal = Decimal("0")

    @property
    def key(self) -> str:
        return self.month.strftime("%Y-%m")

    @property
    def label(self) -> str:
        return self.month.strftime("%b %Y")


@dataclass(frozen=True)
class CashFlowProjection:
    series: Tuple[CashFlowBucket, ...] = ()
    pending_ledger: Tuple[ImportedCost, ...] = ()


@dataclass(frozen=True)
class DemurrageExposure:
    arrival_date: date
    free_time_end_date: date
    days_remaining: int
    estimated_cost_usd: Optional[Decimal] = None

    @property
    def in_demurrage(self) -> bool:
        return self.days_remaining < 0


@dataclass(frozen=True)
class ContainerDemurrage:
    import_id: str
    container: Container
    exposure: DemurrageExposure
    import_number: Optional[str] = None
