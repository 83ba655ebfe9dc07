from datetime import date
from decimal import Decimal

import pytest

from landed_cost.models import (
    CostCategory,
    CostLineItem,
    CurrencyRate,
    ExchangeRateTable,
    ImportCostProfile,
    ImportedCost,
    PaymentStatus,
)
from landed_cost.rules.cash_flow import (
    cash_flow_window,
    flatten_costs,
    project_cash_flow,
    projected_amount,
)

RATES = ExchangeRateTable(
    date=date(2024, 3, 1),
    usd=CurrencyRate(compra="4.90", venda="5.0"),
    eur=CurrencyRate(compra="5.80", venda="6.0"),
    cny="0.70",
)


def _entry(item_id: str, **kwargs) -> ImportedCost:
    kwargs.setdefault("category", CostCategory.OTHER)
    kwargs.setdefault("value", "1000")
    kwargs.setdefault("currency", "USD")
    return ImportedCost(item=CostLineItem(id=item_id, **kwargs), import_id="imp-1")


def test_paid_item_lands_in_actual_series() -> None:
    paid = _entry("p", status=PaymentStatus.PAID, payment_date="2024-03-10")

    projection = project_cash_flow([paid], date(2024, 3, 1), date(2024, 3, 31), RATES)

    assert len(projection.series) == 1
    bucket = projection.series[0]
    assert bucket.key == "2024-03"
    assert bucket.actual_brl == Decimal("5000")
    assert bucket.projected_brl == Decimal("0")
    assert projection.pending_ledger == ()


def test_provision_overrides_converted_value() -> None:
    due = _entry("d", status=PaymentStatus.APPROVED, due_date="2024-03-20", monthly_provision="4500")

    projection = project_cash_flow([due], date(2024, 3, 1), date(2024, 3, 31), RATES)

    assert projection.series[0].projected_brl == Decimal("4500")
    assert projection.series[0].actual_brl == Decimal("0")


@pytest.mark.parametrize(
    "provision, expected",
    [("4500", Decimal("4500")), ("0", Decimal("5000")), (None, Decimal("5000")), ("0.01", Decimal("0.01"))],
)
def test_projected_amount_guard(provision, expected) -> None:
    item = CostLineItem(
        id="x", category=CostCategory.OTHER, value="1000", currency="USD", monthly_provision=provision
    )
    assert projected_amount(item, RATES) == expected


def test_every_month_in_window_is_seeded() -> None:
    due = _entry("d", due_date="2024-02-14", currency="BRL", value="700")

    projection = project_cash_flow([due], date(2024, 1, 1), date(2024, 4, 30), RATES)

    assert [b.key for b in projection.series] == ["2024-01", "2024-02", "2024-03", "2024-04"]
    assert [b.projected_brl for b in projection.series] == [
        Decimal("0"),
        Decimal("700"),
        Decimal("0"),
        Decimal("0"),
    ]
    assert all(b.actual_brl == 0 for b in projection.series)


def test_window_spans_year_boundary() -> None:
    projection = project_cash_flow([], date(2024, 11, 5), date(2025, 1, 3), RATES)
    assert [b.key for b in projection.series] == ["2024-11", "2024-12", "2025-01"]


def test_closed_and_undated_items_are_skipped() -> None:
    entries = [
        _entry("cancelled", status=PaymentStatus.CANCELLED, due_date="2024-03-05"),
        _entry("paid-no-date", status=PaymentStatus.PAID, due_date="2024-03-05"),
        _entry("open-no-due", status=PaymentStatus.APPROVED),
        _entry("outside", status=PaymentStatus.APPROVED, due_date="2024-05-01"),
        _entry("paid-outside", status=PaymentStatus.PAID, payment_date="2024-02-29"),
    ]

    projection = project_cash_flow(entries, date(2024, 3, 1), date(2024, 3, 31), RATES)

    assert projection.series[0].projected_brl == Decimal("0")
    assert projection.series[0].actual_brl == Decimal("0")
    assert projection.pending_ledger == ()


def test_window_bounds_are_inclusive_and_day_precise() -> None:
    entries = [
        _entry("before-start", due_date="2024-03-10", currency="BRL", value="1"),
        _entry("on-start", due_date="2024-03-15", currency="BRL", value="10"),
        _entry("on-end", due_date="2024-04-15", currency="BRL", value="100"),
        _entry("after-end", due_date="2024-04-16", currency="BRL", value="1000"),
    ]

    projection = project_cash_flow(entries, date(2024, 3, 15), date(2024, 4, 15), RATES)

    assert [b.projected_brl for b in projection.series] == [Decimal("10"), Decimal("100")]
    assert [e.item.id for e in projection.pending_ledger] == ["on-start", "on-end"]


def test_pending_ledger_sorted_by_due_date_with_original_values() -> None:
    entries = [
        _entry("late", status=PaymentStatus.DISPUTED, due_date="2024-03-28", currency="EUR", value="10"),
        _entry("early", status=PaymentStatus.PENDING_APPROVAL, due_date="2024-03-02", monthly_provision="4500"),
        _entry("paid", status=PaymentStatus.PAID, due_date="2024-03-01", payment_date="2024-03-03"),
        _entry("mid", status=PaymentStatus.REFUNDED, due_date="2024-03-15", currency="CNY", value="100"),
    ]

    projection = project_cash_flow(entries, date(2024, 3, 1), date(2024, 3, 31), RATES)

    ledger = projection.pending_ledger
    assert [e.item.id for e in ledger] == ["early", "mid", "late"]
    assert ledger[0].item.value == Decimal("1000")
    assert ledger[0].item.currency_code == "USD"
    assert ledger[0].item.monthly_provision == Decimal("4500")
    assert ledger[0].import_id == "imp-1"
    # 4500 + 100 × 0.70 + 10 × 6.0
    assert projection.series[0].projected_brl == Decimal("4630")
    assert projection.series[0].actual_brl == Decimal("5000")


def test_projection_without_rates_is_unavailable() -> None:
    assert project_cash_flow([_entry("x", due_date="2024-03-01")], date(2024, 3, 1), date(2024, 3, 31), None) is None


def test_inverted_window_is_empty() -> None:
    projection = project_cash_flow([_entry("x", due_date="2024-03-01")], date(2024, 4, 1), date(2024, 3, 1), RATES)
    assert projection.series == ()
    assert projection.pending_ledger == ()


@pytest.mark.parametrize(
    "preset, expected",
    [
        ("this_month", (date(2024, 11, 1), date(2024, 11, 30))),
        ("next_3_months", (date(2024, 11, 1), date(2025, 1, 31))),
        ("this_year", (date(2024, 1, 1), date(2024, 12, 31))),
    ],
)
def test_cash_flow_window_presets(preset, expected) -> None:
    assert cash_flow_window(preset, date(2024, 11, 15)) == expected


def test_cash_flow_window_rejects_unknown_preset() -> None:
    with pytest.raises(ValueError):
        cash_flow_window("last_decade", date(2024, 11, 15))


def test_flatten_costs_tags_import() -> None:
    profiles = [
        ImportCostProfile(
            import_id="a",
            import_number="IMP-A",
            costs=(CostLineItem(id="1", category=CostCategory.FOB, value="1"),),
        ),
        ImportCostProfile(
            import_id="b",
            costs=(
                CostLineItem(id="2", category=CostCategory.FOB, value="1"),
                CostLineItem(id="3", category=CostCategory.ICMS, value="1"),
            ),
        ),
    ]

    entries = flatten_costs(profiles)

    assert [(e.import_id, e.item.id) for e in entries] == [("a", "1"), ("b", "2"), ("b", "3")]
    assert entries[0].import_number == "IMP-A"
