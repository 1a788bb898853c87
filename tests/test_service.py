import threading
from datetime import date

import pandas as pd
import pytest

import smb_cashflow.db as db
from smb_cashflow.cache import RecordCache
from smb_cashflow.cashflow_service import CashFlowService
from smb_cashflow.config import AppConfig, CacheOptions, CashFlowOptions
from smb_cashflow.db import DatabaseConfig, ManualEntryUpdate
from smb_cashflow.errors import RequestSupersededError, SourceFetchError
from smb_cashflow.periods import period_month
from smb_cashflow.sources import fetch_snapshot, plan_fetch

JANUARY = period_month(2024, 1)
FEBRUARY = period_month(2024, 2)


def make_config(tmp_path, **cashflow) -> AppConfig:
    return AppConfig(
        database=DatabaseConfig(engine="sqlite", path=tmp_path / "cash.sqlite"),
        cashflow=CashFlowOptions(**cashflow),
        cache=CacheOptions(enabled=True, ttl_seconds=300),
        display_mode="table",
        amount_decimals=2,
        log_level="WARNING",
    )


def seed(cfg: DatabaseConfig) -> None:
    """One sale paid in February, one purchase in January."""
    db.import_invoices(
        pd.DataFrame(
            [
                {
                    "id": 1,
                    "folio": "100",
                    "counterparty_name": "ACME",
                    "document_type_code": "33",
                    "document_date": date(2024, 1, 20),
                    "total_amount": 1000.0,
                }
            ]
        ),
        cfg,
        "SALE",
    )
    db.import_invoices(
        pd.DataFrame(
            [
                {
                    "id": 7,
                    "folio": "900",
                    "counterparty_name": "Tools",
                    "document_type_code": "33",
                    "document_date": date(2024, 1, 10),
                    "total_amount": 300.0,
                }
            ]
        ),
        cfg,
        "PURCHASE",
    )
    db.import_document_links(
        pd.DataFrame(
            [
                {
                    "id": 10,
                    "linked_sale_invoice_id": 1,
                    "linked_purchase_invoice_id": None,
                    "emission_date": date(2024, 1, 20),
                }
            ]
        ),
        cfg,
    )
    db.import_payments(
        pd.DataFrame(
            [
                {
                    "id": 1,
                    "external_document_link_id": 10,
                    "payment_date": date(2024, 2, 5),
                    "payment_amount": 1000.0,
                }
            ]
        ),
        cfg,
    )


def test_filtered_payments_keep_invoice_in_its_document_month(tmp_path):
    config = make_config(tmp_path)
    seed(config.database)
    service = CashFlowService(config)

    result = service.compute_cash_flow(JANUARY)

    labels = [e.event.document_label for e in result.entries]
    assert labels == ["900", "100"]
    assert result.final_balance == 700.0


def test_unfiltered_payments_move_invoice_to_payment_month(tmp_path):
    config = make_config(tmp_path, filter_payments_to_window=False)
    seed(config.database)
    service = CashFlowService(config)

    january = service.compute_cash_flow(JANUARY)
    february = service.compute_cash_flow(FEBRUARY, "full_history")

    assert [e.event.document_label for e in january.entries] == ["900"]
    assert february.baseline_balance == -300.0
    assert february.final_balance == 700.0
    assert february.entries[0].event.is_fully_paid is True


def test_full_history_baseline_uses_all_payments(tmp_path):
    config = make_config(tmp_path)
    seed(config.database)
    service = CashFlowService(config)

    march = service.compute_cash_flow(period_month(2024, 3), "full_history")

    assert march.entries == ()
    assert march.baseline_balance == 700.0


def test_prepaid_invoice_counts_once_in_full_history(tmp_path):
    config = make_config(tmp_path)
    cfg = config.database
    db.import_invoices(
        pd.DataFrame(
            [
                {
                    "id": 3,
                    "folio": "300",
                    "counterparty_name": "ACME",
                    "document_type_code": "33",
                    "document_date": date(2024, 2, 10),
                    "total_amount": 1000.0,
                }
            ]
        ),
        cfg,
        "SALE",
    )
    db.import_document_links(
        pd.DataFrame(
            [
                {
                    "id": 30,
                    "linked_sale_invoice_id": 3,
                    "linked_purchase_invoice_id": None,
                    "emission_date": date(2024, 2, 10),
                }
            ]
        ),
        cfg,
    )
    db.import_payments(
        pd.DataFrame(
            [
                {
                    "id": 3,
                    "external_document_link_id": 30,
                    "payment_date": date(2024, 1, 20),
                    "payment_amount": 1000.0,
                }
            ]
        ),
        cfg,
    )
    service = CashFlowService(config)

    february = service.compute_cash_flow(FEBRUARY, "full_history")

    assert [e.event.document_label for e in february.entries] == ["300"]
    assert february.baseline_balance == 0.0
    assert february.final_balance == 1000.0


def test_fetch_plan_for_full_history_with_filtered_payments(tmp_path):
    cfg = DatabaseConfig(engine="sqlite", path=tmp_path / "x.sqlite")

    jobs = plan_fetch(cfg, JANUARY, filter_payments=True, full_history=True)

    assert sorted(j.name for j in jobs) == [
        "history_payments",
        "links",
        "manual_entries",
        "payments",
        "purchases",
        "sales",
    ]


def test_fetch_failure_names_the_source(tmp_path, monkeypatch):
    config = make_config(tmp_path)
    seed(config.database)

    def broken(*args, **kwargs):
        raise OSError("disk unavailable")

    monkeypatch.setattr(db, "load_payments", broken)

    with pytest.raises(SourceFetchError) as excinfo:
        CashFlowService(config).compute_cash_flow(JANUARY)

    assert excinfo.value.source == "payments"
    assert "Could not load cash flow" in str(excinfo.value)
    assert isinstance(excinfo.value.cause, OSError)


def test_cache_serves_repeated_fetches(tmp_path, monkeypatch):
    config = make_config(tmp_path)
    seed(config.database)
    cache = RecordCache(ttl_seconds=60)
    calls = []
    original = db.load_invoices

    def counting(cfg, kind):
        calls.append(kind)
        return original(cfg, kind)

    monkeypatch.setattr(db, "load_invoices", counting)

    fetch_snapshot(config.database, JANUARY, cache=cache)
    fetch_snapshot(config.database, JANUARY, cache=cache)

    assert sorted(calls) == ["PURCHASE", "SALE"]


def test_cache_entries_expire():
    now = [0.0]
    cache = RecordCache(ttl_seconds=10, clock=lambda: now[0])

    cache.set("sales", None, ("a",))
    assert cache.get("sales") == ("a",)

    now[0] = 10.0
    assert cache.get("sales") is None
    assert len(cache) == 0


def test_cache_invalidation_by_source():
    cache = RecordCache(ttl_seconds=10)
    cache.set("sales", None, (1,))
    cache.set("payments", ("2024-01-01", "2024-01-31"), (2,))

    assert cache.invalidate("sales") == 1
    assert cache.get("sales") is None
    assert cache.get("payments", ("2024-01-01", "2024-01-31")) == (2,)
    assert cache.invalidate() == 1


def test_disabled_cache_stores_nothing():
    cache = RecordCache(ttl_seconds=0)
    cache.set("sales", None, (1,))
    assert cache.get("sales") is None


def test_factoring_invalidates_sales_and_moves_invoice(tmp_path):
    config = make_config(tmp_path)
    seed(config.database)
    service = CashFlowService(config)

    (before,) = service.compute_cash_flow(FEBRUARY).entries
    assert before.effective_date == date(2024, 2, 5)
    assert before.event.date_reason == "PAYMENT"

    service.mark_factored(1, date(2024, 2, 2))
    (after,) = service.compute_cash_flow(FEBRUARY).entries

    assert after.effective_date == date(2024, 2, 2)
    assert after.event.date_reason == "FACTORING"

    service.unmark_factored(1)
    (restored,) = service.compute_cash_flow(FEBRUARY).entries
    assert restored.event.date_reason == "PAYMENT"


def test_manual_entries_through_service(tmp_path):
    config = make_config(tmp_path)
    service = CashFlowService(config)

    entry = service.add_manual_entry("INCOME", "Capital", 500.0, date(2024, 1, 3))
    assert service.compute_cash_flow(JANUARY).final_balance == 500.0

    service.update_manual_entry(entry.id, ManualEntryUpdate(kind="EXPENSE"))
    assert service.compute_cash_flow(JANUARY).final_balance == -500.0

    assert [e.id for e in service.list_manual_entries(JANUARY)] == [entry.id]
    assert service.delete_manual_entry(entry.id) is True
    assert service.compute_cash_flow(JANUARY).entries == ()

    with pytest.raises(ValueError):
        service.add_manual_entry("INCOME", "", 10.0, date(2024, 1, 3))
    with pytest.raises(ValueError):
        service.add_manual_entry("INCOME", "x", -1.0, date(2024, 1, 3))


def test_superseded_request_is_discarded(tmp_path, monkeypatch):
    config = make_config(tmp_path)
    seed(config.database)
    service = CashFlowService(config, cache=RecordCache(ttl_seconds=0))

    first_fetch_started = threading.Event()
    release_first = threading.Event()
    original = db.load_manual_entries
    calls = []

    def slow_first(*args, **kwargs):
        calls.append(1)
        if len(calls) == 1:
            first_fetch_started.set()
            release_first.wait(timeout=5)
        return original(*args, **kwargs)

    monkeypatch.setattr(db, "load_manual_entries", slow_first)

    outcome = {}

    def run_first():
        try:
            service.compute_cash_flow(JANUARY)
            outcome["first"] = "completed"
        except RequestSupersededError:
            outcome["first"] = "superseded"

    worker = threading.Thread(target=run_first)
    worker.start()
    assert first_fetch_started.wait(timeout=5)

    second = service.compute_cash_flow(JANUARY)
    release_first.set()
    worker.join(timeout=5)

    assert outcome["first"] == "superseded"
    assert second.final_balance == 700.0


def test_sale_groups(tmp_path):
    config = make_config(tmp_path)
    seed(config.database)

    (group,) = CashFlowService(config).sale_groups()

    assert group.label == "100"
    assert group.net_amount == 1000.0
