from datetime import date

import pandas as pd
import pytest

from smb_cashflow.db import (
    DatabaseConfig,
    ManualEntryUpdate,
    NewManualEntry,
    count_records,
    delete_manual_entry,
    get_invoice_by_id,
    import_document_links,
    import_invoices,
    import_payments,
    init_database,
    insert_manual_entry,
    load_document_links,
    load_invoices,
    load_manual_entries,
    load_payments,
    mark_invoice_factored,
    unmark_invoice_factored,
    update_manual_entry,
)


def make_tmp_db_cfg(tmp_path) -> DatabaseConfig:
    """Helper to build a DatabaseConfig pointing to a temporary SQLite file."""
    db_path = tmp_path / "test_db.sqlite"
    return DatabaseConfig(engine="sqlite", path=db_path)


def sales_df() -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "id": 1,
                "folio": "100",
                "counterparty_name": "ACME",
                "document_type_code": "33",
                "document_date": date(2024, 1, 5),
                "total_amount": 1190.5,
            },
            {
                "id": 2,
                "folio": "7",
                "counterparty_name": "ACME",
                "document_type_code": "61",
                "document_date": date(2024, 1, 20),
                "total_amount": 190.5,
                "referenced_folio": "100",
            },
        ]
    )


def test_init_database_creates_file_and_schema(tmp_path):
    """init_database should create the SQLite file and an empty schema."""
    cfg = make_tmp_db_cfg(tmp_path)

    assert not cfg.path.exists()
    init_database(cfg)
    assert cfg.path.exists()

    assert not any(count_records(cfg).values())


def test_unsupported_engine_is_rejected(tmp_path):
    cfg = DatabaseConfig(engine="postgres", path=tmp_path / "x.sqlite")
    with pytest.raises(ValueError):
        init_database(cfg)


def test_import_and_load_invoices(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)

    stats = import_invoices(sales_df(), cfg, "SALE")

    assert (stats.table, stats.rows_inserted, stats.rows_replaced) == (
        "sales_invoices",
        2,
        0,
    )
    invoices = load_invoices(cfg, "SALE")
    assert [i.id for i in invoices] == [1, 2]
    assert invoices[0].total_amount == 1190.5
    assert invoices[0].document_date == date(2024, 1, 5)
    assert invoices[1].is_credit_note is True
    assert load_invoices(cfg, "PURCHASE") == []


def test_reimport_replaces_rows_by_id(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    import_invoices(sales_df(), cfg, "SALE")

    corrected = sales_df().iloc[[0]].assign(total_amount=1000.0)
    stats = import_invoices(corrected, cfg, "SALE")

    assert (stats.rows_inserted, stats.rows_replaced) == (0, 1)
    assert get_invoice_by_id(cfg, "SALE", 1).total_amount == 1000.0


def test_links_and_payments_round_trip_with_date_filter(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    import_document_links(
        pd.DataFrame(
            [
                {
                    "id": 10,
                    "linked_sale_invoice_id": 1,
                    "linked_purchase_invoice_id": None,
                    "emission_date": date(2024, 1, 6),
                    "created_at": "2024-01-06T10:00:00",
                }
            ]
        ),
        cfg,
    )
    import_payments(
        pd.DataFrame(
            [
                {
                    "id": 1,
                    "external_document_link_id": 10,
                    "payment_date": date(2024, 1, 10),
                    "payment_amount": 500.0,
                },
                {
                    "id": 2,
                    "external_document_link_id": 10,
                    "payment_date": date(2024, 2, 10),
                    "payment_amount": 690.5,
                },
            ]
        ),
        cfg,
    )

    (link,) = load_document_links(cfg)
    assert link.linked_sale_invoice_id == 1
    assert link.linked_purchase_invoice_id is None
    assert link.created_at.hour == 10

    assert len(load_payments(cfg)) == 2
    january = load_payments(cfg, date(2024, 1, 1), date(2024, 1, 31))
    assert [p.id for p in january] == [1]
    assert january[0].payment_amount == 500.0


def test_factoring_mark_and_unmark(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    import_invoices(sales_df(), cfg, "SALE")

    marked = mark_invoice_factored(cfg, 1, date(2024, 2, 1))
    assert marked.is_factored is True
    assert marked.factoring_date == date(2024, 2, 1)

    unmarked = unmark_invoice_factored(cfg, 1)
    assert unmarked.is_factored is False
    assert unmarked.factoring_date is None

    with pytest.raises(ValueError):
        mark_invoice_factored(cfg, 999, date(2024, 2, 1))


def test_manual_entries_crud(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)

    rent = insert_manual_entry(
        cfg, NewManualEntry("EXPENSE", " Rent ", 800.0, date(2024, 1, 1))
    )
    insert_manual_entry(cfg, NewManualEntry("INCOME", "Loan", 5000.0, date(2024, 2, 1)))

    assert rent.description == "Rent"
    assert rent.kind == "EXPENSE"
    assert [e.description for e in load_manual_entries(cfg, kind="INCOME")] == ["Loan"]
    assert [e.description for e in load_manual_entries(cfg, end=date(2024, 1, 31))] == [
        "Rent"
    ]
    assert len(load_manual_entries(cfg, description_contains="LOA")) == 1

    updated = update_manual_entry(cfg, rent.id, ManualEntryUpdate(amount=850.0))
    assert updated.amount == 850.0
    assert updated.description == "Rent"

    assert delete_manual_entry(cfg, rent.id) is True
    assert delete_manual_entry(cfg, rent.id) is False
    assert len(load_manual_entries(cfg)) == 1


def test_manual_entry_validation(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)

    with pytest.raises(ValueError):
        insert_manual_entry(cfg, NewManualEntry("INCOME", "x", 0.0, date(2024, 1, 1)))
    with pytest.raises(ValueError):
        insert_manual_entry(cfg, NewManualEntry("INCOME", "  ", 10.0, date(2024, 1, 1)))
    with pytest.raises(ValueError):
        insert_manual_entry(cfg, NewManualEntry("TRANSFER", "x", 10.0, date(2024, 1, 1)))
    with pytest.raises(ValueError):
        update_manual_entry(cfg, 1, ManualEntryUpdate())
