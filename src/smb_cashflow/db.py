# SMB CashFlow - Cash-flow reconciliation dashboard for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Database layer for SMB CashFlow.

This module provides all low-level accessors for the SQLite record store that
holds the inputs of the cash-flow reconciliation. It is responsible for:

- Initializing the database schema.
- Importing normalized invoices, document links, payments and manual entries
  (pandas DataFrames produced by ``io.py``).
- Loading records as typed dataclasses (``models.py``) for the engine.
- The two factoring mutations used by invoice detail views.
- CRUD operations on manual cash entries.

The reconciliation engine never talks to this module directly: records are
fetched by ``sources.py`` and handed to the engine as a snapshot.

------------------------------------------------------------------------------
Schema Overview
------------------------------------------------------------------------------

1) sales_invoices / purchase_invoices
   One row per tax document (invoice, receipt, debit note, credit note).

   Columns:
   - id                  INTEGER PRIMARY KEY   -- id in the source register
   - folio               TEXT
   - number              INTEGER              -- register row number
   - counterparty_name   TEXT
   - counterparty_tax_id TEXT
   - document_type_code  TEXT    NOT NULL     -- e.g. '33', '61'
   - document_date       TEXT                 -- ISO date 'YYYY-MM-DD'
   - total_cents         INTEGER NOT NULL     -- signed integer amount in cents
   - referenced_folio    TEXT                 -- credit notes only
   - is_factored         INTEGER NOT NULL DEFAULT 0
   - factoring_date      TEXT

2) document_links
   Bridge between an invoice and its canonical (XML) document.

   Columns:
   - id                         INTEGER PRIMARY KEY
   - linked_sale_invoice_id     INTEGER
   - linked_purchase_invoice_id INTEGER
   - emission_date              TEXT
   - created_at                 TEXT   -- ISO datetime

3) payments
   - id                          INTEGER PRIMARY KEY
   - external_document_link_id   INTEGER NOT NULL
   - payment_date                TEXT
   - amount_cents                INTEGER NOT NULL

4) manual_entries
   - id             INTEGER PRIMARY KEY AUTOINCREMENT
   - entry_type     TEXT    NOT NULL   -- 'income' | 'expense'
   - description    TEXT    NOT NULL
   - amount_cents   INTEGER NOT NULL
   - entry_date     TEXT    NOT NULL
   - created_at     TEXT    NOT NULL
   - updated_at     TEXT

------------------------------------------------------------------------------
SQLite Notes
------------------------------------------------------------------------------

- All timestamps are stored as ISO-8601 text (UTC).
- Links and payments carry no foreign keys: they come from independent
  producers and may reference records that were not imported (yet).
- Imports upsert on ``id`` so that re-importing a corrected export replaces
  the previous rows.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Literal

import pandas as pd

from .models import (
    Direction,
    ExternalDocumentLink,
    Invoice,
    InvoiceKind,
    ManualEntry,
    Payment,
)

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database configuration for SMB CashFlow.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    """

    engine: str
    path: Path


@dataclass(frozen=True)
class ImportStats:
    """
    Summary of an import into one table.

    Attributes
    ----------
    table:
        Target table name.
    rows_inserted:
        Number of new rows.
    rows_replaced:
        Number of existing rows (same id) that were overwritten.
    """

    table: str
    rows_inserted: int
    rows_replaced: int


ManualEntryType = Literal["income", "expense"]


@dataclass(frozen=True)
class NewManualEntry:
    """Data required to create a manual cash entry."""

    kind: Direction
    description: str
    amount: float
    entry_date: date


@dataclass(frozen=True)
class ManualEntryUpdate:
    """
    Fields that can be updated on an existing manual entry.

    Only non-None values are applied during the update operation.
    """

    kind: Direction | None = None
    description: str | None = None
    amount: float | None = None
    entry_date: date | None = None


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

_INVOICE_TABLES: dict[InvoiceKind, str] = {
    "SALE": "sales_invoices",
    "PURCHASE": "purchase_invoices",
}

_INVOICE_COLUMNS = (
    "id",
    "folio",
    "number",
    "counterparty_name",
    "counterparty_tax_id",
    "document_type_code",
    "document_date",
    "total_cents",
    "referenced_folio",
    "is_factored",
    "factoring_date",
)


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValueError(msg)


def _connect(cfg: DatabaseConfig) -> sqlite3.Connection:
    """
    Open a SQLite connection.

    The caller is responsible for closing the connection. Each call opens its
    own connection, so concurrent fetches from worker threads are safe.
    """
    _ensure_sqlite(cfg)
    return sqlite3.connect(cfg.path)


def _invoice_table(kind: InvoiceKind) -> str:
    try:
        return _INVOICE_TABLES[kind]
    except KeyError as exc:
        raise ValueError(f"Unknown invoice kind: {kind!r}") from exc


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """
    Create tables and indexes if they do not exist yet.

    This function is idempotent and can be called multiple times safely.
    """
    for table in _INVOICE_TABLES.values():
        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id                  INTEGER PRIMARY KEY,
                folio               TEXT,
                number              INTEGER,
                counterparty_name   TEXT,
                counterparty_tax_id TEXT,
                document_type_code  TEXT    NOT NULL,
                document_date       TEXT,
                total_cents         INTEGER NOT NULL,
                referenced_folio    TEXT,
                is_factored         INTEGER NOT NULL DEFAULT 0,
                factoring_date      TEXT
            );
            """
        )
        conn.execute(
            f"""
            CREATE INDEX IF NOT EXISTS idx_{table}_document_date
                ON {table}(document_date);
            """
        )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS document_links (
            id                         INTEGER PRIMARY KEY,
            linked_sale_invoice_id     INTEGER,
            linked_purchase_invoice_id INTEGER,
            emission_date              TEXT,
            created_at                 TEXT
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS payments (
            id                        INTEGER PRIMARY KEY,
            external_document_link_id INTEGER NOT NULL,
            payment_date              TEXT,
            amount_cents              INTEGER NOT NULL
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS manual_entries (
            id            INTEGER PRIMARY KEY AUTOINCREMENT,
            entry_type    TEXT    NOT NULL,  -- 'income' | 'expense'
            description   TEXT    NOT NULL,
            amount_cents  INTEGER NOT NULL,
            entry_date    TEXT    NOT NULL,
            created_at    TEXT    NOT NULL,
            updated_at    TEXT
        );
        """
    )

    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_payments_date
            ON payments(payment_date);
        """
    )
    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_manual_entries_date
            ON manual_entries(entry_date);
        """
    )

    conn.commit()


def _ensure_dataframe_columns(df: pd.DataFrame, required: set[str]) -> None:
    """Validate that the DataFrame contains the expected columns."""
    missing = required.difference(df.columns)
    if missing:
        cols = ", ".join(sorted(missing))
        msg = f"DataFrame is missing required column(s): {cols}"
        raise ValueError(msg)


def _to_iso_date(value) -> str | None:
    """Convert a date-like value to ISO 'YYYY-MM-DD' string (None if missing)."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    if not text:
        return None
    return date.fromisoformat(text[:10]).isoformat()


def _to_iso_datetime(value) -> str | None:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, datetime):
        return value.isoformat(timespec="seconds")
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day).isoformat(
            timespec="seconds"
        )
    text = str(value).strip()
    return text or None


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    return date.fromisoformat(value[:10])


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _to_cents(amount) -> int:
    return int(round(float(amount) * 100))


def _optional_text(value) -> str | None:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    text = str(value).strip()
    return text or None


def _optional_int(value) -> int | None:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    return int(value)


def _now_utc_iso() -> str:
    """Return the current UTC datetime as ISO string."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _upsert_rows(
    conn: sqlite3.Connection,
    table: str,
    columns: tuple[str, ...],
    rows: list[tuple],
) -> ImportStats:
    """Insert rows keyed by id, replacing rows that already exist."""
    cur = conn.cursor()
    placeholders = ", ".join("?" for _ in columns)
    updates = ", ".join(f"{c} = excluded.{c}" for c in columns if c != "id")

    inserted = 0
    replaced = 0
    for row in rows:
        cur.execute(f"SELECT 1 FROM {table} WHERE id = ?;", (row[0],))
        if cur.fetchone() is None:
            inserted += 1
        else:
            replaced += 1
        cur.execute(
            f"""
            INSERT INTO {table} ({", ".join(columns)})
            VALUES ({placeholders})
            ON CONFLICT(id) DO UPDATE SET {updates};
            """,
            row,
        )
    conn.commit()
    return ImportStats(table=table, rows_inserted=inserted, rows_replaced=replaced)


# ---------------------------------------------------------------------------
# Public API: schema & imports
# ---------------------------------------------------------------------------


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the SQLite file if it does not exist.
    - Creates tables and indexes if they are missing.
    - This function is idempotent: calling it multiple times is safe.

    Raises
    ------
    ValueError
        If cfg.engine is not supported.
    sqlite3.Error
        If schema creation fails.
    """
    cfg.path.parent.mkdir(parents=True, exist_ok=True)

    conn = _connect(cfg)
    try:
        _create_schema_if_needed(conn)
    finally:
        conn.close()


def import_invoices(
    df: pd.DataFrame,
    cfg: DatabaseConfig,
    kind: InvoiceKind,
) -> ImportStats:
    """
    Import normalized invoices (see ``io.read_invoices``).

    Parameters
    ----------
    df:
        DataFrame with at least ``id``, ``document_type_code`` and
        ``total_amount``. Optional columns: folio, number, counterparty_name,
        counterparty_tax_id, document_date, referenced_folio, is_factored,
        factoring_date.
    cfg:
        Database configuration.
    kind:
        "SALE" or "PURCHASE".

    Returns
    -------
    ImportStats
    """
    _ensure_dataframe_columns(df, {"id", "document_type_code", "total_amount"})
    table = _invoice_table(kind)
    init_database(cfg)

    rows: list[tuple] = []
    for _, row in df.iterrows():
        is_factored = row.get("is_factored", False)
        rows.append(
            (
                int(row["id"]),
                _optional_text(row.get("folio")),
                _optional_int(row.get("number")),
                _optional_text(row.get("counterparty_name")),
                _optional_text(row.get("counterparty_tax_id")),
                str(row["document_type_code"]),
                _to_iso_date(row.get("document_date")),
                _to_cents(row["total_amount"]),
                _optional_text(row.get("referenced_folio")),
                1 if (not pd.isna(is_factored) and bool(is_factored)) else 0,
                _to_iso_date(row.get("factoring_date")),
            )
        )

    conn = _connect(cfg)
    try:
        return _upsert_rows(conn, table, _INVOICE_COLUMNS, rows)
    finally:
        conn.close()


def import_document_links(df: pd.DataFrame, cfg: DatabaseConfig) -> ImportStats:
    """Import normalized document links (see ``io.read_document_links``)."""
    _ensure_dataframe_columns(df, {"id"})
    init_database(cfg)

    rows = [
        (
            int(row["id"]),
            _optional_int(row.get("linked_sale_invoice_id")),
            _optional_int(row.get("linked_purchase_invoice_id")),
            _to_iso_date(row.get("emission_date")),
            _to_iso_datetime(row.get("created_at")),
        )
        for _, row in df.iterrows()
    ]

    conn = _connect(cfg)
    try:
        return _upsert_rows(
            conn,
            "document_links",
            (
                "id",
                "linked_sale_invoice_id",
                "linked_purchase_invoice_id",
                "emission_date",
                "created_at",
            ),
            rows,
        )
    finally:
        conn.close()


def import_payments(df: pd.DataFrame, cfg: DatabaseConfig) -> ImportStats:
    """Import normalized payments (see ``io.read_payments``)."""
    _ensure_dataframe_columns(
        df, {"id", "external_document_link_id", "payment_amount"}
    )
    init_database(cfg)

    rows = [
        (
            int(row["id"]),
            int(row["external_document_link_id"]),
            _to_iso_date(row.get("payment_date")),
            _to_cents(row["payment_amount"]),
        )
        for _, row in df.iterrows()
    ]

    conn = _connect(cfg)
    try:
        return _upsert_rows(
            conn,
            "payments",
            ("id", "external_document_link_id", "payment_date", "amount_cents"),
            rows,
        )
    finally:
        conn.close()


def import_manual_entries(df: pd.DataFrame, cfg: DatabaseConfig) -> ImportStats:
    """
    Import normalized manual entries (see ``io.read_manual_entries``).

    Manual entries get new ids: the import never replaces existing rows.
    """
    _ensure_dataframe_columns(df, {"kind", "description", "amount", "entry_date"})
    inserted = 0
    for _, row in df.iterrows():
        insert_manual_entry(
            cfg,
            NewManualEntry(
                kind=str(row["kind"]),  # type: ignore[arg-type]
                description=str(row["description"]),
                amount=float(row["amount"]),
                entry_date=_parse_date(_to_iso_date(row["entry_date"])),
            ),
        )
        inserted += 1
    return ImportStats(table="manual_entries", rows_inserted=inserted, rows_replaced=0)


# ---------------------------------------------------------------------------
# Public API: loaders
# ---------------------------------------------------------------------------


def _row_to_invoice(row: tuple) -> Invoice:
    """
    Convert a database row into an Invoice.

    Expected row layout: the columns of ``_INVOICE_COLUMNS`` in order.
    """
    (
        invoice_id,
        folio,
        number,
        counterparty_name,
        counterparty_tax_id,
        document_type_code,
        document_date,
        total_cents,
        referenced_folio,
        is_factored,
        factoring_date,
    ) = row

    return Invoice(
        id=invoice_id,
        folio=folio,
        number=number,
        counterparty_name=counterparty_name,
        counterparty_tax_id=counterparty_tax_id,
        document_type_code=document_type_code,
        document_date=_parse_date(document_date),
        total_amount=float(total_cents) / 100.0,
        referenced_folio=referenced_folio,
        is_factored=bool(is_factored),
        factoring_date=_parse_date(factoring_date),
    )


def load_invoices(cfg: DatabaseConfig, kind: InvoiceKind) -> list[Invoice]:
    """
    Load the full invoice history of one side (sales or purchases).

    The history is never filtered by date: credit-note linkage needs
    originals that fall outside any visible window.
    """
    table = _invoice_table(kind)
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            f"""
            SELECT {", ".join(_INVOICE_COLUMNS)}
              FROM {table}
             ORDER BY document_date, id;
            """
        )
        rows = cur.fetchall()
    finally:
        conn.close()

    return [_row_to_invoice(row) for row in rows]


def get_invoice_by_id(
    cfg: DatabaseConfig, kind: InvoiceKind, invoice_id: int
) -> Invoice | None:
    """Load a single invoice by id, or None if not found."""
    table = _invoice_table(kind)
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            f"SELECT {', '.join(_INVOICE_COLUMNS)} FROM {table} WHERE id = ?;",
            (invoice_id,),
        )
        row = cur.fetchone()
    finally:
        conn.close()

    return None if row is None else _row_to_invoice(row)


def load_document_links(cfg: DatabaseConfig) -> list[ExternalDocumentLink]:
    """Load all external document links."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            """
            SELECT id, linked_sale_invoice_id, linked_purchase_invoice_id,
                   emission_date, created_at
              FROM document_links
             ORDER BY id;
            """
        )
        rows = cur.fetchall()
    finally:
        conn.close()

    return [
        ExternalDocumentLink(
            id=link_id,
            linked_sale_invoice_id=sale_id,
            linked_purchase_invoice_id=purchase_id,
            emission_date=_parse_date(emission_date),
            created_at=_parse_datetime(created_at),
        )
        for link_id, sale_id, purchase_id, emission_date, created_at in rows
    ]


def load_payments(
    cfg: DatabaseConfig,
    start: date | None = None,
    end: date | None = None,
) -> list[Payment]:
    """
    Load payments, optionally restricted to an inclusive date range.

    Undated payments are only returned when no range is requested.
    """
    init_database(cfg)

    clauses: list[str] = []
    params: list[object] = []
    if start is not None:
        clauses.append("payment_date >= ?")
        params.append(start.isoformat())
    if end is not None:
        clauses.append("payment_date <= ?")
        params.append(end.isoformat())
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            f"""
            SELECT id, external_document_link_id, payment_date, amount_cents
              FROM payments
              {where}
             ORDER BY id;
            """,
            params,
        )
        rows = cur.fetchall()
    finally:
        conn.close()

    return [
        Payment(
            id=payment_id,
            external_document_link_id=link_id,
            payment_date=_parse_date(payment_date),
            payment_amount=float(amount_cents) / 100.0,
        )
        for payment_id, link_id, payment_date, amount_cents in rows
    ]


# ---------------------------------------------------------------------------
# Factoring
# ---------------------------------------------------------------------------


def _set_factoring(
    cfg: DatabaseConfig,
    invoice_id: int,
    is_factored: bool,
    factoring_date: date | None,
) -> Invoice:
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            """
            UPDATE sales_invoices
               SET is_factored    = ?,
                   factoring_date = ?
             WHERE id = ?;
            """,
            (
                1 if is_factored else 0,
                factoring_date.isoformat() if factoring_date else None,
                invoice_id,
            ),
        )
        updated = cur.rowcount
        conn.commit()
    finally:
        conn.close()

    if updated == 0:
        raise ValueError(f"Sale invoice #{invoice_id} not found.")

    result = get_invoice_by_id(cfg, "SALE", invoice_id)
    if result is None:
        msg = f"Sale invoice #{invoice_id} was updated but could not be reloaded."
        raise RuntimeError(msg)
    return result


def mark_invoice_factored(
    cfg: DatabaseConfig, invoice_id: int, factoring_date: date
) -> Invoice:
    """
    Mark a sale invoice as factored on the given date.

    Raises
    ------
    ValueError
        If the invoice does not exist.
    """
    return _set_factoring(cfg, invoice_id, True, factoring_date)


def unmark_invoice_factored(cfg: DatabaseConfig, invoice_id: int) -> Invoice:
    """Clear the factoring flag and date of a sale invoice."""
    return _set_factoring(cfg, invoice_id, False, None)


# ---------------------------------------------------------------------------
# Manual entries
# ---------------------------------------------------------------------------

_MANUAL_COLUMNS = "id, entry_type, description, amount_cents, entry_date"


def _kind_to_db(kind: str) -> ManualEntryType:
    value = str(kind).strip().lower()
    if value not in ("income", "expense"):
        raise ValueError(f"Invalid manual entry kind: {kind!r}")
    return value  # type: ignore[return-value]


def _row_to_manual_entry(row: tuple) -> ManualEntry:
    entry_id, entry_type, description, amount_cents, entry_date = row
    return ManualEntry(
        id=entry_id,
        kind="INCOME" if entry_type == "income" else "EXPENSE",
        description=description,
        amount=float(amount_cents) / 100.0,
        entry_date=_parse_date(entry_date),
    )


def _validate_manual_fields(description: str | None, amount: float | None) -> None:
    if description is not None and not description.strip():
        raise ValueError("Manual entry description cannot be empty.")
    if amount is not None and not amount > 0:
        raise ValueError("Manual entry amount must be strictly positive.")


def get_manual_entry_by_id(cfg: DatabaseConfig, entry_id: int) -> ManualEntry | None:
    """Load a single manual entry by id, or None if not found."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            f"SELECT {_MANUAL_COLUMNS} FROM manual_entries WHERE id = ?;",
            (entry_id,),
        )
        row = cur.fetchone()
    finally:
        conn.close()

    return None if row is None else _row_to_manual_entry(row)


def load_manual_entries(
    cfg: DatabaseConfig,
    start: date | None = None,
    end: date | None = None,
    kind: Direction | None = None,
    description_contains: str | None = None,
) -> list[ManualEntry]:
    """
    Load manual entries with optional filters.

    Parameters
    ----------
    start, end:
        Inclusive bounds on ``entry_date``.
    kind:
        "INCOME" or "EXPENSE".
    description_contains:
        Case-insensitive substring search on the description.
    """
    init_database(cfg)

    clauses: list[str] = []
    params: list[object] = []
    if start is not None:
        clauses.append("entry_date >= ?")
        params.append(start.isoformat())
    if end is not None:
        clauses.append("entry_date <= ?")
        params.append(end.isoformat())
    if kind is not None:
        clauses.append("entry_type = ?")
        params.append(_kind_to_db(kind))
    if description_contains:
        clauses.append("LOWER(description) LIKE ?")
        params.append(f"%{description_contains.lower()}%")
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            f"""
            SELECT {_MANUAL_COLUMNS}
              FROM manual_entries
              {where}
             ORDER BY entry_date, id;
            """,
            params,
        )
        rows = cur.fetchall()
    finally:
        conn.close()

    return [_row_to_manual_entry(row) for row in rows]


def insert_manual_entry(cfg: DatabaseConfig, new_entry: NewManualEntry) -> ManualEntry:
    """
    Insert a new manual entry.

    Raises
    ------
    ValueError
        If the description is empty, the amount is not strictly positive or
        the kind is unknown.
    """
    _validate_manual_fields(new_entry.description, new_entry.amount)
    if new_entry.entry_date is None:
        raise ValueError("Manual entry date is required.")
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            """
            INSERT INTO manual_entries (
                entry_type, description, amount_cents, entry_date, created_at
            )
            VALUES (?, ?, ?, ?, ?);
            """,
            (
                _kind_to_db(new_entry.kind),
                new_entry.description.strip(),
                _to_cents(new_entry.amount),
                new_entry.entry_date.isoformat(),
                _now_utc_iso(),
            ),
        )
        entry_id = cur.lastrowid
        conn.commit()
    finally:
        conn.close()

    result = get_manual_entry_by_id(cfg, entry_id)
    if result is None:
        msg = f"Manual entry #{entry_id} was just inserted but could not be reloaded."
        raise RuntimeError(msg)
    return result


def update_manual_entry(
    cfg: DatabaseConfig,
    entry_id: int,
    update: ManualEntryUpdate,
) -> ManualEntry:
    """
    Apply a partial update to a manual entry.

    Raises
    ------
    ValueError
        If no fields are provided, a value is invalid or the entry does not
        exist.
    """
    _validate_manual_fields(update.description, update.amount)
    init_database(cfg)

    fields: list[str] = []
    params: list[object] = []

    if update.kind is not None:
        fields.append("entry_type = ?")
        params.append(_kind_to_db(update.kind))
    if update.description is not None:
        fields.append("description = ?")
        params.append(update.description.strip())
    if update.amount is not None:
        fields.append("amount_cents = ?")
        params.append(_to_cents(update.amount))
    if update.entry_date is not None:
        fields.append("entry_date = ?")
        params.append(update.entry_date.isoformat())

    if not fields:
        raise ValueError("No fields to update in ManualEntryUpdate.")

    fields.append("updated_at = ?")
    params.append(_now_utc_iso())
    params.append(entry_id)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            f"""
            UPDATE manual_entries
               SET {", ".join(fields)}
             WHERE id = ?;
            """,
            params,
        )
        updated = cur.rowcount
        conn.commit()
    finally:
        conn.close()

    if updated == 0:
        raise ValueError(f"Manual entry #{entry_id} not found.")

    result = get_manual_entry_by_id(cfg, entry_id)
    if result is None:
        msg = f"Manual entry #{entry_id} was updated but could not be reloaded."
        raise RuntimeError(msg)
    return result


def delete_manual_entry(cfg: DatabaseConfig, entry_id: int) -> bool:
    """Delete a manual entry. Returns False if it did not exist."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute("DELETE FROM manual_entries WHERE id = ?;", (entry_id,))
        deleted = cur.rowcount
        conn.commit()
    finally:
        conn.close()

    return deleted > 0


def count_records(cfg: DatabaseConfig) -> dict[str, int]:
    """
    Return the number of rows per table.

    Useful to warn the user when the dashboard is requested on an empty DB.
    """
    init_database(cfg)

    tables = (*_INVOICE_TABLES.values(), "document_links", "payments", "manual_entries")
    conn = _connect(cfg)
    try:
        return {
            table: conn.execute(f"SELECT COUNT(*) FROM {table};").fetchone()[0]
            for table in tables
        }
    finally:
        conn.close()
