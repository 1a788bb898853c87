# SMB CashFlow - Cash-flow reconciliation dashboard for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for SMB CashFlow.

This module reads the CSV exports of the record producers (sales and
purchase registers, XML document links, payments, manual entries) and
normalizes them into DataFrames with canonical column names, ready to be
imported by ``db.py``.

Column names
------------
Column names are case-insensitive. Each canonical column accepts a few
aliases, so that raw register exports can be imported without renaming:

    invoices
        id, folio, number (nro), counterparty_name (razon_social),
        counterparty_tax_id (rut_cliente, rut_proveedor),
        document_type_code (tipo_doc, tipo_dte), document_date (fecha_docto),
        total_amount (monto_total), referenced_folio (folio_docto_referencia),
        is_factored, factoring_date

    document links
        id, linked_sale_invoice_id (reg_ventas_id),
        linked_purchase_invoice_id (reg_compras_id),
        emission_date (fecha_emision), created_at

    payments
        id, external_document_link_id (factura_id, link_id),
        payment_date (fecha_pago, fecha), payment_amount (monto_pago, monto)

    manual entries
        kind (tipo), description (descripcion), amount (monto),
        entry_date (fecha)

When several aliases are present, the first one in the list above wins
(``monto_pago`` is preferred over ``monto``).

Any other columns present in the input file are ignored. Malformed dates or
numbers raise a ValueError naming the column.
"""

import os
from collections.abc import Mapping, Sequence
from typing import Union

import pandas as pd

from .document_types import normalize_type_code

PathLike = Union[str, "os.PathLike[str]"]

INVOICE_COLUMNS: Mapping[str, Sequence[str]] = {
    "id": ("id",),
    "folio": ("folio",),
    "number": ("number", "nro"),
    "counterparty_name": (
        "counterparty_name",
        "razon_social",
        "razon_social_receptor",
        "razon_social_emisor",
    ),
    "counterparty_tax_id": (
        "counterparty_tax_id",
        "rut_cliente",
        "rut_proveedor",
        "rut_receptor",
        "rut_emisor",
    ),
    "document_type_code": ("document_type_code", "tipo_doc", "tipo_dte"),
    "document_date": ("document_date", "fecha_docto", "fecha_emision"),
    "total_amount": ("total_amount", "monto_total"),
    "referenced_folio": ("referenced_folio", "folio_docto_referencia"),
    "is_factored": ("is_factored",),
    "factoring_date": ("factoring_date",),
}

LINK_COLUMNS: Mapping[str, Sequence[str]] = {
    "id": ("id",),
    "linked_sale_invoice_id": ("linked_sale_invoice_id", "reg_ventas_id"),
    "linked_purchase_invoice_id": ("linked_purchase_invoice_id", "reg_compras_id"),
    "emission_date": ("emission_date", "fecha_emision"),
    "created_at": ("created_at",),
}

PAYMENT_COLUMNS: Mapping[str, Sequence[str]] = {
    "id": ("id",),
    "external_document_link_id": (
        "external_document_link_id",
        "factura_id",
        "link_id",
    ),
    "payment_date": ("payment_date", "fecha_pago", "fecha"),
    "payment_amount": ("payment_amount", "monto_pago", "monto"),
}

MANUAL_ENTRY_COLUMNS: Mapping[str, Sequence[str]] = {
    "kind": ("kind", "tipo"),
    "description": ("description", "descripcion"),
    "amount": ("amount", "monto"),
    "entry_date": ("entry_date", "fecha"),
}

_MANUAL_KIND_ALIASES = {
    "income": "INCOME",
    "ingreso": "INCOME",
    "expense": "EXPENSE",
    "egreso": "EXPENSE",
}


def _normalize_columns(
    df: pd.DataFrame,
    columns: Mapping[str, Sequence[str]],
    required: set[str],
    source: str,
) -> pd.DataFrame:
    """
    Rename aliased columns to their canonical names and drop the others.

    Raises
    ------
    ValueError
        If a required canonical column has no matching column in ``df``.
    """
    df = df.copy()
    df.columns = [str(c).lower().strip() for c in df.columns]
    present = set(df.columns)

    out = pd.DataFrame(index=df.index)
    for canonical, aliases in columns.items():
        for alias in aliases:
            if alias in present:
                out[canonical] = df[alias]
                break

    missing = required.difference(out.columns)
    if missing:
        cols = ", ".join(sorted(missing))
        raise ValueError(f"Invalid {source} CSV: missing required column(s): {cols}")
    return out


def _parse_dates(df: pd.DataFrame, column: str, *, required: bool = False) -> None:
    if column not in df.columns:
        return
    try:
        parsed = pd.to_datetime(df[column], errors="raise")
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Invalid values in '{column}' column.") from exc
    if required and parsed.isna().any():
        raise ValueError(f"Missing values in '{column}' column.")
    df[column] = parsed.dt.date.astype(object).where(parsed.notna(), None)


def _parse_numbers(df: pd.DataFrame, column: str) -> None:
    numbers = pd.to_numeric(df[column], errors="coerce")
    if numbers.isna().any():
        raise ValueError(f"Invalid numeric values in '{column}' column.")
    df[column] = numbers.astype(float)


def _parse_ids(df: pd.DataFrame, column: str, *, required: bool = True) -> None:
    if column not in df.columns:
        return
    ids = pd.to_numeric(df[column], errors="coerce")
    if required and ids.isna().any():
        raise ValueError(f"Invalid or missing values in '{column}' column.")
    df[column] = ids.astype("Int64")


def _parse_bool(value) -> bool:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return False
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y", "si", "sí")
    return bool(value)


def _optional_text(series: pd.Series) -> pd.Series:
    """Strings with '.0' float artifacts removed; blanks become None."""

    def convert(value):
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            return None
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        text = str(value).strip()
        return text or None

    return series.map(convert).astype(object)


def normalize_invoices(df: pd.DataFrame) -> pd.DataFrame:
    """Normalize a raw invoice register DataFrame (sales or purchases)."""
    out = _normalize_columns(
        df,
        INVOICE_COLUMNS,
        {"id", "document_type_code", "total_amount"},
        "invoice",
    )
    _parse_ids(out, "id")
    _parse_ids(out, "number", required=False)
    _parse_numbers(out, "total_amount")
    _parse_dates(out, "document_date")
    _parse_dates(out, "factoring_date")

    out["document_type_code"] = out["document_type_code"].map(normalize_type_code)
    for col in (
        "folio",
        "referenced_folio",
        "counterparty_name",
        "counterparty_tax_id",
    ):
        if col in out.columns:
            out[col] = _optional_text(out[col])
    if "is_factored" in out.columns:
        out["is_factored"] = out["is_factored"].map(_parse_bool)
    return out


def normalize_document_links(df: pd.DataFrame) -> pd.DataFrame:
    """Normalize a raw document-link DataFrame."""
    out = _normalize_columns(df, LINK_COLUMNS, {"id"}, "document link")
    _parse_ids(out, "id")
    _parse_ids(out, "linked_sale_invoice_id", required=False)
    _parse_ids(out, "linked_purchase_invoice_id", required=False)
    _parse_dates(out, "emission_date")
    if "created_at" in out.columns:
        try:
            created = pd.to_datetime(out["created_at"], errors="raise")
        except Exception as exc:  # noqa: BLE001
            raise ValueError("Invalid values in 'created_at' column.") from exc
        out["created_at"] = created.astype(object).where(created.notna(), None)
    return out


def normalize_payments(df: pd.DataFrame) -> pd.DataFrame:
    """Normalize a raw payment DataFrame."""
    out = _normalize_columns(
        df,
        PAYMENT_COLUMNS,
        {"id", "external_document_link_id", "payment_amount"},
        "payment",
    )
    _parse_ids(out, "id")
    _parse_ids(out, "external_document_link_id")
    _parse_numbers(out, "payment_amount")
    _parse_dates(out, "payment_date")
    return out


def normalize_manual_entries(df: pd.DataFrame) -> pd.DataFrame:
    """Normalize a raw manual-entry DataFrame."""
    out = _normalize_columns(
        df,
        MANUAL_ENTRY_COLUMNS,
        {"kind", "description", "amount", "entry_date"},
        "manual entry",
    )
    kinds = out["kind"].astype(str).str.strip().str.lower().map(_MANUAL_KIND_ALIASES)
    if kinds.isna().any():
        raise ValueError(
            "Invalid values in 'kind' column (expected income/expense "
            "or INGRESO/EGRESO)."
        )
    out["kind"] = kinds
    out["description"] = out["description"].fillna("").astype(str).str.strip()
    _parse_numbers(out, "amount")
    _parse_dates(out, "entry_date", required=True)
    return out


def read_invoices(path: PathLike) -> pd.DataFrame:
    """
    Read a sales or purchase register CSV.

    Returns
    -------
    pandas.DataFrame
        Columns: id (Int64), document_type_code (str), total_amount (float),
        and the optional invoice columns present in the file. Dates are
        ``datetime.date`` objects (None when blank).
    """
    return normalize_invoices(pd.read_csv(path))


def read_document_links(path: PathLike) -> pd.DataFrame:
    """Read an XML document-link CSV."""
    return normalize_document_links(pd.read_csv(path))


def read_payments(path: PathLike) -> pd.DataFrame:
    """Read a payments CSV."""
    return normalize_payments(pd.read_csv(path))


def read_manual_entries(path: PathLike) -> pd.DataFrame:
    """Read a manual cash entries CSV."""
    return normalize_manual_entries(pd.read_csv(path))
