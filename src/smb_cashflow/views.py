# SMB CashFlow - Cash-flow reconciliation dashboard for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for SMB CashFlow.

This module turns ledger entries produced by ``engine.reconcile`` into pandas
DataFrames ready for display or CSV export, and implements the interactive
sort/filter helpers of the dashboard.

Display sorting never changes running balances: balances are computed once,
in chronological order, by the engine. Sorting a ledger view by amount only
reorders rows for the reader.

The main views are:

- ledger:  one row per ledger entry (``ledger_to_dataframe``),
- totals:  income, expenses, net flow and final balance
           (``cash_flow_totals``),
- daily:   per-day income/expense with cumulative columns
           (``daily_summary``), the data behind the cash-flow chart.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal, Optional

import pandas as pd

from .errors import DataIssue
from .models import EXPENSE, INCOME, LedgerEntry

SortDirection = Literal["asc", "desc"]

LEDGER_COLUMNS = [
    "date",
    "direction",
    "document",
    "description",
    "amount",
    "running_balance",
    "paid",
    "date_reason",
]

DAILY_COLUMNS = [
    "date",
    "income",
    "expense",
    "net",
    "cumulative_income",
    "cumulative_expense",
    "balance",
]


@dataclass(frozen=True)
class SortState:
    """Current display sort: a column and a direction (None when unsorted)."""

    field: Optional[str] = None
    direction: Optional[SortDirection] = None

    @property
    def is_active(self) -> bool:
        return self.field is not None and self.direction is not None


def next_sort_state(current: SortState, field: str) -> SortState:
    """
    Cycle the sort state when the user selects a column.

    Selecting the same column cycles asc -> desc -> unsorted. Selecting a
    different column starts at asc.
    """
    if current.field != field or current.direction is None:
        return SortState(field=field, direction="asc")
    if current.direction == "asc":
        return SortState(field=field, direction="desc")
    return SortState()


def ledger_to_dataframe(entries: Sequence[LedgerEntry]) -> pd.DataFrame:
    """
    Convert ledger entries to a DataFrame with columns ``LEDGER_COLUMNS``.

    Row order is the ledger order (chronological).
    """
    rows = [
        {
            "date": entry.effective_date,
            "direction": entry.direction,
            "document": entry.event.document_label,
            "description": entry.event.description,
            "amount": entry.amount,
            "running_balance": entry.running_balance,
            "paid": entry.event.is_fully_paid,
            "date_reason": entry.event.date_reason,
        }
        for entry in entries
    ]
    if not rows:
        return pd.DataFrame(columns=LEDGER_COLUMNS)
    return pd.DataFrame(rows, columns=LEDGER_COLUMNS)


def sort_ledger_for_display(
    df: pd.DataFrame,
    sort_keys: Sequence[SortState],
) -> pd.DataFrame:
    """
    Return a copy of a ledger DataFrame sorted for display.

    Inactive sort states are ignored. Ties keep the ledger order (stable
    sort). Unknown columns raise a ValueError.
    """
    active = [s for s in sort_keys if s.is_active]
    if not active:
        return df.copy()

    unknown = [s.field for s in active if s.field not in df.columns]
    if unknown:
        raise ValueError(f"Cannot sort ledger by unknown column(s): {unknown}")

    return df.sort_values(
        by=[s.field for s in active],
        ascending=[s.direction == "asc" for s in active],
        kind="stable",
        na_position="last",
    )


def filter_ledger(
    df: pd.DataFrame,
    direction: Optional[str] = None,
    text: Optional[str] = None,
) -> pd.DataFrame:
    """
    Filter a ledger DataFrame by direction and free text.

    ``text`` is matched case-insensitively against the description and the
    document label. Running balances are left as computed on the full ledger.
    """
    mask = pd.Series(True, index=df.index)
    if direction:
        mask &= df["direction"] == direction.upper()
    if text:
        needle = text.lower()
        mask &= df["description"].astype(str).str.lower().str.contains(
            needle, regex=False
        ) | df["document"].astype(str).str.lower().str.contains(needle, regex=False)
    return df[mask].copy()


def cash_flow_totals(
    entries: Sequence[LedgerEntry],
    baseline_balance: float = 0.0,
) -> dict[str, float]:
    """Total income, total expenses, net flow and final balance."""
    income = sum(e.amount for e in entries if e.direction == INCOME)
    expense = sum(e.amount for e in entries if e.direction == EXPENSE)
    final = entries[-1].running_balance if entries else float(baseline_balance)
    return {
        "baseline_balance": float(baseline_balance),
        "total_income": income,
        "total_expense": expense,
        "net_flow": income - expense,
        "final_balance": final,
    }


def daily_summary(entries: Sequence[LedgerEntry]) -> pd.DataFrame:
    """
    Aggregate ledger entries per day.

    Columns: date, income, expense, net, cumulative_income,
    cumulative_expense, balance (running balance at the end of the day).
    """
    df = ledger_to_dataframe(entries)
    if df.empty:
        return pd.DataFrame(columns=DAILY_COLUMNS)

    df["income"] = df["amount"].where(df["direction"] == INCOME, 0.0)
    df["expense"] = df["amount"].where(df["direction"] == EXPENSE, 0.0)

    daily = df.groupby("date", sort=True).agg(
        income=("income", "sum"),
        expense=("expense", "sum"),
        balance=("running_balance", "last"),
    )
    daily["net"] = daily["income"] - daily["expense"]
    daily["cumulative_income"] = daily["income"].cumsum()
    daily["cumulative_expense"] = daily["expense"].cumsum()

    return daily.reset_index()[DAILY_COLUMNS]


def issues_to_dataframe(issues: Sequence[DataIssue]) -> pd.DataFrame:
    """One row per data issue (kind, record_id, detail)."""
    columns = ["kind", "record_id", "detail"]
    if not issues:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(
        [
            {"kind": i.kind, "record_id": i.record_id, "detail": i.detail}
            for i in issues
        ],
        columns=columns,
    )
