# SMB CashFlow - Cash-flow reconciliation dashboard for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Cash-flow reconciliation engine for SMB CashFlow.

This module turns a snapshot of raw records into the ledger shown on the
dashboard. It is pure: no I/O, no clock, no shared state. Running it twice on
the same snapshot gives the same ledger, in the same order, with the same
balances.

Pipeline
--------
1. Index
   Build the link and payment lookups (``PaymentIndex``) once.

2. Group
   Group sale invoices with their credit notes
   (``grouping.group_related_documents``).

3. Resolve and build
   Resolve each invoice's effective date and paid status, and emit one
   cash-flow event per sale group, credit note, purchase and manual entry
   (``ledger.build_cash_flow_events``).

4. Window
   Keep the events whose effective date falls in the visible window (all
   events when no window is given).

5. Baseline
   In "full_history" mode, the running balance starts from the signed total
   of every event dated strictly before the window start. The same event
   rules are used for history and window, over the unfiltered payment set.
   An invoice already placed in the window is not counted again in the
   baseline.
   In "month_only" mode the baseline is 0.

6. Balance
   Sort the window events chronologically (stable) and attach running
   balances (``balance.compute_running_balance``).

Soft anomalies collected along the way are returned as ``DataIssue`` records
in the result; they never abort a run.
"""

from dataclasses import dataclass, field
from typing import Optional

from .balance import accumulated_balance_before, compute_running_balance
from .errors import DataIssue
from .grouping import DocumentGroup, group_related_documents
from .ledger import build_cash_flow_events
from .models import (
    CashFlowEvent,
    CashFlowMode,
    ExternalDocumentLink,
    Invoice,
    LedgerEntry,
    ManualEntry,
    Payment,
)
from .payments import PaymentIndex
from .periods import Period

CASH_FLOW_MODES: tuple[CashFlowMode, ...] = ("month_only", "full_history")


@dataclass(frozen=True)
class RecordSnapshot:
    """
    All records needed for one reconciliation run.

    Attributes
    ----------
    sales, purchases:
        Full invoice history (credit-note linkage needs it).
    links:
        All external document links.
    payments:
        Payments used for the visible window. May be pre-filtered to the
        window dates.
    manual_entries:
        Manual cash movements.
    history_payments:
        Unfiltered payments used for the historical baseline. None means
        ``payments`` is already unfiltered.
    """

    sales: tuple[Invoice, ...] = ()
    purchases: tuple[Invoice, ...] = ()
    links: tuple[ExternalDocumentLink, ...] = ()
    payments: tuple[Payment, ...] = ()
    manual_entries: tuple[ManualEntry, ...] = ()
    history_payments: Optional[tuple[Payment, ...]] = None


@dataclass(frozen=True)
class CashFlowResult:
    """
    Ledger ready for display or export.

    Attributes
    ----------
    entries:
        Ledger entries in chronological order with running balances.
    baseline_balance:
        Balance the running total started from.
    issues:
        Soft data-quality anomalies detected during the run.
    window:
        Visible window, or None for the whole ledger.
    mode:
        "month_only" or "full_history".
    """

    entries: tuple[LedgerEntry, ...]
    baseline_balance: float
    window: Optional[Period]
    mode: CashFlowMode
    issues: tuple[DataIssue, ...] = field(default=())

    @property
    def final_balance(self) -> float:
        if not self.entries:
            return self.baseline_balance
        return self.entries[-1].running_balance


def build_events(
    snapshot: RecordSnapshot,
    payments: Optional[tuple[Payment, ...]] = None,
    issues: Optional[list[DataIssue]] = None,
) -> tuple[list[DocumentGroup], list[CashFlowEvent]]:
    """
    Group sales and build every cash-flow event of a snapshot.

    Args:
        snapshot: Records of the run.
        payments: Payment set to match against (defaults to
            ``snapshot.payments``).
        issues: Optional list receiving soft anomalies.

    Returns:
        The sale groups and the events in emission order.
    """
    index = PaymentIndex.build(
        snapshot.links, snapshot.payments if payments is None else payments
    )
    groups = group_related_documents(snapshot.sales, issues)
    events = build_cash_flow_events(
        groups, snapshot.purchases, snapshot.manual_entries, index, issues
    )
    return groups, events


def _invoice_keys(events: list[CashFlowEvent]) -> set[tuple[str, int]]:
    return {
        (e.source_invoice_kind, e.source_invoice_id)
        for e in events
        if e.source_invoice_kind is not None and e.source_invoice_id is not None
    }


def historical_baseline(
    snapshot: RecordSnapshot,
    window: Period,
    window_events: Optional[list[CashFlowEvent]] = None,
) -> float:
    """
    Signed total of all events dated strictly before the window start.

    History is built over the unfiltered payments, so an invoice can resolve
    to a date before the window there while the window (built over filtered
    payments) still places it on its document date. Invoices already shown
    in ``window_events`` are left out of the baseline: each invoice counts on
    one side only.
    """
    payments = snapshot.history_payments
    if payments is None:
        payments = snapshot.payments
    _, events = build_events(snapshot, payments)
    if window_events:
        shown = _invoice_keys(window_events)
        events = [
            e
            for e in events
            if (e.source_invoice_kind, e.source_invoice_id) not in shown
        ]
    return accumulated_balance_before(events, window.start)


def reconcile(
    snapshot: RecordSnapshot,
    window: Optional[Period] = None,
    mode: CashFlowMode = "month_only",
) -> CashFlowResult:
    """
    Compute the cash-flow ledger of a snapshot.

    Args:
        snapshot: Records fetched for the run.
        window: Visible window (inclusive), or None for every event.
        mode: "month_only" (baseline 0) or "full_history" (baseline from all
            events before the window).

    Returns:
        A CashFlowResult.

    Raises:
        ValueError: if ``mode`` is unknown.
    """
    if mode not in CASH_FLOW_MODES:
        raise ValueError(f"Unknown cash-flow mode: {mode!r}")

    issues: list[DataIssue] = []
    _, events = build_events(snapshot, issues=issues)

    if window is not None:
        events = [e for e in events if window.contains(e.effective_date)]

    baseline = 0.0
    if mode == "full_history" and window is not None:
        baseline = historical_baseline(snapshot, window, events)

    entries = compute_running_balance(events, baseline)

    return CashFlowResult(
        entries=tuple(entries),
        baseline_balance=baseline,
        window=window,
        mode=mode,
        issues=tuple(issues),
    )
