# SMB CashFlow - Cash-flow reconciliation dashboard for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Running balances.

The running balance is always recomputed from scratch for a given event set
and baseline. It is never patched in place when events change.
"""

from collections.abc import Iterable, Sequence
from datetime import date

from .models import INCOME, CashFlowEvent, LedgerEntry


def sort_chronologically(events: Iterable[CashFlowEvent]) -> list[CashFlowEvent]:
    """Sort events by effective date; equal dates keep their emission order."""
    return sorted(events, key=lambda e: e.effective_date)


def compute_running_balance(
    events: Sequence[CashFlowEvent],
    baseline_balance: float = 0.0,
) -> list[LedgerEntry]:
    """
    Sort events chronologically and attach the running balance to each one.

    Args:
        events: Cash-flow events in emission order.
        baseline_balance: Balance before the first event (0 in month-only
            mode, the accumulated pre-window total in full-history mode).

    Returns:
        Ledger entries in chronological order. The last running balance is
        ``baseline + sum(income) - sum(expense)``.
    """
    balance = float(baseline_balance)
    entries: list[LedgerEntry] = []
    for event in sort_chronologically(events):
        if event.direction == INCOME:
            balance += event.amount
        else:
            balance -= event.amount
        entries.append(LedgerEntry(event=event, running_balance=balance))
    return entries


def accumulated_balance_before(
    events: Iterable[CashFlowEvent],
    as_of: date,
) -> float:
    """
    Signed total of every event whose effective date is strictly before ``as_of``.

    This is the historical baseline of a window starting on ``as_of``. Sales,
    purchases, credit notes and manual entries all go through the same
    ledger rules, so the baseline and the window never disagree on sign or
    placement of an event.
    """
    total = 0.0
    for event in sort_chronologically(events):
        if event.effective_date >= as_of:
            break
        total += event.signed_amount
    return total
