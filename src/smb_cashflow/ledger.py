# SMB CashFlow - Cash-flow reconciliation dashboard for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Ledger building: turn grouped sales, purchases and manual entries into a flat
list of cash-flow events.

Rules
-----
- One event per sale group, at the group's effective date, for the original
  invoice's full amount. Credit notes are not netted into this event: each
  credit note emits its own EXPENSE event at its own document date, labeled
  "<original label>-NC<n>".
- A fully cancelled sale is never reported as paid.
- One EXPENSE event per purchase invoice with a resolved date.
- One event per manual entry, labeled "Manual-<id>".
- Events are emitted in source order (sale groups with their credit notes,
  then purchases, then manual entries) and are not deduplicated.

The direction of an invoice event follows ``document_multiplier``: a document
that subtracts (a credit note without a reference, which therefore stands as
its own group) flips the natural direction of its side.
"""

import logging
from collections.abc import Iterable, Sequence
from typing import Optional

from .dates import resolve_effective_date
from .document_types import document_multiplier
from .errors import DataIssue
from .grouping import DocumentGroup
from .models import (
    EXPENSE,
    INCOME,
    CashFlowEvent,
    Direction,
    Invoice,
    InvoiceKind,
    ManualEntry,
)
from .payments import PaymentIndex, match_payments

logger = logging.getLogger(__name__)


def _invoice_direction(invoice: Invoice, kind: InvoiceKind) -> Direction:
    natural = INCOME if kind == "SALE" else EXPENSE
    if document_multiplier(invoice.document_type_code) > 0:
        return natural
    return EXPENSE if natural == INCOME else INCOME


def sale_group_events(
    group: DocumentGroup,
    index: PaymentIndex,
    issues: Optional[list[DataIssue]] = None,
) -> list[CashFlowEvent]:
    """Events for one sale group: the original, then each dated credit note."""
    events: list[CashFlowEvent] = []
    original = group.original
    label = group.label
    customer = original.counterparty_name or "Customer"

    resolved = resolve_effective_date(
        original, "SALE", index, group.credit_notes, issues
    )
    if resolved is not None:
        match = match_payments(original.id, "SALE", original.total_amount, index)
        description = f"Sale {label} - {customer}"
        if group.is_fully_cancelled:
            description += " (fully cancelled)"
        elif group.credit_notes:
            description += f" ({len(group.credit_notes)} credit note(s))"

        events.append(
            CashFlowEvent(
                effective_date=resolved.effective_date,
                direction=_invoice_direction(original, "SALE"),
                description=description,
                amount=abs(original.total_amount),
                document_label=label,
                is_fully_paid=match.is_fully_paid and not group.is_fully_cancelled,
                source_invoice_id=original.id,
                source_invoice_kind="SALE",
                date_reason=resolved.reason,
            )
        )

    for n, credit_note in enumerate(group.credit_notes, start=1):
        if credit_note.document_date is None:
            continue
        events.append(
            CashFlowEvent(
                effective_date=credit_note.document_date,
                direction=EXPENSE,
                description=(
                    f"Credit note {credit_note.folio or credit_note.id} "
                    f"on sale {label} - {customer}"
                ),
                amount=abs(credit_note.total_amount),
                document_label=f"{label}-NC{n}",
                source_invoice_id=credit_note.id,
                source_invoice_kind="SALE",
                date_reason="DOCUMENT",
            )
        )

    return events


def purchase_event(
    invoice: Invoice,
    index: PaymentIndex,
    issues: Optional[list[DataIssue]] = None,
) -> Optional[CashFlowEvent]:
    """Event for one purchase invoice, or None when it has no resolvable date."""
    resolved = resolve_effective_date(invoice, "PURCHASE", index, (), issues)
    if resolved is None:
        return None

    match = match_payments(invoice.id, "PURCHASE", invoice.total_amount, index)
    label = invoice.document_key or f"doc-{invoice.id}"
    supplier = invoice.counterparty_name or "Supplier"

    return CashFlowEvent(
        effective_date=resolved.effective_date,
        direction=_invoice_direction(invoice, "PURCHASE"),
        description=f"Purchase {label} - {supplier}",
        amount=abs(invoice.total_amount),
        document_label=label,
        is_fully_paid=match.is_fully_paid,
        source_invoice_id=invoice.id,
        source_invoice_kind="PURCHASE",
        date_reason=resolved.reason,
    )


def manual_entry_event(entry: ManualEntry) -> Optional[CashFlowEvent]:
    """Event for one manual entry (None when the entry is undated)."""
    if entry.entry_date is None:
        return None
    return CashFlowEvent(
        effective_date=entry.entry_date,
        direction=entry.kind,
        description=entry.description,
        amount=abs(entry.amount),
        document_label=f"Manual-{entry.id}",
        date_reason="MANUAL",
    )


def build_cash_flow_events(
    sale_groups: Sequence[DocumentGroup],
    purchases: Iterable[Invoice],
    manual_entries: Iterable[ManualEntry],
    index: PaymentIndex,
    issues: Optional[list[DataIssue]] = None,
) -> list[CashFlowEvent]:
    """
    Merge all sources into one unordered list of cash-flow events.

    Args:
        sale_groups: Output of ``group_related_documents`` for sales.
        purchases: Purchase invoices.
        manual_entries: Manual cash movements.
        index: Link/payment lookups for the run.
        issues: Optional list receiving soft anomalies.

    Returns:
        Events in emission order. Invoices without any resolvable date are
        left out.
    """
    events: list[CashFlowEvent] = []

    for group in sale_groups:
        events.extend(sale_group_events(group, index, issues))

    for invoice in purchases:
        event = purchase_event(invoice, index, issues)
        if event is not None:
            events.append(event)

    for entry in manual_entries:
        event = manual_entry_event(entry)
        if event is not None:
            events.append(event)

    logger.debug("Built %d cash-flow events", len(events))
    return events
