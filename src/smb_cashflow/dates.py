# SMB CashFlow - Cash-flow reconciliation dashboard for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Effective-date resolution.

Every invoice is placed on the ledger under exactly one date. The candidates
are tried in a fixed priority order and the first available one wins:

    1. CREDIT_NOTE : emission date of the original's external document, when
                     the invoice has at least one credit note.
    2. FACTORING   : factoring date, when the invoice was factored.
    3. PAYMENT     : date of the first recorded payment.
    4. DOCUMENT    : the invoice's own document date.

A credit note moves revenue recognition to the moment the correction was
issued. Factoring fixes cash realization contractually. Otherwise the payment
date is the best proxy for cash timing, and the document date keeps unpaid
invoices visible.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import Optional

from .errors import DataIssue
from .models import DateReason, Invoice, InvoiceKind
from .payments import PaymentIndex, match_payments

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedDate:
    """Effective date of an invoice and the rule that produced it."""

    effective_date: date
    reason: DateReason


def _credit_note_emission_date(
    invoice: Invoice,
    kind: InvoiceKind,
    index: PaymentIndex,
    issues: Optional[list[DataIssue]],
) -> Optional[date]:
    link = index.link_for(invoice.id, kind)
    if link is not None:
        if link.emission_date is not None:
            return link.emission_date
        if link.created_at is not None:
            return link.created_at.date()

    detail = (
        f"Invoice {invoice.document_key or invoice.id} has credit notes but no "
        "dated external document link; falling back to the next date rule."
    )
    logger.debug(detail)
    if issues is not None:
        issues.append(
            DataIssue(kind="missing_link", record_id=invoice.id, detail=detail)
        )
    return None


def resolve_effective_date(
    invoice: Invoice,
    kind: InvoiceKind,
    index: PaymentIndex,
    credit_notes: Sequence[Invoice] = (),
    issues: Optional[list[DataIssue]] = None,
) -> Optional[ResolvedDate]:
    """
    Resolve the date under which an invoice is placed on the ledger.

    Args:
        invoice: The original invoice (sale or purchase).
        kind: "SALE" or "PURCHASE"; selects which link id is matched.
        index: Pre-built link/payment lookups for the run.
        credit_notes: Credit notes grouped with the invoice.
        issues: Optional list receiving soft anomalies (missing link,
            unresolved date).

    Returns:
        A ResolvedDate, or None when no date at all is available. Callers
        leave such invoices out of the ledger.
    """
    if credit_notes:
        emission = _credit_note_emission_date(invoice, kind, index, issues)
        if emission is not None:
            return ResolvedDate(emission, "CREDIT_NOTE")

    if invoice.is_factored and invoice.factoring_date is not None:
        return ResolvedDate(invoice.factoring_date, "FACTORING")

    match = match_payments(invoice.id, kind, invoice.total_amount, index)
    if match.payment_date is not None:
        return ResolvedDate(match.payment_date, "PAYMENT")

    if invoice.document_date is not None:
        return ResolvedDate(invoice.document_date, "DOCUMENT")

    detail = (
        f"No effective date for {kind.lower()} invoice "
        f"{invoice.document_key or invoice.id}; left out of the ledger."
    )
    logger.warning(detail)
    if issues is not None:
        issues.append(
            DataIssue(kind="unresolved_date", record_id=invoice.id, detail=detail)
        )
    return None
