# SMB CashFlow - Cash-flow reconciliation dashboard for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Typed records used by the reconciliation engine.

Input records (Invoice, ExternalDocumentLink, Payment, ManualEntry) are
loaded from the record store and are read-only for a reconciliation run.
Output records (CashFlowEvent, LedgerEntry) are recomputed on every request
and never persisted.

Conventions
-----------
- Dates are ``datetime.date``; an absent date is ``None``.
- Amounts are ``float`` in the presentation currency.
- Event amounts are never negative: the sign lives in ``direction``.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal, Optional

from .document_types import is_credit_note

Direction = Literal["INCOME", "EXPENSE"]
InvoiceKind = Literal["SALE", "PURCHASE"]
DateReason = Literal["CREDIT_NOTE", "FACTORING", "PAYMENT", "DOCUMENT", "MANUAL"]
CashFlowMode = Literal["month_only", "full_history"]

INCOME: Direction = "INCOME"
EXPENSE: Direction = "EXPENSE"


@dataclass(frozen=True)
class Invoice:
    """
    A sale or purchase tax document (invoice, receipt, debit or credit note).

    ``folio`` is the document number printed on the invoice; ``number`` is
    the row number in the tax register, used as a fallback key when the folio
    is missing. Credit notes carry the folio of the invoice they correct in
    ``referenced_folio``.
    """

    id: int
    folio: Optional[str]
    counterparty_name: Optional[str]
    counterparty_tax_id: Optional[str]
    document_type_code: str
    document_date: Optional[date]
    total_amount: float
    number: Optional[int] = None
    referenced_folio: Optional[str] = None
    is_factored: bool = False
    factoring_date: Optional[date] = None

    @property
    def is_credit_note(self) -> bool:
        """True for a credit note that references an original invoice."""
        return is_credit_note(self.document_type_code) and bool(self.referenced_folio)

    @property
    def document_key(self) -> str:
        """Folio, falling back to the register number ('' when both are missing)."""
        if self.folio:
            return str(self.folio)
        if self.number is not None:
            return str(self.number)
        return ""


@dataclass(frozen=True)
class ExternalDocumentLink:
    """Bridge between an invoice and its canonical (XML) document record."""

    id: int
    linked_sale_invoice_id: Optional[int]
    linked_purchase_invoice_id: Optional[int]
    emission_date: Optional[date]
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Payment:
    """A payment applied to the document behind an external document link."""

    id: int
    external_document_link_id: int
    payment_date: Optional[date]
    payment_amount: float


@dataclass(frozen=True)
class ManualEntry:
    """A manually entered cash movement, independent of any invoice."""

    id: int
    kind: Direction
    description: str
    amount: float
    entry_date: Optional[date]


@dataclass(frozen=True)
class CashFlowEvent:
    """
    One signed cash movement placed on the ledger.

    Attributes
    ----------
    effective_date:
        Date under which the event is placed.
    direction:
        "INCOME" or "EXPENSE".
    description:
        Human-readable label.
    amount:
        Non-negative amount.
    document_label:
        Folio of the source document, derived label for credit notes
        ("<folio>-NC<n>") or "Manual-<id>" for manual entries.
    is_fully_paid:
        Paid status for invoice events, None for other events.
    source_invoice_id, source_invoice_kind:
        Origin invoice, when the event comes from an invoice.
    date_reason:
        Which rule produced ``effective_date``.
    """

    effective_date: date
    direction: Direction
    description: str
    amount: float
    document_label: str
    is_fully_paid: Optional[bool] = None
    source_invoice_id: Optional[int] = None
    source_invoice_kind: Optional[InvoiceKind] = None
    date_reason: Optional[DateReason] = None

    @property
    def signed_amount(self) -> float:
        return self.amount if self.direction == INCOME else -self.amount


@dataclass(frozen=True)
class LedgerEntry:
    """A CashFlowEvent with the running balance after it was applied."""

    event: CashFlowEvent
    running_balance: float

    @property
    def effective_date(self) -> date:
        return self.event.effective_date

    @property
    def direction(self) -> Direction:
        return self.event.direction

    @property
    def amount(self) -> float:
        return self.event.amount
