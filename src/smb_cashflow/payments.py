# SMB CashFlow - Cash-flow reconciliation dashboard for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Payment matching.

An invoice reaches its payments through its external document link:

    invoice.id -> ExternalDocumentLink -> Payment[]

``PaymentIndex`` pre-builds the two lookups once per reconciliation run so
that matching an invoice is a pair of dictionary lookups.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

from .models import ExternalDocumentLink, InvoiceKind, Payment


@dataclass(frozen=True)
class PaymentMatch:
    """Representative payment date and full-payment status of an invoice."""

    payment_date: Optional[date]
    is_fully_paid: bool


NO_PAYMENT = PaymentMatch(payment_date=None, is_fully_paid=False)


@dataclass(frozen=True)
class PaymentIndex:
    """
    Lookup maps for links and payments.

    Attributes
    ----------
    sale_links:
        Sale invoice id -> link.
    purchase_links:
        Purchase invoice id -> link.
    payments_by_link:
        Link id -> payments, in source order.
    """

    sale_links: dict[int, ExternalDocumentLink] = field(default_factory=dict)
    purchase_links: dict[int, ExternalDocumentLink] = field(default_factory=dict)
    payments_by_link: dict[int, list[Payment]] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        links: Iterable[ExternalDocumentLink],
        payments: Iterable[Payment],
    ) -> "PaymentIndex":
        """Build the index. When an invoice has several links, the first wins."""
        sale_links: dict[int, ExternalDocumentLink] = {}
        purchase_links: dict[int, ExternalDocumentLink] = {}
        for link in links:
            if link.linked_sale_invoice_id is not None:
                sale_links.setdefault(link.linked_sale_invoice_id, link)
            if link.linked_purchase_invoice_id is not None:
                purchase_links.setdefault(link.linked_purchase_invoice_id, link)

        payments_by_link: dict[int, list[Payment]] = defaultdict(list)
        for payment in payments:
            payments_by_link[payment.external_document_link_id].append(payment)

        return cls(
            sale_links=sale_links,
            purchase_links=purchase_links,
            payments_by_link=dict(payments_by_link),
        )

    def link_for(
        self, invoice_id: int, kind: InvoiceKind
    ) -> Optional[ExternalDocumentLink]:
        links = self.sale_links if kind == "SALE" else self.purchase_links
        return links.get(invoice_id)

    def payments_for(self, link_id: int) -> list[Payment]:
        return self.payments_by_link.get(link_id, [])


def match_payments(
    invoice_id: int,
    kind: InvoiceKind,
    invoice_total: float,
    index: PaymentIndex,
) -> PaymentMatch:
    """
    Find the payment date and full-payment status of an invoice.

    - No link: no payment date, not paid.
    - ``payment_date`` is the date of the first matched payment that carries
      one; with installments this is not necessarily the settlement date.
    - ``is_fully_paid`` compares the sum of payment amounts with the absolute
      invoice total directly (no tolerance).
    """
    link = index.link_for(invoice_id, kind)
    if link is None:
        return NO_PAYMENT

    matched = index.payments_for(link.id)

    payment_date = next(
        (p.payment_date for p in matched if p.payment_date is not None), None
    )
    paid = sum(p.payment_amount for p in matched)

    return PaymentMatch(
        payment_date=payment_date,
        is_fully_paid=paid >= abs(invoice_total),
    )
