# SMB CashFlow - Cash-flow reconciliation dashboard for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Document grouping: original invoices and the credit notes that correct them.

Credit notes reference their original invoice by folio. Grouping gathers each
original invoice with all of its credit notes so that the ledger can net them
and flag invoices that were fully cancelled.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from .errors import DataIssue
from .models import Invoice

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentGroup:
    """
    An original invoice with its credit notes.

    Attributes
    ----------
    original:
        The invoice being corrected.
    credit_notes:
        Credit notes referencing the original's folio, in input order.
    net_amount:
        ``|original.total_amount| - sum(|credit_note.total_amount|)``.
        Negative when credit notes exceed the original.
    is_fully_cancelled:
        True when ``net_amount <= 0``.
    """

    original: Invoice
    credit_notes: tuple[Invoice, ...]
    net_amount: float
    is_fully_cancelled: bool

    @property
    def label(self) -> str:
        """Document label of the group (folio, register number or synthetic id)."""
        return self.original.document_key or f"doc-{self.original.id}"


class _Bucket:
    __slots__ = ("original", "credit_notes")

    def __init__(self, original: Optional[Invoice] = None) -> None:
        self.original = original
        self.credit_notes: list[Invoice] = []


def _sort_key(group: DocumentGroup) -> tuple[bool, date]:
    # Undated originals go last; sorted() keeps input order among equals.
    doc_date = group.original.document_date
    return (doc_date is None, doc_date or date.min)


def group_related_documents(
    invoices: Iterable[Invoice],
    issues: Optional[list[DataIssue]] = None,
) -> list[DocumentGroup]:
    """
    Group invoices with their credit notes.

    Steps:
        1. Split credit notes (type 61 with a referenced folio) from
           candidate originals.
        2. Key candidate originals by folio, falling back to the register
           number.
        3. Attach each credit note to the bucket of its referenced folio,
           creating a placeholder bucket when the original has not been seen
           (input order is not guaranteed).
        4. Records not captured by a folio key (no key at all, or a key
           already held by another original) get their own bucket keyed by a
           synthetic id.
        5. Buckets without an original (orphan credit notes) are dropped and
           reported.
        6. Net amounts and cancellation flags are computed per bucket.
        7. Groups are sorted by the original's document date.

    Args:
        invoices: Sale (or purchase) invoices, any time range, any order.
        issues: Optional list that receives one ``orphan_credit_note``
            DataIssue per dropped credit note.

    Returns:
        A list of DocumentGroup sorted by original document date.
    """
    buckets: dict[str, _Bucket] = {}
    uncaptured: list[Invoice] = []

    # 1-3) Folio-keyed buckets
    for inv in invoices:
        if inv.is_credit_note:
            key = str(inv.referenced_folio)
            bucket = buckets.setdefault(key, _Bucket())
            bucket.credit_notes.append(inv)
            continue

        key = inv.document_key
        if not key:
            uncaptured.append(inv)
            continue

        bucket = buckets.get(key)
        if bucket is None:
            buckets[key] = _Bucket(inv)
        elif bucket.original is None:
            bucket.original = inv
        else:
            # Same folio twice: keep both documents on the ledger.
            uncaptured.append(inv)

    # 4) Singleton buckets for everything else
    for inv in uncaptured:
        synthetic = f"doc-{inv.id}"
        while synthetic in buckets:
            synthetic = f"{synthetic}+"
        buckets[synthetic] = _Bucket(inv)

    # 5-6) Drop orphans, compute net amounts
    groups: list[DocumentGroup] = []
    for key, bucket in buckets.items():
        if bucket.original is None:
            for cn in bucket.credit_notes:
                detail = (
                    f"Credit note {cn.folio or cn.id} references folio {key!r} "
                    "but no original invoice was found."
                )
                logger.warning(detail)
                if issues is not None:
                    issues.append(
                        DataIssue(
                            kind="orphan_credit_note", record_id=cn.id, detail=detail
                        )
                    )
            continue

        credited = sum(abs(cn.total_amount) for cn in bucket.credit_notes)
        net_amount = abs(bucket.original.total_amount) - credited
        groups.append(
            DocumentGroup(
                original=bucket.original,
                credit_notes=tuple(bucket.credit_notes),
                net_amount=net_amount,
                is_fully_cancelled=net_amount <= 0,
            )
        )

    # 7) Chronological order of originals
    return sorted(groups, key=_sort_key)
