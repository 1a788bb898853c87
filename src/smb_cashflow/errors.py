# SMB CashFlow - Cash-flow reconciliation dashboard for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Error taxonomy for SMB CashFlow.

Only transport/storage failures are raised to callers. Data-shape anomalies
found during reconciliation (missing document links, invoices without any
usable date, credit notes referencing an unknown folio) never interrupt a
run: they are reported as ``DataIssue`` records next to the ledger and logged.
"""

from dataclasses import dataclass
from typing import Literal, Optional

IssueKind = Literal["missing_link", "unresolved_date", "orphan_credit_note"]


@dataclass(frozen=True)
class DataIssue:
    """
    A soft data-quality anomaly detected during reconciliation.

    Attributes
    ----------
    kind:
        "missing_link"       : no external document link (or no usable date
                               on it) for an invoice that has credit notes.
        "unresolved_date"    : no effective date could be resolved, the
                               invoice was left out of the ledger.
        "orphan_credit_note" : a credit note references a folio with no
                               known original invoice.
    record_id:
        Identifier of the invoice or credit note concerned.
    detail:
        Human-readable description.
    """

    kind: IssueKind
    record_id: Optional[int]
    detail: str


class CashFlowError(Exception):
    """Base class for all errors raised by SMB CashFlow."""


class SourceFetchError(CashFlowError):
    """
    Raised when one of the input collections could not be fetched.

    The whole reconciliation run is aborted: a partial ledger is never
    returned as if it were complete.
    """

    def __init__(self, source: str, cause: Optional[BaseException] = None) -> None:
        self.source = source
        self.cause = cause
        message = f"Could not load cash flow: failed to fetch {source}"
        if cause is not None:
            message = f"{message} ({cause})"
        super().__init__(message)


class RequestSupersededError(CashFlowError):
    """Raised when a newer cash-flow request replaced an in-flight one."""
