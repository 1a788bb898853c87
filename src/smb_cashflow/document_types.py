# SMB CashFlow - Cash-flow reconciliation dashboard for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Electronic tax document types and their treatment in cash-flow netting.

Invoices are identified by the tax authority document type code (DTE code).
This module centralizes which codes subtract from a total (credit notes) and
their display names, so that both the visible-window ledger and the
historical baseline apply the same sign rule.
"""

CREDIT_NOTE = "61"

# Documents that subtract from a total.
NEGATIVE_TYPES = frozenset({CREDIT_NOTE})

_DOCUMENT_NAMES = {
    "33": "Electronic invoice",
    "34": "Exempt electronic invoice",
    "39": "Electronic receipt",
    "41": "Exempt electronic receipt",
    "43": "Invoice settlement",
    "46": "Electronic purchase invoice",
    "50": "Dispatch guide",
    "52": "Electronic dispatch guide",
    "55": "Electronic purchase invoice",
    "56": "Electronic debit note",
    "61": "Electronic credit note",
    "110": "Export invoice",
    "111": "Export debit note",
    "112": "Export credit note",
}


def normalize_type_code(code) -> str:
    """Return a document type code as a stripped string ('' when missing)."""
    if code is None:
        return ""
    text = str(code).strip()
    # Numeric codes read from spreadsheets may come back as '61.0'.
    if text.endswith(".0") and text[:-2].isdigit():
        text = text[:-2]
    return text


def is_credit_note(code) -> bool:
    return normalize_type_code(code) == CREDIT_NOTE


def document_multiplier(code) -> int:
    """
    Return +1 if the document adds to a total and -1 if it subtracts.

    Unknown codes add, like regular documents.
    """
    text = normalize_type_code(code)
    if text in NEGATIVE_TYPES:
        return -1
    return 1


def document_type_name(code) -> str:
    """Human-readable name of a document type code."""
    text = normalize_type_code(code)
    return _DOCUMENT_NAMES.get(text, f"Type {text}")
