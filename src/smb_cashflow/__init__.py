# SMB CashFlow - Cash-flow reconciliation dashboard for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
SMB CashFlow
------------

A Python-based cash-flow reconciliation application designed for Small and
Medium-sized Businesses (SMBs). It turns sales and purchase invoices, credit
notes, payment records, invoice factoring and manual cash entries into a
single dated ledger with running balances.

Main capabilities:
- credit-note grouping by referenced folio, with net amounts and full
  cancellation detection,
- effective cash dates resolved from credit notes, factoring, payments and
  document dates (in that order of priority),
- month-only and full-history running balances,
- parallel, cached fetching of the input collections (SQLite record store),
- CSV import of register exports, factoring and manual entry management,
- ledger, totals and daily summary views for console or CSV output.

SMB CashFlow separates computation (engine), configuration (TOML), and
presentation (CLI), making it suitable for scripting and automation.


Version: 0.1.0

Usage:
    python -m smb_cashflow.cli --help
"""

__all__ = ["engine", "views", "io", "cashflow_service"]

__version__ = "0.1.0"
