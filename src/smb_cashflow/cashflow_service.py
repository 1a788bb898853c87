# SMB CashFlow - Cash-flow reconciliation dashboard for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
High-level cash-flow services.

This module sits between:
- the fetch layer (``sources.py``) and the pure reconciliation engine
  (``engine.py``), and
- user-facing layers such as the CLI.

Responsibilities
----------------
1) Cash-flow computation
   - Fetch every input collection in parallel (through the shared record
     cache) and run the reconciliation for a visible window and mode.
   - Last request wins: when a newer request starts while an older one is
     still fetching, the older one is discarded with
     ``RequestSupersededError`` instead of returning a stale ledger.

2) Factoring
   - Mark / unmark a sale invoice as factored. The sales cache is
     invalidated; callers re-run ``compute_cash_flow`` to see the effect.

3) Manual entries
   - Create, edit, delete and list manual cash movements. The manual
     entries cache is invalidated after every change.
"""

import logging
import threading
from datetime import date
from typing import Optional

from . import db
from .cache import RecordCache
from .config import AppConfig
from .db import ManualEntryUpdate, NewManualEntry
from .engine import CashFlowResult, reconcile
from .errors import RequestSupersededError
from .grouping import DocumentGroup, group_related_documents
from .models import CashFlowMode, Direction, Invoice, ManualEntry
from .periods import Period
from .sources import MANUAL_ENTRIES, SALES, fetch_snapshot

logger = logging.getLogger(__name__)


class CashFlowService:
    """
    Entry point for computing and editing cash flow.

    Args:
        app_config: Global application configuration.
        cache: Record cache shared by all requests of this service. Built
            from ``app_config.cache`` when omitted.
    """

    def __init__(
        self,
        app_config: AppConfig,
        cache: Optional[RecordCache] = None,
    ) -> None:
        self.app_config = app_config
        if cache is None:
            ttl = app_config.cache.ttl_seconds if app_config.cache.enabled else 0
            cache = RecordCache(ttl_seconds=ttl)
        self.cache = cache
        self._lock = threading.Lock()
        self._generation = 0

    # ------------------------------------------------------------------
    # Cash flow
    # ------------------------------------------------------------------

    def _next_generation(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def compute_cash_flow(
        self,
        window: Optional[Period],
        mode: Optional[CashFlowMode] = None,
    ) -> CashFlowResult:
        """
        Compute the cash-flow ledger for a visible window.

        Parameters
        ----------
        window:
            Visible window (inclusive). None shows every event.
        mode:
            "month_only" or "full_history". Defaults to
            ``[cashflow].default_mode``.

        Returns
        -------
        CashFlowResult

        Raises
        ------
        SourceFetchError
            If any input collection could not be fetched.
        RequestSupersededError
            If a newer request started before this one finished fetching.
        ValueError
            If ``mode`` is unknown.
        """
        options = self.app_config.cashflow
        mode = mode or options.default_mode
        generation = self._next_generation()

        snapshot = fetch_snapshot(
            self.app_config.database,
            window,
            filter_payments=options.filter_payments_to_window,
            full_history=mode == "full_history",
            cache=self.cache,
            max_workers=options.fetch_workers,
        )

        if not self._is_current(generation):
            logger.info("Discarding superseded cash-flow request #%d", generation)
            raise RequestSupersededError(
                f"Cash-flow request #{generation} was superseded by a newer one."
            )

        result = reconcile(snapshot, window, mode)
        if result.issues:
            logger.warning(
                "Cash flow computed with %d data issue(s)", len(result.issues)
            )
        return result

    def sale_groups(self) -> list[DocumentGroup]:
        """Sale invoices grouped with their credit notes."""
        sales = db.load_invoices(self.app_config.database, "SALE")
        return group_related_documents(sales)

    # ------------------------------------------------------------------
    # Factoring
    # ------------------------------------------------------------------

    def mark_factored(self, invoice_id: int, factoring_date: date) -> Invoice:
        """
        Mark a sale invoice as factored on ``factoring_date``.

        Raises
        ------
        ValueError
            If the invoice does not exist.
        """
        invoice = db.mark_invoice_factored(
            self.app_config.database, invoice_id, factoring_date
        )
        self.cache.invalidate(SALES)
        return invoice

    def unmark_factored(self, invoice_id: int) -> Invoice:
        """Clear the factoring flag of a sale invoice."""
        invoice = db.unmark_invoice_factored(self.app_config.database, invoice_id)
        self.cache.invalidate(SALES)
        return invoice

    # ------------------------------------------------------------------
    # Manual entries
    # ------------------------------------------------------------------

    def add_manual_entry(
        self,
        kind: Direction,
        description: str,
        amount: float,
        entry_date: date,
    ) -> ManualEntry:
        """
        Create a manual cash movement.

        Raises
        ------
        ValueError
            If the amount is not strictly positive or the description is
            empty.
        """
        entry = db.insert_manual_entry(
            self.app_config.database,
            NewManualEntry(
                kind=kind,
                description=description,
                amount=amount,
                entry_date=entry_date,
            ),
        )
        self.cache.invalidate(MANUAL_ENTRIES)
        return entry

    def update_manual_entry(
        self, entry_id: int, update: ManualEntryUpdate
    ) -> ManualEntry:
        entry = db.update_manual_entry(self.app_config.database, entry_id, update)
        self.cache.invalidate(MANUAL_ENTRIES)
        return entry

    def delete_manual_entry(self, entry_id: int) -> bool:
        deleted = db.delete_manual_entry(self.app_config.database, entry_id)
        if deleted:
            self.cache.invalidate(MANUAL_ENTRIES)
        return deleted

    def list_manual_entries(
        self,
        window: Optional[Period] = None,
        kind: Optional[Direction] = None,
        text: Optional[str] = None,
    ) -> list[ManualEntry]:
        """List manual entries, optionally filtered by window, kind and text."""
        return db.load_manual_entries(
            self.app_config.database,
            start=window.start if window else None,
            end=window.end if window else None,
            kind=kind,
            description_contains=text,
        )
