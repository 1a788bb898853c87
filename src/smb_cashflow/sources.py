# SMB CashFlow - Cash-flow reconciliation dashboard for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Fetch layer: load every collection a reconciliation run needs.

The reads are independent, so they run in parallel on a thread pool and are
joined before the engine runs. Any failing read aborts the whole fetch with a
``SourceFetchError`` naming that collection: the engine never sees a partial
snapshot.

Collections
-----------
- sales, purchases, document_links: always the full history (credit-note
  linkage and the historical baseline need records outside the window).
- payments: restricted to the window dates when ``filter_payments`` is set.
  In full-history mode the unfiltered set is fetched as well, for the
  baseline.
- manual_entries: restricted to the window in month-only mode.
"""

import logging
from collections.abc import Callable, Hashable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Optional

from . import db
from .cache import RecordCache
from .db import DatabaseConfig
from .engine import RecordSnapshot
from .errors import SourceFetchError
from .periods import Period

logger = logging.getLogger(__name__)

SALES = "sales"
PURCHASES = "purchases"
DOCUMENT_LINKS = "document_links"
PAYMENTS = "payments"
MANUAL_ENTRIES = "manual_entries"


@dataclass(frozen=True)
class FetchJob:
    """One read of the fetch fan-out."""

    name: str
    source: str
    filters: Hashable
    load: Callable[[], list[Any]]


def _window_filters(window: Optional[Period]) -> Hashable:
    if window is None:
        return None
    return (window.start.isoformat(), window.end.isoformat())


def plan_fetch(
    cfg: DatabaseConfig,
    window: Optional[Period],
    *,
    filter_payments: bool = True,
    full_history: bool = False,
) -> list[FetchJob]:
    """
    List the reads needed for a run.

    Job names match the ``RecordSnapshot`` fields they fill.
    """
    start = window.start if window is not None else None
    end = window.end if window is not None else None

    jobs = [
        FetchJob("sales", SALES, None, lambda: db.load_invoices(cfg, "SALE")),
        FetchJob(
            "purchases", PURCHASES, None, lambda: db.load_invoices(cfg, "PURCHASE")
        ),
        FetchJob("links", DOCUMENT_LINKS, None, lambda: db.load_document_links(cfg)),
    ]

    if filter_payments and window is not None:
        jobs.append(
            FetchJob(
                "payments",
                PAYMENTS,
                _window_filters(window),
                lambda: db.load_payments(cfg, start, end),
            )
        )
        if full_history:
            jobs.append(
                FetchJob(
                    "history_payments",
                    PAYMENTS,
                    None,
                    lambda: db.load_payments(cfg),
                )
            )
    else:
        jobs.append(FetchJob("payments", PAYMENTS, None, lambda: db.load_payments(cfg)))

    if full_history or window is None:
        jobs.append(
            FetchJob(
                "manual_entries",
                MANUAL_ENTRIES,
                None,
                lambda: db.load_manual_entries(cfg),
            )
        )
    else:
        jobs.append(
            FetchJob(
                "manual_entries",
                MANUAL_ENTRIES,
                _window_filters(window),
                lambda: db.load_manual_entries(cfg, start, end),
            )
        )

    return jobs


def _run_job(job: FetchJob, cache: Optional[RecordCache]) -> tuple[Any, ...]:
    if cache is not None:
        cached = cache.get(job.source, job.filters)
        if cached is not None:
            return cached
    records = tuple(job.load())
    logger.debug("Fetched %d %s record(s) %r", len(records), job.source, job.filters)
    if cache is not None:
        cache.set(job.source, job.filters, records)
    return records


def fetch_snapshot(
    cfg: DatabaseConfig,
    window: Optional[Period],
    *,
    filter_payments: bool = True,
    full_history: bool = False,
    cache: Optional[RecordCache] = None,
    max_workers: int = 6,
) -> RecordSnapshot:
    """
    Fetch all collections of a run in parallel and bundle them.

    Args:
        cfg: Database configuration.
        window: Visible window, or None for the whole ledger.
        filter_payments: Restrict window payments to the window dates.
        full_history: Also fetch what the historical baseline needs.
        cache: Optional TTL cache shared across runs.
        max_workers: Thread pool size.

    Returns:
        A RecordSnapshot.

    Raises:
        SourceFetchError: if any read fails.
    """
    jobs = plan_fetch(
        cfg, window, filter_payments=filter_payments, full_history=full_history
    )
    results: dict[str, tuple[Any, ...]] = {}

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures = {executor.submit(_run_job, job, cache): job for job in jobs}
        for future in as_completed(futures):
            job = futures[future]
            try:
                results[job.name] = future.result()
            except Exception as exc:  # noqa: BLE001
                logger.error("Failed to fetch %s: %s", job.source, exc)
                for pending in futures:
                    pending.cancel()
                raise SourceFetchError(job.source, exc) from exc

    return RecordSnapshot(**results)
