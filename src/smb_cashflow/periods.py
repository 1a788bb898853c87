# SMB CashFlow - Cash-flow reconciliation dashboard for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for SMB CashFlow.

This module defines a Period value object (the visible window of the
cash-flow ledger) and helpers to derive it from a selected month, the current
date or explicit CLI bounds.
"""

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class Period:
    """Represents a reporting window (inclusive bounds) with a label."""

    start: date
    end: date
    label: str

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def period_month(year: int, month: int) -> Period:
    """Full calendar month."""
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {month!r}")
    last_day = monthrange(year, month)[1]
    return Period(
        start=date(year, month, 1),
        end=date(year, month, last_day),
        label=f"{year}-{month:02d}",
    )


def period_current_month() -> Period:
    today = _today()
    return period_month(today.year, today.month)


def period_last_month() -> Period:
    """Full previous calendar month."""
    today = _today()
    if today.month == 1:
        return period_month(today.year - 1, 12)
    return period_month(today.year, today.month - 1)


def parse_month(value: str) -> Period:
    """Parse a 'YYYY-MM' string into the corresponding month period."""
    try:
        year_raw, month_raw = value.strip().split("-")
        year, month = int(year_raw), int(month_raw)
    except ValueError as exc:
        raise ValueError(f"Invalid month {value!r}, expected YYYY-MM.") from exc
    return period_month(year, month)


def determine_window_from_args(args) -> Optional[Period]:
    """
    Determine the visible window from CLI args.

    Priority (highest to lowest):

        1. args.all_dates: no window (whole ledger)
        2. args.from_date / args.to_date (custom window; a missing bound
           is taken from the other one's month)
        3. args.month (YYYY-MM, or 'current' / 'last')
        4. current month by default
    """
    if getattr(args, "all_dates", False):
        return None

    from_raw: Optional[str] = getattr(args, "from_date", None)
    to_raw: Optional[str] = getattr(args, "to_date", None)
    if from_raw or to_raw:
        start = date.fromisoformat(from_raw) if from_raw else None
        end = date.fromisoformat(to_raw) if to_raw else None
        if start is None:
            start = end.replace(day=1)
        if end is None:
            end = period_month(start.year, start.month).end
        if end < start:
            raise ValueError("Custom window end date cannot be before start date.")
        return Period(start=start, end=end, label=f"Custom window ({start} → {end})")

    month = getattr(args, "month", None)
    if month == "last":
        return period_last_month()
    if month and month != "current":
        return parse_month(month)

    return period_current_month()
