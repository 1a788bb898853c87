from argparse import Namespace
from datetime import date

import pytest

import smb_cashflow.periods as periods


def test_period_month_bounds_and_label() -> None:
    p = periods.period_month(2024, 2)

    assert p.start == date(2024, 2, 1)
    assert p.end == date(2024, 2, 29)
    assert p.label == "2024-02"
    assert p.contains(date(2024, 2, 29))
    assert not p.contains(date(2024, 3, 1))


def test_parse_month_rejects_garbage() -> None:
    assert periods.parse_month("2023-12").end == date(2023, 12, 31)
    with pytest.raises(ValueError):
        periods.parse_month("2023/12")
    with pytest.raises(ValueError):
        periods.parse_month("2023-13")


def test_last_month_wraps_year(monkeypatch) -> None:
    monkeypatch.setattr(periods, "_today", lambda: date(2025, 1, 15))

    p = periods.period_last_month()

    assert (p.start, p.end) == (date(2024, 12, 1), date(2024, 12, 31))


def test_window_defaults_to_current_month(monkeypatch) -> None:
    monkeypatch.setattr(periods, "_today", lambda: date(2025, 6, 10))

    window = periods.determine_window_from_args(Namespace())

    assert window.label == "2025-06"


def test_window_all_dates_means_no_window() -> None:
    args = Namespace(all_dates=True, month="2024-01")
    assert periods.determine_window_from_args(args) is None


def test_custom_window_takes_precedence_over_month() -> None:
    args = Namespace(from_date="2024-01-10", to_date="2024-02-05", month="2023-05")

    window = periods.determine_window_from_args(args)

    assert window.start == date(2024, 1, 10)
    assert window.end == date(2024, 2, 5)


def test_custom_window_missing_bound_uses_the_other_month() -> None:
    only_from = periods.determine_window_from_args(
        Namespace(from_date="2024-02-10", to_date=None)
    )
    only_to = periods.determine_window_from_args(
        Namespace(from_date=None, to_date="2024-02-10")
    )

    assert only_from.end == date(2024, 2, 29)
    assert only_to.start == date(2024, 2, 1)


def test_custom_window_end_before_start_is_rejected() -> None:
    with pytest.raises(ValueError):
        periods.determine_window_from_args(
            Namespace(from_date="2024-02-10", to_date="2024-02-01")
        )
