# SMB CashFlow - Cash-flow reconciliation dashboard for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for SMB CashFlow.

This module wires together the main building blocks of SMB CashFlow:

- global configuration (database, reconciliation, cache, display options),
- CSV import & database access,
- the cash-flow service (parallel fetch + reconciliation engine),
- view helpers (ledger tables, totals, daily summary).

The CLI is intentionally thin: it does not implement reconciliation logic
itself. It orchestrates the underlying modules based on command-line
arguments and configuration files.


Default command: the cash-flow ledger
-------------------------------------

Without a subcommand, the CLI computes and renders the ledger of the
selected window:

    python -m smb_cashflow.cli --month 2024-03 --mode full_history

Window selection (highest priority first):

- ``--all``: no window, every dated event.
- ``--from-date`` / ``--to-date``: custom inclusive window. A missing bound
  is taken from the month of the other one.
- ``--month``: ``YYYY-MM``, ``current`` (default) or ``last``.

Modes (``--mode``):

- ``month_only``: the running balance starts at 0.
- ``full_history``: the running balance starts from the net of every event
  dated before the window.

Display options: ``--sort-by COL[:asc|desc] ...`` reorders rows for reading
(balances are not recomputed), ``--direction`` and ``--search`` filter rows,
``--display-mode`` / ``--output`` choose console tables and/or CSV files, and
``--show-issues`` lists the data-quality issues found during the run.


Subcommands
-----------

- ``import {sales,purchases,links,payments,manual} CSV_PATH``
- ``factoring mark INVOICE_ID DATE`` / ``factoring unmark INVOICE_ID``
- ``manual list`` / ``manual add`` / ``manual delete ENTRY_ID``
- ``groups``: sale invoices with their credit notes and net amounts.
"""

import argparse
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from . import __version__
from .cashflow_service import CashFlowService
from .config import (
    DEFAULT_CONFIG_FILE,
    AppConfig,
    default_app_config,
    load_app_config,
)
from .db import (
    count_records,
    import_document_links,
    import_invoices,
    import_manual_entries,
    import_payments,
    init_database,
)
from .document_types import document_type_name
from .errors import CashFlowError
from .io import (
    read_document_links,
    read_invoices,
    read_manual_entries,
    read_payments,
)
from .periods import determine_window_from_args
from .views import (
    LEDGER_COLUMNS,
    SortState,
    cash_flow_totals,
    daily_summary,
    filter_ledger,
    issues_to_dataframe,
    ledger_to_dataframe,
    sort_ledger_for_display,
)

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="python -m smb_cashflow.cli",
        description=(
            "SMB CashFlow - Cash-flow reconciliation dashboard for SMBs. "
            "Reconciles invoices, credit notes, payments, factoring and manual "
            "entries into a dated ledger with running balances."
        ),
    )

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of smb_cashflow and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the main TOML configuration file. If omitted, "
            f"'{DEFAULT_CONFIG_FILE}' in the current directory is used when "
            "present, built-in defaults otherwise."
        ),
    )
    ap.add_argument(
        "--log-level",
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override the logging.level setting from the configuration file.",
    )

    # Window selection
    ap.add_argument(
        "--month",
        help="Month to display: YYYY-MM, 'current' (default) or 'last'.",
    )
    ap.add_argument(
        "--from-date",
        dest="from_date",
        help="Custom window start date (YYYY-MM-DD).",
    )
    ap.add_argument(
        "--to-date",
        dest="to_date",
        help="Custom window end date (YYYY-MM-DD).",
    )
    ap.add_argument(
        "--all",
        dest="all_dates",
        action="store_true",
        help="Show every dated event (no window).",
    )
    ap.add_argument(
        "--mode",
        choices=["month_only", "full_history"],
        help=(
            "Baseline of the running balance. 'month_only' starts at 0, "
            "'full_history' starts from the net of all earlier events. "
            "Defaults to cashflow.default_mode."
        ),
    )

    # Display options
    ap.add_argument(
        "--sort-by",
        dest="sort_by",
        nargs="+",
        metavar="COL[:asc|desc]",
        help=f"Sort rows for display. Columns: {', '.join(LEDGER_COLUMNS)}.",
    )
    ap.add_argument(
        "--direction",
        choices=["income", "expense"],
        help="Show only income or expense rows.",
    )
    ap.add_argument(
        "--search",
        help="Show only rows whose description or document contains this text.",
    )
    ap.add_argument(
        "--daily",
        action="store_true",
        help="Also render the per-day summary.",
    )
    ap.add_argument(
        "--show-issues",
        dest="show_issues",
        action="store_true",
        help="List data-quality issues found during reconciliation.",
    )
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "csv", "both"],
        help=(
            "Override the display.mode setting from the configuration file. "
            "'table' prints results to stdout, "
            "'csv' writes CSV files only, "
            "'both' does both."
        ),
    )
    ap.add_argument(
        "--output",
        dest="output_dir",
        help=(
            "Output directory where CSV files will be written when display "
            "mode includes 'csv'. If omitted, 'data/output' is used."
        ),
    )

    subparsers = ap.add_subparsers(
        dest="command",
        metavar="command",
        help="Optional subcommands (import, factoring, manual, groups).",
    )

    # import
    import_parser = subparsers.add_parser(
        "import", help="Import a CSV export into the database."
    )
    import_parser.add_argument(
        "source",
        choices=["sales", "purchases", "links", "payments", "manual"],
        help="Kind of records contained in the CSV file.",
    )
    import_parser.add_argument("csv_path", metavar="CSV_PATH")

    # factoring
    factoring_parser = subparsers.add_parser(
        "factoring", help="Mark or unmark a sale invoice as factored."
    )
    factoring_subparsers = factoring_parser.add_subparsers(
        dest="factoring_command", metavar="factoring-command"
    )
    factoring_mark = factoring_subparsers.add_parser(
        "mark", help="Mark a sale invoice as factored."
    )
    factoring_mark.add_argument("invoice_id", type=int)
    factoring_mark.add_argument("factoring_date", help="Date (YYYY-MM-DD).")
    factoring_unmark = factoring_subparsers.add_parser(
        "unmark", help="Clear the factoring flag of a sale invoice."
    )
    factoring_unmark.add_argument("invoice_id", type=int)

    # manual
    manual_parser = subparsers.add_parser(
        "manual", help="Manage manual cash entries."
    )
    manual_subparsers = manual_parser.add_subparsers(
        dest="manual_command", metavar="manual-command"
    )
    manual_list = manual_subparsers.add_parser("list", help="List manual entries.")
    manual_list.add_argument("--kind", choices=["income", "expense"])
    manual_list.add_argument("--text", help="Description substring filter.")
    manual_list.add_argument("--from-date", dest="list_from")
    manual_list.add_argument("--to-date", dest="list_to")

    manual_add = manual_subparsers.add_parser("add", help="Add a manual entry.")
    manual_add.add_argument("kind", choices=["income", "expense"])
    manual_add.add_argument("amount", type=float)
    manual_add.add_argument("entry_date", help="Date (YYYY-MM-DD).")
    manual_add.add_argument("description")

    manual_delete = manual_subparsers.add_parser(
        "delete", help="Delete a manual entry."
    )
    manual_delete.add_argument("entry_id", type=int)

    # groups
    subparsers.add_parser(
        "groups", help="List sale invoices grouped with their credit notes."
    )

    return ap


def _parse_optional_date(value: Optional[str]) -> Optional[date]:
    """
    Parse an optional CLI date argument (YYYY-MM-DD).

    Raises
    ------
    SystemExit
        If the date format is invalid.
    """
    if value is None:
        return None

    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        msg = f"Invalid date format: {value!r}. Expected YYYY-MM-DD."
        raise SystemExit(msg) from exc


def _parse_sort_keys(values: Optional[list[str]]) -> list[SortState]:
    """Parse ``COL[:asc|desc]`` tokens into sort states."""
    keys: list[SortState] = []
    for token in values or []:
        field, _, direction = token.partition(":")
        direction = (direction or "asc").lower()
        if field not in LEDGER_COLUMNS or direction not in ("asc", "desc"):
            raise SystemExit(f"Invalid --sort-by value: {token!r}")
        keys.append(
            SortState(field=field, direction=direction)  # type: ignore[arg-type]
        )
    return keys


def _load_config(args: argparse.Namespace) -> AppConfig:
    if args.config_path:
        return load_app_config(args.config_path)
    if Path(DEFAULT_CONFIG_FILE).is_file():
        return load_app_config()
    return default_app_config()


def _handle_import(args: argparse.Namespace, config: AppConfig) -> None:
    csv_path = Path(args.csv_path)
    if not csv_path.is_file():
        raise SystemExit(f"CSV file not found: {csv_path}")

    print(f"Importing {args.source} from {csv_path} into the database...")
    if args.source == "sales":
        stats = import_invoices(read_invoices(csv_path), config.database, "SALE")
    elif args.source == "purchases":
        stats = import_invoices(read_invoices(csv_path), config.database, "PURCHASE")
    elif args.source == "links":
        stats = import_document_links(read_document_links(csv_path), config.database)
    elif args.source == "payments":
        stats = import_payments(read_payments(csv_path), config.database)
    else:
        stats = import_manual_entries(read_manual_entries(csv_path), config.database)

    print(
        f"{stats.table}: {stats.rows_inserted} inserted, "
        f"{stats.rows_replaced} replaced."
    )


def _handle_factoring(args: argparse.Namespace, service: CashFlowService) -> None:
    subcmd = getattr(args, "factoring_command", None)
    if subcmd == "mark":
        factoring_date = _parse_optional_date(args.factoring_date)
        invoice = service.mark_factored(args.invoice_id, factoring_date)
        print(
            f"Sale invoice #{invoice.id} ({invoice.document_key}) marked as "
            f"factored on {invoice.factoring_date}."
        )
    elif subcmd == "unmark":
        invoice = service.unmark_factored(args.invoice_id)
        print(f"Sale invoice #{invoice.id} ({invoice.document_key}) unmarked.")
    else:
        print("No factoring subcommand specified. Use 'mark' or 'unmark'.")


def _handle_manual(args: argparse.Namespace, service: CashFlowService) -> None:
    subcmd = getattr(args, "manual_command", None)

    if subcmd == "list":
        start = _parse_optional_date(args.list_from)
        end = _parse_optional_date(args.list_to)
        entries = service.list_manual_entries(
            kind=args.kind.upper() if args.kind else None,
            text=args.text,
        )
        entries = [
            e
            for e in entries
            if (start is None or e.entry_date >= start)
            and (end is None or e.entry_date <= end)
        ]
        if not entries:
            print("No manual entries found for the given criteria.")
            return
        for e in entries:
            print(
                f"#{e.id:<5} {e.entry_date}  {e.kind:<7}  "
                f"{e.amount:>14.2f}  {e.description}"
            )
        print()
        print(f"Total entries: {len(entries)}")
    elif subcmd == "add":
        entry = service.add_manual_entry(
            kind=args.kind.upper(),
            description=args.description,
            amount=args.amount,
            entry_date=_parse_optional_date(args.entry_date),
        )
        print(f"Created manual entry #{entry.id}.")
    elif subcmd == "delete":
        if service.delete_manual_entry(args.entry_id):
            print(f"Deleted manual entry #{args.entry_id}.")
        else:
            raise SystemExit(f"Manual entry #{args.entry_id} not found.")
    else:
        print("No manual subcommand specified. Use 'list', 'add' or 'delete'.")


def _handle_groups(service: CashFlowService) -> None:
    groups = service.sale_groups()
    if not groups:
        print("No sale invoices found.")
        return
    for group in groups:
        status = " (fully cancelled)" if group.is_fully_cancelled else ""
        type_name = document_type_name(group.original.document_type_code)
        print(
            f"{group.label:<12} {group.original.document_date}  {type_name}  "
            f"{group.original.counterparty_name or ''}  "
            f"total={group.original.total_amount:.2f}  "
            f"net={group.net_amount:.2f}{status}"
        )
        for cn in group.credit_notes:
            print(
                f"    {document_type_name(cn.document_type_code)} {cn.folio}  "
                f"{cn.document_date}  {cn.total_amount:.2f}"
            )


def _render_cash_flow(
    args: argparse.Namespace, config: AppConfig, service: CashFlowService
) -> None:
    try:
        window = determine_window_from_args(args)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc

    result = service.compute_cash_flow(window, args.mode)

    ledger = ledger_to_dataframe(result.entries)
    if args.direction or args.search:
        ledger = filter_ledger(ledger, direction=args.direction, text=args.search)
    ledger = sort_ledger_for_display(ledger, _parse_sort_keys(args.sort_by))

    decimals = config.amount_decimals
    ledger = ledger.round({"amount": decimals, "running_balance": decimals})
    totals = cash_flow_totals(result.entries, result.baseline_balance)
    daily = daily_summary(result.entries) if args.daily else None
    issues = issues_to_dataframe(result.issues) if args.show_issues else None

    label = window.label if window is not None else "All dates"
    display_mode = args.display_mode or config.display_mode

    if display_mode in {"table", "both"}:
        print(f"Applied window: {label} | mode: {result.mode}")
        print()
        if ledger.empty:
            print("No cash-flow events in this window.")
        else:
            print(ledger.to_string(index=False))
        print()
        print(
            f"Baseline: {totals['baseline_balance']:.{decimals}f} | "
            f"Income: {totals['total_income']:.{decimals}f} | "
            f"Expense: {totals['total_expense']:.{decimals}f} | "
            f"Net: {totals['net_flow']:.{decimals}f} | "
            f"Final balance: {totals['final_balance']:.{decimals}f} "
            f"{config.currency}"
        )
        if daily is not None and not daily.empty:
            print()
            print("=== Daily summary ===")
            print(daily.round(decimals).to_string(index=False))
        if issues is not None:
            print()
            print("=== Data issues ===")
            if issues.empty:
                print("No data issues.")
            else:
                print(issues.to_string(index=False))

    if display_mode in {"csv", "both"}:
        output_dir = Path(args.output_dir) if args.output_dir else Path("data/output")
        output_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")

        path = output_dir / f"cash_flow_{timestamp}.csv"
        ledger.to_csv(path, index=False)
        print(f"Wrote {path} ({len(ledger)} rows)")

        if daily is not None:
            path = output_dir / f"cash_flow_daily_{timestamp}.csv"
            daily.to_csv(path, index=False)
            print(f"Wrote {path} ({len(daily)} rows)")

        if issues is not None:
            path = output_dir / f"cash_flow_issues_{timestamp}.csv"
            issues.to_csv(path, index=False)
            print(f"Wrote {path} ({len(issues)} rows)")


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the SMB CashFlow CLI.

    This function parses command-line arguments, loads the configuration,
    sets up logging, initializes the database and dispatches to the requested
    subcommand, or computes and renders the cash-flow ledger when no
    subcommand is given.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"smb_cashflow version {__version__}")
        return

    # 1) Load configuration and set up logging
    try:
        config = _load_config(args)
    except (FileNotFoundError, ValueError) as exc:
        raise SystemExit(str(exc)) from exc

    logging.basicConfig(
        level=args.log_level or config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # 2) Initialize the database (create file and schema if needed)
    init_database(config.database)
    service = CashFlowService(config)

    command = getattr(args, "command", None)
    try:
        if command == "import":
            _handle_import(args, config)
        elif command == "factoring":
            _handle_factoring(args, service)
        elif command == "manual":
            _handle_manual(args, service)
        elif command == "groups":
            _handle_groups(service)
        else:
            if not any(count_records(config.database).values()):
                print(
                    "Warning: database is empty: use 'import' to load "
                    "sales, purchases, links and payments."
                )
            _render_cash_flow(args, config, service)
    except CashFlowError as exc:
        logger.error("%s", exc)
        raise SystemExit(str(exc)) from exc
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc


if __name__ == "__main__":
    main()
