# SMB CashFlow - Cash-flow reconciliation dashboard for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for SMB CashFlow.

This module is responsible for:
- loading the application configuration from a TOML file,
- validating it and applying defaults for missing sections,
- exposing typed dataclasses used by the rest of the application.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .db import DatabaseConfig
from .models import CashFlowMode

DEFAULT_CONFIG_FILE = "smb_cashflow_config.toml"
DISPLAY_MODES = ("table", "csv", "both")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class CashFlowOptions:
    """
    Reconciliation options.

    Attributes
    ----------
    default_mode:
        Mode used when the caller does not choose one.
    filter_payments_to_window:
        When True, only payments dated inside the visible window are matched
        for window events. The historical baseline always uses all payments.
    fetch_workers:
        Size of the thread pool used to fetch the input collections.
    """

    default_mode: CashFlowMode = "month_only"
    filter_payments_to_window: bool = True
    fetch_workers: int = 6


@dataclass(frozen=True)
class CacheOptions:
    enabled: bool = True
    ttl_seconds: float = 300.0


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for SMB CashFlow.

    This aggregates:
    - the database configuration (where records are stored),
    - reconciliation options,
    - the record cache options,
    - display options for tables,
    - the logging level.
    """

    database: DatabaseConfig
    cashflow: CashFlowOptions
    cache: CacheOptions
    display_mode: str
    amount_decimals: int
    log_level: str
    currency: str = "CLP"


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        raise ValueError(f"Invalid [{name}] section, expected a table.")
    return section


def _parse_cashflow(section: Mapping[str, Any]) -> CashFlowOptions:
    mode = str(section.get("default_mode", "month_only"))
    if mode not in ("month_only", "full_history"):
        raise ValueError(
            f"Invalid value for 'cashflow.default_mode': {mode!r}. "
            "Expected 'month_only' or 'full_history'."
        )

    filter_payments = section.get("filter_payments_to_window", True)
    if not isinstance(filter_payments, bool):
        raise ValueError(
            "Invalid value for 'cashflow.filter_payments_to_window'. "
            "Expected true or false."
        )

    try:
        workers = int(section.get("fetch_workers", 6))
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid value for 'cashflow.fetch_workers'. Expected an integer."
        ) from exc
    if workers < 1:
        raise ValueError("'cashflow.fetch_workers' must be at least 1.")

    return CashFlowOptions(
        default_mode=mode,  # type: ignore[arg-type]
        filter_payments_to_window=filter_payments,
        fetch_workers=workers,
    )


def _parse_cache(section: Mapping[str, Any]) -> CacheOptions:
    enabled = bool(section.get("enabled", True))
    try:
        ttl = float(section.get("ttl_seconds", 300))
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid value for 'cache.ttl_seconds'. Expected a number."
        ) from exc
    if ttl < 0:
        raise ValueError("'cache.ttl_seconds' cannot be negative.")
    return CacheOptions(enabled=enabled, ttl_seconds=ttl)


def default_app_config(base_dir: Optional[Path] = None) -> AppConfig:
    """Configuration used when no TOML file is available."""
    base = (base_dir or Path.cwd()).resolve()
    return AppConfig(
        database=DatabaseConfig(
            engine="sqlite", path=base / "data/db/smb_cashflow.sqlite"
        ),
        cashflow=CashFlowOptions(),
        cache=CacheOptions(),
        display_mode="table",
        amount_decimals=2,
        log_level="WARNING",
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the SMB CashFlow application configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [general]
        Presentation currency (``currency``, default "CLP").

    [database]
        Database engine and SQLite file path.

    [cashflow]
        ``default_mode`` ("month_only" | "full_history"),
        ``filter_payments_to_window`` (bool), ``fetch_workers`` (int).

    [cache]
        ``enabled`` (bool), ``ttl_seconds`` (number).

    [display]
        ``mode`` ("table" | "csv" | "both"), ``amount_decimals`` (int).

    [logging]
        ``level`` (standard logging level name).

    All sections are optional. File paths are resolved relative to the
    directory of the TOML file itself.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML configuration file. Defaults to
        ``smb_cashflow_config.toml`` in the current directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If a value is invalid.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    general_section = _section(raw, "general")
    currency = str(general_section.get("currency") or "CLP")

    # 1) Database section
    database_section = _section(raw, "database")
    db_engine = str(database_section.get("engine") or "sqlite")
    db_path_raw = database_section.get("path") or "data/db/smb_cashflow.sqlite"
    db_path = (base_dir / str(db_path_raw)).resolve()
    database_config = DatabaseConfig(engine=db_engine, path=db_path)

    # 2) Reconciliation and cache options
    cashflow = _parse_cashflow(_section(raw, "cashflow"))
    cache = _parse_cache(_section(raw, "cache"))

    # 3) Display options
    display_section = _section(raw, "display")
    display_mode = str(display_section.get("mode", "table"))
    if display_mode not in DISPLAY_MODES:
        raise ValueError(
            f"Invalid value for 'display.mode': {display_mode!r}. "
            f"Expected one of: {', '.join(DISPLAY_MODES)}."
        )
    try:
        amount_decimals = int(display_section.get("amount_decimals", 2))
    except (TypeError, ValueError):
        amount_decimals = 2

    # 4) Logging
    logging_section = _section(raw, "logging")
    log_level = str(logging_section.get("level", "WARNING")).upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"Invalid value for 'logging.level': {log_level!r}.")

    return AppConfig(
        database=database_config,
        cashflow=cashflow,
        cache=cache,
        display_mode=display_mode,
        amount_decimals=amount_decimals,
        log_level=log_level,
        currency=currency,
    )
