import pytest

from smb_cashflow.config import load_app_config


def write_config(tmp_path, content: str) -> str:
    path = tmp_path / "smb_cashflow_config.toml"
    path.write_text(content, encoding="utf-8")
    return str(path)


def test_defaults_when_sections_are_missing(tmp_path):
    config = load_app_config(write_config(tmp_path, ""))

    assert config.database.engine == "sqlite"
    assert config.database.path == (tmp_path / "data/db/smb_cashflow.sqlite").resolve()
    assert config.cashflow.default_mode == "month_only"
    assert config.cashflow.filter_payments_to_window is True
    assert config.cashflow.fetch_workers == 6
    assert config.cache.enabled is True
    assert config.cache.ttl_seconds == 300.0
    assert config.display_mode == "table"
    assert config.amount_decimals == 2
    assert config.log_level == "WARNING"


def test_full_config_is_parsed_and_paths_resolved(tmp_path):
    path = write_config(
        tmp_path,
        """
[general]
currency = "EUR"

[database]
engine = "sqlite"
path = "db/cash.sqlite"

[cashflow]
default_mode = "full_history"
filter_payments_to_window = false
fetch_workers = 2

[cache]
enabled = false
ttl_seconds = 10

[display]
mode = "both"
amount_decimals = 0

[logging]
level = "debug"
""",
    )

    config = load_app_config(path)

    assert config.currency == "EUR"
    assert config.database.path == (tmp_path / "db/cash.sqlite").resolve()
    assert config.cashflow.default_mode == "full_history"
    assert config.cashflow.filter_payments_to_window is False
    assert config.cashflow.fetch_workers == 2
    assert config.cache.enabled is False
    assert config.display_mode == "both"
    assert config.amount_decimals == 0
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize(
    "content",
    [
        '[cashflow]\ndefault_mode = "yearly"\n',
        '[cashflow]\nfilter_payments_to_window = "yes"\n',
        "[cashflow]\nfetch_workers = 0\n",
        "[cache]\nttl_seconds = -1\n",
        '[display]\nmode = "html"\n',
        '[logging]\nlevel = "LOUD"\n',
        "not = [valid toml",
    ],
)
def test_invalid_values_are_rejected(tmp_path, content):
    with pytest.raises(ValueError):
        load_app_config(write_config(tmp_path, content))


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_app_config(str(tmp_path / "missing.toml"))
