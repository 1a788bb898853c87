import pytest

from smb_cashflow.cli import main


def setup_workspace(tmp_path) -> str:
    config = tmp_path / "smb_cashflow_config.toml"
    config.write_text(
        '[database]\npath = "cash.sqlite"\n\n[cache]\nenabled = false\n',
        encoding="utf-8",
    )
    (tmp_path / "ventas.csv").write_text(
        "id,tipo_doc,razon_social,folio,fecha_docto,monto_total,folio_docto_referencia\n"
        "1,33,ACME,100,2024-01-05,1000,\n"
        "2,61,ACME,7,2024-01-20,250,100\n",
        encoding="utf-8",
    )
    (tmp_path / "compras.csv").write_text(
        "id,tipo_doc,razon_social,folio,fecha_docto,monto_total\n"
        "5,33,Tools,900,2024-01-10,300\n",
        encoding="utf-8",
    )
    return str(config)


def test_version(capsys):
    main(["--version"])
    assert "smb_cashflow version" in capsys.readouterr().out


def test_import_and_render_month(tmp_path, capsys):
    config = setup_workspace(tmp_path)

    main(["--config", config, "import", "sales", str(tmp_path / "ventas.csv")])
    main(["--config", config, "import", "purchases", str(tmp_path / "compras.csv")])
    out = capsys.readouterr().out
    assert "sales_invoices: 2 inserted, 0 replaced." in out
    assert "purchase_invoices: 1 inserted, 0 replaced." in out

    main(["--config", config, "--month", "2024-01", "--show-issues", "--daily"])
    out = capsys.readouterr().out

    assert "Applied window: 2024-01 | mode: month_only" in out
    assert "100-NC1" in out
    assert "Final balance: 450.00" in out
    assert "missing_link" in out
    assert "Daily summary" in out


def test_csv_output(tmp_path, capsys):
    config = setup_workspace(tmp_path)
    main(["--config", config, "import", "sales", str(tmp_path / "ventas.csv")])

    out_dir = tmp_path / "out"
    main(
        [
            "--config",
            config,
            "--all",
            "--display-mode",
            "csv",
            "--output",
            str(out_dir),
            "--sort-by",
            "amount:desc",
        ]
    )

    files = list(out_dir.glob("cash_flow_*.csv"))
    assert len(files) == 1
    assert files[0].read_text(encoding="utf-8").splitlines()[0].startswith("date,")


def test_manual_and_factoring_commands(tmp_path, capsys):
    config = setup_workspace(tmp_path)
    main(["--config", config, "import", "sales", str(tmp_path / "ventas.csv")])

    main(["--config", config, "manual", "add", "expense", "80", "2024-01-15", "Rent"])
    main(["--config", config, "manual", "list"])
    main(["--config", config, "factoring", "mark", "1", "2024-01-25"])
    main(["--config", config, "groups"])
    out = capsys.readouterr().out

    assert "Created manual entry #1." in out
    assert "Rent" in out
    assert "marked as factored on 2024-01-25" in out
    assert "net=750.00" in out
    assert "Electronic invoice" in out
    assert "Electronic credit note 7" in out


def test_errors_exit_with_message(tmp_path):
    config = setup_workspace(tmp_path)

    with pytest.raises(SystemExit):
        main(["--config", config, "factoring", "mark", "42", "2024-01-25"])
    with pytest.raises(SystemExit):
        main(["--config", config, "manual", "add", "income", "0", "2024-01-15", "x"])
    with pytest.raises(SystemExit):
        main(["--config", config, "--from-date", "2024-02-10", "--to-date", "2024-02-01"])
    with pytest.raises(SystemExit):
        main(["--config", str(tmp_path / "missing.toml")])
