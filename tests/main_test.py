from pathlib import Path

from main import main

LEDGER = """id,asset_symbol,kind,amount,price_per_unit,fee,timestamp,exchange,notes,income_kind
b1,BTC,buy,1,20000,0,2024-01-10T12:00:00Z,coinbase,,
r1,ATOM,staking_reward,10,8,0,2024-02-01T12:00:00Z,,,
s1,BTC,sell,1,50000,0,2024-06-01T12:00:00Z,coinbase,,
"""


def test_main_imports_ledger_and_writes_exports(tmp_path: Path, capsys) -> None:
    csv_path = tmp_path / "ledger.csv"
    csv_path.write_text(LEDGER, encoding="utf-8")
    out_dir = tmp_path / "exports"

    exit_code = main(
        [
            "--csv",
            str(csv_path),
            "--year",
            "2024",
            "--method",
            "hifo",
            "--state",
            "ca",
            "--db",
            str(tmp_path / "taxes.db"),
            "--out-dir",
            str(out_dir),
        ]
    )

    assert exit_code == 0
    assert sorted(path.name for path in out_dir.iterdir()) == [
        "crypto_tax_2024_hifo.txf",
        "crypto_tax_2024_hifo_form8949.csv",
        "crypto_tax_2024_hifo_income.csv",
        "crypto_tax_2024_hifo_summary.csv",
        "crypto_tax_2024_hifo_transactions.csv",
    ]
    assert "Short-term gains" in capsys.readouterr().out


def test_main_reports_engine_errors(tmp_path: Path) -> None:
    csv_path = tmp_path / "ledger.csv"
    csv_path.write_text(
        "id,asset_symbol,kind,amount,price_per_unit,timestamp\n"
        "b1,BTC,buy,1,100,2024-01-10T12:00:00Z\n"
        "s1,BTC,sell,2,150,2024-02-10T12:00:00Z\n",
        encoding="utf-8",
    )

    exit_code = main(
        [
            "--csv",
            str(csv_path),
            "--year",
            "2024",
            "--db",
            str(tmp_path / "taxes.db"),
            "--out-dir",
            str(tmp_path / "exports"),
        ]
    )

    assert exit_code == 1


def test_main_can_be_run_again_on_the_same_database(tmp_path: Path) -> None:
    csv_path = tmp_path / "ledger.csv"
    csv_path.write_text(LEDGER, encoding="utf-8")
    args = [
        "--csv",
        str(csv_path),
        "--year",
        "2024",
        "--db",
        str(tmp_path / "taxes.db"),
        "--out-dir",
        str(tmp_path / "exports"),
    ]

    assert main(args) == 0
    assert main(args) == 0


def test_main_rejects_changed_transaction_with_stored_id(tmp_path: Path) -> None:
    csv_path = tmp_path / "ledger.csv"
    db_args = ["--year", "2024", "--db", str(tmp_path / "taxes.db"), "--out-dir", str(tmp_path / "exports")]
    csv_path.write_text(LEDGER, encoding="utf-8")
    assert main(["--csv", str(csv_path), *db_args]) == 0

    csv_path.write_text(LEDGER.replace("b1,BTC,buy,1,20000", "b1,BTC,buy,1,21000"), encoding="utf-8")

    assert main(["--csv", str(csv_path), *db_args]) == 1


def test_main_reports_malformed_rows(tmp_path: Path, caplog) -> None:
    csv_path = tmp_path / "ledger.csv"
    csv_path.write_text(
        "id,asset_symbol,kind,amount,price_per_unit,timestamp\n" "b1,BTC,buy,-1,100,2024-01-10T12:00:00Z\n",
        encoding="utf-8",
    )

    exit_code = main(
        [
            "--csv",
            str(csv_path),
            "--year",
            "2024",
            "--db",
            str(tmp_path / "taxes.db"),
            "--out-dir",
            str(tmp_path / "exports"),
        ]
    )

    assert exit_code == 1
    assert "ledger.csv:2: invalid transaction row" in caplog.text
