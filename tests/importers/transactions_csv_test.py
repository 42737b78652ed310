from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

from domain.errors import ValidationError
from domain.ledger import IncomeKind, TransactionKind
from importers.transactions_csv import load_transactions

HEADER = "id,asset_symbol,kind,amount,price_per_unit,fee,timestamp,exchange,notes,income_kind\n"


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "transactions.csv"
    path.write_text(content, encoding="utf-8")
    return path


def test_loads_normalized_rows(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        HEADER
        + "t1,btc,BUY,0.5,20000,12.5,2024-01-02T03:04:05Z,coinbase,,\n"
        + "t2,ATOM,staking_reward,3,8.1,,2024-02-01T00:00:00,,weekly,\n"
        + "t3,UNI,transfer_in,100,4,,2024-03-01T10:00:00+02:00,,,airdrop\n",
    )

    t1, t2, t3 = load_transactions(path)

    assert t1.asset_symbol == "BTC"
    assert t1.kind == TransactionKind.BUY
    assert t1.fee == Decimal("12.5")
    assert t1.timestamp == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert t1.exchange == "coinbase"
    assert t1.notes is None
    assert t2.income_kind == IncomeKind.STAKING_REWARD
    assert t2.fee == Decimal(0)
    assert t2.timestamp.tzinfo == timezone.utc
    assert t3.income_kind == IncomeKind.AIRDROP
    assert t3.timestamp == datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)


def test_missing_columns_are_reported(tmp_path: Path) -> None:
    path = _write(tmp_path, "id,asset_symbol,kind,amount\nt1,BTC,buy,1\n")

    with pytest.raises(ValidationError, match="price_per_unit"):
        load_transactions(path)


def test_empty_file_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValidationError, match="missing headers"):
        load_transactions(_write(tmp_path, ""))


@pytest.mark.parametrize(
    "row",
    [
        "t1,BTC,swap,1,100,,2024-01-01T00:00:00Z,,,",
        "t1,BTC,buy,abc,100,,2024-01-01T00:00:00Z,,,",
        "t1,BTC,buy,0,100,,2024-01-01T00:00:00Z,,,",
        "t1,BTC,buy,1,100,,yesterday,,,",
    ],
)
def test_bad_rows_point_at_their_line(tmp_path: Path, row: str) -> None:
    path = _write(tmp_path, HEADER + "t0,BTC,buy,1,100,,2024-01-01T00:00:00Z,,,\n" + row + "\n")

    with pytest.raises(ValidationError, match=r"transactions\.csv:3: invalid transaction row") as exc_info:
        load_transactions(path)

    assert exc_info.value.transaction_id == "t1"
