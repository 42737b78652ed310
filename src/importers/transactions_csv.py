from __future__ import annotations

import csv
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path

import pydantic

from domain.errors import ValidationError
from domain.ledger import IncomeKind, Transaction, TransactionKind

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"id", "asset_symbol", "kind", "amount", "price_per_unit", "timestamp"}


def load_transactions(csv_path: Path) -> list[Transaction]:
    """Load normalized ledger rows.

    Each row should contain: id,asset_symbol,kind,amount,price_per_unit,timestamp
    and optionally fee,exchange,notes,income_kind. Timestamps are ISO-8601;
    naive values are taken as UTC.
    """

    with csv_path.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            raise ValidationError(f"Transactions CSV {csv_path} is empty or missing headers")

        missing = REQUIRED_COLUMNS - {name.strip() for name in reader.fieldnames}
        if missing:
            raise ValidationError(f"Transactions CSV {csv_path} missing required columns: {', '.join(sorted(missing))}")

        transactions: list[Transaction] = []
        for line_number, raw_row in enumerate(reader, start=2):
            row = {key.strip(): (value or "").strip() for key, value in raw_row.items() if key is not None}
            try:
                transactions.append(_parse_row(row))
            except (pydantic.ValidationError, InvalidOperation, ValueError) as err:
                raise ValidationError(
                    f"{csv_path}:{line_number}: invalid transaction row: {err}",
                    transaction_id=row.get("id") or None,
                ) from err

    logger.info("Loaded %d transactions from %s", len(transactions), csv_path)
    return transactions


def _parse_row(row: dict[str, str]) -> Transaction:
    income_kind = row.get("income_kind") or None
    return Transaction(
        id=row["id"],
        asset_symbol=row["asset_symbol"],
        kind=TransactionKind(row["kind"].lower()),
        amount=Decimal(row["amount"]),
        price_per_unit=Decimal(row["price_per_unit"]),
        fee=_parse_decimal(row.get("fee")),
        timestamp=_parse_timestamp(row["timestamp"]),
        exchange=row.get("exchange") or None,
        notes=row.get("notes") or None,
        income_kind=IncomeKind(income_kind.lower()) if income_kind else None,
    )


def _parse_decimal(raw: str | None) -> Decimal:
    if not raw:
        return Decimal("0")
    return Decimal(raw)


def _parse_timestamp(raw: str) -> datetime:
    normalized = raw.strip()
    if not normalized:
        raise ValueError("timestamp must be non-empty")
    if normalized.endswith(("Z", "z")):
        normalized = f"{normalized[:-1]}+00:00"
    ts = datetime.fromisoformat(normalized)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)
