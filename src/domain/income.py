from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel, ConfigDict

from .ledger import AssetSymbol, IncomeKind, Transaction, TransactionId


class IncomeEvent(BaseModel):
    """Ordinary income recognised when an asset is received."""

    model_config = ConfigDict(frozen=True)

    id: TransactionId
    asset_symbol: AssetSymbol
    received_at: datetime
    income_kind: IncomeKind
    amount: Decimal
    fair_market_value_usd: Decimal
    exchange: str | None = None
    notes: str | None = None


@dataclass
class IncomeSummary:
    staking_income: Decimal = Decimal(0)
    other_income: Decimal = Decimal(0)
    events: list[IncomeEvent] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return self.staking_income + self.other_income


def classify_income(transactions: Iterable[Transaction], *, tax_year: int | None = None) -> IncomeSummary:
    summary = IncomeSummary()
    for tx in transactions:
        if tx.income_kind is None:
            continue
        if tax_year is not None and tx.timestamp.year != tax_year:
            continue

        value = tx.total_value
        summary.events.append(
            IncomeEvent(
                id=tx.id,
                asset_symbol=tx.asset_symbol,
                received_at=tx.timestamp,
                income_kind=tx.income_kind,
                amount=tx.amount,
                fair_market_value_usd=value,
                exchange=tx.exchange,
                notes=tx.notes,
            )
        )
        if tx.income_kind == IncomeKind.STAKING_REWARD:
            summary.staking_income += value
        else:
            summary.other_income += value

    summary.events.sort(key=lambda event: (event.received_at, event.id))
    return summary
