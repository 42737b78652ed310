from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import StrEnum
from typing import NewType, assert_never

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

TransactionId = NewType("TransactionId", str)
AssetSymbol = NewType("AssetSymbol", str)


class TransactionKind(StrEnum):
    BUY = "buy"
    SELL = "sell"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    STAKING_REWARD = "staking_reward"


class IncomeKind(StrEnum):
    STAKING_REWARD = "staking_reward"
    AIRDROP = "airdrop"
    MINING = "mining"
    INTEREST = "interest"
    OTHER = "other"


def is_acquisition(kind: TransactionKind) -> bool:
    match kind:
        case TransactionKind.BUY | TransactionKind.TRANSFER_IN | TransactionKind.STAKING_REWARD:
            return True
        case TransactionKind.SELL | TransactionKind.TRANSFER_OUT:
            return False
        case _:
            assert_never(kind)


def is_disposal(kind: TransactionKind) -> bool:
    return not is_acquisition(kind)


class Transaction(BaseModel):
    """A validated ledger entry for a single asset.

    Amounts are always positive; the direction is carried by ``kind``.
    Prices and fees are USD.
    """

    model_config = ConfigDict(frozen=True)

    id: TransactionId
    asset_symbol: AssetSymbol
    kind: TransactionKind
    amount: Decimal
    price_per_unit: Decimal
    fee: Decimal = Decimal(0)
    timestamp: datetime
    exchange: str | None = None
    notes: str | None = None
    income_kind: IncomeKind | None = None

    @field_validator("asset_symbol")
    @classmethod
    def _normalize_symbol(cls, value: str) -> str:
        symbol = value.strip().upper()
        if not symbol:
            raise ValueError("asset_symbol must be non-empty")
        return symbol

    @field_validator("timestamp")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @model_validator(mode="before")
    @classmethod
    def _default_staking_income(cls, data: object) -> object:
        if isinstance(data, dict) and data.get("kind") == TransactionKind.STAKING_REWARD:
            if data.get("income_kind") is None:
                return {**data, "income_kind": IncomeKind.STAKING_REWARD}
        return data

    @model_validator(mode="after")
    def _validate_fields(self) -> Transaction:
        if not self.id:
            raise ValueError("Transaction.id must be non-empty")
        if self.amount <= 0:
            raise ValueError("Transaction.amount must be > 0")
        if self.price_per_unit < 0:
            raise ValueError("Transaction.price_per_unit must be >= 0")
        if self.fee < 0:
            raise ValueError("Transaction.fee must be >= 0")

        if self.kind == TransactionKind.STAKING_REWARD and self.income_kind != IncomeKind.STAKING_REWARD:
            raise ValueError("staking_reward transactions must carry income_kind=staking_reward")
        if self.kind != TransactionKind.STAKING_REWARD and self.income_kind == IncomeKind.STAKING_REWARD:
            raise ValueError("income_kind=staking_reward is reserved for staking_reward transactions")
        if self.income_kind is not None and self.kind not in (
            TransactionKind.STAKING_REWARD,
            TransactionKind.TRANSFER_IN,
        ):
            raise ValueError(f"{self.kind} transactions cannot be flagged as income")
        return self

    @property
    def is_acquisition(self) -> bool:
        return is_acquisition(self.kind)

    @property
    def is_disposal(self) -> bool:
        return is_disposal(self.kind)

    @property
    def is_income(self) -> bool:
        return self.income_kind is not None

    @property
    def total_value(self) -> Decimal:
        return self.amount * self.price_per_unit
