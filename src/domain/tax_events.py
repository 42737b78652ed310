from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Iterable, Mapping, NewType

from pydantic import BaseModel, ConfigDict

from .ledger import AssetSymbol, Transaction, TransactionId, TransactionKind
from .lots import LotConsumption, LotId, TaxLot

TaxableEventId = NewType("TaxableEventId", str)

LONG_TERM_THRESHOLD_DAYS = 365


class HoldingPeriod(StrEnum):
    SHORT_TERM = "short_term"
    LONG_TERM = "long_term"


def holding_days(acquired_at: datetime, disposed_at: datetime) -> int:
    return (disposed_at - acquired_at).days


def holding_period_for(acquired_at: datetime, disposed_at: datetime) -> HoldingPeriod:
    """Long-term only when more than a year of whole days has elapsed."""
    if holding_days(acquired_at, disposed_at) > LONG_TERM_THRESHOLD_DAYS:
        return HoldingPeriod.LONG_TERM
    return HoldingPeriod.SHORT_TERM


class TaxableEvent(BaseModel):
    """One disposal matched against one lot.

    ``gain_loss`` is always the raw ``proceeds - cost basis``. A wash sale only
    records the disallowed part in ``wash_sale_disallowed`` (positive USD).
    """

    model_config = ConfigDict(frozen=True)

    id: TaxableEventId
    asset_symbol: AssetSymbol
    disposal_transaction_id: TransactionId
    disposal_kind: TransactionKind
    lot_id: LotId
    source_transaction_id: TransactionId
    disposed_at: datetime
    acquired_at: datetime
    amount: Decimal
    proceeds_usd: Decimal
    cost_basis_usd: Decimal
    gain_loss: Decimal
    holding_period: HoldingPeriod
    holding_days: int
    wash_sale_disallowed: Decimal = Decimal(0)
    exchange: str | None = None
    notes: str | None = None

    @property
    def is_wash_sale(self) -> bool:
        return self.wash_sale_disallowed > 0

    @property
    def adjusted_gain_loss(self) -> Decimal:
        return self.gain_loss + self.wash_sale_disallowed


def taxable_event_id(disposal_transaction_id: str, lot_id: str) -> TaxableEventId:
    return TaxableEventId(f"{disposal_transaction_id}:{lot_id}")


def build_events(
    consumptions: Iterable[LotConsumption],
    lots: Mapping[LotId, TaxLot],
    disposal_tx: Transaction,
) -> list[TaxableEvent]:
    """Turn the lot consumptions of one disposal into taxable events.

    The disposal fee is spread over the consumptions in proportion to amount;
    the last consumption takes whatever fee is left.
    """
    if not disposal_tx.is_disposal:
        raise ValueError(f"Transaction {disposal_tx.id} ({disposal_tx.kind}) is not a disposal")

    events: list[TaxableEvent] = []
    amount_left = disposal_tx.amount
    fee_left = disposal_tx.fee
    for consumption in consumptions:
        if consumption.disposal_transaction_id != disposal_tx.id:
            msg = f"Consumption of {consumption.lot_id} belongs to {consumption.disposal_transaction_id}, not {disposal_tx.id}"
            raise ValueError(msg)

        lot = lots.get(consumption.lot_id)
        if lot is None:
            msg = f"Unknown lot {consumption.lot_id} for disposal {disposal_tx.id}"
            raise ValueError(msg)

        amount = consumption.amount_consumed
        fee_share = fee_left if amount == amount_left else fee_left * amount / amount_left
        amount_left -= amount
        fee_left -= fee_share
        proceeds = amount * disposal_tx.price_per_unit - fee_share
        cost_basis = amount * lot.unit_cost_basis + consumption.basis_adjustment

        events.append(
            TaxableEvent(
                id=taxable_event_id(disposal_tx.id, lot.id),
                asset_symbol=disposal_tx.asset_symbol,
                disposal_transaction_id=disposal_tx.id,
                disposal_kind=disposal_tx.kind,
                lot_id=lot.id,
                source_transaction_id=lot.source_transaction_id,
                disposed_at=disposal_tx.timestamp,
                acquired_at=lot.acquired_at,
                amount=amount,
                proceeds_usd=proceeds,
                cost_basis_usd=cost_basis,
                gain_loss=proceeds - cost_basis,
                holding_period=holding_period_for(lot.acquired_at, disposal_tx.timestamp),
                holding_days=holding_days(lot.acquired_at, disposal_tx.timestamp),
                exchange=disposal_tx.exchange,
                notes=disposal_tx.notes,
            )
        )

    return events
