from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from itertools import count
from typing import Iterable, NewType, assert_never

from pydantic import BaseModel, ConfigDict

from .errors import InsufficientLotsError, ValidationError
from .ledger import AssetSymbol, Transaction, TransactionId, TransactionKind

logger = logging.getLogger(__name__)

LotId = NewType("LotId", str)


class CostBasisMethod(StrEnum):
    FIFO = "FIFO"
    LIFO = "LIFO"
    HIFO = "HIFO"


class TaxLot(BaseModel):
    """Point-in-time view of a lot; the matcher keeps the live state."""

    model_config = ConfigDict(frozen=True)

    id: LotId
    asset_symbol: AssetSymbol
    acquired_at: datetime
    original_amount: Decimal
    remaining_amount: Decimal
    unit_cost_basis: Decimal
    source_transaction_id: TransactionId
    # USD added by wash sales and not yet charged to a disposal.
    basis_adjustment: Decimal = Decimal(0)

    @property
    def remaining_cost_basis(self) -> Decimal:
        return self.remaining_amount * self.unit_cost_basis + self.basis_adjustment


class LotConsumption(BaseModel):
    model_config = ConfigDict(frozen=True)

    lot_id: LotId
    amount_consumed: Decimal
    disposal_transaction_id: TransactionId
    basis_adjustment: Decimal = Decimal(0)


class LotMatchResult(BaseModel):
    lots: list[TaxLot]
    consumptions: list[LotConsumption]
    open_lots: list[TaxLot]


@dataclass
class _OpenLotState:
    lot_id: LotId
    asset_symbol: AssetSymbol
    acquired_at: datetime
    original_amount: Decimal
    remaining_amount: Decimal
    unit_cost_basis: Decimal
    source_transaction_id: TransactionId
    sequence: int
    basis_adjustment: Decimal = Decimal(0)

    @property
    def sort_cost(self) -> Decimal:
        """Per-unit basis including wash-sale adjustments; only used for ordering."""
        if not self.basis_adjustment:
            return self.unit_cost_basis
        return self.unit_cost_basis + self.basis_adjustment / self.remaining_amount

    def take(self, amount: Decimal) -> Decimal:
        """Remove ``amount`` units and return the adjustment USD charged to them.

        The take that closes the lot gets whatever adjustment is left.
        """
        if amount == self.remaining_amount:
            charged = self.basis_adjustment
        else:
            charged = self.basis_adjustment * amount / self.remaining_amount
        self.remaining_amount -= amount
        self.basis_adjustment -= charged
        return charged

    def snapshot(self) -> TaxLot:
        return TaxLot(
            id=self.lot_id,
            asset_symbol=self.asset_symbol,
            acquired_at=self.acquired_at,
            original_amount=self.original_amount,
            remaining_amount=self.remaining_amount,
            unit_cost_basis=self.unit_cost_basis,
            source_transaction_id=self.source_transaction_id,
            basis_adjustment=self.basis_adjustment,
        )


def lot_id_for(transaction_id: str) -> LotId:
    return LotId(f"lot:{transaction_id}")


def acquisition_unit_cost(transaction: Transaction) -> Decimal:
    """Per-unit USD basis of the lot opened by an acquisition."""
    match transaction.kind:
        case TransactionKind.STAKING_REWARD:
            # Rewards are taxed as income on receipt and enter inventory at zero basis.
            return Decimal(0)
        case TransactionKind.BUY | TransactionKind.TRANSFER_IN:
            return transaction.price_per_unit + transaction.fee / transaction.amount
        case TransactionKind.SELL | TransactionKind.TRANSFER_OUT:
            raise ValueError(f"{transaction.kind} transaction {transaction.id} does not open a lot")
        case _:
            assert_never(transaction.kind)


class LotPool:
    """Open lots of a single asset."""

    def __init__(self, asset_symbol: AssetSymbol) -> None:
        self.asset_symbol = asset_symbol
        self._open: list[_OpenLotState] = []

    def __len__(self) -> int:
        return len(self._open)

    @property
    def total_remaining(self) -> Decimal:
        return sum((state.remaining_amount for state in self._open), start=Decimal(0))

    def add(self, state: _OpenLotState) -> None:
        self._open.append(state)

    def ordered(self, method: CostBasisMethod) -> list[_OpenLotState]:
        """Open lots in the order ``method`` consumes them.

        Sorting is stable, so lots with equal keys keep insertion order.
        """
        lots = sorted(self._open, key=lambda state: state.sequence)
        match method:
            case CostBasisMethod.FIFO:
                lots.sort(key=lambda state: state.acquired_at)
            case CostBasisMethod.LIFO:
                lots.sort(key=lambda state: state.acquired_at, reverse=True)
            case CostBasisMethod.HIFO:
                lots.sort(key=lambda state: state.sort_cost, reverse=True)
            case _:
                assert_never(method)
        return lots

    def consume(
        self, transaction: Transaction, method: CostBasisMethod
    ) -> list[tuple[_OpenLotState, Decimal, Decimal]]:
        """Take units for ``transaction``; yields (lot, amount, adjustment USD) triples."""
        needed = transaction.amount
        available = self.total_remaining
        if available < needed:
            raise InsufficientLotsError(
                asset_symbol=self.asset_symbol,
                shortfall=needed - available,
                transaction_id=transaction.id,
            )

        taken: list[tuple[_OpenLotState, Decimal, Decimal]] = []
        remaining = needed
        for state in self.ordered(method):
            if remaining == 0:
                break
            take_amount = min(remaining, state.remaining_amount)
            charged = state.take(take_amount)
            remaining -= take_amount
            taken.append((state, take_amount, charged))

        self._open = [state for state in self._open if state.remaining_amount > 0]
        return taken


class LotMatcher:
    """Lot bookkeeping for a single report run.

    Every call to ``generate_tax_report``/``match_lots`` builds its own matcher,
    so nothing is shared between runs.
    """

    def __init__(self, method: CostBasisMethod) -> None:
        self.method = method
        self._pools: dict[AssetSymbol, LotPool] = {}
        self._lots: dict[LotId, _OpenLotState] = {}
        self._sequence = count()

    def add_acquisition(self, transaction: Transaction) -> TaxLot:
        if not transaction.is_acquisition:
            raise ValueError(f"Transaction {transaction.id} ({transaction.kind}) is not an acquisition")

        lot_id = lot_id_for(transaction.id)
        if lot_id in self._lots:
            raise ValidationError(f"Lot already created for transaction {transaction.id}", transaction_id=transaction.id)

        state = _OpenLotState(
            lot_id=lot_id,
            asset_symbol=transaction.asset_symbol,
            acquired_at=transaction.timestamp,
            original_amount=transaction.amount,
            remaining_amount=transaction.amount,
            unit_cost_basis=acquisition_unit_cost(transaction),
            source_transaction_id=transaction.id,
            sequence=next(self._sequence),
        )
        self._lots[lot_id] = state
        self._pool(transaction.asset_symbol).add(state)
        return state.snapshot()

    def consume(self, transaction: Transaction) -> list[LotConsumption]:
        if not transaction.is_disposal:
            raise ValueError(f"Transaction {transaction.id} ({transaction.kind}) is not a disposal")

        pool = self._pools.get(transaction.asset_symbol)
        if pool is None:
            raise InsufficientLotsError(
                asset_symbol=transaction.asset_symbol,
                shortfall=transaction.amount,
                transaction_id=transaction.id,
            )

        consumptions = [
            LotConsumption(
                lot_id=state.lot_id,
                amount_consumed=take_amount,
                disposal_transaction_id=transaction.id,
                basis_adjustment=charged,
            )
            for state, take_amount, charged in pool.consume(transaction, self.method)
        ]
        logger.debug(
            "Disposal %s of %s %s matched %d lot(s) using %s",
            transaction.id,
            transaction.amount,
            transaction.asset_symbol,
            len(consumptions),
            self.method,
        )
        return consumptions

    def adjust_basis(self, lot_id: LotId, amount: Decimal) -> TaxLot:
        """Add ``amount`` USD to the basis of the lot's remaining units.

        The total is kept as is and charged to later disposals in proportion
        to the units they take.
        """
        state = self._lots.get(lot_id)
        if state is None:
            raise KeyError(f"Unknown lot {lot_id}")
        if state.remaining_amount == 0:
            raise ValueError(f"Cannot adjust basis of closed lot {lot_id}")
        state.basis_adjustment += amount
        return state.snapshot()

    def lot(self, lot_id: LotId) -> TaxLot:
        state = self._lots.get(lot_id)
        if state is None:
            raise KeyError(f"Unknown lot {lot_id}")
        return state.snapshot()

    def has_lot(self, lot_id: LotId) -> bool:
        return lot_id in self._lots

    def is_open(self, lot_id: LotId) -> bool:
        state = self._lots.get(lot_id)
        return state is not None and state.remaining_amount > 0

    def lots(self) -> list[TaxLot]:
        return [state.snapshot() for state in sorted(self._lots.values(), key=lambda s: s.sequence)]

    def open_lots(self) -> list[TaxLot]:
        snapshots = [state.snapshot() for state in self._lots.values() if state.remaining_amount > 0]
        snapshots.sort(key=lambda lot: (lot.asset_symbol, lot.acquired_at))
        return snapshots

    def _pool(self, asset_symbol: AssetSymbol) -> LotPool:
        pool = self._pools.get(asset_symbol)
        if pool is None:
            pool = LotPool(asset_symbol)
            self._pools[asset_symbol] = pool
        return pool


def sort_chronologically(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Order by timestamp, keeping input order for simultaneous entries."""
    indexed = list(enumerate(transactions))
    indexed.sort(key=lambda item: (item[1].timestamp, item[0]))
    return [tx for _, tx in indexed]


def validate_ledger(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Reject ledgers that cannot be matched and return them in replay order."""
    ordered = sort_chronologically(transactions)

    duplicates = sorted(tx_id for tx_id, seen in Counter(tx.id for tx in ordered).items() if seen > 1)
    if duplicates:
        raise ValidationError(f"Duplicate transaction ids: {', '.join(duplicates)}", transaction_id=duplicates[0])

    acquired: set[AssetSymbol] = set()
    for tx in ordered:
        if tx.amount <= 0:
            raise ValidationError(f"Transaction {tx.id} has non-positive amount {tx.amount}", transaction_id=tx.id)
        if tx.is_acquisition:
            acquired.add(tx.asset_symbol)
        elif tx.asset_symbol not in acquired:
            raise ValidationError(
                f"Disposal {tx.id} of {tx.asset_symbol} at {tx.timestamp.isoformat()} precedes any acquisition",
                transaction_id=tx.id,
            )
    return ordered


def match_lots(transactions: Iterable[Transaction], method: CostBasisMethod) -> LotMatchResult:
    """Open lots for acquisitions and consume them for disposals, in time order."""
    matcher = LotMatcher(method)
    consumptions: list[LotConsumption] = []

    for tx in validate_ledger(transactions):
        if tx.is_acquisition:
            matcher.add_acquisition(tx)
        else:
            consumptions.extend(matcher.consume(tx))

    return LotMatchResult(
        lots=matcher.lots(),
        consumptions=consumptions,
        open_lots=matcher.open_lots(),
    )
