from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Iterable

from .ledger import Transaction, TransactionId
from .lots import LotId, lot_id_for
from .tax_events import TaxableEvent, TaxableEventId

logger = logging.getLogger(__name__)

WASH_SALE_WINDOW_DAYS = 30


@dataclass(frozen=True)
class BasisAdjustment:
    """Disallowed loss to be added to the basis of a repurchase lot."""

    event_id: TaxableEventId
    source_transaction_id: TransactionId
    lot_id: LotId
    amount: Decimal


@dataclass
class WashSaleResult:
    events: list[TaxableEvent]
    adjustments: list[BasisAdjustment] = field(default_factory=list)

    @property
    def total_disallowed(self) -> Decimal:
        return sum((event.wash_sale_disallowed for event in self.events), start=Decimal(0))


def find_repurchase(
    event: TaxableEvent,
    acquisitions: Iterable[Transaction],
    *,
    window_days: int = WASH_SALE_WINDOW_DAYS,
) -> Transaction | None:
    """Earliest acquisition of the same asset within the window around the sale.

    The acquisition that opened the sold lot never counts as its own repurchase.
    """
    window = timedelta(days=window_days)
    window_start = event.disposed_at - window
    window_end = event.disposed_at + window

    candidates = [
        (tx.timestamp, position, tx)
        for position, tx in enumerate(acquisitions)
        if tx.is_acquisition
        and tx.asset_symbol == event.asset_symbol
        and tx.id != event.source_transaction_id
        and window_start <= tx.timestamp <= window_end
    ]
    if not candidates:
        return None
    _, _, repurchase = min(candidates, key=lambda item: (item[0], item[1]))
    return repurchase


def apply_wash_sales(
    events: Iterable[TaxableEvent],
    acquisitions: Iterable[Transaction],
    *,
    window_days: int = WASH_SALE_WINDOW_DAYS,
) -> WashSaleResult:
    """Flag losses that have a repurchase within the wash-sale window.

    The disallowed amount is derived from the raw gain/loss, so running the
    detector again over its own output yields the same values.
    """
    acquisition_list = list(acquisitions)
    result = WashSaleResult(events=[])

    for event in events:
        if event.gain_loss >= 0:
            result.events.append(event)
            continue

        repurchase = find_repurchase(event, acquisition_list, window_days=window_days)
        if repurchase is None:
            result.events.append(event)
            continue

        disallowed = -event.gain_loss
        result.events.append(event.model_copy(update={"wash_sale_disallowed": disallowed}))
        result.adjustments.append(
            BasisAdjustment(
                event_id=event.id,
                source_transaction_id=repurchase.id,
                lot_id=lot_id_for(repurchase.id),
                amount=disallowed,
            )
        )
        logger.info(
            "Wash sale: %s loss of %s on %s disallowed, repurchase %s at %s",
            event.asset_symbol,
            disallowed,
            event.disposed_at.date().isoformat(),
            repurchase.id,
            repurchase.timestamp.date().isoformat(),
        )

    return result
