from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import literal_column
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db import models
from domain.errors import ValidationError
from domain.ledger import AssetSymbol, IncomeKind, Transaction, TransactionId, TransactionKind
from domain.lots import CostBasisMethod, LotId
from domain.report import TaxReport
from domain.tax_events import HoldingPeriod, TaxableEvent, TaxableEventId
from domain.tax_summary import TaxReportSummary

logger = logging.getLogger(__name__)


def _as_utc(timestamp: datetime) -> datetime:
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp


class TransactionRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, transaction: Transaction) -> Transaction:
        self.create_many([transaction])
        return transaction

    def create_many(self, transactions: list[Transaction]) -> list[Transaction]:
        """Store new transactions and return the ones actually inserted.

        Ids that are already stored with identical content are skipped, so the
        same file can be imported again. A stored id with different content is
        rejected.
        """
        seen: set[str] = set()
        for tx in transactions:
            if tx.id in seen:
                raise ValidationError(f"Transaction {tx.id} appears more than once", transaction_id=tx.id)
            seen.add(tx.id)

        stored = {
            orm_tx.id: self._to_domain(orm_tx)
            for orm_tx in self._session.query(models.TransactionOrm)
            .filter(models.TransactionOrm.id.in_([tx.id for tx in transactions]))
            .all()
        }
        new_transactions: list[Transaction] = []
        for tx in transactions:
            existing = stored.get(tx.id)
            if existing is None:
                new_transactions.append(tx)
            elif existing != tx:
                raise ValidationError(f"Transaction {tx.id} is already stored with different values", transaction_id=tx.id)
        if len(new_transactions) < len(transactions):
            logger.info("Skipping %d already stored transactions", len(transactions) - len(new_transactions))

        orm_transactions = [
            models.TransactionOrm(
                id=tx.id,
                asset_symbol=tx.asset_symbol,
                kind=tx.kind.value,
                amount=tx.amount,
                price_per_unit=tx.price_per_unit,
                fee=tx.fee,
                timestamp=tx.timestamp,
                exchange=tx.exchange,
                notes=tx.notes,
                income_kind=tx.income_kind.value if tx.income_kind else None,
            )
            for tx in new_transactions
        ]
        self._session.add_all(orm_transactions)
        try:
            self._session.commit()
        except IntegrityError as err:
            self._session.rollback()
            raise ValidationError(f"Could not store transactions: {err.orig}") from err
        return new_transactions

    def get(self, transaction_id: TransactionId) -> Transaction | None:
        orm_tx = self._session.get(models.TransactionOrm, transaction_id)
        if orm_tx is None:
            return None
        return self._to_domain(orm_tx)

    def list(self, asset_symbol: str | None = None) -> list[Transaction]:
        query = self._session.query(models.TransactionOrm)
        if asset_symbol is not None:
            query = query.filter(models.TransactionOrm.asset_symbol == asset_symbol.upper())
        # rowid keeps insertion order for equal timestamps.
        orm_transactions = query.order_by(models.TransactionOrm.timestamp.asc(), literal_column("rowid")).all()
        return [self._to_domain(tx) for tx in orm_transactions]

    @staticmethod
    def _to_domain(orm_tx: models.TransactionOrm) -> Transaction:
        return Transaction(
            id=TransactionId(orm_tx.id),
            asset_symbol=AssetSymbol(orm_tx.asset_symbol),
            kind=TransactionKind(orm_tx.kind),
            amount=orm_tx.amount,
            price_per_unit=orm_tx.price_per_unit,
            fee=orm_tx.fee,
            timestamp=_as_utc(orm_tx.timestamp),
            exchange=orm_tx.exchange,
            notes=orm_tx.notes,
            income_kind=IncomeKind(orm_tx.income_kind) if orm_tx.income_kind else None,
        )


@dataclass(frozen=True)
class StoredTaxReport:
    id: UUID
    created_at: datetime
    summary: TaxReportSummary
    taxable_events: list[TaxableEvent]


class TaxReportRepository:
    """Keeps generated summaries and their events; the ledger is never touched."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def save(self, report: TaxReport, *, created_at: datetime | None = None) -> UUID:
        orm_report = models.TaxReportOrm(
            id=uuid4(),
            tax_year=report.summary.tax_year,
            cost_basis_method=report.summary.cost_basis_method.value,
            created_at=created_at or datetime.now(timezone.utc),
            summary_json=report.summary.model_dump_json(),
        )
        orm_report.taxable_events = [
            models.TaxableEventOrm(
                position=position,
                event_id=event.id,
                asset_symbol=event.asset_symbol,
                disposal_transaction_id=event.disposal_transaction_id,
                disposal_kind=event.disposal_kind.value,
                lot_id=event.lot_id,
                source_transaction_id=event.source_transaction_id,
                disposed_at=event.disposed_at,
                acquired_at=event.acquired_at,
                amount=event.amount,
                proceeds_usd=event.proceeds_usd,
                cost_basis_usd=event.cost_basis_usd,
                gain_loss=event.gain_loss,
                holding_period=event.holding_period.value,
                holding_days=event.holding_days,
                wash_sale_disallowed=event.wash_sale_disallowed,
                exchange=event.exchange,
                notes=event.notes,
            )
            for position, event in enumerate(report.taxable_events)
        ]
        self._session.add(orm_report)
        self._session.commit()
        return orm_report.id

    def get(self, report_id: UUID) -> StoredTaxReport | None:
        orm_report = self._session.get(models.TaxReportOrm, report_id)
        if orm_report is None:
            return None
        return self._to_domain(orm_report)

    def list(self, tax_year: int | None = None, method: CostBasisMethod | None = None) -> list[StoredTaxReport]:
        query = self._session.query(models.TaxReportOrm)
        if tax_year is not None:
            query = query.filter(models.TaxReportOrm.tax_year == tax_year)
        if method is not None:
            query = query.filter(models.TaxReportOrm.cost_basis_method == method.value)
        orm_reports = query.order_by(models.TaxReportOrm.created_at.asc()).all()
        return [self._to_domain(report) for report in orm_reports]

    @staticmethod
    def _to_domain(orm_report: models.TaxReportOrm) -> StoredTaxReport:
        events = [
            TaxableEvent(
                id=TaxableEventId(event.event_id),
                asset_symbol=AssetSymbol(event.asset_symbol),
                disposal_transaction_id=TransactionId(event.disposal_transaction_id),
                disposal_kind=TransactionKind(event.disposal_kind),
                lot_id=LotId(event.lot_id),
                source_transaction_id=TransactionId(event.source_transaction_id),
                disposed_at=_as_utc(event.disposed_at),
                acquired_at=_as_utc(event.acquired_at),
                amount=event.amount,
                proceeds_usd=event.proceeds_usd,
                cost_basis_usd=event.cost_basis_usd,
                gain_loss=event.gain_loss,
                holding_period=HoldingPeriod(event.holding_period),
                holding_days=event.holding_days,
                wash_sale_disallowed=event.wash_sale_disallowed,
                exchange=event.exchange,
                notes=event.notes,
            )
            for event in orm_report.taxable_events
        ]
        return StoredTaxReport(
            id=orm_report.id,
            created_at=_as_utc(orm_report.created_at),
            summary=TaxReportSummary.model_validate_json(orm_report.summary_json),
            taxable_events=events,
        )
