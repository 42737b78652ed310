from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator


class DecimalAsString(TypeDecorator):
    impl = String
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: object) -> str | None:
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value: str | None, dialect: object) -> Decimal | None:
        if value is None:
            return None
        return Decimal(value)


class Base(DeclarativeBase):
    pass


class TransactionOrm(Base):
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    asset_symbol: Mapped[str] = mapped_column(String, nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    price_per_unit: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    fee: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    exchange: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    income_kind: Mapped[str | None] = mapped_column(String, nullable=True)


class TaxReportOrm(Base):
    __tablename__ = "tax_reports"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tax_year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    cost_basis_method: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    summary_json: Mapped[str] = mapped_column(Text, nullable=False)

    taxable_events: Mapped[list["TaxableEventOrm"]] = relationship(
        cascade="all, delete-orphan", back_populates="report", order_by="TaxableEventOrm.position"
    )


class TaxableEventOrm(Base):
    __tablename__ = "taxable_events"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    report_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("tax_reports.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    event_id: Mapped[str] = mapped_column(String, nullable=False)
    asset_symbol: Mapped[str] = mapped_column(String, nullable=False)
    disposal_transaction_id: Mapped[str] = mapped_column(String, nullable=False)
    disposal_kind: Mapped[str] = mapped_column(String, nullable=False)
    lot_id: Mapped[str] = mapped_column(String, nullable=False)
    source_transaction_id: Mapped[str] = mapped_column(String, nullable=False)
    disposed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    acquired_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    amount: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    proceeds_usd: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    cost_basis_usd: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    gain_loss: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    holding_period: Mapped[str] = mapped_column(String, nullable=False)
    holding_days: Mapped[int] = mapped_column(Integer, nullable=False)
    wash_sale_disallowed: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    exchange: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    report: Mapped[TaxReportOrm] = relationship(back_populates="taxable_events")
