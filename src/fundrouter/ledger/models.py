"""SQLAlchemy models for the ledger."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class BigAmount(TypeDecorator):
    """Unbounded non-negative integer stored as decimal text.

    SQLite NUMERIC columns fall back to floating point past 2**63, so amounts
    are kept as strings and converted to ``int`` on load.
    """

    impl = String(80)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, int) or value < 0:
            raise ValueError(f"Amount must be a non-negative integer, got {value!r}")
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)


class BeneficiaryBalance(Base):
    """Settlement-currency amount owed to a beneficiary."""

    __tablename__ = "beneficiary_balances"

    identity: Mapped[str] = mapped_column(String(255), primary_key=True)
    amount: Mapped[int] = mapped_column(BigAmount, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class Charity(Base):
    """Registered charity. Name and payout address are each unique."""

    __tablename__ = "charities"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    address: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    registered_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class Deposit(Base):
    """Audit record of a completed deposit."""

    __tablename__ = "deposits"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    donor: Mapped[str] = mapped_column(String(255), nullable=False)
    destination: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    input_asset: Mapped[str] = mapped_column(String(50), nullable=False)
    total_amount_in: Mapped[int] = mapped_column(BigAmount, nullable=False)
    gas_amount_in: Mapped[int] = mapped_column(BigAmount, nullable=False)
    gas_amount_out: Mapped[int] = mapped_column(BigAmount, nullable=False)
    settlement_amount_out: Mapped[int] = mapped_column(BigAmount, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class Donation(Base):
    """Audit record of one charity disbursement within a finalize call."""

    __tablename__ = "donations"
    __table_args__ = (Index("ix_donations_batch", "batch_id"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    batch_id: Mapped[str] = mapped_column(String(64), nullable=False)
    beneficiary: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    charity_name: Mapped[str] = mapped_column(String(100), nullable=False)
    charity_address: Mapped[str] = mapped_column(String(255), nullable=False)
    settlement_amount: Mapped[int] = mapped_column(BigAmount, nullable=False)
    finalized_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class SystemConfig(Base):
    """Mutable process-wide parameters (gas subsidy, pause flag)."""

    __tablename__ = "system_config"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
