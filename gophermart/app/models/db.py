from __future__ import annotations
from datetime import datetime, UTC
from uuid import UUID, uuid4
from sqlalchemy import BigInteger
from sqlmodel import Field, SQLModel

from .status import OrderStatus


def _utcnow() -> datetime:
    return datetime.now(UTC)


# Amounts are stored as integer hundredths of a point.
class Order(SQLModel, table=True):
    __tablename__ = "orders"

    number: str = Field(primary_key=True, index=True)
    user_id: str = Field(index=True)
    status: OrderStatus = Field(default=OrderStatus.NEW, index=True)
    accrual_cents: int = Field(default=0, ge=0, sa_type=BigInteger)
    uploaded_at: datetime = Field(default_factory=_utcnow, index=True)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

class Account(SQLModel, table=True):
    __tablename__ = "accounts"

    user_id: str = Field(primary_key=True)
    current_balance_cents: int = Field(default=0, ge=0, sa_type=BigInteger)
    withdrawn_cents: int = Field(default=0, ge=0, sa_type=BigInteger)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

class Withdrawal(SQLModel, table=True):
    __tablename__ = "withdrawals"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    user_id: str = Field(index=True)
    order_number: str
    sum_cents: int = Field(gt=0, sa_type=BigInteger)
    processed_at: datetime = Field(default_factory=_utcnow, index=True)
