from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import update
from sqlmodel import Session, select

from ..models import AccountModel, OrderModel, OrderStatus, WithdrawalModel
from ..models.status import PENDING_STATUSES, TERMINAL_STATUSES


class OrderRepository:
    """Order Store: orders keyed by their number."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def add_order(self, *, number: str, user_id: str) -> OrderModel:
        order = OrderModel(number=number, user_id=user_id, status=OrderStatus.NEW)
        self.session.add(order)
        self.session.flush()
        self.session.refresh(order)
        return order

    def get_order(self, number: str) -> Optional[OrderModel]:
        return self.session.get(OrderModel, number)

    def list_by_user(self, user_id: str) -> list[OrderModel]:
        stmt = (
            select(OrderModel)
            .where(OrderModel.user_id == user_id)
            .order_by(OrderModel.uploaded_at.desc())
        )
        return list(self.session.exec(stmt))

    def list_pending(self, limit: Optional[int] = None) -> list[OrderModel]:
        stmt = (
            select(OrderModel)
            .where(OrderModel.status.in_(sorted(PENDING_STATUSES)))
            .order_by(OrderModel.uploaded_at, OrderModel.number)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.exec(stmt))

    def update_status(
        self,
        number: str,
        status: OrderStatus,
        accrual_cents: int,
        *,
        allowed_from: Iterable[OrderStatus],
    ) -> bool:
        """Move ``number`` to ``status`` if its stored status is in ``allowed_from``.

        Keyed by number rather than a loaded row, so concurrent writers race on
        the database row. Terminal rows never match. Returns whether a row changed.
        """
        sources = [s for s in allowed_from if s not in TERMINAL_STATUSES and s != status]
        if not sources:
            return False
        stmt = (
            update(OrderModel)
            .where(OrderModel.number == number)
            .where(OrderModel.status.in_(sources))
            .values(status=status, accrual_cents=accrual_cents, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1


class AccountRepository:
    """Account Store: one balance row per user, mutated only by server-side deltas."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def add_account(self, user_id: str) -> AccountModel:
        account = AccountModel(user_id=user_id)
        self.session.add(account)
        self.session.flush()
        self.session.refresh(account)
        return account

    def get_account(self, user_id: str) -> Optional[AccountModel]:
        return self.session.get(AccountModel, user_id)

    def credit(self, user_id: str, cents: int) -> bool:
        stmt = (
            update(AccountModel)
            .where(AccountModel.user_id == user_id)
            .values(
                current_balance_cents=AccountModel.current_balance_cents + cents,
                updated_at=datetime.now(UTC),
            )
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1

    def debit(self, user_id: str, cents: int) -> bool:
        """Decrement the balance and grow ``withdrawn`` only if funds suffice."""
        stmt = (
            update(AccountModel)
            .where(AccountModel.user_id == user_id)
            .where(AccountModel.current_balance_cents >= cents)
            .values(
                current_balance_cents=AccountModel.current_balance_cents - cents,
                withdrawn_cents=AccountModel.withdrawn_cents + cents,
                updated_at=datetime.now(UTC),
            )
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1


class WithdrawalRepository:
    """Withdrawal Ledger: append-only debit log."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def add_withdrawal(
        self,
        *,
        user_id: str,
        order_number: str,
        cents: int,
    ) -> WithdrawalModel:
        withdrawal = WithdrawalModel(
            user_id=user_id,
            order_number=order_number,
            sum_cents=cents,
        )
        self.session.add(withdrawal)
        self.session.flush()
        self.session.refresh(withdrawal)
        return withdrawal

    def list_by_user(self, user_id: str) -> list[WithdrawalModel]:
        stmt = (
            select(WithdrawalModel)
            .where(WithdrawalModel.user_id == user_id)
            .order_by(WithdrawalModel.processed_at.desc())
        )
        return list(self.session.exec(stmt))
