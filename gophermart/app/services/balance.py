from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from ..core.errors import (
    AccountAlreadyExistsError,
    AccountNotFoundError,
    InsufficientFundsError,
    InvalidOrderNumberError,
    InvalidWithdrawalAmountError,
)
from ..core.luhn import is_valid_luhn
from ..core.money import from_cents, is_whole_cents, to_cents
from ..models import (
    AccountModel,
    AccountResponse,
    BalanceResponse,
    WithdrawalModel,
    WithdrawalResponse,
)
from .repository import AccountRepository, WithdrawalRepository


class BalanceService:
    def __init__(
        self,
        session: Session,
        accounts: Optional[AccountRepository] = None,
        withdrawals: Optional[WithdrawalRepository] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.session = session
        self.accounts = accounts or AccountRepository(session)
        self.withdrawals = withdrawals or WithdrawalRepository(session)
        self.logger = logger or logging.getLogger(__name__)

    def _get_account(self, user_id: str) -> AccountModel:
        account = self.accounts.get_account(user_id)
        if account is None:
            raise AccountNotFoundError(f"Account for user {user_id} not found")
        return account

    def _withdrawal_to_response(self, withdrawal: WithdrawalModel) -> WithdrawalResponse:
        return WithdrawalResponse(
            order=withdrawal.order_number,
            sum=from_cents(withdrawal.sum_cents),
            processed_at=withdrawal.processed_at,
        )

    def open_account(self, user_id: str) -> AccountResponse:
        try:
            account = self.accounts.add_account(user_id)
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise AccountAlreadyExistsError(f"Account for user {user_id} already exists") from exc

        self.logger.info("account.opened", extra={"user_id": user_id})
        return AccountResponse(
            user_id=account.user_id,
            current=from_cents(account.current_balance_cents),
            withdrawn=from_cents(account.withdrawn_cents),
        )

    def get_balance(self, user_id: str) -> BalanceResponse:
        account = self._get_account(user_id)
        return BalanceResponse(
            current=from_cents(account.current_balance_cents),
            withdrawn=from_cents(account.withdrawn_cents),
        )

    def withdraw(self, user_id: str, order_number: str, amount: Decimal) -> WithdrawalResponse:
        if not is_valid_luhn(order_number):
            raise InvalidOrderNumberError(f"Order number {order_number} fails the Luhn check")
        if not amount.is_finite() or amount <= 0:
            raise InvalidWithdrawalAmountError("Withdrawal sum must be positive")
        if not is_whole_cents(amount):
            raise InvalidWithdrawalAmountError("Withdrawal sum has more than two decimal places")
        cents = to_cents(amount)

        self._get_account(user_id)

        try:
            # Conditional decrement and ledger row commit together or not at all.
            if not self.accounts.debit(user_id, cents):
                self.session.rollback()
                self.logger.warning(
                    "balance.withdraw.insufficient",
                    extra={"user_id": user_id, "order_number": order_number, "sum": str(amount)},
                )
                raise InsufficientFundsError("Insufficient funds for withdrawal")

            withdrawal = self.withdrawals.add_withdrawal(
                user_id=user_id,
                order_number=order_number,
                cents=cents,
            )
            response = self._withdrawal_to_response(withdrawal)
            self.session.commit()
        except InsufficientFundsError:
            raise
        except Exception:
            self.session.rollback()
            raise

        self.logger.info(
            "balance.withdraw",
            extra={"user_id": user_id, "order_number": order_number, "sum": str(amount)},
        )
        return response

    def list_withdrawals(self, user_id: str) -> list[WithdrawalResponse]:
        return [
            self._withdrawal_to_response(withdrawal)
            for withdrawal in self.withdrawals.list_by_user(user_id)
        ]
