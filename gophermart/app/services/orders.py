from __future__ import annotations

import logging
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from ..core.errors import (
    AccountNotFoundError,
    EmptyOrderNumberError,
    InvalidOrderNumberError,
    OrderOwnedByAnotherUserError,
)
from ..core.luhn import is_valid_luhn
from ..core.money import from_cents, to_cents
from ..models import OrderModel, OrderResponse, OrderStatus
from ..models.status import PENDING_STATUSES, can_transition
from .repository import AccountRepository, OrderRepository


class UploadResult(str, Enum):
    ACCEPTED = "accepted"
    ALREADY_UPLOADED = "already_uploaded"


class OrderService:
    def __init__(
        self,
        session: Session,
        orders: Optional[OrderRepository] = None,
        accounts: Optional[AccountRepository] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.session = session
        self.orders = orders or OrderRepository(session)
        self.accounts = accounts or AccountRepository(session)
        self.logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Helper utilities
    # ------------------------------------------------------------------
    def _resolve_existing(self, order: OrderModel, user_id: str) -> UploadResult:
        if order.user_id == user_id:
            self.logger.info(
                "order.upload.duplicate",
                extra={"user_id": user_id, "order_number": order.number},
            )
            return UploadResult.ALREADY_UPLOADED

        self.logger.warning(
            "order.upload.conflict",
            extra={"user_id": user_id, "order_number": order.number},
        )
        raise OrderOwnedByAnotherUserError(
            f"Order {order.number} was uploaded by another user"
        )

    def _order_to_response(self, order: OrderModel) -> OrderResponse:
        accrual = None
        if order.status == OrderStatus.PROCESSED:
            accrual = from_cents(order.accrual_cents)
        return OrderResponse(
            number=order.number,
            status=order.status,
            accrual=accrual,
            uploaded_at=order.uploaded_at,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def upload(self, user_id: str, number: str) -> UploadResult:
        number = number.strip()
        if not number:
            raise EmptyOrderNumberError("Order number is required")
        if not is_valid_luhn(number):
            raise InvalidOrderNumberError(f"Order number {number} fails the Luhn check")

        existing = self.orders.get_order(number)
        if existing is not None:
            return self._resolve_existing(existing, user_id)

        try:
            self.orders.add_order(number=number, user_id=user_id)
            self.session.commit()
        except IntegrityError:
            # Another request inserted the same number first; re-read the winner.
            self.session.rollback()
            self.logger.warning(
                "order.upload.race",
                extra={"user_id": user_id, "order_number": number},
            )
            winner = self.orders.get_order(number)
            if winner is None:
                raise
            return self._resolve_existing(winner, user_id)
        except Exception:
            self.session.rollback()
            raise

        self.logger.info(
            "order.uploaded",
            extra={"user_id": user_id, "order_number": number, "status": OrderStatus.NEW.value},
        )
        return UploadResult.ACCEPTED

    def list_orders(self, user_id: str) -> list[OrderResponse]:
        return [self._order_to_response(order) for order in self.orders.list_by_user(user_id)]

    def apply_status(
        self,
        order: OrderModel,
        new_status: OrderStatus,
        accrual: Decimal,
    ) -> tuple[bool, bool]:
        """Persist an oracle decision for ``order`` and credit its owner if due.

        The accrual is rounded half up to hundredths of a point. The status
        update and the credit share one transaction. Returns
        ``(updated, credited)``.
        """
        old_status = order.status
        sources = [s for s in PENDING_STATUSES if can_transition(s, new_status)]
        cents = to_cents(accrual) if new_status == OrderStatus.PROCESSED else 0

        try:
            updated = self.orders.update_status(
                order.number, new_status, cents, allowed_from=sources
            )
            credited = False
            if updated and new_status == OrderStatus.PROCESSED and cents > 0:
                credited = self.accounts.credit(order.user_id, cents)
                if not credited:
                    raise AccountNotFoundError(
                        f"Account {order.user_id} not found for order {order.number}"
                    )
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        if updated:
            self.logger.info(
                "order.status.updated",
                extra={
                    "order_number": order.number,
                    "old_status": old_status.value,
                    "new_status": new_status.value,
                    "accrual": str(from_cents(cents)),
                    "credited": credited,
                },
            )
        return updated, credited
