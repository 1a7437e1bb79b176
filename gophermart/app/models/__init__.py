from .db import Account as AccountModel
from .db import Order as OrderModel
from .db import Withdrawal as WithdrawalModel
from .schemas import (
    AccountResponse,
    BalanceResponse,
    OrderResponse,
    WithdrawalResponse,
    WithdrawRequest,
)
from .status import OrderStatus

__all__ = [
    "AccountResponse",
    "BalanceResponse",
    "OrderResponse",
    "WithdrawalResponse",
    "WithdrawRequest",
    "OrderStatus",
    "AccountModel",
    "OrderModel",
    "WithdrawalModel",
]
