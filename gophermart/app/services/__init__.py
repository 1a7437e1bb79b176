from .accrual import (
    AccrualClient,
    AccrualInfo,
    NotRegistered,
    OracleResult,
    OracleUnavailable,
    RateLimited,
)
from .balance import BalanceService
from .orders import OrderService, UploadResult
from .reconciler import ReconciliationWorker, TickReport
from .repository import AccountRepository, OrderRepository, WithdrawalRepository

__all__ = [
    "AccrualClient",
    "AccrualInfo",
    "NotRegistered",
    "OracleResult",
    "OracleUnavailable",
    "RateLimited",
    "BalanceService",
    "OrderService",
    "UploadResult",
    "ReconciliationWorker",
    "TickReport",
    "AccountRepository",
    "OrderRepository",
    "WithdrawalRepository",
]
