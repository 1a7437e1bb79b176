from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.concurrency import run_in_threadpool

from ..core.dependencies import (
    get_balance_service,
    get_current_user_id,
    get_order_service,
)
from ..models import (
    AccountResponse,
    BalanceResponse,
    OrderResponse,
    WithdrawalResponse,
    WithdrawRequest,
)
from ..services import BalanceService, OrderService, UploadResult


router = APIRouter(prefix="/api/user", tags=["user"])

@router.post("/account", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def open_account(
    user_id: str = Depends(get_current_user_id),
    service: BalanceService = Depends(get_balance_service),
) -> AccountResponse:
    return service.open_account(user_id)

@router.post("/orders", status_code=status.HTTP_202_ACCEPTED)
async def upload_order(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    service: OrderService = Depends(get_order_service),
) -> Response:
    raw = await request.body()
    number = raw.decode("utf-8", errors="replace")
    result = await run_in_threadpool(service.upload, user_id, number)
    if result is UploadResult.ALREADY_UPLOADED:
        return Response(status_code=status.HTTP_200_OK)
    return Response(status_code=status.HTTP_202_ACCEPTED)

@router.get("/orders", response_model=list[OrderResponse], response_model_exclude_none=True)
def list_orders(
    user_id: str = Depends(get_current_user_id),
    service: OrderService = Depends(get_order_service),
) -> list[OrderResponse]:
    return service.list_orders(user_id)

@router.get("/balance", response_model=BalanceResponse)
def get_balance(
    user_id: str = Depends(get_current_user_id),
    service: BalanceService = Depends(get_balance_service),
) -> BalanceResponse:
    return service.get_balance(user_id)

@router.post("/balance/withdraw", response_model=WithdrawalResponse)
def withdraw(
    payload: WithdrawRequest,
    user_id: str = Depends(get_current_user_id),
    service: BalanceService = Depends(get_balance_service),
) -> WithdrawalResponse:
    return service.withdraw(user_id, payload.order, payload.sum)

@router.get("/withdrawals", response_model=list[WithdrawalResponse])
def list_withdrawals(
    user_id: str = Depends(get_current_user_id),
    service: BalanceService = Depends(get_balance_service),
) -> list[WithdrawalResponse]:
    return service.list_withdrawals(user_id)

__all__ = ["router"]
