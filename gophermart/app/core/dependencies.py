from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlmodel import Session

from ..services import BalanceService, OrderService
from .db import get_session

def get_order_service(session: Session = Depends(get_session)) -> OrderService:
    return OrderService(session)

def get_balance_service(session: Session = Depends(get_session)) -> BalanceService:
    return BalanceService(session)

def get_current_user_id(
    user_id: Optional[str] = Header(default=None, convert_underscores=False, alias="X-User-ID"),
) -> str:
    # Issued and verified by the auth layer in front of this service.
    if not user_id or not user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user_id.strip()
