from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, Field, PlainSerializer

from .status import OrderStatus

# Exact two-place decimal that goes out as a JSON number.
Points = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

class AccountResponse(BaseModel):
    user_id: str
    current: Points = Field(..., ge=0, description="Points available to spend")
    withdrawn: Points = Field(..., ge=0, description="Points spent over the account lifetime")

class BalanceResponse(BaseModel):
    current: Points = Field(..., ge=0)
    withdrawn: Points = Field(..., ge=0)

class OrderResponse(BaseModel):
    number: str
    status: OrderStatus
    accrual: Optional[Points] = Field(default=None, description="Only present once PROCESSED")
    uploaded_at: datetime

class WithdrawRequest(BaseModel):
    order: str = Field(..., min_length=1, description="Order number the points are spent on")
    sum: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)

class WithdrawalResponse(BaseModel):
    order: str
    sum: Points
    processed_at: datetime
