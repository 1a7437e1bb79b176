from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..core.errors import (
    AccountAlreadyExistsError,
    AccountNotFoundError,
    EmptyOrderNumberError,
    GophermartError,
    InsufficientFundsError,
    InvalidOrderNumberError,
    InvalidWithdrawalAmountError,
    OrderOwnedByAnotherUserError,
)

_STATUS_BY_ERROR: dict[type[GophermartError], int] = {
    EmptyOrderNumberError: 400,
    AccountNotFoundError: 404,
    AccountAlreadyExistsError: 409,
    OrderOwnedByAnotherUserError: 409,
    InsufficientFundsError: 402,
    InvalidOrderNumberError: 422,
    InvalidWithdrawalAmountError: 422,
}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(GophermartError)
    async def domain_error_handler(
        request: Request, exc: GophermartError
    ) -> JSONResponse:
        status_code = _STATUS_BY_ERROR.get(type(exc), 400)
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})
