from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

import httpx


@dataclass(frozen=True)
class AccrualInfo:
    order: str
    status: str
    accrual: Decimal = Decimal("0")


@dataclass(frozen=True)
class NotRegistered:
    """The oracle has not heard of the order yet."""


@dataclass(frozen=True)
class RateLimited:
    retry_after: float


@dataclass(frozen=True)
class OracleUnavailable:
    reason: str


OracleResult = Union[AccrualInfo, NotRegistered, RateLimited, OracleUnavailable]


class AccrualClient:
    """Asks the accrual oracle about one order at a time.

    Transport problems are returned as values rather than raised, so the
    reconciler can decide what to do with each outcome. The client never
    retries on its own.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        default_retry_after: int = 60,
        http_client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.default_retry_after = default_retry_after
        self.logger = logger or logging.getLogger(__name__)
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._timeout = timeout

    async def __aenter__(self) -> "AccrualClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    def _order_url(self, number: str) -> str:
        return f"{self.base_url}/api/orders/{number}"

    def _parse_retry_after(self, raw: Optional[str], number: str) -> float:
        try:
            value = int(raw) if raw is not None else 0
        except ValueError:
            value = 0
        if value <= 0:
            self.logger.warning(
                "accrual.retry_after.invalid",
                extra={"order_number": number, "retry_after_header": raw},
            )
            return float(self.default_retry_after)
        return float(value)

    def _parse_info(self, response: httpx.Response, number: str) -> OracleResult:
        try:
            payload = response.json()
            status = payload["status"]
            raw_accrual = payload.get("accrual")
            accrual = Decimal(str(raw_accrual)) if raw_accrual is not None else Decimal("0")
        except (ValueError, KeyError, TypeError, AttributeError, InvalidOperation) as exc:
            self.logger.error(
                "accrual.response.malformed",
                extra={"order_number": number, "error": str(exc)},
            )
            return OracleUnavailable(f"malformed response: {exc}")

        if not isinstance(status, str) or not accrual.is_finite() or accrual < 0:
            return OracleUnavailable("malformed response: bad status or accrual")

        return AccrualInfo(
            order=str(payload.get("order", number)),
            status=status,
            accrual=accrual,
        )

    async def query(self, number: str) -> OracleResult:
        url = self._order_url(number)
        self.logger.debug("accrual.request", extra={"order_number": number, "url": url})

        try:
            response = await self._http.get(url, timeout=self._timeout)
        except httpx.HTTPError as exc:
            self.logger.error(
                "accrual.request.failed",
                extra={"order_number": number, "error": repr(exc)},
            )
            return OracleUnavailable(f"transport error: {exc!r}")

        code = response.status_code
        if code == httpx.codes.OK:
            return self._parse_info(response, number)

        if code == httpx.codes.NO_CONTENT:
            self.logger.debug("accrual.order.not_registered", extra={"order_number": number})
            return NotRegistered()

        if code == httpx.codes.TOO_MANY_REQUESTS:
            retry_after = self._parse_retry_after(response.headers.get("Retry-After"), number)
            self.logger.warning(
                "accrual.rate_limited",
                extra={"order_number": number, "retry_after": retry_after},
            )
            return RateLimited(retry_after=retry_after)

        body = response.text
        if len(body) > 1024:
            body = body[:1024] + "..."
        self.logger.error(
            "accrual.unexpected_status",
            extra={"order_number": number, "status_code": code, "response_body": body},
        )
        return OracleUnavailable(f"unexpected status {code}")
