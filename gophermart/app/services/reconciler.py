from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Protocol

from sqlmodel import Session

from ..models import OrderModel, OrderStatus
from ..models.status import map_oracle_status
from .accrual import NotRegistered, OracleResult, OracleUnavailable, RateLimited
from .orders import OrderService
from .repository import OrderRepository


class AccrualOracle(Protocol):
    async def query(self, number: str) -> OracleResult: ...


@dataclass
class TickReport:
    fetched: int = 0
    queried: int = 0
    updated: int = 0
    credited: int = 0
    skipped: int = 0
    failed: int = 0
    rate_limited: bool = False
    retry_after: Optional[float] = None


class ReconciliationWorker:
    """Polls the accrual oracle for pending orders and applies its decisions.

    One tick fetches every NEW/PROCESSING order (bounded by ``batch_size``
    when set) and queries the oracle for each. A rate-limit answer ends the
    tick; the next one starts after the regular ``poll_interval``. Database
    work runs in worker threads with a fresh session per unit of work.
    """

    def __init__(
        self,
        oracle: AccrualOracle,
        session_factory: Callable[[], Session],
        *,
        poll_interval: float = 5.0,
        batch_size: Optional[int] = None,
        max_concurrency: int = 1,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.oracle = oracle
        self.session_factory = session_factory
        self.poll_interval = poll_interval
        self.batch_size = batch_size
        self.max_concurrency = max_concurrency
        self.logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Store access (runs in threads)
    # ------------------------------------------------------------------
    def _fetch_pending(self) -> list[OrderModel]:
        with self.session_factory() as session:
            return OrderRepository(session).list_pending(limit=self.batch_size)

    def _apply(
        self, order: OrderModel, new_status: OrderStatus, accrual: Decimal
    ) -> tuple[bool, bool]:
        with self.session_factory() as session:
            return OrderService(session, logger=self.logger).apply_status(
                order, new_status, accrual
            )

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------
    async def _process_order(
        self,
        order: OrderModel,
        report: TickReport,
        gate: asyncio.Event,
    ) -> None:
        if gate.is_set():
            return

        report.queried += 1
        result = await self.oracle.query(order.number)

        if isinstance(result, RateLimited):
            gate.set()
            report.rate_limited = True
            report.retry_after = result.retry_after
            return

        if isinstance(result, (NotRegistered, OracleUnavailable)):
            report.skipped += 1
            return

        new_status = map_oracle_status(result.status)
        if new_status is None:
            self.logger.warning(
                "reconciler.status.unknown",
                extra={"order_number": order.number, "oracle_status": result.status},
            )
            report.skipped += 1
            return

        if new_status == order.status:
            report.skipped += 1
            return

        try:
            # A store step already running in its thread finishes its own
            # transaction; cancellation lands at the next await.
            updated, credited = await asyncio.to_thread(
                self._apply, order, new_status, result.accrual
            )
        except Exception:
            self.logger.exception(
                "reconciler.order.failed",
                extra={"order_number": order.number, "new_status": new_status.value},
            )
            report.failed += 1
            return

        if updated:
            report.updated += 1
        else:
            report.skipped += 1
        if credited:
            report.credited += 1

    async def run_tick(self) -> TickReport:
        report = TickReport()
        try:
            orders = await asyncio.to_thread(self._fetch_pending)
        except Exception:
            self.logger.exception("reconciler.fetch.failed")
            return report

        report.fetched = len(orders)
        if not orders:
            self.logger.debug("reconciler.tick.idle")
            return report

        gate = asyncio.Event()
        if self.max_concurrency == 1:
            for order in orders:
                if gate.is_set():
                    break
                await self._process_order(order, report, gate)
        else:
            semaphore = asyncio.Semaphore(self.max_concurrency)

            async def _bounded(order: OrderModel) -> None:
                async with semaphore:
                    await self._process_order(order, report, gate)

            await asyncio.gather(*(_bounded(order) for order in orders))

        if report.rate_limited:
            self.logger.warning(
                "reconciler.tick.rate_limited",
                extra={
                    "retry_after": report.retry_after,
                    "queried": report.queried,
                    "fetched": report.fetched,
                },
            )
        self.logger.info(
            "reconciler.tick.done",
            extra={
                "fetched": report.fetched,
                "queried": report.queried,
                "updated": report.updated,
                "credited": report.credited,
                "failed": report.failed,
            },
        )
        return report

    async def run(self) -> None:
        """Tick every ``poll_interval`` seconds until the task is cancelled."""
        self.logger.info("reconciler.started", extra={"poll_interval": self.poll_interval})
        try:
            while True:
                await asyncio.sleep(self.poll_interval)
                try:
                    await self.run_tick()
                except Exception:
                    self.logger.exception("reconciler.tick.failed")
        except asyncio.CancelledError:
            self.logger.info("reconciler.stopped")
            raise
