import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api.exceptions import register_exception_handlers
from .api.routes import router as user_router
from .core import db
from .core.config import Settings, get_settings
from .services import AccrualClient, ReconciliationWorker

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


def build_worker(settings: Settings, client: AccrualClient) -> ReconciliationWorker:
    return ReconciliationWorker(
        client,
        db.new_session,
        poll_interval=settings.poll_interval,
        batch_size=settings.reconcile_batch_size,
        max_concurrency=settings.reconcile_max_concurrency,
        logger=logging.getLogger("gophermart.reconciler"),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    db.init_db()
    client = None
    task = None
    if settings.accrual_system_address:
        client = AccrualClient(
            settings.accrual_system_address,
            timeout=settings.accrual_request_timeout,
            default_retry_after=settings.accrual_default_retry_after,
        )
        task = asyncio.create_task(build_worker(settings, client).run())
        app.state.reconciler_task = task
    else:
        logger.warning("reconciler.disabled", extra={"reason": "no accrual_system_address"})

    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if client is not None:
            await client.aclose()
        db.dispose_engine()

app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.include_router(user_router)
register_exception_handlers(app)

@app.get("/health")
def read_health() -> dict[str, str]:
    return {"status": "ok"}
