import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request

from orderup.application.orchestrator import OrderOrchestrator
from orderup.core.config import Settings, settings as default_settings
from orderup.core.logging_config import configure_logging
from orderup.infrastructure.charge_service import HttpChargeService
from orderup.infrastructure.database import build_engine, build_session_factory, init_db
from orderup.infrastructure.repositories.memory_order_repository import InMemoryOrderRepository
from orderup.infrastructure.repositories.order_repository import SqlOrderRepository
from orderup.interfaces import orders_api
from orderup.interfaces.IChargeService import IChargeService
from orderup.interfaces.IOrderRepository import IOrderRepository

logger = logging.getLogger(__name__)


def build_order_repository(settings: Settings) -> IOrderRepository:
    if not settings.DATABASE_URL:
        logger.info("using in-memory order storage")
        return InMemoryOrderRepository()

    engine = build_engine(settings.DATABASE_URL)
    init_db(engine, retries=settings.DB_CONNECT_RETRIES, wait_seconds=settings.DB_CONNECT_WAIT_SECONDS)
    return SqlOrderRepository(build_session_factory(engine), engine=engine)


# ---------------------------------------------------------
# COMPOSITION ROOT
# ---------------------------------------------------------
def create_app(
    settings: Settings = default_settings,
    order_repo: Optional[IOrderRepository] = None,
    charge_service: Optional[IChargeService] = None,
) -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    # Only what is built here is closed on shutdown; injected resources belong to the caller.
    owns_repo = order_repo is None
    owns_charge_service = charge_service is None
    if owns_repo:
        order_repo = build_order_repository(settings)
    if owns_charge_service:
        charge_service = HttpChargeService(
            settings.CHARGE_SERVICE_URL, timeout=settings.CHARGE_SERVICE_TIMEOUT_SECONDS
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_charge_service:
            await charge_service.aclose()
        if owns_repo:
            order_repo.close()

    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.orchestrator = OrderOrchestrator(order_repo=order_repo, charge_service=charge_service)

    app.include_router(orders_api.router)
    orders_api.register_error_handlers(app)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = int((time.perf_counter() - start) * 1000)

        parts = request.url.path.strip("/").split("/")
        order_id = parts[1] if len(parts) >= 2 and parts[0] == "orders" else None
        client_ip = request.client.host if request.client else ""
        log = logger.error if response.status_code >= 400 else logger.info
        log(
            "request completed method=%s path=%s status_code=%d duration_ms=%d client_ip=%s%s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            client_ip,
            f" order_id={order_id}" if order_id else "",
        )
        return response

    return app


def serve() -> None:
    import uvicorn

    uvicorn.run(
        "orderup.main:create_app",
        factory=True,
        host=default_settings.HOST,
        port=default_settings.PORT,
        log_config=None,
    )
