import asyncio

import pytest
from fastapi.testclient import TestClient

from orderup.application.orchestrator import OrderOrchestrator
from orderup.core.config import Settings
from orderup.domain.models import LineItem
from orderup.infrastructure.database import build_engine, build_session_factory, init_db
from orderup.infrastructure.repositories.memory_order_repository import InMemoryOrderRepository
from orderup.infrastructure.repositories.order_repository import SqlOrderRepository
from orderup.interfaces.IChargeService import IChargeService
from orderup.main import create_app


class FakeChargeService(IChargeService):
    """Records every call; fails with ``error`` when it is set."""

    def __init__(self):
        self.calls = []
        self.error = None
        self.delay = 0.0

    async def charge(self, payment_token, amount_cents):
        self.calls.append((payment_token, amount_cents))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error


def widget(price=1000, quantity=2, description="Widget"):
    return LineItem(description=description, unit_price_cents=price, quantity=quantity)


@pytest.fixture
def memory_repo():
    return InMemoryOrderRepository()


@pytest.fixture
def sql_repo():
    engine = build_engine("sqlite://")
    init_db(engine, retries=1)
    yield SqlOrderRepository(build_session_factory(engine))
    engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def order_repo(request):
    """Runs a test against every order store."""
    return request.getfixturevalue(f"{request.param}_repo")


@pytest.fixture
def charge_service():
    return FakeChargeService()


@pytest.fixture
def orchestrator(memory_repo, charge_service):
    return OrderOrchestrator(order_repo=memory_repo, charge_service=charge_service)


@pytest.fixture
def client(memory_repo, charge_service):
    app = create_app(
        settings=Settings(REQUEST_TIMEOUT_SECONDS=5),
        order_repo=memory_repo,
        charge_service=charge_service,
    )
    with TestClient(app) as test_client:
        yield test_client
