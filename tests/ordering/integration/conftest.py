import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from ordering.api.errors import register_storefront_handlers
from ordering.api.routes import cart_router, maintenance_router, order_router
from ordering.domain import ordering
from protean.integrations.fastapi import register_exception_handlers


@pytest.fixture()
def client():
    app = FastAPI()

    @app.middleware("http")
    async def ordering_context(request: Request, call_next):
        with ordering.domain_context():
            return await call_next(request)

    register_exception_handlers(app)
    register_storefront_handlers(app)
    app.include_router(cart_router)
    app.include_router(order_router)
    app.include_router(maintenance_router)
    return TestClient(app)


@pytest.fixture
def shopper():
    return {"X-Actor-Id": "cust-001"}


@pytest.fixture
def staff():
    return {"X-Actor-Id": "staff-001", "X-Actor-Role": "admin"}
