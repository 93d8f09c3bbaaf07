import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from single_invites.api.auth_utils import create_access_token
from single_invites.api.deps import get_context
from single_invites.api.routes import admin_invites, invites, onboarding


@pytest.fixture
def app(ctx) -> FastAPI:
    """Routers mounted on a bare app, wired to the in-memory context."""
    app = FastAPI()
    app.include_router(invites.router, prefix="/api/singles/invites")
    app.include_router(onboarding.router, prefix="/api/singles/onboarding")
    app.include_router(admin_invites.router, prefix="/api/admin/singles/invites")

    app.dependency_overrides[get_context] = lambda: ctx

    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def auth_for():
    """Bearer header for an account."""

    def _auth(account) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token({'sub': str(account.id)})}"}

    return _auth
