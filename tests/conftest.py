from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from valhalla_api.config import Settings, get_settings
from valhalla_api.context import AppContext
from valhalla_api.main import create_app


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.delenv("NODE_ENV", raising=False)
    monkeypatch.setenv("LOG_LEVEL", "warning")
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def context(settings: Settings) -> AppContext:
    return AppContext(settings=settings)


@pytest.fixture
def app(context: AppContext) -> FastAPI:
    return create_app(context=context)


@pytest.fixture
async def api_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    # The boundary handler answers 500s before Starlette re-raises; keep the response.
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
