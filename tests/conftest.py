from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient

from portfolio_backend.config import get_settings
from portfolio_backend.main import app
from portfolio_backend.observability.metrics import reset_metrics
from portfolio_backend.services.app_log import set_app_log
from portfolio_backend.services.portfolio_store import set_store


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("HOSTNAME", "test-pod")
    monkeypatch.setenv("NODE_ENV", "test")
    get_settings.cache_clear()

    set_store(None)
    set_app_log(None)
    reset_metrics()

    settings = get_settings()
    settings.data_path.mkdir(parents=True, exist_ok=True)
    settings.log_path.mkdir(parents=True, exist_ok=True)

    yield

    set_store(None)
    set_app_log(None)
    reset_metrics()
    get_settings.cache_clear()


@pytest.fixture
async def api_client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
