import json as jsonlib
from pathlib import Path

import httpx
import pytest

from adapters.http_client import ApiClient
from adapters.token_store import MemoryTokenStore
from core.config import AppSettings

API_BASE = "http://api.test"
APP_BASE = "http://app.test"


class FakeBackend:
    """Handler para `httpx.MockTransport`.

    Cada elemento de `script` es `(status, body)` o una excepción; el último se
    repite cuando se agota la lista.
    """

    def __init__(self, *script):
        self.script = list(script)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, Exception):
            raise item
        status, body = item
        if body is None:
            return httpx.Response(status)
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, content=jsonlib.dumps(body).encode(), headers={"Content-Type": "application/json"})

    @property
    def calls(self) -> int:
        return len(self.requests)


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch) -> Path:
    config_dir = tmp_path / "config"
    monkeypatch.setattr("core.config.get_user_config_dir", lambda: config_dir)
    monkeypatch.setenv("ATORIX_API_BASE_URL", API_BASE)
    monkeypatch.setenv("ATORIX_APP_BASE_URL", APP_BASE)
    monkeypatch.setenv("ATORIX_SESSION_FILE", str(tmp_path / "session.json"))
    monkeypatch.delenv("NEXT_PUBLIC_API_BASE_URL", raising=False)
    return config_dir


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        _env_file=None,
        api_base_url=API_BASE,
        app_base_url=APP_BASE,
        max_attempts=3,
        retry_base_delay_ms=1000,
        rate_limit_delay_ms=5000,
    )


@pytest.fixture
def store() -> MemoryTokenStore:
    return MemoryTokenStore()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_client(settings, store, sleeper):
    def _make(backend: FakeBackend, **kwargs) -> ApiClient:
        kwargs.setdefault("settings", settings)
        kwargs.setdefault("token_store", store)
        kwargs.setdefault("sleep", sleeper)
        client_settings = kwargs.pop("settings")
        return ApiClient(client_settings, transport=httpx.MockTransport(backend), **kwargs)

    return _make
