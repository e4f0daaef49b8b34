from __future__ import annotations

import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
TESTS = Path(__file__).resolve().parent
for entry in (ROOT, TESTS):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))

from fakebus import FakeSecretService  # noqa: E402

from secretproxy import ClientSettings, Service  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "SECRETPROXY_BUS",
        "SECRETPROXY_PROMPT_TIMEOUT",
        "SECRETPROXY_PROMPT_POLL",
        "SECRETPROXY_CALL_TIMEOUT",
        "SECRETPROXY_LEGACY",
        "SECRETPROXY_LOG_PATH",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def settings() -> ClientSettings:
    return ClientSettings(prompt_timeout=2.0, prompt_poll_interval=0.01)


@pytest.fixture()
def fake() -> FakeSecretService:
    daemon = FakeSecretService()
    daemon.add_collection("Login", alias="default")
    return daemon


@pytest.fixture()
def service(fake: FakeSecretService, settings: ClientSettings) -> Service:
    return Service(fake, settings)


@pytest.fixture()
def login(service: Service):
    return service.get_collection("default")
