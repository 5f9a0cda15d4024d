import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app
from registry import Registry

ADMIN_TOKEN = "test-admin-token"
STATS_TOKEN = "test-stats-token"


class FakeClock:
    """Stands in for time.time so tests decide when 'now' is."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    return Registry(window=30.0, clock=clock)


def make_settings(**overrides) -> Settings:
    values = dict(admin_token=ADMIN_TOKEN, stats_token=STATS_TOKEN, online_window_seconds=30.0)
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def client(registry):
    app = create_app(make_settings(), registry=registry)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def push_client(registry):
    # no `with` block: each WebSocket session then runs on its own portal,
    # and leaving the session waits for the server side to finish
    app = create_app(make_settings(hub_mode="push"), registry=registry)
    return TestClient(app)


@pytest.fixture
def admin():
    return {"X-Admin-Token": ADMIN_TOKEN}
