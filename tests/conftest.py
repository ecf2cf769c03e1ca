import httpx
import pytest

from recrutas_live.api.client import ApiClient
from recrutas_live.client import LiveClient
from tests.fakes import FakeBackend, FakeConnector


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def api(backend):
    return ApiClient(
        base_url="http://testserver",
        token="test-token",
        transport=httpx.ASGITransport(app=backend.app),
    )


@pytest.fixture
def connector():
    return FakeConnector(auto_ack=True)


@pytest.fixture
def live_client(api, connector):
    return LiveClient(
        api=api,
        connector=connector,
        ws_url="ws://testserver/ws",
        supervisor_options={"initial_delay": 0.0, "jitter": 0.0, "heartbeat_interval": 60.0},
        poller_options={"interval": 3600.0},
        ack_timeout=0.5,
    )
