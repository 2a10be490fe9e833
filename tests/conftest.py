import pytest

from helpers import FakeTransport
from rvzd.config import HubRuntimeConfig
from rvzd.service import HubService


@pytest.fixture
def hub() -> HubService:
    return HubService(HubRuntimeConfig())


@pytest.fixture
def connect(hub):
    def _connect(name: str = "peer"):
        transport = FakeTransport(name)
        return transport, hub.on_connect(transport, label=name)

    return _connect
