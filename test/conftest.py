from typing import AsyncGenerator, Tuple

import pytest
import pytest_asyncio
from scan_launcher.models import PollingConfig
from scan_server import ScanServer

BASE_URL_TEMPLATE = "http://localhost:{}/graphql"


@pytest_asyncio.fixture
async def server(unused_tcp_port_factory) -> AsyncGenerator[Tuple[ScanServer, str], None]:
    """Start and yield a fake scan service on a random port, with its endpoint URL."""
    port = unused_tcp_port_factory()
    server_instance = ScanServer()
    await server_instance.start(port=port)
    try:
        yield server_instance, BASE_URL_TEMPLATE.format(port)
    finally:
        await server_instance.stop()


@pytest.fixture
def config() -> PollingConfig:
    """Fast polling: three null readings in a row time out initialization."""
    return PollingConfig(max_attempts=5, poll_interval=0.01, initialization_timeout=0.03)
