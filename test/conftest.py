from typing import AsyncGenerator

import pytest
import pytest_asyncio
from forge_server import ForgeServer
from forge_chat_client.models import PollingConfig


@pytest_asyncio.fixture
async def server() -> AsyncGenerator[ForgeServer, None]:
    """Start and yield a ForgeServer on an ephemeral port."""
    server_instance = ForgeServer()
    await server_instance.start()
    try:
        yield server_instance
    finally:
        await server_instance.stop()


@pytest.fixture
def config() -> PollingConfig:
    """Fast polling so the suite does not wait on real intervals."""
    return PollingConfig(max_attempts=5, interval=0.01)
