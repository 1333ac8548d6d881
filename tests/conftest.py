import os

import pytest
import pytest_asyncio

# Keep verbose debug formatting off regardless of the caller's shell
os.environ.setdefault("DEBUG", "0")

from tests.fixtures.fake_transport import FakeTransportFactory  # noqa: E402


@pytest.fixture
def transport_factory():
    return FakeTransportFactory()


@pytest_asyncio.fixture
async def clients():
    """Collects chat clients built in a test and disconnects them afterwards."""
    created: list = []
    yield created
    for client in created:
        await client.disconnect()
