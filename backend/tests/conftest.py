import os
import sys
import tempfile
from pathlib import Path

import pytest

# Add project root (1 level up from tests/) to sys.path so tests can import 'callrelay'
root = Path(__file__).resolve().parents[1]
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

# Point the app at a throwaway SQLite file before any callrelay module
# builds its engine from settings.
_db_dir = tempfile.mkdtemp(prefix="callrelay-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_db_dir}/callrelay.db"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

from callrelay.models import database as database_module
from callrelay.services.signaling import Connection, SignalingService
from tests.helpers import FakeBookingDirectory, FakeWebSocket, RecordingHistorySink, make_settings


@pytest.fixture
def directory():
    return FakeBookingDirectory()


@pytest.fixture
def history_sink():
    return RecordingHistorySink()


@pytest.fixture
def signaling(directory, history_sink):
    """Relay wired to in-memory fakes, short ring timeout."""
    return SignalingService(
        directory=directory,
        history_sink=history_sink,
        presence=None,
        config=make_settings(CALL_RING_TIMEOUT_SEC=0.05),
    )


@pytest.fixture
def connect(signaling):
    """Factory: a joined Connection over a FakeWebSocket."""
    def _connect(identity: str) -> Connection:
        conn = Connection(FakeWebSocket())
        signaling.registry.register(identity, conn)
        return conn
    return _connect


@pytest.fixture
async def async_db():
    """Fresh tables in the SQLite test database for each test."""
    async with database_module.engine.begin() as conn:
        await conn.run_sync(database_module.Base.metadata.drop_all)
        await conn.run_sync(database_module.Base.metadata.create_all)
    yield database_module.AsyncSessionLocal


@pytest.fixture
def app_signaling(directory, history_sink):
    """Relay for app-level tests, where the default ring timeout keeps calls alive."""
    return SignalingService(
        directory=directory,
        history_sink=history_sink,
        presence=None,
        config=make_settings(),
    )
