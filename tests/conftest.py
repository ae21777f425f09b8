"""Shared pytest fixtures for the test suite."""

import logging
import sqlite3
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from hermit.lib import eventbus
from hermit.lib.config import Settings
from hermit.lib.config.testing import set_settings
from hermit.lib.store import close_store, get_connectivity
from hermit.lib.store.connectivity import reset_connectivity
from hermit.server.sessions import session_registry
from tests.fakes import RecordingPublisher

_SQL_DIR = Path(__file__).parent.parent / "hermit" / "lib" / "sql"


@pytest.fixture(autouse=True)
def configure_caplog(caplog):
    """Ensure caplog captures logs from the hermit namespace."""
    caplog.set_level(logging.DEBUG, logger="hermit")


@pytest.fixture(autouse=True)
def publisher(monkeypatch):
    """Replace the Redis publisher with one that records change events."""
    fake = RecordingPublisher()
    monkeypatch.setattr(eventbus, "_publisher", fake)
    return fake


@pytest.fixture
def published(publisher):
    """Change events published during the test, in order."""
    return publisher.events


@pytest.fixture(autouse=True)
async def test_db(tmp_path):
    """Use a temporary SQLite database with the full schema for each test.

    Storage is marked connected, as it would be after a successful startup.
    """
    db_file = tmp_path / "test.sqlite3"
    set_settings(Settings(db_path=str(db_file), _env_file=None))

    conn = sqlite3.connect(str(db_file))
    for name in (
        "init_config_table.sql",
        "init_current_stats_table.sql",
        "init_sensors_table.sql",
        "idx_sensors.sql",
    ):
        conn.executescript((_SQL_DIR / name).read_text())
    conn.close()

    reset_connectivity()
    get_connectivity().mark_up()

    yield db_file

    await close_store()
    reset_connectivity()
    set_settings(None)


@pytest.fixture(autouse=True)
def reset_sessions():
    """Start and end every test with no registered sessions."""
    session_registry.clear()
    yield
    session_registry.clear()


@pytest.fixture
def make_request():
    """Build a mock Starlette request carrying a JSON body and path params."""

    def _make(body=None, *, path_params=None, json_error=None):
        request = MagicMock()
        request.method = "POST"
        request.path_params = path_params or {}
        if json_error is not None:
            request.json = AsyncMock(side_effect=json_error)
        else:
            request.json = AsyncMock(return_value=body)
        return request

    return _make
