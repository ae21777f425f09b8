"""Async storage layer for the HermitHome backend.

This package provides the configuration store adapter, reading persistence
and the storage connectivity status, all on top of aiosqlite.

See connection.py for how connections are pooled and how errors are
translated.
"""

from hermit.lib.store.configs import change_feed as change_feed
from hermit.lib.store.configs import get_config as get_config
from hermit.lib.store.configs import seed_config as seed_config
from hermit.lib.store.configs import upsert_config as upsert_config
from hermit.lib.store.connection import ConnectionPool as ConnectionPool
from hermit.lib.store.connection import Database as Database
from hermit.lib.store.connection import close_store as close_store
from hermit.lib.store.connection import get_db as get_db
from hermit.lib.store.connection import init_store as init_store
from hermit.lib.store.connectivity import ConnectivityStatus as ConnectivityStatus
from hermit.lib.store.connectivity import get_connectivity as get_connectivity
from hermit.lib.store.connectivity import report_unavailable as report_unavailable
from hermit.lib.store.readings import get_current_stats as get_current_stats
from hermit.lib.store.readings import record_reading as record_reading
from hermit.lib.store.types import CurrentStats as CurrentStats
from hermit.lib.store.types import SQLParams as SQLParams
