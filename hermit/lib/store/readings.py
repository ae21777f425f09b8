"""Sensor reading persistence: current snapshot and append-only history."""

from __future__ import annotations

from typing import cast

from hermit.lib.config import get_settings
from hermit.lib.reading import Reading
from hermit.lib.store.connection import get_db, load_template
from hermit.lib.store.types import CurrentStats
from hermit.lib.utils import civil_components, to_sqlite


async def record_reading(reading: Reading) -> bool:
    """Upsert the user's current snapshot and append a history record.

    Both writes commit together.

    Returns:
        True if the current snapshot row was matched or inserted.
    """
    timestamp = to_sqlite(reading.recording_time)
    date, time = civil_components(
        reading.recording_time, get_settings().civil_timezone
    )
    params = {**reading.as_params(), "timestamp": timestamp}

    async with get_db() as db, db.transaction():
        affected = await db.execute(
            load_template("current_stats_upsert.sql"), params
        )
        await db.execute(
            load_template("sensors_insert.sql"),
            {**params, "date": date, "time": time},
        )
    return affected > 0


async def get_current_stats(user_id: str) -> CurrentStats | None:
    """Return the latest reading recorded for ``user_id``."""
    async with get_db() as db:
        row = await db.fetchone(
            load_template("current_stats_get.sql"), {"user_id": user_id}
        )
    return cast(CurrentStats | None, row)
