"""Configuration store: per-user configuration documents and their change feed.

Documents live in the ``config`` table as JSON, one per user. Partial
updates are merged inside SQLite (``json_patch``) so concurrent writers
never overwrite each other's fields with stale values. Every committed
insert or update is published on the event bus; ``change_feed()`` replays
that bus as an async iterator of ``ChangeEvent``.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import suppress
from typing import Any

from redis.exceptions import RedisError

from hermit.lib.eventbus import (
    ChangeEvent,
    EventSubscriber,
    OperationType,
    get_publisher,
)
from hermit.lib.exceptions import StorageOperationFailed, StoreUnavailable
from hermit.lib.records import seed_document
from hermit.lib.store.connection import get_db, load_template
from hermit.lib.utils import to_sqlite, utcnow
from hermit.logging import get_logger

_logger = get_logger("lib.store.configs")


def _decode(raw: str) -> dict[str, Any]:
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as e:
        raise StorageOperationFailed(f"Corrupt configuration document: {e}") from e
    if not isinstance(document, dict):
        raise StorageOperationFailed("Corrupt configuration document: not an object")
    return document


async def _publish(event: ChangeEvent) -> None:
    """Publish a change; losing it only costs viewers one push."""
    try:
        await get_publisher().publish(event)
    except (RedisError, OSError) as e:
        _logger.warning(
            "Change event for %s not published: %s",
            event.document.get("userId"),
            e,
        )


async def get_config(user_id: str) -> dict[str, Any] | None:
    """Return the stored document for ``user_id``, or None if absent."""
    async with get_db() as db:
        row = await db.fetchone(
            load_template("config_get.sql"), {"user_id": user_id}
        )
    return _decode(row["document"]) if row is not None else None


async def seed_config(user_id: str) -> dict[str, Any]:
    """Return the stored document, creating it from defaults if absent.

    Seeding happens at most once per user: concurrent first reads race on
    the primary key and only the winner inserts (and publishes).
    """
    document = seed_document(user_id)
    async with get_db() as db, db.transaction():
        row = await db.fetchone(
            load_template("config_seed.sql"),
            {
                "user_id": user_id,
                "document": json.dumps(document),
                "updated_at": to_sqlite(utcnow()),
            },
        )
        inserted = row is not None
        if not inserted:
            row = await db.fetchone(
                load_template("config_get.sql"), {"user_id": user_id}
            )
    if row is None:
        raise StorageOperationFailed(f"Configuration for {user_id} vanished")

    stored = _decode(row["document"])
    if inserted:
        _logger.info("Seeded default configuration for %s", user_id)
        await _publish(ChangeEvent(OperationType.INSERT, stored))
    return stored


async def upsert_config(user_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    """Merge ``fields`` into the stored document and return the result.

    Fields not named in ``fields`` keep their stored values. A missing
    document is created from defaults with ``fields`` applied on top.
    """
    async with get_db() as db, db.transaction():
        row = await db.fetchone(
            load_template("config_upsert.sql"),
            {
                "user_id": user_id,
                "document": json.dumps(seed_document(user_id, fields)),
                "patch": json.dumps(fields),
                "updated_at": to_sqlite(utcnow()),
            },
        )
    if row is None:
        raise StorageOperationFailed(f"No configuration written for {user_id}")

    document = _decode(row["document"])
    operation = (
        OperationType.INSERT if row["revision"] == 1 else OperationType.UPDATE
    )
    await _publish(ChangeEvent(operation, document))
    return document


async def change_feed() -> AsyncIterator[ChangeEvent]:
    """Yield configuration changes as they are published.

    Each call opens a fresh subscription, so a consumer recovers from a
    lost feed by calling this again. Changes published while no
    subscription is open are not replayed.

    Raises:
        StoreUnavailable: When the underlying subscription fails.
    """
    subscriber = EventSubscriber()
    try:
        await subscriber.connect()
        async for event in subscriber.receive():
            yield event
    except (RedisError, OSError) as e:
        raise StoreUnavailable(f"Change feed lost: {e}") from e
    finally:
        with suppress(RedisError, OSError):
            await subscriber.close()
