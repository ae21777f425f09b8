"""Tests for the change watcher and its supervisor."""

import asyncio
from unittest.mock import patch

import pytest

from hermit.lib.eventbus import ChangeEvent, OperationType
from hermit.lib.exceptions import StoreUnavailable
from hermit.lib.records import CONFIG_FIELDS, DEFAULT_CONFIG
from hermit.server.sessions import SessionRegistry
from hermit.server.watcher import ChangeWatcher, supervise
from tests.fakes import FakeChannel


def _update(user_id="u1", **fields):
    document = {"userId": user_id, "_rev": 7, **DEFAULT_CONFIG, **fields}
    return ChangeEvent(OperationType.UPDATE, document)


def _feed(*events, error=None):
    """Build a feed factory replaying ``events`` then optionally failing."""

    async def feed():
        for event in events:
            yield event
        if error is not None:
            raise error

    return feed


@pytest.fixture
def registry():
    return SessionRegistry()


class TestHandle:
    """Tests for ChangeWatcher.handle()."""

    async def test_pushes_hydrated_record_to_owner(self, registry):
        channel = FakeChannel()
        registry.register("u1", channel)
        watcher = ChangeWatcher(registry)

        delivered = await watcher.handle(_update(maxTemperature=35))

        assert delivered is True
        assert len(channel.frames) == 1
        frame = channel.frames[0]
        assert tuple(frame) == CONFIG_FIELDS
        assert frame["maxTemperature"] == 35
        assert "userId" not in frame

    async def test_insert_is_pushed(self, registry):
        channel = FakeChannel()
        registry.register("u1", channel)

        event = ChangeEvent(OperationType.INSERT, {"userId": "u1"})
        assert await ChangeWatcher(registry).handle(event) is True
        assert channel.frames == [DEFAULT_CONFIG]

    async def test_other_users_session_gets_nothing(self, registry):
        channel = FakeChannel()
        registry.register("u1", channel)

        assert await ChangeWatcher(registry).handle(_update("u2")) is False
        assert channel.frames == []

    async def test_no_session_is_a_no_op(self, registry):
        assert await ChangeWatcher(registry).handle(_update()) is False

    async def test_closed_channel_is_skipped(self, registry):
        channel = FakeChannel(open=False)
        registry.register("u1", channel)

        assert await ChangeWatcher(registry).handle(_update()) is False
        assert channel.frames == []

    async def test_send_failure_is_logged(self, registry, caplog):
        registry.register("u1", FakeChannel(error=RuntimeError("broken pipe")))

        assert await ChangeWatcher(registry).handle(_update()) is False
        assert "Push to u1 failed: broken pipe" in caplog.text

    @pytest.mark.parametrize("document", [{}, {"userId": ""}, {"userId": 42}])
    async def test_missing_identity_is_skipped(self, registry, caplog, document):
        registry.register("u1", FakeChannel())
        event = ChangeEvent(OperationType.UPDATE, document)

        assert await ChangeWatcher(registry).handle(event) is False
        assert "without a user identity" in caplog.text

    async def test_other_operations_are_ignored(self, registry):
        channel = FakeChannel()
        registry.register("u1", channel)
        event = ChangeEvent(OperationType.OTHER, {"userId": "u1"})

        assert await ChangeWatcher(registry).handle(event) is False
        assert channel.frames == []

    async def test_frame_follows_replacement(self, registry):
        first, second = FakeChannel(), FakeChannel()
        registry.register("u1", first)
        registry.register("u1", second)

        await ChangeWatcher(registry).handle(_update())

        assert first.frames == []
        assert len(second.frames) == 1


class TestRun:
    """Tests for ChangeWatcher.run()."""

    async def test_one_frame_per_change(self, registry):
        channel = FakeChannel()
        registry.register("u1", channel)
        watcher = ChangeWatcher(
            registry,
            feed=_feed(_update(minLight=1), _update(minLight=2)),
        )

        await watcher.run()

        assert [f["minLight"] for f in channel.frames] == [1, 2]
        assert watcher.events_seen == 2

    async def test_bad_event_does_not_stop_the_feed(self, registry, caplog):
        channel = FakeChannel()
        registry.register("u1", channel)
        watcher = ChangeWatcher(registry, feed=_feed(_update(), _update()))

        with patch.object(
            watcher, "handle", side_effect=[RuntimeError("boom"), True]
        ) as handle:
            await watcher.run()

        assert handle.await_count == 2
        assert "could not be handled" in caplog.text

    async def test_feed_failure_propagates(self, registry):
        watcher = ChangeWatcher(
            registry, feed=_feed(error=StoreUnavailable("Change feed lost"))
        )

        with pytest.raises(StoreUnavailable):
            await watcher.run()


class TestSupervise:
    """Tests for supervise()."""

    async def test_restarts_with_growing_backoff(self, registry):
        watcher = ChangeWatcher(
            registry, feed=_feed(error=StoreUnavailable("down"))
        )

        with (
            patch(
                "hermit.server.watcher.asyncio.sleep",
                side_effect=[None, None, asyncio.CancelledError()],
            ) as sleep,
            pytest.raises(asyncio.CancelledError),
        ):
            await supervise(watcher, initial_backoff_sec=1, max_backoff_sec=60)

        assert [c.args[0] for c in sleep.call_args_list] == [1, 2, 4]

    async def test_backoff_is_capped(self, registry):
        watcher = ChangeWatcher(registry, feed=_feed())

        with (
            patch(
                "hermit.server.watcher.asyncio.sleep",
                side_effect=[None, None, asyncio.CancelledError()],
            ) as sleep,
            pytest.raises(asyncio.CancelledError),
        ):
            await supervise(watcher, initial_backoff_sec=2, max_backoff_sec=3)

        assert [c.args[0] for c in sleep.call_args_list] == [2, 3, 3]

    async def test_backoff_resets_after_delivering(self, registry):
        watcher = ChangeWatcher(registry, feed=_feed(_update()))

        with (
            patch(
                "hermit.server.watcher.asyncio.sleep",
                side_effect=[None, asyncio.CancelledError()],
            ) as sleep,
            pytest.raises(asyncio.CancelledError),
        ):
            await supervise(watcher, initial_backoff_sec=1, max_backoff_sec=60)

        assert [c.args[0] for c in sleep.call_args_list] == [1, 1]

    async def test_cancellation_stops_the_loop(self, registry, caplog):
        started = asyncio.Event()

        async def forever():
            started.set()
            await asyncio.Event().wait()
            yield  # pragma: no cover

        task = asyncio.create_task(
            supervise(ChangeWatcher(registry, feed=forever), initial_backoff_sec=1)
        )
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert "Change watcher stopped" in caplog.text
