"""Tests for the retry helpers."""

import logging
from unittest.mock import AsyncMock, patch

import pytest

from hermit.lib.retry import backoff_delay, with_retry

logger = logging.getLogger("hermit.test")


@pytest.fixture
def no_sleep():
    with patch("hermit.lib.retry.asyncio.sleep", AsyncMock()) as sleep:
        yield sleep


class TestBackoffDelay:
    @pytest.mark.parametrize(
        ("attempt", "expected"), [(0, 1), (1, 2), (2, 4), (5, 32), (6, 60), (20, 60)]
    )
    def test_doubles_until_capped(self, attempt, expected):
        assert backoff_delay(attempt, initial_sec=1, max_sec=60) == expected


class TestWithRetry:
    """Tests for with_retry()."""

    async def test_success_first_try(self, no_sleep):
        fn = AsyncMock()

        assert await with_retry(fn, name="op", logger=logger) is True
        fn.assert_awaited_once()
        no_sleep.assert_not_called()

    async def test_retries_then_succeeds(self, no_sleep):
        fn = AsyncMock(side_effect=[OSError("a"), OSError("b"), None])

        assert await with_retry(fn, name="op", logger=logger) is True
        assert fn.await_count == 3
        assert [c.args[0] for c in no_sleep.call_args_list] == [2.0, 4.0]

    async def test_gives_up_without_sleeping_after_last_attempt(
        self, no_sleep, caplog
    ):
        fn = AsyncMock(side_effect=OSError("down"))

        ok = await with_retry(
            fn, name="op", logger=logger, max_retries=2, initial_backoff_sec=1.0
        )

        assert ok is False
        assert fn.await_count == 2
        assert no_sleep.await_count == 1
        assert "op failed after 2 attempts" in caplog.text

    async def test_non_retryable_error_stops_immediately(self, no_sleep, caplog):
        fn = AsyncMock(side_effect=ValueError("bad"))

        assert await with_retry(fn, name="op", logger=logger) is False
        fn.assert_awaited_once()
        assert "non-retryable" in caplog.text
