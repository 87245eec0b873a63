"""Unit tests for cancel tokens and single-flight control."""

import asyncio

import pytest

from utils.cancel import CancelToken, SingleFlight, cancellable_sleep, run_cancellable
from utils.exceptions import RequestCancelled


class TestCancelToken:

    def test_cancel_is_permanent(self):
        token = CancelToken()
        assert not token.cancelled
        token.cancel("first")
        token.cancel("second")
        assert token.cancelled
        assert token.reason == "first"
        with pytest.raises(RequestCancelled):
            token.raise_if_cancelled()


class TestRunCancellable:

    async def test_returns_result(self):
        async def work():
            return 42

        assert await run_cancellable(work(), CancelToken()) == 42

    async def test_without_token(self):
        async def work():
            return "ok"

        assert await run_cancellable(work()) == "ok"

    async def test_already_cancelled_token(self):
        token = CancelToken()
        token.cancel("stale")

        async def work():
            return 1

        with pytest.raises(RequestCancelled) as exc_info:
            await run_cancellable(work(), token)
        assert exc_info.value.reason == "stale"

    async def test_cancel_aborts_in_flight_work(self):
        token = CancelToken()
        finished = asyncio.Event()

        async def slow():
            await asyncio.sleep(10)
            finished.set()

        asyncio.get_running_loop().call_later(0.01, token.cancel, "stop")
        with pytest.raises(RequestCancelled):
            await run_cancellable(slow(), token)
        assert not finished.is_set()

    async def test_work_errors_propagate(self):
        async def broken():
            raise ValueError("boom")

        with pytest.raises(ValueError):
            await run_cancellable(broken(), CancelToken())

    async def test_cancellable_sleep(self):
        token = CancelToken()
        asyncio.get_running_loop().call_later(0.01, token.cancel)
        with pytest.raises(RequestCancelled):
            await asyncio.wait_for(cancellable_sleep(10, token), timeout=2)


class TestSingleFlight:

    def test_begin_cancels_previous(self):
        flight = SingleFlight("generate")
        first = flight.begin()
        second = flight.begin()
        assert first.cancelled
        assert first.reason == "generate superseded"
        assert not second.cancelled
        assert flight.in_flight

    def test_finish_only_clears_current(self):
        flight = SingleFlight("enhance")
        first = flight.begin()
        second = flight.begin()
        flight.finish(first)
        assert flight.in_flight
        flight.finish(second)
        assert not flight.in_flight

    def test_cancel(self):
        flight = SingleFlight("enhance")
        token = flight.begin()
        flight.cancel("closed")
        assert token.cancelled
        assert not flight.in_flight
