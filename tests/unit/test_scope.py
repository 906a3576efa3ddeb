"""Tests for view-scoped task cancellation."""

import asyncio

import pytest

from sunyield.shared.scope import ViewScope


class TestViewScope:
    @pytest.mark.asyncio
    async def test_close_cancels_pending(self):
        finished = []

        async def slow():
            await asyncio.sleep(10)
            finished.append(True)

        scope = ViewScope("withdrawal")
        task = scope.spawn(slow())
        await asyncio.sleep(0)
        await scope.close()

        assert task.cancelled()
        assert finished == []
        assert scope.closed

    @pytest.mark.asyncio
    async def test_wait_collects_completed(self):
        results = []

        async def quick(n):
            results.append(n)

        async with ViewScope() as scope:
            scope.spawn(quick(1))
            scope.spawn(quick(2))
            await scope.wait()
        assert sorted(results) == [1, 2]

    @pytest.mark.asyncio
    async def test_spawn_after_close(self):
        scope = ViewScope("closed")
        await scope.close()

        async def noop():
            return None

        with pytest.raises(RuntimeError):
            scope.spawn(noop())

    @pytest.mark.asyncio
    async def test_failing_task_does_not_break_close(self):
        async def boom():
            raise ValueError("boom")

        scope = ViewScope()
        scope.spawn(boom())
        await scope.wait()
        await scope.close()
        assert scope.closed

    @pytest.mark.asyncio
    async def test_cleanups_run_once_on_close(self):
        calls = []
        scope = ViewScope("funding")
        scope.on_close(lambda: calls.append("detach"))

        await scope.close()
        await scope.close()
        assert calls == ["detach"]

        scope.on_close(lambda: calls.append("late"))
        assert calls == ["detach", "late"]
