import asyncio

import pytest

from liftlog.engine.optimistic import apply_optimistically
from liftlog.engine.tasks import BackgroundTasks, TaskPolicy


@pytest.mark.asyncio
async def test_spawned_tasks_are_tracked_until_done():
    tasks = BackgroundTasks()
    done = asyncio.Event()

    async def job():
        await done.wait()
        return "ok"

    task = tasks.spawn(job(), name="job")
    assert len(tasks) == 1
    done.set()
    await tasks.drain()
    assert task.result() == "ok"
    assert len(tasks) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("policy", list(TaskPolicy))
async def test_failed_task_does_not_escape(policy):
    tasks = BackgroundTasks()

    async def boom():
        raise RuntimeError("nope")

    tasks.spawn(boom(), name="boom", policy=policy)
    await tasks.drain()
    assert len(tasks) == 0


@pytest.mark.asyncio
async def test_optimistic_change_is_kept_on_success():
    items = []

    async def write():
        await asyncio.sleep(0)

    result = await apply_optimistically(lambda: items.append(1) or "applied", write, items.clear)
    assert result == "applied"
    assert items == [1]


@pytest.mark.asyncio
async def test_optimistic_change_is_reverted_on_failure():
    items = ["a"]
    seen_during_write = []

    async def write():
        seen_during_write.extend(items)
        raise ConnectionError("down")

    with pytest.raises(ConnectionError):
        await apply_optimistically(lambda: items.append("b"), write, lambda: items.remove("b"))

    assert seen_during_write == ["a", "b"]
    assert items == ["a"]
