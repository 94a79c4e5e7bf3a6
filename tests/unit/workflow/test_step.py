from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from blog_transfer import WorkflowSettings
from blog_transfer.core.exceptions import (
    ReplayMismatchError,
    StepFailedError,
    StepResultError,
    TaskCancelledError,
)
from blog_transfer.store.memory import InMemoryStore
from blog_transfer.workflow.step import WorkflowStep

TASK = "task-1"
T0 = datetime(2024, 1, 1, tzinfo=UTC)


class Calls:
    """Async callable that counts invocations and fails a set number of times."""

    def __init__(self, result=None, fail_times: int = 0, exc: Exception | None = None):
        self.result = result
        self.fail_times = fail_times
        self.exc = exc or RuntimeError("transient")
        self.count = 0

    async def __call__(self):
        self.count += 1
        if self.count <= self.fail_times:
            raise self.exc
        return self.result


class RecordingSleeper:
    def __init__(self) -> None:
        self.slept: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.slept.append(seconds)


@pytest.fixture()
def sleeper() -> RecordingSleeper:
    return RecordingSleeper()


def make_step(store, settings, sleeper, clock=lambda: T0) -> WorkflowStep:
    return WorkflowStep(TASK, store, settings, sleeper=sleeper, clock=clock)


# ── Execution & replay ───────────────────────────────────────────────


async def test_executes_once_then_replays(store: InMemoryStore, settings, sleeper):
    fn = Calls(result={"posts": [1, 2]})
    first = make_step(store, settings, sleeper)
    assert await first.do("fetch", fn) == {"posts": [1, 2]}
    assert first.executed == 1

    resumed = make_step(store, settings, sleeper)
    assert await resumed.do("fetch", fn) == {"posts": [1, 2]}
    assert fn.count == 1
    assert resumed.replayed == 1
    assert resumed.executed == 0


async def test_replay_continues_with_new_steps(store: InMemoryStore, settings, sleeper):
    a, b = Calls(result="a"), Calls(result="b")
    first = make_step(store, settings, sleeper)
    await first.do("a", a)

    resumed = make_step(store, settings, sleeper)
    assert await resumed.do("a", a) == "a"
    assert await resumed.do("b", b) == "b"
    assert (a.count, b.count) == (1, 1)
    log = await store.list_checkpoints(TASK)
    assert [c.name for c in log] == ["a", "b"]


async def test_result_is_json_normalized(store: InMemoryStore, settings, sleeper):
    step = make_step(store, settings, sleeper)
    assert await step.do("tuple", Calls(result=(1, 2))) == [1, 2]


async def test_duplicate_names_get_suffix(store: InMemoryStore, settings, sleeper):
    step = make_step(store, settings, sleeper)
    await step.do("x", Calls(result=1))
    await step.do("x", Calls(result=2))
    await step.do("x", Calls(result=3))
    log = await store.list_checkpoints(TASK)
    assert [c.name for c in log] == ["x", "x #2", "x #3"]


async def test_replay_mismatch(store: InMemoryStore, settings, sleeper):
    await make_step(store, settings, sleeper).do("first", Calls(result=1))
    with pytest.raises(ReplayMismatchError) as exc_info:
        await make_step(store, settings, sleeper).do("other", Calls(result=1))
    assert exc_info.value.expected == "first"
    assert exc_info.value.actual == "other"


# ── Retries & failures ───────────────────────────────────────────────


async def test_transient_errors_are_retried(store: InMemoryStore, settings, sleeper):
    fn = Calls(result="ok", fail_times=2)
    step = make_step(store, settings, sleeper)
    assert await step.do("flaky", fn) == "ok"
    assert fn.count == 3
    assert len(sleeper.slept) == 2


async def test_exhausted_retries_record_failure(store: InMemoryStore, settings, sleeper):
    fn = Calls(fail_times=10, exc=RuntimeError("disk full"))
    step = make_step(store, settings, sleeper)
    with pytest.raises(StepFailedError) as exc_info:
        await step.do("upload", fn)
    assert fn.count == settings.step_max_attempts
    assert exc_info.value.reason == "disk full"

    (checkpoint,) = await store.list_checkpoints(TASK)
    assert checkpoint.failed
    assert checkpoint.error == "disk full"

    resumed = make_step(store, settings, sleeper)
    with pytest.raises(StepFailedError):
        await resumed.do("upload", fn)
    assert fn.count == settings.step_max_attempts


async def test_non_json_result_is_not_recorded(store: InMemoryStore, settings, sleeper):
    fn = Calls(result={1, 2})
    step = make_step(store, settings, sleeper)
    with pytest.raises(StepResultError):
        await step.do("bad result", fn)
    assert fn.count == 1
    assert await store.list_checkpoints(TASK) == []


async def test_cancellation_propagates_unretried(store: InMemoryStore, settings, sleeper):
    fn = Calls(fail_times=1, exc=TaskCancelledError("stop"))
    step = make_step(store, settings, sleeper)
    with pytest.raises(TaskCancelledError):
        await step.do("work", fn)
    assert fn.count == 1
    assert await store.list_checkpoints(TASK) == []


async def test_step_timeout(store: InMemoryStore, sleeper):
    settings = WorkflowSettings(step_max_attempts=1, step_timeout_seconds=0.01)

    async def slow():
        await asyncio.sleep(1)

    step = make_step(store, settings, sleeper)
    with pytest.raises(StepFailedError):
        await step.do("slow", slow)


# ── Durable sleep ────────────────────────────────────────────────────


async def test_sleep_until_records_wake_time(store: InMemoryStore, settings, sleeper):
    step = make_step(store, settings, sleeper)
    await step.sleep_until("cleanup delay", T0 + timedelta(seconds=100))
    assert sleeper.slept == [100.0]

    (checkpoint,) = await store.list_checkpoints(TASK)
    assert checkpoint.result == "2024-01-01T00:01:40.000Z"


async def test_sleep_until_resumes_remaining_time(
    store: InMemoryStore, settings, sleeper
):
    await make_step(store, settings, sleeper).sleep_until(
        "cleanup delay", T0 + timedelta(seconds=100)
    )

    later = RecordingSleeper()
    resumed = make_step(
        store, settings, later, clock=lambda: T0 + timedelta(seconds=60)
    )
    # The requested time is ignored on replay; the recorded one wins.
    await resumed.sleep_until("cleanup delay", T0 + timedelta(days=5))
    assert later.slept == [40.0]

    past = RecordingSleeper()
    overdue = make_step(
        store, settings, past, clock=lambda: T0 + timedelta(seconds=500)
    )
    await overdue.sleep_until("cleanup delay", T0)
    assert past.slept == []
