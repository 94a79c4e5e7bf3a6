"""Durable, replay-safe step execution.

Every named step of a task appends one :class:`Checkpoint` to the
store.  When a task is resumed the same code runs again from the top;
steps whose checkpoint already exists return the recorded result (or
re-raise the recorded failure) instead of executing, so side effects
inside a completed step happen at most once per successful checkpoint.

Step results must be plain JSON data.  Both first runs and replays
return the JSON-decoded value so the code after a step sees identical
data either way.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import Counter
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, TypeAlias

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from blog_transfer.config import WorkflowSettings
from blog_transfer.core.exceptions import (
    ReplayMismatchError,
    StepFailedError,
    StepResultError,
    TaskCancelledError,
)
from blog_transfer.models import Checkpoint
from blog_transfer.models.utils import to_iso, utcnow
from blog_transfer.store.base import Store

logger = logging.getLogger(__name__)

Sleeper: TypeAlias = Callable[[float], Awaitable[None]]

# Errors that no amount of retrying will fix.
_NON_RETRYABLE = (StepResultError, TaskCancelledError)


class WorkflowStep:
    """Checkpointing step runner bound to one task.

    Usage::

        step = WorkflowStep(task_id, store, settings)
        entries = await step.do("enumerate posts", enumerate_entries)
        await step.sleep_until("wait for retention", expires_at)
    """

    def __init__(
        self,
        task_id: str,
        store: Store,
        settings: WorkflowSettings | None = None,
        *,
        sleeper: Sleeper = asyncio.sleep,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.task_id = task_id
        self._store = store
        self._settings = settings or WorkflowSettings()
        self._sleeper = sleeper
        self._clock = clock
        self._log: list[Checkpoint] | None = None
        self._seq = 0
        self._names: Counter[str] = Counter()
        self.replayed = 0
        self.executed = 0

    async def _checkpoints(self) -> list[Checkpoint]:
        if self._log is None:
            self._log = await self._store.list_checkpoints(self.task_id)
            if self._log:
                logger.info(
                    "Task %s resuming with %d recorded step(s)",
                    self.task_id,
                    len(self._log),
                )
        return self._log

    def _unique_name(self, name: str) -> str:
        self._names[name] += 1
        count = self._names[name]
        return name if count == 1 else f"{name} #{count}"

    async def do(self, name: str, fn: Callable[[], Awaitable[Any]]) -> Any:
        """Run *fn* as the step *name*, or replay its recorded outcome."""
        log = await self._checkpoints()
        step_name = self._unique_name(name)
        seq = self._seq
        self._seq += 1

        if seq < len(log):
            recorded = log[seq]
            if recorded.name != step_name:
                raise ReplayMismatchError(seq, recorded.name, step_name)
            self.replayed += 1
            if recorded.failed:
                logger.info("Replaying failed step %r", step_name)
                raise StepFailedError(step_name, recorded.error or "")
            logger.debug("Replaying step %r", step_name)
            return recorded.result

        try:
            result = await self._run_with_retry(step_name, fn)
        except _NON_RETRYABLE:
            raise
        except Exception as exc:
            reason = str(exc) or type(exc).__name__
            logger.error("Step %r failed: %s", step_name, reason)
            await self._record(Checkpoint(self.task_id, seq, step_name, error=reason))
            raise StepFailedError(step_name, reason) from exc

        payload = _json_round_trip(step_name, result)
        await self._record(Checkpoint(self.task_id, seq, step_name, result=payload))
        self.executed += 1
        return payload

    async def sleep_until(self, name: str, when: datetime) -> None:
        """Suspend until *when*, surviving restarts.

        The wake-up time is checkpointed before sleeping; on replay only
        the remaining time is slept.
        """

        async def _wake_at() -> str:
            return to_iso(when)

        wake = datetime.fromisoformat(await self.do(name, _wake_at))
        remaining = (wake - self._clock()).total_seconds()
        if remaining > 0:
            logger.info("Task %s sleeping %.0fs until %s", self.task_id, remaining, wake)
            await self._sleeper(remaining)

    async def _run_with_retry(
        self, step_name: str, fn: Callable[[], Awaitable[Any]]
    ) -> Any:
        settings = self._settings
        retrying = AsyncRetrying(
            retry=retry_if_not_exception_type(_NON_RETRYABLE),
            stop=stop_after_attempt(settings.step_max_attempts),
            wait=wait_exponential_jitter(
                initial=settings.step_retry_initial_wait,
                max=settings.step_retry_max_wait,
            ),
            sleep=self._sleeper,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                logger.debug(
                    "Running step %r (attempt %d)",
                    step_name,
                    attempt.retry_state.attempt_number,
                )
                async with asyncio.timeout(settings.step_timeout_seconds):
                    return await fn()
        raise AssertionError("unreachable")  # pragma: no cover

    async def _record(self, checkpoint: Checkpoint) -> None:
        await self._store.append_checkpoint(checkpoint)
        assert self._log is not None
        self._log.append(checkpoint)


def _json_round_trip(step_name: str, result: Any) -> Any:
    try:
        return json.loads(json.dumps(result))
    except (TypeError, ValueError) as exc:
        raise StepResultError(
            f"Step '{step_name}' returned a value that is not plain JSON "
            f"({type(result).__name__}): {exc}"
        ) from exc
