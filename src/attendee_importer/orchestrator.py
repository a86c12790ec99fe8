"""Batch orchestration: one session, every attendee in order, human-like pacing."""

from __future__ import annotations

import asyncio
import random
from time import perf_counter
from typing import Awaitable, Callable, Optional, Protocol, Sequence

from .config import ThrottleConfig
from .form import AttendeeFormSubmitter
from .logger import LayeredAdapter, get_logger, record_added, record_failed, step
from .models import AttendeeRecord, ImportOutcome, ImportResult
from .session import SessionConfig, SessionHandle, SessionManager

ProgressCallback = Callable[[int, int, AttendeeRecord, ImportOutcome], None]


class SessionProvider(Protocol):
    async def acquire(self) -> SessionHandle: ...


class RecordSubmitter(Protocol):
    async def submit_one(self, page, record: AttendeeRecord) -> ImportOutcome: ...


class BatchOrchestrator:
    """Submit every attendee through one browser session, strictly one at a time."""

    def __init__(
        self,
        session_provider: SessionProvider,
        submitter: Optional[RecordSubmitter] = None,
        throttle: ThrottleConfig = ThrottleConfig(),
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
        logger: Optional[LayeredAdapter] = None,
        timer: Callable[[], float] = perf_counter,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self._session_provider = session_provider
        self._submitter = submitter or AttendeeFormSubmitter()
        self._throttle = throttle
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._logger = logger or get_logger("orchestrator")
        self._timer = timer
        self._on_progress = on_progress

    def next_delay_ms(self) -> int:
        return self._rng.randint(self._throttle.min_delay_ms, self._throttle.max_delay_ms)

    async def run(self, records: Sequence[AttendeeRecord]) -> ImportResult:
        records = list(records)
        total = len(records)
        result = ImportResult.for_batch(total)
        start = self._timer()

        handle = await self._session_provider.acquire()
        try:
            step(f"Importing {total} attendees...")
            for index, record in enumerate(records):
                self._logger.debug(f"Adding attendee {index + 1}: {record.display_name}")
                outcome = await self._submitter.submit_one(handle.page, record)
                result.record(record, outcome)
                self._log_outcome(index, total, record, outcome)
                if self._on_progress is not None:
                    self._on_progress(index, total, record, outcome)

                if index < total - 1:
                    await self._sleep(self.next_delay_ms() / 1000)
        except BaseException:
            try:
                await handle.close(persist=False)
            except Exception as close_exc:
                self._logger.warning(f"Closing the browser after a failed run also failed: {close_exc}")
            raise
        await handle.close(persist=True)

        self._logger.info(
            "Import finished: %d succeeded, %d failed of %d (elapsed %.2fs)",
            result.stats.success,
            result.stats.failed,
            result.stats.total,
            self._timer() - start,
        )
        return result

    def _log_outcome(self, index: int, total: int, record: AttendeeRecord, outcome: ImportOutcome) -> None:
        position = f"{index + 1}/{total}"
        if outcome.succeeded:
            record_added(self._logger, position, record.display_name)
        else:
            record_failed(self._logger, position, record.display_name, outcome.reason or "unknown error")


async def run_importer(
    records: Sequence[AttendeeRecord],
    session_config: SessionConfig,
    throttle: ThrottleConfig = ThrottleConfig(),
    on_progress: Optional[ProgressCallback] = None,
) -> ImportResult:
    """Run a full import against the real browser with default selectors and timings."""
    orchestrator = BatchOrchestrator(
        SessionManager(session_config),
        AttendeeFormSubmitter(),
        throttle,
        on_progress=on_progress,
    )
    return await orchestrator.run(records)


__all__ = ["BatchOrchestrator", "run_importer", "ProgressCallback"]
