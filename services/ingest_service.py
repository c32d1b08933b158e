"""
Background drivers for the correlation engine: a bounded ingestion queue drained by a worker task, and the fixed-interval tick loop that evaluates trajectories, expires predictions and flushes prediction outcomes to the store.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections import deque
from typing import Any, Deque, Iterable, List, Mapping, Optional

from config import settings
from engine.correlator import CorrelationEngine
from engine.errors import ValidationError
from store import outcomes as outcome_store

log = logging.getLogger(__name__)


class IngestService:
    def __init__(
        self,
        engine: CorrelationEngine,
        queue_size: int | None = None,
        tick_interval_seconds: float | None = None,
        tenant_id: str | None = None,
    ) -> None:
        self.engine = engine
        self.queue_size = max(1, queue_size or settings.ingest_queue_size)
        self.tick_interval_seconds = tick_interval_seconds or settings.tick_interval_seconds
        self.tenant_id = tenant_id or settings.default_tenant_id
        self._queue: Deque[Mapping[str, Any]] = deque()
        self._wakeup = asyncio.Event()
        self._drain_lock = threading.Lock()
        self._tasks: List[asyncio.Task] = []
        self.dropped_events = 0
        self.processed = 0
        self.rejected = 0

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def enqueue(self, raw: Mapping[str, Any]) -> bool:
        """Queue one payload; when full the oldest unprocessed payload is dropped."""
        dropped = False
        if len(self._queue) >= self.queue_size:
            self._queue.popleft()
            self.dropped_events += 1
            self.engine.record_dropped()
            dropped = True
            log.warning("Ingest queue full (%d); dropped oldest event (total dropped=%d)", self.queue_size, self.dropped_events)
        self._queue.append(raw)
        self._wakeup.set()
        return not dropped

    def enqueue_many(self, items: Iterable[Mapping[str, Any]]) -> int:
        count = 0
        for raw in items:
            self.enqueue(raw)
            count += 1
        return count

    def drain_once(self) -> int:
        """Feed everything queued so far to the engine, one event at a time."""
        handled = 0
        # a cancelled worker leaves its thread running; stop() waits on this lock for it
        with self._drain_lock:
            while True:
                try:
                    raw = self._queue.popleft()
                except IndexError:
                    break
                try:
                    self.engine.ingest(raw)
                    self.processed += 1
                except ValidationError as exc:
                    self.rejected += 1
                    log.warning("Queued event rejected: %s (field=%s)", exc.reason, exc.field)
                handled += 1
        return handled

    async def flush_outcomes(self) -> int:
        drained = self.engine.drain_outcomes()
        if not drained:
            return 0
        return await outcome_store.append(self.tenant_id, drained)

    async def tick_once(self, now: Optional[float] = None) -> None:
        await asyncio.to_thread(self.engine.tick, now)
        await self.flush_outcomes()

    async def _worker_loop(self) -> None:
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            # engine work runs off the event loop
            await asyncio.to_thread(self.drain_once)

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval_seconds)
            try:
                await self.tick_once()
            except Exception:
                log.exception("Engine tick failed")

    def start(self) -> None:
        if self.running:
            return
        self._tasks = [
            asyncio.create_task(self._worker_loop(), name="correlator-ingest"),
            asyncio.create_task(self._tick_loop(), name="correlator-tick"),
        ]
        log.info("Ingest service started (queue=%d, tick=%.1fs)", self.queue_size, self.tick_interval_seconds)

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks = []
        await asyncio.to_thread(self.drain_once)
        await self.flush_outcomes()
        log.info("Ingest service stopped (processed=%d dropped=%d)", self.processed, self.dropped_events)


_service: Optional[IngestService] = None


def get_ingest_service() -> IngestService:
    global _service
    if _service is None:
        from engine.registry import get_engine

        _service = IngestService(get_engine())
    return _service


def set_ingest_service(service: Optional[IngestService]) -> None:
    global _service
    _service = service
