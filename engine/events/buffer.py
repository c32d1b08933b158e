"""
Bounded, time-ordered window of recently ingested events. Ordering and window membership are decided by each event's own timestamp, so late or skewed arrivals land in the right place.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import bisect
import logging
from collections import OrderedDict
from typing import Dict, List, Optional

from engine.events.model import Event

log = logging.getLogger(__name__)


class EventWindow:
    def __init__(self, max_events: int, archive_max_events: int = 100_000) -> None:
        self._max_events = max(1, int(max_events))
        self._archive_max = max(1, int(archive_max_events))
        self._keys: List[tuple[float, str]] = []
        self._live: Dict[str, Event] = {}
        self._archive: "OrderedDict[str, Event]" = OrderedDict()
        self._latest_ts: Optional[float] = None

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, event_id: str) -> bool:
        return event_id in self._live or event_id in self._archive

    @property
    def latest_timestamp(self) -> Optional[float]:
        return self._latest_ts

    def get(self, event_id: str) -> Optional[Event]:
        return self._live.get(event_id) or self._archive.get(event_id)

    def add(self, event: Event) -> bool:
        if event.id in self:
            return False
        bisect.insort(self._keys, (event.timestamp, event.id))
        self._live[event.id] = event
        if self._latest_ts is None or event.timestamp > self._latest_ts:
            self._latest_ts = event.timestamp
        while len(self._keys) > self._max_events:
            self._archive_oldest()
        return True

    def neighbours(self, event: Event, window_seconds: float) -> List[Event]:
        lo = bisect.bisect_left(self._keys, (event.timestamp - window_seconds, ""))
        hi = bisect.bisect_right(self._keys, (event.timestamp + window_seconds, "\uffff"))
        return [self._live[eid] for _, eid in self._keys[lo:hi] if eid != event.id]

    def prune(self, horizon_seconds: float) -> int:
        if self._latest_ts is None:
            return 0
        cutoff = self._latest_ts - horizon_seconds
        removed = 0
        while self._keys and self._keys[0][0] < cutoff:
            self._archive_oldest()
            removed += 1
        if removed:
            log.debug("Archived %d events older than %.1f", removed, cutoff)
        return removed

    def live_events(self) -> List[Event]:
        return [self._live[eid] for _, eid in self._keys]

    def _archive_oldest(self) -> None:
        _, eid = self._keys.pop(0)
        event = self._live.pop(eid)
        self._archive[eid] = event
        while len(self._archive) > self._archive_max:
            self._archive.popitem(last=False)
