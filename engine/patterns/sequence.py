"""
Partial-match tracking for sequence patterns. One state pointer per (pattern, device); a step advances only on the same device and only inside that step's deadline, otherwise the match is cancelled back to step 0.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from config import settings
from engine.events.model import Event
from engine.patterns.model import Pattern

log = logging.getLogger(__name__)


@dataclass
class _Progress:
    index: int
    last_ts: float
    event_ids: List[str] = field(default_factory=list)
    codes: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class SequenceMatch:
    pattern_id: str
    device: str
    matched_steps: Tuple[str, ...]
    event_ids: Tuple[str, ...]
    completed_at: float


class SequenceTracker:
    def __init__(self, default_step_seconds: float | None = None) -> None:
        self.default_step_seconds = (
            settings.sequence_default_step_seconds if default_step_seconds is None else default_step_seconds
        )
        self._state: Dict[Tuple[str, str], _Progress] = {}

    def position(self, pattern_id: str, device: str) -> int:
        progress = self._state.get((pattern_id, device))
        return progress.index if progress else 0

    def observe(self, pattern: Pattern, event: Event) -> Optional[SequenceMatch]:
        key = (pattern.id, event.device)
        progress = self._state.get(key)

        if progress is not None:
            deadline = pattern.step_interval(progress.index, self.default_step_seconds)
            if event.timestamp - progress.last_ts > deadline:
                log.debug("Sequence %s on %s reset after %.1fs", pattern.id, event.device, event.timestamp - progress.last_ts)
                del self._state[key]
                progress = None
            elif event.timestamp < progress.last_ts:
                return None

        first = pattern.steps[0].event_code
        if progress is not None and event.event_code == pattern.steps[progress.index].event_code:
            progress.index += 1
            progress.last_ts = event.timestamp
            progress.event_ids.append(event.id)
            progress.codes.append(event.event_code)
        elif event.event_code == first:
            progress = _Progress(index=1, last_ts=event.timestamp, event_ids=[event.id], codes=[event.event_code])
            self._state[key] = progress
        else:
            return None

        if progress.index < len(pattern.steps):
            return None

        self._state.pop(key, None)
        return SequenceMatch(
            pattern_id=pattern.id,
            device=event.device,
            matched_steps=tuple(progress.codes),
            event_ids=tuple(progress.event_ids),
            completed_at=event.timestamp,
        )

    def expire(self, patterns: Dict[str, Pattern], now: float) -> int:
        """Cancel partial matches whose next-step deadline has passed."""
        stale = []
        for (pattern_id, device), progress in self._state.items():
            pattern = patterns.get(pattern_id)
            if pattern is None or now - progress.last_ts > pattern.step_interval(progress.index, self.default_step_seconds):
                stale.append((pattern_id, device))
        for key in stale:
            del self._state[key]
        return len(stale)

    def reset(self, pattern_id: str) -> None:
        for key in [k for k in self._state if k[0] == pattern_id]:
            del self._state[key]
