"""
Metric-trajectory evaluation on each tick against the latest per-device metric snapshot, with debounced raw threshold events and debounced predictions.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Mapping, Sequence, Tuple

from config import settings
from engine.patterns.model import Pattern, ThresholdEvent

log = logging.getLogger(__name__)


class ThresholdDebouncer:
    def __init__(self, cooldown_seconds: float) -> None:
        self.cooldown_seconds = cooldown_seconds
        self._last: Dict[Hashable, float] = {}

    def allow(self, key: Hashable, now: float) -> bool:
        last = self._last.get(key)
        if last is not None and now - last < self.cooldown_seconds:
            return False
        self._last[key] = now
        return True

    def forget(self, predicate) -> None:
        for key in [k for k in self._last if predicate(k)]:
            del self._last[key]


@dataclass
class _Snapshot:
    metrics: Dict[str, float] = field(default_factory=dict)
    # reading sequence number per metric; evaluated_seq marks what the last tick consumed
    seqs: Dict[str, int] = field(default_factory=dict)
    updated_at: float = 0.0
    evaluated_seq: int = 0

    def fresh(self, metric: str, since: int) -> bool:
        return self.seqs.get(metric, 0) > since


@dataclass
class _Progress:
    index: int = 0
    last_ts: float = 0.0
    crossings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class TrajectoryMatch:
    pattern_id: str
    device: str
    matched_steps: Tuple[str, ...]
    reason: str
    completed_at: float


class TrajectoryTracker:
    def __init__(
        self,
        threshold_cooldown_seconds: float | None = None,
        prediction_cooldown_seconds: float | None = None,
        default_step_seconds: float | None = None,
        snapshot_ttl_seconds: float | None = None,
    ) -> None:
        self.thresholds = ThresholdDebouncer(
            settings.threshold_cooldown_seconds if threshold_cooldown_seconds is None else threshold_cooldown_seconds
        )
        self.predictions = ThresholdDebouncer(
            settings.prediction_cooldown_seconds if prediction_cooldown_seconds is None else prediction_cooldown_seconds
        )
        self.default_step_seconds = (
            settings.sequence_default_step_seconds if default_step_seconds is None else default_step_seconds
        )
        self.snapshot_ttl_seconds = settings.window_seconds if snapshot_ttl_seconds is None else snapshot_ttl_seconds
        self._snapshots: Dict[str, _Snapshot] = {}
        self._progress: Dict[Tuple[str, str], _Progress] = {}
        # readings at or below this sequence number cannot start a new match for (pattern, device)
        self._completed: Dict[Tuple[str, str], int] = {}
        self._seq = 0

    def update(self, device: str, metrics: Mapping[str, float], at: float) -> None:
        if not metrics:
            return
        snap = self._snapshots.setdefault(device, _Snapshot())
        late = at < snap.updated_at
        for name, value in metrics.items():
            if late and name in snap.metrics:
                # late reading: keep newer values already in the snapshot
                continue
            self._seq += 1
            snap.metrics[name] = float(value)
            snap.seqs[name] = self._seq
        if not late:
            snap.updated_at = at

    def snapshot(self, device: str) -> Dict[str, float]:
        snap = self._snapshots.get(device)
        return dict(snap.metrics) if snap else {}

    def position(self, pattern_id: str, device: str) -> int:
        progress = self._progress.get((pattern_id, device))
        return progress.index if progress else 0

    def evaluate(self, patterns: Sequence[Pattern], now: float) -> Tuple[List[ThresholdEvent], List[TrajectoryMatch]]:
        """Check the readings that arrived since the previous call.

        Only metrics updated after the last evaluation can emit a threshold
        event or move a template forward, so a snapshot that is merely still
        alive never produces anything.
        """
        events: List[ThresholdEvent] = []
        matches: List[TrajectoryMatch] = []

        for device in [d for d, s in self._snapshots.items() if now - s.updated_at > self.snapshot_ttl_seconds]:
            del self._snapshots[device]

        for device, snap in sorted(self._snapshots.items()):
            since = snap.evaluated_seq
            if not any(snap.fresh(name, since) for name in snap.metrics):
                continue
            seen: set = set()
            for pattern in patterns:
                if not pattern.applies(device):
                    continue
                for step in pattern.trajectory:
                    if not snap.fresh(step.metric, since):
                        continue
                    value = step.crossed(snap.metrics)
                    key = (device, step.metric, step.op, step.threshold)
                    if value is None or key in seen:
                        continue
                    seen.add(key)
                    if self.thresholds.allow(key, now):
                        events.append(
                            ThresholdEvent(
                                device=device,
                                metric=step.metric,
                                threshold=step.threshold,
                                value=value,
                                event_code=step.event_code,
                                severity=step.severity,
                                emitted_at=now,
                                message=step.message or f"{step.describe()} (value={value:g})",
                            )
                        )
                    else:
                        log.debug("Threshold %s on %s debounced", step.describe(), device)

                if any(snap.fresh(step.metric, since) for step in pattern.trajectory):
                    match = self._advance(pattern, device, snap, now)
                    if match is not None:
                        matches.append(match)
            snap.evaluated_seq = self._seq
        return events, matches

    def _advance(self, pattern: Pattern, device: str, snap: _Snapshot, now: float) -> TrajectoryMatch | None:
        key = (pattern.id, device)
        progress = self._progress.get(key)
        if progress is not None and progress.index > 0:
            deadline = pattern.step_interval(progress.index, self.default_step_seconds)
            if now - progress.last_ts > deadline:
                log.debug("Trajectory %s on %s reset at step %d", pattern.id, device, progress.index)
                progress = None
                del self._progress[key]

        if progress is None:
            progress = _Progress()

        floor = self._completed.get(key, 0)
        while progress.index < len(pattern.trajectory):
            step = pattern.trajectory[progress.index]
            value = step.crossed(snap.metrics)
            if value is None or not snap.fresh(step.metric, floor):
                break
            progress.crossings.append(f"{step.metric}={value:g}")
            progress.index += 1
            progress.last_ts = now

        if progress.index == 0:
            return None
        if progress.index < len(pattern.trajectory):
            self._progress[key] = progress
            return None

        self._progress.pop(key, None)
        self._completed[key] = self._seq
        if not self.predictions.allow(key, now):
            log.debug("Prediction for %s on %s debounced", pattern.id, device)
            return None
        return TrajectoryMatch(
            pattern_id=pattern.id,
            device=device,
            matched_steps=tuple(s.event_code for s in pattern.trajectory),
            reason="Correlated rise: " + ", ".join(progress.crossings),
            completed_at=now,
        )

    def reset(self, pattern_id: str) -> None:
        for key in [k for k in self._progress if k[0] == pattern_id]:
            del self._progress[key]
        for key in [k for k in self._completed if k[0] == pattern_id]:
            del self._completed[key]
        self.predictions.forget(lambda k: k[0] == pattern_id)
