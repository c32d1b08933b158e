"""
Pattern matcher: drives sequence and trajectory tracking for active patterns, emits predicted events, and records whether each prediction was confirmed or falsified before it expired.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional

from config import settings
from engine.enums import PatternKind, Verdict
from engine.events.model import Event
from engine.patterns.library import PatternLibrary
from engine.patterns.model import Pattern, PredictedEvent, PredictionOutcome, ThresholdEvent
from engine.patterns.sequence import SequenceTracker
from engine.patterns.trajectory import TrajectoryTracker

log = logging.getLogger(__name__)


class OutcomeLedger:
    """Prediction verdicts waiting to be picked up by the recalibration job."""

    def __init__(self, max_items: int | None = None) -> None:
        self._items: Deque[PredictionOutcome] = deque(maxlen=max_items or settings.outcomes_max_items)
        self.confirmed = 0
        self.falsified = 0

    def __len__(self) -> int:
        return len(self._items)

    def record(self, outcome: PredictionOutcome) -> None:
        self._items.append(outcome)
        if outcome.verdict == Verdict.confirmed:
            self.confirmed += 1
        else:
            self.falsified += 1

    def drain(self) -> List[PredictionOutcome]:
        items = list(self._items)
        self._items.clear()
        return items


@dataclass
class TickResult:
    threshold_events: List[ThresholdEvent] = field(default_factory=list)
    predictions: List[PredictedEvent] = field(default_factory=list)
    outcomes: List[PredictionOutcome] = field(default_factory=list)


class PatternMatcher:
    def __init__(
        self,
        library: PatternLibrary,
        sequences: SequenceTracker | None = None,
        trajectories: TrajectoryTracker | None = None,
        outcomes: OutcomeLedger | None = None,
    ) -> None:
        self.library = library
        self.sequences = sequences or SequenceTracker()
        self.trajectories = trajectories or TrajectoryTracker()
        self.outcomes = outcomes or OutcomeLedger()
        self._active: Dict[str, PredictedEvent] = {}
        self._counter = 0

    def active_predictions(self) -> List[PredictedEvent]:
        return sorted(self._active.values(), key=lambda p: (p.emitted_at, p.id))

    def observe(self, event: Event, track_metrics: bool = True) -> List[PredictedEvent]:
        self._confirm(event)
        if track_metrics:
            self.trajectories.update(event.device, event.metrics, event.timestamp)

        emitted: List[PredictedEvent] = []
        for pattern in self.library.active(PatternKind.sequence):
            if not pattern.applies(event.device):
                continue
            match = self.sequences.observe(pattern, event)
            if match is None:
                continue
            emitted.append(
                self._emit(
                    pattern,
                    device=match.device,
                    matched_steps=match.matched_steps,
                    related=match.event_ids,
                    at=match.completed_at,
                    reason=f"Sequence {' -> '.join(match.matched_steps)} on {match.device}",
                )
            )
        return emitted

    def tick(self, now: float) -> TickResult:
        result = TickResult()
        result.outcomes = self._expire(now)
        self.sequences.expire({p.id: p for p in self.library}, now)

        events, matches = self.trajectories.evaluate(self.library.active(PatternKind.metric_trajectory), now)
        result.threshold_events = events
        for match in matches:
            pattern = self.library.get(match.pattern_id)
            result.predictions.append(
                self._emit(
                    pattern,
                    device=match.device,
                    matched_steps=match.matched_steps,
                    related=(),
                    at=match.completed_at,
                    reason=match.reason,
                )
            )
        return result

    def approve(self, pattern_id: str) -> Pattern:
        return self.library.approve(pattern_id)

    def discard(self, pattern_id: str) -> Pattern:
        pattern = self.library.discard(pattern_id)
        self.sequences.reset(pattern_id)
        self.trajectories.reset(pattern_id)
        return pattern

    def drain_outcomes(self) -> List[PredictionOutcome]:
        return self.outcomes.drain()

    def _emit(self, pattern: Pattern, device: str, matched_steps, related, at: float, reason: str) -> PredictedEvent:
        self._counter += 1
        prediction = PredictedEvent(
            id=f"PRED-{self._counter:06d}",
            pattern_id=pattern.id,
            device=device,
            matched_steps=tuple(matched_steps),
            next_step_prediction=pattern.prediction.then_event,
            probability=pattern.prediction.probability,
            related_event_ids=tuple(related),
            emitted_at=at,
            expires_at=at + pattern.expected_interval(self.sequences.default_step_seconds),
            reason=reason,
        )
        self._active[prediction.id] = prediction
        log.info(
            "Prediction %s: %s on %s (p=%.2f) from %s",
            prediction.id, prediction.next_step_prediction, device, prediction.probability, pattern.id,
        )
        return prediction

    def _confirm(self, event: Event) -> Optional[PredictionOutcome]:
        for prediction in self.active_predictions():
            if (
                prediction.device == event.device
                and prediction.next_step_prediction == event.event_code
                and prediction.emitted_at <= event.timestamp <= prediction.expires_at
            ):
                del self._active[prediction.id]
                outcome = self._outcome(prediction, Verdict.confirmed, event.timestamp, event.id)
                log.info("Prediction %s confirmed by %s", prediction.id, event.id)
                return outcome
        return None

    def _expire(self, now: float) -> List[PredictionOutcome]:
        outcomes = []
        for prediction in self.active_predictions():
            if now > prediction.expires_at:
                del self._active[prediction.id]
                outcomes.append(self._outcome(prediction, Verdict.falsified, now))
                log.info("Prediction %s falsified: no %s on %s", prediction.id, prediction.next_step_prediction, prediction.device)
        return outcomes

    def _outcome(self, prediction: PredictedEvent, verdict: Verdict, at: float, evidence: str | None = None) -> PredictionOutcome:
        outcome = PredictionOutcome(
            prediction_id=prediction.id,
            pattern_id=prediction.pattern_id,
            then_event=prediction.next_step_prediction,
            device=prediction.device,
            verdict=verdict,
            evaluated_at=at,
            evidence_event_id=evidence,
        )
        self.outcomes.record(outcome)
        return outcome
