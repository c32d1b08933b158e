"""
Behavioural pattern records: ordered event-code sequences and metric-trajectory templates, with the predictions and outcomes they produce.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import Mapping, Optional, Tuple

from engine.enums import PatternKind, PatternStatus, Severity, Verdict
from engine.errors import ValidationError
from engine.rca.intents import OPS


@dataclass(frozen=True)
class SequenceStep:
    event_code: str
    # deadline relative to the previous matched step; None uses the configured default
    max_interval_seconds: Optional[float] = None


@dataclass(frozen=True)
class TrajectoryStep:
    metric: str
    threshold: float
    event_code: str
    op: str = ">"
    severity: Severity = Severity.major
    max_interval_seconds: Optional[float] = None
    message: str = ""

    def __post_init__(self) -> None:
        if self.op not in OPS:
            raise ValidationError(f"unsupported trajectory operator: {self.op!r}", field="op")

    def crossed(self, metrics: Mapping[str, float]) -> Optional[float]:
        value = metrics.get(self.metric)
        if value is None or not OPS[self.op](float(value), self.threshold):
            return None
        return float(value)

    def describe(self) -> str:
        return f"{self.metric} {self.op} {self.threshold:g}"


@dataclass(frozen=True)
class PatternPrediction:
    if_condition: str
    then_event: str
    probability: float


@dataclass
class Pattern:
    id: str
    name: str
    kind: PatternKind
    prediction: PatternPrediction
    status: PatternStatus = PatternStatus.draft
    confidence: float = 0.0
    description: str = ""
    steps: Tuple[SequenceStep, ...] = ()
    trajectory: Tuple[TrajectoryStep, ...] = ()
    applies_to: Tuple[str, ...] = ()
    prediction_window_seconds: Optional[float] = None

    def __post_init__(self) -> None:
        if self.kind == PatternKind.sequence and not self.steps:
            raise ValidationError(f"sequence pattern {self.id} has no steps", field="steps")
        if self.kind == PatternKind.metric_trajectory and not self.trajectory:
            raise ValidationError(f"trajectory pattern {self.id} has no template", field="trajectory")
        if not 0.0 <= self.prediction.probability <= 1.0:
            raise ValidationError(f"pattern {self.id} probability must be within [0, 1]", field="probability")

    @property
    def is_active(self) -> bool:
        return self.status == PatternStatus.active

    def applies(self, device: str) -> bool:
        if not self.applies_to:
            return True
        return any(fnmatchcase(device, group) for group in self.applies_to)

    def step_interval(self, index: int, default: float) -> float:
        items = self.steps if self.kind == PatternKind.sequence else self.trajectory
        value = items[index].max_interval_seconds
        return default if value is None else value

    def expected_interval(self, default: float) -> float:
        if self.prediction_window_seconds is not None:
            return self.prediction_window_seconds
        count = len(self.steps) if self.kind == PatternKind.sequence else len(self.trajectory)
        return self.step_interval(count - 1, default)


@dataclass(frozen=True)
class PredictedEvent:
    id: str
    pattern_id: str
    device: str
    matched_steps: Tuple[str, ...]
    next_step_prediction: str
    probability: float
    related_event_ids: Tuple[str, ...]
    emitted_at: float
    expires_at: float
    reason: str = ""


@dataclass(frozen=True)
class ThresholdEvent:
    device: str
    metric: str
    threshold: float
    value: float
    event_code: str
    severity: Severity
    emitted_at: float
    message: str = ""


@dataclass(frozen=True)
class PredictionOutcome:
    prediction_id: str
    pattern_id: str
    then_event: str
    device: str
    verdict: Verdict
    evaluated_at: float
    evidence_event_id: Optional[str] = field(default=None)

    def to_dict(self) -> dict:
        return {
            "prediction_id": self.prediction_id,
            "pattern_id": self.pattern_id,
            "then_event": self.then_event,
            "device": self.device,
            "verdict": self.verdict.value,
            "evaluated_at": self.evaluated_at,
            "evidence_event_id": self.evidence_event_id,
        }
