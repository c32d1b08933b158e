"""
Pattern library with approve/discard lifecycle and the default pattern set.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List

from engine.enums import PatternKind, PatternStatus, Severity
from engine.errors import LifecycleError, NotFoundError
from engine.patterns.model import Pattern, PatternPrediction, SequenceStep, TrajectoryStep

log = logging.getLogger(__name__)

_APPROVABLE = {PatternStatus.learning, PatternStatus.draft}


class PatternLibrary:
    def __init__(self, patterns: Iterable[Pattern] = ()) -> None:
        self._patterns: Dict[str, Pattern] = {}
        for pattern in patterns:
            self.add(pattern)

    def __len__(self) -> int:
        return len(self._patterns)

    def __iter__(self) -> Iterator[Pattern]:
        return iter(self._patterns.values())

    def add(self, pattern: Pattern) -> None:
        self._patterns[pattern.id] = pattern

    def get(self, pattern_id: str) -> Pattern:
        pattern = self._patterns.get(pattern_id)
        if pattern is None:
            raise NotFoundError(f"pattern not found: {pattern_id}")
        return pattern

    def active(self, kind: PatternKind | None = None) -> List[Pattern]:
        return [p for p in self._patterns.values() if p.is_active and (kind is None or p.kind == kind)]

    def approve(self, pattern_id: str) -> Pattern:
        pattern = self.get(pattern_id)
        if pattern.status not in _APPROVABLE:
            raise LifecycleError(f"cannot approve pattern {pattern_id} in status {pattern.status.value}")
        pattern.status = PatternStatus.active
        log.info("Pattern %s approved", pattern_id)
        return pattern

    def discard(self, pattern_id: str) -> Pattern:
        pattern = self.get(pattern_id)
        if pattern.status == PatternStatus.discarded:
            raise LifecycleError(f"pattern {pattern_id} is already discarded")
        pattern.status = PatternStatus.discarded
        log.info("Pattern %s discarded", pattern_id)
        return pattern


def default_patterns() -> List[Pattern]:
    return [
        Pattern(
            id="PAT-SEQ-001",
            name="Switch Congestion Cascade",
            kind=PatternKind.sequence,
            status=PatternStatus.active,
            confidence=0.92,
            description=(
                "High CPU utilization on aggregation switches typically precedes queue drops "
                "and downstream latency spikes within 5 minutes."
            ),
            steps=(SequenceStep("CPU_HIGH"), SequenceStep("QUEUE_DROP", 180.0)),
            prediction=PatternPrediction("CPU_HIGH + QUEUE_DROP", "LATENCY_HIGH", 0.85),
        ),
        Pattern(
            id="PAT-MET-002",
            name="Interface Instability Precursor",
            kind=PatternKind.metric_trajectory,
            status=PatternStatus.learning,
            confidence=0.88,
            description=(
                "Gradual increase in interface utilization > 80% combined with rising buffer usage "
                "reliably predicts packet drops and eventual link flap."
            ),
            trajectory=(
                TrajectoryStep("utilization_percent", 80.0, "UTIL_HIGH", severity=Severity.critical,
                               message="Interface Utilization > 80%"),
                TrajectoryStep("buffer_util_percent", 70.0, "BUFF_HIGH", severity=Severity.major,
                               max_interval_seconds=180.0, message="Buffer Utilization Spike > 70%"),
                TrajectoryStep("crc_errors", 10.0, "CRC_ERR", severity=Severity.critical,
                               max_interval_seconds=180.0, message="CRC Errors Increasing"),
            ),
            prediction=PatternPrediction("Util > 80% + Buffer Rise + CRC", "PACKET_DROP", 0.78),
        ),
    ]


def default_pattern_library() -> PatternLibrary:
    return PatternLibrary(default_patterns())
