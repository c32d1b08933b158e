"""
Pattern matcher tests: sequence matching, trajectory evaluation with debouncing, lifecycle transitions and prediction outcomes.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import pytest

from engine.enums import PatternKind, PatternStatus, Verdict
from engine.errors import LifecycleError, NotFoundError, ValidationError
from engine.events.model import normalize
from engine.patterns import (
    OutcomeLedger,
    Pattern,
    PatternLibrary,
    PatternMatcher,
    PatternPrediction,
    SequenceStep,
    SequenceTracker,
    ThresholdDebouncer,
    TrajectoryTracker,
    default_pattern_library,
)
from conftest import make_event

T0 = 1_760_000_000.0


def _ev(eid, ts, code, device="Agg-SW1", **kw):
    return normalize(make_event(id=eid, timestamp=T0 + ts, eventCode=code, device=device, **kw))


@pytest.fixture
def matcher():
    return PatternMatcher(
        default_pattern_library(),
        sequences=SequenceTracker(180),
        trajectories=TrajectoryTracker(
            threshold_cooldown_seconds=1.0,
            prediction_cooldown_seconds=3.0,
            default_step_seconds=180,
            snapshot_ttl_seconds=300,
        ),
        outcomes=OutcomeLedger(100),
    )


def test_sequence_emits_one_prediction(matcher):
    assert matcher.observe(_ev("cpu", 0, "CPU_HIGH")) == []
    assert matcher.sequences.position("PAT-SEQ-001", "Agg-SW1") == 1

    emitted = matcher.observe(_ev("drop", 72, "QUEUE_DROP"))
    assert len(emitted) == 1
    prediction = emitted[0]
    assert prediction.pattern_id == "PAT-SEQ-001"
    assert prediction.probability == 0.85
    assert prediction.related_event_ids == ("cpu", "drop")
    assert prediction.matched_steps == ("CPU_HIGH", "QUEUE_DROP")
    assert prediction.next_step_prediction == "LATENCY_HIGH"
    assert prediction.expires_at == T0 + 72 + 180
    assert matcher.active_predictions() == [prediction]
    assert matcher.sequences.position("PAT-SEQ-001", "Agg-SW1") == 0


def test_sequence_past_deadline_resets(matcher):
    matcher.observe(_ev("cpu", 0, "CPU_HIGH"))
    assert matcher.observe(_ev("drop", 200, "QUEUE_DROP")) == []
    assert matcher.sequences.position("PAT-SEQ-001", "Agg-SW1") == 0
    assert matcher.active_predictions() == []


def test_sequence_requires_same_device(matcher):
    matcher.observe(_ev("cpu", 0, "CPU_HIGH", device="Agg-SW1"))
    assert matcher.observe(_ev("drop", 30, "QUEUE_DROP", device="Agg-SW2")) == []
    assert matcher.sequences.position("PAT-SEQ-001", "Agg-SW1") == 1


def test_fresh_first_step_restarts_match(matcher):
    matcher.observe(_ev("cpu1", 0, "CPU_HIGH"))
    matcher.observe(_ev("cpu2", 150, "CPU_HIGH"))
    emitted = matcher.observe(_ev("drop", 300, "QUEUE_DROP"))
    assert [p.related_event_ids for p in emitted] == [("cpu2", "drop")]


def test_sequence_partial_expires_on_tick(matcher):
    matcher.observe(_ev("cpu", 0, "CPU_HIGH"))
    matcher.tick(T0 + 181)
    assert matcher.sequences.position("PAT-SEQ-001", "Agg-SW1") == 0


def test_threshold_debounce_emits_once():
    tracker = TrajectoryTracker(threshold_cooldown_seconds=1.0, prediction_cooldown_seconds=3.0, snapshot_ttl_seconds=300)
    pattern = default_pattern_library().get("PAT-MET-002")
    tracker.update("Agg-SW1", {"utilization_percent": 95.0}, T0)
    first, _ = tracker.evaluate([pattern], T0)
    tracker.update("Agg-SW1", {"utilization_percent": 97.0}, T0 + 0.5)
    second, _ = tracker.evaluate([pattern], T0 + 0.5)
    assert [(e.event_code, e.value) for e in first] == [("UTIL_HIGH", 95.0)]
    assert second == []

    # no new reading: the snapshot alone never emits
    assert tracker.evaluate([pattern], T0 + 1.5)[0] == []

    tracker.update("Agg-SW1", {"utilization_percent": 98.0}, T0 + 2)
    fourth, _ = tracker.evaluate([pattern], T0 + 2)
    assert [e.value for e in fourth] == [98.0]


def test_stale_snapshot_is_not_reevaluated():
    tracker = TrajectoryTracker(threshold_cooldown_seconds=1.0, prediction_cooldown_seconds=3.0, snapshot_ttl_seconds=300)
    pattern = default_pattern_library().get("PAT-MET-002")
    tracker.update("Agg-SW1", {"utilization_percent": 95.0, "buffer_util_percent": 75.0, "crc_errors": 12.0}, T0)

    events, matches = [], []
    for i in range(60):
        e, m = tracker.evaluate([pattern], T0 + i)
        events.extend(e)
        matches.extend(m)
    assert [e.event_code for e in events] == ["UTIL_HIGH", "BUFF_HIGH", "CRC_ERR"]
    assert [m.pattern_id for m in matches] == ["PAT-MET-002"]


def test_completed_trajectory_needs_new_crossings():
    tracker = TrajectoryTracker(threshold_cooldown_seconds=1.0, prediction_cooldown_seconds=3.0, snapshot_ttl_seconds=300)
    pattern = default_pattern_library().get("PAT-MET-002")
    tracker.update("Agg-SW1", {"utilization_percent": 95.0, "buffer_util_percent": 75.0, "crc_errors": 12.0}, T0)
    assert len(tracker.evaluate([pattern], T0)[1]) == 1

    # a fresh first step alone cannot reuse the older buffer and crc readings
    tracker.update("Agg-SW1", {"utilization_percent": 96.0}, T0 + 10)
    assert tracker.evaluate([pattern], T0 + 10)[1] == []
    assert tracker.position("PAT-MET-002", "Agg-SW1") == 1

    tracker.update("Agg-SW1", {"buffer_util_percent": 80.0, "crc_errors": 15.0}, T0 + 20)
    assert [m.pattern_id for m in tracker.evaluate([pattern], T0 + 20)[1]] == ["PAT-MET-002"]


def test_debouncer_keys_are_independent():
    debouncer = ThresholdDebouncer(1.0)
    assert debouncer.allow(("a", "cpu"), 0.0)
    assert not debouncer.allow(("a", "cpu"), 0.9)
    assert debouncer.allow(("b", "cpu"), 0.9)
    assert debouncer.allow(("a", "cpu"), 1.0)


def test_learning_trajectory_not_evaluated(matcher):
    matcher.observe(_ev("m", 0, "TELEMETRY", metrics={
        "utilization_percent": 85, "buffer_util_percent": 75, "crc_errors": 12,
    }))
    result = matcher.tick(T0)
    assert result.predictions == []
    assert result.threshold_events == []


def test_trajectory_prediction_after_approval(matcher):
    matcher.approve("PAT-MET-002")
    matcher.observe(_ev("u", 0, "TELEMETRY", metrics={"utilization_percent": 85}))
    result = matcher.tick(T0 + 1)
    assert [e.event_code for e in result.threshold_events] == ["UTIL_HIGH"]
    assert result.predictions == []
    assert matcher.trajectories.position("PAT-MET-002", "Agg-SW1") == 1

    matcher.observe(_ev("b", 60, "TELEMETRY", metrics={"buffer_util_percent": 75, "crc_errors": 12}))
    result = matcher.tick(T0 + 61)
    assert [p.pattern_id for p in result.predictions] == ["PAT-MET-002"]
    prediction = result.predictions[0]
    assert prediction.probability == 0.78
    assert prediction.next_step_prediction == "PACKET_DROP"
    assert prediction.matched_steps == ("UTIL_HIGH", "BUFF_HIGH", "CRC_ERR")
    assert "buffer_util_percent=75" in prediction.reason

    # no new readings a second later: nothing matches again
    assert matcher.tick(T0 + 62).predictions == []


def test_trajectory_step_deadline_resets(matcher):
    matcher.approve("PAT-MET-002")
    matcher.observe(_ev("u", 0, "TELEMETRY", metrics={"utilization_percent": 85}))
    matcher.tick(T0)
    matcher.observe(_ev("u2", 100, "TELEMETRY", metrics={"utilization_percent": 70}))
    matcher.tick(T0 + 100)
    matcher.observe(_ev("b", 250, "TELEMETRY", metrics={"buffer_util_percent": 75}))
    result = matcher.tick(T0 + 250)
    assert result.predictions == []
    assert matcher.trajectories.position("PAT-MET-002", "Agg-SW1") == 0


def test_lifecycle(matcher):
    with pytest.raises(LifecycleError):
        matcher.approve("PAT-SEQ-001")
    approved = matcher.approve("PAT-MET-002")
    assert approved.status == PatternStatus.active

    matcher.discard("PAT-SEQ-001")
    with pytest.raises(LifecycleError):
        matcher.discard("PAT-SEQ-001")
    with pytest.raises(LifecycleError):
        matcher.approve("PAT-SEQ-001")
    with pytest.raises(NotFoundError):
        matcher.approve("PAT-NOPE")

    # discarded patterns stop matching
    matcher.observe(_ev("cpu", 0, "CPU_HIGH"))
    assert matcher.observe(_ev("drop", 10, "QUEUE_DROP")) == []


def test_prediction_confirmed_before_expiry(matcher):
    matcher.observe(_ev("cpu", 0, "CPU_HIGH"))
    prediction = matcher.observe(_ev("drop", 10, "QUEUE_DROP"))[0]
    matcher.observe(_ev("lat", 60, "LATENCY_HIGH"))
    assert matcher.active_predictions() == []
    outcomes = matcher.drain_outcomes()
    assert [(o.prediction_id, o.verdict, o.evidence_event_id) for o in outcomes] == [
        (prediction.id, Verdict.confirmed, "lat"),
    ]
    assert matcher.outcomes.confirmed == 1
    assert matcher.drain_outcomes() == []


def test_prediction_falsified_at_expiry(matcher):
    matcher.observe(_ev("cpu", 0, "CPU_HIGH"))
    prediction = matcher.observe(_ev("drop", 10, "QUEUE_DROP"))[0]
    matcher.observe(_ev("lat", 60, "LATENCY_HIGH", device="Agg-SW2"))
    assert matcher.tick(T0 + 100).outcomes == []

    result = matcher.tick(prediction.expires_at + 1)
    assert [o.verdict for o in result.outcomes] == [Verdict.falsified]
    assert result.outcomes[0].to_dict()["verdict"] == "falsified"
    assert matcher.outcomes.falsified == 1
    assert matcher.active_predictions() == []


def test_applies_to_restricts_devices():
    pattern = Pattern(
        id="PAT-X",
        name="Core only",
        kind=PatternKind.sequence,
        status=PatternStatus.active,
        steps=(SequenceStep("A"), SequenceStep("B", 60)),
        prediction=PatternPrediction("A + B", "C", 0.5),
        applies_to=("Core-*",),
    )
    m = PatternMatcher(PatternLibrary([pattern]), sequences=SequenceTracker(180))
    m.observe(_ev("a1", 0, "A", device="Agg-SW1"))
    assert m.observe(_ev("b1", 5, "B", device="Agg-SW1")) == []
    m.observe(_ev("a2", 0, "A", device="Core-R1"))
    emitted = m.observe(_ev("b2", 5, "B", device="Core-R1"))
    assert [p.expires_at for p in emitted] == [T0 + 65]


def test_invalid_patterns_rejected():
    with pytest.raises(ValidationError):
        Pattern(id="P", name="empty", kind=PatternKind.sequence, prediction=PatternPrediction("", "X", 0.5))
    with pytest.raises(ValidationError):
        Pattern(
            id="P", name="bad", kind=PatternKind.sequence, steps=(SequenceStep("A"),),
            prediction=PatternPrediction("", "X", 1.5),
        )
