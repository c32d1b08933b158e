"""
Correlation engine facade tests: ingestion results, cluster queries, predictions, the tick driver and stats.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import threading

import pytest

from config import Settings
from engine.correlator import ClusterFilter, CorrelationEngine
from engine.enums import ClusterStatus, EventLabel, PatternStatus, Severity
from engine.errors import NotFoundError, ValidationError
from engine.events.suppression import MaintenanceWindow, SuppressionPolicy
from conftest import make_event

T0 = 1_760_000_000.0


def test_rejected_events_counted(engine):
    with pytest.raises(ValidationError) as exc:
        engine.ingest(make_event(device=""))
    assert exc.value.field == "device"
    assert engine.stats()["rejected"] == 1
    assert engine.stats()["window_size"] == 0


def test_cluster_listing_and_filters(engine):
    engine.ingest(make_event(id="a", timestamp=T0))
    engine.ingest(make_event(id="b", timestamp=T0 + 1000, device="Core-R1", severity="critical"))

    assert [c.root_event.id for c in engine.get_clusters()] == ["b", "a"]
    assert [c.id for c in engine.get_clusters(ClusterFilter(device="Agg-SW1"))] == ["CL-0001"]
    assert [c.id for c in engine.get_clusters(ClusterFilter(severity=Severity.critical))] == ["CL-0002"]
    assert len(engine.get_clusters(ClusterFilter(status=ClusterStatus.pending))) == 2
    assert len(engine.get_clusters(ClusterFilter(limit=1))) == 1


def test_cluster_detail(engine):
    engine.ingest(make_event(
        id="root", timestamp=T0, eventCode="QUEUE_DROP",
        metrics={"utilization_percent": 96, "out_discards": 500},
        logs=["Interface Gi0/1/0 output queue full"],
    ))
    engine.ingest(make_event(id="dup", timestamp=T0 + 20, eventCode="QUEUE_DROP",
                             metrics={"utilization_percent": 96, "out_discards": 500}))
    detail = engine.get_cluster_detail("CL-0001")
    assert detail.hypotheses.intent_match.intent_id == "performance.congestion"
    assert detail.hypotheses.top.hypothesis_id == "H_QOS_CONGESTION"
    assert detail.historical_cases.cases
    assert [(c.event.id, c.label) for c in detail.correlated_events] == [
        ("root", EventLabel.root), ("dup", EventLabel.duplicate),
    ]
    assert engine.get_cluster_detail("CL-0001").hypotheses is detail.hypotheses

    with pytest.raises(NotFoundError):
        engine.get_cluster_detail("CL-0404")


def test_ingest_returns_predictions(engine):
    engine.ingest(make_event(id="cpu", timestamp=T0, eventCode="CPU_HIGH", metrics={"cpu_percent": 91}))
    res = engine.ingest(make_event(id="drop", timestamp=T0 + 72, eventCode="QUEUE_DROP"))
    assert [p.pattern_id for p in res.predictions] == ["PAT-SEQ-001"]
    assert engine.get_active_predictions() == list(res.predictions)
    assert engine.stats()["active_predictions"] == 1

    engine.tick(res.predictions[0].expires_at + 1)
    stats = engine.stats()
    assert stats["active_predictions"] == 0
    assert stats["falsified_predictions"] == 1
    assert [o.verdict.value for o in engine.drain_outcomes()] == ["falsified"]


def test_tick_reingests_threshold_events(engine):
    engine.approve_pattern("PAT-MET-002")
    engine.ingest(make_event(id="tel", timestamp=T0, device="Access-SW1", eventCode="TELEMETRY",
                             metrics={"utilization_percent": 85}))
    result = engine.tick(T0 + 1)
    assert [e.event_code for e in result.threshold_events] == ["UTIL_HIGH"]
    assert [e.device for e in engine.get_threshold_events()] == ["Access-SW1"]
    assert engine.stats()["ingested"] == 2
    assert engine.stats()["window_size"] == 2


def test_one_reading_yields_one_threshold_event(engine):
    engine.approve_pattern("PAT-MET-002")
    engine.ingest(make_event(id="tel", timestamp=T0, device="Access-SW1", eventCode="TELEMETRY",
                             metrics={"utilization_percent": 95}))
    emitted = []
    for i in range(1, 601):
        emitted.extend(engine.tick(T0 + i).threshold_events)
    assert [e.event_code for e in emitted] == ["UTIL_HIGH"]
    stats = engine.stats()
    assert stats["ingested"] == 2
    assert stats["duplicates"] == 0


def test_one_reading_yields_one_trajectory_prediction(engine):
    engine.approve_pattern("PAT-MET-002")
    engine.ingest(make_event(id="tel", timestamp=T0, device="Access-SW1", eventCode="TELEMETRY",
                             metrics={"utilization_percent": 95, "buffer_util_percent": 75, "crc_errors": 12}))
    predictions = []
    for i in range(1, 61):
        predictions.extend(engine.tick(T0 + i).predictions)
    assert [p.pattern_id for p in predictions] == ["PAT-MET-002"]


def test_tick_prunes_window(engine):
    engine.ingest(make_event(id="old", timestamp=T0))
    engine.ingest(make_event(id="new", timestamp=T0 + 1000, device="Core-R1"))
    engine.tick(T0 + 1000)
    assert engine.stats()["window_size"] == 1
    # archived events remain addressable through their cluster
    assert engine.get_cluster_detail("CL-0001").summary.root_event.id == "old"


def test_resolve_cluster(engine):
    res = engine.ingest(make_event(id="a", timestamp=T0))
    summary = engine.resolve_cluster(res.cluster_id, at=T0 + 60)
    assert summary.status == ClusterStatus.resolved
    assert summary.resolved_at == T0 + 60
    assert engine.stats()["resolved_clusters"] == 1
    with pytest.raises(NotFoundError):
        engine.resolve_cluster("CL-0404")


def test_suppressed_events_skip_patterns(graph):
    policy = SuppressionPolicy([MaintenanceWindow("change-42", frozenset({"Agg-SW1"}), T0, T0 + 600)])
    engine = CorrelationEngine(Settings(), graph=graph, suppression=policy)
    engine.ingest(make_event(id="cpu", timestamp=T0, eventCode="CPU_HIGH"))
    res = engine.ingest(make_event(id="drop", timestamp=T0 + 10, eventCode="QUEUE_DROP"))
    assert res.label == EventLabel.suppressed
    assert res.suppressed_by == "change-42"
    assert res.predictions == ()
    stats = engine.stats()
    assert stats["suppressed"] == 2
    assert stats["clusters"] == 0


def test_patterns_are_returned_as_copies(engine):
    patterns = engine.get_patterns()
    assert [p.id for p in patterns] == ["PAT-SEQ-001", "PAT-MET-002"]
    patterns[0].status = PatternStatus.discarded
    assert [p.id for p in engine.get_patterns(PatternStatus.active)] == ["PAT-SEQ-001"]
    assert engine.discard_pattern("PAT-SEQ-001").status == PatternStatus.discarded


def test_restore_pattern_statuses(engine):
    restored = engine.restore_pattern_statuses({
        "PAT-MET-002": "active", "PAT-UNKNOWN": "active", "PAT-SEQ-001": "bogus",
    })
    assert restored == 1
    assert {p.id for p in engine.get_patterns(PatternStatus.active)} == {"PAT-SEQ-001", "PAT-MET-002"}


def test_record_dropped(engine):
    engine.record_dropped(3)
    assert engine.stats()["dropped_events"] == 3


def test_concurrent_ingest_is_consistent(engine):
    def worker(n):
        for i in range(25):
            engine.ingest(make_event(id=f"w{n}-{i}", timestamp=T0 + i * 400 + n, device=f"Host-{n}",
                                     eventCode=f"CODE_{n}_{i}"))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stats = engine.stats()
    assert stats["ingested"] == 100
    members = [m for c in engine.get_clusters() for m in (c.root_event.id, *c.child_event_ids)]
    assert len(members) == len(set(members)) == 100 - stats["duplicates"]
