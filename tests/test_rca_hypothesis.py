"""
Test intent routing and hypothesis scoring for a cluster root event, including deterministic ranking, situation rendering and the no-match fallback.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import pytest

from engine.errors import ValidationError
from engine.events.model import normalize
from engine.rca import (
    IntentLibrary,
    analyze_root,
    default_intent_library,
    evidence_lines,
    score_hypotheses,
    score_intents,
)
from engine.rca.intents import Intent, SignalCondition
from conftest import make_event

METRICS = {
    "cpu_percent": 85,
    "mem_percent": 75,
    "utilization_percent": 96,
    "in_errors": 20,
    "out_discards": 500,
    "latency_ms": 500,
    "packet_loss_percent": 1.2,
    "traffic_dscp0_percent": 76,
}

LOGS = [
    "Backup job started on agent-server-01 and tail drop observed",
    "Backup traffic detected on Gi0/1/0 marked DSCP0",
    "Interface Gi0/1/0 output queue full",
    "CPU utilization crossed 85% threshold",
]


def _root_event():
    return normalize(make_event(
        eventCode="QUEUE_DROP", message="Egress drops on Gi0/1/0", metrics=METRICS, logs=LOGS,
    ))


def test_intent_ranking():
    ranked = score_intents(METRICS, LOGS, default_intent_library())
    scores = [(m.intent_id, m.score) for m in ranked]
    assert scores[:5] == [
        ("performance.congestion", 1.3),
        ("link.network_latency", 1.0),
        ("system.cpu_high", 0.8),
        ("link.high_errors", 0.3),
        ("compute.cpu_spike", 0.2),
    ]
    # zero scores keep declaration order
    assert [m.intent_id for m in ranked[5:]] == [
        "link.unidirectional", "link.flapping", "routing.bgp_down", "db.connection_pool_exhausted",
    ]
    congestion = ranked[0]
    assert congestion.signals == ("utilization_percent > 90 (0.5)", "out_discards > 0 (0.4)")
    assert congestion.keywords == ("tail drop", "backup")


def test_hypotheses_for_congestion():
    intent = default_intent_library().get("performance.congestion")
    hypotheses = score_hypotheses(intent, METRICS, LOGS)
    assert [(h.hypothesis_id, h.signal_score, h.log_score, h.total_score) for h in hypotheses] == [
        ("H_QOS_CONGESTION", 0.9, 0.6, 1.5),
        ("H_BACKUP_TRAFFIC", 0.8, 0.3, 1.1),
        ("H_PEAK_TRAFFIC", 0.4, 0.0, 0.4),
    ]
    qos = hypotheses[0]
    assert qos.matched_logs == (LOGS[0], LOGS[2])


def test_analyze_root_report():
    report = analyze_root(_root_event(), default_intent_library())
    assert report.intent_match.intent_id == "performance.congestion"
    assert report.top.hypothesis_id == "H_QOS_CONGESTION"
    assert report.prior == 1.5
    assert "Agg-SW1" in report.situation_text
    assert "(96.0%)" in report.situation_text
    assert "(score=1.5)" in report.situation_text


def test_ranking_is_deterministic():
    reports = [analyze_root(_root_event(), default_intent_library()) for _ in range(5)]
    assert all(r == reports[0] for r in reports)


def test_unmatched_event_falls_back_to_first_intent():
    event = normalize(make_event(eventCode="HEARTBEAT", message="nothing to see", metrics={}))
    report = analyze_root(event, default_intent_library())
    assert report.intent_match.intent_id == "performance.congestion"
    assert report.intent_match.score == 0.0
    assert [h.hypothesis_id for h in report.hypotheses] == ["H_QOS_CONGESTION", "H_PEAK_TRAFFIC", "H_BACKUP_TRAFFIC"]
    assert all(h.total_score == 0.0 for h in report.hypotheses)
    assert "(n/a%)" in report.situation_text


def test_empty_library():
    report = analyze_root(_root_event(), IntentLibrary())
    assert report.intent_match is None
    assert report.hypotheses == []
    assert report.top is None


def test_intent_from_camel_case_document():
    intent = Intent.from_dict({
        "id": "custom.disk",
        "subIntent": "disk_full",
        "keywords": ["disk full"],
        "signals": [{"metric": "disk_percent", "op": ">=", "threshold": 95, "weight": 0.7}],
        "hypotheses": [{"id": "H_LOGS", "description": "Log rotation stopped", "logPatterns": ["logrotate"]}],
        "situationDesc": "{device} disk at {disk_percent}%",
    })
    assert intent.sub_intent == "disk_full"
    assert intent.keywords[0].weight == 0.2
    assert intent.hypotheses[0].log_patterns[0].keyword == "logrotate"

    event = normalize(make_event(metrics={"disk_percent": 97}, logs=["logrotate failed"]))
    report = analyze_root(event, IntentLibrary([intent]))
    assert report.intent_match.score == 0.7
    assert report.top.total_score == 0.2
    assert report.situation_text == "Agg-SW1 disk at 97.0%"


def test_malformed_definitions_rejected():
    with pytest.raises(ValidationError):
        SignalCondition("cpu", "=>", 1, 0.5)
    with pytest.raises(ValidationError):
        Intent.from_dict({"name": "no id"})
    with pytest.raises(ValidationError):
        Intent.from_dict({"id": "x", "signals": [{"metric": "cpu", "value": "high"}]})


def test_evidence_lines_capped():
    event = normalize(make_event(logs=[f"line {i}" for i in range(10)], message="last"))
    assert evidence_lines(event, limit=3) == ["line 8", "line 9", "last"]
