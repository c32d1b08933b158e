"""
Test Suite for Store Client, outcome ledger and pattern status persistence

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import pytest

from engine.enums import Verdict
from engine.patterns.model import PredictionOutcome
from store import keys, outcomes as outcome_store, patterns as pattern_store
from store import client as store_client
from store.client import _fallback, redis_delete, redis_get, redis_lrange, redis_rpush, redis_set


def _outcome(n, verdict=Verdict.confirmed):
    return PredictionOutcome(
        prediction_id=f"PRED-{n:06d}", pattern_id="PAT-SEQ-001", then_event="LATENCY_HIGH",
        device="Agg-SW1", verdict=verdict, evaluated_at=100.0 + n,
    )


@pytest.mark.asyncio
async def test_fallback_operations():
    await redis_set("k1", "v1")
    assert await redis_get("k1") == "v1"
    await redis_delete("k1")
    assert await redis_get("k1") is None

    await redis_rpush("l1", ["a", "b", "c"], max_len=2)
    assert await redis_lrange("l1") == ["b", "c"]
    await redis_rpush("l1", [])
    assert _fallback.lists["l1"] == ["b", "c"]


@pytest.mark.asyncio
async def test_remote_errors_fall_back(monkeypatch):
    class BrokenRedis:
        async def get(self, key):
            raise ConnectionError("reset by peer")

    async def broken():
        return BrokenRedis()

    monkeypatch.setattr(store_client, "get_redis", broken)
    _fallback.values["k"] = "local"
    assert await redis_get("k") == "local"


def test_keys():
    assert keys.outcomes("t1") == "corr:t1:outcomes"
    assert keys.pattern_status("t1") == "corr:t1:pattern_status"


@pytest.mark.asyncio
async def test_outcomes_round_trip():
    assert await outcome_store.append("t1", []) == 0
    assert await outcome_store.append("t1", [_outcome(1), _outcome(2, Verdict.falsified)]) == 2
    rows = await outcome_store.load("t1")
    assert [(r["prediction_id"], r["verdict"]) for r in rows] == [
        ("PRED-000001", "confirmed"), ("PRED-000002", "falsified"),
    ]
    assert await outcome_store.load("t2") == []

    _fallback.lists[keys.outcomes("t1")].append("{not json")
    assert len(await outcome_store.load("t1")) == 2

    await outcome_store.clear("t1")
    assert await outcome_store.load("t1") == []


@pytest.mark.asyncio
async def test_pattern_status_persistence():
    assert await pattern_store.load("t1") == {}
    await pattern_store.save_status("t1", "PAT-MET-002", "active")
    await pattern_store.save_status("t1", "PAT-SEQ-001", "discarded")
    assert await pattern_store.load("t1") == {"PAT-MET-002": "active", "PAT-SEQ-001": "discarded"}

    await redis_set(keys.pattern_status("t2"), "[1, 2]")
    assert await pattern_store.load("t2") == {}
