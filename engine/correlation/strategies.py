"""
The five independent correlation strategies (temporal, spatial, topological, causal, semantic). Each scores a pair of events in [0, 1] and degrades to 0 on missing data or an unavailable collaborator instead of raising.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Optional, Protocol

import numpy as np

from config import settings
from engine.causal.graph import CausalRuleTable
from engine.correlation.embedding import Embedder, cosine
from engine.enums import Strategy
from engine.errors import CapabilityError
from engine.events.model import Event
from engine.topology.graph import DependencyGraph

log = logging.getLogger(__name__)


class CorrelationStrategy(Protocol):
    name: Strategy

    def score(self, a: Event, b: Event) -> float: ...


def _clamp(value: float) -> float:
    if value != value:
        return 0.0
    return max(0.0, min(1.0, float(value)))


def temporal_score(a: Event, b: Event, window_seconds: float) -> float:
    if window_seconds <= 0:
        return 0.0
    return _clamp(1.0 - min(1.0, abs(a.timestamp - b.timestamp) / window_seconds))


def spatial_score(a: Event, b: Event, same_site_score: float = 0.5) -> float:
    if a.device and a.device == b.device:
        return 1.0
    la, lb = a.location, b.location
    if la.site and la.site == lb.site:
        if la.rack and la.rack == lb.rack:
            return 1.0
        return _clamp(same_site_score)
    return 0.0


class _CapabilityGuard:
    def __init__(self) -> None:
        self._warned = False

    def degraded(self, exc: CapabilityError) -> float:
        if not self._warned:
            log.warning("%s; %s strategy degrades to 0", exc, exc.capability)
            self._warned = True
        return 0.0


class TemporalStrategy:
    name = Strategy.temporal

    def __init__(self, window_seconds: float | None = None) -> None:
        self.window_seconds = settings.window_seconds if window_seconds is None else window_seconds

    def score(self, a: Event, b: Event) -> float:
        return temporal_score(a, b, self.window_seconds)


class SpatialStrategy:
    name = Strategy.spatial

    def __init__(self, same_site_score: float | None = None) -> None:
        self.same_site_score = settings.spatial_same_site_score if same_site_score is None else same_site_score

    def score(self, a: Event, b: Event) -> float:
        return spatial_score(a, b, self.same_site_score)


class TopologicalStrategy:
    name = Strategy.topological

    def __init__(self, graph: Optional[DependencyGraph], max_hops: int | None = None) -> None:
        self.graph = graph
        self.max_hops = settings.max_hops if max_hops is None else max_hops
        self._guard = _CapabilityGuard()

    def score(self, a: Event, b: Event) -> float:
        if a.device and a.device == b.device:
            return 1.0
        try:
            hops = self._hops(a.device, b.device)
        except CapabilityError as exc:
            return self._guard.degraded(exc)
        if hops is None or hops > self.max_hops:
            return 0.0
        if hops <= 1:
            return 1.0
        # linear decay beyond the first hop, reaching 0 just past the cutoff
        return _clamp(1.0 - (hops - 1) / self.max_hops)

    def _hops(self, source: str, target: str) -> Optional[int]:
        if self.graph is None:
            raise CapabilityError("topology graph")
        return self.graph.hop_distance(source, target, self.max_hops)


class CausalStrategy:
    name = Strategy.causal

    def __init__(self, rules: Optional[CausalRuleTable]) -> None:
        self.rules = rules

    def score(self, a: Event, b: Event) -> float:
        if self.rules is None:
            return 0.0
        first, second = (a, b) if a.timestamp <= b.timestamp else (b, a)
        lag = second.timestamp - first.timestamp
        forward = self.rules.probability(first.event_code, second.event_code, lag)
        if lag == 0:
            forward = max(forward, self.rules.probability(second.event_code, first.event_code, lag))
        return _clamp(forward)


class SemanticStrategy:
    name = Strategy.semantic

    def __init__(self, embedder: Optional[Embedder], cache_size: int = 4096) -> None:
        self.embedder = embedder
        self._cache: "OrderedDict[str, np.ndarray]" = OrderedDict()
        self._cache_size = max(1, cache_size)
        self._guard = _CapabilityGuard()

    def score(self, a: Event, b: Event) -> float:
        try:
            va = self._vector(a)
            vb = self._vector(b)
        except CapabilityError as exc:
            return self._guard.degraded(exc)
        return _clamp(cosine(va, vb))

    def _vector(self, event: Event) -> np.ndarray:
        cached = self._cache.get(event.id)
        if cached is not None:
            self._cache.move_to_end(event.id)
            return cached
        if self.embedder is None:
            raise CapabilityError("embedding function")
        try:
            vector = np.asarray(self.embedder([event.text()]), dtype=float)[0]
        except Exception as exc:
            raise CapabilityError("embedding function", str(exc)) from exc
        self._cache[event.id] = vector
        while len(self._cache) > self._cache_size:
            self._cache.popitem(last=False)
        return vector
