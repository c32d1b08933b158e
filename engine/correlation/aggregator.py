"""
Combines per-strategy scores into one weighted correlation score per event pair and decides which pairs become edges. Weights are validated up front so a bad configuration fails at startup rather than on the first event.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Tuple

from config import STRATEGY_NAMES, WEIGHT_SUM_TOLERANCE, settings
from engine.correlation.strategies import CorrelationStrategy
from engine.enums import Strategy
from engine.errors import ConfigError
from engine.events.model import Event

log = logging.getLogger(__name__)


def validate_weights(raw: Mapping[str, float], causal_folding: bool = False) -> Dict[Strategy, float]:
    weights: Dict[Strategy, float] = {}
    for key, value in dict(raw or {}).items():
        name = key.value if isinstance(key, Strategy) else str(key)
        if name not in STRATEGY_NAMES:
            raise ConfigError(f"unknown correlation strategy in weights: {name}")
        try:
            numeric = float(value)
        except (TypeError, ValueError):
            raise ConfigError(f"weight for {name} is not numeric: {value!r}") from None
        if not math.isfinite(numeric) or numeric < 0.0:
            raise ConfigError(f"weight for {name} must be a finite non-negative number, got {value!r}")
        weights[Strategy(name)] = numeric

    for strategy in Strategy:
        weights.setdefault(strategy, 0.0)

    total = sum(weights.values())
    if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
        raise ConfigError(f"correlation weights must sum to 1.0, got {total:.6f}")
    if causal_folding and weights[Strategy.causal] > 0.0:
        raise ConfigError("causal weight must be 0 when causal_folding is enabled")
    return weights


def pair_key(a: str, b: str) -> Tuple[str, str]:
    return (a, b) if a <= b else (b, a)


@dataclass(frozen=True)
class CorrelationEdge:
    event_a: str
    event_b: str
    scores: Dict[str, float] = field(default_factory=dict, compare=False, hash=False)
    aggregate: float = 0.0

    @property
    def key(self) -> Tuple[str, str]:
        return pair_key(self.event_a, self.event_b)

    def other(self, event_id: str) -> str:
        return self.event_b if event_id == self.event_a else self.event_a


class CorrelationAggregator:
    def __init__(
        self,
        strategies: Iterable[CorrelationStrategy],
        weights: Mapping[str, float] | None = None,
        edge_threshold: float | None = None,
        causal_folding: bool | None = None,
    ) -> None:
        self.causal_folding = settings.causal_folding if causal_folding is None else causal_folding
        self.weights = validate_weights(
            settings.correlation_weights if weights is None else weights,
            self.causal_folding,
        )
        self.edge_threshold = settings.edge_threshold if edge_threshold is None else edge_threshold
        if not 0.0 < self.edge_threshold <= 1.0:
            raise ConfigError(f"edge_threshold must be in (0, 1], got {self.edge_threshold}")
        self.strategies: Dict[Strategy, CorrelationStrategy] = {s.name: s for s in strategies}

    def score(self, a: Event, b: Event) -> CorrelationEdge:
        scores: Dict[str, float] = {}
        for strategy in Strategy:
            scorer = self.strategies.get(strategy)
            scores[strategy.value] = round(scorer.score(a, b), 4) if scorer is not None else 0.0

        channels = dict(scores)
        if self.causal_folding:
            channels[Strategy.semantic.value] = max(scores[Strategy.semantic.value], scores[Strategy.causal.value])

        aggregate = sum(self.weights[s] * channels[s.value] for s in Strategy)
        aggregate = round(max(0.0, min(1.0, aggregate)), 4)
        log.debug("edge %s<->%s aggregate=%.4f scores=%s", a.id, b.id, aggregate, scores)
        return CorrelationEdge(event_a=a.id, event_b=b.id, scores=scores, aggregate=aggregate)

    def is_edge(self, edge: CorrelationEdge) -> bool:
        return edge.aggregate >= self.edge_threshold

    def edges(self, event: Event, candidates: Iterable[Event]) -> List[CorrelationEdge]:
        return [self.score(event, other) for other in candidates if other.id != event.id]


class EdgeLedger:
    """Candidate edges that have not cleared the threshold yet.

    A pending pair is dropped once either event is resolved into a cluster
    or once the pair's temporal window has fully elapsed relative to the
    newest event timestamp seen.
    """

    def __init__(self, window_seconds: float | None = None) -> None:
        self.window_seconds = settings.window_seconds if window_seconds is None else window_seconds
        self._pending: Dict[Tuple[str, str], Tuple[CorrelationEdge, float]] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def record(self, edge: CorrelationEdge, newest_ts: float) -> None:
        self._pending[edge.key] = (edge, newest_ts)

    def resolve(self, event_id: str) -> int:
        stale = [k for k in self._pending if event_id in k]
        for k in stale:
            del self._pending[k]
        return len(stale)

    def expire(self, latest_ts: float) -> int:
        stale = [k for k, (_, ts) in self._pending.items() if latest_ts - ts > self.window_seconds]
        for k in stale:
            del self._pending[k]
        return len(stale)

    def pending_for(self, event_id: str) -> List[CorrelationEdge]:
        return [edge for k, (edge, _) in self._pending.items() if event_id in k]
