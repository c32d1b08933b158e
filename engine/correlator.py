"""
Correlation engine facade: owns the event window, cluster builder, pattern matcher and case retriever, and serialises every mutation behind one lock so readers always see consistent snapshots.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from config import Settings, settings as default_settings, validate_settings
from engine.causal.graph import CausalRuleTable, default_rule_table
from engine.clustering.builder import Assignment, ClusterBuilder
from engine.clustering.cluster import Cluster
from engine.correlation.aggregator import CorrelationAggregator
from engine.correlation.embedding import Embedder, HashingEmbedder
from engine.correlation.strategies import (
    CausalStrategy,
    SemanticStrategy,
    SpatialStrategy,
    TemporalStrategy,
    TopologicalStrategy,
)
from engine.enums import ClusterStatus, EventLabel, PatternStatus, Severity
from engine.errors import NotFoundError, ValidationError
from engine.events.buffer import EventWindow
from engine.events.model import Event, Location, derive_event_id, normalize
from engine.events.suppression import SuppressionPolicy
from engine.history.retriever import CaseRetriever, HistoricalCase, RetrievalResult, default_case_retriever
from engine.patterns.library import PatternLibrary, default_pattern_library
from engine.patterns.matcher import OutcomeLedger, PatternMatcher, TickResult
from engine.patterns.model import Pattern, PredictedEvent, PredictionOutcome, ThresholdEvent
from engine.patterns.sequence import SequenceTracker
from engine.patterns.trajectory import TrajectoryTracker
from engine.rca.hypothesis import HypothesisReport, analyze_root
from engine.rca.intents import IntentLibrary, default_intent_library
from engine.topology.graph import DependencyGraph

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestResult:
    event_id: str
    label: EventLabel
    cluster_id: Optional[str] = None
    suppressed_by: Optional[str] = None
    already_known: bool = False
    predictions: Tuple[PredictedEvent, ...] = ()


@dataclass(frozen=True)
class ClusterFilter:
    status: Optional[ClusterStatus] = None
    device: Optional[str] = None
    severity: Optional[Severity] = None
    limit: Optional[int] = None


@dataclass(frozen=True)
class ClusterSummary:
    id: str
    status: ClusterStatus
    root_event: Event
    child_event_ids: Tuple[str, ...]
    duplicate_count: int
    suppressed_count: int
    created_at: float
    last_event_at: float
    devices: Tuple[str, ...]
    resolved_at: Optional[float] = None

    @property
    def child_count(self) -> int:
        return len(self.child_event_ids)


@dataclass(frozen=True)
class CorrelatedEvent:
    event: Event
    label: EventLabel
    aggregate: Optional[float] = None
    scores: Dict[str, float] = field(default_factory=dict)
    correlated_with: Optional[str] = None


@dataclass(frozen=True)
class ClusterDetail:
    summary: ClusterSummary
    hypotheses: HypothesisReport
    correlated_events: List[CorrelatedEvent]
    historical_cases: RetrievalResult


def _summary(cluster: Cluster) -> ClusterSummary:
    return ClusterSummary(
        id=cluster.id,
        status=cluster.status,
        root_event=cluster.root_event,
        child_event_ids=tuple(e.id for e in cluster.child_events),
        duplicate_count=cluster.duplicate_count,
        suppressed_count=cluster.suppressed_count,
        created_at=cluster.created_at,
        last_event_at=cluster.last_event_at,
        devices=tuple(cluster.devices()),
        resolved_at=cluster.resolved_at,
    )


class CorrelationEngine:
    def __init__(
        self,
        cfg: Settings | None = None,
        graph: Optional[DependencyGraph] = None,
        causal_rules: Optional[CausalRuleTable] = None,
        embedder: Optional[Embedder] = None,
        intents: Optional[IntentLibrary] = None,
        patterns: Optional[PatternLibrary] = None,
        cases: CaseRetriever | Iterable[HistoricalCase] | None = None,
        suppression: Optional[SuppressionPolicy] = None,
    ) -> None:
        self.cfg = validate_settings((cfg or default_settings).model_copy(deep=True))
        cfg = self.cfg

        self.graph = graph
        self.aggregator = CorrelationAggregator(
            strategies=[
                TemporalStrategy(cfg.window_seconds),
                SpatialStrategy(cfg.spatial_same_site_score),
                TopologicalStrategy(graph, cfg.max_hops),
                CausalStrategy(causal_rules if causal_rules is not None else default_rule_table()),
                SemanticStrategy(embedder if embedder is not None else HashingEmbedder(cfg.embedding_features)),
            ],
            weights=cfg.correlation_weights,
            edge_threshold=cfg.edge_threshold,
            causal_folding=cfg.causal_folding,
        )
        self.window = EventWindow(cfg.window_max_events, cfg.archive_max_events)
        self.builder = ClusterBuilder(
            self.aggregator,
            self.window,
            suppression=suppression,
            window_seconds=cfg.window_seconds,
            dedup_window_seconds=cfg.dedup_window_seconds,
            audit_max_events=cfg.archive_max_events,
        )
        self.intents = intents if intents is not None else default_intent_library()
        self.matcher = PatternMatcher(
            patterns if patterns is not None else default_pattern_library(),
            sequences=SequenceTracker(cfg.sequence_default_step_seconds),
            trajectories=TrajectoryTracker(
                threshold_cooldown_seconds=cfg.threshold_cooldown_seconds,
                prediction_cooldown_seconds=cfg.prediction_cooldown_seconds,
                default_step_seconds=cfg.sequence_default_step_seconds,
                snapshot_ttl_seconds=cfg.window_seconds,
            ),
            outcomes=OutcomeLedger(cfg.outcomes_max_items),
        )
        if cases is None:
            self.retriever = default_case_retriever()
        elif isinstance(cases, CaseRetriever):
            self.retriever = cases
        else:
            self.retriever = CaseRetriever(cases)

        self._lock = threading.RLock()
        self._reports: Dict[str, HypothesisReport] = {}
        self._locations: Dict[str, Location] = {}
        self._threshold_events: List[ThresholdEvent] = []
        self._ingested = 0
        self._rejected = 0
        self._dropped = 0
        log.info(
            "Correlation engine ready (threshold=%.2f window=%.0fs weights=%s)",
            cfg.edge_threshold, cfg.window_seconds, cfg.correlation_weights,
        )

    # ingestion

    def ingest(self, raw: Mapping[str, Any]) -> IngestResult:
        with self._lock:
            try:
                event = normalize(raw)
            except ValidationError as exc:
                self._rejected += 1
                log.debug("Rejected event: %s (field=%s)", exc.reason, exc.field)
                raise
            return self._accept(event)

    def ingest_event(self, event: Event) -> IngestResult:
        with self._lock:
            return self._accept(event)

    def record_dropped(self, count: int = 1) -> None:
        with self._lock:
            self._dropped += count

    def _accept(self, event: Event, track_metrics: bool = True) -> IngestResult:
        assignment: Assignment = self.builder.assign(event)
        if not assignment.created:
            return IngestResult(
                event_id=event.id,
                label=assignment.label,
                cluster_id=assignment.cluster_id,
                suppressed_by=assignment.suppressed_by,
                already_known=True,
            )

        self._ingested += 1
        if event.location.site:
            self._locations[event.device] = event.location

        predictions: Tuple[PredictedEvent, ...] = ()
        if assignment.label != EventLabel.suppressed:
            predictions = tuple(self.matcher.observe(event, track_metrics=track_metrics))
        return IngestResult(
            event_id=event.id,
            label=assignment.label,
            cluster_id=assignment.cluster_id,
            suppressed_by=assignment.suppressed_by,
            predictions=predictions,
        )

    # tick driver

    def tick(self, now: float | None = None) -> TickResult:
        at = time.time() if now is None else now
        with self._lock:
            result = self.matcher.tick(at)
            for threshold in result.threshold_events:
                # synthesised from the snapshot, so its metric is not a new reading
                self._accept(self._threshold_to_event(threshold), track_metrics=False)
            self._threshold_events = (self._threshold_events + result.threshold_events)[-self.cfg.log_lines_limit:]

            self.builder.expire_pending_edges()
            self.window.prune(max(self.cfg.window_seconds, self.cfg.dedup_window_seconds) * 2)
            return result

    def _threshold_to_event(self, threshold: ThresholdEvent) -> Event:
        return Event(
            id=derive_event_id(threshold.emitted_at, threshold.device, threshold.event_code, threshold.message),
            timestamp=threshold.emitted_at,
            device=threshold.device,
            event_code=threshold.event_code,
            severity=threshold.severity,
            message=threshold.message,
            metrics={threshold.metric: threshold.value},
            location=self._locations.get(threshold.device, Location()),
        )

    # queries

    def get_clusters(self, flt: ClusterFilter | None = None) -> List[ClusterSummary]:
        flt = flt or ClusterFilter()
        with self._lock:
            clusters = list(self.builder.clusters.values())
            if flt.status is not None:
                clusters = [c for c in clusters if c.status == flt.status]
            if flt.device:
                clusters = [c for c in clusters if flt.device in c.devices()]
            if flt.severity is not None:
                clusters = [c for c in clusters if c.root_event.severity == flt.severity]
            clusters.sort(key=lambda c: (-c.created_at, c.id))
            if flt.limit is not None:
                clusters = clusters[: max(0, flt.limit)]
            return [_summary(c) for c in clusters]

    def get_cluster_detail(self, cluster_id: str) -> ClusterDetail:
        with self._lock:
            cluster = self.builder.clusters.get(cluster_id)
            if cluster is None:
                raise NotFoundError(f"cluster not found: {cluster_id}")
            report = self._reports.get(cluster_id)
            if report is None:
                # the root never changes, so its report can be reused
                report = analyze_root(cluster.root_event, self.intents)
                self._reports[cluster_id] = report
            summary = _summary(cluster)
            correlated = self._correlated_events(cluster)

        historical = self.retriever.retrieve(report.situation_text, self.cfg.history_top_k)
        return ClusterDetail(
            summary=summary,
            hypotheses=report,
            correlated_events=correlated,
            historical_cases=historical,
        )

    def _correlated_events(self, cluster: Cluster) -> List[CorrelatedEvent]:
        out: List[CorrelatedEvent] = [CorrelatedEvent(event=cluster.root_event, label=EventLabel.root)]
        for child in cluster.child_events:
            edges = [e for e in cluster.edges.values() if child.id in e.key]
            best = max(edges, key=lambda e: e.aggregate, default=None)
            out.append(
                CorrelatedEvent(
                    event=child,
                    label=EventLabel.child,
                    aggregate=best.aggregate if best else None,
                    scores=dict(best.scores) if best else {},
                    correlated_with=best.other(child.id) if best else None,
                )
            )
        for duplicate in cluster.duplicate_events:
            out.append(CorrelatedEvent(event=duplicate, label=EventLabel.duplicate))
        return out

    def get_active_predictions(self) -> List[PredictedEvent]:
        with self._lock:
            return self.matcher.active_predictions()

    def get_patterns(self, status: PatternStatus | None = None) -> List[Pattern]:
        with self._lock:
            return [dataclasses.replace(p) for p in self.matcher.library if status is None or p.status == status]

    def get_threshold_events(self) -> List[ThresholdEvent]:
        with self._lock:
            return list(self._threshold_events)

    # lifecycle

    def approve_pattern(self, pattern_id: str) -> Pattern:
        with self._lock:
            return dataclasses.replace(self.matcher.approve(pattern_id))

    def discard_pattern(self, pattern_id: str) -> Pattern:
        with self._lock:
            return dataclasses.replace(self.matcher.discard(pattern_id))

    def resolve_cluster(self, cluster_id: str, at: float | None = None) -> ClusterSummary:
        with self._lock:
            cluster = self.builder.resolve(cluster_id, time.time() if at is None else at)
            return _summary(cluster)

    def drain_outcomes(self) -> List[PredictionOutcome]:
        with self._lock:
            return self.matcher.drain_outcomes()

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            clusters = list(self.builder.clusters.values())
            return {
                "ingested": self._ingested,
                "rejected": self._rejected,
                "dropped_events": self._dropped,
                "clusters": len(clusters),
                "active_clusters": sum(1 for c in clusters if c.status == ClusterStatus.active),
                "pending_clusters": sum(1 for c in clusters if c.status == ClusterStatus.pending),
                "resolved_clusters": sum(1 for c in clusters if c.status == ClusterStatus.resolved),
                "suppressed": len(self.builder.suppressed_events),
                "duplicates": sum(c.duplicate_count for c in clusters),
                "window_size": len(self.window),
                "pending_edges": len(self.builder.ledger),
                "active_predictions": len(self.matcher.active_predictions()),
                "confirmed_predictions": self.matcher.outcomes.confirmed,
                "falsified_predictions": self.matcher.outcomes.falsified,
            }

    def restore_pattern_statuses(self, statuses: Mapping[str, str]) -> int:
        """Re-apply persisted lifecycle statuses; unknown ids and values are ignored."""
        restored = 0
        with self._lock:
            for pattern in self.matcher.library:
                value = statuses.get(pattern.id)
                if value is None or value not in PatternStatus._value2member_map_:
                    continue
                pattern.status = PatternStatus(value)
                restored += 1
        if restored:
            log.info("Restored lifecycle status for %d patterns", restored)
        return restored
