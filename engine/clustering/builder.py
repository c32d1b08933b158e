"""
Incremental cluster builder: places each accepted event into at most one cluster as Root, Child, Duplicate or Suppressed, using the aggregator's edges over the live event window.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Tuple

from config import settings
from engine.clustering.cluster import Cluster
from engine.correlation.aggregator import CorrelationAggregator, CorrelationEdge, EdgeLedger
from engine.enums import ClusterStatus, EventLabel
from engine.errors import NotFoundError
from engine.events.buffer import EventWindow
from engine.events.model import Event
from engine.events.suppression import SuppressionPolicy

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Assignment:
    event_id: str
    label: EventLabel
    cluster_id: Optional[str] = None
    edges: Tuple[CorrelationEdge, ...] = field(default=(), compare=False)
    suppressed_by: Optional[str] = None
    created: bool = True


class ClusterBuilder:
    def __init__(
        self,
        aggregator: CorrelationAggregator,
        window: EventWindow,
        suppression: Optional[SuppressionPolicy] = None,
        window_seconds: float | None = None,
        dedup_window_seconds: float | None = None,
        audit_max_events: int | None = None,
    ) -> None:
        self.aggregator = aggregator
        self.window = window
        self.suppression = suppression or SuppressionPolicy()
        self.window_seconds = settings.window_seconds if window_seconds is None else window_seconds
        self.dedup_window_seconds = (
            settings.dedup_window_seconds if dedup_window_seconds is None else dedup_window_seconds
        )
        self.ledger = EdgeLedger(self.window_seconds)
        self._clusters: Dict[str, Cluster] = {}
        self._membership: Dict[str, str] = {}
        self._assignments: Dict[str, Assignment] = {}
        self._suppressed: Deque[Tuple[Event, str]] = deque(
            maxlen=audit_max_events or settings.archive_max_events
        )
        self._sequence = 0

    @property
    def clusters(self) -> Dict[str, Cluster]:
        return self._clusters

    @property
    def suppressed_events(self) -> List[Tuple[Event, str]]:
        return list(self._suppressed)

    def cluster_of(self, event_id: str) -> Optional[Cluster]:
        cid = self._membership.get(event_id)
        return self._clusters.get(cid) if cid else None

    def assignment(self, event_id: str) -> Optional[Assignment]:
        return self._assignments.get(event_id)

    def assign(self, event: Event) -> Assignment:
        known = self._assignments.get(event.id)
        if known is not None:
            return Assignment(
                event_id=known.event_id,
                label=known.label,
                cluster_id=known.cluster_id,
                suppressed_by=known.suppressed_by,
                created=False,
            )

        rule = self.suppression.match(event)
        if rule is not None:
            assignment = self._suppress(event, rule)
        else:
            assignment = self._place(event)
        self._assignments[event.id] = assignment
        return assignment

    def resolve(self, cluster_id: str, at: float) -> Cluster:
        cluster = self._clusters.get(cluster_id)
        if cluster is None:
            raise NotFoundError(f"cluster not found: {cluster_id}")
        if cluster.is_open:
            cluster.status = ClusterStatus.resolved
            cluster.resolved_at = at
            log.info("Cluster %s resolved", cluster_id)
        return cluster

    def expire_pending_edges(self) -> int:
        latest = self.window.latest_timestamp
        return self.ledger.expire(latest) if latest is not None else 0

    def _suppress(self, event: Event, rule: str) -> Assignment:
        self._suppressed.append((event, rule))
        _, best = self._best_cluster(self._scored_neighbours(event, record=False))
        cluster_id = None
        if best is not None:
            best.suppressed_event_ids.append(event.id)
            cluster_id = best.id
        log.debug("Event %s suppressed by %s", event.id, rule)
        return Assignment(event_id=event.id, label=EventLabel.suppressed, cluster_id=cluster_id, suppressed_by=rule)

    def _place(self, event: Event) -> Assignment:
        self.window.add(event)

        scored = self._scored_neighbours(event, record=True)
        edge, cluster = self._best_cluster(scored)
        if cluster is not None and edge is not None:
            self._membership[event.id] = cluster.id
            self.ledger.resolve(event.id)
            if self._duplicates_member(event, cluster):
                cluster.duplicate_events.append(event)
                log.debug("Event %s is a duplicate in cluster %s", event.id, cluster.id)
                return Assignment(event_id=event.id, label=EventLabel.duplicate, cluster_id=cluster.id)

            cluster.child_events.append(event)
            cluster.status = ClusterStatus.active
            joined = tuple(e for e, c in scored if c is cluster and self.aggregator.is_edge(e))
            for e in joined:
                cluster.edges[e.key] = e
            return Assignment(event_id=event.id, label=EventLabel.child, cluster_id=cluster.id, edges=joined)

        cluster = self._seed(event)
        return Assignment(event_id=event.id, label=EventLabel.root, cluster_id=cluster.id)

    def _seed(self, event: Event) -> Cluster:
        self._sequence += 1
        cluster = Cluster(id=f"CL-{self._sequence:04d}", root_event=event, created_at=event.timestamp)
        self._clusters[cluster.id] = cluster
        self._membership[event.id] = cluster.id
        log.info("Cluster %s created with root %s (%s on %s)", cluster.id, event.id, event.event_code, event.device)
        return cluster

    def _duplicates_member(self, event: Event, cluster: Cluster) -> bool:
        """Same code, device and severity as a member of ``cluster`` within the dedup window."""
        for other in self.window.neighbours(event, self.dedup_window_seconds):
            if (
                other.event_code == event.event_code
                and other.device == event.device
                and other.severity == event.severity
                and self._membership.get(other.id) == cluster.id
            ):
                return True
        return False

    def _scored_neighbours(self, event: Event, record: bool) -> List[Tuple[CorrelationEdge, Cluster]]:
        scored: List[Tuple[CorrelationEdge, Cluster]] = []
        newest = self.window.latest_timestamp or event.timestamp
        for other in self.window.neighbours(event, self.window_seconds):
            cluster = self.cluster_of(other.id)
            if cluster is None or not cluster.is_open:
                continue
            edge = self.aggregator.score(event, other)
            if self.aggregator.is_edge(edge):
                scored.append((edge, cluster))
            elif record:
                self.ledger.record(edge, max(newest, event.timestamp, other.timestamp))
        return scored

    @staticmethod
    def _best_cluster(scored: List[Tuple[CorrelationEdge, Cluster]]) -> Tuple[Optional[CorrelationEdge], Optional[Cluster]]:
        if not scored:
            return None, None
        # highest edge wins; equal scores prefer the cluster whose root came first
        edge, cluster = min(
            scored,
            key=lambda item: (-item[0].aggregate, item[1].root_event.timestamp, item[1].id),
        )
        return edge, cluster
