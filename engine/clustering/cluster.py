"""
Cluster record: one immutable root event plus the children, duplicates and suppressed-event tally correlated to it.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from engine.correlation.aggregator import CorrelationEdge
from engine.enums import ClusterStatus, EventLabel
from engine.events.model import Event


@dataclass
class Cluster:
    id: str
    root_event: Event
    created_at: float
    status: ClusterStatus = ClusterStatus.pending
    child_events: List[Event] = field(default_factory=list)
    duplicate_events: List[Event] = field(default_factory=list)
    suppressed_event_ids: List[str] = field(default_factory=list)
    edges: Dict[Tuple[str, str], CorrelationEdge] = field(default_factory=dict)
    resolved_at: Optional[float] = None

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicate_events)

    @property
    def suppressed_count(self) -> int:
        return len(self.suppressed_event_ids)

    @property
    def is_open(self) -> bool:
        return self.status != ClusterStatus.resolved

    @property
    def last_event_at(self) -> float:
        return max([e.timestamp for e in self.members()], default=self.created_at)

    def members(self) -> List[Event]:
        return [self.root_event, *self.child_events, *self.duplicate_events]

    def label_of(self, event_id: str) -> Optional[EventLabel]:
        if event_id == self.root_event.id:
            return EventLabel.root
        if any(e.id == event_id for e in self.child_events):
            return EventLabel.child
        if any(e.id == event_id for e in self.duplicate_events):
            return EventLabel.duplicate
        return None

    def devices(self) -> List[str]:
        return list(dict.fromkeys(e.device for e in self.members()))
