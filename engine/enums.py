"""
Enumerations for Severity, Event Labels, Cluster Status and Pattern lifecycle

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from enum import Enum

from config import SEVERITY_WEIGHTS


class Severity(str, Enum):
    critical = "critical"
    major = "major"
    minor = "minor"
    low = "low"
    info = "info"

    @classmethod
    def parse(cls, value: object) -> Severity:
        if isinstance(value, Severity):
            return value
        text = str(value or "").strip().lower()
        # "warning" and "high"/"medium" show up in upstream NMS feeds
        aliases = {"warning": "minor", "high": "major", "medium": "minor"}
        return cls(aliases.get(text, text))

    def weight(self) -> int:
        return SEVERITY_WEIGHTS[self.value]


class EventLabel(str, Enum):
    root = "root"
    child = "child"
    duplicate = "duplicate"
    suppressed = "suppressed"


class ClusterStatus(str, Enum):
    active = "active"
    pending = "pending"
    resolved = "resolved"


class Strategy(str, Enum):
    temporal = "temporal"
    spatial = "spatial"
    topological = "topological"
    causal = "causal"
    semantic = "semantic"


class PatternKind(str, Enum):
    sequence = "sequence"
    metric_trajectory = "metric_trajectory"


class PatternStatus(str, Enum):
    active = "active"
    learning = "learning"
    draft = "draft"
    discarded = "discarded"


class Verdict(str, Enum):
    confirmed = "confirmed"
    falsified = "falsified"
