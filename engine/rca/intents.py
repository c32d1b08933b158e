"""
Intent and hypothesis library: signal conditions over metrics, weighted log keywords and the situation template used to summarise a matched root event.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import operator
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from engine.errors import ValidationError

DEFAULT_KEYWORD_WEIGHT = 0.2

OPS: Dict[str, Callable[[float, float], bool]] = {
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
}


@dataclass(frozen=True)
class SignalCondition:
    metric: str
    op: str
    threshold: float
    weight: float

    def __post_init__(self) -> None:
        if self.op not in OPS:
            raise ValidationError(f"unsupported signal operator: {self.op!r}", field="op")

    def evaluate(self, metrics: Mapping[str, float]) -> bool:
        value = metrics.get(self.metric)
        if value is None:
            return False
        return OPS[self.op](float(value), self.threshold)

    def describe(self) -> str:
        return f"{self.metric} {self.op} {self.threshold:g} ({self.weight:g})"


@dataclass(frozen=True)
class LogKeyword:
    keyword: str
    weight: float = DEFAULT_KEYWORD_WEIGHT

    def found_in(self, line: str) -> bool:
        return self.keyword.lower() in line.lower()


@dataclass(frozen=True)
class Hypothesis:
    id: str
    description: str
    signals: Tuple[SignalCondition, ...] = ()
    log_patterns: Tuple[LogKeyword, ...] = ()


@dataclass(frozen=True)
class Intent:
    id: str
    name: str
    sub_intent: str = ""
    domain: str = ""
    function: str = ""
    description: str = ""
    keywords: Tuple[LogKeyword, ...] = ()
    signals: Tuple[SignalCondition, ...] = ()
    hypotheses: Tuple[Hypothesis, ...] = ()
    situation_template: str = ""

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Intent:
        """Build an intent from the document shape the knowledge base stores.

        Accepts both snake_case and camelCase keys (``sub_intent``/``subIntent``,
        ``log_patterns``/``logPatterns``, ``situation_desc``/``situationDesc``)
        and ``value`` or ``threshold`` on signal conditions. Plain-string
        keywords get the default keyword weight.
        """
        if not raw.get("id"):
            raise ValidationError("intent requires an id", field="id")
        hypotheses = tuple(
            Hypothesis(
                id=str(h["id"]),
                description=str(h.get("description", "")),
                signals=_signals(h.get("signals")),
                log_patterns=_keywords(h.get("log_patterns", h.get("logPatterns"))),
            )
            for h in raw.get("hypotheses") or ()
        )
        return cls(
            id=str(raw["id"]),
            name=str(raw.get("name") or raw["id"]),
            sub_intent=str(raw.get("sub_intent", raw.get("subIntent", raw.get("subintent", ""))) or ""),
            domain=str(raw.get("domain", "")),
            function=str(raw.get("function", "")),
            description=str(raw.get("description", "")),
            keywords=_keywords(raw.get("keywords")),
            signals=_signals(raw.get("signals")),
            hypotheses=hypotheses,
            situation_template=str(
                raw.get("situation_template", raw.get("situation_desc", raw.get("situationDesc", ""))) or ""
            ),
        )


def _signals(raw: Optional[Iterable[Mapping[str, Any]]]) -> Tuple[SignalCondition, ...]:
    out: List[SignalCondition] = []
    for item in raw or ():
        threshold = item.get("threshold", item.get("value"))
        try:
            out.append(
                SignalCondition(
                    metric=str(item["metric"]),
                    op=str(item.get("op", ">")),
                    threshold=float(threshold),
                    weight=float(item.get("weight", 0.0)),
                )
            )
        except (KeyError, TypeError, ValueError):
            raise ValidationError(f"malformed signal condition: {dict(item)!r}", field="signals") from None
    return tuple(out)


def _keywords(raw: Optional[Iterable[Any]]) -> Tuple[LogKeyword, ...]:
    out: List[LogKeyword] = []
    for item in raw or ():
        if isinstance(item, str):
            out.append(LogKeyword(item))
        else:
            out.append(LogKeyword(str(item["keyword"]), float(item.get("weight", DEFAULT_KEYWORD_WEIGHT))))
    return tuple(out)


class IntentLibrary:
    def __init__(self, intents: Iterable[Intent] = ()) -> None:
        self._intents: Dict[str, Intent] = {}
        for intent in intents:
            self.add(intent)

    def __len__(self) -> int:
        return len(self._intents)

    def __iter__(self) -> Iterator[Intent]:
        return iter(self._intents.values())

    def add(self, intent: Intent) -> None:
        self._intents[intent.id] = intent

    def get(self, intent_id: str) -> Optional[Intent]:
        return self._intents.get(intent_id)

    def ordered(self) -> List[Intent]:
        return list(self._intents.values())

    @classmethod
    def from_dicts(cls, rows: Sequence[Mapping[str, Any]]) -> IntentLibrary:
        return cls(Intent.from_dict(row) for row in rows)


DEFAULT_INTENTS: List[Dict[str, Any]] = [
    {
        "id": "performance.congestion",
        "name": "Link Congestion",
        "sub_intent": "congestion",
        "domain": "Network",
        "function": "Link Layer",
        "description": "Interface congestion detected with high utilization and queue drops",
        "keywords": ["congestion", "queue drop", "buffer full", "tail drop", "backup", "rsync"],
        "signals": [
            {"metric": "utilization_percent", "op": ">", "value": 90, "weight": 0.5},
            {"metric": "out_discards", "op": ">", "value": 0, "weight": 0.4},
        ],
        "hypotheses": [
            {
                "id": "H_QOS_CONGESTION",
                "description": "QOS_CONGESTION - High utilization and queue discards",
                "signals": [
                    {"metric": "utilization_percent", "op": ">", "value": 90, "weight": 0.5},
                    {"metric": "out_discards", "op": ">", "value": 0, "weight": 0.4},
                ],
                "log_patterns": [
                    {"keyword": "tail drop", "weight": 0.3},
                    {"keyword": "buffer full", "weight": 0.3},
                    {"keyword": "queue full", "weight": 0.3},
                ],
            },
            {
                "id": "H_PEAK_TRAFFIC",
                "description": "Peak-hour usage causing congestion",
                "signals": [{"metric": "utilization_percent", "op": ">", "value": 85, "weight": 0.4}],
                "log_patterns": [{"keyword": "traffic spike", "weight": 0.2}],
            },
            {
                "id": "H_BACKUP_TRAFFIC",
                "description": "Backup using default DSCP0 traffic",
                "signals": [
                    {"metric": "traffic_dscp0_percent", "op": ">", "value": 50, "weight": 0.4},
                    {"metric": "utilization_percent", "op": ">", "value": 85, "weight": 0.4},
                ],
                "log_patterns": [
                    {"keyword": "backup", "weight": 0.3},
                    {"keyword": "replication", "weight": 0.3},
                    {"keyword": "scheduled backup", "weight": 0.2},
                ],
            },
        ],
        "situation_template": (
            "Interface on {device} shows high utilization ({utilization_percent}%), "
            "with {out_discards} queue drops and {traffic_dscp0_percent}% DSCP0 share. "
            "Top hypothesis: {top_hypothesis} (score={prior})."
        ),
    },
    {
        "id": "system.cpu_high",
        "name": "High CPU Utilization",
        "sub_intent": "cpu_high",
        "domain": "Network",
        "function": "Control Plane",
        "description": "Device CPU above its operating threshold",
        "keywords": ["high cpu", "cpu hog", "control plane policing"],
        "signals": [{"metric": "cpu_percent", "op": ">", "value": 80, "weight": 0.8}],
        "hypotheses": [
            {
                "id": "H_CONTROL_PLANE_LOAD",
                "description": "Punted traffic overloading the control plane",
                "signals": [{"metric": "cpu_percent", "op": ">", "value": 80, "weight": 0.6}],
                "log_patterns": [{"keyword": "punt", "weight": 0.3}, {"keyword": "copp", "weight": 0.3}],
            },
            {
                "id": "H_MEMORY_PRESSURE",
                "description": "Memory pressure forcing excessive process scheduling",
                "signals": [{"metric": "mem_percent", "op": ">", "value": 90, "weight": 0.5}],
                "log_patterns": [{"keyword": "low memory", "weight": 0.3}],
            },
        ],
        "situation_template": "CPU on {device} is at {cpu_percent}% utilization. Top hypothesis: {top_hypothesis} (score={prior}).",
    },
    {
        "id": "link.high_errors",
        "name": "Interface Errors",
        "sub_intent": "high_errors",
        "domain": "Network",
        "function": "Link Layer",
        "description": "Interface error and discard counters above baseline",
        "keywords": ["crc", "input error", "phy error"],
        "signals": [
            {"metric": "out_discards", "op": ">", "value": 100, "weight": 0.3},
            {"metric": "in_errors", "op": ">", "value": 50, "weight": 0.3},
        ],
        "hypotheses": [
            {
                "id": "H_CRC_PHYSICAL_CORRUPTION",
                "description": "Physical layer corruption producing CRC errors",
                "signals": [{"metric": "crc_errors", "op": ">", "value": 10, "weight": 0.6}],
                "log_patterns": [
                    {"keyword": "crc", "weight": 0.3},
                    {"keyword": "transceiver fault", "weight": 0.3},
                    {"keyword": "optical power low", "weight": 0.2},
                ],
            },
        ],
        "situation_template": "Interface on {device} reports {in_errors} input errors and {crc_errors} CRC errors. Top hypothesis: {top_hypothesis} (score={prior}).",
    },
    {
        "id": "link.unidirectional",
        "name": "Unidirectional Link",
        "sub_intent": "unidirectional",
        "domain": "Network",
        "function": "Link Layer",
        "description": "Unidirectional link issue detected between two devices",
        "keywords": ["unidirectional", "rx only", "tx only", "fiber issue"],
        "signals": [
            {"metric": "rx_errors", "op": ">", "value": 100, "weight": 0.5},
            {"metric": "tx_errors", "op": "==", "value": 0, "weight": 0.3},
        ],
        "hypotheses": [
            {
                "id": "H_FIBER_ONE_SIDE_BROKEN",
                "description": "One strand of the fiber pair is broken or mispatched",
                "signals": [
                    {"metric": "rx_errors", "op": ">", "value": 100, "weight": 0.6},
                    {"metric": "tx_errors", "op": "==", "value": 0, "weight": 0.3},
                ],
                "log_patterns": [
                    {"keyword": "unidirectional link", "weight": 0.3},
                    {"keyword": "no light received", "weight": 0.3},
                ],
            },
        ],
        "situation_template": (
            "Link between {device} and {peer} appears unidirectional. {device} is receiving frames with errors "
            "(rx_errors={rx_errors}) while not transmitting successfully (tx_errors={tx_errors}). "
            "Top hypothesis: {top_hypothesis} (score={prior})."
        ),
    },
    {
        "id": "link.flapping",
        "name": "Link Flapping",
        "sub_intent": "flapping",
        "domain": "Network",
        "function": "Link Layer",
        "description": "Link state is oscillating between up and down rapidly",
        "keywords": ["flapping", "link up", "link down", "unstable"],
        "signals": [
            {"metric": "link_state_changes", "op": ">", "value": 5, "weight": 0.7},
            {"metric": "uptime", "op": "<", "value": 300, "weight": 0.3},
        ],
        "hypotheses": [
            {
                "id": "H_CABLE_LOOSE",
                "description": "Physical cable connection is loose or damaged",
                "signals": [{"metric": "link_state_changes", "op": ">", "value": 5, "weight": 0.6}],
                "log_patterns": [{"keyword": "link down", "weight": 0.4}, {"keyword": "carrier lost", "weight": 0.3}],
            },
            {
                "id": "H_SFP_FAILING",
                "description": "SFP transceiver is failing or overheating",
                "signals": [{"metric": "temperature", "op": ">", "value": 70, "weight": 0.5}],
                "log_patterns": [{"keyword": "sfp warning", "weight": 0.4}],
            },
        ],
        "situation_template": "Link on {device}:{interface} is flapping with {link_state_changes} state changes. Top hypothesis: {top_hypothesis}.",
    },
    {
        "id": "routing.bgp_down",
        "name": "BGP Session Down",
        "sub_intent": "bgp_down",
        "domain": "Network",
        "function": "Routing",
        "description": "BGP session with peer has gone down",
        "keywords": ["bgp", "peer down", "routing", "session lost"],
        "signals": [
            {"metric": "bgp_state", "op": "==", "value": 0, "weight": 0.8},
            {"metric": "prefixes_received", "op": "==", "value": 0, "weight": 0.4},
        ],
        "hypotheses": [
            {
                "id": "H_PEER_UNREACHABLE",
                "description": "BGP peer is not reachable due to network issue",
                "signals": [{"metric": "icmp_loss", "op": ">", "value": 50, "weight": 0.6}],
                "log_patterns": [{"keyword": "hold timer expired", "weight": 0.5}],
            },
        ],
        "situation_template": "BGP session on {device} with peer {peer_ip} is down. Last state: {last_state}.",
    },
    {
        "id": "db.connection_pool_exhausted",
        "name": "Connection Pool Exhausted",
        "sub_intent": "connection_pool_exhausted",
        "domain": "Database",
        "function": "Connection Management",
        "description": "Database connection pool has been exhausted",
        "keywords": ["connection pool", "exhausted", "max connections", "timeout"],
        "signals": [
            {"metric": "active_connections", "op": ">=", "value": 100, "weight": 0.7},
            {"metric": "connection_wait_time", "op": ">", "value": 5000, "weight": 0.5},
        ],
        "hypotheses": [
            {
                "id": "H_CONNECTION_LEAK",
                "description": "Application is leaking database connections",
                "signals": [{"metric": "connections_created", "op": ">", "value": 1000, "weight": 0.6}],
                "log_patterns": [{"keyword": "connection timeout", "weight": 0.4}],
            },
        ],
        "situation_template": "Connection pool on {database} is exhausted with {active_connections} active connections.",
    },
    {
        "id": "compute.cpu_spike",
        "name": "CPU Spike",
        "sub_intent": "cpu_spike",
        "domain": "Compute",
        "function": "CPU",
        "description": "CPU utilization has spiked abnormally",
        "keywords": ["cpu", "spike", "high utilization", "performance"],
        "signals": [
            {"metric": "cpu_percent", "op": ">", "value": 90, "weight": 0.6},
            {"metric": "load_average", "op": ">", "value": 4, "weight": 0.4},
        ],
        "hypotheses": [
            {
                "id": "H_RUNAWAY_PROCESS",
                "description": "A runaway process is consuming excessive CPU",
                "signals": [{"metric": "top_process_cpu", "op": ">", "value": 80, "weight": 0.7}],
                "log_patterns": [{"keyword": "oom killer", "weight": 0.3}],
            },
        ],
        "situation_template": "CPU on {host} is at {cpu_percent}% utilization.",
    },
    {
        "id": "link.network_latency",
        "name": "Network Latency Issues",
        "sub_intent": "high_latency",
        "domain": "Network",
        "function": "Performance Monitoring",
        "description": "Detects abnormal network latency patterns",
        "keywords": ["latency", "delay", "slow", "timeout"],
        "signals": [
            {"metric": "latency_ms", "op": ">", "value": 100, "weight": 0.6},
            {"metric": "packet_loss_percent", "op": ">", "value": 1, "weight": 0.4},
        ],
        "hypotheses": [
            {
                "id": "H_BGP_FLAP",
                "description": "Route flapping shifting traffic onto longer paths",
                "signals": [{"metric": "route_changes", "op": ">", "value": 10, "weight": 0.5}],
                "log_patterns": [{"keyword": "bgp", "weight": 0.3}],
            },
            {
                "id": "H_ISP_ISSUE",
                "description": "Upstream provider degradation",
                "signals": [{"metric": "packet_loss_percent", "op": ">", "value": 1, "weight": 0.4}],
                "log_patterns": [{"keyword": "upstream", "weight": 0.2}],
            },
        ],
        "situation_template": "Latency on {device} reached {latency_ms} ms with {packet_loss_percent}% loss. Top hypothesis: {top_hypothesis} (score={prior}).",
    },
]


def default_intent_library() -> IntentLibrary:
    return IntentLibrary.from_dicts(DEFAULT_INTENTS)
