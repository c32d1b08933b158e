"""
Static causal rule table mapping an earlier event code to a later one with a base probability, used by the causal correlation strategy and to name likely downstream effects.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class CausalRule:
    cause: str
    effect: str
    probability: float
    window_seconds: Optional[float] = None


class CausalRuleTable:
    def __init__(self, rules: Iterable[CausalRule] = ()) -> None:
        self._rules: Dict[Tuple[str, str], CausalRule] = {}
        self._forward: Dict[str, List[CausalRule]] = defaultdict(list)
        for rule in rules:
            self.add_rule(rule.cause, rule.effect, rule.probability, rule.window_seconds)

    def add_rule(
        self,
        cause: str,
        effect: str,
        probability: float,
        window_seconds: Optional[float] = None,
    ) -> None:
        probability = max(0.0, min(1.0, float(probability)))
        rule = CausalRule(cause=cause.upper(), effect=effect.upper(), probability=probability, window_seconds=window_seconds)
        key = (rule.cause, rule.effect)
        previous = self._rules.get(key)
        if previous is not None:
            self._forward[rule.cause].remove(previous)
        self._rules[key] = rule
        self._forward[rule.cause].append(rule)

    def rule(self, cause: str, effect: str) -> Optional[CausalRule]:
        return self._rules.get((cause.upper(), effect.upper()))

    def probability(self, cause: str, effect: str, lag_seconds: float) -> float:
        rule = self.rule(cause, effect)
        if rule is None or lag_seconds < 0:
            return 0.0
        if rule.window_seconds is not None and lag_seconds > rule.window_seconds:
            return 0.0
        return rule.probability

    def effects_of(self, cause: str) -> List[CausalRule]:
        return sorted(self._forward.get(cause.upper(), []), key=lambda r: r.probability, reverse=True)

    def __len__(self) -> int:
        return len(self._rules)


# network congestion chain observed in the field: utilization -> drops -> latency -> response time
DEFAULT_CAUSAL_RULES: Tuple[CausalRule, ...] = (
    CausalRule("LINK_UTIL_HIGH", "QUEUE_DROP", 0.90, 300.0),
    CausalRule("CPU_HIGH", "QUEUE_DROP", 0.80, 300.0),
    CausalRule("QUEUE_DROP", "LATENCY_HIGH", 0.85, 300.0),
    CausalRule("LINK_UTIL_HIGH", "LATENCY_HIGH", 0.75, 300.0),
    CausalRule("LATENCY_HIGH", "RESPONSE_TIME_HIGH", 0.80, 300.0),
    CausalRule("UTIL_HIGH", "BUFF_HIGH", 0.75, 300.0),
    CausalRule("BUFF_HIGH", "PACKET_DROP", 0.80, 300.0),
    CausalRule("CRC_ERR", "PACKET_DROP", 0.70, 300.0),
    CausalRule("PACKET_DROP", "LINK_FLAP", 0.60, 600.0),
    CausalRule("BGP_HOLD_TIMER_EXPIRED", "BGP_SESSION_DOWN", 0.92, 120.0),
    CausalRule("BGP_SESSION_DOWN", "ROUTE_WITHDRAWAL", 0.88, 120.0),
)


def default_rule_table() -> CausalRuleTable:
    return CausalRuleTable(DEFAULT_CAUSAL_RULES)
