"""
Suppression rules deciding which events are labelled Suppressed and kept out of clustering (maintenance windows, off-hours low-severity noise, reboot grace periods).

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional, Sequence

from config import Settings
from engine.enums import Severity
from engine.errors import ConfigError
from engine.events.model import Event

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class MaintenanceWindow:
    name: str
    devices: FrozenSet[str]
    start: float
    end: float

    def matches(self, event: Event) -> bool:
        return event.device in self.devices and self.start <= event.timestamp <= self.end


@dataclass(frozen=True)
class OffHoursRule:
    name: str
    max_severity: Severity = Severity.low
    business_days: FrozenSet[int] = frozenset({0, 1, 2, 3, 4})
    start_hour: int = 9
    end_hour: int = 18

    def matches(self, event: Event) -> bool:
        if event.severity.weight() > self.max_severity.weight():
            return False
        moment = datetime.fromtimestamp(event.timestamp, tz=timezone.utc)
        in_hours = moment.weekday() in self.business_days and self.start_hour <= moment.hour < self.end_hour
        return not in_hours


@dataclass
class RebootGraceRule:
    name: str
    trigger_code: str = "SYS_REBOOT"
    grace_seconds: float = 300.0
    _reboots: Dict[str, float] = field(default_factory=dict, repr=False)

    def observe(self, event: Event) -> None:
        if event.event_code == self.trigger_code:
            self._reboots[event.device] = max(event.timestamp, self._reboots.get(event.device, event.timestamp))

    def matches(self, event: Event) -> bool:
        if event.event_code == self.trigger_code:
            return False
        rebooted_at = self._reboots.get(event.device)
        return rebooted_at is not None and 0.0 <= event.timestamp - rebooted_at <= self.grace_seconds


class SuppressionPolicy:
    def __init__(self, rules: Optional[Sequence[object]] = None) -> None:
        self._rules: List[object] = list(rules or [])

    def add(self, rule: object) -> None:
        self._rules.append(rule)

    @property
    def rules(self) -> List[object]:
        return list(self._rules)

    def match(self, event: Event) -> Optional[str]:
        for rule in self._rules:
            observe = getattr(rule, "observe", None)
            if observe is not None:
                observe(event)
        for rule in self._rules:
            if rule.matches(event):
                return rule.name
        return None


def load_maintenance_windows(path: str) -> List[MaintenanceWindow]:
    """Read a JSON list of ``{"name", "devices", "start", "end"}`` objects (epoch seconds)."""
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError) as exc:
        raise ConfigError(f"cannot read maintenance windows from {path}: {exc}") from exc
    if not isinstance(data, list):
        raise ConfigError(f"maintenance file {path} must contain a JSON list")
    windows = []
    for i, item in enumerate(data):
        try:
            window = MaintenanceWindow(
                name=str(item.get("name") or f"maintenance-{i + 1}"),
                devices=frozenset(str(d) for d in item["devices"]),
                start=float(item["start"]),
                end=float(item["end"]),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise ConfigError(f"invalid maintenance window #{i + 1} in {path}: {exc}") from exc
        if window.end < window.start:
            raise ConfigError(f"maintenance window {window.name} ends before it starts")
        windows.append(window)
    return windows


def build_suppression_policy(cfg: Settings) -> SuppressionPolicy:
    policy = SuppressionPolicy()
    if cfg.maintenance_path:
        for window in load_maintenance_windows(cfg.maintenance_path):
            policy.add(window)
    if cfg.suppress_off_hours:
        policy.add(
            OffHoursRule(
                "off-hours",
                max_severity=Severity.parse(cfg.off_hours_max_severity),
                business_days=frozenset(cfg.business_days),
                start_hour=cfg.business_start_hour,
                end_hour=cfg.business_end_hour,
            )
        )
    if cfg.reboot_grace_seconds > 0:
        policy.add(RebootGraceRule("reboot-grace", trigger_code=cfg.reboot_trigger_code,
                                   grace_seconds=cfg.reboot_grace_seconds))
    log.info("Suppression rules: %s", [rule.name for rule in policy.rules] or "none")
    return policy
