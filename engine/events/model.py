"""
Canonical event record and normalisation of raw telemetry payloads into it, rejecting malformed input with a ValidationError before anything reaches the event window.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

from engine.enums import Severity
from engine.errors import ValidationError


@dataclass(frozen=True)
class Location:
    site: str = ""
    rack: str = ""


@dataclass(frozen=True)
class Event:
    id: str
    timestamp: float
    device: str
    event_code: str
    severity: Severity
    message: str = ""
    metrics: Mapping[str, float] = field(default_factory=dict, compare=False, hash=False)
    location: Location = field(default_factory=Location)
    logs: Tuple[str, ...] = field(default=(), compare=False, hash=False)

    def metric(self, name: str) -> Optional[float]:
        return self.metrics.get(name)

    def text(self) -> str:
        return f"{self.event_code.replace('_', ' ')} {self.message}".strip()


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_timestamp(value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError("timestamp must be RFC3339 or epoch seconds", field="timestamp")
    if isinstance(value, (int, float)):
        number = float(value)
        if not math.isfinite(number):
            raise ValidationError("timestamp must be finite", field="timestamp")
        return number
    if isinstance(value, datetime):
        moment = value
    else:
        text = str(value).strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"timestamp is not RFC3339: {value!r}", field="timestamp") from None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.timestamp()


def _metrics(raw: Any) -> Mapping[str, float]:
    if raw is None:
        return MappingProxyType({})
    if not isinstance(raw, Mapping):
        raise ValidationError("metrics must be a map of name to number", field="metrics")
    parsed: dict[str, float] = {}
    for name, value in raw.items():
        if isinstance(value, bool):
            raise ValidationError(f"metric {name} is not numeric", field="metrics")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"metric {name} is not numeric: {value!r}", field="metrics") from None
        if not math.isfinite(number):
            raise ValidationError(f"metric {name} must be finite", field="metrics")
        parsed[str(name)] = number
    return MappingProxyType(parsed)


def derive_event_id(timestamp: float, device: str, event_code: str, message: str) -> str:
    digest = hashlib.sha256(f"{timestamp:.6f}|{device}|{event_code}|{message}".encode()).hexdigest()
    return f"EVT-{digest[:16]}"


def normalize(raw: Mapping[str, Any]) -> Event:
    if not isinstance(raw, Mapping):
        raise ValidationError("event payload must be an object")

    if _blank(raw.get("timestamp")):
        raise ValidationError("missing required field: timestamp", field="timestamp")
    if _blank(raw.get("device")):
        raise ValidationError("missing required field: device", field="device")

    timestamp = parse_timestamp(raw["timestamp"])
    device = str(raw["device"]).strip()

    code = raw.get("eventCode", raw.get("event_code"))
    if _blank(code):
        raise ValidationError("missing required field: eventCode", field="eventCode")
    event_code = str(code).strip().upper()

    if _blank(raw.get("severity")):
        raise ValidationError("missing required field: severity", field="severity")
    try:
        severity = Severity.parse(raw["severity"])
    except ValueError:
        raise ValidationError(f"unknown severity: {raw.get('severity')!r}", field="severity") from None

    message = str(raw.get("message") or "").strip()
    logs_raw = raw.get("logs") or ()
    if isinstance(logs_raw, str) or not isinstance(logs_raw, (list, tuple)):
        raise ValidationError("logs must be a list of strings", field="logs")

    event_id = raw.get("id")
    if _blank(event_id):
        event_id = derive_event_id(timestamp, device, event_code, message)

    return Event(
        id=str(event_id).strip(),
        timestamp=timestamp,
        device=device,
        event_code=event_code,
        severity=severity,
        message=message,
        metrics=_metrics(raw.get("metrics")),
        location=Location(
            site=str(raw.get("site") or "").strip(),
            rack=str(raw.get("rack") or "").strip(),
        ),
        logs=tuple(str(line) for line in logs_raw),
    )
