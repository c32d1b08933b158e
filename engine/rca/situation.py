"""
Situation card rendering.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, TYPE_CHECKING

from engine.events.model import Event
from engine.rca.intents import Intent

if TYPE_CHECKING:
    from engine.rca.hypothesis import HypothesisScore

log = logging.getLogger(__name__)

MISSING = "n/a"
FALLBACK_TEMPLATE = "{event_code} on {device}. Top hypothesis: {top_hypothesis} (score={prior})."


class _Placeholders(dict):
    def __missing__(self, key: str) -> str:
        return MISSING


def situation_values(event: Event, top: Optional["HypothesisScore"], prior: float) -> Dict[str, Any]:
    values: Dict[str, Any] = dict(event.metrics)
    values.update(
        device=event.device,
        event_code=event.event_code,
        severity=event.severity.value,
        site=event.location.site or MISSING,
        rack=event.location.rack or MISSING,
        top_hypothesis=top.description if top else MISSING,
        prior=prior,
    )
    return values


def render_situation(intent: Intent, event: Event, top: Optional["HypothesisScore"], prior: float) -> str:
    template = intent.situation_template or FALLBACK_TEMPLATE
    try:
        return template.format_map(_Placeholders(situation_values(event, top, prior)))
    except (ValueError, IndexError, AttributeError) as exc:
        log.warning("Situation template for %s could not be rendered: %s", intent.id, exc)
        return template
