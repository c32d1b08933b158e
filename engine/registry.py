"""
Process-wide correlation engine accessor.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from config import settings, validate_settings
from engine.correlator import CorrelationEngine
from engine.events.suppression import build_suppression_policy
from engine.topology.graph import DependencyGraph, load_topology

log = logging.getLogger(__name__)

_engine: Optional[CorrelationEngine] = None
_engine_lock = threading.Lock()


def get_engine() -> CorrelationEngine:
    global _engine
    if _engine is None:
        with _engine_lock:
            if _engine is None:
                validate_settings(settings)
                graph = load_topology(settings.topology_path) if settings.topology_path else DependencyGraph()
                _engine = CorrelationEngine(settings, graph=graph, suppression=build_suppression_policy(settings))
    return _engine


def set_engine(engine: Optional[CorrelationEngine]) -> None:
    global _engine
    with _engine_lock:
        _engine = engine
