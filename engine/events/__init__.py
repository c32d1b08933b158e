"""
Event model, ingest window and suppression rules.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from engine.events.model import Event, Location, normalize
from engine.events.buffer import EventWindow
from engine.events.suppression import MaintenanceWindow, OffHoursRule, RebootGraceRule, SuppressionPolicy

__all__ = [
    "Event", "Location", "normalize", "EventWindow",
    "MaintenanceWindow", "OffHoursRule", "RebootGraceRule", "SuppressionPolicy",
]
