"""
Error taxonomy for the correlation engine.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Optional


class EngineError(Exception):
    pass


class ValidationError(EngineError):
    """Malformed input rejected before it enters the event window."""

    def __init__(self, reason: str, field: Optional[str] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.field = field


class ConfigError(EngineError):
    pass


class CapabilityError(EngineError):
    """An injected collaborator (embedder, topology graph) is unavailable."""

    def __init__(self, capability: str, detail: str = "") -> None:
        super().__init__(f"{capability} unavailable" + (f": {detail}" if detail else ""))
        self.capability = capability


class NotFoundError(EngineError):
    pass


class LifecycleError(EngineError):
    pass
