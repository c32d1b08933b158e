"""
Redis key layout.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations


def outcomes(tenant_id: str) -> str:
    return f"corr:{tenant_id}:outcomes"


def pattern_status(tenant_id: str) -> str:
    return f"corr:{tenant_id}:pattern_status"
