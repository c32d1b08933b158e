"""
Pattern lifecycle persistence: approved and discarded statuses survive restarts and are re-applied to the library at startup.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import json
import logging
from typing import Dict

from store import keys
from store.client import redis_get, redis_set

log = logging.getLogger(__name__)


async def load(tenant_id: str) -> Dict[str, str]:
    raw = await redis_get(keys.pattern_status(tenant_id))
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        log.debug("Pattern status load failed %s: %s", tenant_id, exc)
        return {}
    return {str(k): str(v) for k, v in data.items()} if isinstance(data, dict) else {}


async def save_status(tenant_id: str, pattern_id: str, status: str) -> None:
    current = await load(tenant_id)
    current[pattern_id] = status
    await redis_set(keys.pattern_status(tenant_id), json.dumps(current, sort_keys=True))
