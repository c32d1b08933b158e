"""
Prediction outcome ledger persistence, read by the offline pattern recalibration job.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import json
import logging
from typing import Iterable, List

from config import OUTCOMES_TTL, settings
from engine.patterns.model import PredictionOutcome
from store import keys
from store.client import redis_delete, redis_lrange, redis_rpush

log = logging.getLogger(__name__)


async def append(tenant_id: str, outcomes: Iterable[PredictionOutcome]) -> int:
    rows = [json.dumps(o.to_dict(), sort_keys=True) for o in outcomes]
    if not rows:
        return 0
    await redis_rpush(keys.outcomes(tenant_id), rows, ttl=OUTCOMES_TTL, max_len=settings.outcomes_max_items)
    log.debug("Persisted %d prediction outcomes for %s", len(rows), tenant_id)
    return len(rows)


async def load(tenant_id: str) -> List[dict]:
    out: List[dict] = []
    for raw in await redis_lrange(keys.outcomes(tenant_id)):
        try:
            out.append(json.loads(raw))
        except (TypeError, ValueError) as exc:
            log.debug("Skipping malformed outcome row for %s: %s", tenant_id, exc)
    return out


async def clear(tenant_id: str) -> None:
    await redis_delete(keys.outcomes(tenant_id))
