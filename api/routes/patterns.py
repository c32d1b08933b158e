"""
Pattern library routes: listing and the approve/discard lifecycle.

Copyright (c) 2026 Stefan Kumarasinghe
Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import List, Optional

from fastapi import APIRouter

from api.responses import PatternView
from api.routes.exception import handle_exceptions
from config import settings
from engine.enums import PatternStatus
from engine.registry import get_engine
from store import patterns as pattern_store

router = APIRouter(tags=["Patterns"])


@router.get("/patterns", response_model=List[PatternView], summary="List behavioural patterns")
@handle_exceptions
async def list_patterns(status: Optional[PatternStatus] = None) -> List[PatternView]:
    return [PatternView.from_pattern(p) for p in get_engine().get_patterns(status)]


@router.post("/patterns/{pattern_id}/approve", response_model=PatternView, summary="Activate a learning or draft pattern")
@handle_exceptions
async def approve_pattern(pattern_id: str) -> PatternView:
    pattern = get_engine().approve_pattern(pattern_id)
    await pattern_store.save_status(settings.default_tenant_id, pattern.id, pattern.status.value)
    return PatternView.from_pattern(pattern)


@router.post("/patterns/{pattern_id}/discard", response_model=PatternView, summary="Discard a pattern")
@handle_exceptions
async def discard_pattern(pattern_id: str) -> PatternView:
    pattern = get_engine().discard_pattern(pattern_id)
    await pattern_store.save_status(settings.default_tenant_id, pattern.id, pattern.status.value)
    return PatternView.from_pattern(pattern)
