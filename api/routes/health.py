"""
Health and engine statistics routes.

Copyright (c) 2026 Stefan Kumarasinghe
Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import Any, Dict

from fastapi import APIRouter

from api.routes.exception import handle_exceptions
from engine.registry import get_engine
from services.ingest_service import get_ingest_service
from store.client import get_redis, is_using_fallback

router = APIRouter(tags=["Health"])


@router.get("/health")
@handle_exceptions
async def health() -> Dict[str, Any]:
    await get_redis()
    return {
        "status": "ok",
        "store": "fallback" if is_using_fallback() else "redis",
    }


@router.get("/stats")
@handle_exceptions
async def stats() -> Dict[str, Any]:
    out = get_engine().stats()
    service = get_ingest_service()
    out["queue_pending"] = service.pending
    out["queue_running"] = service.running
    return out
