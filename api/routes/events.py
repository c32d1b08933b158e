"""
Event ingestion routes: synchronous single-event ingest and batched enqueue for the background worker.

Copyright (c) 2026 Stefan Kumarasinghe
Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import asyncio

from fastapi import APIRouter

from api.requests import EventBatch, EventInput
from api.responses import IngestResponse, QueueResponse
from api.routes.exception import handle_exceptions
from engine.registry import get_engine
from services.ingest_service import get_ingest_service

router = APIRouter(tags=["Events"])


@router.post("/events", response_model=IngestResponse, summary="Ingest one event and return its cluster label")
@handle_exceptions
async def ingest_event(req: EventInput) -> IngestResponse:
    result = await asyncio.to_thread(get_engine().ingest, req.to_payload())
    return IngestResponse.from_result(result)


@router.post("/events/queue", response_model=QueueResponse, summary="Queue a batch of events for background ingestion")
@handle_exceptions
async def enqueue_events(req: EventBatch) -> QueueResponse:
    service = get_ingest_service()
    accepted = service.enqueue_many(e.to_payload() for e in req.events)
    return QueueResponse(accepted=accepted, pending=service.pending, dropped_events=service.dropped_events)
