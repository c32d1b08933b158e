"""
Entry point for the Event Correlation Engine API server.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI

from api.routes import router
from config import settings, validate_settings
from engine.registry import get_engine
from services.ingest_service import get_ingest_service
from store import patterns as pattern_store

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    stream=sys.stdout,
)
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # ConfigError here aborts startup
    validate_settings(settings)
    engine = get_engine()
    engine.restore_pattern_statuses(await pattern_store.load(settings.default_tenant_id))

    service = get_ingest_service()
    service.start()
    try:
        yield
    finally:
        await service.stop()


app = FastAPI(
    title="Event Correlation Engine",
    description="Multi-strategy event correlation, root-cause hypothesis scoring and pattern-based event prediction.",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router, prefix="/api/v1")


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=4322,
        log_level="info",
        access_log=True,
    )
