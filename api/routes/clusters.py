"""
Cluster query routes and the resolve hook used by remediation tooling.

Copyright (c) 2026 Stefan Kumarasinghe
Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import asyncio
from typing import List, Optional

from fastapi import APIRouter, HTTPException

from api.responses import ClusterDetailView, ClusterSummaryView, PredictionView
from api.routes.exception import handle_exceptions
from engine.correlator import ClusterFilter
from engine.enums import ClusterStatus, Severity
from engine.registry import get_engine

router = APIRouter(tags=["Clusters"])


@router.get("/clusters", response_model=List[ClusterSummaryView], summary="List incident clusters")
@handle_exceptions
async def list_clusters(
    status: Optional[ClusterStatus] = None,
    device: Optional[str] = None,
    severity: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[ClusterSummaryView]:
    sev = None
    if severity:
        try:
            sev = Severity.parse(severity)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"unknown severity: {severity}") from None
    if limit is not None and limit < 0:
        raise HTTPException(status_code=400, detail="limit must be >= 0")
    summaries = get_engine().get_clusters(ClusterFilter(status=status, device=device, severity=sev, limit=limit))
    return [ClusterSummaryView.from_summary(s) for s in summaries]


@router.get("/clusters/{cluster_id}", response_model=ClusterDetailView, summary="Cluster detail with hypotheses and similar cases")
@handle_exceptions
async def get_cluster(cluster_id: str) -> ClusterDetailView:
    detail = await asyncio.to_thread(get_engine().get_cluster_detail, cluster_id)
    return ClusterDetailView.from_detail(detail)


@router.post("/clusters/{cluster_id}/resolve", response_model=ClusterSummaryView, summary="Mark a cluster resolved")
@handle_exceptions
async def resolve_cluster(cluster_id: str) -> ClusterSummaryView:
    return ClusterSummaryView.from_summary(get_engine().resolve_cluster(cluster_id))


@router.get("/predictions", response_model=List[PredictionView], summary="Active predicted events")
@handle_exceptions
async def list_predictions() -> List[PredictionView]:
    return [PredictionView.from_prediction(p) for p in get_engine().get_active_predictions()]
