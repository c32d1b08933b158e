"""
Request models for the ingestion and query endpoints.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class EventInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # required fields are checked by the engine so rejections carry {reason, field}
    timestamp: Optional[Union[str, float]] = None
    device: Optional[str] = None
    event_code: Optional[str] = Field(default=None, alias="eventCode")
    severity: Optional[str] = None
    message: str = ""
    metrics: Dict[str, Any] = Field(default_factory=dict)
    id: Optional[str] = None
    site: Optional[str] = None
    rack: Optional[str] = None
    logs: List[str] = Field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class EventBatch(BaseModel):
    events: List[EventInput] = Field(default_factory=list, max_length=10_000)
