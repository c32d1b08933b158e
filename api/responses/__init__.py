"""
Response models for API endpoints, built from the engine's snapshot views.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from engine.correlator import ClusterDetail, ClusterSummary, CorrelatedEvent, IngestResult
from engine.enums import ClusterStatus, EventLabel, PatternKind, PatternStatus
from engine.events.model import Event
from engine.history.retriever import RetrievalResult
from engine.patterns.model import Pattern, PredictedEvent
from engine.rca.hypothesis import HypothesisReport, HypothesisScore, IntentMatch


class IngestResponse(BaseModel):
    event_id: str
    label: EventLabel
    cluster_id: Optional[str] = None
    suppressed_by: Optional[str] = None
    already_known: bool = False
    predictions: List[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: IngestResult) -> IngestResponse:
        return cls(
            event_id=result.event_id,
            label=result.label,
            cluster_id=result.cluster_id,
            suppressed_by=result.suppressed_by,
            already_known=result.already_known,
            predictions=[p.id for p in result.predictions],
        )


class QueueResponse(BaseModel):
    accepted: int
    pending: int
    dropped_events: int


class EventView(BaseModel):
    id: str
    timestamp: float
    device: str
    event_code: str
    severity: str
    message: str
    metrics: Dict[str, float] = Field(default_factory=dict)
    site: str = ""
    rack: str = ""

    @classmethod
    def from_event(cls, event: Event) -> EventView:
        return cls(
            id=event.id,
            timestamp=event.timestamp,
            device=event.device,
            event_code=event.event_code,
            severity=event.severity.value,
            message=event.message,
            metrics=dict(event.metrics),
            site=event.location.site,
            rack=event.location.rack,
        )


class ClusterSummaryView(BaseModel):
    id: str
    status: ClusterStatus
    root_event: EventView
    child_event_ids: List[str]
    child_count: int
    duplicate_count: int
    suppressed_count: int
    created_at: float
    last_event_at: float
    resolved_at: Optional[float] = None
    devices: List[str]

    @classmethod
    def from_summary(cls, s: ClusterSummary) -> ClusterSummaryView:
        return cls(
            id=s.id,
            status=s.status,
            root_event=EventView.from_event(s.root_event),
            child_event_ids=list(s.child_event_ids),
            child_count=s.child_count,
            duplicate_count=s.duplicate_count,
            suppressed_count=s.suppressed_count,
            created_at=s.created_at,
            last_event_at=s.last_event_at,
            resolved_at=s.resolved_at,
            devices=list(s.devices),
        )


class CorrelatedEventView(BaseModel):
    event: EventView
    label: EventLabel
    aggregate: Optional[float] = None
    scores: Dict[str, float] = Field(default_factory=dict)
    correlated_with: Optional[str] = None

    @classmethod
    def from_correlated(cls, c: CorrelatedEvent) -> CorrelatedEventView:
        return cls(
            event=EventView.from_event(c.event),
            label=c.label,
            aggregate=c.aggregate,
            scores=dict(c.scores),
            correlated_with=c.correlated_with,
        )


class IntentScoreView(BaseModel):
    id: str
    score: float
    signals: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)

    @classmethod
    def from_match(cls, m: IntentMatch) -> IntentScoreView:
        return cls(id=m.intent_id, score=m.score, signals=list(m.signals), keywords=list(m.keywords))


class HypothesisView(BaseModel):
    hypothesis_id: str
    description: str
    signal_score: float
    log_score: float
    total_score: float
    matched_signals: List[str] = Field(default_factory=list)
    matched_logs: List[str] = Field(default_factory=list)

    @classmethod
    def from_score(cls, h: HypothesisScore) -> HypothesisView:
        return cls(
            hypothesis_id=h.hypothesis_id,
            description=h.description,
            signal_score=h.signal_score,
            log_score=h.log_score,
            total_score=h.total_score,
            matched_signals=list(h.matched_signals),
            matched_logs=list(h.matched_logs),
        )


class HypothesisReportView(BaseModel):
    intent: Optional[IntentScoreView] = None
    intent_scores: List[IntentScoreView] = Field(default_factory=list)
    hypotheses: List[HypothesisView] = Field(default_factory=list)
    top_hypothesis: Optional[HypothesisView] = None
    prior: float = 0.0
    situation_text: str = ""

    @classmethod
    def from_report(cls, r: HypothesisReport) -> HypothesisReportView:
        return cls(
            intent=IntentScoreView.from_match(r.intent_match) if r.intent_match else None,
            intent_scores=[IntentScoreView.from_match(m) for m in r.intent_scores],
            hypotheses=[HypothesisView.from_score(h) for h in r.hypotheses],
            top_hypothesis=HypothesisView.from_score(r.top) if r.top else None,
            prior=r.prior,
            situation_text=r.situation_text,
        )


class CaseView(BaseModel):
    case_id: str
    intent: str
    rca: str
    remedy: str
    sit_summary: str
    sim_score: float


class HistoricalCasesView(BaseModel):
    retrieved_cases: List[CaseView] = Field(default_factory=list)
    top_case: Optional[str] = None
    average_similarity: float = 0.0

    @classmethod
    def from_result(cls, r: RetrievalResult) -> HistoricalCasesView:
        return cls(
            retrieved_cases=[
                CaseView(
                    case_id=m.case.case_id,
                    intent=m.case.intent,
                    rca=m.case.root_cause_text,
                    remedy=m.case.remedy_text,
                    sit_summary=m.case.situation_summary,
                    sim_score=m.similarity,
                )
                for m in r.cases
            ],
            top_case=r.top_case.case_id if r.top_case else None,
            average_similarity=r.average_similarity,
        )


class ClusterDetailView(BaseModel):
    cluster: ClusterSummaryView
    hypotheses: HypothesisReportView
    correlated_events: List[CorrelatedEventView]
    historical_cases: HistoricalCasesView

    @classmethod
    def from_detail(cls, d: ClusterDetail) -> ClusterDetailView:
        return cls(
            cluster=ClusterSummaryView.from_summary(d.summary),
            hypotheses=HypothesisReportView.from_report(d.hypotheses),
            correlated_events=[CorrelatedEventView.from_correlated(c) for c in d.correlated_events],
            historical_cases=HistoricalCasesView.from_result(d.historical_cases),
        )


class PredictionView(BaseModel):
    id: str
    pattern_id: str
    device: str
    matched_steps: List[str]
    next_step_prediction: str
    probability: float
    related_event_ids: List[str]
    emitted_at: float
    expires_at: float
    reason: str = ""

    @classmethod
    def from_prediction(cls, p: PredictedEvent) -> PredictionView:
        return cls(
            id=p.id,
            pattern_id=p.pattern_id,
            device=p.device,
            matched_steps=list(p.matched_steps),
            next_step_prediction=p.next_step_prediction,
            probability=p.probability,
            related_event_ids=list(p.related_event_ids),
            emitted_at=p.emitted_at,
            expires_at=p.expires_at,
            reason=p.reason,
        )


class PatternView(BaseModel):
    id: str
    name: str
    kind: PatternKind
    status: PatternStatus
    confidence: float
    description: str = ""
    steps: List[str] = Field(default_factory=list)
    if_condition: str
    then_event: str
    probability: float

    @classmethod
    def from_pattern(cls, p: Pattern) -> PatternView:
        steps = [s.event_code for s in p.steps] if p.steps else [s.describe() for s in p.trajectory]
        return cls(
            id=p.id,
            name=p.name,
            kind=p.kind,
            status=p.status,
            confidence=p.confidence,
            description=p.description,
            steps=steps,
            if_condition=p.prediction.if_condition,
            then_event=p.prediction.then_event,
            probability=p.prediction.probability,
        )
