"""
Historical case retrieval: TF-IDF similarity between the current situation summary and a corpus of resolved incidents, returning the closest cases with their remedies.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import numpy as np
from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.metrics.pairwise import cosine_similarity

from config import settings

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoricalCase:
    case_id: str
    intent: str
    root_cause_text: str
    remedy_text: str
    situation_summary: str

    def document(self) -> str:
        return f"{self.situation_summary} {self.root_cause_text}"


@dataclass(frozen=True)
class CaseMatch:
    case: HistoricalCase
    similarity: float


@dataclass(frozen=True)
class RetrievalResult:
    cases: List[CaseMatch] = field(default_factory=list)
    average_similarity: float = 0.0

    @property
    def top_case(self) -> Optional[HistoricalCase]:
        return self.cases[0].case if self.cases else None


class CaseRetriever:
    def __init__(self, corpus: Iterable[HistoricalCase] = ()) -> None:
        self._cases: List[HistoricalCase] = list(corpus)
        self._vectorizer: Optional[TfidfVectorizer] = None
        self._matrix = None
        if self._cases:
            self._vectorizer = TfidfVectorizer(lowercase=True, ngram_range=(1, 2), sublinear_tf=True)
            try:
                self._matrix = self._vectorizer.fit_transform([c.document() for c in self._cases])
            except ValueError:
                # corpus with no usable tokens
                log.warning("Historical corpus has no indexable terms; retrieval disabled")
                self._vectorizer = None

    def __len__(self) -> int:
        return len(self._cases)

    def retrieve(self, summary: str, top_k: int | None = None, intent: str | None = None) -> RetrievalResult:
        k = settings.history_top_k if top_k is None else top_k
        if self._vectorizer is None or not (summary or "").strip() or k <= 0:
            return RetrievalResult()

        query = self._vectorizer.transform([summary])
        scores = cosine_similarity(query, self._matrix).ravel()
        # stable sort keeps corpus order on equal similarity
        order = np.argsort(-scores, kind="stable")

        matches: List[CaseMatch] = []
        for idx in order:
            case = self._cases[int(idx)]
            if intent and case.intent != intent:
                continue
            similarity = round(float(max(0.0, min(1.0, scores[idx]))), 4)
            if similarity < settings.history_min_similarity:
                continue
            matches.append(CaseMatch(case=case, similarity=similarity))
            if len(matches) >= k:
                break

        average = round(sum(m.similarity for m in matches) / len(matches), 4) if matches else 0.0
        return RetrievalResult(cases=matches, average_similarity=average)


DEFAULT_CASES: List[HistoricalCase] = [
    HistoricalCase(
        case_id="NET-2026-001",
        intent="performance",
        root_cause_text=(
            "Unthrottled backup traffic saturated the link due to missing QoS policy, "
            "causing tail drops and increased CPU."
        ),
        remedy_text=(
            "Applied QoS shaping to limit backup traffic to 70% of interface capacity; "
            "scheduled backups during off-peak hours."
        ),
        situation_summary="Interface Gi0/1/0 shows 96% utilization and 500 output queue drops during nightly backup window.",
    ),
    HistoricalCase(
        case_id="NET-2026-604",
        intent="performance",
        root_cause_text="Real-time traffic competing with bulk traffic in class-default, causing congestion and drops in default queue.",
        remedy_text="Introduced LLQ for real-time traffic and reduced burst size on bulk-transfer ACLs.",
        situation_summary="Link utilization peaks at 93% with QoS class-default drops during video conferencing.",
    ),
    HistoricalCase(
        case_id="NET-2026-319",
        intent="performance",
        root_cause_text="Unshaped application traffic saturating link, supported by high utilization and absence of DSCP marking.",
        remedy_text="Deployed application-aware QoS and DSCP classification; upgraded to 25G link.",
        situation_summary="Sustained 92% utilization; latency spikes to 180ms. NetFlow shows unclassified bulk traffic.",
    ),
    HistoricalCase(
        case_id="NET-2026-418",
        intent="performance",
        root_cause_text="Link oversubscription without traffic shaping, supported by utilization_percent > 90 and log 'tail drop'.",
        remedy_text="Applied hierarchical QoS with priority queuing for voice/video.",
        situation_summary="Utilization at 96%; output discards > 800/min. Logs: 'tail drop on Gi0/1/1'.",
    ),
    HistoricalCase(
        case_id="NET-2026-563",
        intent="performance",
        root_cause_text="Interface congestion due to bursty traffic and lack of proper queue shaping.",
        remedy_text="Enabled traffic shaping and configured priority queue for real-time applications.",
        situation_summary="Sustained utilization above 92% with queue depth spikes and 750+ output drops during peak hours.",
    ),
]


def default_case_retriever() -> CaseRetriever:
    return CaseRetriever(DEFAULT_CASES)
