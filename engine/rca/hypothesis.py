"""
Root-cause hypothesis scoring: routes a cluster's root event to the best-matching intent, then scores every hypothesis under that intent from satisfied signal conditions and log keyword hits, ranked deterministically.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence, Tuple

from config import settings
from engine.events.model import Event
from engine.rca.intents import Intent, IntentLibrary, LogKeyword, SignalCondition
from engine.rca.situation import render_situation


@dataclass(frozen=True)
class IntentMatch:
    intent_id: str
    score: float
    signals: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()


@dataclass(frozen=True)
class HypothesisScore:
    hypothesis_id: str
    description: str
    signal_score: float
    log_score: float
    total_score: float
    matched_signals: Tuple[str, ...] = ()
    matched_logs: Tuple[str, ...] = ()


@dataclass(frozen=True)
class HypothesisReport:
    intent_match: Optional[IntentMatch]
    intent_scores: List[IntentMatch] = field(default_factory=list)
    hypotheses: List[HypothesisScore] = field(default_factory=list)
    top: Optional[HypothesisScore] = None
    prior: float = 0.0
    situation_text: str = ""


def _round(value: float) -> float:
    return round(value, settings.hypothesis_round_precision)


def _satisfied(conditions: Sequence[SignalCondition], metrics: Mapping[str, float]) -> List[SignalCondition]:
    return [c for c in conditions if c.evaluate(metrics)]


def _keyword_hits(keywords: Sequence[LogKeyword], logs: Sequence[str]) -> Tuple[List[LogKeyword], List[str]]:
    hits: List[LogKeyword] = []
    lines: List[str] = []
    for kw in keywords:
        matching = [line for line in logs if kw.found_in(line)]
        if not matching:
            continue
        hits.append(kw)
        for line in matching:
            if line not in lines:
                lines.append(line)
    return hits, lines


def score_intents(metrics: Mapping[str, float], logs: Sequence[str], library: IntentLibrary) -> List[IntentMatch]:
    matches: List[IntentMatch] = []
    for intent in library.ordered():
        satisfied = _satisfied(intent.signals, metrics)
        hits, _ = _keyword_hits(intent.keywords, logs)
        score = sum(c.weight for c in satisfied) + sum(k.weight for k in hits)
        matches.append(
            IntentMatch(
                intent_id=intent.id,
                score=_round(score),
                signals=tuple(c.describe() for c in satisfied),
                keywords=tuple(k.keyword for k in hits),
            )
        )
    # sorted() is stable, so equal scores keep declaration order
    return sorted(matches, key=lambda m: -m.score)


def score_hypotheses(intent: Intent, metrics: Mapping[str, float], logs: Sequence[str]) -> List[HypothesisScore]:
    scored: List[HypothesisScore] = []
    for hypothesis in intent.hypotheses:
        satisfied = _satisfied(hypothesis.signals, metrics)
        hits, lines = _keyword_hits(hypothesis.log_patterns, logs)
        signal_score = _round(sum(c.weight for c in satisfied))
        log_score = _round(sum(k.weight for k in hits))
        scored.append(
            HypothesisScore(
                hypothesis_id=hypothesis.id,
                description=hypothesis.description,
                signal_score=signal_score,
                log_score=log_score,
                total_score=_round(signal_score + log_score),
                matched_signals=tuple(c.describe() for c in satisfied),
                matched_logs=tuple(lines),
            )
        )
    return sorted(scored, key=lambda h: -h.total_score)


def evidence_lines(event: Event, limit: int | None = None) -> List[str]:
    lines = list(event.logs)
    if event.message:
        lines.append(event.message)
    cap = settings.log_lines_limit if limit is None else limit
    return lines[-cap:] if cap > 0 else lines


def analyze_root(event: Event, library: IntentLibrary) -> HypothesisReport:
    intents = library.ordered()
    if not intents:
        return HypothesisReport(intent_match=None)

    logs = evidence_lines(event)
    intent_scores = score_intents(event.metrics, logs, library)
    best = intent_scores[0]
    if best.score <= 0.0:
        # nothing matched: fall back to the first declared intent
        best = next(m for m in intent_scores if m.intent_id == intents[0].id)

    intent = library.get(best.intent_id)
    hypotheses = score_hypotheses(intent, event.metrics, logs)
    top = hypotheses[0] if hypotheses else None
    prior = top.total_score if top else 0.0
    situation = render_situation(intent, event, top, prior)

    return HypothesisReport(
        intent_match=best,
        intent_scores=intent_scores,
        hypotheses=hypotheses,
        top=top,
        prior=prior,
        situation_text=situation,
    )
