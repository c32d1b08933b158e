"""
Root-cause hypothesis scoring.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from engine.rca.intents import (
    DEFAULT_INTENTS,
    Hypothesis,
    Intent,
    IntentLibrary,
    LogKeyword,
    SignalCondition,
    default_intent_library,
)
from engine.rca.hypothesis import (
    HypothesisReport,
    HypothesisScore,
    IntentMatch,
    analyze_root,
    evidence_lines,
    score_hypotheses,
    score_intents,
)
from engine.rca.situation import render_situation

__all__ = [
    "DEFAULT_INTENTS",
    "Hypothesis",
    "Intent",
    "IntentLibrary",
    "LogKeyword",
    "SignalCondition",
    "default_intent_library",
    "HypothesisReport",
    "HypothesisScore",
    "IntentMatch",
    "analyze_root",
    "evidence_lines",
    "score_hypotheses",
    "score_intents",
    "render_situation",
]
