"""
Behavioural pattern matching and event prediction.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from engine.patterns.model import (
    Pattern,
    PatternPrediction,
    PredictedEvent,
    PredictionOutcome,
    SequenceStep,
    ThresholdEvent,
    TrajectoryStep,
)
from engine.patterns.library import PatternLibrary, default_pattern_library, default_patterns
from engine.patterns.sequence import SequenceMatch, SequenceTracker
from engine.patterns.trajectory import ThresholdDebouncer, TrajectoryMatch, TrajectoryTracker
from engine.patterns.matcher import OutcomeLedger, PatternMatcher, TickResult

__all__ = [
    "Pattern",
    "PatternPrediction",
    "PredictedEvent",
    "PredictionOutcome",
    "SequenceStep",
    "ThresholdEvent",
    "TrajectoryStep",
    "PatternLibrary",
    "default_pattern_library",
    "default_patterns",
    "SequenceMatch",
    "SequenceTracker",
    "ThresholdDebouncer",
    "TrajectoryMatch",
    "TrajectoryTracker",
    "OutcomeLedger",
    "PatternMatcher",
    "TickResult",
]
