"""
Correlation strategies and the weighted aggregator that turns their scores into edges between events.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from engine.correlation.aggregator import CorrelationAggregator, CorrelationEdge, EdgeLedger, validate_weights
from engine.correlation.embedding import HashingEmbedder, cosine
from engine.correlation.strategies import (
    CausalStrategy, SemanticStrategy, SpatialStrategy, TemporalStrategy, TopologicalStrategy,
    spatial_score, temporal_score,
)

__all__ = [
    "CorrelationAggregator", "CorrelationEdge", "EdgeLedger", "validate_weights",
    "HashingEmbedder", "cosine",
    "CausalStrategy", "SemanticStrategy", "SpatialStrategy", "TemporalStrategy", "TopologicalStrategy",
    "spatial_score", "temporal_score",
]
