"""
Constants and configuration for the correlation engine.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import os
from typing import Dict, List, Tuple

from pydantic_settings import BaseSettings


REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
OUTCOMES_TTL: int = int(os.getenv("OUTCOMES_TTL", "2592000"))

CORRELATOR_DEFAULT_TENANT_ID = os.getenv("CORRELATOR_DEFAULT_TENANT_ID", "default")

# rank assigned to severity labels for comparison and ordering
SEVERITY_WEIGHTS: dict[str, int] = {
    "info": 0,
    "low": 1,
    "minor": 2,
    "major": 4,
    "critical": 8,
}

STRATEGY_NAMES: Tuple[str, ...] = ("temporal", "spatial", "topological", "causal", "semantic")

# causal carries no weight of its own by default; it is folded into the
# semantic channel (see Settings.causal_folding)
DEFAULT_CORRELATION_WEIGHTS: Dict[str, float] = {
    "temporal": 0.30,
    "spatial": 0.10,
    "topological": 0.35,
    "causal": 0.00,
    "semantic": 0.25,
}

WEIGHT_SUM_TOLERANCE = 1e-6


class Settings(BaseSettings):
    # default tenant (used by main and the outcome store)
    default_tenant_id: str = CORRELATOR_DEFAULT_TENANT_ID

    # correlation aggregate
    correlation_weights: Dict[str, float] = dict(DEFAULT_CORRELATION_WEIGHTS)
    causal_folding: bool = True
    edge_threshold: float = 0.75
    window_seconds: float = 300.0

    # strategy knobs
    spatial_same_site_score: float = 0.5
    max_hops: int = 3

    # clustering
    dedup_window_seconds: float = 300.0
    window_max_events: int = 10_000
    archive_max_events: int = 100_000

    # ingestion / tick drivers
    ingest_queue_size: int = 1000
    tick_interval_seconds: float = 1.0

    # pattern matching
    sequence_default_step_seconds: float = 180.0
    prediction_cooldown_seconds: float = 3.0
    threshold_cooldown_seconds: float = 1.0
    outcomes_max_items: int = 5000

    # hypothesis scoring
    hypothesis_round_precision: int = 4
    log_lines_limit: int = 50

    # historical case retrieval
    history_top_k: int = 5
    history_min_similarity: float = 0.0

    # device dependency graph (JSON object: upstream device -> list of downstream devices)
    topology_path: str = ""

    # semantic strategy default embedder
    embedding_features: int = 1024

    # suppression: off-hours rule for low-severity noise (business hours in UTC)
    suppress_off_hours: bool = False
    off_hours_max_severity: str = "low"
    business_days: List[int] = [0, 1, 2, 3, 4]
    business_start_hour: int = 9
    business_end_hour: int = 18

    # suppression: events on a device shortly after it reboots (0 disables)
    reboot_trigger_code: str = "SYS_REBOOT"
    reboot_grace_seconds: float = 300.0

    # suppression: maintenance windows (JSON list of {name, devices, start, end})
    maintenance_path: str = ""

    store_redis_retry_cooldown_seconds: float = 10.0
    store_fallback_max_items: int = 10_000

    model_config = {
        "env_prefix": "CORRELATOR_",
        "extra": "ignore",
    }


def validate_settings(cfg: Settings) -> Settings:
    """Fail fast on configuration the engine cannot run with.

    Raises :class:`engine.errors.ConfigError` describing the first problem
    found. Called when an engine is constructed and from the app lifespan so
    a bad deployment never reaches the first ingested event.
    """
    from engine.correlation.aggregator import validate_weights
    from engine.errors import ConfigError

    validate_weights(cfg.correlation_weights, cfg.causal_folding)

    if not 0.0 < cfg.edge_threshold <= 1.0:
        raise ConfigError(f"edge_threshold must be in (0, 1], got {cfg.edge_threshold}")
    for field_name in ("window_seconds", "dedup_window_seconds", "tick_interval_seconds"):
        if getattr(cfg, field_name) <= 0:
            raise ConfigError(f"{field_name} must be > 0, got {getattr(cfg, field_name)}")
    if cfg.max_hops < 1:
        raise ConfigError(f"max_hops must be >= 1, got {cfg.max_hops}")
    if cfg.window_max_events < 1 or cfg.ingest_queue_size < 1:
        raise ConfigError("window_max_events and ingest_queue_size must be >= 1")
    if not 0.0 <= cfg.spatial_same_site_score <= 1.0:
        raise ConfigError("spatial_same_site_score must be within [0, 1]")
    if not 0 <= cfg.business_start_hour <= cfg.business_end_hour <= 24:
        raise ConfigError("business hours must satisfy 0 <= start <= end <= 24")
    if any(day not in range(7) for day in cfg.business_days):
        raise ConfigError(f"business_days must be weekdays 0-6, got {cfg.business_days}")
    if cfg.off_hours_max_severity not in SEVERITY_WEIGHTS:
        raise ConfigError(f"unknown off_hours_max_severity {cfg.off_hours_max_severity!r}")
    if cfg.reboot_grace_seconds < 0:
        raise ConfigError(f"reboot_grace_seconds must be >= 0, got {cfg.reboot_grace_seconds}")
    return cfg


settings = Settings()
