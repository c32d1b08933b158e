"""
Suppression rule tests.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from datetime import datetime, timezone

import pytest

from config import Settings
from engine.enums import EventLabel, Severity
from engine.errors import ConfigError
from engine.events.model import normalize
from engine.events.suppression import (
    MaintenanceWindow,
    OffHoursRule,
    RebootGraceRule,
    SuppressionPolicy,
    build_suppression_policy,
    load_maintenance_windows,
)
from conftest import make_event


def _ts(*args):
    return datetime(*args, tzinfo=timezone.utc).timestamp()


def test_maintenance_window():
    rule = MaintenanceWindow("mw", frozenset({"Agg-SW1"}), start=100, end=200)
    policy = SuppressionPolicy([rule])
    assert policy.match(normalize(make_event(timestamp=150))) == "mw"
    assert policy.match(normalize(make_event(timestamp=250))) is None
    assert policy.match(normalize(make_event(timestamp=150, device="Agg-SW2"))) is None


def test_off_hours_only_low_severity():
    rule = OffHoursRule("after-hours", max_severity=Severity.low)
    saturday = _ts(2026, 1, 10, 12)
    tuesday_night = _ts(2026, 1, 6, 23)
    tuesday_noon = _ts(2026, 1, 6, 12)
    assert rule.matches(normalize(make_event(timestamp=saturday, severity="low")))
    assert rule.matches(normalize(make_event(timestamp=tuesday_night, severity="info")))
    assert not rule.matches(normalize(make_event(timestamp=tuesday_noon, severity="low")))
    assert not rule.matches(normalize(make_event(timestamp=saturday, severity="critical")))


def test_reboot_grace():
    policy = SuppressionPolicy()
    policy.add(RebootGraceRule("reboot", grace_seconds=300))
    reboot = normalize(make_event(timestamp=1000, eventCode="SYS_REBOOT"))
    assert policy.match(reboot) is None
    assert policy.match(normalize(make_event(timestamp=1100))) == "reboot"
    assert policy.match(normalize(make_event(timestamp=1400))) is None
    assert policy.match(normalize(make_event(timestamp=1100, device="Other"))) is None
    assert [r.name for r in policy.rules] == ["reboot"]


def test_policy_built_from_settings(tmp_path):
    path = tmp_path / "maintenance.json"
    path.write_text('[{"name": "core-upgrade", "devices": ["Agg-SW1"], "start": 100, "end": 200}]')
    cfg = Settings(suppress_off_hours=True, reboot_grace_seconds=120, maintenance_path=str(path))
    policy = build_suppression_policy(cfg)
    assert [r.name for r in policy.rules] == ["core-upgrade", "off-hours", "reboot-grace"]
    assert policy.match(normalize(make_event(timestamp=150))) == "core-upgrade"


def test_default_settings_enable_reboot_grace_only():
    policy = build_suppression_policy(Settings())
    assert [r.name for r in policy.rules] == ["reboot-grace"]


def test_bad_maintenance_file_is_config_error(tmp_path):
    path = tmp_path / "maintenance.json"
    path.write_text('[{"name": "no-devices", "start": 1, "end": 2}]')
    with pytest.raises(ConfigError):
        load_maintenance_windows(str(path))
    with pytest.raises(ConfigError):
        load_maintenance_windows(str(tmp_path / "missing.json"))


def test_registry_engine_applies_configured_suppression(monkeypatch):
    from engine import registry

    monkeypatch.setattr(registry, "settings", Settings(suppress_off_hours=True))
    engine = registry.get_engine()
    saturday = _ts(2026, 1, 10, 12)
    result = engine.ingest(make_event(id="noise", timestamp=saturday, severity="low"))
    assert result.label == EventLabel.suppressed
    assert result.suppressed_by == "off-hours"
