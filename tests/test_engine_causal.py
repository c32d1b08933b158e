import pytest

from engine.causal.graph import CausalRule, CausalRuleTable, DEFAULT_CAUSAL_RULES, default_rule_table


def test_default_rules_loaded():
    table = default_rule_table()
    assert len(table) == len(DEFAULT_CAUSAL_RULES)
    assert table.rule("link_util_high", "queue_drop").probability == 0.9


def test_probability_respects_direction_and_window():
    table = CausalRuleTable([CausalRule("A", "B", 0.7, window_seconds=60)])
    assert table.probability("A", "B", 30) == 0.7
    assert table.probability("A", "B", 61) == 0.0
    assert table.probability("B", "A", 30) == 0.0
    assert table.probability("A", "B", -1) == 0.0


def test_add_rule_replaces_and_clamps():
    table = CausalRuleTable()
    table.add_rule("a", "b", 0.4)
    table.add_rule("a", "c", 1.7)
    table.add_rule("a", "b", 0.6)
    assert len(table) == 2
    assert [r.effect for r in table.effects_of("A")] == ["C", "B"]
    assert table.rule("A", "C").probability == 1.0
    # no window means any non-negative lag qualifies
    assert table.probability("A", "B", 10_000) == pytest.approx(0.6)
