"""
Causal rule table used to score cause/effect relationships between event codes.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from engine.causal.graph import CausalRule, CausalRuleTable, DEFAULT_CAUSAL_RULES, default_rule_table

__all__ = ["CausalRule", "CausalRuleTable", "DEFAULT_CAUSAL_RULES", "default_rule_table"]
