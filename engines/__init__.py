#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Движки правил численности: высокоскоростные поезда, обычные поезда,
прочее производство.
"""

from __future__ import annotations

from .base import RuleEngine, select_representatives
from .conventional import ConventionalRuleEngine, attendants_for, parse_ratio
from .high_speed import HighSpeedRuleEngine, allocate_roles
from .matching import RuleMatch, category_tag, match_conventional_rule, time_bucket
from .other_production import OtherProductionRuleEngine

__all__ = [
    "RuleEngine",
    "HighSpeedRuleEngine",
    "ConventionalRuleEngine",
    "OtherProductionRuleEngine",

    # Сопоставление
    "RuleMatch",
    "match_conventional_rule",
    "category_tag",
    "time_bucket",

    # Вспомогательные функции
    "select_representatives",
    "allocate_roles",
    "attendants_for",
    "parse_ratio",
]
