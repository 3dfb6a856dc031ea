#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Сопоставление обычного поезда с правилом норматива.

Общий алгоритм для движка обычных поездов и анализа покрытия:
первое по порядку объявления правило, прошедшее все заданные условия,
затем запасное правило «正常列车» для поездов не международного сообщения.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from staffing.models import TrainRecord
from staffing.rules import ConventionalRule

INTERNATIONAL_MARKER = '国际联运'
NORMAL_TRAIN_MARKER = '正常列车'

# Категория по первой букве номера, если подпись категории не заполнена
PREFIX_CATEGORIES = {
    'Z': 'Z直达特快',
    'T': 'T特快列车',
    'K': 'K快车',
}

TIME_RANGE_LABELS = {
    'under4': '4小时以内',
    '4to12': '4-12小时',
    '12to24': '12-24小时',
    'over24': '24小时以上',
}

_PREFIX_PATTERN = re.compile(r'^([A-Za-z])\d+')


@dataclass(slots=True, frozen=True)
class RuleMatch:
    """Найденное правило и условия, по которым оно подошло."""
    rule: ConventionalRule
    matched_conditions: Tuple[str, ...]
    via_fallback: bool = False


def time_bucket(hours: float) -> str:
    """Диапазон времени в пути в одну сторону."""
    match hours:
        case h if h < 4:
            return 'under4'
        case h if h < 12:
            return '4to12'
        case h if h < 24:
            return '12to24'
        case _:
            return 'over24'


def category_tag(train: TrainRecord) -> str:
    """Метка категории поезда: подпись категории либо производная от номера."""
    if train.category:
        return train.category
    match = _PREFIX_PATTERN.match(train.train_number)
    if match:
        return PREFIX_CATEGORIES.get(match.group(1).upper(), "")
    return ""


def is_international(tag: str) -> bool:
    return INTERNATIONAL_MARKER in tag


def _type_hit(rule: ConventionalRule, tag: str) -> Optional[str]:
    for train_type in rule.conditions.train_types:
        if train_type and train_type in tag:
            return train_type
    return None


def _range_ok(rule: ConventionalRule, bucket: str) -> bool:
    declared = rule.conditions.running_time_range
    return declared is None or declared == bucket


def match_conventional_rule(train: TrainRecord, rules: Iterable[ConventionalRule]) -> Optional[RuleMatch]:
    """Первое подходящее правило или запасное правило для обычного поезда; None если нет."""
    rules = tuple(rules)
    tag = category_tag(train)
    bucket = time_bucket(train.running_hours)
    international = is_international(tag)

    for rule in rules:
        train_type = _type_hit(rule, tag)
        if train_type is None or not _range_ok(rule, bucket):
            continue
        if rule.conditions.is_international and not international:
            continue

        conditions = [f"列车类型: {train_type}"]
        if rule.conditions.running_time_range:
            conditions.append(f"运行时间: {TIME_RANGE_LABELS[bucket]}")
        if rule.conditions.is_international:
            conditions.append("国际联运")
        return RuleMatch(rule=rule, matched_conditions=tuple(conditions))

    if international:
        return None

    for rule in rules:
        if NORMAL_TRAIN_MARKER in rule.conditions.train_types and _range_ok(rule, bucket):
            conditions = [f"默认规则: {NORMAL_TRAIN_MARKER}"]
            if rule.conditions.running_time_range:
                conditions.append(f"运行时间: {TIME_RANGE_LABELS[bucket]}")
            return RuleMatch(rule=rule, matched_conditions=tuple(conditions), via_fallback=True)

    return None
