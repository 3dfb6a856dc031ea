#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Анализ покрытия обычных поездов правилами норматива.

Результаты сопоставления кэшируются по паре (номер поезда, категория) и
списку идентификаторов правил. Изменение содержимого правила при том же
идентификаторе кэш не замечает, поэтому после любого изменения правил
вызывающий код обязан вызвать ``invalidate()``.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeAlias

from engines.matching import INTERNATIONAL_MARKER, NORMAL_TRAIN_MARKER, category_tag, match_conventional_rule, time_bucket
from staffing.models import TrainRecord, to_records
from staffing.rules import ConventionalRule, load_conventional_rule
from staffing.status_config import DEFAULT_DIFFERENCE_CONFIG, DifferenceConfig
from staffing.utils import safe_divide

logger = logging.getLogger(__name__)

CacheKey: TypeAlias = Tuple[Tuple[str, str], Tuple[str, ...]]

CONVENTIONAL_CATEGORY_MARKERS = ('K快车', 'T特快列车', 'Z直达特快', '直达列车', '国际联运')
HIGH_SPEED_CATEGORY_MARKERS = ('高速', '动车')
DIRECT_TRAIN_TYPE = '直达列车'

_CONVENTIONAL_NUMBER = re.compile(r'^[KTZ]\d+', re.IGNORECASE)
_HIGH_SPEED_NUMBER = re.compile(r'^[GDC]\d+', re.IGNORECASE)


class RuleMatchCache:
    """
    Кэш результатов сопоставления поезда с набором правил.

    Без ограничения размера и без истечения срока. Одновременная запись
    одного ключа из разных потоков допустима: значения совпадают.
    """

    def __init__(self):
        self._entries: Dict[CacheKey, Optional[str]] = {}
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key(train: TrainRecord, rules: Sequence[ConventionalRule]) -> CacheKey:
        return (train.train_number, train.category), tuple(rule.id for rule in rules)

    def get(self, key: CacheKey) -> Tuple[bool, Optional[str]]:
        """(найдено, id правила или None)."""
        if key in self._entries:
            self.hits += 1
            return True, self._entries[key]
        self.misses += 1
        return False, None

    def put(self, key: CacheKey, rule_id: Optional[str]) -> None:
        self._entries[key] = rule_id

    def invalidate(self) -> None:
        """Очистка кэша; обязательна после любого изменения правил."""
        size = len(self._entries)
        self._entries.clear()
        self.hits = 0
        self.misses = 0
        logger.debug("Кэш сопоставления очищен (записей: %d)", size)

    def stats(self) -> Dict[str, int]:
        return {'hits': self.hits, 'misses': self.misses, 'size': len(self._entries)}

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(slots=True, frozen=True)
class CoverageRecommendation:
    train_type: str
    time_range: str
    count: int
    priority: str
    train_numbers: Tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class CoverageStats:
    total: int = 0
    covered: int = 0
    uncovered: int = 0
    coverage_rate: float = 1.0


@dataclass(slots=True, frozen=True)
class CoverageAnalysis:
    uncovered_trains: Tuple[TrainRecord, ...] = ()
    coverage_stats: CoverageStats = field(default_factory=CoverageStats)
    recommendations: Tuple[CoverageRecommendation, ...] = ()


def is_conventional_candidate(train: TrainRecord) -> bool:
    """Поезд, к которому применимы правила обычных поездов."""
    category = train.category
    if any(marker in category for marker in CONVENTIONAL_CATEGORY_MARKERS):
        return True
    if _CONVENTIONAL_NUMBER.match(train.train_number):
        return True
    return (not _HIGH_SPEED_NUMBER.match(train.train_number)
            and not any(marker in category for marker in HIGH_SPEED_CATEGORY_MARKERS))


def inferred_type(train: TrainRecord) -> str:
    """Тип поезда для группировки рекомендаций."""
    tag = category_tag(train)
    if INTERNATIONAL_MARKER in tag:
        return INTERNATIONAL_MARKER
    if 'Z直达' in tag or train.train_number.upper().startswith('Z'):
        return DIRECT_TRAIN_TYPE
    return NORMAL_TRAIN_MARKER


class CoverageAnalyzer:
    """Поиск обычных поездов, не покрытых правилами, с рекомендациями по группам."""

    def __init__(self, cache: Optional[RuleMatchCache] = None,
                 config: DifferenceConfig = DEFAULT_DIFFERENCE_CONFIG):
        self.cache = cache if cache is not None else RuleMatchCache()
        self.config = config

    def invalidate(self) -> None:
        self.cache.invalidate()

    def _match_rule_id(self, train: TrainRecord, rules: Sequence[ConventionalRule]) -> Optional[str]:
        key = self.cache.key(train, rules)
        found, rule_id = self.cache.get(key)
        if found:
            return rule_id
        match = match_conventional_rule(train, rules)
        rule_id = match.rule.id if match else None
        self.cache.put(key, rule_id)
        return rule_id

    def analyze(self, trains: Iterable[Mapping[str, Any] | TrainRecord],
                rules: Iterable[ConventionalRule | Mapping[str, Any]]) -> CoverageAnalysis:
        """Непокрытые поезда, статистика покрытия и рекомендации."""
        rule_list = [rule if isinstance(rule, ConventionalRule) else load_conventional_rule(rule) for rule in rules]
        candidates = [train for train in to_records(trains) if is_conventional_candidate(train)]

        uncovered = [train for train in candidates if self._match_rule_id(train, rule_list) is None]
        covered = len(candidates) - len(uncovered)
        stats = CoverageStats(
            total=len(candidates),
            covered=covered,
            uncovered=len(uncovered),
            coverage_rate=1.0 if not uncovered else safe_divide(covered, len(candidates)),
        )

        recommendations = self.recommend(uncovered)
        logger.info("Покрытие правилами: %d из %d поездов, групп рекомендаций: %d (кэш: %s)",
                    covered, len(candidates), len(recommendations), self.cache.stats())
        return CoverageAnalysis(
            uncovered_trains=tuple(uncovered),
            coverage_stats=stats,
            recommendations=recommendations,
        )

    def recommend(self, uncovered: List[TrainRecord]) -> Tuple[CoverageRecommendation, ...]:
        groups: Dict[Tuple[str, str], List[str]] = {}
        for train in uncovered:
            group = (inferred_type(train), time_bucket(train.running_hours))
            groups.setdefault(group, []).append(train.train_number)

        counts = Counter({group: len(numbers) for group, numbers in groups.items()})
        return tuple(
            CoverageRecommendation(
                train_type=train_type,
                time_range=time_range,
                count=count,
                priority=self.config.get_priority(count).value,
                train_numbers=tuple(groups[(train_type, time_range)]),
            )
            for (train_type, time_range), count in counts.most_common()
        )
