#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Анализ расхождений численности по поездам между нормативами.

Каждый норматив независимо решает, какие поезда сопоставлены, поэтому один
и тот же поезд может присутствовать в результатах одних нормативов и
отсутствовать в других. Объединение строится по составному ключу поезда,
затем поезд ищется в результатах каждого норматива (по идентификатору
записи, иначе по номеру поезда).
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple

import numpy as np
import pandas as pd

from staffing.config import APP_CONFIG, AppConfig
from staffing.models import ComparisonResult, StaffingResult, TrainCategory, TrainStaffing
from staffing.rules import StaffingStandard, load_standard
from staffing.status_config import DEFAULT_DIFFERENCE_CONFIG, DifferenceConfig, DifferenceType, Severity
from staffing.utils import format_percent, round_half_up

logger = logging.getLogger(__name__)

# =============== КЛЮЧ ПОЕЗДА ===============


class TrainKey(NamedTuple):
    """Составной ключ поезда для сверки результатов разных нормативов."""
    category: str
    train_number: str
    formation: str
    running_time: float

    @classmethod
    def of(cls, staffing: TrainStaffing) -> TrainKey:
        train = staffing.train
        return cls(
            category=staffing.category.value,
            train_number=train.train_number.upper(),
            formation=train.display_formation.lower(),
            running_time=round_half_up(train.running_hours, 2),
        )


# =============== МОДЕЛИ РЕЗУЛЬТАТА ===============


@dataclass(slots=True, frozen=True)
class StandardOutcome:
    """Результат поезда по одному нормативу."""
    standard_id: str
    standard_name: str
    is_matched: bool
    total_staff: Optional[int] = None
    rule_name: Optional[str] = None
    breakdown: Dict[str, int] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class TrainDifference:
    key: TrainKey
    category: TrainCategory
    train_number: str
    formation: str
    running_time: float
    standard_results: Dict[str, StandardOutcome]
    min_value: int
    max_value: int
    max_difference: int
    difference_range: str
    difference_percentage: int
    difference_type: DifferenceType
    description: str
    severity: Optional[Severity]


@dataclass(slots=True, frozen=True)
class DifferenceStats:
    total_trains: int = 0
    trains_with_differences: int = 0
    trains_without_differences: int = 0
    severity_counts: Dict[str, int] = field(default_factory=dict)
    type_counts: Dict[str, int] = field(default_factory=dict)
    average_difference: int = 0
    max_difference: int = 0
    median_difference: float = 0.0


@dataclass(slots=True, frozen=True)
class DifferenceAnalysis:
    differences: Tuple[TrainDifference, ...]
    stats: DifferenceStats

    def to_dataframe(self) -> pd.DataFrame:
        """Таблица расхождений: одна строка на поезд, столбец на норматив."""
        rows = []
        for difference in self.differences:
            row = {
                '类别': difference.category.label,
                '车次': difference.train_number,
                '编组': difference.formation,
                '单程工时': difference.running_time,
                '差异范围': difference.difference_range,
                '最大差异': difference.max_difference,
                '差异比例': difference.difference_percentage,
                '差异类型': difference.difference_type.value,
                '说明': difference.description,
            }
            for outcome in difference.standard_results.values():
                row[outcome.standard_name] = outcome.total_staff if outcome.is_matched else np.nan
            rows.append(row)
        return pd.DataFrame(rows)


def median(values: List[float]) -> float:
    """Медиана; для четного количества берется среднее двух центральных значений."""
    if not values:
        return 0.0
    return float(pd.Series(values, dtype=float).median())


# =============== АНАЛИЗАТОР ===============


class DifferenceAnalyzer:
    """Сравнение численности поездов между нормативами и классификация причин."""

    def __init__(self, config: DifferenceConfig = DEFAULT_DIFFERENCE_CONFIG, app_config: AppConfig = APP_CONFIG):
        self.config = config
        self.app_config = app_config

    @staticmethod
    def _as_list(results: Mapping[str, ComparisonResult] | Iterable[ComparisonResult]) -> List[ComparisonResult]:
        if isinstance(results, Mapping):
            return list(results.values())
        return list(results)

    @staticmethod
    def collect_matched_trains(results: List[ComparisonResult]) -> Dict[TrainKey, TrainStaffing]:
        """Объединение сопоставленных поездов всех нормативов; первая запись ключа сохраняется."""
        union: Dict[TrainKey, TrainStaffing] = {}
        for result in results:
            for category in TrainCategory:
                for staffing in result.category_result(category).matched_trains:
                    union.setdefault(TrainKey.of(staffing), staffing)
        return union

    @staticmethod
    def locate(reference: TrainStaffing, category_result: StaffingResult) -> Optional[TrainStaffing]:
        """Поиск поезда в результате норматива: по идентификатору записи, номеру или порядковому номеру."""
        record_id = reference.train.record_id
        if record_id:
            for staffing in category_result.trains:
                if staffing.train.record_id == record_id:
                    return staffing

        number = reference.train.train_number.upper()
        if number:
            for staffing in category_result.trains:
                if staffing.train.train_number.upper() == number:
                    return staffing
            return None

        # поезд без номера сверяется по 序号
        sequence = reference.train.sequence
        for staffing in category_result.trains:
            if not staffing.train.train_number and staffing.train.sequence == sequence:
                return staffing
        return None

    def _outcomes(self, reference: TrainStaffing, results: List[ComparisonResult]) -> Dict[str, StandardOutcome]:
        outcomes = {}
        for result in results:
            found = self.locate(reference, result.category_result(reference.category))
            if found is None:
                outcome = StandardOutcome(result.standard_id, result.standard_name, is_matched=False)
            elif not found.is_matched:
                outcome = StandardOutcome(result.standard_id, result.standard_name, is_matched=False, total_staff=0)
            else:
                outcome = StandardOutcome(
                    result.standard_id,
                    result.standard_name,
                    is_matched=True,
                    total_staff=found.total_staff,
                    rule_name=found.rule_name,
                    breakdown=dict(found.requirement),
                )
            outcomes[result.standard_id] = outcome
        return outcomes

    def classify(self, outcomes: Dict[str, StandardOutcome],
                 standards: Dict[str, StaffingStandard]) -> Tuple[DifferenceType, str]:
        """Причина расхождения в порядке приоритета; описание содержит конкретные значения."""
        matched = [outcome for outcome in outcomes.values() if outcome.is_matched]
        unmatched_count = len(outcomes) - len(matched)

        if matched and unmatched_count:
            return (DifferenceType.MATCH_STATUS,
                    f"{len(matched)}个标准匹配成功，{unmatched_count}个标准未匹配")

        rule_names = list(dict.fromkeys(outcome.rule_name for outcome in matched))
        if len(rule_names) > 1:
            return (DifferenceType.RULE_BASED,
                    f"不同标准匹配了不同的定员规则：{'、'.join(name or '未命名规则' for name in rule_names)}")

        involved = [standards[outcome.standard_id] for outcome in matched if outcome.standard_id in standards]
        if involved:
            hours = [standard.standard_work_hours for standard in involved]
            if max(hours) - min(hours) > self.config.parameters.WORK_HOURS_SPREAD:
                return (DifferenceType.PARAMETER_BASED,
                        f"标准工时设置不同({min(hours):g}-{max(hours):g}小时)")

            rates = [
                standard.reserve_rates.main_rate('beijing', self.app_config.default_main_reserve_rate)
                for standard in involved
            ]
            if max(rates) - min(rates) > self.config.parameters.RESERVE_RATE_SPREAD:
                return (DifferenceType.PARAMETER_BASED,
                        f"预备率设置不同({format_percent(min(rates))}-{format_percent(max(rates))})")

        return DifferenceType.COVERAGE_GAP, "规则覆盖范围或配置细节存在差异"

    def analyze_train_differences(self, results: Mapping[str, ComparisonResult] | Iterable[ComparisonResult],
                                  standards: Iterable[StaffingStandard | Mapping[str, Any]]) -> DifferenceAnalysis:
        """Расхождения численности по поездам между нормативами и сводная статистика."""
        result_list = self._as_list(results)
        standard_map = {standard.id: standard for standard in (load_standard(item) for item in standards)}

        union = self.collect_matched_trains(result_list)
        logger.info("Анализ расхождений: нормативов=%d, поездов в объединении=%d", len(result_list), len(union))

        differences: List[TrainDifference] = []
        without_differences = 0

        for key, reference in union.items():
            outcomes = self._outcomes(reference, result_list)
            values = [outcome.total_staff for outcome in outcomes.values() if outcome.total_staff is not None]
            if not values:
                logger.warning("Поезд %s не найден ни в одном результате, пропускается при сверке",
                               key.train_number or reference.train.sequence)
                without_differences += 1
                continue

            min_value, max_value = min(values), max(values)
            spread = max_value - min_value
            if spread == 0:
                without_differences += 1
                continue

            mean = sum(values) / len(values)
            difference_type, description = self.classify(outcomes, standard_map)
            differences.append(TrainDifference(
                key=key,
                category=reference.category,
                train_number=reference.train.train_number,
                formation=reference.train.display_formation,
                running_time=key.running_time,
                standard_results=outcomes,
                min_value=min_value,
                max_value=max_value,
                max_difference=spread,
                difference_range=f"{min_value}-{max_value}人",
                difference_percentage=int(round_half_up(spread / mean * 100)) if mean > 0 else 0,
                difference_type=difference_type,
                description=description,
                severity=self.config.get_severity(spread),
            ))

        differences.sort(key=lambda item: item.max_difference, reverse=True)
        stats = self.calculate_stats(differences, len(union), without_differences)

        logger.info("Расхождений: %d, без расхождений: %d, максимум: %d, медиана: %g",
                    stats.trains_with_differences, stats.trains_without_differences,
                    stats.max_difference, stats.median_difference)
        return DifferenceAnalysis(differences=tuple(differences), stats=stats)

    def calculate_stats(self, differences: List[TrainDifference], total_trains: int,
                        without_differences: int) -> DifferenceStats:
        spreads = [difference.max_difference for difference in differences]

        severity_counts = {severity.value: 0 for severity in Severity}
        for difference in differences:
            if difference.severity is not None:
                severity_counts[difference.severity.value] += 1

        type_counter = Counter(difference.difference_type for difference in differences)
        type_counts = {difference_type.value: type_counter.get(difference_type, 0) for difference_type in DifferenceType}

        return DifferenceStats(
            total_trains=total_trains,
            trains_with_differences=len(differences),
            trains_without_differences=without_differences,
            severity_counts=severity_counts,
            type_counts=type_counts,
            average_difference=int(round_half_up(sum(spreads) / len(spreads))) if spreads else 0,
            max_difference=max(spreads) if spreads else 0,
            median_difference=median(spreads),
        )


def analyze_train_differences(results: Mapping[str, ComparisonResult] | Iterable[ComparisonResult],
                              standards: Iterable[StaffingStandard | Mapping[str, Any]]) -> DifferenceAnalysis:
    """Расхождения с конфигурацией по умолчанию."""
    return DifferenceAnalyzer().analyze_train_differences(results, standards)
