#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Конфигурация порогов классификации расхождений и приоритетов рекомендаций.
Использует dataclasses и slots, как и остальные конфигурации проекта.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Final, List, Tuple, TypeAlias

SeverityName: TypeAlias = str
PriorityName: TypeAlias = str
ThresholdValue: TypeAlias = float


class DifferenceType(Enum):
    """Причина расхождения численности между нормативами (в порядке приоритета)."""
    MATCH_STATUS = "match_status"
    RULE_BASED = "rule_based"
    PARAMETER_BASED = "parameter_based"
    COVERAGE_GAP = "coverage_gap"


class Severity(Enum):
    """Степень расхождения."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Priority(Enum):
    """Приоритет рекомендации по непокрытым поездам."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(slots=True, frozen=True)
class SeverityThresholds:
    """Пороги степени расхождения (в людях)"""
    HIGH_ABOVE: Final[ThresholdValue] = 20
    MEDIUM_FROM: Final[ThresholdValue] = 5


@dataclass(slots=True, frozen=True)
class ParameterThresholds:
    """Пороги параметров норматива, объясняющих расхождение"""
    WORK_HOURS_SPREAD: Final[ThresholdValue] = 5.0
    RESERVE_RATE_SPREAD: Final[ThresholdValue] = 0.01


@dataclass(slots=True, frozen=True)
class KeyFactorThresholds:
    """Пороги ключевых факторов для сводного анализа нормативов"""
    WORK_HOURS_SPREAD: Final[ThresholdValue] = 10.0
    RESERVE_RATE_SPREAD: Final[ThresholdValue] = 0.05
    RULE_COUNT_SPREAD: Final[ThresholdValue] = 5
    MIN_COVERAGE: Final[ThresholdValue] = 0.9
    STAFF_SPREAD_RATIO: Final[ThresholdValue] = 0.15


@dataclass(slots=True, frozen=True)
class PriorityThresholds:
    """Пороги приоритета рекомендаций (число поездов в группе)"""
    HIGH_ABOVE: Final[int] = 10
    MEDIUM_ABOVE: Final[int] = 5


@dataclass(slots=True, frozen=True)
class DifferenceConfig:
    """Главная конфигурация анализа расхождений"""

    severity: SeverityThresholds = field(default_factory=SeverityThresholds)
    parameters: ParameterThresholds = field(default_factory=ParameterThresholds)
    key_factors: KeyFactorThresholds = field(default_factory=KeyFactorThresholds)
    priority: PriorityThresholds = field(default_factory=PriorityThresholds)

    _type_labels: Dict[DifferenceType, str] = field(init=False)

    def __post_init__(self):
        type_labels = {
            DifferenceType.MATCH_STATUS: "匹配状态差异",
            DifferenceType.RULE_BASED: "规则差异",
            DifferenceType.PARAMETER_BASED: "参数差异",
            DifferenceType.COVERAGE_GAP: "覆盖差异",
        }
        # Используем object.__setattr__ так как класс frozen
        object.__setattr__(self, '_type_labels', type_labels)

    def get_severity(self, max_difference: ThresholdValue) -> Severity | None:
        """Степень расхождения по разнице численности; None для нулевой разницы"""
        match max_difference:
            case d if d > self.severity.HIGH_ABOVE:
                return Severity.HIGH
            case d if d >= self.severity.MEDIUM_FROM:
                return Severity.MEDIUM
            case d if d > 0:
                return Severity.LOW
            case _:
                return None

    def get_priority(self, train_count: int) -> Priority:
        """Приоритет рекомендации по размеру группы непокрытых поездов"""
        match train_count:
            case n if n > self.priority.HIGH_ABOVE:
                return Priority.HIGH
            case n if n > self.priority.MEDIUM_ABOVE:
                return Priority.MEDIUM
            case _:
                return Priority.LOW

    def get_type_label(self, difference_type: DifferenceType) -> str:
        """Подпись типа расхождения для отчетов"""
        return self._type_labels.get(difference_type, difference_type.value)


DEFAULT_DIFFERENCE_CONFIG: Final[DifferenceConfig] = DifferenceConfig()


def validate_difference_config(config: DifferenceConfig) -> Tuple[bool, List[str]]:
    """Валидирует конфигурацию порогов"""
    errors = []

    if config.severity.MEDIUM_FROM <= 0:
        errors.append(f"Порог medium должен быть положительным: {config.severity.MEDIUM_FROM}")
    if config.severity.MEDIUM_FROM > config.severity.HIGH_ABOVE:
        errors.append(
            f"Нарушен порядок порогов степени: {config.severity.MEDIUM_FROM} > {config.severity.HIGH_ABOVE}"
        )
    if config.priority.MEDIUM_ABOVE >= config.priority.HIGH_ABOVE:
        errors.append(
            f"Нарушен порядок порогов приоритета: {config.priority.MEDIUM_ABOVE} >= {config.priority.HIGH_ABOVE}"
        )
    if not 0 <= config.parameters.RESERVE_RATE_SPREAD < 1:
        errors.append(f"Порог резерва должен быть долей 0-1: {config.parameters.RESERVE_RATE_SPREAD}")

    return len(errors) == 0, errors
