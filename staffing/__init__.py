#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Базовый модуль staffing для системы расчета численности поездных бригад.
Содержит модели поездов и нормативов, загрузку правил, конфигурацию и утилиты.
"""

from __future__ import annotations

__version__ = "1.0.0"
__author__ = "Crew Staffing System"
__description__ = "Базовые компоненты расчета численности поездных бригад"

from .config import APP_CONFIG, AppConfig
from .errors import (
    EmptyRuleSetError,
    RuleConfigurationError,
    StaffingConfigurationError,
    StaffingError,
)
from .fields import CarCounts, parse_formation_details
from .models import (
    ComparisonResult,
    ComparisonSummary,
    OtherProductionItem,
    OtherProductionResult,
    StaffingResult,
    TrainCategory,
    TrainRecord,
    TrainStaffing,
    UnitTrainData,
    comparison_dataframe,
)
from .rules import (
    ConventionalRule,
    HighSpeedRule,
    OtherConfigType,
    OtherProductionRule,
    ReserveRates,
    StaffingStandard,
    load_standard,
    load_standards,
    total_headcount,
)
from .status_config import DEFAULT_DIFFERENCE_CONFIG, DifferenceConfig, DifferenceType

# Экспорт основных компонентов
__all__ = [
    # Конфигурация
    "APP_CONFIG",
    "AppConfig",
    "DEFAULT_DIFFERENCE_CONFIG",
    "DifferenceConfig",
    "DifferenceType",

    # Исключения
    "StaffingError",
    "StaffingConfigurationError",
    "RuleConfigurationError",
    "EmptyRuleSetError",

    # Поезда
    "TrainRecord",
    "TrainCategory",
    "UnitTrainData",
    "CarCounts",
    "parse_formation_details",

    # Нормативы
    "StaffingStandard",
    "ReserveRates",
    "HighSpeedRule",
    "ConventionalRule",
    "OtherProductionRule",
    "OtherConfigType",
    "load_standard",
    "load_standards",
    "total_headcount",

    # Результаты
    "TrainStaffing",
    "StaffingResult",
    "OtherProductionItem",
    "OtherProductionResult",
    "ComparisonResult",
    "ComparisonSummary",
    "comparison_dataframe",
]

import logging
import sys

_logger = logging.getLogger(__name__)

# Проверка версии Python
if sys.version_info < (3, 12):
    import warnings
    warnings.warn(
        f"Модуль staffing оптимизирован для Python 3.12+. "
        f"Текущая версия: {sys.version_info.major}.{sys.version_info.minor}",
        UserWarning,
        stacklevel=2
    )

_logger.debug(f"Модуль staffing v{__version__} загружен успешно")
