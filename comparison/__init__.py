#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Модуль сравнения нормативов численности: расчет по нескольким нормативам,
анализ расхождений по поездам и анализ покрытия правилами.
"""

from __future__ import annotations

__version__ = "1.0.0"
__author__ = "Crew Staffing System"
__description__ = "Сравнение численности поездных бригад по нормативам железных дорог"

from .calculator import MERGED_UNIT_NAME, MultiStandardCalculator
from .coverage import (
    CoverageAnalysis,
    CoverageAnalyzer,
    CoverageRecommendation,
    CoverageStats,
    RuleMatchCache,
    is_conventional_candidate,
)
from .difference_analyzer import (
    DifferenceAnalysis,
    DifferenceAnalyzer,
    DifferenceStats,
    StandardOutcome,
    TrainDifference,
    TrainKey,
    analyze_train_differences,
    median,
)

__all__ = [
    # Расчет
    "MultiStandardCalculator",
    "MERGED_UNIT_NAME",

    # Расхождения
    "DifferenceAnalyzer",
    "DifferenceAnalysis",
    "DifferenceStats",
    "TrainDifference",
    "StandardOutcome",
    "TrainKey",
    "analyze_train_differences",
    "median",

    # Покрытие
    "CoverageAnalyzer",
    "CoverageAnalysis",
    "CoverageStats",
    "CoverageRecommendation",
    "RuleMatchCache",
    "is_conventional_candidate",
]

import logging

_logger = logging.getLogger(__name__)
_logger.debug(f"Модуль comparison v{__version__} загружен успешно")
