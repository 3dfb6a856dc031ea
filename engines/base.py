#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Общая часть движков правил: отбор поездов, резервы, сборка результата."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import Counter
from typing import Dict, List, Tuple

from staffing.config import APP_CONFIG, AppConfig
from staffing.errors import EmptyRuleSetError
from staffing.models import StaffingResult, TrainCategory, TrainRecord, TrainRows, TrainStaffing, to_records
from staffing.rules import StaffingStandard, load_standard
from staffing.utils import ceil_staff

logger = logging.getLogger(__name__)


def select_representatives(trains: List[TrainRecord]) -> List[TrainRecord]:
    """Одна строка на поезд: строки с одинаковым порядковым номером описывают плечи одного поезда."""
    seen = set()
    representatives = []
    for train in trains:
        if train.sequence in seen:
            continue
        seen.add(train.sequence)
        representatives.append(train)

    dropped = len(trains) - len(representatives)
    if dropped:
        logger.debug("Пропущено повторных строк поездов: %d", dropped)
    return representatives


class RuleEngine(ABC):
    """
    Базовый движок правил одной категории поездов.

    Создается для одного норматива и читает только его правила.
    Поезд без подходящего правила не является ошибкой: он остается
    в результате с причиной и рекомендацией.
    """

    category: TrainCategory

    def __init__(self, standard: StaffingStandard, config: AppConfig = APP_CONFIG):
        self.standard = load_standard(standard)
        self.config = config

    @property
    @abstractmethod
    def rules(self) -> Tuple:
        """Правила категории в порядке объявления."""

    @abstractmethod
    def calculate_train(self, train: TrainRecord) -> TrainStaffing:
        """Численность одного поезда (или запись о несопоставленном поезде)."""

    def ensure_rules(self) -> None:
        if not self.rules:
            raise EmptyRuleSetError(self.category.value, self.standard.id)

    def reserve_rate(self, unit_name: str) -> float:
        """Резерв основного производства для подразделения (доля)."""
        return self.standard.reserve_rates.main_rate(
            self.config.unit_key(unit_name), self.config.default_main_reserve_rate
        )

    def calculate_unit_staffing(self, trains: TrainRows, unit_name: str) -> StaffingResult:
        """Расчет численности категории для подразделения."""
        self.ensure_rules()

        records = select_representatives(to_records(trains, unit_name))
        staffing = tuple(self.calculate_train(train) for train in records)
        result = self._build_result(unit_name, staffing)

        logger.info("%s | %s | %s: поездов=%d, сопоставлено=%d, численность=%d (с резервом %d)",
                    self.standard.name, unit_name, self.category.label, len(staffing),
                    result.matched_count, result.total_staff, result.total_with_reserve)
        if result.unmatched_count:
            logger.warning("%s | %s | %s: без правила %d поездов: %s",
                           self.standard.name, unit_name, self.category.label, result.unmatched_count,
                           ", ".join(train.train.train_number or train.train.sequence
                                     for train in result.unmatched_trains[:10]))
        return result

    def empty_result(self, trains: TrainRows, unit_name: str) -> StaffingResult:
        """Нулевой результат, в котором все поезда не сопоставлены (норматив без правил)."""
        reason = f"标准未配置{self.category.label}定员规则"
        action = f"请在标准“{self.standard.name}”中添加{self.category.label}定员规则"
        staffing = tuple(
            self.unmatched(train, reason, action)
            for train in select_representatives(to_records(trains, unit_name))
        )
        return self._build_result(unit_name, staffing)

    def unmatched(self, train: TrainRecord, reason: str, action: str = "") -> TrainStaffing:
        return TrainStaffing(
            train=train,
            category=self.category,
            group_count=train.group_count,
            unmatched_reason=reason,
            suggested_action=action,
        )

    def time_label(self, train: TrainRecord) -> str:
        """Подпись диапазона времени для анализа несопоставленных поездов."""
        return "12小时以上" if train.running_hours >= 12 else "12小时以下"

    def unmatched_analysis(self, result: StaffingResult) -> Dict[str, Dict[str, int]]:
        """Группировка несопоставленных поездов по составу и по времени в пути."""
        unmatched = result.unmatched_trains
        by_formation = Counter(train.train.display_formation or "未知编组" for train in unmatched)
        by_time = Counter(self.time_label(train.train) for train in unmatched)
        return {
            'by_formation': dict(by_formation.most_common()),
            'by_time_range': dict(by_time.most_common()),
        }

    def _build_result(self, unit_name: str, staffing: Tuple[TrainStaffing, ...]) -> StaffingResult:
        rate = self.reserve_rate(unit_name)
        exact_total = sum(train.exact_total for train in staffing if train.is_matched)
        return StaffingResult(
            unit_name=unit_name,
            category=self.category,
            standard_id=self.standard.id,
            standard_name=self.standard.name,
            trains=staffing,
            exact_total=exact_total,
            reserve_rate=rate,
            total_with_reserve=ceil_staff(exact_total * (1 + rate)),
        )
