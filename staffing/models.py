#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Модели данных расчета численности: поезда, результаты по подразделению,
результаты сравнения нормативов.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, TypeAlias

import pandas as pd

from . import fields
from .fields import CarCounts, parse_formation_details
from .rules import OtherProductionRule, RoleCounts, total_headcount
from .utils import safe_divide

TrainRows: TypeAlias = Iterable["Mapping[str, Any] | TrainRecord"]

TRAIN_COLUMNS: Tuple[str, ...] = ('序号', '车次', '类别', '编组', '单程工时', '组数', '匹配规则', '定员', '未匹配原因')

# =============== ENUMS ===============

class TrainCategory(Enum):
    """Категории поездов."""
    HIGH_SPEED = "highSpeed"
    CONVENTIONAL = "conventional"

    @property
    def label(self) -> str:
        return "高铁" if self is TrainCategory.HIGH_SPEED else "普速"


# =============== ПОЕЗД ===============

@dataclass(slots=True, frozen=True)
class TrainRecord:
    """Нормализованная строка расписания (один поезд)."""
    train_number: str
    sequence: str
    record_id: Optional[str] = None
    category: str = ""
    train_model: str = ""
    formation: str = ""
    formation_details: str = ""
    running_section: str = ""
    running_hours: float = 0.0
    group_count: int = 1
    business_class_count: int = 0
    unit: str = ""
    cars: CarCounts = field(default_factory=CarCounts)
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | TrainRecord, unit: Optional[str] = None,
                     position: int = 0) -> TrainRecord:
        """Создает запись из словаря импорта; готовая запись возвращается без изменений."""
        if isinstance(raw, TrainRecord):
            return raw

        details = fields.formation_details(raw)
        return cls(
            train_number=fields.train_number(raw),
            sequence=fields.sequence(raw, position),
            record_id=fields.record_id(raw),
            category=fields.category_label(raw),
            train_model=fields.train_model(raw),
            formation=fields.formation(raw),
            formation_details=details,
            running_section=fields.running_section(raw),
            running_hours=fields.single_trip_hours(raw),
            group_count=fields.group_count(raw),
            business_class_count=fields.business_class_count(raw),
            unit=unit or fields.unit(raw),
            cars=parse_formation_details(details),
            raw=dict(raw),
        )

    @property
    def display_formation(self) -> str:
        """Состав для отчетов и ключей сверки."""
        return self.formation or self.formation_details or self.category or self.train_model

    @property
    def has_business_class(self) -> bool:
        return self.business_class_count > 0


def to_records(rows: TrainRows, unit: Optional[str] = None) -> List[TrainRecord]:
    return [TrainRecord.from_mapping(row, unit, position) for position, row in enumerate(rows or ())]


@dataclass(slots=True, frozen=True)
class UnitTrainData:
    """Поезда одного подразделения по категориям."""
    high_speed: Tuple[TrainRecord, ...] = ()
    conventional: Tuple[TrainRecord, ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | UnitTrainData, unit: Optional[str] = None) -> UnitTrainData:
        if isinstance(data, UnitTrainData):
            return data
        high_speed = data.get('highSpeed', data.get('高铁')) or ()
        conventional = data.get('conventional', data.get('普速')) or ()
        return cls(
            high_speed=tuple(to_records(high_speed, unit)),
            conventional=tuple(to_records(conventional, unit)),
        )

    def trains(self, category: TrainCategory) -> Tuple[TrainRecord, ...]:
        return self.high_speed if category is TrainCategory.HIGH_SPEED else self.conventional


# =============== РЕЗУЛЬТАТЫ ПО ПОЕЗДУ ===============

@dataclass(slots=True, frozen=True)
class TrainStaffing:
    """Требуемая численность для одного поезда по одному нормативу."""
    train: TrainRecord
    category: TrainCategory
    rule_id: Optional[str] = None
    rule_name: Optional[str] = None
    requirement: RoleCounts = field(default_factory=dict)
    exact_total: float = 0.0
    group_count: int = 1
    adjustment_factor: float = 1.0
    matched_conditions: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    unmatched_reason: str = ""
    suggested_action: str = ""

    @property
    def is_matched(self) -> bool:
        return self.rule_id is not None

    @property
    def total_staff(self) -> int:
        return total_headcount(self.requirement)

    def to_row(self) -> Dict[str, Any]:
        row = {
            '序号': self.train.sequence,
            '车次': self.train.train_number,
            '类别': self.train.category,
            '编组': self.train.display_formation,
            '单程工时': self.train.running_hours,
            '组数': self.group_count,
            '匹配规则': self.rule_name or "",
            '定员': self.total_staff,
            '未匹配原因': self.unmatched_reason,
        }
        row.update(self.requirement)
        return row


# =============== РЕЗУЛЬТАТЫ ПО ПОДРАЗДЕЛЕНИЮ ===============

@dataclass(slots=True, frozen=True)
class StaffingResult:
    """
    Результат расчета одной категории поездов для подразделения по нормативу.

    Неизменяемый снимок: пересчет создает новый объект. Поезда без подходящего
    правила остаются в ``trains`` с причиной и рекомендацией, но не входят в
    итоги.
    """
    unit_name: str
    category: TrainCategory
    standard_id: str
    standard_name: str
    trains: Tuple[TrainStaffing, ...] = ()
    exact_total: float = 0.0
    reserve_rate: Optional[float] = None
    total_with_reserve: int = 0

    @property
    def matched_trains(self) -> Tuple[TrainStaffing, ...]:
        return tuple(train for train in self.trains if train.is_matched)

    @property
    def unmatched_trains(self) -> Tuple[TrainStaffing, ...]:
        return tuple(train for train in self.trains if not train.is_matched)

    @property
    def matched_count(self) -> int:
        return sum(1 for train in self.trains if train.is_matched)

    @property
    def unmatched_count(self) -> int:
        return len(self.trains) - self.matched_count

    @property
    def total_staff(self) -> int:
        """Сумма численности по поездам с найденным правилом (без резерва)."""
        return sum(train.total_staff for train in self.trains if train.is_matched)

    @property
    def role_breakdown(self) -> RoleCounts:
        breakdown: RoleCounts = {}
        for train in self.trains:
            if not train.is_matched:
                continue
            for role, count in train.requirement.items():
                breakdown[role] = breakdown.get(role, 0) + count
        return breakdown

    @property
    def coverage_rate(self) -> float:
        if self.unmatched_count == 0:
            return 1.0
        return safe_divide(self.matched_count, len(self.trains))

    @classmethod
    def merge(cls, results: Iterable[StaffingResult], unit_name: Optional[str] = None) -> StaffingResult:
        """Суммирует результаты одной категории и одного норматива по нескольким подразделениям."""
        results = list(results)
        if not results:
            raise ValueError("Нет результатов для объединения")

        first = results[0]
        if any(result.category is not first.category or result.standard_id != first.standard_id
               for result in results):
            raise ValueError("Объединять можно только результаты одной категории и одного норматива")

        rates = {result.reserve_rate for result in results}
        return cls(
            unit_name=unit_name or "、".join(result.unit_name for result in results),
            category=first.category,
            standard_id=first.standard_id,
            standard_name=first.standard_name,
            trains=tuple(train for result in results for train in result.trains),
            exact_total=sum(result.exact_total for result in results),
            reserve_rate=first.reserve_rate if len(rates) == 1 else None,
            total_with_reserve=sum(result.total_with_reserve for result in results),
        )

    def to_dataframe(self) -> pd.DataFrame:
        """Таблица поездов результата: одна строка на поезд."""
        rows = [train.to_row() for train in self.trains]
        if not rows:
            return pd.DataFrame(columns=['单位', *TRAIN_COLUMNS])
        df = pd.DataFrame(rows)
        role_columns = [column for column in df.columns if column not in TRAIN_COLUMNS]
        if role_columns:
            df[role_columns] = df[role_columns].fillna(0).astype(int)
        df.insert(0, '单位', self.unit_name)
        return df


# =============== ПРОЧЕЕ ПРОИЗВОДСТВО ===============

@dataclass(slots=True, frozen=True)
class OtherProductionItem:
    """Применение одного правила прочего производства."""
    rule: OtherProductionRule
    calculated_staff: int
    calculation: str
    breakdown: Dict[str, int] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class OtherProductionResult:
    unit_name: str
    standard_id: str
    high_speed_total: int = 0
    conventional_total: int = 0
    applied_rules: Tuple[OtherProductionItem, ...] = ()
    base_total: int = 0
    reserve_rate: float = 0.0
    total_staff: int = 0

    @property
    def main_production_total(self) -> int:
        return self.high_speed_total + self.conventional_total

    @classmethod
    def merge(cls, results: Iterable[OtherProductionResult], unit_name: Optional[str] = None) -> OtherProductionResult:
        """Суммирует результаты прочего производства по подразделениям (по правилам)."""
        results = list(results)
        if not results:
            raise ValueError("Нет результатов для объединения")

        items: Dict[str, OtherProductionItem] = {}
        for result in results:
            for item in result.applied_rules:
                existing = items.get(item.rule.id)
                if existing is None:
                    items[item.rule.id] = item
                    continue
                breakdown = dict(existing.breakdown)
                for part, count in item.breakdown.items():
                    breakdown[part] = breakdown.get(part, 0) + count
                items[item.rule.id] = OtherProductionItem(
                    rule=existing.rule,
                    calculated_staff=existing.calculated_staff + item.calculated_staff,
                    calculation=f"{existing.calculation}; {item.calculation}",
                    breakdown=breakdown,
                )

        return cls(
            unit_name=unit_name or "、".join(result.unit_name for result in results),
            standard_id=results[0].standard_id,
            high_speed_total=sum(result.high_speed_total for result in results),
            conventional_total=sum(result.conventional_total for result in results),
            applied_rules=tuple(items.values()),
            base_total=sum(result.base_total for result in results),
            reserve_rate=results[0].reserve_rate,
            total_staff=sum(result.total_staff for result in results),
        )


# =============== СРАВНЕНИЕ НОРМАТИВОВ ===============

@dataclass(slots=True, frozen=True)
class ComparisonSummary:
    total_staff: int
    coverage_rate: float
    unmatched_trains: int
    total_trains: int


@dataclass(slots=True, frozen=True)
class ComparisonResult:
    """Итог по одному нормативу (и, в режиме группировки, одному подразделению)."""
    standard_id: str
    standard_name: str
    bureau: str
    bureau_name: str
    high_speed: StaffingResult
    conventional: StaffingResult
    other_production: OtherProductionResult
    summary: ComparisonSummary
    unit_name: Optional[str] = None

    @classmethod
    def build(cls, standard, high_speed: StaffingResult, conventional: StaffingResult,
              other_production: OtherProductionResult, unit_name: Optional[str] = None) -> ComparisonResult:
        """Собирает итог; покрытие берется из категорий, а не пересчитывается по поездам."""
        matched = high_speed.matched_count + conventional.matched_count
        unmatched = high_speed.unmatched_count + conventional.unmatched_count
        summary = ComparisonSummary(
            total_staff=high_speed.total_with_reserve + conventional.total_with_reserve + other_production.total_staff,
            coverage_rate=1.0 if unmatched == 0 else safe_divide(matched, matched + unmatched),
            unmatched_trains=unmatched,
            total_trains=matched + unmatched,
        )
        return cls(
            standard_id=standard.id,
            standard_name=standard.name,
            bureau=standard.bureau,
            bureau_name=standard.bureau_name,
            high_speed=high_speed,
            conventional=conventional,
            other_production=other_production,
            summary=summary,
            unit_name=unit_name,
        )

    def category_result(self, category: TrainCategory) -> StaffingResult:
        return self.high_speed if category is TrainCategory.HIGH_SPEED else self.conventional

    def to_row(self) -> Dict[str, Any]:
        return {
            '标准': self.standard_name,
            '路局': self.bureau_name,
            '单位': self.unit_name or "",
            '高铁定员': self.high_speed.total_with_reserve,
            '普速定员': self.conventional.total_with_reserve,
            '其余生产定员': self.other_production.total_staff,
            '总定员': self.summary.total_staff,
            '覆盖率': self.summary.coverage_rate,
            '未匹配车次': self.summary.unmatched_trains,
        }


def comparison_dataframe(results: Iterable[ComparisonResult]) -> pd.DataFrame:
    """Сводная таблица сравнения нормативов."""
    return pd.DataFrame([result.to_row() for result in results])
