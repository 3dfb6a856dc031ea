#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Модели нормативов численности и их загрузка из конфигурации.

Конфигурация приходит в формате модуля настройки правил: camelCase-ключи,
проценты числами (8 означает 8%). При загрузке проценты переводятся в доли
0-1, старый формат резервов (одно число на все подразделения) разворачивается
по подразделениям. Структурно некорректные правила отклоняются сразу.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, TypeAlias

from .errors import RuleConfigurationError
from .utils import normalize_text, safe_float, safe_int

logger = logging.getLogger(__name__)

RoleCounts: TypeAlias = Dict[str, int]

# Ключи подразделений, для которых задаются резервы основного производства
MAIN_PRODUCTION_UNITS: Tuple[str, ...] = ('beijing', 'shijiazhuang', 'tianjin')

RAILWAY_BUREAUS: Dict[str, str] = {
    "beijing": "北京局",
    "guangzhou": "广州局",
    "shanghai": "上海局",
    "jinan": "济南局",
    "shenyang": "沈阳局",
    "wuhan": "武汉局",
    "zhengzhou": "郑州局",
    "chengdu": "成都局",
    "custom": "自定义",
}

TIME_RANGES: Tuple[str, ...] = ('under4', '4to12', '12to24', 'over24')


def total_headcount(roles: Mapping[str, int]) -> int:
    """Сумма численности по открытому набору должностей."""
    return sum(count for count in roles.values() if count)


# =============== МОДЕЛИ ===============

@dataclass(slots=True, frozen=True)
class ReserveRates:
    """Резервные коэффициенты (доли 0-1)."""
    main_production: Dict[str, float] = field(default_factory=dict)
    other_production: Optional[float] = None

    def main_rate(self, unit_key: str, default: float) -> float:
        rate = self.main_production.get(unit_key)
        return default if rate is None else rate


@dataclass(slots=True, frozen=True)
class HighSpeedConditions:
    train_types: Tuple[str, ...] = ()
    formations: Tuple[str, ...] = ()
    min_hours: Optional[float] = None
    max_hours: Optional[float] = None
    special_types: Tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class HighSpeedRule:
    """Правило численности высокоскоростного поезда (на одну бригаду)."""
    id: str
    name: str
    conditions: HighSpeedConditions
    staffing: RoleCounts
    description: str = ""

    @property
    def per_group_total(self) -> int:
        return total_headcount(self.staffing)


@dataclass(slots=True, frozen=True)
class AttendantRatio:
    """Норма проводников на тип вагона: строка '1人2车' и нижняя граница."""
    ratio: str
    min_staff: int = 0


@dataclass(slots=True, frozen=True)
class ConventionalConditions:
    train_types: Tuple[str, ...] = ()
    running_time_range: Optional[str] = None
    is_international: Optional[bool] = None
    has_restaurant: Optional[bool] = None
    baggage_staff_when_has_baggage: int = 0


@dataclass(slots=True, frozen=True)
class ConventionalStaffing:
    train_conductor: int = 0
    seat_car: Optional[AttendantRatio] = None
    soft_sleeper: Optional[AttendantRatio] = None
    hard_sleeper: Optional[AttendantRatio] = None
    translator: int = 0
    train_operator: int = 0
    broadcaster: int = 0
    train_duty_officer: int = 0
    baggage_enabled: bool = False
    baggage_staff_per_train: int = 0
    dining_enabled: bool = False
    dining_under_24h: int = 0
    dining_over_24h: int = 0
    sales_enabled: bool = False
    sales_staff_per_group: int = 0


@dataclass(slots=True, frozen=True)
class ConventionalRule:
    """Правило численности обычного поезда."""
    id: str
    name: str
    conditions: ConventionalConditions
    staffing: ConventionalStaffing
    description: str = ""
    notes: Tuple[str, ...] = ()


class OtherConfigType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    FORMULA = "formula"
    SEGMENTED_PERCENTAGE = "segmented_percentage"


@dataclass(slots=True, frozen=True)
class Segment:
    """Сегмент правила прочего производства: доля и ограничения в людях."""
    percentage: float
    min_value: Optional[int] = None
    max_value: Optional[int] = None


@dataclass(slots=True, frozen=True)
class OtherProductionRule:
    """Правило прочего производства (диспетчеры, техники и т.п.)."""
    id: str
    name: str
    config_type: OtherConfigType
    percentage: float = 0.0
    fixed_count: int = 0
    formula: str = ""
    base_on: str = "mainProduction"
    high_speed_segment: Optional[Segment] = None
    conventional_segment: Optional[Segment] = None
    positions: RoleCounts = field(default_factory=dict)
    description: str = ""


@dataclass(slots=True, frozen=True)
class StaffingStandard:
    """Норматив численности железной дороги (бюро)."""
    id: str
    name: str
    bureau: str
    standard_work_hours: float
    reserve_rates: ReserveRates
    high_speed_rules: Tuple[HighSpeedRule, ...] = ()
    conventional_rules: Tuple[ConventionalRule, ...] = ()
    other_production_rules: Tuple[OtherProductionRule, ...] = ()
    description: str = ""

    @property
    def bureau_name(self) -> str:
        return RAILWAY_BUREAUS.get(self.bureau, self.bureau)

    @property
    def rule_count(self) -> int:
        return len(self.high_speed_rules) + len(self.conventional_rules) + len(self.other_production_rules)


# =============== ЗАГРУЗКА ИЗ КОНФИГУРАЦИИ ===============

def _percent(value: Any) -> Optional[float]:
    """Проценты конфигурации (8) в долю (0.08)."""
    if value is None:
        return None
    return safe_float(value) / 100


def _strings(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    return tuple(text for text in (normalize_text(item) for item in value) if text)


def _optional_bool(value: Any) -> Optional[bool]:
    return None if value is None else bool(value)


def _optional_int(value: Any) -> Optional[int]:
    # 0 в конфигурации означает «ограничение не задано»
    number = safe_int(value)
    return number if number > 0 else None


def _require_mapping(data: Mapping[str, Any], key: str, standard_id: str, rule_id: str) -> Mapping[str, Any]:
    value = data.get(key)
    if not isinstance(value, Mapping):
        raise RuleConfigurationError(f"отсутствует объект '{key}'", standard_id, rule_id)
    return value


def _require_list(data: Mapping[str, Any], key: str, standard_id: str) -> List[Any]:
    value = data.get(key)
    if value is None or isinstance(value, (str, Mapping)):
        raise RuleConfigurationError(f"отсутствует массив правил '{key}'", standard_id)
    return list(value)


def load_reserve_rates(data: Optional[Mapping[str, Any]], standard_id: str = "") -> ReserveRates:
    """Резервы из конфигурации, включая старый формат с одним числом."""
    if not data:
        return ReserveRates()

    main = data.get('mainProduction')
    if isinstance(main, Mapping):
        main_rates = {key: _percent(value) for key, value in main.items() if value is not None}
    elif main is not None:
        rate = _percent(main)
        logger.warning("Норматив %s: резерв основного производства в старом формате (%s), "
                       "применяется ко всем подразделениям", standard_id, main)
        main_rates = {key: rate for key in MAIN_PRODUCTION_UNITS}
    else:
        main_rates = {}

    return ReserveRates(
        main_production=main_rates,
        other_production=_percent(data.get('otherProduction')),
    )


def load_high_speed_rule(data: Mapping[str, Any], standard_id: str = "") -> HighSpeedRule:
    rule_id = normalize_text(data.get('id'))
    conditions = _require_mapping(data, 'conditions', standard_id, rule_id)
    staffing = _require_mapping(data, 'staffing', standard_id, rule_id)

    running_time = conditions.get('runningTime') or {}
    min_hours = running_time.get('min')
    max_hours = running_time.get('max')

    return HighSpeedRule(
        id=rule_id,
        name=normalize_text(data.get('name')),
        conditions=HighSpeedConditions(
            train_types=_strings(conditions.get('trainType')),
            formations=_strings(conditions.get('formation')),
            min_hours=None if min_hours is None else safe_float(min_hours),
            max_hours=None if max_hours is None else safe_float(max_hours),
            special_types=_strings(conditions.get('specialType')),
        ),
        staffing={role: safe_int(count) for role, count in staffing.items() if count is not None},
        description=normalize_text(data.get('description')),
    )


def _attendant_ratio(data: Any) -> Optional[AttendantRatio]:
    if not isinstance(data, Mapping):
        return None
    return AttendantRatio(ratio=normalize_text(data.get('ratio')), min_staff=safe_int(data.get('minStaff')))


def load_conventional_rule(data: Mapping[str, Any], standard_id: str = "") -> ConventionalRule:
    rule_id = normalize_text(data.get('id'))
    conditions = _require_mapping(data, 'conditions', standard_id, rule_id)
    staffing = _require_mapping(data, 'staffing', standard_id, rule_id)

    attendants = staffing.get('trainAttendants') or {}
    additional = staffing.get('additionalStaff') or {}
    baggage = staffing.get('baggageStaffConfig') or {}
    dining = staffing.get('diningCarStaff') or {}
    dining_rules = dining.get('rules') or {}
    sales = staffing.get('salesStaff') or {}

    time_range = conditions.get('runningTimeRange') or None
    if time_range is not None and time_range not in TIME_RANGES:
        raise RuleConfigurationError(f"неизвестный диапазон времени '{time_range}'", standard_id, rule_id)

    return ConventionalRule(
        id=rule_id,
        name=normalize_text(data.get('name')),
        conditions=ConventionalConditions(
            train_types=_strings(conditions.get('trainTypes')),
            running_time_range=time_range,
            is_international=_optional_bool(conditions.get('isInternational')),
            has_restaurant=_optional_bool(conditions.get('hasRestaurant')),
            baggage_staff_when_has_baggage=safe_int(conditions.get('baggageStaffWhenHasBaggage')),
        ),
        staffing=ConventionalStaffing(
            train_conductor=safe_int(staffing.get('trainConductor')),
            seat_car=_attendant_ratio(attendants.get('seatCar')),
            soft_sleeper=_attendant_ratio(attendants.get('softSleeper')),
            hard_sleeper=_attendant_ratio(attendants.get('hardSleeper')),
            translator=safe_int(staffing.get('translator')),
            train_operator=safe_int(staffing.get('trainOperator')),
            broadcaster=safe_int(additional.get('broadcaster')),
            train_duty_officer=safe_int(additional.get('trainDutyOfficer')),
            baggage_enabled=bool(baggage.get('enabled')),
            baggage_staff_per_train=safe_int(baggage.get('staffPerTrain')),
            dining_enabled=bool(dining.get('enabled')),
            dining_under_24h=safe_int(dining_rules.get('under24h')),
            dining_over_24h=safe_int(dining_rules.get('over24h')),
            sales_enabled=bool(sales.get('enabled')),
            sales_staff_per_group=safe_int(sales.get('staffPerGroup')),
        ),
        description=normalize_text(data.get('description')),
        notes=_strings(data.get('notes')),
    )


def _segment(data: Any) -> Optional[Segment]:
    if not isinstance(data, Mapping):
        return None
    return Segment(
        percentage=_percent(data.get('percentage')) or 0.0,
        min_value=_optional_int(data.get('minValue')),
        max_value=_optional_int(data.get('maxValue')),
    )


def load_other_production_rule(data: Mapping[str, Any], standard_id: str = "") -> OtherProductionRule:
    rule_id = normalize_text(data.get('id'))
    raw_type = data.get('configType')
    if raw_type is None:
        raise RuleConfigurationError("отсутствует 'configType'", standard_id, rule_id)
    try:
        config_type = OtherConfigType(raw_type)
    except ValueError as e:
        raise RuleConfigurationError(f"неизвестный configType '{raw_type}'", standard_id, rule_id) from e

    config = data.get('config') or {}
    segments = config.get('segments') or {}

    return OtherProductionRule(
        id=rule_id,
        name=normalize_text(data.get('name')),
        config_type=config_type,
        percentage=_percent(config.get('percentage')) or 0.0,
        fixed_count=safe_int(config.get('fixedCount')),
        formula=normalize_text(config.get('formula')),
        base_on=config.get('baseOn') or "mainProduction",
        high_speed_segment=_segment(segments.get('highSpeed')),
        conventional_segment=_segment(segments.get('conventional')),
        positions={name: safe_int(count) for name, count in (data.get('positions') or {}).items()},
        description=normalize_text(data.get('description')),
    )


def load_standard(data: Mapping[str, Any] | StaffingStandard) -> StaffingStandard:
    """Загружает норматив из словаря конфигурации. Готовый норматив возвращается как есть."""
    if isinstance(data, StaffingStandard):
        return data

    standard_id = normalize_text(data.get('id'))
    if not standard_id:
        raise RuleConfigurationError("у норматива нет идентификатора")

    work_hours = safe_float(data.get('standardWorkHours'))
    if work_hours <= 0:
        raise RuleConfigurationError(
            f"некорректное стандартное рабочее время: {data.get('standardWorkHours')}", standard_id
        )

    standard = StaffingStandard(
        id=standard_id,
        name=normalize_text(data.get('name')) or standard_id,
        bureau=normalize_text(data.get('bureau')) or "custom",
        standard_work_hours=work_hours,
        reserve_rates=load_reserve_rates(data.get('reserveRates'), standard_id),
        high_speed_rules=tuple(
            load_high_speed_rule(rule, standard_id) for rule in _require_list(data, 'highSpeedRules', standard_id)
        ),
        conventional_rules=tuple(
            load_conventional_rule(rule, standard_id) for rule in _require_list(data, 'conventionalRules', standard_id)
        ),
        other_production_rules=tuple(
            load_other_production_rule(rule, standard_id)
            for rule in _require_list(data, 'otherProductionRules', standard_id)
        ),
        description=normalize_text(data.get('description')),
    )

    logger.debug("Загружен норматив %s (%s): правил ВСМ=%d, обычных=%d, прочих=%d",
                 standard.id, standard.name, len(standard.high_speed_rules),
                 len(standard.conventional_rules), len(standard.other_production_rules))
    return standard


def load_standards(items: Iterable[Mapping[str, Any] | StaffingStandard]) -> List[StaffingStandard]:
    return [load_standard(item) for item in items]
