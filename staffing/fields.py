# staffing/fields.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Доступ к логическим полям строк расписания.

Строки приходят от импорта как словари «подпись → значение» с разными
вариантами названий столбцов. Каждая функция ниже владеет всей цепочкой
вариантов для одного логического поля и никогда не бросает исключений
на отсутствующих или пустых значениях.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, TypeAlias

from .utils import first_present, normalize_text, parse_clock, parse_duration, safe_float, safe_int

RawRecord: TypeAlias = Mapping[str, Any]

# =============== ВАРИАНТЫ НАЗВАНИЙ ПОЛЕЙ ===============

RECORD_ID_FIELDS = ('id', 'ID')
SEQUENCE_FIELDS = ('序号', 'sequence', '编号', 'trainSequence', 'trainId')
TRAIN_NUMBER_FIELDS = ('车次', 'trainNumber', 'trainCode', '列车号', '车次号', 'number', 'code')
CATEGORY_FIELDS = ('类别', '编组类型', 'category')
TRAIN_MODEL_FIELDS = ('车型', 'trainType', 'model')
FORMATION_FIELDS = ('编组', 'formation', 'Formation', '列车编组', '编组信息', '车型编组', '编组配置')
FORMATION_DETAIL_FIELDS = ('编组详情', 'formationDetails', 'consist')
SECTION_FIELDS = ('运行区段', 'runningSection', '区段')
SINGLE_TRIP_FIELDS = ('单程工时', '单程运行时间', '运行时间', 'runningTime', '工时', 'workHours')
ROUND_TRIP_FIELDS = ('往返工时', 'roundTripTime')
DEPARTURE_FIELDS = ('始发时间', 'departureTime')
ARRIVAL_FIELDS = ('终到时间', 'arrivalTime')
GROUP_COUNT_FIELDS = ('组数', 'groupCount', '配备组数', '班组数')
BUSINESS_CLASS_COUNT_FIELDS = ('商务座数', '商务座车厢', '商务车厢数', 'businessClassCount')
BUSINESS_CLASS_FLAG_FIELDS = ('商务座', 'businessClass')
UNIT_FIELDS = ('unit', '单位', '客运段')

# Отдельные столбцы с количеством вагонов по типам
CAR_COLUMNS = ('硬座', '软座', '硬卧', '软卧', '餐车', '行李车', '宿营车')

# Составы, в которых бизнес-класс есть всегда
BUSINESS_CLASS_FORMATIONS = ('crh380', 'crh2', '长编组', '16编组')

_GROUP_PATTERN = re.compile(r'(\d+)\s*组')

# =============== СОСТАВ ПОЕЗДА ===============


@dataclass(slots=True, frozen=True)
class CarCounts:
    """Количество вагонов по типам в составе обычного поезда."""
    seat: int = 0
    hard_sleeper: int = 0
    soft_sleeper: int = 0
    dining: int = 0
    baggage: int = 0

    @property
    def total(self) -> int:
        return self.seat + self.hard_sleeper + self.soft_sleeper + self.dining + self.baggage


def _sum_pattern(pattern: str, text: str) -> int:
    return sum(int(value) for value in re.findall(pattern, text))


def parse_formation_details(text: Any) -> CarCounts:
    """Разбор строки состава вида '硬座5 硬卧8 软卧2 餐车1 行李车1'."""
    text = normalize_text(text)
    if not text:
        return CarCounts()

    seat = _sum_pattern(r'(?:硬座|软座|座车)\s*(\d+)', text)
    hard_sleeper = _sum_pattern(r'硬卧\s*(\d+)', text) + _sum_pattern(r'宿营车\s*(\d+)', text)
    soft_sleeper = _sum_pattern(r'软卧\s*(\d+)', text)
    dining = _sum_pattern(r'餐车\s*(\d+)', text)
    baggage = _sum_pattern(r'行李车?\s*(\d+)', text)

    return CarCounts(
        seat=seat,
        hard_sleeper=hard_sleeper,
        soft_sleeper=soft_sleeper,
        dining=dining,
        baggage=baggage,
    )


# =============== ИДЕНТИФИКАЦИЯ ===============


def record_id(raw: RawRecord) -> Optional[str]:
    value = first_present(raw, RECORD_ID_FIELDS)
    return normalize_text(value) if value is not None else None


def train_number(raw: RawRecord) -> str:
    return normalize_text(first_present(raw, TRAIN_NUMBER_FIELDS))


def sequence(raw: RawRecord, position: int = 0) -> str:
    """Порядковый номер; строки одного поезда (по плечам) делят один номер."""
    value = first_present(raw, SEQUENCE_FIELDS)
    if value is not None:
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return normalize_text(value)
    number = train_number(raw)
    return number if number else f"#{position}"


def category_label(raw: RawRecord) -> str:
    return normalize_text(first_present(raw, CATEGORY_FIELDS))


def train_model(raw: RawRecord) -> str:
    return normalize_text(first_present(raw, TRAIN_MODEL_FIELDS))


def formation(raw: RawRecord) -> str:
    """Обозначение состава высокоскоростного поезда ('8编组', '16编组')."""
    return normalize_text(first_present(raw, FORMATION_FIELDS))


def formation_details(raw: RawRecord) -> str:
    """Текст состава обычного поезда; собирается из столбцов вагонов, если они заданы."""
    parts = []
    for column in CAR_COLUMNS:
        count = safe_int(raw.get(column))
        if count > 0:
            parts.append(f"{column}{count}")
    if parts:
        return ' '.join(parts)
    return normalize_text(first_present(raw, FORMATION_DETAIL_FIELDS))


def running_section(raw: RawRecord) -> str:
    return normalize_text(first_present(raw, SECTION_FIELDS))


def unit(raw: RawRecord) -> str:
    return normalize_text(first_present(raw, UNIT_FIELDS))


# =============== ЧИСЛОВЫЕ ПОЛЯ ===============


def single_trip_hours(raw: RawRecord) -> float:
    """
    Время в пути в одну сторону, часы.

    Порядок: явное поле времени в одну сторону, затем половина времени
    оборота, затем разница «прибытие − отправление» с переходом через
    полночь. Если ничего не удалось вычислить, возвращается 0.
    """
    for label in SINGLE_TRIP_FIELDS:
        hours = parse_duration(raw.get(label))
        if hours is not None:
            return hours

    for label in ROUND_TRIP_FIELDS:
        hours = parse_duration(raw.get(label))
        if hours is not None:
            return hours / 2

    departure = parse_clock(first_present(raw, DEPARTURE_FIELDS))
    arrival = parse_clock(first_present(raw, ARRIVAL_FIELDS))
    if departure is not None and arrival is not None:
        if arrival < departure:
            arrival += 24
        return arrival - departure

    return 0.0


def group_count(raw: RawRecord) -> int:
    """Количество бригад (组数), по умолчанию 1."""
    value = first_present(raw, GROUP_COUNT_FIELDS)
    if value is None:
        return 1
    if isinstance(value, str):
        match = _GROUP_PATTERN.search(value)
        if match:
            return max(int(match.group(1)), 1)
    count = safe_int(value)
    return count if count > 0 else 1


def business_class_count(raw: RawRecord) -> int:
    """Число вагонов бизнес-класса; по типу состава, если явно не указано."""
    count = safe_int(first_present(raw, BUSINESS_CLASS_COUNT_FIELDS))
    if count > 0:
        return count

    flag = first_present(raw, BUSINESS_CLASS_FLAG_FIELDS)
    if flag is not None:
        if isinstance(flag, bool):
            return 1 if flag else 0
        number = safe_float(flag, default=-1)
        if number >= 0:
            return int(number)
        if normalize_text(flag) in ('有', '是', 'yes', 'true', 'True'):
            return 1
        return 0

    consist = ' '.join((formation(raw), train_model(raw), category_label(raw))).lower()
    if any(marker in consist for marker in BUSINESS_CLASS_FORMATIONS):
        return 1
    return 0

