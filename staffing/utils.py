# staffing/utils.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Общие утилиты для работы с данными."""

from __future__ import annotations

import math
import re
from typing import Any, Iterable, Mapping, Optional

import pandas as pd

# Значения-заглушки, которые импорт оставляет в пустых ячейках (в нижнем регистре)
BLANK_MARKERS = frozenset({
    '-', '—', 'null', 'undefined', '无', '空', 'n/a', 'na', 'nan', 'none',
})

_CLOCK_PATTERN = re.compile(r'^(\d{1,2})[:：](\d{2})(?:[:：]\d{2})?$')

# Допуск на погрешность float при округлении численности вверх
_CEIL_EPSILON = 1e-9


def normalize_text(text: Any) -> str:
    """Единая очистка текста от nbsp/мультипробелов по всему проекту."""
    if text is None:
        return ""
    if isinstance(text, float) and pd.isna(text):
        return ""
    text = str(text)
    if not text:
        return ""
    text = text.replace('\xa0', ' ').replace('　', ' ')
    text = re.sub(r'\s+', ' ', text)
    return text.strip()


def is_blank(value: Any) -> bool:
    """Пустое значение ячейки: None, NaN, пустая строка или заглушка."""
    if value is None:
        return True
    if isinstance(value, float) and pd.isna(value):
        return True
    if isinstance(value, str):
        cleaned = normalize_text(value)
        return not cleaned or cleaned.lower() in BLANK_MARKERS
    return False


def safe_float(value: Any, default: float = 0.0) -> float:
    """Безопасное преобразование к float с обработкой различных входных типов."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return default

    if isinstance(value, bool):
        return float(value)

    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else default

    # Обработка строк
    if isinstance(value, str):
        cleaned = value.strip().replace(' ', '').replace('\xa0', '')
        if cleaned.endswith('.'):
            cleaned = cleaned[:-1]
        cleaned = cleaned.replace(',', '.')

        if not cleaned or cleaned.lower() in BLANK_MARKERS:
            return default

        try:
            result = float(cleaned)
        except (ValueError, TypeError):
            return default
        return result if math.isfinite(result) else default

    try:
        result = float(value)
    except (ValueError, TypeError):
        return default
    return result if math.isfinite(result) else default


def safe_int(value: Any, default: int = 0) -> int:
    """Безопасное преобразование к int."""
    float_val = safe_float(value, float(default))
    if not math.isfinite(float_val):
        return default
    return int(float_val) if float_val == int(float_val) else default


def safe_divide(numerator: Any, denominator: Any, default: float = 0.0) -> float:
    """Безопасное деление с проверкой на None/NaN и деление на ноль."""
    num = safe_float(numerator)
    den = safe_float(denominator)

    if den == 0:
        return default

    return num / den


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Арифметическое округление (0.5 всегда вверх), без банковского режима round()."""
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def ceil_staff(value: float) -> int:
    """Округление численности вверх до целого человека."""
    if value <= 0:
        return 0
    return int(math.ceil(value - _CEIL_EPSILON))


def parse_clock(value: Any) -> Optional[float]:
    """Время 'ЧЧ:ММ' в часы от начала суток; None если формат не распознан."""
    if is_blank(value):
        return None
    match = _CLOCK_PATTERN.match(normalize_text(value))
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 24 or minutes >= 60:
        return None
    return hours + minutes / 60


def parse_duration(value: Any) -> Optional[float]:
    """Длительность в часах: число, числовая строка или 'Ч:ММ'. None если не распознано."""
    if is_blank(value):
        return None

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value) if value > 0 else None

    text = normalize_text(value)
    match = re.match(r'^(\d+)[:：](\d{1,2})$', text)
    if match:
        hours = int(match.group(1)) + int(match.group(2)) / 60
        return hours if hours > 0 else None

    # Допускаем единицы измерения: "12.5小时", "12.5h"
    match = re.match(r'^(\d+(?:[.,]\d+)?)', text)
    if match:
        hours = safe_float(match.group(1))
        return hours if hours > 0 else None

    return None


def first_present(raw: Mapping[str, Any], labels: Iterable[str]) -> Any:
    """Первое непустое значение по списку возможных названий поля."""
    for label in labels:
        value = raw.get(label)
        if not is_blank(value):
            return value
    return None


def format_percent(fraction: float, decimals: int = 2) -> str:
    """Доля 0-1 в строку процентов для пояснений (8%, 5.5%)."""
    return f"{round_half_up(fraction * 100, decimals):g}%"
