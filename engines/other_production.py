#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Движок правил прочего производства.

Численность прочего производства считается от итогов основного
производства (высокоскоростные и обычные поезда с резервом) того же
подразделения: процентом, фиксированным числом, формулой или раздельными
процентами по категориям с ограничениями.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Optional, Tuple

from staffing.config import APP_CONFIG, AppConfig
from staffing.errors import EmptyRuleSetError
from staffing.models import OtherProductionItem, OtherProductionResult, StaffingResult
from staffing.rules import OtherConfigType, OtherProductionRule, Segment, StaffingStandard, load_standard
from staffing.utils import ceil_staff, format_percent

logger = logging.getLogger(__name__)

_FORMULA_PATTERN = re.compile(r'(\d+(?:\.\d+)?)\s*\*\s*主要生产组')

CATEGORY = "otherProduction"


def _clamp(value: int, segment: Segment) -> int:
    if segment.min_value is not None and value < segment.min_value:
        value = segment.min_value
    if segment.max_value is not None and value > segment.max_value:
        value = segment.max_value
    return value


class OtherProductionRuleEngine:
    """Расчет численности прочего производства по нормативу."""

    def __init__(self, standard: StaffingStandard, config: AppConfig = APP_CONFIG):
        self.standard = load_standard(standard)
        self.config = config

    @property
    def rules(self) -> Tuple[OtherProductionRule, ...]:
        return self.standard.other_production_rules

    @property
    def reserve_rate(self) -> float:
        rate = self.standard.reserve_rates.other_production
        return self.config.default_other_reserve_rate if rate is None else rate

    def ensure_rules(self) -> None:
        if not self.rules:
            raise EmptyRuleSetError(CATEGORY, self.standard.id)

    def apply_rule(self, rule: OtherProductionRule, high_speed_total: int,
                   conventional_total: int) -> OtherProductionItem:
        """Применение одного правила к итогам основного производства."""
        main_total = high_speed_total + conventional_total
        breakdown: Dict[str, int] = {}

        match rule.config_type:
            case OtherConfigType.PERCENTAGE:
                staff = ceil_staff(main_total * rule.percentage)
                calculation = f"{main_total}人 × {format_percent(rule.percentage)} = {staff}人"

            case OtherConfigType.FIXED:
                staff = rule.fixed_count
                calculation = f"固定配置 {staff}人"

            case OtherConfigType.FORMULA:
                found = _FORMULA_PATTERN.search(rule.formula)
                if found:
                    multiplier = float(found.group(1))
                    staff = ceil_staff(main_total * multiplier)
                    calculation = f"{main_total}人 × {multiplier:g} = {staff}人"
                else:
                    staff = 0
                    calculation = f"公式解析失败: {rule.formula}"
                    logger.warning("Норматив %s, правило '%s': не удалось разобрать формулу '%s'",
                                   self.standard.id, rule.name, rule.formula)

            case OtherConfigType.SEGMENTED_PERCENTAGE:
                parts = []
                staff = 0
                for key, label, segment, base in (
                    ('highSpeedPart', '高铁', rule.high_speed_segment, high_speed_total),
                    ('conventionalPart', '普速', rule.conventional_segment, conventional_total),
                ):
                    if segment is None or base <= 0:
                        continue
                    part = _clamp(ceil_staff(base * segment.percentage), segment)
                    breakdown[key] = part
                    staff += part
                    parts.append(f"{label}: {base}人 × {format_percent(segment.percentage)} = {part}人")
                calculation = (" + ".join(parts) if parts else "无有效配置") + f" = {staff}人"

        return OtherProductionItem(rule=rule, calculated_staff=staff, calculation=calculation, breakdown=breakdown)

    def calculate_unit_staffing(self, high_speed: Optional[StaffingResult], conventional: Optional[StaffingResult],
                                unit_name: str) -> OtherProductionResult:
        """Расчет прочего производства подразделения от итогов основного производства."""
        self.ensure_rules()

        high_speed_total = high_speed.total_with_reserve if high_speed else 0
        conventional_total = conventional.total_with_reserve if conventional else 0

        if high_speed_total + conventional_total == 0:
            logger.info("%s | %s: основное производство пусто, прочее производство не рассчитывается",
                        self.standard.name, unit_name)
            return self.empty_result(unit_name, high_speed_total, conventional_total)

        items = tuple(self.apply_rule(rule, high_speed_total, conventional_total) for rule in self.rules)
        base_total = sum(item.calculated_staff for item in items)
        total_staff = ceil_staff(base_total * (1 + self.reserve_rate))

        logger.info("%s | %s | 其余生产: база=%d, резерв=%s, итого=%d",
                    self.standard.name, unit_name, base_total, format_percent(self.reserve_rate), total_staff)

        return OtherProductionResult(
            unit_name=unit_name,
            standard_id=self.standard.id,
            high_speed_total=high_speed_total,
            conventional_total=conventional_total,
            applied_rules=items,
            base_total=base_total,
            reserve_rate=self.reserve_rate,
            total_staff=total_staff,
        )

    def empty_result(self, unit_name: str, high_speed_total: int = 0,
                     conventional_total: int = 0) -> OtherProductionResult:
        return OtherProductionResult(
            unit_name=unit_name,
            standard_id=self.standard.id,
            high_speed_total=high_speed_total,
            conventional_total=conventional_total,
            reserve_rate=self.reserve_rate,
        )
