#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Движок правил обычных (непригородных) поездов.

Численность считается на одну бригаду по составу поезда: начальник поезда,
проводники по нормам «N人M车» для каждого типа вагонов, дополнительные
должности по флагам правила. Итог умножается на число бригад.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Dict, Optional, Tuple

from staffing.models import TrainCategory, TrainRecord, TrainStaffing
from staffing.rules import AttendantRatio, ConventionalRule, ConventionalStaffing, RoleCounts

from .base import RuleEngine
from .matching import TIME_RANGE_LABELS, category_tag, match_conventional_rule, time_bucket

logger = logging.getLogger(__name__)

_RATIO_PATTERN = re.compile(r'^(\d+)\s*人\s*/?\s*(\d*)\s*车$')

DINING_THRESHOLD_HOURS = 24


def parse_ratio(ratio: str) -> Optional[Tuple[int, int]]:
    """'2人3车' → (2, 3); '1人/车' → (1, 1). None если строка не распознана."""
    match = _RATIO_PATTERN.match((ratio or "").replace(' ', ''))
    if not match:
        return None
    people = int(match.group(1))
    cars = int(match.group(2)) if match.group(2) else 1
    if cars == 0:
        return None
    return people, cars


def attendants_for(cars: int, ratio: Optional[AttendantRatio]) -> int:
    """Проводники на тип вагона: ceil(вагоны × N / M), не меньше нижней границы."""
    if ratio is None or cars <= 0:
        return 0
    parsed = parse_ratio(ratio.ratio)
    if parsed is None:
        logger.warning("Нераспознанная норма проводников '%s', используется минимум %d",
                       ratio.ratio, ratio.min_staff)
        return ratio.min_staff
    people, per_cars = parsed
    return max(math.ceil(cars * people / per_cars), ratio.min_staff)


class ConventionalRuleEngine(RuleEngine):
    """Расчет численности бригад обычных поездов по нормативу."""

    category = TrainCategory.CONVENTIONAL

    @property
    def rules(self) -> Tuple[ConventionalRule, ...]:
        return self.standard.conventional_rules

    def time_label(self, train: TrainRecord) -> str:
        return TIME_RANGE_LABELS[time_bucket(train.running_hours)]

    def group_requirement(self, train: TrainRecord, rule: ConventionalRule) -> RoleCounts:
        """Численность одной бригады по составу поезда."""
        staffing: ConventionalStaffing = rule.staffing
        cars = train.cars
        roles: Dict[str, int] = {
            'trainConductor': staffing.train_conductor,
            'seatCarAttendant': attendants_for(cars.seat, staffing.seat_car),
            'softSleeperAttendant': attendants_for(cars.soft_sleeper, staffing.soft_sleeper),
            'hardSleeperAttendant': attendants_for(cars.hard_sleeper, staffing.hard_sleeper),
            'translator': staffing.translator,
            'trainOperator': staffing.train_operator,
        }

        # 0 означает, что обязанности выполняют проводники
        if staffing.broadcaster:
            roles['broadcaster'] = staffing.broadcaster
        if staffing.train_duty_officer:
            roles['trainDutyOfficer'] = staffing.train_duty_officer

        if cars.baggage > 0:
            baggage = rule.conditions.baggage_staff_when_has_baggage
            if staffing.baggage_enabled and staffing.baggage_staff_per_train:
                baggage = staffing.baggage_staff_per_train
            if baggage:
                roles['baggageStaff'] = baggage

        if staffing.dining_enabled and cars.dining > 0:
            per_car = (staffing.dining_over_24h if train.running_hours >= DINING_THRESHOLD_HOURS
                       else staffing.dining_under_24h)
            if per_car:
                roles['diningCarStaff'] = per_car * cars.dining

        if staffing.sales_enabled and cars.dining == 0 and staffing.sales_staff_per_group:
            roles['salesStaff'] = staffing.sales_staff_per_group

        return {role: count for role, count in roles.items() if count > 0}

    def calculate_train(self, train: TrainRecord) -> TrainStaffing:
        found = match_conventional_rule(train, self.rules)
        if found is None:
            tag = category_tag(train) or "未知类别"
            time_label = self.time_label(train)
            return self.unmatched(
                train,
                f"没有适用于“{tag}”、运行时间{time_label}的定员规则",
                f"建议为 \"{tag}\" 配置 \"{time_label}\" 的定员规则",
            )

        rule = found.rule
        per_group = self.group_requirement(train, rule)
        requirement = {role: count * train.group_count for role, count in per_group.items()}

        warnings = []
        if found.via_fallback:
            warnings.append(f"使用默认规则“{rule.name}”")
        if rule.conditions.has_restaurant and train.cars.dining == 0:
            warnings.append("规则要求餐车，但编组中没有餐车")
        if train.cars.total == 0:
            warnings.append("编组详情为空，仅按固定岗位计算")

        requirement_total = sum(requirement.values())
        logger.debug("Поезд %s: правило '%s', численность %d", train.train_number, rule.name, requirement_total)

        return TrainStaffing(
            train=train,
            category=self.category,
            rule_id=rule.id,
            rule_name=rule.name,
            requirement=requirement,
            exact_total=float(requirement_total),
            group_count=train.group_count,
            matched_conditions=found.matched_conditions,
            warnings=tuple(warnings),
        )
