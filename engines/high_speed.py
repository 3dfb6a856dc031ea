#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Движок правил высокоскоростных поездов.

Правило подбирается по составу (编组), типу подвижного состава и времени
в пути. Численность правила задана на одну бригаду; число бригад
корректируется отношением базового рабочего времени к рабочему времени
норматива, итог округляется вверх и распределяется по должностям.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from staffing.models import TrainCategory, TrainRecord, TrainStaffing
from staffing.rules import HighSpeedRule, RoleCounts, total_headcount
from staffing.utils import ceil_staff

from .base import RuleEngine

logger = logging.getLogger(__name__)

BUSINESS_CLASS_ROLE = 'businessClassAttendant'


def allocate_roles(per_group: RoleCounts, total: int) -> RoleCounts:
    """
    Распределяет целый итог по должностям пропорционально нормам на бригаду.

    Метод наибольших остатков: сумма по должностям всегда равна итогу.
    """
    per_group_total = total_headcount(per_group)
    roles = [role for role, count in per_group.items() if count > 0]
    if per_group_total == 0 or not roles:
        return {}

    quotas = {role: total * per_group[role] / per_group_total for role in roles}
    allocation = {role: int(quotas[role]) for role in roles}
    remainder = total - sum(allocation.values())

    # Порядок объявления должностей решает при равных остатках
    by_fraction = sorted(roles, key=lambda role: quotas[role] - allocation[role], reverse=True)
    for role in by_fraction[:remainder]:
        allocation[role] += 1

    return allocation


class HighSpeedRuleEngine(RuleEngine):
    """Расчет численности бригад высокоскоростных поездов по нормативу."""

    category = TrainCategory.HIGH_SPEED

    @property
    def rules(self) -> Tuple[HighSpeedRule, ...]:
        return self.standard.high_speed_rules

    @property
    def adjustment_factor(self) -> float:
        return self.config.base_work_hours / self.standard.standard_work_hours

    def find_matching_rule(self, train: TrainRecord) -> Optional[Tuple[HighSpeedRule, Tuple[str, ...]]]:
        """Первое по порядку правило, все заданные условия которого выполнены."""
        formation = train.formation.strip().lower()
        model_tag = f"{train.train_model} {train.category}".lower()
        hours = train.running_hours

        for rule in self.rules:
            conditions = rule.conditions
            matched = []

            if conditions.formations:
                if not any(formation == item.lower() for item in conditions.formations):
                    continue
                matched.append(f"编组: {train.formation}")

            if conditions.train_types:
                hit = next((item for item in conditions.train_types if item.lower() in model_tag), None)
                if hit is None:
                    continue
                matched.append(f"车型: {hit}")

            if conditions.min_hours is not None and hours < conditions.min_hours:
                continue
            if conditions.max_hours is not None and hours > conditions.max_hours:
                continue
            if conditions.min_hours is not None or conditions.max_hours is not None:
                low = conditions.min_hours if conditions.min_hours is not None else 0
                high = f"{conditions.max_hours:g}" if conditions.max_hours is not None else "∞"
                matched.append(f"运行时间: {low:g}-{high}小时")

            logger.debug("Поезд %s: правило '%s' (%s)", train.train_number, rule.name, ", ".join(matched))
            return rule, tuple(matched)

        return None

    def calculate_train(self, train: TrainRecord) -> TrainStaffing:
        if not train.formation:
            return self.unmatched(train, "缺少编组信息", "请补充列车编组信息")

        found = self.find_matching_rule(train)
        if found is None:
            time_label = self.time_label(train)
            return self.unmatched(
                train,
                f"没有适用于“{train.formation}”编组、单程{train.running_hours:g}小时的定员规则",
                f"建议为 \"{train.formation}\" 编组配置 \"{time_label}\" 的定员规则",
            )

        rule, matched_conditions = found
        per_group: Dict[str, int] = dict(rule.staffing)
        warnings = []

        if per_group.get(BUSINESS_CLASS_ROLE, 0) > 0 and not train.has_business_class:
            per_group[BUSINESS_CLASS_ROLE] = 0
            warnings.append("列车无商务座，不配置商务座服务员")

        factor = self.adjustment_factor
        adjusted_groups = train.group_count * factor
        exact_total = total_headcount(per_group) * adjusted_groups
        total = ceil_staff(exact_total)

        if factor != 1:
            warnings.append(f"组数已调整: {train.group_count} → {adjusted_groups:.2f} (系数: {factor:.3f})")

        return TrainStaffing(
            train=train,
            category=self.category,
            rule_id=rule.id,
            rule_name=rule.name,
            requirement=allocate_roles(per_group, total),
            exact_total=exact_total,
            group_count=train.group_count,
            adjustment_factor=factor,
            matched_conditions=matched_conditions,
            warnings=tuple(warnings),
        )
