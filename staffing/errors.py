# staffing/errors.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Иерархия исключений системы расчета штатной численности."""

from __future__ import annotations


class StaffingError(Exception):
    """Базовое исключение системы расчета численности."""


class StaffingConfigurationError(StaffingError):
    """Ошибка конфигурации норматива (правила, резервы, структура)."""

    def __init__(self, message: str, standard_id: str | None = None):
        self.standard_id = standard_id
        if standard_id:
            message = f"[{standard_id}] {message}"
        super().__init__(message)


class RuleConfigurationError(StaffingConfigurationError):
    """Структурно некорректное правило: нет conditions/staffing/configType."""

    def __init__(self, message: str, standard_id: str | None = None, rule_id: str | None = None):
        self.rule_id = rule_id
        if rule_id:
            message = f"правило {rule_id}: {message}"
        super().__init__(message, standard_id)


class EmptyRuleSetError(StaffingConfigurationError):
    """В нормативе нет ни одного правила для требуемой категории."""

    def __init__(self, category: str, standard_id: str | None = None):
        self.category = category
        super().__init__(f"нет правил для категории '{category}'", standard_id)
