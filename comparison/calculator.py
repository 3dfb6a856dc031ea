#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Расчет численности по нескольким нормативам и подразделениям.

Для каждой пары (норматив × подразделение) создаются три движка правил;
результаты подразделений либо суммируются в один итог на норматив,
либо остаются сгруппированными по подразделениям.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeAlias

from engines.base import RuleEngine
from engines.conventional import ConventionalRuleEngine
from engines.high_speed import HighSpeedRuleEngine
from engines.other_production import OtherProductionRuleEngine
from staffing.config import APP_CONFIG, AppConfig
from staffing.errors import EmptyRuleSetError
from staffing.models import (
    ComparisonResult,
    OtherProductionResult,
    StaffingResult,
    TrainRecord,
    UnitTrainData,
)
from staffing.rules import MAIN_PRODUCTION_UNITS, StaffingStandard, load_standard
from staffing.status_config import DEFAULT_DIFFERENCE_CONFIG, DifferenceConfig
from staffing.utils import format_percent, round_half_up, safe_divide

logger = logging.getLogger(__name__)

StandardInput: TypeAlias = StaffingStandard | Mapping[str, Any]
UnitData: TypeAlias = Mapping[str, UnitTrainData | Mapping[str, Any]]

# Название объединенного подразделения, если ни одно не выбрано
MERGED_UNIT_NAME = "多客运段对比"


class MultiStandardCalculator:
    """
    Расчет численности по нескольким нормативам.

    Ошибка конфигурации одного норматива не прерывает расчет остальных:
    она записывается в ``errors`` и в журнал. Категория без правил дает
    нулевой результат, в котором все поезда не сопоставлены.
    """

    def __init__(self, config: AppConfig = APP_CONFIG, max_workers: Optional[int] = None,
                 difference_config: DifferenceConfig = DEFAULT_DIFFERENCE_CONFIG):
        self.config = config
        self.max_workers = max_workers if max_workers is not None else config.max_workers
        self.difference_config = difference_config

        self.errors: Dict[str, str] = {}
        self._stats_lock = threading.Lock()
        self.processing_stats = {
            'last_mode': None,
            'standards_total': 0,
            'standards_calculated': 0,
            'standards_failed': 0,
            'units': 0,
            'empty_rule_sets': 0,
        }

    # ========================== Расчет одной пары ==========================

    def _count_empty_rule_set(self) -> None:
        # вызывается из рабочих потоков
        with self._stats_lock:
            self.processing_stats['empty_rule_sets'] += 1

    def _category_result(self, engine: RuleEngine, trains: Sequence[TrainRecord], unit_name: str) -> StaffingResult:
        try:
            return engine.calculate_unit_staffing(trains, unit_name)
        except EmptyRuleSetError as e:
            logger.warning("%s: %s, все поезда категории считаются несопоставленными", unit_name, e)
            self._count_empty_rule_set()
            return engine.empty_result(trains, unit_name)

    def _other_result(self, engine: OtherProductionRuleEngine, high_speed: StaffingResult,
                      conventional: StaffingResult, unit_name: str) -> OtherProductionResult:
        try:
            return engine.calculate_unit_staffing(high_speed, conventional, unit_name)
        except EmptyRuleSetError as e:
            logger.warning("%s: %s, прочее производство равно нулю", unit_name, e)
            self._count_empty_rule_set()
            return engine.empty_result(unit_name, high_speed.total_with_reserve, conventional.total_with_reserve)

    def calculate_unit(self, standard: StaffingStandard, unit_name: str, data: UnitTrainData) -> ComparisonResult:
        """Расчет всех категорий одного подразделения по одному нормативу."""
        high_speed = self._category_result(
            HighSpeedRuleEngine(standard, self.config), data.high_speed, unit_name
        )
        conventional = self._category_result(
            ConventionalRuleEngine(standard, self.config), data.conventional, unit_name
        )
        other = self._other_result(
            OtherProductionRuleEngine(standard, self.config), high_speed, conventional, unit_name
        )
        return ComparisonResult.build(standard, high_speed, conventional, other, unit_name=unit_name)

    # ========================== Подготовка входных данных ==========================

    def _prepare_units(self, unit_train_data: UnitData, selected_units: Optional[Iterable[str]]) -> Dict[str, UnitTrainData]:
        units = list(selected_units) if selected_units is not None else list(unit_train_data)
        prepared: Dict[str, UnitTrainData] = {}
        for unit in units:
            if unit in prepared:
                continue
            data = unit_train_data.get(unit)
            if data is None:
                logger.warning("Нет данных поездов для подразделения %s", unit)
                continue
            prepared[unit] = UnitTrainData.from_mapping(data, unit)
        self.processing_stats['units'] = len(prepared)
        return prepared

    def _load_standards(self, standards: Iterable[StandardInput]) -> List[StaffingStandard]:
        loaded = []
        for index, item in enumerate(standards):
            try:
                loaded.append(load_standard(item))
            except Exception as e:
                standard_id = self._standard_key(item, index)
                self._record_failure(standard_id, e)
        return loaded

    @staticmethod
    def _standard_key(item: StandardInput, index: int) -> str:
        if isinstance(item, StaffingStandard):
            return item.id
        return str(item.get('id') or f"#{index}")

    def _record_failure(self, standard_id: str, error: Exception) -> None:
        logger.error("Ошибка расчета норматива %s: %s", standard_id, error, exc_info=True)
        self.errors[standard_id] = str(error)
        self.processing_stats['standards_failed'] += 1

    def _reset(self, mode: str) -> None:
        self.errors = {}
        self.processing_stats.update({
            'last_mode': mode,
            'standards_total': 0,
            'standards_calculated': 0,
            'standards_failed': 0,
            'units': 0,
            'empty_rule_sets': 0,
        })

    # ========================== Пакетный расчет ==========================

    def _run_pairs(self, standards: List[StaffingStandard],
                   units: Dict[str, UnitTrainData]) -> Dict[str, Dict[str, ComparisonResult]]:
        """Расчет всех пар (норматив × подразделение); ошибки изолируются по нормативам."""
        pairs: List[Tuple[StaffingStandard, str]] = [(standard, unit) for standard in standards for unit in units]
        outcomes: Dict[Tuple[str, str], ComparisonResult | Exception] = {}

        def run(pair: Tuple[StaffingStandard, str]) -> ComparisonResult:
            standard, unit = pair
            return self.calculate_unit(standard, unit, units[unit])

        if self.max_workers and self.max_workers > 1 and len(pairs) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = {executor.submit(run, pair): pair for pair in pairs}
                for future, (standard, unit) in futures.items():
                    try:
                        outcomes[(standard.id, unit)] = future.result()
                    except Exception as e:
                        outcomes[(standard.id, unit)] = e
        else:
            for standard, unit in pairs:
                try:
                    outcomes[(standard.id, unit)] = run((standard, unit))
                except Exception as e:
                    outcomes[(standard.id, unit)] = e

        results: Dict[str, Dict[str, ComparisonResult]] = {}
        for standard in standards:
            unit_results = {}
            failure = None
            for unit in units:
                outcome = outcomes[(standard.id, unit)]
                if isinstance(outcome, Exception):
                    failure = outcome
                    break
                unit_results[unit] = outcome
            if failure is not None:
                self._record_failure(standard.id, failure)
                continue
            results[standard.id] = unit_results
            self.processing_stats['standards_calculated'] += 1
        return results

    def calculate_multiple_standards(self, unit_train_data: UnitData, standards: Iterable[StandardInput],
                                     selected_units: Optional[Iterable[str]] = None) -> Dict[str, ComparisonResult]:
        """Режим объединения: результаты выбранных подразделений суммируются в один итог на норматив."""
        self._reset('merged')
        logger.info("=== РАСЧЕТ ПО НОРМАТИВАМ (объединение подразделений) ===")

        loaded = self._load_standards(standards)
        self.processing_stats['standards_total'] = len(loaded) + self.processing_stats['standards_failed']
        units = self._prepare_units(unit_train_data, selected_units)
        if not units:
            units = {MERGED_UNIT_NAME: UnitTrainData()}

        merged: Dict[str, ComparisonResult] = {}
        for standard_id, unit_results in self._run_pairs(loaded, units).items():
            standard = next(item for item in loaded if item.id == standard_id)
            merged[standard_id] = self._merge_units(standard, list(unit_results.values()))

        self._log_summary(merged.values())
        return merged

    def calculate_multiple_standards_by_bureau(self, unit_train_data: UnitData, standards: Iterable[StandardInput],
                                               selected_units: Optional[Iterable[str]] = None
                                               ) -> Dict[str, Dict[str, ComparisonResult]]:
        """Режим группировки: {подразделение: {норматив: итог}}."""
        self._reset('grouped')
        logger.info("=== РАСЧЕТ ПО НОРМАТИВАМ (по подразделениям) ===")

        loaded = self._load_standards(standards)
        self.processing_stats['standards_total'] = len(loaded) + self.processing_stats['standards_failed']
        units = self._prepare_units(unit_train_data, selected_units)

        by_standard = self._run_pairs(loaded, units)
        grouped: Dict[str, Dict[str, ComparisonResult]] = {unit: {} for unit in units}
        for standard_id, unit_results in by_standard.items():
            for unit, result in unit_results.items():
                grouped[unit][standard_id] = result

        for unit, results in grouped.items():
            logger.info("Подразделение %s:", unit)
            self._log_summary(results.values())
        return grouped

    @staticmethod
    def _merge_units(standard: StaffingStandard, unit_results: List[ComparisonResult]) -> ComparisonResult:
        if len(unit_results) == 1:
            single = unit_results[0]
            return ComparisonResult.build(standard, single.high_speed, single.conventional,
                                          single.other_production)
        return ComparisonResult.build(
            standard,
            StaffingResult.merge(result.high_speed for result in unit_results),
            StaffingResult.merge(result.conventional for result in unit_results),
            OtherProductionResult.merge(result.other_production for result in unit_results),
        )

    def _log_summary(self, results: Iterable[ComparisonResult]) -> None:
        for result in results:
            logger.info("  %s: всего=%d (ВСМ=%d, обычные=%d, прочие=%d), покрытие=%s, без правила=%d",
                        result.standard_name, result.summary.total_staff,
                        result.high_speed.total_with_reserve, result.conventional.total_with_reserve,
                        result.other_production.total_staff, format_percent(result.summary.coverage_rate),
                        result.summary.unmatched_trains)
        if self.errors:
            logger.warning("Нормативы с ошибками: %s", ", ".join(self.errors))

    # ========================== Сводный анализ нормативов ==========================

    def generate_difference_analysis(self, results: Mapping[str, ComparisonResult],
                                     standards: Iterable[StandardInput]) -> Dict[str, Any]:
        """Сравнение параметров нормативов, разница итогов, ключевые факторы и рекомендации."""
        loaded = [load_standard(item) for item in standards]
        return {
            'standard_comparison': self.compare_standard_parameters(loaded),
            'staffing_differences': self.analyze_staffing_differences(results),
            'key_factors': self.identify_key_factors(loaded),
            'recommendations': self.generate_recommendations(results),
        }

    @staticmethod
    def compare_standard_parameters(standards: List[StaffingStandard]) -> List[Dict[str, Any]]:
        return [
            {
                'id': standard.id,
                'name': standard.name,
                'bureau': standard.bureau_name,
                'standard_work_hours': standard.standard_work_hours,
                'main_production_reserve_rate': {
                    unit: standard.reserve_rates.main_production.get(unit) for unit in MAIN_PRODUCTION_UNITS
                },
                'other_production_reserve_rate': standard.reserve_rates.other_production,
                'high_speed_rules_count': len(standard.high_speed_rules),
                'conventional_rules_count': len(standard.conventional_rules),
                'other_production_rules_count': len(standard.other_production_rules),
            }
            for standard in standards
        ]

    @staticmethod
    def analyze_staffing_differences(results: Mapping[str, ComparisonResult]) -> Optional[Dict[str, Any]]:
        """Разница итогов относительно первого норматива."""
        ordered = list(results.values())
        if len(ordered) < 2:
            return None

        base = ordered[0]
        differences = [
            {
                'standard_id': result.standard_id,
                'standard_name': result.standard_name,
                'total_staff_diff': result.summary.total_staff - base.summary.total_staff,
                'high_speed_diff': result.high_speed.total_with_reserve - base.high_speed.total_with_reserve,
                'conventional_diff': result.conventional.total_with_reserve - base.conventional.total_with_reserve,
                'other_production_diff': result.other_production.total_staff - base.other_production.total_staff,
                'coverage_rate_diff': result.summary.coverage_rate - base.summary.coverage_rate,
            }
            for result in ordered[1:]
        ]
        absolute = [abs(item['total_staff_diff']) for item in differences]
        return {
            'base_standard': {'id': base.standard_id, 'name': base.standard_name},
            'differences': differences,
            'max_difference': max(absolute),
            'avg_difference': sum(absolute) / len(absolute),
        }

    def identify_key_factors(self, standards: List[StaffingStandard]) -> List[Dict[str, str]]:
        if not standards:
            return []
        thresholds = self.difference_config.key_factors
        factors = []

        hours = [standard.standard_work_hours for standard in standards]
        if max(hours) - min(hours) > thresholds.WORK_HOURS_SPREAD:
            factors.append({
                'factor': 'standardWorkHours',
                'description': '标准工时差异显著',
                'impact': 'high',
                'details': f"工时范围：{min(hours):g}h - {max(hours):g}h",
            })

        rates = [
            standard.reserve_rates.main_rate('beijing', self.config.default_main_reserve_rate)
            for standard in standards
        ]
        if max(rates) - min(rates) > thresholds.RESERVE_RATE_SPREAD:
            factors.append({
                'factor': 'reserveRates',
                'description': '预备率设置差异较大',
                'impact': 'medium',
                'details': f"预备率范围：{format_percent(min(rates), 0)} - {format_percent(max(rates), 0)}",
            })

        high_speed_counts = [len(standard.high_speed_rules) for standard in standards]
        conventional_counts = [len(standard.conventional_rules) for standard in standards]
        high_speed_spread = max(high_speed_counts) - min(high_speed_counts)
        conventional_spread = max(conventional_counts) - min(conventional_counts)
        if high_speed_spread > thresholds.RULE_COUNT_SPREAD or conventional_spread > thresholds.RULE_COUNT_SPREAD:
            factors.append({
                'factor': 'rulesCount',
                'description': '规则数量差异可能影响覆盖率',
                'impact': 'medium',
                'details': f"高铁规则差异：{high_speed_spread}，普速规则差异：{conventional_spread}",
            })

        return factors

    def generate_recommendations(self, results: Mapping[str, ComparisonResult]) -> List[Dict[str, str]]:
        ordered = list(results.values())
        if not ordered:
            return []
        thresholds = self.difference_config.key_factors
        recommendations = []

        avg_coverage = sum(result.summary.coverage_rate for result in ordered) / len(ordered)
        if avg_coverage < thresholds.MIN_COVERAGE:
            recommendations.append({
                'type': 'coverage',
                'priority': 'high',
                'title': '提高规则覆盖率',
                'description': f"当前平均覆盖率为{format_percent(avg_coverage, 0)}，建议增加更多匹配规则以提高覆盖率",
            })

        totals = [result.summary.total_staff for result in ordered]
        spread_ratio = safe_divide(max(totals) - min(totals), min(totals))
        if spread_ratio > thresholds.STAFF_SPREAD_RATIO:
            recommendations.append({
                'type': 'standardization',
                'priority': 'medium',
                'title': '标准化定员计算方法',
                'description': f"不同标准间定员差异达{int(round_half_up(spread_ratio * 100))}%，建议统一关键参数设置",
            })

        leanest = min(ordered, key=lambda result: result.summary.total_staff)
        recommendations.append({
            'type': 'efficiency',
            'priority': 'low',
            'title': '参考高效标准',
            'description': f"{leanest.standard_name}标准的定员最少({leanest.summary.total_staff}人)，可考虑参考其配置优化其他标准",
        })

        return recommendations
