# main.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import argparse
import json
import logging
import os
import sys
from datetime import datetime

# Добавляем текущую директорию в путь для импорта модулей
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))


def setup_logging(log_level="INFO", log_dir=None):
    """Настраивает систему логирования"""

    # Создаем директорию для логов если её нет
    if log_dir is None:
        log_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'logs')
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)

    # Формируем имя файла лога с текущей датой
    log_filename = os.path.join(log_dir, f'staffing_{datetime.now().strftime("%Y%m%d")}.log')

    # Настройка корневого логгера
    logging.basicConfig(
        level=getattr(logging, str(log_level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_filename, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ],
        force=True
    )

    # Настройка логгеров для внешних библиотек
    logging.getLogger('numexpr').setLevel(logging.WARNING)
    logging.getLogger('pandas').setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info("=== ЗАПУСК РАСЧЕТА ЧИСЛЕННОСТИ ПОЕЗДНЫХ БРИГАД ===")
    logger.info(f"Версия Python: {sys.version}")
    logger.info(f"Рабочая директория: {os.getcwd()}")
    logger.info(f"Файл логов: {log_filename}")

    return logger


def check_dependencies():
    """Проверяет наличие необходимых зависимостей"""
    logger = logging.getLogger(__name__)

    required_packages = [
        ('pandas', 'pandas'),
        ('numpy', 'numpy'),
    ]

    missing_packages = []

    for package_name, import_name in required_packages:
        try:
            __import__(import_name)
            logger.debug(f"✓ Пакет {package_name} найден")
        except ImportError:
            missing_packages.append(package_name)
            logger.error(f"✗ Пакет {package_name} не найден")

    if missing_packages:
        logger.error("Отсутствуют необходимые пакеты:")
        for package in missing_packages:
            logger.error(f"  - {package}")
        logger.error("Установите отсутствующие пакеты с помощью: pip install " + " ".join(missing_packages))
        return False

    logger.info("Все необходимые зависимости найдены")
    return True


def load_payload(path):
    """Читает JSON с нормативами и поездами подразделений"""
    with open(path, encoding='utf-8') as handle:
        payload = json.load(handle)

    if not isinstance(payload, dict):
        raise ValueError("Ожидается JSON-объект с ключами standards и unitTrainData")
    for key in ('standards', 'unitTrainData'):
        if key not in payload:
            raise ValueError(f"В файле нет ключа '{key}'")
    return payload


def build_parser():
    parser = argparse.ArgumentParser(
        description="Расчет и сравнение численности поездных бригад по нормативам"
    )
    parser.add_argument('payload', help="JSON: standards, unitTrainData, selectedUnits, mode")
    parser.add_argument('--mode', choices=['merged', 'grouped'], default=None,
                        help="объединять подразделения или группировать по ним")
    parser.add_argument('--units', nargs='*', default=None, help="выбранные подразделения")
    parser.add_argument('--workers', type=int, default=None, help="потоков для пар норматив × подразделение")
    parser.add_argument('--differences', action='store_true', help="анализ расхождений по поездам")
    parser.add_argument('--coverage', action='store_true', help="анализ покрытия обычных поездов")
    parser.add_argument('--log-level', default=None, help="уровень логирования (DEBUG, INFO, ...)")
    return parser


def run(args, logger):
    """Выполняет расчет по аргументам командной строки"""
    import pandas as pd

    from comparison import CoverageAnalyzer, DifferenceAnalyzer, MultiStandardCalculator
    from staffing import comparison_dataframe, load_standard

    payload = load_payload(args.payload)
    mode = args.mode or payload.get('mode') or 'merged'
    units = args.units if args.units is not None else payload.get('selectedUnits')

    calculator = MultiStandardCalculator(max_workers=args.workers)
    standards = payload['standards']
    unit_data = payload['unitTrainData']

    with pd.option_context('display.width', 200, 'display.max_columns', 20):
        if mode == 'grouped':
            grouped = calculator.calculate_multiple_standards_by_bureau(unit_data, standards, units)
            for unit, results in grouped.items():
                logger.info("Итоги подразделения %s:\n%s", unit, comparison_dataframe(results.values()).to_string())
            merged_views = list(grouped.values())
        else:
            results = calculator.calculate_multiple_standards(unit_data, standards, units)
            logger.info("Итоги по нормативам:\n%s", comparison_dataframe(results.values()).to_string())
            analysis = calculator.generate_difference_analysis(results, [
                item for item in standards if str(item.get('id')) in results
            ])
            for recommendation in analysis['recommendations']:
                logger.info("[%s] %s: %s", recommendation['priority'], recommendation['title'],
                            recommendation['description'])
            merged_views = [results]

        if args.differences:
            analyzer = DifferenceAnalyzer()
            loaded = [item for item in standards if str(item.get('id')) not in calculator.errors]
            for results in merged_views:
                difference_analysis = analyzer.analyze_train_differences(results, loaded)
                stats = difference_analysis.stats
                logger.info("Расхождений: %d (без расхождений %d), медиана %g, по типам %s",
                            stats.trains_with_differences, stats.trains_without_differences,
                            stats.median_difference, stats.type_counts)
                if difference_analysis.differences:
                    logger.info("\n%s", difference_analysis.to_dataframe().head(50).to_string())

    if args.coverage:
        coverage = CoverageAnalyzer()
        all_conventional = [
            train
            for unit, data in unit_data.items() if units is None or unit in units
            for train in (data.get('conventional') or [])
        ]
        for item in standards:
            if str(item.get('id')) in calculator.errors:
                continue
            standard = load_standard(item)
            # Идентификаторы правил разных нормативов могут совпадать
            coverage.invalidate()
            result = coverage.analyze(all_conventional, standard.conventional_rules)
            logger.info("%s: покрытие %d/%d", standard.name, result.coverage_stats.covered,
                        result.coverage_stats.total)
            for recommendation in result.recommendations:
                logger.info("  [%s] %s / %s: %d поездов", recommendation.priority, recommendation.train_type,
                            recommendation.time_range, recommendation.count)

    if calculator.errors:
        for standard_id, error in calculator.errors.items():
            logger.error("Норматив %s не рассчитан: %s", standard_id, error)
        return False
    return True


def main(argv=None):
    """Главная функция приложения"""
    args = build_parser().parse_args(argv)

    # Настройка логирования
    logger = setup_logging(args.log_level or "INFO")

    try:
        # Проверка зависимостей
        if not check_dependencies():
            logger.error("Проверка зависимостей не пройдена")
            return 1

        ok = run(args, logger)
        logger.info("Расчет завершен" if ok else "Расчет завершен с ошибками")
        return 0 if ok else 1

    except (OSError, ValueError) as e:
        logger.error(f"Ошибка входных данных: {e}")
        return 2

    except Exception as e:
        logger.error(f"Критическая ошибка расчета: {e}")
        logger.exception("Полная информация об ошибке:")
        return 1


if __name__ == "__main__":
    sys.exit(main())
