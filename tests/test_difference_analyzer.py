import pytest

from comparison import DifferenceAnalyzer, MultiStandardCalculator, TrainKey, analyze_train_differences, median
from staffing.status_config import DEFAULT_DIFFERENCE_CONFIG, DifferenceType, Severity, validate_difference_config


def conductor_rule(rule_id, name, train_type, count):
    return {
        "id": rule_id,
        "name": name,
        "conditions": {"trainTypes": [train_type]},
        "staffing": {"trainConductor": count},
    }


def seat_rule(ratio):
    return {
        "id": "k",
        "name": "K快车",
        "conditions": {"trainTypes": ["K快车"]},
        "staffing": {"trainConductor": 1, "trainAttendants": {"seatCar": {"ratio": ratio, "minStaff": 1}}},
    }


EIGHT_CAR_RULE = {
    "id": "hs",
    "name": "8编组",
    "conditions": {"formation": ["8编组"]},
    "staffing": {"trainConductor": 2, "trainAttendant": 8},
}

G101_RULE = {
    "id": "hs-g101",
    "name": "CRH380D 8编组",
    "conditions": {"formation": ["8编组"], "trainType": ["CRH380D"]},
    "staffing": {"trainConductor": 2, "trainAttendant": 9, "businessClassAttendant": 1},
}

K1 = {"序号": 1, "车次": "K1", "类别": "K快车", "单程运行时间": 8, "编组详情": "硬座6"}
T1 = {"序号": 2, "车次": "T1", "类别": "T特快列车", "单程运行时间": 8}


def calculate(standards, high_speed=(), conventional=()):
    data = {"北京客运段": {"highSpeed": list(high_speed), "conventional": list(conventional)}}
    return MultiStandardCalculator().calculate_multiple_standards(data, standards)


def test_rule_based_difference(make_standard):
    standards = [
        make_standard("std-a", "标准A", conventional_rules=[conductor_rule("k", "K快车A", "K快车", 45)]),
        make_standard("std-b", "标准B", conventional_rules=[conductor_rule("k", "K快车B", "K快车", 77)]),
    ]

    analysis = DifferenceAnalyzer().analyze_train_differences(calculate(standards, conventional=[K1]), standards)

    difference, = analysis.differences
    assert difference.train_number == "K1"
    assert difference.min_value == 45
    assert difference.max_value == 77
    assert difference.difference_range == "45-77人"
    assert difference.max_difference == 32
    assert difference.difference_percentage == 52
    assert difference.difference_type is DifferenceType.RULE_BASED
    assert difference.description == "不同标准匹配了不同的定员规则：K快车A、K快车B"
    assert difference.severity is Severity.HIGH

    df = analysis.to_dataframe()
    assert df.loc[0, "标准A"] == 45
    assert df.loc[0, "差异范围"] == "45-77人"


def test_difference_does_not_depend_on_standard_order(make_standard):
    standards = [
        make_standard("std-b", "标准B", conventional_rules=[conductor_rule("k", "K快车B", "K快车", 77)]),
        make_standard("std-a", "标准A", conventional_rules=[conductor_rule("k", "K快车A", "K快车", 45)]),
    ]

    difference, = analyze_train_differences(calculate(standards, conventional=[K1]), standards).differences

    assert difference.difference_range == "45-77人"
    assert difference.max_difference == 32


def test_match_status_takes_priority(make_standard):
    standards = [
        make_standard("std-a", "标准A"),
        make_standard("std-b", "标准B", work_hours=180,
                      conventional_rules=[conductor_rule("t", "T特快", "T特快列车", 3)]),
    ]
    train = {"序号": 1, "车次": "K123", "类别": "K快车", "单程运行时间": 8,
             "编组详情": "硬座6 硬卧8 软卧2 餐车1 行李车1"}

    difference, = DifferenceAnalyzer().analyze_train_differences(
        calculate(standards, conventional=[train]), standards
    ).differences

    assert difference.difference_type is DifferenceType.MATCH_STATUS
    assert difference.description == "1个标准匹配成功，1个标准未匹配"
    assert difference.difference_range == "0-18人"
    assert difference.severity is Severity.MEDIUM
    assert difference.standard_results["std-b"].is_matched is False
    assert difference.standard_results["std-b"].total_staff == 0
    assert difference.standard_results["std-a"].breakdown["hardSleeperAttendant"] == 8


def test_work_hours_difference(make_standard):
    standards = [
        make_standard("std-a", "标准A", high_speed_rules=[EIGHT_CAR_RULE]),
        make_standard("std-b", "标准B", work_hours=140, high_speed_rules=[EIGHT_CAR_RULE]),
    ]
    train = {"序号": 1, "车次": "G1", "编组": "8编组", "单程工时": 5}

    difference, = DifferenceAnalyzer().analyze_train_differences(
        calculate(standards, high_speed=[train]), standards
    ).differences

    assert difference.difference_range == "10-12人"
    assert difference.difference_type is DifferenceType.PARAMETER_BASED
    assert difference.description == "标准工时设置不同(140-166.6小时)"
    assert difference.severity is Severity.LOW


def test_reserve_rate_difference(make_standard):
    standards = [
        make_standard("std-a", "标准A", conventional_rules=[seat_rule("1人2车")]),
        make_standard("std-b", "标准B", beijing=10, conventional_rules=[seat_rule("1人1车")]),
    ]

    difference, = DifferenceAnalyzer().analyze_train_differences(
        calculate(standards, conventional=[K1]), standards
    ).differences

    assert difference.difference_range == "4-7人"
    assert difference.difference_type is DifferenceType.PARAMETER_BASED
    assert difference.description == "预备率设置不同(8%-10%)"


def test_coverage_gap_when_parameters_match(make_standard):
    standards = [
        make_standard("std-a", "标准A", conventional_rules=[seat_rule("1人2车")]),
        make_standard("std-b", "标准B", conventional_rules=[seat_rule("1人1车")]),
    ]

    difference, = DifferenceAnalyzer().analyze_train_differences(
        calculate(standards, conventional=[K1]), standards
    ).differences

    assert difference.difference_type is DifferenceType.COVERAGE_GAP
    assert difference.description == "规则覆盖范围或配置细节存在差异"


def test_equal_totals_are_not_differences(make_standard):
    standards = [
        make_standard("std-a", "标准A", high_speed_rules=[G101_RULE]),
        make_standard("std-b", "标准B", work_hours=174, high_speed_rules=[G101_RULE]),
    ]
    train = {"序号": 1, "车次": "G101", "编组": "8编组", "类别": "CRH380D", "单程工时": 5}

    analysis = DifferenceAnalyzer().analyze_train_differences(calculate(standards, high_speed=[train]), standards)

    assert analysis.differences == ()
    assert analysis.stats.total_trains == 1
    assert analysis.stats.trains_without_differences == 1
    assert analysis.stats.median_difference == 0.0
    assert analysis.to_dataframe().empty


def test_differences_sorted_and_summarised(make_standard):
    standards = [
        make_standard("std-a", "标准A", conventional_rules=[
            conductor_rule("k", "K-A", "K快车", 45), conductor_rule("t", "T-A", "T特快列车", 10),
        ]),
        make_standard("std-b", "标准B", conventional_rules=[
            conductor_rule("k", "K-B", "K快车", 77), conductor_rule("t", "T-B", "T特快列车", 12),
        ]),
    ]

    analysis = DifferenceAnalyzer().analyze_train_differences(calculate(standards, conventional=[T1, K1]), standards)

    assert [difference.train_number for difference in analysis.differences] == ["K1", "T1"]
    stats = analysis.stats
    assert stats.total_trains == 2
    assert stats.trains_with_differences == 2
    assert stats.severity_counts == {"high": 1, "medium": 0, "low": 1}
    assert stats.type_counts["rule_based"] == 2
    assert stats.type_counts["coverage_gap"] == 0
    assert stats.average_difference == 17
    assert stats.max_difference == 32
    assert stats.median_difference == 17.0


def test_train_key_normalises_identity(make_standard):
    standards = [make_standard("std-a", "标准A", conventional_rules=[conductor_rule("k", "K", "K快车", 1)])]
    results = calculate(standards, conventional=[{"车次": "k1", "类别": "K快车", "单程运行时间": 8.004}])

    union = DifferenceAnalyzer.collect_matched_trains(list(results.values()))

    assert list(union) == [TrainKey("conventional", "K1", "k快车", 8.0)]


@pytest.mark.parametrize("values, expected", [
    ([2, 4, 6, 20], 5.0),
    ([3, 9, 27], 9.0),
    ([7], 7.0),
    ([], 0.0),
])
def test_median(values, expected):
    assert median(values) == expected


@pytest.mark.parametrize("spread, severity", [
    (0, None),
    (1, Severity.LOW),
    (4.9, Severity.LOW),
    (5, Severity.MEDIUM),
    (20, Severity.MEDIUM),
    (21, Severity.HIGH),
])
def test_severity_thresholds(spread, severity):
    assert DEFAULT_DIFFERENCE_CONFIG.get_severity(spread) is severity


def test_default_difference_config_is_valid():
    ok, errors = validate_difference_config(DEFAULT_DIFFERENCE_CONFIG)
    assert ok
    assert errors == []
    assert DEFAULT_DIFFERENCE_CONFIG.get_type_label(DifferenceType.MATCH_STATUS) == "匹配状态差异"


def test_train_without_number_is_located_by_sequence(make_standard):
    standards = [
        make_standard("std-a", "标准A", high_speed_rules=[EIGHT_CAR_RULE]),
        make_standard("std-b", "标准B", work_hours=140, high_speed_rules=[EIGHT_CAR_RULE]),
    ]
    train = {"序号": 1, "编组": "8编组", "单程工时": 5}

    analysis = DifferenceAnalyzer().analyze_train_differences(calculate(standards, high_speed=[train]), standards)

    difference, = analysis.differences
    assert difference.train_number == ""
    assert difference.difference_range == "10-12人"
    assert all(outcome.is_matched for outcome in difference.standard_results.values())


def test_train_missing_from_every_result_is_skipped(make_standard, monkeypatch, caplog):
    standards = [make_standard("std-a", "标准A"), make_standard("std-b", "标准B", work_hours=140)]
    results = calculate(standards, high_speed=[{"序号": 1, "编组": "8编组", "单程工时": 5}])
    monkeypatch.setattr(DifferenceAnalyzer, "locate", staticmethod(lambda reference, category_result: None))

    analysis = DifferenceAnalyzer().analyze_train_differences(results, standards)

    assert analysis.differences == ()
    assert analysis.stats.total_trains == 1
    assert analysis.stats.trains_without_differences == 1
    assert "не найден ни в одном результате" in caplog.text
