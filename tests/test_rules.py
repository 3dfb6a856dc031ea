import logging

import pytest

from staffing.errors import EmptyRuleSetError, RuleConfigurationError, StaffingConfigurationError
from staffing.rules import OtherConfigType, load_reserve_rates, load_standard, load_standards


def test_load_standard_converts_percentages(standard_config):
    standard = load_standard(standard_config)

    assert standard.id == "std-a"
    assert standard.bureau_name == "北京局"
    assert standard.standard_work_hours == 166.6
    assert standard.reserve_rates.main_production["beijing"] == pytest.approx(0.08)
    assert standard.reserve_rates.other_production == pytest.approx(0.05)
    assert standard.rule_count == 6


def test_load_standard_returns_loaded_instance(standard_config):
    standard = load_standard(standard_config)
    assert load_standard(standard) is standard
    assert load_standards([standard, standard_config])[0] is standard


def test_conventional_rule_fields(standard_config):
    rule = load_standard(standard_config).conventional_rules[0]

    assert rule.conditions.train_types == ("K快车",)
    assert rule.conditions.running_time_range == "4to12"
    assert rule.conditions.baggage_staff_when_has_baggage == 1
    assert rule.staffing.seat_car.ratio == "1人2车"
    assert rule.staffing.dining_enabled
    assert rule.staffing.dining_over_24h == 3
    assert rule.staffing.sales_staff_per_group == 1


def test_high_speed_rule_fields(standard_config):
    rule = load_standard(standard_config).high_speed_rules[1]

    assert rule.conditions.formations == ("16编组",)
    assert rule.conditions.min_hours is None
    assert rule.conditions.max_hours == 12
    assert rule.per_group_total == 8


def test_legacy_reserve_rate_applies_to_every_unit(caplog):
    with caplog.at_level(logging.WARNING):
        rates = load_reserve_rates({"mainProduction": 8, "otherProduction": 4}, "std-old")

    assert rates.main_production == pytest.approx({"beijing": 0.08, "shijiazhuang": 0.08, "tianjin": 0.08})
    assert rates.other_production == pytest.approx(0.04)
    assert "старом формате" in caplog.text


def test_missing_reserve_rates_fall_back_to_defaults():
    rates = load_reserve_rates(None)
    assert rates.main_production == {}
    assert rates.other_production is None
    assert rates.main_rate("beijing", 0.08) == 0.08


def test_rule_without_staffing_is_rejected(make_standard):
    config = make_standard(high_speed_rules=[{"id": "hs-x", "name": "坏规则", "conditions": {}}])

    with pytest.raises(RuleConfigurationError) as excinfo:
        load_standard(config)

    assert excinfo.value.standard_id == "std-a"
    assert excinfo.value.rule_id == "hs-x"
    assert "staffing" in str(excinfo.value)


def test_rule_without_conditions_is_rejected(make_standard):
    config = make_standard(conventional_rules=[{"id": "c-x", "name": "坏规则", "staffing": {"trainConductor": 1}}])

    with pytest.raises(RuleConfigurationError, match="conditions"):
        load_standard(config)


def test_unknown_time_range_is_rejected(make_standard):
    config = make_standard(conventional_rules=[
        {"id": "c-x", "conditions": {"trainTypes": ["K快车"], "runningTimeRange": "8to10"},
         "staffing": {"trainConductor": 1}},
    ])

    with pytest.raises(RuleConfigurationError, match="8to10"):
        load_standard(config)


@pytest.mark.parametrize("rule", [
    {"id": "o-x", "name": "无类型"},
    {"id": "o-x", "name": "未知类型", "configType": "ratio"},
])
def test_other_rule_needs_known_config_type(make_standard, rule):
    with pytest.raises(RuleConfigurationError):
        load_standard(make_standard(other_rules=[rule]))


def test_other_rule_segments(make_standard):
    config = make_standard(other_rules=[{
        "id": "seg",
        "name": "分段",
        "configType": "segmented_percentage",
        "config": {"segments": {
            "highSpeed": {"percentage": 10, "minValue": 5, "maxValue": 0},
            "conventional": {"percentage": 5, "maxValue": 15},
        }},
    }])
    rule = load_standard(config).other_production_rules[0]

    assert rule.config_type is OtherConfigType.SEGMENTED_PERCENTAGE
    assert rule.high_speed_segment.percentage == pytest.approx(0.10)
    assert rule.high_speed_segment.min_value == 5
    assert rule.high_speed_segment.max_value is None
    assert rule.conventional_segment.max_value == 15


@pytest.mark.parametrize("key", ["highSpeedRules", "conventionalRules", "otherProductionRules"])
def test_standard_requires_every_rule_array(standard_config, key):
    del standard_config[key]
    with pytest.raises(RuleConfigurationError, match=key):
        load_standard(standard_config)


def test_standard_requires_positive_work_hours(standard_config):
    standard_config["standardWorkHours"] = 0
    with pytest.raises(StaffingConfigurationError, match="рабочее время"):
        load_standard(standard_config)


def test_standard_requires_id(standard_config):
    standard_config["id"] = ""
    with pytest.raises(RuleConfigurationError):
        load_standard(standard_config)


def test_empty_rule_arrays_are_allowed(make_standard):
    standard = load_standard(make_standard(high_speed_rules=[], conventional_rules=[], other_rules=[]))
    assert standard.rule_count == 0


def test_empty_rule_set_error_message():
    error = EmptyRuleSetError("highSpeed", "std-a")
    assert str(error) == "[std-a] нет правил для категории 'highSpeed'"
    assert isinstance(error, StaffingConfigurationError)
