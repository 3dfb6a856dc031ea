import math

import pytest

from staffing import fields
from staffing.models import TrainRecord, UnitTrainData, to_records
from staffing.utils import ceil_staff, format_percent, is_blank, parse_duration, round_half_up, safe_float, safe_int


@pytest.mark.parametrize("raw, expected", [
    ({"单程工时": 4.5}, 4.5),
    ({"单程运行时间": "5:30"}, 5.5),
    ({"运行时间": "12.5小时"}, 12.5),
    ({"往返工时": 9}, 4.5),
    ({"单程工时": "-", "往返工时": "10:00"}, 5.0),
    ({"始发时间": "08:15", "终到时间": "12:45"}, 4.5),
    ({"始发时间": "22:30", "终到时间": "06:00"}, 7.5),
    ({"始发时间": "22:30"}, 0.0),
    ({}, 0.0),
])
def test_single_trip_hours(raw, expected):
    assert fields.single_trip_hours(raw) == pytest.approx(expected)


def test_nan_cells_are_treated_as_missing():
    raw = {"单程工时": float("nan"), "往返工时": 12}
    assert fields.single_trip_hours(raw) == pytest.approx(6.0)
    assert is_blank(float("nan"))
    assert is_blank("  无 ")
    assert not is_blank(0)


@pytest.mark.parametrize("raw, expected", [
    ({"组数": "3组"}, 3),
    ({"组数": 2}, 2),
    ({"组数": 2.0}, 2),
    ({"配备组数": "2"}, 2),
    ({"组数": 0}, 1),
    ({"组数": "未知"}, 1),
    ({"组数": "NaN"}, 1),
    ({"组数": "inf"}, 1),
    ({"组数": "None"}, 1),
    ({}, 1),
])
def test_group_count(raw, expected):
    assert fields.group_count(raw) == expected


def test_sequence_falls_back_to_train_number_and_position():
    assert fields.sequence({"序号": 2.0, "车次": "K1"}) == "2"
    assert fields.sequence({"车次": "K1"}) == "K1"
    assert fields.sequence({}, position=3) == "#3"


def test_train_number_variants():
    assert fields.train_number({"trainNumber": " G101 "}) == "G101"
    assert fields.train_number({"车次": "", "列车号": "T5"}) == "T5"
    assert fields.train_number({}) == ""


def test_parse_formation_details():
    cars = fields.parse_formation_details("硬座5 硬卧8 宿营车1 软卧2 餐车1 行李车1")
    assert cars.seat == 5
    assert cars.hard_sleeper == 9
    assert cars.soft_sleeper == 2
    assert cars.dining == 1
    assert cars.baggage == 1
    assert cars.total == 18


def test_parse_formation_details_empty():
    cars = fields.parse_formation_details(None)
    assert cars.total == 0


def test_formation_details_from_car_columns():
    raw = {"硬座": 10, "餐车": 1, "编组详情": "软卧4"}
    assert fields.formation_details(raw) == "硬座10 餐车1"
    assert fields.formation_details({"编组详情": "软卧4"}) == "软卧4"


@pytest.mark.parametrize("raw, expected", [
    ({"编组": "8编组", "车型": "CR400AF"}, 0),
    ({"编组": "8编组", "类别": "CRH380D"}, 1),
    ({"编组": "16编组"}, 1),
    ({"编组": "8编组", "商务座": "有"}, 1),
    ({"编组": "16编组", "商务座": 0}, 0),
    ({"编组": "8编组", "商务座数": 2}, 2),
    ({"编组": "8编组", "商务座数": "NaN"}, 0),
    ({"编组": "16编组", "商务座数": "-inf"}, 1),
])
def test_business_class_count(raw, expected):
    assert fields.business_class_count(raw) == expected


def test_train_record_from_mapping():
    raw = {"序号": 1, "车次": "K123", "类别": "K快车", "单程运行时间": 8, "编组详情": "硬座6 硬卧8 餐车1"}
    record = TrainRecord.from_mapping(raw, unit="北京客运段")

    assert record.train_number == "K123"
    assert record.sequence == "1"
    assert record.category == "K快车"
    assert record.running_hours == 8.0
    assert record.unit == "北京客运段"
    assert record.cars.seat == 6
    assert record.cars.dining == 1
    assert record.display_formation == "硬座6 硬卧8 餐车1"
    assert TrainRecord.from_mapping(record) is record


def test_non_numeric_cells_do_not_break_record():
    raw = {"车次": "K1", "组数": "NaN", "硬座": "NaN", "软卧": "inf", "硬卧": "None", "餐车": 1}
    record = TrainRecord.from_mapping(raw)

    assert record.group_count == 1
    assert record.display_formation == "餐车1"
    assert record.cars.dining == 1
    assert record.cars.seat == 0


@pytest.mark.parametrize("value", ["NaN", "NAN", "nan", "inf", "-Infinity", "None", "NULL", float("inf")])
def test_safe_int_rejects_non_finite(value):
    assert safe_float(value, default=-1) == -1
    assert safe_int(value, default=7) == 7


def test_train_record_equality_ignores_raw_row():
    first = TrainRecord.from_mapping({"车次": "G1", "编组": "8编组", "备注": "a"})
    second = TrainRecord.from_mapping({"车次": "G1", "编组": "8编组", "备注": "b"})
    assert first == second


def test_unit_train_data_accepts_chinese_keys():
    data = UnitTrainData.from_mapping({"高铁": [{"车次": "G1"}], "普速": [{"车次": "K1"}, {"车次": "K3"}]})
    assert [train.train_number for train in data.high_speed] == ["G1"]
    assert len(data.conventional) == 2
    assert to_records(None) == []


def test_round_half_up_is_not_bankers_rounding():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(52.459) == 52
    assert round_half_up(4.555, 1) == pytest.approx(4.6)


@pytest.mark.parametrize("value, expected", [
    (0, 0),
    (-3.2, 0),
    (11.49, 12),
    (12.0, 12),
    (12 * 166.6 / 166.6, 12),
    (3 * (0.1 + 0.2) * 10, 9),
])
def test_ceil_staff(value, expected):
    assert ceil_staff(value) == expected


def test_misc_parsers():
    assert safe_float("1,5") == 1.5
    assert safe_float("abc", default=-1) == -1
    assert parse_duration(0) is None
    assert parse_duration("abc") is None
    assert format_percent(0.08) == "8%"
    assert format_percent(0.055) == "5.5%"
    assert math.isclose(safe_float(True), 1.0)
