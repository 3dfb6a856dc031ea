import copy

import pytest


HIGH_SPEED_RULES = [
    {
        "id": "hs-8",
        "name": "8编组",
        "conditions": {"formation": ["8编组"]},
        "staffing": {"trainConductor": 1, "trainAttendant": 3, "businessClassAttendant": 1},
    },
    {
        "id": "hs-16",
        "name": "16编组",
        "conditions": {"formation": ["16编组"], "runningTime": {"max": 12}},
        "staffing": {"trainConductor": 1, "trainAttendant": 6, "businessClassAttendant": 1},
    },
]

CONVENTIONAL_RULES = [
    {
        "id": "k-4to12",
        "name": "K快车-4至12小时",
        "conditions": {"trainTypes": ["K快车"], "runningTimeRange": "4to12", "baggageStaffWhenHasBaggage": 1},
        "staffing": {
            "trainConductor": 1,
            "trainAttendants": {
                "seatCar": {"ratio": "1人2车", "minStaff": 1},
                "softSleeper": {"ratio": "1人1车", "minStaff": 1},
                "hardSleeper": {"ratio": "1人1车", "minStaff": 1},
            },
            "translator": 0,
            "trainOperator": 1,
            "additionalStaff": {"broadcaster": 0, "trainDutyOfficer": 0},
            "diningCarStaff": {"enabled": True, "rules": {"under24h": 2, "over24h": 3}},
            "salesStaff": {"enabled": True, "staffPerGroup": 1},
        },
    },
    {
        "id": "intl",
        "name": "国际联运",
        "conditions": {"trainTypes": ["国际联运"], "isInternational": True},
        "staffing": {
            "trainConductor": 1,
            "trainAttendants": {
                "seatCar": {"ratio": "1人1车", "minStaff": 1},
                "softSleeper": {"ratio": "1人1车", "minStaff": 1},
                "hardSleeper": {"ratio": "1人1车", "minStaff": 1},
            },
            "translator": 2,
            "trainOperator": 1,
        },
    },
    {
        "id": "normal",
        "name": "正常列车",
        "conditions": {"trainTypes": ["正常列车"]},
        "staffing": {
            "trainConductor": 1,
            "trainAttendants": {
                "seatCar": {"ratio": "1人1车", "minStaff": 2},
                "softSleeper": {"ratio": "1人1车", "minStaff": 1},
                "hardSleeper": {"ratio": "2人3车", "minStaff": 1},
            },
            "translator": 0,
            "trainOperator": 0,
        },
    },
]

OTHER_PRODUCTION_RULES = [
    {"id": "dispatch", "name": "安全调度", "configType": "percentage", "config": {"percentage": 10}},
]


def build_standard(standard_id="std-a", name="北京局标准", work_hours=166.6, beijing=8, tianjin=8,
                   other=5, high_speed_rules=None, conventional_rules=None, other_rules=None, bureau="beijing"):
    """Конфигурация норматива в формате модуля настройки правил (проценты числами)."""
    return {
        "id": standard_id,
        "name": name,
        "bureau": bureau,
        "standardWorkHours": work_hours,
        "reserveRates": {
            "mainProduction": {"beijing": beijing, "shijiazhuang": 8, "tianjin": tianjin},
            "otherProduction": other,
        },
        "highSpeedRules": copy.deepcopy(HIGH_SPEED_RULES if high_speed_rules is None else high_speed_rules),
        "conventionalRules": copy.deepcopy(CONVENTIONAL_RULES if conventional_rules is None else conventional_rules),
        "otherProductionRules": copy.deepcopy(OTHER_PRODUCTION_RULES if other_rules is None else other_rules),
    }


@pytest.fixture
def make_standard():
    return build_standard


@pytest.fixture
def standard_config():
    return build_standard()


@pytest.fixture
def high_speed_trains():
    return [
        {"序号": 1, "车次": "G1", "编组": "8编组", "车型": "CR400AF", "单程工时": 4.5, "组数": 2},
        # вторая строка того же поезда (обратное плечо)
        {"序号": 1, "车次": "G2", "编组": "8编组", "车型": "CR400AF", "单程工时": 4.5, "组数": 2},
        {"序号": 2, "车次": "G5", "编组": "16编组", "车型": "CRH380AL", "单程工时": "5:30"},
        {"序号": 3, "车次": "G7", "编组": "17编组", "车型": "CR400BF", "单程工时": 6},
    ]


@pytest.fixture
def conventional_trains():
    return [
        {"序号": 1, "车次": "K123", "类别": "K快车", "单程运行时间": 8, "编组详情": "硬座6 硬卧8 软卧2 餐车1 行李车1"},
        {"序号": 2, "车次": "1461", "类别": "普通旅客快车", "始发时间": "22:00", "终到时间": "06:00",
         "硬座": 10},
        {"序号": 3, "车次": "K3", "类别": "国际联运", "单程运行时间": 30, "编组详情": "软卧4 硬卧6"},
    ]


@pytest.fixture
def unit_train_data(high_speed_trains, conventional_trains):
    return {
        "北京客运段": {"highSpeed": high_speed_trains, "conventional": conventional_trains},
        "天津客运段": {"highSpeed": high_speed_trains[:2], "conventional": conventional_trains[:1]},
    }
