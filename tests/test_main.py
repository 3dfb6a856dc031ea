import json

import pytest

import main


@pytest.fixture
def payload_file(tmp_path, make_standard, unit_train_data):
    def write(standards=None, **extra):
        payload = {
            "standards": standards if standards is not None else [
                make_standard(), make_standard("std-b", "天津局标准", work_hours=174),
            ],
            "unitTrainData": unit_train_data,
            **extra,
        }
        path = tmp_path / "payload.json"
        path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
        return path

    return write


def test_build_parser_defaults():
    args = main.build_parser().parse_args(["payload.json"])

    assert args.payload == "payload.json"
    assert args.mode is None
    assert args.units is None
    assert args.workers is None
    assert not args.differences
    assert not args.coverage


def test_build_parser_options():
    args = main.build_parser().parse_args(
        ["payload.json", "--mode", "grouped", "--units", "北京客运段", "天津客运段", "--workers", "4", "--coverage"]
    )

    assert args.mode == "grouped"
    assert args.units == ["北京客运段", "天津客运段"]
    assert args.workers == 4
    assert args.coverage


def test_build_parser_rejects_unknown_mode():
    with pytest.raises(SystemExit):
        main.build_parser().parse_args(["payload.json", "--mode", "average"])


def test_load_payload(payload_file):
    payload = main.load_payload(payload_file(mode="grouped"))
    assert payload["mode"] == "grouped"
    assert len(payload["standards"]) == 2


def test_load_payload_requires_keys(tmp_path):
    path = tmp_path / "payload.json"
    path.write_text(json.dumps({"standards": []}), encoding="utf-8")

    with pytest.raises(ValueError, match="unitTrainData"):
        main.load_payload(path)

    path.write_text(json.dumps([1, 2]), encoding="utf-8")
    with pytest.raises(ValueError):
        main.load_payload(path)


def test_check_dependencies():
    assert main.check_dependencies() is True


def test_main_merged_run(payload_file):
    path = payload_file()
    assert main.main([str(path), "--differences", "--coverage", "--log-level", "WARNING"]) == 0


def test_main_grouped_run(payload_file):
    path = payload_file(mode="grouped", selectedUnits=["北京客运段"])
    assert main.main([str(path), "--differences", "--workers", "2"]) == 0


def test_main_reports_broken_standard(payload_file, make_standard):
    broken = make_standard("std-bad", other_rules=[{"id": "o", "name": "无类型"}])
    path = payload_file(standards=[make_standard(), broken])

    assert main.main([str(path)]) == 1


def test_main_missing_file(tmp_path):
    assert main.main([str(tmp_path / "missing.json")]) == 2
