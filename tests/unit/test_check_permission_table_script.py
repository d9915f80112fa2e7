from __future__ import annotations

import importlib.util
import json
from pathlib import Path

import pytest


@pytest.fixture(scope="module")
def checker_module():
    """加载权限表校验脚本模块。"""

    script_path = Path(__file__).resolve().parents[2] / "scripts" / "check_permission_table.py"
    spec = importlib.util.spec_from_file_location("check_permission_table", script_path)
    if spec is None or spec.loader is None:
        raise RuntimeError("无法加载权限表校验脚本")

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.mark.unit
def test_builtin_table_passes(checker_module, capsys) -> None:
    assert checker_module.main([]) == 0

    output = capsys.readouterr().out
    assert "[teacher]" in output
    assert "updateAny:lesson=any" in output


@pytest.mark.unit
def test_json_summary_for_table_file(checker_module, tmp_path: Path, capsys) -> None:
    path = tmp_path / "table.json"
    path.write_text(
        json.dumps({"roles": ["teacher"], "rules": [["teacher", "deleteOwn", "lesson", "own"]]}),
        encoding="utf-8",
    )

    assert checker_module.main([str(path), "--json"]) == 0

    assert json.loads(capsys.readouterr().out) == {"teacher": ["deleteOwn:lesson=own"]}


@pytest.mark.unit
def test_duplicate_rules_fail(checker_module, tmp_path: Path, capsys) -> None:
    path = tmp_path / "table.json"
    path.write_text(
        json.dumps(
            {
                "rules": [
                    ["teacher", "deleteOwn", "lesson", "own"],
                    ["teacher", "deleteOwn", "lesson", "any"],
                ]
            }
        ),
        encoding="utf-8",
    )

    assert checker_module.main([str(path)]) == 1
    assert "重复" in capsys.readouterr().err


@pytest.mark.unit
def test_missing_file_fails(checker_module, tmp_path: Path) -> None:
    assert checker_module.main([str(tmp_path / "absent.json")]) == 1


@pytest.mark.unit
def test_non_utf8_file_fails_with_message(checker_module, tmp_path: Path, capsys) -> None:
    path = tmp_path / "table.json"
    path.write_bytes(b"\xff\xfe{}")

    assert checker_module.main([str(path)]) == 1
    assert "权限表校验失败" in capsys.readouterr().err


@pytest.mark.unit
def test_non_object_rule_fails_with_message(checker_module, tmp_path: Path, capsys) -> None:
    path = tmp_path / "table.json"
    path.write_text(json.dumps({"rules": [5]}), encoding="utf-8")

    assert checker_module.main([str(path)]) == 1
    assert "权限表校验失败" in capsys.readouterr().err
