#!/usr/bin/env python3
"""
测试命令行入口
"""

import sys
from pathlib import Path

import pytest

# 添加项目根目录到Python路径
sys.path.insert(0, str(Path(__file__).parent.parent))

from tools.seminal_analyzer import main, parse_line_list

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """在空目录中运行，避免读取仓库里的 branch_info.txt 或 .env"""
    monkeypatch.chdir(tmp_path)
    for name in ("SEMINAL_TARGET_FILE", "SEMINAL_SOURCE_ROOT", "SEMINAL_INPUT_PRIMITIVES"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def test_parse_line_list():
    assert parse_line_list("11, 12,,3") == [11, 12, 3]
    with pytest.raises(Exception):
        parse_line_list("11,x")


def test_analyze_lines(capsys):
    code = main([str(FIXTURES / "input_chain.ll"), "--lines", "6", "--no-color"])
    out = capsys.readouterr().out

    assert code == 0
    assert "Line 6 (main): seminal" in out
    assert "  x gets value at line 4 [var] || Code: int x = getchar(); || Others: -" in out
    assert "[VERDICT] 第6行: seminal" in out


def test_targets_file(capsys):
    code = main([
        str(FIXTURES / "interproc.ll"),
        "--targets", str(FIXTURES / "branch_info.txt"),
        "--no-color",
    ])
    out = capsys.readouterr().out

    assert code == 0
    assert "Line 7 (g): not seminal" in out
    assert "Line 13 (main): seminal" in out


def test_config_file(isolated_cwd, capsys):
    config = isolated_cwd / "seminal.yaml"
    config.write_text("target_lines: [11]\n", encoding="utf-8")

    code = main([str(FIXTURES / "scanf_global.ll"), "--config", str(config), "--no-color"])
    assert code == 0
    assert "Line 11 (main): seminal" in capsys.readouterr().out


def test_output_and_dot(isolated_cwd):
    report = isolated_cwd / "out" / "report.txt"
    code = main([
        str(FIXTURES / "interproc.ll"), "--lines", "13",
        "--output", str(report),
        "--dot", str(isolated_cwd / "trace"),
        "--no-color",
    ])

    assert code == 0
    assert "Line 13 (main): seminal" in report.read_text(encoding="utf-8")
    assert (isolated_cwd / "trace_r_line13.dot").exists()
    assert (isolated_cwd / "trace_s_line13.dot").exists()


def test_missing_ir_file(capsys):
    code = main([str(FIXTURES / "missing.ll"), "--lines", "6", "--no-color"])
    assert code == 1
    assert "[ERROR]" in capsys.readouterr().err


def test_bad_config(isolated_cwd):
    config = isolated_cwd / "bad.yaml"
    config.write_text("target_lines: [unclosed\n", encoding="utf-8")
    assert main([str(FIXTURES / "input_chain.ll"), "--config", str(config), "--no-color"]) == 1


def test_find_branches(isolated_cwd, capsys):
    emit = isolated_cwd / "branch_info.txt"
    source = str(FIXTURES / "interproc.c")

    code = main(["--find-branches", source, "--emit", str(emit), "--no-color"])
    out = capsys.readouterr().out

    assert code == 0
    assert "r > s" in out
    assert emit.read_text(encoding="utf-8").splitlines() == [f"{source},13,if"]


def test_requires_input():
    with pytest.raises(SystemExit):
        main([])
