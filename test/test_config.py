#!/usr/bin/env python3
"""
测试分析配置：YAML文件、环境变量与默认值
"""

import sys
from pathlib import Path

import pytest

# 添加项目根目录到Python路径
sys.path.insert(0, str(Path(__file__).parent.parent))

from analysis import AnalysisConfig, ConfigError, DEFAULT_INPUT_PRIMITIVES

ENV_NAMES = ("SEMINAL_TARGET_FILE", "SEMINAL_SOURCE_ROOT", "SEMINAL_INPUT_PRIMITIVES")


def test_defaults():
    config = AnalysisConfig()
    assert config.input_primitives == set(DEFAULT_INPUT_PRIMITIVES)
    assert config.format_primitives["snprintf"] == 2
    assert config.target_file == "branch_info.txt"
    assert config.target_lines == []

    # 默认集合不与实例共享
    config.input_primitives.add("my_read")
    assert "my_read" not in DEFAULT_INPUT_PRIMITIVES


def test_from_file(tmp_path):
    path = tmp_path / "seminal.yaml"
    path.write_text(
        "extra_input_primitives: [my_read]\n"
        "extra_format_primitives: {log_msg: 1}\n"
        "target_file: targets.txt\n"
        "target_lines: [12, 11, 12]\n"
        "source_root: /src\n",
        encoding="utf-8",
    )
    config = AnalysisConfig.from_file(str(path))

    assert "my_read" in config.input_primitives
    assert "getchar" in config.input_primitives
    assert config.format_primitives["log_msg"] == 1
    assert config.format_primitives["printf"] == 0
    assert config.target_file == "targets.txt"
    assert config.target_lines == [11, 12]
    assert config.source_root == "/src"


def test_replace_primitives(tmp_path):
    path = tmp_path / "seminal.yaml"
    path.write_text("input_primitives: [getchar]\nformat_primitives: [log_msg]\n", encoding="utf-8")
    config = AnalysisConfig.from_file(str(path))

    assert config.input_primitives == {"getchar"}
    assert config.format_primitives == {"log_msg": 0}


@pytest.mark.parametrize("content", [
    "target_lines: [unclosed\n",
    "- just\n- a list\n",
    "target_lines: [a, b]\n",
    "input_primitives: getchar\n",
    "format_primitives: {printf: first}\n",
])
def test_invalid_file(tmp_path, content):
    path = tmp_path / "bad.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        AnalysisConfig.from_file(str(path))


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        AnalysisConfig.from_file(str(tmp_path / "nope.yaml"))


def test_from_env(tmp_path, monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)

    env_file = tmp_path / ".env"
    env_file.write_text(
        "SEMINAL_TARGET_FILE=from_env.txt\n"
        "SEMINAL_INPUT_PRIMITIVES=my_read, my_recv\n",
        encoding="utf-8",
    )
    # load_dotenv直接写os.environ，先登记再删除，测试结束后由monkeypatch清理
    for name in ENV_NAMES:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)

    config = AnalysisConfig.from_env(env_file=str(env_file))

    assert config.target_file == "from_env.txt"
    assert {"my_read", "my_recv"} <= config.input_primitives
    assert config.source_root is None


def test_env_overrides_base(monkeypatch):
    monkeypatch.setenv("SEMINAL_SOURCE_ROOT", "/env/src")
    base = AnalysisConfig(source_root="/yaml/src")

    config = AnalysisConfig.from_env(base, env_file="/nonexistent/.env")
    assert config is base
    assert config.source_root == "/env/src"
