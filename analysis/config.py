#!/usr/bin/env python3
"""
分析配置管理模块

配置来源（优先级从低到高）：内置默认值 -> YAML配置文件 -> 环境变量(.env) -> 命令行参数
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import yaml
from dotenv import load_dotenv

from .primitives import DEFAULT_FORMAT_PRIMITIVES, DEFAULT_INPUT_PRIMITIVES

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """配置文件格式错误"""


@dataclass
class AnalysisConfig:
    """分析配置类"""

    input_primitives: Set[str] = field(default_factory=lambda: set(DEFAULT_INPUT_PRIMITIVES))
    format_primitives: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_FORMAT_PRIMITIVES))
    target_file: str = 'branch_info.txt'
    target_lines: List[int] = field(default_factory=list)
    source_root: Optional[str] = None
    report_file: Optional[str] = None

    @classmethod
    def from_file(cls, config_path: str) -> 'AnalysisConfig':
        """从YAML配置文件创建配置"""
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"配置文件不存在: {config_path}")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML解析错误: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"配置文件顶层必须是映射: {config_path}")

        config = cls()
        config.update(data)
        logger.info(f"已加载配置文件: {config_path}")
        return config

    @classmethod
    def from_env(cls, base: Optional['AnalysisConfig'] = None,
                 env_file: Optional[str] = None) -> 'AnalysisConfig':
        """在base的基础上应用环境变量（存在.env文件时先加载）"""
        env_path = Path(env_file) if env_file else Path.cwd() / '.env'
        if env_path.exists():
            load_dotenv(env_path, override=False)

        config = base if base is not None else cls()
        if os.getenv('SEMINAL_TARGET_FILE'):
            config.target_file = os.getenv('SEMINAL_TARGET_FILE')
        if os.getenv('SEMINAL_SOURCE_ROOT'):
            config.source_root = os.getenv('SEMINAL_SOURCE_ROOT')
        if os.getenv('SEMINAL_INPUT_PRIMITIVES'):
            extra = [p.strip() for p in os.getenv('SEMINAL_INPUT_PRIMITIVES').split(',')]
            config.input_primitives.update(p for p in extra if p)
        return config

    def update(self, data: Dict[str, Any]):
        """用字典中的配置项覆盖当前配置"""
        if 'input_primitives' in data:
            self.input_primitives = set(self._string_list(data, 'input_primitives'))
        if 'extra_input_primitives' in data:
            self.input_primitives.update(self._string_list(data, 'extra_input_primitives'))
        if 'format_primitives' in data:
            self.format_primitives = self._format_mapping(data, 'format_primitives')
        if 'extra_format_primitives' in data:
            self.format_primitives.update(self._format_mapping(data, 'extra_format_primitives'))
        if 'target_file' in data:
            self.target_file = str(data['target_file'])
        if 'target_lines' in data:
            lines = data['target_lines'] or []
            if not isinstance(lines, list) or not all(isinstance(n, int) for n in lines):
                raise ConfigError("target_lines 必须是整数列表")
            self.target_lines = sorted(set(lines))
        if 'source_root' in data:
            self.source_root = data['source_root']
        if 'report_file' in data:
            self.report_file = data['report_file']

    @staticmethod
    def _string_list(data: Dict[str, Any], key: str) -> List[str]:
        value = data[key] or []
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError(f"{key} 必须是字符串列表")
        return value

    @staticmethod
    def _format_mapping(data: Dict[str, Any], key: str) -> Dict[str, int]:
        value = data[key] or {}
        if isinstance(value, list):
            # 列表形式默认格式串是第一个参数
            value = {name: 0 for name in value}
        if not isinstance(value, dict) or not all(isinstance(v, int) for v in value.values()):
            raise ConfigError(f"{key} 必须是 函数名 -> 参数位置 的映射")
        return {str(k): v for k, v in value.items()}
