#!/usr/bin/env python3
"""
目标行配置解析器 - 解析 branch_info.txt

每行一条记录，逗号分隔，第二个字段是行号，例如：

    prog.c,11,if
    prog.c,14,while

字段不足或行号不是正整数的行直接跳过，重复行号只保留一次。
"""

import logging
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

# 每条记录至少包含的字段数
MIN_FIELDS = 3


def parse_target_line(text: str) -> Optional[int]:
    """解析单条记录，格式错误时返回None"""
    fields = text.strip().split(',')
    if len(fields) < MIN_FIELDS:
        return None
    try:
        line = int(fields[1].strip())
    except ValueError:
        return None
    return line if line > 0 else None


class TargetLineParser:
    """目标行配置文件解析器"""

    def __init__(self, target_path: str):
        self.target_path = target_path
        self.skipped = 0

    def parse(self) -> List[int]:
        """返回排序去重后的目标行号；文件不可读时返回空列表"""
        path = Path(self.target_path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                raw_lines = f.read().splitlines()
        except OSError as e:
            logger.warning(f"无法读取目标行文件 {self.target_path}: {e}")
            return []

        lines = set()
        self.skipped = 0
        for text in raw_lines:
            if not text.strip():
                continue
            line = parse_target_line(text)
            if line is None:
                self.skipped += 1
                continue
            lines.add(line)

        if self.skipped:
            logger.debug(f"{self.target_path}: 跳过 {self.skipped} 行格式错误的记录")
        logger.info(f"从 {self.target_path} 读取 {len(lines)} 个目标行")
        return sorted(lines)


def load_target_lines(target_path: str, extra: Optional[List[int]] = None) -> List[int]:
    """读取目标行文件，并合并额外指定的行号"""
    lines = set(TargetLineParser(target_path).parse())
    if extra:
        lines.update(n for n in extra if n > 0)
    return sorted(lines)
