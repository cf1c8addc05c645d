#!/usr/bin/env python3
"""
源代码行读取器

根据调试位置取出源文件中的一行文本，仅用于报告展示。
读取失败时返回None，不影响分析结果。
"""

import logging
import os
from typing import Dict, List, Optional

from .models import DebugFile, DebugInfo, Instruction

logger = logging.getLogger(__name__)


class SourceLineReader:
    """按(文件, 行号)读取源代码文本，带缓存"""

    def __init__(self, source_root: Optional[str] = None):
        self.source_root = source_root
        self._cache: Dict[str, Optional[List[str]]] = {}

    def resolve_path(self, debug_file: DebugFile) -> Optional[str]:
        """DIFile -> 可读取的文件路径"""
        candidates = []
        if debug_file.directory and not os.path.isabs(debug_file.filename):
            candidates.append(os.path.join(debug_file.directory, debug_file.filename))
        if self.source_root:
            candidates.append(os.path.join(self.source_root, debug_file.filename))
            candidates.append(os.path.join(self.source_root, os.path.basename(debug_file.filename)))
        candidates.append(debug_file.filename)

        for path in candidates:
            if path and os.path.isfile(path):
                return path
        return None

    def get_line(self, path: Optional[str], line: int) -> Optional[str]:
        """读取指定文件的第line行（从1开始）"""
        if not path or line <= 0:
            return None
        lines = self._load(path)
        if lines is None or line > len(lines):
            return None
        return lines[line - 1]

    def line_for(self, debug: DebugInfo, inst: Instruction) -> Optional[str]:
        """读取指令调试位置对应的源代码行"""
        if inst.location is None or inst.line is None:
            return None
        debug_file = debug.file_of(inst.location.scope)
        if debug_file is None:
            return None
        return self.get_line(self.resolve_path(debug_file), inst.line)

    def _load(self, path: str) -> Optional[List[str]]:
        if path in self._cache:
            return self._cache[path]
        try:
            with open(path, 'r', encoding='utf-8', errors='replace') as f:
                lines = f.read().splitlines()
        except OSError as e:
            logger.warning(f"无法读取源文件 {path}: {e}")
            lines = None
        self._cache[path] = lines
        return lines
