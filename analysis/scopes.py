#!/usr/bin/env python3
"""
作用域划分 - 按函数声明行把源代码行划分到函数或全局作用域
"""

from bisect import bisect_right
from typing import Iterable, List, Tuple

from .primitives import GLOBAL_SCOPE


class ScopeAssigner:
    """
    函数按声明行排序后做区间查找：
    行L属于声明行 <= L 的最后一个函数，区间在下一个函数的声明行处结束；
    第一个函数声明行之前的行属于全局作用域。
    """

    def __init__(self, functions: Iterable[Tuple[str, int]]):
        # 声明行为0（无调试信息）的函数不参与划分
        ordered = sorted((line, name) for name, line in functions if line > 0)
        self._starts: List[int] = [line for line, _ in ordered]
        self._names: List[str] = [name for _, name in ordered]

    def scope_of(self, line: int) -> str:
        pos = bisect_right(self._starts, line)
        if pos == 0:
            return GLOBAL_SCOPE
        return self._names[pos - 1]

    def intervals(self) -> List[Tuple[str, int, int]]:
        """(函数名, 起始行, 结束行)，最后一个函数的结束行为-1"""
        result = []
        for i, name in enumerate(self._names):
            end = self._starts[i + 1] - 1 if i + 1 < len(self._starts) else -1
            result.append((name, self._starts[i], end))
        return result
