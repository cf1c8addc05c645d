#!/usr/bin/env python3
"""
行索引构建 - 源代码行 -> 该行涉及的变量名集合
"""

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Set

from ir.models import Instruction, Module

from .symbols import SymbolResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineRecord:
    """一行源代码涉及的变量以及该行所属的作用域"""
    line: int
    scope: str
    variables: FrozenSet[str]


class LineIndex:
    """行号 -> 变量名集合，重复访问同一行时按集合累积"""

    def __init__(self):
        self._lines: Dict[int, Set[str]] = {}

    def touch(self, line: int) -> Set[str]:
        return self._lines.setdefault(line, set())

    def add(self, line: int, name: str):
        self.touch(line).add(name)

    def variables_at(self, line: int) -> FrozenSet[str]:
        return frozenset(self._lines.get(line, ()))

    def lines(self) -> List[int]:
        return sorted(self._lines)

    def __contains__(self, line: int) -> bool:
        return line in self._lines

    def __len__(self) -> int:
        return len(self._lines)


class LineIndexBuilder:
    """单遍扫描所有有函数体的函数，建立行索引"""

    def __init__(self, module: Module, resolver: SymbolResolver):
        self.module = module
        self.resolver = resolver

    def build(self) -> LineIndex:
        index = LineIndex()
        for func in self.module.defined_functions():
            for inst in func.instructions():
                line = inst.line
                if line is None:
                    continue
                names = index.touch(line)
                names.update(self._names_in(func.name, inst))
        logger.debug(f"行索引: {len(index)} 行")
        return index

    def _names_in(self, function: str, inst: Instruction) -> Iterable[str]:
        # 声明/调试值指令：直接取调试变量
        if inst.is_debug_declare or inst.is_debug_value:
            var = self.resolver.debug_variable(inst)
            if var is not None and var.name:
                yield var.name
            return

        # 读写的存储位置
        pointer = inst.pointer_operand
        if pointer is not None:
            symbol = self.resolver.resolve(function, pointer)
            if symbol is not None:
                yield symbol.name

        # 本身就是已声明变量的操作数（如 &n 作为实参）
        for operand in inst.operands:
            if operand is pointer:
                continue
            if operand.gep_base:
                symbol = self.resolver.resolve(function, operand)
            else:
                symbol = self.resolver.resolve_declared(function, operand)
            if symbol is not None:
                yield symbol.name
