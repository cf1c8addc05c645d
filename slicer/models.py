#!/usr/bin/env python3
"""
数据模型定义
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

import networkx as nx


class SliceVerdict(Enum):
    """切片结论"""
    SEMINAL = "seminal"                # 值可以追溯到输入原语
    NOT_SEMINAL = "not seminal"        # 值只来自常量与内部计算
    INCONCLUSIVE = "inconclusive"      # 环路、无法解析的实参或间接调用

    @classmethod
    def combine(cls, verdicts: Iterable['SliceVerdict']) -> 'SliceVerdict':
        """合并子结论：任一SEMINAL即SEMINAL，否则任一NOT_SEMINAL即NOT_SEMINAL"""
        seen = set(verdicts)
        if cls.SEMINAL in seen:
            return cls.SEMINAL
        if cls.NOT_SEMINAL in seen:
            return cls.NOT_SEMINAL
        return cls.INCONCLUSIVE

    @property
    def resolved(self) -> bool:
        return self is not SliceVerdict.INCONCLUSIVE


@dataclass(frozen=True)
class SliceSeed:
    """切片起点：目标行上的一个变量"""
    name: str
    scope: str
    line: int


@dataclass
class SliceResult:
    """单个起点的切片结果"""
    seed: SliceSeed
    verdict: SliceVerdict
    trace: nx.DiGraph = field(default_factory=nx.DiGraph)

    @property
    def is_seminal(self) -> bool:
        return self.verdict is SliceVerdict.SEMINAL

    def leaves(self, reason: Optional[str] = None) -> List[str]:
        """轨迹中的叶子节点，可按终止原因过滤"""
        result = []
        for node, data in self.trace.nodes(data=True):
            if data.get('kind') != 'leaf':
                continue
            if reason is None or data.get('reason') == reason:
                result.append(node)
        return sorted(result)


@dataclass
class LineVerdict:
    """目标行的汇总结论"""
    line: int
    scope: Optional[str]
    results: List[SliceResult] = field(default_factory=list)

    @property
    def verdict(self) -> SliceVerdict:
        return SliceVerdict.combine(r.verdict for r in self.results)

    @property
    def is_seminal(self) -> bool:
        return self.verdict is SliceVerdict.SEMINAL
