#!/usr/bin/env python3
"""
后向切片核心实现

从目标行上的变量出发，沿取值事件（同一行上的其他变量）和形参绑定
（跨作用域调用点上的实参）向后追溯，判断变量的值能否追溯到输入原语。

遍历用显式栈代替递归，每一帧携带当前路径上已访问的 (变量名, 作用域) 集合，
路径上重复出现的祖先节点按环路处理，结论为INCONCLUSIVE。
任一子结论为SEMINAL时立即返回；子树中没有环的结论在同一次遍历中复用。
"""

import logging
from typing import Dict, FrozenSet, Generator, Iterable, List, NamedTuple, Optional, Tuple

import networkx as nx

from analysis.context import AnalysisContext
from analysis.primitives import GLOBAL_SCOPE
from analysis.tables import AcquisitionEvent, ActualArgument, CallSiteRecord, VariableRecord

from .models import LineVerdict, SliceResult, SliceSeed, SliceVerdict

logger = logging.getLogger(__name__)

Path = FrozenSet[Tuple[str, str]]
_Request = Tuple[str, str, Path]


class _Outcome(NamedTuple):
    verdict: SliceVerdict
    node: str
    exact: bool             # 与路径无关（子树中没有环）


def variable_node(name: str, scope: str) -> str:
    return f"{name}@{scope}"


class BackwardSlicer:
    """基于分析上下文的后向切片器（只读访问上下文）"""

    def __init__(self, context: AnalysisContext):
        self.context = context

    # ------------------------------------------------------------------
    # 对外接口
    # ------------------------------------------------------------------

    def slice(self, name: str, scope: str, visited: Path = frozenset(),
              trace: Optional[nx.DiGraph] = None) -> SliceVerdict:
        """
        判断 (name, scope) 的值是否来自输入原语

        Args:
            name: 变量名
            scope: 作用域（函数名或全局作用域）
            visited: 当前路径上已访问的 (变量名, 作用域)
            trace: 记录探索过程的图，为None时不保留

        Returns:
            切片结论
        """
        if trace is None:
            trace = nx.DiGraph()
        verdict, _ = self._search(name, scope, frozenset(visited), trace)
        return verdict

    def analyze_seed(self, seed: SliceSeed) -> SliceResult:
        trace = nx.DiGraph()
        verdict, root = self._search(seed.name, seed.scope, frozenset(), trace)
        trace.graph['root'] = root
        trace.graph['line'] = seed.line
        logger.info(f"切片 {seed.name} ({seed.scope}) @ 第{seed.line}行: {verdict.value}")
        return SliceResult(seed=seed, verdict=verdict, trace=trace)

    def seeds_for_line(self, line: int) -> List[SliceSeed]:
        """目标行上记录的每个变量都是一个切片起点"""
        record = self.context.line_record(line)
        if record is None:
            return []
        seeds = []
        for name in sorted(record.variables):
            scope = record.scope
            if (name, scope) not in self.context.variables and (name, GLOBAL_SCOPE) in self.context.variables:
                scope = GLOBAL_SCOPE
            seeds.append(SliceSeed(name=name, scope=scope, line=line))
        return seeds

    def analyze_line(self, line: int) -> LineVerdict:
        record = self.context.line_record(line)
        if record is None:
            logger.warning(f"第{line}行没有行记录，无法切片")
            return LineVerdict(line=line, scope=None)
        results = [self.analyze_seed(seed) for seed in self.seeds_for_line(line)]
        return LineVerdict(line=line, scope=record.scope, results=results)

    def analyze_targets(self, lines: Iterable[int]) -> List[LineVerdict]:
        return [self.analyze_line(line) for line in sorted(set(lines))]

    # ------------------------------------------------------------------
    # 后向遍历
    # ------------------------------------------------------------------

    def _search(self, name: str, scope: str, visited: Path,
                trace: nx.DiGraph) -> Tuple[SliceVerdict, str]:
        """
        显式栈驱动的深度优先遍历

        每个变量对应一个 _visit 生成器帧：帧通过 yield 请求子变量的结论，
        驱动循环压栈求值后把结果 send 回去，调用深度不受Python递归限制。
        memo 只在本次遍历内有效。
        """
        memo: Dict[Tuple[str, str], SliceVerdict] = {}
        stack = [self._visit(name, scope, visited, trace, memo)]
        outcome: Optional[_Outcome] = None
        while stack:
            try:
                request = stack[-1].send(outcome)
            except StopIteration as stop:
                stack.pop()
                outcome = stop.value
                continue
            stack.append(self._visit(*request, trace, memo))
            outcome = None
        return outcome.verdict, outcome.node

    def _visit(self, name: str, scope: str, visited: Path, trace: nx.DiGraph,
               memo: Dict[Tuple[str, str], SliceVerdict]) -> Generator[_Request, _Outcome, _Outcome]:
        record = self.context.variable(name, scope)
        if record is None:
            logger.debug(f"没有变量记录: {name} ({scope})")
            return _Outcome(SliceVerdict.NOT_SEMINAL,
                            self._leaf(trace, 'missing', variable_node(name, scope)), True)

        node = variable_node(record.name, record.scope)
        if record.key in visited:
            logger.debug(f"路径上出现环: {node}")
            return _Outcome(SliceVerdict.INCONCLUSIVE, self._leaf(trace, 'cycle', node), False)
        if record.key in memo:
            return _Outcome(memo[record.key], node, True)

        path = visited | {record.key}
        trace.add_node(node, kind='variable', name=record.name, scope=record.scope, line=record.line)
        exact = True
        verdicts = []

        # 形参：交给其他作用域中调用点上对应位置的实参
        sites, index = self._delegation_sites(record)
        if sites:
            delegated = []
            for site in sites:
                arg = site.argument(index)
                if arg.kind == 'var':
                    child = yield (arg.text, site.scope, path)
                else:
                    child = self._argument_leaf(site, arg, trace)
                trace.add_edge(node, child.node, kind='param', line=site.line, callee=site.callee)
                exact = exact and child.exact
                delegated.append(child.verdict)
                if child.verdict is SliceVerdict.SEMINAL:
                    break
            verdict = SliceVerdict.combine(delegated)
            if verdict.resolved:
                trace.nodes[node]['delegated'] = True
                return self._settle(record, node, verdict, exact, trace, memo)
            verdicts.append(verdict)

        for event in record.events:
            inputs = self._event_inputs(event)
            if inputs:
                for callee in inputs:
                    trace.add_edge(node, self._leaf(trace, 'input', f"{callee}@L{event.line}"),
                                   kind='cofactor', line=event.line)
                verdict = SliceVerdict.SEMINAL
            elif not event.covariables:
                trace.add_edge(node, self._leaf(trace, 'literal', f"L{event.line}"),
                               kind='cofactor', line=event.line)
                verdict = SliceVerdict.NOT_SEMINAL
            else:
                cofactors = []
                for covariable in sorted(event.covariables):
                    child = yield (covariable, event.scope, path)
                    trace.add_edge(node, child.node, kind='cofactor', line=event.line)
                    exact = exact and child.exact
                    cofactors.append(child.verdict)
                    if child.verdict is SliceVerdict.SEMINAL:
                        break
                verdict = SliceVerdict.combine(cofactors)
            verdicts.append(verdict)
            if verdict is SliceVerdict.SEMINAL:
                break

        if not verdicts:
            # 有记录但从未取值
            trace.add_edge(node, self._leaf(trace, 'missing', f"{node}:unassigned"), kind='cofactor')
            return self._settle(record, node, SliceVerdict.NOT_SEMINAL, exact, trace, memo)
        return self._settle(record, node, SliceVerdict.combine(verdicts), exact, trace, memo)

    @staticmethod
    def _settle(record: VariableRecord, node: str, verdict: SliceVerdict, exact: bool,
                trace: nx.DiGraph, memo: Dict[Tuple[str, str], SliceVerdict]) -> _Outcome:
        """
        记录结论；子树中没有遇到环的结论与路径无关，可以复用。
        SEMINAL总可以复用：任一子结论为SEMINAL即SEMINAL
        """
        trace.nodes[node]['verdict'] = verdict.value
        if verdict is SliceVerdict.SEMINAL:
            exact = True
        if exact:
            memo[record.key] = verdict
        return _Outcome(verdict, node, exact)

    def _delegation_sites(self, record: VariableRecord) -> Tuple[List[CallSiteRecord], int]:
        """记录是所在函数的形参时，返回其他作用域中的调用点与形参位置"""
        func = self.context.function(record.scope)
        if func is None or func.line != record.line:
            return [], -1
        index = func.param_index(record.name)
        if index < 0:
            return [], -1
        return [s for s in self.context.calls_to(func.name) if s.scope != record.scope], index

    def _argument_leaf(self, site: CallSiteRecord, arg: ActualArgument,
                       trace: nx.DiGraph) -> _Outcome:
        if arg.kind in ('int', 'string', 'format'):
            return _Outcome(SliceVerdict.NOT_SEMINAL,
                            self._leaf(trace, 'literal', f"{arg.text}@L{site.line}"), True)
        if arg.kind == 'call' and self.context.is_input_primitive(arg.callee):
            return _Outcome(SliceVerdict.SEMINAL,
                            self._leaf(trace, 'input', f"{arg.callee}@L{site.line}"), True)
        return _Outcome(SliceVerdict.INCONCLUSIVE,
                        self._leaf(trace, 'unresolved', f"{arg.text}@L{site.line}"), True)

    def _event_inputs(self, event: AcquisitionEvent) -> List[str]:
        return sorted({
            site.callee for site in self.context.calls_at(event.line)
            if self.context.is_input_primitive(site.callee)
        })

    @staticmethod
    def _leaf(trace: nx.DiGraph, reason: str, label: str) -> str:
        leaf = f"{reason}:{label}"
        trace.add_node(leaf, kind='leaf', reason=reason)
        return leaf
