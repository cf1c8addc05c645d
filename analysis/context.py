#!/usr/bin/env python3
"""
分析上下文与模块分析器

ModuleAnalyzer 依次运行各个分析阶段：
    1. 符号解析 + 行索引（单遍）
    2. 函数记录 + 作用域划分
    3. 行记录、调用点记录、变量记录与取值事件

结果保存在一个 AnalysisContext 中。上下文在一次模块分析开始时创建，
切片器只读取它，不做任何修改。
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List, Optional, Set, Tuple

from ir.models import Module
from ir.source_lines import SourceLineReader

from .config import AnalysisConfig
from .line_index import LineIndexBuilder, LineRecord
from .primitives import GLOBAL_SCOPE, is_input_primitive
from .scopes import ScopeAssigner
from .symbols import SymbolResolver
from .tables import CallSiteRecord, FunctionRecord, TableBuilder, VariableRecord

logger = logging.getLogger(__name__)


class AnalysisContext:
    """一次模块分析的全部表，只读访问"""

    def __init__(self, module: Module,
                 line_records: Dict[int, LineRecord],
                 variables: Dict[Tuple[str, str], VariableRecord],
                 functions: Dict[str, FunctionRecord],
                 call_sites: List[CallSiteRecord],
                 scopes: ScopeAssigner,
                 input_primitives: Set[str]):
        self.module = module
        self.line_records = line_records
        self.variables = variables
        self.functions = functions
        self.call_sites = call_sites
        self.scopes = scopes
        self.input_primitives = input_primitives

        self._calls_by_line: Dict[int, List[CallSiteRecord]] = defaultdict(list)
        self._calls_by_callee: Dict[str, List[CallSiteRecord]] = defaultdict(list)
        for site in call_sites:
            self._calls_by_line[site.line].append(site)
            self._calls_by_callee[site.callee].append(site)

    def line_record(self, line: int) -> Optional[LineRecord]:
        return self.line_records.get(line)

    def variable(self, name: str, scope: str) -> Optional[VariableRecord]:
        """按 (名称, 作用域) 查找，局部找不到时回退到同名全局变量"""
        record = self.variables.get((name, scope))
        if record is None and scope != GLOBAL_SCOPE:
            record = self.variables.get((name, GLOBAL_SCOPE))
        return record

    def function(self, name: str) -> Optional[FunctionRecord]:
        return self.functions.get(name)

    def calls_at(self, line: int) -> List[CallSiteRecord]:
        return self._calls_by_line.get(line, [])

    def calls_to(self, callee: str) -> List[CallSiteRecord]:
        return self._calls_by_callee.get(callee, [])

    def is_input_primitive(self, callee: Optional[str]) -> bool:
        return is_input_primitive(callee, self.input_primitives)

    def has_input_call(self, line: int) -> bool:
        """该行是否调用了输入原语"""
        return any(self.is_input_primitive(site.callee) for site in self.calls_at(line))

    def scope_of(self, line: int) -> str:
        record = self.line_records.get(line)
        if record is not None:
            return record.scope
        return self.scopes.scope_of(line)

    def sorted_variables(self) -> List[VariableRecord]:
        return sorted(self.variables.values(), key=lambda r: (r.line, r.scope, r.name))

    def sorted_functions(self) -> List[FunctionRecord]:
        return sorted(self.functions.values(), key=lambda f: (f.line, f.name))

    def sorted_call_sites(self) -> List[CallSiteRecord]:
        return sorted(self.call_sites, key=lambda c: (c.line, c.scope, c.callee))


class ModuleAnalyzer:
    """构建分析上下文"""

    def __init__(self, config: Optional[AnalysisConfig] = None,
                 source_reader: Optional[SourceLineReader] = None):
        self.config = config or AnalysisConfig()
        self.source_reader = source_reader or SourceLineReader(self.config.source_root)

    def analyze(self, module: Module) -> AnalysisContext:
        start_time = time.time()

        resolver = SymbolResolver(module)
        index = LineIndexBuilder(module, resolver).build()
        logger.info(f"行索引完成: {len(index)} 行")

        builder = TableBuilder(
            module, resolver,
            source_reader=self.source_reader,
            input_primitives=self.config.input_primitives,
            format_primitives=self.config.format_primitives,
        )
        functions = builder.build_functions()
        scopes = ScopeAssigner((f.name, f.line) for f in functions.values())

        line_records = {
            line: LineRecord(line, scopes.scope_of(line), index.variables_at(line))
            for line in index.lines()
        }

        call_sites = builder.build_call_sites(scopes.scope_of)
        variables = builder.build_variables()
        builder.add_events(
            variables, line_records,
            call_lines={site.line for site in call_sites},
            function_lines={f.line for f in functions.values()},
        )

        elapsed = time.time() - start_time
        logger.info(
            f"表构建完成: {len(functions)} 个函数, {len(call_sites)} 个调用点, "
            f"{len(variables)} 个变量, 耗时 {elapsed:.3f}s"
        )
        return AnalysisContext(
            module, line_records, variables, functions, call_sites, scopes,
            set(self.config.input_primitives),
        )


def build_context(module: Module, config: Optional[AnalysisConfig] = None,
                  source_reader: Optional[SourceLineReader] = None) -> AnalysisContext:
    """便捷函数：分析模块并返回上下文"""
    return ModuleAnalyzer(config, source_reader).analyze(module)
