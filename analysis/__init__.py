"""
模块级数据流分析

提供符号解析、行索引、作用域划分、变量/函数/调用点表的构建，
以及汇总这些表的分析上下文
"""

from .config import AnalysisConfig, ConfigError
from .context import AnalysisContext, ModuleAnalyzer, build_context
from .line_index import LineIndex, LineIndexBuilder, LineRecord
from .primitives import (
    DEFAULT_FORMAT_PRIMITIVES, DEFAULT_INPUT_PRIMITIVES, FORMAT_MARKER,
    GLOBAL_SCOPE, UNKNOWN_ARGUMENT, is_input_primitive
)
from .scopes import ScopeAssigner
from .symbols import ResolvedSymbol, SymbolResolver
from .tables import (
    AcquisitionEvent, ActualArgument, CallSiteRecord, FunctionRecord,
    TableBuilder, VariableRecord
)

__all__ = [
    'AnalysisConfig',
    'ConfigError',
    'AnalysisContext',
    'ModuleAnalyzer',
    'build_context',
    'LineIndex',
    'LineIndexBuilder',
    'LineRecord',
    'DEFAULT_FORMAT_PRIMITIVES',
    'DEFAULT_INPUT_PRIMITIVES',
    'FORMAT_MARKER',
    'GLOBAL_SCOPE',
    'UNKNOWN_ARGUMENT',
    'is_input_primitive',
    'ScopeAssigner',
    'ResolvedSymbol',
    'SymbolResolver',
    'AcquisitionEvent',
    'ActualArgument',
    'CallSiteRecord',
    'FunctionRecord',
    'TableBuilder',
    'VariableRecord'
]
