#!/usr/bin/env python3
"""
IR包 - 文本LLVM IR模型与读取
"""

from .models import (
    BasicBlock, DebugFile, DebugInfo, DebugLocation, DebugScope, DebugVariable,
    Function, GlobalVariable, Instruction, Module, Operand
)
from .ll_reader import IRReadError, LLReader, read_module
from .source_lines import SourceLineReader

__version__ = "1.0.0"

__all__ = [
    'BasicBlock',
    'DebugFile',
    'DebugInfo',
    'DebugLocation',
    'DebugScope',
    'DebugVariable',
    'Function',
    'GlobalVariable',
    'Instruction',
    'Module',
    'Operand',
    'IRReadError',
    'LLReader',
    'read_module',
    'SourceLineReader'
]
