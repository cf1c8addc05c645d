#!/usr/bin/env python3
"""
作用域与符号解析

把IR中的存储位置（alloca、全局变量、基于基址的元素地址）解析为
源代码变量名、声明行号以及声明所在的作用域。

数组元素地址（getelementptr）统一折叠到基址变量，不区分元素。
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ir.ll_reader import unquote_name
from ir.models import DebugVariable, Function, Instruction, Module, Operand

from .primitives import GLOBAL_SCOPE

logger = logging.getLogger(__name__)

# 通过这些指令得到的地址仍然指向同一个变量
_ADDRESS_DERIVATIONS = ('getelementptr', 'bitcast', 'addrspacecast')


@dataclass(frozen=True)
class ResolvedSymbol:
    """解析得到的变量标识"""
    name: str
    line: int
    scope: str

    @property
    def is_global(self) -> bool:
        return self.scope == GLOBAL_SCOPE


class SymbolResolver:
    """存储位置 -> (变量名, 声明行, 作用域)"""

    def __init__(self, module: Module):
        self.module = module
        self.debug = module.debug
        # 函数名 -> {地址值: 调试变量}
        self._declared: Dict[str, Dict[str, DebugVariable]] = {}
        # 函数名 -> {结果值: 定义它的指令}
        self._definitions: Dict[str, Dict[str, Instruction]] = {}
        # 全局变量名 -> 解析结果
        self._globals: Dict[str, ResolvedSymbol] = {}
        self._build()

    def _build(self):
        for func in self.module.defined_functions():
            declared: Dict[str, DebugVariable] = {}
            definitions: Dict[str, Instruction] = {}
            for inst in func.instructions():
                if inst.result:
                    definitions[inst.result] = inst
                if not inst.is_debug_declare or not inst.operands:
                    continue
                var = self.debug.variables.get(inst.debug_variable or '')
                address = inst.operands[0]
                if var is not None and address.is_local:
                    declared.setdefault(address.token, var)
            self._declared[func.name] = declared
            self._definitions[func.name] = definitions

        for gv in self.module.globals.values():
            var = self.debug.global_variable(gv.debug_ref)
            if var is not None:
                self._globals[gv.name] = ResolvedSymbol(var.name, var.line, GLOBAL_SCOPE)

        logger.debug(
            f"符号解析表: {sum(len(d) for d in self._declared.values())} 个局部变量, "
            f"{len(self._globals)} 个全局变量"
        )

    def resolve_declared(self, function: str, operand: Optional[Operand]) -> Optional[ResolvedSymbol]:
        """只对带调试声明的值本身（alloca或全局变量）做解析"""
        if operand is None:
            return None
        if operand.is_local:
            var = self._declared.get(function, {}).get(operand.token)
            if var is None:
                return None
            return ResolvedSymbol(var.name, var.line, function)
        if operand.is_global:
            return self._globals.get(unquote_name(operand.token[1:]))
        return None

    def resolve(self, function: str, operand: Optional[Operand]) -> Optional[ResolvedSymbol]:
        """解析地址操作数，元素地址返回基址变量"""
        if operand is None:
            return None
        if operand.gep_base:
            return self.resolve_declared(function, Operand(token=operand.gep_base))

        seen = set()
        current = operand
        while current is not None and current.token not in seen:
            seen.add(current.token)
            symbol = self.resolve_declared(function, current)
            if symbol is not None:
                return symbol
            inst = self.defining_instruction(function, current)
            if inst is None or inst.opcode not in _ADDRESS_DERIVATIONS or not inst.operands:
                return None
            current = inst.operands[0]
        return None

    def defining_instruction(self, function: str, operand: Optional[Operand]) -> Optional[Instruction]:
        """返回定义该局部值的指令"""
        if operand is None or not operand.is_local:
            return None
        return self._definitions.get(function, {}).get(operand.token)

    def declared_variables(self, function: str) -> List[Tuple[str, DebugVariable]]:
        """函数内所有带调试声明的 (地址值, 变量)"""
        return list(self._declared.get(function, {}).items())

    def global_symbols(self) -> List[ResolvedSymbol]:
        return list(self._globals.values())

    def debug_variable(self, inst: Instruction) -> Optional[DebugVariable]:
        """dbg.declare / dbg.value 引用的变量"""
        if not inst.debug_variable:
            return None
        return self.debug.variables.get(inst.debug_variable)

    def parameter_variable(self, func: Function, index: int) -> Optional[DebugVariable]:
        """第index个形参（从0开始）对应的调试变量"""
        for _, var in self.declared_variables(func.name):
            if var.arg == index + 1:
                return var
        # 没有dbg.declare时按元数据作用域查找
        for var in self.debug.variables.values():
            if var.is_global or var.arg != index + 1:
                continue
            subprogram = self.debug.subprogram_of(var.scope)
            if subprogram is not None and subprogram.id == func.subprogram:
                return var
        return None
