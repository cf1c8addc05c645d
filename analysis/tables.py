#!/usr/bin/env python3
"""
变量表与调用表

- 变量记录 (名称, 作用域) -> 声明行 + 取值事件列表
- 函数记录 (名称, 声明行, 有序形参)
- 调用点记录 (被调函数, 调用者作用域, 行号, 有序实参)

取值事件的分类只看行级信息（该行变量个数、该行是否有调用点、
是否与函数声明行重合），不检查赋值指令本身：

    变量个数 > 1: 有调用点 -> func，否则 -> var
    变量个数 == 1: 与函数声明行重合 -> param，否则 -> var
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from ir.models import Function, Instruction, Module, Operand
from ir.source_lines import SourceLineReader

from .line_index import LineRecord
from .primitives import FORMAT_MARKER, UNKNOWN_ARGUMENT, format_argument_index, is_input_primitive
from .symbols import ResolvedSymbol, SymbolResolver
from .utils import extract_rhs

logger = logging.getLogger(__name__)

# 值经过这些一元指令后视为同一个值
_VALUE_CASTS = {
    'sext', 'zext', 'trunc', 'bitcast', 'fpext', 'fptrunc',
    'sitofp', 'uitofp', 'fptosi', 'fptoui', 'inttoptr', 'ptrtoint',
    'addrspacecast', 'freeze',
}


@dataclass(frozen=True)
class AcquisitionEvent:
    """变量的一次取值（赋值/定义）"""
    line: int
    rhs: str
    kind: str                       # 'var' | 'func' | 'param'
    covariables: FrozenSet[str]     # 同一行上的其他变量（不含自身）
    scope: str                      # 该行所属作用域
    text: Optional[str] = None      # 源代码行原文


@dataclass
class VariableRecord:
    """(名称, 作用域) 唯一确定的变量记录"""
    name: str
    scope: str
    line: int
    events: List[AcquisitionEvent] = field(default_factory=list)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.name, self.scope)


@dataclass(frozen=True)
class FunctionRecord:
    """函数定义记录"""
    name: str
    line: int
    params: Tuple[str, ...]

    def param_index(self, name: str) -> int:
        try:
            return self.params.index(name)
        except ValueError:
            return -1


@dataclass(frozen=True)
class ActualArgument:
    """调用点的一个实参"""
    kind: str                        # 'var' | 'string' | 'int' | 'call' | 'format' | 'unknown'
    text: str
    callee: Optional[str] = None     # kind == 'call' 时产生该值的被调函数，间接调用为None

    def __str__(self):
        return self.text


UNKNOWN = ActualArgument('unknown', UNKNOWN_ARGUMENT)


@dataclass(frozen=True)
class CallSiteRecord:
    """调用点记录"""
    callee: str
    scope: str
    line: int
    args: Tuple[ActualArgument, ...]

    def argument(self, index: int) -> ActualArgument:
        if 0 <= index < len(self.args):
            return self.args[index]
        return UNKNOWN


def quote_string(value: str) -> str:
    """把C字符串常量还原为带转义的字面量文本"""
    escaped = (value.replace('\\', '\\\\').replace('"', '\\"')
               .replace('\n', '\\n').replace('\t', '\\t').replace('\r', '\\r'))
    return f'"{escaped}"'


class TableBuilder:
    """第二遍扫描：根据行记录与作用域构建函数表、调用表和变量表"""

    def __init__(self, module: Module, resolver: SymbolResolver,
                 source_reader: Optional[SourceLineReader] = None,
                 input_primitives: Optional[Set[str]] = None,
                 format_primitives: Optional[Dict[str, int]] = None):
        self.module = module
        self.resolver = resolver
        self.source_reader = source_reader
        self.input_primitives = input_primitives
        self.format_primitives = format_primitives

    # ------------------------------------------------------------------
    # 函数记录
    # ------------------------------------------------------------------

    def build_functions(self) -> Dict[str, FunctionRecord]:
        records: Dict[str, FunctionRecord] = {}
        for func in self.module.defined_functions():
            scope = self.module.debug.scopes.get(func.subprogram or '')
            if scope is None or not scope.line:
                logger.debug(f"函数 {func.name} 没有调试声明行，跳过")
                continue
            params = []
            for index in range(len(func.params)):
                var = self.resolver.parameter_variable(func, index)
                params.append(var.name if var is not None and var.name else f'<arg{index}>')
            records[func.name] = FunctionRecord(func.name, scope.line, tuple(params))
        return records

    # ------------------------------------------------------------------
    # 调用点记录
    # ------------------------------------------------------------------

    def build_call_sites(self, scope_of) -> List[CallSiteRecord]:
        """scope_of: 行号 -> 作用域"""
        records: List[CallSiteRecord] = []
        for func in self.module.defined_functions():
            for inst in func.instructions():
                if not inst.is_call or not inst.callee or inst.line is None:
                    continue
                if inst.callee.startswith('llvm.'):
                    continue
                args = tuple(self._argument(func, inst, i) for i in range(len(inst.args)))
                records.append(CallSiteRecord(inst.callee, scope_of(inst.line), inst.line, args))
        return records

    def _argument(self, func: Function, inst: Instruction, index: int) -> ActualArgument:
        operand = inst.args[index]
        argument = self._resolve_argument(func.name, operand)
        if argument is not None:
            return argument
        if index == format_argument_index(inst.callee, self.format_primitives):
            return ActualArgument('format', FORMAT_MARKER)
        logger.debug(f"无法解析 {inst.callee} 第{index}个实参: {operand.token}")
        return UNKNOWN

    def _resolve_argument(self, function: str, operand: Operand) -> Optional[ActualArgument]:
        if operand.is_integer:
            return ActualArgument('int', operand.token)

        literal = self._string_literal(operand)
        if literal is not None:
            return ActualArgument('string', literal)

        # 地址实参（&n、数组名）
        symbol = self.resolver.resolve(function, operand)
        if symbol is not None:
            return ActualArgument('var', symbol.name)

        inst = self._strip_casts(function, operand)
        if inst is None:
            return None
        if inst.opcode == 'load':
            symbol = self.resolver.resolve(function, inst.pointer_operand)
            if symbol is not None:
                return ActualArgument('var', symbol.name)
            return None
        if inst.is_call:
            callee = inst.callee
            return ActualArgument('call', f'{callee or "<indirect>"}()', callee)
        return None

    def _string_literal(self, operand: Operand) -> Optional[str]:
        if not (operand.gep_base or operand.is_global):
            return None
        name = operand.base[1:].strip('"') if operand.base.startswith('@') else ''
        gv = self.module.globals.get(name)
        if gv is None or gv.string_value is None or not gv.is_constant:
            return None
        return quote_string(gv.string_value)

    def _strip_casts(self, function: str, operand: Operand) -> Optional[Instruction]:
        inst = self.resolver.defining_instruction(function, operand)
        seen = set()
        while inst is not None and inst.opcode in _VALUE_CASTS and inst.operands:
            if id(inst) in seen:
                return None
            seen.add(id(inst))
            inst = self.resolver.defining_instruction(function, inst.operands[0])
        return inst

    # ------------------------------------------------------------------
    # 变量记录与取值事件
    # ------------------------------------------------------------------

    def build_variables(self) -> Dict[Tuple[str, str], VariableRecord]:
        records: Dict[Tuple[str, str], VariableRecord] = {}
        for symbol in self.resolver.global_symbols():
            records.setdefault((symbol.name, symbol.scope), VariableRecord(symbol.name, symbol.scope, symbol.line))
        for func in self.module.defined_functions():
            for _, var in self.resolver.declared_variables(func.name):
                # 同一函数内的同名变量（不同语句块）合并为一条记录
                records.setdefault((var.name, func.name), VariableRecord(var.name, func.name, var.line))
        return records

    def add_events(self, variables: Dict[Tuple[str, str], VariableRecord],
                   line_records: Dict[int, LineRecord],
                   call_lines: Set[int],
                   function_lines: Set[int]):
        """为每条赋值类指令生成取值事件"""
        dropped = 0
        for func in self.module.defined_functions():
            for inst in func.instructions():
                line = inst.line
                if line is None:
                    continue
                for symbol in self._assigned_symbols(func.name, inst):
                    record = variables.get((symbol.name, symbol.scope))
                    if record is None:
                        dropped += 1
                        continue
                    if any(e.line == line for e in record.events):
                        continue
                    line_record = line_records[line]
                    record.events.append(self._event(
                        inst, symbol.name, line_record, call_lines, function_lines))
        if dropped:
            logger.debug(f"丢弃 {dropped} 个没有变量记录的赋值")

    def _assigned_symbols(self, function: str, inst: Instruction) -> List[ResolvedSymbol]:
        if inst.opcode == 'store':
            symbol = self.resolver.resolve(function, inst.pointer_operand)
            return [symbol] if symbol is not None else []
        if inst.is_call and is_input_primitive(inst.callee, self.input_primitives):
            # 输入原语通过地址实参写入的变量
            symbols = []
            for arg in inst.args:
                symbol = self.resolver.resolve(function, arg)
                if symbol is not None and symbol not in symbols:
                    symbols.append(symbol)
            return symbols
        return []

    def _event(self, inst: Instruction, name: str, line_record: LineRecord,
               call_lines: Set[int], function_lines: Set[int]) -> AcquisitionEvent:
        line = line_record.line
        if len(line_record.variables) > 1:
            kind = 'func' if line in call_lines else 'var'
        elif line in function_lines:
            kind = 'param'
        else:
            kind = 'var'

        text = None
        if self.source_reader is not None:
            text = self.source_reader.line_for(self.module.debug, inst)
        return AcquisitionEvent(
            line=line,
            rhs=extract_rhs(text),
            kind=kind,
            covariables=line_record.variables - {name},
            scope=line_record.scope,
            text=text.strip() if text else None,
        )
