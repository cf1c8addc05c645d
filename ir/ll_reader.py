#!/usr/bin/env python3
"""
LLVM IR读取器

解析 clang -g -O0 -S -emit-llvm 生成的 .ll 文件，构建 ir.models.Module：
函数/基本块/指令、全局变量（含C字符串常量）以及调试元数据
（DIFile、DISubprogram、DILexicalBlock、DILocation、DILocalVariable、
DIGlobalVariable、DIGlobalVariableExpression）。

模块结构来自 llvmlite.binding；调试信息从模块的打印文本中读取。
同时支持两种调试变量编码：
    call void @llvm.dbg.declare(metadata ptr %x, metadata !15, metadata !DIExpression()), !dbg !17
    #dbg_declare(ptr %x, !15, !DIExpression(), !17)
"""

import logging
import re
import string
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import llvmlite.binding as llvm

from .models import (
    BasicBlock, DebugFile, DebugLocation, DebugScope, DebugVariable,
    Function, GlobalVariable, Instruction, Module, Operand
)

logger = logging.getLogger(__name__)

_NAME = r'(?:"(?:[^"\\]|\\.)*"|[-\w.$]+)'
_PLAIN_NAME_RE = re.compile(r'[-a-zA-Z$._][-a-zA-Z$._0-9]*')
_GLOBAL_CALL_RE = re.compile(r'(@' + _NAME + r')\s*\(')
_RESULT_RE = re.compile(r'^(%' + _NAME + r')\s*=\s*(.*)$')
_LABEL_RE = re.compile(r'^(' + _NAME + r'):(?:\s*;.*)?$')
_GLOBAL_RE = re.compile(r'^@(' + _NAME + r')\s*=\s*(.*)$')
_META_RE = re.compile(r'^(!\d+)\s*=\s*(?:distinct\s+)?!(DI\w+)\s*\(')
_DBG_ATTACHMENT_RE = re.compile(r'!dbg\s+(!\d+)')
_CSTRING_RE = re.compile(r'c"((?:[^"\\]|\\.)*)"')

_DEBUG_INTRINSICS = {
    'llvm.dbg.declare': 'dbg.declare',
    'llvm.dbg.value': 'dbg.value',
    'llvm.dbg.addr': 'dbg.declare',
}

_GLOBAL_KINDS = {'function', 'global_variable', 'global_alias', 'global_ifunc'}
_CLAUSE_PREFIXES = ('catch ', 'filter ')
_DEBUG_CALL_RE = re.compile(r'^(?:tail\s+)?call\s+void\s+@llvm\.dbg\.(?:declare|value|addr)\(')

_binding_ready = False


class IRReadError(Exception):
    """IR文件无法读取"""


def _configure_binding():
    """关闭调试信息自动升级：缺少版本标记或校验失败时LLVM会剥离全部调试信息"""
    global _binding_ready
    if not _binding_ready:
        llvm.set_option('seminal', '-disable-auto-upgrade-debug-info')
        _binding_ready = True


def split_top_level(text: str, sep: str = ',') -> List[str]:
    """按顶层分隔符切分，忽略括号和字符串内部的分隔符"""
    parts: List[str] = []
    depth = 0
    in_string = False
    escape = False
    token: List[str] = []
    for ch in text:
        if in_string:
            token.append(ch)
            if escape:
                escape = False
            elif ch == '\\':
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in '{[(':
            depth += 1
        elif ch in '}])':
            depth = max(depth - 1, 0)
        if ch == sep and depth == 0:
            piece = ''.join(token).strip()
            if piece:
                parts.append(piece)
            token = []
        else:
            token.append(ch)
    tail = ''.join(token).strip()
    if tail:
        parts.append(tail)
    return parts


def matching_paren(text: str, start: int) -> int:
    """返回与text[start]处'('匹配的')'位置，找不到返回-1"""
    depth = 0
    in_string = False
    escape = False
    for pos in range(start, len(text)):
        ch = text[pos]
        if in_string:
            if escape:
                escape = False
            elif ch == '\\':
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
            if depth == 0:
                return pos
    return -1


def unquote_name(name: str) -> str:
    if len(name) >= 2 and name[0] == '"' and name[-1] == '"':
        return name[1:-1]
    return name


def decode_c_string(body: str) -> bytes:
    """解码LLVM c"..."常量中的 \\XX 转义"""
    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == '\\':
            hx = body[i + 1:i + 3]
            if len(hx) == 2 and all(c in string.hexdigits for c in hx):
                out.append(int(hx, 16))
                i += 3
                continue
            if hx.startswith('\\'):
                out.append(ord('\\'))
                i += 2
                continue
        out.extend(ch.encode('utf-8'))
        i += 1
    return bytes(out)


def parse_value(piece: str) -> Operand:
    """
    从带类型的操作数文本中取出值

    'i32 noundef %call' -> %call
    'ptr getelementptr inbounds ([4 x i8], ptr @.str, i64 0, i64 0)' -> 常量GEP，基址@.str
    """
    piece = piece.strip()
    gep_pos = piece.find('getelementptr')
    if gep_pos != -1:
        open_pos = piece.find('(', gep_pos)
        close_pos = matching_paren(piece, open_pos) if open_pos != -1 else -1
        if open_pos != -1 and close_pos != -1:
            inner = split_top_level(piece[open_pos + 1:close_pos])
            if len(inner) >= 2:
                base = parse_value(inner[1])
                return Operand(token=piece[gep_pos:close_pos + 1], gep_base=base.base)
    tokens = piece.split()
    if not tokens:
        return Operand(token='')
    return Operand(token=tokens[-1])


def quote_name(name: str) -> str:
    if _PLAIN_NAME_RE.fullmatch(name):
        return name
    return '"' + name + '"'


def value_operand(value) -> Operand:
    """llvmlite的值 -> 操作数文本（与打印结果中的写法一致）"""
    kind = value.value_kind.name
    if value.name:
        prefix = '@' if kind in _GLOBAL_KINDS else '%'
        return Operand(token=prefix + quote_name(value.name))
    text = str(value).strip()
    if kind == 'instruction' or kind in _GLOBAL_KINDS:
        # 匿名值打印为 '%0 = ...'
        return Operand(token=text.split(' = ', 1)[0].strip())
    return parse_value(text)


def _is_debug_call(ref) -> bool:
    if ref.opcode != 'call':
        return False
    values = list(ref.operands)
    return bool(values) and values[-1].name in _DEBUG_INTRINSICS


def _bracket_depth(text: str) -> int:
    depth = 0
    in_string = False
    for ch in text:
        if ch == '"':
            in_string = not in_string
        elif not in_string:
            if ch == '[':
                depth += 1
            elif ch == ']':
                depth -= 1
    return depth


class LLReader:
    """
    LLVM IR读取器

    llvmlite负责解析与模块结构（函数、形参、基本块、指令、操作数）；
    调试信息（!dbg附加、DI*元数据、#dbg_*记录）从模块的打印文本中读取，
    打印文本与llvmlite的指令序列逐条对齐。
    """

    def __init__(self):
        self.module: Optional[Module] = None
        self._debug_refs: List[Tuple[Instruction, Optional[str]]] = []

    def read(self, path: str) -> Module:
        """读取.ll文件"""
        try:
            text = Path(path).read_text(encoding='utf-8', errors='replace')
        except OSError as e:
            raise IRReadError(f"无法读取IR文件 {path}: {e}") from e
        logger.info(f"读取IR文件: {path}")
        return self.parse(text)

    def parse(self, text: str) -> Module:
        """解析IR文本"""
        _configure_binding()
        try:
            llmod = llvm.parse_assembly(text)
        except RuntimeError as e:
            raise IRReadError(f"IR解析失败: {e}") from e

        try:
            self.module = Module(source_filename=llmod.source_file or None)
            self._debug_refs = []

            # 元数据编号以整个模块的打印结果为准
            headers, bodies, global_lines = self._split_printed(str(llmod))
            for gv in llmod.global_variables:
                rest = global_lines.get(gv.name)
                if rest is not None:
                    self._parse_global(gv.name, rest)
            for fn in llmod.functions:
                self.module.functions.append(
                    self._build_function(fn, headers.get(fn.name, ''), bodies.get(fn.name, []))
                )
        finally:
            llmod.close()

        self._resolve_locations()
        logger.info(
            f"IR解析完成: {len(self.module.functions)} 个函数, "
            f"{len(self.module.globals)} 个全局变量, "
            f"{len(self.module.debug.variables)} 个调试变量"
        )
        return self.module

    # ------------------------------------------------------------------
    # 打印文本：函数头 / 函数体 / 全局变量 / 元数据
    # ------------------------------------------------------------------

    def _split_printed(self, printed: str) -> Tuple[Dict[str, str], Dict[str, List[str]], Dict[str, str]]:
        headers: Dict[str, str] = {}
        bodies: Dict[str, List[str]] = {}
        global_lines: Dict[str, str] = {}
        current: Optional[str] = None

        for raw in printed.splitlines():
            line = raw.strip()
            if current is not None:
                if line == '}':
                    current = None
                else:
                    bodies[current].append(line)
                continue
            if not line or line.startswith(';'):
                continue
            if line.startswith('!'):
                self._parse_metadata(line)
            elif line.startswith(('define ', 'declare ')):
                match = _GLOBAL_CALL_RE.search(line)
                if not match:
                    continue
                name = unquote_name(match.group(1)[1:])
                headers[name] = line
                if line.startswith('define '):
                    bodies[name] = []
                    current = name
            else:
                match = _GLOBAL_RE.match(line)
                if match:
                    global_lines[unquote_name(match.group(1))] = match.group(2)
        return headers, bodies, global_lines

    def _parse_global(self, name: str, rest: str):
        dbg = _DBG_ATTACHMENT_RE.search(rest)
        is_constant = bool(re.search(r'(^|\s)constant\s', rest))
        string_value = None
        cstring = _CSTRING_RE.search(rest)
        if cstring:
            data = decode_c_string(cstring.group(1))
            # 只有以单个NUL结尾、且中间无NUL的数组才视为C字符串
            if data.endswith(b'\x00') and b'\x00' not in data[:-1]:
                string_value = data[:-1].decode('utf-8', errors='replace')
        self.module.globals[name] = GlobalVariable(
            name=name,
            debug_ref=dbg.group(1) if dbg else None,
            is_constant=is_constant,
            string_value=string_value,
        )

    # ------------------------------------------------------------------
    # 函数：形参 / 基本块 / 指令
    # ------------------------------------------------------------------

    def _build_function(self, fn, header: str, body: List[str]) -> Function:
        dbg = _DBG_ATTACHMENT_RE.search(header)
        func = Function(
            name=fn.name,
            is_declaration=fn.is_declaration,
            subprogram=dbg.group(1) if dbg else None,
        )
        if fn.is_declaration:
            # 声明的匿名形参没有编号，按位置命名
            func.params = [f"%{quote_name(arg.name)}" if arg.name else f"%{index}"
                           for index, arg in enumerate(fn.arguments)]
            return func
        func.params = [value_operand(arg).token for arg in fn.arguments]

        blocks = list(fn.blocks)
        segments = self._block_segments(body)
        if len(segments) != len(blocks):
            raise IRReadError(f"函数 {fn.name} 的基本块数与打印结果不一致: "
                              f"{len(blocks)} != {len(segments)}")

        for index, (block_ref, (label, lines)) in enumerate(zip(blocks, segments)):
            block = BasicBlock(label=block_ref.name or label or 'entry')
            refs = list(block_ref.instructions)
            pos = 0
            for line in lines:
                if line.startswith('#dbg_'):
                    inst, debug_ref = self._parse_debug_record(line)
                elif pos < len(refs) and (not _DEBUG_CALL_RE.match(line) or _is_debug_call(refs[pos])):
                    inst, debug_ref = self._build_instruction(refs[pos], line)
                    pos += 1
                elif _DEBUG_CALL_RE.match(line):
                    # 内存中是调试记录，打印成了intrinsic调用
                    inst, debug_ref = self._debug_call(line)
                else:
                    raise IRReadError(f"函数 {fn.name} 第{index}个基本块的指令与打印结果不一致")
                if inst is None:
                    logger.debug(f"跳过无法解析的调试记录: {line}")
                    continue
                inst.function = fn.name
                block.instructions.append(inst)
                self._debug_refs.append((inst, debug_ref))
            if pos != len(refs):
                raise IRReadError(f"函数 {fn.name} 第{index}个基本块的指令与打印结果不一致")
            func.blocks.append(block)
        return func

    @staticmethod
    def _block_segments(body: List[str]) -> List[Tuple[Optional[str], List[str]]]:
        """按标签切分函数体；入口块可以没有标签"""
        logical: List[str] = []
        open_brackets = 0
        for line in body:
            if not line or line.startswith(';'):
                continue
            # switch的跳转表跨多行，landingpad的子句单独成行
            is_clause = line == 'cleanup' or line.startswith(_CLAUSE_PREFIXES)
            if logical and (open_brackets > 0 or is_clause):
                logical[-1] = f"{logical[-1]} {line}"
            else:
                logical.append(line)
            open_brackets = max(_bracket_depth(logical[-1]), 0)

        segments: List[Tuple[Optional[str], List[str]]] = []
        label: Optional[str] = None
        lines: List[str] = []
        for line in logical:
            match = _LABEL_RE.match(line)
            if match:
                if label is not None or lines:
                    segments.append((label, lines))
                label, lines = unquote_name(match.group(1)), []
            else:
                lines.append(line)
        if label is not None or lines:
            segments.append((label, lines))
        return segments

    def _build_instruction(self, ref, line: str) -> Tuple[Instruction, Optional[str]]:
        dbg = _DBG_ATTACHMENT_RE.search(line)
        debug_ref = dbg.group(1) if dbg else None
        result = _RESULT_RE.match(line)
        inst = Instruction(opcode=ref.opcode, text=line,
                           result=result.group(1) if result else None, debug_ref=debug_ref)

        values = list(ref.operands)
        if inst.opcode in ('call', 'invoke') and values:
            # 被调值是最后一个操作数；invoke的两个跳转目标在它之前
            callee_ref = values[-1]
            args = values[:-1] if inst.opcode == 'call' else values[:-3]
            callee = callee_ref.name if callee_ref.value_kind.name == 'function' else None
            if callee in _DEBUG_INTRINSICS:
                return self._debug_call(line)
            inst.callee = callee
            inst.args = [value_operand(v) for v in args]
            inst.operands = list(inst.args)
        else:
            inst.operands = [value_operand(v) for v in values
                             if v.value_kind.name != 'basic_block']
        return inst, debug_ref

    def _debug_call(self, line: str) -> Tuple[Optional[Instruction], Optional[str]]:
        match = _GLOBAL_CALL_RE.search(line)
        if not match:
            return None, None
        open_pos = match.end() - 1
        close_pos = matching_paren(line, open_pos)
        if close_pos == -1:
            return None, None
        dbg = _DBG_ATTACHMENT_RE.search(line, close_pos)
        debug_ref = dbg.group(1) if dbg else None
        inst = Instruction(opcode=_DEBUG_INTRINSICS[unquote_name(match.group(1)[1:])],
                           text=line, debug_ref=debug_ref)
        self._fill_debug_variable(inst, split_top_level(line[open_pos + 1:close_pos]))
        return inst, debug_ref

    def _parse_debug_record(self, line: str) -> Tuple[Optional[Instruction], Optional[str]]:
        kind = line[1:line.find('(')] if '(' in line else ''
        open_pos = line.find('(')
        close_pos = matching_paren(line, open_pos) if open_pos != -1 else -1
        if close_pos == -1:
            return None, None
        pieces = split_top_level(line[open_pos + 1:close_pos])
        opcode = 'dbg.value' if kind == 'dbg_value' else 'dbg.declare'
        inst = Instruction(opcode=opcode, text=line)
        self._fill_debug_variable(inst, pieces)
        debug_ref = pieces[3].strip() if len(pieces) >= 4 and pieces[3].strip().startswith('!') else None
        inst.debug_ref = debug_ref
        return inst, debug_ref

    @staticmethod
    def _fill_debug_variable(inst: Instruction, pieces: List[str]):
        if len(pieces) < 2:
            return
        address = pieces[0].strip()
        if address.startswith('metadata '):
            address = address[len('metadata '):]
        inst.operands = [parse_value(address)]
        var = pieces[1].split()[-1]
        if var.startswith('!'):
            inst.debug_variable = var

    # ------------------------------------------------------------------
    # 调试元数据
    # ------------------------------------------------------------------

    def _parse_metadata(self, line: str):
        match = _META_RE.match(line)
        if not match:
            return
        meta_id, kind = match.group(1), match.group(2)
        open_pos = match.end() - 1
        close_pos = matching_paren(line, open_pos)
        if close_pos == -1:
            return
        fields = self._parse_fields(line[open_pos + 1:close_pos])
        debug = self.module.debug

        if kind == 'DIFile':
            debug.files[meta_id] = DebugFile(
                id=meta_id,
                filename=self._string_field(fields.get('filename')) or '',
                directory=self._string_field(fields.get('directory')) or '',
            )
        elif kind == 'DISubprogram':
            debug.scopes[meta_id] = DebugScope(
                id=meta_id,
                kind='subprogram',
                name=self._string_field(fields.get('name')),
                line=self._int_field(fields.get('line')),
                file=fields.get('file'),
                parent=fields.get('scope'),
            )
        elif kind in ('DILexicalBlock', 'DILexicalBlockFile'):
            debug.scopes[meta_id] = DebugScope(
                id=meta_id,
                kind='lexical_block',
                line=self._int_field(fields.get('line')),
                file=fields.get('file'),
                parent=fields.get('scope'),
            )
        elif kind == 'DILocation':
            debug.locations[meta_id] = DebugLocation(
                id=meta_id,
                line=self._int_field(fields.get('line')),
                column=self._int_field(fields.get('column')),
                scope=fields.get('scope'),
            )
        elif kind in ('DILocalVariable', 'DIGlobalVariable'):
            debug.variables[meta_id] = DebugVariable(
                id=meta_id,
                name=self._string_field(fields.get('name')) or '',
                line=self._int_field(fields.get('line')),
                arg=self._int_field(fields.get('arg')),
                scope=fields.get('scope'),
                file=fields.get('file'),
                is_global=(kind == 'DIGlobalVariable'),
            )
        elif kind == 'DIGlobalVariableExpression':
            var = fields.get('var')
            if var:
                debug.global_expressions[meta_id] = var

    @staticmethod
    def _parse_fields(body: str) -> Dict[str, str]:
        fields: Dict[str, str] = {}
        for piece in split_top_level(body):
            if ':' not in piece:
                continue
            key, value = piece.split(':', 1)
            fields[key.strip()] = value.strip()
        return fields

    @staticmethod
    def _string_field(value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
            return decode_c_string(value[1:-1]).decode('utf-8', errors='replace')
        return value or None

    @staticmethod
    def _int_field(value: Optional[str]) -> int:
        if value is None:
            return 0
        try:
            return int(value.strip(), 0)
        except ValueError:
            return 0

    def _resolve_locations(self):
        locations = self.module.debug.locations
        for inst, debug_ref in self._debug_refs:
            if debug_ref:
                inst.location = locations.get(debug_ref)
        self._debug_refs = []


def read_module(path: str) -> Module:
    """读取.ll文件的便捷函数"""
    return LLReader().read(path)
