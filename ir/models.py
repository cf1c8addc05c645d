#!/usr/bin/env python3
"""
IR数据模型定义

文本LLVM IR解析后的模块、函数、基本块、指令以及调试元数据记录
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class DebugFile:
    """!DIFile"""
    id: str
    filename: str
    directory: str = ""


@dataclass
class DebugScope:
    """!DISubprogram / !DILexicalBlock 等作用域节点"""
    id: str
    kind: str                      # 'subprogram' | 'lexical_block' | 'file' ...
    name: Optional[str] = None
    line: int = 0
    file: Optional[str] = None     # DIFile元数据ID
    parent: Optional[str] = None   # 上层作用域元数据ID


@dataclass
class DebugLocation:
    """!DILocation"""
    id: str
    line: int
    column: int = 0
    scope: Optional[str] = None


@dataclass
class DebugVariable:
    """!DILocalVariable / !DIGlobalVariable"""
    id: str
    name: str
    line: int = 0
    arg: int = 0                   # 形参序号（从1开始），0表示非形参
    scope: Optional[str] = None
    file: Optional[str] = None
    is_global: bool = False


@dataclass
class DebugInfo:
    """模块内所有调试元数据的索引"""
    files: Dict[str, DebugFile] = field(default_factory=dict)
    scopes: Dict[str, DebugScope] = field(default_factory=dict)
    locations: Dict[str, DebugLocation] = field(default_factory=dict)
    variables: Dict[str, DebugVariable] = field(default_factory=dict)
    # !DIGlobalVariableExpression ID -> !DIGlobalVariable ID
    global_expressions: Dict[str, str] = field(default_factory=dict)

    def subprogram_of(self, scope_id: Optional[str]) -> Optional[DebugScope]:
        """沿作用域链向上找到所属的DISubprogram"""
        seen = set()
        while scope_id and scope_id not in seen:
            seen.add(scope_id)
            scope = self.scopes.get(scope_id)
            if scope is None:
                return None
            if scope.kind == 'subprogram':
                return scope
            scope_id = scope.parent
        return None

    def file_of(self, scope_id: Optional[str]) -> Optional[DebugFile]:
        """找到作用域所在的源文件"""
        seen = set()
        while scope_id and scope_id not in seen:
            seen.add(scope_id)
            if scope_id in self.files:
                return self.files[scope_id]
            scope = self.scopes.get(scope_id)
            if scope is None:
                return None
            if scope.file and scope.file in self.files:
                return self.files[scope.file]
            scope_id = scope.parent
        return None

    def global_variable(self, attachment: Optional[str]) -> Optional[DebugVariable]:
        """全局变量的!dbg附件可能直接指向变量，也可能指向表达式包装"""
        if not attachment:
            return None
        var_id = self.global_expressions.get(attachment, attachment)
        var = self.variables.get(var_id)
        if var is not None and var.is_global:
            return var
        return None


@dataclass(frozen=True)
class Operand:
    """指令的值操作数"""
    token: str                       # '%x', '@g', '5', 'null' 或常量表达式原文
    gep_base: Optional[str] = None   # 常量getelementptr表达式的基址，如'@.str'

    @property
    def is_local(self) -> bool:
        return self.token.startswith('%')

    @property
    def is_global(self) -> bool:
        return self.token.startswith('@')

    @property
    def is_integer(self) -> bool:
        text = self.token
        if text.startswith('-'):
            text = text[1:]
        return text.isdigit()

    @property
    def base(self) -> str:
        """常量GEP返回基址，否则返回自身"""
        return self.gep_base or self.token


@dataclass
class Instruction:
    """一条IR指令"""
    opcode: str
    text: str
    result: Optional[str] = None
    operands: List[Operand] = field(default_factory=list)
    callee: Optional[str] = None           # 直接调用的函数名（不含@），间接调用为None
    args: List[Operand] = field(default_factory=list)
    debug_ref: Optional[str] = None        # !dbg附件ID
    debug_variable: Optional[str] = None   # dbg.declare/dbg.value引用的变量元数据ID
    location: Optional[DebugLocation] = None
    function: Optional[str] = None

    @property
    def line(self) -> Optional[int]:
        if self.location is None or not self.location.line:
            return None
        return self.location.line

    @property
    def is_call(self) -> bool:
        return self.opcode in ('call', 'invoke')

    @property
    def is_debug_declare(self) -> bool:
        return self.opcode == 'dbg.declare'

    @property
    def is_debug_value(self) -> bool:
        return self.opcode == 'dbg.value'

    @property
    def pointer_operand(self) -> Optional[Operand]:
        """load/store/getelementptr的地址操作数"""
        if self.opcode == 'store':
            return self.operands[1] if len(self.operands) > 1 else None
        if self.opcode in ('load', 'getelementptr'):
            return self.operands[0] if self.operands else None
        return None

    @property
    def value_operand(self) -> Optional[Operand]:
        """store写入的值"""
        if self.opcode == 'store' and self.operands:
            return self.operands[0]
        return None


@dataclass
class BasicBlock:
    label: str
    instructions: List[Instruction] = field(default_factory=list)


@dataclass
class Function:
    """IR函数：定义或仅声明"""
    name: str
    params: List[str] = field(default_factory=list)   # 形参的值名，如['%p']
    blocks: List[BasicBlock] = field(default_factory=list)
    is_declaration: bool = False
    subprogram: Optional[str] = None

    def instructions(self):
        for block in self.blocks:
            for inst in block.instructions:
                yield inst


@dataclass
class GlobalVariable:
    name: str
    debug_ref: Optional[str] = None
    is_constant: bool = False
    string_value: Optional[str] = None   # C字符串初始化值（去掉结尾NUL）


@dataclass
class Module:
    """文本IR模块"""
    source_filename: Optional[str] = None
    functions: List[Function] = field(default_factory=list)
    globals: Dict[str, GlobalVariable] = field(default_factory=dict)
    debug: DebugInfo = field(default_factory=DebugInfo)

    def get_function(self, name: str) -> Optional[Function]:
        for func in self.functions:
            if func.name == name:
                return func
        return None

    def defined_functions(self) -> List[Function]:
        """有函数体的函数（排除declare）"""
        return [f for f in self.functions if not f.is_declaration]
