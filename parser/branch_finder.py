#!/usr/bin/env python3
"""
分支查找器 - 使用tree-sitter找出C/C++源文件中的分支条件

结果可以写成 branch_info.txt（file,line,kind），作为切片的目标行。
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import tree_sitter_c as tsc
import tree_sitter_cpp as tscpp
from tree_sitter import Language, Node, Parser

from .file_extensions import is_cpp_file

logger = logging.getLogger(__name__)

# tree-sitter节点类型 -> 分支种类
BRANCH_NODE_TYPES = {
    'if_statement': 'if',
    'while_statement': 'while',
    'for_statement': 'for',
    'do_statement': 'do',
    'switch_statement': 'switch',
    'case_statement': 'case',
    'conditional_expression': 'conditional',
}


@dataclass(frozen=True)
class BranchInfo:
    """一个分支条件"""
    file: str
    line: int
    kind: str
    condition: str
    function: Optional[str] = None

    def to_record(self) -> str:
        return f"{self.file},{self.line},{self.kind}"


class BranchFinder:
    """C/C++分支条件查找器"""

    def __init__(self, language: str = "c"):
        if language == "c":
            self.language = Language(tsc.language())
        elif language == "cpp":
            self.language = Language(tscpp.language())
        else:
            raise ValueError(f"不支持的语言: {language}")
        self.language_name = language
        self.parser = Parser(self.language)

    @classmethod
    def for_file(cls, file_path: str) -> 'BranchFinder':
        return cls("cpp" if is_cpp_file(file_path) else "c")

    def find_in_file(self, file_path: str) -> List[BranchInfo]:
        """从文件中查找分支；文件无法读取时抛出OSError"""
        with open(file_path, 'r', encoding='utf-8', errors='replace') as f:
            content = f.read()
        branches = self.find_in_content(content, file_path)
        logger.info(f"{file_path}: 找到 {len(branches)} 个分支")
        return branches

    def find_in_content(self, content: str, file_path: str = "") -> List[BranchInfo]:
        tree = self.parser.parse(content.encode('utf-8'))
        branches: List[BranchInfo] = []
        self._walk(tree.root_node, file_path, None, branches)
        branches.sort(key=lambda b: (b.line, b.kind))
        return branches

    def _walk(self, node: Node, file_path: str, function: Optional[str],
              branches: List[BranchInfo]):
        if node.type == 'function_definition':
            function = self._function_name(node) or function

        kind = BRANCH_NODE_TYPES.get(node.type)
        if kind is not None:
            branch = self._branch(node, kind, file_path, function)
            if branch is not None:
                branches.append(branch)

        for child in node.children:
            self._walk(child, file_path, function, branches)

    @staticmethod
    def _branch(node: Node, kind: str, file_path: str,
                function: Optional[str]) -> Optional[BranchInfo]:
        field_name = 'value' if kind == 'case' else 'condition'
        condition = node.child_by_field_name(field_name)
        if condition is None:
            # default分支或 for(;;)
            return None
        text = condition.text.decode('utf-8', errors='replace')
        if text.startswith('(') and text.endswith(')'):
            text = text[1:-1]
        return BranchInfo(
            file=file_path,
            line=condition.start_point[0] + 1,
            kind=kind,
            condition=' '.join(text.split()),
            function=function,
        )

    @staticmethod
    def _function_name(node: Node) -> Optional[str]:
        declarator = node.child_by_field_name('declarator')
        # 跳过指针/引用声明符，找到function_declarator
        while declarator is not None and declarator.type != 'function_declarator':
            declarator = declarator.child_by_field_name('declarator')
        if declarator is None:
            return None
        name = declarator.child_by_field_name('declarator')
        return name.text.decode('utf-8') if name is not None else None


def find_branches(file_path: str, language: Optional[str] = None) -> List[BranchInfo]:
    """便捷函数：按扩展名或指定语言查找分支"""
    finder = BranchFinder(language) if language else BranchFinder.for_file(file_path)
    return finder.find_in_file(file_path)


def write_branch_info(branches: List[BranchInfo], output_path: str) -> str:
    """写出 file,line,kind 记录，同一行只写一次"""
    seen = set()
    with open(output_path, 'w', encoding='utf-8') as f:
        for branch in branches:
            if branch.line in seen:
                continue
            seen.add(branch.line)
            f.write(branch.to_record() + '\n')
    logger.info(f"写出 {len(seen)} 条分支记录到 {output_path}")
    return output_path
