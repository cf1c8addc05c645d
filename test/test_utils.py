#!/usr/bin/env python3
"""
测试源代码行的赋值切分与文件扩展名判断
"""

import sys
from pathlib import Path

# 添加项目根目录到Python路径
sys.path.insert(0, str(Path(__file__).parent.parent))

from analysis.utils import clean_code_text, extract_rhs, find_assignment
from parser.file_extensions import is_bitcode_file, is_cpp_file, is_ir_file, is_supported_source


def test_find_assignment():
    assert find_assignment("x = 1;") == 2
    assert find_assignment("if (a == b)") == -1
    assert find_assignment("a != b && c <= d && e >= f") == -1
    assert find_assignment("x += 2;") == 3
    assert find_assignment("x <<= 1;") == 4
    assert find_assignment('printf("a=b");') == -1
    assert find_assignment("c = '=';") == 2


def test_extract_rhs():
    assert extract_rhs("  int y = x + 1;") == "x + 1"
    assert extract_rhs('  s = "a=b";') == '"a=b"'
    assert extract_rhs("  scanf(\"%d\", &n);") == 'scanf("%d", &n)'
    assert extract_rhs(None) == ""
    assert extract_rhs("") == ""


def test_clean_code_text():
    assert clean_code_text("  foo(); ") == "foo()"


def test_file_extensions():
    assert is_cpp_file("a/b.CC")
    assert not is_cpp_file("a/b.c")
    assert is_supported_source("x.h")
    assert not is_supported_source("x.rs")
    assert is_ir_file("prog.ll")
    assert is_bitcode_file("prog.bc")
    assert not is_ir_file("prog.bc")
