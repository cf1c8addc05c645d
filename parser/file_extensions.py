#!/usr/bin/env python3
"""
文件扩展名常量定义 - 统一管理C/C++源文件与LLVM IR文件扩展名
"""

import os

# C语言文件扩展名
C_EXTENSIONS = {'.c', '.h'}

# C++语言文件扩展名
CPP_EXTENSIONS = {'.cpp', '.cxx', '.cc', '.hpp', '.hxx', '.hh'}

# 所有支持的C/C++文件扩展名
ALL_C_CPP_EXTENSIONS = C_EXTENSIONS | CPP_EXTENSIONS

# 文本LLVM IR
IR_TEXT_EXTENSIONS = {'.ll'}

# LLVM bitcode（需要先用llvm-dis转换为文本）
IR_BITCODE_EXTENSIONS = {'.bc'}


def _extension(file_path: str) -> str:
    return os.path.splitext(file_path)[1].lower()


def is_cpp_file(file_path: str) -> bool:
    """判断是否为C++文件"""
    return _extension(file_path) in CPP_EXTENSIONS


def is_supported_source(file_path: str) -> bool:
    """判断是否为支持的C/C++文件"""
    return _extension(file_path) in ALL_C_CPP_EXTENSIONS


def is_ir_file(file_path: str) -> bool:
    """判断是否为文本IR文件"""
    return _extension(file_path) in IR_TEXT_EXTENSIONS


def is_bitcode_file(file_path: str) -> bool:
    return _extension(file_path) in IR_BITCODE_EXTENSIONS

