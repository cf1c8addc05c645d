#!/usr/bin/env python3
"""
Parser包 - 目标行配置与C/C++分支查找
"""

import logging
import sys

from .branch_finder import BranchFinder, BranchInfo, find_branches, write_branch_info
from .config_parser import TargetLineParser, load_target_lines


# 版本信息
__version__ = "1.0.0"
__author__ = "Parser Team"

# 公开的API
__all__ = [
    'BranchFinder',
    'BranchInfo',
    'find_branches',
    'write_branch_info',
    'TargetLineParser',
    'load_target_lines',
    'setup_logging'
]

# 包的简介
__doc__ = """
Parser包提供切片目标行的来源：

主要功能：
- 解析 branch_info.txt（file,line,kind，第二个字段为行号）
- 基于tree-sitter查找C/C++源文件中的分支条件
  （if / while / for / do / switch / case / 条件表达式）

使用示例：

1. 读取目标行：
   lines = load_target_lines("branch_info.txt")

2. 从源文件生成目标行文件：
   branches = find_branches("prog.c")
   write_branch_info(branches, "branch_info.txt")
"""


def setup_logging(level=logging.INFO, format_string=None):
    """
    配置日志记录

    Args:
        level: 日志级别 (logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR)
        format_string: 自定义日志格式字符串
    """
    if format_string is None:
        format_string = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    logging.basicConfig(
        level=level,
        format=format_string,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    # 为各个包设置日志级别
    for name in ('ir', 'analysis', 'slicer', __name__.split('.')[0]):
        logging.getLogger(name).setLevel(level)
