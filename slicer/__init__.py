#!/usr/bin/env python3
"""
Slicer包 - 基于IR的后向数据流切片
"""

from .models import LineVerdict, SliceResult, SliceSeed, SliceVerdict
from .slicer_core import BackwardSlicer
from .output_utils import format_report, print_report, save_report_to_file

# 版本信息
__version__ = "1.0.0"
__author__ = "Slicer Team"

# 公开的API
__all__ = [
    'BackwardSlicer',
    'LineVerdict',
    'SliceResult',
    'SliceSeed',
    'SliceVerdict',
    'format_report',
    'print_report',
    'save_report_to_file'
]

# 包的简介
__doc__ = """
Slicer包判断目标行（通常是分支条件）上的变量能否追溯到外部输入：

主要功能：
- 沿取值事件与形参绑定做后向切片
- 三态结论：seminal / not seminal / inconclusive
- 记录切片轨迹（networkx）并可渲染为graphviz图

使用示例：

from ir import read_module
from analysis import build_context
from slicer import BackwardSlicer

context = build_context(read_module("prog.ll"))
for line_verdict in BackwardSlicer(context).analyze_targets([11, 12]):
    print(line_verdict.line, line_verdict.verdict.value)
"""
