#!/usr/bin/env python3
"""
测试报告输出与切片轨迹可视化
"""

import sys
from pathlib import Path

# 添加项目根目录到Python路径
sys.path.insert(0, str(Path(__file__).parent.parent))

from analysis import AnalysisContext, LineRecord, ScopeAssigner, build_context
from analysis.tables import AcquisitionEvent, CallSiteRecord, FunctionRecord, VariableRecord
from ir import Module, SourceLineReader, read_module
from slicer import BackwardSlicer, SliceSeed, format_report, save_report_to_file
from slicer.output_utils import format_line_records, format_line_verdicts
from slicer.visualization import trace_to_dot, visualize_slice

FIXTURES = Path(__file__).parent / "fixtures"


def analyze(name, lines):
    module = read_module(str(FIXTURES / f"{name}.ll"))
    context = build_context(module, source_reader=SourceLineReader(str(FIXTURES)))
    slicer = BackwardSlicer(context)
    return context, slicer, slicer.analyze_targets(lines)


def test_report_sections():
    context, _, verdicts = analyze("input_chain", [6])
    report = format_report(context, verdicts, "input_chain.c")
    print(report)

    lines = report.splitlines()
    assert lines[0] == "// 模块: input_chain.c"
    for title in ("行记录", "函数记录", "变量记录", "调用点记录", "切片结论"):
        assert title in lines

    assert "Variables at line 5 (main): x, y" in lines
    assert "Variables at line 7 (main): <none>" in lines
    assert "Analyzing function main at line 3 ()" in lines
    assert "Variable x (main) declared at line 4" in lines
    assert "  x gets value at line 4 [var] || Code: int x = getchar(); || Others: -" in lines
    assert "  y gets value at line 5 [var] || Code: int y = x + 1; || Others: x" in lines
    assert "Function call to getchar at line 4 in main with arguments: ()" in lines
    assert 'Function call to printf at line 7 in main with arguments: ("positive\\n")' in lines
    assert "Line 6 (main): seminal" in lines
    assert "  y (main) at line 6 is seminal (via getchar@L4)" in lines


def test_verdict_lines():
    context, _, verdicts = analyze("interproc", [13, 99])

    out = format_line_verdicts(verdicts)
    assert out[0] == "Line 13 (main): seminal"
    assert "  s (main) at line 13 is not seminal" in out
    assert out[-1] == "Line 99: no variables recorded -> inconclusive"

    assert format_line_records(context, [99]) == ["Variables at line 99: <no record>"]


def test_save_report(tmp_path):
    context, _, verdicts = analyze("literal", [5])
    output = tmp_path / "reports" / "literal.txt"

    assert save_report_to_file(context, verdicts, str(output), "literal.c") == str(output)
    content = output.read_text(encoding="utf-8")
    assert content.startswith("// 种子分支分析报告 - ")
    assert "Line 5 (main): not seminal" in content


def test_trace_to_dot():
    _, slicer, _ = analyze("input_chain", [])
    result = slicer.analyze_seed(SliceSeed("y", "main", 6))

    source = trace_to_dot(result).source
    assert "getchar@L4" in source
    assert "style=dotted" in source
    assert "doubleoctagon" in source


def test_param_edges_are_highlighted(tmp_path):
    _, slicer, _ = analyze("interproc", [])
    result = slicer.analyze_seed(SliceSeed("p", "f", 3))

    filename = str(tmp_path / "slice_p")
    dot = visualize_slice(result, filename, pdf=False)
    assert "color=blue" in dot.source
    assert (tmp_path / "slice_p.dot").read_text(encoding="utf-8") == dot.source


def test_dot_file_keeps_unicode_names(tmp_path):
    """clang接受UTF-8标识符，.dot文件按UTF-8写出"""
    record = VariableRecord(name="计数", scope="main", line=2)
    record.events.append(AcquisitionEvent(2, "getchar()", "var", frozenset(), "main"))
    context = AnalysisContext(
        Module(), {2: LineRecord(2, "main", frozenset({"计数"}))}, {record.key: record},
        {"main": FunctionRecord("main", 1, ())},
        [CallSiteRecord("getchar", "main", 2, ())], ScopeAssigner([("main", 1)]), {"getchar"},
    )
    result = BackwardSlicer(context).analyze_seed(SliceSeed("计数", "main", 3))

    filename = str(tmp_path / "slice_unicode")
    dot = visualize_slice(result, filename, pdf=False)
    content = (tmp_path / "slice_unicode.dot").read_text(encoding="utf-8")
    assert content == dot.source
    assert "计数" in content
