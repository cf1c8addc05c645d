#!/usr/bin/env python3
"""
输出和文件保存工具
"""

import os
from datetime import datetime
from typing import List, Optional

from analysis.context import AnalysisContext

from .models import LineVerdict, SliceResult


def format_line_records(context: AnalysisContext, lines: Optional[List[int]] = None) -> List[str]:
    """每行的变量集合与作用域，lines为None时输出全部行"""
    out = []
    for line in (sorted(lines) if lines is not None else sorted(context.line_records)):
        record = context.line_record(line)
        if record is None:
            out.append(f"Variables at line {line}: <no record>")
            continue
        names = ', '.join(sorted(record.variables)) or '<none>'
        out.append(f"Variables at line {line} ({record.scope}): {names}")
    return out


def format_functions(context: AnalysisContext) -> List[str]:
    return [
        f"Analyzing function {func.name} at line {func.line} ({', '.join(func.params)})"
        for func in context.sorted_functions()
    ]


def format_variables(context: AnalysisContext) -> List[str]:
    out = []
    for record in context.sorted_variables():
        out.append(f"Variable {record.name} ({record.scope}) declared at line {record.line}")
        for event in sorted(record.events, key=lambda e: e.line):
            code = event.text if event.text is not None else event.rhs
            covars = ', '.join(sorted(event.covariables))
            out.append(
                f"  {record.name} gets value at line {event.line} [{event.kind}] "
                f"|| Code: {code} || Others: {covars or '-'}"
            )
    return out


def format_call_sites(context: AnalysisContext) -> List[str]:
    return [
        f"Function call to {site.callee} at line {site.line} in {site.scope} "
        f"with arguments: ({', '.join(str(a) for a in site.args)})"
        for site in context.sorted_call_sites()
    ]


def format_slice_result(result: SliceResult) -> str:
    seed = result.seed
    status = "is seminal" if result.is_seminal else f"is {result.verdict.value}"
    sources = result.leaves('input')
    suffix = f" (via {', '.join(s.split(':', 1)[1] for s in sources)})" if sources else ''
    return f"  {seed.name} ({seed.scope}) at line {seed.line} {status}{suffix}"


def format_line_verdicts(verdicts: List[LineVerdict]) -> List[str]:
    out = []
    for lv in verdicts:
        if lv.scope is None:
            out.append(f"Line {lv.line}: no variables recorded -> {lv.verdict.value}")
            continue
        out.append(f"Line {lv.line} ({lv.scope}): {lv.verdict.value}")
        for result in lv.results:
            out.append(format_slice_result(result))
    return out


def format_report(context: AnalysisContext, verdicts: List[LineVerdict],
                  source_name: Optional[str] = None) -> str:
    """生成完整的文本报告"""
    sections = [
        ("行记录", format_line_records(context)),
        ("函数记录", format_functions(context)),
        ("变量记录", format_variables(context)),
        ("调用点记录", format_call_sites(context)),
        ("切片结论", format_line_verdicts(verdicts)),
    ]
    lines = []
    if source_name:
        lines.append(f"// 模块: {source_name}")
    for title, body in sections:
        lines.append(title)
        lines.append("=" * 60)
        lines.extend(body if body else ["(无)"])
        lines.append("")
    return '\n'.join(lines)


def print_report(context: AnalysisContext, verdicts: List[LineVerdict],
                 source_name: Optional[str] = None):
    """打印完整报告"""
    print(format_report(context, verdicts, source_name))


def save_report_to_file(context: AnalysisContext, verdicts: List[LineVerdict],
                        output_filename: str, source_name: Optional[str] = None) -> str:
    """
    将报告保存到文件

    Args:
        context: 分析上下文
        verdicts: 目标行结论
        output_filename: 输出文件名
        source_name: 模块名，写在报告头部

    Returns:
        保存的文件名
    """
    directory = os.path.dirname(output_filename)
    if directory:
        os.makedirs(directory, exist_ok=True)
    header = f"// 种子分支分析报告 - {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n"
    with open(output_filename, 'w', encoding='utf-8') as f:
        f.write(header)
        f.write(format_report(context, verdicts, source_name))
    return output_filename
