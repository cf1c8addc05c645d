#!/usr/bin/env python3
"""
种子分支分析工具
读取 clang -g -O0 -S -emit-llvm 生成的 .ll 文件，判断目标行（分支条件）
上的变量能否追溯到输入原语
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

# 添加父目录到路径，以便导入项目包
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from analysis.config import AnalysisConfig, ConfigError
from analysis.context import ModuleAnalyzer
from ir.ll_reader import IRReadError, read_module
from ir.source_lines import SourceLineReader
from parser import setup_logging
from parser.branch_finder import find_branches, write_branch_info
from parser.config_parser import load_target_lines
from parser.file_extensions import is_bitcode_file, is_ir_file, is_supported_source
from slicer.output_utils import print_report, save_report_to_file
from slicer.slicer_core import BackwardSlicer
from slicer.visualization import visualize_slice
from tools.log import log_error, log_info, log_success, log_verdict, log_warning, set_colors


def parse_line_list(text: str) -> List[int]:
    """'11,12' -> [11, 12]"""
    lines = []
    for piece in text.split(','):
        piece = piece.strip()
        if not piece:
            continue
        try:
            line = int(piece)
        except ValueError:
            raise argparse.ArgumentTypeError(f"无效的行号: {piece}")
        if line <= 0:
            raise argparse.ArgumentTypeError(f"行号必须为正整数: {piece}")
        lines.append(line)
    return lines


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="基于LLVM IR的种子分支分析工具")
    parser.add_argument("ir_file", nargs="?", help="clang -g -O0 生成的 .ll 文件")
    parser.add_argument("--targets", help="目标行文件（默认 branch_info.txt）")
    parser.add_argument("--lines", type=parse_line_list, default=[],
                        help="额外的目标行号，逗号分隔，例如 11,12")
    parser.add_argument("--source-root", help="源文件根目录（默认为IR文件所在目录）")
    parser.add_argument("--config", help="YAML配置文件")
    parser.add_argument("--output", help="把报告同时保存到文件")
    parser.add_argument("--dot", metavar="PREFIX", help="为每个切片起点输出graphviz .dot文件")
    parser.add_argument("--find-branches", metavar="SOURCE", help="列出C/C++源文件中的分支行")
    parser.add_argument("--emit", help="与 --find-branches 一起使用：写出 branch_info.txt")
    parser.add_argument("--language", choices=["c", "cpp"], help="源文件语言（默认按扩展名判断）")
    parser.add_argument("--no-color", action="store_true", help="关闭彩色输出")
    parser.add_argument("--verbose", action="store_true", help="输出调试日志")
    return parser


def load_config(args) -> AnalysisConfig:
    """默认值 -> YAML -> 环境变量 -> 命令行"""
    config = AnalysisConfig.from_file(args.config) if args.config else AnalysisConfig()
    config = AnalysisConfig.from_env(config)
    if args.targets:
        config.target_file = args.targets
    if args.lines:
        config.target_lines = sorted(set(config.target_lines) | set(args.lines))
    if args.source_root:
        config.source_root = args.source_root
    if args.output:
        config.report_file = args.output
    return config


def run_find_branches(args) -> int:
    if not args.language and not is_supported_source(args.find_branches):
        log_warning(f"无法识别的源文件扩展名，按C语言解析: {args.find_branches}")
    try:
        branches = find_branches(args.find_branches, args.language)
    except OSError as e:
        log_error(f"无法读取源文件 '{args.find_branches}': {e}")
        return 1

    log_info(f"在 {args.find_branches} 中找到 {len(branches)} 个分支")
    for branch in branches:
        where = f" [{branch.function}]" if branch.function else ""
        print(f"  行{branch.line:4d} {branch.kind:<12}{where} {branch.condition}")

    if args.emit:
        write_branch_info(branches, args.emit)
        log_success(f"分支记录已保存到: {args.emit}")
    return 0


def run_analysis(args) -> int:
    try:
        config = load_config(args)
    except (FileNotFoundError, ConfigError) as e:
        log_error(f"配置错误: {e}")
        return 1

    if is_bitcode_file(args.ir_file):
        log_warning("输入是bitcode文件，请先用 llvm-dis 转换为 .ll 文本")
    elif not is_ir_file(args.ir_file):
        log_warning(f"输入文件扩展名不是 .ll，按文本IR读取: {args.ir_file}")

    try:
        module = read_module(args.ir_file)
    except IRReadError as e:
        log_error(str(e))
        return 1
    log_success(f"IR读取完成: {len(module.defined_functions())} 个函数定义")

    source_root = config.source_root or os.path.dirname(os.path.abspath(args.ir_file))
    context = ModuleAnalyzer(config, SourceLineReader(source_root)).analyze(module)

    target_lines = load_target_lines(config.target_file, config.target_lines)
    if not target_lines:
        log_warning("没有目标行，只输出分析表")

    slicer = BackwardSlicer(context)
    verdicts = slicer.analyze_targets(target_lines)

    source_name = module.source_filename or os.path.basename(args.ir_file)
    print_report(context, verdicts, source_name)

    for line_verdict in verdicts:
        log_verdict(f"第{line_verdict.line}行: {line_verdict.verdict.value}", line_verdict.is_seminal)

    if config.report_file:
        save_report_to_file(context, verdicts, config.report_file, source_name)
        log_success(f"报告已保存到: {config.report_file}")

    if args.dot:
        for line_verdict in verdicts:
            for result in line_verdict.results:
                seed = result.seed
                filename = f"{args.dot}_{seed.name}_line{seed.line}"
                visualize_slice(result, filename, pdf=False)
                log_info(f"切片轨迹已保存到: {filename}.dot")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """主函数"""
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    set_colors(not args.no_color)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    if args.find_branches:
        return run_find_branches(args)
    if not args.ir_file:
        parser.error("需要指定 .ll 文件或 --find-branches")
    return run_analysis(args)


if __name__ == "__main__":
    sys.exit(main())
