#!/usr/bin/env python3
"""
种子分支分析工具 - 主入口

使用方法:
    分析IR:
        python seminal.py prog.ll [--targets branch_info.txt] [--lines 11,12] [options]
    查找分支行:
        python seminal.py --find-branches prog.c [--emit branch_info.txt]
"""

import sys

if __name__ == "__main__":
    from tools.seminal_analyzer import main
    sys.exit(main())
