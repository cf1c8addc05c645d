#!/usr/bin/env python3
"""
命令行驱动的彩色控制台输出

每一级输出由 (颜色, 符号, 输出流) 描述：
    INFO / SUCCESS / VERDICT 写到标准输出，WARNING / ERROR 写到标准错误。
行格式为 "<符号> [<级别>] <消息>"，关闭颜色后不含ANSI转义。
"""

import sys
from typing import Dict, NamedTuple, Optional

RESET = '\033[0m'


class LevelStyle(NamedTuple):
    color: str
    symbol: str
    stream: str             # 'stdout' | 'stderr'，输出时再从sys取，便于重定向


LEVELS: Dict[str, LevelStyle] = {
    'INFO': LevelStyle('\033[36m', "ℹ️", 'stdout'),
    'SUCCESS': LevelStyle('\033[32m', "✅", 'stdout'),
    'WARNING': LevelStyle('\033[33m', "⚠️", 'stderr'),
    'ERROR': LevelStyle('\033[31m', "❌", 'stderr'),
    'VERDICT': LevelStyle('\033[35m', "🌱", 'stdout'),
}

# 非种子结论：同一级别，换成普通符号与颜色
_PLAIN_VERDICT = LevelStyle('\033[36m', "•", 'stdout')


class ConsoleLog:
    """按级别表格式化并输出一行消息"""

    def __init__(self, colors: bool = True):
        self.colors = colors

    def format(self, level: str, message: str, style: Optional[LevelStyle] = None) -> str:
        style = style or LEVELS[level]
        prefix = f"{style.symbol} [{level}]"
        if self.colors:
            prefix = f"{style.color}{prefix}{RESET}"
        return f"{prefix} {message}"

    def emit(self, level: str, message: str, style: Optional[LevelStyle] = None):
        style = style or LEVELS[level]
        print(self.format(level, message, style), file=getattr(sys, style.stream))

    def verdict(self, message: str, seminal: bool):
        self.emit('VERDICT', message, LEVELS['VERDICT'] if seminal else _PLAIN_VERDICT)


console = ConsoleLog()


def set_colors(enabled: bool):
    console.colors = enabled


def log_info(message: str):
    console.emit('INFO', message)


def log_success(message: str):
    console.emit('SUCCESS', message)


def log_warning(message: str):
    console.emit('WARNING', message)


def log_error(message: str):
    console.emit('ERROR', message)


def log_verdict(message: str, seminal: bool = False):
    """切片结论行，种子分支高亮显示"""
    console.verdict(message, seminal)
