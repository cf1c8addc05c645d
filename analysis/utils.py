#!/usr/bin/env python3
"""
工具函数模块

提供程序分析所需的基础工具函数
"""

from typing import Optional


def find_assignment(code: str) -> int:
    """
    返回赋值运算符'='在代码中的位置，没有赋值时返回-1

    跳过字符串/字符字面量，以及==、!=、<=、>=比较运算符；
    +=、<<=等复合赋值视为赋值。
    """
    in_quote = None
    i = 0
    while i < len(code):
        ch = code[i]
        if in_quote:
            if ch == '\\':
                i += 2
                continue
            if ch == in_quote:
                in_quote = None
        elif ch in ('"', "'"):
            in_quote = ch
        elif ch == '=':
            prev = code[i - 1] if i > 0 else ''
            nxt = code[i + 1] if i + 1 < len(code) else ''
            if nxt == '=':
                i += 2
                continue
            if prev in ('=', '!'):
                i += 1
                continue
            if prev in ('<', '>'):
                # <<= 和 >>= 是赋值，<= 和 >= 是比较
                if i >= 2 and code[i - 2] == prev:
                    return i
                i += 1
                continue
            return i
        i += 1
    return -1


def extract_rhs(code: Optional[str]) -> str:
    """按赋值运算符切分源代码行，保留右侧文本"""
    if not code:
        return ''
    pos = find_assignment(code)
    rhs = code[pos + 1:] if pos != -1 else code
    return clean_code_text(rhs)


def clean_code_text(text: str) -> str:
    """清理代码文本，移除不必要的字符"""
    text = text.strip()
    if text.endswith(';'):
        text = text[:-1]
    return text.strip()

