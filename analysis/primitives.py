#!/usr/bin/env python3
"""
输入原语/格式化原语常量定义 - 统一管理被视为外部输入的库函数
"""

# 全局作用域名称
GLOBAL_SCOPE = '<global>'

# 无法解析的调用实参
UNKNOWN_ARGUMENT = 'unknown'

# 格式化函数的格式串占位标记
FORMAT_MARKER = '"<format>"'

# 字符读取
CHAR_INPUT_PRIMITIVES = {
    'getchar', 'getc', 'fgetc',
    'getchar_unlocked', 'getc_unlocked', 'fgetc_unlocked',
}

# 行/缓冲区读取
BUFFERED_INPUT_PRIMITIVES = {
    'gets', 'fgets', 'getline', 'getdelim', 'fread', 'read',
}

# 文件打开
FILE_OPEN_PRIMITIVES = {'fopen', 'fdopen', 'freopen'}

# 格式化输入
SCAN_PRIMITIVES = {
    'scanf', 'fscanf', 'sscanf', 'vscanf', 'vfscanf', 'vsscanf',
    '__isoc99_scanf', '__isoc99_fscanf', '__isoc99_sscanf',
    '__isoc99_vscanf', '__isoc99_vfscanf', '__isoc99_vsscanf',
    '__isoc23_scanf', '__isoc23_fscanf', '__isoc23_sscanf',
}

# 所有默认的输入原语
DEFAULT_INPUT_PRIMITIVES = (
    CHAR_INPUT_PRIMITIVES | BUFFERED_INPUT_PRIMITIVES | FILE_OPEN_PRIMITIVES | SCAN_PRIMITIVES
)

# 格式化输出函数 -> 格式串参数位置
DEFAULT_FORMAT_PRIMITIVES = {
    'printf': 0, 'vprintf': 0,
    'fprintf': 1, 'vfprintf': 1,
    'sprintf': 1, 'vsprintf': 1,
    'dprintf': 1, 'vdprintf': 1,
    'snprintf': 2, 'vsnprintf': 2,
}


def is_input_primitive(name: str, primitives=None) -> bool:
    """判断被调函数是否为输入原语"""
    if not name:
        return False
    if primitives is None:
        primitives = DEFAULT_INPUT_PRIMITIVES
    return name in primitives


def format_argument_index(name: str, primitives=None) -> int:
    """返回格式化函数的格式串参数位置，非格式化函数返回-1"""
    if primitives is None:
        primitives = DEFAULT_FORMAT_PRIMITIVES
    return primitives.get(name, -1)
