"""
Rat 标准库加载器
=================
标准库实体在分析开始前一次性装入根作用域。本模块提供三种来源：

  1. 内置的 STANDARD_LIBRARY 字典（load_standard）
  2. 手工维护的字典（load_from_dict），格式同 STANDARD_LIBRARY
  3. 声明文件（load_from_file），每行一个声明：

        native func sqrt(x: float) -> float;
        native func print_line(s: str);
        native func apply(f: (int)->int, x: int) -> int;
        native const pi: float;

用法示例：
    loader = StdlibLoader()
    loader.load_standard()
    builtins = loader.get_builtins()   # dict[str, Variable | Function]

    analyzer = RatAnalyzer(builtins=builtins)

get_builtins() 每次都创建新的实体对象，不同的分析之间不共享实体。
"""

from __future__ import annotations
import logging
import re
from pathlib import Path

from .type import (
    RType, FunctionType, OptionalType, PromiseType, ArrayType, DictType,
    PRIMITIVE_TYPES,
)
from .symbol import Variable, Function

logger = logging.getLogger(__name__)


# native func NAME(p: T, ...) [-> R];
# 参数表里可能出现函数类型 (T)->R，括号配对由 _split_signature 处理
_FUNC_RE = re.compile(
    r'native\s+func\s+'
    r'(?P<name>[A-Za-z_]\w*)\s*'
    r'(?P<signature>\(.*?)\s*;'
)

# native const NAME: T;
_CONST_RE = re.compile(
    r'native\s+const\s+(?P<name>[A-Za-z_]\w*)\s*:\s*(?P<type>[^;]+?)\s*;'
)

_PARAM_RE = re.compile(r'(?P<name>[A-Za-z_]\w*)\s*:\s*(?P<type>.+)')


def _parse_type_str(type_str: str) -> RType:
    """
    将类型字符串解析为 RType。
    支持基础类型、T?、T promise、[T]、{K:V}、(T, ...)->R，写法与 rat.lark 的类型语法一致。
    """
    name = type_str.strip()
    if name.startswith('('):
        # 函数类型的返回类型延伸到末尾，要先于 ? / promise 后缀处理
        params, ret = _split_signature(name)
        if ret is None:
            raise ValueError(f"函数类型缺少返回类型: {type_str!r}")
        return FunctionType(_parse_type_list(params), _parse_type_str(ret))
    if name.endswith('?'):
        return OptionalType(_parse_type_str(name[:-1]))
    if name.endswith('promise'):
        return PromiseType(_parse_type_str(name[:-len('promise')]))
    if name.startswith('[') and name.endswith(']'):
        return ArrayType(_parse_type_str(name[1:-1]))
    if name.startswith('{') and name.endswith('}'):
        parts = _split_top_level(name[1:-1], ':')
        if len(parts) != 2:
            raise ValueError(f"无法识别的字典类型: {type_str!r}")
        key, value = parts
        return DictType(_parse_type_str(key), _parse_type_str(value))
    if name in PRIMITIVE_TYPES:
        return PRIMITIVE_TYPES[name]
    raise ValueError(f"无法识别的类型: {type_str!r}")


def _parse_type_list(text: str) -> list[RType]:
    if not text.strip():
        return []
    return [_parse_type_str(part) for part in _split_top_level(text)]


def _split_signature(text: str) -> tuple[str, str | None]:
    """
    '(p: T, ...) -> R' → ('p: T, ...', 'R')
    '(p: T, ...)'      → ('p: T, ...', None)
    """
    depth = 0
    for i, ch in enumerate(text):
        if ch in '([{':
            depth += 1
        elif ch in ')]}':
            depth -= 1
            if depth == 0:
                inner, rest = text[1:i], text[i + 1:].strip()
                break
    else:
        raise ValueError(f"括号不匹配: {text!r}")

    if not rest:
        return inner, None
    if not rest.startswith('->'):
        raise ValueError(f"无法识别的签名: {text!r}")
    return inner, rest[2:].strip()


class StdlibLoader:
    """
    加载标准库声明。内部只保存 名字 → 类型，实体在 get_builtins() 时创建。
    """
    def __init__(self):
        self._funcs:  dict[str, FunctionType] = {}
        self._consts: dict[str, RType] = {}
        self._load_errors: list[str] = []

    def load_standard(self) -> int:
        """加载内置的 STANDARD_LIBRARY"""
        return self.load_from_dict(STANDARD_LIBRARY)

    def load_from_dict(self, definitions: dict) -> int:
        """
        从字典加载，返回加载的条目数。

        definitions 格式：
          {
            'func_name':  ('return_type_str', ['param_type_str', ...]),
            'const_name': 'type_str',
            ...
          }
        """
        for name, entry in definitions.items():
            if isinstance(entry, str):
                self._consts[name] = _parse_type_str(entry)
            else:
                ret_str, param_strs = entry
                self._funcs[name] = FunctionType(
                    [_parse_type_str(p) for p in param_strs], _parse_type_str(ret_str))
        logger.debug("loaded %d standard library entries from dict", len(definitions))
        return len(definitions)

    def load_from_file(self, path: str | Path) -> int:
        """
        从声明文件加载，返回成功加载的条目数。
        无法识别的行记录到 load_errors。
        """
        path = Path(path)
        if not path.exists():
            self._load_errors.append(f"文件不存在: {path}")
            return 0

        count = 0
        with open(path, encoding='utf-8', errors='replace') as f:
            for lineno, line in enumerate(f, 1):
                line = line.split('//', 1)[0].strip()
                if not line:
                    continue
                try:
                    m = _FUNC_RE.fullmatch(line)
                    if m:
                        params, ret = _split_signature(m.group('signature'))
                        self._funcs[m.group('name')] = FunctionType(
                            self._parse_params(params),
                            _parse_type_str(ret) if ret else PRIMITIVE_TYPES['void'])
                        count += 1
                        continue
                    m = _CONST_RE.fullmatch(line)
                    if m:
                        self._consts[m.group('name')] = _parse_type_str(m.group('type'))
                        count += 1
                        continue
                    self._load_errors.append(f"{path.name}:{lineno}: 无法识别的声明: {line}")
                except ValueError as e:
                    self._load_errors.append(f"{path.name}:{lineno}: {e}")

        logger.debug("loaded %d standard library entries from %s", count, path)
        return count

    def get_builtins(self) -> dict:
        """返回 名字 → 实体 的新字典（每次调用都创建新的实体）"""
        builtins = {}
        for name, rtype in self._consts.items():
            builtins[name] = Variable(name, rtype, read_only=True)
        for name, ftype in self._funcs.items():
            params = [Variable(f'p{i}', t, read_only=True)
                      for i, t in enumerate(ftype.param_types)]
            builtins[name] = Function(name).seal(ftype, params)
        return builtins

    @property
    def load_errors(self):
        return list(self._load_errors)

    @staticmethod
    def _parse_params(params_str: str) -> list[RType]:
        params_str = params_str.strip()
        if not params_str:
            return []
        types = []
        for part in _split_top_level(params_str):
            m = _PARAM_RE.fullmatch(part.strip())
            if not m:
                raise ValueError(f"无法识别的参数: {part.strip()!r}")
            types.append(_parse_type_str(m.group('type')))
        return types


def _split_top_level(text: str, sep: str = ',') -> list[str]:
    """按顶层分隔符切分（忽略 () [] {} 内部的分隔符）"""
    parts, depth, current = [], 0, ''
    for ch in text:
        if ch in '([{':
            depth += 1
        elif ch in ')]}':
            depth -= 1
        if ch == sep and depth == 0:
            parts.append(current)
            current = ''
        else:
            current += ch
    parts.append(current)
    return parts


# ─── 内置标准库 ───────────────────────────────────────────────────────────────

STANDARD_LIBRARY = {
    # 常量
    'pi':        'float',
    'e':         'float',

    # 数学
    'sqrt':      ('float', ['float']),
    'sin':       ('float', ['float']),
    'cos':       ('float', ['float']),
    'exp':       ('float', ['float']),
    'ln':        ('float', ['float']),
    'hypot':     ('float', ['float', 'float']),
    'abs':       ('float', ['float']),
    'floor':     ('int',   ['float']),
    'toFloat':   ('float', ['int']),
    'random':    ('int',   ['int', 'int']),

    # 字符串
    'length':    ('int',   ['str']),
    'toString':  ('str',   ['any']),
    'bytes':     ('[int]', ['str']),
    'codepoints': ('[int]', ['str']),

    # 其他
    'size':      ('int',   ['any']),
    'sleep':     ('void',  ['int']),
}
