"""
ratcc - Rat 语言语义分析器
============================
模块结构：
  ratcc/
    __init__.py          本文件：公共 API
    __main__.py          命令行入口
    config.py            配置常量
    error.py             异常体系 & 诊断信息
    pipeline.py          解析 → 转换 → 语义分析 流水线
    rat.lark             Rat 语法（LALR）
    tree/
      transformer.py     解析树 → 语法树 转换器 & 语法树节点定义
    semantic/
      type.py            类型系统
      symbol.py          实体 & 作用域
      ir.py              带类型的程序表示
      analyzer.py        语义分析器
      stdlib.py          标准库加载器

快速使用示例：

    from ratcc import RatFrontend, dump

    frontend = RatFrontend()
    frontend.load_standard_library()

    result = frontend.process_string(source_code)
    if result.diags.has_errors:
        print(result.diags.report())
    else:
        print(dump(result.program))
"""

from .pipeline import RatFrontend, FrontendResult
from .error import DiagnosticBag, SemanticError, RatSyntaxError
from .semantic.type import (
    INT, FLOAT, STRING, BOOL, VOID, ANY,
    RType, BasicType, OptionalType, PromiseType, ArrayType, DictType, FunctionType,
)
from .semantic.analyzer import RatAnalyzer
from .semantic.ir import dump
from .semantic.stdlib import StdlibLoader, STANDARD_LIBRARY

__all__ = [
    'RatFrontend', 'FrontendResult',
    'DiagnosticBag', 'SemanticError', 'RatSyntaxError',
    'INT', 'FLOAT', 'STRING', 'BOOL', 'VOID', 'ANY',
    'RType', 'BasicType', 'OptionalType', 'PromiseType', 'ArrayType', 'DictType', 'FunctionType',
    'RatAnalyzer', 'dump',
    'StdlibLoader', 'STANDARD_LIBRARY',
]
