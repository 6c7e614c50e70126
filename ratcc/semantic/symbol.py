"""
Rat 实体与作用域
=================
实体（entity）是被声明的程序元素，分两种：

  - Variable：变量 / 常量 / 形参 / 循环变量
  - Function：函数（类型在形参分析完之后才确定）

作用域（Context）是一条单链：每个作用域只拥有自己的局部名字表，
通过 parent 指向外层作用域。根作用域预先装入标准库实体。
"""

from __future__ import annotations
from typing import Optional

from .type import RType, FunctionType


class Variable:
    """
    变量实体。

    Attributes:
        name:      变量名
        type:      声明类型（RType）
        read_only: const、for 循环变量、标准库常量为 True
    """
    def __init__(self, name: str, type: RType, read_only: bool = False):
        self.name      = name
        self.type      = type
        self.read_only = read_only

    def __repr__(self):
        flag = 'const ' if self.read_only else ''
        return f"Variable({flag}{self.name}: {self.type})"


class Function:
    """
    函数实体，两阶段构造：

      1. Function(name)          在分析函数体之前放入外层作用域（支持递归）
      2. seal(func_type, params) 形参分析完成后固定类型，之后不可再改
    """
    def __init__(self, name: str, type: FunctionType = None, params: list = None):
        self.name    = name
        self._type   = type
        self._params = tuple(params or ())

    @property
    def type(self) -> Optional[FunctionType]:
        return self._type

    @property
    def params(self) -> tuple:
        return self._params

    @property
    def sealed(self) -> bool:
        return self._type is not None

    @property
    def read_only(self) -> bool:
        return True   # 函数名不能被重新赋值

    def seal(self, func_type: FunctionType, params=()) -> 'Function':
        if self.sealed:
            # 程序错误：分析器对每个函数只 seal 一次，不经过 must()
            raise RuntimeError(f"函数 '{self.name}' 的类型已经确定，不能再次设置")
        self._type   = func_type
        self._params = tuple(params)
        return self

    def __repr__(self):
        return f"Function({self.name}: {self._type if self.sealed else '?'})"


class Context:
    """
    单个作用域。

    Attributes:
        parent:      外层作用域（不拥有）
        within_loop: 是否位于循环体内（穿过 if / try 等非循环块依然有效）
        function:    所在函数的 Function 实体，顶层为 None
    """
    def __init__(self, parent: Context = None, locals: dict = None, *,
                 within_loop: bool = False, function: Function = None):
        self.parent      = parent
        self.locals      = dict(locals or {})
        self.within_loop = within_loop
        self.function    = function

    @classmethod
    def root(cls, builtins: dict = None) -> Context:
        """根作用域，装入标准库实体"""
        return cls(locals=builtins)

    def new_child(self, *, within_loop: bool = None, function: Function = None) -> Context:
        """子作用域默认继承循环 / 函数状态"""
        return Context(
            parent=self,
            within_loop=self.within_loop if within_loop is None else within_loop,
            function=self.function if function is None else function,
        )

    # ── 符号操作 ────────────────────────────────────────────────────────────

    def add(self, name: str, entity) -> bool:
        """在本作用域绑定实体，同层重名返回 False"""
        if name in self.locals:
            return False
        self.locals[name] = entity
        return True

    def lookup(self, name: str):
        """从本作用域向外逐层查找"""
        context = self
        while context is not None:
            entity = context.locals.get(name)
            if entity is not None:
                return entity
            context = context.parent
        return None

    def lookup_local(self, name: str):
        """仅查本作用域（用于检测同层重定义）"""
        return self.locals.get(name)

    @property
    def depth(self) -> int:
        n, context = 0, self.parent
        while context is not None:
            n, context = n + 1, context.parent
        return n

    # ── 调试辅助 ────────────────────────────────────────────────────────────

    def dump(self) -> str:
        chain = []
        context = self
        while context is not None:
            chain.append(context)
            context = context.parent
        lines = []
        for i, scope in enumerate(reversed(chain)):
            indent = '  ' * i
            flags = []
            if scope.within_loop: flags.append('loop')
            if scope.function:    flags.append(f'func:{scope.function.name}')
            lines.append(f"{indent}[{' '.join(flags) or ('global' if i == 0 else 'block')}]")
            for entity in scope.locals.values():
                lines.append(f"{indent}  {entity}")
        return '\n'.join(lines)
