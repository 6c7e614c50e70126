"""
Rat 程序表示（IR）
==================
语义分析器的输出：经过验证、带类型的程序树。

  - 每个表达式节点都有确定的 .type（RType）
  - 标识符引用直接就是被解析到的实体（Variable / Function），
    实体同样有 .type
  - else-if 链表示为 alternate 中嵌套的 IfStatement
"""

from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, List, Optional

from .type import RType
from .symbol import Variable, Function


# ──────────────────────────────────────────────────────────────────────────────
# 程序 & 语句
# ──────────────────────────────────────────────────────────────────────────────

@dataclass
class Program:
    statements: List[Any] = field(default_factory=list)


@dataclass
class PrintStatement:
    argument: Any = None


@dataclass
class VariableDeclaration:
    variable:    Variable = None
    initializer: Any = None


@dataclass
class FunctionDeclaration:
    function: Function = None
    params:   List[Variable] = field(default_factory=list)
    body:     List[Any] = field(default_factory=list)


@dataclass
class Assignment:
    target: Any = None     # Variable
    source: Any = None


@dataclass
class CallStatement:
    call: 'Call' = None


@dataclass
class PassStatement:
    pass


@dataclass
class BreakStatement:
    pass


@dataclass
class ReturnStatement:
    expression: Any = None


@dataclass
class ShortReturnStatement:
    """void 函数中的 `return;`"""
    pass


@dataclass
class WhileStatement:
    test: Any = None
    body: List[Any] = field(default_factory=list)


@dataclass
class ForRangeStatement:
    iterator: Variable = None
    low:      Any = None
    op:       str = '...'     # '...' 含上界，'..<' 不含上界
    high:     Any = None
    body:     List[Any] = field(default_factory=list)


@dataclass
class ForStatement:
    iterator:   Variable = None
    collection: Any = None
    body:       List[Any] = field(default_factory=list)


@dataclass
class IfStatement:
    test:       Any = None
    consequent: List[Any] = field(default_factory=list)
    alternate:  Any = None    # 语句列表，或 else-if 的 IfStatement / ShortIfStatement


@dataclass
class ShortIfStatement:
    test:       Any = None
    consequent: List[Any] = field(default_factory=list)


@dataclass
class TryStatement:
    body:           List[Any] = field(default_factory=list)
    catch_params:   List[Variable] = field(default_factory=list)
    catch_body:     List[Any] = field(default_factory=list)
    timeout_params: Optional[List[Variable]] = None
    timeout_body:   Optional[List[Any]] = None


# ──────────────────────────────────────────────────────────────────────────────
# 表达式（都有 .type）
# ──────────────────────────────────────────────────────────────────────────────

@dataclass
class Literal:
    value: Any = None
    type:  RType = None


@dataclass
class BinaryExpression:
    op:    str = ''
    left:  Any = None
    right: Any = None
    type:  RType = None


@dataclass
class UnaryExpression:
    op:      str = ''
    operand: Any = None
    type:    RType = None


@dataclass
class UnwrapElse:
    """optional ?? alternate，结果类型为 optional 的类型"""
    optional:  Any = None
    alternate: Any = None
    type:      RType = None


@dataclass
class SubscriptExpression:
    array: Any = None
    index: Any = None
    type:  RType = None


@dataclass
class ArrayLiteral:
    """
    空数组 [] 在没有上下文时为 [any]，
    出现在需要 [T] 的位置时采用 [T]。
    """
    elements: List[Any] = field(default_factory=list)
    type:     RType = None


@dataclass
class DictLiteral:
    bindings: List[tuple] = field(default_factory=list)   # [(key, value), ...]
    type:     RType = None


@dataclass
class EmptyOptional:
    """no T"""
    type: RType = None


@dataclass
class Call:
    callee: Any = None     # Function 或函数类型的 Variable
    args:   List[Any] = field(default_factory=list)
    type:   RType = None


# ──────────────────────────────────────────────────────────────────────────────
# 调试输出
# ──────────────────────────────────────────────────────────────────────────────

def dump(node, indent: int = 0) -> str:
    """缩进形式打印 IR 树"""
    pad = '  ' * indent
    if isinstance(node, (Variable, Function)):
        return f"{pad}{node!r}"
    if isinstance(node, list):
        if not node:
            return f"{pad}[]"
        return '\n'.join(dump(item, indent) for item in node)
    if isinstance(node, tuple):
        return '\n'.join(dump(item, indent) for item in node)
    if not is_dataclass(node):
        return f"{pad}{node!r}"

    name = type(node).__name__
    if isinstance(node, Literal):
        return f"{pad}Literal {node.value!r}: {node.type}"
    typed = getattr(node, 'type', None)
    head = f"{pad}{name}" + (f": {typed}" if typed is not None else '')
    lines = [head]
    for f in fields(node):
        if f.name == 'type':
            continue
        value = getattr(node, f.name)
        if value is None:
            continue
        if isinstance(value, (str, int, float, bool)):
            lines.append(f"{pad}  {f.name}: {value!r}")
        else:
            lines.append(f"{pad}  {f.name}:")
            lines.append(dump(value, indent + 2))
    return '\n'.join(lines)
