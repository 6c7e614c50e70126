"""
Rat 诊断体系
=============
语义分析采用 fail-fast：第一个违规立即抛出异常，终止整个分析。
分析器里只有一个报错入口 must()，所有规则都通过它表达。

流水线（pipeline）负责把异常转成 SemanticDiag 放进 DiagnosticBag，
交给调用方统一展示。
"""

from dataclasses import dataclass
from enum import Enum, auto


class ErrorSeverity(Enum):
    WARNING = auto()
    ERROR   = auto()


@dataclass
class SemanticDiag:
    """一条诊断信息"""
    severity: ErrorSeverity
    message:  str
    line:     int = -1
    column:   int = -1
    kind:     str = ''       # 异常类名，如 'IllegalBreak'
    hint:     str = ''       # 可选修复提示

    def __str__(self):
        tag = self.severity.name
        base = f"[{tag}] {self.message}"
        if self.kind:
            base += f" ({self.kind})"
        if self.hint:
            base += f"\n  hint: {self.hint}"
        return base


# ──────────────────────────────────────────────────────────────────────────────
# 异常体系
# ──────────────────────────────────────────────────────────────────────────────

class RatSyntaxError(Exception):
    """词法 / 语法错误（由 Lark 前端产生，不属于语义错误）"""
    def __init__(self, message, line=-1, column=-1, hint=''):
        super().__init__(_prefixed(message, line, column))
        self.message = message
        self.line    = line
        self.column  = column
        self.hint    = hint       # 例如 "expected one of: ..."


class SemanticError(Exception):
    """语义错误基类。str(e) 带 "行:列 " 前缀"""
    def __init__(self, message, line=-1, column=-1):
        super().__init__(_prefixed(message, line, column))
        self.message = message
        self.line    = line
        self.column  = column


class UndeclaredIdentifier(SemanticError):
    pass


class DuplicateDeclaration(SemanticError):
    pass


class TypeMismatch(SemanticError):
    pass


class NotNumeric(TypeMismatch):
    pass


class NotBoolean(TypeMismatch):
    pass


class NotInteger(TypeMismatch):
    pass


class NotArray(TypeMismatch):
    pass


class NotOptional(TypeMismatch):
    pass


class NotIterable(TypeMismatch):
    pass


class OperandTypeMismatch(TypeMismatch):
    pass


class NotAssignable(SemanticError):
    pass


class NotCallable(SemanticError):
    pass


class ArgumentCountMismatch(SemanticError):
    pass


class IllegalBreak(SemanticError):
    pass


class IllegalReturn(SemanticError):
    pass


class ReadOnlyViolation(SemanticError):
    pass


def must(condition, message: str, at, error: type = SemanticError):
    """
    唯一的报错入口。condition 不成立时抛出 error，
    消息前缀为 at 节点的 "行:列"。
    """
    if not condition:
        line, column = _loc(at)
        raise error(message, line, column)


# ──────────────────────────────────────────────────────────────────────────────
# 诊断收集
# ──────────────────────────────────────────────────────────────────────────────

class DiagnosticBag:
    """
    诊断信息收集袋。
    流水线把语法错误或语义异常放进来，调用方统一输出。
    """
    def __init__(self):
        self._diags: list[SemanticDiag] = []

    # ── 添加诊断 ────────────────────────────────────────────────────────────

    def error(self, message: str, node=None, hint: str = '', kind: str = ''):
        line, column = _loc(node)
        self._diags.append(SemanticDiag(ErrorSeverity.ERROR, message, line, column, kind, hint))

    def warning(self, message: str, node=None, hint: str = ''):
        line, column = _loc(node)
        self._diags.append(SemanticDiag(ErrorSeverity.WARNING, message, line, column, '', hint))

    def add_exception(self, exc: Exception, hint: str = ''):
        """把 SemanticError / RatSyntaxError 转成一条诊断（消息已含位置前缀）"""
        line   = getattr(exc, 'line', -1)
        column = getattr(exc, 'column', -1)
        self._diags.append(SemanticDiag(ErrorSeverity.ERROR, str(exc), line, column,
                                        type(exc).__name__, hint))

    # ── 查询 ────────────────────────────────────────────────────────────────

    @property
    def has_errors(self) -> bool:
        return any(d.severity == ErrorSeverity.ERROR for d in self._diags)

    @property
    def count(self) -> int:
        return len(self._diags)

    @property
    def errors(self):
        return [d for d in self._diags if d.severity == ErrorSeverity.ERROR]

    @property
    def warnings(self):
        return [d for d in self._diags if d.severity == ErrorSeverity.WARNING]

    def __iter__(self):
        return iter(self._diags)

    def __len__(self):
        return len(self._diags)

    # ── 输出 ────────────────────────────────────────────────────────────────

    def report(self) -> str:
        if not self._diags:
            return "No diagnostics."
        lines = [str(d) for d in sorted(self._diags, key=lambda d: (d.line, d.column))]
        summary = (f"\n{'─'*60}\n"
                   f"{len(self.errors)} error(s), {len(self.warnings)} warning(s)")
        return '\n'.join(lines) + summary

    def raise_if_errors(self):
        if self.has_errors:
            raise SemanticError(f"{len(self.errors)} error(s) found.\n" +
                                '\n'.join(str(d) for d in self.errors))


def _prefixed(message, line, column) -> str:
    if line is None or line < 0:
        return message
    return f"{line}:{column} {message}"


def _loc(node) -> tuple[int, int]:
    """从语法树节点 / Lark Token / Lark Tree 提取行列信息"""
    if node is None:
        return -1, -1
    # 语法树节点（ratcc.tree.transformer.SyntaxNode）
    if hasattr(node, 'line') and hasattr(node, 'col'):
        return getattr(node, 'line', -1), getattr(node, 'col', -1)
    # Lark Token
    if hasattr(node, 'line') and hasattr(node, 'column'):
        return getattr(node, 'line', -1), getattr(node, 'column', -1)
    # Lark Tree with meta
    if hasattr(node, 'meta'):
        meta = node.meta
        return getattr(meta, 'line', -1), getattr(meta, 'column', -1)
    return -1, -1
