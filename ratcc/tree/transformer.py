"""
Rat 语法树 Transformer
=======================
将 Lark 生成的解析树转换为语法树（SyntaxNode），供语义分析器遍历。

语法树只反映源码结构，不含任何类型信息；类型检查后得到的
带类型程序表示见 ratcc.semantic.ir。

使用 Lark 的 Transformer 机制：每个方法对应 rat.lark 中一条规则
（或 -> 别名），接收已转换的子节点，返回 SyntaxNode 对象。

使用方式：
    transformer = RatTransformer()
    tree = transformer.transform(lark_tree)
"""

from dataclasses import dataclass, field
from typing import List, Optional

from lark import Transformer, v_args


# ──────────────────────────────────────────────────────────────────────────────
# 语法树节点基类
# ──────────────────────────────────────────────────────────────────────────────

class SyntaxNode:
    """
    所有语法树节点的公共基类。

    Attributes:
        line, col: 源码位置（由 Transformer 从 meta / Token 填入）
    """
    line: int = -1
    col:  int = -1

    def _pos(self):
        return f"{self.line}:{self.col}"

    def __repr__(self):
        return f"{self.__class__.__name__}@{self._pos()}"


# ──────────────────────────────────────────────────────────────────────────────
# 类型语法
# ──────────────────────────────────────────────────────────────────────────────

@dataclass
class PrimitiveTypeNode(SyntaxNode):
    """int / float / str / bool / void / any / None"""
    name: str = ''


@dataclass
class OptionalTypeNode(SyntaxNode):
    """T?"""
    base: SyntaxNode = None


@dataclass
class PromiseTypeNode(SyntaxNode):
    """T promise"""
    base: SyntaxNode = None


@dataclass
class ArrayTypeNode(SyntaxNode):
    """[T]"""
    base: SyntaxNode = None


@dataclass
class DictTypeNode(SyntaxNode):
    """{K:V}"""
    key:   SyntaxNode = None
    value: SyntaxNode = None


@dataclass
class FunctionTypeNode(SyntaxNode):
    """(T1, T2) -> R"""
    params:      List[SyntaxNode] = field(default_factory=list)
    return_type: SyntaxNode = None


# ──────────────────────────────────────────────────────────────────────────────
# 顶层 & 声明节点
# ──────────────────────────────────────────────────────────────────────────────

@dataclass
class Program(SyntaxNode):
    """整个源文件"""
    stmts: List[SyntaxNode] = field(default_factory=list)


@dataclass
class VarDecl(SyntaxNode):
    """var / const 声明（必须带初始值）"""
    name:      str = ''
    type_spec: SyntaxNode = None
    init:      SyntaxNode = None
    is_const:  bool = False


@dataclass
class Param(SyntaxNode):
    name:      str = ''
    type_spec: SyntaxNode = None


@dataclass
class FuncDecl(SyntaxNode):
    """func name(params) -> type { body }，省略 -> type 表示 void"""
    name:        str = ''
    params:      List[Param] = field(default_factory=list)
    return_type: Optional[SyntaxNode] = None
    body:        'Block' = None


# ──────────────────────────────────────────────────────────────────────────────
# 语句节点
# ──────────────────────────────────────────────────────────────────────────────

@dataclass
class Block(SyntaxNode):
    stmts: List[SyntaxNode] = field(default_factory=list)


@dataclass
class PrintStmt(SyntaxNode):
    expr: SyntaxNode = None


@dataclass
class AssignStmt(SyntaxNode):
    target: 'Identifier' = None
    expr:   SyntaxNode = None


@dataclass
class CallStmt(SyntaxNode):
    call: 'FuncCall' = None


@dataclass
class PassStmt(SyntaxNode):
    pass


@dataclass
class BreakStmt(SyntaxNode):
    pass


@dataclass
class ReturnStmt(SyntaxNode):
    value: Optional[SyntaxNode] = None   # None 表示 `return;`


@dataclass
class WhileStmt(SyntaxNode):
    cond: SyntaxNode = None
    body: Block = None


@dataclass
class ForRangeStmt(SyntaxNode):
    """for i in low ... high { }   /   for i in low ..< high { }"""
    iterator: str = ''
    low:      SyntaxNode = None
    op:       str = '...'
    high:     SyntaxNode = None
    body:     Block = None


@dataclass
class ForInStmt(SyntaxNode):
    """for x in collection { }"""
    iterator: str = ''
    iterable: SyntaxNode = None
    body:     Block = None


@dataclass
class IfStmt(SyntaxNode):
    cond:    SyntaxNode = None
    then_br: Block = None
    else_br: Optional[SyntaxNode] = None   # Block、IfStmt（else if）或 None


@dataclass
class TryStmt(SyntaxNode):
    body:           Block = None
    catch_params:   List[Param] = field(default_factory=list)
    catch_body:     Block = None
    timeout_params: Optional[List[Param]] = None   # 仅 try/timeout/catch
    timeout_body:   Optional[Block] = None


# ──────────────────────────────────────────────────────────────────────────────
# 表达式节点
# ──────────────────────────────────────────────────────────────────────────────

@dataclass
class Identifier(SyntaxNode):
    name: str = ''

    def __repr__(self):
        return f"Id({self.name})"


@dataclass
class IntLiteral(SyntaxNode):
    raw: str = ''

    @property
    def value(self) -> int:
        return int(self.raw)


@dataclass
class FloatLiteral(SyntaxNode):
    raw: str = ''

    @property
    def value(self) -> float:
        return float(self.raw)


@dataclass
class BoolLiteral(SyntaxNode):
    value: bool = False


@dataclass
class StringLiteral(SyntaxNode):
    raw: str = ''   # 含引号的原始字符串

    @property
    def value(self) -> str:
        return self.raw[1:-1]   # 去掉引号


@dataclass
class BinaryOp(SyntaxNode):
    """位置记在运算符上"""
    op:    str = ''
    left:  SyntaxNode = None
    right: SyntaxNode = None

    def __repr__(self):
        return f"BinOp({self.op})"


@dataclass
class UnaryOp(SyntaxNode):
    op:      str = ''    # '-', '!', 'some'
    operand: SyntaxNode = None


@dataclass
class UnwrapElse(SyntaxNode):
    """optional ?? alternate"""
    optional:  SyntaxNode = None
    alternate: SyntaxNode = None


@dataclass
class ArrayAccess(SyntaxNode):
    array: SyntaxNode = None
    index: SyntaxNode = None


@dataclass
class FuncCall(SyntaxNode):
    callee: Identifier = None
    args:   List[SyntaxNode] = field(default_factory=list)


@dataclass
class ArrayLiteral(SyntaxNode):
    elements: List[SyntaxNode] = field(default_factory=list)   # [] 为空数组


@dataclass
class Binding(SyntaxNode):
    key:   SyntaxNode = None
    value: SyntaxNode = None


@dataclass
class DictLiteral(SyntaxNode):
    bindings: List[Binding] = field(default_factory=list)   # {} 为空字典


@dataclass
class EmptyOptional(SyntaxNode):
    """no T"""
    type_spec: SyntaxNode = None


# ──────────────────────────────────────────────────────────────────────────────
# Transformer
# ──────────────────────────────────────────────────────────────────────────────

def _str(tok) -> str:
    """Token → str"""
    return str(tok)


def _at_token(node: SyntaxNode, tok) -> SyntaxNode:
    node.line = getattr(tok, 'line', -1)
    node.col  = getattr(tok, 'column', -1)
    return node


class RatTransformer(Transformer):
    """
    将 Lark 解析树转换为 Rat 语法树。
    规则名与 rat.lark 中的产生式名 / 别名保持一致。

    使用 @v_args(meta=True) 来获取源码位置（需要 propagate_positions=True）。
    """

    # ── 辅助 ────────────────────────────────────────────────────────────────

    @staticmethod
    def _set_pos(node: SyntaxNode, meta) -> SyntaxNode:
        if meta is not None and not getattr(meta, 'empty', True):
            node.line = getattr(meta, 'line', -1)
            node.col  = getattr(meta, 'column', -1)
        return node

    # ── 顶层 & 声明 ──────────────────────────────────────────────────────────

    @v_args(meta=True)
    def start(self, meta, items):
        return self._set_pos(Program(stmts=list(items)), meta)

    @v_args(meta=True)
    def vardec(self, meta, items):
        # (VAR | CONST) NAME ":" type "=" exp ";"
        modifier, name_tok, type_spec, init = items
        node = VarDecl(name=_str(name_tok), type_spec=type_spec, init=init,
                       is_const=modifier.type == 'CONST')
        return _at_token(node, name_tok)

    @v_args(meta=True)
    def funcdec(self, meta, items):
        # "func" NAME params ("->" type)? block
        name_tok, params = items[0], items[1]
        return_type = items[2] if len(items) == 4 else None
        node = FuncDecl(name=_str(name_tok), params=params,
                        return_type=return_type, body=items[-1])
        return _at_token(node, name_tok)

    def params(self, items):
        return [i for i in items if i is not None]

    @v_args(meta=True)
    def param(self, meta, items):
        name_tok, type_spec = items
        return _at_token(Param(name=_str(name_tok), type_spec=type_spec), name_tok)

    # ── 语句 ────────────────────────────────────────────────────────────────

    @v_args(meta=True)
    def block(self, meta, items):
        return self._set_pos(Block(stmts=list(items)), meta)

    @v_args(meta=True)
    def print_stmt(self, meta, items):
        return self._set_pos(PrintStmt(expr=items[0]), meta)

    @v_args(meta=True)
    def assign_stmt(self, meta, items):
        name_tok, expr = items
        target = _at_token(Identifier(name=_str(name_tok)), name_tok)
        return _at_token(AssignStmt(target=target, expr=expr), name_tok)

    @v_args(meta=True)
    def call_stmt(self, meta, items):
        call = items[0]
        node = CallStmt(call=call)
        node.line, node.col = call.line, call.col
        return node

    @v_args(meta=True)
    def pass_stmt(self, meta, items):
        return self._set_pos(PassStmt(), meta)

    def break_stmt(self, items):
        return _at_token(BreakStmt(), items[0])

    def return_stmt(self, items):
        return _at_token(ReturnStmt(value=items[1]), items[0])

    def short_return_stmt(self, items):
        return _at_token(ReturnStmt(value=None), items[0])

    @v_args(meta=True)
    def while_stmt(self, meta, items):
        cond, body = items
        return self._set_pos(WhileStmt(cond=cond, body=body), meta)

    @v_args(meta=True)
    def for_range_stmt(self, meta, items):
        name_tok, low, op_tok, high, body = items
        node = ForRangeStmt(iterator=_str(name_tok), low=low, op=_str(op_tok),
                            high=high, body=body)
        return _at_token(node, name_tok)

    @v_args(meta=True)
    def for_in_stmt(self, meta, items):
        name_tok, iterable, body = items
        node = ForInStmt(iterator=_str(name_tok), iterable=iterable, body=body)
        return _at_token(node, name_tok)

    @v_args(meta=True)
    def short_if_stmt(self, meta, items):
        cond, then_br = items
        return self._set_pos(IfStmt(cond=cond, then_br=then_br), meta)

    @v_args(meta=True)
    def if_else_stmt(self, meta, items):
        cond, then_br, else_br = items
        return self._set_pos(IfStmt(cond=cond, then_br=then_br, else_br=else_br), meta)

    @v_args(meta=True)
    def if_elseif_stmt(self, meta, items):
        # else 分支是另一个 IfStmt
        cond, then_br, trailing_if = items
        return self._set_pos(IfStmt(cond=cond, then_br=then_br, else_br=trailing_if), meta)

    @v_args(meta=True)
    def try_catch_stmt(self, meta, items):
        body, catch_params, catch_body = items
        node = TryStmt(body=body, catch_params=catch_params, catch_body=catch_body)
        return self._set_pos(node, meta)

    @v_args(meta=True)
    def try_timeout_stmt(self, meta, items):
        body, timeout_params, timeout_body, catch_params, catch_body = items
        node = TryStmt(body=body,
                       catch_params=catch_params, catch_body=catch_body,
                       timeout_params=timeout_params, timeout_body=timeout_body)
        return self._set_pos(node, meta)

    # ── 表达式 ──────────────────────────────────────────────────────────────

    @v_args(meta=True)
    def unwrap_else(self, meta, items):
        optional, alternate = items
        return self._set_pos(UnwrapElse(optional=optional, alternate=alternate), meta)

    # 逻辑运算链统一折叠为左结合的 BinaryOp
    def _fold_logical(self, op, meta, items):
        result = items[0]
        for rhs in items[1:]:
            node = BinaryOp(op=op, left=result, right=rhs)
            self._set_pos(node, meta)
            result = node
        return result

    @v_args(meta=True)
    def logical_or(self, meta, items):
        return self._fold_logical('||', meta, items)

    @v_args(meta=True)
    def logical_and(self, meta, items):
        return self._fold_logical('&&', meta, items)

    def binary(self, items):
        left, op_tok, right = items
        return _at_token(BinaryOp(op=_str(op_tok), left=left, right=right), op_tok)

    def unary(self, items):
        op_tok, operand = items
        return _at_token(UnaryOp(op=_str(op_tok), operand=operand), op_tok)

    # 运算符规则（!rule 保留 Token）：透传 Token，保留位置
    def rel_op(self, items):
        return items[0]

    def add_op(self, items):
        return items[0]

    def mul_op(self, items):
        return items[0]

    def pow_op(self, items):
        return items[0]

    def unary_op(self, items):
        return items[0]

    @v_args(meta=True)
    def subscript(self, meta, items):
        array, index = items
        node = ArrayAccess(array=array, index=index)
        node.line, node.col = array.line, array.col
        return node

    @v_args(meta=True)
    def call(self, meta, items):
        name_tok, args = items[0], [a for a in items[1:] if a is not None]
        callee = _at_token(Identifier(name=_str(name_tok)), name_tok)
        return _at_token(FuncCall(callee=callee, args=args), name_tok)

    @v_args(meta=True)
    def array_lit(self, meta, items):
        return self._set_pos(ArrayLiteral(elements=list(items)), meta)

    @v_args(meta=True)
    def empty_array(self, meta, items):
        return self._set_pos(ArrayLiteral(elements=[]), meta)

    @v_args(meta=True)
    def dict_lit(self, meta, items):
        return self._set_pos(DictLiteral(bindings=list(items)), meta)

    @v_args(meta=True)
    def empty_dict(self, meta, items):
        return self._set_pos(DictLiteral(bindings=[]), meta)

    @v_args(meta=True)
    def binding(self, meta, items):
        key, value = items
        node = Binding(key=key, value=value)
        node.line, node.col = key.line, key.col
        return node

    @v_args(meta=True)
    def empty_optional(self, meta, items):
        return self._set_pos(EmptyOptional(type_spec=items[0]), meta)

    # ── 字面量 / 标识符 ─────────────────────────────────────────────────────

    def name_ref(self, items):
        return _at_token(Identifier(name=_str(items[0])), items[0])

    def int_lit(self, items):
        return _at_token(IntLiteral(raw=_str(items[0])), items[0])

    def float_lit(self, items):
        return _at_token(FloatLiteral(raw=_str(items[0])), items[0])

    def string_lit(self, items):
        return _at_token(StringLiteral(raw=_str(items[0])), items[0])

    def true_lit(self, items):
        return _at_token(BoolLiteral(value=True), items[0])

    def false_lit(self, items):
        return _at_token(BoolLiteral(value=False), items[0])

    # ── 类型语法 ────────────────────────────────────────────────────────────

    def primitive_type(self, items):
        return _at_token(PrimitiveTypeNode(name=_str(items[0])), items[0])

    @v_args(meta=True)
    def optional_type(self, meta, items):
        return self._set_pos(OptionalTypeNode(base=items[0]), meta)

    @v_args(meta=True)
    def promise_type(self, meta, items):
        return self._set_pos(PromiseTypeNode(base=items[0]), meta)

    @v_args(meta=True)
    def array_type(self, meta, items):
        return self._set_pos(ArrayTypeNode(base=items[0]), meta)

    @v_args(meta=True)
    def dict_type(self, meta, items):
        key, value = items
        return self._set_pos(DictTypeNode(key=key, value=value), meta)

    @v_args(meta=True)
    def function_type(self, meta, items):
        # 最后一个是返回类型，其余是参数类型
        params = [t for t in items[:-1] if t is not None]
        node = FunctionTypeNode(params=params, return_type=items[-1])
        return self._set_pos(node, meta)
