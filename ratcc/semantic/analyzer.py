"""
Rat 语义分析器
===============
深度优先遍历语法树，完成：
  1. 作用域分析（标识符解析、同层重复声明检查）
  2. 类型检查（表达式、赋值、调用、返回值）
  3. 控制流合法性检查（break 只能在循环内，return 只能在函数内）
  4. 构建带类型的程序表示（ratcc.semantic.ir）

设计原则：
  - fail-fast：第一个违规通过 must() 抛出异常，分析立即终止
  - 当前作用域 self.context 只通过 _scope() 上下文管理器切换，
    任何退出路径都会恢复到外层作用域
  - 函数实体先放入外层作用域再分析函数体，从而支持递归
"""

from __future__ import annotations
import logging
from contextlib import contextmanager

from ratcc.error import (
    must,
    UndeclaredIdentifier, DuplicateDeclaration,
    TypeMismatch, NotNumeric, NotBoolean, NotInteger, NotArray,
    NotOptional, NotIterable, OperandTypeMismatch,
    NotAssignable, NotCallable, ArgumentCountMismatch,
    IllegalBreak, IllegalReturn, ReadOnlyViolation,
)
from . import ir
from .type import (
    RType, TypeKind, OptionalType, PromiseType, ArrayType, DictType, FunctionType,
    INT, FLOAT, STRING, BOOL, VOID, ANY, PRIMITIVE_TYPES,
    equivalent, assignable, describe,
    is_numeric, is_numeric_or_string, is_iterable, element_type,
)
from .symbol import Variable, Function, Context

# 导入语法树节点（从 transformer 模块）
from ..tree.transformer import (
    SyntaxNode, Program, Block,
    VarDecl, FuncDecl, Param,
    PrintStmt, AssignStmt, CallStmt, PassStmt, BreakStmt, ReturnStmt,
    WhileStmt, ForRangeStmt, ForInStmt, IfStmt, TryStmt,
    Identifier, IntLiteral, FloatLiteral, BoolLiteral, StringLiteral,
    BinaryOp, UnaryOp, UnwrapElse, ArrayAccess, FuncCall,
    ArrayLiteral, DictLiteral, EmptyOptional,
    PrimitiveTypeNode, OptionalTypeNode, PromiseTypeNode, ArrayTypeNode, DictTypeNode,
    FunctionTypeNode,
)

logger = logging.getLogger(__name__)


class RatAnalyzer:
    """
    Rat 语义分析器。

    用法：
        analyzer = RatAnalyzer(builtins=StdlibLoader().get_builtins())
        program = analyzer.analyze(syntax_tree)    # 失败时抛出 SemanticError 子类
    """

    def __init__(self, builtins: dict = None):
        """
        Args:
            builtins: 标准库实体字典 { name: Variable | Function }，
                      分析开始前装入根作用域
        """
        self._builtins = dict(builtins or {})
        self.context   = Context.root(self._builtins)

    # ══════════════════════════════════════════════════════════════════════
    # 入口
    # ══════════════════════════════════════════════════════════════════════

    def analyze(self, root: Program) -> ir.Program:
        """
        分析整个程序，返回 ir.Program。
        第一个语义错误会以 SemanticError 子类抛出。
        """
        self.context = Context.root(self._builtins)
        logger.debug("analysis started: %d top-level statement(s), %d builtin(s)",
                     len(root.stmts), len(self._builtins))
        program = ir.Program([self._visit(stmt) for stmt in root.stmts])
        logger.debug("analysis finished")
        return program

    # ══════════════════════════════════════════════════════════════════════
    # 分发器 & 作用域
    # ══════════════════════════════════════════════════════════════════════

    def _visit(self, node: SyntaxNode):
        """分发到对应的 _visit_* 方法，返回 IR 节点（或实体）"""
        method = '_visit_' + type(node).__name__
        handler = getattr(self, method, None)
        if handler is None:
            # 程序错误（转换器产生了分析器不认识的节点），不经过 must()
            raise TypeError(f"没有处理 {type(node).__name__} 的 visit 方法")
        return handler(node)

    @contextmanager
    def _scope(self, *, within_loop: bool = None, function: Function = None):
        """进入子作用域，退出时（包括异常）恢复外层作用域"""
        parent = self.context
        self.context = parent.new_child(within_loop=within_loop, function=function)
        logger.debug("enter scope depth=%d loop=%s function=%s", self.context.depth,
                     self.context.within_loop,
                     self.context.function.name if self.context.function else None)
        try:
            yield self.context
        finally:
            self.context = parent

    def _visit_block(self, block: Block) -> list:
        """块本身不建作用域，由所在语句负责"""
        return [self._visit(stmt) for stmt in block.stmts]

    # ══════════════════════════════════════════════════════════════════════
    # 检查规则（全部通过 must() 报错）
    # ══════════════════════════════════════════════════════════════════════

    def _must_not_already_be_declared(self, name: str, at):
        must(self.context.lookup_local(name) is None,
             f"Identifier {name} already declared", at, DuplicateDeclaration)

    def _must_have_been_found(self, entity, name: str, at):
        must(entity is not None, f"Identifier {name} not declared", at, UndeclaredIdentifier)

    def _must_have_numeric_type(self, e, at):
        must(is_numeric(e.type), "Expected a number", at, NotNumeric)

    def _must_have_numeric_or_string_type(self, e, at):
        must(is_numeric_or_string(e.type), "Expected a number or string", at, NotNumeric)

    def _must_have_boolean_type(self, e, at):
        must(e.type is BOOL, "Expected a boolean", at, NotBoolean)

    def _must_have_integer_type(self, e, at):
        must(e.type is INT, "Expected an integer", at, NotInteger)

    def _must_have_array_type(self, e, at):
        must(e.type.kind == TypeKind.ARRAY, "Expected an array", at, NotArray)

    def _must_have_optional_type(self, e, at):
        must(e.type.kind == TypeKind.OPTIONAL, "Expected an optional", at, NotOptional)

    def _must_have_iterable_type(self, e, at):
        must(is_iterable(e.type),
             f"{describe(e.type)} is not an iterable object", at, NotIterable)

    def _must_both_have_the_same_type(self, e1, e2, at):
        must(equivalent(e1.type, e2.type),
             "Operands do not have the same type", at, OperandTypeMismatch)

    def _must_all_have_same_type(self, expressions: list, at):
        first = expressions[0].type
        must(all(equivalent(e.type, first) for e in expressions[1:]),
             "Not all elements have the same type", at, TypeMismatch)

    def _must_be_assignable(self, e, to_type: RType, at):
        self._adopt_context_type(e, to_type)
        must(assignable(e.type, to_type),
             f"Cannot assign a {describe(e.type)} to a {describe(to_type)}", at, NotAssignable)

    def _must_not_be_read_only(self, entity, at):
        must(not entity.read_only, f"{entity.name} is read only", at, ReadOnlyViolation)

    def _must_be_in_loop(self, at):
        must(self.context.within_loop, "Break can only appear in a loop", at, IllegalBreak)

    def _must_be_in_a_function(self, at):
        must(self.context.function is not None,
             "Return can only appear in a function", at, IllegalReturn)

    def _must_be_callable(self, entity, at):
        callee_type = getattr(entity, 'type', None)
        must(callee_type is not None and callee_type.kind == TypeKind.FUNCTION,
             "Call of non-function", at, NotCallable)

    def _must_return_nothing(self, function: Function, at):
        must(function.type.return_type is VOID,
             "Something should be returned", at, IllegalReturn)

    def _must_return_something(self, function: Function, at):
        must(function.type.return_type is not VOID,
             "Cannot return a value from this function", at, IllegalReturn)

    def _must_have_correct_argument_count(self, arg_count: int, param_count: int, at):
        must(arg_count == param_count,
             f"{param_count} argument(s) required but {arg_count} passed",
             at, ArgumentCountMismatch)

    @classmethod
    def _adopt_context_type(cls, e, to_type: RType):
        """
        空数组 [] / 空字典 {} 在赋值位置采用目标类型。
        嵌套在字面量里的空集合逐层向下传递目标类型，之后重新计算外层字面量的类型。
        """
        if to_type is None:
            return
        if isinstance(e, ir.ArrayLiteral) and to_type.kind == TypeKind.ARRAY:
            for element in e.elements:
                cls._adopt_context_type(element, to_type.base_type)
            if e.elements:
                e.type = ArrayType(_settled(e.elements, _is_open).type)
            else:
                e.type = to_type
        elif isinstance(e, ir.DictLiteral) and to_type.kind == TypeKind.DICT:
            for key, value in e.bindings:
                cls._adopt_context_type(key, to_type.key_type)
                cls._adopt_context_type(value, to_type.value_type)
            if e.bindings:
                key, value = _settled(e.bindings, _is_open_binding)
                e.type = DictType(key.type, value.type)
            else:
                e.type = to_type

    # ══════════════════════════════════════════════════════════════════════
    # 声明
    # ══════════════════════════════════════════════════════════════════════

    def _visit_VarDecl(self, node: VarDecl):
        initializer = self._visit(node.init)
        var_type = self._resolve_type_spec(node.type_spec)
        self._must_not_already_be_declared(node.name, node)
        self._must_be_assignable(initializer, var_type, node.init)

        variable = Variable(node.name, var_type, read_only=node.is_const)
        self.context.add(node.name, variable)
        logger.debug("declare %r initialized with %s", variable, describe(initializer.type))
        return ir.VariableDeclaration(variable, initializer)

    def _visit_FuncDecl(self, node: FuncDecl):
        # 先建立函数实体（类型未知）并放入外层作用域，函数体内才能递归调用
        fun = Function(node.name)
        self._must_not_already_be_declared(node.name, node)
        self.context.add(node.name, fun)

        # 形参和函数体在同一个子作用域
        with self._scope(within_loop=False, function=fun):
            params = [self._visit_Param(p) for p in node.params]
            # 形参确定之后固定函数类型，再分析函数体
            return_type = (self._resolve_type_spec(node.return_type)
                           if node.return_type is not None else VOID)
            fun.seal(FunctionType([p.type for p in params], return_type), params)
            logger.debug("declare %r", fun)
            body = self._visit_block(node.body)

        return ir.FunctionDeclaration(fun, params, body)

    def _visit_Param(self, node: Param) -> Variable:
        param = Variable(node.name, self._resolve_type_spec(node.type_spec))
        self._must_not_already_be_declared(node.name, node)
        self.context.add(node.name, param)
        return param

    # ══════════════════════════════════════════════════════════════════════
    # 语句
    # ══════════════════════════════════════════════════════════════════════

    def _visit_PrintStmt(self, node: PrintStmt):
        return ir.PrintStatement(self._visit(node.expr))

    def _visit_AssignStmt(self, node: AssignStmt):
        source = self._visit(node.expr)
        target = self._visit(node.target)
        self._must_not_be_read_only(target, node.target)
        self._must_be_assignable(source, target.type, node.expr)
        return ir.Assignment(target, source)

    def _visit_CallStmt(self, node: CallStmt):
        return ir.CallStatement(self._visit(node.call))

    def _visit_PassStmt(self, node: PassStmt):
        return ir.PassStatement()

    def _visit_BreakStmt(self, node: BreakStmt):
        self._must_be_in_loop(node)
        return ir.BreakStatement()

    def _visit_ReturnStmt(self, node: ReturnStmt):
        self._must_be_in_a_function(node)
        fun = self.context.function
        if node.value is None:
            self._must_return_nothing(fun, node)
            return ir.ShortReturnStatement()

        self._must_return_something(fun, node)
        expression = self._visit(node.value)
        self._must_be_assignable(expression, fun.type.return_type, node.value)
        return ir.ReturnStatement(expression)

    def _visit_WhileStmt(self, node: WhileStmt):
        test = self._visit(node.cond)
        self._must_have_boolean_type(test, node.cond)
        with self._scope(within_loop=True):
            body = self._visit_block(node.body)
        return ir.WhileStatement(test, body)

    def _visit_ForRangeStmt(self, node: ForRangeStmt):
        low, high = self._visit(node.low), self._visit(node.high)
        self._must_have_integer_type(low, node.low)
        self._must_have_integer_type(high, node.high)
        iterator = Variable(node.iterator, INT, read_only=True)
        with self._scope(within_loop=True):
            self.context.add(node.iterator, iterator)
            body = self._visit_block(node.body)
        return ir.ForRangeStatement(iterator, low, node.op, high, body)

    def _visit_ForInStmt(self, node: ForInStmt):
        collection = self._visit(node.iterable)
        self._must_have_iterable_type(collection, node.iterable)
        # 循环变量绑定为元素类型：[T] → T，{K:V} → K，str → str
        iterator = Variable(node.iterator, element_type(collection.type), read_only=True)
        with self._scope(within_loop=True):
            self.context.add(node.iterator, iterator)
            body = self._visit_block(node.body)
        return ir.ForStatement(iterator, collection, body)

    def _visit_IfStmt(self, node: IfStmt):
        test = self._visit(node.cond)
        self._must_have_boolean_type(test, node.cond)
        with self._scope():
            consequent = self._visit_block(node.then_br)

        if node.else_br is None:
            return ir.ShortIfStatement(test, consequent)

        if isinstance(node.else_br, IfStmt):
            # else if：尾部的条件语句整体作为 alternate
            alternate = self._visit(node.else_br)
        else:
            with self._scope():
                alternate = self._visit_block(node.else_br)
        return ir.IfStatement(test, consequent, alternate)

    def _visit_TryStmt(self, node: TryStmt):
        with self._scope():
            body = self._visit_block(node.body)

        timeout_params = timeout_body = None
        if node.timeout_body is not None:
            with self._scope():
                timeout_params = [self._visit_Param(p) for p in node.timeout_params]
                timeout_body = self._visit_block(node.timeout_body)

        with self._scope():
            catch_params = [self._visit_Param(p) for p in node.catch_params]
            catch_body = self._visit_block(node.catch_body)

        return ir.TryStatement(body, catch_params, catch_body, timeout_params, timeout_body)

    # ══════════════════════════════════════════════════════════════════════
    # 表达式（返回带 .type 的 IR 节点，或被引用的实体）
    # ══════════════════════════════════════════════════════════════════════

    def _visit_Identifier(self, node: Identifier):
        entity = self.context.lookup(node.name)
        self._must_have_been_found(entity, node.name, node)
        return entity

    def _visit_IntLiteral(self, node: IntLiteral):
        return ir.Literal(node.value, INT)

    def _visit_FloatLiteral(self, node: FloatLiteral):
        return ir.Literal(node.value, FLOAT)

    def _visit_BoolLiteral(self, node: BoolLiteral):
        return ir.Literal(node.value, BOOL)

    def _visit_StringLiteral(self, node: StringLiteral):
        return ir.Literal(node.value, STRING)

    def _visit_BinaryOp(self, node: BinaryOp):
        op = node.op
        left = self._visit(node.left)

        if op in ('&&', '||'):
            self._must_have_boolean_type(left, node.left)
            right = self._visit(node.right)
            self._must_have_boolean_type(right, node.right)
            return ir.BinaryExpression(op, left, right, BOOL)

        right = self._visit(node.right)

        if op in ('<', '<=', '>', '>='):
            self._must_have_numeric_or_string_type(left, node.left)
            self._must_both_have_the_same_type(left, right, node)
            return ir.BinaryExpression(op, left, right, BOOL)

        if op in ('==', '!='):
            self._must_both_have_the_same_type(left, right, node)
            return ir.BinaryExpression(op, left, right, BOOL)

        # 算术：+ 还可以拼接字符串
        if op == '+':
            self._must_have_numeric_or_string_type(left, node.left)
        else:
            self._must_have_numeric_type(left, node.left)
        self._must_both_have_the_same_type(left, right, node)
        return ir.BinaryExpression(op, left, right, left.type)

    def _visit_UnaryOp(self, node: UnaryOp):
        op = node.op
        operand = self._visit(node.operand)
        if op == '-':
            self._must_have_numeric_type(operand, node.operand)
            result = operand.type
        elif op == '!':
            self._must_have_boolean_type(operand, node.operand)
            result = BOOL
        else:   # some
            result = OptionalType(operand.type)
        return ir.UnaryExpression(op, operand, result)

    def _visit_UnwrapElse(self, node: UnwrapElse):
        optional = self._visit(node.optional)
        self._must_have_optional_type(optional, node.optional)
        alternate = self._visit(node.alternate)
        self._must_be_assignable(alternate, optional.type.base_type, node.alternate)
        return ir.UnwrapElse(optional, alternate, optional.type)

    def _visit_ArrayAccess(self, node: ArrayAccess):
        array = self._visit(node.array)
        self._must_have_array_type(array, node.array)
        index = self._visit(node.index)
        self._must_have_integer_type(index, node.index)
        return ir.SubscriptExpression(array, index, array.type.base_type)

    def _visit_FuncCall(self, node: FuncCall):
        callee = self._visit(node.callee)
        self._must_be_callable(callee, node.callee)
        param_types = callee.type.param_types
        self._must_have_correct_argument_count(len(node.args), len(param_types), node)

        args = []
        for arg_node, param_type in zip(node.args, param_types):
            arg = self._visit(arg_node)
            self._must_be_assignable(arg, param_type, arg_node)
            args.append(arg)
        return ir.Call(callee, args, callee.type.return_type)

    def _visit_ArrayLiteral(self, node: ArrayLiteral):
        if not node.elements:
            return ir.ArrayLiteral([], ArrayType(ANY))
        elements = [self._visit(e) for e in node.elements]
        # 第一个类型已确定的元素为准，其余元素里的空数组 / 空字典跟随它
        first = _settled(elements, _is_open)
        for e in elements:
            if e is not first:
                self._adopt_context_type(e, first.type)
        self._must_all_have_same_type(elements, node)
        return ir.ArrayLiteral(elements, ArrayType(first.type))

    def _visit_DictLiteral(self, node: DictLiteral):
        if not node.bindings:
            return ir.DictLiteral([], DictType(ANY, ANY))
        # 不检查各个键值对之间的类型一致性，类型取第一个已确定的键值对
        bindings = [(self._visit(b.key), self._visit(b.value)) for b in node.bindings]
        key, value = _settled(bindings, _is_open_binding)
        return ir.DictLiteral(bindings, DictType(key.type, value.type))

    def _visit_EmptyOptional(self, node: EmptyOptional):
        return ir.EmptyOptional(OptionalType(self._resolve_type_spec(node.type_spec)))

    # ══════════════════════════════════════════════════════════════════════
    # 类型语法
    # ══════════════════════════════════════════════════════════════════════

    def _resolve_type_spec(self, node) -> RType:
        """将类型语法节点映射为 RType"""
        if isinstance(node, PrimitiveTypeNode):
            return PRIMITIVE_TYPES[node.name]
        if isinstance(node, OptionalTypeNode):
            return OptionalType(self._resolve_type_spec(node.base))
        if isinstance(node, ArrayTypeNode):
            return ArrayType(self._resolve_type_spec(node.base))
        if isinstance(node, DictTypeNode):
            return DictType(self._resolve_type_spec(node.key),
                            self._resolve_type_spec(node.value))
        if isinstance(node, PromiseTypeNode):
            return PromiseType(self._resolve_type_spec(node.base))
        if isinstance(node, FunctionTypeNode):
            return FunctionType([self._resolve_type_spec(p) for p in node.params],
                                self._resolve_type_spec(node.return_type))
        # 程序错误（语法与转换器不同步），不是 Rat 源码的语义错误
        raise TypeError(f"不是类型语法节点: {node!r}")


# ──────────────────────────────────────────────────────────────────────────────
# 空集合字面量
# ──────────────────────────────────────────────────────────────────────────────

def _is_open(e) -> bool:
    """类型尚待上下文确定的字面量：[] / {}，或只由这类字面量组成的数组 / 字典"""
    if isinstance(e, ir.ArrayLiteral):
        return all(_is_open(x) for x in e.elements)
    if isinstance(e, ir.DictLiteral):
        return all(_is_open_binding(b) for b in e.bindings)
    return False


def _is_open_binding(binding) -> bool:
    key, value = binding
    return _is_open(key) or _is_open(value)


def _settled(items: list, is_open):
    """第一个类型已确定的成员；全部待定时取第一个"""
    return next((x for x in items if not is_open(x)), items[0])
