"""
Rat 类型系统
=============
Rat 的类型分两类：

  - 基础类型：int、float、str、bool、void、any（全局唯一单例）
  - 复合类型：T?（可选）、T promise（异步结果）、[T]（数组）、{K:V}（字典）、(T, ...)->R（函数）

复合类型一律按结构比较（equivalent），从不按对象身份比较。
所有类型对象创建后不可修改。
"""

from enum import Enum, auto


class TypeKind(Enum):
    INT      = auto()
    FLOAT    = auto()
    STRING   = auto()
    BOOL     = auto()
    VOID     = auto()
    ANY      = auto()
    OPTIONAL = auto()
    PROMISE  = auto()
    ARRAY    = auto()
    DICT     = auto()
    FUNCTION = auto()


class RType:
    """所有类型的基类，kind 为类型标签"""
    kind: TypeKind = None

    __slots__ = ()

    def __setattr__(self, name, value):
        raise AttributeError(f"{self.__class__.__name__} 不可修改")

    def __eq__(self, other):
        return isinstance(other, RType) and equivalent(self, other)

    def __hash__(self):
        return hash(repr(self))

    def __repr__(self):
        return describe(self)


# ──────────────────────────────────────────────────────────────────────────────
# 基础类型
# ──────────────────────────────────────────────────────────────────────────────

class BasicType(RType):
    """基础类型（int、float、str、bool、void、any）"""
    __slots__ = ('kind', 'name')

    def __init__(self, kind: TypeKind, name: str):
        object.__setattr__(self, 'kind', kind)
        object.__setattr__(self, 'name', name)

    def __hash__(self):
        return hash(self.name)


# ──────────────────────────────────────────────────────────────────────────────
# 复合类型
# ──────────────────────────────────────────────────────────────────────────────

class OptionalType(RType):
    """T?"""
    __slots__ = ('base_type',)
    kind = TypeKind.OPTIONAL

    def __init__(self, base_type: RType):
        object.__setattr__(self, 'base_type', base_type)


class PromiseType(RType):
    """T promise"""
    __slots__ = ('base_type',)
    kind = TypeKind.PROMISE

    def __init__(self, base_type: RType):
        object.__setattr__(self, 'base_type', base_type)


class ArrayType(RType):
    """[T]"""
    __slots__ = ('base_type',)
    kind = TypeKind.ARRAY

    def __init__(self, base_type: RType):
        object.__setattr__(self, 'base_type', base_type)


class DictType(RType):
    """{K:V}"""
    __slots__ = ('key_type', 'value_type')
    kind = TypeKind.DICT

    def __init__(self, key_type: RType, value_type: RType):
        object.__setattr__(self, 'key_type', key_type)
        object.__setattr__(self, 'value_type', value_type)


class FunctionType(RType):
    """函数类型（参数类型列表 + 返回类型）"""
    __slots__ = ('param_types', 'return_type')
    kind = TypeKind.FUNCTION

    def __init__(self, param_types, return_type: RType):
        object.__setattr__(self, 'param_types', tuple(param_types or ()))
        object.__setattr__(self, 'return_type', return_type)


# ──────────────────────────────────────────────────────────────────────────────
# 预定义类型常量
# ──────────────────────────────────────────────────────────────────────────────

INT    = BasicType(TypeKind.INT,    'int')
FLOAT  = BasicType(TypeKind.FLOAT,  'float')
STRING = BasicType(TypeKind.STRING, 'str')
BOOL   = BasicType(TypeKind.BOOL,   'bool')
VOID   = BasicType(TypeKind.VOID,   'void')
ANY    = BasicType(TypeKind.ANY,    'any')

# 类型关键字 → 单例
PRIMITIVE_TYPES: dict[str, BasicType] = {
    t.name: t for t in (INT, FLOAT, STRING, BOOL, VOID, ANY)
}
# None 是 void 的别名
PRIMITIVE_TYPES['None'] = VOID


# ──────────────────────────────────────────────────────────────────────────────
# 等价与可赋值
# ──────────────────────────────────────────────────────────────────────────────

def equivalent(t1: RType, t2: RType) -> bool:
    """结构等价：基础类型比身份，复合类型递归比较各组成部分"""
    if t1 is t2:
        return True
    if t1 is None or t2 is None or t1.kind != t2.kind:
        return False
    kind = t1.kind
    if kind in (TypeKind.OPTIONAL, TypeKind.PROMISE, TypeKind.ARRAY):
        return equivalent(t1.base_type, t2.base_type)
    if kind == TypeKind.DICT:
        return (equivalent(t1.key_type, t2.key_type) and
                equivalent(t1.value_type, t2.value_type))
    if kind == TypeKind.FUNCTION:
        return (len(t1.param_types) == len(t2.param_types) and
                all(equivalent(p, q) for p, q in zip(t1.param_types, t2.param_types)) and
                equivalent(t1.return_type, t2.return_type))
    # 同 kind 的基础类型只有一个实例，走到这里说明不是同一个对象
    return False


def assignable(from_type: RType, to_type: RType) -> bool:
    """
    判断 from_type 的值能否出现在需要 to_type 的位置
    （变量初始值、赋值、实参、返回值）。

    - 任何类型都可以赋给 any
    - 等价即可赋值
    - 函数类型：返回值协变，参数逆变
    """
    if to_type is ANY:
        return True
    if equivalent(from_type, to_type):
        return True
    if (from_type is not None and to_type is not None and
            from_type.kind == TypeKind.FUNCTION and to_type.kind == TypeKind.FUNCTION):
        return (len(from_type.param_types) == len(to_type.param_types) and
                assignable(from_type.return_type, to_type.return_type) and
                all(assignable(t, f) for f, t in zip(from_type.param_types, to_type.param_types)))
    return False


# ──────────────────────────────────────────────────────────────────────────────
# 类型工具函数
# ──────────────────────────────────────────────────────────────────────────────

def describe(t: RType) -> str:
    """类型的源码写法，用于错误信息"""
    if t is None:
        return '<unknown>'
    kind = t.kind
    if kind == TypeKind.OPTIONAL:
        return f"{describe(t.base_type)}?"
    if kind == TypeKind.PROMISE:
        return f"{describe(t.base_type)} promise"
    if kind == TypeKind.ARRAY:
        return f"[{describe(t.base_type)}]"
    if kind == TypeKind.DICT:
        return f"{{{describe(t.key_type)}:{describe(t.value_type)}}}"
    if kind == TypeKind.FUNCTION:
        params = ', '.join(describe(p) for p in t.param_types)
        return f"({params})->{describe(t.return_type)}"
    return t.name


def is_numeric(t: RType) -> bool:
    return t is INT or t is FLOAT


def is_numeric_or_string(t: RType) -> bool:
    return t is INT or t is FLOAT or t is STRING


def is_iterable(t: RType) -> bool:
    """可用于 for-in 的类型：数组、字典、字符串"""
    return t is STRING or (t is not None and t.kind in (TypeKind.ARRAY, TypeKind.DICT))


def element_type(t: RType) -> RType:
    """
    for-in 循环变量的类型：
      [T]   → T
      {K:V} → K（遍历字典得到键）
      str   → str
    """
    if t.kind == TypeKind.ARRAY:
        return t.base_type
    if t.kind == TypeKind.DICT:
        return t.key_type
    return STRING
