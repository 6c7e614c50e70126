"""
Tests for the type model: structural equivalence, assignability, descriptions.
"""

import itertools

import pytest

from ratcc.semantic.type import (
    TypeKind, OptionalType, PromiseType, ArrayType, DictType, FunctionType,
    INT, FLOAT, STRING, BOOL, VOID, ANY, PRIMITIVE_TYPES,
    equivalent, assignable, describe,
    is_numeric, is_numeric_or_string, is_iterable, element_type,
)


# Factories so that every call yields a structurally equal but distinct object
TYPE_FACTORIES = [
    lambda: INT,
    lambda: FLOAT,
    lambda: STRING,
    lambda: BOOL,
    lambda: VOID,
    lambda: ANY,
    lambda: OptionalType(INT),
    lambda: PromiseType(STRING),
    lambda: ArrayType(STRING),
    lambda: ArrayType(OptionalType(ArrayType(INT))),
    lambda: DictType(STRING, INT),
    lambda: DictType(INT, ArrayType(BOOL)),
    lambda: FunctionType([], VOID),
    lambda: FunctionType([INT, FLOAT], BOOL),
    lambda: FunctionType([FunctionType([INT], INT)], OptionalType(STRING)),
]


class TestEquivalence:

    @pytest.mark.parametrize("make", TYPE_FACTORIES)
    def test_reflexive(self, make):
        assert equivalent(make(), make())

    def test_symmetric(self):
        for make1, make2 in itertools.product(TYPE_FACTORIES, repeat=2):
            t1, t2 = make1(), make2()
            assert equivalent(t1, t2) == equivalent(t2, t1), (t1, t2)

    def test_distinct_types_are_not_equivalent(self):
        types = [make() for make in TYPE_FACTORIES]
        for i, j in itertools.combinations(range(len(types)), 2):
            assert not equivalent(types[i], types[j]), (types[i], types[j])

    def test_composites_compared_structurally(self):
        a, b = ArrayType(INT), ArrayType(INT)
        assert a is not b
        assert a == b
        assert hash(a) == hash(b)
        assert ArrayType(INT) != ArrayType(FLOAT)
        assert OptionalType(INT) != ArrayType(INT)

    def test_promise_compared_by_base(self):
        assert PromiseType(ArrayType(INT)) == PromiseType(ArrayType(INT))
        assert PromiseType(INT) != PromiseType(FLOAT)
        assert PromiseType(INT) != OptionalType(INT)
        assert PromiseType(INT).kind is TypeKind.PROMISE

    def test_function_arity_matters(self):
        assert not equivalent(FunctionType([INT], INT), FunctionType([INT, INT], INT))

    def test_types_are_immutable(self):
        t = ArrayType(INT)
        with pytest.raises(AttributeError):
            t.base_type = FLOAT
        with pytest.raises(AttributeError):
            INT.name = 'integer'


class TestAssignability:

    @pytest.mark.parametrize("make", TYPE_FACTORIES)
    def test_reflexive(self, make):
        assert assignable(make(), make())

    @pytest.mark.parametrize("make", TYPE_FACTORIES)
    def test_everything_assignable_to_any(self, make):
        assert assignable(make(), ANY)

    def test_any_not_assignable_to_int(self):
        assert not assignable(ANY, INT)

    def test_no_numeric_widening(self):
        assert not assignable(INT, FLOAT)
        assert not assignable(FLOAT, INT)

    def test_function_return_is_covariant(self):
        assert assignable(FunctionType([INT], FLOAT), FunctionType([INT], ANY))
        assert not assignable(FunctionType([INT], ANY), FunctionType([INT], FLOAT))

    def test_function_params_are_contravariant(self):
        assert assignable(FunctionType([ANY], INT), FunctionType([INT], INT))
        assert not assignable(FunctionType([FLOAT], INT), FunctionType([INT], INT))

    def test_function_arity_must_match(self):
        assert not assignable(FunctionType([INT], INT), FunctionType([], INT))

    def test_composites_are_invariant(self):
        assert not assignable(ArrayType(INT), ArrayType(ANY))
        assert not assignable(OptionalType(INT), OptionalType(ANY))
        assert not assignable(PromiseType(INT), PromiseType(ANY))


class TestDescribe:

    @pytest.mark.parametrize("t, text", [
        (INT, 'int'),
        (STRING, 'str'),
        (OptionalType(INT), 'int?'),
        (PromiseType(INT), 'int promise'),
        (OptionalType(PromiseType(ArrayType(INT))), '[int] promise?'),
        (ArrayType(ArrayType(FLOAT)), '[[float]]'),
        (DictType(STRING, BOOL), '{str:bool}'),
        (FunctionType([INT, STRING], VOID), '(int, str)->void'),
        (FunctionType([], OptionalType(INT)), '()->int?'),
    ])
    def test_describe(self, t, text):
        assert describe(t) == text
        assert repr(t) == text

    def test_primitive_table(self):
        assert set(PRIMITIVE_TYPES) == {'int', 'float', 'str', 'bool', 'void', 'any', 'None'}
        assert PRIMITIVE_TYPES['str'] is STRING
        assert PRIMITIVE_TYPES['None'] is VOID


class TestPredicates:

    def test_numeric(self):
        assert is_numeric(INT) and is_numeric(FLOAT)
        assert not is_numeric(STRING)
        assert is_numeric_or_string(STRING)
        assert not is_numeric_or_string(BOOL)

    def test_iterable_and_element_type(self):
        assert is_iterable(ArrayType(INT)) and element_type(ArrayType(INT)) is INT
        assert is_iterable(DictType(STRING, INT)) and element_type(DictType(STRING, INT)) is STRING
        assert is_iterable(STRING) and element_type(STRING) is STRING
        assert not is_iterable(INT)
        assert not is_iterable(OptionalType(ArrayType(INT)))

    def test_kind_tags(self):
        assert INT.kind is TypeKind.INT
        assert OptionalType(INT).kind is TypeKind.OPTIONAL
        assert FunctionType([], VOID).kind is TypeKind.FUNCTION
