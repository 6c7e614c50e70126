"""
Tests for entities and the scope chain.
"""

import pytest

from ratcc.semantic.symbol import Variable, Function, Context
from ratcc.semantic.type import FunctionType, INT, STRING, VOID


class TestEntities:

    def test_variable(self):
        v = Variable('x', INT)
        assert not v.read_only
        assert repr(v) == 'Variable(x: int)'
        assert repr(Variable('k', STRING, read_only=True)) == 'Variable(const k: str)'

    def test_function_seals_once(self):
        f = Function('f')
        assert not f.sealed and f.type is None
        params = [Variable('a', INT)]
        assert f.seal(FunctionType([INT], VOID), params) is f
        assert f.sealed
        assert f.type == FunctionType([INT], VOID)
        assert f.params == tuple(params)
        with pytest.raises(RuntimeError):
            f.seal(FunctionType([], VOID))

    def test_function_is_read_only(self):
        assert Function('f').read_only


class TestContext:

    def test_root_holds_builtins(self):
        pi = Variable('pi', INT, read_only=True)
        root = Context.root({'pi': pi})
        assert root.lookup('pi') is pi
        assert root.parent is None
        assert root.depth == 0
        assert not root.within_loop and root.function is None

    def test_root_copies_builtin_table(self):
        table = {}
        root = Context.root(table)
        root.add('x', Variable('x', INT))
        assert 'x' not in table

    def test_add_rejects_local_duplicate(self):
        ctx = Context.root()
        assert ctx.add('x', Variable('x', INT))
        assert not ctx.add('x', Variable('x', STRING))
        assert ctx.lookup('x').type is INT

    def test_lookup_walks_outward_and_shadowing(self):
        root = Context.root()
        outer = Variable('x', INT)
        root.add('x', outer)
        child = root.new_child()
        assert child.lookup('x') is outer
        assert child.lookup_local('x') is None

        inner = Variable('x', STRING)
        assert child.add('x', inner)
        assert child.lookup('x') is inner
        assert root.lookup('x') is outer
        assert child.lookup('nope') is None

    def test_child_inherits_loop_and_function(self):
        f = Function('f')
        loop = Context.root().new_child(within_loop=True, function=f)
        child = loop.new_child()
        assert child.within_loop and child.function is f
        assert child.depth == 2

    def test_child_overrides_loop(self):
        loop = Context.root().new_child(within_loop=True)
        body = loop.new_child(within_loop=False, function=Function('g'))
        assert not body.within_loop
        assert body.function.name == 'g'

    def test_dump(self):
        root = Context.root({'pi': Variable('pi', INT, read_only=True)})
        child = root.new_child(within_loop=True)
        child.add('i', Variable('i', INT, read_only=True))
        text = child.dump()
        assert '[global]' in text
        assert '[loop]' in text
        assert 'Variable(const i: int)' in text
