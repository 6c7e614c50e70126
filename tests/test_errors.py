"""
Tests for the exception hierarchy, the must() gate and DiagnosticBag.
"""

import pytest
from lark import Token

from ratcc.error import (
    must, DiagnosticBag, ErrorSeverity,
    SemanticError, RatSyntaxError, TypeMismatch, NotNumeric, OperandTypeMismatch,
    IllegalBreak, NotAssignable,
)
from ratcc.tree.transformer import Identifier


def _node(line, col):
    node = Identifier(name='x')
    node.line, node.col = line, col
    return node


class TestMust:

    def test_passes_silently(self):
        must(True, "never raised", _node(1, 1))

    def test_raises_with_position_prefix(self):
        with pytest.raises(IllegalBreak) as info:
            must(False, "Break can only appear in a loop", _node(3, 7), IllegalBreak)
        exc = info.value
        assert str(exc) == "3:7 Break can only appear in a loop"
        assert exc.message == "Break can only appear in a loop"
        assert (exc.line, exc.column) == (3, 7)

    def test_default_error_class(self):
        with pytest.raises(SemanticError):
            must(False, "boom", _node(1, 1))

    def test_without_position(self):
        with pytest.raises(SemanticError) as info:
            must(False, "boom", None)
        assert str(info.value) == "boom"

    def test_position_from_lark_token(self):
        tok = Token('NAME', 'x', line=2, column=5)
        with pytest.raises(NotAssignable) as info:
            must(False, "nope", tok, NotAssignable)
        assert str(info.value) == "2:5 nope"


class TestHierarchy:

    def test_type_errors_share_a_base(self):
        assert issubclass(NotNumeric, TypeMismatch)
        assert issubclass(OperandTypeMismatch, TypeMismatch)
        assert issubclass(TypeMismatch, SemanticError)

    def test_syntax_error_is_not_semantic(self):
        assert not issubclass(RatSyntaxError, SemanticError)
        assert str(RatSyntaxError("Unexpected token ';'", 1, 9)) == "1:9 Unexpected token ';'"


class TestDiagnosticBag:

    def test_add_exception(self):
        bag = DiagnosticBag()
        bag.add_exception(IllegalBreak("Break can only appear in a loop", 4, 2))
        assert bag.has_errors
        assert len(bag) == 1
        diag = bag.errors[0]
        assert diag.severity is ErrorSeverity.ERROR
        assert diag.kind == 'IllegalBreak'
        assert (diag.line, diag.column) == (4, 2)
        assert diag.message == "4:2 Break can only appear in a loop"

    def test_warnings_are_not_errors(self):
        bag = DiagnosticBag()
        bag.warning("stdlib.rat:3: bad line")
        assert not bag.has_errors
        assert bag.count == 1
        assert len(bag.warnings) == 1
        bag.raise_if_errors()

    def test_report(self):
        bag = DiagnosticBag()
        assert bag.report() == "No diagnostics."
        bag.error("something broke", _node(2, 1), hint="fix it")
        bag.warning("careful")
        text = bag.report()
        assert "[ERROR] something broke" in text
        assert "hint: fix it" in text
        assert "1 error(s), 1 warning(s)" in text

    def test_raise_if_errors(self):
        bag = DiagnosticBag()
        bag.error("bad")
        with pytest.raises(SemanticError, match="1 error"):
            bag.raise_if_errors()
