"""
Tests for RatFrontend: parse → transform → analyze, diagnostics collection.
"""

import pytest
from lark import Tree

from ratcc.error import SemanticError, RatSyntaxError, IllegalBreak
from ratcc.pipeline import RatFrontend, FrontendResult
from ratcc.semantic import ir
from ratcc.tree.transformer import Program as SyntaxProgram


class TestProcessString:

    def test_success(self, frontend):
        result = frontend.process_string("var x: int = 5; print(x);")
        assert isinstance(result, FrontendResult)
        assert result.success
        assert isinstance(result.syntax, SyntaxProgram)
        assert isinstance(result.program, ir.Program)
        assert len(result.program.statements) == 2
        assert len(result.diags) == 0

    def test_semantic_error(self, frontend):
        result = frontend.process_string("print(y);")
        assert not result.success
        assert result.syntax is not None
        assert result.program is None
        assert len(result.diags.errors) == 1
        diag = result.diags.errors[0]
        assert diag.kind == 'UndeclaredIdentifier'
        assert diag.message == "1:7 Identifier y not declared"
        assert (diag.line, diag.column) == (1, 7)

    def test_syntax_error(self, frontend):
        result = frontend.process_string("var x: int = ;")
        assert not result.success
        assert result.syntax is None and result.program is None
        diag = result.diags.errors[0]
        assert diag.kind == 'RatSyntaxError'
        assert diag.line == 1
        assert diag.hint.startswith("expected one of: ")

    def test_fail_fast_single_error(self, frontend):
        result = frontend.process_string("break;\nbreak;")
        assert len(result.diags.errors) == 1
        assert result.diags.errors[0].line == 1


class TestProcessFile:

    def test_file(self, frontend, tmp_path):
        path = tmp_path / "hello.rat"
        path.write_text("func main() { print(\"hello\"); }\nmain();\n", encoding="utf-8")
        result = frontend.process_file(path)
        assert result.success
        call = result.program.statements[1]
        assert call.call.callee is result.program.statements[0].function

    def test_missing_file(self, frontend, tmp_path):
        result = frontend.process_file(tmp_path / "missing.rat")
        assert not result.success
        assert "missing.rat" in result.diags.errors[0].message
        assert result.diags.errors[0].hint == ''

    def test_missing_file_suggests_rat_suffix(self, frontend, tmp_path):
        (tmp_path / "hello.rat").write_text("pass;\n", encoding="utf-8")
        result = frontend.process_file(tmp_path / "hello")
        assert not result.success
        hint = result.diags.errors[0].hint
        assert hint.startswith("did you mean") and hint.endswith("hello.rat?")


class TestAnalyzeString:

    def test_returns_program(self, frontend):
        program = frontend.analyze_string("pass;")
        assert isinstance(program.statements[0], ir.PassStatement)

    def test_raises_semantic_error(self, frontend):
        with pytest.raises(IllegalBreak):
            frontend.analyze_string("break;")

    def test_raises_syntax_error(self, frontend):
        with pytest.raises(RatSyntaxError):
            frontend.analyze_string("print(;")
        with pytest.raises(RatSyntaxError):
            frontend.analyze_string("var x: int = 1 $ 2;")


class TestStandardLibrary:

    def test_without_stdlib(self, bare_frontend):
        with pytest.raises(SemanticError, match="Identifier sqrt not declared"):
            bare_frontend.analyze_string("print(sqrt(2.0));")

    def test_from_dict(self):
        fe = RatFrontend()
        assert fe.load_stdlib_from_dict({'twice': ('int', ['int'])}) == 1
        program = fe.analyze_string("print(twice(2));")
        assert program.statements[0].argument.callee.name == 'twice'

    def test_from_file(self, tmp_path):
        path = tmp_path / "extra.rat"
        path.write_text("native func shout(s: str) -> str;\n", encoding="utf-8")
        fe = RatFrontend()
        assert fe.load_stdlib_from_file(path) == 1
        assert fe.process_string("print(shout(\"hey\"));").success

    def test_load_errors_become_warnings(self, tmp_path):
        fe = RatFrontend()
        fe.load_stdlib_from_file(tmp_path / "nope.rat")
        result = fe.process_string("pass;")
        assert result.success
        assert len(result.diags.warnings) == 1


class TestDebugHelpers:

    def test_parse_only(self, frontend):
        tree = frontend.parse_only("print(1);")
        assert isinstance(tree, Tree)
        assert tree.data == 'start'

    def test_transform_only(self, frontend):
        syntax = frontend.transform_only("print(undeclared);")
        assert isinstance(syntax, SyntaxProgram)

    def test_grammar_text(self):
        from ratcc import config
        text = config.GRAMMAR_FILE.read_text(encoding="utf-8")
        fe = RatFrontend(grammar_text=text)
        assert fe.analyze_string("var b: bool = !false;").statements[0].variable.type.name == 'bool'
