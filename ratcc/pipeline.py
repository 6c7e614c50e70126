"""
ratcc 分析流水线
=================
将词法分析 → 语法分析 → 语法树转换 → 语义分析串联为一个高层接口。
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from lark import Lark, exceptions as lark_exc

from . import config
from .tree.transformer import RatTransformer, Program as SyntaxProgram
from .semantic.analyzer import RatAnalyzer
from .semantic.stdlib import StdlibLoader
from .semantic import ir
from ratcc.error import DiagnosticBag, SemanticError, RatSyntaxError

logger = logging.getLogger(__name__)


# ─── 结果对象 ──────────────────────────────────────────────────────────────────

@dataclass
class FrontendResult:
    """分析流水线的输出"""
    syntax:  Optional[SyntaxProgram]   # None 表示语法分析失败
    program: Optional[ir.Program]      # None 表示语义分析失败（或未进行）
    diags:   DiagnosticBag

    @property
    def success(self) -> bool:
        return self.program is not None and not self.diags.has_errors


# ─── 主流水线 ─────────────────────────────────────────────────────────────────

class RatFrontend:
    """
    Rat 编译器前端。

    主要流程：
      1. Lark 解析（词法 + 语法）→ 解析树
      2. RatTransformer          → 语法树
      3. RatAnalyzer             → 带类型的程序表示（IR）

    用法::

        frontend = RatFrontend()
        frontend.load_standard_library()
        result = frontend.process_file("hello.rat")
        if not result.success:
            print(result.diags.report())
    """

    def __init__(self, grammar_file: str | Path = None, grammar_text: str = None,
                 parser: str = None):
        """
        Args:
            grammar_file: .lark 文件路径，默认使用随包发布的 rat.lark
            grammar_text: 直接传入 grammar 字符串（优先于 grammar_file）
            parser:       'lalr'（默认）或 'earley'
        """
        parser = parser or config.PARSER
        options = dict(
            parser=parser,
            start=config.START_RULE,
            propagate_positions=True,
            maybe_placeholders=False,
        )
        if parser == 'lalr':
            options['lexer'] = config.LEXER

        if grammar_text is not None:
            self._parser = Lark(grammar_text, **options)
        else:
            self._parser = Lark.open(str(grammar_file or config.GRAMMAR_FILE), **options)
        logger.debug("grammar loaded (parser=%s)", parser)

        self._transformer = RatTransformer()
        self._stdlib = StdlibLoader()

    # ── 加载标准库 ─────────────────────────────────────────────────────────

    def load_standard_library(self) -> int:
        """加载内置的 STANDARD_LIBRARY"""
        return self._stdlib.load_standard()

    def load_stdlib_from_dict(self, definitions: dict) -> int:
        """从手工字典加载（格式见 StdlibLoader.load_from_dict）"""
        return self._stdlib.load_from_dict(definitions)

    def load_stdlib_from_file(self, path: str | Path) -> int:
        """从声明文件加载，返回加载的条目数"""
        return self._stdlib.load_from_file(path)

    # ── 分析入口 ───────────────────────────────────────────────────────────

    def process_file(self, path: str | Path) -> FrontendResult:
        """分析单个 .rat 文件"""
        path = Path(path)
        if not path.exists():
            diag = DiagnosticBag()
            diag.error(f"文件不存在: {path}", hint=_suffix_hint(path))
            return FrontendResult(syntax=None, program=None, diags=diag)
        source = path.read_text(encoding=config.SOURCE_ENCODING, errors='replace')
        return self.process_string(source, source_name=str(path))

    def process_string(self, source: str, source_name: str = '<input>') -> FrontendResult:
        """
        分析源码字符串，返回 FrontendResult。
        语义分析是 fail-fast 的：最多产生一条错误诊断。
        """
        diag = DiagnosticBag()
        for message in self._stdlib.load_errors:
            diag.warning(message)

        # ── Step 1 + 2: 解析 & 转换 ─────────────────────────────────────
        logger.debug("parsing %s", source_name)
        try:
            syntax = self._parse(source)
        except RatSyntaxError as e:
            diag.add_exception(e, hint=e.hint)
            return FrontendResult(syntax=None, program=None, diags=diag)

        # ── Step 3: 语义分析 ─────────────────────────────────────────────
        logger.debug("analyzing %s", source_name)
        try:
            program = self._analyzer().analyze(syntax)
        except SemanticError as e:
            logger.debug("analysis of %s failed: %s", source_name, e)
            diag.add_exception(e)
            return FrontendResult(syntax=syntax, program=None, diags=diag)

        return FrontendResult(syntax=syntax, program=program, diags=diag)

    def analyze_string(self, source: str) -> ir.Program:
        """
        分析源码字符串并直接返回 ir.Program。
        语法错误抛出 RatSyntaxError，语义错误抛出 SemanticError 子类。
        """
        return self._analyzer().analyze(self._parse(source))

    # ── 调试工具 ───────────────────────────────────────────────────────────

    def parse_only(self, source: str):
        """仅做语法分析，返回 Lark Tree（调试用）"""
        return self._parser.parse(source)

    def transform_only(self, source: str) -> SyntaxProgram:
        """语法分析 + 语法树转换，不做语义分析（调试用）"""
        return self._parse(source)

    # ── 内部 ───────────────────────────────────────────────────────────────

    def _analyzer(self) -> RatAnalyzer:
        # 每次分析都使用新的标准库实体
        return RatAnalyzer(builtins=self._stdlib.get_builtins())

    def _parse(self, source: str) -> SyntaxProgram:
        """Lark 解析 + 转换；Lark 的异常统一转成 RatSyntaxError"""
        try:
            cst = self._parser.parse(source)
        except lark_exc.UnexpectedCharacters as e:
            raise RatSyntaxError(f"Unexpected character {e.char!r}", e.line, e.column,
                                 hint=_expected_hint(e.allowed)) from e
        except lark_exc.UnexpectedToken as e:
            token = 'end of input' if e.token.type == '$END' else repr(str(e.token))
            raise RatSyntaxError(f"Unexpected token {token}", e.line, e.column,
                                 hint=_expected_hint(e.expected)) from e
        except lark_exc.UnexpectedEOF as e:
            raise RatSyntaxError("Unexpected end of input") from e
        return self._transformer.transform(cst)


# ─── 诊断提示 ─────────────────────────────────────────────────────────────────

def _expected_hint(expected) -> str:
    """Lark 给出的候选终结符 → "expected one of: ..." 提示"""
    if not expected:
        return ''
    return "expected one of: " + ', '.join(sorted(expected))


def _suffix_hint(path: Path) -> str:
    """文件不存在时，如果补上 .rat 后缀的文件存在，提示它"""
    if path.suffix == config.SOURCE_SUFFIX:
        return ''
    candidate = path.with_suffix(config.SOURCE_SUFFIX)
    return f"did you mean {candidate}?" if candidate.exists() else ''
