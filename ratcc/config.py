"""
ratcc 配置常量
"""

from pathlib import Path

# 语法文件（随包发布）
GRAMMAR_FILE = Path(__file__).parent / "rat.lark"

# Lark 解析器配置（grammar 无歧义，使用 LALR(1) + 上下文相关词法器）
PARSER = "lalr"
LEXER = "contextual"
START_RULE = "start"

# 源文件
SOURCE_ENCODING = "utf-8"
SOURCE_SUFFIX = ".rat"

# 日志
LOG_LEVEL_ENV = "RATCC_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"
