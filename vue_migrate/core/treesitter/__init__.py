"""
Tree-sitter integration for vue-migrate.

Provides grammar loading, parsing and node helpers shared by the extractor
and the body rewriter.
"""

from .parser import parse_source, get_language, get_parser, language_id_for

__all__ = [
    "parse_source",
    "get_language",
    "get_parser",
    "language_id_for",
]
