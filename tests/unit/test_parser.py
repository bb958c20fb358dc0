"""
Unit tests for grammar loading and script parsing.
"""

import pytest

from vue_migrate.core.treesitter import get_parser, language_id_for, parse_source


class TestLanguageIds:
    """Test cases for mapping script ``lang`` attributes to parsers."""

    @pytest.mark.parametrize("lang,expected", [
        (None, "javascript"),
        ("js", "javascript"),
        ("ts", "typescript"),
        ("tsx", "tsx"),
        ("coffee", "javascript"),
    ])
    def test_language_id_for(self, lang, expected):
        assert language_id_for(lang) == expected

    def test_parsers_are_cached(self):
        assert get_parser("typescript") is get_parser("typescript")

    def test_unsupported_language(self):
        with pytest.raises(ValueError):
            get_parser("rust")


class TestParseSource:
    """Test cases for parse_source."""

    def test_parses_javascript(self):
        tree = parse_source("export default { data() { return {} } }")

        assert tree.root_node.type == "program"
        assert not tree.root_node.has_error

    def test_parses_typescript(self):
        tree = parse_source("const n: number = 1", "typescript")

        assert not tree.root_node.has_error

    def test_syntax_errors_are_tolerated(self):
        tree = parse_source("export default { data( { ")

        assert tree.root_node.has_error
