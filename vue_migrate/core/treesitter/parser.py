"""
Tree-sitter parser facade with cached parser instances.
"""

import logging
from functools import lru_cache

from tree_sitter import Language, Parser, Tree
import tree_sitter_javascript
import tree_sitter_typescript

from vue_migrate.core.errors import ScriptParseError

# Grammar entry points per parser id
GRAMMARS = {
    "javascript": tree_sitter_javascript.language,
    "typescript": tree_sitter_typescript.language_typescript,
    "tsx": tree_sitter_typescript.language_tsx,
}

# Values of <script lang="..."> mapped to parser ids
SCRIPT_LANG_TO_LANGUAGE_ID = {
    None: "javascript",
    "js": "javascript",
    "javascript": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "typescript": "typescript",
    "tsx": "tsx",
}


@lru_cache(maxsize=3)
def get_language(language_id: str) -> Language:
    grammar = GRAMMARS.get(language_id)
    if grammar is None:
        raise ValueError(f"Unsupported language: {language_id}")
    return Language(grammar())


@lru_cache(maxsize=3)
def get_parser(language_id: str) -> Parser:
    return Parser(get_language(language_id))


def language_id_for(script_lang) -> str:
    """Resolve the parser id for a script block's ``lang`` attribute."""
    return SCRIPT_LANG_TO_LANGUAGE_ID.get(script_lang, "javascript")


def parse_source(source: str, language_id: str = "javascript") -> Tree:
    """
    Parse script text into a tree.

    Tree-sitter is error tolerant, so syntax errors show up as ERROR nodes in
    the tree. Only a failure of the parser itself raises ScriptParseError.
    """
    parser = get_parser(language_id)
    try:
        tree = parser.parse(source.encode("utf-8"))
    except (ValueError, TypeError, RuntimeError) as e:
        raise ScriptParseError(f"{language_id} parser failed: {e}") from e
    if tree is None:
        raise ScriptParseError(f"{language_id} parser returned no tree")
    if tree.root_node.has_error:
        logging.debug(f"Parsed {language_id} source contains syntax errors")
    return tree
