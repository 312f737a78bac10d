"""JavaScript source parser using tree-sitter."""

import tree_sitter
import tree_sitter_javascript

from .base import BaseSourceParser

_JS_LANGUAGE = tree_sitter.Language(tree_sitter_javascript.language())


class JavaScriptParser(BaseSourceParser):
    """tree-sitter based parser for .js/.jsx/.mjs/.cjs spec files."""

    def get_language(self) -> str:
        return "javascript"

    def get_tree_sitter_language(self) -> tree_sitter.Language:
        return _JS_LANGUAGE
