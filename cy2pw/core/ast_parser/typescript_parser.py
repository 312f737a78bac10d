"""TypeScript source parser using tree-sitter.

The TypeScript grammar yields the same call/member/arrow node types as
the JavaScript one, so suite extraction is shared. Type annotations and
`as` casts simply appear as extra nodes the extractor ignores.
"""

import tree_sitter
import tree_sitter_typescript

from .base import BaseSourceParser

_TS_LANGUAGE = tree_sitter.Language(tree_sitter_typescript.language_typescript())
_TSX_LANGUAGE = tree_sitter.Language(tree_sitter_typescript.language_tsx())


class TypeScriptParser(BaseSourceParser):
    def get_language(self) -> str:
        return "typescript"

    def get_tree_sitter_language(self) -> tree_sitter.Language:
        return _TS_LANGUAGE


class TsxParser(TypeScriptParser):
    """TSX variant (component tests written with JSX)."""

    def get_language(self) -> str:
        return "tsx"

    def get_tree_sitter_language(self) -> tree_sitter.Language:
        return _TSX_LANGUAGE
