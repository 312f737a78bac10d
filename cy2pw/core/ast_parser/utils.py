"""Source parser utilities.

Language detection, parser registry, file classification and
tree-sitter node helpers shared by the extractors.
"""

import fnmatch
import os
import re
from typing import Dict, Iterable, List, Optional, Tuple, TYPE_CHECKING

import tree_sitter

from .models import Argument, ArgumentKind

if TYPE_CHECKING:
    from .base import BaseSourceParser

# Extension → language mapping
SUPPORTED_EXTENSIONS: Dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
}

# Directories to skip during file walking
SKIP_DIRECTORIES = frozenset({
    "node_modules",
    ".git",
    "dist",
    "build",
    "coverage",
    "screenshots",
    "videos",
    "downloads",
    ".nyc_output",
    "__pycache__",
})

DEFAULT_TEST_FILE_PATTERNS = ("*.cy.js", "*.cy.ts", "*.cy.jsx", "*.cy.tsx", "*.spec.js", "*.spec.ts")
DEFAULT_COMMAND_FILES = ("commands.js", "commands.ts")

_WRAPPER_TYPES = frozenset({
    "await_expression",
    "parenthesized_expression",
    "as_expression",
    "satisfies_expression",
    "non_null_expression",
    "type_assertion",
})

# Parser registry, lazily populated so grammars load on first use
_parser_registry: Dict[str, "BaseSourceParser"] = {}

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}
_ESCAPE_RE = re.compile(r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|.)", re.DOTALL)


def detect_language(file_path: str) -> Optional[str]:
    """Detect source language from file extension.

    Args:
        file_path: Path to the source file

    Returns:
        Language identifier string or None if unsupported
    """
    _, ext = os.path.splitext(file_path)
    return SUPPORTED_EXTENSIONS.get(ext.lower())


def get_parser(language: str) -> "BaseSourceParser":
    """Get a parser instance for the given language.

    Raises:
        ValueError: If language is not supported
    """
    if language not in _parser_registry:
        if language == "javascript":
            from .javascript_parser import JavaScriptParser
            _parser_registry["javascript"] = JavaScriptParser()
        elif language == "typescript":
            from .typescript_parser import TypeScriptParser
            _parser_registry["typescript"] = TypeScriptParser()
        elif language == "tsx":
            from .typescript_parser import TsxParser
            _parser_registry["tsx"] = TsxParser()
        else:
            raise ValueError(
                f"Unsupported language: {language}. "
                f"Supported: {sorted(set(SUPPORTED_EXTENSIONS.values()))}"
            )

    return _parser_registry[language]


def should_skip_directory(dir_name: str) -> bool:
    """Check if a directory should be skipped during file walking."""
    return dir_name in SKIP_DIRECTORIES or dir_name.startswith(".")


def is_supported_file(file_path: str) -> bool:
    return detect_language(file_path) is not None


def is_test_file(file_path: str, patterns: Iterable[str] = DEFAULT_TEST_FILE_PATTERNS) -> bool:
    """Check whether a file name looks like a Cypress spec."""
    name = os.path.basename(file_path)
    return any(fnmatch.fnmatch(name, pattern) for pattern in patterns)


def is_custom_command_file(file_path: str, names: Iterable[str] = DEFAULT_COMMAND_FILES) -> bool:
    return os.path.basename(file_path) in set(names)


# =========================================================================
# tree-sitter node helpers
# =========================================================================

def node_text(node: tree_sitter.Node, source: bytes) -> str:
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def node_line(node: tree_sitter.Node) -> int:
    """1-based line number of a node."""
    return node.start_point[0] + 1


def get_child_by_type(node: tree_sitter.Node, type_name: str) -> Optional[tree_sitter.Node]:
    for child in node.children:
        if child.type == type_name:
            return child
    return None


def unwrap_expression(node: tree_sitter.Node) -> tree_sitter.Node:
    """Strip await, parentheses, TypeScript casts and non-null assertions."""
    while node.type in _WRAPPER_TYPES:
        named = [c for c in node.named_children if c.type != "comment"]
        if not named:
            break
        # `<T>expr` puts the type first; every other wrapper leads with the expression
        node = named[-1] if node.type == "type_assertion" else named[0]
    return node


def call_arguments(call: tree_sitter.Node) -> List[tree_sitter.Node]:
    """Named argument nodes of a call_expression, comments excluded."""
    args = call.child_by_field_name("arguments")
    if args is None:
        return []
    return [c for c in args.named_children if c.type != "comment"]


def is_function_node(node: tree_sitter.Node) -> bool:
    return node.type in ("arrow_function", "function_expression", "function")


def callback_body(node: tree_sitter.Node) -> Optional[tree_sitter.Node]:
    """Body of an arrow/function expression (statement_block or expression)."""
    if not is_function_node(node):
        return None
    return node.child_by_field_name("body")


def function_parameters(node: tree_sitter.Node, source: bytes) -> List[str]:
    """Parameter source texts of a function-like node, type annotations included."""
    params = node.child_by_field_name("parameters")
    if params is None:
        # Single unparenthesized arrow parameter: `x => ...`
        single = node.child_by_field_name("parameter")
        return [node_text(single, source)] if single is not None else []
    return [node_text(child, source) for child in params.named_children if child.type != "comment"]


def unescape_js_string(body: str) -> str:
    """Decode JavaScript string escape sequences."""

    def _replace(match: re.Match) -> str:
        seq = match.group(1)
        if seq in ("\n", "\r\n"):
            return ""  # line continuation
        if seq[0] == "u":
            code = seq[2:-1] if seq.startswith("u{") else seq[1:]
            return chr(int(code, 16))
        if seq[0] == "x":
            return chr(int(seq[1:], 16))
        return _ESCAPES.get(seq, seq)

    return _ESCAPE_RE.sub(_replace, body)


def extract_argument(node: tree_sitter.Node, source: bytes) -> Argument:
    """Encode one argument node.

    Literals are captured by value, identifiers by name, and anything else
    as raw source text. Nothing is evaluated.
    """
    text = node_text(node, source)
    inner = unwrap_expression(node)
    inner_text = node_text(inner, source)
    kind = inner.type

    if kind == "string":
        return Argument(ArgumentKind.STRING, unescape_js_string(inner_text[1:-1]), text)
    if kind == "template_string":
        if any(c.type == "template_substitution" for c in inner.named_children):
            return Argument(ArgumentKind.RAW, text, text)
        return Argument(ArgumentKind.STRING, unescape_js_string(inner_text[1:-1]), text)
    if kind == "number":
        cleaned = inner_text.replace("_", "")
        try:
            value: object = int(cleaned, 0)
        except ValueError:
            try:
                value = float(cleaned)
            except ValueError:
                return Argument(ArgumentKind.RAW, text, text)
        return Argument(ArgumentKind.NUMBER, value, text)
    if kind in ("true", "false"):
        return Argument(ArgumentKind.BOOLEAN, kind == "true", text)
    if kind == "null":
        return Argument(ArgumentKind.NULL, None, text)
    if kind in ("identifier", "undefined"):
        return Argument(ArgumentKind.IDENTIFIER, inner_text, text)
    if kind == "object":
        return Argument(ArgumentKind.RAW, text, text, _object_properties(inner, source))
    return Argument(ArgumentKind.RAW, text, text)


def _object_properties(node: tree_sitter.Node, source: bytes) -> Optional[Tuple[Tuple[str, Argument], ...]]:
    """Static (key, value) pairs of an object literal, or None when any key is computed."""
    pairs = []
    for child in node.named_children:
        if child.type == "comment":
            continue
        if child.type == "shorthand_property_identifier":
            name = node_text(child, source)
            pairs.append((name, Argument(ArgumentKind.IDENTIFIER, name, name)))
            continue
        if child.type != "pair":
            return None
        key = child.child_by_field_name("key")
        value = child.child_by_field_name("value")
        if key is None or value is None:
            return None
        if key.type in ("property_identifier", "number"):
            name = node_text(key, source)
        elif key.type == "string":
            name = unescape_js_string(node_text(key, source)[1:-1])
        else:
            return None
        pairs.append((name, extract_argument(value, source)))
    return tuple(pairs)


def is_async_function(node: tree_sitter.Node) -> bool:
    return is_function_node(node) and bool(node.children) and node.children[0].type == "async"
