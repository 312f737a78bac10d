"""Page object analysis.

Locates the page-object class in a file with tree-sitter, describes its
members and tags every method with classifiers.classify_method(). The
analysis is read-only and deterministic for identical input.
"""

import logging
import re
from typing import List, Optional, Tuple

import tree_sitter

from ..ast_parser.suite_extractor import build_invocation
from ..ast_parser.utils import detect_language, get_parser, node_line, node_text, unwrap_expression
from ..constants import COMMAND_NAMESPACE
from .classifiers import classify_method, self_calls
from .models import ExportKind, MethodDescriptor, PageObjectAnalysis, PropertyDescriptor

logger = logging.getLogger(__name__)

CLASS_NODE_TYPES = frozenset({"class_declaration", "abstract_class_declaration"})
FIELD_NODE_TYPES = frozenset({"field_definition", "public_field_definition"})

_PAGE_NAME_RE = re.compile(r"(Page|PageObject)$|^Cy[A-Z]")
_USES_CY_RE = re.compile(r"\b" + COMMAND_NAMESPACE + r"\s*\.\s*\w+\s*\(")
_EXTENDS_RE = re.compile(r"\bextends\s+([\w$.]+)")


class PageObjectAnalyzer:
    """Describes the first class declared in a page-object file."""

    def analyze(self, text: str, file_path: str = "page.js") -> PageObjectAnalysis:
        """Analyze page-object source.

        Raises:
            SourceSyntaxError: If the source cannot be parsed
        """
        language = detect_language(file_path) or "javascript"
        parser = get_parser(language)
        tree = parser.parse_tree(text, file_path)
        source = text.encode("utf-8")

        found = _find_class(tree.root_node)
        if found is None:
            logger.debug(f"No class declaration in {file_path}")
            return PageObjectAnalysis(is_page_object=False, class_name="", language=language)
        outer, class_node = found

        name_node = class_node.child_by_field_name("name")
        class_name = node_text(name_node, source) if name_node is not None else ""
        body = class_node.child_by_field_name("body")

        heritage = next((c for c in class_node.children if c.type == "class_heritage"), None)
        base_class = None
        if heritage is not None:
            match = _EXTENDS_RE.search(node_text(heritage, source))
            base_class = match.group(1) if match else None

        methods, properties, constructor = self._members(body, source)
        method_names = [m[0] for m in methods]

        descriptors = []
        for name, parameters, body_text, flags, line in methods:
            descriptors.append(MethodDescriptor(
                name=name,
                parameters=parameters,
                body=body_text,
                classification=classify_method(name, body_text, method_names),
                is_async=flags["async"],
                kind=flags["kind"],
                is_static=flags["static"],
                return_type=flags["return_type"],
                called_methods=tuple(n for n in self_calls(body_text) if n in method_names),
                returns_element=flags["returns_element"],
                line=line,
            ))

        uses_cy = any(_USES_CY_RE.search(m.body) for m in descriptors) or any(
            _USES_CY_RE.search(p.text) for p in properties
        )
        epilogue = source[outer.end_byte:].decode("utf-8", errors="replace")
        analysis = PageObjectAnalysis(
            is_page_object=bool(_PAGE_NAME_RE.search(class_name)) or uses_cy,
            class_name=class_name,
            methods=tuple(descriptors),
            properties=tuple(properties),
            export_kind=_export_kind(outer, class_name, epilogue),
            base_class=base_class,
            has_constructor=constructor is not None,
            constructor_parameters=constructor[0] if constructor else (),
            constructor_body=constructor[1] if constructor else "",
            header=source[outer.start_byte:body.start_byte].decode("utf-8", errors="replace").strip(),
            preamble=source[:outer.start_byte].decode("utf-8", errors="replace"),
            epilogue=epilogue,
            language=language,
        )
        logger.debug(
            f"{file_path}: class {class_name} page_object={analysis.is_page_object} "
            f"methods={[(m.name, m.classification.value) for m in descriptors]}"
        )
        return analysis

    def _members(self, body: tree_sitter.Node, source: bytes):
        methods = []
        properties: List[PropertyDescriptor] = []
        constructor: Optional[Tuple[Tuple[str, ...], str]] = None

        for member in body.named_children:
            if member.type == "method_definition":
                name = node_text(member.child_by_field_name("name"), source)
                parameters = _parameters(member, source)
                block = member.child_by_field_name("body")
                body_text = node_text(block, source)[1:-1] if block is not None else ""
                if name == "constructor":
                    constructor = (parameters, body_text)
                    continue
                keywords = {c.type for c in member.children if not c.is_named}
                kind = "getter" if "get" in keywords else "setter" if "set" in keywords else "method"
                return_type = member.child_by_field_name("return_type")
                flags = {
                    "async": "async" in keywords,
                    "static": "static" in keywords,
                    "kind": kind,
                    "return_type": node_text(return_type, source).lstrip(":").strip() if return_type is not None else None,
                    "returns_element": kind == "getter" and _returns_cy_chain(block, source),
                }
                methods.append((name, parameters, body_text, flags, node_line(member)))
            elif member.type in FIELD_NODE_TYPES:
                name_node = member.child_by_field_name("property") or member.child_by_field_name("name")
                value = member.child_by_field_name("value")
                text = node_text(member, source)
                if not text.rstrip().endswith(";"):
                    text += ";"
                properties.append(PropertyDescriptor(
                    name=node_text(name_node, source) if name_node is not None else "",
                    text=text,
                    value=node_text(value, source) if value is not None else None,
                    is_static=any(c.type == "static" for c in member.children),
                    line=node_line(member),
                ))
        return methods, properties, constructor


def _find_class(root: tree_sitter.Node) -> Optional[Tuple[tree_sitter.Node, tree_sitter.Node]]:
    """(outermost statement, class node) for the first top-level class."""
    for child in root.named_children:
        if child.type in CLASS_NODE_TYPES:
            return child, child
        if child.type == "export_statement":
            declaration = child.child_by_field_name("declaration")
            if declaration is None:
                declaration = next((c for c in child.named_children if c.type in CLASS_NODE_TYPES | {"class"}), None)
            if declaration is not None and declaration.type in CLASS_NODE_TYPES | {"class"}:
                return child, declaration
    return None


def _parameters(method: tree_sitter.Node, source: bytes) -> Tuple[str, ...]:
    params = method.child_by_field_name("parameters")
    if params is None:
        return ()
    return tuple(node_text(c, source) for c in params.named_children if c.type != "comment")


def _returns_cy_chain(block: Optional[tree_sitter.Node], source: bytes) -> bool:
    if block is None:
        return False
    statements = [c for c in block.named_children if c.type != "comment"]
    if len(statements) != 1 or statements[0].type != "return_statement":
        return False
    value = next((c for c in statements[0].named_children if c.type != "comment"), None)
    if value is None:
        return False
    value = unwrap_expression(value)
    return value.type == "call_expression" and build_invocation(value, source) is not None


def _export_kind(outer: tree_sitter.Node, class_name: str, epilogue: str) -> ExportKind:
    if outer.type == "export_statement":
        if any(c.type == "default" for c in outer.children):
            return ExportKind.DEFAULT
        return ExportKind.NAMED
    name = re.escape(class_name)
    if re.search(rf"(export\s+default|module\.exports\s*=)\s*new\s+{name}\b", epilogue):
        return ExportKind.INSTANCE
    if re.search(rf"(export\s+default|module\.exports\s*=)\s*{name}\b", epilogue):
        return ExportKind.DEFAULT
    if re.search(rf"export\s*\{{[^}}]*\b{name}\b|module\.exports\s*=\s*\{{[^}}]*\b{name}\b", epilogue):
        return ExportKind.NAMED
    return ExportKind.NONE


def analyze_page_object(text: str, file_path: str = "page.js") -> PageObjectAnalysis:
    return PageObjectAnalyzer().analyze(text, file_path)
