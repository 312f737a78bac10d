"""Import statement analysis.

Parses every top-level import (and `/// <reference types=... />`
directive) with tree-sitter, classifies it, groups duplicates and flags
imports that only served the old test framework.
"""

import logging
import re
from collections import OrderedDict
from typing import Dict, List, Optional, Tuple

import tree_sitter

from ..ast_parser.utils import get_parser, node_line, node_text
from ..constants import MAX_PARENT_DEPTH
from ..exceptions import ConversionWarning, ImportParseFailure, WarningCategory
from .models import DuplicateGroup, ImportAnalysis, ImportCategory, ImportRecord, RemovedImport
from .paths import deep_path_warning, is_relative, normalize_relative_path

logger = logging.getLogger(__name__)

NODE_BUILTINS = frozenset({
    "assert", "buffer", "child_process", "cluster", "crypto", "dns", "events",
    "fs", "fs/promises", "http", "http2", "https", "net", "os", "path",
    "perf_hooks", "process", "querystring", "readline", "stream", "string_decoder",
    "timers", "tls", "url", "util", "v8", "vm", "worker_threads", "zlib",
})

TARGET_FRAMEWORK_MODULES = frozenset({"@playwright/test", "playwright", "playwright-core"})

CYPRESS_REASON = "Cypress-specific import not compatible with Playwright"
ANGULAR_REASON = "Angular testing import not needed in e2e tests"
UNIT_TEST_REASON = "Unit testing framework import not needed in e2e tests"

# (pattern, removal reason), checked in order
SOURCE_FRAMEWORK_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"^cypress(/|$)"), CYPRESS_REASON),
    (re.compile(r"^@cypress/"), CYPRESS_REASON),
    (re.compile(r"^cypress-"), CYPRESS_REASON),
    (re.compile(r"^@testing-library/cypress(/|$)"), CYPRESS_REASON),
    (re.compile(r"^@angular/core/testing$"), ANGULAR_REASON),
    (re.compile(r"^@angular/platform-browser(-dynamic)?/testing$"), ANGULAR_REASON),
    (re.compile(r"^@angular/common/(http/)?testing$"), ANGULAR_REASON),
    (re.compile(r"^(jasmine|jasmine-core|karma|mocha|chai|sinon-chai|chai-[\w-]+)(/|$)"), UNIT_TEST_REASON),
]

_REFERENCE_RE = re.compile(r"""^///\s*<reference\s+(types|path)\s*=\s*["']([^"']+)["']\s*/>""")


def classify_source(source: str) -> ImportCategory:
    if removal_reason(source) is not None:
        return ImportCategory.SOURCE_FRAMEWORK
    if source in TARGET_FRAMEWORK_MODULES:
        return ImportCategory.TARGET_FRAMEWORK
    if source.startswith("node:") or source in NODE_BUILTINS:
        return ImportCategory.BUILTIN
    if is_relative(source) or source.startswith("/"):
        return ImportCategory.RELATIVE
    return ImportCategory.EXTERNAL


def removal_reason(source: str) -> Optional[str]:
    for pattern, reason in SOURCE_FRAMEWORK_PATTERNS:
        if pattern.match(source):
            return reason
    return None


class ImportAnalyzer:
    """Classifies and groups the import statements of one file.

    Args:
        max_parent_depth: relative paths climbing more than this are normalized
        remove_source_framework: flag old-framework imports for removal
    """

    def __init__(self, max_parent_depth: int = MAX_PARENT_DEPTH, remove_source_framework: bool = True):
        self.max_parent_depth = max_parent_depth
        self.remove_source_framework = remove_source_framework

    def analyze(self, text: str, file_path: str = "") -> ImportAnalysis:
        analysis = ImportAnalysis(file_path=file_path)
        source = text.encode("utf-8")
        # TypeScript grammar also accepts plain JavaScript import syntax
        parser = tree_sitter.Parser(get_parser("typescript").get_tree_sitter_language())
        root = parser.parse(source).root_node

        for node in root.children:
            record = self._record_for(node, source)
            if record is None:
                continue
            if record.parsed and record.category == ImportCategory.RELATIVE and file_path:
                record = record.with_source(
                    normalize_relative_path(record.source, file_path, self.max_parent_depth)
                )
                warning = deep_path_warning(record.source)
                if warning:
                    analysis.warnings.append(ConversionWarning(WarningCategory.IMPORT, warning, record.line))
            analysis.imports.append(record)

        for record in analysis.imports:
            reason = removal_reason(record.source) if record.parsed else None
            if reason and self.remove_source_framework:
                analysis.source_framework_only.append(RemovedImport(record, reason))
                continue
            analysis.legitimate.append(record)
            if not record.parsed:
                analysis.unparsed.append(record)
                analysis.warnings.append(
                    ConversionWarning(WarningCategory.IMPORT, f"import left unmodified: {record.raw}", record.line)
                )

        analysis.duplicate_groups = _duplicate_groups(analysis.imports)
        logger.debug(
            f"{file_path or '<source>'}: {len(analysis.imports)} import(s), "
            f"{len(analysis.duplicate_groups)} duplicate group(s), "
            f"{len(analysis.source_framework_only)} flagged for removal"
        )
        return analysis

    def _record_for(self, node: tree_sitter.Node, source: bytes) -> Optional[ImportRecord]:
        text = node_text(node, source)
        if node.type == "comment":
            match = _REFERENCE_RE.match(text)
            if match is None:
                return None
            return ImportRecord(
                source=match.group(2),
                category=classify_source(match.group(2)) if match.group(1) == "types" else ImportCategory.RELATIVE,
                is_reference=True,
                raw=text,
                line=node_line(node),
                start_byte=node.start_byte,
                end_byte=node.end_byte,
            )
        if node.type == "import_statement":
            try:
                return self._parse_import(node, source)
            except ImportParseFailure as e:
                logger.warning(f"Passing import through unmodified at line {node_line(node)}: {e}")
        elif not (node.type == "ERROR" and text.lstrip().startswith("import")):
            return None
        return ImportRecord(
            source="",
            parsed=False,
            raw=text.strip(),
            line=node_line(node),
            start_byte=node.start_byte,
            end_byte=node.end_byte,
        )

    def _parse_import(self, node: tree_sitter.Node, source: bytes) -> ImportRecord:
        if node.has_error:
            raise ImportParseFailure("syntax error inside import statement")
        source_node = node.child_by_field_name("source")
        if source_node is None:
            # `import x = require('y')` and friends
            raise ImportParseFailure("unsupported import form")
        module = node_text(source_node, source)[1:-1]

        default = None
        namespace = None
        named: List[str] = []
        type_only = any(child.type == "type" for child in node.children)

        clause = next((c for c in node.named_children if c.type == "import_clause"), None)
        if clause is not None:
            for child in clause.named_children:
                if child.type == "identifier":
                    default = node_text(child, source)
                elif child.type == "namespace_import":
                    ident = next((c for c in child.named_children if c.type == "identifier"), None)
                    if ident is None:
                        raise ImportParseFailure("namespace import without a name")
                    namespace = node_text(ident, source)
                elif child.type == "named_imports":
                    for spec in child.named_children:
                        if spec.type == "import_specifier":
                            named.append(" ".join(node_text(spec, source).split()))

        text = node_text(node, source)
        return ImportRecord(
            source=module,
            default_binding=default,
            namespace_binding=namespace,
            named_bindings=tuple(dict.fromkeys(named)),
            category=classify_source(module),
            type_only=type_only,
            raw=text,
            line=node_line(node),
            start_byte=node.start_byte,
            end_byte=node.end_byte,
        )


def _duplicate_groups(records: List[ImportRecord]) -> List[DuplicateGroup]:
    by_source: Dict[str, List[ImportRecord]] = OrderedDict()
    for record in records:
        if record.parsed and not record.is_reference:
            by_source.setdefault(record.source, []).append(record)
    return [DuplicateGroup(source, tuple(group)) for source, group in by_source.items() if len(group) > 1]


def analyze_imports(text: str, file_path: str = "") -> ImportAnalysis:
    return ImportAnalyzer().analyze(text, file_path)
