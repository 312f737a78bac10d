"""Conversion engine: classifies project files and drives the converters.

Each file is converted completely in memory; the output is written only
after every step has succeeded, so a file that fails to parse never
leaves a half-written counterpart behind.
"""

import logging
import os
import posixpath
import re
import shutil
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from ..ast_parser.models import CustomCommand
from ..ast_parser.suite_extractor import extract_suites
from ..ast_parser.utils import (
    detect_language,
    get_parser,
    is_custom_command_file,
    is_supported_file,
    is_test_file,
    node_text,
    should_skip_directory,
)
from ..constants import MARKER_PREFIX, TARGET_MODULE, marker
from ..exceptions import ConversionWarning, SourceSyntaxError, WarningCategory
from ..imports.analyzer import ImportAnalyzer
from ..imports.models import ImportAnalysis
from ..imports.organizer import render_import, rewrite_imports, strip_imports
from ..mapping.commands import CommandMapper
from ..page_objects.analyzer import PageObjectAnalyzer
from ..page_objects.models import TransformOptions
from ..page_objects.transformer import PageObjectTransformer
from ..structure.converter import ConversionOptions, TestStructureConverter
from ...setting import ConversionSettings
from .paths import output_path_for, remap_import_specifier
from .report import FileReport, FileStatus, ProjectReport, find_markers

logger = logging.getLogger(__name__)

# Top-level statements of a spec file that are carried over next to the tests
PRESERVED_DECLARATIONS = frozenset({
    "lexical_declaration",
    "variable_declaration",
    "function_declaration",
    "class_declaration",
    "type_alias_declaration",
    "interface_declaration",
    "enum_declaration",
})

_USES_CY_RE = re.compile(r"\bcy\s*\.\s*\w+\s*\(")
_PLAYWRIGHT_IMPORT_RE = re.compile(r"""from\s+['"]@playwright/test['"]""")


class FileKind(str, Enum):
    TEST = "test"
    COMMANDS = "commands"
    PAGE_OBJECT = "page_object"
    FIXTURE = "fixture"
    OTHER = "other"


class ConversionEngine:
    """Converts Cypress files into a Playwright project layout.

    Args:
        settings: Conversion settings; defaults to ConversionSettings()
    """

    def __init__(self, settings: Optional[ConversionSettings] = None):
        self.settings = settings or ConversionSettings()
        self.import_analyzer = ImportAnalyzer(
            max_parent_depth=self.settings.imports.max_parent_depth,
            remove_source_framework=self.settings.imports.remove_source_framework,
        )
        self.page_object_analyzer = PageObjectAnalyzer()
        # custom command name → project-relative output path of its helper module
        self.helper_modules: Dict[str, str] = {}

    # ------------------------------------------------------------------
    # Project
    # ------------------------------------------------------------------

    def convert_project(self, source_root: str, output_root: str) -> ProjectReport:
        """Convert every supported file under source_root into output_root."""
        report = ProjectReport(source_root=str(source_root), output_root=str(output_root))
        files = list(self._walk(source_root))
        logger.info(f"Found {len(files)} file(s) under {source_root}")

        # Helpers must be known before any spec that calls them is converted
        self.helper_modules = {}
        for path in files:
            if is_custom_command_file(path, self.settings.parser.custom_command_files):
                self._register_helpers(path, source_root)

        for path in files:
            file_report = self.convert_file(path, source_root, output_root)
            report.files.append(file_report)

        summary = report.summary()
        logger.info(
            f"Converted {summary['files']} file(s): {summary['success']} success, "
            f"{summary['partial']} partial, {summary['failed']} failed, "
            f"{summary['skipped']} skipped, {summary['markers']} marker(s)"
        )
        return report

    def _walk(self, source_root: str):
        for dirpath, dirnames, filenames in os.walk(source_root):
            dirnames[:] = sorted(d for d in dirnames if not should_skip_directory(d))
            for name in sorted(filenames):
                yield os.path.join(dirpath, name)

    def _register_helpers(self, path: str, source_root: str) -> None:
        rel_path = self._relative(path, source_root)
        try:
            commands = self._read_commands(path)
        except SourceSyntaxError as e:
            logger.warning(f"Cannot read custom commands from {rel_path}: {e}")
            return
        target = self._output_rel(rel_path)
        for command in commands:
            self.helper_modules[command.name] = target
        logger.debug(f"{rel_path}: {len(commands)} custom command(s)")

    # ------------------------------------------------------------------
    # Single file
    # ------------------------------------------------------------------

    def classify(self, path: str, text: Optional[str] = None) -> FileKind:
        rel = path.replace("\\", "/")
        if not is_supported_file(path):
            parts = rel.split("/")
            return FileKind.FIXTURE if "fixtures" in parts[:-1] else FileKind.OTHER
        if is_custom_command_file(path, self.settings.parser.custom_command_files):
            return FileKind.COMMANDS
        if is_test_file(path, self.settings.parser.test_file_patterns):
            return FileKind.TEST
        if text is not None and _USES_CY_RE.search(text):
            return FileKind.PAGE_OBJECT
        return FileKind.OTHER

    def convert_file(self, path: str, source_root: str, output_root: str) -> FileReport:
        """Convert one file and write its output.

        Returns:
            FileReport describing what happened; failures are reported, not raised
        """
        rel_path = self._relative(path, source_root)
        out_rel = self._output_rel(rel_path)
        report = FileReport(source_path=rel_path)

        kind = self.classify(rel_path)
        if kind == FileKind.FIXTURE:
            report.kind = kind.value
            report.output_path = out_rel
            destination = Path(output_root) / out_rel
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(path, destination)
            return report.finalize()
        if kind == FileKind.OTHER and not is_supported_file(path):
            report.kind = kind.value
            report.status = FileStatus.SKIPPED
            return report

        with open(path, "r", encoding="utf-8", errors="replace") as f:
            text = f.read()
        kind = self.classify(rel_path, text)
        report.kind = kind.value

        if kind == FileKind.TEST and _PLAYWRIGHT_IMPORT_RE.search(text) and not _USES_CY_RE.search(text):
            logger.info(f"Skipping {rel_path}: already a Playwright spec")
            report.status = FileStatus.SKIPPED
            return report

        try:
            if kind == FileKind.TEST:
                code, warnings = self.convert_test_source(text, rel_path, out_rel)
            elif kind == FileKind.COMMANDS:
                code, warnings = self.convert_commands_source(text, rel_path, out_rel)
            elif kind == FileKind.PAGE_OBJECT:
                code, warnings = self.convert_page_object_source(text, rel_path, out_rel)
                if code is None:
                    report.kind = FileKind.OTHER.value
                    report.status = FileStatus.SKIPPED
                    return report
            else:
                report.status = FileStatus.SKIPPED
                return report
        except SourceSyntaxError as e:
            logger.error(f"Failed to convert {rel_path}: {e}")
            report.status = FileStatus.FAILED
            report.error = str(e)
            return report

        report.output_path = out_rel
        report.warnings = warnings
        report.markers = find_markers(code)

        destination = Path(output_root) / out_rel
        destination.parent.mkdir(parents=True, exist_ok=True)
        with open(destination, "w", encoding="utf-8") as f:
            f.write(code)
        logger.debug(f"Wrote {destination}")
        return report.finalize()

    # ------------------------------------------------------------------
    # Converters (pure: text in, text out)
    # ------------------------------------------------------------------

    def convert_test_source(self, text: str, rel_path: str, out_rel: str) -> Tuple[str, List[ConversionWarning]]:
        language = detect_language(rel_path) or "javascript"
        parser = get_parser(language)
        tree = parser.parse_tree(text, rel_path)
        source = text.encode("utf-8")
        suites = extract_suites(tree.root_node, source)

        options = ConversionOptions(
            convert_assertions=self.settings.structure.convert_assertions,
            preserve_hooks=self.settings.structure.preserve_hooks,
            custom_commands=tuple(self.helper_modules),
        )
        converted = TestStructureConverter(options).convert(suites)
        warnings = list(converted.warnings)

        original = self.import_analyzer.analyze(text, rel_path)
        declarations = self._preserved_declarations(tree.root_node, source, warnings)

        # ConvertedStructure.code is its import header, a blank line, then the tests
        generated_header, _, tests = converted.code.partition("\n\n")
        header_lines = generated_header.split("\n")
        header_lines.extend(self._remapped_imports(original, rel_path))
        header_lines.extend(self._helper_imports(converted.helpers, out_rel))

        code = "\n\n".join(["\n".join(header_lines)] + declarations + [tests])
        code = self._finalize_imports(code, out_rel, warnings)
        logger.info(f"{rel_path}: {converted.case_count} test(s), {len(warnings)} warning(s)")
        return code, warnings

    def convert_commands_source(self, text: str, rel_path: str, out_rel: str) -> Tuple[str, List[ConversionWarning]]:
        """Turn Cypress.Commands registrations into exported async helpers."""
        language = detect_language(rel_path) or "javascript"
        commands = get_parser(language).parse_custom_commands(text, rel_path)
        typed = language in ("typescript", "tsx")
        warnings: List[ConversionWarning] = []
        names = [c.name for c in commands]
        mapper = CommandMapper(
            page_handle="page",
            convert_assertions=self.settings.structure.convert_assertions,
            custom_commands=names,
        )

        blocks = []
        if typed:
            blocks.append(f"import type {{ Page }} from '{TARGET_MODULE}';")
        imports: List[str] = []
        functions = []
        for command in commands:
            functions.append(self._helper_function(command, mapper, typed, imports, warnings))
        blocks = blocks + imports
        code = "\n".join(blocks) + ("\n\n" if blocks else "") + "\n\n".join(functions) + "\n"
        code = self._finalize_imports(code, out_rel, warnings)
        logger.info(f"{rel_path}: {len(commands)} helper(s)")
        return code, warnings

    def _helper_function(self, command: CustomCommand, mapper: CommandMapper, typed: bool,
                         imports: List[str], warnings: List[ConversionWarning]) -> str:
        params = list(command.parameters)
        lines = []
        if command.kind == "overwrite":
            # First parameter is the original implementation, which has no equivalent
            params = params[1:]
            message = f"'{command.name}' overwrote a built-in command; call sites keep the Playwright built-in"
            lines.append(marker(message))
            warnings.append(ConversionWarning(WarningCategory.MANUAL_REVIEW, message, command.line))

        mapper.begin_body(command.commands)
        for invocation in command.commands:
            mapped = mapper.map(invocation)
            for text in mapped.markers:
                message = text[len(MARKER_PREFIX):].strip()
                warnings.append(ConversionWarning(WarningCategory.MANUAL_REVIEW, message, invocation.line))
            for note in mapped.notes:
                warnings.append(ConversionWarning(WarningCategory.NOTE, note, invocation.line))
            for name in mapped.imports:
                if name not in imports:
                    imports.append(name)
            lines.extend(mapped.statements)

        page = "page: Page" if typed else "page"
        signature = ", ".join([page] + params)
        if not lines:
            return f"export async function {command.name}({signature}) {{}}"
        body = "\n".join(f"  {line}" if line else "" for statement in lines for line in statement.split("\n"))
        return f"export async function {command.name}({signature}) {{\n{body}\n}}"

    def convert_page_object_source(self, text: str, rel_path: str,
                                   out_rel: str) -> Tuple[Optional[str], List[ConversionWarning]]:
        """Convert a page-object class; returns (None, []) when the file holds none."""
        analysis = self.page_object_analyzer.analyze(text, rel_path)
        if not analysis.is_page_object:
            return None, []
        options = TransformOptions(
            inject_page=self.settings.page_objects.inject_page,
            preserve_mocking=self.settings.page_objects.preserve_mocking,
        )
        transformed = PageObjectTransformer(options).transform(analysis)
        warnings = list(transformed.warnings)

        for outcome in transformed.outcomes:
            if not outcome.success:
                logger.warning(f"{rel_path}: method '{outcome.name}' needs manual conversion")

        # Relative imports of the page object follow it to its new location
        code = transformed.code
        original = self.import_analyzer.analyze(code, rel_path)
        header = self._remapped_imports(original, rel_path)
        rest = strip_imports(code, original)
        code = self._finalize_imports("\n".join(header) + "\n\n" + rest, out_rel, warnings)
        return code, warnings

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _remapped_imports(self, analysis: ImportAnalysis, rel_path: str) -> List[str]:
        """Render the file's kept imports with specifiers moved to the new layout."""
        lines = []
        output = self.settings.output
        for record in analysis.legitimate:
            if record.parsed and not record.is_reference:
                moved = remap_import_specifier(
                    record.source, rel_path, output.rename_spec_suffix, output.remap_directories
                )
                if moved is not None:
                    record = record.with_source(moved)
            lines.extend(render_import(record))
        for removed in analysis.source_framework_only:
            logger.debug(f"{rel_path}: dropping '{removed.record.source}' ({removed.reason})")
        return lines

    def _helper_imports(self, helpers: Sequence[str], out_rel: str) -> List[str]:
        by_module: Dict[str, List[str]] = {}
        for name in helpers:
            module = self.helper_modules.get(name)
            if module is None:
                continue
            by_module.setdefault(module, []).append(name)

        lines = []
        for module, names in by_module.items():
            specifier = posixpath.relpath(_strip_extension(module), posixpath.dirname(out_rel) or ".")
            if not specifier.startswith("."):
                specifier = f"./{specifier}"
            lines.append(f"import {{ {', '.join(sorted(names))} }} from '{specifier}';")
        return lines

    def _finalize_imports(self, code: str, out_rel: str, warnings: List[ConversionWarning]) -> str:
        """Deduplicate, group and order every import of the generated file."""
        analysis = self.import_analyzer.analyze(code, out_rel)
        warnings.extend(analysis.warnings)
        result = rewrite_imports(code, analysis)
        return result if result.endswith("\n") else result + "\n"

    def _preserved_declarations(self, root, source: bytes, warnings: List[ConversionWarning]) -> List[str]:
        declarations = []
        for node in root.named_children:
            if node.type == "export_statement":
                inner = node.child_by_field_name("declaration")
                if inner is None:
                    continue
            elif node.type not in PRESERVED_DECLARATIONS:
                continue
            text = node_text(node, source)
            if _USES_CY_RE.search(text):
                warnings.append(ConversionWarning(
                    WarningCategory.MANUAL_REVIEW,
                    "top-level declaration uses Cypress commands and was kept unconverted",
                    node.start_point[0] + 1,
                ))
                text = marker("top-level declaration uses Cypress commands") + "\n" + text
            declarations.append(text)
        return declarations

    def _read_commands(self, path: str) -> List[CustomCommand]:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            text = f.read()
        language = detect_language(path) or "javascript"
        return get_parser(language).parse_custom_commands(text, path)

    def _output_rel(self, rel_path: str) -> str:
        output = self.settings.output
        return output_path_for(rel_path, output.rename_spec_suffix, output.remap_directories)

    @staticmethod
    def _relative(path: str, source_root: str) -> str:
        return Path(os.path.relpath(path, source_root)).as_posix()


def _strip_extension(path: str) -> str:
    root, _ = posixpath.splitext(path)
    return root
