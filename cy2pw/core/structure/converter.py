"""Re-emits a Cypress suite tree as Playwright Test code.

Suites render depth-first in source order. Inside a suite, hooks come
first, then the suite's own cases, then nested suites.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..ast_parser.models import CaseNode, CommandInvocation, HookKind, HookNode, SuiteNode
from ..constants import MARKER_PREFIX, TARGET_IMPORT, marker
from ..exceptions import ConversionWarning, UnmappedConstruct, WarningCategory
from ..mapping.commands import CommandMapper
from ..mapping.models import MappedCommand
from ..mapping.render import js_string

logger = logging.getLogger(__name__)

HOOK_TARGETS: Dict[str, str] = {
    HookKind.BEFORE_ALL.value: "test.beforeAll",
    HookKind.BEFORE_EACH.value: "test.beforeEach",
    HookKind.AFTER_ALL.value: "test.afterAll",
    HookKind.AFTER_EACH.value: "test.afterEach",
}

# The `page` fixture is test-scoped, so suite-level hooks open their own page
WORKER_HOOKS = frozenset({HookKind.BEFORE_ALL.value, HookKind.AFTER_ALL.value})

INDENT = "  "


@dataclass
class ConversionOptions:
    convert_assertions: bool = True
    preserve_hooks: bool = True
    custom_commands: Tuple[str, ...] = ()


@dataclass
class ConvertedStructure:
    code: str
    warnings: List[ConversionWarning] = field(default_factory=list)
    case_count: int = 0
    imports: List[str] = field(default_factory=list)
    helpers: List[str] = field(default_factory=list)


class _Render:
    """Mutable output buffer for one convert() call."""

    def __init__(self, mapper: CommandMapper):
        self.mapper = mapper
        self.lines: List[str] = []
        self.warnings: List[ConversionWarning] = []
        self.imports: List[str] = []
        self.helpers: List[str] = []
        self.case_count = 0

    def emit(self, depth: int, text: str) -> None:
        for line in text.split("\n"):
            self.lines.append(f"{INDENT * depth}{line}" if line else "")

    def map_commands(self, commands: Sequence[CommandInvocation]) -> List[str]:
        statements: List[str] = []
        self.mapper.begin_body(commands)
        for invocation in commands:
            mapped = self.mapper.map(invocation)
            self._collect(mapped, invocation.line)
            statements.extend(mapped.statements)
        return statements

    def _collect(self, mapped: MappedCommand, line: int) -> None:
        for text in mapped.markers:
            message = text[len(MARKER_PREFIX):].strip()
            self.warnings.append(ConversionWarning(WarningCategory.MANUAL_REVIEW, message, line))
        for note in mapped.notes:
            self.warnings.append(ConversionWarning(WarningCategory.NOTE, note, line))
        for name in mapped.imports:
            if name not in self.imports:
                self.imports.append(name)
        for name in mapped.helpers:
            if name not in self.helpers:
                self.helpers.append(name)


class TestStructureConverter:
    """Converts SuiteNode trees into a Playwright spec module."""

    __test__ = False  # not a pytest test class

    def __init__(self, options: Optional[ConversionOptions] = None):
        self.options = options or ConversionOptions()

    def convert(self, suites: Sequence[SuiteNode], options: Optional[ConversionOptions] = None) -> ConvertedStructure:
        opts = options or self.options
        mapper = CommandMapper(
            page_handle="page",
            convert_assertions=opts.convert_assertions,
            custom_commands=opts.custom_commands,
        )
        render = _Render(mapper)

        for index, suite in enumerate(suites):
            if index:
                render.lines.append("")
            self._render_suite(suite, 0, render, opts)

        header = [TARGET_IMPORT] + render.imports
        body = "\n".join(render.lines)
        code = "\n".join(header) + "\n\n" + body + ("\n" if body else "")

        logger.debug(f"Rendered {render.case_count} case(s) with {len(render.warnings)} warning(s)")
        return ConvertedStructure(
            code=code,
            warnings=render.warnings,
            case_count=render.case_count,
            imports=render.imports,
            helpers=render.helpers,
        )

    def _render_suite(self, suite: SuiteNode, depth: int, render: _Render, opts: ConversionOptions) -> None:
        inner = depth
        if not suite.is_anonymous:
            call = "test.describe" + (f".{suite.modifier}" if suite.modifier else "")
            render.emit(depth, f"{call}({js_string(suite.name)}, () => {{")
            inner = depth + 1

        blocks = 0
        if opts.preserve_hooks:
            for hook in suite.hooks:
                if blocks:
                    render.lines.append("")
                self._render_hook(hook, inner, render)
                blocks += 1
        elif suite.hooks:
            render.warnings.append(ConversionWarning(
                WarningCategory.NOTE, f"{len(suite.hooks)} hook(s) omitted in suite '{suite.name}'", suite.line))

        for case in suite.cases:
            if blocks:
                render.lines.append("")
            self._render_case(case, inner, render)
            blocks += 1

        for child in suite.suites:
            if blocks:
                render.lines.append("")
            self._render_suite(child, inner, render, opts)
            blocks += 1

        if not suite.is_anonymous:
            render.emit(depth, "});")

    def _render_hook(self, hook: HookNode, depth: int, render: _Render) -> None:
        target = HOOK_TARGETS.get(hook.kind)
        if target is None:
            error = UnmappedConstruct("hook", hook.kind)
            logger.warning(f"{error} at line {hook.line}")
            render.warnings.append(ConversionWarning(WarningCategory.UNMAPPED_HOOK, str(error), hook.line))
            render.emit(depth, marker(f"{error}; converted body kept as comments"))
            for statement in render.map_commands(hook.commands):
                render.emit(depth, "\n".join(f"// {line}" for line in statement.split("\n")))
            return

        if hook.kind in WORKER_HOOKS:
            render.emit(depth, f"{target}(async ({{ browser }}) => {{")
            statements = ["const page = await browser.newPage();"] + render.map_commands(hook.commands)
            statements.append("await page.close();")
        else:
            render.emit(depth, f"{target}(async ({{ page }}) => {{")
            statements = render.map_commands(hook.commands)
        self._emit_statements(statements, depth + 1, render)
        render.emit(depth, "});")

    def _render_case(self, case: CaseNode, depth: int, render: _Render) -> None:
        render.case_count += 1
        title = js_string(case.name)
        if case.pending:
            render.emit(depth, f"test.skip({title}, async () => {{}});")
            return
        call = "test" + (f".{case.modifier}" if case.modifier else "")
        statements = render.map_commands(case.commands)
        if not statements:
            render.emit(depth, f"{call}({title}, async ({{ page }}) => {{}});")
            return
        render.emit(depth, f"{call}({title}, async ({{ page }}) => {{")
        self._emit_statements(statements, depth + 1, render)
        render.emit(depth, "});")

    @staticmethod
    def _emit_statements(statements: List[str], depth: int, render: _Render) -> None:
        for statement in statements:
            render.emit(depth, statement)


def convert_test_structure(suites: Sequence[SuiteNode], options: Optional[ConversionOptions] = None) -> ConvertedStructure:
    return TestStructureConverter(options).convert(suites)
