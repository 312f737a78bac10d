"""Page object transformation.

Rebuilds the analyzed class for Playwright: a constructor that receives
the page, element getters that return locators, and method bodies whose
Cypress chains are replaced in place by mapped statements. Each method is
converted in isolation; a failure leaves that method's original body
commented out under a marker and the rest of the class still converts.
"""

import logging
import re
import textwrap
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set, Tuple

import tree_sitter

from ..ast_parser.suite_extractor import build_invocation, chained_call
from ..ast_parser.utils import get_parser, is_async_function, is_function_node, node_text, unwrap_expression
from ..constants import MARKER_PREFIX, PAGE_OBJECT_PAGE_HANDLE, TARGET_MODULE, marker
from ..exceptions import (
    ConversionWarning,
    MethodConversionFailure,
    SourceSyntaxError,
    WarningCategory,
)
from ..mapping.commands import CommandMapper
from ..mapping.models import MappedCommand
from .models import (
    ExportKind,
    MethodDescriptor,
    MethodKind,
    MethodOutcome,
    PageObjectAnalysis,
    PropertyDescriptor,
    TransformedPageObject,
    TransformOptions,
)
from .rules import apply_rules

logger = logging.getLogger(__name__)

MEMBER_INDENT = "  "
BODY_INDENT = "    "

_WRAPPER = "async function __cy2pw__() "
_USES_CY_RE = re.compile(r"\bcy\s*\.\s*\w+\s*\(")
_INSTANCE_EXPORT_RE = re.compile(r"(export\s+default|module\.exports\s*=)\s*new\s+([\w$]+)\s*\(\s*\)\s*;?")
_RELATIVE_GOTO_RE = re.compile(r"\.goto\(['`]\/")


@dataclass
class _Context:
    """Per-class state shared by the method strategies."""

    analysis: PageObjectAnalysis
    options: TransformOptions
    mapper: CommandMapper
    element_getters: Set[str]
    async_methods: Set[str]
    method_names: Set[str]
    warnings: List[ConversionWarning] = field(default_factory=list)


@dataclass
class _BodyResult:
    text: str
    notes: List[str] = field(default_factory=list)
    markers: List[str] = field(default_factory=list)


class PageObjectTransformer:
    """Generates Playwright page-object code from a PageObjectAnalysis."""

    def __init__(self, options: Optional[TransformOptions] = None):
        self.options = options or TransformOptions()
        self._strategies: Dict[MethodKind, Callable[[MethodDescriptor, _Context], _BodyResult]] = {
            MethodKind.VISIT: self._convert_visit,
            MethodKind.INPUT: self._convert_interaction,
            MethodKind.CLICK: self._convert_interaction,
            MethodKind.COMPOSITE: self._convert_composite,
            MethodKind.MOCKING: self._convert_mocking,
            MethodKind.GENERIC: self._convert_generic,
        }

    def transform(self, analysis: PageObjectAnalysis,
                  options: Optional[TransformOptions] = None) -> TransformedPageObject:
        opts = options or self.options
        typescript = analysis.is_typescript if opts.typescript is None else opts.typescript
        element_getters = {m.name for m in analysis.methods if m.returns_element} | {
            p.name for p in analysis.properties
            if not p.is_static and p.value is not None and _USES_CY_RE.search(p.value)
        }
        ctx = _Context(
            analysis=analysis,
            options=opts,
            mapper=CommandMapper(page_handle=PAGE_OBJECT_PAGE_HANDLE),
            element_getters=element_getters,
            async_methods=_async_methods(analysis, element_getters, opts),
            method_names={m.name for m in analysis.methods if m.kind == "method"},
        )

        members: List[str] = []
        if opts.inject_page:
            members.extend(self._page_constructor(analysis, typescript))
        elif analysis.has_constructor:
            members.append(_render_member("constructor", analysis.constructor_parameters, analysis.constructor_body))

        for prop in analysis.properties:
            members.append(self._property(prop, ctx))

        outcomes: List[MethodOutcome] = []
        for method in analysis.methods:
            text, outcome = self._method(method, ctx)
            members.append(text)
            outcomes.append(outcome)

        preamble = analysis.preamble
        if opts.inject_page and typescript and "Page" not in _imported_names(preamble):
            preamble = f"import type {{ Page }} from '{TARGET_MODULE}';\n" + preamble

        code = f"{preamble}{analysis.header} {{\n" + "\n\n".join(members) + "\n}"
        code += self._epilogue(analysis, ctx)
        if not code.endswith("\n"):
            code += "\n"

        failed = [o.name for o in outcomes if not o.success]
        if failed:
            logger.warning(f"{analysis.class_name}: {len(failed)} method(s) need manual conversion: {failed}")
        return TransformedPageObject(code=code, outcomes=outcomes, warnings=ctx.warnings)

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    def _page_constructor(self, analysis: PageObjectAnalysis, typescript: bool) -> List[str]:
        members = []
        parameter = "page: Page" if typescript else "page"
        if typescript:
            members.append(f"{MEMBER_INDENT}readonly page: Page;")

        lines = ["this.page = page;"]
        existing = _dedent_body(analysis.constructor_body)
        if existing:
            body_lines = existing.split("\n")
            super_index = next((i for i, line in enumerate(body_lines) if line.lstrip().startswith("super(")), None)
            if super_index is not None:
                lines = body_lines[:super_index + 1] + lines + body_lines[super_index + 1:]
            else:
                lines = lines + body_lines
        elif analysis.base_class:
            lines = ["super(page);"] + lines

        parameters = (parameter,) + tuple(p for p in analysis.constructor_parameters if p.split(":")[0].strip() != "page")
        members.append(_render_member("constructor", parameters, "\n".join(lines)))
        return members

    def _property(self, prop: PropertyDescriptor, ctx: _Context) -> str:
        if prop.value is None or not _USES_CY_RE.search(prop.value):
            return f"{MEMBER_INDENT}{prop.text}"
        try:
            result = self._rewrite(f"return {prop.value};", ctx, await_names=set())
            rewritten = result.text.strip()
        except MethodConversionFailure:
            result, rewritten = None, ""
        if prop.is_static or result is None or result.markers or not rewritten.startswith("return "):
            line = marker(f"property '{prop.name}' uses Cypress commands that need manual conversion")
            ctx.warnings.append(ConversionWarning(WarningCategory.MANUAL_REVIEW, _marker_message(line), prop.line))
            return f"{MEMBER_INDENT}{line}\n{MEMBER_INDENT}{prop.text}"
        # Field initializers run before the constructor assigns this.page
        return _render_member(f"get {prop.name}", (), rewritten)

    def _method(self, method: MethodDescriptor, ctx: _Context) -> Tuple[str, MethodOutcome]:
        outcome = MethodOutcome(name=method.name, classification=method.classification)
        strategy = self._strategies[method.classification]
        try:
            result = strategy(method, ctx)
        except Exception as e:
            # Isolate the failure to this method
            reason = str(e) or e.__class__.__name__
            logger.warning(f"Failed to convert {ctx.analysis.class_name}.{method.name}: {reason}")
            outcome.success = False
            outcome.notes.append(reason)
            outcome.markers = 1
            ctx.warnings.append(ConversionWarning(
                WarningCategory.METHOD_FAILURE, f"{method.name}: {reason}", method.line))
            original = _dedent_body(method.body)
            body = marker(f"method conversion failed: {reason}")
            if original:
                body += "\n" + "\n".join(f"// {line}" if line else "//" for line in original.split("\n"))
            return self._render_method(method, body, is_async=method.is_async), outcome

        outcome.notes.extend(result.notes)
        outcome.markers = len(result.markers)
        for line in result.markers:
            ctx.warnings.append(ConversionWarning(WarningCategory.MANUAL_REVIEW, _marker_message(line), method.line))
        for note in result.notes:
            ctx.warnings.append(ConversionWarning(WarningCategory.NOTE, f"{method.name}: {note}", method.line))

        is_async = method.name in ctx.async_methods
        return self._render_method(method, _dedent_body(result.text), is_async), outcome

    @staticmethod
    def _render_method(method: MethodDescriptor, body: str, is_async: bool) -> str:
        prefix = ""
        if method.is_static:
            prefix += "static "
        if method.kind == "getter":
            prefix += "get "
        elif method.kind == "setter":
            prefix += "set "
        elif is_async:
            prefix += "async "
        return_type = method.return_type
        if return_type and is_async and method.kind == "method" and not return_type.startswith("Promise<"):
            return_type = f"Promise<{return_type}>"
        suffix = f": {return_type}" if return_type else ""
        return _render_member(f"{prefix}{method.name}", method.parameters, body, suffix)

    def _epilogue(self, analysis: PageObjectAnalysis, ctx: _Context) -> str:
        epilogue = analysis.epilogue
        if analysis.export_kind != ExportKind.INSTANCE:
            return epilogue

        def _replace(match: re.Match) -> str:
            note = "singleton export replaced by the class; construct it with the test's page"
            ctx.warnings.append(ConversionWarning(WarningCategory.MANUAL_REVIEW, note))
            return f"{marker(note)}\n{match.group(1)} {match.group(2)};"

        return _INSTANCE_EXPORT_RE.sub(_replace, epilogue, count=1)

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _convert_visit(self, method: MethodDescriptor, ctx: _Context) -> _BodyResult:
        result = self._rewrite(method.body, ctx, await_names=self._async_siblings(method, ctx))
        if _RELATIVE_GOTO_RE.search(result.text):
            result.notes.append("relative goto() URL resolves against baseURL in playwright.config")
        return result

    def _convert_interaction(self, method: MethodDescriptor, ctx: _Context) -> _BodyResult:
        return self._rewrite(method.body, ctx, await_names=self._async_siblings(method, ctx))

    def _convert_composite(self, method: MethodDescriptor, ctx: _Context) -> _BodyResult:
        # Every call to a sibling method is awaited, whatever that sibling turns into
        siblings = set(method.called_methods) & ctx.method_names
        return self._rewrite(method.body, ctx, await_names=siblings)

    def _convert_mocking(self, method: MethodDescriptor, ctx: _Context) -> _BodyResult:
        if not ctx.options.preserve_mocking:
            return self._rewrite(method.body, ctx, await_names=self._async_siblings(method, ctx))
        text, applied = apply_rules(method.body)
        notes = ["mocking method preserved verbatim"]
        if applied:
            notes.append(f"commented out debug calls ({', '.join(applied)})")
        return _BodyResult(text=text, notes=notes)

    def _convert_generic(self, method: MethodDescriptor, ctx: _Context) -> _BodyResult:
        if not _USES_CY_RE.search(method.body) and not method.called_methods and not any(
            f"this.{getter}" in method.body for getter in ctx.element_getters
        ):
            return _BodyResult(text=method.body)
        return self._rewrite(method.body, ctx, await_names=self._async_siblings(method, ctx))

    @staticmethod
    def _async_siblings(method: MethodDescriptor, ctx: _Context) -> Set[str]:
        return {name for name in method.called_methods if name in ctx.async_methods}

    # ------------------------------------------------------------------
    # Body rewriting
    # ------------------------------------------------------------------

    def _rewrite(self, body: str, ctx: _Context, await_names: Set[str]) -> _BodyResult:
        """Replace Cypress chains inside one method body.

        Raises:
            MethodConversionFailure: If the body does not parse on its own
        """
        wrapped = f"{_WRAPPER}{{{body}}}"
        parser = get_parser(ctx.analysis.language)
        try:
            tree = parser.parse_tree(wrapped)
        except SourceSyntaxError as e:
            raise MethodConversionFailure("<body>", f"unparsable body ({e.msg})") from e

        source = wrapped.encode("utf-8")
        function = tree.root_node.named_children[0]
        block = function.child_by_field_name("body")
        rewriter = _BodyRewriter(source, ctx, await_names)
        rewriter.visit_block(block)

        edited = source
        for start, end, replacement in sorted(rewriter.edits, key=lambda e: (e[0], e[1]), reverse=True):
            edited = edited[:start] + replacement.encode("utf-8") + edited[end:]
        text = edited.decode("utf-8")
        inner = text[len(_WRAPPER) + 1:-1]
        return _BodyResult(text=inner, notes=rewriter.notes, markers=rewriter.markers)


class _BodyRewriter:
    """Collects (start, end, replacement) byte edits for one wrapped body."""

    def __init__(self, source: bytes, ctx: _Context, await_names: Set[str]):
        self.source = source
        self.ctx = ctx
        self.await_names = await_names
        self.edits: List[Tuple[int, int, str]] = []
        self.notes: List[str] = []
        self.markers: List[str] = []

    def visit_block(self, block: tree_sitter.Node) -> None:
        for statement in block.named_children:
            if statement.type != "comment":
                self.visit_statement(statement)

    def visit_statement(self, statement: tree_sitter.Node) -> None:
        if statement.type == "expression_statement":
            expression = next((c for c in statement.named_children if c.type != "comment"), None)
            if expression is not None and self._expression_statement(statement, expression):
                return
        elif statement.type == "return_statement":
            value = next((c for c in statement.named_children if c.type != "comment"), None)
            if value is not None and self._return_statement(statement, value):
                return
        self._embedded(statement, statement)

    def _expression_statement(self, statement: tree_sitter.Node, expression: tree_sitter.Node) -> bool:
        call = unwrap_expression(expression)
        if call.type != "call_expression":
            return False

        invocation = build_invocation(call, self.source)
        if invocation is not None:
            self._replace_statement(statement, self.ctx.mapper.map(invocation))
            return True

        getter_chain = self._getter_chain(call)
        if getter_chain is not None:
            base, links = getter_chain
            self._replace_statement(statement, self.ctx.mapper.map_chain(base, links))
            return True

        callee = _self_call_name(call, self.source)
        if callee in self.await_names and expression.type != "await_expression":
            self.edits.append((expression.start_byte, expression.start_byte, "await "))
            return True
        return False

    def _return_statement(self, statement: tree_sitter.Node, value: tree_sitter.Node) -> bool:
        call = unwrap_expression(value)
        if call.type != "call_expression":
            return False
        invocation = build_invocation(call, self.source)
        if invocation is None:
            return False
        locator = self.ctx.mapper.locator_expression(invocation)
        if locator is not None:
            self.edits.append((call.start_byte, call.end_byte, locator))
            return True
        mapped = self.ctx.mapper.map(invocation)
        mapped.notes.append("value returned by the Cypress chain is dropped")
        self._replace_statement(statement, mapped)
        return True

    def _embedded(self, node: tree_sitter.Node, statement: tree_sitter.Node) -> None:
        """Handle chains and sibling calls nested in expressions and blocks of a statement."""
        marked = False
        for child in node.named_children:
            if child.type == "statement_block":
                self.visit_block(child)
            elif is_function_node(child):
                before = len(self.edits)
                self._embedded(child, statement)
                if len(self.edits) > before and not is_async_function(child):
                    self.edits.append((child.start_byte, child.start_byte, "async "))
                    self._insert_marker(statement, "callback now awaits; its caller does not wait for it")
            elif child.type == "call_expression":
                invocation = build_invocation(child, self.source)
                if invocation is None:
                    self._await_self_call(child)
                    self._embedded(child, statement)
                    continue
                locator = self.ctx.mapper.locator_expression(invocation)
                if locator is not None:
                    self.edits.append((child.start_byte, child.end_byte, locator))
                elif not marked:
                    self._insert_marker(statement, "Cypress chain inside an expression needs manual conversion")
                    marked = True
            else:
                self._embedded(child, statement)

    def _await_self_call(self, call: tree_sitter.Node) -> None:
        if _self_call_name(call, self.source) not in self.await_names:
            return
        parent = call.parent
        if parent is not None and parent.type == "await_expression":
            return
        if parent is not None and parent.type == "member_expression":
            # `this.load().items` must become `(await this.load()).items`
            self.edits.append((call.start_byte, call.start_byte, "(await "))
            self.edits.append((call.end_byte, call.end_byte, ")"))
        else:
            self.edits.append((call.start_byte, call.start_byte, "await "))

    def _insert_marker(self, statement: tree_sitter.Node, reason: str) -> None:
        line = marker(reason)
        indent = " " * statement.start_point[1]
        self.edits.append((statement.start_byte, statement.start_byte, f"{line}\n{indent}"))
        self.markers.append(line)

    def _getter_chain(self, call: tree_sitter.Node) -> Optional[Tuple[str, list]]:
        """`this.<element getter>.<link>(...)...` as (base expression, links)."""
        links = []
        current = call
        while current.type == "call_expression":
            function = current.child_by_field_name("function")
            if function is None or function.type != "member_expression":
                return None
            links.append(current)
            obj = function.child_by_field_name("object")
            if obj is None:
                return None
            current = unwrap_expression(obj)
        if current.type != "member_expression":
            return None
        owner = current.child_by_field_name("object")
        prop = current.child_by_field_name("property")
        if owner is None or prop is None or owner.type != "this":
            return None
        name = node_text(prop, self.source)
        if name not in self.ctx.element_getters:
            return None
        return f"this.{name}", [
            chained_call(link, self.source) for link in reversed(links)
        ]

    def _replace_statement(self, statement: tree_sitter.Node, mapped: MappedCommand) -> None:
        indent = " " * statement.start_point[1]
        text = f"\n{indent}".join(line for s in mapped.statements for line in s.split("\n"))
        self.edits.append((statement.start_byte, statement.end_byte, text))
        self.markers.extend(mapped.markers)
        self.notes.extend(mapped.notes)


def _self_call_name(call: tree_sitter.Node, source: bytes) -> Optional[str]:
    function = call.child_by_field_name("function")
    if function is None or function.type != "member_expression":
        return None
    owner = function.child_by_field_name("object")
    prop = function.child_by_field_name("property")
    if owner is None or prop is None or owner.type != "this":
        return None
    return node_text(prop, source)


def _async_methods(analysis: PageObjectAnalysis, element_getters: Set[str], options: TransformOptions) -> Set[str]:
    """Methods that end up async: their bodies await page calls or async siblings."""
    preserved = {
        m.name for m in analysis.methods
        if m.classification == MethodKind.MOCKING and options.preserve_mocking
    }
    result = set()
    for m in analysis.methods:
        if m.kind != "method":
            continue
        if m.is_async or m.classification == MethodKind.COMPOSITE:
            result.add(m.name)
        elif m.name not in preserved and (
            _USES_CY_RE.search(m.body) or any(f"this.{g}." in m.body for g in element_getters)
        ):
            result.add(m.name)

    changed = True
    while changed:
        changed = False
        for m in analysis.methods:
            if m.kind == "method" and m.name not in result and m.name not in preserved:
                if any(called in result for called in m.called_methods):
                    result.add(m.name)
                    changed = True
    return result


def _dedent_body(body: str) -> str:
    stripped = body.strip("\n")
    if "\n" not in stripped:
        return stripped.strip()
    first, rest = stripped.split("\n", 1)
    if first.strip() and not first.startswith((" ", "\t")):
        # Statement on the brace line: dedent the remainder separately
        return first.strip() + "\n" + textwrap.dedent(rest).rstrip()
    return textwrap.dedent(stripped).rstrip()


def _render_member(signature: str, parameters, body: str, suffix: str = "") -> str:
    head = f"{MEMBER_INDENT}{signature}({', '.join(parameters)}){suffix} {{"
    body = body.strip("\n")
    if not body.strip():
        return head + "}"
    lines = [f"{BODY_INDENT}{line}" if line.strip() else "" for line in body.split("\n")]
    return "\n".join([head] + lines + [f"{MEMBER_INDENT}}}"])


def _marker_message(line: str) -> str:
    return line.strip()[len(MARKER_PREFIX):].strip()


def _imported_names(preamble: str) -> Set[str]:
    names = set()
    for match in re.finditer(r"import\s+(?:type\s+)?\{([^}]*)\}\s+from\s+['\"]@playwright/test['\"]", preamble):
        names.update(part.strip().split(" as ")[-1] for part in match.group(1).split(","))
    return names


def transform_page_object(analysis: PageObjectAnalysis, options: Optional[TransformOptions] = None) -> TransformedPageObject:
    return PageObjectTransformer(options).transform(analysis)
