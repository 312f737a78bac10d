"""Suite/case/hook extraction from a tree-sitter syntax tree.

The walk is top-down and purely functional: each suite-forming call
builds its own subtree from its callback body and the walk never
descends into a call it has already turned into a node. Nested suites
therefore appear exactly once, under their parent.
"""

import logging
from dataclasses import replace
from typing import List, Optional, Tuple

import tree_sitter

from ..constants import COMMAND_NAMESPACE
from .models import BlockSection, CaseNode, ChainedCall, CommandInvocation, HookNode, SuiteNode
from .utils import (
    call_arguments,
    callback_body,
    extract_argument,
    function_parameters,
    is_function_node,
    node_line,
    node_text,
    unwrap_expression,
)

logger = logging.getLogger(__name__)

SUITE_NAMES = frozenset({"describe", "context", "suite"})
CASE_NAMES = frozenset({"it", "test", "specify"})
HOOK_NAMES = frozenset({"before", "beforeEach", "after", "afterEach"})
MODIFIERS = frozenset({"only", "skip"})

# Mocha shorthands: xdescribe == describe.skip, fit == it.only, ...
_PREFIXED = {
    "xdescribe": ("describe", "skip"),
    "xcontext": ("context", "skip"),
    "xit": ("it", "skip"),
    "xspecify": ("specify", "skip"),
    "fdescribe": ("describe", "only"),
    "fit": ("it", "only"),
}

_STATEMENT_SKIP = frozenset({"comment", "empty_statement", "{", "}"})


class _Scope:
    """Nodes collected while scanning one callback body."""

    def __init__(self) -> None:
        self.suites: List[SuiteNode] = []
        self.cases: List[CaseNode] = []
        self.hooks: List[HookNode] = []


def extract_suites(root: tree_sitter.Node, source: bytes) -> List[SuiteNode]:
    """Build the suite forest for a whole program.

    Cases or hooks declared outside any suite are gathered into a single
    anonymous root suite, which then also owns the top-level suites so that
    root-level hooks keep applying to every test in the file.
    """
    scope = _Scope()
    _scan(root, source, scope)

    if scope.cases or scope.hooks:
        return [
            SuiteNode(
                name="",
                suites=tuple(scope.suites),
                cases=tuple(scope.cases),
                hooks=tuple(scope.hooks),
                line=1,
            )
        ]
    return scope.suites


def _scan(node: tree_sitter.Node, source: bytes, scope: _Scope) -> None:
    """Pre-order search for suite/case/hook calls; matched calls are not re-entered."""
    if node.type == "call_expression":
        role = _classify_call(node, source)
        if role is not None:
            kind, base_name, modifier = role
            if kind == "suite":
                scope.suites.append(_build_suite(node, source, modifier))
            elif kind == "case":
                scope.cases.append(_build_case(node, source, modifier))
            else:
                scope.hooks.append(_build_hook(node, source, base_name))
            return

    for child in node.named_children:
        _scan(child, source, scope)


def _classify_call(call: tree_sitter.Node, source: bytes) -> Optional[Tuple[str, str, Optional[str]]]:
    """Return (role, base name, modifier) for suite/case/hook calls."""
    function = call.child_by_field_name("function")
    if function is None:
        return None

    modifier = None
    if function.type == "identifier":
        name = node_text(function, source)
    elif function.type == "member_expression":
        obj = function.child_by_field_name("object")
        prop = function.child_by_field_name("property")
        if obj is None or prop is None or obj.type != "identifier":
            return None
        modifier = node_text(prop, source)
        if modifier not in MODIFIERS:
            return None
        name = node_text(obj, source)
    else:
        return None

    if name in _PREFIXED and modifier is None:
        name, modifier = _PREFIXED[name]

    if name in SUITE_NAMES:
        return ("suite", name, modifier)
    if name in CASE_NAMES:
        return ("case", name, modifier)
    if name in HOOK_NAMES and modifier is None:
        return ("hook", name, None)
    return None


def _title(call: tree_sitter.Node, source: bytes) -> str:
    args = call_arguments(call)
    if not args or is_function_node(args[0]):
        return ""
    arg = extract_argument(args[0], source)
    return arg.value if arg.is_string else arg.text


def _callback(call: tree_sitter.Node) -> Optional[tree_sitter.Node]:
    """The last function-valued argument, if any."""
    for arg in reversed(call_arguments(call)):
        if is_function_node(arg):
            return arg
    return None


def _build_suite(call: tree_sitter.Node, source: bytes, modifier: Optional[str]) -> SuiteNode:
    scope = _Scope()
    callback = _callback(call)
    if callback is not None:
        body = callback_body(callback)
        if body is not None:
            _scan(body, source, scope)
    return SuiteNode(
        name=_title(call, source),
        suites=tuple(scope.suites),
        cases=tuple(scope.cases),
        hooks=tuple(scope.hooks),
        modifier=modifier,
        line=node_line(call),
    )


def _build_case(call: tree_sitter.Node, source: bytes, modifier: Optional[str]) -> CaseNode:
    callback = _callback(call)
    if callback is None:
        return CaseNode(name=_title(call, source), modifier=modifier, pending=True, line=node_line(call))
    return CaseNode(
        name=_title(call, source),
        commands=tuple(extract_commands(callback_body(callback), source)),
        modifier=modifier,
        line=node_line(call),
    )


def _build_hook(call: tree_sitter.Node, source: bytes, name: str) -> HookNode:
    callback = _callback(call)
    commands = extract_commands(callback_body(callback), source) if callback is not None else []
    return HookNode(kind=name, commands=tuple(commands), line=node_line(call))


# =========================================================================
# Command chains
# =========================================================================

def extract_commands(body: Optional[tree_sitter.Node], source: bytes) -> List[CommandInvocation]:
    """Turn a callback body into an ordered command list.

    A statement that is one `cy` chain (possibly assigned to a single
    variable) becomes one invocation. Branches, loops and callbacks whose
    bodies hold chains keep their structure as sections. Other statements
    are kept as raw pass-through invocations, flagged when a chain is
    buried in them.
    """
    if body is None:
        return []
    if body.type != "statement_block":
        # Expression-bodied arrow: `() => cy.visit('/')`
        return _statement_commands(body, source)

    commands: List[CommandInvocation] = []
    for statement in body.named_children:
        if statement.type in _STATEMENT_SKIP:
            continue
        commands.extend(_statement_commands(statement, source))
    return commands


def _statement_commands(statement: tree_sitter.Node, source: bytes) -> List[CommandInvocation]:
    direct = _direct_chain(statement, source)
    if direct is not None:
        return [direct]

    text = node_text(statement, source).strip()
    if not text:
        return []
    if not _contains_chain(statement, source):
        return [CommandInvocation(command="", raw=text, line=node_line(statement))]

    bound = _bound_chain(statement, source)
    if bound is not None:
        return [bound]
    compound = _compound_statement(statement, source)
    if compound is not None:
        return [compound]
    logger.debug(f"Chain embedded in an expression at line {node_line(statement)}")
    return [CommandInvocation(command="", raw=text, line=node_line(statement), embedded=True)]


def _direct_chain(statement: tree_sitter.Node, source: bytes) -> Optional[CommandInvocation]:
    """The chain when the statement is nothing but one (optionally returned) chain."""
    if statement.type in ("expression_statement", "return_statement"):
        expression = next((c for c in statement.named_children if c.type != "comment"), None)
    else:
        # Expression-bodied arrow: `() => cy.visit('/')`
        expression = statement
    if expression is None:
        return None
    call = unwrap_expression(expression)
    if call.type != "call_expression":
        return None
    return build_invocation(call, source)


def _contains_chain(node: tree_sitter.Node, source: bytes) -> bool:
    if node.type == "call_expression" and build_invocation(node, source) is not None:
        return True
    return any(_contains_chain(child, source) for child in node.named_children)


def _bound_chain(statement: tree_sitter.Node, source: bytes) -> Optional[CommandInvocation]:
    """`const name = cy...;` with a single plain identifier declarator."""
    if statement.type not in ("lexical_declaration", "variable_declaration"):
        return None
    declarators = [c for c in statement.named_children if c.type == "variable_declarator"]
    if len(declarators) != 1:
        return None
    name = declarators[0].child_by_field_name("name")
    value = declarators[0].child_by_field_name("value")
    if name is None or value is None or name.type != "identifier":
        return None
    call = unwrap_expression(value)
    if call.type != "call_expression":
        return None
    invocation = build_invocation(call, source)
    if invocation is None:
        return None
    keyword = node_text(statement.children[0], source)
    return replace(invocation, binding=f"{keyword} {node_text(name, source)}")


# Fields holding the body of branch, loop and function nodes
_BODY_FIELDS = {
    "if_statement": "consequence",
    "for_statement": "body",
    "for_in_statement": "body",
    "while_statement": "body",
    "do_statement": "body",
    "arrow_function": "body",
    "function_expression": "body",
    "function": "body",
}

_FUNCTION_DECLARATIONS = frozenset({"function_declaration", "generator_function_declaration"})


def _compound_statement(statement: tree_sitter.Node, source: bytes) -> Optional[CommandInvocation]:
    """Split an if/else, loop or callback-taking statement around its chain-holding bodies.

    Returns None when a chain sits outside every body, e.g. as a call
    argument, since those cannot be rewritten statement by statement.
    """
    bodies: List[tree_sitter.Node] = []
    if statement.type == "statement_block":
        bodies.append(statement)
    elif not _collect_bodies(statement, source, bodies) or not bodies:
        return None

    column = statement.start_point[1]
    sections: List[BlockSection] = []
    cursor = statement.start_byte
    closing = ""
    for body in bodies:
        braced = body.type == "statement_block"
        header_end = body.start_byte + 1 if braced else body.start_byte
        function = _owning_function(body)
        if function is not None and not _is_async(function) and function.start_byte >= cursor:
            header = (
                _slice(source, cursor, function.start_byte) + "async " + _slice(source, function.start_byte, header_end)
            )
        else:
            header = _slice(source, cursor, header_end)
        if not braced:
            header = header.rstrip() + " {"
        sections.append(BlockSection(
            header=_reindent(closing + header, column),
            commands=tuple(extract_commands(body, source)),
            callback=function is not None,
        ))
        cursor = body.end_byte - 1 if braced else body.end_byte
        closing = "" if braced else "}"

    tail = _reindent(closing + _slice(source, cursor, statement.end_byte), column)
    return CommandInvocation(command="", line=node_line(statement), sections=tuple(sections), tail=tail)


def _collect_bodies(node: tree_sitter.Node, source: bytes, bodies: List[tree_sitter.Node]) -> bool:
    """Gather, in source order, the bodies under `node` that hold chains."""
    for child in node.named_children:
        if child.type == "statement_block" or _is_body(child):
            if _contains_chain(child, source):
                bodies.append(child)
            continue
        if child.type == "call_expression" and build_invocation(child, source) is not None:
            return False
        if not _collect_bodies(child, source, bodies):
            return False
    return True


def _is_body(node: tree_sitter.Node) -> bool:
    parent = node.parent
    if parent is None:
        return False
    if parent.type == "else_clause":
        # `else if` is walked into so its own consequence becomes the body
        return node.type != "if_statement" and node.type != "comment"
    field = _BODY_FIELDS.get(parent.type)
    if field is None:
        return False
    body = parent.child_by_field_name(field)
    return body is not None and (body.start_byte, body.end_byte, body.type) == (node.start_byte, node.end_byte, node.type)


def _owning_function(body: tree_sitter.Node) -> Optional[tree_sitter.Node]:
    parent = body.parent
    if parent is not None and (is_function_node(parent) or parent.type in _FUNCTION_DECLARATIONS):
        return parent
    return None


def _is_async(function: tree_sitter.Node) -> bool:
    return bool(function.children) and function.children[0].type == "async"


def _slice(source: bytes, start: int, end: int) -> str:
    return source[start:end].decode("utf-8", errors="replace")


def _reindent(text: str, column: int) -> str:
    """Strip the statement's own indentation from continuation lines."""
    lines = text.split("\n")
    for i in range(1, len(lines)):
        line = lines[i]
        lines[i] = line[column:] if not line[:column].strip() else line.lstrip()
    return "\n".join(lines)


def build_invocation(call: tree_sitter.Node, source: bytes) -> Optional[CommandInvocation]:
    """Build a CommandInvocation from the outermost call of a `cy.*` chain.

    Descends through `<call>.<method>(...)` links until it reaches the
    `cy.<command>(...)` root. Returns None when the chain is not rooted
    at the command namespace.
    """
    links: List[tree_sitter.Node] = []
    current = call
    while True:
        function = current.child_by_field_name("function")
        if function is None or function.type != "member_expression":
            return None
        obj = function.child_by_field_name("object")
        if obj is None:
            return None
        obj = unwrap_expression(obj)
        if obj.type == "identifier" and node_text(obj, source) == COMMAND_NAMESPACE:
            root = current
            break
        if obj.type != "call_expression":
            return None
        links.append(current)
        current = obj

    command = node_text(root.child_by_field_name("function").child_by_field_name("property"), source)
    chained = tuple(chained_call(link, source) for link in reversed(links))
    return CommandInvocation(
        command=command,
        args=tuple(extract_argument(a, source) for a in call_arguments(root)),
        chained_calls=chained,
        line=node_line(root),
    )


def chained_call(call: tree_sitter.Node, source: bytes) -> ChainedCall:
    """Build a ChainedCall from a `<receiver>.<method>(...)` call node."""
    method = node_text(call.child_by_field_name("function").child_by_field_name("property"), source)
    args = []
    nested: List[CommandInvocation] = []
    params: List[str] = []
    for arg in call_arguments(call):
        if is_function_node(arg):
            nested.extend(extract_commands(callback_body(arg), source))
            params = function_parameters(arg, source)
        args.append(extract_argument(arg, source))
    return ChainedCall(
        method=method,
        args=tuple(args),
        line=node_line(call),
        callback_commands=tuple(nested),
        callback_params=tuple(params),
    )
