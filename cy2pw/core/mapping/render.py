"""JavaScript source rendering helpers."""

import re
from typing import Iterable

from ..ast_parser.models import Argument, ArgumentKind, ChainedCall, CommandInvocation
from ..constants import COMMAND_NAMESPACE

_REGEX_SPECIAL = re.compile(r"([.*+?^${}()|\[\]\\/])")
_FUNCTION_RE = re.compile(r"(async\s+)?(function\b|\([^)]*\)\s*(:[^=]*)?=>|[A-Za-z_$][\w$]*\s*=>)")


def js_string(value: str) -> str:
    """Render a single-quoted JavaScript string literal."""
    escaped = (
        value.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f"'{escaped}'"


def js_regex_escape(value: str) -> str:
    return _REGEX_SPECIAL.sub(r"\\\1", value)


def glob_to_js_regex(pattern: str) -> str:
    """Translate a minimatch-style URL glob into a JS regex literal."""
    parts = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**", i):
            parts.append(".*")
            i += 2
        elif pattern[i] == "*":
            parts.append("[^/]*")
            i += 1
        else:
            parts.append(js_regex_escape(pattern[i]))
            i += 1
    return "/" + "".join(parts) + "/"


def render_arg(arg: Argument) -> str:
    if arg.kind == ArgumentKind.STRING:
        return js_string(arg.value)
    return arg.text


def render_args(args: Iterable[Argument]) -> str:
    return ", ".join(render_arg(a) for a in args)


def render_chained(call: ChainedCall) -> str:
    return f".{call.method}({render_args(call.args)})"


def render_invocation(invocation: CommandInvocation) -> str:
    """Reconstruct the source text of a command chain on one line."""
    if invocation.is_raw:
        return one_line(invocation.raw)
    if invocation.is_compound:
        return one_line(f"{invocation.sections[0].header} ... {invocation.tail}")
    text = f"{COMMAND_NAMESPACE}.{invocation.command}({render_args(invocation.args)})"
    text += "".join(render_chained(c) for c in invocation.chained_calls)
    return one_line(text)


def is_regex_literal(arg: Argument) -> bool:
    return arg.kind == ArgumentKind.RAW and arg.text.startswith("/") and arg.text.rfind("/") > 0


def is_function_literal(arg: Argument) -> bool:
    return arg.kind == ArgumentKind.RAW and bool(_FUNCTION_RE.match(arg.text.lstrip()))


def one_line(text: str, limit: int = 120) -> str:
    """Collapse whitespace and truncate for use inside a marker comment."""
    flat = " ".join(text.split())
    return flat if len(flat) <= limit else flat[:limit - 3] + "..."
