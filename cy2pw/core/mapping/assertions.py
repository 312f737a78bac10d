"""Assertion mapping for `.should()` / `.and()` links.

Each chainer has an entry per subject kind. A leading `not.` negates any
entry. Chainers without an entry raise UnmappedConstruct so the caller
can leave a marker in place of the assertion.
"""

import re
from typing import Callable, Dict, Sequence

from ..ast_parser.models import Argument, ArgumentKind
from ..exceptions import UnmappedConstruct
from .render import is_function_literal, js_regex_escape, render_arg

_Builder = Callable[[Sequence[Argument]], str]

_NEGATION = "not."


def _one(args: Sequence[Argument], chainer: str) -> str:
    if not args:
        raise UnmappedConstruct("assertion", f"{chainer} without expected value")
    return render_arg(args[0])


def _class_pattern(args: Sequence[Argument]) -> str:
    if args and args[0].kind == ArgumentKind.STRING:
        return f"/(^|\\s){js_regex_escape(args[0].value)}(\\s|$)/"
    return _one(args, "have.class")


def _attribute(args: Sequence[Argument]) -> str:
    if not args:
        raise UnmappedConstruct("assertion", "have.attr without attribute name")
    if len(args) == 1:
        return f"toHaveAttribute({render_arg(args[0])})"
    return f"toHaveAttribute({render_arg(args[0])}, {render_arg(args[1])})"


def _css(args: Sequence[Argument]) -> str:
    if len(args) < 2:
        raise UnmappedConstruct("assertion", "have.css without expected value")
    return f"toHaveCSS({render_arg(args[0])}, {render_arg(args[1])})"


LOCATOR_ASSERTIONS: Dict[str, _Builder] = {
    "be.visible": lambda a: "toBeVisible()",
    "be.hidden": lambda a: "toBeHidden()",
    "exist": lambda a: "toBeAttached()",
    "have.text": lambda a: f"toHaveText({_one(a, 'have.text')})",
    "contain.text": lambda a: f"toContainText({_one(a, 'contain.text')})",
    "contain": lambda a: f"toContainText({_one(a, 'contain')})",
    "include.text": lambda a: f"toContainText({_one(a, 'include.text')})",
    "have.value": lambda a: f"toHaveValue({_one(a, 'have.value')})",
    "have.length": lambda a: f"toHaveCount({_one(a, 'have.length')})",
    "have.class": lambda a: f"toHaveClass({_class_pattern(a)})",
    "be.enabled": lambda a: "toBeEnabled()",
    "be.disabled": lambda a: "toBeDisabled()",
    "be.checked": lambda a: "toBeChecked()",
    "be.focused": lambda a: "toBeFocused()",
    "have.focus": lambda a: "toBeFocused()",
    "be.empty": lambda a: "toBeEmpty()",
    "have.attr": _attribute,
    "have.css": _css,
    "have.id": lambda a: f"toHaveId({_one(a, 'have.id')})",
}

# Negated forms whose natural Playwright reading differs from `.not.<matcher>`
LOCATOR_NEGATED_OVERRIDES: Dict[str, str] = {
    "exist": "toHaveCount(0)",
}


def _url_pattern(args: Sequence[Argument]) -> str:
    if args and args[0].kind == ArgumentKind.STRING:
        return f"/{js_regex_escape(args[0].value)}/"
    return _one(args, "include")


URL_ASSERTIONS: Dict[str, _Builder] = {
    "include": lambda a: f"toHaveURL({_url_pattern(a)})",
    "contain": lambda a: f"toHaveURL({_url_pattern(a)})",
    "eq": lambda a: f"toHaveURL({_one(a, 'eq')})",
    "equal": lambda a: f"toHaveURL({_one(a, 'equal')})",
    "match": lambda a: f"toHaveURL({_one(a, 'match')})",
}

TITLE_ASSERTIONS: Dict[str, _Builder] = {
    "include": lambda a: f"toHaveTitle({_url_pattern(a)})",
    "contain": lambda a: f"toHaveTitle({_url_pattern(a)})",
    "eq": lambda a: f"toHaveTitle({_one(a, 'eq')})",
    "equal": lambda a: f"toHaveTitle({_one(a, 'equal')})",
    "match": lambda a: f"toHaveTitle({_one(a, 'match')})",
}

VALUE_ASSERTIONS: Dict[str, _Builder] = {
    "eq": lambda a: f"toBe({_one(a, 'eq')})",
    "equal": lambda a: f"toBe({_one(a, 'equal')})",
    "deep.equal": lambda a: f"toEqual({_one(a, 'deep.equal')})",
    "include": lambda a: f"toContain({_one(a, 'include')})",
    "contain": lambda a: f"toContain({_one(a, 'contain')})",
    "match": lambda a: f"toMatch({_one(a, 'match')})",
    "have.length": lambda a: f"toHaveLength({_one(a, 'have.length')})",
    "exist": lambda a: "toBeDefined()",
    "be.true": lambda a: "toBe(true)",
    "be.false": lambda a: "toBe(false)",
    "be.null": lambda a: "toBeNull()",
    "be.undefined": lambda a: "toBeUndefined()",
    "be.empty": lambda a: "toHaveLength(0)",
    "have.property": lambda a: f"toHaveProperty({_one(a, 'have.property')})",
}

_TABLES = {
    "locator": LOCATOR_ASSERTIONS,
    "url": URL_ASSERTIONS,
    "title": TITLE_ASSERTIONS,
    "value": VALUE_ASSERTIONS,
}

_CHAINER_RE = re.compile(r"^[\w.]+$")


def build_assertion(subject: str, target: str, args: Sequence[Argument]) -> str:
    """Render one assertion statement.

    Args:
        subject: "locator", "url", "title" or "value"
        target: expression passed to expect() (locator, page handle, value)
        args: `.should()` arguments, chainer first

    Raises:
        UnmappedConstruct: unknown chainer, callback assertion or non-literal chainer
    """
    if not args:
        raise UnmappedConstruct("assertion", "should() without arguments")
    first = args[0]
    if is_function_literal(first):
        raise UnmappedConstruct("assertion", "callback assertion")
    if first.kind != ArgumentKind.STRING or not _CHAINER_RE.match(first.value):
        raise UnmappedConstruct("assertion", first.text)

    chainer = first.value
    expected = list(args[1:])
    negated = chainer.startswith(_NEGATION)
    if negated:
        chainer = chainer[len(_NEGATION):]
    if chainer.startswith("to."):
        chainer = chainer[3:]

    table = _TABLES[subject]
    builder = table.get(chainer)
    if builder is None:
        raise UnmappedConstruct("assertion", first.value)

    if negated and subject == "locator" and chainer in LOCATOR_NEGATED_OVERRIDES:
        matcher = LOCATOR_NEGATED_OVERRIDES[chainer]
    else:
        matcher = builder(expected)
        if negated:
            matcher = f"not.{matcher}"

    awaited = subject != "value"
    statement = f"expect({target}).{matcher};"
    return f"await {statement}" if awaited else statement

