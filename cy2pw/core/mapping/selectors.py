"""Selector optimization.

A literal CSS selector is matched against an ordered strategy table and
the first matching strategy produces the locator expression:

    test-id attribute > ARIA role > ARIA label > placeholder > raw locator

Semantic accessors are only considered for a single compound selector
(`button[data-testid="x"]`). Anything with combinators, selector lists or
pseudo-classes falls through to the raw locator.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from ..ast_parser.models import Argument
from .render import js_string, render_arg

logger = logging.getLogger(__name__)

TEST_ID_ATTRIBUTES = ("data-testid", "data-test-id", "data-test", "data-cy")
DEFAULT_TEST_ID_ATTRIBUTE = "data-testid"

_ATTRIBUTE_RE = re.compile(
    r"""\[\s*(?P<name>[\w:-]+)\s*(?:(?P<op>[~|^$*]?=)\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>[^\]\s]+))\s*)?\]"""
)
_TAG_RE = re.compile(r"^[a-zA-Z][\w-]*|^\*")
_SIMPLE_RE = re.compile(r"^[#.][\w-]+")
_CONTAINS_RE = re.compile(r":contains\(")


@dataclass(frozen=True)
class CompoundSelector:
    """Parsed `tag[attr=value].cls#id` selector with no combinators."""

    tag: Optional[str]
    attributes: Tuple[Tuple[str, Optional[str], Optional[str]], ...]  # (name, op, value)
    simple: Tuple[str, ...]  # classes and ids, with their prefix

    def exact(self, name: str) -> Optional[str]:
        for attr, op, value in self.attributes:
            if attr == name and op == "=":
                return value
        return None


@dataclass(frozen=True)
class SelectorStrategy:
    name: str
    build: Callable[[CompoundSelector, str], Optional[Tuple[str, Optional[str]]]]


def parse_compound(selector: str) -> Optional[CompoundSelector]:
    """Parse a single compound selector, or None if it is anything more."""
    text = selector.strip()
    if not text:
        return None

    tag = None
    match = _TAG_RE.match(text)
    if match:
        tag = match.group(0)
        text = text[match.end():]

    attributes = []
    simple = []
    while text:
        attr = _ATTRIBUTE_RE.match(text)
        if attr:
            value = attr.group("dq")
            if value is None:
                value = attr.group("sq")
            if value is None:
                value = attr.group("bare")
            attributes.append((attr.group("name"), attr.group("op"), value))
            text = text[attr.end():]
            continue
        part = _SIMPLE_RE.match(text)
        if part:
            simple.append(part.group(0))
            text = text[part.end():]
            continue
        # Combinator, selector list, pseudo-class or something we do not model
        return None

    return CompoundSelector(tag=tag, attributes=tuple(attributes), simple=tuple(simple))


def _test_id(compound: CompoundSelector, handle: str):
    for attribute in TEST_ID_ATTRIBUTES:
        value = compound.exact(attribute)
        if value is not None:
            note = None
            if attribute != DEFAULT_TEST_ID_ATTRIBUTE:
                note = f"getByTestId expects testIdAttribute: '{attribute}' in playwright.config"
            return f"{handle}.getByTestId({js_string(value)})", note
    return None


def _role(compound: CompoundSelector, handle: str):
    value = compound.exact("role")
    if value is None:
        return None
    return f"{handle}.getByRole({js_string(value)})", None


def _aria_label(compound: CompoundSelector, handle: str):
    value = compound.exact("aria-label")
    if value is None:
        return None
    return f"{handle}.getByLabel({js_string(value)})", None


def _placeholder(compound: CompoundSelector, handle: str):
    value = compound.exact("placeholder")
    if value is None:
        return None
    return f"{handle}.getByPlaceholder({js_string(value)})", None


# Evaluated in order; first match wins
SELECTOR_STRATEGIES: List[SelectorStrategy] = [
    SelectorStrategy("test-id", _test_id),
    SelectorStrategy("role", _role),
    SelectorStrategy("aria-label", _aria_label),
    SelectorStrategy("placeholder", _placeholder),
]


def optimize_selector(selector: str, handle: str = "page") -> Tuple[str, Optional[str], str]:
    """Pick the locator expression for a literal CSS selector.

    Returns:
        (expression, note or None, strategy name)
    """
    compound = parse_compound(selector)
    if compound is not None:
        for strategy in SELECTOR_STRATEGIES:
            result = strategy.build(compound, handle)
            if result is not None:
                expression, note = result
                logger.debug(f"Selector {selector!r} -> {strategy.name}")
                return expression, note, strategy.name

    # jQuery :contains() has a Playwright CSS counterpart
    raw = _CONTAINS_RE.sub(":has-text(", selector)
    return f"{handle}.locator({js_string(raw)})", None, "locator"


def locator_for(arg: Argument, handle: str = "page") -> Tuple[str, Optional[str]]:
    """Locator expression for a selector argument of any kind.

    Non-literal selectors are passed to `locator()` unevaluated.
    """
    if arg.is_string:
        expression, note, _ = optimize_selector(arg.value, handle)
        return expression, note
    return f"{handle}.locator({render_arg(arg)})", None


def strategy_names() -> Dict[str, int]:
    """Strategy name to priority (0 = highest)."""
    return {s.name: i for i, s in enumerate(SELECTOR_STRATEGIES)}
