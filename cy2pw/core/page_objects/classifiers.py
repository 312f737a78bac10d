"""Page object method classification.

Each predicate is pure and independent; CLASSIFIERS fixes their priority
and the first predicate that matches decides the tag.
"""

import re
from typing import Callable, Iterable, List, Tuple

from .models import MethodKind

Predicate = Callable[[str, str, Iterable[str]], bool]

_VISIT_RE = re.compile(r"\bcy\s*\.\s*visit\s*\(")
_INPUT_RE = re.compile(r"\.\s*(?:type|clear|select)\s*\(")
_CLICK_RE = re.compile(r"\.\s*(?:click|dblclick|rightclick|submit)\s*\(")
_SELF_CALL_RE = re.compile(r"\bthis\s*\.\s*([A-Za-z_$][\w$]*)\s*\(")
_MOCK_NAME_RE = re.compile(r"mock|stub|fake", re.IGNORECASE)
_MOCK_BODY_RE = re.compile(
    r"\bcy\s*\.\s*(?:intercept|stub|spy|server|route)\s*\(|\bsinon\b|\bnock\b|MockUtil|WireMock|\bmock\w*\s*\(",
)


def self_calls(body: str) -> List[str]:
    """Names called as `this.<name>(...)`, in first-occurrence order."""
    return list(dict.fromkeys(_SELF_CALL_RE.findall(body)))


def is_visit(name: str, body: str, siblings: Iterable[str]) -> bool:
    return bool(_VISIT_RE.search(body))


def is_input(name: str, body: str, siblings: Iterable[str]) -> bool:
    return bool(_INPUT_RE.search(body))


def is_click(name: str, body: str, siblings: Iterable[str]) -> bool:
    return bool(_CLICK_RE.search(body))


def is_composite(name: str, body: str, siblings: Iterable[str]) -> bool:
    others = set(siblings) - {name}
    return any(called in others for called in self_calls(body))


def is_mocking(name: str, body: str, siblings: Iterable[str]) -> bool:
    return bool(_MOCK_NAME_RE.search(name) or _MOCK_BODY_RE.search(body))


CLASSIFIERS: List[Tuple[MethodKind, Predicate]] = [
    (MethodKind.VISIT, is_visit),
    (MethodKind.INPUT, is_input),
    (MethodKind.CLICK, is_click),
    (MethodKind.COMPOSITE, is_composite),
    (MethodKind.MOCKING, is_mocking),
]


def classify_method(name: str, body: str, siblings: Iterable[str] = ()) -> MethodKind:
    """Tag a method body; first matching predicate wins.

    Args:
        name: method name
        body: method body source
        siblings: names of the other methods on the same class
    """
    siblings = tuple(siblings)
    for kind, predicate in CLASSIFIERS:
        if predicate(name, body, siblings):
            return kind
    return MethodKind.GENERIC
