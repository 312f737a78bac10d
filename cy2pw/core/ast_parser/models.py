"""Source parser data models.

Immutable containers for the suite/case/hook/command tree extracted
from a Cypress spec file. No parsing logic lives here.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class ArgumentKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"
    IDENTIFIER = "identifier"
    RAW = "raw"


@dataclass(frozen=True)
class Argument:
    """One call argument.

    `value` holds the decoded Python value for literals (str, int/float, bool,
    None) and the source text otherwise. `text` is always the original
    source text of the argument.
    """

    kind: ArgumentKind
    value: object
    text: str
    # (key, value) pairs of an object literal whose keys are all static
    properties: Optional[Tuple[Tuple[str, "Argument"], ...]] = None

    @property
    def is_literal(self) -> bool:
        return self.kind in (ArgumentKind.STRING, ArgumentKind.NUMBER, ArgumentKind.BOOLEAN, ArgumentKind.NULL)

    @property
    def is_string(self) -> bool:
        return self.kind == ArgumentKind.STRING


@dataclass(frozen=True)
class ChainedCall:
    method: str
    args: Tuple[Argument, ...] = ()
    line: int = 0
    # Set when the call received a callback (`.within(() => {...})`)
    callback_commands: Tuple["CommandInvocation", ...] = ()
    callback_params: Tuple[str, ...] = ()


@dataclass(frozen=True)
class BlockSection:
    """One body of a compound statement holding command chains.

    `header` is the statement text leading up to and including the opening
    brace; for every section after the first it starts with the closing
    brace of the previous body (`} else {`).
    """

    header: str
    commands: Tuple["CommandInvocation", ...] = ()
    # The body belongs to a function its caller does not await
    callback: bool = False


@dataclass(frozen=True)
class CommandInvocation:
    """A `cy.<command>(...)` call plus the fluent calls chained onto it."""

    command: str
    args: Tuple[Argument, ...] = ()
    chained_calls: Tuple[ChainedCall, ...] = ()
    line: int = 0
    # Source text of a statement that is not a command chain; passed through
    raw: Optional[str] = None
    # Raw statement with a chain somewhere the converter cannot rewrite it
    embedded: bool = False
    # if/else, loops and callbacks: bodies in source order, then the closing text
    sections: Tuple[BlockSection, ...] = ()
    tail: str = ""
    # `const name` when the chain initializes a declaration
    binding: Optional[str] = None

    @property
    def is_raw(self) -> bool:
        return self.raw is not None

    @property
    def is_compound(self) -> bool:
        return bool(self.sections)


class HookKind(str, Enum):
    BEFORE_ALL = "before"
    BEFORE_EACH = "beforeEach"
    AFTER_ALL = "after"
    AFTER_EACH = "afterEach"


@dataclass(frozen=True)
class HookNode:
    kind: str  # HookKind value; kept as str so unknown kinds can be represented
    commands: Tuple[CommandInvocation, ...] = ()
    line: int = 0


@dataclass(frozen=True)
class CaseNode:
    name: str
    commands: Tuple[CommandInvocation, ...] = ()
    modifier: Optional[str] = None  # "only" | "skip"
    pending: bool = False
    line: int = 0


@dataclass(frozen=True)
class SuiteNode:
    name: str
    suites: Tuple["SuiteNode", ...] = ()
    cases: Tuple[CaseNode, ...] = ()
    hooks: Tuple[HookNode, ...] = ()
    modifier: Optional[str] = None
    line: int = 0

    @property
    def is_anonymous(self) -> bool:
        """True for the implicit root holding top-level cases and hooks."""
        return self.name == ""

    def case_count(self) -> int:
        return len(self.cases) + sum(s.case_count() for s in self.suites)


@dataclass(frozen=True)
class CustomCommand:
    """A `Cypress.Commands.add|overwrite(name, fn)` registration."""

    name: str
    kind: str  # "add" | "overwrite"
    parameters: Tuple[str, ...] = ()
    body: str = ""
    line: int = 0
    commands: Tuple[CommandInvocation, ...] = ()
