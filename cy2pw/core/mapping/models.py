"""Command mapper result models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class SubjectKind(str, Enum):
    """What the chain currently yields, mirroring the Cypress subject."""

    NONE = "none"
    LOCATOR = "locator"
    URL = "url"
    TITLE = "title"
    VALUE = "value"
    REQUEST = "request"


@dataclass
class MappedCommand:
    """Target statements produced for one command invocation.

    `markers` repeats, in order, every manual-conversion marker that was
    written inline into `statements`. `notes` are advisories for constructs
    that converted but may behave differently.
    """

    statements: List[str] = field(default_factory=list)
    markers: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    imports: List[str] = field(default_factory=list)
    helpers: List[str] = field(default_factory=list)  # custom command functions referenced

    def extend(self, other: "MappedCommand") -> None:
        self.statements.extend(other.statements)
        self.markers.extend(other.markers)
        self.notes.extend(other.notes)
        for name in other.imports:
            if name not in self.imports:
                self.imports.append(name)
        for name in other.helpers:
            if name not in self.helpers:
                self.helpers.append(name)


@dataclass(frozen=True)
class Alias:
    """A `.as(name)` registration remembered across commands in one file."""

    name: str
    kind: SubjectKind
    expression: str = ""
    url_pattern: Optional[str] = None
    method: Optional[str] = None
