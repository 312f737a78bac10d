"""Page object analysis and transformation models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from ..exceptions import ConversionWarning


class MethodKind(str, Enum):
    VISIT = "visit"
    INPUT = "input"
    CLICK = "click"
    COMPOSITE = "composite"
    MOCKING = "mocking"
    GENERIC = "generic"


class ExportKind(str, Enum):
    DEFAULT = "default"
    NAMED = "named"
    INSTANCE = "instance"  # export default new LoginPage()
    NONE = "none"


@dataclass(frozen=True)
class MethodDescriptor:
    name: str
    parameters: Tuple[str, ...]
    body: str  # text between the braces, original indentation
    classification: MethodKind
    is_async: bool = False
    kind: str = "method"  # "method" | "getter" | "setter"
    is_static: bool = False
    return_type: Optional[str] = None  # TypeScript annotation without the colon
    called_methods: Tuple[str, ...] = ()
    returns_element: bool = False  # getter body is `return cy...`
    line: int = 0


@dataclass(frozen=True)
class PropertyDescriptor:
    name: str
    text: str  # full member source, e.g. `url = '/login';`
    value: Optional[str] = None
    is_static: bool = False
    line: int = 0


@dataclass(frozen=True)
class PageObjectAnalysis:
    is_page_object: bool
    class_name: str
    methods: Tuple[MethodDescriptor, ...] = ()
    properties: Tuple[PropertyDescriptor, ...] = ()
    export_kind: ExportKind = ExportKind.NONE
    base_class: Optional[str] = None
    has_constructor: bool = False
    constructor_parameters: Tuple[str, ...] = ()
    constructor_body: str = ""
    header: str = ""  # `export default class LoginPage extends BasePage`
    preamble: str = ""  # file text before the class
    epilogue: str = ""  # file text after the class
    language: str = "javascript"

    @property
    def is_typescript(self) -> bool:
        return self.language in ("typescript", "tsx")

    def method(self, name: str) -> Optional[MethodDescriptor]:
        return next((m for m in self.methods if m.name == name), None)


@dataclass
class MethodOutcome:
    name: str
    classification: MethodKind
    success: bool = True
    notes: List[str] = field(default_factory=list)
    markers: int = 0


@dataclass
class TransformOptions:
    inject_page: bool = True
    preserve_mocking: bool = True
    typescript: Optional[bool] = None  # None: follow the analyzed source language


@dataclass
class TransformedPageObject:
    code: str
    outcomes: List[MethodOutcome] = field(default_factory=list)
    warnings: List[ConversionWarning] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """True only when no method failed to convert."""
        return all(outcome.success for outcome in self.outcomes)
