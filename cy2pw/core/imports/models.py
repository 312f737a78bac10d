"""Import analysis data models."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Tuple

from ..exceptions import ConversionWarning


class ImportCategory(str, Enum):
    BUILTIN = "builtin"
    EXTERNAL = "external"
    RELATIVE = "relative"
    SOURCE_FRAMEWORK = "source_framework"
    TARGET_FRAMEWORK = "target_framework"


@dataclass(frozen=True)
class ImportRecord:
    """One import (or triple-slash reference) statement.

    `named_bindings` keeps each specifier's source form (`a`, `a as b`,
    `type T`). Records with `parsed=False` could not be interpreted and are
    carried through verbatim in `raw`.
    """

    source: str
    default_binding: Optional[str] = None
    namespace_binding: Optional[str] = None
    named_bindings: Tuple[str, ...] = ()
    category: ImportCategory = ImportCategory.EXTERNAL
    type_only: bool = False
    is_reference: bool = False
    parsed: bool = True
    raw: str = ""
    line: int = 0
    start_byte: int = 0
    end_byte: int = 0

    @property
    def is_side_effect(self) -> bool:
        return self.parsed and not (self.default_binding or self.namespace_binding or self.named_bindings)

    def with_source(self, source: str) -> "ImportRecord":
        return replace(self, source=source)


@dataclass(frozen=True)
class DuplicateGroup:
    source: str
    records: Tuple[ImportRecord, ...]


@dataclass(frozen=True)
class RemovedImport:
    record: ImportRecord
    reason: str


@dataclass
class ImportAnalysis:
    imports: List[ImportRecord] = field(default_factory=list)
    duplicate_groups: List[DuplicateGroup] = field(default_factory=list)
    source_framework_only: List[RemovedImport] = field(default_factory=list)
    legitimate: List[ImportRecord] = field(default_factory=list)
    unparsed: List[ImportRecord] = field(default_factory=list)
    warnings: List[ConversionWarning] = field(default_factory=list)
    file_path: str = ""
