"""Conversion error taxonomy.

Only SourceSyntaxError escapes the core; every other error is caught where
it happens and recorded as a ConversionWarning so the caller always gets
best-effort output.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ConversionError(Exception):
    """Base class for recoverable conversion failures."""


class SourceSyntaxError(SyntaxError):
    """Source text could not be parsed. Fatal for that one file."""

    def __init__(self, message: str, file_path: str = "", line: int = 0, column: int = 0):
        super().__init__(message, (file_path, line, column, None))
        self.file_path = file_path
        self.line = line
        self.column = column

    def __str__(self) -> str:
        location = f"{self.file_path or '<source>'}:{self.line}:{self.column}"
        return f"{location}: {self.msg}"


class UnmappedConstruct(ConversionError):
    """A command, hook, assertion or chained call with no table entry."""

    def __init__(self, construct: str, name: str):
        super().__init__(f"unmapped {construct} '{name}'")
        self.construct = construct
        self.name = name


class MethodConversionFailure(ConversionError):
    """Rewriting one page-object method body failed."""

    def __init__(self, method_name: str, reason: str):
        super().__init__(f"method '{method_name}': {reason}")
        self.method_name = method_name
        self.reason = reason


class ImportParseFailure(ConversionError):
    """An import statement could not be interpreted."""


class WarningCategory(str, Enum):
    UNMAPPED_COMMAND = "unmapped_command"
    UNMAPPED_CHAIN = "unmapped_chain"
    UNMAPPED_ASSERTION = "unmapped_assertion"
    UNMAPPED_HOOK = "unmapped_hook"
    MANUAL_REVIEW = "manual_review"
    METHOD_FAILURE = "method_failure"
    IMPORT = "import"
    NOTE = "note"


@dataclass(frozen=True)
class ConversionWarning:
    """Structured, non-fatal diagnostic attached to a conversion result."""

    category: WarningCategory
    message: str
    line: Optional[int] = None

    def __str__(self) -> str:
        prefix = f"line {self.line}: " if self.line else ""
        return f"{prefix}{self.message}"
