"""Conversion reports."""

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..constants import MARKER_PREFIX
from ..exceptions import ConversionWarning, WarningCategory


class FileStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class MarkerLocation:
    line: int
    text: str


@dataclass
class FileReport:
    source_path: str
    output_path: Optional[str] = None
    kind: str = ""
    status: FileStatus = FileStatus.SUCCESS
    warnings: List[ConversionWarning] = field(default_factory=list)
    markers: List[MarkerLocation] = field(default_factory=list)
    error: Optional[str] = None

    def finalize(self) -> "FileReport":
        """Derive status from markers and warnings (unless already failed/skipped)."""
        if self.status in (FileStatus.FAILED, FileStatus.SKIPPED):
            return self
        needs_review = self.markers or any(w.category != WarningCategory.NOTE for w in self.warnings)
        self.status = FileStatus.PARTIAL if needs_review else FileStatus.SUCCESS
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_path": self.source_path,
            "output_path": self.output_path,
            "kind": self.kind,
            "status": self.status.value,
            "warnings": [
                {"category": w.category.value, "message": w.message, "line": w.line}
                for w in self.warnings
            ],
            "markers": [{"line": m.line, "text": m.text} for m in self.markers],
            "error": self.error,
        }


@dataclass
class ProjectReport:
    source_root: str
    output_root: str
    files: List[FileReport] = field(default_factory=list)

    def count(self, status: FileStatus) -> int:
        return sum(1 for f in self.files if f.status == status)

    @property
    def marker_count(self) -> int:
        return sum(len(f.markers) for f in self.files)

    def summary(self) -> Dict[str, int]:
        summary = {status.value: self.count(status) for status in FileStatus}
        summary["files"] = len(self.files)
        summary["markers"] = self.marker_count
        return summary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_root": self.source_root,
            "output_root": self.output_root,
            "summary": self.summary(),
            "files": [f.to_dict() for f in self.files],
        }

    def write_json(self, path: str) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)


def find_markers(code: str) -> List[MarkerLocation]:
    """Locate manual-review markers in generated code (1-based lines)."""
    markers = []
    for number, line in enumerate(code.split("\n"), start=1):
        index = line.find(MARKER_PREFIX)
        if index >= 0:
            markers.append(MarkerLocation(number, line[index:].strip()))
    return markers
