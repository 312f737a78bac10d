"""Project-level conversion: file classification, output layout and reports.

Public API:
    ConversionEngine  - converts single files or whole Cypress projects
    FileReport        - per-file outcome
    ProjectReport     - aggregate outcome with JSON export
    output_path_for   - where a Cypress file lands in the Playwright layout
"""

from .engine import ConversionEngine, FileKind
from .paths import output_path_for, remap_import_specifier, remap_relative_path
from .report import FileReport, FileStatus, MarkerLocation, ProjectReport, find_markers

__all__ = [
    "ConversionEngine",
    "FileKind",
    "FileReport",
    "FileStatus",
    "MarkerLocation",
    "ProjectReport",
    "find_markers",
    "output_path_for",
    "remap_import_specifier",
    "remap_relative_path",
]
