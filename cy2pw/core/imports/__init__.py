"""Import analysis, deduplication and ordering.

Public API:
    analyze_imports(text, file_path) → ImportAnalysis
    organize_imports(analysis) → str
    merge_imports(records) → ImportRecord
    rewrite_imports(text, analysis) → str
"""

from .analyzer import ImportAnalyzer, analyze_imports, classify_source, removal_reason
from .models import DuplicateGroup, ImportAnalysis, ImportCategory, ImportRecord, RemovedImport
from .organizer import merge_imports, organize_imports, rewrite_imports, strip_imports
from .paths import normalize_relative_path, parent_depth

__all__ = [
    "ImportAnalyzer",
    "analyze_imports",
    "classify_source",
    "removal_reason",
    "organize_imports",
    "merge_imports",
    "rewrite_imports",
    "strip_imports",
    "normalize_relative_path",
    "parent_depth",
    "DuplicateGroup",
    "ImportAnalysis",
    "ImportCategory",
    "ImportRecord",
    "RemovedImport",
]
