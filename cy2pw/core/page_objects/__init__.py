"""Page object analysis and transformation.

Public API:
    analyze_page_object(text, file_path) → PageObjectAnalysis
    transform_page_object(analysis, options) → TransformedPageObject
    classify_method(name, body, siblings) → MethodKind
"""

from .analyzer import PageObjectAnalyzer, analyze_page_object
from .classifiers import CLASSIFIERS, classify_method
from .models import (
    ExportKind,
    MethodDescriptor,
    MethodKind,
    MethodOutcome,
    PageObjectAnalysis,
    PropertyDescriptor,
    TransformedPageObject,
    TransformOptions,
)
from .rules import DEBUG_CALL_RULES, RewriteRule, apply_rules
from .transformer import PageObjectTransformer, transform_page_object

__all__ = [
    "PageObjectAnalyzer",
    "PageObjectTransformer",
    "analyze_page_object",
    "transform_page_object",
    "classify_method",
    "CLASSIFIERS",
    "DEBUG_CALL_RULES",
    "RewriteRule",
    "apply_rules",
    "ExportKind",
    "MethodDescriptor",
    "MethodKind",
    "MethodOutcome",
    "PageObjectAnalysis",
    "PropertyDescriptor",
    "TransformedPageObject",
    "TransformOptions",
]
