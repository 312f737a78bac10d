"""Test structure conversion (suite/case/hook tree to Playwright Test)."""

from .converter import (
    HOOK_TARGETS,
    ConversionOptions,
    ConvertedStructure,
    TestStructureConverter,
    convert_test_structure,
)

__all__ = [
    "HOOK_TARGETS",
    "ConversionOptions",
    "ConvertedStructure",
    "TestStructureConverter",
    "convert_test_structure",
]
