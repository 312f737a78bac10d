"""Cypress source parser: tree-sitter based suite/case/hook extraction.

Public API:
    parse_source(source, file_path, language) → List[SuiteNode]
    parse_file(path) → List[SuiteNode]
    extract_custom_commands(source, file_path) → List[CustomCommand]
    detect_language(file_path) → str | None
"""

from typing import List, Optional

from .models import (
    Argument,
    ArgumentKind,
    BlockSection,
    CaseNode,
    ChainedCall,
    CommandInvocation,
    CustomCommand,
    HookKind,
    HookNode,
    SuiteNode,
)
from .utils import detect_language, get_parser, is_custom_command_file, is_supported_file, is_test_file, should_skip_directory

__all__ = [
    "parse_source",
    "parse_file",
    "extract_custom_commands",
    "detect_language",
    "get_parser",
    "is_supported_file",
    "is_test_file",
    "is_custom_command_file",
    "should_skip_directory",
    "Argument",
    "ArgumentKind",
    "BlockSection",
    "CaseNode",
    "ChainedCall",
    "CommandInvocation",
    "CustomCommand",
    "HookKind",
    "HookNode",
    "SuiteNode",
]


def parse_source(source_text: str, file_path: str = "spec.cy.js", language: Optional[str] = None) -> List[SuiteNode]:
    """Parse Cypress spec source into suite trees.

    Args:
        source_text: Source code as string
        file_path: File path used for language detection and error messages
        language: Language identifier. If None, detected from file_path.

    Raises:
        SourceSyntaxError: If the source cannot be parsed
    """
    parser = get_parser(language or detect_language(file_path) or "javascript")
    return parser.parse_source(source_text, file_path)


def parse_file(file_path: str) -> List[SuiteNode]:
    with open(file_path, "r", encoding="utf-8", errors="replace") as f:
        return parse_source(f.read(), file_path)


def extract_custom_commands(source_text: str, file_path: str = "commands.js",
                            language: Optional[str] = None) -> List[CustomCommand]:
    """Extract custom command registrations from a support file."""
    parser = get_parser(language or detect_language(file_path) or "javascript")
    return parser.parse_custom_commands(source_text, file_path)
