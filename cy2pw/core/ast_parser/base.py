"""Base interface for language-specific source parsers.

Defines the Strategy pattern base class that all language parsers implement.
Shared parsing logic lives here; only the tree-sitter grammar differs.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import tree_sitter

from ..exceptions import SourceSyntaxError
from .models import CustomCommand, SuiteNode

logger = logging.getLogger(__name__)


class BaseSourceParser(ABC):
    """Abstract base for tree-sitter parsers of Cypress source files.

    Subclasses implement:
    - get_language(): returns language name string
    - get_tree_sitter_language(): returns tree-sitter Language object
    """

    @abstractmethod
    def get_language(self) -> str:
        """Return the language identifier (e.g., 'javascript', 'typescript')."""
        ...

    @abstractmethod
    def get_tree_sitter_language(self) -> tree_sitter.Language:
        """Return the tree-sitter Language object for this language."""
        ...

    def parse_tree(self, source_text: str, file_path: str = "") -> tree_sitter.Tree:
        """Parse text into a tree-sitter tree.

        Raises:
            SourceSyntaxError: If the tree contains an error or missing node
        """
        parser = tree_sitter.Parser(self.get_tree_sitter_language())
        tree = parser.parse(source_text.encode("utf-8"))

        if tree.root_node.has_error:
            bad = _first_error_node(tree.root_node)
            line, column = (bad.start_point[0] + 1, bad.start_point[1] + 1) if bad else (0, 0)
            if bad is not None and bad.is_missing:
                message = f"missing '{bad.type}'"
            else:
                message = "unexpected token"
            logger.debug(f"Syntax error in {file_path or '<source>'} at {line}:{column}")
            raise SourceSyntaxError(message, file_path=file_path, line=line, column=column)

        return tree

    def parse_source(self, source_text: str, file_path: str = "") -> List[SuiteNode]:
        """Parse spec source into its suite trees.

        Args:
            source_text: Source code as string
            file_path: Relative file path (for error messages)

        Returns:
            Top-level SuiteNodes in source order
        """
        from .suite_extractor import extract_suites

        tree = self.parse_tree(source_text, file_path)
        suites = extract_suites(tree.root_node, source_text.encode("utf-8"))
        logger.debug(f"Parsed {len(suites)} top-level suite(s) from {file_path or '<source>'}")
        return suites

    def parse_custom_commands(self, source_text: str, file_path: str = "") -> List[CustomCommand]:
        """Extract Cypress.Commands.add/overwrite registrations."""
        from .custom_commands import extract_custom_commands_from_tree

        tree = self.parse_tree(source_text, file_path)
        return extract_custom_commands_from_tree(tree.root_node, source_text.encode("utf-8"))


def _first_error_node(node: tree_sitter.Node) -> Optional[tree_sitter.Node]:
    """Depth-first search for the first ERROR or MISSING node."""
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing or child.type == "ERROR":
            found = _first_error_node(child)
            if found is not None:
                return found
    return None
