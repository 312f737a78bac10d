"""Command/selector mapping: Cypress commands to Playwright statements.

Public API:
    map_command(invocation, page_handle, convert_assertions) → MappedCommand
    CommandMapper(page_handle, convert_assertions, custom_commands)
    optimize_selector(selector, handle) → (expression, note, strategy)
"""

from ..ast_parser.models import CommandInvocation
from .commands import COMMAND_KINDS, MANUAL_COMMANDS, CommandKind, CommandMapper
from .models import Alias, MappedCommand, SubjectKind
from .selectors import SELECTOR_STRATEGIES, TEST_ID_ATTRIBUTES, locator_for, optimize_selector

__all__ = [
    "map_command",
    "CommandMapper",
    "CommandKind",
    "COMMAND_KINDS",
    "MANUAL_COMMANDS",
    "MappedCommand",
    "Alias",
    "SubjectKind",
    "SELECTOR_STRATEGIES",
    "TEST_ID_ATTRIBUTES",
    "locator_for",
    "optimize_selector",
]


def map_command(invocation: CommandInvocation, page_handle: str = "page",
                convert_assertions: bool = True) -> MappedCommand:
    """Map a single invocation with a throwaway mapper (no alias memory)."""
    return CommandMapper(page_handle=page_handle, convert_assertions=convert_assertions).map(invocation)
