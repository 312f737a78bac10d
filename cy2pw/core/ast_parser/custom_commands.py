"""Extraction of `Cypress.Commands.add/overwrite` registrations."""

import logging
from typing import List

import tree_sitter

from .models import CustomCommand
from .suite_extractor import extract_commands
from .utils import call_arguments, callback_body, extract_argument, function_parameters, is_function_node, node_line, node_text

logger = logging.getLogger(__name__)

REGISTRATION_KINDS = frozenset({"add", "overwrite", "addQuery", "overwriteQuery"})


def extract_custom_commands_from_tree(root: tree_sitter.Node, source: bytes) -> List[CustomCommand]:
    commands: List[CustomCommand] = []
    _walk(root, source, commands)
    logger.debug(f"Found {len(commands)} custom command registration(s)")
    return commands


def _walk(node: tree_sitter.Node, source: bytes, out: List[CustomCommand]) -> None:
    if node.type == "call_expression":
        command = _registration(node, source)
        if command is not None:
            out.append(command)
            return
    for child in node.named_children:
        _walk(child, source, out)


def _registration(call: tree_sitter.Node, source: bytes):
    function = call.child_by_field_name("function")
    if function is None or function.type != "member_expression":
        return None
    # Cypress.Commands.<kind>
    owner = function.child_by_field_name("object")
    if owner is None or node_text(owner, source).replace(" ", "") != "Cypress.Commands":
        return None
    kind = node_text(function.child_by_field_name("property"), source)
    if kind not in REGISTRATION_KINDS:
        return None

    args = call_arguments(call)
    if not args:
        return None
    name_arg = extract_argument(args[0], source)
    if not name_arg.is_string:
        logger.warning(f"Skipping custom command with non-literal name at line {node_line(call)}")
        return None

    handler = next((a for a in args[1:] if is_function_node(a)), None)
    parameters: List[str] = []
    body_text = ""
    commands = ()
    if handler is not None:
        parameters = function_parameters(handler, source)
        body = callback_body(handler)
        if body is not None:
            body_text = node_text(body, source)
            if body.type == "statement_block":
                body_text = body_text[1:-1].strip("\n")
            commands = tuple(extract_commands(body, source))

    return CustomCommand(
        name=name_arg.value,
        kind="overwrite" if kind.startswith("overwrite") else "add",
        parameters=tuple(parameters),
        body=body_text,
        line=node_line(call),
        commands=commands,
    )
