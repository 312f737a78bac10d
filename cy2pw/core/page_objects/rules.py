"""Ordered text rewrite rules applied to preserved method bodies.

Rules run once, in priority order. Each pattern stops matching once the
call it targets is commented, so applying the table twice changes nothing.
"""

import re
from dataclasses import dataclass
from typing import List, Sequence, Tuple


@dataclass(frozen=True)
class RewriteRule:
    name: str
    pattern: re.Pattern
    replacement: str
    priority: int


# Debug helpers that only exist in the Cypress runner. A call at the start of
# a line is commented to the end of the line; one that follows another
# statement on the same line is wrapped in a block comment.
_DEBUG_CALL = r"cy\s*\.\s*(?:log|debug|pause)\s*\((?:[^()\n]|\([^()\n]*\))*\)[ \t]*;?"

DEBUG_CALL_RULES: List[RewriteRule] = sorted(
    [
        RewriteRule("cy-log", re.compile(r"^([ \t]*)(cy\s*\.\s*log\s*\(.*)$", re.MULTILINE), r"\1// \2", 10),
        RewriteRule("cy-debug", re.compile(r"^([ \t]*)(cy\s*\.\s*debug\s*\(.*)$", re.MULTILINE), r"\1// \2", 20),
        RewriteRule("cy-pause", re.compile(r"^([ \t]*)(cy\s*\.\s*pause\s*\(.*)$", re.MULTILINE), r"\1// \2", 30),
        RewriteRule("debugger", re.compile(r"^([ \t]*)(debugger\b.*)$", re.MULTILINE), r"\1// \2", 40),
        RewriteRule("inline-debug-call", re.compile(r"(;[ \t]*)(" + _DEBUG_CALL + ")"), r"\1/* \2 */", 50),
        RewriteRule("inline-debugger", re.compile(r"(;[ \t]*)(debugger\b[ \t]*;?)"), r"\1/* \2 */", 60),
    ],
    key=lambda rule: rule.priority,
)


def apply_rules(text: str, rules: Sequence[RewriteRule] = DEBUG_CALL_RULES) -> Tuple[str, List[str]]:
    """Apply rules in priority order.

    Returns:
        (rewritten text, names of the rules that changed something)
    """
    applied = []
    for rule in rules:
        text, count = rule.pattern.subn(rule.replacement, text)
        if count:
            applied.append(rule.name)
    return text, applied
