"""Import deduplication and ordering.

organize_imports() is idempotent: feeding its output back through
ImportAnalyzer and organize_imports() reproduces it exactly.
"""

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Sequence

from .models import ImportAnalysis, ImportCategory, ImportRecord

logger = logging.getLogger(__name__)

# Output group of each category; the target framework sorts with external packages
CATEGORY_GROUPS: Dict[ImportCategory, int] = {
    ImportCategory.BUILTIN: 0,
    ImportCategory.EXTERNAL: 1,
    ImportCategory.TARGET_FRAMEWORK: 1,
    ImportCategory.SOURCE_FRAMEWORK: 1,
    ImportCategory.RELATIVE: 2,
}


def merge_imports(records: Sequence[ImportRecord]) -> ImportRecord:
    """Merge import records that share one module source.

    Named bindings are a set union: names already present in the first
    record keep their order, names contributed by later records follow in
    alphabetical order. The first default and namespace bindings seen win.
    """
    if not records:
        raise ValueError("merge_imports() needs at least one record")
    first = records[0]
    names = list(first.named_bindings)
    seen = set(names)
    added = sorted({name for r in records[1:] for name in r.named_bindings if name not in seen})
    names.extend(added)

    default = next((r.default_binding for r in records if r.default_binding), None)
    namespace = next((r.namespace_binding for r in records if r.namespace_binding), None)
    if len(records) > 1:
        dropped = {r.default_binding for r in records if r.default_binding} - {default}
        if dropped:
            logger.warning(f"Dropping conflicting default import(s) {sorted(dropped)} from '{first.source}'")

    return ImportRecord(
        source=first.source,
        default_binding=default,
        namespace_binding=namespace,
        named_bindings=tuple(names),
        category=first.category,
        type_only=all(r.type_only for r in records),
        line=first.line,
    )


def render_import(record: ImportRecord) -> List[str]:
    """Render one merged record; a namespace binding gets its own statement."""
    if not record.parsed or record.is_reference:
        return [record.raw]
    keyword = "import type" if record.type_only else "import"
    quoted = f"'{record.source}'"
    if record.is_side_effect:
        return [f"import {quoted};"]

    lines = []
    clause = []
    if record.default_binding:
        clause.append(record.default_binding)
    if record.named_bindings:
        clause.append("{ " + ", ".join(record.named_bindings) + " }")
    if clause:
        lines.append(f"{keyword} {', '.join(clause)} from {quoted};")
    if record.namespace_binding:
        lines.append(f"{keyword} * as {record.namespace_binding} from {quoted};")
    return lines


def _merged(records: Iterable[ImportRecord]) -> List[ImportRecord]:
    by_key: Dict[tuple, List[ImportRecord]] = OrderedDict()
    for record in records:
        by_key.setdefault((record.source, record.type_only), []).append(record)
    return [merge_imports(group) for group in by_key.values()]


def organize_imports(analysis: ImportAnalysis) -> str:
    """Emit the deduplicated import block.

    Builtin, external and relative groups are separated by one blank line
    and sorted by module source; unparsed statements follow unchanged.
    """
    parsed = [r for r in analysis.legitimate if r.parsed and not r.is_reference]
    references = [r for r in analysis.legitimate if r.is_reference]
    unparsed = [r for r in analysis.legitimate if not r.parsed]

    groups: Dict[int, List[ImportRecord]] = {0: [], 1: [], 2: []}
    for record in _merged(parsed):
        groups[CATEGORY_GROUPS[record.category]].append(record)

    blocks: List[List[str]] = []
    if references:
        blocks.append([r.raw for r in references])
    for index in sorted(groups):
        ordered = sorted(groups[index], key=lambda r: (r.source, r.type_only))
        lines = [line for record in ordered for line in render_import(record)]
        if lines:
            blocks.append(lines)
    if unparsed:
        blocks.append([r.raw for r in unparsed])

    return "\n\n".join("\n".join(block) for block in blocks)


def strip_imports(text: str, analysis: ImportAnalysis) -> str:
    """Remove every analyzed import statement from the source text."""
    source = text.encode("utf-8")
    spans = sorted((r.start_byte, r.end_byte) for r in analysis.imports if r.end_byte > r.start_byte)
    pieces = []
    position = 0
    for start, end in spans:
        pieces.append(source[position:start])
        position = end
        # Swallow the line break that ended the statement
        if source[position:position + 1] == b"\n":
            position += 1
    pieces.append(source[position:])
    return b"".join(pieces).decode("utf-8").lstrip("\n")


def rewrite_imports(text: str, analysis: ImportAnalysis) -> str:
    """Replace the file's imports with the organized block."""
    block = organize_imports(analysis)
    body = strip_imports(text, analysis)
    if not block:
        return body
    return f"{block}\n\n{body}" if body else f"{block}\n"
