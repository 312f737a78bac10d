"""Relative import path normalization."""

import logging
import posixpath
from typing import List, Optional

from ..constants import MAX_PARENT_DEPTH

logger = logging.getLogger(__name__)

# Deeper than this after normalization is worth a warning
WARN_PARENT_DEPTH = 3


def is_relative(source: str) -> bool:
    return source.startswith("./") or source.startswith("../") or source in (".", "..")


def is_external(source: str) -> bool:
    """Bare specifiers, URLs and node_modules paths are never rewritten."""
    return not is_relative(source) or "node_modules/" in source


def parent_depth(source: str) -> int:
    """Number of leading `../` segments."""
    depth = 0
    for segment in source.split("/"):
        if segment == "..":
            depth += 1
        elif segment != ".":
            break
    return depth


def _segments(path: str) -> List[str]:
    return [s for s in path.split("/") if s not in ("", ".")]


def normalize_relative_path(source: str, file_path: str, max_depth: int = MAX_PARENT_DEPTH) -> str:
    """Recompute a deep relative import from the importing file's location.

    Only paths with more than `max_depth` leading parent traversals are
    touched; the result is the shortest equivalent relative path. Works on
    path segments alone, so the result never depends on the working directory.
    """
    if is_external(source) or parent_depth(source) <= max_depth:
        return source

    file_dir = posixpath.normpath(posixpath.dirname(file_path.replace("\\", "/")) or ".")
    resolved = posixpath.normpath(posixpath.join(file_dir, source))
    start, target = _segments(file_dir), _segments(resolved)

    common = 0
    while common < min(len(start), len(target)) and start[common] == target[common]:
        common += 1
    if ".." in start[common:]:
        # The importer itself sits above the project root
        return source

    relative = "/".join([".."] * (len(start) - common) + target[common:]) or "."
    if not relative.startswith("."):
        relative = f"./{relative}"
    if relative != source:
        logger.debug(f"Normalized import {source!r} -> {relative!r} in {file_path}")
    return relative


def deep_path_warning(source: str) -> Optional[str]:
    if is_relative(source) and parent_depth(source) > WARN_PARENT_DEPTH:
        return f"import '{source}' climbs {parent_depth(source)} directories; consider a path alias"
    return None
