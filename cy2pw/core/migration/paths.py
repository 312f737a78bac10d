"""Output layout for converted files.

Cypress keeps specs under cypress/e2e (or cypress/integration) and support
code next to them; Playwright projects conventionally use tests/. Paths
here are POSIX-style and relative to the project root.
"""

import posixpath
import re
from typing import Dict, Optional

# First directory under cypress/ → target directory
DIRECTORY_MAP: Dict[str, str] = {
    "e2e": "tests",
    "integration": "tests",
    "support": "tests/support",
    "pages": "tests/pages",
    "page-objects": "tests/pages",
    "pageObjects": "tests/pages",
    "fixtures": "tests/fixtures",
}

SOURCE_ROOT_DIR = "cypress"
DEFAULT_TARGET_DIR = "tests"

_SPEC_SUFFIX_RE = re.compile(r"\.cy(\.[cm]?[jt]sx?)$")


def rename_spec(file_name: str) -> str:
    """`login.cy.ts` → `login.spec.ts`; other names are unchanged."""
    return _SPEC_SUFFIX_RE.sub(r".spec\1", file_name)


def remap_relative_path(rel_path: str, remap_directories: bool = True) -> str:
    """Map a project-relative directory path into the Playwright layout."""
    parts = [p for p in rel_path.replace("\\", "/").split("/") if p and p != "."]
    if not remap_directories or not parts:
        return "/".join(parts)

    if parts[0] == SOURCE_ROOT_DIR:
        rest = parts[1:]
        if rest and rest[0] in DIRECTORY_MAP:
            return "/".join([DIRECTORY_MAP[rest[0]]] + rest[1:])
        return "/".join([DEFAULT_TARGET_DIR] + rest)

    # Source root pointed at the cypress folder itself
    if parts[0] in DIRECTORY_MAP:
        return "/".join([DIRECTORY_MAP[parts[0]]] + parts[1:])
    return "/".join(parts)


def output_path_for(rel_path: str, rename_spec_suffix: bool = True, remap_directories: bool = True) -> str:
    """Project-relative output path of a project-relative input file."""
    directory, name = posixpath.split(rel_path.replace("\\", "/"))
    if rename_spec_suffix:
        name = rename_spec(name)
    path = posixpath.join(directory, name) if directory else name
    return remap_relative_path(path, remap_directories)


def remap_import_specifier(specifier: str, importer_rel_path: str,
                           rename_spec_suffix: bool = True, remap_directories: bool = True) -> Optional[str]:
    """Rewrite a relative import so it still resolves after the move.

    Returns None when the specifier is not relative or would leave the
    project root, in which case it must be left alone.
    """
    if not specifier.startswith("."):
        return None
    importer_dir = posixpath.dirname(importer_rel_path.replace("\\", "/"))
    target = posixpath.normpath(posixpath.join(importer_dir, specifier))
    if target == ".." or target.startswith("../"):
        return None

    new_importer = output_path_for(importer_rel_path, rename_spec_suffix, remap_directories)
    new_target = output_path_for(target, rename_spec_suffix, remap_directories)
    result = posixpath.relpath(new_target, posixpath.dirname(new_importer) or ".")
    if not result.startswith("."):
        result = f"./{result}"
    return result
