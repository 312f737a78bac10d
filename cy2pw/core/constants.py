"""Shared constants for the conversion core."""

# Prefix of every manual-conversion marker written into generated code
MARKER_PREFIX = "// TODO(cy2pw):"

# Reserved identifier that roots every source command (cy.visit, cy.get, ...)
COMMAND_NAMESPACE = "cy"

TARGET_MODULE = "@playwright/test"
TARGET_IMPORT = "import { test, expect } from '@playwright/test';"

# Relative import paths with more leading '../' segments than this get normalized
MAX_PARENT_DEPTH = 2

DEFAULT_PAGE_HANDLE = "page"
PAGE_OBJECT_PAGE_HANDLE = "this.page"


def marker(reason: str) -> str:
    """Render a manual-conversion marker line."""
    return f"{MARKER_PREFIX} {reason}"
