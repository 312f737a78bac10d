"""Conversion settings model.

Values come from config/cy2pw.yaml plus CY2PW_* environment overrides
(see core.config.config_loader); pydantic validates and coerces them.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from .core.ast_parser.utils import DEFAULT_COMMAND_FILES, DEFAULT_TEST_FILE_PATTERNS
from .core.config.config_loader import load_unified_config, reload_configs
from .core.constants import MAX_PARENT_DEPTH


class LoggingSettings(BaseModel):
    level: str = Field("INFO", description="Root log level")


class ParserSettings(BaseModel):
    test_file_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_TEST_FILE_PATTERNS),
        description="Glob patterns of Cypress spec file names",
    )
    custom_command_files: List[str] = Field(
        default_factory=lambda: list(DEFAULT_COMMAND_FILES),
        description="File names scanned for Cypress.Commands registrations",
    )


class StructureSettings(BaseModel):
    convert_assertions: bool = Field(True, description="Translate .should() assertions")
    preserve_hooks: bool = Field(True, description="Emit before/after hooks")


class PageObjectSettings(BaseModel):
    inject_page: bool = Field(True, description="Synthesize a constructor taking the Playwright page")
    preserve_mocking: bool = Field(True, description="Keep mocking methods verbatim")


class ImportSettings(BaseModel):
    max_parent_depth: int = Field(MAX_PARENT_DEPTH, ge=0, description="Leading '../' segments before normalization")
    remove_source_framework: bool = Field(True, description="Drop Cypress/unit-test framework imports")


class OutputSettings(BaseModel):
    rename_spec_suffix: bool = Field(True, description="Rename *.cy.* files to *.spec.*")
    remap_directories: bool = Field(True, description="Move cypress/* folders under tests/")
    report_file: Optional[str] = Field(None, description="Write the JSON conversion report here")


class ConversionSettings(BaseModel):
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    parser: ParserSettings = Field(default_factory=ParserSettings)
    structure: StructureSettings = Field(default_factory=StructureSettings)
    page_objects: PageObjectSettings = Field(default_factory=PageObjectSettings)
    imports: ImportSettings = Field(default_factory=ImportSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)


_settings: Optional[ConversionSettings] = None


def load_settings(config_file: Optional[str] = None) -> ConversionSettings:
    """Build settings from a YAML file (default location if None)."""
    return ConversionSettings.model_validate(load_unified_config(config_file))


def get_settings() -> ConversionSettings:
    """Process-wide settings, loaded once."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reload_settings() -> ConversionSettings:
    global _settings
    reload_configs()
    _settings = None
    return get_settings()
