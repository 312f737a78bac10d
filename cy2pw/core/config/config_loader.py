"""Configuration loading.

Reads config/cy2pw.yaml (or the directory named by CY2PW_CONFIG_DIR),
then applies CY2PW_* environment overrides. A .env file in the working
directory is loaded first so overrides can live there.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

CONFIG_FILE_NAME = "cy2pw.yaml"

# Environment variable → (section, key)
ENV_OVERRIDES: Dict[str, Tuple[str, str]] = {
    "CY2PW_LOG_LEVEL": ("logging", "level"),
    "CY2PW_CONVERT_ASSERTIONS": ("structure", "convert_assertions"),
    "CY2PW_PRESERVE_HOOKS": ("structure", "preserve_hooks"),
    "CY2PW_INJECT_PAGE": ("page_objects", "inject_page"),
    "CY2PW_PRESERVE_MOCKING": ("page_objects", "preserve_mocking"),
    "CY2PW_MAX_PARENT_DEPTH": ("imports", "max_parent_depth"),
    "CY2PW_REPORT_FILE": ("output", "report_file"),
}

_config_cache: Dict[str, Dict[str, Any]] = {}


def get_config_path() -> Path:
    """Directory holding cy2pw.yaml."""
    override = os.getenv("CY2PW_CONFIG_DIR")
    if override:
        return Path(override)
    # <repo>/cy2pw/core/config/config_loader.py → <repo>/config
    return Path(__file__).resolve().parent.parent.parent.parent / "config"


def load_unified_config(config_file: Optional[str] = None) -> Dict[str, Any]:
    """Load the YAML config with environment overrides applied.

    Args:
        config_file: Explicit YAML path; defaults to get_config_path()/cy2pw.yaml

    Returns:
        Nested dict of settings sections (empty if no file exists)
    """
    path = Path(config_file) if config_file else get_config_path() / CONFIG_FILE_NAME
    key = str(path)
    if key in _config_cache:
        return _config_cache[key]

    config: Dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"{path} must contain a mapping at the top level")
        config = loaded
        logger.debug(f"Loaded config from {path}")
    elif config_file:
        raise FileNotFoundError(f"Config file not found: {path}")
    else:
        logger.debug(f"{path} not found, using defaults")

    for env_name, (section, option) in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value is not None:
            config.setdefault(section, {})
            if config[section] is None:
                config[section] = {}
            config[section][option] = value
            logger.debug(f"{env_name} overrides {section}.{option}")

    _config_cache[key] = config
    return config


def reload_configs() -> None:
    """Drop cached config so the next load re-reads files and environment."""
    _config_cache.clear()
