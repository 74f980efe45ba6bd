"""
inventory_config -- shipped configuration for the inventory kernel.

Responsibility:
    Provides ``get_default_settings()``, the single way to read the store
    defaults (belt markup and low-stock threshold) from
    ``defaults.yaml``.  The defaults apply only while no Setting row exists;
    once an administrator saves settings, the row wins.

Failure modes:
    - ``FileNotFoundError`` -- ``config_path`` does not exist.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``KeyError`` -- a required key is missing.
"""

from __future__ import annotations

import logging
from pathlib import Path

from inventory_config.loader import DefaultSettings, load_yaml_file, parse_default_settings

_logger = logging.getLogger("inventory_kernel.config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def get_default_settings(config_path: Path | str | None = None) -> DefaultSettings:
    """
    Load the default settings.

    Args:
        config_path: Alternate YAML file (tests, per-store overrides).
            Defaults to the packaged ``defaults.yaml``.

    The file is read on every call; callers fetch settings per request.
    """
    path = Path(config_path) if config_path is not None else DEFAULTS_PATH
    defaults = parse_default_settings(load_yaml_file(path))
    _logger.debug(
        "default_settings_loaded",
        extra={
            "config_path": str(path),
            "default_belt_markup_rupees": str(defaults.default_belt_markup_rupees),
            "default_low_stock_threshold": defaults.default_low_stock_threshold,
        },
    )
    return defaults


__all__ = ["DefaultSettings", "DEFAULTS_PATH", "get_default_settings"]
