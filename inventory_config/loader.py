"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads the store defaults YAML file and parses it into the frozen
``DefaultSettings`` dataclass.

Architecture position
---------------------
**Config layer**.  Has no dependency on the kernel; the kernel's settings
selector calls ``get_default_settings()`` when no Setting row exists.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys in parsed dict  -> ``KeyError`` propagates.
* Non-numeric values  -> ``decimal.InvalidOperation`` / ``ValueError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml


@dataclass(frozen=True)
class DefaultSettings:
    """Shipped defaults for the store-wide settings record."""

    default_belt_markup_rupees: Decimal
    default_low_stock_threshold: int


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_default_settings(data: dict[str, Any]) -> DefaultSettings:
    """
    Parse the defaults document.

    Raises:
        KeyError: if a required section or key is missing.
        ValueError: if the threshold is not positive or the markup negative.
    """
    settings = data["settings"]

    markup = Decimal(str(settings["default_belt_markup_rupees"]))
    threshold = int(settings["default_low_stock_threshold"])
    if markup < 0:
        raise ValueError(f"default_belt_markup_rupees must not be negative: {markup}")
    if threshold <= 0:
        raise ValueError(f"default_low_stock_threshold must be positive: {threshold}")

    return DefaultSettings(
        default_belt_markup_rupees=markup,
        default_low_stock_threshold=threshold,
    )
