"""Configuration loading utilities.

Reference tables live as YAML next to this module and are read once at
import time by ``src.calculators.simples_data``.
"""

from pathlib import Path
from typing import Any

import yaml

CONFIG_DIR = Path(__file__).parent


def load_yaml_config(filename: str) -> dict[str, Any]:
    """Load a YAML mapping from the config/ directory.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the document is empty or not a mapping.
    """
    config_path = CONFIG_DIR / filename
    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{filename}: expected a mapping at the top level")
    return data
