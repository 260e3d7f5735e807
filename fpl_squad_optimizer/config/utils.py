"""
Configuration Utilities

Helpers for exporting, templating and comparing optimizer configuration.
"""

import json
from pathlib import Path
from typing import Any, Dict

from loguru import logger

from .settings import SquadOptimizerConfig


def export_config_to_json(config: SquadOptimizerConfig, output_path: Path) -> None:
    """
    Export configuration to JSON file

    Args:
        config: Configuration to export
        output_path: Path where to save the JSON file
    """
    with open(output_path, "w") as f:
        json.dump(config.model_dump(mode="json"), f, indent=2)

    logger.info(f"✅ Configuration exported to {output_path}")


def create_config_template() -> str:
    """JSON template containing every option at its default."""
    return SquadOptimizerConfig().model_dump_json(indent=2)


def compare_configs(
    config1: SquadOptimizerConfig, config2: SquadOptimizerConfig
) -> Dict[str, Any]:
    """
    Compare two configurations and return differences

    Returns:
        Mapping of dotted field path to the two differing values
    """
    differences = {}

    def compare_dicts(d1, d2, path=""):
        for key in sorted(set(d1) | set(d2)):
            current_path = f"{path}.{key}" if path else key
            if key not in d1:
                differences[current_path] = {"config1": "<missing>", "config2": d2[key]}
            elif key not in d2:
                differences[current_path] = {"config1": d1[key], "config2": "<missing>"}
            elif isinstance(d1[key], dict) and isinstance(d2[key], dict):
                compare_dicts(d1[key], d2[key], current_path)
            elif d1[key] != d2[key]:
                differences[current_path] = {"config1": d1[key], "config2": d2[key]}

    compare_dicts(config1.model_dump(mode="json"), config2.model_dump(mode="json"))
    return differences
