import json
import os
from pathlib import Path
from typing import Any, Union

import yaml


def from_json_or_yaml(filepath: Union[str, os.PathLike]) -> Any:
    """
    Load a JSON or YAML document, choosing the parser by file extension.

    Files ending in .yaml/.yml are read with PyYAML, anything else is
    treated as JSON.

    Args:
    filepath (str or PathLike): The path of the file.

    Returns:
    The parsed document.

    Raises:
    FileNotFoundError: If the file does not exist.
    ValueError: If the document cannot be parsed.
    """
    path = Path(filepath)
    if not path.is_file():
        raise FileNotFoundError(f"No such file: {path}")

    with open(path, "r", encoding="utf-8") as f:
        if path.suffix.lower() in (".yaml", ".yml"):
            try:
                return yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e
