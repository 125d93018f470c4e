"""Detect and parse specification file formats."""

import json
from pathlib import PurePosixPath

import yaml

JSON_SUFFIXES = (".json",)
YAML_SUFFIXES = (".yaml", ".yml")
SPEC_SUFFIXES = JSON_SUFFIXES + YAML_SUFFIXES


def is_spec_file(name: str) -> bool:
    return name.lower().endswith(SPEC_SUFFIXES)


def detect_format(name: str) -> str:
    """Detect the format of a specification file from its name.

    Returns: 'json' or 'yaml'.
    """
    suffix = PurePosixPath(name).suffix.lower()
    if suffix in YAML_SUFFIXES:
        return "yaml"
    return "json"


def parse_spec_text(name: str, text: str) -> dict:
    """Parse specification text as JSON or YAML depending on the file name.

    Raises ValueError when the text cannot be parsed or is not a mapping.
    """
    if detect_format(name) == "yaml":
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(str(e)) from e
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(str(e)) from e

    if not isinstance(data, dict):
        raise ValueError(f"expected an object at the top level, got {type(data).__name__}")
    return data
