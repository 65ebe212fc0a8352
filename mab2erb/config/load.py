"""
Loader for mab2erb.yaml.

The file is optional. It may override conversion options, extend or trim
the vocabulary and list exclude patterns for the batch driver.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ..errors import ConfigError
from .model import ConvertOptions, DEFAULT_VOCABULARY, VOCABULARY_CATEGORIES, Vocabulary

logger = logging.getLogger(__name__)

_yaml = YAML(typ="safe")

CONFIG_FILE_NAME = "mab2erb.yaml"

_OPTION_KEYS = ("validate_output", "default_to_instance_scope", "preserve_comments")
_TOP_LEVEL_KEYS = ("options", "vocabulary", "exclude")


@dataclass
class ProjectConfig:
    """Contents of mab2erb.yaml after validation."""
    options: ConvertOptions = field(default_factory=ConvertOptions)
    exclude: List[str] = field(default_factory=list)
    path: Optional[Path] = None


def _read_yaml_map(path: Path) -> dict:
    """Reads a YAML file that must hold a mapping (an empty file is an empty mapping)."""
    try:
        raw = _yaml.load(path.read_text(encoding="utf-8")) or {}
    except YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"YAML must be a mapping: {path}")
    return raw


def _check_keys(raw: Dict[str, Any], allowed: tuple, where: str) -> None:
    unknown = sorted(set(raw) - set(allowed))
    if unknown:
        raise ConfigError(f"Unknown keys in {where}: {', '.join(map(str, unknown))}")


def _name_list(value: Any, where: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{where} must be a list of names")
    return list(value)


def _parse_vocabulary(raw: Any, base: Vocabulary) -> Vocabulary:
    if raw is None:
        return base
    if not isinstance(raw, dict):
        raise ConfigError("'vocabulary' must be a mapping")
    _check_keys(raw, VOCABULARY_CATEGORIES, "vocabulary")

    vocab = base
    for category, spec in raw.items():
        where = f"vocabulary.{category}"
        # A bare list means "add these names".
        if isinstance(spec, list):
            spec = {"add": spec}
        if not isinstance(spec, dict):
            raise ConfigError(f"{where} must be a list or a mapping with add/remove")
        _check_keys(spec, ("add", "remove"), where)
        vocab = vocab.extended(
            category,
            add=_name_list(spec.get("add"), f"{where}.add"),
            remove=_name_list(spec.get("remove"), f"{where}.remove"),
        )
    return vocab


def _parse_options(raw: Any, base: ConvertOptions) -> ConvertOptions:
    if raw is None:
        return base
    if not isinstance(raw, dict):
        raise ConfigError("'options' must be a mapping")
    _check_keys(raw, _OPTION_KEYS, "options")
    values: Dict[str, bool] = {}
    for key, value in raw.items():
        if not isinstance(value, bool):
            raise ConfigError(f"options.{key} must be true or false")
        values[key] = value
    return replace(base, **values)


def parse_config(raw: Dict[str, Any], *, path: Optional[Path] = None) -> ProjectConfig:
    """
    Validates a raw configuration mapping.

    Args:
        raw: Parsed YAML document
        path: Source file, for messages

    Returns:
        ProjectConfig with options and vocabulary applied over the defaults

    Raises:
        ConfigError: Unknown keys or values of the wrong type
    """
    _check_keys(raw, _TOP_LEVEL_KEYS, str(path or CONFIG_FILE_NAME))
    vocabulary = _parse_vocabulary(raw.get("vocabulary"), DEFAULT_VOCABULARY)
    options = _parse_options(raw.get("options"), ConvertOptions(vocabulary=vocabulary))
    exclude = _name_list(raw.get("exclude"), "exclude")
    return ProjectConfig(options=options, exclude=exclude, path=path)


def find_config(start: Path) -> Optional[Path]:
    """mab2erb.yaml in the given directory, if present."""
    candidate = start / CONFIG_FILE_NAME
    return candidate if candidate.is_file() else None


def load_config(path: Optional[Path] = None, *, cwd: Optional[Path] = None) -> ProjectConfig:
    """
    Loads the project configuration.

    An explicit path must exist; otherwise mab2erb.yaml in the working
    directory is used when present, and the defaults when it is not.
    """
    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        resolved: Optional[Path] = path
    else:
        resolved = find_config(cwd or Path.cwd())

    if resolved is None:
        return ProjectConfig()

    logger.debug("Loading configuration from %s", resolved)
    return parse_config(_read_yaml_map(resolved), path=resolved)


__all__ = ["ProjectConfig", "CONFIG_FILE_NAME", "parse_config", "find_config", "load_config"]
