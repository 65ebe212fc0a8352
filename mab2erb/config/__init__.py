from .model import (
    ConvertOptions,
    Directives,
    Vocabulary,
    DEFAULT_VOCABULARY,
    VOCABULARY_CATEGORIES,
)
from .load import ProjectConfig, CONFIG_FILE_NAME, load_config, parse_config

__all__ = [
    "ConvertOptions",
    "Directives",
    "Vocabulary",
    "DEFAULT_VOCABULARY",
    "VOCABULARY_CATEGORIES",
    "ProjectConfig",
    "CONFIG_FILE_NAME",
    "load_config",
    "parse_config",
]
