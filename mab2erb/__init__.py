"""
Markaby to ERB template converter.
"""

from .config import ConvertOptions, Directives, Vocabulary, load_config
from .converter import convert_file, convert_source
from .engine import convert
from .errors import ConfigError, ConversionError, Mab2ErbError, ParseError, ValidationError
from .version import tool_version

__all__ = [
    "convert",
    "convert_source",
    "convert_file",
    "ConvertOptions",
    "Directives",
    "Vocabulary",
    "load_config",
    "Mab2ErbError",
    "ParseError",
    "ConversionError",
    "ValidationError",
    "ConfigError",
    "tool_version",
]
