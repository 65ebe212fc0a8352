"""
Shared test infrastructure for mab2erb.

Modules:
- file_utils: Creating source files and reading results
- cli_utils: Running the command line tool in a subprocess
"""

from .file_utils import write, write_mab, read_erb
from .cli_utils import run_cli, jload

__all__ = ["write", "write_mab", "read_erb", "run_cli", "jload"]
