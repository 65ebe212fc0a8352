"""
Batch conversion of Markaby files.

Each document is converted independently; a failure is recorded in the
report and the run moves on to the next file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, TextIO

from pathspec import PathSpec
from pathspec.patterns import GitWildMatchPattern
from pydantic import BaseModel, Field

from .config.model import ConvertOptions
from .converter import convert_file
from .errors import ConfigError, Mab2ErbError

logger = logging.getLogger(__name__)

SOURCE_SUFFIX = ".mab"
TARGET_SUFFIX = ".erb"


class FileFailure(BaseModel):
    """One document that could not be converted."""
    path: str
    error: str
    message: str


class BatchReport(BaseModel):
    total: int = 0
    converted: int = 0
    written: List[str] = Field(default_factory=list)
    failures: List[FileFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass(frozen=True)
class SourceFile:
    """A discovered document and the root it was found under."""
    path: Path
    root: Path

    @property
    def relative(self) -> Path:
        return self.path.relative_to(self.root)


def _exclude_spec(patterns: Sequence[str]) -> Optional[PathSpec]:
    patterns = [p for p in patterns if p.strip()]
    if not patterns:
        return None
    return PathSpec.from_lines(GitWildMatchPattern, patterns)


def discover(paths: Sequence[Path], exclude: Sequence[str] = ()) -> List[SourceFile]:
    """
    Markaby files named by the arguments.

    Directories are searched recursively for *.mab files; files are taken
    as given. Exclude patterns use .gitignore syntax and are matched
    against paths relative to the argument they were found under.

    Raises:
        ConfigError: A path does not exist
    """
    spec = _exclude_spec(exclude)
    found: List[SourceFile] = []
    seen = set()
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            candidates = [SourceFile(p, path) for p in sorted(path.rglob(f"*{SOURCE_SUFFIX}")) if p.is_file()]
        elif path.is_file():
            candidates = [SourceFile(path, path.parent)]
        else:
            raise ConfigError(f"Path not found: {path}")

        for item in candidates:
            rel = item.relative.as_posix()
            if spec is not None and spec.match_file(rel):
                logger.debug("Excluded %s", item.path)
                continue
            key = item.path.resolve()
            if key in seen:
                continue
            seen.add(key)
            found.append(item)
    return found


def target_path(item: SourceFile, out_dir: Optional[Path] = None) -> Path:
    """`name.mab` -> `name.erb`, beside the source or mirrored under out_dir."""
    relative = item.relative
    if relative.suffix == SOURCE_SUFFIX:
        relative = relative.with_suffix(TARGET_SUFFIX)
    else:
        relative = relative.with_name(relative.name + TARGET_SUFFIX)
    base = out_dir if out_dir is not None else item.root
    return base / relative


def run_batch(
    paths: Sequence[Path],
    options: Optional[ConvertOptions] = None,
    *,
    out_dir: Optional[Path] = None,
    exclude: Sequence[str] = (),
    check: bool = False,
    stream: Optional[TextIO] = None,
) -> BatchReport:
    """
    Converts every discovered document.

    Args:
        paths: Files and directories to convert
        options: Conversion settings shared by all documents
        out_dir: Write results under this directory instead of beside the sources
        exclude: .gitignore-style patterns of files to skip
        check: Convert without writing anything
        stream: Write results to this stream instead of files

    Returns:
        Report with per-file failures
    """
    options = options or ConvertOptions()
    report = BatchReport()
    for item in discover(paths, exclude):
        report.total += 1
        try:
            text = convert_file(item.path, options)
        except Mab2ErbError as e:
            logger.error("%s: %s", item.path, e)
            report.failures.append(FileFailure(path=str(item.path), error=type(e).__name__, message=str(e)))
            continue

        report.converted += 1
        if check:
            logger.info("OK %s", item.path)
            continue
        if stream is not None:
            stream.write(text)
            if text and not text.endswith("\n"):
                stream.write("\n")
            continue
        target = target_path(item, out_dir)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text + "\n" if text else "", encoding="utf-8")
        report.written.append(str(target))
        logger.info("Wrote %s", target)
    return report


__all__ = ["BatchReport", "FileFailure", "SourceFile", "discover", "target_path", "run_batch"]
