from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from .batch import BatchReport, run_batch
from .config import load_config
from .errors import ConfigError
from .version import tool_version

_LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="mab2erb",
        description="Markaby to ERB template converter",
        add_help=True,
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {tool_version()}")
    sub = p.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("convert", help="convert .mab files (or directories of them) to .erb")
    sp.add_argument("paths", nargs="+", metavar="PATH", help="Markaby file or directory")
    sp.add_argument("--out-dir", metavar="DIR", help="write results under DIR, mirroring the source tree")
    sp.add_argument("--check", action="store_true", help="convert without writing; exit 1 if any file fails")
    sp.add_argument("--stdout", action="store_true", help="print results instead of writing files")
    sp.add_argument("--validate", action="store_true", help="syntax-check the generated ERB")
    sp.add_argument(
        "--instance-scope",
        action="store_true",
        help="render bare references like `title` as instance variables (@title)",
    )
    sp.add_argument("--preserve-comments", action="store_true", help="keep source comments as <%%# %%> directives")
    sp.add_argument("--config", metavar="FILE", help="configuration file (default: ./mab2erb.yaml if present)")
    sp.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="PATTERN",
        help="skip files matching a .gitignore-style pattern (repeatable)",
    )
    sp.add_argument("--errors-json", metavar="FILE", help="write the list of failed files as JSON")
    sp.add_argument("-v", "--verbose", action="count", default=0, help="-v for progress, -vv for debug output")

    return p


_HANDLER_NAME = "mab2erb-cli"


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    log = logging.getLogger("mab2erb")
    log.setLevel(level)
    for old in [h for h in log.handlers if h.get_name() == _HANDLER_NAME]:
        log.removeHandler(old)
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    log.addHandler(handler)


def _write_errors(path: Path, report: BatchReport) -> None:
    data = report.model_dump(mode="json")
    payload = {"total": data["total"], "failures": data["failures"]}
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")


def _run_convert(ns: argparse.Namespace) -> int:
    if ns.stdout and ns.out_dir:
        raise ConfigError("--stdout cannot be combined with --out-dir")

    config = load_config(Path(ns.config) if ns.config else None)
    base = config.options
    options = replace(
        base,
        validate_output=base.validate_output or ns.validate,
        default_to_instance_scope=base.default_to_instance_scope or ns.instance_scope,
        preserve_comments=base.preserve_comments or ns.preserve_comments,
    )
    exclude: List[str] = [*config.exclude, *ns.exclude]

    report = run_batch(
        [Path(p) for p in ns.paths],
        options,
        out_dir=Path(ns.out_dir) if ns.out_dir else None,
        exclude=exclude,
        check=ns.check,
        stream=sys.stdout if ns.stdout else None,
    )

    if ns.errors_json:
        _write_errors(Path(ns.errors_json), report)

    failed = len(report.failures)
    sys.stderr.write(f"{report.converted} of {report.total} file(s) converted, {failed} failed\n")
    return 0 if report.ok else 1


def main(argv: Optional[List[str]] = None) -> int:
    ns = _build_parser().parse_args(argv)
    _setup_logging(ns.verbose)

    try:
        if ns.cmd == "convert":
            return _run_convert(ns)
    except ConfigError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
