"""Command-line interface for structoracle.

Presentation layer only: argument parsing, handlers and output formatting.
The verification itself lives in :mod:`structoracle.engine`.

Exit codes: 0 every class passed, 1 failures were reported, 2 the oracle
is missing, invalid or declares nothing to verify, 3 internal error.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .config import VerifierConfig
from .engine.errors import OracleConfigurationError, OracleValidationError
from .engine.introspect import PythonIntrospector
from .engine.oracle import load_oracle
from .engine.report import render_results, render_results_json
from .engine.scanner import ClassScanner
from .engine.units import StructureVerifier, generate_units
from .error_report import build_error_report, render_error_report, render_error_report_json

LOG = logging.getLogger("structoracle.cli")

EXIT_PASSED = 0
EXIT_FAILURES = 1
EXIT_CONFIGURATION_ERROR = 2


def _config_from_args(args: argparse.Namespace) -> VerifierConfig:
    roots = tuple(args.root_package) if getattr(args, "root_package", None) else None
    return VerifierConfig.from_env().with_overrides(
        oracle_path=args.oracle,
        root_packages=roots,
        verbose=args.verbose,
    )


def _extend_sys_path(paths: Optional[List[str]]) -> None:
    for path in reversed(paths or []):
        if path not in sys.path:
            sys.path.insert(0, path)


def _cli_verify(args: argparse.Namespace, config: VerifierConfig) -> int:
    _extend_sys_path(args.path)
    oracle = load_oracle(config.oracle_path)
    scanner = ClassScanner(config.root_packages) if config.root_packages else None
    verifier = StructureVerifier(oracle, PythonIntrospector(scanner))

    if args.class_names:
        try:
            results = [verifier.verify_class(name) for name in args.class_names]
        except KeyError as exc:
            print(f"Error: {exc.args[0]}", file=sys.stderr)
            return EXIT_CONFIGURATION_ERROR
    else:
        results = verifier.verify_all()

    if args.json:
        print(render_results_json(results))
    else:
        print(render_results(results))
    return EXIT_PASSED if all(r.passed for r in results) else EXIT_FAILURES


def _cli_units(args: argparse.Namespace, config: VerifierConfig) -> int:
    oracle = load_oracle(config.oracle_path)
    for unit in generate_units(oracle):
        print(f"{unit.name}\t{unit.expected.qualified_name}")
    return EXIT_PASSED


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="structoracle",
        description="Check submitted class structure against a structure oracle",
    )
    sub = parser.add_subparsers(dest="command")

    def _common(cmd: argparse.ArgumentParser) -> None:
        cmd.add_argument(
            "--oracle",
            help="Structure oracle file (.json, .yaml, .yml); "
            "defaults to $STRUCTORACLE_ORACLE_PATH or test.json",
        )
        cmd.add_argument(
            "--verbose",
            action="store_true",
            help="Show verbose output including debug messages",
        )

    verify = sub.add_parser("verify", help="Verify the submission against the oracle")
    _common(verify)
    verify.add_argument(
        "--root-package",
        action="append",
        dest="root_package",
        help="Submission package to scan for misplaced classes (repeatable)",
    )
    verify.add_argument(
        "--path",
        action="append",
        help="Directory to put on sys.path before importing the submission (repeatable)",
    )
    verify.add_argument(
        "--class",
        action="append",
        dest="class_names",
        metavar="NAME",
        help="Only verify this class (repeatable)",
    )
    verify.add_argument("--json", action="store_true", help="Output JSON")

    units = sub.add_parser("units", help="List the verification units of the oracle")
    _common(units)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return EXIT_CONFIGURATION_ERROR

    config = _config_from_args(args)
    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    handlers = {
        "verify": _cli_verify,
        "units": _cli_units,
    }
    try:
        return handlers[args.command](args, config)
    except (FileNotFoundError, OracleValidationError, OracleConfigurationError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR
    except Exception as exc:
        LOG.exception("structoracle %s failed", args.command)
        report = build_error_report(exc, command=args.command, config=config)
        if getattr(args, "json", False):
            render_error_report_json(report, file=sys.stderr)
        else:
            render_error_report(report, file=sys.stderr, verbose=args.verbose)
        return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
