"""Crash report for runs where the verifier itself broke.

A failing submission is reported through diagnostics and exit code 1.  This
module covers exit code 3: an exception escaped the engine.  The report
names the oracle and submission packages the run was configured with and,
when the failure happened inside a verification unit, which unit it was, so
the run can be reproduced against the same submission.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import json
import platform
import traceback
from typing import IO, Any, Dict, Optional, Tuple

from .config import VerifierConfig
from .engine.errors import UnitExecutionError

INTERNAL_ERROR_EXIT_CODE = 3


@dataclasses.dataclass(frozen=True)
class ErrorReport:
    command: str
    error_type: str
    error_message: str
    unit_name: Optional[str]
    oracle_path: Optional[str]
    root_packages: Tuple[str, ...]
    traceback: Optional[str]
    timestamp: str
    python: str
    exit_code: int = INTERNAL_ERROR_EXIT_CODE

    def to_dict(self) -> Dict[str, Any]:
        data = dataclasses.asdict(self)
        data["root_packages"] = list(self.root_packages)
        return data

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)


def build_error_report(
    exc: BaseException,
    *,
    command: str = "",
    config: Optional[VerifierConfig] = None,
    exit_code: int = INTERNAL_ERROR_EXIT_CODE,
) -> ErrorReport:
    """Describe *exc* in the context of the verifier run that raised it.

    A :class:`UnitExecutionError` is unwrapped: the report carries the unit
    name and the type and message of the underlying exception.
    """
    unit_name: Optional[str] = None
    error = exc
    if isinstance(exc, UnitExecutionError):
        unit_name = exc.unit_name
        if exc.__cause__ is not None:
            error = exc.__cause__

    tb: Optional[str] = None
    if exc.__traceback__ is not None:
        tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    return ErrorReport(
        command=command,
        error_type=type(error).__qualname__,
        error_message=str(error),
        unit_name=unit_name,
        oracle_path=config.oracle_path if config else None,
        root_packages=config.root_packages if config else (),
        traceback=tb,
        timestamp=dt.datetime.now(dt.timezone.utc).isoformat(),
        python=f"{platform.python_version()} on {platform.platform()}",
        exit_code=exit_code,
    )


def render_error_report(
    report: ErrorReport,
    *,
    file: IO[str] | None = None,
    verbose: bool = False,
) -> str:
    """Render *report* as text, printing it to *file* when given.

    The traceback is only included when *verbose* is true.
    """
    lines = [
        "=== structoracle Error Report ===",
        f"Command:   {report.command or '(unknown)'}",
        f"Error:     {report.error_type}: {report.error_message}",
    ]
    if report.unit_name:
        lines.append(f"Unit:      {report.unit_name}")
    lines += [
        f"Oracle:    {report.oracle_path or '(unknown)'}",
        f"Packages:  {', '.join(report.root_packages) or '(not scanned)'}",
        f"Python:    {report.python}",
        f"Timestamp: {report.timestamp}",
    ]
    if verbose and report.traceback:
        lines += ["", "--- traceback ---", report.traceback.rstrip(), "--- end traceback ---"]
    lines.append(f"Exit code: {report.exit_code}")

    text = "\n".join(lines)
    if file is not None:
        print(text, file=file)
    return text


def render_error_report_json(report: ErrorReport, *, file: IO[str] | None = None) -> str:
    text = report.to_json()
    if file is not None:
        print(text, file=file)
    return text
