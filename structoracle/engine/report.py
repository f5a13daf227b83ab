"""Diagnostic reporting — one failure per violated criterion.

Matchers never raise on a mismatch.  They return :class:`Diagnostic` values
which a :class:`UnitResult` collects per verified class, so the author sees
every defect of a run at once.
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from typing import Any, Sequence


class Criterion(enum.Enum):
    """The individual checks a diagnostic can report on."""

    NAME = "name"
    TYPE = "type"
    MODIFIERS = "modifiers"
    ANNOTATIONS = "annotations"
    ENUM_PRESENCE = "enum_presence"
    COUNT = "count"
    MEMBERSHIP = "membership"
    CLASS_NOT_FOUND = "class_not_found"
    NO_ORACLE = "no_oracle"


@dataclass(frozen=True)
class Diagnostic:
    """A single violated criterion.

    Attributes:
        criterion: Which check failed.
        class_name: The class the oracle entry describes.
        subject: Attribute name or enum value the failure is about; empty
            for class-level failures.
        message: Human-readable explanation.
    """

    criterion: Criterion
    class_name: str
    subject: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {
            "criterion": self.criterion.value,
            "class": self.class_name,
            "subject": self.subject,
            "message": self.message,
        }


def _attribute_information(class_name: str, attribute_name: str) -> str:
    return f"the expected attribute '{attribute_name}' of the class '{class_name}'"


def attribute_failure(criterion: Criterion, class_name: str, attribute_name: str) -> Diagnostic:
    """Diagnostic for a failed name/type/modifiers/annotations check."""
    info = _attribute_information(class_name, attribute_name)
    if criterion is Criterion.NAME:
        message = f"The name of {info} is not implemented as expected."
    elif criterion is Criterion.TYPE:
        message = f"The type of {info} is not implemented as expected."
    elif criterion is Criterion.MODIFIERS:
        message = (
            f"The modifier(s) (visibility, static, final) of {info} "
            "are not implemented as expected."
        )
    elif criterion is Criterion.ANNOTATIONS:
        message = f"The annotation(s) of {info} are not implemented as expected."
    else:
        raise ValueError(f"{criterion} is not an attribute criterion")
    return Diagnostic(criterion, class_name, attribute_name, message)


def no_enum_constants(class_name: str) -> Diagnostic:
    return Diagnostic(
        Criterion.ENUM_PRESENCE,
        class_name,
        "",
        f"The enum '{class_name}' does not contain any enum constants. "
        "Make sure to implement them.",
    )


def wrong_enum_count(class_name: str, expected: int, observed: int) -> Diagnostic:
    return Diagnostic(
        Criterion.COUNT,
        class_name,
        "",
        f"The enum '{class_name}' does not contain all the expected enum values "
        f"(expected {expected}, found {observed}). Make sure to implement the missing enums.",
    )


def missing_enum_value(class_name: str, value: str) -> Diagnostic:
    return Diagnostic(
        Criterion.MEMBERSHIP,
        class_name,
        value,
        f"The class '{class_name}' does not include the enum value: {value}. "
        "Make sure to implement it as expected.",
    )


def class_not_found(class_name: str, message: str) -> Diagnostic:
    return Diagnostic(Criterion.CLASS_NOT_FOUND, class_name, "", message)


@dataclass(frozen=True)
class UnitResult:
    """Aggregate result of one verification unit (one oracle class)."""

    unit_name: str
    class_name: str
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def passed(self) -> bool:
        return not self.diagnostics

    def by_criterion(self, criterion: Criterion) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.criterion is criterion]

    def summary(self) -> str:
        """Human-readable summary, one line per diagnostic."""
        if self.passed:
            return f"{self.unit_name}: passed"
        lines = [f"{self.unit_name}: {len(self.diagnostics)} failure(s)"]
        for d in self.diagnostics:
            lines.append(f"  - [{d.criterion.value}] {d.message}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "unit": self.unit_name,
            "class": self.class_name,
            "passed": self.passed,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


def render_results(results: Sequence[UnitResult]) -> str:
    """Render all unit results followed by a totals line."""
    lines = [r.summary() for r in results]
    failed = sum(1 for r in results if not r.passed)
    total_diagnostics = sum(len(r.diagnostics) for r in results)
    lines.append("")
    lines.append(
        f"{len(results) - failed} of {len(results)} class(es) passed, "
        f"{total_diagnostics} failure(s) reported."
    )
    return "\n".join(lines)


def render_results_json(results: Sequence[UnitResult], indent: int = 2) -> str:
    payload = {
        "passed": all(r.passed for r in results),
        "units": [r.to_dict() for r in results],
    }
    return json.dumps(payload, indent=indent, sort_keys=True)
