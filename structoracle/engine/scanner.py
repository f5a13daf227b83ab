"""Class scanner — locates expected classes anywhere in a submission.

When a class is not found in the module the oracle names, the scanner walks
the submission's root package(s), indexes every class defined there and
classifies the lookup:

- the exact name exists, possibly in another module or several times;
- the name exists with different letter case;
- a similarly spelled name exists (typo);
- nothing resembles the name.

The classification drives the "class not found" diagnostic so the author
learns *why* the class was not found.
"""

from __future__ import annotations

import difflib
import enum
import importlib
import inspect
import logging
import pkgutil
from dataclasses import dataclass, field
from functools import cached_property
from typing import Callable, Sequence

LOG = logging.getLogger("structoracle.engine.scanner")

# Minimum difflib ratio for two class names to count as a typo of each other
TYPO_SIMILARITY_THRESHOLD = 0.8


class ScanResultType(enum.Enum):
    """How an expected class name relates to the classes actually present."""

    CORRECT_NAME_CORRECT_PLACE = "correct_name_correct_place"
    CORRECT_NAME_MISPLACED = "correct_name_misplaced"
    CORRECT_NAME_MULTIPLE_TIMES_PRESENT = "correct_name_multiple_times_present"
    WRONG_CASE_CORRECT_PLACE = "wrong_case_correct_place"
    WRONG_CASE_MISPLACED = "wrong_case_misplaced"
    WRONG_CASE_MULTIPLE_TIMES_PRESENT = "wrong_case_multiple_times_present"
    TYPOS_CORRECT_PLACE = "typos_correct_place"
    TYPOS_MISPLACED = "typos_misplaced"
    TYPOS_MULTIPLE_TIMES_PRESENT = "typos_multiple_times_present"
    NOTFOUND = "notfound"


@dataclass(frozen=True)
class ClassLocation:
    """A class found while scanning the submission."""

    name: str
    module: str
    cls: type = field(compare=False, repr=False)


@dataclass(frozen=True)
class ScanResult:
    """Outcome of looking up one expected class."""

    result: ScanResultType
    expected_name: str
    expected_package: str
    candidates: tuple[ClassLocation, ...] = ()

    @property
    def observed_class(self) -> type | None:
        """The class to verify, only when it is in the expected place."""
        if self.result is ScanResultType.CORRECT_NAME_CORRECT_PLACE and self.candidates:
            return self.candidates[0].cls
        return None

    def message(self) -> str:
        """Human-readable explanation of the scan outcome."""
        name = self.expected_name
        where = self.expected_package or "the submission"
        found = ", ".join(f"'{c.module}.{c.name}'" for c in self.candidates)
        first = self.candidates[0] if self.candidates else None
        rt = ScanResultType

        if self.result is rt.CORRECT_NAME_CORRECT_PLACE:
            return f"The class '{name}' was found in '{where}'."
        if self.result is rt.CORRECT_NAME_MISPLACED:
            return (
                f"The class '{name}' was found in '{first.module}' but is expected "
                f"in '{where}'. Move it to the expected module."
            )
        if self.result is rt.CORRECT_NAME_MULTIPLE_TIMES_PRESENT:
            return (
                f"The class '{name}' is defined {len(self.candidates)} times ({found}). "
                f"Keep exactly one definition in '{where}'."
            )
        if self.result is rt.WRONG_CASE_CORRECT_PLACE:
            return (
                f"The class '{name}' was found with wrong case as '{first.name}' "
                f"in '{where}'. Rename it to '{name}'."
            )
        if self.result is rt.WRONG_CASE_MISPLACED:
            return (
                f"The class '{name}' was found with wrong case as '{first.name}' in "
                f"'{first.module}'. Rename it to '{name}' and move it to '{where}'."
            )
        if self.result is rt.WRONG_CASE_MULTIPLE_TIMES_PRESENT:
            return (
                f"The class '{name}' was found with wrong case several times ({found}). "
                f"Keep exactly one class named '{name}' in '{where}'."
            )
        if self.result is rt.TYPOS_CORRECT_PLACE:
            return (
                f"The class '{name}' seems to be misspelled as '{first.name}' "
                f"in '{where}'. Rename it to '{name}'."
            )
        if self.result is rt.TYPOS_MISPLACED:
            return (
                f"The class '{name}' seems to be misspelled as '{first.name}' in "
                f"'{first.module}'. Rename it to '{name}' and move it to '{where}'."
            )
        if self.result is rt.TYPOS_MULTIPLE_TIMES_PRESENT:
            return (
                f"The class '{name}' seems to be misspelled in several places ({found}). "
                f"Keep exactly one class named '{name}' in '{where}'."
            )
        return (
            f"The class '{name}' was not found in '{where}'. "
            "Make sure to implement it in the expected module."
        )


def _is_typo(expected: str, observed: str) -> bool:
    ratio = difflib.SequenceMatcher(None, expected.lower(), observed.lower()).ratio()
    return ratio >= TYPO_SIMILARITY_THRESHOLD


class ClassScanner:
    """Indexes the classes defined in one or more root packages.

    The index is built once, on first use, and never changes afterwards, so
    every scan against the same submission yields the same result.

    Parameters
    ----------
    root_packages:
        Importable package (or module) names that make up the submission.
    """

    def __init__(self, root_packages: Sequence[str]) -> None:
        self._root_packages = tuple(root_packages)

    @cached_property
    def locations(self) -> tuple[ClassLocation, ...]:
        found: list[ClassLocation] = []
        for module in self._iter_modules():
            for name, obj in vars(module).items():
                if inspect.isclass(obj) and obj.__module__ == module.__name__:
                    found.append(ClassLocation(name=name, module=module.__name__, cls=obj))
        LOG.debug(
            "Indexed %d classes under %s", len(found), ", ".join(self._root_packages)
        )
        return tuple(found)

    def _iter_modules(self):
        seen: set[str] = set()
        for root in self._root_packages:
            try:
                package = importlib.import_module(root)
            except Exception as exc:
                LOG.warning("Cannot import root package %s: %s", root, exc)
                continue
            if root not in seen:
                seen.add(root)
                yield package
            search_path = getattr(package, "__path__", None)
            if search_path is None:
                continue
            for info in pkgutil.walk_packages(
                search_path, prefix=root + ".", onerror=self._log_walk_error
            ):
                if info.name in seen:
                    continue
                seen.add(info.name)
                try:
                    yield importlib.import_module(info.name)
                except Exception as exc:
                    LOG.warning("Skipping module %s: %s", info.name, exc)

    @staticmethod
    def _log_walk_error(name: str) -> None:
        LOG.warning("Cannot walk package %s", name)

    def scan(self, class_name: str, package_name: str) -> ScanResult:
        """Classify how *class_name* relates to the indexed classes.

        An empty *package_name* accepts the class in any module.
        """
        tiers: tuple[tuple[Callable[[str], bool], ScanResultType, ...], ...] = (
            (
                lambda n: n == class_name,
                ScanResultType.CORRECT_NAME_CORRECT_PLACE,
                ScanResultType.CORRECT_NAME_MISPLACED,
                ScanResultType.CORRECT_NAME_MULTIPLE_TIMES_PRESENT,
            ),
            (
                lambda n: n != class_name and n.lower() == class_name.lower(),
                ScanResultType.WRONG_CASE_CORRECT_PLACE,
                ScanResultType.WRONG_CASE_MISPLACED,
                ScanResultType.WRONG_CASE_MULTIPLE_TIMES_PRESENT,
            ),
            (
                lambda n: n.lower() != class_name.lower() and _is_typo(class_name, n),
                ScanResultType.TYPOS_CORRECT_PLACE,
                ScanResultType.TYPOS_MISPLACED,
                ScanResultType.TYPOS_MULTIPLE_TIMES_PRESENT,
            ),
        )
        for matches, correct_place, misplaced, multiple in tiers:
            candidates = tuple(loc for loc in self.locations if matches(loc.name))
            if not candidates:
                continue
            if len(candidates) > 1:
                result = multiple
            elif not package_name or candidates[0].module == package_name:
                result = correct_place
            else:
                result = misplaced
            return ScanResult(result, class_name, package_name, candidates)
        return ScanResult(ScanResultType.NOTFOUND, class_name, package_name)
