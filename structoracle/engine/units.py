"""Verification units — one independently reported check per oracle class.

:func:`generate_units` turns a structure oracle into a plain list of
:class:`VerificationUnit` objects.  A unit resolves its class through a
:class:`~structoracle.engine.introspect.TypeIntrospector`, runs the attribute
and enum-value matchers and returns a :class:`UnitResult`.  Units share no
state, so a host may run them in any order or concurrently.

Usage::

    from structoracle.engine.units import StructureVerifier

    verifier = StructureVerifier(oracle, PythonIntrospector())
    for result in verifier.verify_all():
        print(result.summary())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from structoracle.engine.errors import (
    ClassNotFoundError,
    OracleConfigurationError,
    StructOracleError,
    UnitExecutionError,
)
from structoracle.engine.introspect import TypeIntrospector
from structoracle.engine.matchers import check_attributes, match_enum_values
from structoracle.engine.oracle import ExpectedClassStructure, StructureOracle
from structoracle.engine.report import Diagnostic, UnitResult, class_not_found

LOG = logging.getLogger("structoracle.engine.units")

NO_ORACLE_MESSAGE = (
    "The attribute check can only run if the structure oracle is present. "
    "If you do not provide it, remove the attribute check."
)
NO_UNITS_MESSAGE = (
    "No attribute or enum value checks are available in the structure oracle. "
    "Either provide attributes/enumValues information or remove the attribute check."
)


@dataclass(frozen=True)
class VerificationUnit:
    """The self-contained check of one oracle class entry."""

    expected: ExpectedClassStructure

    @property
    def name(self) -> str:
        return f"attributes[{self.expected.class_name}]"

    def run(self, introspector: TypeIntrospector) -> UnitResult:
        """Verify the class against *introspector*'s view of the submission."""
        class_name = self.expected.class_name
        try:
            observed = introspector.introspect(class_name, self.expected.package_name)
        except ClassNotFoundError as exc:
            LOG.info("%s: class not found", self.name)
            return UnitResult(
                unit_name=self.name,
                class_name=class_name,
                diagnostics=(class_not_found(class_name, str(exc)),),
            )

        diagnostics: list[Diagnostic] = []
        if self.expected.attributes is not None:
            diagnostics.extend(
                check_attributes(class_name, self.expected.attributes, observed.fields)
            )
        if self.expected.enum_values is not None:
            diagnostics.extend(
                match_enum_values(class_name, self.expected.enum_values, observed.enum_constants)
            )

        LOG.debug("%s: %d failure(s)", self.name, len(diagnostics))
        return UnitResult(
            unit_name=self.name, class_name=class_name, diagnostics=tuple(diagnostics)
        )


def generate_units(oracle: StructureOracle | None) -> list[VerificationUnit]:
    """Build one unit per class that declares attributes or enum values.

    Raises
    ------
    OracleConfigurationError
        If *oracle* is ``None`` or yields no unit at all.
    """
    if oracle is None:
        raise OracleConfigurationError(NO_ORACLE_MESSAGE)
    units = [VerificationUnit(expected) for expected in oracle.verifiable_classes()]
    if not units:
        raise OracleConfigurationError(NO_UNITS_MESSAGE)
    LOG.debug("Generated %d verification unit(s) from %s", len(units), oracle.source)
    return units


class StructureVerifier:
    """Runs every verification unit of an oracle against one submission.

    Parameters
    ----------
    oracle:
        Parsed structure oracle.  Configuration errors surface on
        construction, before any class is checked.
    introspector:
        Source of observed class descriptions.
    """

    def __init__(
        self, oracle: StructureOracle | None, introspector: TypeIntrospector
    ) -> None:
        self._units = generate_units(oracle)
        self._introspector = introspector

    @property
    def units(self) -> list[VerificationUnit]:
        return list(self._units)

    def verify_all(self) -> list[UnitResult]:
        results = [self._run(unit) for unit in self._units]
        failed = sum(1 for r in results if not r.passed)
        LOG.info("Verified %d class(es), %d with failures", len(results), failed)
        return results

    def _run(self, unit: VerificationUnit) -> UnitResult:
        try:
            return unit.run(self._introspector)
        except StructOracleError:
            raise
        except Exception as exc:
            raise UnitExecutionError(unit.name, exc) from exc

    def verify_class(self, class_name: str) -> UnitResult:
        """Run the unit for *class_name* only.

        Raises ``KeyError`` if no unit exists for *class_name*.
        """
        for unit in self._units:
            if unit.expected.class_name == class_name:
                return self._run(unit)
        raise KeyError(
            f"No verification unit for class '{class_name}'. "
            f"Known classes: {', '.join(sorted(u.expected.class_name for u in self._units))}"
        )
