"""Attribute and enum-value matchers — compare expected against observed.

Type comparison is name based and package unaware: ``Item`` from two
different modules is the same type as far as the matcher is concerned.
Generic types are compared one level deep and only on their first type
argument, so ``dict<str, int>`` validates ``dict`` and ``str`` only.

Usage::

    from structoracle.engine.matchers import match_attribute, match_enum_values

    outcome = match_attribute(expected_attribute, observed.fields)
    diagnostics = outcome.failures("Order")
    diagnostics += match_enum_values("Color", ("RED", "GREEN"), observed.enum_constants)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AbstractSet, Sequence

from structoracle.engine.introspect import ObservedField
from structoracle.engine.oracle import ExpectedAttribute
from structoracle.engine.report import (
    Criterion,
    Diagnostic,
    attribute_failure,
    missing_enum_value,
    no_enum_constants,
    wrong_enum_count,
)

LOG = logging.getLogger("structoracle.engine.matchers")

# Generic brackets accepted in expected type names: Outer<Inner> or Outer[Inner]
_GENERIC_BRACKETS = (("<", ">"), ("[", "]"))


# ---------------------------------------------------------------------------
# Type / modifier / annotation equivalence
# ---------------------------------------------------------------------------


def split_generic(type_name: str) -> tuple[str, str | None]:
    """Split ``Outer<Inner>`` into ``("Outer", "Inner")``.

    Only the first type argument is kept.  Non-generic names come back as
    ``(type_name, None)`` untouched.
    """
    for opening, closing in _GENERIC_BRACKETS:
        if opening in type_name and closing in type_name:
            outer, _, rest = type_name.partition(opening)
            inner = rest.split(opening, 1)[0].replace(closing, "")
            inner = inner.split(",", 1)[0]
            return outer.strip(), inner.strip()
    return type_name, None


def type_matches(expected_type_name: str, observed: ObservedField) -> bool:
    outer, inner = split_generic(expected_type_name)
    if inner is None:
        return expected_type_name == observed.declared_type_name
    outer_ok = outer == observed.declared_type_name
    # An unparameterized observed type can never satisfy a generic expectation
    inner_ok = observed.is_parameterized and inner == observed.generic_argument_type_name
    return outer_ok and inner_ok


def modifiers_match(expected: AbstractSet[str], observed: AbstractSet[str]) -> bool:
    """Set equality; an empty expectation only accepts a field with no modifiers."""
    return set(expected) == set(observed)


def annotations_match(expected: AbstractSet[str], observed: AbstractSet[str]) -> bool:
    return set(expected) == set(observed)


# ---------------------------------------------------------------------------
# Attribute matcher
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AttributeMatch:
    """Per-criterion outcome of matching one expected attribute."""

    attribute_name: str
    name_ok: bool = False
    type_ok: bool = False
    modifiers_ok: bool = False
    annotations_ok: bool = False

    @property
    def passed(self) -> bool:
        return self.name_ok and self.type_ok and self.modifiers_ok and self.annotations_ok

    def failures(self, class_name: str) -> list[Diagnostic]:
        """One diagnostic per false flag, in name/type/modifiers/annotations order."""
        flags = (
            (Criterion.NAME, self.name_ok),
            (Criterion.TYPE, self.type_ok),
            (Criterion.MODIFIERS, self.modifiers_ok),
            (Criterion.ANNOTATIONS, self.annotations_ok),
        )
        return [
            attribute_failure(criterion, class_name, self.attribute_name)
            for criterion, ok in flags
            if not ok
        ]


def match_attribute(
    expected: ExpectedAttribute, observed: Sequence[ObservedField]
) -> AttributeMatch:
    """Match *expected* against the observed fields of a class.

    Fields are scanned in declaration order.  Each field named like the
    expected attribute replaces the previous outcome; the scan stops at the
    first field that satisfies every criterion.  Without a full match the
    outcome of the *last* same-named field stands.
    """
    outcome = AttributeMatch(attribute_name=expected.name)
    for observed_field in observed:
        if observed_field.name != expected.name:
            continue
        outcome = AttributeMatch(
            attribute_name=expected.name,
            name_ok=True,
            type_ok=type_matches(expected.type_name, observed_field),
            modifiers_ok=modifiers_match(expected.modifiers, observed_field.modifiers),
            annotations_ok=annotations_match(expected.annotations, observed_field.annotations),
        )
        if outcome.passed:
            break
    if not outcome.passed:
        LOG.debug("Attribute %s did not match: %s", expected.name, outcome)
    return outcome


def check_attributes(
    class_name: str,
    expected_attributes: Sequence[ExpectedAttribute],
    observed: Sequence[ObservedField],
) -> list[Diagnostic]:
    """Diagnostics for every expected attribute of one class."""
    diagnostics: list[Diagnostic] = []
    for expected in expected_attributes:
        diagnostics.extend(match_attribute(expected, observed).failures(class_name))
    return diagnostics


# ---------------------------------------------------------------------------
# Enum value matcher
# ---------------------------------------------------------------------------


def match_enum_values(
    class_name: str,
    expected: Sequence[str],
    observed: Sequence[str],
) -> list[Diagnostic]:
    """Compare expected enum constant names against the observed ones.

    Reports missing constants, a count mismatch and each missing expected
    value.  Extra observed values only show up through the count mismatch.
    """
    diagnostics: list[Diagnostic] = []
    if not observed:
        diagnostics.append(no_enum_constants(class_name))
    if len(expected) != len(observed):
        diagnostics.append(wrong_enum_count(class_name, len(expected), len(observed)))
    observed_names = set(observed)
    for value in expected:
        if value not in observed_names:
            diagnostics.append(missing_enum_value(class_name, value))
    return diagnostics
