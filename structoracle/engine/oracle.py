"""Structure oracle loader — parses and validates oracle JSON/YAML files.

Loads a structure oracle into an immutable in-memory model and validates it
against the JSON Schema bundled next to this module
(``structoracle/engine/oracle-schema.json``).

The document is a list of class entries::

    [
      {
        "class": {"name": "Order", "package": "shop.model"},
        "attributes": [
          {"name": "items", "type": "list<Item>", "modifiers": ["private"]}
        ]
      },
      {
        "class": {"name": "Color", "package": "shop.model"},
        "enumValues": ["RED", "GREEN", "BLUE"]
      }
    ]

Usage::

    from structoracle.engine.oracle import load_oracle

    oracle = load_oracle("test.json")
    for expected in oracle.verifiable_classes():
        print(expected.class_name, expected.attributes)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

import yaml
from jsonschema import Draft202012Validator

from structoracle.engine.errors import OracleValidationError

LOG = logging.getLogger("structoracle.engine.oracle")

DEFAULT_SCHEMA_PATH = Path(__file__).resolve().parent / "oracle-schema.json"

# Keys of a class entry in the oracle document
KEY_CLASS = "class"
KEY_NAME = "name"
KEY_PACKAGE = "package"
KEY_TYPE = "type"
KEY_MODIFIERS = "modifiers"
KEY_ANNOTATIONS = "annotations"
KEY_ATTRIBUTES = "attributes"
KEY_ENUM_VALUES = "enumValues"


# ---------------------------------------------------------------------------
# Data classes (immutable after construction)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExpectedAttribute:
    """An attribute the oracle requires on a class."""

    name: str
    type_name: str
    modifiers: frozenset[str] = frozenset()
    annotations: frozenset[str] = frozenset()


@dataclass(frozen=True)
class ExpectedClassStructure:
    """The required shape of one class.

    ``attributes`` and ``enum_values`` are ``None`` when the oracle entry
    does not declare the section at all, which is different from declaring
    it empty.
    """

    class_name: str
    package_name: str
    attributes: tuple[ExpectedAttribute, ...] | None = None
    enum_values: tuple[str, ...] | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def qualified_name(self) -> str:
        if not self.package_name:
            return self.class_name
        return f"{self.package_name}.{self.class_name}"

    @property
    def is_verifiable(self) -> bool:
        """True when the entry declares attributes or enum values."""
        return self.attributes is not None or self.enum_values is not None

    def has_property(self, key: str) -> bool:
        return key in self.raw


@dataclass(frozen=True)
class StructureOracle:
    """Immutable in-memory representation of a parsed structure oracle."""

    entries: tuple[ExpectedClassStructure, ...] = ()
    source: str = "<memory>"

    def __len__(self) -> int:
        return len(self.entries)

    def get_class(self, name: str) -> ExpectedClassStructure:
        """Look up a class entry by its simple name.

        Raises ``KeyError`` if *name* is not defined.
        """
        for entry in self.entries:
            if entry.class_name == name:
                return entry
        raise KeyError(
            f"Unknown class '{name}'. "
            f"Known classes: {', '.join(sorted(e.class_name for e in self.entries))}"
        )

    def verifiable_classes(self) -> list[ExpectedClassStructure]:
        """Entries that declare attributes or enum values, in document order."""
        return [entry for entry in self.entries if entry.is_verifiable]


# ---------------------------------------------------------------------------
# Internal parsing helpers
# ---------------------------------------------------------------------------


def normalize_modifiers(raw: Iterable[str]) -> frozenset[str]:
    """Normalize modifier specs into a set of lowercase keyword tokens.

    ``["private final"]`` and ``["Private", "final"]`` both become
    ``{"private", "final"}``.
    """
    tokens: set[str] = set()
    for item in raw:
        tokens.update(token.lower() for token in str(item).split())
    return frozenset(tokens)


def normalize_annotations(raw: Iterable[str]) -> frozenset[str]:
    """``["@Id", " NotNull"]`` becomes ``{"Id", "NotNull"}``."""
    return frozenset(str(item).strip().lstrip("@") for item in raw)


def _parse_attribute(raw: dict[str, Any]) -> ExpectedAttribute:
    return ExpectedAttribute(
        name=raw[KEY_NAME],
        type_name=raw[KEY_TYPE],
        modifiers=normalize_modifiers(raw.get(KEY_MODIFIERS, [])),
        annotations=normalize_annotations(raw.get(KEY_ANNOTATIONS, [])),
    )


def _parse_entry(raw: dict[str, Any]) -> ExpectedClassStructure:
    cls = raw[KEY_CLASS]
    attributes: tuple[ExpectedAttribute, ...] | None = None
    if KEY_ATTRIBUTES in raw:
        attributes = tuple(_parse_attribute(a) for a in raw[KEY_ATTRIBUTES])
    enum_values: tuple[str, ...] | None = None
    if KEY_ENUM_VALUES in raw:
        enum_values = tuple(str(v) for v in raw[KEY_ENUM_VALUES])
    return ExpectedClassStructure(
        class_name=cls[KEY_NAME],
        package_name=cls.get(KEY_PACKAGE, ""),
        attributes=attributes,
        enum_values=enum_values,
        raw=raw,
    )


def _unwrap_document(data: Any) -> Any:
    """Accept both a bare entry list and a ``{"classes": [...]}`` mapping."""
    if isinstance(data, dict) and "classes" in data:
        return data["classes"]
    return data


# ---------------------------------------------------------------------------
# Schema validation
# ---------------------------------------------------------------------------


def _validate_against_schema(
    oracle_data: Any,
    schema_path: Path | str | None,
) -> None:
    """Validate *oracle_data* against the JSON Schema.

    Raises ``OracleValidationError`` on failure.
    """
    schema_path = DEFAULT_SCHEMA_PATH if schema_path is None else Path(schema_path)

    if not schema_path.exists():
        raise OracleValidationError([f"Schema file not found: {schema_path}"])

    with open(schema_path) as f:
        schema = json.load(f)

    validator = Draft202012Validator(schema)
    errors: list[str] = []
    for error in sorted(validator.iter_errors(oracle_data), key=lambda e: list(e.path)):
        path = ".".join(str(p) for p in error.absolute_path) or "(root)"
        errors.append(f"[{path}] {error.message}")

    if errors:
        raise OracleValidationError(errors)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_oracle(
    data: Any,
    *,
    source: str = "<memory>",
    schema_path: str | Path | None = None,
) -> StructureOracle:
    """Validate and parse already-loaded oracle data.

    Entries without a ``class`` block cannot be located in the submission
    and are skipped.
    """
    data = _unwrap_document(data)
    _validate_against_schema(data, schema_path)

    entries: list[ExpectedClassStructure] = []
    for index, raw in enumerate(data):
        if KEY_CLASS not in raw:
            LOG.debug("Skipping oracle entry %d in %s: no class block", index, source)
            continue
        entries.append(_parse_entry(raw))

    LOG.debug("Parsed %d class entries from %s", len(entries), source)
    return StructureOracle(entries=tuple(entries), source=source)


def load_oracle(
    path: str | Path,
    *,
    schema_path: str | Path | None = None,
) -> StructureOracle:
    """Load a structure oracle from a YAML or JSON file.

    Parameters
    ----------
    path:
        Path to the oracle file (``.yaml``, ``.yml``, or ``.json``).
    schema_path:
        Optional path to the JSON Schema file.  When ``None`` the bundled
        schema is used.

    Returns
    -------
    StructureOracle
        Fully parsed, validated, immutable oracle model.

    Raises
    ------
    OracleValidationError
        If the oracle fails schema validation or cannot be decoded.
    FileNotFoundError
        If *path* does not exist.
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Structure oracle not found: {file_path}")

    with open(file_path) as f:
        suffix = file_path.suffix.lower()
        try:
            if suffix in (".yaml", ".yml"):
                data: Any = yaml.safe_load(f)
            elif suffix == ".json":
                data = json.load(f)
            else:
                raise ValueError(
                    f"Unsupported oracle format '{suffix}'. Use .yaml, .yml, or .json."
                )
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise OracleValidationError([f"Cannot decode {file_path}: {exc}"]) from exc

    return parse_oracle(data, source=str(file_path), schema_path=schema_path)
