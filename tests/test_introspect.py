"""Unit tests for structoracle.engine.introspect — Python type descriptors.

Covers: simple and generic type naming, ClassVar/Final/Annotated peeling,
visibility from names, private name mangling, unannotated class attributes,
inherited fields, enum constants, unresolvable annotations, class lookup.
"""

from __future__ import annotations

import enum
import typing
from typing import Annotated, ClassVar, Final, List, Optional

import pytest

from structoracle.engine.errors import ClassNotFoundError
from structoracle.engine.introspect import (
    ObservedClass,
    ObservedField,
    PythonIntrospector,
    annotation_name,
    describe_class,
    generic_argument_name,
    simple_type_name,
    visibility_of,
)
from structoracle.engine.scanner import ClassScanner

from submission import model


def _fields(cls: type) -> dict[str, ObservedField]:
    return {f.name: f for f in describe_class(cls).fields}


# ---------------------------------------------------------------------------
# Type naming
# ---------------------------------------------------------------------------


class TestSimpleTypeName:
    @pytest.mark.parametrize(
        "hint, expected",
        [
            (int, "int"),
            (model.Item, "Item"),
            (list, "list"),
            (list[int], "list"),
            (List[int], "List"),
            (List, "List"),
            (dict[str, int], "dict"),
            (Optional[int], "Optional"),
            (int | None, "Optional"),
            (typing.Union[int, str], "Union"),
            (None, "None"),
            ("shop.model.Item", "Item"),
            (typing.ForwardRef("Item"), "Item"),
            (Annotated[int, "x"], "int"),
        ],
    )
    def test_names(self, hint, expected: str) -> None:
        assert simple_type_name(hint) == expected


class TestGenericArgumentName:
    def test_plain_type_is_not_parameterized(self) -> None:
        assert generic_argument_name(int) is None
        assert generic_argument_name(list) is None
        assert generic_argument_name(List) is None

    def test_first_argument_only(self) -> None:
        assert generic_argument_name(dict[str, int]) == "str"

    def test_argument_reduced_to_simple_name(self) -> None:
        assert generic_argument_name(list[model.Item]) == "Item"
        assert generic_argument_name(list["shop.model.Item"]) == "Item"

    def test_nested_generic_argument_uses_outer_name(self) -> None:
        assert generic_argument_name(list[list[int]]) == "list"

    def test_optional_argument(self) -> None:
        assert generic_argument_name(Optional[str]) == "str"
        assert generic_argument_name(float | None) == "float"

    def test_string_annotation(self) -> None:
        assert generic_argument_name("list[Item]") == "Item"


class TestAnnotationName:
    def test_class_metadata(self) -> None:
        assert annotation_name(model.NotNull) == "NotNull"

    def test_instance_metadata(self) -> None:
        assert annotation_name(model.Column("code")) == "Column"

    def test_string_metadata(self) -> None:
        assert annotation_name("@Id") == "Id"


class TestVisibility:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("count", None),
            ("_count", "protected"),
            ("__count", "private"),
            ("__dunder__", None),
        ],
    )
    def test_visibility(self, name: str, expected) -> None:
        assert visibility_of(name) == expected


# ---------------------------------------------------------------------------
# Class description
# ---------------------------------------------------------------------------


class TestDescribeClass:
    def test_plain_field(self) -> None:
        fields = _fields(model.Order)
        assert fields["id"] == ObservedField(name="id", declared_type_name="int")

    def test_generic_fields(self) -> None:
        fields = _fields(model.Order)
        assert fields["items"].declared_type_name == "list"
        assert fields["items"].generic_argument_type_name == "Item"
        assert fields["tags"].declared_type_name == "List"
        assert fields["tags"].generic_argument_type_name == "str"
        assert fields["lookup"].generic_argument_type_name == "str"

    def test_raw_generic_field_is_not_parameterized(self) -> None:
        raw = _fields(model.Order)["raw_items"]
        assert raw.declared_type_name == "list"
        assert not raw.is_parameterized

    def test_optional_fields(self) -> None:
        fields = _fields(model.Order)
        assert fields["notes"].declared_type_name == "Optional"
        assert fields["notes"].generic_argument_type_name == "str"
        assert fields["discount"].declared_type_name == "Optional"
        assert fields["discount"].generic_argument_type_name == "float"

    def test_private_final_field_is_demangled(self) -> None:
        count = _fields(model.Order)["__count"]
        assert count.declared_type_name == "int"
        assert count.modifiers == frozenset({"private", "final"})

    def test_protected_field(self) -> None:
        assert _fields(model.Order)["_total"].modifiers == frozenset({"protected"})

    def test_class_var_is_static(self) -> None:
        max_items = _fields(model.Order)["MAX_ITEMS"]
        assert max_items.declared_type_name == "int"
        assert max_items.modifiers == frozenset({"static"})

    def test_annotated_metadata_becomes_annotations(self) -> None:
        code = _fields(model.Order)["code"]
        assert code.declared_type_name == "str"
        assert code.annotations == frozenset({"NotNull", "Column"})

    def test_unannotated_class_attribute_is_static(self) -> None:
        version = _fields(model.Order)["VERSION"]
        assert version.declared_type_name == "str"
        assert version.modifiers == frozenset({"static"})

    def test_methods_and_properties_are_not_fields(self) -> None:
        fields = _fields(model.Order)
        assert "total" not in fields
        assert "size" not in fields

    def test_declaration_order(self) -> None:
        names = [f.name for f in describe_class(model.Order).fields]
        assert names[:3] == ["id", "items", "tags"]
        assert names[-1] == "VERSION"

    def test_inherited_fields_are_not_reported(self) -> None:
        assert list(_fields(model.SpecialOrder)) == ["priority"]

    def test_bare_final_takes_type_from_value(self) -> None:
        class Settings:
            LIMIT: Final = 3

        limit = _fields(Settings)["LIMIT"]
        assert limit.declared_type_name == "int"
        assert limit.modifiers == frozenset({"final"})

    def test_class_var_of_final_combination(self) -> None:
        class Registry:
            _instances: ClassVar[Annotated[dict[str, int], "Cache"]] = {}

        instances = _fields(Registry)["_instances"]
        assert instances.modifiers == frozenset({"static", "protected"})
        assert instances.annotations == frozenset({"Cache"})
        assert instances.generic_argument_type_name == "str"

    def test_dunder_field_has_no_visibility(self) -> None:
        class Mapped:
            __table__: str

        assert _fields(Mapped)["__table__"].modifiers == frozenset()

    def test_unannotated_slots_are_fields(self) -> None:
        class Point:
            __slots__ = ("x", "__y", "z")
            z: int

        fields = _fields(Point)
        assert list(fields) == ["z", "x", "__y"]
        assert fields["z"].declared_type_name == "int"
        assert fields["x"] == ObservedField(name="x", declared_type_name="object")
        assert fields["__y"].modifiers == frozenset({"private"})

    def test_observed_class_identity(self) -> None:
        observed = describe_class(model.Order)
        assert isinstance(observed, ObservedClass)
        assert observed.name == "Order"
        assert observed.module == "submission.model"
        assert observed.enum_constants == ()
        assert not observed.is_enum


class TestEnumConstants:
    def test_constants_in_declaration_order(self) -> None:
        observed = describe_class(model.Color)
        assert observed.enum_constants == ("RED", "GREEN", "BLUE")
        assert observed.is_enum

    def test_members_are_not_fields(self) -> None:
        assert describe_class(model.Color).fields == ()

    def test_aliases_are_excluded(self) -> None:
        assert describe_class(model.Shape).enum_constants == ("CIRCLE", "SQUARE")

    def test_flag_keeps_zero_and_multi_bit_members(self) -> None:
        class Perm(enum.Flag):
            R = 4
            W = 2
            RW = 6
            NONE = 0
            READ = 4

        assert describe_class(Perm).enum_constants == ("R", "W", "RW", "NONE")

    def test_empty_enum(self) -> None:
        class Empty(enum.Enum):
            pass

        assert describe_class(Empty).enum_constants == ()


class TestUnresolvableAnnotations:
    def test_falls_back_to_annotation_text(self) -> None:
        from submission import forward

        fields = _fields(forward.Node)
        assert fields["parent"].declared_type_name == "Missing"
        assert fields["children"].declared_type_name == "list"
        assert fields["children"].generic_argument_type_name == "Item"
        assert fields["registry"].declared_type_name == "dict"
        assert fields["registry"].modifiers == frozenset({"static"})
        assert fields["label"].declared_type_name == "Optional"
        assert fields["label"].generic_argument_type_name == "str"


# ---------------------------------------------------------------------------
# Introspector lookup
# ---------------------------------------------------------------------------


class TestPythonIntrospector:
    def test_introspect_by_identity(self) -> None:
        observed = PythonIntrospector().introspect("Order", "submission.model")
        assert observed.name == "Order"

    def test_missing_module(self) -> None:
        with pytest.raises(ClassNotFoundError) as exc_info:
            PythonIntrospector().introspect("Order", "submission.nowhere")
        assert exc_info.value.class_name == "Order"
        assert "was not found in 'submission.nowhere'" in str(exc_info.value)

    def test_missing_class(self) -> None:
        with pytest.raises(ClassNotFoundError):
            PythonIntrospector().introspect("Ghost", "submission.model")

    def test_non_class_attribute_is_not_a_class(self) -> None:
        with pytest.raises(ClassNotFoundError):
            PythonIntrospector().introspect("List", "typing")

    def test_broken_module_reports_import_error(self) -> None:
        with pytest.raises(ClassNotFoundError, match="failed to import: RuntimeError"):
            PythonIntrospector().introspect("Anything", "submission.broken")

    def test_missing_dependency_of_existing_module(self) -> None:
        with pytest.raises(ClassNotFoundError) as exc_info:
            PythonIntrospector().introspect("Ledger", "submission.needs_dep")
        message = str(exc_info.value)
        assert "failed to import: ModuleNotFoundError" in message
        assert "not_installed_dependency_xyz" in message

    def test_missing_dependency_is_not_rescanned(self) -> None:
        introspector = PythonIntrospector(ClassScanner(["submission"]))
        with pytest.raises(ClassNotFoundError, match="failed to import"):
            introspector.introspect("Ledger", "submission.needs_dep")

    def test_missing_parent_package(self) -> None:
        with pytest.raises(ClassNotFoundError, match="was not found in 'nowhere_pkg.model'"):
            PythonIntrospector().introspect("Order", "nowhere_pkg.model")

    def test_scanner_explains_misplaced_class(self) -> None:
        introspector = PythonIntrospector(ClassScanner(["submission"]))
        with pytest.raises(ClassNotFoundError, match="found in 'submission.billing'"):
            introspector.introspect("Customer", "submission.model")

    def test_scanner_locates_class_without_package(self) -> None:
        introspector = PythonIntrospector(ClassScanner(["submission"]))
        observed = introspector.introspect("Customer", "")
        assert observed.module == "submission.billing"

    def test_without_package_and_scanner(self) -> None:
        with pytest.raises(ClassNotFoundError):
            PythonIntrospector().introspect("Customer", "")
