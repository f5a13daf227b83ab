"""Type descriptor introspection — describes submitted classes for matching.

The verification engine never looks at live classes directly.  It asks a
:class:`TypeIntrospector` for an :class:`ObservedClass` snapshot holding the
class's own declared fields and enum constants, and compares the oracle
against that snapshot.

:class:`PythonIntrospector` implements the protocol for Python code:

- fields are the class's own annotated attributes, then its own unannotated
  class-level data attributes (reported as ``static``);
- unannotated ``__slots__`` entries are instance fields of type ``object``;
- ``ClassVar[T]`` adds ``static``, ``Final[T]`` adds ``final``;
- ``Annotated[T, meta, ...]`` contributes the simple name of each metadata
  object as an annotation;
- ``__name`` is ``private``, ``_name`` is ``protected``, public names carry
  no visibility token.

Usage::

    from structoracle.engine.introspect import PythonIntrospector

    introspector = PythonIntrospector()
    observed = introspector.introspect("Order", "shop.model")
    for f in observed.fields:
        print(f.name, f.declared_type_name, sorted(f.modifiers))
"""

from __future__ import annotations

import dataclasses
import enum
import importlib
import inspect
import logging
import re
import types
import typing
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Annotated,
    Any,
    ClassVar,
    Final,
    Protocol,
    Union,
    get_args,
    get_origin,
)

from structoracle.engine.errors import ClassNotFoundError

if TYPE_CHECKING:
    from structoracle.engine.scanner import ClassScanner

LOG = logging.getLogger("structoracle.engine.introspect")

VISIBILITY_PRIVATE = "private"
VISIBILITY_PROTECTED = "protected"
MODIFIER_STATIC = "static"
MODIFIER_FINAL = "final"

_UNION_ORIGINS = (Union, types.UnionType)

# Bookkeeping attributes that typing/abc/collections put into class dicts
_INTERNAL_ATTRIBUTES = frozenset(
    {
        "_abc_impl",
        "_is_protocol",
        "_is_runtime_protocol",
        "_fields",
        "_field_defaults",
    }
)

# Placeholder for bare ``ClassVar`` / ``Final`` whose type comes from the value
_UNSPECIFIED = object()


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ObservedField:
    """One declared (non-inherited) attribute of a submitted class."""

    name: str
    declared_type_name: str
    generic_argument_type_name: str | None = None
    modifiers: frozenset[str] = frozenset()
    annotations: frozenset[str] = frozenset()

    @property
    def is_parameterized(self) -> bool:
        return self.generic_argument_type_name is not None


@dataclass(frozen=True)
class ObservedClass:
    """Snapshot of a submitted class as seen by the matchers."""

    name: str
    module: str
    fields: tuple[ObservedField, ...] = ()
    enum_constants: tuple[str, ...] = ()

    @property
    def is_enum(self) -> bool:
        return bool(self.enum_constants)


# ---------------------------------------------------------------------------
# Protocols / interfaces
# ---------------------------------------------------------------------------


class TypeIntrospector(Protocol):
    """Capability that turns a class identity into an :class:`ObservedClass`.

    Implementations raise :class:`ClassNotFoundError` when the class cannot
    be resolved.
    """

    def introspect(self, class_name: str, package_name: str) -> ObservedClass:
        ...


# ---------------------------------------------------------------------------
# Type naming
# ---------------------------------------------------------------------------


def _simple_name_from_text(text: str) -> str:
    """``"typing.List[int]"`` -> ``"List"``; ``"shop.model.Item"`` -> ``"Item"``."""
    text = text.strip().strip("'\"")
    for bracket in ("[", "<"):
        text = text.split(bracket, 1)[0]
    return text.rsplit(".", 1)[-1].strip()


def _optional_argument(tp: Any) -> Any:
    """Return ``X`` for ``Optional[X]`` / ``X | None``, else ``None``."""
    args = get_args(tp)
    non_none = [a for a in args if a is not type(None)]
    if len(args) == 2 and len(non_none) == 1:
        return non_none[0]
    return None


def simple_type_name(tp: Any) -> str:
    """Reduce a type hint to its simple, package-unaware name."""
    if tp is None or tp is type(None):
        return "None"
    if isinstance(tp, str):
        return _simple_name_from_text(tp)
    if isinstance(tp, typing.ForwardRef):
        return _simple_name_from_text(tp.__forward_arg__)
    origin = get_origin(tp)
    if origin is Annotated:
        return simple_type_name(get_args(tp)[0])
    if origin is not None:
        if origin in _UNION_ORIGINS:
            return "Optional" if _optional_argument(tp) is not None else "Union"
        alias_name = getattr(tp, "_name", None)
        if alias_name:
            return alias_name
        return simple_type_name(origin)
    name = getattr(tp, "__name__", None)
    if isinstance(name, str) and name:
        return name
    alias_name = getattr(tp, "_name", None)
    if alias_name:
        return alias_name
    return _simple_name_from_text(repr(tp))


def generic_argument_name(tp: Any) -> str | None:
    """Simple name of the first type argument, or ``None`` if not parameterized."""
    if isinstance(tp, (str, typing.ForwardRef)):
        text = tp if isinstance(tp, str) else tp.__forward_arg__
        return _describe_text(text)[1]
    origin = get_origin(tp)
    if origin is None:
        return None
    if origin is Annotated:
        return generic_argument_name(get_args(tp)[0])
    if origin in _UNION_ORIGINS:
        inner = _optional_argument(tp)
        if inner is not None:
            return simple_type_name(inner)
    args = get_args(tp)
    if not args:
        return None
    return simple_type_name(args[0])


def annotation_name(meta: Any) -> str:
    """Simple name of an ``Annotated`` metadata object.

    Classes and functions are named by themselves, strings are taken as the
    annotation name (a leading ``@`` is dropped), anything else is named by
    its type.
    """
    if isinstance(meta, str):
        return meta.strip().lstrip("@")
    if inspect.isclass(meta) or inspect.isroutine(meta):
        return meta.__name__
    return type(meta).__name__


# ---------------------------------------------------------------------------
# Textual descriptions (unresolvable string annotations)
# ---------------------------------------------------------------------------

_WRAPPER_RE = re.compile(
    r"^(?:typing\.|typing_extensions\.)?(ClassVar|Final|Annotated)\s*\[(.*)\]$",
    re.DOTALL,
)


def _split_top_level(text: str, separator: str = ",") -> list[str]:
    """Split *text* on *separator* outside of brackets and parentheses."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in text:
        if ch in "[(<":
            depth += 1
        elif ch in "])>":
            depth -= 1
        if ch == separator and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    parts.append("".join(current).strip())
    return [p for p in parts if p]


def _describe_text(
    text: str,
) -> tuple[str, str | None, frozenset[str], frozenset[str]]:
    """Describe an annotation that is only available as source text.

    Returns ``(declared_type_name, generic_argument, modifiers, annotations)``.
    """
    text = text.strip().strip("'\"")
    modifiers: set[str] = set()
    annotations: set[str] = set()

    while True:
        m = _WRAPPER_RE.match(text)
        if not m:
            break
        wrapper, inner = m.group(1), m.group(2)
        if wrapper == "ClassVar":
            modifiers.add(MODIFIER_STATIC)
            text = inner.strip()
        elif wrapper == "Final":
            modifiers.add(MODIFIER_FINAL)
            text = inner.strip()
        else:
            parts = _split_top_level(inner)
            text = parts[0] if parts else "object"
            for meta in parts[1:]:
                annotations.add(_simple_name_from_text(meta.split("(", 1)[0]).lstrip("@"))

    union_parts = _split_top_level(text, "|")
    if len(union_parts) > 1:
        non_none = [p for p in union_parts if p != "None"]
        if len(union_parts) == 2 and len(non_none) == 1:
            return (
                "Optional",
                _simple_name_from_text(non_none[0]),
                frozenset(modifiers),
                frozenset(annotations),
            )
        return (
            "Union",
            _simple_name_from_text(union_parts[0]),
            frozenset(modifiers),
            frozenset(annotations),
        )

    declared = _simple_name_from_text(text)
    generic: str | None = None
    if "[" in text and text.endswith("]"):
        args = _split_top_level(text[text.index("[") + 1 : -1])
        if args:
            generic = _simple_name_from_text(args[0])
    return declared, generic, frozenset(modifiers), frozenset(annotations)


# ---------------------------------------------------------------------------
# Field description
# ---------------------------------------------------------------------------


def _peel(hint: Any) -> tuple[Any, set[str], set[str]]:
    """Strip ``Annotated`` / ``ClassVar`` / ``Final`` wrappers off *hint*."""
    modifiers: set[str] = set()
    annotations: set[str] = set()
    while not isinstance(hint, (str, typing.ForwardRef)):
        origin = get_origin(hint)
        if origin is Annotated:
            args = get_args(hint)
            annotations.update(annotation_name(meta) for meta in args[1:])
            hint = args[0]
        elif origin is ClassVar or hint is ClassVar:
            modifiers.add(MODIFIER_STATIC)
            args = get_args(hint)
            hint = args[0] if args else _UNSPECIFIED
        elif origin is Final or hint is Final:
            modifiers.add(MODIFIER_FINAL)
            args = get_args(hint)
            hint = args[0] if args else _UNSPECIFIED
        else:
            break
    return hint, modifiers, annotations


def visibility_of(name: str) -> str | None:
    """Visibility token implied by a Python attribute name."""
    if name.startswith("__") and name.endswith("__"):
        return None
    if name.startswith("__"):
        return VISIBILITY_PRIVATE
    if name.startswith("_"):
        return VISIBILITY_PROTECTED
    return None


def _demangle(cls: type, name: str) -> str:
    """Undo private name mangling: ``_Order__total`` -> ``__total``."""
    prefix = "_" + cls.__name__.lstrip("_") + "__"
    if name.startswith(prefix) and len(name) > len(prefix):
        return "__" + name[len(prefix) :]
    return name


def _own_annotations(cls: type) -> dict[str, Any]:
    try:
        return dict(inspect.get_annotations(cls))
    except NameError:
        # Lazily evaluated annotations that reference undefined names
        annotation_format = getattr(inspect, "Format", None)
        if annotation_format is None:
            raise
        return dict(inspect.get_annotations(cls, format=annotation_format.FORWARDREF))


def _resolved_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls, include_extras=True)
    except (NameError, TypeError, SyntaxError) as exc:
        LOG.warning(
            "Cannot resolve type hints of %s.%s (%s); falling back to raw annotations",
            cls.__module__,
            cls.__qualname__,
            exc,
        )
        return {}


def _is_data_attribute(cls: type, name: str, value: Any) -> bool:
    if name.startswith("__") and name.endswith("__"):
        return False
    if len(name) > 2 and name.startswith("_") and name.endswith("_"):
        return False
    if name in _INTERNAL_ATTRIBUTES:
        return False
    if inspect.isroutine(value) or inspect.isclass(value):
        return False
    if hasattr(type(value), "__get__"):
        return False
    if isinstance(cls, enum.EnumMeta) and isinstance(value, cls):
        return False
    return True


def describe_field(cls: type, raw_name: str, hint: Any) -> ObservedField:
    """Build an :class:`ObservedField` from one class-level annotation."""
    name = _demangle(cls, raw_name)
    if isinstance(hint, (str, typing.ForwardRef)):
        text = hint if isinstance(hint, str) else hint.__forward_arg__
        declared, generic, modifiers, annotations = _describe_text(text)
        mods = set(modifiers)
        anns = set(annotations)
    else:
        core, mods, anns = _peel(hint)
        if core is _UNSPECIFIED:
            default = cls.__dict__.get(raw_name, _UNSPECIFIED)
            core = object if default is _UNSPECIFIED else type(default)
        if isinstance(core, (str, typing.ForwardRef)):
            text = core if isinstance(core, str) else core.__forward_arg__
            declared, generic, _, _ = _describe_text(text)
        else:
            declared = simple_type_name(core)
            generic = generic_argument_name(core)

    visibility = visibility_of(name)
    if visibility:
        mods.add(visibility)
    return ObservedField(
        name=name,
        declared_type_name=declared,
        generic_argument_type_name=generic,
        modifiers=frozenset(mods),
        annotations=frozenset(anns),
    )


def _own_slots(cls: type) -> tuple[str, ...]:
    slots = cls.__dict__.get("__slots__", ())
    if isinstance(slots, str):
        return (slots,)
    return tuple(slots)


def describe_class(cls: type) -> ObservedClass:
    """Snapshot *cls*'s own fields and enum constants."""
    raw_annotations = _own_annotations(cls)
    hints = _resolved_hints(cls)

    fields: list[ObservedField] = []
    for raw_name, raw_hint in raw_annotations.items():
        hint = hints.get(raw_name, raw_hint)
        if hint is dataclasses.KW_ONLY:
            continue
        fields.append(describe_field(cls, raw_name, hint))

    # Unannotated __slots__ entries are instance fields of unknown type
    declared = {_demangle(cls, raw_name) for raw_name in raw_annotations}
    for name in _own_slots(cls):
        if name in declared or name in ("__dict__", "__weakref__"):
            continue
        visibility = visibility_of(name)
        fields.append(
            ObservedField(
                name=name,
                declared_type_name="object",
                modifiers=frozenset({visibility}) if visibility else frozenset(),
            )
        )

    for raw_name, value in vars(cls).items():
        if raw_name in raw_annotations or not _is_data_attribute(cls, raw_name, value):
            continue
        name = _demangle(cls, raw_name)
        mods = {MODIFIER_STATIC}
        visibility = visibility_of(name)
        if visibility:
            mods.add(visibility)
        fields.append(
            ObservedField(
                name=name,
                declared_type_name=type(value).__name__,
                modifiers=frozenset(mods),
            )
        )

    enum_constants: tuple[str, ...] = ()
    if isinstance(cls, enum.EnumMeta):
        # Zero and multi-bit Flag members included, aliases dropped
        enum_constants = tuple(
            name for name, member in cls.__members__.items() if member.name == name
        )

    return ObservedClass(
        name=cls.__name__,
        module=cls.__module__,
        fields=tuple(fields),
        enum_constants=enum_constants,
    )


def _is_module_or_parent(missing: str | None, module_name: str) -> bool:
    """True when *missing* is *module_name* itself or one of its packages."""
    if not missing:
        return False
    return module_name == missing or module_name.startswith(missing + ".")


def _import_failure(class_name: str, module_name: str, exc: BaseException) -> str:
    return (
        f"The class '{class_name}' could not be loaded because the module "
        f"'{module_name}' failed to import: {type(exc).__name__}: {exc}"
    )


# ---------------------------------------------------------------------------
# Introspector
# ---------------------------------------------------------------------------


class PythonIntrospector:
    """Introspects classes of an importable Python submission.

    Parameters
    ----------
    scanner:
        Optional :class:`~structoracle.engine.scanner.ClassScanner` consulted
        when a class is not where the oracle expects it.  The scan result
        explains the failure (misplaced, wrong case, typo, ...) and, for an
        oracle entry without a package, locates the class.
    """

    def __init__(self, scanner: ClassScanner | None = None) -> None:
        self._scanner = scanner

    def describe(self, cls: type) -> ObservedClass:
        return describe_class(cls)

    def introspect(self, class_name: str, package_name: str) -> ObservedClass:
        cls, detail = self._import_class(class_name, package_name)
        if cls is None and not detail and self._scanner is not None:
            scan = self._scanner.scan(class_name, package_name)
            if scan.observed_class is None:
                raise ClassNotFoundError(class_name, package_name, scan.message())
            cls = scan.observed_class
        if cls is None:
            raise ClassNotFoundError(class_name, package_name, detail)
        LOG.debug("Introspecting %s.%s", cls.__module__, cls.__qualname__)
        return self.describe(cls)

    def _import_class(self, class_name: str, package_name: str) -> tuple[type | None, str]:
        if not package_name:
            return None, ""
        try:
            module = importlib.import_module(package_name)
        except ModuleNotFoundError as exc:
            if _is_module_or_parent(exc.name, package_name):
                LOG.debug("Module %s not found: %s", package_name, exc)
                return None, ""
            LOG.warning("Importing %s failed: %s", package_name, exc)
            return None, _import_failure(class_name, package_name, exc)
        except Exception as exc:
            LOG.warning("Importing %s failed: %s", package_name, exc)
            return None, _import_failure(class_name, package_name, exc)
        candidate = getattr(module, class_name, None)
        if not inspect.isclass(candidate):
            return None, ""
        return candidate, ""
