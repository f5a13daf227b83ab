"""Exception hierarchy shared by the verification engine."""

from __future__ import annotations


class StructOracleError(Exception):
    """Base class for every error raised by structoracle."""


class OracleValidationError(StructOracleError):
    """Raised when an oracle document fails schema or structural validation.

    Attributes:
        errors: List of individual validation error messages.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        bullet_list = "\n  - ".join(errors)
        super().__init__(
            f"Structure oracle validation failed with {len(errors)} error(s):\n  - {bullet_list}"
        )


class OracleConfigurationError(StructOracleError):
    """Raised when the oracle is absent or declares nothing to verify.

    Reported once per run, never per class.
    """


class ClassNotFoundError(StructOracleError):
    """Raised by an introspector when an expected class cannot be resolved.

    Attributes:
        class_name: Simple name of the class the oracle expects.
        package_name: Module path the oracle expects the class in.
    """

    def __init__(self, class_name: str, package_name: str, message: str = "") -> None:
        self.class_name = class_name
        self.package_name = package_name
        super().__init__(
            message
            or f"The class '{class_name}' was not found in '{package_name}'. "
            "Make sure to implement it in the expected module."
        )


class UnitExecutionError(StructOracleError):
    """Raised when a verification unit breaks instead of producing a result.

    The original exception is chained as ``__cause__``.

    Attributes:
        unit_name: Name of the unit that was running, e.g. ``attributes[Order]``.
    """

    def __init__(self, unit_name: str, cause: BaseException) -> None:
        self.unit_name = unit_name
        super().__init__(f"{unit_name} aborted: {type(cause).__name__}: {cause}")
