"""structoracle engine package — oracle-driven structural verification."""

__all__ = [
    "errors",
    "introspect",
    "matchers",
    "oracle",
    "report",
    "scanner",
    "units",
]
