"""structoracle package — grades submitted class structure against a structure oracle."""

__version__ = "0.1.0"

__all__ = [
    "cli",
    "config",
    "engine",
    "error_report",
]
