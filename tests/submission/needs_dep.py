"""Module whose own import of a third-party dependency fails."""

import not_installed_dependency_xyz  # noqa: F401


class Ledger:
    balance: float
