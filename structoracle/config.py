"""Runtime configuration for the structoracle CLI.

Values come from the environment and may be overridden by command-line
flags.  The engine itself never reads the environment; it receives a parsed
oracle and an introspector explicitly.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from typing import Optional, Tuple

LOG = logging.getLogger("structoracle.config")

DEFAULT_ORACLE_PATH = "test.json"
DEFAULT_LOG_LEVEL = "INFO"

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclasses.dataclass(frozen=True)
class VerifierConfig:
    oracle_path: str
    root_packages: Tuple[str, ...]
    log_level: str

    @staticmethod
    def from_env() -> "VerifierConfig":
        def _level(name: str, default: str) -> str:
            raw = os.getenv(name, default)
            value = raw.strip().upper()
            if value not in _LOG_LEVELS:
                LOG.warning("Invalid %s=%r; using %s", name, raw, default)
                return default
            return value

        roots = os.getenv("STRUCTORACLE_ROOT_PACKAGE", "")
        return VerifierConfig(
            oracle_path=os.getenv("STRUCTORACLE_ORACLE_PATH", DEFAULT_ORACLE_PATH),
            root_packages=tuple(r.strip() for r in roots.split(",") if r.strip()),
            log_level=_level("STRUCTORACLE_LOG_LEVEL", DEFAULT_LOG_LEVEL),
        )

    def with_overrides(
        self,
        *,
        oracle_path: Optional[str] = None,
        root_packages: Optional[Tuple[str, ...]] = None,
        verbose: bool = False,
    ) -> "VerifierConfig":
        """Return a copy with command-line values applied on top."""
        return dataclasses.replace(
            self,
            oracle_path=oracle_path or self.oracle_path,
            root_packages=root_packages or self.root_packages,
            log_level="DEBUG" if verbose else self.log_level,
        )
