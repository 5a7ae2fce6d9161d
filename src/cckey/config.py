"""
Keystore configuration.

Settings can be built directly or read from CCKEY_* environment variables.
"""

from __future__ import annotations
import logging
import os
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from .keys.secret import DEFAULT_KDF_ITERATIONS, MAX_KDF_ITERATIONS

STORAGE_KINDS = ("memory", "file", "sqlite")


class ReimportPolicy(Enum):
    """What importing a key that is already stored does."""
    KEEP_EXISTING = "keep-existing"  # leave the stored record untouched
    OVERWRITE = "overwrite"  # replace it with the new encryption, same position


@dataclass
class KeystoreConfig:
    """Configuration for a CCKey instance."""
    storage: str = "memory"
    path: Optional[str] = None
    kdf_iterations: int = DEFAULT_KDF_ITERATIONS
    reimport_policy: ReimportPolicy = ReimportPolicy.KEEP_EXISTING
    log_level: str = "WARNING"

    def __post_init__(self):
        if self.storage not in STORAGE_KINDS:
            raise ValueError(f"Unknown storage kind: {self.storage}")
        if self.storage != "memory" and not self.path:
            raise ValueError(f"Storage kind '{self.storage}' requires a path")
        if not 1 <= self.kdf_iterations <= MAX_KDF_ITERATIONS:
            raise ValueError(f"kdf_iterations must be between 1 and {MAX_KDF_ITERATIONS}, got {self.kdf_iterations}")
        if isinstance(self.reimport_policy, str):
            self.reimport_policy = ReimportPolicy(self.reimport_policy)
        self.log_level = str(self.log_level).upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"Unknown log level: {self.log_level}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> KeystoreConfig:
        """
        Build configuration from environment variables.

        Recognized variables: CCKEY_STORAGE, CCKEY_PATH, CCKEY_KDF_ITERATIONS,
        CCKEY_REIMPORT_POLICY, CCKEY_LOG_LEVEL.
        """
        env = os.environ if environ is None else environ
        iterations = env.get("CCKEY_KDF_ITERATIONS")
        try:
            kdf_iterations = int(iterations) if iterations else DEFAULT_KDF_ITERATIONS
        except ValueError as e:
            raise ValueError(f"CCKEY_KDF_ITERATIONS must be an integer, got {iterations!r}") from e

        return cls(
            storage=env.get("CCKEY_STORAGE", "memory"),
            path=env.get("CCKEY_PATH") or None,
            kdf_iterations=kdf_iterations,
            reimport_policy=ReimportPolicy(env.get("CCKEY_REIMPORT_POLICY", ReimportPolicy.KEEP_EXISTING.value)),
            log_level=env.get("CCKEY_LOG_LEVEL", "WARNING").upper(),
        )


def configure_logging(level: str = "WARNING") -> logging.Logger:
    """Attach a stream handler to the package logger."""
    logger = logging.getLogger("cckey")
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)

    return logger


__all__ = ["KeystoreConfig", "ReimportPolicy", "configure_logging", "STORAGE_KINDS"]
