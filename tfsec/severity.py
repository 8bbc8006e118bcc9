"""Severity levels attached to rules and results."""

from __future__ import annotations

from enum import Enum

__all__ = ["Severity", "valid_severities", "string_to_severity"]


class Severity(str, Enum):
    """How serious a finding is."""

    NONE = ""
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    def is_valid(self) -> bool:
        """Return True for every level except NONE."""
        return self in _VALID

    def ordinal(self) -> int:
        """Rank the level; higher is more severe, NONE ranks lowest."""
        return _ORDINALS.get(self, 0)

    def __str__(self) -> str:
        return self.value


_VALID = (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW)

_ORDINALS = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}

_ALIASES = {
    "ERROR": Severity.HIGH,
    "WARNING": Severity.MEDIUM,
    "INFO": Severity.LOW,
}


def valid_severities() -> list[Severity]:
    """Return the valid levels, most severe first."""
    return list(_VALID)


def string_to_severity(sev: str) -> Severity:
    """Parse a level name, case-insensitively, accepting legacy aliases.

    Unknown names map to ``Severity.NONE``.
    """
    upper = sev.upper()
    if upper in ("CRITICAL", "HIGH", "MEDIUM", "LOW"):
        return Severity(upper)
    return _ALIASES.get(upper, Severity.NONE)