"""Enrollment access policy."""

from .gate import (
    AccessDecision,
    AccessGate,
    Allowed,
    Denied,
    LevelLocked,
    PaymentRequired,
    evaluate_access,
)


__all__ = [
    "AccessDecision",
    "AccessGate",
    "Allowed",
    "Denied",
    "LevelLocked",
    "PaymentRequired",
    "evaluate_access",
]
