"""Liveness and readiness probes."""

from src.health.router import router


__all__ = ["router"]
