"""Validation adapters for method inputs and outputs."""

from __future__ import annotations

from .apply import apply_validator
from .pydantic import PydanticValidator, collect_errors

__all__ = [
    "PydanticValidator",
    "apply_validator",
    "collect_errors",
]
