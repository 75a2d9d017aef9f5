"""Domain-specific errors for gopybind."""

from __future__ import annotations


class GoPyBindError(Exception):
    """Base error for gopybind."""


class ModelError(GoPyBindError):
    """Raised when a package model document is malformed."""


class UnsupportedTypeError(GoPyBindError):
    """Raised (or recorded) when a Go type has no mapping to the CPython ABI."""

    def __init__(self, message: str, *, entity: str = "", go_type: str = "") -> None:
        super().__init__(message)
        self.entity = entity
        self.go_type = go_type


class GenerationError(GoPyBindError):
    """Aggregate of every error recorded during one generation pass."""

    def __init__(self, errors: list[UnsupportedTypeError] | tuple[UnsupportedTypeError, ...]) -> None:
        self.errors = tuple(errors)
        lines = [f"{len(self.errors)} generation error(s):"]
        lines.extend(f"  {e}" for e in self.errors)
        super().__init__("\n".join(lines))
