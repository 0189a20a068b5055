"""Exception types raised by the selection core."""

from __future__ import annotations

from dataclasses import dataclass


class SelectError(Exception):
    """Base class for selection core errors."""


class ConfigurationError(SelectError, ValueError):
    """Raised at construction when a required collaborator or policy is missing or invalid."""


class CatalogError(SelectError, TypeError):
    """Raised when records cannot be wrapped into a catalog."""


@dataclass(frozen=True)
class FetchFailed:
    """Recoverable event payload emitted when a remote refresh fails."""

    query: str
    generation: int
    error: BaseException

    def describe(self) -> str:
        return f"refresh #{self.generation} for {self.query!r} failed: {self.error}"


class FetchError(SelectError):
    """Raised by the bundled fetch sources when a remote query cannot be answered."""
