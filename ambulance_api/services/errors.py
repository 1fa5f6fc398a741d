"""Errors raised by the persistence layer."""

from __future__ import annotations


class PersistenceError(Exception):
    """The document store failed to complete an operation.

    Covers connectivity problems, timeouts and documents that cannot be
    decoded. A missing record is not an error and is reported as ``None``.
    """

    def __init__(self, operation: str, message: str | None = None) -> None:
        self.operation = operation
        super().__init__(message or f"failed to {operation}")

    @property
    def public_message(self) -> str:
        """Message safe to hand back to API clients."""

        return f"Failed to {self.operation}"
