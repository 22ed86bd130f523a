"""
Domain errors shared by services and the API layer.

Validation errors are raised before any store write, so an operation that
raises one has had no side effect.
"""

from __future__ import annotations


class WorkflowValidationError(ValueError):
    """An operation was rejected by a business rule; the message is user-facing."""


class RecordNotFoundError(LookupError):
    """A lead or staff record referenced by an operation does not exist."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} not found: {record_id}")


class PermissionDeniedError(Exception):
    """The acting staff member's role may not perform the operation."""
