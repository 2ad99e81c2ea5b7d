from __future__ import annotations


class ValidationError(ValueError):
    """Bad input rejected before anything was written."""


class NotFoundError(ValidationError):
    """A referenced record does not exist."""
