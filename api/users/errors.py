"""
User/family failures, kept separable from other runtime errors.
"""

from __future__ import annotations


class UserFamilyError(RuntimeError):
    pass


class ValidationError(UserFamilyError):
    """A field rule failed; storage was not touched."""


class NotFoundError(UserFamilyError):
    pass


class StorageError(UserFamilyError):
    """Constraint violation, connection or transaction failure."""


class SerializationError(UserFamilyError):
    """Stored family JSON could not be decoded."""
