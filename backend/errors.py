"""
errors.py — Exception taxonomy shared by services, stores and routes.
Routes translate these into HTTPException (400 for validation, 500 for store).
"""


class ValidationError(ValueError):
    """Request data is missing or out of range."""


class StoreError(Exception):
    """Any read or write against the data store failed."""


class LookupFailed(StoreError):
    """A row the caller depends on could not be read."""


class MatchWriteFailed(StoreError):
    """Partner linking failed part-way; the requester's link was cleared."""
