"""
Custom exception hierarchy for gazette reconciliation.

Only genuine failures live here. An extraction that finds no notices, or a
registry row without a recognisable name column, is normal control flow and
never raises.
"""

from __future__ import annotations


class GazetteMatchError(Exception):
    """Base exception for all reconciliation failures."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.details = details or {}
        super().__init__(message)


class InputValidationError(GazetteMatchError):
    """Required input missing, or thresholds outside [0, 1] / out of order."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("INPUT_INVALID", message, details)


class UnknownModeError(GazetteMatchError):
    """The requested match mode is not one of exact, tokens, fuzzy."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("UNKNOWN_MODE", message, details)


class PersistenceBatchFailure(GazetteMatchError):
    """One upsert batch failed and its transaction was rolled back."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("PERSISTENCE_BATCH_FAILED", message, details)


class StoreUnavailable(GazetteMatchError):
    """The match store could not be opened or its schema created."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("STORE_UNAVAILABLE", message, details)
