"""Exceptions raised by the pivot engine.

Every error carries a stable ``code`` and a ``metadata`` dict so callers can
branch on the failure without parsing messages.  Input problems subclass
``ValueError`` as well, so plain ``except ValueError`` keeps working.
"""

from __future__ import annotations

from typing import Any


class PivotError(Exception):
    """Base class for all engine errors."""

    default_code = "PIVOT_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.metadata = dict(metadata or {})


class PivotValidationError(PivotError, ValueError):
    """Caller supplied something the engine cannot accept."""

    default_code = "VALIDATION_ERROR"


class UnknownAggregationError(PivotValidationError):
    default_code = "UNKNOWN_AGGREGATION"


class InvalidFilterError(PivotValidationError):
    default_code = "INVALID_FILTER"


class InvalidConfigurationError(PivotValidationError):
    default_code = "INVALID_CONFIGURATION"


class InvalidRecordError(PivotValidationError):
    default_code = "INVALID_RECORD"


class DataLoadError(PivotError):
    """Remote, file or stream ingestion failed."""

    default_code = "DATA_LOAD_FAILED"
