# ABOUTME: Error taxonomy for the harvest pipeline with a closed set of error kinds
# ABOUTME: Every error carries structured context (field, entry id, cause) for per-entry reporting

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure kinds the pipeline dispatches on."""

    API = "api"
    MAPPING = "mapping"
    VALIDATION = "validation"
    POLICY = "policy"
    FATAL = "fatal"


RECOVERABLE_KINDS = frozenset({ErrorKind.API, ErrorKind.MAPPING})


class HarvestError(Exception):
    """Base exception for all harvest failures."""

    kind: ErrorKind = ErrorKind.FATAL

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        entry_id: str | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.field = field
        self.entry_id = entry_id
        self.cause = cause

    @property
    def recoverable(self) -> bool:
        """Whether a fresh attempt at the same entry could plausibly succeed."""
        return self.kind in RECOVERABLE_KINDS

    def with_entry(self, entry_id: str) -> "HarvestError":
        """Attach the entry id if the raiser did not know it."""
        if self.entry_id is None:
            self.entry_id = entry_id
        return self


class ApiError(HarvestError):
    """Raised when the content API cannot be reached or returns an unusable response."""

    kind = ErrorKind.API


class MappingError(HarvestError):
    """Raised when a required field cannot be extracted from a payload."""

    kind = ErrorKind.MAPPING

    def __init__(
        self,
        field: str,
        reason: str,
        *,
        entry_id: str | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(f"{field}: {reason}", field=field, entry_id=entry_id, cause=cause)
        self.reason = reason


class ValidationError(HarvestError):
    """Raised when a mapped record violates structural invariants."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, errors: list[str] | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = list(errors or [])


class PolicyError(HarvestError):
    """Raised after a completed run whose success rate is below the accepted minimum."""

    kind = ErrorKind.POLICY

    def __init__(self, message: str, success_rate: float, min_success_rate: float, failed_ids: list[str]):
        super().__init__(message)
        self.success_rate = success_rate
        self.min_success_rate = min_success_rate
        self.failed_ids = failed_ids


class FatalEntryError(HarvestError):
    """Raised for entries that can never be processed, such as an entry without an id."""

    kind = ErrorKind.FATAL


class UnrecognizedValueError(ValueError):
    """Raised by scalar normalization for values that are neither numeric nor a placeholder."""

    def __init__(self, raw: object):
        super().__init__(f"Unrecognized value: {raw!r}")
        self.raw = raw
