"""Exception hierarchy shared by the stores, services and scheduler."""


class RecallError(Exception):
    """Base class for all errors raised by recall."""


class ValidationError(RecallError, ValueError):
    """A required input is missing or malformed."""


class NotFoundError(RecallError, LookupError):
    """An operation referenced an unknown record id or job name."""


class ParseError(RecallError, ValueError):
    """An LLM response did not match the expected JSON shape."""


class ExternalServiceError(RecallError):
    """An embedding or completion call failed."""


class StorageError(RecallError):
    """A backing store file could not be read or written."""


class ScheduleError(RecallError):
    """A cron expression has no match within the search horizon."""


class JobError(RecallError):
    """A scheduled job reported an unsuccessful result."""
