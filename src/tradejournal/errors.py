"""Exception hierarchy for TradeJournal.

All exceptions raised by the package derive from TradeJournalError so
callers can catch the whole family in one place. Field-level problems in
bulk data never raise; they are collected as reasons instead (see
tradejournal.libraries.calculations.results).
"""


class TradeJournalError(Exception):
    """Base class for all TradeJournal errors."""


class ConfigLoadError(TradeJournalError):
    """Raised when a configuration file cannot be read or parsed."""


class TradeValidationError(TradeJournalError):
    """Raised when a single trade submitted to the journal is invalid."""

    def __init__(self, message: str, reason: str = "processing_error", errors: list[str] | None = None):
        super().__init__(message)
        self.reason = reason
        self.errors = errors or [message]


class TradeNotFoundError(TradeJournalError):
    """Raised when a trade id is not present in the journal."""

    def __init__(self, trade_id: str):
        super().__init__(f"Trade not found: {trade_id}")
        self.trade_id = trade_id


class BackendError(TradeJournalError):
    """
    Error reported by a persistence backend.

    Codes follow the PostgreSQL SQLSTATE values the hosted store returns:
    23505 (unique violation), 22003 (numeric out of range) and 22P02
    (invalid text representation, e.g. an unknown enum value).
    """

    UNIQUE_VIOLATION = "23505"
    NUMERIC_OUT_OF_RANGE = "22003"
    INVALID_TEXT_REPRESENTATION = "22P02"
    CONNECTION_FAILED = "08006"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.code = code

    @property
    def category(self) -> str:
        """Human readable classification of the error code."""
        return {
            self.UNIQUE_VIOLATION: "duplicate_key",
            self.NUMERIC_OUT_OF_RANGE: "numeric_overflow",
            self.INVALID_TEXT_REPRESENTATION: "invalid_enum",
            self.CONNECTION_FAILED: "connection",
        }.get(self.code or "", "unknown")


class ImportAlreadyRunningError(TradeJournalError):
    """Raised when an import is started while another is running for the same user."""


class JobNotFoundError(TradeJournalError):
    """Raised when an import job id is unknown."""

    def __init__(self, job_id: str):
        super().__init__(f"Import job not found: {job_id}")
        self.job_id = job_id
