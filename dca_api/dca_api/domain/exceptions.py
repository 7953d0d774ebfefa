"""Custom exceptions for dca_api domain.

Only ConfigurationError is meant to abort a whole allocation run. Every
other error class is recovered from somewhere inside the pipeline (next
data tier, fallback indicator, or exclusion of a single asset).
"""


class DcaAPIError(Exception):
    """Base exception for all dca_api errors."""

    pass


# ============================================================================
# Configuration errors
# ============================================================================


class ConfigurationError(DcaAPIError):
    """Raised when the allocation configuration is invalid.

    Examples:
    - Non-positive weekly budget
    - Empty asset list
    - History window too short for MA50 slope
    """

    def __init__(self, message: str, field: str | None = None, value: object = None):
        super().__init__(message)
        self.field = field
        self.value = value


# ============================================================================
# Data errors
# ============================================================================


class DataError(DcaAPIError):
    """Base class for data-related errors."""

    pass


class InsufficientDataError(DataError):
    """Raised when there's not enough data to perform an operation.

    Examples:
    - History shorter than MIN_HISTORY_POINTS
    - Fewer prices than an indicator window
    """

    def __init__(self, message: str, required: int | None = None, available: int | None = None):
        super().__init__(message)
        self.required = required
        self.available = available


class DataValidationError(DataError):
    """Raised when fetched data fails validation.

    Examples:
    - Zero or non-finite price
    - Missing chart result in a Yahoo response
    """

    def __init__(self, message: str, field: str | None = None, value: object = None):
        super().__init__(message)
        self.field = field
        self.value = value


# ============================================================================
# External service errors
# ============================================================================


class ExternalServiceError(DcaAPIError):
    """Base class for external service errors."""

    pass


class FetchError(ExternalServiceError):
    """Raised when data fetching from external service fails.

    Examples:
    - Network error fetching from yfinance
    - Non-2xx response from the Yahoo chart endpoint
    """

    def __init__(self, message: str, service: str, symbol: str | None = None):
        super().__init__(message)
        self.service = service
        self.symbol = symbol


# ============================================================================
# Analysis errors
# ============================================================================


class AnalysisError(DcaAPIError):
    """Raised when a single asset cannot be analysed end to end."""

    def __init__(self, message: str, symbol: str | None = None):
        super().__init__(message)
        self.symbol = symbol


# ============================================================================
# Storage errors
# ============================================================================


class StorageError(DcaAPIError):
    """Base class for storage-related errors."""

    pass


class StorageWriteError(StorageError):
    """Raised when writing a report snapshot fails."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path
