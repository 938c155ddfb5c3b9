"""Custom exception types for optopodi."""


class MetricsError(Exception):
    """Base exception for all recoverable metrics errors."""


class ConfigurationError(MetricsError):
    """Raised when runtime configuration values are missing or invalid."""


class AuthenticationError(MetricsError):
    """Raised when GitHub or Google Sheets credentials are unavailable."""


class ApiError(MetricsError):
    """Raised when a GitHub API request fails or returns an unexpected response."""


class MissingDataError(MetricsError):
    """Raised when an API payload lacks a field that is required at the point of use."""


class PaginationUnsupportedError(MetricsError):
    """Raised when a nested list was only partially retrieved for a pull request."""


class SinkError(MetricsError):
    """Raised when a consumer fails to write or flush its output."""


class RowSchemaError(MetricsError):
    """Raised when a row does not match the column names declared by its producer."""


class ChannelClosed(Exception):
    """Raised on send when the receiving end of a channel has gone away.

    This is not a ``MetricsError``: it is the normal signal that nobody is
    listening any more.
    """
