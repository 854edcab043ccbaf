"""Data layer error hierarchy.

Errors raised by the database driver itself (connection refused,
constraint violations, SQL syntax) are not wrapped; they reach the
caller as the driver raised them.
"""

from callie.errors import CallieError


class DataError(CallieError):
    """Base for all callie.data errors."""


class DriverNotInstalledError(DataError):
    """Raised when the required database driver is not installed."""


class QueryBuilderError(DataError, ValueError):
    """Raised when a query cannot be built, before anything is sent to the database.

    Empty insert/update payloads, ``insert_many`` rows with different
    columns, unknown operators or sort directions.
    """
