"""Database-specific exceptions for the dashboard."""


class DatabaseError(Exception):
    """Base exception for database operations."""

    pass


class ConnectionError(DatabaseError):
    """Raised when the database cannot be reached."""

    pass


class QueryRejectedError(DatabaseError):
    """Raised when an ad-hoc query is not a read-only statement."""

    pass


class QueryExecutionError(DatabaseError):
    """Raised when an ad-hoc query fails inside the database."""

    pass
