"""Exception classes for the history store.

Fatal conditions raise one of these; per-row import problems never do.
"""


class HistDBError(Exception):
    """Base exception for all history store errors."""

    pass


class StoreOpenError(HistDBError):
    """Raised when the backing file cannot be opened or is not a database."""

    pass


class ImportSourceError(HistDBError):
    """Raised when an import source is unopenable or lacks a history table."""

    pass


class QueryOptionsError(HistDBError):
    """Raised when query filter options are invalid."""

    pass
