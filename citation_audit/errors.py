"""
Exception types raised by the citation audit engine.
"""


class CitationAuditError(Exception):
    """Base class for all citation audit errors."""


class ProviderError(CitationAuditError):
    """
    Transient failure talking to the listing provider (network error, HTTP error,
    unsuccessful or incomplete response). The audit run is left untouched and
    the next scheduled poll retries it.
    """


class AuditDataError(CitationAuditError):
    """
    Data needed for reconciliation is missing or malformed, e.g. the location's
    authoritative record was deleted or a provider listing has no source.
    """


class AuditStateError(CitationAuditError):
    """An operation was called on an audit run in the wrong lifecycle state."""
