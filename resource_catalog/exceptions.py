"""
Exception hierarchy for the resource catalog client.

Exception Hierarchy:
    CatalogError (base)
    ├── UnknownCollectionError
    └── FetchFailedError
        └── PageParseError

Fetch chains never let these escape on their own: a failure is turned into a
``ChainResult`` with ``status="failed"``. Callers that prefer exceptions use
``ChainResult.raise_for_status()``.

Usage:
    from resource_catalog.exceptions import FetchFailedError

    try:
        result.raise_for_status()
    except FetchFailedError as e:
        logger.error(f"Catalog fetch failed: {e}")
"""

from typing import Any, Dict, Optional


class CatalogError(Exception):
    """
    Base exception for all resource catalog errors.

    Attributes:
        message: Human-readable error message
        detail: Optional dict with additional error context
    """

    def __init__(self, message: str, *, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for JSON serialization."""
        result = {
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.detail:
            result["detail"] = self.detail
        return result


class UnknownCollectionError(CatalogError):
    """
    Raised when a collection name is neither ``resources`` nor a vocabulary.

    Examples:
        raise UnknownCollectionError("No such collection", detail={"collection": "authors"})
    """


class FetchFailedError(CatalogError):
    """
    Raised when a page request fails (transport error or non-2xx status).

    Examples:
        raise FetchFailedError("HTTP 502", detail={"collection": "tags", "page": 2})
    """


class PageParseError(FetchFailedError):
    """
    Raised when a page body is not a JSON array of valid records.

    Examples:
        raise PageParseError("Expected a JSON array", detail={"page": 1})
    """
