"""Exceptions raised while loading citations."""

from __future__ import annotations


class SourceError(Exception):
    """An upstream request failed (non-2xx status, transport error, bad JSON)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PaginationLimitError(SourceError):
    """The paginator hit its page cap before the API stopped returning cursors."""


class LoadError(Exception):
    """A required source failed, so no table could be produced."""
