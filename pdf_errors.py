"""Errors raised while pulling text out of PDF page content."""

from __future__ import annotations

from typing import Any, Dict, Optional


class ExtractionError(Exception):
    """Something in the document stopped text extraction.

    ``details`` names the page, font or resource involved and ``cause`` keeps
    the PyPDF2 or codec error that triggered it, if any.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})
        self.cause = cause

    def __str__(self) -> str:
        where = " ".join(f"{key}={value!r}" for key, value in sorted(self.details.items()))
        return f"{self.message} [{where}]" if where else self.message


class DocumentParseError(ExtractionError):
    """The PDF structure could not be read at all."""


class PageResourceMissing(ExtractionError):
    """A page lacks resources or content, or names something it does not define."""


class FontDecodeError(ExtractionError):
    """A font's ToUnicode data or encoding could not be decoded."""


class ConfigurationError(ExtractionError):
    """An environment setting has a value that cannot be used."""
