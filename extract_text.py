from __future__ import annotations

import argparse
import logging
import os
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from pdf_content import Page, run_page
from pdf_document import open_document
from pdf_errors import ConfigurationError, DocumentParseError, PageResourceMissing

logger = logging.getLogger(__name__)


def _env_workers() -> int:
    value = os.environ.get("PDF_TEXT_WORKERS", "1")
    try:
        workers = int(value)
    except ValueError:
        workers = 0
    if workers < 1:
        raise ConfigurationError("PDF_TEXT_WORKERS must be a positive integer", {"value": value})
    return workers


# Defaults can be changed through the environment so callers that cannot
# pass arguments (batch jobs, the CLI) still get the behaviour they need.
STRICT_PAGES = os.environ.get("PDF_TEXT_STRICT", "").lower() in ("1", "true", "yes")
MAX_WORKERS = _env_workers()
LOG_LEVEL = os.environ.get("PDF_TEXT_LOG_LEVEL", "WARNING").upper()


@dataclass
class PageWarning:
    page_number: int
    message: str


@dataclass
class ExtractionResult:
    text: str
    warnings: List[PageWarning] = field(default_factory=list)


def _load_pages(data: bytes, strict: bool, warnings: List[PageWarning]) -> List[Optional[Page]]:
    pages: List[Optional[Page]] = []
    for source in open_document(data):
        try:
            pages.append(source.load())
        except PageResourceMissing as exc:
            if strict:
                raise
            logger.warning("skipping page %d: %s", source.number, exc)
            warnings.append(PageWarning(source.number, str(exc)))
            pages.append(None)
    return pages


def _page_text(page: Optional[Page], strict: bool, warnings: List[PageWarning]) -> str:
    if page is None:
        return ""
    try:
        return run_page(page)
    except PageResourceMissing as exc:
        if strict:
            raise
        logger.warning("skipping page %d: %s", page.number, exc)
        warnings.append(PageWarning(page.number, str(exc)))
        return ""


def extract_document(
    data: bytes,
    *,
    strict: Optional[bool] = None,
    max_workers: Optional[int] = None,
) -> ExtractionResult:
    """Extract the text of every page of a PDF, in page order.

    A page whose resources cannot be resolved contributes no text and is
    reported in ``warnings``; with ``strict`` it aborts the whole document
    instead.  ``DocumentParseError`` is always raised for unreadable files.
    """
    strict = STRICT_PAGES if strict is None else strict
    max_workers = MAX_WORKERS if max_workers is None else max_workers

    warnings: List[PageWarning] = []
    pages = _load_pages(data, strict, warnings)

    if max_workers > 1 and len(pages) > 1:
        page_warnings: List[List[PageWarning]] = [[] for _ in pages]
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            texts = list(pool.map(_page_text, pages, [strict] * len(pages), page_warnings))
        for found in page_warnings:
            warnings.extend(found)
    else:
        texts = [_page_text(page, strict, warnings) for page in pages]

    warnings.sort(key=lambda w: w.page_number)
    text = "".join(texts)
    logger.debug("%s", text)
    return ExtractionResult(text, warnings)


def read_pdf(data: bytes) -> str:
    """Return all text shown on the pages of a PDF document."""
    return extract_document(data).text


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        number = 0
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    return number


def _log_level(value: str) -> str:
    level = value.upper()
    if not isinstance(logging.getLevelName(level), int):
        raise argparse.ArgumentTypeError(f"unknown log level {value!r}")
    return level


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        prog="pdf-extract-text",
        description="Print the text shown on the pages of a PDF",
    )
    parser.add_argument("pdf", type=argparse.FileType("rb"))
    parser.add_argument("--strict", action="store_true", default=STRICT_PAGES,
                        help="fail on the first page with unresolved resources")
    parser.add_argument("--workers", type=_positive_int, default=MAX_WORKERS,
                        help="number of threads used to interpret pages")
    parser.add_argument("--log-level", type=_log_level, default=LOG_LEVEL,
                        help="logging level, e.g. DEBUG or WARNING")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    with args.pdf:
        data = args.pdf.read()
    try:
        result = extract_document(data, strict=args.strict, max_workers=args.workers)
    except (DocumentParseError, PageResourceMissing) as exc:
        print(f"error: {Path(args.pdf.name).name}: {exc}", file=sys.stderr)
        raise SystemExit(1)
    sys.stdout.write(result.text)


if __name__ == "__main__":
    main()
