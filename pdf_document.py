"""Read pages, fonts and content streams out of a PDF with PyPDF2."""

from __future__ import annotations

import io
import logging
from typing import Any, Dict, List, Optional, Tuple

from PyPDF2 import PdfReader
from PyPDF2.generic import (
    ArrayObject,
    ByteStringObject,
    ContentStream,
    DictionaryObject,
    FloatObject,
    IndirectObject,
    NameObject,
    NumberObject,
    StreamObject,
    TextStringObject,
)

from pdf_content import Operation, Page
from pdf_errors import DocumentParseError, FontDecodeError, PageResourceMissing
from pdf_fonts import FontDescriptor, FontEncoding, GraphicsState

logger = logging.getLogger(__name__)


def _name(obj: NameObject) -> str:
    return str(obj)[1:] if str(obj).startswith("/") else str(obj)


def _ref(obj: Any) -> Optional[Tuple[int, int]]:
    if isinstance(obj, IndirectObject):
        return obj.idnum, obj.generation
    return None


def _operand(obj: Any) -> Any:
    """Turn a PyPDF2 operand into plain Python data."""
    if isinstance(obj, ByteStringObject):
        return bytes(obj)
    if isinstance(obj, TextStringObject):
        # PyPDF2 guesses a text encoding for every string; undo it.
        return obj.original_bytes
    if isinstance(obj, NameObject):
        return _name(obj)
    if isinstance(obj, ArrayObject):
        return [_operand(item) for item in obj]
    if isinstance(obj, DictionaryObject):
        return {_name(k): _operand(v) for k, v in obj.items()}
    if isinstance(obj, NumberObject):
        return int(obj)
    if isinstance(obj, FloatObject):
        return float(obj)
    return obj


def _read_to_unicode(font_obj: DictionaryObject, label: str) -> Optional[bytes]:
    if "/ToUnicode" not in font_obj:
        return None
    stream = font_obj["/ToUnicode"].get_object()
    if not isinstance(stream, StreamObject):
        logger.debug("font %s has a non-stream ToUnicode entry, ignored", label)
        return None
    try:
        return stream.get_data()
    except Exception as exc:
        raise FontDecodeError(
            "ToUnicode stream could not be decoded", {"font": label}, exc
        ) from exc


def _font_descriptor(ref: Any, label: str) -> FontDescriptor:
    font_obj = ref.get_object()
    if not isinstance(font_obj, DictionaryObject):
        raise PageResourceMissing("font entry is not a dictionary", {"font": label})

    base_font = font_obj.get("/BaseFont")
    encoding = font_obj.get("/Encoding")
    if isinstance(encoding, IndirectObject):
        encoding = encoding.get_object()
    if encoding is None:
        font_encoding = None
    elif isinstance(encoding, NameObject):
        font_encoding = FontEncoding.from_name(_name(encoding))
    else:
        font_encoding = FontEncoding.OTHER

    try:
        to_unicode = _read_to_unicode(font_obj, label)
    except FontDecodeError as exc:
        # keep the font so its strings fall back to raw byte values
        logger.warning("%s; using an empty map", exc)
        to_unicode = b""

    return FontDescriptor(
        name=_name(base_font) if base_font is not None else None,
        encoding=font_encoding,
        to_unicode=to_unicode,
        ref=_ref(ref),
    )


def _dictionary(obj: Any, what: str, page: int) -> DictionaryObject:
    obj = obj.get_object()
    if not isinstance(obj, DictionaryObject):
        raise PageResourceMissing(f"{what} is not a dictionary", {"page": page})
    return obj


class PageSource:
    """A page of an open document, loaded into plain data on demand."""

    def __init__(self, reader: PdfReader, number: int):
        self.reader = reader
        self.number = number

    def load(self) -> Page:
        page = self.reader.pages[self.number - 1]
        resources = page.get("/Resources")
        if resources is None:
            raise PageResourceMissing("page has no resources", {"page": self.number})
        resources = _dictionary(resources, "page resources", self.number)
        contents = page.get("/Contents")
        if contents is None:
            raise PageResourceMissing("page has no content stream", {"page": self.number})

        fonts: Dict[str, FontDescriptor] = {}
        font_dict = resources.get("/Font")
        if font_dict is not None:
            for name, ref in _dictionary(font_dict, "font resources", self.number).items():
                fonts[_name(name)] = _font_descriptor(ref, _name(name))

        graphics_states: Dict[str, GraphicsState] = {}
        gs_dict = resources.get("/ExtGState")
        if gs_dict is not None:
            for name, gs_ref in _dictionary(gs_dict, "graphics state resources", self.number).items():
                gs_obj = gs_ref.get_object()
                font = None
                selected = gs_obj.get("/Font") if isinstance(gs_obj, DictionaryObject) else None
                if selected is not None:
                    selected = selected.get_object()
                    if not isinstance(selected, ArrayObject) or not selected:
                        raise PageResourceMissing(
                            "graphics state font entry is malformed",
                            {"page": self.number, "name": _name(name)},
                        )
                    font = _font_descriptor(selected[0], _name(name))
                graphics_states[_name(name)] = GraphicsState(_name(name), font)

        try:
            content = ContentStream(contents.get_object(), self.reader)
            operations = [
                Operation(operator.decode("latin-1"), [_operand(o) for o in operands])
                for operands, operator in content.operations
            ]
        except Exception as exc:
            raise PageResourceMissing(
                "page content stream could not be parsed", {"page": self.number}, exc
            ) from exc

        return Page(self.number, fonts, graphics_states, operations)


def open_document(data: bytes) -> List[PageSource]:
    """Open a PDF held in memory and list its pages in document order."""
    try:
        reader = PdfReader(io.BytesIO(data))
        count = len(reader.pages)
    except Exception as exc:
        raise DocumentParseError("could not read PDF structure", {"size": len(data)}, exc) from exc
    logger.debug("opened PDF with %d page(s)", count)
    return [PageSource(reader, number) for number in range(1, count + 1)]
