"""Parse ToUnicode CMap streams into a code -> text mapping.

Only the ``bfchar`` and ``bfrange`` blocks carry mappings; every other token
in the CMap program is skipped.  Parsing is tolerant: a block ends as soon as
the next entry does not have the expected shape, and the rest of the stream
is still scanned for further blocks until ``endcmap``.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterator, List, Optional, Tuple

from pdf_errors import FontDecodeError

logger = logging.getLogger(__name__)

Token = Tuple[str, bytes]

_TOKEN_RE = re.compile(
    rb"(?P<comment>%[^\r\n]*)"
    rb"|(?P<delim><<|>>|\[|\]|\{|\})"
    rb"|<(?P<hex>[0-9A-Fa-f\s]*)>"
    rb"|(?P<literal>\()"
    rb"|(?P<name>/[^\s()<>\[\]{}/%]*)"
    rb"|(?P<word>[^\s()<>\[\]{}/%]+)"
)
_WHITESPACE_RE = re.compile(rb"[\s\x00]*")

_ESCAPES = {
    ord("n"): b"\n",
    ord("r"): b"\r",
    ord("t"): b"\t",
    ord("b"): b"\b",
    ord("f"): b"\f",
    ord("("): b"(",
    ord(")"): b")",
    ord("\\"): b"\\",
}


def utf16be_to_string(data: bytes) -> str:
    """Decode a UTF-16BE byte string into text."""
    try:
        return data.decode("utf-16-be")
    except UnicodeDecodeError as exc:
        raise FontDecodeError(
            "invalid UTF-16BE sequence in CMap", {"data": data.hex()}, exc
        ) from exc


def _read_literal(data: bytes, pos: int) -> Tuple[Optional[bytes], int]:
    # pos points just past the opening parenthesis
    out = bytearray()
    depth = 1
    while pos < len(data):
        c = data[pos]
        pos += 1
        if c == 0x5C:  # backslash
            if pos >= len(data):
                break
            e = data[pos]
            pos += 1
            if e in _ESCAPES:
                out += _ESCAPES[e]
            elif 0x30 <= e <= 0x37:
                digits = bytes([e])
                while len(digits) < 3 and pos < len(data) and 0x30 <= data[pos] <= 0x37:
                    digits += data[pos:pos + 1]
                    pos += 1
                out.append(int(digits, 8) & 0xFF)
            elif e == 0x0D:
                if pos < len(data) and data[pos] == 0x0A:
                    pos += 1
            elif e != 0x0A:
                out.append(e)
        elif c == 0x28:
            depth += 1
            out.append(c)
        elif c == 0x29:
            depth -= 1
            if depth == 0:
                return bytes(out), pos
            out.append(c)
        else:
            out.append(c)
    return None, pos


def _tokenize(data: bytes) -> Iterator[Token]:
    pos = 0
    while True:
        pos = _WHITESPACE_RE.match(data, pos).end()
        if pos >= len(data):
            return
        m = _TOKEN_RE.match(data, pos)
        if m is None:
            logger.debug("unreadable CMap data at offset %d, stopping", pos)
            return
        pos = m.end()
        kind = m.lastgroup
        if kind == "comment":
            continue
        if kind == "hex":
            digits = re.sub(rb"\s+", b"", m.group("hex"))
            if len(digits) % 2:
                digits += b"0"
            yield "string", bytes.fromhex(digits.decode("ascii"))
        elif kind == "literal":
            value, pos = _read_literal(data, pos)
            if value is None:
                logger.debug("unterminated literal string in CMap, stopping")
                return
            yield "string", value
        elif kind == "delim":
            yield m.group("delim").decode("ascii"), m.group("delim")
        else:
            yield kind, m.group(kind)


class _TokenStream:
    """Token iterator with one token of lookahead."""

    def __init__(self, data: bytes):
        self._tokens = _tokenize(data)
        self._peeked: Optional[Token] = None

    def peek(self) -> Optional[Token]:
        if self._peeked is None:
            self._peeked = next(self._tokens, None)
        return self._peeked

    def next(self) -> Optional[Token]:
        token = self.peek()
        self._peeked = None
        return token

    def take_string(self) -> Optional[bytes]:
        token = self.peek()
        if token is None or token[0] != "string":
            return None
        self._peeked = None
        return token[1]

    def take_array(self) -> Optional[List[Optional[bytes]]]:
        """Read ``[ ... ]``; entries that are not strings come back as None."""
        token = self.peek()
        if token is None or token[0] != "[":
            return None
        self._peeked = None
        entries: List[Optional[bytes]] = []
        while True:
            token = self.peek()
            if token is None:
                return None
            if token[0] == "]":
                self._peeked = None
                return entries
            if token[0] == "[":
                if self.take_array() is None:
                    return None
                entries.append(None)
                continue
            self._peeked = None
            entries.append(token[1] if token[0] == "string" else None)


def _code(data: bytes) -> int:
    if not 1 <= len(data) <= 2:
        raise FontDecodeError(
            "CMap source code is not 1 or 2 bytes wide", {"code": data.hex()}
        )
    return int.from_bytes(data, "big")


def _insert(cmap: Dict[int, str], code: int, target: bytes) -> None:
    try:
        cmap[code] = utf16be_to_string(target)
    except FontDecodeError as exc:
        logger.debug("skipping CMap entry %04X: %s", code, exc)


def _read_bfchar(tokens: _TokenStream, cmap: Dict[int, str]) -> None:
    while True:
        src = tokens.take_string()
        if src is None:
            return
        dst = tokens.take_string()
        if dst is None:
            return
        _insert(cmap, _code(src), dst)


def _read_bfrange(tokens: _TokenStream, cmap: Dict[int, str]) -> None:
    while True:
        start = tokens.take_string()
        if start is None:
            return
        end = tokens.take_string()
        if end is None:
            return
        start_code, end_code = _code(start), _code(end)

        target = tokens.take_string()
        if target is not None:
            # Only the last byte is bumped; a carry never reaches the
            # preceding bytes and 0xFF wraps to 0x00.
            buf = bytearray(target)
            for code in range(start_code, end_code + 1):
                _insert(cmap, code, bytes(buf))
                if buf:
                    buf[-1] = (buf[-1] + 1) & 0xFF
            continue

        entries = tokens.take_array()
        if entries is None:
            return
        for code, entry in zip(range(start_code, end_code + 1), entries):
            if entry is not None:
                _insert(cmap, code, entry)


def parse_cmap(data: bytes) -> Dict[int, str]:
    """Return the code -> text mapping defined by a ToUnicode CMap stream."""
    logger.debug("parsing ToUnicode CMap (%d bytes)", len(data))
    tokens = _TokenStream(data)
    cmap: Dict[int, str] = {}
    while True:
        token = tokens.next()
        if token is None:
            break
        kind, value = token
        if kind != "word":
            continue
        try:
            if value == b"beginbfchar":
                _read_bfchar(tokens, cmap)
            elif value == b"beginbfrange":
                _read_bfrange(tokens, cmap)
            elif value == b"endcmap":
                break
        except FontDecodeError as exc:
            logger.debug("abandoning CMap block: %s", exc)
    return cmap
