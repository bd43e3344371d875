"""Walk a page's content stream and collect the text it shows."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pdf_errors import PageResourceMissing
from pdf_fonts import FontCache, FontDescriptor, FontEncoding, FontInfo, GraphicsState, build_font_cache

logger = logging.getLogger(__name__)

TEXT_SHOWING = {"Tj", "TJ", "BT"}
LINE_BREAKING = {"Td", "TD", "T*"}


@dataclass
class Operation:
    operator: str
    operands: List[Any] = field(default_factory=list)


@dataclass
class Page:
    """One page as handed over by the PDF object model."""

    number: int
    fonts: Dict[str, FontDescriptor] = field(default_factory=dict)
    graphics_states: Dict[str, GraphicsState] = field(default_factory=dict)
    operations: List[Operation] = field(default_factory=list)


@dataclass
class PageContext:
    """Mutable state of one page scan."""

    page: Page
    fonts: FontCache
    current_font: Optional[int] = None
    out: List[str] = field(default_factory=list)

    @property
    def font(self) -> Optional[FontInfo]:
        if self.current_font is None:
            return None
        return self.fonts[self.current_font]

    def text(self) -> str:
        return "".join(self.out)


def decode_operand(operand: Any, font: FontInfo, out: List[str]) -> None:
    """Append the text of a string (or nested array of strings) operand."""
    if isinstance(operand, list):
        for item in operand:
            decode_operand(item, font, out)
        return
    if not isinstance(operand, (bytes, bytearray)):
        return
    if font.encoding is None:
        return

    cmap = font.cmap
    if font.encoding is FontEncoding.IDENTITY_H:
        for i in range(0, len(operand) - 1, 2):
            text = cmap.get((operand[i] << 8) | operand[i + 1])
            if text is not None:
                out.append(text)
        out.append("\n")
    else:
        for b in operand:
            out.append(cmap.get(b, chr(b)))


def _name_operand(op: Operation, page: Page) -> str:
    if not op.operands or not isinstance(op.operands[0], str):
        raise PageResourceMissing(
            f"{op.operator} operator without a name operand",
            {"page": page.number, "operands": op.operands},
        )
    return op.operands[0]


def _select_graphics_state(ctx: PageContext, op: Operation) -> None:
    name = _name_operand(op, ctx.page)
    gs = ctx.page.graphics_states.get(name)
    if gs is None:
        raise PageResourceMissing(
            "graphics state not found in page resources",
            {"page": ctx.page.number, "name": name},
        )
    if gs.font is not None:
        index = ctx.fonts.index_of(gs.font.name) if gs.font.name is not None else None
        ctx.current_font = index


def run_page(page: Page, fonts: Optional[FontCache] = None) -> str:
    """Interpret ``page``'s operators and return the text they show."""
    ctx = PageContext(page, fonts if fonts is not None else build_font_cache(page))
    for op in page.operations:
        logger.debug("%s %r", op.operator, op.operands)
        if op.operator == "gs":
            _select_graphics_state(ctx, op)
        elif op.operator == "Tf":
            name = _name_operand(op, page)
            ctx.current_font = ctx.fonts.index_of(name)
            if ctx.current_font is None:
                logger.debug("font %s not usable for text, output suspended", name)
        elif op.operator in TEXT_SHOWING:
            font = ctx.font
            if font is not None:
                for operand in op.operands:
                    decode_operand(operand, font, ctx.out)
        elif op.operator in LINE_BREAKING:
            ctx.out.append("\n")
    return ctx.text()
