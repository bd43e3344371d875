from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from tounicode import parse_cmap

if TYPE_CHECKING:
    from pdf_content import Page

logger = logging.getLogger(__name__)


class FontEncoding(enum.Enum):
    """How the bytes of a shown string map to character codes."""

    IDENTITY_H = "Identity-H"  # two bytes per code, big-endian
    OTHER = "Other"  # one byte per code

    @classmethod
    def from_name(cls, name: Optional[str]) -> Optional["FontEncoding"]:
        if name is None:
            return None
        return cls.IDENTITY_H if name == "Identity-H" else cls.OTHER


@dataclass(frozen=True)
class FontDescriptor:
    """What the page's font dictionary tells us about one font."""

    name: Optional[str]  # BaseFont
    encoding: Optional[FontEncoding] = None
    to_unicode: Optional[bytes] = None
    ref: Optional[Tuple[int, int]] = None


@dataclass(frozen=True)
class GraphicsState:
    name: str
    font: Optional[FontDescriptor] = None


@dataclass(frozen=True)
class FontInfo:
    font: FontDescriptor
    cmap: Dict[int, str] = field(default_factory=dict)

    @property
    def encoding(self) -> Optional[FontEncoding]:
        return self.font.encoding


class FontCache:
    """Fonts usable on one page, keyed by the names the content stream uses.

    Records live in an arena and names resolve to arena indices, so a font
    reachable under two names is decoded once.
    """

    def __init__(self) -> None:
        self._fonts: List[FontInfo] = []
        self._names: Dict[str, int] = {}
        self._refs: Dict[Tuple[int, int], int] = {}

    def add(self, name: str, font: FontDescriptor) -> Optional[int]:
        """Decode ``font``'s ToUnicode map and register it under ``name``.

        Fonts without a ToUnicode stream are skipped and None is returned.
        """
        if font.to_unicode is None:
            logger.debug("font %s (%s) has no ToUnicode map, skipped", name, font.name)
            return None
        index = self._refs.get(font.ref) if font.ref is not None else None
        if index is None:
            index = len(self._fonts)
            self._fonts.append(FontInfo(font, parse_cmap(font.to_unicode)))
            if font.ref is not None:
                self._refs[font.ref] = index
        self._names[name] = index
        return index

    def index_of(self, name: str) -> Optional[int]:
        return self._names.get(name)

    def lookup(self, name: str) -> Optional[FontInfo]:
        index = self._names.get(name)
        return None if index is None else self._fonts[index]

    def __getitem__(self, index: int) -> FontInfo:
        return self._fonts[index]

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __len__(self) -> int:
        return len(self._fonts)


def build_font_cache(page: "Page") -> FontCache:
    """Register every font the page can select, before any operator runs.

    Resource fonts go in under their resource name; fonts picked through a
    graphics state go in under their own BaseFont name, which is what ``gs``
    looks them up by.
    """
    cache = FontCache()
    for name, font in page.fonts.items():
        cache.add(name, font)
    for gs in page.graphics_states.values():
        if gs.font is None:
            continue
        if gs.font.name is None:
            logger.warning("graphics state %s selects a font without BaseFont", gs.name)
            continue
        cache.add(gs.font.name, gs.font)
    return cache
