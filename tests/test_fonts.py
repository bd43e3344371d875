import pathlib, sys
sys.path.append(str(pathlib.Path(__file__).resolve().parent.parent))

from pdf_builder import ASCII_CMAP, cmap
from pdf_content import Page
from pdf_fonts import FontCache, FontDescriptor, FontEncoding, GraphicsState, build_font_cache


def _font(name="ArialMT", to_unicode=ASCII_CMAP, ref=None, encoding=FontEncoding.IDENTITY_H):
    return FontDescriptor(name=name, encoding=encoding, to_unicode=to_unicode, ref=ref)


def test_encoding_from_name():
    assert FontEncoding.from_name("Identity-H") is FontEncoding.IDENTITY_H
    assert FontEncoding.from_name("WinAnsiEncoding") is FontEncoding.OTHER
    assert FontEncoding.from_name(None) is None


def test_add_and_lookup():
    cache = FontCache()
    assert cache.add("F1", _font()) == 0
    info = cache.lookup("F1")
    assert info is not None
    assert info.cmap[0x41] == "A"
    assert info.encoding is FontEncoding.IDENTITY_H
    assert cache.lookup("F2") is None


def test_font_without_to_unicode_is_skipped():
    cache = FontCache()
    assert cache.add("F1", _font(to_unicode=None)) is None
    assert "F1" not in cache
    assert cache.lookup("F1") is None
    assert len(cache) == 0


def test_same_font_object_shares_one_record():
    cache = FontCache()
    font = _font(ref=(7, 0))
    first = cache.add("F1", font)
    second = cache.add("ArialMT", font)
    assert first == second
    assert len(cache) == 1
    assert cache.lookup("F1") is cache.lookup("ArialMT")


def test_distinct_fonts_get_distinct_records():
    cache = FontCache()
    cache.add("F1", _font(ref=(7, 0)))
    cache.add("F2", _font(ref=(8, 0)))
    assert cache.index_of("F1") == 0
    assert cache.index_of("F2") == 1
    assert cache[1] is cache.lookup("F2")


def test_empty_to_unicode_gives_empty_map():
    cache = FontCache()
    cache.add("F1", _font(to_unicode=b""))
    assert cache.lookup("F1").cmap == {}


def test_build_font_cache_keys_graphics_state_fonts_by_base_font():
    courier = _font(
        name="CourierNew",
        to_unicode=cmap(b"1 beginbfchar\n<0041> <0058>\nendbfchar\n"),
    )
    page = Page(
        number=1,
        fonts={"F1": _font()},
        graphics_states={
            "GS1": GraphicsState("GS1", courier),
            "GS2": GraphicsState("GS2", None),
        },
    )
    cache = build_font_cache(page)
    assert "F1" in cache
    assert "CourierNew" in cache
    assert "GS1" not in cache
    assert cache.lookup("CourierNew").cmap == {0x41: "X"}


def test_build_font_cache_skips_nameless_graphics_state_font():
    page = Page(number=1, graphics_states={"GS1": GraphicsState("GS1", _font(name=None))})
    assert len(build_font_cache(page)) == 0
