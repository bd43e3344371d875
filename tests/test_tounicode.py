import pathlib, sys
sys.path.append(str(pathlib.Path(__file__).resolve().parent.parent))

import pytest

from pdf_builder import cmap
from pdf_errors import FontDecodeError
from tounicode import parse_cmap, utf16be_to_string


def test_bfchar():
    result = parse_cmap(cmap(b"1 beginbfchar\n<0041> <0041>\nendbfchar\n"))
    assert result == {0x41: "A"}


def test_bfrange_single_string_increments():
    result = parse_cmap(cmap(b"1 beginbfrange\n<0041> <0043> <0041>\nendbfrange\n"))
    assert result == {0x41: "A", 0x42: "B", 0x43: "C"}


def test_bfrange_array_form():
    result = parse_cmap(
        cmap(b"1 beginbfrange\n<0041> <0043> [<0041> <0042> <0043>]\nendbfrange\n")
    )
    assert result == {0x41: "A", 0x42: "B", 0x43: "C"}


def test_bfrange_array_entries_decoded_independently():
    result = parse_cmap(
        cmap(b"1 beginbfrange\n<0001> <0003> [<0066> <00660069> <0410>]\nendbfrange\n")
    )
    assert result == {1: "f", 2: "fi", 3: "А"}


def test_bfrange_array_skips_non_string_entries():
    result = parse_cmap(
        cmap(b"1 beginbfrange\n<0041> <0043> [<0041> /bogus <0043>]\nendbfrange\n")
    )
    assert result == {0x41: "A", 0x43: "C"}


def test_bfrange_increment_touches_last_byte_only():
    result = parse_cmap(cmap(b"1 beginbfrange\n<0010> <0012> <04FE>\nendbfrange\n"))
    # 0x04FF wraps to 0x0400, not 0x0500
    assert result == {0x10: "Ӿ", 0x11: "ӿ", 0x12: "Ѐ"}


def test_bfrange_start_after_end_maps_nothing():
    result = parse_cmap(cmap(b"1 beginbfrange\n<0043> <0041> <0041>\nendbfrange\n"))
    assert result == {}


def test_multi_character_target():
    result = parse_cmap(cmap(b"1 beginbfchar\n<0001> <00660066>\nendbfchar\n"))
    assert result[1] == "ff"


def test_several_blocks_and_last_write_wins():
    body = (
        b"2 beginbfchar\n<0041> <0058>\n<0042> <0042>\nendbfchar\n"
        b"1 beginbfrange\n<0041> <0041> <0041>\nendbfrange\n"
    )
    assert parse_cmap(cmap(body)) == {0x41: "A", 0x42: "B"}


def test_blocks_after_endcmap_ignored():
    data = cmap(b"1 beginbfchar\n<0041> <0041>\nendbfchar\n")
    data += b"1 beginbfchar\n<0042> <0042>\nendbfchar\n"
    assert parse_cmap(data) == {0x41: "A"}


def test_incomplete_pair_abandons_block_only():
    body = (
        b"2 beginbfchar\n<0041> <0041>\n<0042> endbfchar\n"
        b"1 beginbfrange\n<0061> <0062> <0061>\nendbfrange\n"
    )
    assert parse_cmap(cmap(body)) == {0x41: "A", 0x61: "a", 0x62: "b"}


def test_wide_code_abandons_block():
    body = (
        b"2 beginbfchar\n<010203> <0041>\n<0042> <0042>\nendbfchar\n"
        b"1 beginbfchar\n<0043> <0043>\nendbfchar\n"
    )
    assert parse_cmap(cmap(body)) == {0x43: "C"}


def test_invalid_utf16_entry_skipped():
    body = b"2 beginbfchar\n<0041> <D800>\n<0042> <0042>\nendbfchar\n"
    assert parse_cmap(cmap(body)) == {0x42: "B"}


def test_single_byte_codes():
    result = parse_cmap(cmap(b"1 beginbfchar\n<41> <0410>\nendbfchar\n"))
    assert result == {0x41: "А"}


def test_literal_strings_and_comments():
    body = (
        b"% glyphs from the statement font\n"
        b"2 beginbfchar\n(\\000A) <0041>\n<00 4 2> (\\000B)\nendbfchar\n"
    )
    assert parse_cmap(cmap(body)) == {0x41: "A", 0x42: "B"}


def test_unterminated_data_is_tolerated():
    data = b"begincmap\n1 beginbfchar\n<0041> <0041>\n<0042> <00"
    assert parse_cmap(data) == {0x41: "A"}


def test_empty_stream():
    assert parse_cmap(b"") == {}


def test_utf16be_to_string():
    assert utf16be_to_string(b"\x04\x10\x00A") == "АA"
    assert utf16be_to_string(b"\xd8\x3d\xde\x00") == "\U0001F600"


def test_utf16be_to_string_rejects_odd_length():
    with pytest.raises(FontDecodeError):
        utf16be_to_string(b"\x00")
