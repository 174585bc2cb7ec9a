import pytest

from core.buffer import PlainTextBuffer
from core.document import DecompiledDocument, build_document
from core.model import DecompiledCode, DecompiledLine, LineRecord


def _code(*lines) -> DecompiledCode:
    return DecompiledCode(lines=[DecompiledLine(text, addr) for text, addr in lines])


def _document(*lines) -> DecompiledDocument:
    document = build_document(_code(*lines), PlainTextBuffer())
    assert document is not None
    return document


def test_builder_records_line_starts_and_writes_buffer():
    buffer = PlainTextBuffer()
    document = build_document(_code(("int f()", 0x10), ("{", None), ("", None), ("}", None)), buffer)

    assert buffer.text() == "int f()\n{\n\n}\n"
    assert [record.position for record in document] == [0, 8, 10, 11]
    assert [record.address for record in document] == [0x10, None, None, None]


def test_builder_replaces_previous_buffer_contents():
    buffer = PlainTextBuffer()
    buffer.append_line("stale")
    document = build_document(_code(("x = 1;", 4)), buffer)

    assert buffer.text() == "x = 1;\n"
    assert document[0].position == 0


def test_builder_returns_none_for_empty_result_without_touching_buffer():
    buffer = PlainTextBuffer()
    buffer.append_line("keep me")

    assert build_document(DecompiledCode(), buffer) is None
    assert buffer.text() == "keep me\n"


def test_positions_strictly_increase_even_with_empty_lines():
    document = _document(("", None), ("", None), ("a", 1), ("", None))
    positions = document.positions
    assert all(b > a for a, b in zip(positions, positions[1:]))


def test_document_rejects_non_increasing_positions():
    with pytest.raises(ValueError):
        DecompiledDocument([LineRecord("a", 1, 0), LineRecord("b", 2, 0)])


def test_line_at_resolves_every_position_inside_a_line():
    document = _document(("alpha", 1), ("beta", 2), ("gamma", 3))

    assert document.line_at(0).text == "alpha"
    assert document.line_at(5).text == "alpha"  # the terminator belongs to its line
    assert document.line_at(6).text == "beta"
    assert document.line_at(10).text == "beta"
    assert document.line_at(11).text == "gamma"
    assert document.line_at(500).text == "gamma"


def test_line_at_before_first_line_is_none():
    document = DecompiledDocument([LineRecord("late", 1, 5)])
    assert document.line_at(4) is None
    assert document.index_at(-1) is None
    assert document.address_at(0) is None


def test_line_at_is_idempotent_on_line_start():
    document = _document(("a", 1), ("{", None), ("  bb", 2), ("}", None))
    for position in range(0, 14):
        line = document.line_at(position)
        assert document.line_at(line.position) == line


def test_line_for_address_picks_greatest_address_not_exceeding_target():
    document = _document(("f", 0x10), ("{", None), ("a", 0x14), ("b", 0x20), ("}", None))

    assert document.line_for_address(0x10).text == "f"
    assert document.line_for_address(0x14).text == "a"
    assert document.line_for_address(0x1F).text == "a"
    assert document.line_for_address(0x20).text == "b"
    assert document.line_for_address(0x9999).text == "b"


def test_line_for_address_never_returns_a_later_address():
    document = _document(("f", 0x10), ("{", None), ("a", 0x14), ("a2", 0x14), ("b", 0x20), ("}", None))
    for address in document.addresses():
        line = document.line_for_address(address)
        assert line.address == address


def test_line_for_address_before_first_address_keeps_first_line():
    document = _document(("{", None), ("a", 0x14))
    assert document.index_for_address(0x1) == 0


def test_line_for_address_skips_leading_unaddressed_lines():
    document = _document(("// header", None), ("", None), ("f", 0x10), ("{", None))
    assert document.line_for_address(0x10).text == "f"


def test_line_for_address_without_any_addresses_is_first_line():
    document = _document(("{", None), ("}", None))
    assert document.index_for_address(0x10) == 0
    assert document.line_for_address(0x10).address is None


def test_line_for_address_on_empty_document_is_none():
    assert DecompiledDocument([]).line_for_address(0x10) is None


def test_line_for_address_stops_at_first_larger_address_on_malformed_input():
    # 0x30 appears after 0x40; the scan stops at 0x40 and reports 0x20
    document = _document(("a", 0x20), ("b", 0x40), ("c", 0x30))
    assert document.line_for_address(0x35).text == "a"


def test_run_start_walks_back_over_same_address():
    document = _document(("x", 5), ("y", 5), ("z", 7))
    assert document.run_start(1) == 0
    assert document.run_start(2) == 2
    assert document.address_at(document[1].position + 1) == 5


def test_highlight_indices_include_unaddressed_lines_of_the_run():
    document = _document(("f", 0x10), ("{", None), ("a", 0x14), ("", None), ("b", 0x20))

    assert document.highlight_indices(0x10) == [0, 1]
    assert document.highlight_indices(0x14) == [2, 3]
    assert document.highlight_indices(0x20) == [4]


def test_highlight_indices_empty_when_address_is_not_present():
    document = _document(("f", 0x10), ("a", 0x14))
    assert document.highlight_indices(0x12) == []
