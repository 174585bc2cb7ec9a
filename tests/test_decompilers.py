import json
from pathlib import Path

import pytest

from core.decompilers import (
    AnnotatedListingDecompiler,
    DecompilerError,
    DecompilerRegistry,
    ListingDecompiler,
    create_default_registry,
    load_listing,
)
from core.model import DecompiledLine


def _write_listing(path: Path, data: dict) -> Path:
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


def _listing_data(**overrides) -> dict:
    data = {
        "schema_version": 1,
        "name": "tiny",
        "functions": [
            {
                "name": "f",
                "address": "0x100",
                "lines": [
                    {"text": "void f(void)", "address": "0x100"},
                    "{",
                    {"text": "    g();", "address": 264},
                    "}",
                ],
            }
        ],
    }
    data.update(overrides)
    return data


def test_bundled_sample_listing_loads(sample_listing_path):
    listing = load_listing(sample_listing_path)

    assert listing.name == "sample"
    assert [function.name for function in listing.functions] == ["sum_array", "main", "data_blob"]
    assert listing.function_containing(0x1044).name == "main"
    assert listing.function_containing(0x3000) is None


def test_listing_parses_hex_and_integer_addresses(tmp_path):
    listing = load_listing(_write_listing(tmp_path / "tiny.json", _listing_data()))
    function = listing.functions[0]

    assert function.address == 0x100
    assert function.lines[1] == DecompiledLine("{", None)
    assert function.lines[2].address == 0x108
    # size defaults to the span of the line addresses
    assert function.size == 9
    assert function.contains(0x108)
    assert not function.contains(0x109)


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"schema_version": 2}, "Unsupported schema_version"),
        ({"schema_version": "1"}, "schema_version must be an integer"),
        ({"name": ""}, "name is required"),
        ({"functions": {}}, "functions must be an array"),
        ({"functions": [{"name": "f", "address": "zz", "lines": []}]}, "not a valid address"),
        ({"functions": [{"name": "f", "address": 1, "lines": [{"text": "a\nb"}]}]}, "single-line"),
        ({"functions": [{"name": "f", "address": 1, "size": 0, "lines": []}]}, "size must be a positive"),
        (
            {"functions": [{"name": "f", "address": 1, "lines": []}, {"name": "f", "address": 9, "lines": []}]},
            "Duplicate function",
        ),
    ],
)
def test_invalid_listings_are_rejected(tmp_path, overrides, message):
    path = _write_listing(tmp_path / "bad.json", _listing_data(**overrides))
    with pytest.raises(DecompilerError) as excinfo:
        load_listing(path)
    assert message in excinfo.value.message


def test_missing_and_malformed_listing_files(tmp_path):
    with pytest.raises(DecompilerError, match="not found"):
        load_listing(tmp_path / "missing.json")
    broken = tmp_path / "broken.json"
    broken.write_text("{ nope", encoding="utf-8")
    with pytest.raises(DecompilerError, match="Invalid JSON"):
        load_listing(broken)


def test_listing_decompiler_returns_function_lines(sample_listing_path):
    decompiler = ListingDecompiler(load_listing(sample_listing_path))

    code = decompiler.decompile_at(0x1014)

    assert code.lines[0].text == "int sum_array(int *values, int count)"
    assert code.lines[1].address is None
    assert decompiler.decompile_at(0x5000).is_empty()
    assert decompiler.decompile_at(0x2000).is_empty()


def test_annotated_decompiler_prefixes_addresses(tmp_path):
    listing = load_listing(_write_listing(tmp_path / "tiny.json", _listing_data()))
    code = AnnotatedListingDecompiler(listing).decompile_at(0x100)

    assert code.lines[0].text == "/* 0x100 */ void f(void)"
    assert code.lines[1].text == "            {"
    assert [line.address for line in code.lines] == [0x100, None, 0x108, None]


def test_registry_keeps_order_and_rejects_duplicates(sample_listing_path):
    listing = load_listing(sample_listing_path)
    registry = create_default_registry(listing)

    assert registry.ids() == ["listing", "annotated"]
    assert registry.default_id() == "listing"
    assert registry.get("annotated").name == "Listing (annotated)"
    assert registry.get("missing") is None
    assert registry.get(None) is None
    with pytest.raises(DecompilerError, match="Duplicate"):
        registry.register(ListingDecompiler(listing))


def test_empty_registry():
    registry = DecompilerRegistry()
    assert len(registry) == 0
    assert registry.default_id() is None
    assert registry.list_all() == []
