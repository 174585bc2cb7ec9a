from pathlib import Path

import pytest

from core.buffer import PlainTextBuffer
from core.host import SeekHost
from core.model import DecompiledCode, DecompiledLine
from core.sync import SyncController


class StaticDecompiler:
    def __init__(self, decompiler_id: str, lines: list[tuple[str, int | None]]) -> None:
        self.id = decompiler_id
        self.name = decompiler_id.title()
        self.lines = lines
        self.requests: list[int] = []

    def decompile_at(self, address: int) -> DecompiledCode:
        self.requests.append(address)
        return DecompiledCode(lines=[DecompiledLine(text, addr) for text, addr in self.lines])


FUNCTION_LINES = [
    ("int f(int a)", 0x1000),
    ("{", None),
    ("    int b = a + 1;", 0x1004),
    ("    if (b) {", 0x1008),
    ("        b = 0;", 0x100C),
    ("    }", 0x1008),
    ("    return b;", 0x1010),
    ("}", None),
]


@pytest.fixture
def buffer() -> PlainTextBuffer:
    return PlainTextBuffer()


@pytest.fixture
def host() -> SeekHost:
    return SeekHost()


@pytest.fixture
def function_decompiler() -> StaticDecompiler:
    return StaticDecompiler("static", FUNCTION_LINES)


@pytest.fixture
def controller(buffer, host, function_decompiler) -> SyncController:
    return SyncController(buffer, host, function_decompiler)


@pytest.fixture
def sample_listing_path() -> Path:
    return Path(__file__).resolve().parent.parent / "assets" / "listings" / "sample.json"
