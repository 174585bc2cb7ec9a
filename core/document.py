from __future__ import annotations

import logging
from bisect import bisect_right
from typing import Iterator, List, Optional, Sequence

from core.buffer import TextBuffer
from core.model import DecompiledCode, LineRecord

logger = logging.getLogger(__name__)


class DecompiledDocument:
    """Immutable snapshot of the lines written into the text buffer.

    Positions are strictly increasing. Addresses are not: structural lines
    carry no address and the decompiler may interleave lines of one address.
    """

    def __init__(self, records: Sequence[LineRecord]) -> None:
        self._records: tuple[LineRecord, ...] = tuple(records)
        self._positions: List[int] = [record.position for record in self._records]
        for prev, cur in zip(self._positions, self._positions[1:]):
            if cur <= prev:
                raise ValueError(f"Line positions must be strictly increasing ({prev} then {cur}).")

    @property
    def records(self) -> tuple[LineRecord, ...]:
        return self._records

    @property
    def positions(self) -> List[int]:
        return list(self._positions)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[LineRecord]:
        return iter(self._records)

    def __getitem__(self, index: int) -> LineRecord:
        return self._records[index]

    def index_at(self, position: int) -> Optional[int]:
        # first line starting after position, then one step back
        upper = bisect_right(self._positions, position)
        if upper == 0:
            return None
        return upper - 1

    def line_at(self, position: int) -> Optional[LineRecord]:
        index = self.index_at(position)
        return None if index is None else self._records[index]

    def index_for_address(self, target: int) -> Optional[int]:
        if not self._records:
            return None
        candidate = 0
        for index, record in enumerate(self._records):
            address = record.address
            # assumes non-decreasing addresses; malformed output degrades to
            # the best candidate seen before the first larger address
            if address is not None and address > target:
                break
            best = self._records[candidate].address
            if address is not None and (best is None or address > best):
                candidate = index
        return candidate

    def line_for_address(self, target: int) -> Optional[LineRecord]:
        index = self.index_for_address(target)
        return None if index is None else self._records[index]

    def run_start(self, index: int) -> int:
        while index > 0 and self._records[index - 1].address == self._records[index].address:
            index -= 1
        return index

    def address_at(self, position: int) -> Optional[int]:
        index = self.index_at(position)
        if index is None:
            return None
        return self._records[self.run_start(index)].address

    def highlight_indices(self, address: int) -> List[int]:
        index = self.index_for_address(address)
        if index is None:
            return []
        start = self.run_start(index)
        if self._records[start].address != address:
            return []
        indices = []
        for i in range(start, len(self._records)):
            line_address = self._records[i].address
            if line_address is not None and line_address != address:
                break
            indices.append(i)
        return indices

    def addresses(self) -> List[int]:
        return sorted({record.address for record in self._records if record.address is not None})


def build_document(code: DecompiledCode, buffer: TextBuffer) -> Optional[DecompiledDocument]:
    if code.is_empty():
        return None
    buffer.clear()
    records: List[LineRecord] = []
    for line in code.lines:
        records.append(LineRecord(text=line.text, address=line.address, position=buffer.length()))
        buffer.append_line(line.text)
    logger.debug("Built document with %d lines (%d chars)", len(records), buffer.length())
    return DecompiledDocument(records)
