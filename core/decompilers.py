from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from core.model import DecompiledCode, DecompiledLine, format_address, parse_address

logger = logging.getLogger(__name__)


class DecompilerError(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Decompiler(Protocol):
    id: str
    name: str

    def decompile_at(self, address: int) -> DecompiledCode: ...


class DecompilerRegistry:
    def __init__(self) -> None:
        self._decompilers: Dict[str, Decompiler] = {}

    def register(self, decompiler: Decompiler) -> None:
        if not decompiler.id:
            raise DecompilerError("Decompiler id must not be empty.")
        if decompiler.id in self._decompilers:
            raise DecompilerError(f"Duplicate decompiler id: {decompiler.id}")
        self._decompilers[decompiler.id] = decompiler

    def get(self, decompiler_id: Optional[str]) -> Optional[Decompiler]:
        if decompiler_id is None:
            return None
        return self._decompilers.get(decompiler_id)

    def list_all(self) -> List[Decompiler]:
        return list(self._decompilers.values())

    def ids(self) -> List[str]:
        return list(self._decompilers)

    def default_id(self) -> Optional[str]:
        return next(iter(self._decompilers), None)

    def __len__(self) -> int:
        return len(self._decompilers)


@dataclass(frozen=True)
class ListingFunction:
    name: str
    address: int
    size: int
    lines: List[DecompiledLine]

    def contains(self, address: int) -> bool:
        return self.address <= address < self.address + self.size


@dataclass(frozen=True)
class Listing:
    name: str
    path: Optional[Path]
    functions: List[ListingFunction]

    def function_containing(self, address: int) -> Optional[ListingFunction]:
        for function in self.functions:
            if function.contains(address):
                return function
        return None


def load_listing(path: Path | str) -> Listing:
    resolved = Path(path).expanduser().resolve()
    data = _load_json(resolved)
    listing = _validate_listing(data, resolved)
    logger.info("Loaded listing %s with %d functions", listing.name, len(listing.functions))
    return listing


def _load_json(path: Path) -> dict:
    if not path.exists():
        raise DecompilerError(f"Listing not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except json.JSONDecodeError as exc:
        raise DecompilerError(f"Invalid JSON in {path}: {exc}") from exc
    except OSError as exc:
        raise DecompilerError(f"Failed to read listing: {exc}") from exc


def _validate_address(value: object, what: str) -> int:
    if isinstance(value, bool):
        raise DecompilerError(f"{what} must be an integer or hex string.")
    if isinstance(value, int):
        if value < 0:
            raise DecompilerError(f"{what} must not be negative.")
        return value
    if isinstance(value, str):
        try:
            return parse_address(value)
        except ValueError as exc:
            raise DecompilerError(f"{what} is not a valid address: {value}") from exc
    raise DecompilerError(f"{what} must be an integer or hex string.")


def _validate_listing(data: dict, path: Optional[Path] = None) -> Listing:
    if not isinstance(data, dict):
        raise DecompilerError("Listing must be a JSON object.")
    schema_version = data.get("schema_version")
    if not isinstance(schema_version, int):
        raise DecompilerError("schema_version must be an integer.")
    if schema_version != 1:
        raise DecompilerError(f"Unsupported schema_version: {schema_version}")
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise DecompilerError("name is required and must be a string.")
    functions_data = data.get("functions")
    if not isinstance(functions_data, list):
        raise DecompilerError("functions must be an array.")
    functions: List[ListingFunction] = []
    seen: set[str] = set()
    for idx, entry in enumerate(functions_data, start=1):
        function = _validate_function(entry, idx)
        if function.name in seen:
            raise DecompilerError(f"Duplicate function in listing: {function.name}")
        seen.add(function.name)
        functions.append(function)
    return Listing(name=name.strip(), path=path, functions=functions)


def _validate_function(entry: dict, index: int) -> ListingFunction:
    if not isinstance(entry, dict):
        raise DecompilerError(f"Function #{index} must be an object.")
    name = entry.get("name")
    if not isinstance(name, str) or not name.strip():
        raise DecompilerError(f"Function #{index} is missing name.")
    address = _validate_address(entry.get("address"), f"Function {name} address")
    lines_data = entry.get("lines")
    if not isinstance(lines_data, list):
        raise DecompilerError(f"Function {name} lines must be an array.")
    lines: List[DecompiledLine] = []
    for line_no, line in enumerate(lines_data, start=1):
        if isinstance(line, str):
            lines.append(DecompiledLine(text=line))
            continue
        if not isinstance(line, dict):
            raise DecompilerError(f"Function {name} line {line_no} must be an object or string.")
        text = line.get("text", "")
        if not isinstance(text, str) or "\n" in text:
            raise DecompilerError(f"Function {name} line {line_no} text must be a single-line string.")
        line_address = line.get("address")
        if line_address is not None:
            line_address = _validate_address(line_address, f"Function {name} line {line_no} address")
        lines.append(DecompiledLine(text=text, address=line_address))
    size = entry.get("size")
    if size is None:
        line_addresses = [line.address for line in lines if line.address is not None]
        size = max(line_addresses, default=address) - address + 1
    elif isinstance(size, bool) or not isinstance(size, int) or size <= 0:
        raise DecompilerError(f"Function {name} size must be a positive integer.")
    return ListingFunction(name=name.strip(), address=address, size=max(size, 1), lines=lines)


class ListingDecompiler:
    id = "listing"
    name = "Listing"

    def __init__(self, listing: Listing) -> None:
        self.listing = listing

    def decompile_at(self, address: int) -> DecompiledCode:
        function = self.listing.function_containing(address)
        if function is None:
            return DecompiledCode()
        return DecompiledCode(lines=list(function.lines))


class AnnotatedListingDecompiler(ListingDecompiler):
    id = "annotated"
    name = "Listing (annotated)"

    def decompile_at(self, address: int) -> DecompiledCode:
        function = self.listing.function_containing(address)
        if function is None:
            return DecompiledCode()
        width = max(
            (len(format_address(line.address)) for line in function.lines if line.address is not None),
            default=0,
        )
        lines = []
        for line in function.lines:
            if line.address is None:
                prefix = " " * (width + 6)
            else:
                prefix = f"/* {format_address(line.address).rjust(width)} */"
            lines.append(DecompiledLine(text=f"{prefix} {line.text}", address=line.address))
        return DecompiledCode(lines=lines)


def create_default_registry(listing: Listing) -> DecompilerRegistry:
    registry = DecompilerRegistry()
    registry.register(ListingDecompiler(listing))
    registry.register(AnnotatedListingDecompiler(listing))
    return registry
