"""
Reference Data Loader
=====================

Parses the three JSON documents that feed the Reference Context:

mnemonic.json
    A list of instruction records::

        [{"mnemonic": "LDA", "description": "...", "type": "Load",
          "addressing_modes": [{"opcode": "A9", "addressing_mode": "Immediate",
                                "assembler_format": "LDA #nn", "length": 2,
                                "cycles": "2"}]}]

kickass.json
    An object with four lists::

        {"directives": [{"directive": ".byte", "signature": "...",
                         "description": "...", "examples": [], "category": "data"}],
         "preprocessorStatements": [{"directive": "#import", ...}],
         "functions": [{"function": "sin", "signature": "sin(x)", ...}],
         "constants": [{"constant": "PI", "value": "3.1415", "type": "number"}]}

c64memory.json
    Regions keyed by address (``$D020``, ``0xD020`` or ``D020``)::

        {"memoryMap": {"regions": {"$D020": {"name": "Border color",
                                             "size": 1, ...}}}}

Each document can be parsed from an already-decoded Python object
(``parse_*``) or read from disk (``load_*``). Disk errors and malformed
JSON raise ReferenceDataError; malformed individual records are skipped
with a warning so that one bad entry does not disable the whole table.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from c64lsp.errors import ReferenceDataError
from c64lsp.reference.models import (
    AddressingMode,
    ConstantInfo,
    DirectiveInfo,
    FunctionInfo,
    KickAssemblerData,
    MemoryRegion,
    MnemonicInfo,
    optional_str,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Standard file names inside a reference data directory
MNEMONIC_FILE = "mnemonic.json"
KICKASS_FILE = "kickass.json"
MEMORY_FILE = "c64memory.json"


# =============================================================================
# File Access
# =============================================================================

def _read_json(path: PathLike) -> Any:
    path = Path(path)
    logger.debug(f"Loading reference data from {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ReferenceDataError(str(path), e.strerror or str(e)) from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ReferenceDataError(str(path), f"invalid JSON: {e}") from e


def _string_tuple(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(item) for item in value)


# =============================================================================
# Mnemonics
# =============================================================================

def parse_mnemonics(data: Any, source: str = "<mnemonics>") -> list[MnemonicInfo]:
    """
    Build MnemonicInfo records from decoded mnemonic.json content.

    Raises:
        ReferenceDataError: If the document is not a list
    """
    if not isinstance(data, list):
        raise ReferenceDataError(source, "expected a list of mnemonic records")

    mnemonics = []
    for record in data:
        if not isinstance(record, dict) or not record.get("mnemonic"):
            logger.warning(f"Skipping malformed mnemonic record in {source}: {record!r}")
            continue

        modes = []
        for mode in record.get("addressing_modes") or []:
            if not isinstance(mode, dict):
                continue
            length = mode.get("length", 0)
            modes.append(AddressingMode(
                opcode=optional_str(mode.get("opcode")),
                addressing_mode=optional_str(mode.get("addressing_mode")),
                assembler_format=optional_str(mode.get("assembler_format")),
                length=length if isinstance(length, int) else 0,
                cycles=optional_str(mode.get("cycles")),
            ))

        mnemonics.append(MnemonicInfo(
            mnemonic=str(record["mnemonic"]).upper(),
            description=optional_str(record.get("description")),
            type=optional_str(record.get("type")),
            addressing_modes=tuple(modes),
        ))

    return mnemonics


def load_mnemonics(path: PathLike) -> list[MnemonicInfo]:
    """Read and parse mnemonic.json."""
    return parse_mnemonics(_read_json(path), str(path))


# =============================================================================
# Kick Assembler Data
# =============================================================================

def normalize_directive_name(name: str) -> str:
    """
    Lowercase a directive name and give it a leading '.'.

    Names that already start with '.' or '#' keep their prefix.

    >>> normalize_directive_name("BYTE")
    '.byte'
    >>> normalize_directive_name("#import")
    '#import'
    """
    name = name.strip().lower()
    if not name.startswith((".", "#")):
        name = "." + name
    return name


def _parse_directive(record: dict, preprocessor: bool) -> DirectiveInfo:
    name = str(record["directive"]).strip().lower()
    if not preprocessor:
        name = normalize_directive_name(name)
    return DirectiveInfo(
        directive=name,
        signature=optional_str(record.get("signature")),
        description=optional_str(record.get("description")),
        examples=_string_tuple(record.get("examples")),
        category=optional_str(record.get("category")).lower(),
        preprocessor=preprocessor,
    )


def parse_kickass(data: Any, source: str = "<kickass>") -> KickAssemblerData:
    """
    Build the Kick Assembler tables from decoded kickass.json content.

    Directive names are lowercased and prefixed with '.', function names
    lowercased, constant names uppercased.

    Raises:
        ReferenceDataError: If the document is not an object
    """
    if not isinstance(data, dict):
        raise ReferenceDataError(source, "expected an object with directive/function/constant tables")

    directives = []
    for record in data.get("directives") or []:
        if isinstance(record, dict) and record.get("directive"):
            directives.append(_parse_directive(record, preprocessor=False))
        else:
            logger.warning(f"Skipping malformed directive record in {source}: {record!r}")

    preprocessor = []
    for record in data.get("preprocessorStatements") or []:
        if isinstance(record, dict) and record.get("directive"):
            preprocessor.append(_parse_directive(record, preprocessor=True))
        else:
            logger.warning(f"Skipping malformed preprocessor record in {source}: {record!r}")

    functions = []
    for record in data.get("functions") or []:
        if not isinstance(record, dict) or not record.get("function"):
            logger.warning(f"Skipping malformed function record in {source}: {record!r}")
            continue
        functions.append(FunctionInfo(
            name=str(record["function"]).lower(),
            signature=optional_str(record.get("signature")),
            description=optional_str(record.get("description")),
            examples=_string_tuple(record.get("examples")),
            return_type=optional_str(record.get("return_type")),
            category=optional_str(record.get("category")).lower(),
        ))

    constants = []
    for record in data.get("constants") or []:
        if not isinstance(record, dict) or not record.get("constant"):
            logger.warning(f"Skipping malformed constant record in {source}: {record!r}")
            continue
        constants.append(ConstantInfo(
            name=str(record["constant"]).upper(),
            value=optional_str(record.get("value")),
            type=optional_str(record.get("type")),
            description=optional_str(record.get("description")),
            category=optional_str(record.get("category")).lower(),
        ))

    return KickAssemblerData(
        directives=tuple(directives),
        preprocessor_statements=tuple(preprocessor),
        functions=tuple(functions),
        constants=tuple(constants),
    )


def load_kickass(path: PathLike) -> KickAssemblerData:
    """Read and parse kickass.json."""
    return parse_kickass(_read_json(path), str(path))


# =============================================================================
# Memory Map
# =============================================================================

def parse_address(text: str) -> Optional[int]:
    """
    Parse a 16-bit memory-map address key.

    Accepts ``$D020``, ``0xD020``/``0XD020`` and bare ``D020``.

    Returns:
        The address, or None if the text is not a hex number in 0-$FFFF
    """
    text = text.strip()
    if text.startswith(("0x", "0X")):
        text = text[2:]
    elif text.startswith("$"):
        text = text[1:]
    try:
        value = int(text, 16)
    except ValueError:
        return None
    if not 0 <= value <= 0xFFFF:
        return None
    return value


def parse_memory_map(data: Any, source: str = "<memory>") -> list[MemoryRegion]:
    """
    Build MemoryRegion records from decoded c64memory.json content.

    Regions whose address cannot be parsed are skipped with a warning.

    Raises:
        ReferenceDataError: If the ``memoryMap.regions`` object is missing
    """
    regions_data = None
    if isinstance(data, dict) and isinstance(data.get("memoryMap"), dict):
        regions_data = data["memoryMap"].get("regions")
    if not isinstance(regions_data, dict):
        raise ReferenceDataError(source, "expected memoryMap.regions object")

    regions = []
    for key, record in regions_data.items():
        address = parse_address(str(key))
        if address is None:
            logger.warning(f"Failed to parse address {key!r} in {source}")
            continue
        if not isinstance(record, dict):
            logger.warning(f"Failed to parse region data for {key!r} in {source}")
            continue

        size = record.get("size", 1)
        bit_fields = record.get("bit_fields")
        regions.append(MemoryRegion(
            address=address,
            name=optional_str(record.get("name")),
            category=optional_str(record.get("category")),
            type=optional_str(record.get("type")),
            size=size if isinstance(size, int) and size > 0 else 1,
            description=optional_str(record.get("description")),
            access=optional_str(record.get("access")),
            bit_fields=dict(bit_fields) if isinstance(bit_fields, dict) else {},
            examples=_string_tuple(record.get("examples")),
            tips=_string_tuple(record.get("tips")),
        ))

    return regions


def load_memory_map(path: PathLike) -> list[MemoryRegion]:
    """Read and parse c64memory.json."""
    return parse_memory_map(_read_json(path), str(path))
