"""
Reference Data Models
=====================

Immutable records describing the static reference tables the analyzer
consults: 6510 mnemonics with their addressing modes, Kick Assembler
directives, built-in functions and constants, and the C64 memory map.

The records mirror the JSON documents they are loaded from (see
``c64lsp.reference.loader``); field names follow Python conventions, the
JSON keys are listed in each docstring.
"""

from dataclasses import dataclass, field
from typing import Optional


# =============================================================================
# Mnemonics
# =============================================================================

@dataclass(frozen=True)
class AddressingMode:
    """
    One addressing mode of a mnemonic.

    JSON keys: ``opcode``, ``addressing_mode``, ``assembler_format``,
    ``length``, ``cycles``.
    """
    opcode: str
    addressing_mode: str
    assembler_format: str = ""
    length: int = 0
    cycles: str = ""


@dataclass(frozen=True)
class MnemonicInfo:
    """
    A 6510 instruction.

    ``type`` is the category tag from the data file ("Load", "Jump",
    "Illegal", ...). Whether a mnemonic counts as illegal or control flow
    is decided by ReferenceContext, which combines this tag with static
    name lists.
    """
    mnemonic: str
    description: str = ""
    type: str = ""
    addressing_modes: tuple[AddressingMode, ...] = ()


# =============================================================================
# Kick Assembler Language
# =============================================================================

@dataclass(frozen=True)
class DirectiveInfo:
    """
    A directive (``.byte``) or preprocessor statement (``#import``).

    JSON keys: ``directive``, ``signature``, ``description``, ``examples``,
    optional ``category``. ``directive`` holds the normalized name.
    """
    directive: str
    signature: str = ""
    description: str = ""
    examples: tuple[str, ...] = ()
    category: str = ""
    preprocessor: bool = False


@dataclass(frozen=True)
class FunctionInfo:
    """A built-in function such as ``sin`` or ``toIntString``."""
    name: str
    signature: str = ""
    description: str = ""
    examples: tuple[str, ...] = ()
    return_type: str = ""
    category: str = ""


@dataclass(frozen=True)
class ConstantInfo:
    """A built-in constant such as ``PI`` or ``BLACK``."""
    name: str
    value: str = ""
    type: str = ""
    description: str = ""
    category: str = ""


# =============================================================================
# Memory Map
# =============================================================================

@dataclass(frozen=True)
class MemoryRegion:
    """
    A region of the C64 address space (a VIC-II register, a ROM vector...).

    A region starting at ``address`` covers ``size`` consecutive addresses.
    """
    address: int
    name: str
    category: str = ""
    type: str = ""
    size: int = 1
    description: str = ""
    access: str = ""
    bit_fields: dict[str, str] = field(default_factory=dict, hash=False, compare=False)
    examples: tuple[str, ...] = ()
    tips: tuple[str, ...] = ()

    @property
    def end_address(self) -> int:
        """Last address covered by this region (inclusive)."""
        return self.address + max(self.size, 1) - 1

    def contains(self, address: int) -> bool:
        return self.address <= address <= self.end_address


@dataclass(frozen=True)
class KickAssemblerData:
    """The four tables of kickass.json after normalization."""
    directives: tuple[DirectiveInfo, ...] = ()
    preprocessor_statements: tuple[DirectiveInfo, ...] = ()
    functions: tuple[FunctionInfo, ...] = ()
    constants: tuple[ConstantInfo, ...] = ()


def optional_str(value: Optional[object]) -> str:
    """Coerce a JSON scalar to str, mapping null to an empty string."""
    if value is None:
        return ""
    return str(value)
