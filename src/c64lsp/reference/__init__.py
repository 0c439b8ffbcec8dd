"""
Reference Data
==============

Static lookup tables for 6510 mnemonics, Kick Assembler directives,
built-in functions and constants, and the C64 memory map.

Quick Start
-----------
    >>> from c64lsp.reference import ReferenceContext
    >>> ctx = ReferenceContext.from_directory("data/")
    >>> ctx.lookup_directive("BYTE").directive
    '.byte'
    >>> ctx.address_at(0xD020).name
    'Border color'
"""

from c64lsp.reference.context import (
    CONTROL_MNEMONICS,
    ILLEGAL_MNEMONICS,
    ReferenceContext,
    clear_context,
    get_context,
    install_context,
    load_context,
    require_context,
)
from c64lsp.reference.loader import (
    load_kickass,
    load_memory_map,
    load_mnemonics,
    normalize_directive_name,
    parse_address,
    parse_kickass,
    parse_memory_map,
    parse_mnemonics,
)
from c64lsp.reference.models import (
    AddressingMode,
    ConstantInfo,
    DirectiveInfo,
    FunctionInfo,
    KickAssemblerData,
    MemoryRegion,
    MnemonicInfo,
)

__all__ = [
    # Context
    "ReferenceContext",
    "ILLEGAL_MNEMONICS",
    "CONTROL_MNEMONICS",
    "install_context",
    "load_context",
    "get_context",
    "require_context",
    "clear_context",
    # Loading
    "load_mnemonics",
    "load_kickass",
    "load_memory_map",
    "parse_mnemonics",
    "parse_kickass",
    "parse_memory_map",
    "parse_address",
    "normalize_directive_name",
    # Models
    "AddressingMode",
    "MnemonicInfo",
    "DirectiveInfo",
    "FunctionInfo",
    "ConstantInfo",
    "MemoryRegion",
    "KickAssemblerData",
]
