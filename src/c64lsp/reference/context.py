"""
Reference Context
=================

The Reference Context is the immutable set of lookup tables the lexer and
parser consult to classify words: is ``LDA`` a mnemonic, is ``.byte`` a
data directive, is ``sin`` a built-in function, what lives at ``$D020``.

Lookup Contract
---------------
- Mnemonics: case-insensitive (``lda`` == ``LDA``)
- Directives: case-insensitive, normalized to a leading ``.`` unless the
  name starts with ``.`` or ``#``
- Built-in functions: lowercase-normalized
- Built-in constants: case-insensitive
- Memory regions: by 16-bit address

A failed lookup returns None. Callers treat "not found" as "ordinary
identifier"; it is never an error.

Mnemonic Classes
----------------
Besides the data file's own ``type`` tag, mnemonics are classified by
static name lists so that illegal-opcode detection does not depend on the
data alone:

    Illegal:  AHX ALR ANC ARR AXS DCP ISC LAS LAX RLA RRA SAX SHX SHY
              SLO SRE TAS XAA
    Control:  BCC BCS BEQ BMI BNE BPL BVC BVS JMP JSR RTS RTI

Sharing
-------
A ReferenceContext is built once and never mutated, so any number of
parses may read it at the same time. Analysis entry points take the
context as an explicit argument. For servers that want a single process
wide instance, ``install_context``/``get_context`` keep one in a slot
guarded by a lock around load-then-swap only; lookups take no lock.
"""

import logging
import threading
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Union

from c64lsp.errors import ContextNotLoadedError
from c64lsp.reference.loader import (
    KICKASS_FILE,
    MEMORY_FILE,
    MNEMONIC_FILE,
    load_kickass,
    load_memory_map,
    load_mnemonics,
    normalize_directive_name,
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

logger = logging.getLogger(__name__)


# =============================================================================
# Static Classification Tables
# =============================================================================

ILLEGAL_MNEMONICS = frozenset({
    "AHX", "ALR", "ANC", "ARR", "AXS", "DCP", "ISC", "LAS", "LAX",
    "RLA", "RRA", "SAX", "SHX", "SHY", "SLO", "SRE", "TAS", "XAA",
})

CONTROL_MNEMONICS = frozenset({
    "BCC", "BCS", "BEQ", "BMI", "BNE", "BPL", "BVC", "BVS",
    "JMP", "JSR", "RTS", "RTI",
})

# Directive categories used when the data file does not provide one
FLOW_DIRECTIVES = frozenset({
    ".if", ".else", ".for", ".while", ".return", ".break",
})
DATA_DIRECTIVES = frozenset({
    ".byte", ".by", ".word", ".wo", ".dword", ".dw", ".text", ".fill",
    ".fillword", ".align", ".lohifill",
})
TEXT_DIRECTIVES = frozenset({
    ".print", ".printnow", ".error", ".errorif",
})

DIRECTIVE_CATEGORIES = ("flow", "data", "asm", "text", "pre")


def normalize_mode(name: str) -> str:
    """
    Comparable form of an addressing-mode name.

    Data files spell modes differently (``Zero Page,X`` and ``Zeropage,X``,
    ``(Indirect),Y`` and ``Indirect,Y``); all of them reduce to the same key.

    >>> normalize_mode("(Indirect),Y")
    'indirect,y'
    >>> normalize_mode("Zero Page,X")
    'zeropage,x'
    """
    return "".join(c for c in name.lower() if c not in " ()")


def _derive_category(name: str) -> str:
    if name in FLOW_DIRECTIVES:
        return "flow"
    if name in DATA_DIRECTIVES:
        return "data"
    if name in TEXT_DIRECTIVES:
        return "text"
    return "asm"


# =============================================================================
# Reference Context
# =============================================================================

class ReferenceContext:
    """
    Immutable lookup tables for mnemonics, directives, built-ins and memory.

    Usage:
        >>> ctx = ReferenceContext.from_directory("data/")
        >>> ctx.lookup_mnemonic("lda").mnemonic
        'LDA'
        >>> ctx.is_control_mnemonic("JMP")
        True
    """

    def __init__(
        self,
        mnemonics: Iterable[MnemonicInfo] = (),
        kickass: Optional[KickAssemblerData] = None,
        memory_regions: Iterable[MemoryRegion] = (),
    ):
        kickass = kickass or KickAssemblerData()

        mnemonic_table = {m.mnemonic.upper(): m for m in mnemonics}

        directive_table: dict[str, DirectiveInfo] = {}
        for info in kickass.directives:
            directive_table[normalize_directive_name(info.directive)] = info

        preprocessor_table: dict[str, DirectiveInfo] = {}
        for info in kickass.preprocessor_statements:
            name = info.directive.lower()
            if not name.startswith("#"):
                name = "#" + name.lstrip(".")
            preprocessor_table[name] = info

        function_table = {f.name.lower(): f for f in kickass.functions}
        constant_table = {c.name.upper(): c for c in kickass.constants}

        regions = list(memory_regions)
        memory_table: dict[int, MemoryRegion] = {}
        for region in regions:
            for address in range(region.address, min(region.end_address, 0xFFFF) + 1):
                memory_table[address] = region

        self._mnemonics = MappingProxyType(mnemonic_table)
        self._directives = MappingProxyType(directive_table)
        self._preprocessor = MappingProxyType(preprocessor_table)
        self._functions = MappingProxyType(function_table)
        self._constants = MappingProxyType(constant_table)
        self._memory = MappingProxyType(memory_table)
        self._regions = tuple(regions)

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def from_data(
        cls,
        mnemonics: Any = (),
        kickass: Any = None,
        memory: Any = None,
    ) -> "ReferenceContext":
        """
        Build a context from already-decoded JSON documents.

        Any document may be omitted; the corresponding tables stay empty.
        """
        return cls(
            mnemonics=parse_mnemonics(list(mnemonics)) if mnemonics else (),
            kickass=parse_kickass(kickass) if kickass is not None else None,
            memory_regions=parse_memory_map(memory) if memory is not None else (),
        )

    @classmethod
    def from_files(
        cls,
        mnemonics: Union[str, Path],
        kickass: Union[str, Path],
        memory: Optional[Union[str, Path]] = None,
    ) -> "ReferenceContext":
        """
        Load a context from the three reference JSON files.

        Raises:
            ReferenceDataError: If a file cannot be read or parsed
        """
        mnemonic_list = load_mnemonics(mnemonics)
        kickass_data = load_kickass(kickass)
        regions = load_memory_map(memory) if memory is not None else []

        ctx = cls(mnemonic_list, kickass_data, regions)
        logger.info(
            f"Loaded reference data: {len(ctx._mnemonics)} mnemonics, "
            f"{len(ctx._directives)} directives, {len(ctx._preprocessor)} preprocessor "
            f"statements, {len(ctx._functions)} functions, {len(ctx._constants)} constants, "
            f"{len(ctx._regions)} memory regions"
        )
        return ctx

    @classmethod
    def from_directory(cls, directory: Union[str, Path]) -> "ReferenceContext":
        """
        Load ``mnemonic.json``, ``kickass.json`` and ``c64memory.json``
        from one directory. The memory map is optional.
        """
        directory = Path(directory)
        memory = directory / MEMORY_FILE
        return cls.from_files(
            directory / MNEMONIC_FILE,
            directory / KICKASS_FILE,
            memory if memory.exists() else None,
        )

    # =========================================================================
    # Mnemonics
    # =========================================================================

    def lookup_mnemonic(self, name: str) -> Optional[MnemonicInfo]:
        return self._mnemonics.get(name.upper())

    def is_illegal_mnemonic(self, name: str) -> bool:
        """True for undocumented opcodes (static list or data type tag)."""
        name = name.upper()
        if name in ILLEGAL_MNEMONICS:
            return True
        info = self._mnemonics.get(name)
        return info is not None and info.type.lower() == "illegal"

    def is_control_mnemonic(self, name: str) -> bool:
        """True for branches, jumps and returns that are not illegal."""
        name = name.upper()
        if self.is_illegal_mnemonic(name):
            return False
        if name in CONTROL_MNEMONICS:
            return True
        info = self._mnemonics.get(name)
        return info is not None and info.type == "Jump"

    def is_standard_mnemonic(self, name: str) -> bool:
        return (
            self.lookup_mnemonic(name) is not None
            and not self.is_illegal_mnemonic(name)
            and not self.is_control_mnemonic(name)
        )

    def addressing_modes_for(self, mnemonic: str) -> tuple[AddressingMode, ...]:
        """All addressing modes of a mnemonic (empty if unknown)."""
        info = self.lookup_mnemonic(mnemonic)
        return info.addressing_modes if info else ()

    def supports_addressing_mode(self, mnemonic: str, mode: str) -> bool:
        """Check a mode name against the mnemonic's modes (see normalize_mode)."""
        mode = normalize_mode(mode)
        return any(normalize_mode(m.addressing_mode) == mode for m in self.addressing_modes_for(mnemonic))

    @property
    def mnemonics(self) -> Mapping[str, MnemonicInfo]:
        return self._mnemonics

    # =========================================================================
    # Directives
    # =========================================================================

    def lookup_directive(self, name: str) -> Optional[DirectiveInfo]:
        """
        Look up a directive or preprocessor statement.

        ``#``-prefixed names are searched among preprocessor statements
        first; everything else is normalized to ``.name``.
        """
        name = name.strip().lower()
        if name.startswith("#"):
            info = self._preprocessor.get(name)
            if info:
                return info
        return self._directives.get(normalize_directive_name(name))

    def is_preprocessor_statement(self, name: str) -> bool:
        return name.lower() in self._preprocessor

    def directive_category(self, name: str) -> str:
        """
        Category of a directive: flow, data, asm, text or pre.

        Known directives use the category from the data file; when it is
        missing or unknown, it is derived from the name. Unknown
        directives and preprocessor statements report "pre".
        """
        info = self.lookup_directive(name)
        if info is None or info.preprocessor:
            return "pre"
        if info.category in DIRECTIVE_CATEGORIES:
            return info.category
        return _derive_category(normalize_directive_name(info.directive))

    @property
    def preprocessor_statements(self) -> frozenset[str]:
        """Known ``#`` keywords, lowercase, including the ``#``."""
        return frozenset(self._preprocessor)

    @property
    def directives(self) -> Mapping[str, DirectiveInfo]:
        return self._directives

    # =========================================================================
    # Built-in Functions and Constants
    # =========================================================================

    def lookup_function(self, name: str) -> Optional[FunctionInfo]:
        return self._functions.get(name.lower())

    def lookup_constant(self, name: str) -> Optional[ConstantInfo]:
        return self._constants.get(name.upper())

    # =========================================================================
    # Memory Map
    # =========================================================================

    def address_at(self, address: int) -> Optional[MemoryRegion]:
        """Memory region covering an address, or None."""
        return self._memory.get(address)

    @property
    def memory_regions(self) -> tuple[MemoryRegion, ...]:
        return self._regions


# =============================================================================
# Process-wide Instance
# =============================================================================

_context_lock = threading.RLock()
_current_context: Optional[ReferenceContext] = None


def install_context(ctx: Optional[ReferenceContext]) -> Optional[ReferenceContext]:
    """
    Make ``ctx`` the process-wide Reference Context.

    Returns:
        The previously installed context (or None)
    """
    global _current_context
    with _context_lock:
        previous = _current_context
        _current_context = ctx
    return previous


def load_context(directory: Union[str, Path]) -> ReferenceContext:
    """
    Load reference data from a directory and install it.

    Loading happens outside the lock; only the swap is guarded, so readers
    see either the old or the new context, never a partial one.

    Raises:
        ReferenceDataError: If the data cannot be loaded (the previously
            installed context stays in place)
    """
    ctx = ReferenceContext.from_directory(directory)
    install_context(ctx)
    return ctx


def get_context() -> Optional[ReferenceContext]:
    """The installed Reference Context, or None."""
    with _context_lock:
        return _current_context


def require_context() -> ReferenceContext:
    """
    The installed Reference Context.

    Raises:
        ContextNotLoadedError: If none has been installed
    """
    ctx = get_context()
    if ctx is None:
        raise ContextNotLoadedError()
    return ctx


def clear_context() -> None:
    """Remove the installed Reference Context."""
    install_context(None)
