"""
c64lsp Test Configuration
=========================

Shared fixtures: a small synthetic Reference Context, so no test depends
on the full reference data files.

It provides:
- The three decoded reference documents (mnemonics, Kick Assembler, memory)
- ``reference``: a ReferenceContext built from them
- ``data_dir``: the same documents written to a temporary directory
"""

import json
from pathlib import Path

import pytest

from c64lsp.analysis.document import clear_parse_cache
from c64lsp.reference.context import ReferenceContext, clear_context


# ═══════════════════════════════════════════════════════════════════════════════
# REFERENCE DOCUMENTS
# ═══════════════════════════════════════════════════════════════════════════════


def _mnemonic(name: str, kind: str, *modes: tuple[str, str, int]) -> dict:
    return {
        "mnemonic": name,
        "description": f"{name} instruction",
        "type": kind,
        "addressing_modes": [
            {
                "opcode": opcode,
                "addressing_mode": mode,
                "assembler_format": f"{name} {mode}",
                "length": length,
                "cycles": "2",
            }
            for opcode, mode, length in modes
        ],
    }


MNEMONICS = [
    _mnemonic("LDA", "Load", ("A9", "Immediate", 2), ("A5", "Zeropage", 2),
              ("B5", "Zeropage,X", 2), ("AD", "Absolute", 3), ("BD", "Absolute,X", 3),
              ("B9", "Absolute,Y", 3), ("A1", "(Indirect,X)", 2), ("B1", "(Indirect),Y", 2)),
    _mnemonic("STA", "Store", ("85", "Zeropage", 2), ("8D", "Absolute", 3),
              ("9D", "Absolute,X", 3), ("99", "Absolute,Y", 3), ("91", "(Indirect),Y", 2)),
    _mnemonic("JMP", "Jump", ("4C", "Absolute", 3), ("6C", "Indirect", 3)),
    _mnemonic("JSR", "Jump", ("20", "Absolute", 3)),
    _mnemonic("BNE", "Branch", ("D0", "Relative", 2)),
    _mnemonic("RTS", "Return", ("60", "Implied", 1)),
    _mnemonic("INX", "Increment", ("E8", "Implied", 1)),
    _mnemonic("NOP", "No Operation", ("EA", "Implied", 1)),
    _mnemonic("LAX", "Illegal", ("A7", "Zeropage", 2)),
]


def _directive(name: str, category: str = "") -> dict:
    record = {
        "directive": name,
        "signature": f"{name} ...",
        "description": f"The {name} directive",
        "examples": [],
    }
    if category:
        record["category"] = category
    return record


KICKASS = {
    "directives": [
        _directive(".byte", "data"),
        _directive(".word", "data"),
        _directive(".text", "data"),
        _directive(".const", "asm"),
        _directive(".var", "asm"),
        _directive(".label", "asm"),
        _directive(".namespace", "asm"),
        _directive(".macro", "asm"),
        _directive(".function", "asm"),
        _directive(".pseudocommand", "asm"),
        _directive(".enum", "asm"),
        _directive(".if", "flow"),
        _directive(".for", "flow"),
        _directive(".encoding", "asm"),
        _directive(".import", "asm"),
        _directive(".define", "pre"),
        _directive(".print", "text"),
        _directive("return"),
    ],
    "preprocessorStatements": [
        _directive("#import"),
        _directive("#define"),
    ],
    "functions": [
        {"function": "sin", "signature": "sin(x)", "description": "Sine",
         "examples": [], "return_type": "number", "category": "math"},
        {"function": "toIntString", "signature": "toIntString(x)",
         "description": "Integer to string", "examples": [], "category": "string"},
    ],
    "constants": [
        {"constant": "PI", "value": "3.1415926535", "type": "number", "category": "math"},
        {"constant": "BLUE", "value": "6", "type": "color", "category": "color"},
    ],
}

MEMORY = {
    "memoryMap": {
        "regions": {
            "$D020": {
                "name": "Border color",
                "category": "VIC-II",
                "type": "register",
                "size": 1,
                "description": "Border color register",
                "access": "read/write",
            },
            "0xD400": {
                "name": "SID",
                "category": "SID",
                "type": "register block",
                "size": 29,
                "description": "Sound interface device",
                "access": "write",
            },
            "0314": {
                "name": "IRQ vector",
                "category": "Vectors",
                "type": "pointer",
                "size": 2,
                "description": "Hardware IRQ vector",
                "access": "read/write",
            },
        },
    },
}


# ═══════════════════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def mnemonic_data() -> list:
    """Decoded mnemonic.json content (a fresh copy per test)."""
    return json.loads(json.dumps(MNEMONICS))


@pytest.fixture
def kickass_data() -> dict:
    """Decoded kickass.json content (a fresh copy per test)."""
    return json.loads(json.dumps(KICKASS))


@pytest.fixture
def memory_data() -> dict:
    """Decoded c64memory.json content (a fresh copy per test)."""
    return json.loads(json.dumps(MEMORY))


@pytest.fixture
def reference(mnemonic_data, kickass_data, memory_data) -> ReferenceContext:
    """Fixture: Reference Context built from the synthetic tables."""
    return ReferenceContext.from_data(mnemonic_data, kickass_data, memory_data)


@pytest.fixture
def data_dir(tmp_path) -> Path:
    """Fixture: directory holding mnemonic.json, kickass.json and c64memory.json."""
    (tmp_path / "mnemonic.json").write_text(json.dumps(MNEMONICS), encoding="utf-8")
    (tmp_path / "kickass.json").write_text(json.dumps(KICKASS), encoding="utf-8")
    (tmp_path / "c64memory.json").write_text(json.dumps(MEMORY), encoding="utf-8")
    return tmp_path


@pytest.fixture(autouse=True)
def isolated_state():
    """No installed context and an empty parse cache around every test."""
    clear_context()
    clear_parse_cache()
    yield
    clear_context()
    clear_parse_cache()
