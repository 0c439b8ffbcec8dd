# =============================================================================
# test_reference.py - Reference Context Unit Tests
# =============================================================================
# Tests for loading the reference tables and querying them.
#
# Test coverage includes:
#   - JSON document parsing and malformed record handling
#   - Memory map address keys and region expansion
#   - Mnemonic classification (illegal, control, standard)
#   - Directive lookup, normalization and categories
#   - Built-in functions and constants
#   - The process-wide installed context
# =============================================================================

import pytest

from c64lsp.errors import ContextNotLoadedError, ReferenceDataError
from c64lsp.reference.context import (
    ReferenceContext,
    get_context,
    install_context,
    load_context,
    normalize_mode,
    require_context,
)
from c64lsp.reference.loader import (
    normalize_directive_name,
    parse_address,
    parse_kickass,
    parse_memory_map,
    parse_mnemonics,
)


# =============================================================================
# Loader Tests
# =============================================================================

class TestParseAddress:
    """Test memory map address keys."""

    @pytest.mark.parametrize("text,expected", [
        ("$D020", 0xD020),
        ("0xd020", 0xD020),
        ("0XD020", 0xD020),
        ("D020", 0xD020),
        ("0314", 0x0314),
        ("$FFFF", 0xFFFF),
    ])
    def test_valid(self, text, expected):
        assert parse_address(text) == expected

    @pytest.mark.parametrize("text", ["$10000", "xyz", "", "$"])
    def test_invalid(self, text):
        assert parse_address(text) is None


class TestLoader:
    """Test parsing of the decoded JSON documents."""

    def test_mnemonics(self, mnemonic_data):
        mnemonics = parse_mnemonics(mnemonic_data)
        lda = mnemonics[0]
        assert lda.mnemonic == "LDA"
        assert lda.type == "Load"
        assert lda.addressing_modes[0].opcode == "A9"
        assert lda.addressing_modes[0].length == 2

    def test_mnemonics_not_a_list(self):
        with pytest.raises(ReferenceDataError):
            parse_mnemonics({"mnemonic": "LDA"})

    def test_malformed_mnemonic_skipped(self):
        mnemonics = parse_mnemonics([{"mnemonic": "lda"}, {"foo": 1}, "bad"])
        assert [m.mnemonic for m in mnemonics] == ["LDA"]
        assert mnemonics[0].addressing_modes == ()

    def test_kickass(self, kickass_data):
        data = parse_kickass(kickass_data)
        assert data.directives[0].directive == ".byte"
        assert data.preprocessor_statements[0].preprocessor
        assert [f.name for f in data.functions] == ["sin", "tointstring"]
        assert [c.name for c in data.constants] == ["PI", "BLUE"]

    def test_kickass_not_an_object(self):
        with pytest.raises(ReferenceDataError):
            parse_kickass([])

    def test_memory_map(self, memory_data):
        regions = parse_memory_map(memory_data)
        assert [r.address for r in regions] == [0xD020, 0xD400, 0x0314]
        assert regions[1].end_address == 0xD41C

    def test_memory_map_missing_regions(self):
        with pytest.raises(ReferenceDataError):
            parse_memory_map({"memoryMap": {}})

    def test_bad_address_skipped(self):
        data = {"memoryMap": {"regions": {
            "$ZZZZ": {"name": "Broken"},
            "$0400": {"name": "Screen"},
        }}}
        regions = parse_memory_map(data)
        assert [r.name for r in regions] == ["Screen"]
        assert regions[0].size == 1

    @pytest.mark.parametrize("name,expected", [
        ("BYTE", ".byte"),
        (".Word", ".word"),
        ("#import", "#import"),
    ])
    def test_normalize_directive_name(self, name, expected):
        assert normalize_directive_name(name) == expected


class TestLoadFiles:
    """Test loading from a data directory."""

    def test_from_directory(self, data_dir):
        ctx = ReferenceContext.from_directory(data_dir)
        assert ctx.lookup_mnemonic("NOP") is not None
        assert len(ctx.memory_regions) == 3

    def test_memory_map_optional(self, data_dir):
        (data_dir / "c64memory.json").unlink()
        ctx = ReferenceContext.from_directory(data_dir)
        assert ctx.memory_regions == ()
        assert ctx.address_at(0xD020) is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(ReferenceDataError) as exc_info:
            ReferenceContext.from_directory(tmp_path)
        assert exc_info.value.path.endswith("mnemonic.json")

    def test_invalid_json(self, data_dir):
        (data_dir / "kickass.json").write_text("{", encoding="utf-8")
        with pytest.raises(ReferenceDataError) as exc_info:
            ReferenceContext.from_directory(data_dir)
        assert exc_info.value.reason.startswith("invalid JSON")

    def test_error_message(self):
        error = ReferenceDataError("a.json", "boom")
        assert str(error) == "cannot load reference data 'a.json': boom"


# =============================================================================
# Lookup Tests
# =============================================================================

class TestMnemonics:
    """Test mnemonic lookup and classification."""

    def test_lookup_case_insensitive(self, reference):
        assert reference.lookup_mnemonic("lda").mnemonic == "LDA"
        assert reference.lookup_mnemonic("XYZ") is None

    def test_addressing_modes(self, reference):
        assert len(reference.addressing_modes_for("LDA")) == 8
        assert reference.addressing_modes_for("XYZ") == ()
        assert reference.supports_addressing_mode("lda", "immediate")
        assert not reference.supports_addressing_mode("STA", "Immediate")

    @pytest.mark.parametrize("spelling", ["Zero Page,X", "zeropage,x", "ZEROPAGE, X"])
    def test_mode_spellings(self, reference, spelling):
        """Spaces, case and parentheses do not matter."""
        assert reference.supports_addressing_mode("LDA", spelling)

    def test_indirect_spellings(self, reference):
        assert reference.supports_addressing_mode("LDA", "Indirect,Y")
        assert reference.supports_addressing_mode("LDA", "(Indirect,X)")
        assert not reference.supports_addressing_mode("LDA", "Indirect")

    def test_normalize_mode(self):
        assert normalize_mode("(Indirect),Y") == "indirect,y"
        assert normalize_mode("(Indirect,Y)") == "indirect,y"
        assert normalize_mode("Zero Page") == "zeropage"

    @pytest.mark.parametrize("name,illegal,control,standard", [
        ("LDA", False, False, True),
        ("jmp", False, True, False),
        ("JSR", False, True, False),
        ("BNE", False, True, False),
        ("RTS", False, True, False),
        ("LAX", True, False, False),
        ("XYZ", False, False, False),
    ])
    def test_classification(self, reference, name, illegal, control, standard):
        assert reference.is_illegal_mnemonic(name) is illegal
        assert reference.is_control_mnemonic(name) is control
        assert reference.is_standard_mnemonic(name) is standard

    def test_illegal_by_type_tag(self):
        ctx = ReferenceContext.from_data([{"mnemonic": "ZZZ", "type": "Illegal"}])
        assert ctx.is_illegal_mnemonic("zzz")

    def test_tables_read_only(self, reference):
        with pytest.raises(TypeError):
            reference.mnemonics["FOO"] = None


class TestDirectives:
    """Test directive lookup and categories."""

    def test_lookup_normalized(self, reference):
        assert reference.lookup_directive("BYTE").directive == ".byte"
        assert reference.lookup_directive(".Byte") is reference.lookup_directive("byte")
        assert reference.lookup_directive(".unknown") is None

    def test_preprocessor(self, reference):
        assert reference.lookup_directive("#import").preprocessor
        assert reference.is_preprocessor_statement("#IMPORT")
        assert not reference.is_preprocessor_statement("#foo")
        assert reference.preprocessor_statements == frozenset({"#import", "#define"})

    @pytest.mark.parametrize("name,category", [
        (".byte", "data"),
        (".if", "flow"),
        (".const", "asm"),
        (".print", "text"),
        (".define", "pre"),
        (".return", "flow"),
        (".unknown", "pre"),
        ("#import", "pre"),
    ])
    def test_category(self, reference, name, category):
        assert reference.directive_category(name) == category


class TestBuiltins:
    """Test built-in functions, constants and the memory map."""

    def test_functions(self, reference):
        assert reference.lookup_function("SIN").signature == "sin(x)"
        assert reference.lookup_function("toIntString").category == "string"
        assert reference.lookup_function("cos") is None

    def test_constants(self, reference):
        assert reference.lookup_constant("pi").value == "3.1415926535"
        assert reference.lookup_constant("BLUE").category == "color"

    @pytest.mark.parametrize("address,name", [
        (0xD020, "Border color"),
        (0xD400, "SID"),
        (0xD41C, "SID"),
        (0x0314, "IRQ vector"),
        (0x0315, "IRQ vector"),
    ])
    def test_address_at(self, reference, address, name):
        assert reference.address_at(address).name == name

    @pytest.mark.parametrize("address", [0xD021, 0xD41D, 0x0316, 0x0000])
    def test_address_outside_regions(self, reference, address):
        assert reference.address_at(address) is None

    def test_empty_context(self):
        ctx = ReferenceContext.from_data()
        assert ctx.lookup_mnemonic("LDA") is None
        assert ctx.lookup_directive(".byte") is None
        assert ctx.memory_regions == ()


# =============================================================================
# Installed Context Tests
# =============================================================================

class TestInstalledContext:
    """Test the process-wide Reference Context."""

    def test_not_loaded(self):
        assert get_context() is None
        with pytest.raises(ContextNotLoadedError):
            require_context()

    def test_install_returns_previous(self, reference):
        assert install_context(reference) is None
        other = ReferenceContext.from_data()
        assert install_context(other) is reference
        assert require_context() is other

    def test_load_context(self, data_dir):
        ctx = load_context(data_dir)
        assert get_context() is ctx

    def test_failed_load_keeps_previous(self, reference, tmp_path):
        install_context(reference)
        with pytest.raises(ReferenceDataError):
            load_context(tmp_path)
        assert get_context() is reference
