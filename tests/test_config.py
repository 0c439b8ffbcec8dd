# =============================================================================
# test_config.py - Analyzer Configuration Tests
# =============================================================================
# Tests for AnalyzerConfig defaults, environment variables and editor
# settings objects.
# =============================================================================

from pathlib import Path

import pytest

from c64lsp.config import AnalyzerConfig


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every C64LSP_* variable for the duration of a test."""
    for name in ("C64LSP_WARN_UNUSED", "C64LSP_WARN_ILLEGAL", "C64LSP_MAX_DEPTH",
                 "C64LSP_DEBUG", "C64LSP_DATA_DIR"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestDefaults:
    """Test the built-in defaults."""

    def test_defaults(self):
        config = AnalyzerConfig()
        assert config.warn_unused_labels is True
        assert config.warn_illegal_opcodes is False
        assert config.max_nesting_depth == 128
        assert config.debug_mode is False
        assert config.data_dir is None


class TestFromEnv:
    """Test AnalyzerConfig.from_env."""

    def test_empty_environment(self, clean_env):
        assert AnalyzerConfig.from_env() == AnalyzerConfig()

    def test_flags(self, clean_env):
        clean_env.setenv("C64LSP_WARN_UNUSED", "off")
        clean_env.setenv("C64LSP_WARN_ILLEGAL", "yes")
        clean_env.setenv("C64LSP_DEBUG", "1")
        config = AnalyzerConfig.from_env()
        assert config.warn_unused_labels is False
        assert config.warn_illegal_opcodes is True
        assert config.debug_mode is True

    def test_unrecognized_flag_ignored(self, clean_env):
        clean_env.setenv("C64LSP_WARN_UNUSED", "maybe")
        assert AnalyzerConfig.from_env().warn_unused_labels is True

    def test_max_depth(self, clean_env):
        clean_env.setenv("C64LSP_MAX_DEPTH", "32")
        assert AnalyzerConfig.from_env().max_nesting_depth == 32

    @pytest.mark.parametrize("value", ["abc", "0", "-5"])
    def test_invalid_max_depth(self, clean_env, value):
        clean_env.setenv("C64LSP_MAX_DEPTH", value)
        assert AnalyzerConfig.from_env().max_nesting_depth == 128

    def test_data_dir(self, clean_env, tmp_path):
        clean_env.setenv("C64LSP_DATA_DIR", str(tmp_path))
        assert AnalyzerConfig.from_env().data_dir == Path(tmp_path)


class TestFromSettings:
    """Test AnalyzerConfig.from_settings."""

    def test_all_keys(self):
        config = AnalyzerConfig.from_settings({
            "warnUnusedLabels": False,
            "illegalOpcodeWarnings": True,
            "debugMode": True,
            "maxNestingDepth": 64,
        })
        assert config.warn_unused_labels is False
        assert config.warn_illegal_opcodes is True
        assert config.debug_mode is True
        assert config.max_nesting_depth == 64

    def test_empty_settings(self):
        assert AnalyzerConfig.from_settings({}) == AnalyzerConfig()

    def test_wrong_types_ignored(self):
        config = AnalyzerConfig.from_settings({
            "warnUnusedLabels": "false",
            "illegalOpcodeWarnings": 1,
            "maxNestingDepth": True,
        })
        assert config == AnalyzerConfig()

    def test_non_positive_depth_ignored(self):
        assert AnalyzerConfig.from_settings({"maxNestingDepth": 0}).max_nesting_depth == 128

    def test_base_is_not_modified(self, tmp_path):
        base = AnalyzerConfig(warn_illegal_opcodes=True, data_dir=tmp_path)
        config = AnalyzerConfig.from_settings({"warnUnusedLabels": False}, base)
        assert config.warn_illegal_opcodes is True
        assert config.data_dir == tmp_path
        assert config.warn_unused_labels is False
        assert base.warn_unused_labels is True
