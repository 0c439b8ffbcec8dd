"""
c64lsp - Analyzer Configuration
===============================

Settings that influence the analysis pipeline. Configuration can come from:
- Default values (defined here)
- Environment variables (``AnalyzerConfig.from_env``)
- The settings object an editor client sends (``AnalyzerConfig.from_settings``)

The defaults match what an editor gets when it sends no configuration:
unused-symbol warnings on, illegal-opcode warnings off.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional
import os


# Environment variables understood by from_env()
ENV_WARN_UNUSED = "C64LSP_WARN_UNUSED"
ENV_WARN_ILLEGAL = "C64LSP_WARN_ILLEGAL"
ENV_MAX_DEPTH = "C64LSP_MAX_DEPTH"
ENV_DEBUG = "C64LSP_DEBUG"
ENV_DATA_DIR = "C64LSP_DATA_DIR"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def _parse_bool(value: str) -> Optional[bool]:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return None


@dataclass
class AnalyzerConfig:
    """
    Configuration for one analysis run.

    Attributes:
        warn_unused_labels: Emit a Warning for every label, constant or
            variable that is never referenced (default: True)
        warn_illegal_opcodes: Emit a Warning for each undocumented
            ("illegal") 6510 opcode used (default: False)
        max_nesting_depth: Upper bound for the lexer context stack and for
            parser recursion on nested expressions and blocks (default: 128)
        debug_mode: Trace every token and statement at DEBUG level
        data_dir: Directory holding mnemonic.json, kickass.json and
            c64memory.json (used by the CLI)
    """

    warn_unused_labels: bool = True
    warn_illegal_opcodes: bool = False
    max_nesting_depth: int = 128
    debug_mode: bool = False
    data_dir: Optional[Path] = None

    # =========================================================================
    # Factory Methods
    # =========================================================================

    @classmethod
    def from_env(cls) -> "AnalyzerConfig":
        """
        Create an AnalyzerConfig from environment variables.

        Environment variables (all optional):
            C64LSP_WARN_UNUSED: "1"/"0" (also true/false, yes/no, on/off)
            C64LSP_WARN_ILLEGAL: "1"/"0"
            C64LSP_MAX_DEPTH: Maximum nesting depth (integer)
            C64LSP_DEBUG: "1"/"0"
            C64LSP_DATA_DIR: Reference data directory

        Returns:
            AnalyzerConfig with values from environment variables
        """
        config = cls()

        warn_unused = os.environ.get(ENV_WARN_UNUSED)
        if warn_unused:
            flag = _parse_bool(warn_unused)
            if flag is not None:
                config.warn_unused_labels = flag

        warn_illegal = os.environ.get(ENV_WARN_ILLEGAL)
        if warn_illegal:
            flag = _parse_bool(warn_illegal)
            if flag is not None:
                config.warn_illegal_opcodes = flag

        max_depth = os.environ.get(ENV_MAX_DEPTH)
        if max_depth:
            try:
                depth = int(max_depth)
            except ValueError:
                depth = 0  # Ignore invalid values
            if depth > 0:
                config.max_nesting_depth = depth

        debug = os.environ.get(ENV_DEBUG)
        if debug:
            flag = _parse_bool(debug)
            if flag is not None:
                config.debug_mode = flag

        data_dir = os.environ.get(ENV_DATA_DIR)
        if data_dir:
            config.data_dir = Path(data_dir)

        return config

    @classmethod
    def from_settings(
        cls,
        settings: Mapping[str, Any],
        base: Optional["AnalyzerConfig"] = None,
    ) -> "AnalyzerConfig":
        """
        Create an AnalyzerConfig from an editor settings object.

        Recognized keys: ``warnUnusedLabels``, ``illegalOpcodeWarnings``,
        ``debugMode``, ``maxNestingDepth``. Keys with the wrong type are
        ignored, unknown keys are ignored.

        Args:
            settings: The settings mapping sent by the client
            base: Configuration to start from (default: built-in defaults)
        """
        config = cls(**vars(base)) if base is not None else cls()

        value = settings.get("warnUnusedLabels")
        if isinstance(value, bool):
            config.warn_unused_labels = value
        value = settings.get("illegalOpcodeWarnings")
        if isinstance(value, bool):
            config.warn_illegal_opcodes = value
        value = settings.get("debugMode")
        if isinstance(value, bool):
            config.debug_mode = value
        value = settings.get("maxNestingDepth")
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            config.max_nesting_depth = value

        return config
