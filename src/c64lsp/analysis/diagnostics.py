"""
Diagnostics
===========

Problems found while analyzing a document, in the shape an LSP client
expects for ``textDocument/publishDiagnostics``.

Every diagnostic names the stage that produced it:

=========================  ==============================================
``context-aware-parser``   syntax errors and lexer overflow
``parser``                 duplicate definitions, missing reference data
``analyzer``               unused symbols, illegal opcodes
=========================  ==============================================
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from c64lsp.analysis.symbols import Position, Range

SOURCE_PARSER = "context-aware-parser"
SOURCE_SCOPE = "parser"
SOURCE_ANALYZER = "analyzer"


class Severity(IntEnum):
    """LSP DiagnosticSeverity values."""
    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class Diagnostic:
    """
    One reported problem.

    Attributes:
        severity: How serious the problem is
        range: 0-based source range
        message: Human-readable description
        source: Stage that produced it
    """
    severity: Severity
    range: Range
    message: str
    source: str

    @classmethod
    def at_token(
        cls,
        severity: Severity,
        message: str,
        line: int,
        column: int,
        source: str,
        length: int = 11,
    ) -> "Diagnostic":
        """Diagnostic starting at a 1-based token position."""
        return cls(severity, Range.span(line - 1, column - 1, length), message, source)

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    @property
    def start(self) -> Position:
        return self.range.start

    def to_lsp(self) -> dict[str, Any]:
        """Plain dict in LSP Diagnostic form."""
        return {
            "range": self.range.to_lsp(),
            "severity": int(self.severity),
            "message": self.message,
            "source": self.source,
        }

    def __str__(self) -> str:
        start = self.range.start
        return (
            f"{start.line + 1}:{start.character + 1}: "
            f"{self.severity.label}: {self.message} [{self.source}]"
        )
