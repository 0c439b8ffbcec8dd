"""
c64lsp Error Hierarchy
======================

This module defines the exception hierarchy for the c64lsp analysis core.
All exceptions inherit from C64LspError, allowing callers to catch all
package-related errors with a single except clause if desired.

Exception Hierarchy
-------------------
C64LspError (base)
├── ReferenceDataError - reference JSON missing, unreadable or malformed
├── ContextNotLoadedError - no Reference Context has been installed
└── AnalysisError (analysis-related)
    └── DuplicateSymbolError - symbol defined twice in one scope

Design Philosophy
-----------------
The analysis pipeline itself never lets these escape: syntax errors,
duplicate definitions and unused symbols all surface as Diagnostic
records attached to the result of ``parse_document``. Exceptions are used
at the edges (loading reference data, installing the shared context) and
internally where a local failure is converted into a diagnostic by the
caller.

Error messages follow this format:
    filename:line:column: error: description
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class C64LspError(Exception):
    """
    Base exception for all c64lsp errors.

    All exceptions in the package inherit from this class:

        try:
            ctx = ReferenceContext.from_directory("data/")
        except C64LspError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    A location in a source document, used in exception messages.

    Attributes:
        filename: Document name or URI (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Reference Data Exceptions
# =============================================================================

class ReferenceDataError(C64LspError):
    """
    A reference table (mnemonics, Kick Assembler data, memory map) could
    not be loaded.

    Attributes:
        path: The file that failed to load
        reason: What went wrong
    """

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"cannot load reference data '{path}': {reason}")


class ContextNotLoadedError(C64LspError):
    """Raised when the shared Reference Context is requested before loading."""

    def __init__(self) -> None:
        super().__init__("reference context has not been loaded")


# =============================================================================
# Analysis Exceptions
# =============================================================================

class AnalysisError(C64LspError):
    """
    Base exception for analysis-stage failures.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = []
        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")
        if self.hint:
            parts.append(f"hint: {self.hint}")
        return "\n".join(parts)


class DuplicateSymbolError(AnalysisError):
    """
    Symbol defined multiple times in the same scope.

    ``reason`` carries the bare message used for the diagnostic, without
    the location prefix.
    """

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        original_location: Optional[SourceLocation] = None,
    ):
        self.symbol = symbol
        self.original_location = original_location
        self.reason = f"symbol '{symbol}' already defined in this scope"

        hint = None
        if original_location:
            hint = f"'{symbol}' was first defined at {original_location}"

        super().__init__(self.reason, location=location, hint=hint)
