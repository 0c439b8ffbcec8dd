"""
c64lsp Command-Line Interface
=============================

- **c64lsp-check**: analyze Kick Assembler sources and print diagnostics,
  the document outline or the token stream

The tool is a Click application; exit codes are shared through
``c64lsp.cli.errors.ExitCode``.
"""

__all__ = ["check"]
