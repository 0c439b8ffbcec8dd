"""
c64lsp-check - Kick Assembler Source Checker
============================================

Runs the analysis core on one or more source files and prints the
diagnostics an editor would show.

Usage Examples
--------------
Check a file against a reference data directory:
    $ c64lsp-check --data-dir data/ main.asm

Use the C64LSP_DATA_DIR environment variable instead:
    $ C64LSP_DATA_DIR=data/ c64lsp-check main.asm lib/*.asm

Report undocumented opcodes, silence unused-symbol warnings:
    $ c64lsp-check -d data/ --warn-illegal --no-warn-unused main.asm

Show the symbol outline or the context-annotated token stream:
    $ c64lsp-check -d data/ --symbols main.asm
    $ c64lsp-check -d data/ --tokens main.asm

Output Format
-------------
    main.asm:12:5: error: Unexpected token ')' in expression [context-aware-parser]
    main.asm:3:1: warning: Unused label 'loop' [analyzer]

The exit status is 1 if any file produced an Error diagnostic.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from c64lsp import __version__
from c64lsp.analysis.document import analyze_document
from c64lsp.analysis.symbols import Scope
from c64lsp.analysis.tokens import Token
from c64lsp.cli.errors import ExitCode, handle_cli_exception
from c64lsp.config import AnalyzerConfig
from c64lsp.reference.context import ReferenceContext
from c64lsp.reference.loader import KICKASS_FILE, MEMORY_FILE, MNEMONIC_FILE

logger = logging.getLogger(__name__)


# =============================================================================
# Helper Functions
# =============================================================================

def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s" if verbose else "%(levelname)s: %(message)s",
    )


def load_reference(
    data_dir: Optional[Path],
    mnemonics: Optional[Path],
    kickass: Optional[Path],
    memory: Optional[Path],
) -> ReferenceContext:
    """
    Load the Reference Context from a data directory, with individual
    files overriding the directory's.

    Raises:
        click.BadParameter: If the mnemonic or Kick Assembler data is missing
        ReferenceDataError: If a file cannot be parsed
    """
    if data_dir is not None:
        mnemonics = mnemonics or data_dir / MNEMONIC_FILE
        kickass = kickass or data_dir / KICKASS_FILE
        if memory is None and (data_dir / MEMORY_FILE).exists():
            memory = data_dir / MEMORY_FILE

    if mnemonics is None or kickass is None:
        raise click.BadParameter(
            "no reference data: use --data-dir, set C64LSP_DATA_DIR, "
            "or pass both --mnemonics and --kickass"
        )

    return ReferenceContext.from_files(mnemonics, kickass, memory)


def format_token(token: Token) -> str:
    context = token.context
    role = f" ({token.metadata.operand_type})" if token.metadata.operand_type else ""
    return (
        f"{token.line:4d}:{token.column:<4d} {token.type.name:<20} {token.literal!r}"
        f"  [{context.state.name}@{context.depth}]{role}"
    )


def format_scope(scope: Scope, indent: int = 0) -> list[str]:
    """Indented listing of a scope's symbols and child scopes."""
    pad = "  " * indent
    lines = []
    for symbol in scope.symbols.values():
        detail = ""
        if symbol.signature:
            detail = f" {symbol.signature}"
        elif symbol.value:
            detail = f" = {symbol.value}"
        lines.append(
            f"{pad}{symbol.position.line + 1}:{symbol.position.character + 1} "
            f"{symbol.kind.value} {symbol.name}{detail} (used {symbol.usage_count}x)"
        )
    for child in scope.children:
        lines.append(
            f"{pad}scope {child.name} "
            f"(lines {child.range.start.line + 1}-{child.range.end.line + 1})"
        )
        lines.extend(format_scope(child, indent + 1))
    return lines


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-d", "--data-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Directory with mnemonic.json, kickass.json and c64memory.json "
         "(default: $C64LSP_DATA_DIR)",
)
@click.option(
    "--mnemonics",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Mnemonic reference file (overrides --data-dir)",
)
@click.option(
    "--kickass",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Kick Assembler reference file (overrides --data-dir)",
)
@click.option(
    "--memory",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="C64 memory map file (overrides --data-dir)",
)
@click.option(
    "--no-warn-unused",
    is_flag=True,
    help="Do not warn about unused labels, constants and variables",
)
@click.option(
    "--warn-illegal",
    is_flag=True,
    help="Warn about undocumented (illegal) opcodes",
)
@click.option(
    "--max-depth",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum nesting depth (default: 128)",
)
@click.option(
    "--symbols",
    "show_symbols",
    is_flag=True,
    help="Print the symbol table of each file",
)
@click.option(
    "--tokens",
    "show_tokens",
    is_flag=True,
    help="Print the token stream of each file",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output (debug logging)",
)
@click.version_option(version=__version__, prog_name="c64lsp-check")
def main(
    files: tuple[Path, ...],
    data_dir: Optional[Path],
    mnemonics: Optional[Path],
    kickass: Optional[Path],
    memory: Optional[Path],
    no_warn_unused: bool,
    warn_illegal: bool,
    max_depth: Optional[int],
    show_symbols: bool,
    show_tokens: bool,
    verbose: bool,
) -> None:
    """
    Check Kick Assembler source files.

    FILES are the assembly sources to analyze.

    Examples:

        # Check against a data directory
        c64lsp-check -d data/ main.asm

        # Show the symbol table
        c64lsp-check -d data/ --symbols main.asm
    """
    setup_logging(verbose)

    error_count = 0
    try:
        config = AnalyzerConfig.from_env()
        if no_warn_unused:
            config.warn_unused_labels = False
        if warn_illegal:
            config.warn_illegal_opcodes = True
        if max_depth is not None:
            config.max_nesting_depth = max_depth
        if verbose:
            config.debug_mode = True

        context = load_reference(data_dir or config.data_dir, mnemonics, kickass, memory)

        warning_count = 0
        for path in files:
            logger.debug(f"Checking {path}")
            text = path.read_text(encoding="utf-8", errors="replace")
            analysis = analyze_document(path.resolve().as_uri(), text, context, config)

            if show_tokens:
                click.echo(f"# Tokens: {path}")
                for token in analysis.tokens:
                    click.echo(format_token(token))

            if show_symbols:
                click.echo(f"# Symbols: {path}")
                for line in format_scope(analysis.scope):
                    click.echo(line)

            for diagnostic in sorted(analysis.diagnostics, key=lambda d: (d.start.line, d.start.character)):
                click.echo(f"{path}:{diagnostic}")

            error_count += len(analysis.errors)
            warning_count += len(analysis.warnings)

        if verbose:
            click.echo(f"{len(files)} file(s): {error_count} error(s), {warning_count} warning(s)", err=True)

    except Exception as e:
        handle_cli_exception(e, verbose)

    if error_count:
        sys.exit(ExitCode.DIAGNOSTICS)


if __name__ == "__main__":
    main()
