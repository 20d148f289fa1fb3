#!/usr/bin/env python3
"""
Document Compilation CLI

Stages a LaTeX source tree into a temporary compile directory, compiles it,
and moves the resulting PDF to its destination.

Commands:
    compile - Compile a document from a source directory
    clean   - Remove auxiliary LaTeX files (.aux, .log, ...) below a directory

Examples:\n

    compile_document.py compile docs/report main.tex out/report.pdf

    compile_document.py compile docs/report main out/ --engine xelatex --passes 2

    compile_document.py compile docs/report main.tex out/ --profile profiles/print.yaml

    compile_document.py clean docs/report
"""

import os
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from typing_extensions import Annotated

from texstage.contexts.compilation import (
    CompileSession,
    WorkingDirectoryError,
    compile_document,
    load_compile_profile,
)
from texstage.utils.timestamp import now

load_dotenv()
LOGS_PATH = Path(os.getenv("TEXSTAGE_LOGS_PATH", "outs/logs"))


app = typer.Typer(
    help="Compile LaTeX documents in an isolated compile directory",
    add_completion=False,
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command("compile")
def compile_command(
    source_dir: Annotated[
        Path,
        typer.Argument(help="Directory holding the document sources", exists=True, file_okay=False),
    ],
    entry_file: Annotated[str, typer.Argument(help="Top-level .tex file (extension optional)")],
    destination: Annotated[Path, typer.Argument(help="Output PDF path or directory")],
    profile_path: Annotated[
        Optional[Path],
        typer.Option("--profile", help="Compile profile YAML", exists=True, dir_okay=False),
    ] = None,
    engine: Annotated[
        Optional[str],
        typer.Option("--engine", "-e", help="LaTeX engine: pdflatex, xelatex, or lualatex"),
    ] = None,
    passes: Annotated[
        Optional[int],
        typer.Option("--passes", "-p", help="Number of engine passes", min=1, max=5),
    ] = None,
    optimize: Annotated[
        Optional[str],
        typer.Option(
            "--optimize",
            "-o",
            help="Ghostscript preset: screen, printer, prepress, ebook, or default",
        ),
    ] = None,
    resolve_symlinks: Annotated[
        bool,
        typer.Option("--resolve-symlinks", help="Replace symlinks in staged sources with copies"),
    ] = False,
    clean_aux: Annotated[
        bool,
        typer.Option("--clean-aux", help="Remove auxiliary files before moving the PDF"),
    ] = False,
    keep_compile_dir: Annotated[
        bool,
        typer.Option("--keep-compile-dir", "-k", help="Leave the compile directory for inspection"),
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Stream engine output live")
    ] = False,
    debug: Annotated[bool, typer.Option("--debug", help="Stream engine output and debug logs")] = False,
    quiet: Annotated[bool, typer.Option("--quiet", "-q", help="Suppress all engine output")] = False,
):
    """
    Compile a LaTeX document to PDF.

    Command-line options override values from --profile.

    Examples:\n

        $ compile_document.py compile docs/report main.tex out/report.pdf

        $ compile_document.py compile docs/report main out/ -e lualatex -p 2 -o ebook
    """
    verbosity = None
    if debug:
        verbosity = "debug"
    elif verbose:
        verbosity = "verbose"
    elif quiet:
        verbosity = "silent"

    try:
        profile = load_compile_profile(
            profile_path,
            overrides={
                "engine": engine,
                "passes": passes,
                "optimize_channel": optimize,
                "resolve_symlinks": resolve_symlinks or None,
                "clear_auxiliary": clean_aux or None,
                "keep_compile_dir": keep_compile_dir or None,
                "verbosity": verbosity,
            },
        )
    except ValueError as e:
        typer.secho(f"Error: {e}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho(f"\nCompiling: {source_dir / entry_file}", fg=typer.colors.BLUE, bold=True)
    typer.echo(f"Engine: {profile.engine}  Passes: {profile.passes}")
    typer.echo("")

    log_dir = LOGS_PATH / f"compile_{now()}"
    try:
        result = compile_document(
            source_dir=source_dir,
            entry_file=entry_file,
            destination=destination,
            profile=profile,
            log_dir=log_dir,
        )
    except (ValueError, WorkingDirectoryError) as e:
        typer.secho(f"Error: {e}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.echo("")
    if result.success:
        typer.secho("✓ Compilation succeeded", fg=typer.colors.GREEN, bold=True)
        typer.echo(f"  PDF: {result.pdf_path}")
        if result.optimization is not None:
            typer.echo(f"  Optimization: {result.optimization.status.value}")
    else:
        typer.secho("✗ Compilation failed", fg=typer.colors.RED, bold=True)
        for error in result.errors:
            typer.secho(f"  - {error}", fg=typer.colors.RED)

    typer.echo(f"  Log: {log_dir / 'compile.log'}")
    typer.echo("")

    raise typer.Exit(code=0 if result.success else 1)


@app.command("clean")
def clean_command(
    directory: Annotated[
        Path,
        typer.Argument(help="Directory to clean recursively", exists=True, file_okay=False),
    ],
):
    """
    Remove auxiliary LaTeX files (.aux, .log, .toc, .nav, .ind, .ilg, .idx).

    Examples:\n

        $ compile_document.py clean docs/report
    """
    cleanup = CompileSession().clear_auxiliary_files(directory)

    typer.echo(f"Removed {len(cleanup.removed)} files")
    for path in cleanup.removed:
        typer.echo(f"  - {path}")
    if cleanup.failed:
        typer.secho(f"Skipped {cleanup.failed} entries that could not be removed", fg=typer.colors.YELLOW)


if __name__ == "__main__":
    app()
