"""
exprcc - Expression Compiler Command-Line Interface
===================================================

Compiles an expression-language source file to x86-64 assembly
(Intel syntax).

Usage Examples
--------------
Basic compilation:
    $ exprcc calc.ex

With output file:
    $ exprcc calc.ex -o calc.s

Single expression, type errors fatal:
    $ exprcc --expr --strict calc.ex

Debug dumps:
    $ exprcc --tokens calc.ex
    $ exprcc --ast calc.ex
"""

import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click

from exprc import __version__
from exprc.cli.errors import ExitCode, handle_cli_exception
from exprc.lang import ASTPrinter, Compiler, CompilerOptions
from exprc.lang.errors import displayable

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output assembly file (default: input.s)",
)
@click.option(
    "--ast",
    is_flag=True,
    help="Print AST and exit (for debugging)",
)
@click.option(
    "--tokens",
    is_flag=True,
    help="Print the token stream and exit (for debugging)",
)
@click.option(
    "--strict",
    is_flag=True,
    help="Treat type errors as fatal",
)
@click.option(
    "--expr",
    is_flag=True,
    help="Parse the input as a single expression",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="exprcc")
def main(
    input_file: Path,
    output: Optional[Path],
    ast: bool,
    tokens: bool,
    strict: bool,
    expr: bool,
    verbose: bool,
) -> None:
    """
    Compile an expression-language source file to x86-64 assembly.

    INPUT_FILE is the source file to compile.

    \b
    Examples:
        exprcc calc.ex               # Outputs calc.s
        exprcc calc.ex -o out.s      # Specify output file
        exprcc --expr calc.ex        # Single expression input
        exprcc --ast calc.ex         # Dump the syntax tree

    \b
    Supported code generation:
        - integer literals
        - + - * on integers
        - int declarations (int x = expr)

    EXPRC_* environment variables provide defaults for the options.
    """
    setup_logging(verbose)

    if output is None:
        output = input_file.with_suffix(".s")

    dump = ast or tokens
    options = CompilerOptions.from_env()
    options = replace(
        options,
        strict_types=options.strict_types or strict,
        program_mode=options.program_mode and not expr,
        emit_comments=options.emit_comments or verbose,
        raise_on_error=not dump,
        parse_only=dump,
    )
    logger.debug("options: %s", options)

    try:
        if verbose:
            click.echo(f"Compiling {input_file}...")

        source = input_file.read_text(encoding="utf-8", errors="surrogateescape")
        compiler = Compiler(options)
        result = compiler.compile_source(source, str(input_file))

        # Dump modes stop after parsing; only lexical and syntax errors fail
        if dump:
            if tokens:
                for token in result.tokens:
                    click.echo(repr(token))
            if ast and result.ast is not None:
                click.echo(displayable(ASTPrinter().print(result.ast)))
            for error in result.errors:
                click.echo(str(error), err=True)
            sys.exit(ExitCode.SUCCESS if result.success else ExitCode.BUILD_ERROR)

        for warning in result.warnings:
            click.echo(warning, err=True)

        output.write_text(result.assembly, encoding="utf-8", errors="surrogateescape")

        if verbose:
            click.echo(f"Wrote {len(result.assembly)} bytes to {output}")
            click.echo(f"Tokenized: {result.token_count} tokens")

        click.echo(f"Compiled {input_file} -> {output}")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose)


if __name__ == "__main__":
    main()
