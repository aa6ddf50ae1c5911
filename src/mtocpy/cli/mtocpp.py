"""
mtocpp - Classdef Filter Command-Line Interface
===============================================

This module implements the single-file filter command. It reads one
MATLAB classdef file and writes the pseudo-code for the documentation
generator, by default to standard output so that it can be registered
as a doxygen input filter.

Usage Examples
--------------
Filter to stdout:
    $ mtocpp classA.m

With a macro table:
    $ mtocpp classA.m macros.txt

With output file and group:
    $ mtocpp classA.m -o classA.cc -g models

As a doxygen input filter (Doxyfile):
    FILTER_PATTERNS = *.m=mtocpp

Verbose mode:
    $ mtocpp -v classA.m
"""

from pathlib import Path
from typing import Optional

import click

from mtocpy import __version__
from mtocpy.classdef import ClassdefTranslator, TranslatorConfig
from mtocpy.classdef.batch import write_output_atomic
from mtocpy.cli.errors import configure_logging, echo_diagnostics, handle_cli_exception


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.argument(
    "macro_table",
    required=False,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file (default: standard output)",
)
@click.option(
    "-g", "--group",
    default=None,
    help="Grouping tag emitted as @ingroup in the class documentation",
)
@click.option(
    "--no-banner",
    is_flag=True,
    help="Omit the autoinserted banner comment",
)
@click.option(
    "--ast",
    is_flag=True,
    help="Print the declaration tree and exit (for debugging)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="mtocpp")
def main(
    input_file: Path,
    macro_table: Optional[Path],
    output: Optional[Path],
    group: Optional[str],
    no_banner: bool,
    ast: bool,
    verbose: bool,
) -> None:
    """
    Translate a MATLAB classdef file into documented pseudo-code.

    INPUT_FILE is the classdef file (.m) to translate. MACRO_TABLE is an
    optional file of '#define' lines applied to the help texts.

    \b
    Examples:
        mtocpp classA.m                  # Pseudo-code on stdout
        mtocpp classA.m macros.txt       # Expand documentation macros
        mtocpp classA.m -o classA.cc     # Write to a file
        mtocpp -g models classA.m        # Add '@ingroup models'

    \b
    Environment:
        MTOC_GROUP, MTOC_TYPE_PLACEHOLDER, MTOC_NO_BANNER, MTOC_MACRO_TABLE
    """
    configure_logging(verbose)

    try:
        config = TranslatorConfig.from_env()
        if macro_table is not None:
            config = config.with_macro_table(macro_table)
        if group is not None:
            config = config.with_group(group)
        if no_banner:
            config.emit_banner = False

        result = ClassdefTranslator(config).translate_file(input_file)

        if ast:
            from mtocpy.classdef.ast import ASTPrinter
            click.echo(ASTPrinter().print(result.tree))
            return

        echo_diagnostics(result.diagnostics, verbose)

        if output is None:
            click.echo(result.output, nl=False)
        else:
            write_output_atomic(output, result.output)
            if verbose:
                click.echo(f"Translated {input_file} -> {output}", err=True)

    except Exception as e:
        handle_cli_exception(e, verbose)


if __name__ == "__main__":
    main()
