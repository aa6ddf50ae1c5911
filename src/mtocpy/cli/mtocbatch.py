"""
mtocbatch - Batch Classdef Translation
======================================

Translates many classdef files into an output directory using a bounded
pool of worker threads. Diagnostics are printed in the order the files
were given, followed by a summary line.

Usage Examples
--------------
Translate a class folder:
    $ mtocbatch src/@models/*.m -d doc/filtered

Limit the worker pool and add a macro table:
    $ mtocbatch *.m -d out -j 2 -m macros.txt
"""

from pathlib import Path
from typing import Optional

import click

from mtocpy import __version__
from mtocpy.classdef import TranslatorConfig, translate_batch
from mtocpy.cli.errors import ExitCode, configure_logging, handle_cli_exception


@click.command()
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-d", "--output-dir",
    required=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory for the generated files",
)
@click.option(
    "-j", "--jobs",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum number of worker threads (default: number of CPUs)",
)
@click.option(
    "-m", "--macro-table",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Macro table applied to the help texts",
)
@click.option(
    "-g", "--group",
    default=None,
    help="Grouping tag emitted as @ingroup in every class documentation",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="mtocbatch")
def main(
    files: tuple[Path, ...],
    output_dir: Path,
    jobs: Optional[int],
    macro_table: Optional[Path],
    group: Optional[str],
    verbose: bool,
) -> None:
    """
    Translate several MATLAB classdef files into OUTPUT_DIR.

    Each FILES entry 'Name.m' becomes 'Name.cc'. A file that fails to
    translate is reported and does not stop the others; the exit code
    is 1 if any file failed.
    """
    configure_logging(verbose)

    try:
        config = TranslatorConfig.from_env()
        if macro_table is not None:
            config = config.with_macro_table(macro_table)
        if group is not None:
            config = config.with_group(group)

        result = translate_batch(files, config, output_dir=output_dir, max_workers=jobs)

    except Exception as e:
        handle_cli_exception(e, verbose)

    for line in result.report(include_info=verbose):
        click.echo(line, err=True)

    if verbose:
        for file_result in result.files:
            if file_result.ok:
                click.echo(f"Translated {file_result.path} -> {file_result.output_path}", err=True)

    click.echo(
        f"{result.succeeded} translated, {result.failed} failed"
        f" ({len(result.files)} files)"
    )

    if result.failed:
        raise SystemExit(ExitCode.TRANSLATION_ERROR)


if __name__ == "__main__":
    main()
