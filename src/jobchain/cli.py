# cli.py
from __future__ import annotations

import sys

import click

from jobchain.diagnostics import main
from jobchain.errors import EnrichedFailure
from jobchain.tool import USAGE, Tool
from jobchain.ui.console import Console, set_console, get_console


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """jobchain: runs chains of batch jobs on a dataflow engine."""
    # Initialize console with debug flag
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command(
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
    epilog=USAGE,
)
@click.argument("job_args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def run(ctx, job_args):
    """
    Run a job and every job chained after it.

    Everything after `run` is handed to the job untouched: engine options
    (-D key=value, -conf FILE, -files ...), the job class, --local/--hdfs and
    the job's own arguments. Useful flags: --tool.graph (only write DOT files),
    --scalding.flowstats [FILE], --scalding.nocounters.
    """
    console = get_console()

    try:
        main(list(job_args), tool=Tool(console=console))
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except EnrichedFailure as e:
        cause = e.__cause__
        console.print_error(
            type(cause).__name__ if cause is not None else "Job chain failed",
            str(cause) if cause is not None else "",
            suggestion=str(e),
        )
        if ctx.obj.get("debug", False):
            console.print_exception(e)
        sys.exit(1)


if __name__ == "__main__":
    cli()
