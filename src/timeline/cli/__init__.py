"""CLI commands for the timeline feed engine.

Provides command-line interface using Typer:
- timeline worker: Run a refresh job worker
- timeline scheduler: Schedule periodic bulk refresh
- timeline refresh-all: Queue or run a bulk refresh
- timeline invalidate: Drop a user's cached timeline
- timeline subscribe: Turn post-created events into refresh jobs

Usage:
    timeline --help
    timeline worker --concurrency 8
    timeline refresh-all --inline --cache memory
    timeline invalidate u-42
"""

import typer

from timeline.cli.refresh_cmd import invalidate_app, refresh_app
from timeline.cli.scheduler_cmd import app as scheduler_app
from timeline.cli.subscribe_cmd import app as subscribe_app
from timeline.cli.worker_cmd import app as worker_app

# Main CLI application
app = typer.Typer(
    name="timeline",
    help="Timeline feed engine: cached, ranked personal timelines",
    no_args_is_help=True,
)

# Add subcommands
app.add_typer(worker_app, name="worker")
app.add_typer(scheduler_app, name="scheduler")
app.add_typer(refresh_app, name="refresh-all")
app.add_typer(invalidate_app, name="invalidate")
app.add_typer(subscribe_app, name="subscribe")


@app.callback()
def callback() -> None:
    """Timeline feed engine: cached, ranked personal timelines."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
