"""CLI interface for mcp-apps-sanity using Click."""

import json
import sys
from typing import Optional

import click

from . import __version__
from .diagnostics import InputValidationError
from .logger import LOG_LEVEL_ENV, configure_logging
from .probe.report import _colorize, print_diff, print_results
from .probe.runner import DEFAULT_TIMEOUT, compare_snapshots, run_validation


def _print_error(message: str):
    """Print an error message with color."""
    print(_colorize(f"❌ {message}", "red"), file=sys.stderr)


def _load_snapshot(path: str) -> dict:
    with open(path, "r") as f:
        return json.load(f)


@click.group()
@click.option(
    "--log-level",
    envvar=LOG_LEVEL_ENV,
    default=None,
    help="Logging level for diagnostics on stderr (DEBUG, INFO, WARNING, ERROR).",
)
@click.version_option(version=__version__)
def main(log_level: Optional[str]):
    """Validate MCP Apps (io.modelcontextprotocol/ui) servers and compare snapshots.

    Examples:

    \b
      mcp-apps-sanity validate https://example.com/mcp
      mcp-apps-sanity validate https://example.com/mcp --json --save before.json
      mcp-apps-sanity compare before.json after.json
    """
    configure_logging(log_level)


@main.command()
@click.argument("endpoint")
@click.option("--timeout", type=float, default=DEFAULT_TIMEOUT, show_default=True,
              help="Per-request timeout in seconds.")
@click.option("--json", "json_output", is_flag=True, help="Output results as JSON.")
@click.option("--save", "save_path", type=click.Path(dir_okay=False, writable=True),
              help="Write the snapshot to FILE for a later compare.")
def validate(endpoint: str, timeout: float, json_output: bool, save_path: Optional[str]):
    """Validate the MCP Apps extension of the server at ENDPOINT.

    Exits 0 when no diagnostics were produced, 1 otherwise.
    """
    try:
        result = run_validation(endpoint, timeout=timeout)
    except InputValidationError as e:
        _print_error(str(e))
        sys.exit(1)

    if save_path:
        try:
            with open(save_path, "w") as f:
                json.dump(result.snapshot.to_dict(), f, indent=2)
        except OSError as e:
            _print_error(f"Could not write snapshot: {e}")
            sys.exit(1)

    print_results(result, json_output=json_output, version=__version__)
    sys.exit(0 if result.status else 1)


@main.command()
@click.argument("before", type=click.Path(exists=True, dir_okay=False))
@click.argument("after", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "json_output", is_flag=True, help="Output the diff as JSON.")
@click.option("--fail-on-change", is_flag=True, help="Exit 1 when the snapshots differ.")
def compare(before: str, after: str, json_output: bool, fail_on_change: bool):
    """Compare two saved snapshots, BEFORE and AFTER."""
    try:
        before_snapshot = _load_snapshot(before)
        after_snapshot = _load_snapshot(after)
    except json.JSONDecodeError as e:
        _print_error(f"Invalid JSON: {e}")
        sys.exit(1)
    except OSError as e:
        _print_error(f"Error: {e}")
        sys.exit(1)

    try:
        result = compare_snapshots(before_snapshot, after_snapshot)
    except InputValidationError as e:
        _print_error(str(e))
        sys.exit(1)

    print_diff(result, json_output=json_output)
    sys.exit(1 if fail_on_change and result.has_changes else 0)


if __name__ == "__main__":
    main()
