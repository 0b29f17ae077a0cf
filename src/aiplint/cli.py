"""aiplint CLI entry point."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from aiplint import __version__


@click.group()
@click.version_option(version=__version__, prog_name="aiplint")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """aiplint - rule-compliance linter for resource-oriented APIs."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@main.command()
@click.argument(
    "paths",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, path_type=Path),
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["text", "json", "porcelain"]),
    default=None,
    help="Output format (default: text if TTY, porcelain if piped).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Configuration file (default: ./aiplint.yml when present).",
)
@click.option("--jobs", "-j", type=click.IntRange(min=1), default=None, help="Worker threads.")
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Per-check timeout in seconds.",
)
@click.option(
    "--fail-on",
    type=click.Choice(["error", "warning", "notice"], case_sensitive=False),
    default=None,
    help="Lowest severity that fails the run (default: from config, else error).",
)
@click.option(
    "--target",
    "targets",
    multiple=True,
    help="File in a descriptor set to lint (repeatable; default: files nothing imports).",
)
def lint(
    *,
    paths: tuple[Path, ...],
    fmt: str | None,
    config_path: Path | None,
    jobs: int | None,
    timeout: float | None,
    fail_on: str | None,
    targets: tuple[str, ...],
) -> None:
    """Lint API descriptors against the rule registry.

    PATHS are YAML/JSON descriptor documents, directories of them, or
    compiled descriptor sets.  Exit codes: 0 = no failing findings,
    1 = findings at or above --fail-on, 2 = configuration or descriptor error.
    """
    from aiplint.engine import DEFAULT_CONFIG_NAME
    from aiplint.findings import Severity
    from aiplint.linter import LintError, format_json, format_porcelain, format_text, lint_paths

    if config_path is None:
        candidate = Path.cwd() / DEFAULT_CONFIG_NAME
        if candidate.is_file():
            config_path = candidate

    # Resolve output format: explicit flag > TTY detection.
    if fmt is None:
        fmt = "text" if sys.stdout.isatty() else "porcelain"

    try:
        result = lint_paths(
            paths,
            config_path=config_path,
            targets=targets or None,
            jobs=jobs,
            timeout=timeout,
            fail_on=Severity.parse(fail_on) if fail_on is not None else None,
        )
    except LintError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    formatters = {
        "text": format_text,
        "json": format_json,
        "porcelain": format_porcelain,
    }
    output = formatters[fmt](result)
    if output:
        click.echo(output)

    if result.failed:
        sys.exit(1)


@main.command()
@click.option("--json", "output_json", is_flag=True, help="Structured JSON output.")
@click.option("--select", "selectors", multiple=True, help="Rule id or group prefix to show.")
def rules(*, output_json: bool, selectors: tuple[str, ...]) -> None:
    """List the built-in rules."""
    from aiplint.rules import default_registry

    registry = default_registry()
    if selectors:
        unknown = [s for s in selectors if not registry.knows(s)]
        if unknown:
            click.echo(f"Error: unknown rule selector(s): {', '.join(unknown)}", err=True)
            sys.exit(2)
        registry = registry.subset(selectors)

    if output_json:
        data = [
            {
                "id": r.id,
                "summary": r.summary,
                "kinds": sorted(k.value for k in r.kinds),
                "severity": r.severity.value,
                "default_enabled": r.default_enabled,
            }
            for r in registry
        ]
        click.echo(json.dumps(data, ensure_ascii=False, indent=2))
        return

    from rich.console import Console
    from rich.table import Table

    console = Console()
    table = Table(title=f"aiplint v{__version__}: {len(registry)} rules", padding=(0, 1))
    table.add_column("id", style="cyan", no_wrap=True)
    table.add_column("kinds")
    table.add_column("severity")
    table.add_column("summary")
    for r in registry:
        severity = r.severity.value if r.default_enabled else f"{r.severity.value} (off)"
        table.add_row(r.id, ", ".join(sorted(k.value for k in r.kinds)), severity, r.summary)
    console.print(table)
