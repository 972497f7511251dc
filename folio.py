#!/usr/bin/env python3
"""
Folio - file and directory operations

Main entry point for the Folio CLI.
"""

import os
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from folio_core import AuditLogger, Operation, Settings, load_settings
from modules.storage import Directory, Filesystem, Traversal


console = Console()


def get_filesystem(ctx: click.Context) -> Filesystem:
    """Get a Filesystem configured from the --config file."""
    return ctx.obj["filesystem"]


def fail(message: str) -> None:
    console.print(f"[red]{message}[/red]")
    sys.exit(1)


@click.group()
@click.version_option(version="0.1.0", prog_name="Folio")
@click.option("--config", "config_path", default="folio.yaml", show_default=True,
              help="Path to the YAML configuration file.")
@click.pass_context
def folio(ctx, config_path: str):
    """
    Folio - file and directory operations

    Existence checks, reading and writing, hashing, and recursive
    directory copy, delete and size.
    """
    ctx.ensure_object(dict)
    try:
        settings = load_settings(config_path)
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}")
    ctx.obj["settings"] = settings
    ctx.obj["filesystem"] = Filesystem(settings=settings)


@folio.command()
@click.argument("paths", nargs=-1, required=True)
@click.pass_context
def exists(ctx, paths):
    """Check that every PATH exists."""
    fs = get_filesystem(ctx)
    if fs.exists(list(paths)):
        console.print("[green]All paths exist[/green]")
        return
    for path in paths:
        if not fs.exists(path):
            console.print(f"[red]Missing:[/red] {path}")
    sys.exit(1)


@folio.command()
@click.argument("path")
@click.pass_context
def cat(ctx, path: str):
    """Print the contents of a file."""
    content = get_filesystem(ctx).get(path)
    if content is False:
        fail(f"Cannot read: {path}")
    click.echo(content, nl=False)


@folio.command("hash")
@click.argument("path")
@click.option("--raw", is_flag=True, help="Print the raw digest bytes as a Python literal.")
@click.pass_context
def hash_(ctx, path: str, raw: bool):
    """Print the content digest of a file."""
    fs = get_filesystem(ctx)
    digest = fs.hash(path, raw_output=raw)
    if digest is False:
        fail(f"Cannot hash: {path}")
    click.echo(repr(digest) if raw else f"{digest}  {path}")


@folio.command()
@click.argument("path")
@click.pass_context
def size(ctx, path: str):
    """Print the size in bytes of a file or directory tree."""
    fs = get_filesystem(ctx)
    if fs.is_directory(path):
        click.echo(Directory(path, fs).size())
        return
    result = fs.size(path)
    if result is False:
        fail(f"No such file or directory: {path}")
    click.echo(result)


@folio.command()
@click.argument("path")
@click.option("--parents", "-p", is_flag=True, help="Create missing parent directories.")
@click.option("--mode", default=None, help="Octal permission mode, e.g. 0755.")
@click.pass_context
def mkdir(ctx, path: str, parents: bool, mode):
    """Create a directory."""
    fs = get_filesystem(ctx)
    try:
        parsed_mode = int(mode, 8) if mode else None
    except ValueError:
        raise click.BadParameter(f"Not an octal mode: {mode}", param_hint="--mode")

    if not Directory(path, fs).create(parsed_mode, recursive=parents):
        fail(f"Cannot create directory: {path}")
    console.print(f"[green]Created:[/green] {path}")


@folio.command()
@click.argument("source")
@click.argument("destination")
@click.option("--skip-hidden", is_flag=True, help="Do not copy entries whose name starts with a dot.")
@click.pass_context
def copy(ctx, source: str, destination: str, skip_hidden: bool):
    """Copy a directory tree from SOURCE to DESTINATION."""
    fs = get_filesystem(ctx)
    flags = Traversal.SKIP_DOTS
    if skip_hidden:
        flags |= Traversal.SKIP_HIDDEN

    if not Directory(source, fs).copy(destination, flags):
        fail(f"Copy failed: {source} -> {destination}")
    console.print(f"[green]Copied[/green] {source} -> {destination}")


@folio.command()
@click.argument("path")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def clean(ctx, path: str, yes: bool):
    """Remove everything inside a directory, keeping the directory."""
    if not yes:
        click.confirm(f"Remove everything inside {path}?", abort=True)
    if not Directory(path, get_filesystem(ctx)).clean():
        fail(f"Not a directory: {path}")
    console.print(f"[green]Cleaned:[/green] {path}")


@folio.command()
@click.argument("path")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def delete(ctx, path: str, yes: bool):
    """Delete a file, or a directory with all of its contents."""
    fs = get_filesystem(ctx)
    directory = Directory(path, fs)
    # A symlink is removed itself; its target is left alone.
    is_tree = directory.is_directory() and not os.path.islink(path)
    kind = "directory tree" if is_tree else "file"

    if not yes:
        click.confirm(f"Delete {kind} {path}?", abort=True)

    if is_tree:
        directory.delete()
        # delete() reports success even if the final rmdir failed.
        if directory.exists():
            fail(f"Could not remove directory: {path}")
    elif not fs.delete(path):
        fail(f"Cannot delete: {path}")
    console.print(f"[green]Deleted:[/green] {path}")


@folio.command()
@click.option("--limit", default=20, show_default=True, help="Number of entries to show.")
@click.option("--operation", type=click.Choice([op.value for op in Operation]),
              help="Only show this kind of operation.")
@click.option("--failed", is_flag=True, help="Only show failed operations.")
@click.option("--export", "export_format", type=click.Choice(["json", "csv"]),
              help="Print the whole log in this format instead of a table.")
@click.option("--clear", is_flag=True, help="Move the log to a backup file and start a new one.")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def audit(ctx, limit: int, operation, failed: bool, export_format, clear: bool, yes: bool):
    """View, export or clear the audit log."""
    settings: Settings = ctx.obj["settings"]
    try:
        logger = AuditLogger(log_path=settings.audit_log_path)
    except OSError as e:
        fail(f"Cannot open audit log: {e}")

    if clear:
        if not yes:
            click.confirm(f"Clear the audit log at {logger.log_path}?", abort=True)
        backup = logger.rotate()
        if backup is None:
            console.print("[dim]Audit log is already empty.[/dim]")
        else:
            console.print(f"[green]Audit log cleared.[/green] Backup: {backup}")
        return

    if export_format:
        exported = logger.export(export_format)
        click.echo(exported, nl=not exported.endswith("\n"))
        return

    entries = logger.query(
        operation=Operation(operation) if operation else None,
        failed_only=failed,
        limit=limit
    )

    if not entries:
        console.print("[dim]No audit entries found.[/dim]")
        return

    table = Table(title="Recent Audit Log")
    table.add_column("Time", style="dim")
    table.add_column("Operation")
    table.add_column("Target")
    table.add_column("Status")
    table.add_column("Result")

    for entry in entries:
        time_str = entry.timestamp.split("T")[1].split(".")[0] if "T" in entry.timestamp else entry.timestamp

        status_str = entry.status
        if entry.status == "executed":
            status_str = f"[green]{entry.status}[/green]"
        elif entry.status == "failed":
            status_str = f"[red]{entry.status}[/red]"

        table.add_row(
            time_str,
            entry.operation,
            entry.target[:50] + "..." if len(entry.target) > 50 else entry.target,
            status_str,
            entry.result or ""
        )

    console.print(table)


@folio.command()
@click.pass_context
def config(ctx):
    """Show the active configuration."""
    settings: Settings = ctx.obj["settings"]
    console.print(Panel.fit(
        f"Encoding: {settings.encoding}\n"
        f"Hash algorithm: {settings.hash_algorithm}\n"
        f"Create mode: {oct(settings.create_mode)}\n"
        f"Copy mode: {oct(settings.copy_mode)}\n"
        f"Audit: {'enabled' if settings.audit_enabled else 'disabled'} ({settings.audit_log_path})",
        title="Folio Configuration"
    ))


if __name__ == "__main__":
    folio()
