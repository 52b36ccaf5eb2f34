#!/usr/bin/env python3
"""
Command-line interface for NoteSync.

This module exposes the synchronization engine as commands: clone, pull and
sync run on a background worker while the main thread renders progress.
"""

import json
import queue
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .core.errors import ExecutionError, GitError, PushError, SettingsError
from .core.progress import QueueProgressSink, STAGE_COMPLETE
from .core.settings import default_settings_path, load_settings, save_settings
from .core.sync import SyncManager, SyncResult
from .core.transport import Credentials
from .core.worker import SyncWorker
from .utils.logger import setup_logging
from .utils.platform import get_config_dir, get_os_type

# Rich console for formatted output
console = Console()


def _fail(message: str):
    console.print(f"[red]✗ {message}[/red]")
    sys.exit(1)


def _credentials(ctx) -> Credentials:
    username = ctx.obj['username']
    token = ctx.obj['token']
    if not username or not token:
        _fail("Git credentials required: pass --username/--token "
              "or set NOTESYNC_USERNAME/NOTESYNC_TOKEN")
    return Credentials(username, token)


def _wait(worker: SyncWorker, future, description: str) -> SyncResult:
    """Show a spinner until ``future`` completes and return its result."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console
    ) as progress:
        progress.add_task(description, total=None)
        try:
            return worker.result(future)
        except PushError as e:
            if e.commit:
                console.print(f"[yellow]Commit {e.commit[:8]} was created locally but not pushed[/yellow]")
            _fail(str(e))
        except (GitError, ExecutionError) as e:
            _fail(str(e))


# Main CLI group
@click.group()
@click.option('--config', 'config_path', type=click.Path(path_type=Path),
              help='Settings file (YAML or TOML)')
@click.option('--username', envvar='NOTESYNC_USERNAME', help='Git username')
@click.option('--token', envvar='NOTESYNC_TOKEN', help='Personal access token')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--log-file', type=click.Path(path_type=Path), help='Log file path')
@click.option('--plain', is_flag=True, help='Plain log output instead of rich formatting')
@click.pass_context
def cli(ctx, config_path: Optional[Path], username: Optional[str], token: Optional[str],
        verbose: bool, log_file: Optional[Path], plain: bool):
    """NoteSync - keep a notes repository in sync with its remote."""
    ctx.ensure_object(dict)

    try:
        settings = load_settings(config_path)
    except SettingsError as e:
        _fail(str(e))

    setup_logging(level=settings.log_level, log_file=log_file, verbose=verbose, plain=plain)

    ctx.obj['config_path'] = config_path
    ctx.obj['settings'] = settings
    ctx.obj['manager'] = SyncManager(settings)
    ctx.obj['username'] = username
    ctx.obj['token'] = token


@cli.command()
@click.argument('path', type=click.Path(path_type=Path))
@click.pass_context
def init(ctx, path: Path):
    """Initialize an empty repository."""
    try:
        result = ctx.obj['manager'].init(path)
    except GitError as e:
        _fail(str(e))
    console.print(f"[green]✓ {result.message}[/green]")


@cli.command()
@click.argument('url', type=str)
@click.argument('destination', type=click.Path(path_type=Path))
@click.pass_context
def clone(ctx, url: str, destination: Path):
    """Clone a repository and restore file timestamps from history."""
    credentials = _credentials(ctx)
    settings = ctx.obj['settings']
    sink = QueueProgressSink(topic=settings.progress_topic)

    with SyncWorker(ctx.obj['manager']) as worker:
        future = worker.submit_clone(url, destination, credentials, sink)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            console=console
        ) as progress:
            task = progress.add_task("Cloning repository...", total=100)
            while not (future.done() and sink.queue.empty()):
                try:
                    _topic, event = sink.queue.get(timeout=0.1)
                except queue.Empty:
                    continue
                description = event.stage
                if event.total:
                    description = f"{event.stage}: {event.received}/{event.total}"
                progress.update(task, description=description, completed=event.percent)
                if event.stage == STAGE_COMPLETE:
                    progress.update(task, completed=100)

        try:
            result = worker.result(future)
        except (GitError, ExecutionError) as e:
            _fail(str(e))

    console.print(Panel(
        f"[green]✓ {result.message}[/green]\n"
        f"[dim]Timestamps restored: {result.fixed_timestamps}[/dim]",
        title="Clone Complete"
    ))


@cli.command()
@click.argument('path', type=click.Path(exists=True, path_type=Path))
@click.pass_context
def pull(ctx, path: Path):
    """Fetch from origin and fast-forward the current branch."""
    credentials = _credentials(ctx)
    with SyncWorker(ctx.obj['manager']) as worker:
        result = _wait(worker, worker.submit_pull(path, credentials), "Pulling changes...")
    console.print(f"[green]✓ {result.message}[/green]")


@cli.command()
@click.argument('path', type=click.Path(exists=True, path_type=Path))
@click.option('--message', '-m', type=str, default='Update notes', show_default=True,
              help='Commit message')
@click.pass_context
def sync(ctx, path: Path, message: str):
    """Commit all changes and push the current branch to origin."""
    credentials = _credentials(ctx)
    with SyncWorker(ctx.obj['manager']) as worker:
        result = _wait(worker, worker.submit_sync(path, message, credentials), "Synchronizing...")
    console.print(f"[green]✓ {result.message}[/green]")


# Remote commands group
@cli.group()
def remote():
    """Manage the origin remote."""
    pass


@remote.command('set')
@click.argument('path', type=click.Path(exists=True, path_type=Path))
@click.argument('url', type=str)
@click.pass_context
def remote_set(ctx, path: Path, url: str):
    """Point origin at URL, adding it if needed."""
    try:
        result = ctx.obj['manager'].configure_remote(path, url)
    except GitError as e:
        _fail(str(e))
    console.print(f"[green]✓ {result.message}[/green]")


@cli.command()
@click.argument('path', type=click.Path(exists=True, path_type=Path))
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
def status(ctx, path: Path, output_format: str):
    """Show repository status."""
    try:
        repo_status = ctx.obj['manager'].status(path)
    except GitError as e:
        _fail(str(e))

    if output_format == 'json':
        click.echo(json.dumps(repo_status.to_dict(), indent=2))
        return

    table = Table(show_header=True, header_style="bold blue")
    table.add_column("Status", style="cyan")
    table.add_column("Count", style="green")
    for label, count in (
        ("Modified", repo_status.modified),
        ("Added", repo_status.added),
        ("Deleted", repo_status.deleted),
        ("Untracked", repo_status.untracked),
    ):
        table.add_row(label, str(count))

    console.print(Panel(
        f"[cyan]Path:[/cyan] {path}\n"
        f"[cyan]Branch:[/cyan] {repo_status.branch or '(detached)'}\n"
        f"[cyan]Clean:[/cyan] {'Yes' if repo_status.is_clean else 'No'}",
        title="Repository Status"
    ))
    console.print(table)
    console.print(f"\n[dim]Platform: {get_os_type().value} | Settings: {get_config_dir()}[/dim]")


# Settings commands group
@cli.group()
def config():
    """Manage the settings file."""
    pass


@config.command('init')
@click.option('--force', is_flag=True, help='Overwrite an existing settings file')
@click.pass_context
def config_init(ctx, force: bool):
    """Write the current settings (defaults where unset) to the settings file."""
    path = ctx.obj['config_path'] or default_settings_path()
    if path.exists() and not force:
        _fail(f"Settings file already exists: {path} (use --force to overwrite)")

    try:
        written = save_settings(ctx.obj['settings'], path)
    except OSError as e:
        _fail(f"Failed to write settings: {e}")
    console.print(f"[green]✓ Settings written to {written}[/green]")


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user.[/yellow]")
        sys.exit(1)


if __name__ == '__main__':
    main()
