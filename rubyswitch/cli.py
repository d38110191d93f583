"""Command line interface for rubyswitch.

Commands that change the environment print shell commands on stdout, meant
to be evaluated by the calling shell::

    eval "$(rubyswitch activate)"

Status messages and errors go to stderr.
"""

import functools
import logging
import os
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Any, Optional, Tuple

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from . import __version__
from .activity_logging import ActivityLogger
from .config import Config
from .environment import installed_versions, split_identifier
from .errors import (
    RubySwitchError,
    handle_exception,
    handle_keyboard_interrupt,
)
from .hooks import FILE_OPENED, EventSource
from .integration import Integration
from .service import ActivationService
from .shell import shell_exports
from .switcher import ActivePathsState
from .ui.display import display_environment, display_versions_table
from .ui.interactive import open_in_editor, print_message

console = Console(stderr=True)


def handle_errors(func: Any) -> Any:
    """Decorator to report rubyswitch errors gracefully.

    Args:
        func: The command callback to wrap.

    Returns:
        Wrapped function with error handling.
    """
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except RubySwitchError as e:
            handle_exception(e, f"Error in {func.__name__.replace('_cmd', '').replace('_', '-')}")
        except KeyboardInterrupt:
            handle_keyboard_interrupt()
    return wrapper


def _activity_logger(config: Config) -> ActivityLogger:
    """Activity logger closed together with the current click context."""
    activity_logger = ActivityLogger(config.config_dir / "logs")
    click.get_current_context().call_on_close(activity_logger.close)
    return activity_logger


def _make_service(integration: Optional[Integration] = None) -> ActivationService:
    """Activation service for one CLI invocation.

    The environment is a copy of the process environment; the active paths
    state is picked up from the variables a previous invocation exported.
    """
    config = Config()
    environ = dict(os.environ)
    return ActivationService(
        config=config,
        integration=integration or Integration(message=print_message),
        state=ActivePathsState.from_environ(environ),
        environ=environ,
        activity_logger=_activity_logger(config),
    )


def _shell_option(func: Any) -> Any:
    return click.option(
        '--shell', type=click.Choice(['sh', 'bash', 'zsh', 'fish']), default=None,
        help='Shell syntax of the printed commands (defaults to the configured shell)'
    )(func)


def _print_exports(service: ActivationService, shell: Optional[str]) -> None:
    click.echo(shell_exports(service.environ, shell or service.settings['shell'], service.state))


@click.group()
@click.version_option(version=__version__)
@click.option('--debug', is_flag=True, help='Log resolution details to stderr')
def main(debug: bool) -> None:
    """rubyswitch - switch Ruby and gemsets from per-project marker files."""
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)]
        )


@main.command()
@click.argument('path', required=False, type=click.Path())
@_shell_option
@handle_errors
def activate(path: Optional[str], shell: Optional[str]) -> None:
    """Activate the Ruby configured for PATH (default: current directory)."""
    service = _make_service()
    service.ensure_tool()

    target = path or os.getcwd()
    identifier = service.activate_for_path(target)
    if identifier is None:
        console.print(f"[yellow]No Ruby configuration found for {escape(str(target))}[/yellow]")
        return

    _print_exports(service, shell)


@main.command()
@click.argument('version', required=False)
@click.option('--gemset', help='Gemset to use with VERSION')
@_shell_option
@handle_errors
def use(version: Optional[str], gemset: Optional[str], shell: Optional[str]) -> None:
    """Activate VERSION (``2.6.3`` or ``2.6.3@gemset``), or pick one interactively."""
    service = _make_service()
    service.ensure_tool()

    if version is None:
        identifier = service.select_and_activate()
    else:
        if gemset is None and '@' in version:
            parsed = split_identifier(version)
            version, gemset = parsed.version, parsed.gemset
        identifier = service.activate(version, gemset)

    if identifier is None:
        console.print("[yellow]Nothing activated[/yellow]")
        return

    _print_exports(service, shell)


@main.command()
@_shell_option
@handle_errors
def deactivate(shell: Optional[str]) -> None:
    """Remove the active Ruby from PATH and clear the gem variables."""
    service = _make_service()
    service.deactivate()
    _print_exports(service, shell)


@main.command(name='list')
@handle_errors
def list_cmd() -> None:
    """List the Rubies installed under the configured prefix."""
    service = _make_service()
    resolved = service.resolve(os.getcwd())
    display_versions_table(
        installed_versions(service.prefix),
        active=str(resolved) if resolved else None
    )


@main.command()
@click.argument('path', required=False, type=click.Path())
@handle_errors
def info(path: Optional[str]) -> None:
    """Show which Ruby applies to PATH and where it lives."""
    service = _make_service()
    target = path or os.getcwd()
    identifier = service.resolve(target)
    if identifier is None:
        console.print(f"[yellow]No Ruby configuration found for {escape(str(target))}[/yellow]")
        return

    display_environment(str(identifier), service.info(identifier), source=target)


@main.command(context_settings={'ignore_unknown_options': True, 'allow_interspersed_args': False})
@click.option('--path', 'path', type=click.Path(), default=None,
              help='Resolve the Ruby for this path instead of the current directory')
@click.argument('command', nargs=-1, required=True, type=click.UNPROCESSED)
@click.pass_context
@handle_errors
def run(ctx: click.Context, path: Optional[str], command: Tuple[str, ...]) -> None:
    """Run COMMAND with the Ruby configured for PATH active."""
    service = _make_service()
    service.ensure_tool()

    with service.scoped(path or os.getcwd()) as identifier:
        if identifier is None:
            console.print("[yellow]No Ruby configuration found, running unchanged[/yellow]")
        executable = shutil.which(command[0], path=os.pathsep.join(service.exec_path))
        if executable is None:
            raise RubySwitchError(
                f"Command not found: {command[0]}",
                [
                    f"Check that '{command[0]}' is spelled correctly",
                    f"If it is a gem executable, install it: rubyswitch install-gem {command[0]}",
                    "Show the Ruby used for this path: rubyswitch info",
                ]
            )
        result = subprocess.run([executable, *command[1:]], env=dict(service.environ))

    ctx.exit(result.returncode)


@main.command(name='open')
@click.argument('file', type=click.Path())
@handle_errors
def open_cmd(file: str) -> None:
    """Open FILE in $VISUAL or $EDITOR, activating its Ruby when autodetect is on."""
    service = _make_service()
    events = EventSource()

    if service.settings['autodetect']:
        service.start_autodetect(events)
    try:
        events.emit(FILE_OPENED, Path(file).absolute())
    finally:
        service.stop_autodetect(events)

    editor = os.environ.get('VISUAL') or os.environ.get('EDITOR')
    if not editor:
        open_in_editor(file)
        return

    subprocess.call([*shlex.split(editor), file], env=dict(service.environ))


@main.command(name='gem-dir')
@click.argument('name', required=False)
@click.option('--path', 'path', type=click.Path(), default=None,
              help='Resolve the Ruby for this path instead of the current directory')
@handle_errors
def gem_dir(name: Optional[str], path: Optional[str]) -> None:
    """Open the source directory of gem NAME, or pick one interactively."""
    service = _make_service()
    service.ensure_tool()
    service.activate_for_path(path or os.getcwd())

    directory = service.open_gem_directory(name)
    if directory is not None:
        click.echo(str(directory))


@main.command(name='install-gem')
@click.argument('name')
@click.option('--path', 'path', type=click.Path(), default=None,
              help='Resolve the Ruby for this path instead of the current directory')
@handle_errors
def install_gem(name: str, path: Optional[str]) -> None:
    """Install gem NAME into the Ruby configured for the current directory."""
    service = _make_service()
    service.ensure_tool()
    service.activate_for_path(path or os.getcwd())

    log_file = service.install_gem(name)
    click.echo(str(log_file))


@main.command(name='config')
@click.option('--prefix', help='Directory holding <version>@<gemset> installations')
@click.option('--executable', help='Version manager executable')
@click.option('--shell', type=click.Choice(['sh', 'bash', 'zsh', 'fish']), help='Default shell syntax')
@click.option('--verbose/--quiet', default=None, help='Report every environment switch')
@click.option('--autodetect/--no-autodetect', default=None,
              help='Activate the matching Ruby when files are opened')
@click.option('--reset', is_flag=True, help='Restore the default settings first')
@handle_errors
def config_cmd(
    prefix: Optional[str],
    executable: Optional[str],
    shell: Optional[str],
    verbose: Optional[bool],
    autodetect: Optional[bool],
    reset: bool
) -> None:
    """Show or change rubyswitch settings."""
    config = Config()
    changes = {
        'prefix': prefix,
        'executable': executable,
        'shell': shell,
        'verbose': verbose,
        'autodetect': autodetect,
    }
    changes = {key: value for key, value in changes.items() if value is not None}

    if not changes and not reset:
        settings = config.load()
        for key in sorted(settings):
            console.print(f"[green]{key}:[/green] {escape(str(settings[key]))}")

        results = config.validate_configuration()
        for warning in results['warnings']:
            console.print(f"[yellow]Warning:[/yellow] {escape(warning)}")
        for suggestion in results['suggestions']:
            console.print(f"  [dim]{escape(suggestion)}[/dim]")
        return

    activity_logger = _activity_logger(config)
    if reset:
        config.reset()
        activity_logger.log_configuration_change('*', None, 'defaults')
        console.print("[green]✓[/green] Settings reset to defaults")

    for key, value in changes.items():
        old_value = config.get(key)
        config.set(key, value)
        activity_logger.log_configuration_change(key, old_value, value)
        console.print(f"[green]✓[/green] {key} set to {escape(str(value))}")
