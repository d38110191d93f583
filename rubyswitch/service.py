"""Activation service.

``ActivationService`` is the single owner of an ``ActivePathsState``. Hosts
create one instance and route every environment change through it, which
keeps the recorded paths equal to the ones actually injected into ``PATH``.
Calls are expected to be serialized by the host.
"""

import logging
import os
import shutil
import subprocess
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, List, MutableMapping, Optional, Self, Tuple, Union

from .activity_logging import ActivityLogger
from .config import Config
from .environment import environment_info, installed_versions, split_identifier
from .errors import NoActiveEnvironmentError, RubySwitchError, ToolUnavailableError
from .hooks import FILE_OPENED, EventSource
from .integration import Integration
from .resolver import ConfigResolver, Identifier, is_local_environment
from .switcher import ActivePathsState, EnvironmentSwitcher
from .validators import InputValidator

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def gem_version_key(directory_name: str) -> Tuple[Tuple[int, int, str], ...]:
    """Sort key comparing gem directory names (``rake-13.0.6``) by version.

    Numeric segments compare as numbers and rank above textual ones, so
    ``rake-13.0.6`` sorts after ``rake-9.0.0``.
    """
    version = directory_name.rpartition('-')[2]
    return tuple(
        (1, int(part), '') if part.isdigit() else (0, 0, part)
        for part in version.split('.')
    )


class ActivationService:
    """Resolves per-project Ruby configuration and switches to it."""

    def __init__(
        self: Self,
        config: Optional[Config] = None,
        integration: Optional[Integration] = None,
        state: Optional[ActivePathsState] = None,
        environ: Optional[MutableMapping[str, str]] = None,
        exec_path: Optional[List[str]] = None,
        activity_logger: Optional[ActivityLogger] = None
    ) -> None:
        """Initialize the activation service.

        Args:
            config: Settings. Defaults to the user's settings file.
            integration: Host callbacks. Defaults to terminal-based ones.
            state: Active paths state, normally left to the service.
            environ: Environment to mutate. Defaults to ``os.environ``.
            exec_path: Host executable search list. Defaults to the
                entries of ``PATH``.
            activity_logger: Optional sink for activity entries.
        """
        self.config = config or Config()
        self.settings = self.config.load()
        self.integration = integration or Integration()
        self.state = state or ActivePathsState()
        self.environ = os.environ if environ is None else environ
        if exec_path is None:
            path = self.environ.get('PATH', '')
            exec_path = path.split(os.pathsep) if path else []
        self.exec_path = exec_path
        self.activity_logger = activity_logger

        self.resolver = ConfigResolver(
            version_file=self.settings['version_file'],
            gemset_file=self.settings['gemset_file'],
            local_marker=self.settings['local_marker'],
        )
        self.switcher = EnvironmentSwitcher(
            self.state,
            environ=self.environ,
            exec_path=self.exec_path,
            notify=self.integration.message,
            verbose=self.settings['verbose'],
        )

    @property
    def prefix(self: Self) -> Optional[Path]:
        prefix = self.settings.get('prefix')
        return Path(prefix).expanduser() if prefix else None

    # Tool availability

    def tool_available(self: Self) -> bool:
        """Check that the version manager executable can be run."""
        executable = os.path.expanduser(self.settings['executable'])
        if os.path.isabs(executable):
            return os.path.isfile(executable) and os.access(executable, os.X_OK)
        return shutil.which(executable, path=self.environ.get('PATH')) is not None

    def ensure_tool(self: Self) -> None:
        """Raise ``ToolUnavailableError`` when the version manager is missing."""
        if not self.tool_available():
            raise ToolUnavailableError(self.settings['executable'])

    def _tool_ready(self: Self) -> bool:
        if self.tool_available():
            return True
        logger.warning("Version manager %s not found, leaving environment untouched",
                       self.settings['executable'])
        self._notify(f"Warning: '{self.settings['executable']}' not found, nothing activated")
        return False

    # Resolution

    def current(self: Self) -> Optional[Identifier]:
        """The active identifier, None when no environment is active."""
        return self.state.identifier

    def _validated(self: Self, identifier: Identifier) -> Identifier:
        if identifier.gemset is None and is_local_environment(identifier.version,
                                                              self.settings['local_marker']):
            return identifier
        version = InputValidator.validate_version(identifier.version)
        gemset = identifier.gemset
        if gemset is not None:
            gemset = InputValidator.validate_gemset(gemset)
        return Identifier(version, gemset)

    def resolve(self: Self, path: Optional[PathLike] = None) -> Optional[Identifier]:
        """Resolve the configuration for ``path`` without switching.

        Args:
            path: Start of the marker search. Defaults to the host's current
                file.

        Returns:
            Validated identifier, or None when no configuration applies.

        Raises:
            ValidationError: If a marker file holds an invalid name.
        """
        if path is None:
            path = self.integration.current_file()
        identifier = self.resolver.resolve(path, self.integration.project_root())
        if identifier is None:
            logger.debug("No Ruby configuration found for %s", path)
            return None
        return self._validated(identifier)

    def info(self: Self, identifier: Identifier) -> dict:
        """Environment info mapping for ``identifier``."""
        return environment_info(identifier, self.prefix, self.settings['local_marker']).as_dict()

    # Activation

    def _activate(self: Self, identifier: Identifier, path: Optional[PathLike] = None) -> None:
        try:
            info = environment_info(identifier, self.prefix, self.settings['local_marker'])
        except RubySwitchError as e:
            if self.activity_logger is not None:
                self.activity_logger.log_error(type(e).__name__, str(e), str(identifier),
                                               str(path) if path else None)
            raise

        self.switcher.switch(info, identifier)
        if self.activity_logger is not None:
            self.activity_logger.log_activation(str(identifier), str(path) if path else None,
                                                details=info.as_dict())

    def activate_for_path(self: Self, path: Optional[PathLike] = None) -> Optional[Identifier]:
        """Activate the configuration that applies to ``path``.

        Args:
            path: File or directory. Defaults to the host's current file.

        Returns:
            The activated identifier, or None when nothing was changed.

        Raises:
            VersionNotInstalledError: If the configuration names an
                environment that is not installed. The environment is left
                untouched.
        """
        if not self._tool_ready():
            return None

        identifier = self.resolve(path)
        if identifier is None:
            return None

        self._activate(identifier, path)
        return identifier

    def activate(self: Self, version: str, gemset: Optional[str] = None) -> Optional[Identifier]:
        """Activate an explicitly named version and gemset."""
        if not self._tool_ready():
            return None

        identifier = self._validated(Identifier(version, gemset))
        self._activate(identifier)
        return identifier

    def deactivate(self: Self) -> None:
        """Remove the active environment from PATH and the gem variables."""
        previous = self.current()
        self.switcher.clear()
        if self.activity_logger is not None:
            self.activity_logger.log_deactivation(str(previous) if previous else None)

    def _restore(self: Self, identifier: Optional[Identifier]) -> None:
        if identifier is None:
            self.deactivate()
        else:
            self._activate(identifier)

    @contextmanager
    def scoped(self: Self, path: Optional[PathLike] = None) -> Iterator[Optional[Identifier]]:
        """Temporarily activate the configuration for ``path``.

        The previously active identifier is restored on exit, also when the
        body raises. When the previous environment can no longer be
        activated the environment is cleared instead.

        Yields:
            The identifier activated for ``path``, or None.
        """
        previous = self.current()
        activated = self.activate_for_path(path)
        try:
            yield activated
        finally:
            if activated is not None:
                try:
                    self._restore(previous)
                except RubySwitchError as e:
                    logger.warning("Could not restore %s, clearing environment: %s", previous, e)
                    self._notify(f"Warning: could not restore {previous}, environment cleared")
                    self.deactivate()

    def with_environment(self: Self, path: Optional[PathLike], action: Callable[[], Any]) -> Any:
        """Run ``action`` with the configuration for ``path`` active."""
        with self.scoped(path):
            return action()

    def select_and_activate(self: Self) -> Optional[Identifier]:
        """Ask the user for an installed environment and activate it."""
        if not self._tool_ready():
            return None

        versions = installed_versions(self.prefix)
        if not versions:
            self._notify(f"No Ruby versions installed under {self.prefix}")
            return None

        choice = self.integration.choose("Ruby version", versions)
        if not choice:
            return None

        identifier = split_identifier(choice)
        return self.activate(identifier.version, identifier.gemset)

    # Gems

    def _gem_home(self: Self) -> Path:
        gem_home = self.environ.get('GEM_HOME')
        if not gem_home or self.current() is None:
            raise NoActiveEnvironmentError()
        return Path(gem_home)

    def gem_directories(self: Self) -> List[Path]:
        """Source directories of the gems installed in the active environment."""
        gems_dir = self._gem_home() / 'gems'
        if not gems_dir.is_dir():
            return []
        return sorted(entry for entry in gems_dir.iterdir() if entry.is_dir())

    def open_gem_directory(self: Self, name: Optional[str] = None) -> Optional[Path]:
        """Open the source directory of a gem in the active environment.

        Args:
            name: Gem name (``rake``) or directory name (``rake-13.0.6``).
                When omitted the user is asked to choose.

        Returns:
            The opened directory, or None when the choice was cancelled.

        Raises:
            NoActiveEnvironmentError: If no environment is active.
            RubySwitchError: If no installed gem matches ``name``.
        """
        directories = self.gem_directories()

        if name is None:
            choice = self.integration.choose("Gem", [d.name for d in directories])
            if not choice:
                return None
            matches = [d for d in directories if d.name == choice]
        else:
            matches = [d for d in directories if d.name == name]
            if not matches:
                matches = [d for d in directories if d.name.rpartition('-')[0] == name]

        if not matches:
            raise RubySwitchError(
                f"Gem '{name}' is not installed in {self._gem_home()}",
                [f"Install it: rubyswitch install-gem {name}"]
            )

        directory = max(matches, key=lambda d: gem_version_key(d.name))
        self.integration.open_path(str(directory))
        return directory

    def install_gem(self: Self, name: str) -> Path:
        """Start ``gem install`` for ``name`` in the active environment.

        The process runs detached and is not waited for; its output goes to
        the returned log file.

        Raises:
            ValidationError: If the gem name is invalid.
            NoActiveEnvironmentError: If no environment is active.
        """
        name = InputValidator.validate_gem_name(name)
        identifier = self.current()
        if identifier is None or not self.state.ruby_bin_paths:
            raise NoActiveEnvironmentError("Cannot install a gem without an active Ruby environment")

        gem_command = os.path.join(self.state.ruby_bin_paths[0], 'gem')
        log_dir = self.config.config_dir / 'logs'
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f'gem-install-{name}.log'

        with open(log_file, 'w') as output:
            subprocess.Popen(
                [gem_command, 'install', name],
                stdin=subprocess.DEVNULL,
                stdout=output,
                stderr=subprocess.STDOUT,
                env=dict(self.environ),
                start_new_session=True,
            )

        logger.info("Installing %s into %s, output in %s", name, identifier, log_file)
        self._notify(f"Installing {name} into {identifier}, output in {log_file}")
        if self.activity_logger is not None:
            self.activity_logger.log_gem_install(name, str(identifier), str(log_file))
        return log_file

    # Autodetection

    def start_autodetect(self: Self, events: EventSource) -> None:
        """Activate the matching environment whenever a file is opened."""
        events.subscribe(FILE_OPENED, self._on_file_opened)

    def stop_autodetect(self: Self, events: EventSource) -> None:
        events.unsubscribe(FILE_OPENED, self._on_file_opened)

    def _on_file_opened(self: Self, path: PathLike) -> None:
        try:
            self.activate_for_path(path)
        except RubySwitchError as e:
            logger.warning("Could not activate Ruby for %s: %s", path, e)
            self._notify(f"Warning: {e}")

    def _notify(self: Self, text: str) -> None:
        if self.settings['verbose']:
            self.integration.message(text)
