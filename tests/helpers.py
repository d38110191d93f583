"""Shared filesystem layout for rubyswitch tests."""

import os
import tempfile
from pathlib import Path
from typing import List, Optional

from rubyswitch.config import Config

BASE_PATH = os.pathsep.join(['/usr/local/bin', '/usr/bin', '/bin'])


class RubyLayout:
    """Temporary tree with an installation prefix, a fake version manager
    and two projects.

    ``project_a`` declares ``2.6.3@default``, ``project_b`` declares
    ``3.2.2@app``. Both environments are installed under ``prefix``.
    """

    def __init__(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()

        self.prefix = self.root / 'rubies'
        self.env_a = self.install('2.6.3@default')
        self.env_b = self.install('3.2.2@app')

        self.tool = self.root / 'tools' / 'redenv'
        self.tool.parent.mkdir()
        self.make_executable(self.tool)

        self.settings_dir = self.root / 'settings'
        self.config = Config(self.settings_dir)
        self.config.set('prefix', str(self.prefix))
        self.config.set('executable', str(self.tool))

        self.project_a = self.project('project_a', '2.6.3\n', ' default ')
        self.project_b = self.project('project_b', '3.2.2', 'app')

    def cleanup(self) -> None:
        self._tmp.cleanup()

    def install(self, name: str, gems: Optional[List[str]] = None) -> Path:
        env = self.prefix / name
        (env / 'bin').mkdir(parents=True)
        self.make_executable(env / 'bin' / 'ruby')
        for gem in gems or []:
            (env / 'gems' / gem).mkdir(parents=True)
        return env

    def project(self, name: str, version: Optional[str], gemset: Optional[str]) -> Path:
        project = self.root / name
        (project / 'lib').mkdir(parents=True)
        if version is not None:
            (project / '.ruby-version').write_text(version)
        if gemset is not None:
            (project / '.ruby-gemset').write_text(gemset)
        return project

    @staticmethod
    def make_executable(path: Path) -> None:
        path.write_text('#!/bin/sh\nexit 0\n')
        path.chmod(0o755)
