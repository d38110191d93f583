"""Tests for settings, input validation, error reporting and activity logging."""

import json
import logging
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from rubyswitch.activity_logging import ActivityLogger
from rubyswitch.config import Config, ConfigError, ConfigValidationError, default_config_dir
from rubyswitch.errors import (
    ErrorHandler,
    NoActiveEnvironmentError,
    RubySwitchError,
    ToolUnavailableError,
    VersionNotInstalledError,
    handle_exception,
)
from rubyswitch.resolver import Identifier
from rubyswitch.shell import shell_exports
from rubyswitch.switcher import ActivePathsState
from rubyswitch.validators import InputValidator, ValidationError


class TestConfig(unittest.TestCase):
    """Test settings storage and validation."""

    def setUp(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.config_dir = Path(self.temp_dir) / ".rubyswitch"
        self.config = Config(self.config_dir)

    def tearDown(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_defaults_without_file(self):
        """Test defaults are used when no settings file exists."""
        settings = self.config.load()

        self.assertEqual(settings['prefix'], '~/.rubies')
        self.assertEqual(settings['executable'], 'redenv')
        self.assertEqual(settings['version_file'], '.ruby-version')
        self.assertEqual(settings['gemset_file'], '.ruby-gemset')
        self.assertEqual(settings['local_marker'], '.redenv')
        self.assertTrue(settings['verbose'])
        self.assertFalse(settings['autodetect'])
        self.assertEqual(settings['shell'], 'sh')
        self.assertFalse(self.config.config_file.exists())

    def test_set_and_reload(self):
        """Test a stored value survives a new instance."""
        self.config.set('prefix', '/opt/rubies')

        self.assertEqual(Config(self.config_dir).get('prefix'), '/opt/rubies')
        self.assertEqual(Config(self.config_dir).get_prefix(), Path('/opt/rubies'))

    def test_unknown_key_rejected(self):
        """Test unknown settings cannot be stored."""
        with self.assertRaises(ConfigValidationError):
            self.config.set('token', 'secret')

    def test_invalid_values_rejected(self):
        """Test schema violations are rejected before writing."""
        invalid = [
            ('verbose', 'yes'),
            ('shell', 'powershell'),
            ('version_file', '../.ruby-version'),
            ('local_marker', '..'),
        ]

        for key, value in invalid:
            with self.subTest(key=key, value=value):
                with self.assertRaises(ConfigValidationError):
                    self.config.set(key, value)

        self.assertFalse(self.config.config_file.exists())

    def test_corrupt_file(self):
        """Test unreadable settings raise ConfigError and get() falls back."""
        self.config_dir.mkdir(parents=True)
        self.config.config_file.write_text('{not json')

        with self.assertRaises(ConfigError):
            self.config.load()
        self.assertEqual(self.config.get('executable'), 'redenv')

    def test_non_object_file(self):
        self.config_dir.mkdir(parents=True)
        self.config.config_file.write_text('[1, 2]')

        with self.assertRaises(ConfigError):
            self.config.load()

    def test_unknown_key_in_file(self):
        """Test a settings file with unknown keys fails validation."""
        self.config_dir.mkdir(parents=True)
        self.config.config_file.write_text(json.dumps({'colour': 'red'}))

        with self.assertRaises(ConfigValidationError):
            self.config.load()
        self.assertEqual(self.config.load(validate=False)['colour'], 'red')

    def test_config_file_permissions(self):
        """Test that settings files have correct permissions."""
        self.config.set('verbose', False)

        file_mode = oct(self.config.config_file.stat().st_mode)[-3:]
        self.assertEqual(file_mode, "600")

        dir_mode = oct(self.config_dir.stat().st_mode)[-3:]
        self.assertEqual(dir_mode, "700")
        self.assertFalse(self.config.config_file.with_suffix('.tmp').exists())

    def test_reset(self):
        self.config.set('shell', 'fish')
        self.config.reset()
        self.assertEqual(self.config.get('shell'), 'sh')

    def test_config_error_is_rubyswitch_error(self):
        """Test settings errors are reported like every other rubyswitch error."""
        self.assertTrue(issubclass(ConfigError, RubySwitchError))
        self.assertTrue(issubclass(ConfigValidationError, RubySwitchError))

    def test_validate_configuration(self):
        """Test a missing prefix is reported as a warning."""
        self.config.set('prefix', str(Path(self.temp_dir) / 'nowhere'))

        results = self.config.validate_configuration()

        self.assertTrue(results['valid'])
        self.assertEqual(len(results['warnings']), 1)
        self.assertIn('does not exist', results['warnings'][0])

        self.config.set('prefix', self.temp_dir)
        self.assertEqual(self.config.validate_configuration()['warnings'], [])

    def test_validate_configuration_corrupt(self):
        self.config_dir.mkdir(parents=True)
        self.config.config_file.write_text('{not json')

        results = self.config.validate_configuration()

        self.assertFalse(results['valid'])
        self.assertTrue(results['errors'])

    def test_default_config_dir(self):
        """Test RUBYSWITCH_HOME overrides the settings directory."""
        with patch.dict(os.environ, {'RUBYSWITCH_HOME': self.temp_dir}):
            self.assertEqual(default_config_dir(), Path(self.temp_dir))
            self.assertEqual(Config().config_dir, Path(self.temp_dir))

        with patch.dict(os.environ, {'RUBYSWITCH_HOME': ''}):
            self.assertEqual(default_config_dir(), Path.home() / '.rubyswitch')


class TestInputValidation(unittest.TestCase):
    """Test input validation of names from marker files and the command line."""

    def test_validate_version_valid(self):
        """Test valid version names."""
        valid = ['2.6.3', '3.3.0-preview1', 'jruby-9.4.0.0', 'truffleruby+graalvm-22.3.0']

        for version in valid:
            with self.subTest(version=version):
                self.assertEqual(InputValidator.validate_version(version), version)

        self.assertEqual(InputValidator.validate_version(' 2.7.8\n'), '2.7.8')

    def test_validate_version_invalid(self):
        """Test invalid version names."""
        invalid = [
            '',
            '   ',
            '1' * 65,
            '../2.6.3',
            '2.6..3',
            '2.6.3/bin',
            '2.6.3 extra',
            '2.6.3;rm',
            '-2.6.3',
        ]

        for version in invalid:
            with self.subTest(version=version):
                with self.assertRaises(ValidationError):
                    InputValidator.validate_version(version)

    def test_validate_gemset(self):
        """Test gemset names."""
        for gemset in ['default', 'my_app', 'rails-7.1', '_global']:
            with self.subTest(gemset=gemset):
                self.assertEqual(InputValidator.validate_gemset(gemset), gemset)

        for gemset in ['', 'a/b', '..', 'app@x', 'g' * 129]:
            with self.subTest(gemset=gemset):
                with self.assertRaises(ValidationError):
                    InputValidator.validate_gemset(gemset)

    def test_validate_gem_name(self):
        """Test gem names handed to gem install."""
        for name in ['rake', 'rspec-core', 'activerecord_import', 'net.http']:
            with self.subTest(name=name):
                self.assertEqual(InputValidator.validate_gem_name(name), name)

        for name in ['', '-v', '--source=x', 'pry;ls', 'a b', 'x' * 129]:
            with self.subTest(name=name):
                with self.assertRaises(ValidationError):
                    InputValidator.validate_gem_name(name)

    def test_validate_shell(self):
        self.assertEqual(InputValidator.validate_shell('Zsh'), 'zsh')
        with self.assertRaises(ValidationError):
            InputValidator.validate_shell('cmd')

    def test_validation_error_is_rubyswitch_error(self):
        with self.assertRaises(RubySwitchError):
            InputValidator.validate_version('')


class TestErrors(unittest.TestCase):
    """Test the exception hierarchy and error display."""

    def test_version_not_installed(self):
        error = VersionNotInstalledError(Identifier('2.6.3', 'default'), '/opt/rubies')

        self.assertEqual(error.identifier, '2.6.3@default')
        self.assertEqual(str(error), "Ruby version '2.6.3@default' is not installed under /opt/rubies")
        self.assertTrue(error.suggestions)

    def test_tool_unavailable(self):
        error = ToolUnavailableError('redenv')

        self.assertEqual(error.executable, 'redenv')
        self.assertIn("'redenv'", str(error))

    def test_no_active_environment(self):
        self.assertEqual(str(NoActiveEnvironmentError()), "No Ruby environment is active")
        self.assertEqual(str(NoActiveEnvironmentError("custom")), "custom")

    def test_identify_error_type(self):
        """Test error messages are classified by keyword."""
        handler = ErrorHandler()
        cases = {
            "Ruby version '9.9.9@x' is not installed": 'not_installed',
            "Version manager 'redenv' is not installed or not executable": 'tool_missing',
            "Invalid gemset 'a/b'": 'invalid_marker',
            "Failed to load configuration": 'config_error',
            "[Errno 13] Permission denied: '/opt'": 'permission_denied',
            "something else entirely": None,
        }

        for message, expected in cases.items():
            with self.subTest(message=message):
                self.assertEqual(handler.identify_error_type(message), expected)

    def test_generic_suggestions(self):
        suggestions = ErrorHandler().get_suggestions("something else entirely")
        self.assertIn("Show the resolved environment: rubyswitch info", suggestions)

    @patch('rubyswitch.errors.console')
    def test_display_error_uses_own_suggestions(self, mock_console):
        """Test errors carrying suggestions display them."""
        ErrorHandler().display_error(RubySwitchError("boom", ["do this"]), context="Testing")

        panel = mock_console.print.call_args[0][0]
        self.assertIn("boom", panel.renderable)
        self.assertIn("1. do this", panel.renderable)
        self.assertIn("Context:", panel.renderable)

    @patch('rubyswitch.errors.console')
    def test_display_error_escapes_markup(self, mock_console):
        """Test brackets in messages and suggestions are shown literally."""
        ErrorHandler().display_error(
            RubySwitchError("No gem in /work/[red]app", ["Open /work/[bold]app"]),
            context="Error in [dim]run"
        )

        panel = mock_console.print.call_args[0][0]
        self.assertIn("/work/\\[red]app", panel.renderable)
        self.assertIn("Open /work/\\[bold]app", panel.renderable)
        self.assertIn("Error in \\[dim]run", panel.renderable)

    @patch('rubyswitch.errors.console')
    def test_handle_exception_exits(self, mock_console):
        with self.assertRaises(SystemExit) as ctx:
            handle_exception(ValueError("Permission denied"), exit_code=2)

        self.assertEqual(ctx.exception.code, 2)
        panel = mock_console.print.call_args[0][0]
        self.assertIn("Check permissions", panel.renderable)


class TestShellExports(unittest.TestCase):
    """Test rendering of environment variables for shells."""

    def setUp(self):
        self.environ = {
            'PATH': os.pathsep.join(['/r/a bin', '/usr/bin']),
            'GEM_HOME': '/r/a',
            'GEM_PATH': '/r/a',
            'BUNDLE_PATH': '/r/a',
            'HOME': '/home/user',
        }

    def test_sh(self):
        output = shell_exports(self.environ, 'bash').splitlines()

        self.assertEqual(output, [
            "export PATH='/r/a bin:/usr/bin'",
            "export GEM_HOME=/r/a",
            "export GEM_PATH=/r/a",
            "export BUNDLE_PATH=/r/a",
        ])

    def test_fish(self):
        output = shell_exports(self.environ, 'fish').splitlines()

        self.assertEqual(output[0], "set -gx PATH '/r/a bin' /usr/bin;")
        self.assertEqual(output[1], "set -gx GEM_HOME /r/a;")

    def test_state_is_appended(self):
        state = ActivePathsState(['/r/a/bin'], ['/r/a/bin'], '2.6.3', 'default')

        output = shell_exports(self.environ, 'sh', state)

        self.assertIn("export RUBYSWITCH_RUBY_PATHS=/r/a/bin", output)
        self.assertIn("export RUBYSWITCH_VERSION=2.6.3", output)
        self.assertIn("export RUBYSWITCH_GEMSET=default", output)

    def test_unsupported_shell(self):
        with self.assertRaises(ValidationError):
            shell_exports(self.environ, 'tcsh')


class TestActivityLogging(unittest.TestCase):
    """Test activity logging functionality."""

    def setUp(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.logger = ActivityLogger(Path(self.temp_dir))

    def tearDown(self):
        """Clean up test environment."""
        import shutil
        self.logger.close()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def read_entries(self):
        with open(self.logger.activity_log_file, 'r') as f:
            return [json.loads(line) for line in f.read().splitlines()]

    def test_log_activation(self):
        """Test activation logging."""
        self.logger.log_activation('2.6.3@default', '/work/app', details={'GEM_HOME': '/r/a'})

        entry = self.read_entries()[0]
        self.assertEqual(entry['event_type'], 'activation')
        self.assertEqual(entry['identifier'], '2.6.3@default')
        self.assertEqual(entry['path'], '/work/app')
        self.assertEqual(entry['result'], 'SUCCESS')
        self.assertEqual(entry['details']['GEM_HOME'], '/r/a')
        self.assertEqual(entry['source'], 'rubyswitch')

    def test_log_gem_install(self):
        self.logger.log_gem_install('pry', '2.6.3@default', '/tmp/pry.log')

        entry = self.read_entries()[0]
        self.assertEqual(entry['event_type'], 'gem_install')
        self.assertEqual(entry['details'], {'gem': 'pry', 'output': '/tmp/pry.log'})

    def test_log_error(self):
        """Test failures are logged with ERROR severity."""
        self.logger.log_error('VersionNotInstalledError', 'not installed', '9.9.9@x')

        entry = self.read_entries()[0]
        self.assertEqual(entry['event_type'], 'error')
        self.assertEqual(entry['severity'], 'ERROR')
        self.assertEqual(entry['result'], 'FAILURE')
        self.assertNotIn('path', entry)

    def test_entries_are_appended(self):
        self.logger.log_deactivation('2.6.3@default')
        self.logger.log_configuration_change('shell', 'sh', 'fish')

        entries = self.read_entries()
        self.assertEqual([e['event_type'] for e in entries], ['deactivation', 'configuration_change'])
        self.assertEqual(entries[1]['details']['new_value'], 'fish')

    def test_log_file_permissions(self):
        """Test that log files have correct permissions."""
        self.logger.log_deactivation()

        file_mode = oct(self.logger.activity_log_file.stat().st_mode)[-3:]
        self.assertEqual(file_mode, "600")

    def test_close_removes_handler(self):
        """Test closing detaches the file handler from the shared logger."""
        handler = self.logger._handler

        self.logger.close()

        self.assertNotIn(handler, logging.getLogger('rubyswitch_activity').handlers)

    def test_loggers_share_one_name(self):
        """Test a new activity logger replaces the previous one's handler."""
        other_dir = Path(self.temp_dir) / 'other'
        other = ActivityLogger(other_dir)
        try:
            self.assertIs(other.logger, self.logger.logger)
            self.assertEqual(other.logger.handlers, [other._handler])

            other.log_deactivation('2.6.3@default')
        finally:
            other.close()

        self.assertEqual(len((other_dir / 'activity.log').read_text().splitlines()), 1)
        self.assertEqual(self.logger.activity_log_file.read_text(), '')


if __name__ == '__main__':
    unittest.main()
