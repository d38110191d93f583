"""Configuration management for rubyswitch with schema validation."""

import json
import os
from pathlib import Path
from typing import Optional, Dict, Any, Self

from .errors import RubySwitchError


class ConfigError(RubySwitchError):
    """Configuration-related errors."""
    pass


class ConfigValidationError(ConfigError):
    """Raised when configuration validation fails."""
    pass


def default_config_dir() -> Path:
    """Settings directory, ``$RUBYSWITCH_HOME`` or ``~/.rubyswitch``."""
    override = os.environ.get('RUBYSWITCH_HOME')
    if override:
        return Path(override).expanduser()
    return Path.home() / ".rubyswitch"


class Config:
    """Manages rubyswitch settings stored as JSON."""

    CONFIG_SCHEMA = {
        'prefix': {'type': str, 'required': False, 'default': '~/.rubies'},
        'executable': {'type': str, 'required': False, 'default': 'redenv'},
        'version_file': {'type': str, 'required': False, 'validator': 'validate_file_name',
                         'default': '.ruby-version'},
        'gemset_file': {'type': str, 'required': False, 'validator': 'validate_file_name',
                        'default': '.ruby-gemset'},
        'local_marker': {'type': str, 'required': False, 'validator': 'validate_file_name',
                         'default': '.redenv'},
        'verbose': {'type': bool, 'required': False, 'default': True},
        'autodetect': {'type': bool, 'required': False, 'default': False},
        'shell': {'type': str, 'required': False, 'choices': ['sh', 'bash', 'zsh', 'fish'],
                  'default': 'sh'},
    }

    def __init__(self: Self, config_dir: Optional[Path] = None) -> None:
        """Initialize configuration manager.

        Args:
            config_dir: Settings directory. Defaults to ``default_config_dir()``.
        """
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self.config_file = self.config_dir / "config.json"

    def _ensure_directories(self: Self) -> None:
        """Create the settings directory with user-only permissions."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        os.chmod(self.config_dir, 0o700)

    def _validate_config_schema(self: Self, config: Dict[str, Any]) -> None:
        """Validate configuration against schema.

        Args:
            config: Configuration dictionary to validate.

        Raises:
            ConfigValidationError: If validation fails.
        """
        errors = []

        unknown = sorted(set(config) - set(self.CONFIG_SCHEMA))
        if unknown:
            errors.append(f"Unknown field(s): {', '.join(unknown)}")

        for key, schema in self.CONFIG_SCHEMA.items():
            value = config.get(key)

            if schema['required'] and value is None:
                errors.append(f"Required field '{key}' is missing")
                continue

            if value is None:
                continue

            if not isinstance(value, schema['type']):
                errors.append(f"Field '{key}' must be of type {schema['type'].__name__}")
                continue

            if 'choices' in schema and value not in schema['choices']:
                errors.append(f"Field '{key}' must be one of: {', '.join(schema['choices'])}")

            if 'validator' in schema:
                validator = getattr(self, schema['validator'], None)
                if validator and not validator(value):
                    errors.append(f"Field '{key}' failed validation")

        if errors:
            raise ConfigValidationError(f"Configuration validation failed: {'; '.join(errors)}")

    def validate_file_name(self: Self, name: str) -> bool:
        """Marker names are bare file names, never paths.

        Args:
            name: File name to validate.

        Returns:
            True if valid, False otherwise.
        """
        if not isinstance(name, str) or not name.strip():
            return False
        return '/' not in name and os.sep not in name and name not in ('.', '..')

    def load(self: Self, validate: bool = True) -> Dict[str, Any]:
        """Load configuration from file, filling in defaults.

        Args:
            validate: Whether to validate the configuration schema.

        Returns:
            Dictionary containing configuration data.

        Raises:
            ConfigError: If loading fails.
        """
        config: Dict[str, Any] = {}
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r') as f:
                    config = json.load(f)
            except (json.JSONDecodeError, IOError) as e:
                raise ConfigError(f"Failed to load configuration from {self.config_file}: {e}")

            if not isinstance(config, dict):
                raise ConfigError(f"Failed to load configuration from {self.config_file}: "
                                  "top-level value must be an object")

        for key, schema in self.CONFIG_SCHEMA.items():
            if key not in config and 'default' in schema:
                config[key] = schema['default']

        if validate:
            self._validate_config_schema(config)

        return config

    def save(self: Self, config: Dict[str, Any]) -> None:
        """Save configuration to file after validation.

        Args:
            config: Configuration dictionary to save.

        Raises:
            ConfigError: If validation or saving fails.
        """
        self._validate_config_schema(config)
        self._ensure_directories()

        # Write to a temporary file first, then move it into place
        temp_file = self.config_file.with_suffix('.tmp')
        try:
            with open(temp_file, 'w') as f:
                json.dump(config, f, indent=2, sort_keys=True)
            os.chmod(temp_file, 0o600)
            temp_file.replace(self.config_file)
        except OSError as e:
            if temp_file.exists():
                temp_file.unlink()
            raise ConfigError(f"Failed to save configuration: {e}")

    def get(self: Self, key: str, default: Any = None) -> Any:
        """Get configuration value.

        Args:
            key: Configuration key to retrieve.
            default: Default value if key not found.

        Returns:
            Configuration value or default.
        """
        try:
            config = self.load(validate=False)
            return config.get(key, default)
        except ConfigError:
            schema = self.CONFIG_SCHEMA.get(key, {})
            return schema.get('default', default)

    def set(self: Self, key: str, value: Any) -> None:
        """Set configuration value with validation.

        Args:
            key: Configuration key to set.
            value: Value to set for the key.

        Raises:
            ConfigError: If the key is unknown or validation fails.
        """
        if key not in self.CONFIG_SCHEMA:
            raise ConfigValidationError(f"Unknown configuration key '{key}'")

        config = self.load(validate=False)
        config[key] = value
        self.save(config)

    def get_prefix(self: Self) -> Optional[Path]:
        """Installation prefix holding ``<version>@<gemset>`` directories.

        Returns:
            Expanded prefix path, or None when unset.
        """
        prefix = self.get('prefix')
        if not prefix:
            return None
        return Path(prefix).expanduser()

    def validate_configuration(self: Self) -> Dict[str, Any]:
        """Validate current configuration and return validation results.

        Returns:
            Dictionary with validation results and suggestions.
        """
        results = {
            'valid': True,
            'errors': [],
            'warnings': [],
            'suggestions': []
        }

        try:
            self.load()
        except ConfigError as e:
            results['valid'] = False
            results['errors'].append(str(e))
            results['suggestions'].append(f"Fix or remove {self.config_file}")
            return results

        prefix = self.get_prefix()
        if prefix is None:
            results['warnings'].append("No installation prefix configured")
            results['suggestions'].append("Run: rubyswitch config --prefix <DIR>")
        elif not prefix.is_dir():
            results['warnings'].append(f"Installation prefix {prefix} does not exist")
            results['suggestions'].append("Install a Ruby with your version manager first")

        return results

    def reset(self: Self) -> None:
        """Reset configuration to defaults."""
        config = {}
        for key, schema in self.CONFIG_SCHEMA.items():
            if 'default' in schema:
                config[key] = schema['default']

        self.save(config)
