"""Input validation for rubyswitch.

Version and gemset names end up in filesystem paths and gem names end up on
a command line, so everything coming from marker files or the user passes
through here first.
"""

import re
from typing import List

from .errors import RubySwitchError


class ValidationError(RubySwitchError):
    """Raised when input validation fails."""
    pass


class InputValidator:
    """Validates user and marker-file inputs."""

    PATTERNS = {
        'version': re.compile(r'^[a-zA-Z0-9][a-zA-Z0-9_\-\.\+]*$'),
        'gemset': re.compile(r'^[a-zA-Z0-9_][a-zA-Z0-9_\-\.]*$'),
        'gem_name': re.compile(r'^[a-zA-Z0-9][a-zA-Z0-9_\-\.]*$'),
    }

    MAX_LENGTHS = {
        'version': 64,
        'gemset': 128,
        'gem_name': 128,
    }

    SHELLS: List[str] = ['sh', 'bash', 'zsh', 'fish']

    @classmethod
    def validate_version(cls, version: str) -> str:
        """Validate a Ruby version name such as ``2.6.3`` or ``jruby-9.4.0.0``.

        Args:
            version: Version string to validate

        Returns:
            The stripped version

        Raises:
            ValidationError: If the version is invalid
        """
        version = (version or '').strip()
        if not version:
            raise ValidationError("Invalid version: version cannot be empty")

        if len(version) > cls.MAX_LENGTHS['version']:
            raise ValidationError(
                f"Invalid version: cannot exceed {cls.MAX_LENGTHS['version']} characters"
            )

        if not cls.PATTERNS['version'].match(version) or '..' in version:
            raise ValidationError(
                f"Invalid version '{version}': use letters, digits, dots, "
                "hyphens, underscores and plus signs only"
            )

        return version

    @classmethod
    def validate_gemset(cls, gemset: str) -> str:
        """Validate a gemset name.

        Args:
            gemset: Gemset name to validate

        Returns:
            The stripped gemset name

        Raises:
            ValidationError: If the gemset name is invalid
        """
        gemset = (gemset or '').strip()
        if not gemset:
            raise ValidationError("Invalid gemset: gemset cannot be empty")

        if len(gemset) > cls.MAX_LENGTHS['gemset']:
            raise ValidationError(
                f"Invalid gemset: cannot exceed {cls.MAX_LENGTHS['gemset']} characters"
            )

        if not cls.PATTERNS['gemset'].match(gemset) or '..' in gemset:
            raise ValidationError(
                f"Invalid gemset '{gemset}': use letters, digits, dots, "
                "hyphens and underscores only"
            )

        return gemset

    @classmethod
    def validate_gem_name(cls, name: str) -> str:
        """Validate a gem name before it is handed to ``gem install``."""
        name = (name or '').strip()
        if not name:
            raise ValidationError("Invalid gem name: name cannot be empty")

        if len(name) > cls.MAX_LENGTHS['gem_name']:
            raise ValidationError(
                f"Invalid gem name: cannot exceed {cls.MAX_LENGTHS['gem_name']} characters"
            )

        # Leading hyphen would be parsed as an option by gem.
        if not cls.PATTERNS['gem_name'].match(name):
            raise ValidationError(f"Invalid gem name '{name}'")

        return name

    @classmethod
    def validate_shell(cls, shell: str) -> str:
        shell = (shell or '').strip().lower()
        if shell not in cls.SHELLS:
            raise ValidationError(
                f"Unsupported shell '{shell}'. Choose one of: {', '.join(cls.SHELLS)}"
            )
        return shell
