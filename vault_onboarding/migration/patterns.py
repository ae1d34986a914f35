"""Secret detection patterns.

Three ordered lists of regular expressions drive classification:

- ``exclude_variables``: variable names that are never secrets
- ``variable_name_patterns``: variable names that are always secrets
- ``variable_value_patterns``: values that look like credentials

Patterns come either from a JSON file (:class:`FilePatternProvider`) or from
the built-in defaults (:class:`BuiltinPatternProvider`). They are loaded once
per run and are immutable afterwards.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Union

from vault_onboarding.migration.exceptions import (
    PatternConfigError,
    PatternConfigNotFoundError,
)

logger = logging.getLogger(__name__)

PATTERN_KEYS = ("exclude_variables", "variable_name_patterns", "variable_value_patterns")

DEFAULT_NAME_PATTERNS = (
    r"PRIVATE_KEY",
    r"SECRET",
    r"TOKEN",
    r"_KEY$",
    r"^KEY$",
    r"PASSWORD",
    r"PASSWD",
    r"CREDENTIAL",
    r"API_KEY",
)

DEFAULT_VALUE_PATTERNS = (
    r"^sk_",
    r"^pk_",
    r"^xox[bp][-_]",
    r"^gh[pousr]_",
    r"^0x[0-9a-fA-F]{64}$",
    r"^-----BEGIN .*PRIVATE KEY-----",
    r"^eyJ[A-Za-z0-9_-]+\.eyJ",
)

DEFAULT_EXCLUDE_VARIABLES = (
    r"^WORKSPACE_NAME$",
    r"^DIAMOND_NAME$",
    r"^VAULT_ADDR$",
    r"^VAULT_COMMAND$",
    r"^VAULT_MODE$",
    r"^NODE_ENV$",
    r"^PUBLIC_",
)


def _compile_all(kind: str, patterns: Iterable[str]) -> tuple[re.Pattern, ...]:
    compiled = []
    for pattern in patterns:
        if not isinstance(pattern, str):
            raise PatternConfigError(
                f"Pattern in {kind} must be a string",
                details={"pattern": repr(pattern)},
            )
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            raise PatternConfigError(
                f"Invalid regular expression in {kind}: {pattern}",
                details={"error": str(e)},
            ) from e
    return tuple(compiled)


@dataclass(frozen=True)
class SecretPatterns:
    """Compiled, immutable pattern set."""

    exclude_variables: tuple[re.Pattern, ...] = ()
    variable_name_patterns: tuple[re.Pattern, ...] = ()
    variable_value_patterns: tuple[re.Pattern, ...] = ()

    @classmethod
    def from_strings(
        cls,
        exclude_variables: Iterable[str] = (),
        variable_name_patterns: Iterable[str] = (),
        variable_value_patterns: Iterable[str] = (),
    ) -> "SecretPatterns":
        """Compile pattern strings.

        Raises:
            PatternConfigError: If any pattern is not a valid regular expression
        """
        return cls(
            exclude_variables=_compile_all("exclude_variables", exclude_variables),
            variable_name_patterns=_compile_all("variable_name_patterns", variable_name_patterns),
            variable_value_patterns=_compile_all("variable_value_patterns", variable_value_patterns),
        )


class PatternProvider(ABC):
    """Source of the pattern set used for one run."""

    @abstractmethod
    def load(self) -> SecretPatterns:
        """Load and compile the pattern set."""


class BuiltinPatternProvider(PatternProvider):
    """The default patterns shipped with the package."""

    def load(self) -> SecretPatterns:
        return SecretPatterns.from_strings(
            exclude_variables=DEFAULT_EXCLUDE_VARIABLES,
            variable_name_patterns=DEFAULT_NAME_PATTERNS,
            variable_value_patterns=DEFAULT_VALUE_PATTERNS,
        )


class FilePatternProvider(PatternProvider):
    """Patterns read from a JSON file.

    Example file::

        {
          "variable_name_patterns": ["SECRET", "TOKEN"],
          "variable_value_patterns": ["^sk_"],
          "exclude_variables": ["^PUBLIC_"]
        }

    A missing file is an error; it is never silently replaced by the defaults.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> SecretPatterns:
        """Read and compile the pattern file.

        Raises:
            PatternConfigNotFoundError: If the file does not exist
            PatternConfigError: If the file is not valid JSON or holds a bad regex
        """
        if not self.path.is_file():
            raise PatternConfigNotFoundError(str(self.path))

        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise PatternConfigError(
                f"Invalid JSON in pattern configuration: {self.path}",
                details={"error": str(e)},
            ) from e
        except OSError as e:
            raise PatternConfigError(
                f"Cannot read pattern configuration: {self.path}",
                details={"error": str(e)},
            ) from e

        if not isinstance(data, dict):
            raise PatternConfigError(f"Pattern configuration must be a JSON object: {self.path}")

        lists = {}
        for key in PATTERN_KEYS:
            value = data.get(key)
            if value is None:
                logger.warning("Pattern configuration has no %s; using an empty list", key)
                value = []
            elif not isinstance(value, list):
                raise PatternConfigError(f"{key} must be a list in {self.path}")
            lists[key] = value

        patterns = SecretPatterns.from_strings(**lists)
        logger.debug(
            "Loaded %d name, %d value and %d exclude patterns from %s",
            len(patterns.variable_name_patterns),
            len(patterns.variable_value_patterns),
            len(patterns.exclude_variables),
            self.path,
        )
        return patterns


def get_pattern_provider(path: Union[str, Path, None] = None, builtin: bool = False) -> PatternProvider:
    """Select the provider at startup: built-in defaults or the JSON file."""
    if builtin:
        return BuiltinPatternProvider()
    if path is None:
        raise PatternConfigError("No pattern configuration file given")
    return FilePatternProvider(path)
