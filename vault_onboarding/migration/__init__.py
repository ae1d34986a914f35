"""Migration of ``.env`` secrets to Vault and post-migration validation."""

from .classifier import SecretClassifier
from .exceptions import (
    BackupError,
    EnvFileError,
    MigrationError,
    PatternConfigError,
    PatternConfigNotFoundError,
    ResidualSecretError,
)
from .patterns import (
    BuiltinPatternProvider,
    FilePatternProvider,
    PatternProvider,
    SecretPatterns,
    get_pattern_provider,
)

__all__ = [
    "SecretClassifier",
    "BackupError",
    "EnvFileError",
    "MigrationError",
    "PatternConfigError",
    "PatternConfigNotFoundError",
    "ResidualSecretError",
    "BuiltinPatternProvider",
    "FilePatternProvider",
    "PatternProvider",
    "SecretPatterns",
    "get_pattern_provider",
]
