"""Validate that a ``.env`` file holds no secrets.

Every remaining secret-like entry is reported as one
:class:`ResidualSecretError`. When a store client is available the keys under
the Vault path are listed too; connectivity or authentication problems there
are recorded as warnings and never fail the local check.

Usage:
    vault-validate-no-secrets
    vault-validate-no-secrets --env-file .env --skip-vault
"""

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from vault_onboarding import config
from vault_onboarding.cli import (
    ArgumentParser,
    UnknownOptionError,
    add_vault_arguments,
    add_verbose_argument,
    build_vault_client,
)
from vault_onboarding.log import configure_logging, log_success
from vault_onboarding.migration.classifier import SecretClassifier
from vault_onboarding.migration.env_file import iter_env_entries
from vault_onboarding.migration.exceptions import MigrationError, ResidualSecretError
from vault_onboarding.migration.patterns import get_pattern_provider
from vault_onboarding.vault.client import SecretStoreClient
from vault_onboarding.vault.exceptions import VaultError

logger = logging.getLogger(__name__)


@dataclass
class ValidationReport:
    """Outcome of a validation run."""

    env_file: str
    env_file_found: bool = True
    entries_checked: int = 0
    residual_secrets: list[ResidualSecretError] = field(default_factory=list)
    store_keys: list[str] = field(default_factory=list)
    store_error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.residual_secrets

    @property
    def residual_keys(self) -> list[str]:
        return [error.key for error in self.residual_secrets]


class SecretValidator:
    """Checks an env file (and optionally the store) after migration."""

    def __init__(self, classifier: SecretClassifier, store: Optional[SecretStoreClient] = None):
        self.classifier = classifier
        self.store = store

    def validate(
        self,
        env_file: Union[str, Path],
        base_path: str = config.VAULT_SECRET_PATH,
    ) -> ValidationReport:
        """Validate ``env_file`` and list the store keys under ``base_path``.

        Raises:
            EnvFileError: If the env file exists but cannot be read
        """
        env_file = Path(env_file)
        report = ValidationReport(env_file=str(env_file))

        if not env_file.is_file():
            report.env_file_found = False
            logger.info("No .env file found at %s (expected after migration)", env_file)
        else:
            for entry in iter_env_entries(env_file):
                report.entries_checked += 1
                if self.classifier.classify(entry.key, entry.value):
                    error = ResidualSecretError(entry.key, entry.line_number)
                    logger.error(str(error))
                    report.residual_secrets.append(error)

        if self.store is not None:
            self._check_store(report, base_path)

        if report.success:
            log_success(logger, "No secrets found in %s", env_file)
        return report

    def _check_store(self, report: ValidationReport, base_path: str) -> None:
        try:
            report.store_keys = self.store.list_secrets(base_path)
        except VaultError as e:
            report.store_error = str(e)
            report.warnings.append(f"Could not list Vault secrets: {e}")
            logger.warning("Could not list Vault secrets under %s: %s", base_path, e)
            return

        if not report.store_keys:
            message = f"No secrets found in Vault path: {base_path}"
            report.warnings.append(message)
            logger.warning(message)
            logger.warning("This might be expected if no secrets were migrated")
            return

        log_success(logger, "Secrets stored in Vault:")
        for key in report.store_keys:
            logger.info("  - %s", key)


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for ``vault-validate-no-secrets``."""
    parser = ArgumentParser(description="Check that a .env file contains no secrets")
    add_vault_arguments(parser)
    parser.add_argument(
        "--env-file",
        default=config.ENV_FILE,
        help=f"Env file to check (default: {config.ENV_FILE})",
    )
    parser.add_argument(
        "--vault-path",
        default=config.VAULT_SECRET_PATH,
        help=f"Base path under the mount (default: {config.VAULT_SECRET_PATH})",
    )
    parser.add_argument("--patterns-file", default=config.SECRET_PATTERNS_FILE)
    parser.add_argument("--builtin-patterns", action="store_true")
    parser.add_argument(
        "--skip-vault",
        action="store_true",
        help="Only check the env file; do not list Vault secrets",
    )
    add_verbose_argument(parser)

    try:
        args = parser.parse_args(argv)
    except UnknownOptionError as e:
        configure_logging()
        logger.error(e.message)
        sys.stderr.write(e.usage)
        sys.exit(1)

    configure_logging(args.verbose)
    logger.info("Validating that no secrets remain in %s", args.env_file)

    try:
        patterns = get_pattern_provider(args.patterns_file, builtin=args.builtin_patterns).load()
        classifier = SecretClassifier(patterns)
        if not args.skip_vault and args.token:
            with build_vault_client(args) as store:
                report = SecretValidator(classifier, store).validate(args.env_file, args.vault_path)
        else:
            report = SecretValidator(classifier).validate(args.env_file, args.vault_path)
    except (MigrationError, VaultError) as e:
        logger.error(str(e))
        sys.exit(1)

    if not report.success:
        logger.error("%d secrets found in %s", len(report.residual_secrets), args.env_file)
        logger.info("Run vault-migrate-secrets to move them to Vault")
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
