"""Migrate secrets from a ``.env`` file to Vault.

Secret-like entries are written one by one to ``<mount>/data/<base>/<KEY>``
as ``{"value": ...}``; every other entry stays in the file in its original
order. A timestamped backup is taken first and the file is only rewritten
once every secret has been stored.

Usage:
    vault-migrate-secrets --dry-run
    vault-migrate-secrets --env-file .env --vault-path dev

Example:
    # Preview which variables would move
    vault-migrate-secrets --dry-run --builtin-patterns

    # Migrate, deleting already-written secrets if a later write fails
    vault-migrate-secrets --rollback-on-failure
"""

import argparse
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
from vault_onboarding.migration.env_file import (
    EnvEntry,
    create_backup,
    iter_env_entries,
    write_filtered_env,
)
from vault_onboarding.migration.exceptions import EnvFileError, MigrationError
from vault_onboarding.migration.patterns import get_pattern_provider
from vault_onboarding.migration.validate import SecretValidator
from vault_onboarding.vault.client import SecretStoreClient
from vault_onboarding.vault.exceptions import SecretStoreWriteError, VaultError

logger = logging.getLogger(__name__)


@dataclass
class MigrationReport:
    """Result of one migration run."""

    env_file: str
    vault_path: str
    secret_keys: list[str] = field(default_factory=list)
    migrated_keys: list[str] = field(default_factory=list)
    retained: list[EnvEntry] = field(default_factory=list)
    backup_path: Optional[str] = None
    rewritten: bool = False
    dry_run: bool = False
    failed_key: Optional[str] = None
    error: Optional[str] = None
    rolled_back_keys: list[str] = field(default_factory=list)

    @property
    def secrets_found(self) -> int:
        return len(self.secret_keys)

    @property
    def secrets_migrated(self) -> int:
        return len(self.migrated_keys)

    @property
    def retained_count(self) -> int:
        return len(self.retained)

    @property
    def success(self) -> bool:
        return self.failed_key is None


class EnvSecretMigrator:
    """Moves secret entries of an env file into a :class:`SecretStoreClient`."""

    def __init__(
        self,
        store: SecretStoreClient,
        classifier: SecretClassifier,
        mount_point: str = config.VAULT_SECRET_MOUNT,
        rollback_on_failure: bool = False,
    ):
        """Initialize the migrator.

        Args:
            store: Destination secret store
            classifier: Secret classifier built from the run's patterns
            mount_point: KV mount, used for messages and the file header
            rollback_on_failure: Delete secrets written in this run when a
                later write fails
        """
        self.store = store
        self.classifier = classifier
        self.mount_point = mount_point
        self.rollback_on_failure = rollback_on_failure

    def vault_path(self, base_path: str) -> str:
        base = base_path.strip("/")
        if base == self.mount_point or base.startswith(f"{self.mount_point}/"):
            return base
        return f"{self.mount_point}/{base}"

    def migrate(
        self,
        env_file: Union[str, Path],
        base_path: str = config.VAULT_SECRET_PATH,
        dry_run: bool = False,
    ) -> MigrationReport:
        """Migrate the secrets of ``env_file`` under ``base_path``.

        Raises:
            EnvFileError: If the env file is missing, unreadable or cannot be rewritten
            BackupError: If the backup copy fails
            SecretStoreWriteError: If any secret fails to store; the env file
                is left untouched
        """
        env_file = Path(env_file)
        if not env_file.is_file():
            raise EnvFileError(str(env_file), message=f".env file not found: {env_file}")

        report = MigrationReport(
            env_file=str(env_file),
            vault_path=self.vault_path(base_path),
            dry_run=dry_run,
        )
        logger.info("Starting secret migration from %s to Vault path: %s", env_file, report.vault_path)

        secrets: list[EnvEntry] = []
        for entry in iter_env_entries(env_file):
            if self.classifier.classify(entry.key, entry.value):
                secrets.append(entry)
                report.secret_keys.append(entry.key)
            else:
                report.retained.append(entry)

        if not secrets:
            logger.info("No secrets found to migrate - .env file unchanged")
            return report

        if dry_run:
            for entry in secrets:
                logger.info("Would migrate secret: %s", entry.key)
            return report

        report.backup_path = str(create_backup(env_file))

        for entry in secrets:
            logger.info("Migrating secret: %s", entry.key)
            try:
                self.store.write_secret(base_path, entry.key, entry.value)
            except SecretStoreWriteError as e:
                report.failed_key = entry.key
                report.error = str(e)
                logger.error("Failed to migrate: %s", entry.key)
                self._handle_failure(report, base_path)
                e.details.update(
                    migrated_keys=list(report.migrated_keys),
                    rolled_back_keys=list(report.rolled_back_keys),
                )
                raise
            report.migrated_keys.append(entry.key)
            log_success(logger, "Successfully migrated: %s", entry.key)

        logger.info(
            "Found %d secrets, migrated %d secrets",
            report.secrets_found,
            report.secrets_migrated,
        )

        write_filtered_env(env_file, report.retained, report.vault_path)
        report.rewritten = True
        log_success(logger, "Updated .env file to contain only non-secret configuration")
        return report

    def _handle_failure(self, report: MigrationReport, base_path: str) -> None:
        if not report.migrated_keys:
            return
        if not self.rollback_on_failure:
            logger.warning(
                "%d secrets were already written to %s and remain there: %s",
                len(report.migrated_keys),
                report.vault_path,
                ", ".join(report.migrated_keys),
            )
            return

        for key in reversed(report.migrated_keys):
            try:
                self.store.delete_secret(base_path, key)
            except VaultError as e:
                logger.error("Rollback failed for %s: %s", key, e)
            else:
                report.rolled_back_keys.append(key)
        logger.warning("Rolled back %d secrets from %s", len(report.rolled_back_keys), report.vault_path)


def build_parser() -> argparse.ArgumentParser:
    parser = ArgumentParser(
        description="Migrate secrets from a .env file to HashiCorp Vault",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Preview which variables would move
    vault-migrate-secrets --dry-run

    # Migrate using the built-in patterns
    vault-migrate-secrets --builtin-patterns

    # Roll back written secrets if a later write fails
    vault-migrate-secrets --rollback-on-failure
        """,
    )
    add_vault_arguments(parser)
    parser.add_argument(
        "--env-file",
        default=config.ENV_FILE,
        help=f"Env file to migrate (default: {config.ENV_FILE})",
    )
    parser.add_argument(
        "--vault-path",
        default=config.VAULT_SECRET_PATH,
        help=f"Base path under the mount (default: {config.VAULT_SECRET_PATH})",
    )
    parser.add_argument(
        "--patterns-file",
        default=config.SECRET_PATTERNS_FILE,
        help="Secret pattern configuration JSON",
    )
    parser.add_argument(
        "--builtin-patterns",
        action="store_true",
        help="Use the built-in secret patterns instead of the JSON file",
    )
    parser.add_argument(
        "--dry-run", "-n",
        action="store_true",
        help="Report what would be migrated without writing anything",
    )
    parser.add_argument(
        "--rollback-on-failure",
        action="store_true",
        help="Delete secrets written in this run if a later write fails",
    )
    add_verbose_argument(parser)
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the migration command."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except UnknownOptionError as e:
        configure_logging()
        logger.error(e.message)
        sys.stderr.write(e.usage)
        sys.exit(1)

    configure_logging(args.verbose)
    logger.info("Secret Migration to Vault")

    try:
        patterns = get_pattern_provider(args.patterns_file, builtin=args.builtin_patterns).load()
        log_success(logger, "Secret patterns loaded successfully")
        classifier = SecretClassifier(patterns)

        env_file = Path(args.env_file)
        if not env_file.is_file():
            raise EnvFileError(str(env_file), message=f".env file not found: {env_file}")

        with build_vault_client(args) as client:
            if not args.dry_run:
                logger.info("Checking Vault connectivity...")
                client.check_connection()
                log_success(logger, "Vault connection established")

            migrator = EnvSecretMigrator(
                client,
                classifier,
                mount_point=args.mount_point,
                rollback_on_failure=args.rollback_on_failure,
            )
            report = migrator.migrate(env_file, args.vault_path, dry_run=args.dry_run)

            if args.dry_run:
                logger.info(
                    "Dry run: %d secrets would be migrated, %d entries kept",
                    report.secrets_found,
                    report.retained_count,
                )
                sys.exit(0)

            logger.info("Migration completed, starting validation...")
            validation = SecretValidator(classifier, client).validate(env_file, args.vault_path)
    except (MigrationError, VaultError) as e:
        logger.error(str(e))
        sys.exit(1)

    if not validation.success:
        logger.error(
            "Migration validation failed: %d secrets still remain in .env file",
            len(validation.residual_secrets),
        )
        sys.exit(1)

    log_success(logger, "Secret migration completed successfully!")
    if report.backup_path:
        logger.info("Backup created: %s", report.backup_path)
        logger.info("To restore from backup: cp '%s' '%s'", report.backup_path, report.env_file)
    logger.info("Retrieve secrets with: vault-fetch-secrets --vault-path %s", args.vault_path)
    sys.exit(0)


if __name__ == "__main__":
    main()
