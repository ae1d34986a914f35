"""Retrieve migrated secrets from Vault for a development shell.

Every key under the Vault path is read and written as ``export KEY="value"``
lines to an output file (mode 600) that a shell can source. Keys Vault cannot
provide are filled from the ``.env`` file unless ``--no-fallback`` is given.

Usage:
    vault-fetch-secrets
    vault-fetch-secrets --quiet --no-fallback --output /tmp/vault-secrets.env

Example:
    # Load secrets into the current shell
    eval "$(vault-fetch-secrets --quiet --output -)"
"""

import argparse
import logging
import os
import sys
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Union

from vault_onboarding import config
from vault_onboarding.cli import (
    ArgumentParser,
    UnknownOptionError,
    add_vault_arguments,
    add_verbose_argument,
    build_vault_client,
)
from vault_onboarding.log import configure_logging, log_success
from vault_onboarding.migration.env_file import iter_env_entries
from vault_onboarding.migration.exceptions import EnvFileError
from vault_onboarding.vault.bootstrap import PLACEHOLDER_KEY
from vault_onboarding.vault.client import SecretStoreClient, VaultClient
from vault_onboarding.vault.exceptions import VaultAuthenticationError, VaultError

logger = logging.getLogger(__name__)

EXPORT_FILE_MODE = 0o600

# Characters that stay special inside double quotes
_SHELL_ESCAPES = str.maketrans({"\\": "\\\\", '"': '\\"', "$": "\\$", "`": "\\`"})


@dataclass
class FetchReport:
    """Secrets gathered by one fetch, in the order they were loaded."""

    vault_path: str
    secrets: dict[str, str] = field(default_factory=dict)
    vault_keys: list[str] = field(default_factory=list)
    fallback_keys: list[str] = field(default_factory=list)
    failed_keys: list[str] = field(default_factory=list)
    vault_error: Optional[str] = None

    def missing(self, required: Iterable[str]) -> list[str]:
        return [key for key in required if key not in self.secrets]


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


class SecretFetcher:
    """Reads every secret under a path, with an optional ``.env`` fallback."""

    def __init__(
        self,
        store: Optional[SecretStoreClient],
        fallback_env_file: Optional[Union[str, Path]] = None,
    ):
        """Initialize the fetcher.

        Args:
            store: Source store, or None when Vault is unavailable
            fallback_env_file: Env file supplying keys Vault did not provide
        """
        self.store = store
        self.fallback_env_file = fallback_env_file

    def fetch(self, base_path: str = config.VAULT_SECRET_PATH) -> FetchReport:
        """Collect the secrets under ``base_path``.

        Raises:
            EnvFileError: If the fallback file exists but cannot be read
        """
        report = FetchReport(vault_path=base_path)
        if self.store is not None:
            self._load_from_store(report, base_path)
        if self.fallback_env_file is not None:
            self._load_fallback(report, Path(self.fallback_env_file))
        return report

    def _load_from_store(self, report: FetchReport, base_path: str) -> None:
        logger.info("Loading secrets from Vault path: %s", base_path)
        try:
            keys = self.store.list_secrets(base_path)
        except VaultError as e:
            report.vault_error = str(e)
            logger.warning("Could not list Vault secrets under %s: %s", base_path, e)
            return

        for key in keys:
            # Sub-paths and the bootstrap placeholder are not variables
            if key.endswith("/") or key == PLACEHOLDER_KEY:
                continue
            try:
                value = self.store.read_secret(base_path, key)
            except VaultError as e:
                logger.warning("Failed to load %s from Vault: %s", key, e)
                report.failed_keys.append(key)
                continue
            report.secrets[key] = value
            report.vault_keys.append(key)
            logger.info("Loaded %s from Vault", key)

        log_success(
            logger,
            "Loaded %d secrets from Vault (%d failed)",
            len(report.vault_keys),
            len(report.failed_keys),
        )

    def _load_fallback(self, report: FetchReport, path: Path) -> None:
        if not path.is_file():
            logger.warning("Fallback .env file not found: %s", path)
            return

        for entry in iter_env_entries(path):
            if not entry.has_separator or entry.key in report.secrets:
                continue
            report.secrets[entry.key] = _unquote(entry.value)
            report.fallback_keys.append(entry.key)
            logger.debug("Loaded %s from %s", entry.key, path)

        if report.fallback_keys:
            logger.warning("Loaded %d values from %s", len(report.fallback_keys), path)


def render_exports(secrets: dict[str, str], now: Optional[datetime] = None) -> str:
    """Shell ``export`` lines for ``secrets`` under a timestamp comment."""
    stamp = (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    lines = [f"# Vault secrets exported on {stamp}"]
    lines += [f'export {key}="{value.translate(_SHELL_ESCAPES)}"' for key, value in secrets.items()]
    return "\n".join(lines) + "\n"


def write_export_file(path: Union[str, Path], content: str) -> Path:
    """Write ``content`` to ``path`` readable by the owner only."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, EXPORT_FILE_MODE)
    with os.fdopen(fd, "w") as f:
        f.write(content)
    # O_CREAT mode is ignored for an existing file
    os.chmod(path, EXPORT_FILE_MODE)
    return path


def connect(client: VaultClient, github_token: Optional[str] = None) -> Optional[VaultClient]:
    """Return ``client`` once it holds a usable token, or None if Vault cannot be used."""
    try:
        client.check_connection()
    except VaultAuthenticationError:
        if not github_token:
            logger.warning("No valid Vault token and GITHUB_TOKEN not set")
            return None
        logger.info("Authenticating with Vault using GitHub token...")
        try:
            client.login_github(github_token)
        except VaultError as e:
            logger.warning("Vault authentication failed: %s", e)
            return None
    except VaultError as e:
        logger.warning("Vault is not available at %s: %s", client.config.vault_addr, e)
        return None
    return client


def build_parser() -> argparse.ArgumentParser:
    parser = ArgumentParser(
        description="Fetch secrets from Vault into a sourceable export file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Write secret/dev to the default export file
    vault-fetch-secrets

    # Print exports for eval, Vault only
    vault-fetch-secrets --quiet --no-fallback --output -

    # Fail unless DATABASE_PASSWORD could be loaded
    vault-fetch-secrets --require DATABASE_PASSWORD
        """,
    )
    add_vault_arguments(parser)
    parser.add_argument(
        "--github-token",
        default=config.GITHUB_TOKEN,
        help="GitHub token used to log in when no Vault token is valid (default: $GITHUB_TOKEN)",
    )
    parser.add_argument(
        "--vault-path",
        default=config.VAULT_SECRET_PATH,
        help=f"Base path under the mount (default: {config.VAULT_SECRET_PATH})",
    )
    parser.add_argument(
        "--env-file",
        default=config.ENV_FILE,
        help=f"Fallback env file (default: {config.ENV_FILE})",
    )
    parser.add_argument(
        "--no-fallback",
        action="store_true",
        help="Do not fill missing keys from the env file",
    )
    parser.add_argument(
        "--output", "-o",
        default=config.VAULT_SECRETS_EXPORT_FILE,
        help=f"Export file, '-' for stdout (default: {config.VAULT_SECRETS_EXPORT_FILE})",
    )
    parser.add_argument(
        "--require",
        action="append",
        default=[],
        metavar="KEY",
        help="Fail if KEY could not be loaded (repeatable)",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only log errors",
    )
    add_verbose_argument(parser)
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for ``vault-fetch-secrets``."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except UnknownOptionError as e:
        configure_logging()
        logger.error(e.message)
        sys.stderr.write(e.usage)
        sys.exit(1)

    configure_logging(args.verbose, quiet=args.quiet)
    logger.info("Starting Vault secret retrieval...")
    fallback = None if args.no_fallback else args.env_file

    try:
        with build_vault_client(args) as client:
            store = connect(client, args.github_token)
            if store is None and fallback is None:
                logger.error("Vault is unavailable and fallback to .env is disabled")
                sys.exit(1)
            report = SecretFetcher(store, fallback).fetch(args.vault_path)
    except (EnvFileError, VaultError) as e:
        logger.error(str(e))
        sys.exit(1)

    missing = report.missing(args.require)
    if missing:
        logger.error("Required secrets missing: %s", ", ".join(missing))
        sys.exit(1)

    content = render_exports(report.secrets)
    if args.output == "-":
        sys.stdout.write(content)
    else:
        try:
            write_export_file(args.output, content)
        except OSError as e:
            logger.error("Failed to write %s: %s", args.output, e)
            sys.exit(1)
        log_success(logger, "Secrets exported to %s", args.output)
        logger.info("Load them with: source %s", args.output)
    sys.exit(0)


if __name__ == "__main__":
    main()
