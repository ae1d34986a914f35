"""Initialize Vault from a team template of seed secrets.

The seed file maps full secret paths to payloads::

    {
      "_comment": "keys starting with _ are metadata and skipped",
      "secret/dev/API_KEY": {"value": "replace-me"}
    }

Each entry is written to ``<mount>/data/<path without mount>``.

Usage:
    vault-init-from-template
    vault-init-from-template --seed-file data/vault-data.template/seed-secrets.json --yes
"""

import json
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
from vault_onboarding.vault.client import SecretStoreClient
from vault_onboarding.vault.exceptions import (
    SecretStoreWriteError,
    VaultError,
    VaultValidationError,
)
from vault_onboarding.wizard.prompts import ConsolePrompter

logger = logging.getLogger(__name__)


@dataclass
class SeedSecret:
    path: str
    value: str

    @property
    def base_path(self) -> str:
        return self.path.rsplit("/", 1)[0] if "/" in self.path else ""

    @property
    def key(self) -> str:
        return self.path.rsplit("/", 1)[-1]


@dataclass
class TemplateResult:
    """Outcome of loading seed secrets."""

    loaded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed


def load_seed_secrets(path: Union[str, Path]) -> list[SeedSecret]:
    """Parse the seed file, skipping ``_``-prefixed metadata keys.

    Raises:
        VaultValidationError: If the file is missing or not valid JSON
    """
    path = Path(path)
    if not path.is_file():
        raise VaultValidationError(f"Seed secrets file not found: {path}")
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise VaultValidationError(
            f"Invalid JSON format in {path.name}",
            details={"error": str(e)},
        ) from e
    if not isinstance(data, dict):
        raise VaultValidationError(f"Seed secrets file must contain a JSON object: {path}")

    seeds = []
    for secret_path, payload in data.items():
        if secret_path.startswith("_"):
            continue
        value = payload.get("value") if isinstance(payload, dict) else payload
        if value is None:
            logger.warning("Seed entry %s has no value; skipping", secret_path)
            continue
        seeds.append(SeedSecret(path=secret_path.strip("/"), value=str(value)))
    return seeds


def init_from_template(store: SecretStoreClient, seeds: list[SeedSecret]) -> TemplateResult:
    """Write every seed secret, continuing past individual failures."""
    result = TemplateResult()
    for seed in seeds:
        logger.info("Writing: %s", seed.path)
        try:
            store.write_secret(seed.base_path, seed.key, seed.value)
        except SecretStoreWriteError as e:
            logger.error("Failed to write %s: %s", seed.path, e)
            result.failed.append(seed.path)
        else:
            result.loaded.append(seed.path)

    if result.loaded:
        log_success(logger, "Loaded %d seed secrets", len(result.loaded))
    if result.failed:
        logger.error("Failed to load %d seed secrets", len(result.failed))
    return result


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for ``vault-init-from-template``."""
    parser = ArgumentParser(description="Initialize Vault from team template seed secrets")
    add_vault_arguments(parser)
    parser.add_argument(
        "--seed-file",
        default=config.VAULT_TEMPLATE_SEED_FILE,
        help=f"Seed secrets JSON (default: {config.VAULT_TEMPLATE_SEED_FILE})",
    )
    parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Skip the confirmation prompt",
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

    try:
        seeds = load_seed_secrets(args.seed_file)
        if not seeds:
            logger.warning("No secrets found in seed file (or only metadata fields)")
            sys.exit(0)

        logger.warning("This will write %d placeholder secrets to Vault", len(seeds))
        if not args.yes and not ConsolePrompter().confirm("Continue with template initialization?", default=False):
            logger.info("Template initialization cancelled")
            sys.exit(0)

        with build_vault_client(args) as client:
            client.check_connection()
            result = init_from_template(client, seeds)
    except VaultError as e:
        logger.error(str(e))
        sys.exit(1)

    sys.exit(0 if result.success else 1)


if __name__ == "__main__":
    main()
