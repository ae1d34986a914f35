"""Unseal key storage and automatic unsealing of a persistent Vault server.

A persistent server comes up sealed after every restart. When the developer
opted into auto-unseal, the key material produced at initialization is kept in
a JSON file (``{"keys_base64": [...], "root_token": "..."}``, mode 600) and the
first ``threshold`` keys are replayed against ``sys/unseal``.

Usage:
    vault-auto-unseal
    vault-auto-unseal --keys-file data/vault-unseal-keys.json
"""

import json
import logging
import os
import stat
import sys
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from vault_onboarding import config
from vault_onboarding.cli import (
    ArgumentParser,
    UnknownOptionError,
    add_vault_arguments,
    add_verbose_argument,
    build_vault_client,
)
from vault_onboarding.log import configure_logging, log_success
from vault_onboarding.vault.client import VaultClient
from vault_onboarding.vault.exceptions import VaultError, VaultValidationError
from vault_onboarding.vault.models import SealStatus, UnsealKeys

logger = logging.getLogger(__name__)

UNSEAL_THRESHOLD = 3
KEYS_FILE_MODE = 0o600


def save_unseal_keys(keys: UnsealKeys, path: Union[str, Path]) -> Path:
    """Write key material to ``path`` readable by the owner only."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, KEYS_FILE_MODE)
    with os.fdopen(fd, "w") as f:
        json.dump(keys.model_dump(), f, indent=2)
    # O_CREAT mode is ignored for an existing file
    os.chmod(path, KEYS_FILE_MODE)
    logger.info("Saved unseal keys to %s (permissions 600)", path)
    return path


def load_unseal_keys(path: Union[str, Path]) -> UnsealKeys:
    """Read key material written by :func:`save_unseal_keys`.

    Raises:
        VaultValidationError: If the file is missing or malformed
    """
    path = Path(path)
    if not path.is_file():
        raise VaultValidationError(
            f"Unseal keys file not found: {path}",
            details={"path": str(path)},
        )

    mode = stat.S_IMODE(path.stat().st_mode)
    if mode != KEYS_FILE_MODE:
        logger.warning("Unseal keys file has insecure permissions: %o", mode)
        logger.warning("Recommended: chmod 600 %s", path)

    try:
        with open(path, "r") as f:
            return UnsealKeys.model_validate(json.load(f))
    except (json.JSONDecodeError, ValidationError) as e:
        raise VaultValidationError(
            f"Unseal keys file is corrupted: {path}",
            details={"error": str(e)},
        ) from e


def auto_unseal(
    client: VaultClient,
    keys_file: Union[str, Path],
    threshold: int = UNSEAL_THRESHOLD,
) -> SealStatus:
    """Unseal ``client``'s server with the first ``threshold`` stored keys.

    Returns immediately when the server is already unsealed.

    Raises:
        VaultValidationError: If the keys file is missing, corrupted or short
        VaultSealedError: If the server stays sealed after the keys
    """
    status = client.seal_status()
    if not status.sealed:
        log_success(logger, "Vault is already unsealed")
        return status

    logger.info("Vault is sealed. Beginning unseal process...")
    keys = load_unseal_keys(keys_file).keys_base64[:threshold]
    if len(keys) < threshold:
        raise VaultValidationError(
            f"Insufficient unseal keys found (need {threshold}, have {len(keys)})",
            details={"path": str(keys_file)},
        )

    status = client.unseal(keys)
    log_success(logger, "Vault unsealed successfully")
    return status


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for ``vault-auto-unseal``."""
    parser = ArgumentParser(description="Unseal a persistent Vault server with stored keys")
    add_vault_arguments(parser)
    parser.add_argument(
        "--keys-file",
        default=config.VAULT_UNSEAL_KEYS_FILE,
        help=f"Unseal keys JSON file (default: {config.VAULT_UNSEAL_KEYS_FILE})",
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
        with build_vault_client(args) as client:
            auto_unseal(client, args.keys_file)
    except VaultError as e:
        logger.error(str(e))
        logger.info("Unseal manually with: vault operator unseal <key> (repeat %d times)", UNSEAL_THRESHOLD)
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
