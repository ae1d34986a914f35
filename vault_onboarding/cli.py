"""Shared command-line plumbing for the onboarding commands."""

import argparse
from typing import NoReturn

from pydantic import ValidationError

from vault_onboarding import config
from vault_onboarding.vault.client import VaultClient
from vault_onboarding.vault.exceptions import VaultValidationError
from vault_onboarding.vault.models import VaultConnectionConfig


class UnknownOptionError(Exception):
    """Raised when a command is invoked with an unknown or malformed option."""

    def __init__(self, message: str, usage: str = ""):
        super().__init__(message)
        self.message = message
        self.usage = usage


class ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of exiting with status 2.

    Entry points catch :class:`UnknownOptionError`, log it and exit with 1
    like every other fatal error.
    """

    def error(self, message: str) -> NoReturn:
        raise UnknownOptionError(message, usage=self.format_usage())


def add_vault_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the Vault connection options shared by several commands."""
    parser.add_argument(
        "--vault-addr",
        default=config.VAULT_ADDR,
        help=f"Vault server address (default: {config.VAULT_ADDR})",
    )
    parser.add_argument(
        "--token",
        default=config.VAULT_TOKEN,
        help="Vault token (default: $VAULT_TOKEN)",
    )
    parser.add_argument(
        "--mount-point",
        default=config.VAULT_SECRET_MOUNT,
        help=f"KV v2 mount point (default: {config.VAULT_SECRET_MOUNT})",
    )
    parser.add_argument(
        "--no-verify",
        action="store_true",
        help="Disable TLS verification",
    )


def add_verbose_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )


def build_vault_client(args: argparse.Namespace) -> VaultClient:
    """Create a :class:`VaultClient` from the shared Vault options.

    Raises:
        VaultValidationError: If the address or mount point is malformed
    """
    try:
        connection = VaultConnectionConfig(
            vault_addr=args.vault_addr,
            token=args.token,
            mount_point=args.mount_point,
            timeout=config.VAULT_TIMEOUT,
            verify=not args.no_verify,
        )
    except ValidationError as e:
        raise VaultValidationError(
            "Invalid Vault connection settings",
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e
    return VaultClient(connection)
