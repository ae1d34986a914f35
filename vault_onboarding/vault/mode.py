"""Vault mode management: persistent (raft storage) or ephemeral (dev server).

The selected mode lives in ``vault-mode.conf``; the matching server command is
mirrored into ``VAULT_COMMAND`` in the ``.env`` file that Docker Compose reads.

Usage:
    vault-mode status
    vault-mode switch persistent
    vault-mode switch ephemeral --no-restart
"""

import logging
import os
import sys
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
from vault_onboarding.vault.client import VaultClient
from vault_onboarding.vault.exceptions import VaultConnectionError, VaultError
from vault_onboarding.vault.models import ModeConfig, VaultMode
from vault_onboarding.wizard.exceptions import ExternalCommandError
from vault_onboarding.wizard.system import DockerCompose

logger = logging.getLogger(__name__)

VAULT_COMMAND_KEY = "VAULT_COMMAND"


def read_mode_config(path: Union[str, Path]) -> Optional[ModeConfig]:
    """Return the stored mode configuration, or None if never saved."""
    path = Path(path)
    if not path.is_file():
        return None
    return ModeConfig.from_conf(path.read_text())


def save_mode_config(mode_config: ModeConfig, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(mode_config.to_conf())
    logger.info("Saved Vault mode configuration to %s", path)
    return path


def update_env_vault_command(env_file: Union[str, Path], vault_command: str) -> bool:
    """Set ``VAULT_COMMAND`` in ``env_file``, replacing or appending the line.

    Returns:
        False if the env file does not exist
    """
    env_file = Path(env_file)
    if not env_file.is_file():
        logger.warning(".env file not found: %s", env_file)
        return False

    new_line = f"{VAULT_COMMAND_KEY}={vault_command}"
    lines = env_file.read_text().splitlines()
    replaced = False
    for index, line in enumerate(lines):
        if line.startswith(f"{VAULT_COMMAND_KEY}="):
            lines[index] = new_line
            replaced = True
    if not replaced:
        lines.append(new_line)

    tmp_path = env_file.with_name(f".{env_file.name}.tmp")
    tmp_path.write_text("\n".join(lines) + "\n")
    os.replace(tmp_path, env_file)
    logger.debug("Set %s in %s", VAULT_COMMAND_KEY, env_file)
    return True


def apply_mode(
    mode_config: ModeConfig,
    conf_path: Union[str, Path],
    env_file: Union[str, Path],
) -> ModeConfig:
    """Persist ``mode_config`` to the mode file and the ``.env`` file."""
    save_mode_config(mode_config, conf_path)
    update_env_vault_command(env_file, mode_config.vault_command or mode_config.vault_mode.server_command)
    return mode_config


def switch_mode(
    target: VaultMode,
    conf_path: Union[str, Path],
    env_file: Union[str, Path],
    compose: Optional[DockerCompose] = None,
    service: str = config.VAULT_SERVICE_NAME,
) -> ModeConfig:
    """Switch to ``target`` mode and restart the Vault service when given ``compose``.

    The auto-unseal preference is kept when staying in persistent mode.
    """
    current = read_mode_config(conf_path)
    if current is not None and current.vault_mode is target:
        logger.info("Vault is already in %s mode", target.value)
        return current

    keep_unseal = current is not None and current.auto_unseal
    mode_config = apply_mode(ModeConfig.for_mode(target, auto_unseal=keep_unseal), conf_path, env_file)
    log_success(logger, "Switched Vault to %s mode", target.value)

    if compose is not None:
        compose.restart(service)
        log_success(logger, "Vault service restarted")
    if target is VaultMode.EPHEMERAL:
        logger.warning("Ephemeral mode: all Vault data is lost when the container stops")
    return mode_config


def describe_status(mode_config: Optional[ModeConfig], client: Optional[VaultClient] = None) -> list[str]:
    """Human-readable status lines for ``vault-mode status``."""
    lines = []
    if mode_config is None:
        lines.append("Mode: not configured (defaults to ephemeral)")
    else:
        lines.append(f"Mode: {mode_config.vault_mode.value}")
        lines.append(f"Command: {mode_config.vault_command or mode_config.vault_mode.server_command}")
        lines.append(f"Auto-unseal: {'enabled' if mode_config.auto_unseal else 'disabled'}")

    if client is not None:
        try:
            health = client.get_health()
        except VaultConnectionError:
            lines.append(f"Server: not reachable at {client.config.vault_addr}")
        else:
            lines.append(f"Server: {health.status.value} (version {health.version})")
            lines.append(f"Initialized: {'yes' if health.initialized else 'no'}")
            lines.append(f"Sealed: {'yes' if health.sealed else 'no'}")
    return lines


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for ``vault-mode``."""
    parser = ArgumentParser(description="Manage the local Vault server mode")
    add_vault_arguments(parser)
    parser.add_argument("--mode-conf", default=config.VAULT_MODE_CONF, help="Mode configuration file")
    parser.add_argument("--env-file", default=config.ENV_FILE, help="Docker Compose .env file")
    parser.add_argument("--compose-file", default=config.COMPOSE_FILE, help="Docker Compose file")
    add_verbose_argument(parser)

    commands = parser.add_subparsers(dest="command", parser_class=ArgumentParser)
    commands.add_parser("status", help="Show current Vault mode and status")
    switch = commands.add_parser("switch", help="Switch to a different Vault mode")
    switch.add_argument("mode", choices=[m.value for m in VaultMode])
    switch.add_argument("--no-restart", action="store_true", help="Do not restart the Vault service")

    try:
        args = parser.parse_args(argv)
    except UnknownOptionError as e:
        configure_logging()
        logger.error(e.message)
        sys.stderr.write(e.usage)
        sys.exit(1)

    configure_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        if args.command == "status":
            with build_vault_client(args) as client:
                for line in describe_status(read_mode_config(args.mode_conf), client):
                    print(line)
        else:
            compose = None if args.no_restart else DockerCompose(args.compose_file)
            switch_mode(VaultMode(args.mode), args.mode_conf, args.env_file, compose=compose)
    except ExternalCommandError as e:
        logger.error(str(e))
        logger.info("Restart Vault manually: docker compose restart %s", config.VAULT_SERVICE_NAME)
        sys.exit(1)
    except VaultError as e:
        logger.error(str(e))
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
