"""Command-line entry point for the Vault setup wizard.

Usage:
    vault-setup-wizard
    vault-setup-wizard --non-interactive --vault-mode=ephemeral
"""

import argparse
import logging
import sys
from typing import Optional

from vault_onboarding import config
from vault_onboarding.cli import ArgumentParser, UnknownOptionError, add_verbose_argument
from vault_onboarding.log import configure_logging
from vault_onboarding.migration.patterns import get_pattern_provider
from vault_onboarding.vault.models import VaultMode
from vault_onboarding.wizard.context import WizardContext
from vault_onboarding.wizard.exceptions import WizardCancelled, WizardStepError
from vault_onboarding.wizard.prompts import ConsolePrompter, DefaultsPrompter
from vault_onboarding.wizard.runner import SetupWizard
from vault_onboarding.wizard.steps import WizardServices

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = ArgumentParser(
        description="Guided setup of HashiCorp Vault for local development",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Interactive setup (requires a terminal)
    vault-setup-wizard

    # Automated setup with a persistent server and auto-unseal
    vault-setup-wizard --non-interactive --vault-mode=persistent --auto-unseal

    # Automated setup with a throwaway dev server
    vault-setup-wizard --non-interactive --vault-mode ephemeral
        """,
    )
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Answer every prompt with its default (yes to confirmations)",
    )
    parser.add_argument(
        "--vault-mode",
        choices=[mode.value for mode in VaultMode],
        default=None,
        help="Vault server mode (non-interactive default: persistent)",
    )
    parser.add_argument(
        "--auto-unseal",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Store unseal keys and unseal automatically (persistent mode only)",
    )
    parser.add_argument(
        "--vault-addr",
        default=config.VAULT_ADDR,
        help=f"Vault server address (default: {config.VAULT_ADDR})",
    )
    parser.add_argument(
        "--env-file",
        default=config.ENV_FILE,
        help=f"Env file whose secrets are migrated (default: {config.ENV_FILE})",
    )
    parser.add_argument(
        "--init-template",
        action="store_true",
        default=None,
        help="Load the team template seed secrets into Vault",
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
    add_verbose_argument(parser)
    return parser


def build_context(args: argparse.Namespace) -> WizardContext:
    vault_mode = VaultMode(args.vault_mode) if args.vault_mode else None
    if vault_mode is None and args.non_interactive:
        vault_mode = VaultMode.PERSISTENT
    return WizardContext(
        vault_addr=args.vault_addr,
        vault_mode=vault_mode,
        auto_unseal=args.auto_unseal,
        init_template=args.init_template,
        non_interactive=args.non_interactive,
        env_file=args.env_file,
    )


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the setup wizard."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except UnknownOptionError as e:
        configure_logging()
        logger.error(e.message)
        sys.stderr.write(e.usage)
        sys.exit(1)

    configure_logging(args.verbose)

    if args.non_interactive:
        prompter = DefaultsPrompter()
        logger.info("Running in non-interactive mode...")
    else:
        if not sys.stdin.isatty():
            logger.error("Interactive mode requires a terminal. Use --non-interactive for automated setup.")
            sys.exit(1)
        prompter = ConsolePrompter()

    services = WizardServices(
        prompter=prompter,
        pattern_provider=get_pattern_provider(args.patterns_file, builtin=args.builtin_patterns),
    )

    try:
        SetupWizard(services).run(build_context(args))
    except WizardCancelled as e:
        logger.info(e.message)
        sys.exit(0)
    except WizardStepError as e:
        logger.error(str(e))
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
