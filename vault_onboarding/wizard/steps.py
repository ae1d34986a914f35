"""The setup wizard steps.

Every step has the signature ``step(ctx, services) -> WizardContext``. Steps
raise :class:`WizardCancelled` or :class:`WizardStepError` for conditions of
their own; errors from Vault, the migration pipeline and external tools are
left to propagate and the runner reports them against the failing step.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError

from vault_onboarding import config
from vault_onboarding.log import log_success
from vault_onboarding.migration.classifier import SecretClassifier
from vault_onboarding.migration.migrate import EnvSecretMigrator
from vault_onboarding.migration.patterns import PatternProvider
from vault_onboarding.migration.validate import SecretValidator
from vault_onboarding.retry import RetryConfiguration, RetryExhaustedException, RetryPresets
from vault_onboarding.vault.bootstrap import bootstrap_server
from vault_onboarding.vault.client import VaultClient
from vault_onboarding.vault.exceptions import VaultAuthenticationError, VaultConnectionError
from vault_onboarding.vault.mode import apply_mode
from vault_onboarding.vault.models import ModeConfig, VaultConnectionConfig, VaultMode
from vault_onboarding.vault.template import init_from_template, load_seed_secrets
from vault_onboarding.vault.unseal import UNSEAL_THRESHOLD, auto_unseal, save_unseal_keys
from vault_onboarding.wizard.context import WizardContext
from vault_onboarding.wizard.exceptions import WizardCancelled, WizardStepError
from vault_onboarding.wizard.prompts import Prompter
from vault_onboarding.wizard.system import DockerCompose, GitHubCli, command_exists

logger = logging.getLogger(__name__)

INIT_SHARES = 5
INIT_THRESHOLD = 3


def default_client_factory(ctx: WizardContext) -> VaultClient:
    return VaultClient(
        VaultConnectionConfig(
            vault_addr=ctx.vault_addr,
            token=ctx.vault_token,
            mount_point=ctx.mount_point,
            timeout=config.VAULT_TIMEOUT,
        )
    )


@dataclass
class WizardServices:
    """Collaborators injected into every step."""

    prompter: Prompter
    pattern_provider: PatternProvider
    compose: DockerCompose = field(default_factory=lambda: DockerCompose(config.COMPOSE_FILE))
    github: GitHubCli = field(default_factory=GitHubCli)
    client_factory: Callable[[WizardContext], VaultClient] = default_client_factory
    readiness: RetryConfiguration = field(default_factory=lambda: RetryPresets.VAULT_READINESS)
    _classifier: Optional[SecretClassifier] = field(default=None, init=False, repr=False)

    def client(self, ctx: WizardContext) -> VaultClient:
        return self.client_factory(ctx)

    def classifier(self) -> SecretClassifier:
        """Classifier over the run's pattern set, loaded on first use."""
        if self._classifier is None:
            self._classifier = SecretClassifier(self.pattern_provider.load())
        return self._classifier


def mode_selection(ctx: WizardContext, services: WizardServices) -> WizardContext:
    if ctx.vault_mode is not None:
        logger.info("Vault mode: %s", ctx.vault_mode.value)
        return ctx

    choice = services.prompter.choose(
        "Select Vault mode:",
        [
            ("P", "Persistent - raft storage, data survives restarts (requires unseal)"),
            ("E", "Ephemeral - dev server, data is lost when the container stops"),
        ],
        default="P",
    )
    mode = VaultMode.PERSISTENT if choice.upper() == "P" else VaultMode.EPHEMERAL
    logger.info("Vault mode: %s", mode.value)
    return ctx.evolve(vault_mode=mode)


def auto_unseal_choice(ctx: WizardContext, services: WizardServices) -> WizardContext:
    """Decide auto-unseal and persist the mode configuration."""
    if ctx.vault_mode is VaultMode.EPHEMERAL:
        enabled = False
    elif ctx.auto_unseal is not None:
        enabled = ctx.auto_unseal
    else:
        enabled = services.prompter.confirm(
            "Enable auto-unseal? Unseal keys will be stored locally (chmod 600)",
            default=True,
        )

    mode_config = ModeConfig.for_mode(ctx.vault_mode or VaultMode.PERSISTENT, auto_unseal=enabled)
    apply_mode(mode_config, ctx.mode_conf, ctx.env_file)
    logger.info("Auto-unseal: %s", "enabled" if mode_config.auto_unseal else "disabled")
    return ctx.evolve(vault_mode=mode_config.vault_mode, auto_unseal=mode_config.auto_unseal)


def welcome(ctx: WizardContext, services: WizardServices) -> WizardContext:
    logger.info("This wizard will:")
    logger.info("  - check prerequisites and start the Vault service")
    logger.info("  - initialize Vault and set up GitHub authentication")
    logger.info("  - migrate secrets from your .env file to Vault")
    if not services.prompter.confirm("Do you want to continue with the Vault setup?"):
        raise WizardCancelled()
    return ctx


def prerequisites(ctx: WizardContext, services: WizardServices) -> WizardContext:
    missing = []
    if services.compose.is_available():
        log_success(logger, "Docker and Docker Compose are installed")
    else:
        logger.error("Docker with the compose plugin is not installed")
        missing.append("docker compose")

    if services.github.is_available():
        log_success(logger, "GitHub CLI is installed")
    else:
        logger.warning("GitHub CLI not found - you can install it or use manual token entry")

    if not command_exists("vault"):
        logger.info("Vault CLI not found - not required, the HTTP API is used")

    if missing:
        raise WizardStepError(
            "prerequisites",
            "Prerequisites not met. Please install missing tools and try again.",
            details={"missing": missing},
        )
    return ctx


def configure_address(ctx: WizardContext, services: WizardServices) -> WizardContext:
    vault_addr = services.prompter.ask("Vault server address", default=ctx.vault_addr)
    try:
        vault_addr = VaultConnectionConfig(vault_addr=vault_addr).vault_addr
    except ValidationError as e:
        raise WizardStepError(
            "configure_address",
            f"Invalid Vault address: {vault_addr}",
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e
    log_success(logger, "Vault address set to: %s", vault_addr)
    return ctx.evolve(vault_addr=vault_addr)


def github_auth(ctx: WizardContext, services: WizardServices) -> WizardContext:
    prompter = services.prompter
    if ctx.github_token and prompter.confirm("GitHub token is already set. Use existing token?", default=True):
        log_success(logger, "Using existing GitHub token")
        return ctx

    if services.github.is_available() and services.github.is_authenticated():
        if prompter.confirm("GitHub CLI is authenticated. Use it to get a token?", default=True):
            token = services.github.auth_token()
            if token:
                log_success(logger, "GitHub token obtained from CLI")
                return ctx.evolve(github_token=token)
            logger.warning("GitHub CLI did not return a token")

    token = prompter.ask("Enter your GitHub Personal Access Token (scope: read:org)", secret=True)
    if not token:
        logger.warning("No GitHub token configured; Vault login will rely on an existing Vault token")
        return ctx
    log_success(logger, "GitHub token configured")
    return ctx.evolve(github_token=token)


def start_service(ctx: WizardContext, services: WizardServices) -> WizardContext:
    if services.compose.is_running(ctx.service_name):
        log_success(logger, "Vault container is already running")
    else:
        logger.info("Starting Vault container...")
        services.compose.up(ctx.service_name)

    logger.info("Waiting for Vault to initialize...")
    with services.client(ctx) as client:
        try:
            client.wait_until_ready(services.readiness)
        except RetryExhaustedException as e:
            timeout = services.readiness.max_attempts * services.readiness.base_delay
            raise WizardStepError(
                "start_service",
                f"Vault failed to start within {timeout:.0f} seconds",
                details={"error": str(e.last_exception)},
            ) from e
    log_success(logger, "Vault service is ready")
    return ctx


def initialize(ctx: WizardContext, services: WizardServices) -> WizardContext:
    """Initialize and unseal the server, then bootstrap it when a root token is at hand."""
    with services.client(ctx) as client:
        health = client.get_health()
        root_token = None

        if not health.initialized:
            logger.info("Initializing Vault (%d key shares, threshold %d)...", INIT_SHARES, INIT_THRESHOLD)
            keys = client.initialize(shares=INIT_SHARES, threshold=INIT_THRESHOLD)
            save_unseal_keys(keys, ctx.unseal_keys_file)
            if not ctx.auto_unseal:
                logger.warning("Unseal keys saved to %s; move them somewhere safe", ctx.unseal_keys_file)
            client.unseal(keys.keys_base64[:UNSEAL_THRESHOLD])
            root_token = keys.root_token
            log_success(logger, "Vault initialized and unsealed")
        elif health.sealed:
            if not ctx.auto_unseal:
                raise WizardStepError(
                    "initialize",
                    "Vault is sealed and auto-unseal is disabled",
                    details={"hint": "run vault-auto-unseal or vault operator unseal"},
                )
            auto_unseal(client, ctx.unseal_keys_file)
        else:
            log_success(logger, "Vault is already initialized")

        if root_token is None and ctx.vault_mode is VaultMode.EPHEMERAL and not ctx.vault_token:
            root_token = config.VAULT_DEV_ROOT_TOKEN

        if root_token:
            client.token = root_token
            bootstrap_server(client, organization=ctx.github_organization)
            return ctx.evolve(vault_token=root_token, root_token_available=True)
    return ctx


def authenticate(ctx: WizardContext, services: WizardServices) -> WizardContext:
    with services.client(ctx) as client:
        if ctx.vault_token and client.is_token_valid():
            log_success(logger, "Already authenticated with Vault")
            return ctx

        if not ctx.github_token:
            raise VaultAuthenticationError(
                "No valid Vault token and no GitHub token to log in with"
            )
        token = client.login_github(ctx.github_token)
    log_success(logger, "Successfully authenticated with Vault")
    return ctx.evolve(vault_token=token)


def template_init(ctx: WizardContext, services: WizardServices) -> WizardContext:
    chosen = ctx.init_template
    if chosen is None:
        # Seeding placeholders is opt-in when nobody is there to answer
        chosen = False if ctx.non_interactive else services.prompter.confirm(
            "Initialize Vault from the team template (seed secrets)?",
            default=False,
        )
    if not chosen:
        logger.info("Template initialization skipped")
        return ctx.evolve(init_template=False)

    seeds = load_seed_secrets(ctx.seed_file)
    if not seeds:
        logger.warning("No secrets found in seed file (or only metadata fields)")
        return ctx.evolve(init_template=True)

    with services.client(ctx) as client:
        result = init_from_template(client, seeds)
    if not result.success:
        raise WizardStepError(
            "template_init",
            f"Failed to load {len(result.failed)} seed secrets",
            details={"failed": result.failed},
        )
    return ctx.evolve(init_template=True)


def migrate_secrets(ctx: WizardContext, services: WizardServices) -> WizardContext:
    env_file = Path(ctx.env_file)
    if not env_file.is_file():
        logger.warning(".env file not found - no secrets to migrate")
        return ctx

    if not services.prompter.confirm("Ready to migrate secrets from .env to Vault?", default=True):
        logger.info("Secret migration skipped")
        logger.info("You can run it later with: vault-migrate-secrets")
        return ctx

    with services.client(ctx) as client:
        migrator = EnvSecretMigrator(client, services.classifier(), mount_point=ctx.mount_point)
        report = migrator.migrate(env_file, ctx.vault_path)
    log_success(logger, "Secrets migrated successfully! (%d moved)", report.secrets_migrated)
    if report.backup_path:
        logger.info("Backup created: %s", report.backup_path)
    return ctx.evolve(migrated=True)


def final_verification(ctx: WizardContext, services: WizardServices) -> WizardContext:
    """Residual secrets fail the wizard; Vault-side problems only warn."""
    with services.client(ctx) as client:
        try:
            health = client.get_health()
        except VaultConnectionError as e:
            logger.warning("Vault is not accessible: %s", e)
        else:
            if health.is_operational:
                log_success(logger, "Vault is accessible")
            else:
                logger.warning("Vault is %s", health.status.value)

        if not Path(ctx.env_file).is_file():
            logger.info("No .env file found at %s (expected after migration)", ctx.env_file)
            return ctx.evolve(verified=True)
        report = SecretValidator(services.classifier(), client).validate(ctx.env_file, ctx.vault_path)

    if not report.success:
        raise WizardStepError(
            "final_verification",
            f"{len(report.residual_secrets)} secrets still remain in {ctx.env_file}",
            details={"keys": report.residual_keys},
        )
    log_success(logger, "Vault setup verification passed!")
    return ctx.evolve(verified=True)


def completion(ctx: WizardContext, services: WizardServices) -> WizardContext:
    log_success(logger, "Vault Setup Complete!")
    logger.info("Vault address: %s", ctx.vault_addr)
    logger.info("Vault mode: %s", ctx.vault_mode.value if ctx.vault_mode else "unknown")
    logger.info("Auto-unseal: %s", "enabled" if ctx.auto_unseal else "disabled")
    logger.info("Secrets migrated: %s", "yes" if ctx.migrated else "no")
    logger.info("Next steps:")
    logger.info("  - export VAULT_ADDR=%s", ctx.vault_addr)
    logger.info("  - load secrets into your shell with: vault-fetch-secrets")
    logger.info("  - check the .env file with: vault-validate-no-secrets")
    if ctx.vault_mode is VaultMode.PERSISTENT and not ctx.auto_unseal:
        logger.info("  - after a restart unseal with: vault-auto-unseal")
    return ctx
