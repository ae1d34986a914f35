"""Tests for the individual wizard steps."""

import json
from unittest.mock import MagicMock, patch

import pytest
from requests.exceptions import ConnectionError

from vault_onboarding.migration.patterns import BuiltinPatternProvider
from vault_onboarding.retry import RetryConfiguration, RetryExhaustedException
from vault_onboarding.vault.exceptions import VaultAuthenticationError, VaultConnectionError
from vault_onboarding.vault.models import (
    ModeConfig,
    SealStatus,
    UnsealKeys,
    VaultHealth,
    VaultHealthStatus,
    VaultMode,
)
from vault_onboarding.wizard import steps
from vault_onboarding.wizard.context import WizardContext
from vault_onboarding.wizard.exceptions import WizardCancelled, WizardStepError
from vault_onboarding.wizard.steps import WizardServices

ACTIVE = VaultHealth(status=VaultHealthStatus.ACTIVE, initialized=True, sealed=False)
SEALED = VaultHealth(status=VaultHealthStatus.SEALED, initialized=True, sealed=True)
UNINITIALIZED = VaultHealth(status=VaultHealthStatus.UNINITIALIZED, initialized=False, sealed=True)


@pytest.fixture
def client():
    client = MagicMock()
    client.__enter__.return_value = client
    client.get_health.return_value = ACTIVE
    return client


@pytest.fixture
def services(client):
    return WizardServices(
        prompter=MagicMock(),
        pattern_provider=BuiltinPatternProvider(),
        compose=MagicMock(),
        github=MagicMock(),
        client_factory=lambda ctx: client,
        readiness=RetryConfiguration.fixed_interval(2, 0.01, (VaultConnectionError,)),
    )


@pytest.fixture
def ctx(tmp_path):
    return WizardContext(
        vault_addr="http://localhost:8200",
        vault_token=None,
        github_token=None,
        github_organization=None,
        env_file=str(tmp_path / ".env"),
        vault_path="dev",
        mount_point="secret",
        mode_conf=str(tmp_path / "data" / "vault-mode.conf"),
        unseal_keys_file=str(tmp_path / "data" / "vault-unseal-keys.json"),
        seed_file=str(tmp_path / "seed-secrets.json"),
        service_name="vault-dev",
    )


class TestModeSteps:
    """Test mode selection and the auto-unseal choice."""

    def test_mode_prompt(self, ctx, services):
        """Test the mode is asked for when not preset."""
        services.prompter.choose.return_value = "e"
        assert steps.mode_selection(ctx, services).vault_mode is VaultMode.EPHEMERAL

    def test_mode_preset_skips_prompt(self, ctx, services):
        """Test a preset mode is not asked for."""
        result = steps.mode_selection(ctx.evolve(vault_mode=VaultMode.PERSISTENT), services)
        assert result.vault_mode is VaultMode.PERSISTENT
        services.prompter.choose.assert_not_called()

    def test_ephemeral_disables_auto_unseal(self, ctx, services, tmp_path):
        """Test ephemeral mode never asks about auto-unseal."""
        result = steps.auto_unseal_choice(ctx.evolve(vault_mode=VaultMode.EPHEMERAL, auto_unseal=True), services)

        assert result.auto_unseal is False
        services.prompter.confirm.assert_not_called()
        saved = ModeConfig.from_conf((tmp_path / "data" / "vault-mode.conf").read_text())
        assert saved.vault_mode is VaultMode.EPHEMERAL

    def test_persistent_asks_for_auto_unseal(self, ctx, services, tmp_path):
        """Test persistent mode asks about auto-unseal."""
        (tmp_path / ".env").write_text("PORT=1\n")
        services.prompter.confirm.return_value = True

        result = steps.auto_unseal_choice(ctx.evolve(vault_mode=VaultMode.PERSISTENT), services)

        assert result.auto_unseal is True
        assert "VAULT_COMMAND=server -config=" in (tmp_path / ".env").read_text()


class TestWelcomeAndPrerequisites:
    """Test the welcome and prerequisite checks."""

    def test_decline_cancels(self, ctx, services):
        """Test declining the welcome cancels the wizard."""
        services.prompter.confirm.return_value = False
        with pytest.raises(WizardCancelled):
            steps.welcome(ctx, services)

    @patch("vault_onboarding.wizard.steps.command_exists", return_value=False)
    def test_missing_compose_fails(self, mock_exists, ctx, services):
        """Test missing Docker Compose fails the step."""
        services.compose.is_available.return_value = False
        services.github.is_available.return_value = True

        with pytest.raises(WizardStepError) as exc_info:
            steps.prerequisites(ctx, services)
        assert exc_info.value.step == "prerequisites"

    @patch("vault_onboarding.wizard.steps.command_exists", return_value=False)
    def test_missing_gh_only_warns(self, mock_exists, ctx, services):
        """Test a missing GitHub CLI only warns."""
        services.compose.is_available.return_value = True
        services.github.is_available.return_value = False
        assert steps.prerequisites(ctx, services) is ctx


class TestConfigureAddress:
    """Test the Vault address step."""

    def test_normalizes_address(self, ctx, services):
        """Test the address is normalized."""
        services.prompter.ask.return_value = "http://vault:8200/"
        assert steps.configure_address(ctx, services).vault_addr == "http://vault:8200"

    def test_invalid_address(self, ctx, services):
        """Test an address without a scheme fails the step."""
        services.prompter.ask.return_value = "vault:8200"
        with pytest.raises(WizardStepError):
            steps.configure_address(ctx, services)


class TestGithubAuth:
    """Test obtaining a GitHub token."""

    def test_keeps_existing_token(self, ctx, services):
        """Test an existing token is kept."""
        services.prompter.confirm.return_value = True
        result = steps.github_auth(ctx.evolve(github_token="ghp_old"), services)
        assert result.github_token == "ghp_old"

    def test_token_from_cli(self, ctx, services):
        """Test the token is taken from an authenticated GitHub CLI."""
        services.prompter.confirm.return_value = True
        services.github.is_available.return_value = True
        services.github.is_authenticated.return_value = True
        services.github.auth_token.return_value = "gho_cli"

        assert steps.github_auth(ctx, services).github_token == "gho_cli"

    def test_manual_entry_is_secret(self, ctx, services):
        """Test a manually entered token is read as a secret."""
        services.github.is_available.return_value = False
        services.prompter.ask.return_value = "ghp_manual"

        result = steps.github_auth(ctx, services)

        assert result.github_token == "ghp_manual"
        assert services.prompter.ask.call_args.kwargs["secret"] is True


class TestStartService:
    """Test starting the Vault service."""

    def test_starts_when_not_running(self, ctx, services, client):
        """Test the service is started when it is not running."""
        services.compose.is_running.return_value = False

        steps.start_service(ctx, services)

        services.compose.up.assert_called_once_with("vault-dev")
        client.wait_until_ready.assert_called_once_with(services.readiness)

    def test_timeout(self, ctx, services, client):
        """Test a server that never answers fails the step."""
        services.compose.is_running.return_value = True
        client.wait_until_ready.side_effect = RetryExhaustedException(
            "exhausted", 2, VaultConnectionError()
        )

        with pytest.raises(WizardStepError) as exc_info:
            steps.start_service(ctx, services)

        assert "failed to start" in str(exc_info.value)
        services.compose.up.assert_not_called()


@patch("vault_onboarding.wizard.steps.bootstrap_server")
class TestInitialize:
    """Test initialization, unsealing and bootstrapping."""

    def test_fresh_server(self, mock_bootstrap, ctx, services, client, tmp_path):
        """Test a fresh server is initialized, unsealed and bootstrapped."""
        client.get_health.return_value = UNINITIALIZED
        client.initialize.return_value = UnsealKeys(keys_base64=["k1", "k2", "k3", "k4", "k5"], root_token="hvs.root")

        result = steps.initialize(ctx.evolve(vault_mode=VaultMode.PERSISTENT, auto_unseal=True), services)

        client.initialize.assert_called_once_with(shares=5, threshold=3)
        client.unseal.assert_called_once_with(["k1", "k2", "k3"])
        saved = json.loads((tmp_path / "data" / "vault-unseal-keys.json").read_text())
        assert saved["root_token"] == "hvs.root"
        assert client.token == "hvs.root"
        mock_bootstrap.assert_called_once_with(client, organization=None)
        assert result.vault_token == "hvs.root"
        assert result.root_token_available is True

    def test_sealed_without_auto_unseal(self, mock_bootstrap, ctx, services, client):
        """Test a sealed server without auto-unseal fails the step."""
        client.get_health.return_value = SEALED

        with pytest.raises(WizardStepError):
            steps.initialize(ctx.evolve(vault_mode=VaultMode.PERSISTENT, auto_unseal=False), services)
        mock_bootstrap.assert_not_called()

    @patch("vault_onboarding.wizard.steps.auto_unseal")
    def test_sealed_with_auto_unseal(self, mock_unseal, mock_bootstrap, ctx, services, client):
        """Test a sealed server is unsealed with stored keys."""
        client.get_health.return_value = SEALED
        mock_unseal.return_value = SealStatus(sealed=False)
        run_ctx = ctx.evolve(vault_mode=VaultMode.PERSISTENT, auto_unseal=True, vault_token="hvs.user")

        result = steps.initialize(run_ctx, services)

        mock_unseal.assert_called_once_with(client, run_ctx.unseal_keys_file)
        assert result.root_token_available is False

    def test_ephemeral_uses_dev_root_token(self, mock_bootstrap, ctx, services, client):
        """Test ephemeral mode bootstraps with the dev root token."""
        result = steps.initialize(ctx.evolve(vault_mode=VaultMode.EPHEMERAL), services)

        assert result.vault_token == "root"
        mock_bootstrap.assert_called_once()


class TestAuthenticate:
    """Test authenticating with Vault."""

    def test_valid_token_kept(self, ctx, services, client):
        """Test a valid Vault token is kept."""
        client.is_token_valid.return_value = True
        result = steps.authenticate(ctx.evolve(vault_token="hvs.ok"), services)
        assert result.vault_token == "hvs.ok"
        client.login_github.assert_not_called()

    def test_github_login(self, ctx, services, client):
        """Test a GitHub login provides the Vault token."""
        client.login_github.return_value = "hvs.gh"
        result = steps.authenticate(ctx.evolve(github_token="ghp_x"), services)
        assert result.vault_token == "hvs.gh"

    def test_no_credentials(self, ctx, services):
        """Test having no credentials raises VaultAuthenticationError."""
        with pytest.raises(VaultAuthenticationError):
            steps.authenticate(ctx, services)


class TestTemplateInit:
    """Test template initialization."""

    def test_skipped_when_non_interactive(self, ctx, services):
        """Test the template is skipped in non-interactive mode unless requested."""
        result = steps.template_init(ctx.evolve(non_interactive=True), services)
        assert result.init_template is False
        services.prompter.confirm.assert_not_called()

    def test_loads_seeds(self, ctx, services, client, tmp_path):
        """Test seed secrets are loaded when requested."""
        (tmp_path / "seed-secrets.json").write_text(json.dumps({"secret/dev/API_KEY": {"value": "x"}}))

        result = steps.template_init(ctx.evolve(init_template=True), services)

        assert result.init_template is True
        client.write_secret.assert_called_once_with("secret/dev", "API_KEY", "x")


class TestMigrateAndVerify:
    """Migration and verification against the in-memory store."""

    def test_migrates_env_file(self, ctx, services, fake_store, tmp_path):
        """Test the env file secrets are migrated."""
        (tmp_path / ".env").write_text("API_KEY=sk_live_abc123\nPORT=3000\n")
        services.client_factory = lambda c: fake_store
        services.prompter.confirm.return_value = True

        result = steps.migrate_secrets(ctx, services)

        assert result.migrated is True
        assert fake_store.secrets == {("dev", "API_KEY"): {"value": "sk_live_abc123"}}

    def test_missing_env_file_skips(self, ctx, services):
        """Test a missing env file skips the migration."""
        assert steps.migrate_secrets(ctx, services).migrated is False
        services.prompter.confirm.assert_not_called()

    def test_declined_migration(self, ctx, services, tmp_path):
        """Test declining leaves the env file alone."""
        (tmp_path / ".env").write_text("API_KEY=sk_live_abc123\n")
        services.prompter.confirm.return_value = False
        assert steps.migrate_secrets(ctx, services).migrated is False

    def test_verification_fails_on_residual_secret(self, ctx, services, client, tmp_path):
        """Test a remaining secret fails verification."""
        (tmp_path / ".env").write_text("PORT=1\nAPI_KEY=sk_live_abc123\n")
        client.list_secrets.return_value = []

        with pytest.raises(WizardStepError) as exc_info:
            steps.final_verification(ctx, services)

        assert exc_info.value.details["keys"] == ["API_KEY"]

    def test_verification_unreachable_vault_only_warns(self, ctx, services, client, tmp_path):
        """Test an unreachable Vault only warns during verification."""
        (tmp_path / ".env").write_text("PORT=1\n")
        client.get_health.side_effect = VaultConnectionError()
        client.list_secrets.return_value = ["API_KEY"]

        assert steps.final_verification(ctx, services).verified is True

    def test_verification_without_env_file(self, ctx, services):
        """Test verification passes without an env file."""
        assert steps.final_verification(ctx, services).verified is True
