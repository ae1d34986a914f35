"""State carried through the setup wizard.

Each step receives a :class:`WizardContext` and returns an updated copy; the
context is never stored globally.
"""

import dataclasses
from dataclasses import dataclass
from typing import Optional

from vault_onboarding import config
from vault_onboarding.vault.models import VaultMode


@dataclass(frozen=True)
class WizardContext:
    """Values collected and produced by the wizard steps.

    Attributes:
        vault_addr: Vault server address
        vault_token: Vault session token, once known
        github_token: GitHub personal access token used for Vault login
        github_organization: Organization configured on the GitHub auth method
        vault_mode: Selected server mode (None until chosen)
        auto_unseal: Auto-unseal preference (None until chosen)
        init_template: Load template seed secrets (None until chosen)
        non_interactive: Prompts are answered from defaults
        current_step: Name of the step being run
        migrated: Secrets were migrated in this run
        verified: Final verification passed
    """

    vault_addr: str = config.VAULT_ADDR
    vault_token: Optional[str] = config.VAULT_TOKEN
    github_token: Optional[str] = config.GITHUB_TOKEN
    github_organization: Optional[str] = config.GITHUB_ORGANIZATION
    vault_mode: Optional[VaultMode] = None
    auto_unseal: Optional[bool] = None
    init_template: Optional[bool] = None
    non_interactive: bool = False
    current_step: str = ""
    migrated: bool = False
    verified: bool = False
    root_token_available: bool = False

    env_file: str = config.ENV_FILE
    vault_path: str = config.VAULT_SECRET_PATH
    mount_point: str = config.VAULT_SECRET_MOUNT
    mode_conf: str = config.VAULT_MODE_CONF
    unseal_keys_file: str = config.VAULT_UNSEAL_KEYS_FILE
    seed_file: str = config.VAULT_TEMPLATE_SEED_FILE
    service_name: str = config.VAULT_SERVICE_NAME

    def evolve(self, **changes) -> "WizardContext":
        return dataclasses.replace(self, **changes)
