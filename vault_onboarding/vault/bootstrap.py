"""First-time configuration of a Vault server for local development.

With a root token, :func:`bootstrap_server` mounts the KV v2 engine, enables
GitHub authentication, writes the dev/ci/read ACL policies, maps GitHub teams
to them and seeds a placeholder secret in each environment path. Every step
can be re-run.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from vault_onboarding.vault.client import VaultClient
from vault_onboarding.vault.exceptions import VaultError
from vault_onboarding.vault.models import AccessPolicy, PolicyRule

logger = logging.getLogger(__name__)

ENVIRONMENT_PATHS = ("dev", "test", "ci")

PLACEHOLDER_KEY = "placeholder"
PLACEHOLDER_VALUE = "This is a placeholder secret. Replace with actual secrets."

READ_WRITE = ["create", "read", "update", "delete", "list"]
READ_ONLY = ["read", "list"]


def _kv_rules(mount: str, env: str, capabilities: list[str]) -> list[PolicyRule]:
    # KV v2 serves data and metadata under separate prefixes
    return [
        PolicyRule(path=f"{mount}/data/{env}/*", capabilities=capabilities),
        PolicyRule(path=f"{mount}/metadata/{env}/*", capabilities=capabilities),
    ]


def default_policies(mount: str = "secret") -> list[AccessPolicy]:
    """Developer, CI and read-only policies over the environment paths."""
    return [
        AccessPolicy(
            name="dev-policy",
            description="Developers: read/write dev and test secrets",
            rules=_kv_rules(mount, "dev", READ_WRITE) + _kv_rules(mount, "test", READ_WRITE),
        ),
        AccessPolicy(
            name="ci-policy",
            description="CI: read/write ci secrets, read dev and test",
            rules=(
                _kv_rules(mount, "ci", READ_WRITE)
                + _kv_rules(mount, "dev", READ_ONLY)
                + _kv_rules(mount, "test", READ_ONLY)
            ),
        ),
        AccessPolicy(
            name="read-policy",
            description="Read-only access to all environment secrets",
            rules=[rule for env in ENVIRONMENT_PATHS for rule in _kv_rules(mount, env, READ_ONLY)],
        ),
    ]


# GitHub team slug -> policies granted on login
DEFAULT_TEAM_MAPPINGS = {
    "developers": ["dev-policy"],
    "ci-cd": ["ci-policy"],
}


@dataclass
class BootstrapResult:
    """Summary of what :func:`bootstrap_server` changed."""

    kv_mounted: bool = False
    github_auth_enabled: bool = False
    policies: list[str] = field(default_factory=list)
    team_mappings: list[str] = field(default_factory=list)
    placeholders: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _seed_placeholder(client: VaultClient, env: str, result: BootstrapResult) -> None:
    try:
        if client.list_secrets(env):
            return
        client.write_secret(env, PLACEHOLDER_KEY, PLACEHOLDER_VALUE)
    except VaultError as e:
        logger.warning("Could not create placeholder in %s: %s", env, e)
        result.warnings.append(f"placeholder {env}: {e}")
        return
    result.placeholders.append(env)


def bootstrap_server(
    client: VaultClient,
    organization: Optional[str] = None,
    team_mappings: Optional[dict[str, list[str]]] = None,
    seed_placeholders: bool = True,
) -> BootstrapResult:
    """Configure the KV engine, GitHub auth, policies and environment paths.

    Team mappings and placeholder secrets are best effort: a failure is
    logged as a warning and recorded in :attr:`BootstrapResult.warnings`.

    Args:
        client: Client holding a root (or sudo) token
        organization: GitHub organization allowed to log in
        team_mappings: Team slug to policy names (default: DEFAULT_TEAM_MAPPINGS)
        seed_placeholders: Write a placeholder secret under each environment path
            that is still empty

    Raises:
        VaultError: If mounting the engine, enabling GitHub auth or writing
            a policy fails
    """
    result = BootstrapResult()

    result.kv_mounted = client.ensure_kv_mount()

    result.github_auth_enabled = client.enable_github_auth(organization)
    if not organization:
        logger.warning("No GitHub organization configured; GitHub logins will be rejected until one is set")

    for policy in default_policies(client.config.mount_point):
        client.write_policy(policy.name, policy.to_hcl())
        result.policies.append(policy.name)
        logger.debug("Wrote policy %s", policy.name)

    if organization:
        for team, policies in (team_mappings or DEFAULT_TEAM_MAPPINGS).items():
            try:
                client.map_github_team(team, policies)
            except VaultError as e:
                logger.warning("Could not map GitHub team %s: %s", team, e)
                result.warnings.append(f"team {team}: {e}")
                continue
            result.team_mappings.append(team)

    if seed_placeholders:
        for env in ENVIRONMENT_PATHS:
            _seed_placeholder(client, env, result)

    logger.info(
        "Bootstrap complete: %d policies, %d team mappings, %d placeholder paths",
        len(result.policies),
        len(result.team_mappings),
        len(result.placeholders),
    )
    return result
