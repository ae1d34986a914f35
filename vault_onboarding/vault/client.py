"""Secret store client for HashiCorp Vault.

:class:`SecretStoreClient` is the narrow interface the migration pipeline and
the validator depend on. :class:`VaultClient` implements it over the Vault
HTTP API with hvac and adds the server-management calls the setup wizard
needs (health, seal status, unseal, init, GitHub auth, policies).
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

import hvac
import hvac.exceptions
from requests.exceptions import ConnectionError, Timeout

from vault_onboarding.retry import RetryConfiguration, RetryPresets, with_retry
from vault_onboarding.vault.exceptions import (
    SecretStoreReadError,
    SecretStoreWriteError,
    VaultAuthenticationError,
    VaultConnectionError,
    VaultError,
    VaultSealedError,
    VaultUninitializedError,
)
from vault_onboarding.vault.models import (
    SealStatus,
    UnsealKeys,
    VaultConnectionConfig,
    VaultHealth,
    VaultHealthStatus,
)

logger = logging.getLogger(__name__)

GITHUB_AUTH_MOUNT = "github"

API_ERRORS = (hvac.exceptions.VaultError, ConnectionError, Timeout)


class SecretStoreClient(ABC):
    """Minimal key/value secret store used by migration and validation."""

    @abstractmethod
    def check_connection(self) -> None:
        """Verify the store is reachable, usable and that credentials are valid.

        Raises:
            VaultConnectionError: If the store is unreachable
            VaultSealedError: If the store is sealed
            VaultUninitializedError: If the store is not initialized
            VaultAuthenticationError: If the token is missing or invalid
        """

    @abstractmethod
    def write_secret(self, base_path: str, key: str, value: str) -> None:
        """Store ``value`` under ``<base_path>/<key>`` as ``{"value": value}``.

        Raises:
            SecretStoreWriteError: If the write fails
        """

    @abstractmethod
    def read_secret(self, base_path: str, key: str) -> str:
        """Return the ``value`` stored under ``<base_path>/<key>``.

        Raises:
            SecretStoreReadError: If the secret is missing or cannot be read
        """

    @abstractmethod
    def list_secrets(self, base_path: str) -> list[str]:
        """List key names stored under ``base_path`` (empty when none)."""

    @abstractmethod
    def delete_secret(self, base_path: str, key: str) -> None:
        """Remove ``<base_path>/<key>`` and all its versions."""


class VaultClient(SecretStoreClient):
    """Vault client backed by hvac.

    Example:
        >>> config = VaultConnectionConfig(vault_addr="http://localhost:8200", token="root")
        >>> with VaultClient(config) as client:
        ...     client.check_connection()
        ...     client.write_secret("dev", "API_KEY", "sk_live_x")
    """

    def __init__(
        self,
        config: VaultConnectionConfig,
        client: Optional[hvac.Client] = None,
    ):
        """Initialize Vault client.

        Args:
            config: Connection configuration
            client: Pre-built hvac client (mainly for tests)
        """
        self.config = config
        self._client = client

    def _get_client(self) -> hvac.Client:
        """Get or create the underlying hvac client."""
        if self._client is None:
            self._client = hvac.Client(
                url=self.config.vault_addr,
                token=self.config.token,
                verify=self.config.verify,
                timeout=self.config.timeout,
            )
        return self._client

    @property
    def token(self) -> Optional[str]:
        return self._get_client().token

    @token.setter
    def token(self, value: Optional[str]) -> None:
        self._get_client().token = value
        self.config = self.config.model_copy(update={"token": value})

    def _relative_path(self, base_path: str) -> str:
        """Strip a leading ``<mount>/data/`` or ``<mount>/`` from ``base_path``."""
        path = base_path.strip("/")
        mount = self.config.mount_point
        for prefix in (f"{mount}/data/", f"{mount}/metadata/", f"{mount}/"):
            if path.startswith(prefix):
                return path[len(prefix):]
        return path

    def _secret_path(self, base_path: str, key: str) -> str:
        relative = self._relative_path(base_path)
        return f"{relative}/{key}" if relative else key

    # ------------------------------------------------------------------
    # Server state
    # ------------------------------------------------------------------

    def get_health(self) -> VaultHealth:
        """Get Vault server health status.

        Sealed, standby and uninitialized servers all answer with HTTP 200
        so the body can be read in every state.

        Raises:
            VaultConnectionError: If Vault is unreachable
        """
        try:
            status = self._get_client().sys.read_health_status(
                method="GET",
                standby_ok=True,
                sealed_code=200,
                uninit_code=200,
            )
        except (ConnectionError, Timeout, hvac.exceptions.VaultDown) as e:
            raise VaultConnectionError(
                f"Vault server is unreachable at {self.config.vault_addr}",
                details={"error": str(e)},
            ) from e

        if not isinstance(status, dict):
            raise VaultConnectionError(
                f"Unexpected health response from {self.config.vault_addr}"
            )

        initialized = status.get("initialized", False)
        sealed = status.get("sealed", True)
        standby = status.get("standby", False)
        if not initialized:
            vault_status = VaultHealthStatus.UNINITIALIZED
        elif sealed:
            vault_status = VaultHealthStatus.SEALED
        elif standby:
            vault_status = VaultHealthStatus.STANDBY
        else:
            vault_status = VaultHealthStatus.ACTIVE

        return VaultHealth(
            status=vault_status,
            initialized=initialized,
            sealed=sealed,
            standby=standby,
            version=status.get("version", "unknown"),
            cluster_name=status.get("cluster_name"),
        )

    def is_reachable(self) -> bool:
        try:
            self.get_health()
        except VaultConnectionError:
            return False
        return True

    def wait_until_ready(self, retry_config: Optional[RetryConfiguration] = None) -> VaultHealth:
        """Poll the health endpoint until the server answers.

        Args:
            retry_config: Polling policy (default: 30 attempts, 2 s apart)

        Returns:
            The first successful health reading

        Raises:
            RetryExhaustedException: If the server never answered
        """
        config = retry_config or RetryPresets.VAULT_READINESS
        logger.info(
            "Waiting for Vault at %s (up to %d attempts)",
            self.config.vault_addr,
            config.max_attempts,
        )
        return with_retry(config)(self.get_health)()

    def seal_status(self) -> SealStatus:
        try:
            response = self._get_client().sys.read_seal_status()
        except (ConnectionError, Timeout) as e:
            raise VaultConnectionError(details={"error": str(e)}) from e
        except hvac.exceptions.VaultError as e:
            raise VaultError(f"Failed to read seal status: {e}") from e
        return SealStatus.model_validate(response)

    def unseal(self, keys: Iterable[str]) -> SealStatus:
        """Submit unseal keys one at a time until the server unseals.

        Raises:
            VaultSealedError: If the server is still sealed after all keys
        """
        status = self.seal_status()
        if not status.sealed:
            logger.info("Vault is already unsealed")
            return status

        client = self._get_client()
        for index, key in enumerate(keys, start=1):
            try:
                response = client.sys.submit_unseal_key(key=key)
            except API_ERRORS as e:
                raise VaultError(f"Failed to submit unseal key {index}: {e}") from e
            status = SealStatus.model_validate(response)
            logger.debug("Submitted unseal key %d (progress %d/%d)", index, status.progress, status.threshold)
            if not status.sealed:
                return status

        raise VaultSealedError(
            "Vault is still sealed after submitting all available keys",
            details={"progress": status.progress, "threshold": status.threshold},
        )

    def initialize(self, shares: int = 5, threshold: int = 3) -> UnsealKeys:
        """Initialize a new Vault server and return its key material."""
        client = self._get_client()
        try:
            if client.sys.is_initialized():
                raise VaultError("Vault is already initialized")
            response = client.sys.initialize(secret_shares=shares, secret_threshold=threshold)
        except API_ERRORS as e:
            raise VaultError(f"Failed to initialize Vault: {e}") from e
        return UnsealKeys(
            keys_base64=response.get("keys_base64", []),
            root_token=response.get("root_token"),
        )

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def lookup_token(self) -> dict:
        """Return ``auth/token/lookup-self`` data for the current token.

        Raises:
            VaultAuthenticationError: If no token is set or it is rejected
        """
        client = self._get_client()
        if not client.token:
            raise VaultAuthenticationError("No Vault token configured")
        try:
            response = client.auth.token.lookup_self()
        except (hvac.exceptions.Forbidden, hvac.exceptions.Unauthorized) as e:
            raise VaultAuthenticationError("Vault token is invalid or expired") from e
        except (ConnectionError, Timeout) as e:
            raise VaultConnectionError(details={"error": str(e)}) from e
        except hvac.exceptions.VaultError as e:
            raise VaultError(f"Token lookup failed: {e}") from e
        return response.get("data", {})

    def is_token_valid(self) -> bool:
        try:
            self.lookup_token()
        except VaultAuthenticationError:
            return False
        return True

    def login_github(self, github_token: str) -> str:
        """Exchange a GitHub personal access token for a Vault token.

        Raises:
            VaultAuthenticationError: If the login is rejected
        """
        try:
            response = self._get_client().auth.github.login(
                token=github_token,
                mount_point=GITHUB_AUTH_MOUNT,
            )
        except (
            hvac.exceptions.Forbidden,
            hvac.exceptions.Unauthorized,
            hvac.exceptions.InvalidRequest,
            hvac.exceptions.InvalidPath,
        ) as e:
            raise VaultAuthenticationError(f"GitHub login failed: {e}") from e
        except API_ERRORS as e:
            raise VaultError(f"GitHub login failed: {e}") from e

        client_token = response.get("auth", {}).get("client_token")
        if not client_token:
            raise VaultAuthenticationError("GitHub login did not return a token")
        self.token = client_token
        logger.info("Authenticated to Vault with GitHub token")
        return client_token

    def enable_github_auth(self, organization: Optional[str] = None) -> bool:
        """Enable and configure the GitHub auth method if it is not enabled yet.

        Returns:
            True if the method was newly enabled
        """
        client = self._get_client()
        try:
            methods = client.sys.list_auth_methods()
            enabled = methods.get("data", methods)
            newly_enabled = f"{GITHUB_AUTH_MOUNT}/" not in enabled
            if newly_enabled:
                client.sys.enable_auth_method(method_type="github", path=GITHUB_AUTH_MOUNT)
                logger.info("Enabled GitHub auth method")
            else:
                logger.debug("GitHub auth method already enabled")

            if organization:
                client.auth.github.configure(organization=organization, mount_point=GITHUB_AUTH_MOUNT)
                logger.debug("Configured GitHub auth for organization %s", organization)
        except API_ERRORS as e:
            raise VaultError(f"Failed to configure GitHub auth: {e}") from e
        return newly_enabled

    def map_github_team(self, team: str, policies: list[str]) -> None:
        try:
            self._get_client().auth.github.map_team(
                team_name=team,
                policies=policies,
                mount_point=GITHUB_AUTH_MOUNT,
            )
        except API_ERRORS as e:
            raise VaultError(f"Failed to map GitHub team {team}: {e}") from e

    def ensure_kv_mount(self) -> bool:
        """Mount a KV version 2 engine at the configured mount point if missing.

        Dev-mode servers come with ``secret/`` mounted; a freshly initialized
        persistent server has no secrets engines at all.

        Returns:
            True if the engine was newly mounted
        """
        mount = self.config.mount_point
        client = self._get_client()
        try:
            mounts = client.sys.list_mounted_secrets_engines()
            mounted = mounts.get("data", mounts)
            if f"{mount}/" in mounted:
                logger.debug("Secrets engine already mounted at %s/", mount)
                return False
            client.sys.enable_secrets_engine(
                backend_type="kv",
                path=mount,
                options={"version": "2"},
            )
        except API_ERRORS as e:
            raise VaultError(f"Failed to mount KV secrets engine at {mount}/: {e}") from e
        logger.info("Enabled KV v2 secrets engine at %s/", mount)
        return True

    def write_policy(self, name: str, rules: str) -> None:
        try:
            self._get_client().sys.create_or_update_policy(name=name, policy=rules)
        except API_ERRORS as e:
            raise VaultError(f"Failed to write policy {name}: {e}") from e

    # ------------------------------------------------------------------
    # SecretStoreClient
    # ------------------------------------------------------------------

    def check_connection(self) -> None:
        health = self.get_health()
        if not health.initialized:
            raise VaultUninitializedError()
        if health.sealed:
            raise VaultSealedError()
        self.lookup_token()

    def write_secret(self, base_path: str, key: str, value: str) -> None:
        path = self._secret_path(base_path, key)
        try:
            self._get_client().secrets.kv.v2.create_or_update_secret(
                path=path,
                secret={"value": value},
                mount_point=self.config.mount_point,
            )
        except (hvac.exceptions.VaultError, ConnectionError, Timeout) as e:
            raise SecretStoreWriteError(
                key,
                details={"path": f"{self.config.mount_point}/data/{path}", "error": str(e)},
            ) from e
        logger.debug("Stored %s at %s/data/%s", key, self.config.mount_point, path)

    def read_secret(self, base_path: str, key: str) -> str:
        path = self._secret_path(base_path, key)
        try:
            response = self._get_client().secrets.kv.v2.read_secret_version(
                path=path,
                mount_point=self.config.mount_point,
                raise_on_deleted_version=True,
            )
        except (hvac.exceptions.VaultError, ConnectionError, Timeout) as e:
            raise SecretStoreReadError(
                key,
                details={"path": f"{self.config.mount_point}/data/{path}", "error": str(e)},
            ) from e

        data = response.get("data", {}).get("data", {})
        if "value" not in data:
            raise SecretStoreReadError(
                key,
                message=f"Secret {key} has no value field",
                details={"path": f"{self.config.mount_point}/data/{path}"},
            )
        return data["value"]

    def list_secrets(self, base_path: str) -> list[str]:
        path = self._relative_path(base_path)
        try:
            response = self._get_client().secrets.kv.v2.list_secrets(
                path=path,
                mount_point=self.config.mount_point,
            )
        except hvac.exceptions.InvalidPath:
            return []
        except (ConnectionError, Timeout) as e:
            raise VaultConnectionError(details={"error": str(e)}) from e
        except (hvac.exceptions.Forbidden, hvac.exceptions.Unauthorized) as e:
            raise VaultAuthenticationError(
                f"Not permitted to list {self.config.mount_point}/metadata/{path}"
            ) from e
        except hvac.exceptions.VaultError as e:
            raise VaultError(f"Failed to list secrets: {e}") from e
        return response.get("data", {}).get("keys", [])

    def delete_secret(self, base_path: str, key: str) -> None:
        path = self._secret_path(base_path, key)
        try:
            self._get_client().secrets.kv.v2.delete_metadata_and_all_versions(
                path=path,
                mount_point=self.config.mount_point,
            )
        except (hvac.exceptions.VaultError, ConnectionError, Timeout) as e:
            raise VaultError(f"Failed to delete secret: {key}", details={"error": str(e)}) from e

    def close(self) -> None:
        """Release the HTTP session. The token is left valid."""
        if self._client is not None:
            self._client.adapter.close()
            self._client = None

    def __enter__(self) -> "VaultClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
