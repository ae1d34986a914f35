"""Pydantic models for HashiCorp Vault integration.

This module defines the data models used by the Vault client and the
onboarding tools: connection settings, server health, seal state, unseal
key material and the persisted Vault mode configuration.
"""

import shlex
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class VaultHealthStatus(str, Enum):
    """Vault health status values."""

    ACTIVE = "active"
    STANDBY = "standby"
    SEALED = "sealed"
    UNINITIALIZED = "uninitialized"
    UNREACHABLE = "unreachable"


class VaultMode(str, Enum):
    """Operating mode of the local Vault server."""

    PERSISTENT = "persistent"
    EPHEMERAL = "ephemeral"

    @property
    def server_command(self) -> str:
        """Vault server command line used by Docker Compose for this mode."""
        if self is VaultMode.PERSISTENT:
            return "server -config=/vault/config/vault-persistent.hcl"
        return "server -dev -dev-root-token-id=root -dev-listen-address=0.0.0.0:8200"


class VaultConnectionConfig(BaseModel):
    """Configuration for Vault client connections."""

    vault_addr: str = Field(
        ...,
        description="Vault server address (http://... or https://...)",
        examples=["http://localhost:8200"],
    )
    token: Optional[str] = Field(
        default=None,
        description="Vault session token",
    )
    mount_point: str = Field(
        default="secret",
        description="KV v2 secrets engine mount point",
    )
    timeout: int = Field(
        default=30,
        description="Request timeout in seconds",
        ge=1,
        le=300,
    )
    verify: bool = Field(
        default=True,
        description="Verify TLS certificates",
    )

    @field_validator("vault_addr")
    @classmethod
    def validate_vault_addr(cls, v: str) -> str:
        """Validate Vault address format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("vault_addr must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("mount_point")
    @classmethod
    def validate_mount_point(cls, v: str) -> str:
        v = v.strip("/")
        if not v:
            raise ValueError("mount_point cannot be empty")
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "vault_addr": "http://localhost:8200",
                "token": "hvs.example",
                "mount_point": "secret",
                "timeout": 30,
            }
        }
    )


class VaultHealth(BaseModel):
    """Vault server health status as reported by ``sys/health``."""

    status: VaultHealthStatus = Field(..., description="Current status")
    initialized: bool = Field(default=False)
    sealed: bool = Field(default=True)
    standby: bool = Field(default=False)
    version: str = Field(default="unknown", description="Vault version", examples=["1.15.0"])
    cluster_name: Optional[str] = Field(default=None)

    @property
    def is_operational(self) -> bool:
        return self.initialized and not self.sealed


class SealStatus(BaseModel):
    """Seal status as reported by ``sys/seal-status`` and ``sys/unseal``."""

    sealed: bool
    initialized: bool = True
    threshold: int = Field(default=0, alias="t")
    shares: int = Field(default=0, alias="n")
    progress: int = Field(default=0)

    model_config = ConfigDict(populate_by_name=True)


class UnsealKeys(BaseModel):
    """Key material returned by ``operator init`` and kept for auto-unseal."""

    keys_base64: list[str] = Field(default_factory=list)
    root_token: Optional[str] = Field(default=None)

    @field_validator("keys_base64")
    @classmethod
    def validate_keys(cls, v: list[str]) -> list[str]:
        return [key for key in v if key]


class ModeConfig(BaseModel):
    """Persisted Vault mode selection (``vault-mode.conf``)."""

    vault_mode: VaultMode = Field(default=VaultMode.EPHEMERAL)
    auto_unseal: bool = Field(default=False)
    vault_command: Optional[str] = Field(default=None)

    @classmethod
    def for_mode(cls, mode: VaultMode, auto_unseal: bool = False) -> "ModeConfig":
        # Auto-unseal only applies to a persistent server
        return cls(
            vault_mode=mode,
            auto_unseal=auto_unseal and mode is VaultMode.PERSISTENT,
            vault_command=mode.server_command,
        )

    def to_conf(self) -> str:
        """Render as shell-sourceable ``KEY="value"`` lines."""
        lines = [
            f'VAULT_MODE="{self.vault_mode.value}"',
            f'AUTO_UNSEAL="{str(self.auto_unseal).lower()}"',
            f'VAULT_COMMAND="{self.vault_command or self.vault_mode.server_command}"',
        ]
        return "\n".join(lines) + "\n"

    @classmethod
    def from_conf(cls, text: str) -> "ModeConfig":
        """Parse the ``KEY="value"`` lines written by :meth:`to_conf`."""
        values: dict[str, str] = {}
        for line in text.splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, raw = line.split("=", 1)
            parts = shlex.split(raw) if raw.strip() else [""]
            values[key.strip()] = parts[0] if len(parts) == 1 else " ".join(parts)

        mode_value = values.get("VAULT_MODE", VaultMode.EPHEMERAL.value)
        try:
            mode = VaultMode(mode_value)
        except ValueError:
            mode = VaultMode.EPHEMERAL
        return cls(
            vault_mode=mode,
            auto_unseal=values.get("AUTO_UNSEAL", "false").lower() == "true",
            vault_command=values.get("VAULT_COMMAND") or None,
        )


class PolicyRule(BaseModel):
    """Single policy rule defining access to a path."""

    path: str = Field(
        ...,
        description="Secret path pattern (supports wildcards)",
        examples=["secret/data/dev/*"],
    )
    capabilities: list[str] = Field(
        ...,
        description="Allowed capabilities: create, read, update, delete, list, patch, sudo",
        examples=[["read", "list"]],
    )

    @field_validator("capabilities")
    @classmethod
    def validate_capabilities(cls, v: list[str]) -> list[str]:
        """Validate capability values."""
        valid = {"create", "read", "update", "delete", "list", "patch", "sudo"}
        for cap in v:
            if cap not in valid:
                raise ValueError(f"Invalid capability: {cap}. Must be one of {valid}")
        return v

    def to_hcl(self) -> str:
        caps = ", ".join(f'"{cap}"' for cap in self.capabilities)
        return f'path "{self.path}" {{\n  capabilities = [{caps}]\n}}\n'


class AccessPolicy(BaseModel):
    """Named ACL policy made of path rules."""

    name: str = Field(
        ...,
        description="Policy name",
        examples=["dev-policy"],
        pattern=r"^[a-zA-Z0-9_-]+$",
    )
    rules: list[PolicyRule] = Field(default_factory=list)
    description: Optional[str] = Field(default=None)

    def to_hcl(self) -> str:
        """Render the policy in HCL.

        Example:
            >>> AccessPolicy(name="p", rules=[PolicyRule(path="secret/data/dev/*", capabilities=["read"])]).to_hcl()
            'path "secret/data/dev/*" {\\n  capabilities = ["read"]\\n}\\n'
        """
        lines: list[str] = []
        if self.description:
            lines.append(f"# {self.description}\n")
        lines.extend(rule.to_hcl() for rule in self.rules)
        return "\n".join(lines)
