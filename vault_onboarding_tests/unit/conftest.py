"""Shared fixtures for the unit tests."""

from typing import Optional

import pytest

from vault_onboarding.migration.classifier import SecretClassifier
from vault_onboarding.migration.patterns import BuiltinPatternProvider
from vault_onboarding.vault.client import SecretStoreClient
from vault_onboarding.vault.exceptions import (
    SecretStoreReadError,
    SecretStoreWriteError,
    VaultAuthenticationError,
)


class FakeSecretStore(SecretStoreClient):
    """Dict-backed secret store keyed by ``(base_path, key)``."""

    def __init__(self, fail_on: Optional[set] = None, list_error: Optional[Exception] = None):
        self.secrets: dict[tuple[str, str], dict] = {}
        self.fail_on = fail_on or set()
        self.list_error = list_error
        self.writes: list[str] = []
        self.deleted: list[str] = []

    def check_connection(self) -> None:
        return None

    def write_secret(self, base_path: str, key: str, value: str) -> None:
        if key in self.fail_on:
            raise SecretStoreWriteError(key)
        self.writes.append(key)
        self.secrets[(base_path, key)] = {"value": value}

    def read_secret(self, base_path: str, key: str) -> str:
        try:
            return self.secrets[(base_path, key)]["value"]
        except KeyError:
            raise SecretStoreReadError(key) from None

    def list_secrets(self, base_path: str) -> list[str]:
        if self.list_error is not None:
            raise self.list_error
        return [key for (path, key) in self.secrets if path == base_path]

    def delete_secret(self, base_path: str, key: str) -> None:
        self.deleted.append(key)
        self.secrets.pop((base_path, key), None)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        return None


@pytest.fixture
def fake_store():
    return FakeSecretStore()


@pytest.fixture
def failing_store():
    """Store whose writes of ``DB_PASSWORD`` fail."""
    return FakeSecretStore(fail_on={"DB_PASSWORD"})


@pytest.fixture
def unauthorized_store():
    """Store that refuses to list secrets."""
    return FakeSecretStore(list_error=VaultAuthenticationError("permission denied"))


@pytest.fixture
def builtin_patterns():
    return BuiltinPatternProvider().load()


@pytest.fixture
def classifier(builtin_patterns):
    return SecretClassifier(builtin_patterns)


@pytest.fixture
def env_file(tmp_path):
    """Write an env file under ``tmp_path`` from a string."""
    def _write(content: str, name: str = ".env"):
        path = tmp_path / name
        path.write_text(content)
        return path
    return _write
