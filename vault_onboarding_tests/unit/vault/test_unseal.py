"""Tests for unseal key storage and auto-unseal."""

import json
import os
import stat
from unittest.mock import MagicMock

import pytest

from vault_onboarding.vault.exceptions import VaultValidationError
from vault_onboarding.vault.models import SealStatus, UnsealKeys
from vault_onboarding.vault.unseal import auto_unseal, load_unseal_keys, save_unseal_keys

KEYS = UnsealKeys(keys_base64=["k1", "k2", "k3", "k4", "k5"], root_token="hvs.root")


@pytest.fixture
def keys_file(tmp_path):
    return save_unseal_keys(KEYS, tmp_path / "data" / "vault-unseal-keys.json")


@pytest.fixture
def sealed_client():
    client = MagicMock()
    client.seal_status.return_value = SealStatus(sealed=True, threshold=3, shares=5)
    client.unseal.return_value = SealStatus(sealed=False, threshold=3, shares=5)
    return client


class TestKeyStorage:
    """Test saving and loading the unseal keys file."""

    def test_saved_with_owner_only_permissions(self, keys_file):
        """Test the keys file is created with mode 600."""
        assert stat.S_IMODE(os.stat(keys_file).st_mode) == 0o600
        assert json.loads(keys_file.read_text())["root_token"] == "hvs.root"

    def test_overwrite_resets_permissions(self, keys_file):
        """Test overwriting narrows a loose mode back to 600."""
        os.chmod(keys_file, 0o644)
        save_unseal_keys(KEYS, keys_file)
        assert stat.S_IMODE(os.stat(keys_file).st_mode) == 0o600

    def test_load(self, keys_file):
        """Test saved keys load back unchanged."""
        assert load_unseal_keys(keys_file) == KEYS

    def test_load_missing(self, tmp_path):
        """Test a missing keys file raises VaultValidationError."""
        with pytest.raises(VaultValidationError):
            load_unseal_keys(tmp_path / "none.json")

    def test_load_corrupted(self, tmp_path):
        """Test a corrupted keys file raises VaultValidationError."""
        path = tmp_path / "keys.json"
        path.write_text("{broken")
        with pytest.raises(VaultValidationError):
            load_unseal_keys(path)

    def test_insecure_permissions_warn(self, keys_file, caplog):
        """Test loading a group-readable keys file warns."""
        os.chmod(keys_file, 0o644)
        load_unseal_keys(keys_file)
        assert "insecure permissions" in caplog.text


class TestAutoUnseal:
    """Test auto_unseal against a mocked client."""

    def test_submits_first_three_keys(self, sealed_client, keys_file):
        """Test only the threshold number of keys is submitted."""
        status = auto_unseal(sealed_client, keys_file)

        assert status.sealed is False
        sealed_client.unseal.assert_called_once_with(["k1", "k2", "k3"])

    def test_already_unsealed(self, sealed_client, keys_file):
        """Test an unsealed server is left alone."""
        sealed_client.seal_status.return_value = SealStatus(sealed=False)

        auto_unseal(sealed_client, keys_file)

        sealed_client.unseal.assert_not_called()

    def test_already_unsealed_needs_no_keys_file(self, sealed_client, tmp_path):
        """Test no keys file is needed when already unsealed."""
        sealed_client.seal_status.return_value = SealStatus(sealed=False)
        auto_unseal(sealed_client, tmp_path / "missing.json")

    def test_insufficient_keys(self, sealed_client, tmp_path):
        """Test too few stored keys raises VaultValidationError."""
        path = save_unseal_keys(UnsealKeys(keys_base64=["k1", "k2"]), tmp_path / "keys.json")

        with pytest.raises(VaultValidationError) as exc_info:
            auto_unseal(sealed_client, path)

        assert "need 3, have 2" in str(exc_info.value)
        sealed_client.unseal.assert_not_called()

    def test_missing_keys_file(self, sealed_client, tmp_path):
        """Test a sealed server without a keys file raises VaultValidationError."""
        with pytest.raises(VaultValidationError):
            auto_unseal(sealed_client, tmp_path / "missing.json")
