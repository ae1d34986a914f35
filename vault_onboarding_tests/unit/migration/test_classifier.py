"""Tests for secret classification."""

import pytest

from vault_onboarding.migration.classifier import SecretClassifier
from vault_onboarding.migration.patterns import SecretPatterns

HEX_64 = "0x" + "ab12" * 16


class TestSecretClassifier:
    """Test classification against the built-in patterns."""

    @pytest.mark.parametrize("key", ["API_KEY", "DB_PASSWORD", "GITHUB_TOKEN", "CLIENT_SECRET", "KEY", "PRIVATE_KEY"])
    def test_secret_names(self, classifier, key):
        """Test names matching a name pattern are secrets."""
        assert classifier.classify(key, "anything") is True

    @pytest.mark.parametrize("value", ["sk_live_abc123", "ghp_abcdef", "xoxb-123-456", HEX_64])
    def test_secret_values_with_innocuous_name(self, classifier, value):
        """Test values that look like keys are secrets whatever the name."""
        assert classifier.classify("SOME_SETTING", value) is True

    def test_hex_private_key_value(self, classifier):
        """0x followed by 64 hex characters is secret whatever the name."""
        assert classifier.classify("DEPLOYER", HEX_64) is True

    def test_short_hex_is_not_secret(self, classifier):
        """Test hex strings shorter than 64 characters are not flagged."""
        assert classifier.classify("CHAIN_ID", "0x1") is False

    def test_workspace_name_never_secret(self, classifier):
        """Exclusions win even when the value matches a value pattern."""
        assert classifier.classify("WORKSPACE_NAME", "sk_live_abc123") is False
        assert classifier.classify("WORKSPACE_NAME", HEX_64) is False

    def test_non_secret(self, classifier):
        """Test ordinary configuration is not flagged."""
        assert classifier.classify("PORT", "3000") is False
        assert classifier.classify("NODE_ENV", "development") is False

    def test_keyboard_layout_is_not_a_key(self, classifier):
        """_KEY$ is anchored; KEYBOARD_LAYOUT does not match."""
        assert classifier.classify("KEYBOARD_LAYOUT", "us") is False

    def test_empty_value_is_not_secret(self, classifier):
        """Test an empty value is never a secret."""
        assert classifier.classify("API_KEY", "") is False

    def test_empty_key_is_not_secret(self, classifier):
        """Test an empty key is never a secret."""
        assert classifier.classify("", "sk_live_abc123") is False

    def test_whitespace_is_trimmed(self, classifier):
        """Test surrounding whitespace is ignored when matching."""
        assert classifier.classify("  API_KEY ", " sk_x ") is True

    def test_case_sensitive(self):
        """Test name patterns match case-sensitively."""
        classifier = SecretClassifier(SecretPatterns.from_strings(variable_name_patterns=["SECRET"]))
        assert classifier.classify("my_secret", "x") is False
        assert classifier.classify("MY_SECRET", "x") is True

    def test_unanchored_search(self):
        """Test patterns match anywhere in the value."""
        classifier = SecretClassifier(SecretPatterns.from_strings(variable_value_patterns=["live"]))
        assert classifier.classify("X", "sk_live_1") is True

    def test_empty_pattern_set(self):
        """Test nothing is a secret without patterns."""
        classifier = SecretClassifier(SecretPatterns())
        assert classifier.classify("API_KEY", "sk_live") is False
