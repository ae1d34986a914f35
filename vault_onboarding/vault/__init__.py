"""HashiCorp Vault integration: HTTP client, models, unseal, bootstrap and mode handling.

Submodules are imported directly (``from vault_onboarding.vault.client import
VaultClient``) so that the retry helpers can depend on the exception module
without import cycles.
"""
