"""Vault onboarding for local development environments.

Detects secret-like variables in a ``.env`` file, migrates them to HashiCorp
Vault, validates that none remain, and drives the end-to-end setup wizard.
"""

__version__ = "0.1.0"
