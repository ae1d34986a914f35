from setuptools import find_packages, setup

setup(
    name="vault_onboarding",
    version="0.1.0",
    packages=find_packages(exclude=["vault_onboarding_tests", "vault_onboarding_tests.*"]),
    package_data={"vault_onboarding": ["data/*/*.json"]},
    python_requires=">=3.9",
    install_requires=[
        "hvac",
        "pydantic>=2",
        "python-dotenv",
        "requests",
        "tenacity>=8",
    ],
    extras_require={"dev": ["pytest"]},
    entry_points={
        "console_scripts": [
            "vault-migrate-secrets=vault_onboarding.migration.migrate:main",
            "vault-validate-no-secrets=vault_onboarding.migration.validate:main",
            "vault-fetch-secrets=vault_onboarding.vault.fetch:main",
            "vault-setup-wizard=vault_onboarding.wizard.cli:main",
            "vault-mode=vault_onboarding.vault.mode:main",
            "vault-auto-unseal=vault_onboarding.vault.unseal:main",
            "vault-init-from-template=vault_onboarding.vault.template:main",
        ]
    },
)
