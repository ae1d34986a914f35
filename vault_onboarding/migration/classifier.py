"""Secret classification of ``KEY=VALUE`` entries."""

from vault_onboarding.migration.patterns import SecretPatterns


class SecretClassifier:
    """Decides whether an env entry holds a secret.

    The first matching rule wins:

    1. name matches an exclude pattern: not secret
    2. name matches a name pattern: secret
    3. value matches a value pattern: secret
    4. otherwise: not secret

    Matching is a case-sensitive search anywhere in the trimmed key or value.
    Entries with an empty key or an empty value are never secret.
    """

    def __init__(self, patterns: SecretPatterns):
        self.patterns = patterns

    def classify(self, key: str, value: str) -> bool:
        key = key.strip()
        value = value.strip()
        if not key or not value:
            return False
        if any(p.search(key) for p in self.patterns.exclude_variables):
            return False
        if any(p.search(key) for p in self.patterns.variable_name_patterns):
            return True
        if any(p.search(value) for p in self.patterns.variable_value_patterns):
            return True
        return False

    __call__ = classify
