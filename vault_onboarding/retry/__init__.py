"""Retry module for bounded polling with tenacity."""

from .config import RetryConfiguration
from .exceptions import RetryExhaustedException
from .tenacity_base import get_tenacity_decorator
from .decorators import (
    with_retry,
    call_with_retry,
    RetryPresets,
    VAULT_READINESS_EXCEPTIONS,
)

__all__ = [
    "RetryConfiguration",
    "RetryExhaustedException",
    "get_tenacity_decorator",
    "with_retry",
    "call_with_retry",
    "RetryPresets",
    "VAULT_READINESS_EXCEPTIONS",
]
