"""Retry decorator utilities."""

from functools import wraps
from typing import Callable, Type, Optional, Tuple, Any
import logging

import tenacity

from requests.exceptions import ConnectionError, Timeout

from vault_onboarding import config as settings
from vault_onboarding.vault.exceptions import VaultConnectionError

from .config import RetryConfiguration
from .tenacity_base import get_tenacity_decorator
from .exceptions import RetryExhaustedException

logger = logging.getLogger(__name__)


# Errors that mean "the server is not answering yet"
VAULT_READINESS_EXCEPTIONS = (
    VaultConnectionError,
    ConnectionError,
    Timeout,
)


def with_retry(
    config: Optional[RetryConfiguration] = None,
    exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    max_attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    max_delay: Optional[float] = None,
    exponential_base: Optional[float] = None,
    jitter: Optional[float] = None,
) -> Callable:
    """Decorator to add retry logic to a function.

    Can be used with explicit configuration or individual parameters. When
    every attempt fails, :class:`RetryExhaustedException` is raised with the
    last underlying exception attached.

    Examples:
        @with_retry(max_attempts=5, base_delay=0.5)
        def unreliable_function():
            ...

        @with_retry(RetryPresets.VAULT_READINESS)
        def check_vault_health():
            ...
    """
    def decorator(func: Callable) -> Callable:
        if config is not None:
            effective_config = config
        else:
            effective_config = RetryConfiguration(
                max_attempts=max_attempts or 3,
                base_delay=base_delay or 1.0,
                max_delay=max_delay or 60.0,
                exponential_base=exponential_base or 2.0,
                jitter=jitter if jitter is not None else 0.1,
                retry_on_exceptions=exceptions or (Exception,),
            )

        tenacity_decorator = get_tenacity_decorator(effective_config)

        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            try:
                return tenacity_decorator(func)(*args, **kwargs)
            except tenacity.RetryError as e:
                last_exception = e.last_attempt.exception() if e.last_attempt else Exception("Unknown retry error")
                raise RetryExhaustedException(
                    message=f"All {effective_config.max_attempts} retry attempts exhausted",
                    attempts=effective_config.max_attempts,
                    last_exception=last_exception,
                ) from last_exception

        return wrapper
    return decorator


def call_with_retry(func: Callable, config: RetryConfiguration, *args, **kwargs) -> Any:
    """Call ``func`` under ``config`` without decorating it permanently."""
    return with_retry(config)(func)(*args, **kwargs)


class RetryPresets:
    """Pre-configured retry settings for common scenarios."""

    # Waiting for a freshly started server: fixed interval, bounded attempts
    VAULT_READINESS = RetryConfiguration.fixed_interval(
        max_attempts=settings.VAULT_READY_ATTEMPTS,
        interval=settings.VAULT_READY_INTERVAL,
        retry_on_exceptions=VAULT_READINESS_EXCEPTIONS,
    )
