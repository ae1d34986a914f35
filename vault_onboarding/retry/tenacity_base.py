"""Tenacity integration utilities for retry logic."""

import tenacity
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential_jitter,
    retry_if_exception_type,
)
from typing import Callable, Type, Optional, Tuple
import logging

from .config import RetryConfiguration

logger = logging.getLogger(__name__)


def get_wait_strategy(config: RetryConfiguration):
    """Create the wait strategy from configuration.

    Args:
        config: RetryConfiguration with wait parameters

    Returns:
        Configured wait_exponential_jitter strategy
    """
    return wait_exponential_jitter(
        initial=config.base_delay,
        max=config.max_delay,
        exp_base=config.exponential_base,
        jitter=config.jitter,
    )


def get_stop_strategy(config: RetryConfiguration):
    """Create stop strategy from configuration."""
    return stop_after_attempt(config.max_attempts)


def get_retry_strategy(
    config: Optional[RetryConfiguration],
    default_exceptions: Tuple[Type[Exception], ...] = (Exception,),
):
    """Create retry strategy from configuration.

    Args:
        config: RetryConfiguration with exception types
        default_exceptions: Default exception types to use if config is None

    Returns:
        Configured retry strategy (can handle multiple exception types)
    """
    exceptions = config.retry_on_exceptions if config else default_exceptions
    return retry_if_exception_type(tuple(exceptions))


def before_sleep_log(
    retry_state: tenacity.RetryCallState,
    logger: logging.Logger = logger,
) -> None:
    """Log before each retry attempt.

    Args:
        retry_state: Current retry state from tenacity
        logger: Logger instance to use
    """
    if retry_state.outcome is None:
        return

    exception = retry_state.outcome.exception()
    if exception:
        logger.debug(
            f"Retrying (attempt {retry_state.attempt_number}) "
            f"after exception: {type(exception).__name__}: {exception}"
        )


def get_tenacity_decorator(config: RetryConfiguration) -> Callable:
    """Create a complete tenacity decorator from configuration.

    Args:
        config: Complete RetryConfiguration

    Returns:
        Configured tenacity decorator
    """
    return retry(
        wait=get_wait_strategy(config),
        stop=get_stop_strategy(config),
        retry=get_retry_strategy(config),
        before_sleep=before_sleep_log,
    )
