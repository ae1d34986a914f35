"""Retry configuration settings."""

from dataclasses import dataclass
from typing import Tuple, Type


@dataclass
class RetryConfiguration:
    """Configuration for retry behavior.

    The wait between attempts is ``base_delay * exponential_base ** n`` plus up
    to ``jitter`` seconds, capped at ``max_delay``. An ``exponential_base`` of
    1.0 with zero jitter gives a fixed interval.

    Attributes:
        max_attempts: Maximum number of attempts (default: 3)
        base_delay: Base delay in seconds between attempts (default: 1.0)
        max_delay: Maximum delay cap in seconds (default: 60.0)
        exponential_base: Base for exponential backoff multiplier (default: 2.0)
        jitter: Random jitter added to delay in seconds (default: 0.1)
        retry_on_exceptions: Tuple of exception types to retry on (default: all)
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: float = 0.1
    retry_on_exceptions: Tuple[Type[Exception], ...] = (Exception,)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_delay <= 0:
            raise ValueError(f"base_delay must be > 0, got {self.base_delay}")
        if self.max_delay <= 0:
            raise ValueError(f"max_delay must be > 0, got {self.max_delay}")
        if self.max_delay < self.base_delay:
            raise ValueError(
                f"max_delay ({self.max_delay}) must be >= base_delay ({self.base_delay})"
            )
        if self.exponential_base < 1:
            raise ValueError(f"exponential_base must be >= 1, got {self.exponential_base}")
        if self.jitter < 0:
            raise ValueError(f"jitter must be >= 0, got {self.jitter}")

    @classmethod
    def fixed_interval(
        cls,
        max_attempts: int,
        interval: float,
        retry_on_exceptions: Tuple[Type[Exception], ...] = (Exception,),
    ) -> "RetryConfiguration":
        """Build a configuration that waits ``interval`` seconds between attempts."""
        return cls(
            max_attempts=max_attempts,
            base_delay=interval,
            max_delay=interval,
            exponential_base=1.0,
            jitter=0.0,
            retry_on_exceptions=retry_on_exceptions,
        )
