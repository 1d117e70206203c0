"""Throttling backoff for blocking AWS SDK calls.

Every boto3 call made by the provisioner goes through :func:`call_with_backoff`.
The call runs in a worker thread; throttling-class ``ClientError``s are
retried with capped exponential backoff and full jitter. Anything else is
re-raised unchanged on the first failure.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from botocore.exceptions import ClientError

from .errors import RemoteUnavailable

logger = logging.getLogger(__name__)

T = TypeVar('T')

THROTTLING_ERROR_CODES = frozenset({
    'ThrottlingException',
    'Throttling',
    'TooManyRequestsException',
    'RequestLimitExceeded',
    'ProvisionedThroughputExceededException',
    'ConcurrentModificationException',
})

_DEFAULT_MAX_ATTEMPTS = 10
_DEFAULT_BASE_DELAY = 0.15  # seconds
_DEFAULT_MAX_DELAY = 20.0  # seconds


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Bounds for throttling retries."""

    max_attempts: int = _DEFAULT_MAX_ATTEMPTS
    base_delay: float = _DEFAULT_BASE_DELAY
    max_delay: float = _DEFAULT_MAX_DELAY

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError('max_attempts must be >= 1')
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError('delays must be >= 0')

    def delay_for(self, attempt: int) -> float:
        """Exponential backoff with full jitter."""
        delay = min(self.base_delay * (2 ** attempt), self.max_delay)
        return random.uniform(0, delay)


DEFAULT_RETRY_POLICY = RetryPolicy()


def is_throttling_error(exc: BaseException) -> bool:
    if not isinstance(exc, ClientError):
        return False
    error = exc.response.get('Error', {})
    if error.get('Code') in THROTTLING_ERROR_CODES:
        return True
    status = exc.response.get('ResponseMetadata', {}).get('HTTPStatusCode')
    return status == 429


async def call_with_backoff(
    operation: str,
    fn: Callable[..., T],
    /,
    *args: Any,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    **kwargs: Any,
) -> T:
    """Run ``fn(*args, **kwargs)`` off the event loop, retrying on throttling.

    Raises:
        RemoteUnavailable: If every attempt was throttled. The last
            throttling error is chained and kept on ``last_error``.
    """
    for attempt in range(policy.max_attempts):
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except ClientError as exc:
            if not is_throttling_error(exc):
                raise
            if attempt + 1 >= policy.max_attempts:
                logger.error(
                    '%s throttled on final attempt %d/%d',
                    operation,
                    attempt + 1,
                    policy.max_attempts,
                    extra={'operation': operation},
                )
                raise RemoteUnavailable(
                    operation,
                    attempts=attempt + 1,
                    last_error=exc,
                ) from exc

            delay = policy.delay_for(attempt)
            logger.warning(
                '%s throttled (attempt %d/%d), retrying in %.2fs',
                operation,
                attempt + 1,
                policy.max_attempts,
                delay,
                extra={'operation': operation},
            )
            await asyncio.sleep(delay)

    # max_attempts >= 1 guarantees the loop either returns or raises.
    raise RemoteUnavailable(operation, attempts=policy.max_attempts)
