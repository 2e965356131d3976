"""Retry strategies using Strategy Pattern."""
from .retry_strategy import RetryStrategy, ExponentialBackoffStrategy, RetryPolicy

__all__ = [
    'RetryStrategy',
    'ExponentialBackoffStrategy',
    'RetryPolicy',
]
