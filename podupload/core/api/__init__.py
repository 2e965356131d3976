"""Storage boundary API module."""
from .config import APIConfig, ProxyConfig, SSLConfig, TimeoutConfig, RetryConfig
from .errors import BoundaryErrorCodes
from .events import EventEmitter
from .retry import RetryPolicy, RetryStrategy, ExponentialBackoffStrategy
from .storage_client import StorageAPIClient

__all__ = [
    # Client
    'StorageAPIClient',

    # Errors and events
    'BoundaryErrorCodes',
    'EventEmitter',

    # Retry
    'RetryPolicy',
    'RetryStrategy',
    'ExponentialBackoffStrategy',

    # Configuration
    'APIConfig',
    'ProxyConfig',
    'SSLConfig',
    'TimeoutConfig',
    'RetryConfig',
]
