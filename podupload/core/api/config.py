"""
API configuration module.

Provides configuration for the storage boundary client.
Open for extension through custom configurations.
"""
from dataclasses import dataclass, field
from typing import Optional, Dict, Any
import random
import ssl

import aiohttp


@dataclass
class ProxyConfig:
    """
    Proxy configuration.

    Supports HTTP, HTTPS, and SOCKS proxies.
    """
    url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    def to_aiohttp_proxy(self) -> Optional[str]:
        """Convert to aiohttp proxy format."""
        if not self.url:
            return None

        if self.username and self.password:
            if '://' in self.url:
                protocol, rest = self.url.split('://', 1)
                return f"{protocol}://{self.username}:{self.password}@{rest}"

        return self.url


@dataclass
class SSLConfig:
    """SSL/TLS configuration."""
    verify: bool = True
    ca_file: Optional[str] = None
    check_hostname: bool = True

    def create_ssl_context(self):
        """Create SSL context from configuration (False disables verification)."""
        if not self.verify:
            return False

        context = ssl.create_default_context()
        if self.ca_file:
            context.load_verify_locations(self.ca_file)
        context.check_hostname = self.check_hostname
        return context


@dataclass
class TimeoutConfig:
    """
    Timeout configuration.

    ``total`` bounds any single transfer (30 minutes for large media);
    ``probe`` bounds the connectivity check.
    """
    total: float = 30 * 60.0
    connect: float = 30.0
    sock_read: Optional[float] = None
    probe: float = 5.0

    def to_aiohttp_timeout(self) -> aiohttp.ClientTimeout:
        """Convert to aiohttp ClientTimeout."""
        return aiohttp.ClientTimeout(
            total=self.total,
            connect=self.connect,
            sock_read=self.sock_read
        )

    def probe_timeout(self) -> aiohttp.ClientTimeout:
        """Short timeout used for reachability checks."""
        return aiohttp.ClientTimeout(total=self.probe)


@dataclass
class RetryConfig:
    """
    Retry configuration.

    Attributes:
        max_attempts: Total attempts for one request (first try included)
        base_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any single delay
        exponential_base: Growth factor between attempts
        jitter: Fraction of the delay added as random jitter (0 disables)
        max_task_retries: Automatic retries a single upload task may consume
        finalize_attempts: Attempts for the finalize call ("assembly failed" once more)
    """
    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 16.0
    exponential_base: float = 2.0
    jitter: float = 0.1
    max_task_retries: int = 12
    finalize_attempts: int = 2

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.finalize_attempts < 1:
            raise ValueError("finalize_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("Delays must not be negative")
        if self.max_task_retries < 0:
            raise ValueError("max_task_retries must not be negative")

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay before retrying after the given (0-based) attempt."""
        delay = min(self.base_delay * (self.exponential_base ** attempt), self.max_delay)
        if self.jitter and delay:
            delay += random.uniform(0, delay * self.jitter)
        return delay

    @classmethod
    def immediate(cls, **kwargs) -> 'RetryConfig':
        """Configuration without waiting between attempts (tests, scripts)."""
        return cls(base_delay=0.0, max_delay=0.0, jitter=0.0, **kwargs)


@dataclass
class APIConfig:
    """
    Complete boundary client configuration.

    Credentials and endpoints are injected here at startup; no component
    falls back to literal parameters when a call fails.
    """
    base_url: str = 'http://localhost:3000/api'
    auth_token: Optional[str] = None
    user_agent: str = 'podupload/1.0.0'
    probe_path: str = '/health'

    proxy: Optional[ProxyConfig] = None
    ssl: SSLConfig = field(default_factory=SSLConfig)
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)

    extra_headers: Dict[str, str] = field(default_factory=dict)

    limit_per_host: int = 10
    limit: int = 100

    def __post_init__(self):
        self.base_url = self.base_url.rstrip('/')

    @classmethod
    def default(cls) -> 'APIConfig':
        """Create default configuration."""
        return cls()

    @classmethod
    def with_proxy(cls, proxy_url: str, **kwargs) -> 'APIConfig':
        """Create configuration with proxy."""
        return cls(proxy=ProxyConfig(url=proxy_url), **kwargs)

    @classmethod
    def insecure(cls, **kwargs) -> 'APIConfig':
        """Create configuration with SSL verification disabled."""
        return cls(ssl=SSLConfig(verify=False, check_hostname=False), **kwargs)

    def url_for(self, path: str) -> str:
        """Join an endpoint path onto the base URL."""
        return f"{self.base_url}/{path.lstrip('/')}"

    def get_auth_headers(self) -> Dict[str, str]:
        """Authorization headers for requests to the boundary itself."""
        if not self.auth_token:
            return {}
        return {'Authorization': f"Bearer {self.auth_token}"}

    def get_connector_kwargs(self) -> Dict[str, Any]:
        """Get kwargs for aiohttp TCPConnector."""
        return {
            'limit': self.limit,
            'limit_per_host': self.limit_per_host,
            'ssl': self.ssl.create_ssl_context(),
        }

    def get_session_kwargs(self) -> Dict[str, Any]:
        """Get kwargs for aiohttp ClientSession."""
        headers = {
            'User-Agent': self.user_agent,
            **self.extra_headers
        }
        return {
            'headers': headers,
            'timeout': self.timeout.to_aiohttp_timeout(),
        }
