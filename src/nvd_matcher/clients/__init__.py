"""API clients for NVD data sources."""

from .base import APIError, APITimeoutError, ProxyConfig, RateLimitError
from .nvd import CPE_ENDPOINT, CVE_ENDPOINT, NVDClient

__all__ = [
    "APIError",
    "APITimeoutError",
    "ProxyConfig",
    "RateLimitError",
    "NVDClient",
    "CVE_ENDPOINT",
    "CPE_ENDPOINT",
]
