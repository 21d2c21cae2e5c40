"""HTTP plumbing shared by the NVD clients.

One requests.Session per client, exponential backoff on transport errors and
5xx responses, and rate-limit responses surfaced immediately as
``RateLimitError`` so the paging loop can decide whether to wait.
"""

from __future__ import annotations

import logging
import os
import re
import time
from typing import Any, Optional
from urllib.parse import urlparse

import requests

logger = logging.getLogger(__name__)

# apiKey travels as a header, but requests echoes URLs and headers into errors
_SENSITIVE_PARAM_RE = re.compile(
    r"((?:key|apiKey|api_key|Authorization|password|token|secret)[=:]\s*)[^\s&,;\"']+",
    re.IGNORECASE,
)


def _sanitize_message(msg: str) -> str:
    """Redact sensitive parameter values from a string."""
    return _SENSITIVE_PARAM_RE.sub(r"\1[REDACTED]", msg)


class ProxyConfig:
    """Proxy for reaching services.nvd.nist.gov.

    Explicit values win over HTTP_PROXY / HTTPS_PROXY / NO_PROXY.
    """

    def __init__(
        self,
        http_proxy: Optional[str] = None,
        https_proxy: Optional[str] = None,
        no_proxy: Optional[list[str]] = None,
        enabled: bool = True,
    ):
        self.enabled = enabled
        self._http_proxy = http_proxy
        self._https_proxy = https_proxy
        self._no_proxy = no_proxy or []

    @property
    def http_proxy(self) -> Optional[str]:
        if not self.enabled:
            return None
        return self._http_proxy or os.environ.get("HTTP_PROXY") or os.environ.get("http_proxy")

    @property
    def https_proxy(self) -> Optional[str]:
        if not self.enabled:
            return None
        return self._https_proxy or os.environ.get("HTTPS_PROXY") or os.environ.get("https_proxy")

    @property
    def no_proxy(self) -> list[str]:
        if self._no_proxy:
            return self._no_proxy
        env_no_proxy = os.environ.get("NO_PROXY") or os.environ.get("no_proxy")
        if env_no_proxy:
            return [d.strip() for d in env_no_proxy.split(",")]
        return []

    def get_proxies(self) -> dict[str, str]:
        """Proxy mapping in the form requests expects."""
        if not self.enabled:
            return {}
        proxies = {}
        if self.http_proxy:
            proxies["http"] = self.http_proxy
        if self.https_proxy:
            proxies["https"] = self.https_proxy
        return proxies

    def should_bypass(self, url: str) -> bool:
        """True when the URL host matches a no_proxy entry."""
        hostname = urlparse(url).hostname or ""
        for pattern in self.no_proxy:
            if pattern.startswith("."):
                if hostname.endswith(pattern) or hostname == pattern[1:]:
                    return True
            elif hostname == pattern or hostname.endswith(f".{pattern}"):
                return True
        return False


class APIError(Exception):
    """A request failed after all retries."""

    pass


class RateLimitError(APIError):
    """The service refused the request for exceeding its rate limit.

    ``retry_after`` is in seconds; it falls back to the rolling window
    length when the response gives no usable Retry-After.
    """

    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after


class APITimeoutError(APIError):
    """Every attempt timed out."""

    pass


class BaseClient:
    """Session, retries and error mapping for a JSON HTTP API.

    Subclasses set ``BASE_URL``, add auth in ``_get_headers`` and list the
    status codes their service uses for throttling in
    ``RATE_LIMIT_STATUSES``.
    """

    BASE_URL: str = ""
    DEFAULT_TIMEOUT: int = 30
    MAX_RETRIES: int = 3
    BACKOFF_BASE: float = 1.0
    DEFAULT_USER_AGENT: str = "nvd-matcher/0.1.0"
    RATE_LIMIT_STATUSES: tuple[int, ...] = (429,)
    DEFAULT_RETRY_AFTER: int = 60

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[int] = None,
        proxy: Optional[ProxyConfig] = None,
        user_agent: Optional[str] = None,
    ):
        self.api_key = api_key
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self.proxy = proxy or ProxyConfig()
        self.user_agent = user_agent or os.environ.get("NVD_MATCHER_USER_AGENT") or self.DEFAULT_USER_AGENT
        self.session = requests.Session()
        self.session.headers.update(
            {
                "User-Agent": self.user_agent,
                "Accept": "application/json",
            }
        )

    def _get_headers(self) -> dict[str, str]:
        """Per-request headers; subclasses add their auth header here."""
        return {}

    def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        **kwargs,
    ) -> Any:
        """Send a request and decode its JSON body.

        Transport errors, timeouts, HTTP errors and non-JSON bodies are
        retried up to ``MAX_RETRIES`` times. Rate-limit responses are not.
        """
        url = f"{self.BASE_URL}{endpoint}"
        headers = {**self._get_headers(), **kwargs.pop("headers", {})}

        proxies = {}
        if self.proxy and not self.proxy.should_bypass(url):
            proxies = self.proxy.get_proxies()

        last_exception: Optional[Exception] = None

        for attempt in range(self.MAX_RETRIES):
            try:
                response = self.session.request(
                    method=method,
                    url=url,
                    params=params,
                    headers=headers,
                    timeout=self.timeout,
                    proxies=proxies,
                    **kwargs,
                )

                if response.status_code in self.RATE_LIMIT_STATUSES:
                    retry_after_raw = response.headers.get("Retry-After", "")
                    try:
                        retry_after = int(retry_after_raw)
                    except (ValueError, TypeError):
                        # Missing, or an HTTP date
                        retry_after = self.DEFAULT_RETRY_AFTER
                    raise RateLimitError(
                        f"Rate limit exceeded for {url} (HTTP {response.status_code})",
                        retry_after=retry_after,
                    )

                if response.status_code >= 400:
                    response.raise_for_status()

                return response.json()

            except requests.Timeout:
                last_exception = APITimeoutError(f"Request to {url} timed out")
                logger.warning(f"Timeout on attempt {attempt + 1}/{self.MAX_RETRIES}: {url}")

            except RateLimitError:
                raise

            except (requests.RequestException, ValueError) as e:
                # ValueError covers a body that is not JSON
                sanitized = _sanitize_message(str(e))
                last_exception = APIError(f"Request failed: {sanitized}")
                logger.warning(
                    f"Request failed on attempt {attempt + 1}/{self.MAX_RETRIES}: {sanitized}"
                )

            if attempt < self.MAX_RETRIES - 1:
                sleep_time = self.BACKOFF_BASE * (2**attempt)
                logger.debug(f"Retrying in {sleep_time}s...")
                time.sleep(sleep_time)

        raise last_exception or APIError("Request failed after all retries")

    def get(self, endpoint: str, params: Optional[dict] = None, **kwargs) -> Any:
        """GET ``endpoint`` relative to ``BASE_URL``."""
        return self._request("GET", endpoint, params=params, **kwargs)
