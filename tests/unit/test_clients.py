"""Unit tests for API clients."""

import pytest
import requests as req_lib
import responses

from nvd_matcher.clients.base import (
    APIError,
    APITimeoutError,
    BaseClient,
    ProxyConfig,
    RateLimitError,
    _sanitize_message,
)
from nvd_matcher.clients.nvd import CPE_ENDPOINT, CVE_ENDPOINT, NVDClient

CVE_URL = "https://services.nvd.nist.gov/rest/json/cves/2.0"
CPE_URL = "https://services.nvd.nist.gov/rest/json/cpes/2.0"


class TestProxyConfig:
    """Tests for proxy configuration."""

    def test_proxy_disabled(self):
        config = ProxyConfig(enabled=False, http_proxy="http://proxy:8080")
        assert config.get_proxies() == {}

    def test_proxy_from_explicit_config(self):
        config = ProxyConfig(
            http_proxy="http://proxy:8080",
            https_proxy="https://proxy:8443",
        )
        proxies = config.get_proxies()
        assert proxies["http"] == "http://proxy:8080"
        assert proxies["https"] == "https://proxy:8443"

    def test_proxy_bypass(self):
        config = ProxyConfig(no_proxy=["localhost", ".internal.corp"])
        assert config.should_bypass("http://localhost/api") is True
        assert config.should_bypass("http://api.internal.corp/v1") is True
        assert config.should_bypass("https://services.nvd.nist.gov/rest") is False


class TestBaseClient:
    """Tests for base client functionality."""

    @responses.activate
    def test_successful_get_request(self):
        responses.add(responses.GET, "https://api.example.com/test", json={"status": "ok"})

        client = BaseClient()
        client.BASE_URL = "https://api.example.com"

        assert client.get("/test") == {"status": "ok"}

    @responses.activate
    def test_rate_limit_error(self):
        responses.add(
            responses.GET,
            "https://api.example.com/test",
            status=429,
            headers={"Retry-After": "30"},
        )

        client = BaseClient()
        client.BASE_URL = "https://api.example.com"

        with pytest.raises(RateLimitError) as exc_info:
            client.get("/test")

        assert exc_info.value.retry_after == 30

    @responses.activate
    def test_retry_on_failure(self):
        responses.add(
            responses.GET,
            "https://api.example.com/test",
            body=req_lib.exceptions.ConnectionError("Connection failed"),
        )
        responses.add(responses.GET, "https://api.example.com/test", json={"status": "ok"})

        client = BaseClient()
        client.BASE_URL = "https://api.example.com"
        client.BACKOFF_BASE = 0.01

        assert client.get("/test") == {"status": "ok"}
        assert len(responses.calls) == 2

    @responses.activate
    def test_timeout_after_retries(self):
        for _ in range(3):
            responses.add(
                responses.GET,
                "https://api.example.com/test",
                body=req_lib.exceptions.ReadTimeout("slow"),
            )

        client = BaseClient()
        client.BASE_URL = "https://api.example.com"
        client.BACKOFF_BASE = 0.01

        with pytest.raises(APITimeoutError):
            client.get("/test")

    @responses.activate
    def test_http_error_handling(self):
        responses.add(responses.GET, "https://api.example.com/test", status=500)

        client = BaseClient()
        client.BASE_URL = "https://api.example.com"
        client.MAX_RETRIES = 1

        with pytest.raises(APIError):
            client.get("/test")

    @responses.activate
    def test_forbidden_is_plain_error_by_default(self):
        responses.add(responses.GET, "https://api.example.com/test", status=403)

        client = BaseClient()
        client.BASE_URL = "https://api.example.com"
        client.MAX_RETRIES = 1

        with pytest.raises(APIError) as exc_info:
            client.get("/test")

        assert not isinstance(exc_info.value, RateLimitError)

    def test_sanitize_message(self):
        msg = "403 for url https://x/?apiKey=abc123&startIndex=0"
        assert "abc123" not in _sanitize_message(msg)
        assert "startIndex=0" in _sanitize_message(msg)


def _cve_page(ids: list[str], start: int, total: int, per_page: int = 2) -> dict:
    return {
        "resultsPerPage": per_page,
        "startIndex": start,
        "totalResults": total,
        "timestamp": "2024-01-01T00:00:00.000",
        "vulnerabilities": [{"cve": {"id": cve_id}} for cve_id in ids],
    }


class TestNVDClient:
    """Tests for the paginated NVD client."""

    @responses.activate
    def test_api_key_header(self):
        responses.add(responses.GET, CVE_URL, json=_cve_page([], 0, 0))

        client = NVDClient(api_key="secret-key", page_delay=0)
        list(client.iter_pages(CVE_ENDPOINT))

        assert responses.calls[0].request.headers.get("apiKey") == "secret-key"

    @responses.activate
    def test_pagination_advances_start_index(self):
        responses.add(responses.GET, CVE_URL, json=_cve_page(["CVE-1", "CVE-2"], 0, 3))
        responses.add(responses.GET, CVE_URL, json=_cve_page(["CVE-3"], 2, 3))

        client = NVDClient(page_delay=0)
        pages = list(client.iter_pages(CVE_ENDPOINT))

        assert len(pages) == 2
        assert "startIndex=0" in responses.calls[0].request.url
        assert "startIndex=2" in responses.calls[1].request.url

    @responses.activate
    def test_delay_between_pages(self, monkeypatch):
        sleeps = []
        monkeypatch.setattr("nvd_matcher.clients.nvd.time.sleep", sleeps.append)
        responses.add(responses.GET, CVE_URL, json=_cve_page(["CVE-1", "CVE-2"], 0, 3))
        responses.add(responses.GET, CVE_URL, json=_cve_page(["CVE-3"], 2, 3))

        client = NVDClient(page_delay=6.0)
        list(client.iter_pages(CVE_ENDPOINT))

        # No delay after the last page
        assert sleeps == [6.0]

    @responses.activate
    def test_empty_page_stops(self):
        responses.add(responses.GET, CVE_URL, json=_cve_page([], 0, 10))

        client = NVDClient(page_delay=0)
        pages = list(client.iter_pages(CVE_ENDPOINT))

        assert len(pages) == 1
        assert len(responses.calls) == 1

    @responses.activate
    def test_results_per_page_and_window(self):
        responses.add(
            responses.GET,
            CPE_URL,
            json={"resultsPerPage": 0, "totalResults": 0, "products": []},
        )

        client = NVDClient(page_delay=0, results_per_page=500)
        list(
            client.iter_cpe_pages(
                last_mod_start="2024-01-01T00:00:00.000",
                last_mod_end="2024-02-01T00:00:00.000",
            )
        )

        url = responses.calls[0].request.url
        assert "resultsPerPage=500" in url
        assert "lastModStartDate=" in url
        assert "lastModEndDate=" in url

    @responses.activate
    def test_error_propagates(self):
        responses.add(responses.GET, CVE_URL, status=503)

        client = NVDClient(page_delay=0)
        client.MAX_RETRIES = 1

        with pytest.raises(APIError):
            list(client.iter_cve_pages())

    @responses.activate
    def test_get_cve(self):
        responses.add(responses.GET, CVE_URL, json=_cve_page(["CVE-2004-2752"], 0, 1))

        client = NVDClient(page_delay=0)

        assert client.get_cve("CVE-2004-2752") == {"id": "CVE-2004-2752"}

    @responses.activate
    def test_get_cve_not_found(self):
        responses.add(responses.GET, CVE_URL, json=_cve_page([], 0, 0))

        assert NVDClient(page_delay=0).get_cve("CVE-1999-9999") is None

    @responses.activate
    def test_forbidden_is_rate_limit(self):
        responses.add(responses.GET, CVE_URL, status=403)

        client = NVDClient(page_delay=0)

        with pytest.raises(RateLimitError) as exc_info:
            list(client.iter_cve_pages())

        assert exc_info.value.retry_after == 30
        assert len(responses.calls) == 1

    def test_cpe_endpoint_constant(self):
        assert f"{NVDClient.BASE_URL}{CPE_ENDPOINT}" == CPE_URL
