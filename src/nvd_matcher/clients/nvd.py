"""NVD (National Vulnerability Database) API 2.0 client."""

from __future__ import annotations

import logging
import time
from typing import Any, Iterator, Optional

from ..keymanager import get_api_key
from .base import BaseClient

logger = logging.getLogger(__name__)

CVE_ENDPOINT = "/cves/2.0"
CPE_ENDPOINT = "/cpes/2.0"

# Item lists per endpoint
_ITEM_KEYS = {
    CVE_ENDPOINT: "vulnerabilities",
    CPE_ENDPOINT: "products",
}


class NVDClient(BaseClient):
    """Client for the paginated NVD CVE and CPE APIs."""

    BASE_URL = "https://services.nvd.nist.gov/rest/json"
    DEFAULT_TIMEOUT = 60
    PAGE_DELAY = 6.0
    # NVD answers 403 Forbidden, not 429, once the rolling 30 second window is used up
    RATE_LIMIT_STATUSES = (403, 429)
    DEFAULT_RETRY_AFTER = 30

    def __init__(
        self,
        api_key: Optional[str] = None,
        page_delay: Optional[float] = None,
        results_per_page: Optional[int] = None,
        timeout: Optional[int] = None,
    ):
        key = api_key or get_api_key("NVD_API_KEY")
        super().__init__(api_key=key, timeout=timeout)
        self.page_delay = self.PAGE_DELAY if page_delay is None else page_delay
        self.results_per_page = results_per_page

    def _get_headers(self) -> dict[str, str]:
        headers = {}
        if self.api_key:
            headers["apiKey"] = self.api_key
        return headers

    def iter_pages(
        self,
        endpoint: str,
        params: Optional[dict[str, Any]] = None,
    ) -> Iterator[dict[str, Any]]:
        """Yield every page of a paginated endpoint.

        ``startIndex`` advances by the page's ``resultsPerPage`` until the
        number of items received reaches ``totalResults``.  The client
        sleeps ``page_delay`` seconds between pages to respect the NVD rate
        limits.  Errors from the HTTP layer propagate after retries.

        Args:
            endpoint: CVE_ENDPOINT or CPE_ENDPOINT
            params: Extra query parameters (filters, ``startIndex``)

        Yields:
            Raw page dictionaries
        """
        item_key = _ITEM_KEYS.get(endpoint, "vulnerabilities")
        query = dict(params or {})
        query.setdefault("startIndex", 0)
        if self.results_per_page:
            query.setdefault("resultsPerPage", self.results_per_page)
        label = "CPEs" if item_key == "products" else "CVEs"

        fetched = 0
        while True:
            page = self.get(endpoint, params=query)
            items = page.get(item_key) or []
            total = page.get("totalResults", 0)
            fetched += len(items)
            yield page

            if fetched >= total:
                break
            if not items:
                logger.warning(
                    f"Empty page at startIndex={query['startIndex']} with "
                    f"{fetched} of {total} {label} fetched; stopping"
                )
                break

            query["startIndex"] += page.get("resultsPerPage") or len(items)
            logger.info(f"Fetched {fetched} of {total} {label}...")
            if self.page_delay > 0:
                time.sleep(self.page_delay)

    def iter_cve_pages(
        self,
        last_mod_start: Optional[str] = None,
        last_mod_end: Optional[str] = None,
        **params: Any,
    ) -> Iterator[dict[str, Any]]:
        """Yield pages of the CVE API, optionally limited to a modification window."""
        if last_mod_start and last_mod_end:
            params["lastModStartDate"] = last_mod_start
            params["lastModEndDate"] = last_mod_end
        return self.iter_pages(CVE_ENDPOINT, params)

    def iter_cpe_pages(
        self,
        last_mod_start: Optional[str] = None,
        last_mod_end: Optional[str] = None,
        **params: Any,
    ) -> Iterator[dict[str, Any]]:
        """Yield pages of the CPE API, optionally limited to a modification window."""
        if last_mod_start and last_mod_end:
            params["lastModStartDate"] = last_mod_start
            params["lastModEndDate"] = last_mod_end
        return self.iter_pages(CPE_ENDPOINT, params)

    def get_cve(self, cve_id: str) -> Optional[dict[str, Any]]:
        """Fetch a single raw CVE object by id, or None when unknown."""
        response = self.get(CVE_ENDPOINT, params={"cveId": cve_id})
        vulnerabilities = response.get("vulnerabilities", [])
        if not vulnerabilities:
            return None
        return vulnerabilities[0].get("cve", {})
