"""NVD feed ingestion: CPE catalog sync and CVE resolution sync.

Pages are committed to the store as they arrive, so an aborted sync keeps
everything stored before the failure.  A sync holds a file lock next to the
database for its whole run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from filelock import FileLock, Timeout

from .clients.nvd import CPE_ENDPOINT, CVE_ENDPOINT, NVDClient
from .config import DEFAULT_CVE_RESOLUTION_WORKERS, get_settings, get_workers
from .cve import build_vulnerability_record
from .models import CatalogEntry, VulnerabilityRecord
from .parallel import parallel_map
from .resolver import ConfigurationResolver
from .store import NVDStore

logger = logging.getLogger(__name__)

LOCK_TIMEOUT = 10


class SyncInProgressError(Exception):
    """Raised when another sync holds the database lock."""

    pass


@dataclass
class SyncReport:
    """Outcome of one sync run."""

    kind: str
    pages: int = 0
    fetched: int = 0
    stored: int = 0
    skipped: int = 0
    total: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "kind": self.kind,
            "pages": self.pages,
            "fetched": self.fetched,
            "stored": self.stored,
            "skipped": self.skipped,
            "total": self.total,
        }


def _lock_for(store: NVDStore) -> Optional[FileLock]:
    if store.path == ":memory:":
        return None
    return FileLock(f"{store.path}.lock", timeout=LOCK_TIMEOUT)


class _SyncLock:
    """Hold the store's file lock, translating a timeout."""

    def __init__(self, store: NVDStore):
        self._lock = _lock_for(store)
        self._path = store.path

    def __enter__(self) -> None:
        if self._lock is None:
            return
        try:
            self._lock.acquire()
        except Timeout as e:
            raise SyncInProgressError(f"Another sync is writing {self._path}") from e

    def __exit__(self, *exc_info: Any) -> None:
        if self._lock is not None:
            self._lock.release()


def parse_cpe_page(page: dict[str, Any]) -> tuple[list[CatalogEntry], int]:
    """Parse the products of one CPE page.

    Returns:
        Tuple of (entries, number of products skipped as malformed)
    """
    timestamp = page.get("timestamp", "")
    entries = []
    skipped = 0
    for product in page.get("products") or []:
        try:
            entries.append(CatalogEntry.from_nvd_product(product, timestamp=timestamp))
        except (KeyError, TypeError, AttributeError) as e:
            skipped += 1
            logger.warning(f"Skipping malformed CPE product {product!r}: {e}")
    return entries, skipped


def sync_cpes(
    client: NVDClient,
    store: NVDStore,
    params: Optional[dict[str, Any]] = None,
) -> SyncReport:
    """Fetch CPE names from NVD and store them with their padded versions."""
    report = SyncReport(kind="cpes")
    with _SyncLock(store):
        for page in client.iter_pages(CPE_ENDPOINT, params):
            entries, skipped = parse_cpe_page(page)
            report.pages += 1
            report.total = page.get("totalResults", report.total)
            report.fetched += len(entries) + skipped
            report.skipped += skipped
            report.stored += store.insert_cpes(entries)

    logger.info(f"Successfully fetched {report.fetched} CPEs, stored {report.stored}")
    return report


def resolve_cve_page(
    page: dict[str, Any],
    resolver: ConfigurationResolver,
    workers: Optional[int] = None,
) -> tuple[list[VulnerabilityRecord], int]:
    """Resolve every CVE of one page in parallel.

    A CVE whose resolution raises is logged and left out.

    Returns:
        Tuple of (resolved records, number of records skipped)
    """
    timestamp = page.get("timestamp", "")
    items = [v.get("cve", {}) for v in page.get("vulnerabilities") or []]
    if workers is None:
        workers = get_workers("cve_resolution_workers", DEFAULT_CVE_RESOLUTION_WORKERS)

    results, metrics = parallel_map(
        lambda cve: build_vulnerability_record(cve, resolver, timestamp=timestamp),
        items,
        max_workers=workers,
        label="resolve_cves",
        item_label=lambda cve: cve.get("id", "<no id>"),
    )
    records = [r for r in results if r is not None]
    return records, metrics.tasks_failed


def sync_cves(
    client: NVDClient,
    store: NVDStore,
    params: Optional[dict[str, Any]] = None,
    workers: Optional[int] = None,
) -> SyncReport:
    """Fetch CVEs, resolve their affected CPEs against the store, store them."""
    report = SyncReport(kind="cves")
    resolver = ConfigurationResolver(store)
    with _SyncLock(store):
        for page in client.iter_pages(CVE_ENDPOINT, params):
            records, skipped = resolve_cve_page(page, resolver, workers=workers)
            report.pages += 1
            report.total = page.get("totalResults", report.total)
            report.fetched += len(records) + skipped
            report.skipped += skipped
            report.stored += store.upsert_cves(records)

    logger.info(f"Successfully fetched {report.fetched} CVEs, stored {report.stored}")
    if report.skipped:
        logger.warning(f"Skipped {report.skipped} CVEs that could not be resolved")
    return report


def open_store(path: Optional[Path | str] = None) -> NVDStore:
    """Open the configured store."""
    return NVDStore(path or get_settings().db_path)
