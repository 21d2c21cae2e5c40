"""SQLite storage for the CPE catalog and resolved CVEs."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Iterable, Optional

from .cpe import parse_vendor_product
from .models import CatalogEntry, VulnerabilityRecord
from .query import RangeQuery

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS cpes (
    cpe TEXT PRIMARY KEY,
    cpe_name_id TEXT,
    vendor TEXT NOT NULL,
    product TEXT NOT NULL,
    version TEXT NOT NULL,
    padded_version TEXT NOT NULL,
    deprecated INTEGER NOT NULL DEFAULT 0,
    deprecated_by TEXT,
    created TEXT,
    last_modified TEXT,
    timestamp TEXT
);
CREATE INDEX IF NOT EXISTS idx_cpes_cpe_version ON cpes (cpe, padded_version);
CREATE INDEX IF NOT EXISTS idx_cpes_vendor_product ON cpes (vendor, product);

CREATE TABLE IF NOT EXISTS cves (
    cve_id TEXT PRIMARY KEY,
    description TEXT,
    nvd_status TEXT,
    published TEXT,
    last_modified TEXT,
    timestamp TEXT,
    data TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS cve_products (
    cve_id TEXT NOT NULL,
    vendor TEXT NOT NULL,
    product TEXT NOT NULL,
    PRIMARY KEY (cve_id, vendor, product)
);
CREATE INDEX IF NOT EXISTS idx_cve_products_vp ON cve_products (vendor, product);
"""

_CPE_COLUMNS = (
    "cpe",
    "cpe_name_id",
    "vendor",
    "product",
    "version",
    "padded_version",
    "deprecated",
    "deprecated_by",
    "created",
    "last_modified",
    "timestamp",
)


def _row_to_entry(row: sqlite3.Row) -> CatalogEntry:
    return CatalogEntry(
        cpe=row["cpe"],
        cpe_name_id=row["cpe_name_id"] or "",
        vendor=row["vendor"],
        product=row["product"],
        version=row["version"],
        padded_version=row["padded_version"],
        deprecated=bool(row["deprecated"]),
        deprecated_by=row["deprecated_by"] or "",
        created=row["created"] or "",
        last_modified=row["last_modified"] or "",
        timestamp=row["timestamp"] or "",
    )


class NVDStore:
    """CPE catalog and CVE store backed by a single SQLite database.

    The connection is shared between threads; every statement runs under
    one lock so lookups from parallel CVE resolution are serialised.
    """

    def __init__(self, path: Path | str = ":memory:"):
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(SCHEMA)

    def __enter__(self) -> "NVDStore":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ------------------------------------------------------------------
    # CPE catalog
    # ------------------------------------------------------------------

    def insert_cpes(self, entries: Iterable[CatalogEntry]) -> int:
        """Insert or replace catalog entries. Returns the number written."""
        rows = [
            (
                e.cpe,
                e.cpe_name_id,
                e.vendor,
                e.product,
                e.version,
                e.padded_version,
                int(e.deprecated),
                e.deprecated_by,
                e.created,
                e.last_modified,
                e.timestamp,
            )
            for e in entries
        ]
        if not rows:
            return 0
        placeholders = ", ".join("?" for _ in _CPE_COLUMNS)
        with self._lock, self._conn:
            self._conn.executemany(
                f"INSERT OR REPLACE INTO cpes ({', '.join(_CPE_COLUMNS)}) VALUES ({placeholders})",
                rows,
            )
        logger.debug("Stored %d CPE names in %s", len(rows), self.path)
        return len(rows)

    def lookup(self, query: RangeQuery) -> list[CatalogEntry]:
        """Return catalog entries matching a range query, by padded version."""
        where, params = query.to_sql()
        with self._lock:
            rows = self._conn.execute(
                f"SELECT * FROM cpes WHERE {where} ORDER BY padded_version, cpe",
                params,
            ).fetchall()
        return [_row_to_entry(r) for r in rows]

    def get_cpe(self, cpe: str) -> Optional[CatalogEntry]:
        with self._lock:
            row = self._conn.execute("SELECT * FROM cpes WHERE cpe = ?", (cpe,)).fetchone()
        return _row_to_entry(row) if row else None

    # ------------------------------------------------------------------
    # CVEs
    # ------------------------------------------------------------------

    def upsert_cves(self, records: Iterable[VulnerabilityRecord]) -> int:
        """Insert or replace resolved CVEs. Returns the number written."""
        count = 0
        with self._lock, self._conn:
            for record in records:
                self._conn.execute(
                    "INSERT OR REPLACE INTO cves "
                    "(cve_id, description, nvd_status, published, last_modified, timestamp, data) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        record.cve_id,
                        record.description,
                        record.nvd_status,
                        record.published,
                        record.last_modified,
                        record.timestamp,
                        json.dumps(record.to_dict()),
                    ),
                )
                self._conn.execute("DELETE FROM cve_products WHERE cve_id = ?", (record.cve_id,))
                self._conn.executemany(
                    "INSERT OR IGNORE INTO cve_products (cve_id, vendor, product) VALUES (?, ?, ?)",
                    [
                        (record.cve_id, cpe_vendor, cpe_product)
                        for cpe_vendor, cpe_product in _vendor_products(record)
                    ],
                )
                count += 1
        return count

    def get_cve(self, cve_id: str) -> Optional[VulnerabilityRecord]:
        with self._lock:
            row = self._conn.execute("SELECT data FROM cves WHERE cve_id = ?", (cve_id,)).fetchone()
        if row is None:
            return None
        return VulnerabilityRecord.from_dict(json.loads(row["data"]))

    def find_cves_by_product(self, vendor: str, product: Optional[str] = None) -> list[str]:
        """List CVE ids affecting a vendor, optionally narrowed to one product."""
        sql = "SELECT DISTINCT cve_id FROM cve_products WHERE vendor = ?"
        params: list[Any] = [vendor]
        if product:
            sql += " AND product = ?"
            params.append(product)
        with self._lock:
            rows = self._conn.execute(sql + " ORDER BY cve_id", params).fetchall()
        return [r["cve_id"] for r in rows]

    def stats(self) -> dict[str, int]:
        with self._lock:
            cpes = self._conn.execute("SELECT COUNT(*) FROM cpes").fetchone()[0]
            deprecated = self._conn.execute(
                "SELECT COUNT(*) FROM cpes WHERE deprecated = 1"
            ).fetchone()[0]
            cves = self._conn.execute("SELECT COUNT(*) FROM cves").fetchone()[0]
        return {"cpes": cpes, "deprecated_cpes": deprecated, "cves": cves}


def _vendor_products(record: VulnerabilityRecord) -> set[tuple[str, str]]:
    """Vendor/product pairs of a record's vulnerable CPEs."""
    pairs = set()
    for cpe in record.vulnerable_products:
        vendor, product = parse_vendor_product(cpe)
        if vendor and product:
            pairs.add((vendor, product))
    return pairs


class MemoryCatalog:
    """List-backed catalog evaluating queries in memory."""

    def __init__(self, entries: Optional[Iterable[CatalogEntry]] = None):
        self.entries: list[CatalogEntry] = list(entries or [])

    @classmethod
    def from_cpes(cls, cpes: Iterable[str]) -> "MemoryCatalog":
        return cls(CatalogEntry.from_cpe(cpe) for cpe in cpes)

    def add(self, entry: CatalogEntry) -> None:
        self.entries.append(entry)

    def lookup(self, query: RangeQuery) -> list[CatalogEntry]:
        matched = [e for e in self.entries if query.matches(e)]
        return sorted(matched, key=lambda e: (e.padded_version, e.cpe))
