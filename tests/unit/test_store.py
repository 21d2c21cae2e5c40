"""Unit tests for the SQLite store."""

from nvd_matcher.models import CatalogEntry, VulnerabilityRecord
from nvd_matcher.query import Bound, RangeQuery
from nvd_matcher.store import MemoryCatalog, NVDStore
from nvd_matcher.version import padded_version

ANALOGX_PROXY = "cpe:2.3:a:analogx:proxy:4.13:*:*:*:*:*:*:*"


def _versions(prefix: str, versions: list[str]) -> list[CatalogEntry]:
    return [CatalogEntry.from_cpe(f"{prefix}:{v}:*:*:*:*:*:*:*") for v in versions]


class TestCatalog:
    """Tests for CPE storage and range lookups."""

    def test_insert_and_get(self, store):
        assert store.insert_cpes([CatalogEntry.from_cpe(ANALOGX_PROXY)]) == 1

        entry = store.get_cpe(ANALOGX_PROXY)
        assert entry is not None
        assert entry.padded_version == "00004.00013"
        assert entry.vendor == "analogx"

    def test_insert_nothing(self, store):
        assert store.insert_cpes([]) == 0

    def test_reinsert_replaces(self, store):
        store.insert_cpes([CatalogEntry.from_cpe(ANALOGX_PROXY)])
        store.insert_cpes([CatalogEntry.from_cpe(ANALOGX_PROXY, deprecated=True)])

        assert store.stats()["cpes"] == 1
        assert store.get_cpe(ANALOGX_PROXY).deprecated is True

    def test_lookup_range(self, store):
        store.insert_cpes([CatalogEntry.from_cpe(ANALOGX_PROXY)])
        query = RangeQuery(
            cpe=ANALOGX_PROXY,
            lower=Bound(">=", padded_version("4.0")),
            upper=Bound("<=", padded_version("4.13")),
        )

        assert [e.cpe for e in store.lookup(query)] == [ANALOGX_PROXY]

    def test_lookup_excluding_bound(self, store):
        store.insert_cpes([CatalogEntry.from_cpe(ANALOGX_PROXY)])
        query = RangeQuery(cpe=ANALOGX_PROXY, upper=Bound("<", padded_version("4.13")))

        assert store.lookup(query) == []

    def test_lookup_skips_deprecated(self, store):
        store.insert_cpes([CatalogEntry.from_cpe(ANALOGX_PROXY, deprecated=True)])
        query = RangeQuery(cpe=ANALOGX_PROXY, upper=Bound("<=", padded_version("5.0")))

        assert store.lookup(query) == []

    def test_lookup_agrees_with_memory_catalog(self, store):
        entries = _versions("cpe:2.3:a:acme:widget", ["1.0", "1.9", "1.10", "2.0"])
        store.insert_cpes(entries)
        memory = MemoryCatalog(entries)

        for entry in entries:
            query = RangeQuery(
                cpe=entry.cpe,
                lower=Bound(">", padded_version("1.5")),
                upper=Bound("<", padded_version("2.0")),
            )
            assert store.lookup(query) == memory.lookup(query)

    def test_persists_across_connections(self, tmp_path):
        path = tmp_path / "data" / "nvd.db"
        with NVDStore(path) as first:
            first.insert_cpes([CatalogEntry.from_cpe(ANALOGX_PROXY)])

        with NVDStore(path) as second:
            assert second.get_cpe(ANALOGX_PROXY) is not None


class TestCves:
    """Tests for CVE storage."""

    def _record(self, cve_id: str = "CVE-2004-2752") -> VulnerabilityRecord:
        return VulnerabilityRecord(
            cve_id=cve_id,
            description="AnalogX Proxy overflow",
            cwe="CWE-120",
            vulnerable_configs=[ANALOGX_PROXY],
            vulnerable_products=[ANALOGX_PROXY],
            vendors=["analogx"],
            products=["proxy"],
        )

    def test_upsert_and_get(self, store):
        assert store.upsert_cves([self._record()]) == 1

        record = store.get_cve("CVE-2004-2752")
        assert record == self._record()

    def test_get_missing(self, store):
        assert store.get_cve("CVE-1999-0001") is None

    def test_find_by_product(self, store):
        store.upsert_cves([self._record("CVE-2004-2752"), self._record("CVE-2005-0001")])

        assert store.find_cves_by_product("analogx") == ["CVE-2004-2752", "CVE-2005-0001"]
        assert store.find_cves_by_product("analogx", "proxy") == ["CVE-2004-2752", "CVE-2005-0001"]
        assert store.find_cves_by_product("analogx", "other") == []

    def test_upsert_replaces_products(self, store):
        store.upsert_cves([self._record()])
        updated = self._record()
        updated.vulnerable_products = []
        store.upsert_cves([updated])

        assert store.find_cves_by_product("analogx") == []
        assert store.stats()["cves"] == 1


class TestMemoryCatalog:
    def test_sorted_by_padded_version(self):
        catalog = MemoryCatalog.from_cpes([ANALOGX_PROXY])
        catalog.add(CatalogEntry.from_cpe(ANALOGX_PROXY, cpe_name_id="dup"))
        query = RangeQuery(cpe=ANALOGX_PROXY, lower=Bound(">=", "00000"))

        assert len(catalog.lookup(query)) == 2
