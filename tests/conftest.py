"""Shared test fixtures."""

import os

import pytest

from nvd_matcher import config
from nvd_matcher.models import CatalogEntry
from nvd_matcher.store import MemoryCatalog, NVDStore

# No real delays between NVD pages and no keychain lookups during tests.
os.environ["NVD_PAGE_DELAY"] = "0"
os.environ["NVD_API_KEY"] = "test-api-key"

ANALOGX_PROXY = "cpe:2.3:a:analogx:proxy:4.13:*:*:*:*:*:*:*"


@pytest.fixture(autouse=True)
def fresh_settings():
    """Reload settings for every test so env changes are picked up."""
    config.reset_settings()
    yield
    config.reset_settings()


@pytest.fixture
def store(tmp_path):
    """SQLite store in a temporary directory."""
    with NVDStore(tmp_path / "nvd.db") as s:
        yield s


@pytest.fixture
def proxy_catalog():
    """Catalog holding a handful of analogx proxy releases."""
    return MemoryCatalog(
        [
            CatalogEntry.from_cpe(ANALOGX_PROXY),
            CatalogEntry.from_cpe("cpe:2.3:a:analogx:proxy:4.10:*:*:*:*:*:*:*"),
            CatalogEntry.from_cpe("cpe:2.3:a:analogx:proxy:4.2:*:*:*:*:*:*:*"),
            CatalogEntry.from_cpe("cpe:2.3:a:analogx:proxy:5.0:*:*:*:*:*:*:*"),
        ]
    )
