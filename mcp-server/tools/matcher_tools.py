"""Version encoding and CVE configuration resolution tools."""

from __future__ import annotations

import json
import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from nvd_matcher.cpe import parse_cpe23, parse_version
from nvd_matcher.ingest import open_store
from nvd_matcher.models import RangeCondition, parse_configurations
from nvd_matcher.query import build_range_query
from nvd_matcher.resolver import ConfigurationResolver
from nvd_matcher.store import MemoryCatalog, NVDStore
from nvd_matcher.version import padded_version

logger = logging.getLogger("nvd-mcp.matcher")

# Lazy singleton
_store: Optional[NVDStore] = None


def get_store() -> NVDStore:
    """Get or create the local store singleton."""
    global _store
    if _store is None:
        _store = open_store()
    return _store


def register_tools(mcp: FastMCP) -> None:
    """Register matcher tools with the MCP server."""

    @mcp.tool()
    def encode_version(versions: list[str]) -> str:
        """Encode version strings into their lexicographically comparable form.

        Args:
            versions: Raw version strings (e.g., ["2.5", "2.5.1-k9", "2.10"])

        Returns:
            JSON string mapping each version to its padded encoding, plus the
            versions sorted by encoding.
        """
        encoded = {v: padded_version(v) for v in versions}
        return json.dumps(
            {
                "encoded": encoded,
                "sorted": sorted(versions, key=padded_version),
            },
            indent=2,
        )

    @mcp.tool()
    def parse_cpe_name(cpe: str) -> str:
        """Split a CPE 2.3 name into its components.

        Args:
            cpe: CPE 2.3 name (e.g., "cpe:2.3:a:analogx:proxy:4.13:*:*:*:*:*:*:*")

        Returns:
            JSON string with vendor, product, version and padded version.
        """
        name = parse_cpe23(cpe)
        if not name.is_valid:
            return json.dumps({"error": f"Not a CPE 2.3 name: {cpe}"})
        version = parse_version(cpe)
        return json.dumps(
            {
                **name.to_dict(),
                "matchVersion": version,
                "paddedVersion": padded_version(version),
            },
            indent=2,
        )

    @mcp.tool()
    def build_version_query(cpe_match: dict) -> str:
        """Show the catalog query generated for one cpeMatch clause.

        Args:
            cpe_match: NVD cpeMatch object with criteria and optional
                versionStart*/versionEnd* bounds

        Returns:
            JSON string with the query filter, or a note that the criteria
            is matched literally when no bounds are given.
        """
        query = build_range_query(RangeCondition.from_dict(cpe_match))
        if query is None:
            return json.dumps({"query": None, "literal_match": cpe_match.get("criteria", "")})
        return json.dumps({"query": query.to_filter()}, indent=2)

    @mcp.tool()
    def resolve_cve_configurations(
        configurations: list[dict],
        catalog: Optional[list[str]] = None,
    ) -> str:
        """Resolve a CVE's configurations into affected CPEs, vendors and products.

        Args:
            configurations: The CVE's NVD "configurations" array
            catalog: Optional list of CPE names to match against instead of
                the local store

        Returns:
            JSON string with vendors, products, vulnerableProducts and
            vulnerableConfigs.
        """
        nodes = parse_configurations(configurations)
        lookup = MemoryCatalog.from_cpes(catalog) if catalog is not None else get_store()
        logger.info(f"Resolving {len(nodes)} configuration nodes")
        result = ConfigurationResolver(lookup).resolve(nodes)
        return json.dumps(result.to_dict(), indent=2)

    @mcp.tool()
    def get_stored_cve(cve_id: str) -> str:
        """Get a CVE from the local store with its resolved products.

        Args:
            cve_id: CVE identifier (e.g., "CVE-2024-3400")

        Returns:
            JSON string with the stored record.
        """
        record = get_store().get_cve(cve_id)
        if record is None:
            return json.dumps({"error": f"CVE {cve_id} not found in local store"})
        return json.dumps(record.to_dict(), indent=2, default=str)
