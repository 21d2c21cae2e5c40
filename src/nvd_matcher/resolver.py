"""Resolution of CVE configurations into affected CPEs, vendors and products."""

from __future__ import annotations

import logging
from typing import Iterable, Protocol

from .cpe import parse_vendor_product
from .models import CatalogEntry, ConfigNode, MatchResult, RangeCondition
from .query import build_range_query, RangeQuery

logger = logging.getLogger(__name__)


class CatalogLookup(Protocol):
    """Anything that can evaluate a RangeQuery against stored CPE names."""

    def lookup(self, query: RangeQuery) -> list[CatalogEntry]: ...


class ConfigurationResolver:
    """Walks CVE configuration nodes and collects what they affect.

    Every vulnerable clause contributes independently: node operators
    (AND/OR) and negation are not evaluated.  Errors raised by the catalog
    propagate to the caller.
    """

    def __init__(self, catalog: CatalogLookup):
        self.catalog = catalog

    def resolve(self, nodes: Iterable[ConfigNode]) -> MatchResult:
        """Resolve all clauses of all nodes into one MatchResult."""
        result = MatchResult()
        for node in nodes:
            for condition in node.cpe_match:
                self._resolve_condition(condition, result)
        return result

    def _resolve_condition(self, condition: RangeCondition, result: MatchResult) -> None:
        if not condition.criteria:
            return

        # Platforms that only complete a vulnerable combination
        if not condition.vulnerable:
            result.add_config(condition.criteria)
            return

        query = build_range_query(condition)
        if query is None:
            self._add_literal(condition.criteria, result)
            return

        entries = sorted(self.catalog.lookup(query), key=lambda e: e.padded_version)
        logger.debug(f"{condition.criteria}: {len(entries)} catalog matches for {query.to_filter()}")
        for entry in entries:
            result.add_product(entry.cpe, entry.vendor, entry.product)

    def _add_literal(self, cpe: str, result: MatchResult) -> None:
        vendor, product = parse_vendor_product(cpe)
        if not vendor or not product:
            logger.warning(f"Skipping malformed CPE name: {cpe!r}")
            return
        result.add_product(cpe, vendor, product)


def resolve_configurations(nodes: Iterable[ConfigNode], catalog: CatalogLookup) -> MatchResult:
    """Convenience wrapper around ConfigurationResolver."""
    return ConfigurationResolver(catalog).resolve(nodes)
