"""NVD Matcher - resolve CVE version ranges to concrete CPE names."""

__version__ = "0.1.0"

from .version import padded_version
from .cpe import parse_cpe23, parse_vendor_product, parse_version
from .models import CatalogEntry, ConfigNode, MatchResult, RangeCondition
from .query import RangeQuery, build_range_query
from .resolver import ConfigurationResolver, resolve_configurations

__all__ = [
    "__version__",
    "padded_version",
    "parse_cpe23",
    "parse_vendor_product",
    "parse_version",
    "CatalogEntry",
    "ConfigNode",
    "MatchResult",
    "RangeCondition",
    "RangeQuery",
    "build_range_query",
    "ConfigurationResolver",
    "resolve_configurations",
]
