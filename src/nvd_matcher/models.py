"""Typed records for NVD feed data.

Raw feed JSON is converted into these records at the ingestion boundary;
the matching core only ever sees the typed forms.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .cpe import parse_vendor_product, parse_version
from .version import padded_version


def _bound(data: dict, key: str) -> Optional[str]:
    """Read a version bound, treating empty strings as absent."""
    value = data.get(key)
    return value or None


@dataclass
class RangeCondition:
    """One ``cpeMatch`` clause of a CVE configuration."""

    criteria: str
    vulnerable: bool = True
    version_start_excluding: Optional[str] = None
    version_start_including: Optional[str] = None
    version_end_excluding: Optional[str] = None
    version_end_including: Optional[str] = None
    match_criteria_id: str = ""

    @property
    def has_bounds(self) -> bool:
        return any(
            (
                self.version_start_excluding,
                self.version_start_including,
                self.version_end_excluding,
                self.version_end_including,
            )
        )

    def to_dict(self) -> dict:
        """Convert to dictionary using the NVD field names."""
        result: dict[str, Any] = {
            "criteria": self.criteria,
            "vulnerable": self.vulnerable,
        }
        if self.match_criteria_id:
            result["matchCriteriaId"] = self.match_criteria_id
        for key, value in (
            ("versionStartExcluding", self.version_start_excluding),
            ("versionStartIncluding", self.version_start_including),
            ("versionEndExcluding", self.version_end_excluding),
            ("versionEndIncluding", self.version_end_including),
        ):
            if value:
                result[key] = value
        return result

    @classmethod
    def from_dict(cls, data: dict) -> "RangeCondition":
        """Create from an NVD ``cpeMatch`` entry (API 2.0 or legacy 1.1 feed)."""
        return cls(
            criteria=data.get("criteria") or data.get("cpe23Uri") or "",
            vulnerable=bool(data.get("vulnerable", False)),
            version_start_excluding=_bound(data, "versionStartExcluding"),
            version_start_including=_bound(data, "versionStartIncluding"),
            version_end_excluding=_bound(data, "versionEndExcluding"),
            version_end_including=_bound(data, "versionEndIncluding"),
            match_criteria_id=data.get("matchCriteriaId", ""),
        )


@dataclass
class ConfigNode:
    """A node of a CVE configuration tree.

    ``operator`` and ``negate`` are kept for reference; matching unions
    every clause regardless of them.
    """

    operator: str = "OR"
    negate: bool = False
    cpe_match: list[RangeCondition] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "operator": self.operator,
            "negate": self.negate,
            "cpeMatch": [c.to_dict() for c in self.cpe_match],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ConfigNode":
        """Create from dictionary."""
        return cls(
            operator=data.get("operator", "OR"),
            negate=bool(data.get("negate", False)),
            cpe_match=[
                RangeCondition.from_dict(c)
                for c in data.get("cpeMatch") or data.get("cpe_match") or []
                if isinstance(c, dict)
            ],
        )


def _flatten_node(node: dict, nodes: list[ConfigNode]) -> None:
    nodes.append(ConfigNode.from_dict(node))
    # 1.1 feeds nest AND nodes under "children"
    for child in node.get("children") or []:
        if isinstance(child, dict):
            _flatten_node(child, nodes)


def parse_configurations(configurations: Optional[list | dict]) -> list[ConfigNode]:
    """Flatten NVD ``configurations`` into an ordered list of nodes.

    Accepts the API 2.0 shape (``[{"nodes": [...]}, ...]``), a bare list of
    nodes, and the 1.1 feed object (``{"CVE_data_version": ..., "nodes": [...]}``)
    whose nodes use ``cpe_match`` and nested ``children``.
    """
    if isinstance(configurations, dict):
        configurations = [configurations]
    nodes: list[ConfigNode] = []
    for config in configurations or []:
        if not isinstance(config, dict):
            continue
        if "nodes" in config:
            for node in config.get("nodes") or []:
                if isinstance(node, dict):
                    _flatten_node(node, nodes)
        else:
            _flatten_node(config, nodes)
    return nodes


@dataclass
class CatalogEntry:
    """A stored CPE name with its precomputed padded version."""

    cpe: str
    vendor: str
    product: str
    version: str
    padded_version: str
    deprecated: bool = False
    deprecated_by: str = ""
    cpe_name_id: str = ""
    created: str = ""
    last_modified: str = ""
    timestamp: str = ""

    @classmethod
    def from_cpe(cls, cpe: str, **kwargs: Any) -> "CatalogEntry":
        """Build an entry from a bare CPE name."""
        vendor, product = parse_vendor_product(cpe)
        version = parse_version(cpe)
        return cls(
            cpe=cpe,
            vendor=vendor,
            product=product,
            version=version,
            padded_version=padded_version(version),
            **kwargs,
        )

    @classmethod
    def from_nvd_product(cls, product: dict, timestamp: str = "") -> "CatalogEntry":
        """Build an entry from one item of the CPE API ``products`` list."""
        obj = product["cpe"]
        deprecated_by = obj.get("deprecatedBy") or ""
        if isinstance(deprecated_by, list):
            # API 2.0 lists replacement names as objects
            deprecated_by = ",".join(
                d.get("cpeName", "") if isinstance(d, dict) else str(d)
                for d in deprecated_by
            )
        return cls.from_cpe(
            obj["cpeName"],
            cpe_name_id=obj.get("cpeNameId", ""),
            deprecated=bool(obj.get("deprecated", False)),
            deprecated_by=deprecated_by,
            created=obj.get("created", ""),
            last_modified=obj.get("lastModified", ""),
            timestamp=timestamp,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "cpe": self.cpe,
            "cpeNameId": self.cpe_name_id,
            "vendor": self.vendor,
            "product": self.product,
            "version": self.version,
            "paddedVersion": self.padded_version,
            "deprecated": self.deprecated,
            "deprecatedBy": self.deprecated_by,
            "created": self.created,
            "lastModified": self.last_modified,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CatalogEntry":
        """Create from dictionary.

        The padded version is taken as stored; it is only computed when
        missing.
        """
        version = data.get("version", "")
        return cls(
            cpe=data["cpe"],
            vendor=data.get("vendor", ""),
            product=data.get("product", ""),
            version=version,
            padded_version=data.get("paddedVersion") or padded_version(version),
            deprecated=bool(data.get("deprecated", False)),
            deprecated_by=data.get("deprecatedBy", ""),
            cpe_name_id=data.get("cpeNameId", ""),
            created=data.get("created", ""),
            last_modified=data.get("lastModified", ""),
            timestamp=data.get("timestamp", ""),
        )


@dataclass
class MatchResult:
    """Affected entities resolved for one CVE."""

    vendors: set[str] = field(default_factory=set)
    products: set[str] = field(default_factory=set)
    vulnerable_configs: set[str] = field(default_factory=set)
    vulnerable_products: set[str] = field(default_factory=set)

    def add_config(self, cpe: str) -> None:
        self.vulnerable_configs.add(cpe)

    def add_product(self, cpe: str, vendor: str, product: str) -> None:
        """Record a vulnerable CPE together with its vendor and product."""
        self.vulnerable_products.add(cpe)
        self.vulnerable_configs.add(cpe)
        self.vendors.add(vendor)
        self.products.add(product)

    def is_empty(self) -> bool:
        return not (self.vulnerable_configs or self.vulnerable_products)

    def to_dict(self) -> dict[str, list[str]]:
        """Convert to dictionary with sorted lists."""
        return {
            "vendors": sorted(self.vendors),
            "products": sorted(self.products),
            "vulnerableConfigs": sorted(self.vulnerable_configs),
            "vulnerableProducts": sorted(self.vulnerable_products),
        }


@dataclass
class CvssScore:
    """One CVSS metric attached to a CVE."""

    version: str
    base_score: float
    severity: str

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "version": self.version,
            "baseScore": self.base_score,
            "severity": self.severity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CvssScore":
        """Create from dictionary."""
        return cls(
            version=data.get("version", ""),
            base_score=data.get("baseScore", 0.0),
            severity=data.get("severity", ""),
        )


@dataclass
class VulnerabilityRecord:
    """A CVE projected for storage, including its resolved products."""

    cve_id: str
    description: str = ""
    nvd_status: str = ""
    references: list[str] = field(default_factory=list)
    cvss: list[CvssScore] = field(default_factory=list)
    cwe: str = "Unknown"
    vulnerable_configs: list[str] = field(default_factory=list)
    vulnerable_products: list[str] = field(default_factory=list)
    vendors: list[str] = field(default_factory=list)
    products: list[str] = field(default_factory=list)
    published: str = ""
    last_modified: str = ""
    timestamp: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "cveId": self.cve_id,
            "description": self.description,
            "nvdStatus": self.nvd_status,
            "references": self.references,
            "cvss": [c.to_dict() for c in self.cvss],
            "cwe": self.cwe,
            "vulnerableConfigs": self.vulnerable_configs,
            "vulnerableProducts": self.vulnerable_products,
            "vendors": self.vendors,
            "products": self.products,
            "published": self.published,
            "lastModified": self.last_modified,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "VulnerabilityRecord":
        """Create from dictionary."""
        return cls(
            cve_id=data["cveId"],
            description=data.get("description", ""),
            nvd_status=data.get("nvdStatus", ""),
            references=data.get("references", []),
            cvss=[CvssScore.from_dict(c) for c in data.get("cvss", [])],
            cwe=data.get("cwe", "Unknown"),
            vulnerable_configs=data.get("vulnerableConfigs", []),
            vulnerable_products=data.get("vulnerableProducts", []),
            vendors=data.get("vendors", []),
            products=data.get("products", []),
            published=data.get("published", ""),
            last_modified=data.get("lastModified", ""),
            timestamp=data.get("timestamp", ""),
        )
