"""Projection of raw NVD CVE items into VulnerabilityRecords."""

from __future__ import annotations

from typing import Any, Optional

from .models import CvssScore, VulnerabilityRecord, parse_configurations
from .resolver import ConfigurationResolver

DEFAULT_CWE = "Unknown"


def extract_description(descriptions: Optional[list[dict]]) -> str:
    """Get the English description, falling back to the first one."""
    descriptions = descriptions or []
    for desc in descriptions:
        if desc.get("lang") == "en":
            return desc.get("value", "")
    if descriptions:
        return descriptions[0].get("value", "")
    return ""


def extract_cvss(metrics: Optional[dict[str, list]]) -> list[CvssScore]:
    """Collect every CVSS metric across all metric versions.

    Severity lives on the metric for v2 and inside ``cvssData`` for v3.x,
    so the metric value wins when both exist.
    """
    cvss = []
    for metric_list in (metrics or {}).values():
        for metric in metric_list or []:
            cvss_data = metric.get("cvssData", {})
            cvss.append(
                CvssScore(
                    version=cvss_data.get("version", ""),
                    base_score=cvss_data.get("baseScore", 0.0),
                    severity=metric.get("baseSeverity") or cvss_data.get("baseSeverity", ""),
                )
            )
    return cvss


def extract_cwe(weaknesses: Optional[list[dict]]) -> str:
    """Get the CWE id; the last English value wins."""
    value = DEFAULT_CWE
    for weakness in weaknesses or []:
        for desc in weakness.get("description", []):
            if desc.get("lang") == "en":
                value = desc.get("value", value)
    return value


def build_vulnerability_record(
    cve_data: dict[str, Any],
    resolver: ConfigurationResolver,
    timestamp: str = "",
) -> VulnerabilityRecord:
    """Project one ``vulnerabilities[].cve`` object, resolving its products.

    Raises whatever the resolver's catalog raises.
    """
    matches = resolver.resolve(parse_configurations(cve_data.get("configurations")))
    affected = matches.to_dict()
    return VulnerabilityRecord(
        cve_id=cve_data["id"],
        description=extract_description(cve_data.get("descriptions")),
        nvd_status=cve_data.get("vulnStatus", ""),
        references=[ref.get("url", "") for ref in cve_data.get("references", [])],
        cvss=extract_cvss(cve_data.get("metrics")),
        cwe=extract_cwe(cve_data.get("weaknesses")),
        vulnerable_configs=affected["vulnerableConfigs"],
        vulnerable_products=affected["vulnerableProducts"],
        vendors=affected["vendors"],
        products=affected["products"],
        published=cve_data.get("published", ""),
        last_modified=cve_data.get("lastModified", ""),
        timestamp=timestamp,
    )
