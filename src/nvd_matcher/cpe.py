"""CPE (Common Platform Enumeration) name parsing.

CPE 2.3 format: cpe:2.3:part:vendor:product:version:update:edition:language:sw_edition:target_sw:target_hw:other

Vendor, product and version are read positionally.  Malformed names never
raise; they yield empty values which callers treat as "no match".
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# Field separator, ignoring backslash-escaped colons inside a component
_FIELD_RE = re.compile(r"(?<!\\):")

VENDOR_FIELD = 3
PRODUCT_FIELD = 4
VERSION_FIELD = 5
UPDATE_FIELD = 6

# Update values that do not refine the version
ANY_VALUE = "*"
NA_VALUE = "-"

COMPONENT_NAMES = [
    "part",
    "vendor",
    "product",
    "version",
    "update",
    "edition",
    "language",
    "sw_edition",
    "target_sw",
    "target_hw",
    "other",
]


@dataclass(frozen=True)
class CPEName:
    """Parsed components of a CPE 2.3 formatted string."""

    cpe: str
    part: str = ""
    vendor: str = ""
    product: str = ""
    version: str = ""
    update: str = ""
    edition: str = ""
    language: str = ""
    sw_edition: str = ""
    target_sw: str = ""
    target_hw: str = ""
    other: str = ""

    @property
    def is_valid(self) -> bool:
        return bool(self.vendor and self.product)

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary."""
        result = {"cpe": self.cpe}
        for name in COMPONENT_NAMES:
            result[name] = getattr(self, name)
        return result


def split_cpe(cpe: str) -> list[str]:
    """Split a CPE name into its colon-separated fields."""
    return _FIELD_RE.split(cpe)


def parse_cpe23(cpe: str) -> CPEName:
    """Parse a CPE 2.3 formatted string.

    Args:
        cpe: CPE 2.3 string

    Returns:
        CPEName with every component present in the string.  Missing
        components are empty strings; a string that is not CPE 2.3 at all
        yields an empty (invalid) CPEName.
    """
    if not cpe.startswith("cpe:2.3:"):
        return CPEName(cpe=cpe)

    parts = split_cpe(cpe)
    values = {}
    for i, name in enumerate(COMPONENT_NAMES):
        idx = i + 2  # Skip "cpe" and "2.3"
        if idx < len(parts):
            values[name] = parts[idx].replace("\\:", ":")
    return CPEName(cpe=cpe, **values)


def parse_vendor_product(cpe: str) -> tuple[str, str]:
    """Return the (vendor, product) pair of a CPE name.

    Both values are empty when the name has fewer than five fields.
    """
    parts = split_cpe(cpe)
    if len(parts) <= PRODUCT_FIELD:
        return "", ""
    return parts[VENDOR_FIELD], parts[PRODUCT_FIELD]


def parse_version(cpe: str) -> str:
    """Return the version of a CPE name, refined by its update field.

    ``cpe:2.3:a:cisco:ios:12.2:sr1:...`` gives ``12.2.sr1``; an update of
    ``*`` or ``-`` leaves the version alone.
    """
    parts = split_cpe(cpe)
    if len(parts) <= VERSION_FIELD:
        return ""
    version = parts[VERSION_FIELD]
    if len(parts) <= UPDATE_FIELD:
        return version
    update = parts[UPDATE_FIELD]
    if update in (ANY_VALUE, NA_VALUE):
        return version
    return f"{version}.{update}"
