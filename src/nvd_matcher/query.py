"""Version range queries over the CPE catalog.

A ``cpeMatch`` clause bounds the affected versions with up to four optional
fields.  ``build_range_query`` turns them into a ``RangeQuery`` on the stored
padded version.  Excluding bounds take precedence over including bounds on
the same side when a clause carries both.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .models import CatalogEntry, RangeCondition
from .version import padded_version

# Comparison operators and their document-store / SQL spellings
_OPERATORS: dict[str, tuple[Callable[[str, str], bool], str]] = {
    ">": (operator.gt, "$gt"),
    ">=": (operator.ge, "$gte"),
    "<": (operator.lt, "$lt"),
    "<=": (operator.le, "$lte"),
}


@dataclass(frozen=True)
class Bound:
    """One side of a range: an operator and an already padded value."""

    op: str
    value: str

    def accepts(self, candidate: str) -> bool:
        compare = _OPERATORS[self.op][0]
        return compare(candidate, self.value)

    @property
    def filter_key(self) -> str:
        return _OPERATORS[self.op][1]


@dataclass(frozen=True)
class RangeQuery:
    """Predicate selecting non-deprecated catalog entries of one CPE name
    whose padded version falls within the bounds."""

    cpe: str
    lower: Optional[Bound] = None
    upper: Optional[Bound] = None
    deprecated: bool = False

    @property
    def bounds(self) -> list[Bound]:
        return [b for b in (self.lower, self.upper) if b is not None]

    def matches(self, entry: CatalogEntry) -> bool:
        """Evaluate the predicate against a single catalog entry."""
        if entry.cpe != self.cpe or entry.deprecated != self.deprecated:
            return False
        return all(b.accepts(entry.padded_version) for b in self.bounds)

    def to_filter(self) -> dict[str, Any]:
        """Render as a document-store filter.

        Example: ``{"deprecated": False, "cpe": "...",
        "paddedVersion": {"$gte": "00001", "$lt": "00002"}}``
        """
        return {
            "deprecated": self.deprecated,
            "cpe": self.cpe,
            "paddedVersion": {b.filter_key: b.value for b in self.bounds},
        }

    def to_sql(self) -> tuple[str, list[Any]]:
        """Render as a SQL WHERE clause with positional parameters."""
        clauses = ["cpe = ?", "deprecated = ?"]
        params: list[Any] = [self.cpe, int(self.deprecated)]
        for b in self.bounds:
            clauses.append(f"padded_version {b.op} ?")
            params.append(b.value)
        return " AND ".join(clauses), params


def _lower_bound(condition: RangeCondition) -> Optional[Bound]:
    if condition.version_start_excluding:
        return Bound(">", padded_version(condition.version_start_excluding))
    if condition.version_start_including:
        return Bound(">=", padded_version(condition.version_start_including))
    return None


def _upper_bound(condition: RangeCondition) -> Optional[Bound]:
    if condition.version_end_excluding:
        return Bound("<", padded_version(condition.version_end_excluding))
    if condition.version_end_including:
        return Bound("<=", padded_version(condition.version_end_including))
    return None


def build_range_query(condition: RangeCondition) -> Optional[RangeQuery]:
    """Build the catalog query for a clause.

    Returns:
        RangeQuery, or None when the clause has no version bounds and its
        criteria should be taken as the match itself.
    """
    lower = _lower_bound(condition)
    upper = _upper_bound(condition)
    if lower is None and upper is None:
        return None
    return RangeQuery(cpe=condition.criteria, lower=lower, upper=upper)
