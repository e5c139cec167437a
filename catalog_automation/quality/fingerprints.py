"""
Mock-data fingerprints.

Exact-value field combinations known to come from placeholder data. The
table is ordered and versioned: bump FINGERPRINT_VERSION whenever an entry is
added, removed or changed so pass reports can be compared across versions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

FINGERPRINT_VERSION = 1


@dataclass(frozen=True)
class Fingerprint:
    """A named exact-match pattern over record fields."""
    name: str
    fields: Tuple[Tuple[str, Any], ...]

    @property
    def field_names(self) -> List[str]:
        return [name for name, _ in self.fields]

    def as_dict(self) -> Dict[str, Any]:
        return dict(self.fields)

    def matches(self, record: Any) -> bool:
        """True when every field named here equals the record's value exactly."""
        for name, expected in self.fields:
            actual = getattr(record, name, None)
            if name == "growth":
                if not _growth_equals(actual, expected):
                    return False
            elif actual is None or actual != expected:
                return False
        return True


def _growth_equals(actual: Any, expected: Any) -> bool:
    if actual is None:
        return False
    actual = str(actual)
    expected = str(expected)
    return actual == expected or actual == f"+{expected}"


def _fp(name: str, **fields: Any) -> Fingerprint:
    return Fingerprint(name=name, fields=tuple(fields.items()))


MOCK_DATA_FINGERPRINTS: Tuple[Fingerprint, ...] = (
    _fp("template-full", rating=4.2, review_count=189, weekly_users=150000, growth="28%"),
    _fp("template-core", rating=4.2, review_count=189, weekly_users=150000),
    _fp("template-rating-reviews", rating=4.2, review_count=189),
    _fp("users-150k", weekly_users=150000),
    _fp("users-100k", weekly_users=100000),
    _fp("users-50k", weekly_users=50000),
    _fp("reviews-100", review_count=100),
    _fp("reviews-500", review_count=500),
    _fp("rating-4.0", rating=4.0),
    _fp("rating-4.5", rating=4.5),
    _fp("rating-5.0", rating=5.0),
)


def match_fingerprints(record: Any, fingerprints: Tuple[Fingerprint, ...] = MOCK_DATA_FINGERPRINTS) -> List[Fingerprint]:
    """
    Return every fingerprint the record matches, in table order.

    Records already corrected by a quality pass are never matched, so a fix
    cannot be re-flagged by the same table.
    """
    if getattr(record, "data_quality_fixed", False):
        return []
    return [fp for fp in fingerprints if fp.matches(record)]


def matched_fields(matches: List[Fingerprint]) -> List[str]:
    """Union of field names across matches, first-seen order."""
    names: List[str] = []
    for fp in matches:
        for name in fp.field_names:
            if name not in names:
                names.append(name)
    return names


__all__ = [
    "FINGERPRINT_VERSION",
    "Fingerprint",
    "MOCK_DATA_FINGERPRINTS",
    "match_fingerprints",
    "matched_fields",
]
