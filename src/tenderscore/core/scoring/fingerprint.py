"""
Criteria fingerprints.

A fingerprint changes whenever a profile's keywords or weights change,
so stored evaluations computed against older criteria can be detected.
"""

from __future__ import annotations

import hashlib

import orjson

from .records import ProfileCriteria

# Fingerprint used to sweep every prior evaluation of a profile that no
# longer matches any tender.
NO_MATCHES_FINGERPRINT = "no-matches"


def compute_criteria_fingerprint(profile: ProfileCriteria) -> str:
    """Compute a 32-character fingerprint of a profile's criteria.

    Keywords are compared case-insensitively and the result does not
    depend on list order.
    """
    payload = {
        "minimum": sorted(r.keyword.lower() for r in profile.minimum_requirements),
        "support": sorted([k.keyword.lower(), k.weight] for k in profile.support_keywords),
        "negative": sorted([k.keyword.lower(), k.weight] for k in profile.negative_keywords),
        "cpv": sorted([c.code, c.weight] for c in profile.cpv_codes),
    }
    content = orjson.dumps(payload, option=orjson.OPT_SORT_KEYS)
    return hashlib.sha256(content).hexdigest()[:32]
