"""
Scoring units.

A combination is either a single profile scored on its own, or a
lead/partner pair. Only solo scoring is implemented; pair variants are
where cross-profile synergy scoring would plug in.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .records import ProfileCriteria

SOLO = "solo"
LEAD_PARTNER = "lead_partner"
PARTNER_LED = "partner_led"


@dataclass(frozen=True)
class Solo:
    profile: ProfileCriteria

    combination_type = SOLO

    @property
    def lead_profile(self) -> ProfileCriteria:
        return self.profile


@dataclass(frozen=True)
class LeadPartner:
    lead_profile: ProfileCriteria
    partner_profile: ProfileCriteria

    combination_type = LEAD_PARTNER


@dataclass(frozen=True)
class PartnerLed:
    lead_profile: ProfileCriteria
    partner_profile: ProfileCriteria

    combination_type = PARTNER_LED


Combination = Union[Solo, LeadPartner, PartnerLed]
