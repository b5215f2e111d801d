"""
Unit tests for the scoring engine.
"""
import pytest

from tenderscore.core.scoring import (
    GATE_FAILED_EXPLANATION,
    NO_MATCHES_EXPLANATION,
    CpvCode,
    LeadPartner,
    MinimumRequirement,
    NegativeKeyword,
    ProfileCriteria,
    Solo,
    SupportKeyword,
    TenderRecord,
    compute_criteria_fingerprint,
    score,
    score_combination,
)


# ============= Sample Data =============

PROFILE = ProfileCriteria(
    id=1,
    organization_id=10,
    name="Acme",
    is_own_profile=True,
    minimum_requirements=(MinimumRequirement("IT"),),
    support_keywords=(SupportKeyword("drift", 2), SupportKeyword("support", 1)),
    negative_keywords=(NegativeKeyword("vedlikehold", -3),),
    cpv_codes=(CpvCode("7200", 1),),
)


def _profile(**overrides):
    data = {
        "id": 2,
        "organization_id": 10,
        "minimum_requirements": (MinimumRequirement("IT"),),
    }
    data.update(overrides)
    return ProfileCriteria(**data)


# ============= Concrete Scenarios =============

class TestScenarios:

    def test_it_operations_tender(self):
        """Gate via title, two support keywords and a CPV prefix give 4 points."""
        tender = TenderRecord(id=1, title="IT-drift og support for kommune", body="", cpv_codes=("72000000",))
        result = score(tender, PROFILE)

        assert result.qualified
        assert result.all_minimum_requirements_met
        assert result.met_minimum_requirements[0].keyword == "IT"
        assert result.met_minimum_requirements[0].found_in == "title"
        assert result.support_score == 3
        assert result.negative_score == 0
        assert result.cpv_score == 1
        assert result.synergy_bonus == 0
        assert result.total_score == 4
        assert result.matched_cpv_codes[0].matched_code == "72000000"
        assert result.explanation == "IT, drift(+2), support(+1), 7200(+1) = 4 poeng"

    def test_school_tender_passes_gate_through_body(self):
        """'it' is found in the body ('IT-komponenter') but nothing else matches."""
        tender = TenderRecord(id=2, title="Bygg av ny skole", body="ingen IT-komponenter", cpv_codes=())
        result = score(tender, PROFILE)

        assert result.qualified
        assert result.met_minimum_requirements[0].found_in == "description"
        assert result.support_score == 0
        assert result.total_score == 0
        assert result.explanation == NO_MATCHES_EXPLANATION

    def test_short_keyword_matches_inside_words(self):
        """Known limitation: containment is literal, so 'it' matches 'kvalitet'."""
        tender = TenderRecord(id=3, title="Kvalitetssikring av anlegg", body="")
        result = score(tender, PROFILE)

        assert result.qualified
        assert result.met_minimum_requirements[0].found_in == "title"

    def test_negative_keyword_in_explanation(self):
        tender = TenderRecord(id=4, title="IT vedlikehold og drift", body="")
        result = score(tender, PROFILE)

        assert result.negative_score == -3
        assert result.total_score == -1
        assert result.explanation == "IT, drift(+2), vedlikehold(-3) = -1 poeng"


# ============= Gate =============

class TestGate:

    def test_no_requirement_met_disqualifies(self):
        tender = TenderRecord(id=1, title="Snøbrøyting", body="vinterdrift", cpv_codes=("90620000",))
        profile = _profile(
            minimum_requirements=(MinimumRequirement("skole"),),
            support_keywords=(SupportKeyword("drift", 2),),
            cpv_codes=(CpvCode("9062", 5),),
        )
        result = score(tender, profile)

        assert not result.qualified
        assert not result.all_minimum_requirements_met
        assert result.total_score == 0
        assert result.support_score == result.cpv_score == result.negative_score == 0
        assert result.matched_support_keywords == ()
        assert result.missing_minimum_requirements == ("skole",)
        assert result.explanation == GATE_FAILED_EXPLANATION

    def test_profile_without_requirements_never_qualifies(self):
        tender = TenderRecord(id=1, title="IT-drift", body="")
        result = score(tender, _profile(minimum_requirements=(), support_keywords=(SupportKeyword("drift"),)))

        assert not result.qualified
        assert result.total_score == 0

    def test_one_requirement_is_enough(self):
        tender = TenderRecord(id=1, title="IT-drift", body="")
        profile = _profile(minimum_requirements=(MinimumRequirement("IT"), MinimumRequirement("skole")))
        result = score(tender, profile)

        assert result.qualified
        assert not result.all_minimum_requirements_met
        assert result.missing_minimum_requirements == ("skole",)

    def test_requirement_found_in_cpv_code(self):
        tender = TenderRecord(id=1, title="Rammeavtale", body="", cpv_codes=("72000000",))
        result = score(tender, _profile(minimum_requirements=(MinimumRequirement("7200"),)))

        assert result.qualified
        assert result.met_minimum_requirements[0].found_in == "cpv"
        assert result.total_score == 0

    def test_title_is_searched_before_body(self):
        tender = TenderRecord(id=1, title="IT", body="IT")
        result = score(tender, _profile())

        assert result.met_minimum_requirements[0].found_in == "title"


# ============= Scoring =============

class TestScoring:

    def test_repeated_keyword_scores_once(self):
        tender = TenderRecord(id=1, title="Tjenester", body="IT IT IT")
        profile = _profile(support_keywords=(SupportKeyword("IT", 2), SupportKeyword("it", 5)))
        result = score(tender, profile)

        assert result.support_score == 2
        assert len(result.matched_support_keywords) == 1

    def test_repeated_negative_keyword_penalizes_once(self):
        tender = TenderRecord(id=1, title="IT vedlikehold", body="Vedlikehold av anlegg")
        profile = _profile(
            negative_keywords=(NegativeKeyword("vedlikehold", -3), NegativeKeyword("VEDLIKEHOLD", -4)),
        )
        result = score(tender, profile)

        assert result.negative_score == -3
        assert len(result.matched_negative_keywords) == 1

    @pytest.mark.parametrize("weight", [-3, 3])
    def test_negative_weight_sign_conventions(self, weight):
        tender = TenderRecord(id=1, title="IT vedlikehold", body="")
        result = score(tender, _profile(negative_keywords=(NegativeKeyword("vedlikehold", weight),)))

        assert result.negative_score == -3
        assert result.matched_negative_keywords[0].weight == -3

    def test_cpv_is_prefix_not_substring(self):
        tender = TenderRecord(id=1, title="IT", body="", cpv_codes=("72000000",))
        result = score(tender, _profile(cpv_codes=(CpvCode("2000", 4), CpvCode("72", 1))))

        assert result.cpv_score == 1
        assert [m.keyword for m in result.matched_cpv_codes] == ["72"]

    def test_missing_body_and_cpv(self):
        tender = TenderRecord(id=1, title="IT-drift", body=None, cpv_codes=())
        result = score(tender, _profile(support_keywords=(SupportKeyword("drift", 2),), cpv_codes=(CpvCode("72"),)))

        assert result.support_score == 2
        assert result.cpv_score == 0

    def test_total_is_sum_of_parts(self):
        tender = TenderRecord(id=1, title="IT-drift vedlikehold", body="support", cpv_codes=("72100000",))
        result = score(tender, PROFILE)

        assert result.total_score == (
            result.support_score + result.negative_score + result.cpv_score + result.synergy_bonus
        )
        assert result.matched_support_keywords[1].found_in == "description"

    def test_scoring_is_deterministic(self):
        tender = TenderRecord(id=1, title="IT-drift og support for kommune", cpv_codes=("72000000",))

        assert score(tender, PROFILE) == score(tender, PROFILE)
        assert score(tender, PROFILE).to_row() == score(tender, PROFILE).to_row()


# ============= Fingerprints and Combinations =============

class TestFingerprint:

    def test_ignores_order_and_case(self):
        a = _profile(support_keywords=(SupportKeyword("Drift", 2), SupportKeyword("support", 1)))
        b = _profile(support_keywords=(SupportKeyword("support", 1), SupportKeyword("drift", 2)))

        assert compute_criteria_fingerprint(a) == compute_criteria_fingerprint(b)
        assert len(compute_criteria_fingerprint(a)) == 32

    def test_changes_with_weight(self):
        a = _profile(support_keywords=(SupportKeyword("drift", 2),))
        b = _profile(support_keywords=(SupportKeyword("drift", 3),))

        assert compute_criteria_fingerprint(a) != compute_criteria_fingerprint(b)

    def test_result_carries_fingerprint(self):
        result = score(TenderRecord(id=1, title="IT"), PROFILE)

        assert result.criteria_fingerprint == compute_criteria_fingerprint(PROFILE)


class TestCombinations:

    def test_solo_scores_like_profile(self):
        tender = TenderRecord(id=1, title="IT-drift", cpv_codes=("72000000",))

        assert score_combination(tender, Solo(PROFILE)) == score(tender, PROFILE)
        assert Solo(PROFILE).combination_type == "solo"

    def test_pairs_not_supported(self):
        tender = TenderRecord(id=1, title="IT-drift")

        with pytest.raises(NotImplementedError):
            score_combination(tender, LeadPartner(PROFILE, _profile()))

    def test_criteria_from_dict(self):
        profile = ProfileCriteria.from_dict({
            "id": 5,
            "organization_id": 1,
            "minimum_requirements": ["IT", {"keyword": "drift"}],
            "support_keywords": [{"keyword": "support"}],
            "cpv_codes": [{"cpv_code": "7200", "weight": 2}],
        })

        assert [r.keyword for r in profile.minimum_requirements] == ["IT", "drift"]
        assert profile.support_keywords[0].weight == 1
        assert profile.negative_keywords == ()
        assert profile.cpv_codes[0] == CpvCode("7200", 2)
