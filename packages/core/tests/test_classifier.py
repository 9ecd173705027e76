"""Tests for the compliance risk and pricing classifier."""

from decimal import Decimal

import pytest
from structlog.testing import capture_logs

from handy_core import (
    ClassificationResult,
    ComplexityLabel,
    ComplianceClassifier,
    RiskLevel,
    UserComplianceProfile,
    classify_profile,
)
from handy_core.classifier import (
    classify_complexity,
    classify_risk_level,
    compute_complexity_score,
    compute_risk_score,
    count_countries,
    count_reporting_exchanges,
    jurisdiction_points,
    price_range_for,
)
from handy_core.models import PreviousCountry
from handy_core.reference_data import PRICE_ON_APPLICATION, REFERENCE_DATA_VERSION


@pytest.fixture
def critical_profile() -> UserComplianceProfile:
    """DAC8 resident on three reporting exchanges with unreported gains."""
    return UserComplianceProfile(
        residence_country="DE",
        exchanges_used={"binance", "coinbase", "kraken"},
        activated_risk_factors={"unreported"},
    )


@pytest.fixture
def multi_country_profile() -> UserComplianceProfile:
    """Two countries, two assets, two years, DeFi and 30+ exchanges."""
    return UserComplianceProfile(
        residence_country="US",
        previous_countries=[
            PreviousCountry(country_code="GB", moved_from="2018-01-01", moved_to="2022-06-30"),
        ],
        asset_types={"crypto", "stocks"},
        tax_years_in_scope={"2024/25", "2023/24"},
        used_defi=True,
        exchange_count="30+",
    )


class TestRiskScore:
    """Test suite for compute_risk_score and its contributions."""

    def test_dac8_with_reporting_exchanges_and_unreported_gains(self, critical_profile):
        """3 (DAC8) + 2 (three reporting exchanges) + 3 (unreported) = 8."""
        assert compute_risk_score(critical_profile) == 8
        assert classify_risk_level(8) == RiskLevel.CRITICAL

    def test_carf_country_alone_is_low(self):
        """A CARF resident with nothing else scores 2."""
        profile = UserComplianceProfile(residence_country="GB")

        assert compute_risk_score(profile) == 2
        assert classify_risk_level(2) == RiskLevel.LOW

    @pytest.mark.parametrize("country", ["", "NZ", "xx", "  "])
    def test_unknown_or_blank_country_contributes_zero(self, country):
        profile = UserComplianceProfile(residence_country=country)

        assert jurisdiction_points(profile.residence_country) == 0
        assert compute_risk_score(profile) == 0

    def test_lowercase_country_is_recognised(self):
        profile = UserComplianceProfile(residence_country="fr")
        assert compute_risk_score(profile) == 3

    @pytest.mark.parametrize(
        "exchanges,expected_points",
        [
            (set(), 0),
            ({"dex_only"}, 0),
            ({"binance"}, 1),
            ({"binance", "dex_only"}, 1),
            ({"binance", "okx"}, 1),
            ({"binance", "okx", "bybit"}, 2),
            ({"binance", "okx", "bybit", "kraken", "other_cex"}, 2),
        ],
    )
    def test_reporting_exchange_contribution(self, exchanges, expected_points):
        profile = UserComplianceProfile(exchanges_used=exchanges)
        assert compute_risk_score(profile) == expected_points

    def test_unknown_exchanges_ignored(self):
        assert count_reporting_exchanges(["binance", "not_a_venue", "dex_only"]) == 1

    def test_unknown_risk_factors_ignored(self):
        profile = UserComplianceProfile(activated_risk_factors={"defi", "moon_landing"})
        assert compute_risk_score(profile) == 2

    def test_all_factors_sum_weights(self):
        profile = UserComplianceProfile(
            activated_risk_factors={"unreported", "crypto_to_crypto", "defi", "foreign_exchanges"}
        )
        assert compute_risk_score(profile) == 3 + 1 + 2 + 2

    def test_adding_factors_never_decreases_score(self):
        """Score is non-decreasing as factors are switched on one by one."""
        factors = ["crypto_to_crypto", "unknown", "defi", "foreign_exchanges", "unreported"]
        previous = -1
        for i in range(len(factors) + 1):
            profile = UserComplianceProfile(
                residence_country="SE",
                exchanges_used={"kraken"},
                activated_risk_factors=set(factors[:i]),
            )
            score = compute_risk_score(profile)
            assert score >= previous
            previous = score

    def test_empty_profile_scores_zero(self):
        assert compute_risk_score(UserComplianceProfile()) == 0


class TestRiskLevel:
    """Test suite for classify_risk_level thresholds."""

    @pytest.mark.parametrize(
        "score,expected",
        [
            (0, RiskLevel.LOW),
            (2, RiskLevel.LOW),
            (3, RiskLevel.MEDIUM),
            (4, RiskLevel.MEDIUM),
            (5, RiskLevel.HIGH),
            (7, RiskLevel.HIGH),
            (8, RiskLevel.CRITICAL),
            (42, RiskLevel.CRITICAL),
        ],
    )
    def test_thresholds(self, score, expected):
        assert classify_risk_level(score) == expected

    def test_every_score_maps_to_one_level(self):
        for score in range(0, 30):
            assert classify_risk_level(score) in set(RiskLevel)
            assert classify_risk_level(score) == classify_risk_level(score)


class TestComplexity:
    """Test suite for the complexity score and tier."""

    def test_multi_country_profile_is_multi_jurisdiction(self, multi_country_profile):
        """countries=2 -> 2*2 + 2 assets + 2 years + 3 DeFi + 2 exchanges = 13."""
        score = compute_complexity_score(multi_country_profile)
        countries = count_countries(multi_country_profile)

        assert countries == 2
        assert score == 13
        assert classify_complexity(score, countries) == ComplexityLabel.MULTI_JURISDICTION_COMPLEX

    def test_single_country_high_score_is_complex(self, multi_country_profile):
        """Same answers with one country: 11, never multi-jurisdiction."""
        profile = multi_country_profile.model_copy(update={"previous_countries": []})
        score = compute_complexity_score(profile)

        assert count_countries(profile) == 1
        assert score == 11
        assert classify_complexity(score, 1) == ComplexityLabel.COMPLEX

    def test_two_countries_scoring_nine_is_complex(self):
        """Multi-jurisdiction needs 10 even with more than one country."""
        profile = UserComplianceProfile(
            residence_country="GB",
            previous_countries=[PreviousCountry(country_code="ES")],
            asset_types={"crypto", "stocks", "rental"},
            tax_years_in_scope={"2024/25", "2023/24"},
        )
        score = compute_complexity_score(profile)

        assert score == 9
        assert classify_complexity(score, count_countries(profile)) == ComplexityLabel.COMPLEX

    @pytest.mark.parametrize("score", range(0, 40))
    def test_single_country_never_multi_jurisdiction(self, score):
        assert classify_complexity(score, 1) != ComplexityLabel.MULTI_JURISDICTION_COMPLEX

    @pytest.mark.parametrize(
        "score,countries,expected",
        [
            (0, 1, ComplexityLabel.SIMPLE),
            (4, 1, ComplexityLabel.SIMPLE),
            (5, 1, ComplexityLabel.MODERATE),
            (7, 3, ComplexityLabel.MODERATE),
            (8, 1, ComplexityLabel.COMPLEX),
            (9, 2, ComplexityLabel.COMPLEX),
            (10, 1, ComplexityLabel.COMPLEX),
            (10, 2, ComplexityLabel.MULTI_JURISDICTION_COMPLEX),
        ],
    )
    def test_tier_boundaries(self, score, countries, expected):
        assert classify_complexity(score, countries) == expected

    def test_duplicate_and_blank_previous_countries(self):
        """Only distinct, non-blank previous countries count."""
        profile = UserComplianceProfile(
            residence_country="PT",
            previous_countries=[
                PreviousCountry(country_code="GB"),
                PreviousCountry(country_code="gb"),
                PreviousCountry(country_code=""),
                PreviousCountry(country_code="FR"),
            ],
        )
        assert count_countries(profile) == 3

    @pytest.mark.parametrize(
        "bucket,bonus",
        [(None, 0), ("1–5", 0), ("5–15", 0), ("15–30", 2), ("15-30", 2), ("30+", 2)],
    )
    def test_exchange_bucket_bonus(self, bucket, bonus):
        profile = UserComplianceProfile(residence_country="GB", exchange_count=bucket)
        assert compute_complexity_score(profile) == 2 + bonus

    @pytest.mark.parametrize("used_defi,bonus", [(True, 3), (False, 0), (None, 0)])
    def test_defi_bonus(self, used_defi, bonus):
        profile = UserComplianceProfile(residence_country="GB", used_defi=used_defi)
        assert compute_complexity_score(profile) == 2 + bonus

    def test_empty_profile_is_simple(self):
        profile = UserComplianceProfile()
        score = compute_complexity_score(profile)

        assert score == 2
        assert classify_complexity(score, count_countries(profile)) == ComplexityLabel.SIMPLE


class TestPriceRange:
    """Test suite for the literal price table."""

    @pytest.mark.parametrize(
        "label,low,high,text",
        [
            (ComplexityLabel.SIMPLE, "150", "350", "£150 – £350"),
            (ComplexityLabel.MODERATE, "350", "750", "£350 – £750"),
            (ComplexityLabel.COMPLEX, "750", "1500", "£750 – £1,500"),
            (ComplexityLabel.MULTI_JURISDICTION_COMPLEX, "1500", "3000", "£1,500 – £3,000+"),
        ],
    )
    def test_tiers(self, label, low, high, text):
        price = price_range_for(label)

        assert price.currency == "GBP"
        assert price.low == Decimal(low)
        assert price.high == Decimal(high)
        assert price.label == text
        assert price.is_poa is False

    def test_label_string_accepted(self):
        assert price_range_for("Complex") == price_range_for(ComplexityLabel.COMPLEX)
        assert price_range_for("MODERATE") == price_range_for(ComplexityLabel.MODERATE)

    @pytest.mark.parametrize("label", ["Bespoke", "", None])
    def test_unknown_label_is_poa(self, label):
        price = price_range_for(label)

        assert price == PRICE_ON_APPLICATION
        assert price.label == "POA"


class TestComplianceClassifier:
    """Test suite for the full classification."""

    def test_classify_returns_result(self, critical_profile):
        result = ComplianceClassifier().classify(critical_profile)

        assert isinstance(result, ClassificationResult)
        assert result.risk_score == 8
        assert result.risk_level == RiskLevel.CRITICAL
        assert result.reporting_exchange_count == 3
        assert result.reference_data_version == REFERENCE_DATA_VERSION

    def test_classify_complexity_fields(self, multi_country_profile):
        result = classify_profile(multi_country_profile)

        assert result.complexity_score == 13
        assert result.country_count == 2
        assert result.complexity_label == ComplexityLabel.MULTI_JURISDICTION_COMPLEX
        assert result.estimated_price_range.label == "£1,500 – £3,000+"
        # US is CARF, no exchanges or factors selected
        assert result.risk_score == 2

    def test_classify_is_repeatable(self, multi_country_profile):
        """Identical profiles give identical results, including the breakdown."""
        classifier = ComplianceClassifier()

        first = classifier.classify(multi_country_profile)
        second = classifier.classify(multi_country_profile)

        assert first == second
        assert first.model_dump() == second.model_dump()

    def test_breakdown_records_each_step(self, critical_profile):
        result = classify_profile(critical_profile)

        step_names = [entry.step for entry in result.breakdown]
        assert step_names == [
            "jurisdiction_regime",
            "reporting_exchanges",
            "risk_factors",
            "risk_level",
            "complexity_score",
            "complexity_tier",
        ]
        regime_step = result.breakdown[0]
        assert "dac8" in regime_step.input_value
        assert regime_step.output_value == "3"

    def test_methods_match_module_functions(self, critical_profile):
        classifier = ComplianceClassifier()

        assert classifier.compute_risk_score(critical_profile) == compute_risk_score(critical_profile)
        assert classifier.classify_risk_level(5) == RiskLevel.HIGH
        assert classifier.compute_complexity_score(critical_profile) == 2
        assert classifier.classify_complexity(9, 2) == ComplexityLabel.COMPLEX
        assert classifier.price_range_for(ComplexityLabel.SIMPLE).label == "£150 – £350"

    def test_custom_reference_version(self, critical_profile):
        result = ComplianceClassifier(reference_data_version="test-v1").classify(critical_profile)
        assert result.reference_data_version == "test-v1"

    def test_partial_profile_does_not_raise(self):
        """A questionnaire with only some answers still classifies."""
        profile = UserComplianceProfile.model_validate({
            "residence_country": "",
            "previous_countries": [{"country_code": "", "moved_from": "", "moved_to": ""}],
            "asset_types": ["crypto"],
            "exchange_count": "",
            "used_defi": None,
        })
        result = classify_profile(profile)

        assert result.risk_level == RiskLevel.LOW
        assert result.country_count == 1
        assert result.complexity_label == ComplexityLabel.SIMPLE

    def test_classification_is_logged(self, critical_profile):
        with capture_logs() as logs:
            classify_profile(critical_profile)

        summary = [entry for entry in logs if entry["event"] == "profile_classified"]
        assert len(summary) == 1
        assert summary[0]["risk_level"] == "critical"
        assert summary[0]["risk_score"] == 8
