"""Compliance risk and pricing classification.

Two independent scores are derived from a questionnaire profile:

1. Risk score - jurisdiction regime + reporting exchanges + self-reported
   risk factors, bucketed into a RiskLevel for messaging.
2. Complexity score - countries, asset types, tax years, DeFi use and
   exchange volume, bucketed into a ComplexityLabel that selects a quoted
   price range.

Every function here is pure. Missing or unrecognised answers contribute
zero, so the classifier can be re-run on every answer while the user is
still filling in the questionnaire.
"""

from typing import Iterable, Optional, Union

import structlog

from .models import (
    ClassificationResult,
    ComplexityLabel,
    ExchangeCountBucket,
    PriceRange,
    RegimeKind,
    RiskLevel,
    ScoringStep,
    UserComplianceProfile,
)
from .reference_data import (
    get_exchange,
    get_jurisdiction,
    get_price_range,
    get_reference_data_version,
    get_risk_factor,
)

logger = structlog.get_logger()


# =============================================================================
# WEIGHTS AND THRESHOLDS
# =============================================================================

REGIME_POINTS = {
    RegimeKind.DAC8: 3,
    RegimeKind.CARF: 2,
    RegimeKind.NONE: 0,
}

MANY_REPORTING_EXCHANGES = 3
MANY_REPORTING_EXCHANGES_POINTS = 2
SOME_REPORTING_EXCHANGES_POINTS = 1

# Highest first, inclusive lower bounds
RISK_LEVEL_THRESHOLDS = (
    (8, RiskLevel.CRITICAL),
    (5, RiskLevel.HIGH),
    (3, RiskLevel.MEDIUM),
)

COUNTRY_WEIGHT = 2
DEFI_POINTS = 3
MANY_EXCHANGES_POINTS = 2
MANY_EXCHANGE_BUCKETS = frozenset({
    ExchangeCountBucket.FIFTEEN_TO_THIRTY.value,
    ExchangeCountBucket.THIRTY_PLUS.value,
})

MULTI_JURISDICTION_MIN_SCORE = 10
COMPLEX_MIN_SCORE = 8
MODERATE_MIN_SCORE = 5


# =============================================================================
# RISK SCORE
# =============================================================================

def jurisdiction_points(country_code: Optional[str]) -> int:
    """Points for the residence regime; unknown or blank countries score 0."""
    regime = get_jurisdiction(country_code)
    if regime is None:
        return 0
    return REGIME_POINTS[regime.regime_kind]


def count_reporting_exchanges(exchange_ids: Iterable[str]) -> int:
    """Number of distinct known exchanges that report to tax authorities."""
    count = 0
    for exchange_id in set(exchange_ids):
        exchange = get_exchange(exchange_id)
        if exchange is not None and exchange.reports_to_authorities:
            count += 1
    return count


def exchange_points(reporting_count: int) -> int:
    if reporting_count >= MANY_REPORTING_EXCHANGES:
        return MANY_REPORTING_EXCHANGES_POINTS
    if reporting_count >= 1:
        return SOME_REPORTING_EXCHANGES_POINTS
    return 0


def risk_factor_points(factor_ids: Iterable[str]) -> int:
    """Sum of weights of known risk factors; unknown ids are ignored."""
    total = 0
    for factor_id in set(factor_ids):
        factor = get_risk_factor(factor_id)
        if factor is not None:
            total += factor.weight
    return total


def compute_risk_score(profile: UserComplianceProfile) -> int:
    """Additive risk score: regime + reporting exchanges + risk factors."""
    return (
        jurisdiction_points(profile.residence_country)
        + exchange_points(count_reporting_exchanges(profile.exchanges_used))
        + risk_factor_points(profile.activated_risk_factors)
    )


def classify_risk_level(score: int) -> RiskLevel:
    """Bucket a risk score: >=8 critical, >=5 high, >=3 medium, else low."""
    for minimum, level in RISK_LEVEL_THRESHOLDS:
        if score >= minimum:
            return level
    return RiskLevel.LOW


# =============================================================================
# COMPLEXITY SCORE
# =============================================================================

def count_countries(profile: UserComplianceProfile) -> int:
    """Current residence plus distinct previous countries."""
    return 1 + len(profile.distinct_previous_countries)


def has_many_exchanges(bucket: Optional[str]) -> bool:
    return bucket in MANY_EXCHANGE_BUCKETS


def compute_complexity_score(profile: UserComplianceProfile) -> int:
    """Pricing score over countries, assets, tax years, DeFi and exchanges.

    base = countries * 2 + asset types + tax years, then +3 for DeFi use and
    +2 when the user reports 15 or more exchanges.
    """
    score = (
        count_countries(profile) * COUNTRY_WEIGHT
        + len(profile.asset_types)
        + len(profile.tax_years_in_scope)
    )
    if profile.used_defi is True:
        score += DEFI_POINTS
    if has_many_exchanges(profile.exchange_count):
        score += MANY_EXCHANGES_POINTS
    return score


def classify_complexity(score: int, country_count: int) -> ComplexityLabel:
    """Map a complexity score to a pricing tier.

    The multi-jurisdiction tier is checked first and needs a score of 10,
    while plain Complex needs only 8: a two-country profile scoring 9 is
    Complex.
    """
    if country_count > 1 and score >= MULTI_JURISDICTION_MIN_SCORE:
        return ComplexityLabel.MULTI_JURISDICTION_COMPLEX
    if score >= COMPLEX_MIN_SCORE:
        return ComplexityLabel.COMPLEX
    if score >= MODERATE_MIN_SCORE:
        return ComplexityLabel.MODERATE
    return ComplexityLabel.SIMPLE


def price_range_for(label: Union[ComplexityLabel, str, None]) -> PriceRange:
    """Quoted price band for a tier; POA for anything unrecognised."""
    return get_price_range(label)


# =============================================================================
# CLASSIFIER
# =============================================================================

class ComplianceClassifier:
    """
    Classify a questionnaire profile into a risk level and pricing tier.

    Holds no per-call state, so one instance can be shared and called
    repeatedly (e.g. on every answer change). Each call records the
    contributions it summed as ScoringStep rows on the result.
    """

    def __init__(self, reference_data_version: Optional[str] = None):
        """
        Args:
            reference_data_version: Version label stamped on results
                (default: current reference data version)
        """
        self.reference_data_version = reference_data_version or get_reference_data_version()

    def _log_step(
        self,
        steps: list[ScoringStep],
        step: str,
        input_value: str,
        output_value: str,
        source: str,
    ) -> None:
        steps.append(
            ScoringStep(
                step=step,
                input_value=input_value,
                output_value=output_value,
                source=source,
            )
        )
        logger.debug(
            "classification_step",
            step=step,
            input=input_value,
            output=output_value,
            source=source,
        )

    def compute_risk_score(self, profile: UserComplianceProfile) -> int:
        return compute_risk_score(profile)

    def classify_risk_level(self, score: int) -> RiskLevel:
        return classify_risk_level(score)

    def compute_complexity_score(self, profile: UserComplianceProfile) -> int:
        return compute_complexity_score(profile)

    def classify_complexity(self, score: int, country_count: int) -> ComplexityLabel:
        return classify_complexity(score, country_count)

    def price_range_for(self, label: Union[ComplexityLabel, str, None]) -> PriceRange:
        return price_range_for(label)

    def classify(self, profile: UserComplianceProfile) -> ClassificationResult:
        """
        Compute risk and complexity for a profile.

        Args:
            profile: Answers collected so far

        Returns:
            ClassificationResult with a breakdown of every contribution
        """
        steps: list[ScoringStep] = []

        # Step 1: Risk score
        regime = get_jurisdiction(profile.residence_country)
        regime_points = jurisdiction_points(profile.residence_country)
        self._log_step(
            steps,
            step="jurisdiction_regime",
            input_value=f"country={profile.residence_country or '-'}, "
                        f"regime={regime.regime_kind.value if regime else 'unknown'}",
            output_value=str(regime_points),
            source="Jurisdiction regime table",
        )

        reporting_count = count_reporting_exchanges(profile.exchanges_used)
        reporting_points = exchange_points(reporting_count)
        self._log_step(
            steps,
            step="reporting_exchanges",
            input_value=f"{len(profile.exchanges_used)} exchanges, {reporting_count} reporting",
            output_value=str(reporting_points),
            source="Exchange reporting table",
        )

        factor_points = risk_factor_points(profile.activated_risk_factors)
        self._log_step(
            steps,
            step="risk_factors",
            input_value=", ".join(sorted(profile.activated_risk_factors)) or "none",
            output_value=str(factor_points),
            source="Risk factor weights",
        )

        risk_score = regime_points + reporting_points + factor_points
        risk_level = classify_risk_level(risk_score)
        self._log_step(
            steps,
            step="risk_level",
            input_value=f"{regime_points} + {reporting_points} + {factor_points}",
            output_value=f"{risk_score} ({risk_level.value})",
            source="Risk thresholds 3/5/8",
        )

        # Step 2: Complexity score
        country_count = count_countries(profile)
        complexity_score = compute_complexity_score(profile)
        self._log_step(
            steps,
            step="complexity_score",
            input_value=(
                f"countries={country_count}, assets={len(profile.asset_types)}, "
                f"years={len(profile.tax_years_in_scope)}, defi={profile.used_defi}, "
                f"exchanges={profile.exchange_count or '-'}"
            ),
            output_value=str(complexity_score),
            source="Complexity formula",
        )

        complexity_label = classify_complexity(complexity_score, country_count)
        price = price_range_for(complexity_label)
        self._log_step(
            steps,
            step="complexity_tier",
            input_value=f"score={complexity_score}, countries={country_count}",
            output_value=f"{complexity_label.value} ({price.label})",
            source="Complexity thresholds 5/8/10 and price table",
        )

        logger.info(
            "profile_classified",
            risk_score=risk_score,
            risk_level=risk_level.value,
            complexity_score=complexity_score,
            complexity_label=complexity_label.value,
            reference_data_version=self.reference_data_version,
        )

        return ClassificationResult(
            risk_score=risk_score,
            risk_level=risk_level,
            complexity_score=complexity_score,
            complexity_label=complexity_label,
            estimated_price_range=price,
            country_count=country_count,
            reporting_exchange_count=reporting_count,
            breakdown=steps,
            reference_data_version=self.reference_data_version,
        )


_default_classifier = ComplianceClassifier()


def classify_profile(profile: UserComplianceProfile) -> ClassificationResult:
    """Classify a profile with the default classifier."""
    return _default_classifier.classify(profile)
