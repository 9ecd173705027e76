"""Risk explanations and recommended actions for the quick checker."""

from typing import Optional

import structlog

from .classifier import classify_risk_level, compute_risk_score, count_reporting_exchanges
from .models import JurisdictionRegime, RegimeKind, RiskGuidance, RiskLevel, UserComplianceProfile
from .reference_data import get_jurisdiction

logger = structlog.get_logger()

MAX_BULLETS = 3
GENERIC_REGIME_LABEL = "CARF/DAC8"


def _regime_label(regime: Optional[JurisdictionRegime]) -> str:
    if regime is None or regime.regime_kind == RegimeKind.NONE:
        return GENERIC_REGIME_LABEL
    return regime.regime_label


def _tax_authority(regime: Optional[JurisdictionRegime]) -> str:
    if regime is None:
        return "your tax authority"
    return f"{regime.label}'s tax authority"


def build_risk_bullets(profile: UserComplianceProfile) -> list[str]:
    """Up to three sentences explaining what drives the user's exposure."""
    regime = get_jurisdiction(profile.residence_country)
    regime_label = _regime_label(regime)
    factors = profile.activated_risk_factors
    bullets: list[str] = []

    if regime is not None and regime.regime_kind == RegimeKind.DAC8:
        bullets.append(
            "Under DAC8, crypto service providers in the EU are already collecting "
            f"and reporting your transaction data to {_tax_authority(regime)}."
        )
    elif regime is not None and regime.regime_kind == RegimeKind.CARF:
        bullets.append(
            "Under CARF, your exchanges will begin reporting your transaction data "
            f"to {_tax_authority(regime)} from {regime.exchange_date_label}."
        )

    if "unreported" in factors:
        bullets.append(
            "Unreported gains from previous years will become visible to tax "
            f"authorities once {regime_label} data exchange is active."
        )

    if "foreign_exchanges" in factors:
        bullets.append(
            "Foreign exchanges will share your data with your home country under "
            "cross-border information exchange agreements."
        )

    # Covered by the unreported-gains bullet when both are set
    if "crypto_to_crypto" in factors and "unreported" not in factors:
        where = regime.label if regime is not None else "most countries"
        bullets.append(
            f"Crypto-to-crypto trades are taxable events in {where}. "
            "Exchange data will reveal these transactions."
        )

    if "defi" in factors:
        bullets.append(
            "DeFi activity may not be directly reported by exchanges, but on-chain "
            "data is increasingly being cross-referenced by tax authorities."
        )

    reporting_count = count_reporting_exchanges(profile.exchanges_used)
    if reporting_count > 0 and len(bullets) < MAX_BULLETS:
        noun = "exchanges" if reporting_count > 1 else "exchange"
        verb = "are" if reporting_count > 1 else "is"
        bullets.append(
            f"{reporting_count} of your {noun} {verb} required to report under {regime_label}."
        )

    return bullets[:MAX_BULLETS]


def build_recommended_actions(
    risk_level: RiskLevel,
    country_code: Optional[str] = None,
) -> list[str]:
    """Three next steps, escalating with the risk level."""
    regime = get_jurisdiction(country_code)

    if risk_level in (RiskLevel.CRITICAL, RiskLevel.HIGH):
        return [
            "Review all crypto transactions across exchanges and wallets for past tax years",
            f"Consider a voluntary disclosure to {_tax_authority(regime)} before data "
            "exchange catches discrepancies",
            "Consult a tax professional experienced in crypto compliance. Penalties "
            "for voluntary disclosure are significantly lower",
        ]
    if risk_level == RiskLevel.MEDIUM:
        return [
            "Gather your exchange transaction history and confirm all disposals are accounted for",
            "Check that crypto-to-crypto trades have been reported as taxable events",
            "Consider a professional review to ensure nothing has been missed",
        ]

    if regime is not None:
        timeline = f"Stay informed about {_regime_label(regime)} reporting timelines for {regime.label}"
    else:
        timeline = f"Stay informed about {GENERIC_REGIME_LABEL} reporting timelines in your country"
    return [
        "Keep records of all transactions including cost basis documentation",
        timeline,
        "Ensure future tax returns account for all crypto activity",
    ]


def build_risk_guidance(
    profile: UserComplianceProfile,
    risk_level: Optional[RiskLevel] = None,
) -> RiskGuidance:
    """
    Explanations and next steps for a profile.

    Args:
        profile: Answers collected so far
        risk_level: Level already computed by the caller; derived from the
            profile when omitted

    Returns:
        RiskGuidance with at most three bullets and three actions
    """
    if risk_level is None:
        risk_level = classify_risk_level(compute_risk_score(profile))

    guidance = RiskGuidance(
        risk_level=risk_level,
        bullets=build_risk_bullets(profile),
        actions=build_recommended_actions(risk_level, profile.residence_country),
    )
    logger.debug(
        "risk_guidance_built",
        risk_level=risk_level.value,
        bullet_count=len(guidance.bullets),
    )
    return guidance
