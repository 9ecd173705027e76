"""Compliance map shown at the end of onboarding.

For every jurisdiction the user has lived in, the map shows the next filing
deadline, how many days remain, an urgency status, the main obligations, a
common myth and a document checklist. Cards are ordered most urgent first
and accompanied by the complexity tier and quoted price range.
"""

from datetime import date
from typing import Optional

import structlog

from .classifier import ComplianceClassifier
from .config import ComplianceMapConfig, get_config
from .models import (
    ComplianceMap,
    CountryComplianceCard,
    DeadlineStatus,
    UserComplianceProfile,
)
from .reference_data import get_country_label, get_filing_rules

logger = structlog.get_logger()


def days_until(deadline: date, today: date) -> int:
    """Whole days from today to the deadline; negative once it has passed."""
    return (deadline - today).days


def deadline_status(
    days: int,
    config: Optional[ComplianceMapConfig] = None,
) -> DeadlineStatus:
    """Overdue below zero, then urgent and upcoming by configured windows."""
    config = config or get_config().compliance_map
    if days < 0:
        return DeadlineStatus.OVERDUE
    if days <= config.urgent_days:
        return DeadlineStatus.URGENT
    if days <= config.upcoming_days:
        return DeadlineStatus.UPCOMING
    return DeadlineStatus.CLEAR


def build_country_card(
    country_code: str,
    today: date,
    config: Optional[ComplianceMapConfig] = None,
) -> CountryComplianceCard:
    """Deadline card for one country, using fallback rules when unknown."""
    rules = get_filing_rules(country_code)
    days = days_until(rules.deadline_date, today)
    return CountryComplianceCard(
        country_code=country_code,
        label=get_country_label(country_code),
        deadline_label=rules.deadline_label,
        deadline_date=rules.deadline_date,
        days_until=days,
        status=deadline_status(days, config),
        obligations=list(rules.obligations),
        myth=rules.myth,
        documents=list(rules.documents),
    )


def build_compliance_map(
    profile: UserComplianceProfile,
    today: Optional[date] = None,
    config: Optional[ComplianceMapConfig] = None,
    classifier: Optional[ComplianceClassifier] = None,
) -> ComplianceMap:
    """
    Build the compliance map for a profile.

    Args:
        profile: Answers collected so far
        today: Day to count deadlines from (default: date.today())
        config: Urgency windows (default: cached environment settings)
        classifier: Classifier used for the complexity summary

    Returns:
        ComplianceMap with one card per jurisdiction, soonest deadline first
    """
    today = today or date.today()
    config = config or get_config().compliance_map
    classifier = classifier or ComplianceClassifier()

    cards = [build_country_card(code, today, config) for code in profile.jurisdictions]
    cards.sort(key=lambda card: card.days_until)

    compliance_map = ComplianceMap(
        cards=cards,
        jurisdiction_count=len(cards),
        tax_year_count=len(profile.tax_years_in_scope),
        classification=classifier.classify(profile),
    )
    logger.info(
        "compliance_map_built",
        jurisdictions=[card.country_code for card in cards],
        overdue=compliance_map.has_overdue,
        complexity_label=compliance_map.classification.complexity_label.value,
    )
    return compliance_map
