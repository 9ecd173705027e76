"""Core data models for compliance risk and pricing classification.

This module holds the reference record types (jurisdictions, exchanges,
risk factors, filing rules), the questionnaire profile a user builds up
while answering the onboarding quiz or the quick checker, and the result
types the classifier and compliance map produce.

Every model compares by value. Reference records are frozen.
"""

import re
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field, field_validator


# =============================================================================
# ENUMERATIONS
# =============================================================================

class RegimeKind(str, Enum):
    """Cross-border crypto data-sharing framework applying to a country."""
    NONE = "none"
    CARF = "carf"
    DAC8 = "dac8"


class RiskLevel(str, Enum):
    """Risk level shown in the quick checker."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ComplexityLabel(str, Enum):
    """Pricing tier derived from the complexity score."""
    SIMPLE = "Simple"
    MODERATE = "Moderate"
    COMPLEX = "Complex"
    MULTI_JURISDICTION_COMPLEX = "Multi-Jurisdiction Complex"


class ExchangeCountBucket(str, Enum):
    """Self-reported number of exchanges or wallets in use."""
    ONE_TO_FIVE = "1–5"
    FIVE_TO_FIFTEEN = "5–15"
    FIFTEEN_TO_THIRTY = "15–30"
    THIRTY_PLUS = "30+"


class DeadlineStatus(str, Enum):
    """Urgency of a filing deadline relative to today."""
    OVERDUE = "overdue"
    URGENT = "urgent"
    UPCOMING = "upcoming"
    CLEAR = "clear"


# =============================================================================
# REFERENCE RECORDS
# =============================================================================

class JurisdictionRegime(BaseModel):
    """Data-sharing regime for one country of tax residence."""

    model_config = {"frozen": True}

    country_code: str = Field(pattern="^[A-Z]{2}$")
    label: str
    regime_kind: RegimeKind = RegimeKind.NONE
    exchange_date: Optional[date] = Field(
        default=None,
        description="Day data exchange with tax authorities begins or began",
    )

    def is_active(self, on: date) -> bool:
        """Return True when data sharing has started on the given day."""
        if self.regime_kind == RegimeKind.NONE or self.exchange_date is None:
            return False
        return self.exchange_date <= on

    @property
    def regime_label(self) -> str:
        """Short display name of the regime (e.g. "DAC8")."""
        return self.regime_kind.value.upper()

    @property
    def exchange_date_label(self) -> str:
        """Month and year the exchange starts, e.g. "September 2027"."""
        if self.exchange_date is None:
            return ""
        return self.exchange_date.strftime("%B %Y")


class ExchangeDescriptor(BaseModel):
    """A trading venue and whether it reports to tax authorities."""

    model_config = {"frozen": True}

    id: str
    label: str
    reports_to_authorities: bool


class RiskFactor(BaseModel):
    """A self-reported condition that raises the risk score."""

    model_config = {"frozen": True}

    id: str
    label: str
    weight: int


class FilingMyth(BaseModel):
    """A common misconception about a country's crypto tax rules."""

    model_config = {"frozen": True}

    myth: str
    reality: str


class CountryFilingRules(BaseModel):
    """Filing deadline, obligations and document checklist for a country."""

    model_config = {"frozen": True}

    deadline_label: str
    deadline_date: date
    obligations: tuple[str, ...]
    myth: Optional[FilingMyth] = None
    documents: tuple[str, ...]


_CURRENCY_SYMBOLS = {"GBP": "£", "EUR": "€", "USD": "$"}


class PriceRange(BaseModel):
    """Literal price band quoted for a complexity tier.

    A range with ``is_poa`` set carries no bounds and renders as "POA"
    (price on application).
    """

    model_config = {"frozen": True}

    currency: str = "GBP"
    low: Optional[Decimal] = None
    high: Optional[Decimal] = None
    open_ended: bool = Field(
        default=False,
        description="Upper bound is a floor for the top tier (rendered with '+')",
    )
    is_poa: bool = False

    @classmethod
    def poa(cls, currency: str = "GBP") -> "PriceRange":
        """Return the price-on-application sentinel."""
        return cls(currency=currency, is_poa=True)

    @computed_field
    @property
    def label(self) -> str:
        """Display form, e.g. "£750 – £1,500" or "£1,500 – £3,000+"."""
        if self.is_poa or self.low is None or self.high is None:
            return "POA"
        symbol = _CURRENCY_SYMBOLS.get(self.currency, f"{self.currency} ")
        suffix = "+" if self.open_ended else ""
        return f"{symbol}{self.low:,} – {symbol}{self.high:,}{suffix}"


# =============================================================================
# QUESTIONNAIRE PROFILE
# =============================================================================

_YEAR_MONTH = re.compile(r"^\d{4}-\d{2}$")


class PreviousCountry(BaseModel):
    """A country the user previously lived in, with the dates of residence."""

    country_code: str = ""
    moved_from: Optional[date] = None
    moved_to: Optional[date] = None

    @field_validator("country_code", mode="before")
    @classmethod
    def normalize_country_code(cls, v):
        """Upper-case and strip; missing codes become blank."""
        if v is None:
            return ""
        return str(v).strip().upper()

    @field_validator("moved_from", "moved_to", mode="before")
    @classmethod
    def coerce_partial_date(cls, v):
        """Month inputs become the 1st; blank or half-typed strings are unknown."""
        if isinstance(v, str):
            v = v.strip()
            if _YEAR_MONTH.match(v):
                v = f"{v}-01"
            try:
                return date.fromisoformat(v)
            except ValueError:
                return None
        return v


class UserComplianceProfile(BaseModel):
    """Answers collected so far from the onboarding quiz or quick checker.

    Only ``residence_country`` is expected to be filled before results are
    shown, and even that may still be blank while the user is answering.
    Every other field may be empty.
    """

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "residence_country": "DE",
                    "has_previous_countries": True,
                    "previous_countries": [
                        {"country_code": "GB", "moved_from": "2019-04", "moved_to": "2023-08"}
                    ],
                    "asset_types": ["crypto", "stocks"],
                    "exchanges_used": ["binance", "kraken"],
                    "exchange_count": "5–15",
                    "used_defi": True,
                    "tax_years_in_scope": ["2024/25", "2023/24"],
                    "filed_crypto_before": False,
                    "activated_risk_factors": ["unreported", "defi"],
                }
            ]
        }
    }

    residence_country: str = Field(
        default="",
        description="ISO-2 code of the current country of tax residence",
    )
    previous_countries: list[PreviousCountry] = Field(
        default_factory=list,
        description="Earlier countries of residence, in the order entered",
    )
    has_previous_countries: Optional[bool] = Field(
        default=None,
        description="Answer to 'lived elsewhere?'; False ignores leftover rows",
    )
    asset_types: set[str] = Field(default_factory=set)
    exchanges_used: set[str] = Field(default_factory=set)
    exchange_count: Optional[str] = Field(
        default=None,
        description="Self-reported bucket such as '15–30' (not an exact count)",
    )
    used_defi: Optional[bool] = None
    tax_years_in_scope: set[str] = Field(default_factory=set)
    filed_crypto_before: Optional[bool] = None
    activated_risk_factors: set[str] = Field(default_factory=set)

    @field_validator("residence_country", mode="before")
    @classmethod
    def normalize_residence(cls, v):
        if v is None:
            return ""
        return str(v).strip().upper()

    @field_validator("exchange_count", mode="before")
    @classmethod
    def normalize_exchange_bucket(cls, v):
        """Accept ASCII hyphens for the en-dash bucket labels."""
        if v is None:
            return None
        if isinstance(v, ExchangeCountBucket):
            return v.value
        v = str(v).strip().replace("-", "–")
        return v or None

    @field_validator(
        "asset_types",
        "exchanges_used",
        "tax_years_in_scope",
        "activated_risk_factors",
    )
    @classmethod
    def drop_blank_tags(cls, v: set[str]) -> set[str]:
        return {tag.strip() for tag in v if tag and tag.strip()}

    @property
    def distinct_previous_countries(self) -> list[str]:
        """Non-blank previous country codes, first occurrence order.

        Empty when the user answered "No" to having lived elsewhere, even if
        rows from an earlier "Yes" are still in ``previous_countries``.
        """
        seen: list[str] = []
        if self.has_previous_countries is False:
            return seen
        for prev in self.previous_countries:
            if prev.country_code and prev.country_code not in seen:
                seen.append(prev.country_code)
        return seen

    @property
    def jurisdictions(self) -> list[str]:
        """Residence followed by previous countries, unique and non-blank."""
        codes: list[str] = []
        for code in [self.residence_country, *self.distinct_previous_countries]:
            if code and code not in codes:
                codes.append(code)
        return codes


# =============================================================================
# RESULTS
# =============================================================================

class ScoringStep(BaseModel):
    """One contribution recorded while classifying a profile."""

    model_config = {"frozen": True}

    step: str
    input_value: str
    output_value: str
    source: str


class ClassificationResult(BaseModel):
    """Risk level and pricing tier for a profile."""

    risk_score: int = Field(ge=0)
    risk_level: RiskLevel
    complexity_score: int = Field(ge=0)
    complexity_label: ComplexityLabel
    estimated_price_range: PriceRange
    country_count: int = Field(ge=1)
    reporting_exchange_count: int = Field(ge=0)
    breakdown: list[ScoringStep] = Field(default_factory=list)
    reference_data_version: str


class RiskGuidance(BaseModel):
    """Explanations and next steps shown alongside a risk level."""

    risk_level: RiskLevel
    bullets: list[str] = Field(default_factory=list, max_length=3)
    actions: list[str] = Field(default_factory=list)


class CountryComplianceCard(BaseModel):
    """Deadline card for one jurisdiction on the compliance map."""

    country_code: str
    label: str
    deadline_label: str
    deadline_date: date
    days_until: int
    status: DeadlineStatus
    obligations: list[str]
    myth: Optional[FilingMyth] = None
    documents: list[str]


class ComplianceMap(BaseModel):
    """Per-jurisdiction deadlines plus the complexity and price summary."""

    cards: list[CountryComplianceCard] = Field(default_factory=list)
    jurisdiction_count: int = Field(ge=0)
    tax_year_count: int = Field(ge=0)
    classification: ClassificationResult

    @computed_field
    @property
    def has_overdue(self) -> bool:
        """True when any jurisdiction's deadline has already passed."""
        return any(card.status == DeadlineStatus.OVERDUE for card in self.cards)
