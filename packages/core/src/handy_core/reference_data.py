"""Reference data for crypto tax compliance classification.

Static tables consumed by the classifier, the risk guidance and the
compliance map:

- Jurisdiction regimes (which data-sharing framework applies per country)
- Exchange descriptors (which venues report to tax authorities)
- Self-reported risk factors and their weights
- Price ranges per complexity tier
- Filing rules per country (deadline, obligations, myth, documents)

Sources:
- CARF: https://www.oecd.org/tax/exchange-of-tax-information/crypto-asset-reporting-framework.htm
- DAC8: Council Directive (EU) 2023/2226

Tables are defined at import time and never mutated.
"""

from datetime import date
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping, Optional, Union

from .exceptions import ReferenceDataError
from .models import (
    ComplexityLabel,
    CountryFilingRules,
    ExchangeDescriptor,
    FilingMyth,
    JurisdictionRegime,
    PriceRange,
    RegimeKind,
    RiskFactor,
)


# =============================================================================
# VERSION TRACKING
# =============================================================================

REFERENCE_DATA_VERSION = "2026-Q1"

DAC8_EXCHANGE_DATE = date(2026, 1, 1)
CARF_EXCHANGE_DATE = date(2027, 9, 1)


def get_reference_data_version() -> str:
    """Return current reference data version."""
    return REFERENCE_DATA_VERSION


# =============================================================================
# JURISDICTION REGIMES
# =============================================================================

def _regime(code: str, label: str, kind: RegimeKind) -> JurisdictionRegime:
    exchange_date = {
        RegimeKind.DAC8: DAC8_EXCHANGE_DATE,
        RegimeKind.CARF: CARF_EXCHANGE_DATE,
    }.get(kind)
    return JurisdictionRegime(
        country_code=code,
        label=label,
        regime_kind=kind,
        exchange_date=exchange_date,
    )


_JURISDICTION_ROWS = (
    # CARF enrolled, data exchange from September 2027
    _regime("GB", "United Kingdom", RegimeKind.CARF),
    _regime("US", "United States", RegimeKind.CARF),
    _regime("AU", "Australia", RegimeKind.CARF),
    _regime("CA", "Canada", RegimeKind.CARF),
    # DAC8 active since January 2026
    _regime("DE", "Germany", RegimeKind.DAC8),
    _regime("FR", "France", RegimeKind.DAC8),
    _regime("SE", "Sweden", RegimeKind.DAC8),
    _regime("DK", "Denmark", RegimeKind.DAC8),
    _regime("IT", "Italy", RegimeKind.DAC8),
    _regime("PT", "Portugal", RegimeKind.DAC8),
    _regime("ES", "Spain", RegimeKind.DAC8),
)

JURISDICTION_REGIMES: Mapping[str, JurisdictionRegime] = MappingProxyType(
    {row.country_code: row for row in _JURISDICTION_ROWS}
)


def get_jurisdiction(country_code: Optional[str]) -> Optional[JurisdictionRegime]:
    """Look up the regime for a country code; None when unknown or blank."""
    if not country_code:
        return None
    return JURISDICTION_REGIMES.get(country_code.strip().upper())


def get_country_label(country_code: str) -> str:
    """Display name for a country, falling back to the code itself."""
    regime = get_jurisdiction(country_code)
    return regime.label if regime else country_code


# =============================================================================
# EXCHANGES
# =============================================================================

_EXCHANGE_ROWS = (
    ExchangeDescriptor(id="binance", label="Binance", reports_to_authorities=True),
    ExchangeDescriptor(id="coinbase", label="Coinbase", reports_to_authorities=True),
    ExchangeDescriptor(id="kraken", label="Kraken", reports_to_authorities=True),
    ExchangeDescriptor(id="cryptocom", label="Crypto.com", reports_to_authorities=True),
    ExchangeDescriptor(id="bybit", label="Bybit", reports_to_authorities=True),
    ExchangeDescriptor(id="okx", label="OKX", reports_to_authorities=True),
    ExchangeDescriptor(id="bitstamp", label="Bitstamp", reports_to_authorities=True),
    ExchangeDescriptor(id="other_cex", label="Other CEX", reports_to_authorities=True),
    ExchangeDescriptor(id="dex_only", label="DEX only", reports_to_authorities=False),
)

EXCHANGES: Mapping[str, ExchangeDescriptor] = MappingProxyType(
    {row.id: row for row in _EXCHANGE_ROWS}
)


def get_exchange(exchange_id: str) -> Optional[ExchangeDescriptor]:
    return EXCHANGES.get(exchange_id)


# =============================================================================
# RISK FACTORS
# =============================================================================

_RISK_FACTOR_ROWS = (
    RiskFactor(
        id="unreported",
        label="I have unreported crypto gains from previous years",
        weight=3,
    ),
    RiskFactor(
        id="crypto_to_crypto",
        label="I've traded crypto-to-crypto",
        weight=1,
    ),
    RiskFactor(
        id="defi",
        label="I've used DeFi protocols",
        weight=2,
    ),
    RiskFactor(
        id="foreign_exchanges",
        label="I hold crypto on foreign exchanges",
        weight=2,
    ),
)

RISK_FACTORS: Mapping[str, RiskFactor] = MappingProxyType(
    {row.id: row for row in _RISK_FACTOR_ROWS}
)


def get_risk_factor(factor_id: str) -> Optional[RiskFactor]:
    return RISK_FACTORS.get(factor_id)


# =============================================================================
# PRICING
# =============================================================================
# Quoted bands per complexity tier. Step function, not interpolated.

PRICE_CURRENCY = "GBP"

PRICE_RANGES: Mapping[ComplexityLabel, PriceRange] = MappingProxyType({
    ComplexityLabel.SIMPLE: PriceRange(
        currency=PRICE_CURRENCY, low=Decimal("150"), high=Decimal("350"),
    ),
    ComplexityLabel.MODERATE: PriceRange(
        currency=PRICE_CURRENCY, low=Decimal("350"), high=Decimal("750"),
    ),
    ComplexityLabel.COMPLEX: PriceRange(
        currency=PRICE_CURRENCY, low=Decimal("750"), high=Decimal("1500"),
    ),
    ComplexityLabel.MULTI_JURISDICTION_COMPLEX: PriceRange(
        currency=PRICE_CURRENCY, low=Decimal("1500"), high=Decimal("3000"), open_ended=True,
    ),
})

PRICE_ON_APPLICATION = PriceRange.poa(PRICE_CURRENCY)


def get_price_range(label: Union[ComplexityLabel, str, None]) -> PriceRange:
    """Price band for a tier, or the POA sentinel for anything unrecognised.

    Accepts the enum, its value ("Complex") or its name ("COMPLEX").
    """
    if isinstance(label, ComplexityLabel):
        return PRICE_RANGES[label]
    if not label:
        return PRICE_ON_APPLICATION
    for tier in ComplexityLabel:
        if label in (tier.value, tier.name):
            return PRICE_RANGES[tier]
    return PRICE_ON_APPLICATION


# =============================================================================
# FILING RULES
# =============================================================================

_COMMON_DOCUMENTS = (
    "Exchange transaction history (CSV exports)",
    "Wallet addresses for on-chain transactions",
    "DeFi protocol interaction records",
    "Records of crypto received as income (mining, staking, airdrops)",
    "Cost basis records for original purchases",
    "Previous tax returns (if amending)",
)

COUNTRY_FILING_RULES: Mapping[str, CountryFilingRules] = MappingProxyType({
    "GB": CountryFilingRules(
        deadline_label="31 January",
        deadline_date=date(2026, 1, 31),
        obligations=(
            "Self Assessment tax return (SA100)",
            "Report crypto capital gains on SA108",
            "Income from staking/mining as miscellaneous income",
            "DeFi transactions may trigger separate disposals",
        ),
        myth=FilingMyth(
            myth="You only pay tax when you cash out to GBP.",
            reality="Every crypto-to-crypto trade is a taxable disposal in the UK.",
        ),
        documents=_COMMON_DOCUMENTS + ("National Insurance number",),
    ),
    "US": CountryFilingRules(
        deadline_label="15 April",
        deadline_date=date(2026, 4, 15),
        obligations=(
            "IRS Form 8949 for crypto disposals",
            "Schedule D for capital gains summary",
            "FBAR filing if foreign exchange balances exceed $10,000",
            "Form 1040 with virtual currency question",
        ),
        myth=FilingMyth(
            myth="If I didn't receive a 1099, I don't need to report.",
            reality=(
                "The IRS requires reporting all crypto disposals regardless "
                "of whether you received tax forms."
            ),
        ),
        documents=_COMMON_DOCUMENTS + (
            "Social Security Number (SSN)",
            "FBAR records if foreign accounts exceed $10,000",
        ),
    ),
    "AU": CountryFilingRules(
        deadline_label="31 October",
        deadline_date=date(2025, 10, 31),
        obligations=(
            "Capital gains on crypto reported in tax return",
            "Crypto-to-crypto swaps are taxable events",
            "Staking rewards taxed as ordinary income",
            "50% CGT discount if held over 12 months",
        ),
        myth=FilingMyth(
            myth="Crypto under $10,000 is tax-free.",
            reality=(
                "There is no minimum threshold. All capital gains from "
                "crypto are taxable in Australia."
            ),
        ),
        documents=_COMMON_DOCUMENTS + ("Tax File Number (TFN)",),
    ),
    "CA": CountryFilingRules(
        deadline_label="30 April",
        deadline_date=date(2026, 4, 30),
        obligations=(
            "Report crypto as capital gains (50% inclusion rate)",
            "Business income rules if trading is frequent",
            "T1 General return with Schedule 3",
            "Foreign property reporting (T1135) if over $100K",
        ),
        documents=_COMMON_DOCUMENTS + ("Social Insurance Number (SIN)",),
    ),
    "DE": CountryFilingRules(
        deadline_label="31 July",
        deadline_date=date(2026, 7, 31),
        obligations=(
            "Crypto held over 1 year is tax-free",
            "Short-term gains taxed as private sale (§23 EStG)",
            "€600 annual exemption for private sales",
            "Staking/lending income taxed as other income",
        ),
        myth=FilingMyth(
            myth="All crypto is tax-free in Germany.",
            reality=(
                "Only holdings sold after 1+ year are exempt. Short-term "
                "gains are fully taxable."
            ),
        ),
        documents=_COMMON_DOCUMENTS + ("Steuer-ID (tax identification number)",),
    ),
    "FR": CountryFilingRules(
        deadline_label="Mid-May",
        deadline_date=date(2026, 5, 15),
        obligations=(
            "Flat tax of 30% on crypto capital gains",
            "Form 2086 for crypto disposals",
            "Must declare all foreign exchange accounts (Form 3916-bis)",
            "Mining/staking taxed as non-commercial profits (BNC)",
        ),
        documents=_COMMON_DOCUMENTS + ("Numero fiscal (tax number)",),
    ),
    "SE": CountryFilingRules(
        deadline_label="2 May",
        deadline_date=date(2026, 5, 2),
        obligations=(
            "Crypto gains taxed at 30% capital income tax",
            "Report on K4 attachment to income tax return",
            "Each crypto-to-crypto trade is a taxable event",
            "Average cost method required for calculations",
        ),
        documents=_COMMON_DOCUMENTS + ("Personnummer (personal identity number)",),
    ),
    "DK": CountryFilingRules(
        deadline_label="1 July",
        deadline_date=date(2026, 7, 1),
        obligations=(
            "Crypto taxed as personal income or speculation gains",
            "Gains on crypto held as investment taxed at up to 52.07%",
            "Must report all trades individually",
            "Losses can be deducted against gains in same category",
        ),
        documents=_COMMON_DOCUMENTS + ("CPR-nummer (civil registration number)",),
    ),
    "IT": CountryFilingRules(
        deadline_label="30 November",
        deadline_date=date(2025, 11, 30),
        obligations=(
            "26% substitute tax on crypto capital gains",
            "€2,000 de minimis threshold removed from 2023",
            "RW form for foreign asset monitoring",
            "IVAFE tax on foreign financial assets",
        ),
        documents=_COMMON_DOCUMENTS + ("Codice Fiscale (tax code)",),
    ),
    "PT": CountryFilingRules(
        deadline_label="30 June",
        deadline_date=date(2026, 6, 30),
        obligations=(
            "28% tax on crypto gains held less than 365 days",
            "Long-term holdings (365+ days) are tax-free",
            "Must declare on Annex G of IRS return",
            "Airdrops and mining taxed as income",
        ),
        myth=FilingMyth(
            myth="Portugal doesn't tax crypto.",
            reality=(
                "Since 2023, Portugal taxes crypto gains at 28% for holdings "
                "under 365 days."
            ),
        ),
        documents=_COMMON_DOCUMENTS + ("NIF (numero de identificacao fiscal)",),
    ),
    "ES": CountryFilingRules(
        deadline_label="30 June",
        deadline_date=date(2026, 6, 30),
        obligations=(
            "Progressive tax on crypto gains (19–28%)",
            "Modelo 720 for overseas assets over €50,000",
            "Modelo 721 for crypto assets over €50,000",
            "Each trade is a taxable event including swaps",
        ),
        documents=_COMMON_DOCUMENTS + ("NIE / NIF (tax identification number)",),
    ),
})

# Used for any country without its own rules
DEFAULT_FILING_RULES = CountryFilingRules(
    deadline_label="Check local tax authority",
    deadline_date=date(2026, 12, 31),
    obligations=("Research local filing requirements",),
    documents=(
        "Exchange transaction history (CSV exports)",
        "Wallet addresses for on-chain transactions",
        "Cost basis records for original purchases",
    ),
)


def get_filing_rules(country_code: str) -> CountryFilingRules:
    """Filing rules for a country, or the generic fallback."""
    return COUNTRY_FILING_RULES.get(country_code.strip().upper(), DEFAULT_FILING_RULES)


# =============================================================================
# INTEGRITY
# =============================================================================

def _check_unique(table: str, keys: list[str]) -> None:
    seen: set[str] = set()
    for key in keys:
        if key in seen:
            raise ReferenceDataError(
                f"Duplicate key in {table}",
                table=table,
                key=key,
                constraint="keys must be unique",
            )
        seen.add(key)


def verify_reference_data(
    jurisdictions: tuple[JurisdictionRegime, ...] = _JURISDICTION_ROWS,
    exchanges: tuple[ExchangeDescriptor, ...] = _EXCHANGE_ROWS,
    risk_factors: tuple[RiskFactor, ...] = _RISK_FACTOR_ROWS,
    price_ranges: Optional[Mapping[ComplexityLabel, PriceRange]] = None,
) -> None:
    """Check the reference tables against their invariants.

    Raises:
        ReferenceDataError: On the first violated invariant.
    """
    _check_unique("JURISDICTION_REGIMES", [j.country_code for j in jurisdictions])
    _check_unique("EXCHANGES", [e.id for e in exchanges])
    _check_unique("RISK_FACTORS", [f.id for f in risk_factors])

    for regime in jurisdictions:
        if regime.regime_kind != RegimeKind.NONE and regime.exchange_date is None:
            raise ReferenceDataError(
                f"{regime.regime_label} regime for {regime.country_code} has no exchange date",
                table="JURISDICTION_REGIMES",
                key=regime.country_code,
                constraint="CARF/DAC8 rows need an exchange_date",
            )

    for factor in risk_factors:
        if factor.weight <= 0:
            raise ReferenceDataError(
                "Risk factor weight must be positive",
                table="RISK_FACTORS",
                key=factor.id,
                constraint="weight > 0",
            )

    ranges = PRICE_RANGES if price_ranges is None else price_ranges
    for tier in ComplexityLabel:
        band = ranges.get(tier)
        if band is None:
            raise ReferenceDataError(
                f"No price range for tier {tier.value}",
                table="PRICE_RANGES",
                key=tier.name,
                constraint="one price range per complexity tier",
            )
        if not band.is_poa and (band.low is None or band.high is None or band.low > band.high):
            raise ReferenceDataError(
                f"Invalid price bounds for tier {tier.value}",
                table="PRICE_RANGES",
                key=tier.name,
                constraint="low <= high",
            )
