"""Tests for the static reference tables."""

from datetime import date
from decimal import Decimal

import pytest

from handy_core.exceptions import HandyError, ReferenceDataError
from handy_core.models import (
    ComplexityLabel,
    ExchangeDescriptor,
    JurisdictionRegime,
    PriceRange,
    RegimeKind,
    RiskFactor,
)
from handy_core.reference_data import (
    COUNTRY_FILING_RULES,
    DEFAULT_FILING_RULES,
    EXCHANGES,
    JURISDICTION_REGIMES,
    PRICE_RANGES,
    RISK_FACTORS,
    get_country_label,
    get_filing_rules,
    get_jurisdiction,
    get_reference_data_version,
    verify_reference_data,
)


class TestTables:
    """Tests for table contents."""

    def test_version(self):
        assert get_reference_data_version() == "2026-Q1"

    @pytest.mark.parametrize("code", ["GB", "US", "AU", "CA"])
    def test_carf_countries(self, code):
        regime = JURISDICTION_REGIMES[code]

        assert regime.regime_kind == RegimeKind.CARF
        assert regime.exchange_date == date(2027, 9, 1)
        assert regime.is_active(date(2026, 10, 19)) is False

    @pytest.mark.parametrize("code", ["DE", "FR", "SE", "DK", "IT", "PT", "ES"])
    def test_dac8_countries(self, code):
        regime = JURISDICTION_REGIMES[code]

        assert regime.regime_kind == RegimeKind.DAC8
        assert regime.is_active(date(2026, 1, 1)) is True

    def test_only_dex_does_not_report(self):
        non_reporting = [e.id for e in EXCHANGES.values() if not e.reports_to_authorities]
        assert non_reporting == ["dex_only"]

    def test_risk_factor_weights(self):
        weights = {f.id: f.weight for f in RISK_FACTORS.values()}
        assert weights == {
            "unreported": 3,
            "crypto_to_crypto": 1,
            "defi": 2,
            "foreign_exchanges": 2,
        }

    def test_one_price_range_per_tier(self):
        assert set(PRICE_RANGES) == set(ComplexityLabel)

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            RISK_FACTORS["defi"] = RiskFactor(id="defi", label="DeFi", weight=10)

    def test_filing_rules_cover_every_regime_country(self):
        assert set(COUNTRY_FILING_RULES) == set(JURISDICTION_REGIMES)


class TestLookups:
    """Tests for lookup helpers."""

    def test_get_jurisdiction_case_insensitive(self):
        assert get_jurisdiction("gb").label == "United Kingdom"

    @pytest.mark.parametrize("code", [None, "", "NZ"])
    def test_get_jurisdiction_unknown(self, code):
        assert get_jurisdiction(code) is None

    def test_country_label_falls_back_to_code(self):
        assert get_country_label("PT") == "Portugal"
        assert get_country_label("NZ") == "NZ"

    def test_filing_rules_fallback(self):
        assert get_filing_rules("NZ") == DEFAULT_FILING_RULES
        assert DEFAULT_FILING_RULES.deadline_date == date(2026, 12, 31)

    def test_filing_rules_known_country(self):
        rules = get_filing_rules("us")

        assert rules.deadline_label == "15 April"
        assert "Social Security Number (SSN)" in rules.documents
        assert rules.myth is not None


class TestVerifyReferenceData:
    """Tests for verify_reference_data."""

    def test_shipped_tables_pass(self):
        verify_reference_data()

    def test_duplicate_country_rejected(self):
        rows = (
            JurisdictionRegime(country_code="GB", label="United Kingdom"),
            JurisdictionRegime(country_code="GB", label="Great Britain"),
        )
        with pytest.raises(ReferenceDataError) as exc_info:
            verify_reference_data(jurisdictions=rows)

        assert exc_info.value.table == "JURISDICTION_REGIMES"
        assert exc_info.value.key == "GB"

    def test_duplicate_exchange_rejected(self):
        rows = (
            ExchangeDescriptor(id="kraken", label="Kraken", reports_to_authorities=True),
            ExchangeDescriptor(id="kraken", label="Kraken Pro", reports_to_authorities=True),
        )
        with pytest.raises(ReferenceDataError):
            verify_reference_data(exchanges=rows)

    def test_regime_without_date_rejected(self):
        rows = (JurisdictionRegime(country_code="JP", label="Japan", regime_kind=RegimeKind.CARF),)
        with pytest.raises(ReferenceDataError) as exc_info:
            verify_reference_data(jurisdictions=rows)

        assert exc_info.value.details["key"] == "JP"

    def test_non_positive_weight_rejected(self):
        rows = (RiskFactor(id="staking", label="Staking", weight=0),)
        with pytest.raises(ReferenceDataError) as exc_info:
            verify_reference_data(risk_factors=rows)

        assert exc_info.value.constraint == "weight > 0"

    def test_missing_price_tier_rejected(self):
        ranges = {
            label: band
            for label, band in PRICE_RANGES.items()
            if label != ComplexityLabel.SIMPLE
        }
        with pytest.raises(ReferenceDataError):
            verify_reference_data(price_ranges=ranges)

    def test_inverted_price_bounds_rejected(self):
        ranges = dict(PRICE_RANGES)
        ranges[ComplexityLabel.COMPLEX] = PriceRange(low=Decimal("2000"), high=Decimal("1000"))

        with pytest.raises(ReferenceDataError):
            verify_reference_data(price_ranges=ranges)

    def test_error_is_handy_error(self):
        error = ReferenceDataError("bad", table="EXCHANGES")

        assert isinstance(error, HandyError)
        assert error.recoverable is False
        assert str(error) == "bad"
        assert "EXCHANGES" in repr(error)
