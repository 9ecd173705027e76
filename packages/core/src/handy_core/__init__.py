"""Handy Core - Crypto tax compliance risk and pricing classification."""

__version__ = "0.1.0"

from .classifier import ComplianceClassifier, classify_profile
from .compliance_map import build_compliance_map
from .guidance import build_risk_guidance
from .models import (
    ClassificationResult,
    ComplexityLabel,
    ComplianceMap,
    PriceRange,
    RiskGuidance,
    RiskLevel,
    UserComplianceProfile,
)

__all__ = [
    "ComplianceClassifier",
    "classify_profile",
    "build_compliance_map",
    "build_risk_guidance",
    "ClassificationResult",
    "ComplexityLabel",
    "ComplianceMap",
    "PriceRange",
    "RiskGuidance",
    "RiskLevel",
    "UserComplianceProfile",
]
