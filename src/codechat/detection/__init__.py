"""Code detection: signatures, lookup tables and the detection engine."""

from __future__ import annotations

from .engine import (
    CodeDetectionEngine,
    CodeScore,
    DetectionThresholds,
    ExtractionResult,
    collapse_newlines,
)
from .signatures import DEFAULT_SIGNATURES, SignatureBundle

__all__ = [
    "CodeDetectionEngine",
    "CodeScore",
    "DEFAULT_SIGNATURES",
    "DetectionThresholds",
    "ExtractionResult",
    "SignatureBundle",
    "collapse_newlines",
]
