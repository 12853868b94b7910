"""
Helper utilities for RUT normalization and validation.

This module provides utilities for cleaning, formatting and validating
Chilean identification numbers (RUT) with the módulo 11 check digit.
"""

from .rut import (
    CanonicalRUT,
    RUTErrorKind,
    RUTValidator,
    ValidationResult,
    clean_rut,
    compute_check_char,
    format_rut,
    same_rut,
    validate_rut,
)

__all__ = [
    "CanonicalRUT",
    "RUTErrorKind",
    "RUTValidator",
    "ValidationResult",
    "clean_rut",
    "compute_check_char",
    "format_rut",
    "same_rut",
    "validate_rut",
]
