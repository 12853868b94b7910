"""
RUT (Rol Único Tributario) cleaning, formatting and validation for Chile.

This module validates Chilean tax identification numbers (RUT) using the
official módulo 11 algorithm and renders them in canonical "<body>-<DV>" form.

Validation never raises: every malformed input comes back as a
ValidationResult with valid=False and a user-facing error message, so form
validators and bulk importers can use the failure reason as data.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

# Body length bounds (digits before the check character)
MIN_BODY_LENGTH = 7
MAX_BODY_LENGTH = 8

CHECK_CHARS = frozenset("0123456789K")

_NOISE_PATTERN = re.compile(r"[.\-\s]")
_DIGITS_PATTERN = re.compile(r"[0-9]+")
_THOUSANDS_PATTERN = re.compile(r"\B(?=(\d{3})+(?!\d))")

LENGTH_ERROR = "El RUT debe tener entre 8 y 9 caracteres (sin puntos ni guión)"
BODY_FORMAT_ERROR = "El cuerpo del RUT debe contener solo números"
CHECK_CHAR_ALPHABET_ERROR = (
    "El dígito verificador debe ser un número (0-9) o la letra K"
)
CHECKSUM_MISMATCH_ERROR = "El dígito verificador es incorrecto, debería ser {expected}"


class RUTErrorKind(str, Enum):
    """Reason a RUT failed validation."""

    LENGTH = "length"
    BODY_FORMAT = "body_format"
    CHECK_CHAR_ALPHABET = "check_char_alphabet"
    CHECKSUM_MISMATCH = "checksum_mismatch"


@dataclass(frozen=True)
class CanonicalRUT:
    """
    A parsed RUT split into its numeric body and check character.

    Raises:
        ValueError: If body is not 7-8 ASCII digits or check_char is not 0-9/K
    """

    body: str
    check_char: str

    def __post_init__(self):
        if not (MIN_BODY_LENGTH <= len(self.body) <= MAX_BODY_LENGTH):
            raise ValueError(
                f"RUT body must have {MIN_BODY_LENGTH}-{MAX_BODY_LENGTH} digits, "
                f"got {self.body!r}"
            )
        if not _DIGITS_PATTERN.fullmatch(self.body):
            raise ValueError(f"RUT body must be numeric, got {self.body!r}")
        if self.check_char not in CHECK_CHARS:
            raise ValueError(
                f"RUT check character must be 0-9 or K, got {self.check_char!r}"
            )

    def __str__(self) -> str:
        return f"{self.body}-{self.check_char}"


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of validating a raw RUT string.

    `formatted` is always populated so callers can show the user what was
    parsed. `error` is set only when `valid` is False.
    """

    valid: bool
    formatted: str
    error: Optional[str] = None
    error_kind: Optional[RUTErrorKind] = None
    expected_check_char: Optional[str] = None
    rut: Optional[CanonicalRUT] = None


def _as_text(raw) -> str:
    return raw if isinstance(raw, str) else ""


def compute_check_char(body: str) -> str:
    """
    Compute the módulo 11 check character for a RUT body.

    Algorithm:
    1. Multiply each digit (from right to left) by sequence 2,3,4,5,6,7,2,3,4...
    2. Sum all products
    3. Calculate 11 - (sum % 11)
    4. If result is 11, DV is 0; if 10, DV is K; otherwise DV is the result

    Leading zeros take part in the sum like any other digit.

    Args:
        body: RUT digits without the check character

    Returns:
        Expected check character ("0"-"9" or "K")

    Raises:
        ValueError: If body is empty or contains non-digit characters

    Examples:
        >>> compute_check_char("12345678")
        '5'
        >>> compute_check_char("1000005")
        'K'
    """
    if not body or not _DIGITS_PATTERN.fullmatch(body):
        raise ValueError(f"RUT body must be a non-empty digit string, got {body!r}")

    total = 0
    multiplier = 2

    for digit in reversed(body):
        total += int(digit) * multiplier
        multiplier = 2 if multiplier == 7 else multiplier + 1

    expected = 11 - (total % 11)

    if expected == 11:
        return "0"
    if expected == 10:
        return "K"
    return str(expected)


class RUTValidator:
    """Stateless RUT cleaner, formatter and validator."""

    def clean(self, raw: str) -> str:
        """
        Remove dots, hyphens and whitespace, and uppercase the result.

        Examples:
            >>> RUTValidator().clean(" 12.345.678-k ")
            '12345678K'
        """
        return _NOISE_PATTERN.sub("", _as_text(raw)).upper()

    def format(self, raw: str, dotted: bool = False) -> str:
        """
        Render a RUT as "<body>-<DV>" without checking the checksum.

        Returns the input unchanged when fewer than two characters remain
        after cleaning. With dotted=True a numeric body is grouped in
        thousands ("12.345.678-5").

        Examples:
            >>> RUTValidator().format("  12.345.678-5 ")
            '12345678-5'
            >>> RUTValidator().format("123456785", dotted=True)
            '12.345.678-5'
        """
        cleaned = self.clean(raw)
        if len(cleaned) < 2:
            return raw if isinstance(raw, str) else ""
        body, check_char = cleaned[:-1], cleaned[-1]
        if dotted and _DIGITS_PATTERN.fullmatch(body):
            body = _THOUSANDS_PATTERN.sub(".", body)
        return f"{body}-{check_char}"

    def check_char(self, body: str) -> str:
        """Compute the módulo 11 check character for a RUT body."""
        return compute_check_char(body)

    def same(self, first: str, second: str) -> bool:
        """
        Check whether two RUT strings denote the same identifier.

        Formatting noise is ignored, so "12.345.678-5" and "123456785" match.
        Empty inputs never match anything.
        """
        cleaned = self.clean(first)
        return bool(cleaned) and cleaned == self.clean(second)

    def validate(self, raw: str) -> ValidationResult:
        """
        Validate a RUT using the Chilean módulo 11 algorithm.

        Args:
            raw: RUT string as entered by a user (dots, hyphen, spaces and
                lowercase k are accepted)

        Returns:
            ValidationResult; never raises

        Examples:
            >>> RUTValidator().validate("12.345.678-5").formatted
            '12345678-5'
            >>> RUTValidator().validate("12345678-9").error
            'El dígito verificador es incorrecto, debería ser 5'
        """
        text = _as_text(raw)
        # upper() can change length (ß -> SS), so only the check char is uppercased
        cleaned = _NOISE_PATTERN.sub("", text)

        if not (MIN_BODY_LENGTH + 1 <= len(cleaned) <= MAX_BODY_LENGTH + 1):
            return ValidationResult(
                valid=False,
                formatted=text,
                error=LENGTH_ERROR,
                error_kind=RUTErrorKind.LENGTH,
            )

        body, check_char = cleaned[:-1], cleaned[-1].upper()

        if not _DIGITS_PATTERN.fullmatch(body):
            return ValidationResult(
                valid=False,
                formatted=text,
                error=BODY_FORMAT_ERROR,
                error_kind=RUTErrorKind.BODY_FORMAT,
            )

        if check_char not in CHECK_CHARS:
            return ValidationResult(
                valid=False,
                formatted=text,
                error=CHECK_CHAR_ALPHABET_ERROR,
                error_kind=RUTErrorKind.CHECK_CHAR_ALPHABET,
            )

        expected = compute_check_char(body)
        formatted = f"{body}-{check_char}"

        if check_char != expected:
            return ValidationResult(
                valid=False,
                formatted=formatted,
                error=CHECKSUM_MISMATCH_ERROR.format(expected=expected),
                error_kind=RUTErrorKind.CHECKSUM_MISMATCH,
                expected_check_char=expected,
            )

        return ValidationResult(
            valid=True,
            formatted=formatted,
            rut=CanonicalRUT(body=body, check_char=check_char),
        )


_validator = RUTValidator()


def clean_rut(raw: str) -> str:
    """
    Strip dots, hyphens and whitespace from a RUT and uppercase it.

    Examples:
        >>> clean_rut("12.345.678-k")
        '12345678K'
    """
    return _validator.clean(raw)


def format_rut(raw: str, dotted: bool = False) -> str:
    """
    Format a RUT for display as "<body>-<DV>" (checksum is not verified).

    Examples:
        >>> format_rut("  12.345.678-5 ")
        '12345678-5'
        >>> format_rut("1000005k", dotted=True)
        '1.000.005-K'
        >>> format_rut("1")
        '1'
    """
    return _validator.format(raw, dotted=dotted)


def validate_rut(raw: str) -> ValidationResult:
    """
    Validate a RUT and return its canonical form.

    Examples:
        >>> validate_rut("12.345.678-5").valid
        True
        >>> validate_rut("1234-5").valid
        False
    """
    return _validator.validate(raw)


def same_rut(first: str, second: str) -> bool:
    """Check whether two RUT strings refer to the same identifier."""
    return _validator.same(first, second)
