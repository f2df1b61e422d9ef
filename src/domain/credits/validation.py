"""Validation rules for constituted ISSQN credits.

Every rule exists in two forms:

- ``check_*`` returns a ``FieldViolation`` or ``None`` and never raises.
- ``validate_*`` runs the matching check and raises ``FieldValidationError``
  (or ``ConsistencyError`` for the cross-field rule) on failure.

``validate_full_record`` validates a whole record in two phases. First every
field rule runs and all violations are collected, so one bad field never
hides another. Only when all fields pass does the ISSQN consistency rule run,
since computing ``base * rate / 100`` over malformed values is meaningless.

Field names in violations are the wire names (``numeroCredito``,
``valorIssqn``...) so messages can be shown to API clients as they are.
"""

import re
from collections.abc import Callable
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from src.core.constants import (
    CENT,
    CREDIT_TYPES,
    DOCUMENT_NUMBER_PATTERN,
    ISSQN_TOLERANCE,
    MAX_DOCUMENT_NUMBER_LENGTH,
    MAX_MONETARY_INTEGER_DIGITS,
    MAX_PERIOD_YEARS,
    MAX_RATE_INTEGER_DIGITS,
    MAX_TAX_RATE,
    MIN_TAX_RATE,
    MONETARY_SCALE,
    ONE_HUNDRED,
)
from src.core.exceptions import (
    AggregateValidationError,
    ConsistencyError,
    FieldValidationError,
    FieldViolation,
    ViolationKind,
)
from src.core.types import NumericInput
from src.domain.credits.models import CreditRecord

CREDIT_NUMBER_FIELD = "numeroCredito"
INVOICE_NUMBER_FIELD = "numeroNfse"
CONSTITUTION_DATE_FIELD = "dataConstituicao"
ISSQN_VALUE_FIELD = "valorIssqn"
CREDIT_TYPE_FIELD = "tipoCredito"
SIMPLIFIED_REGIME_FIELD = "simplesNacional"
TAX_RATE_FIELD = "aliquota"
BILLED_VALUE_FIELD = "valorFaturado"
DEDUCTION_VALUE_FIELD = "valorDeducao"
CALCULATION_BASE_FIELD = "baseCalculo"
PERIOD_START_FIELD = "dataInicio"
PERIOD_END_FIELD = "dataFim"
PERIOD_FIELD = "periodo"

_DOCUMENT_NUMBER_RE = re.compile(DOCUMENT_NUMBER_PATTERN)
_VALID_TYPES_TEXT = ", ".join(CREDIT_TYPES)

# Control characters and the ASCII space; other Unicode whitespace is kept
_TRIMMED_CHARS = "".join(chr(code) for code in range(0x21))


def _trim(value: str) -> str:
    return value.strip(_TRIMMED_CHARS)


def normalize_string(value: str | None) -> str | None:
    """Strip surrounding spaces and control characters, keeping ``None``."""
    return _trim(value) if value is not None else None


def is_valid_string(value: object) -> bool:
    """Return True when the value is a string that is not blank."""
    return isinstance(value, str) and bool(_trim(value))


def _to_decimal(value: NumericInput) -> Decimal | None:
    """Coerce numeric input to a finite Decimal, or None when impossible.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")`` rather
    than its binary expansion.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            return None
    return number if number.is_finite() else None


def _scale(value: Decimal) -> int:
    exponent = value.as_tuple().exponent
    return -exponent if isinstance(exponent, int) and exponent < 0 else 0


def _integer_digits(value: Decimal) -> int:
    return max(value.adjusted() + 1, 0)


def _amount_text(value: Decimal) -> str:
    return f"{value.quantize(CENT, rounding=ROUND_HALF_UP):f}"


def _add_years(start: date, years: int) -> date:
    """Shift a date by whole years, clamping Feb 29 to Feb 28."""
    try:
        return start.replace(year=start.year + years)
    except ValueError:
        return start.replace(year=start.year + years, day=28)


def _raise_if(violation: FieldViolation | None) -> None:
    if violation is not None:
        raise FieldValidationError(violation)


# Strings


def check_required_string(value: str | None, field_name: str) -> FieldViolation | None:
    """Fail when the value is ``None`` or blank after trimming."""
    if not is_valid_string(value):
        return FieldViolation(field_name, ViolationKind.REQUIRED, "is required", value)
    return None


def check_max_length(
    value: str | None,
    field_name: str,
    max_length: int = MAX_DOCUMENT_NUMBER_LENGTH,
) -> FieldViolation | None:
    """Fail when the trimmed value is longer than ``max_length``."""
    if value is not None and len(_trim(value)) > max_length:
        return FieldViolation(
            field_name,
            ViolationKind.TOO_LONG,
            f"must have at most {max_length} characters",
            value,
        )
    return None


def _check_document_number(value: str | None, field_name: str) -> FieldViolation | None:
    if value is not None and not isinstance(value, str):
        return FieldViolation(
            field_name,
            ViolationKind.INVALID_FORMAT,
            "must be a string of digits",
            value,
        )
    if violation := check_required_string(value, field_name):
        return violation
    if violation := check_max_length(value, field_name):
        return violation
    if value is None or not _DOCUMENT_NUMBER_RE.fullmatch(_trim(value)):
        return FieldViolation(
            field_name, ViolationKind.INVALID_FORMAT, "must contain only digits", value
        )
    return None


def check_credit_number(value: str | None) -> FieldViolation | None:
    """Check a credit number: required, at most 50 characters, digits only."""
    return _check_document_number(value, CREDIT_NUMBER_FIELD)


def check_invoice_service_number(value: str | None) -> FieldViolation | None:
    """Check an NFS-e number: required, at most 50 characters, digits only."""
    return _check_document_number(value, INVOICE_NUMBER_FIELD)


def is_valid_credit_number_format(value: str | None) -> bool:
    """Return whether ``value`` is a well-formed credit number. Never raises."""
    return check_credit_number(value) is None


def is_valid_invoice_service_number_format(value: str | None) -> bool:
    """Return whether ``value`` is a well-formed NFS-e number. Never raises."""
    return check_invoice_service_number(value) is None


def validate_credit_number(value: str | None) -> None:
    """Raise ``FieldValidationError`` unless ``value`` is a valid credit number."""
    _raise_if(check_credit_number(value))


def validate_invoice_service_number(value: str | None) -> None:
    """Raise ``FieldValidationError`` unless ``value`` is a valid NFS-e number."""
    _raise_if(check_invoice_service_number(value))


# Monetary values and rate


def check_monetary_value(value: NumericInput, field_name: str) -> FieldViolation | None:
    """Check an amount that may be zero.

    Rules, in order: present, numeric and finite, not negative, at most two
    decimal places, at most 13 integer digits so the amount fits the
    NUMERIC(15,2) columns. Scale is the decimal exponent, so
    ``Decimal("1.000")`` fails even though it equals ``1``.
    """
    if value is None:
        return FieldViolation(field_name, ViolationKind.REQUIRED, "is required", value)

    number = _to_decimal(value)
    if number is None:
        return FieldViolation(
            field_name, ViolationKind.NOT_A_NUMBER, "must be a finite number", value
        )
    if number < 0:
        return FieldViolation(
            field_name, ViolationKind.NEGATIVE, "cannot be negative", value
        )
    if _scale(number) > MONETARY_SCALE:
        return FieldViolation(
            field_name,
            ViolationKind.TOO_MANY_DECIMALS,
            f"must have at most {MONETARY_SCALE} decimal places",
            value,
        )
    if _integer_digits(number) > MAX_MONETARY_INTEGER_DIGITS:
        return FieldViolation(
            field_name,
            ViolationKind.TOO_MANY_DIGITS,
            f"must have at most {MAX_MONETARY_INTEGER_DIGITS} integer digits",
            value,
        )
    return None


def check_positive_monetary_value(
    value: NumericInput, field_name: str
) -> FieldViolation | None:
    """Check an amount that must be strictly greater than zero."""
    if violation := check_monetary_value(value, field_name):
        return violation
    number = _to_decimal(value)
    if number is not None and number <= 0:
        return FieldViolation(
            field_name, ViolationKind.NOT_POSITIVE, "must be greater than zero", value
        )
    return None


def check_rate(value: NumericInput) -> FieldViolation | None:
    """Check a tax rate percentage: present and within [0, 100]."""
    if value is None:
        return FieldViolation(
            TAX_RATE_FIELD, ViolationKind.REQUIRED, "is required", value
        )

    number = _to_decimal(value)
    if number is None:
        return FieldViolation(
            TAX_RATE_FIELD, ViolationKind.NOT_A_NUMBER, "must be a finite number", value
        )
    if not MIN_TAX_RATE <= number <= MAX_TAX_RATE:
        return FieldViolation(
            TAX_RATE_FIELD,
            ViolationKind.OUT_OF_RANGE,
            f"must be between {MIN_TAX_RATE} and {MAX_TAX_RATE}",
            value,
        )
    return None


def validate_monetary_value(value: NumericInput, field_name: str) -> None:
    """Raise ``FieldValidationError`` unless ``value`` is a valid amount."""
    _raise_if(check_monetary_value(value, field_name))


def validate_positive_monetary_value(value: NumericInput, field_name: str) -> None:
    """Raise ``FieldValidationError`` unless ``value`` is a valid positive amount."""
    _raise_if(check_positive_monetary_value(value, field_name))


def validate_rate(value: NumericInput) -> None:
    """Raise ``FieldValidationError`` unless ``value`` is within [0, 100]."""
    _raise_if(check_rate(value))


# Credit type and flags


def check_credit_type(value: str | None) -> FieldViolation | None:
    """Check a credit type label, ignoring case and surrounding whitespace."""
    if violation := check_required_string(value, CREDIT_TYPE_FIELD):
        return violation
    if value is None or _trim(value).upper() not in CREDIT_TYPES:
        return FieldViolation(
            CREDIT_TYPE_FIELD,
            ViolationKind.INVALID_CHOICE,
            f"must be one of: {_VALID_TYPES_TEXT}",
            value,
        )
    return None


def validate_credit_type(value: str | None) -> None:
    """Raise ``FieldValidationError`` unless ``value`` is a known credit type."""
    _raise_if(check_credit_type(value))


def check_flag_required(value: bool | None, field_name: str) -> FieldViolation | None:
    """Fail when a boolean flag is missing."""
    if value is None:
        return FieldViolation(field_name, ViolationKind.REQUIRED, "is required", value)
    return None


# Dates


def check_date_required(value: date | None, field_name: str) -> FieldViolation | None:
    """Fail when the date is missing."""
    if value is None:
        return FieldViolation(field_name, ViolationKind.REQUIRED, "is required", value)
    return None


def check_date_range(start: date | None, end: date | None) -> FieldViolation | None:
    """Check a search period.

    Both ends are required, ``start`` must not be after ``end`` and the period
    may span at most five years. Exactly five years is accepted.
    """
    if violation := check_date_required(start, PERIOD_START_FIELD):
        return violation
    if violation := check_date_required(end, PERIOD_END_FIELD):
        return violation
    if start is None or end is None:
        return None

    if start > end:
        return FieldViolation(
            PERIOD_START_FIELD,
            ViolationKind.INVALID_ORDER,
            f"must be on or before {PERIOD_END_FIELD}",
            start.isoformat(),
        )
    if _add_years(start, MAX_PERIOD_YEARS) < end:
        return FieldViolation(
            PERIOD_FIELD,
            ViolationKind.PERIOD_TOO_LONG,
            f"cannot exceed {MAX_PERIOD_YEARS} years",
            f"{start.isoformat()}/{end.isoformat()}",
        )
    return None


def validate_date_required(value: date | None, field_name: str) -> None:
    """Raise ``FieldValidationError`` when the date is missing."""
    _raise_if(check_date_required(value, field_name))


def validate_date_range(start: date | None, end: date | None) -> None:
    """Raise ``FieldValidationError`` unless ``start``/``end`` is a valid period."""
    _raise_if(check_date_range(start, end))


# ISSQN consistency


def expected_issqn_value(calculation_base: Decimal, tax_rate: Decimal) -> Decimal:
    """Return ``base * rate / 100`` rounded half-up to cents.

    Examples:
        >>> expected_issqn_value(Decimal("900.00"), Decimal("5.00"))
        Decimal('45.00')
    """
    return (calculation_base * tax_rate / ONE_HUNDRED).quantize(
        CENT, rounding=ROUND_HALF_UP
    )


def check_consistency(
    issqn_value: NumericInput,
    calculation_base: NumericInput,
    tax_rate: NumericInput,
) -> FieldViolation | None:
    """Check that the ISSQN value matches base and rate within one cent.

    The check is skipped when any value is missing, not a number or too
    large for its column; the field rules report those.
    """
    issqn = _to_decimal(issqn_value)
    base = _to_decimal(calculation_base)
    rate = _to_decimal(tax_rate)
    if issqn is None or base is None or rate is None:
        return None
    amount_digits = max(_integer_digits(issqn), _integer_digits(base))
    if amount_digits > MAX_MONETARY_INTEGER_DIGITS:
        return None
    if _integer_digits(rate) > MAX_RATE_INTEGER_DIGITS:
        return None

    expected = expected_issqn_value(base, rate)
    if abs(issqn - expected) > ISSQN_TOLERANCE:
        return FieldViolation(
            ISSQN_VALUE_FIELD,
            ViolationKind.INCONSISTENT,
            f"({_amount_text(issqn)}) is inconsistent with calculation: "
            f"{_amount_text(base)} * {_amount_text(rate)}% = {_amount_text(expected)}",
            issqn_value,
        )
    return None


def validate_consistency(
    issqn_value: NumericInput,
    calculation_base: NumericInput,
    tax_rate: NumericInput,
) -> None:
    """Raise ``ConsistencyError`` when the ISSQN value does not match base and rate."""
    violation = check_consistency(issqn_value, calculation_base, tax_rate)
    if violation is not None:
        base = _to_decimal(calculation_base)
        rate = _to_decimal(tax_rate)
        expected = (
            expected_issqn_value(base, rate)
            if base is not None and rate is not None
            else None
        )
        raise ConsistencyError(violation, expected)


# Full record

type RecordCheck = Callable[[CreditRecord], FieldViolation | None]

# Entity order; violations are reported in this order
_RECORD_CHECKS: tuple[RecordCheck, ...] = (
    lambda r: check_credit_number(r.credit_number),
    lambda r: check_invoice_service_number(r.invoice_number),
    lambda r: check_date_required(r.constitution_date, CONSTITUTION_DATE_FIELD),
    lambda r: check_positive_monetary_value(r.issqn_value, ISSQN_VALUE_FIELD),
    lambda r: check_credit_type(r.credit_type),
    lambda r: check_flag_required(r.simplified_regime, SIMPLIFIED_REGIME_FIELD),
    lambda r: check_rate(r.tax_rate),
    lambda r: check_positive_monetary_value(r.billed_value, BILLED_VALUE_FIELD),
    lambda r: check_monetary_value(r.deduction_value, DEDUCTION_VALUE_FIELD),
    lambda r: check_positive_monetary_value(
        r.calculation_base, CALCULATION_BASE_FIELD
    ),
)


def collect_violations(record: CreditRecord) -> list[FieldViolation]:
    """Run every field rule over ``record`` and return all violations."""
    return [
        violation
        for check in _RECORD_CHECKS
        if (violation := check(record)) is not None
    ]


def validate_full_record(record: CreditRecord) -> None:
    """Validate a complete record.

    Raises:
        AggregateValidationError: With phase ``fields`` listing every field
            violation, or with phase ``consistency`` when all fields are valid
            but the ISSQN value does not match base and rate.
    """
    if violations := collect_violations(record):
        raise AggregateValidationError(
            violations, AggregateValidationError.FIELDS_PHASE
        )

    inconsistency = check_consistency(
        record.issqn_value, record.calculation_base, record.tax_rate
    )
    if inconsistency is not None:
        raise AggregateValidationError(
            [inconsistency], AggregateValidationError.CONSISTENCY_PHASE
        )
