"""Structured exception hierarchy for consistent error handling.

This module defines the exception system of the credit query API. Every
error raised by the application derives from ``CreditosError`` so the API
boundary can translate it into a consistent response.

Key components:
- **ErrorCode enum**: Standardized error identifiers for programmatic handling
- **Severity enum**: Error classification for monitoring and alerting
- **ViolationKind enum**: Which validation rule a value broke
- **FieldViolation**: A single broken rule, returned by non-raising checks
- **CreditosError**: Base exception with rich context and fingerprinting
- **Specialized exceptions**: Field, consistency, aggregate, lookup and
  data access failures

Validation failures carry a ``ViolationKind`` so callers can branch on the
rule that failed instead of parsing messages.
"""

import hashlib
import traceback
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Standardized error codes for the credit query API.

    These error codes provide consistent identification of error types
    across the application, enabling proper error handling and monitoring.
    """

    # System errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    """An unexpected internal error occurred in the system."""

    DATA_ACCESS_ERROR = "DATA_ACCESS_ERROR"
    """The credit store could not be queried."""

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Input validation failed due to invalid or malformed data."""

    INVALID_PARAMETER = "INVALID_PARAMETER"
    """A single field or query parameter broke a validation rule."""

    MULTIPLE_VIOLATIONS = "MULTIPLE_VIOLATIONS"
    """A full record broke one or more field rules."""

    INCONSISTENT_VALUES = "INCONSISTENT_VALUES"
    """The ISSQN value does not match base and rate."""

    # Resource errors
    NOT_FOUND = "NOT_FOUND"
    """The requested resource could not be found."""

    CREDIT_NOT_FOUND = "CREDIT_NOT_FOUND"
    """No credit exists with the requested credit number."""

    INVOICE_WITHOUT_CREDITS = "INVOICE_WITHOUT_CREDITS"
    """No credit was constituted for the requested NFS-e."""


class Severity(Enum):
    """Severity levels for errors in the credit query API.

    These severity levels help categorize the impact and urgency of errors,
    enabling appropriate handling, monitoring, and alerting strategies.
    """

    LOW = "LOW"
    """Low severity errors that don't significantly impact functionality."""

    MEDIUM = "MEDIUM"
    """Medium severity errors that may affect some features but not critical ops."""

    HIGH = "HIGH"
    """High severity errors impacting critical functionality or data integrity."""

    CRITICAL = "CRITICAL"
    """Critical errors requiring immediate attention, may cause system failures."""


class ViolationKind(Enum):
    """Validation rules a value can break."""

    REQUIRED = "REQUIRED"
    TOO_LONG = "TOO_LONG"
    INVALID_FORMAT = "INVALID_FORMAT"
    NOT_A_NUMBER = "NOT_A_NUMBER"
    NEGATIVE = "NEGATIVE"
    TOO_MANY_DECIMALS = "TOO_MANY_DECIMALS"
    TOO_MANY_DIGITS = "TOO_MANY_DIGITS"
    NOT_POSITIVE = "NOT_POSITIVE"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    INVALID_CHOICE = "INVALID_CHOICE"
    INVALID_ORDER = "INVALID_ORDER"
    PERIOD_TOO_LONG = "PERIOD_TOO_LONG"
    INCONSISTENT = "INCONSISTENT"


@dataclass(frozen=True, slots=True)
class FieldViolation:
    """One broken validation rule.

    Attributes:
        field: Wire name of the offending field (e.g. ``numeroCredito``).
        kind: The rule that was broken.
        reason: Human-readable description, phrased to follow the field name.
        value: The offending value as received.
    """

    field: str
    kind: ViolationKind
    reason: str
    value: object = None

    @property
    def message(self) -> str:
        """Return the field name followed by the reason."""
        return f"{self.field} {self.reason}"

    def as_detail(self) -> dict[str, Any]:
        """Return a JSON-friendly description for error responses."""
        return {
            "field": self.field,
            "kind": self.kind.value,
            "reason": self.reason,
            "value": self.value,
        }


class CreditosError(Exception):
    """Base exception class for all credit query API exceptions.

    All custom exceptions in the application should inherit from this class
    to ensure consistent error handling and formatting.

    Args:
        error_code: Unique identifier for the error type (string or ErrorCode enum)
        message: Human-readable error message
        severity: Severity level of the error (defaults to MEDIUM)
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        error_code: str | ErrorCode,
        message: str,
        severity: Severity = Severity.MEDIUM,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.error_code = (
            error_code.value if isinstance(error_code, ErrorCode) else error_code
        )
        self.message = message
        self.severity = severity
        self.context = context or {}
        self.cause = cause

        # Capture stack trace at creation time
        self.stack_trace = traceback.format_stack()[:-1]  # Exclude this frame

        self.fingerprint = self._generate_fingerprint()

        super().__init__(message)
        if cause:
            self.__cause__ = cause

    def _generate_fingerprint(self) -> str:
        """Generate a fingerprint for error grouping.

        Creates a hash based on the error type and the location where it was raised,
        allowing similar errors to be grouped together in monitoring systems.

        Returns:
            str: A hash string for error grouping
        """
        max_frames = 5
        relevant_frames = (
            self.stack_trace[-max_frames:]
            if len(self.stack_trace) > max_frames
            else self.stack_trace
        )

        fingerprint_data = f"{self.__class__.__name__}:{self.error_code}"

        for frame in relevant_frames:
            if "site-packages" not in frame and "src/" in frame:
                lines = frame.strip().split("\n")
                if lines:
                    fingerprint_data += f":{lines[0]}"

        return hashlib.sha256(fingerprint_data.encode()).hexdigest()[:16]

    @property
    def is_expected(self) -> bool:
        """Determine if this is an expected error based on severity.

        Expected errors come from user input or business rules and should
        not trigger alerts.

        Returns:
            bool: True if the error is expected (LOW or MEDIUM severity)
        """
        return self.severity in (Severity.LOW, Severity.MEDIUM)

    @property
    def should_alert(self) -> bool:
        """Determine if this error should trigger alerts.

        Returns:
            bool: True if the error should trigger alerts (HIGH or CRITICAL severity)
        """
        return self.severity in (Severity.HIGH, Severity.CRITICAL)

    def __str__(self) -> str:
        """Return a string representation of the exception.

        Returns:
            str: A formatted string containing the error code and message
        """
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return a detailed representation of the exception.

        Returns:
            str: A string showing the class name, error code, message, severity,
                and context
        """
        class_name = self.__class__.__name__
        context_str = f", context={self.context}" if self.context else ""
        return (
            f"{class_name}(error_code='{self.error_code}', "
            f"message='{self.message}', severity={self.severity.value}{context_str})"
        )


class ValidationError(CreditosError):
    """Exception raised when input validation fails.

    Args:
        message: Description of the validation failure
        error_code: Error code (defaults to VALIDATION_ERROR)
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.VALIDATION_ERROR,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.LOW, context, cause)


class FieldValidationError(ValidationError):
    """A single field broke a single rule.

    Args:
        violation: The broken rule, with field name, kind and offending value.
    """

    def __init__(self, violation: FieldViolation) -> None:
        self.violation = violation
        super().__init__(
            violation.message,
            error_code=ErrorCode.INVALID_PARAMETER,
            context=violation.as_detail(),
        )

    @property
    def field(self) -> str:
        """Wire name of the offending field."""
        return self.violation.field

    @property
    def kind(self) -> ViolationKind:
        """Rule that was broken."""
        return self.violation.kind

    @property
    def value(self) -> object:
        """Offending value as received."""
        return self.violation.value


class ConsistencyError(ValidationError):
    """The ISSQN value does not match ``base * rate / 100``.

    Args:
        violation: The consistency violation; its reason embeds all values.
        expected: The ISSQN value computed from base and rate.
    """

    def __init__(self, violation: FieldViolation, expected: object) -> None:
        self.violation = violation
        self.expected = expected
        super().__init__(
            violation.message,
            error_code=ErrorCode.INCONSISTENT_VALUES,
            context={**violation.as_detail(), "expected": expected},
        )


class AggregateValidationError(ValidationError):
    """One or more rules failed while validating a full record.

    Args:
        violations: Every violation found in the failing phase, in check order.
        phase: ``"fields"`` for per-field rules, ``"consistency"`` for the
            cross-field check.
    """

    FIELDS_PHASE = "fields"
    CONSISTENCY_PHASE = "consistency"

    def __init__(self, violations: Sequence[FieldViolation], phase: str) -> None:
        self.violations = list(violations)
        self.phase = phase

        if phase == self.CONSISTENCY_PHASE:
            prefix = "Inconsistencies found"
            error_code = ErrorCode.INCONSISTENT_VALUES
        else:
            prefix = "Multiple violations found"
            error_code = ErrorCode.MULTIPLE_VIOLATIONS

        joined = ", ".join(violation.message for violation in self.violations)
        super().__init__(
            f"{prefix}: {joined}",
            error_code=error_code,
            context={
                "phase": phase,
                "violations": [violation.as_detail() for violation in self.violations],
            },
        )

    @property
    def fields(self) -> list[str]:
        """Names of the fields that failed, in check order."""
        return [violation.field for violation in self.violations]


class NotFoundError(CreditosError):
    """Exception raised when a requested resource cannot be found.

    Args:
        message: Description of what resource was not found
        error_code: Error code (defaults to NOT_FOUND)
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.NOT_FOUND,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.LOW, context, cause)


class CreditNotFoundError(NotFoundError):
    """No credit exists with the given credit number."""

    def __init__(self, credit_number: str) -> None:
        super().__init__(
            "ISSQN credit not found",
            error_code=ErrorCode.CREDIT_NOT_FOUND,
            context={"numeroCredito": credit_number},
        )


class InvoiceWithoutCreditsError(NotFoundError):
    """No credit was constituted for the given NFS-e number."""

    def __init__(self, invoice_number: str) -> None:
        super().__init__(
            "No constituted credits found for this NFS-e",
            error_code=ErrorCode.INVOICE_WITHOUT_CREDITS,
            context={"numeroNfse": invoice_number},
        )


class DataAccessError(CreditosError):
    """Exception raised when the credit store fails.

    Args:
        operation: Description of the operation that failed
        cause: The original database exception
    """

    def __init__(self, operation: str, cause: Exception | None = None) -> None:
        super().__init__(
            ErrorCode.DATA_ACCESS_ERROR,
            f"Failed to {operation}",
            Severity.HIGH,
            {"operation": operation},
            cause,
        )
