"""Credit records and the result types returned by credit queries.

All types here are immutable. A ``CreditRecord`` is a candidate as much as
a stored row: every field may be ``None`` so the validator can report
missing values instead of failing on construction.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from src.core.constants import SIMPLIFIED_REGIME_NO, SIMPLIFIED_REGIME_YES


class CreditType(Enum):
    """Kinds of constituted credit."""

    ISSQN = "ISSQN"
    IPTU = "IPTU"
    ITBI = "ITBI"
    TAXAS = "TAXAS"

    @classmethod
    def from_label(cls, label: str) -> "CreditType":
        """Parse a type label ignoring case and surrounding whitespace.

        Raises:
            ValueError: If the label names no known type.
        """
        return cls(label.strip().upper())


@dataclass(frozen=True, slots=True)
class CreditRecord:
    """A constituted ISSQN credit.

    Attributes:
        credit_number: Digits-only credit identifier.
        invoice_number: Digits-only NFS-e number the credit was constituted from.
        constitution_date: Date the credit was constituted.
        issqn_value: ISSQN amount.
        credit_type: One of the ``CreditType`` labels.
        simplified_regime: Whether the taxpayer is under Simples Nacional.
        tax_rate: ISSQN rate as a percentage.
        billed_value: Invoiced amount.
        deduction_value: Amount deducted from the billed value.
        calculation_base: Amount the rate applies to.
        record_id: Surrogate key of the stored row, ``None`` for candidates.
    """

    credit_number: str | None = None
    invoice_number: str | None = None
    constitution_date: date | None = None
    issqn_value: Decimal | None = None
    credit_type: str | None = None
    simplified_regime: bool | None = None
    tax_rate: Decimal | None = None
    billed_value: Decimal | None = None
    deduction_value: Decimal | None = None
    calculation_base: Decimal | None = None
    record_id: int | None = None

    @property
    def simplified_regime_label(self) -> str | None:
        """Return ``"Sim"``/``"Não"`` for the Simples Nacional flag."""
        if self.simplified_regime is None:
            return None
        return SIMPLIFIED_REGIME_YES if self.simplified_regime else SIMPLIFIED_REGIME_NO


@dataclass(frozen=True, slots=True)
class IssqnSummary:
    """Aggregate of every stored ISSQN value."""

    count: int
    total: Decimal
    average: Decimal | None
    minimum: Decimal | None
    maximum: Decimal | None


@dataclass(frozen=True, slots=True)
class TypeStatistics:
    """Aggregate of ISSQN values for one credit type."""

    credit_type: str
    count: int
    total: Decimal
    average: Decimal | None


@dataclass(frozen=True, slots=True)
class MonthlyStatistics:
    """Aggregate of ISSQN values constituted in one month."""

    year: int
    month: int
    count: int
    total: Decimal
    average: Decimal | None


@dataclass(frozen=True, slots=True)
class InconsistentCredit:
    """A stored credit whose ISSQN value does not match base and rate."""

    record: CreditRecord
    expected: Decimal
    difference: Decimal


@dataclass(frozen=True, slots=True)
class DuplicateEntry:
    """A document number shared by more than one stored credit."""

    number: str
    occurrences: int


@dataclass(frozen=True, slots=True)
class Page[T]:
    """One page of an ordered listing."""

    items: list[T]
    page: int
    size: int
    total: int

    @property
    def total_pages(self) -> int:
        """Number of pages needed to list every item."""
        if self.size <= 0:
            return 0
        return -(-self.total // self.size)


@dataclass(frozen=True, slots=True)
class DuplicateReport:
    """Document numbers appearing on more than one stored credit."""

    credit_numbers: list[DuplicateEntry]
    invoice_numbers: list[DuplicateEntry]
