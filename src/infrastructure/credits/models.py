"""SQLAlchemy mapping of the ``credito`` table."""

from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from src.core.constants import MAX_DOCUMENT_NUMBER_LENGTH
from src.domain.credits.models import CreditRecord
from src.infrastructure.database.base import BaseModel

MONEY = Numeric(15, 2)
RATE = Numeric(5, 2)


class Credit(BaseModel):
    """A constituted ISSQN credit row.

    Column names follow the existing ``credito`` schema shared with the
    ingestion process.
    """

    __tablename__ = "credito"
    __table_args__ = (
        Index("idx_credito_numero_nfse", "numero_nfse"),
        Index("idx_credito_numero_credito", "numero_credito"),
    )

    credit_number: Mapped[str] = mapped_column(
        "numero_credito", String(MAX_DOCUMENT_NUMBER_LENGTH), nullable=False
    )
    invoice_number: Mapped[str] = mapped_column(
        "numero_nfse", String(MAX_DOCUMENT_NUMBER_LENGTH), nullable=False
    )
    constitution_date: Mapped[date] = mapped_column(
        "data_constituicao", Date, nullable=False
    )
    issqn_value: Mapped[Decimal] = mapped_column("valor_issqn", MONEY, nullable=False)
    credit_type: Mapped[str] = mapped_column("tipo_credito", String(50), nullable=False)
    simplified_regime: Mapped[bool] = mapped_column(
        "simples_nacional", Boolean, nullable=False
    )
    tax_rate: Mapped[Decimal] = mapped_column("aliquota", RATE, nullable=False)
    billed_value: Mapped[Decimal] = mapped_column(
        "valor_faturado", MONEY, nullable=False
    )
    deduction_value: Mapped[Decimal] = mapped_column(
        "valor_deducao", MONEY, nullable=False
    )
    calculation_base: Mapped[Decimal] = mapped_column(
        "base_calculo", MONEY, nullable=False
    )

    def to_record(self) -> CreditRecord:
        """Return an immutable domain copy of this row."""
        return CreditRecord(
            credit_number=self.credit_number,
            invoice_number=self.invoice_number,
            constitution_date=self.constitution_date,
            issqn_value=self.issqn_value,
            credit_type=self.credit_type,
            simplified_regime=self.simplified_regime,
            tax_rate=self.tax_rate,
            billed_value=self.billed_value,
            deduction_value=self.deduction_value,
            calculation_base=self.calculation_base,
            record_id=self.id,
        )

    def __repr__(self) -> str:
        return (
            f"<Credit(id={self.id}, numero_credito={self.credit_number!r}, "
            f"numero_nfse={self.invoice_number!r})>"
        )
