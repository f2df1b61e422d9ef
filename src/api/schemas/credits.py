"""Request and response models of the credit endpoints.

Field names are snake_case in Python and camelCase on the wire
(``numero_credito`` <-> ``numeroCredito``). Monetary amounts are exact
``Decimal`` values internally and JSON numbers in responses.
"""

import time
from datetime import date
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator

from src.core.constants import (
    MILLISECONDS_PER_SECOND,
    SIMPLIFIED_REGIME_NO,
    SIMPLIFIED_REGIME_YES,
)
from src.domain.credits.models import (
    CreditRecord,
    DuplicateEntry,
    DuplicateReport,
    InconsistentCredit,
    IssqnSummary,
    MonthlyStatistics,
    Page,
    TypeStatistics,
)

# Decimal in Python, number in JSON
WireDecimal = Annotated[
    Decimal, PlainSerializer(float, return_type=float, when_used="json")
]


def current_timestamp_ms() -> int:
    """Return the current Unix time in milliseconds."""
    return int(time.time() * MILLISECONDS_PER_SECOND)


class WireModel(BaseModel):
    """Base for models exchanged with clients under camelCase names."""

    model_config = ConfigDict(populate_by_name=True)


class CreditResponse(WireModel):
    """A constituted credit as returned by every credit endpoint."""

    numero_credito: str = Field(
        ..., alias="numeroCredito", examples=["123456"]
    )
    numero_nfse: str = Field(..., alias="numeroNfse", examples=["7891011"])
    data_constituicao: date = Field(
        ..., alias="dataConstituicao", examples=["2024-02-25"]
    )
    valor_issqn: WireDecimal = Field(..., alias="valorIssqn", examples=[1500.75])
    tipo_credito: str = Field(..., alias="tipoCredito", examples=["ISSQN"])
    simples_nacional: str = Field(
        ...,
        alias="simplesNacional",
        description='"Sim" when the taxpayer is under Simples Nacional, else "Não"',
        examples=[SIMPLIFIED_REGIME_YES],
    )
    aliquota: WireDecimal = Field(..., examples=[5.0])
    valor_faturado: WireDecimal = Field(
        ..., alias="valorFaturado", examples=[30000.0]
    )
    valor_deducao: WireDecimal = Field(..., alias="valorDeducao", examples=[5000.0])
    base_calculo: WireDecimal = Field(..., alias="baseCalculo", examples=[25000.0])

    @classmethod
    def from_record(cls, record: CreditRecord) -> "CreditResponse":
        """Build the wire representation of a stored credit."""
        return cls(
            numero_credito=record.credit_number,
            numero_nfse=record.invoice_number,
            data_constituicao=record.constitution_date,
            valor_issqn=record.issqn_value,
            tipo_credito=record.credit_type,
            simples_nacional=record.simplified_regime_label or SIMPLIFIED_REGIME_NO,
            aliquota=record.tax_rate,
            valor_faturado=record.billed_value,
            valor_deducao=record.deduction_value,
            base_calculo=record.calculation_base,
        )


def to_credit_responses(records: list[CreditRecord]) -> list[CreditResponse]:
    """Convert domain records to response models, keeping their order."""
    return [CreditResponse.from_record(record) for record in records]


class ExistenceResponse(BaseModel):
    """Outcome of an existence check."""

    exists: bool
    value: str = Field(..., description="The number that was checked")
    type: str = Field(..., description='"credito" or "nfse"')
    timestamp: int = Field(
        default_factory=current_timestamp_ms,
        description="Unix time of the check in milliseconds",
    )


class StatisticsResponse(WireModel):
    """Overall ISSQN statistics."""

    total_creditos: int = Field(..., alias="totalCreditos")
    valor_total_issqn: WireDecimal = Field(..., alias="valorTotalIssqn")
    valor_medio_issqn: WireDecimal | None = Field(..., alias="valorMedioIssqn")
    valor_minimo_issqn: WireDecimal | None = Field(..., alias="valorMinimoIssqn")
    valor_maximo_issqn: WireDecimal | None = Field(..., alias="valorMaximoIssqn")
    timestamp: int = Field(default_factory=current_timestamp_ms)

    @classmethod
    def from_summary(cls, summary: IssqnSummary) -> "StatisticsResponse":
        return cls(
            total_creditos=summary.count,
            valor_total_issqn=summary.total,
            valor_medio_issqn=summary.average,
            valor_minimo_issqn=summary.minimum,
            valor_maximo_issqn=summary.maximum,
        )


class TypeStatisticsResponse(WireModel):
    """ISSQN aggregates of one credit type."""

    tipo_credito: str = Field(..., alias="tipoCredito")
    quantidade: int
    valor_total: WireDecimal = Field(..., alias="valorTotal")
    valor_medio: WireDecimal | None = Field(..., alias="valorMedio")

    @classmethod
    def from_statistics(cls, stats: TypeStatistics) -> "TypeStatisticsResponse":
        return cls(
            tipo_credito=stats.credit_type,
            quantidade=stats.count,
            valor_total=stats.total,
            valor_medio=stats.average,
        )


class MonthlyStatisticsResponse(WireModel):
    """ISSQN aggregates of credits constituted in one month."""

    ano: int
    mes: int
    quantidade: int
    valor_total: WireDecimal = Field(..., alias="valorTotal")
    valor_medio: WireDecimal | None = Field(..., alias="valorMedio")

    @classmethod
    def from_statistics(
        cls, stats: MonthlyStatistics
    ) -> "MonthlyStatisticsResponse":
        return cls(
            ano=stats.year,
            mes=stats.month,
            quantidade=stats.count,
            valor_total=stats.total,
            valor_medio=stats.average,
        )


class CreditPageResponse(WireModel):
    """One page of the administrative credit listing."""

    conteudo: list[CreditResponse]
    pagina: int
    tamanho: int
    total_elementos: int = Field(..., alias="totalElementos")
    total_paginas: int = Field(..., alias="totalPaginas")

    @classmethod
    def from_page(cls, page: Page[CreditRecord]) -> "CreditPageResponse":
        return cls(
            conteudo=to_credit_responses(page.items),
            pagina=page.page,
            tamanho=page.size,
            total_elementos=page.total,
            total_paginas=page.total_pages,
        )


class InconsistentCreditResponse(WireModel):
    """A stored credit whose ISSQN value does not match base and rate."""

    credito: CreditResponse
    valor_esperado: WireDecimal = Field(..., alias="valorEsperado")
    diferenca: WireDecimal

    @classmethod
    def from_finding(cls, finding: InconsistentCredit) -> "InconsistentCreditResponse":
        return cls(
            credito=CreditResponse.from_record(finding.record),
            valor_esperado=finding.expected,
            diferenca=finding.difference,
        )


class DuplicateEntryResponse(WireModel):
    numero: str
    ocorrencias: int

    @classmethod
    def from_entry(cls, entry: DuplicateEntry) -> "DuplicateEntryResponse":
        return cls(numero=entry.number, ocorrencias=entry.occurrences)


class DuplicatesResponse(WireModel):
    """Document numbers appearing on more than one stored credit."""

    numeros_credito: list[DuplicateEntryResponse] = Field(
        ..., alias="numerosCredito"
    )
    numeros_nfse: list[DuplicateEntryResponse] = Field(..., alias="numerosNfse")

    @classmethod
    def from_report(cls, report: DuplicateReport) -> "DuplicatesResponse":
        return cls(
            numeros_credito=[
                DuplicateEntryResponse.from_entry(e) for e in report.credit_numbers
            ],
            numeros_nfse=[
                DuplicateEntryResponse.from_entry(e) for e in report.invoice_numbers
            ],
        )


class CreditValidationRequest(WireModel):
    """A candidate credit submitted for validation.

    Every field is optional here so that missing values are reported by
    the credit validator, together with every other broken rule, instead
    of being rejected one at a time by the request parser.
    """

    numero_credito: str | None = Field(default=None, alias="numeroCredito")
    numero_nfse: str | None = Field(default=None, alias="numeroNfse")
    data_constituicao: date | None = Field(default=None, alias="dataConstituicao")
    valor_issqn: Decimal | None = Field(default=None, alias="valorIssqn")
    tipo_credito: str | None = Field(default=None, alias="tipoCredito")
    simples_nacional: bool | None = Field(default=None, alias="simplesNacional")
    aliquota: Decimal | None = None
    valor_faturado: Decimal | None = Field(default=None, alias="valorFaturado")
    valor_deducao: Decimal | None = Field(default=None, alias="valorDeducao")
    base_calculo: Decimal | None = Field(default=None, alias="baseCalculo")

    @field_validator("simples_nacional", mode="before")
    @classmethod
    def parse_simplified_regime_label(cls, v: object) -> object:
        """Accept the ``"Sim"``/``"Não"`` labels used in responses."""
        if v == SIMPLIFIED_REGIME_YES:
            return True
        if v == SIMPLIFIED_REGIME_NO:
            return False
        return v

    def to_record(self) -> CreditRecord:
        """Return the candidate as a domain record."""
        return CreditRecord(
            credit_number=self.numero_credito,
            invoice_number=self.numero_nfse,
            constitution_date=self.data_constituicao,
            issqn_value=self.valor_issqn,
            credit_type=self.tipo_credito,
            simplified_regime=self.simples_nacional,
            tax_rate=self.aliquota,
            billed_value=self.valor_faturado,
            deduction_value=self.valor_deducao,
            calculation_base=self.base_calculo,
        )


class CreditValidationResponse(WireModel):
    """Outcome of a successful candidate validation."""

    valido: bool = True
    numero_credito: str | None = Field(default=None, alias="numeroCredito")
    valor_issqn_esperado: WireDecimal | None = Field(
        default=None, alias="valorIssqnEsperado"
    )


class CacheInvalidationResponse(WireModel):
    """Outcome of a cache invalidation."""

    removidos: int = Field(..., description="Number of cache entries dropped")
    prefixo: str | None = None
    timestamp: int = Field(default_factory=current_timestamp_ms)


class CacheStatsResponse(WireModel):
    """Counters of the query cache."""

    habilitado: bool
    entradas: int
    capacidade: int
    acertos: int
    falhas: int
