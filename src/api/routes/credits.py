"""Public credit queries under ``/api/creditos``.

Path parameters are passed to the service as received: the credit
validator, not FastAPI, decides whether a number is acceptable, so a
malformed number gets the same ``INVALID_PARAMETER`` response whichever
endpoint it reaches. Existence checks never reject a number; a malformed
one simply does not exist.
"""

from datetime import date
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Query

from src.api.constants import (
    CREDITS_PREFIX,
    EXISTENCE_TYPE_CREDIT,
    EXISTENCE_TYPE_INVOICE,
)
from src.api.dependencies import CreditServiceDep
from src.api.schemas.credits import (
    CreditResponse,
    ExistenceResponse,
    to_credit_responses,
)
from src.api.schemas.errors import ErrorResponse

router = APIRouter(
    prefix=CREDITS_PREFIX,
    tags=["Créditos ISSQN"],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid parameter"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)


@router.get(
    "/credito/{numeroCredito}",
    response_model=CreditResponse,
    summary="Get a credit by its number",
    responses={404: {"model": ErrorResponse, "description": "Credit not found"}},
)
async def get_credit_by_number(
    numeroCredito: str,  # noqa: N803 - wire name
    service: CreditServiceDep,
) -> CreditResponse:
    """Return the constituted credit with this number."""
    record = await service.get_credit_by_number(numeroCredito)
    return CreditResponse.from_record(record)


@router.get(
    "/exists/credito/{numeroCredito}",
    response_model=ExistenceResponse,
    summary="Check whether a credit exists",
)
async def credit_exists(
    numeroCredito: str,  # noqa: N803 - wire name
    service: CreditServiceDep,
) -> ExistenceResponse:
    exists = await service.credit_exists(numeroCredito)
    return ExistenceResponse(
        exists=exists, value=numeroCredito, type=EXISTENCE_TYPE_CREDIT
    )


@router.get(
    "/exists/nfse/{numeroNfse}",
    response_model=ExistenceResponse,
    summary="Check whether an NFS-e has constituted credits",
)
async def invoice_has_credits(
    numeroNfse: str,  # noqa: N803 - wire name
    service: CreditServiceDep,
) -> ExistenceResponse:
    exists = await service.invoice_has_credits(numeroNfse)
    return ExistenceResponse(
        exists=exists, value=numeroNfse, type=EXISTENCE_TYPE_INVOICE
    )


@router.get(
    "/busca/periodo",
    response_model=list[CreditResponse],
    summary="Search credits by constitution date",
)
async def search_by_period(
    service: CreditServiceDep,
    start: Annotated[date, Query(alias="dataInicio", examples=["2024-01-01"])],
    end: Annotated[date, Query(alias="dataFim", examples=["2024-12-31"])],
) -> list[CreditResponse]:
    """Return credits constituted between both dates, inclusive.

    The period may not be longer than five years.
    """
    return to_credit_responses(await service.search_by_period(start, end))


@router.get(
    "/busca/tipo/{tipoCredito}",
    response_model=list[CreditResponse],
    summary="Search credits by type",
)
async def search_by_type(
    tipoCredito: str,  # noqa: N803 - wire name
    service: CreditServiceDep,
) -> list[CreditResponse]:
    """Return credits of one type (ISSQN, IPTU, ITBI or TAXAS, any case)."""
    return to_credit_responses(await service.search_by_type(tipoCredito))


@router.get(
    "/busca/simples-nacional",
    response_model=list[CreditResponse],
    summary="Search credits by Simples Nacional status",
)
async def search_by_simplified_regime(
    service: CreditServiceDep,
    simplified_regime: Annotated[bool, Query(alias="simplesNacional")],
) -> list[CreditResponse]:
    records = await service.search_by_simplified_regime(simplified_regime)
    return to_credit_responses(records)


@router.get(
    "/busca/faixa-valor",
    response_model=list[CreditResponse],
    summary="Search credits by ISSQN value range",
)
async def search_by_value_range(
    service: CreditServiceDep,
    minimum: Annotated[Decimal, Query(alias="valorMinimo", examples=["100.00"])],
    maximum: Annotated[Decimal, Query(alias="valorMaximo", examples=["2000.00"])],
) -> list[CreditResponse]:
    """Return credits whose ISSQN value lies in the range, largest first."""
    return to_credit_responses(await service.search_by_value_range(minimum, maximum))


@router.get(
    "/{numeroNfse}",
    response_model=list[CreditResponse],
    summary="List the credits of an NFS-e",
    responses={
        404: {"model": ErrorResponse, "description": "NFS-e has no credits"}
    },
)
async def get_credits_by_invoice(
    numeroNfse: str,  # noqa: N803 - wire name
    service: CreditServiceDep,
) -> list[CreditResponse]:
    """Return every credit constituted from the NFS-e, newest first."""
    return to_credit_responses(await service.get_credits_by_invoice(numeroNfse))
