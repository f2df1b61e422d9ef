"""Administrative endpoints under ``/api/admin``.

Listing, statistics, data-quality audits, candidate validation and
query cache maintenance. None of them modify stored credits.
"""

from typing import Annotated

from fastapi import APIRouter, Query
from loguru import logger

from src.api.constants import ADMIN_PREFIX, DEFAULT_PAGE_SIZE
from src.api.dependencies import CreditServiceDep, QueryCacheDep
from src.api.schemas.credits import (
    CacheInvalidationResponse,
    CacheStatsResponse,
    CreditPageResponse,
    CreditResponse,
    CreditValidationRequest,
    CreditValidationResponse,
    DuplicatesResponse,
    InconsistentCreditResponse,
    MonthlyStatisticsResponse,
    StatisticsResponse,
    TypeStatisticsResponse,
    to_credit_responses,
)
from src.api.schemas.errors import ErrorResponse
from src.domain.credits.validation import expected_issqn_value

router = APIRouter(
    prefix=ADMIN_PREFIX,
    tags=["Administração"],
    responses={
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)


@router.get(
    "/creditos",
    response_model=list[CreditResponse],
    summary="List every credit",
)
async def list_credits(service: CreditServiceDep) -> list[CreditResponse]:
    records = await service.list_all()
    if not records:
        logger.warning("No credits found in the database")
    return to_credit_responses(records)


@router.get(
    "/creditos/paginado",
    response_model=CreditPageResponse,
    summary="List credits one page at a time",
    responses={400: {"model": ErrorResponse, "description": "Invalid page"}},
)
async def list_credits_page(
    service: CreditServiceDep,
    page: Annotated[int, Query(alias="pagina", description="Zero-based page")] = 0,
    size: Annotated[
        int, Query(alias="tamanho", description="Items per page (1-100)")
    ] = DEFAULT_PAGE_SIZE,
) -> CreditPageResponse:
    """Return one page of credits ordered by id."""
    return CreditPageResponse.from_page(await service.list_page(page, size))


@router.get(
    "/estatisticas",
    response_model=StatisticsResponse,
    summary="Overall ISSQN statistics",
)
async def statistics(service: CreditServiceDep) -> StatisticsResponse:
    """Return the credit count with total, average, minimum and maximum ISSQN."""
    return StatisticsResponse.from_summary(await service.summary())


@router.get(
    "/estatisticas/tipos",
    response_model=list[TypeStatisticsResponse],
    summary="ISSQN statistics per credit type",
)
async def statistics_by_type(
    service: CreditServiceDep,
) -> list[TypeStatisticsResponse]:
    stats = await service.statistics_by_type()
    return [TypeStatisticsResponse.from_statistics(item) for item in stats]


@router.get(
    "/estatisticas/mensais",
    response_model=list[MonthlyStatisticsResponse],
    summary="ISSQN statistics per month of a year",
)
async def monthly_statistics(
    service: CreditServiceDep,
    year: Annotated[int, Query(alias="ano", ge=1900, le=9999, examples=[2024])],
) -> list[MonthlyStatisticsResponse]:
    """Return one entry per month of ``ano`` that has constituted credits."""
    stats = await service.monthly_statistics(year)
    return [MonthlyStatisticsResponse.from_statistics(item) for item in stats]


@router.get(
    "/auditoria/inconsistencias",
    response_model=list[InconsistentCreditResponse],
    summary="Credits whose ISSQN value disagrees with base and rate",
)
async def inconsistent_credits(
    service: CreditServiceDep,
) -> list[InconsistentCreditResponse]:
    """Return stored credits off from ``baseCalculo * aliquota / 100`` by > 0.01."""
    findings = await service.find_inconsistent_records()
    return [InconsistentCreditResponse.from_finding(item) for item in findings]


@router.get(
    "/auditoria/duplicados",
    response_model=DuplicatesResponse,
    summary="Credit and NFS-e numbers shared by several rows",
)
async def duplicates(service: CreditServiceDep) -> DuplicatesResponse:
    return DuplicatesResponse.from_report(await service.find_duplicates())


@router.post(
    "/creditos/validacao",
    response_model=CreditValidationResponse,
    summary="Validate a candidate credit",
    responses={
        400: {
            "model": ErrorResponse,
            "description": "Field violations or inconsistent ISSQN value",
        }
    },
)
async def validate_credit(
    candidate: CreditValidationRequest,
    service: CreditServiceDep,
) -> CreditValidationResponse:
    """Run every field rule and then the ISSQN consistency rule.

    All field violations are reported together. The consistency rule is
    only checked once every field is valid.
    """
    record = candidate.to_record()
    service.validate_record(record)

    expected = None
    if record.calculation_base is not None and record.tax_rate is not None:
        expected = expected_issqn_value(record.calculation_base, record.tax_rate)
    return CreditValidationResponse(
        numero_credito=record.credit_number, valor_issqn_esperado=expected
    )


@router.get(
    "/cache",
    response_model=CacheStatsResponse,
    summary="Query cache counters",
)
async def cache_stats(cache: QueryCacheDep) -> CacheStatsResponse:
    stats = cache.stats()
    return CacheStatsResponse(
        habilitado=stats.enabled,
        entradas=stats.size,
        capacidade=stats.max_entries,
        acertos=stats.hits,
        falhas=stats.misses,
    )


@router.delete(
    "/cache",
    response_model=CacheInvalidationResponse,
    summary="Invalidate cached query results",
)
async def invalidate_cache(
    service: CreditServiceDep,
    prefix: Annotated[
        str | None,
        Query(
            alias="prefixo",
            description="Only drop keys starting with this prefix (e.g. nfse_)",
        ),
    ] = None,
) -> CacheInvalidationResponse:
    removed = service.invalidate_cache(prefix)
    logger.info("Cache invalidated via admin endpoint", removed=removed, prefix=prefix)
    return CacheInvalidationResponse(removidos=removed, prefixo=prefix)
