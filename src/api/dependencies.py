"""Per-request wiring of the credit service."""

from typing import Annotated

from fastapi import Depends

from src.domain.credits.service import CreditService
from src.infrastructure.cache import QueryCache, get_query_cache
from src.infrastructure.credits.repository import CreditRepository
from src.infrastructure.database.dependencies import DatabaseSession

QueryCacheDep = Annotated[QueryCache, Depends(get_query_cache)]


def get_credit_service(db: DatabaseSession, cache: QueryCacheDep) -> CreditService:
    """Build a service over the request's session and the shared query cache."""
    return CreditService(CreditRepository(db), cache)


CreditServiceDep = Annotated[CreditService, Depends(get_credit_service)]
