"""Persistence of constituted credits in the ``credito`` table."""

from src.infrastructure.credits.models import Credit
from src.infrastructure.credits.repository import CreditRepository

__all__ = ["Credit", "CreditRepository"]
