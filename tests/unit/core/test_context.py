"""Unit tests for request-scoped identifiers."""

import asyncio
import uuid

import pytest

from src.core.context import (
    RequestContext,
    generate_correlation_id,
    generate_request_id,
)


@pytest.mark.unit
class TestRequestContext:
    def test_empty_by_default(self) -> None:
        assert RequestContext.get_correlation_id() is None
        assert RequestContext.get_request_id() is None

    def test_set_and_clear(self) -> None:
        RequestContext.set_correlation_id("corr-1")
        RequestContext.set_request_id("req-1")

        assert RequestContext.get_correlation_id() == "corr-1"
        assert RequestContext.get_request_id() == "req-1"

        RequestContext.clear()

        assert RequestContext.get_correlation_id() is None
        assert RequestContext.get_request_id() is None

    async def test_tasks_do_not_share_identifiers(self) -> None:
        async def worker(value: str) -> str | None:
            RequestContext.set_correlation_id(value)
            await asyncio.sleep(0)
            return RequestContext.get_correlation_id()

        results = await asyncio.gather(worker("a"), worker("b"))

        assert results == ["a", "b"]
        assert RequestContext.get_correlation_id() is None


@pytest.mark.unit
class TestIdentifierGeneration:
    def test_correlation_id_is_uuid4(self) -> None:
        value = generate_correlation_id()

        assert uuid.UUID(value).version == 4

    def test_request_id_prefix(self) -> None:
        value = generate_request_id()

        assert value.startswith("req-")
        assert uuid.UUID(value.removeprefix("req-")).version == 4

    def test_identifiers_are_unique(self) -> None:
        assert generate_request_id() != generate_request_id()
