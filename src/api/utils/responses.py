"""JSON response class backed by orjson.

``ORJSONResponse`` is the default response class of the application.
orjson handles datetime and date natively; ``Decimal`` amounts that reach
the renderer without going through a response model are written as JSON
numbers, which is how every monetary field appears on the wire.
"""

from decimal import Decimal
from typing import Any

import orjson
from fastapi.responses import JSONResponse
from pydantic import BaseModel


def _default(value: object) -> object:
    """Serialize types orjson does not know about."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    raise TypeError(f"Type is not JSON serializable: {type(value).__name__}")


class ORJSONResponse(JSONResponse):
    """FastAPI Response class using orjson for JSON serialization.

    Attributes:
        media_type: The media type for the response.
    """

    media_type = "application/json"

    def render(self, content: Any) -> bytes:  # noqa: ANN401 - any JSON content
        """Render the content as JSON using orjson.

        Args:
            content: The content to serialize to JSON.

        Returns:
            bytes: The JSON-encoded bytes.
        """
        if isinstance(content, BaseModel):
            content = content.model_dump(mode="json", by_alias=True)

        return orjson.dumps(content, default=_default, option=orjson.OPT_SORT_KEYS)
