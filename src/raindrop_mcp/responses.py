"""Uniform result envelope for tool calls."""

import functools
import json
import logging
from typing import Any, Awaitable, Callable

from pydantic import BaseModel

from .api import RaindropError

logger = logging.getLogger(__name__)

MINIMAL_ACK = "ok"

Handler = Callable[..., Awaitable[Any]]


class ToolResponse(BaseModel):
    text: str
    is_error: bool = False


def success_response(text: str) -> ToolResponse:
    return ToolResponse(text=text)


def json_response(data: Any) -> ToolResponse:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    return success_response(json.dumps(data, indent=2, default=str))


def error_response(error: BaseException) -> ToolResponse:
    text = f"Error: {error}"
    hint = getattr(error, "hint", None)
    if not hint and isinstance(error, RaindropError):
        if error.status_code == 404:
            hint = "The requested resource was not found. Verify the ID is correct."
        elif error.status_code == 401:
            hint = "Authentication failed. Check that RAINDROP_TOKEN is a valid API token."
    if hint:
        text = f"{text}\nHint: {hint}"
    return ToolResponse(text=text, is_error=True)


def to_response(result: Any) -> ToolResponse:
    if isinstance(result, ToolResponse):
        return result
    if isinstance(result, str):
        return success_response(result)
    return json_response(result)


def tool_handler(func: Handler) -> Callable[..., Awaitable[ToolResponse]]:
    """Turn a handler's result, or any failure it raises, into a ToolResponse."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> ToolResponse:
        try:
            return to_response(await func(*args, **kwargs))
        except Exception as e:
            logger.warning("Tool %s failed: %s", func.__name__, e)
            return error_response(e)

    return wrapper


def minimal_shaping(func: Handler) -> Handler:
    """Replace a mutating handler's result with a bare ack when `minimal` is set."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> Any:
        result = await func(*args, **kwargs)
        return MINIMAL_ACK if kwargs.get("minimal") else result

    return wrapper
