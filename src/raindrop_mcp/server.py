"""Raindrop.io MCP server: exposes the tool handlers over stdio."""

import inspect
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.types import ToolAnnotations

from .api import RaindropAPI
from .operations import RaindropOperations
from .tools import TOOLS, ToolDefinition

logger = logging.getLogger(__name__)

SERVER_NAME = "raindrop-mcp"


def bind_tool(definition: ToolDefinition, ops: RaindropOperations):
    """Bind a handler to `ops` and give it the signature FastMCP should expose."""
    handler = definition.handler

    async def call(**kwargs: Any) -> str:
        response = await handler(ops, **kwargs)
        if response.is_error:
            # FastMCP reports ToolError as a result with isError set
            raise ToolError(response.text)
        return response.text

    signature = inspect.signature(handler)
    parameters = list(signature.parameters.values())[1:]
    call.__signature__ = signature.replace(
        parameters=parameters, return_annotation=inspect.Signature.empty
    )
    call.__name__ = handler.__name__
    call.__doc__ = definition.description
    return call


def create_server(ops: RaindropOperations) -> FastMCP:
    server = FastMCP(SERVER_NAME)
    for definition in TOOLS.values():
        server.add_tool(
            bind_tool(definition, ops),
            name=definition.name,
            title=definition.title,
            description=definition.description,
            annotations=ToolAnnotations(
                title=definition.title,
                readOnlyHint=definition.read_only,
                destructiveHint=definition.destructive,
            ),
        )
    logger.debug("Registered %d tools", len(TOOLS))
    return server


async def run(token: str) -> None:
    """Run the MCP server on stdio until the client disconnects."""
    ops = RaindropOperations(RaindropAPI(token))
    server = create_server(ops)
    logger.info("Raindrop.io MCP server running on stdio")
    try:
        await server.run_stdio_async()
    finally:
        await ops.close()
