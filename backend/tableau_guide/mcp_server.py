"""MCP (Model Context Protocol) surface: one tool over an SSE transport."""
import logging
from typing import Any, Dict, List

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.sse import SseServerTransport
from starlette.requests import Request
from starlette.responses import Response

from . import __version__
from .services.knowledge import KnowledgeBase

logger = logging.getLogger(__name__)

SERVER_NAME = "Tableau Optimization Expert (Gemini)"
TOOL_NAME = "query_tableau_manual"
SSE_PATH = "/sse"
MESSAGE_PATH = "/mcp/messages/"

QUERY_TOOL = types.Tool(
    name=TOOL_NAME,
    description="Ask a question about Tableau Desktop based on the official documentation.",
    inputSchema={
        "type": "object",
        "properties": {
            "question": {
                "type": "string",
                "minLength": 1,
                "description": "The user's question about Tableau",
            },
        },
        "required": ["question"],
    },
)


def _text_result(text: str, is_error: bool = False) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        isError=is_error,
    )


async def run_query_tool(knowledge: KnowledgeBase, arguments: Dict[str, Any]) -> types.CallToolResult:
    """Answer a tool call; failures come back as ``isError`` results, never as exceptions."""
    question = (arguments or {}).get("question")
    if not isinstance(question, str) or not question.strip():
        return _text_result("Question is required", is_error=True)

    try:
        answer = await knowledge.ask(question.strip())
        return _text_result(answer)
    except Exception as e:
        logger.error(f"Tool {TOOL_NAME} failed: {str(e)}")
        return _text_result(f"Error querying knowledge base: {str(e)}", is_error=True)


def create_mcp_server(knowledge: KnowledgeBase) -> Server:
    server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return [QUERY_TOOL]

    @server.call_tool()
    async def call_tool(name: str, arguments: Dict[str, Any]) -> types.CallToolResult:
        if name != TOOL_NAME:
            return _text_result(f"Unknown tool: {name}", is_error=True)
        return await run_query_tool(knowledge, arguments)

    return server


def mount_mcp(app, knowledge: KnowledgeBase) -> Server:
    """Register the SSE stream and its message channel on an ASGI app."""
    server = create_mcp_server(knowledge)
    transport = SseServerTransport(MESSAGE_PATH)

    async def handle_sse(request: Request):
        logger.info(f"MCP client connected from {request.client.host if request.client else 'unknown'}")
        async with transport.connect_sse(request.scope, request.receive, request._send) as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
        return Response()

    app.add_route(SSE_PATH, handle_sse, methods=["GET"])
    app.mount(MESSAGE_PATH, app=transport.handle_post_message)
    return server
