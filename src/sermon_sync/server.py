#!/usr/bin/env python3
"""Sermon Sync MCP Server: browse sermons, playlists and quotes, read listening stats."""

import json

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .cms_client import CMSClient
from .db import AggregationStore
from .normalizer import select_daily_quote
from .stats import compute_wrapped

# Initialize global instances
store = AggregationStore()
cms_client = CMSClient()

# Create MCP server
app = Server("sermon-sync")


def _text(result) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(result, indent=2))]


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List all available tools."""
    return [
        Tool(
            name="list_sermons",
            description="List recent sermons, optionally filtered by category id",
            inputSchema={
                "type": "object",
                "properties": {
                    "page": {"type": "integer", "description": "Page number", "default": 1},
                    "per_page": {"type": "integer", "description": "Sermons per page", "default": 10},
                    "category_id": {"type": "integer", "description": "Optional category id"},
                },
            },
        ),
        Tool(
            name="search_sermons",
            description="Search sermons by keyword",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Search query"},
                },
                "required": ["query"],
            },
        ),
        Tool(
            name="get_sermon",
            description="Get full details for a specific sermon by ID",
            inputSchema={
                "type": "object",
                "properties": {
                    "sermon_id": {"type": "integer", "description": "The sermon (post) ID"},
                },
                "required": ["sermon_id"],
            },
        ),
        Tool(
            name="list_playlists",
            description="List sermon series and albums with their playable tracks",
            inputSchema={
                "type": "object",
                "properties": {
                    "page": {"type": "integer", "description": "Page number", "default": 1},
                    "per_page": {"type": "integer", "description": "Playlists per page", "default": 10},
                },
            },
        ),
        Tool(
            name="get_daily_quote",
            description="Get today's quote",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="get_wrapped_stats",
            description="Get total listening hours, top sermon and top album for a user",
            inputSchema={
                "type": "object",
                "properties": {
                    "identity": {"type": "string", "description": "User email or id"},
                },
                "required": ["identity"],
            },
        ),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls."""
    try:
        if name == "list_sermons":
            sermons = await cms_client.fetch_sermons(
                arguments.get("page", 1),
                arguments.get("per_page", 10),
                arguments.get("category_id"),
            )
            return _text([s.to_wire() for s in sermons])

        elif name == "search_sermons":
            sermons = await cms_client.search_sermons(arguments["query"])
            return _text([s.to_wire() for s in sermons])

        elif name == "get_sermon":
            sermon = await cms_client.fetch_sermon_by_id(arguments["sermon_id"])
            return _text(sermon.to_wire() if sermon else {"error": "Sermon not found"})

        elif name == "list_playlists":
            playlists = await cms_client.fetch_playlists(arguments.get("page", 1), arguments.get("per_page", 10))
            return _text([p.to_wire() for p in playlists])

        elif name == "get_daily_quote":
            quote = select_daily_quote(await cms_client.fetch_quotes())
            return _text(quote.to_wire() if quote else {"error": "No quotes available"})

        elif name == "get_wrapped_stats":
            stats = store.get_listening_stats(arguments["identity"])
            return _text(compute_wrapped(stats).to_wire())

        else:
            return _text({"error": f"Unknown tool: {name}"})

    except Exception as e:
        return _text({"error": str(e)})


async def main():
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
