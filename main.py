#!/usr/bin/env python3
"""
Raindrop MCP Server
Model Context Protocol server for the Raindrop.io bookmarking service
"""

import asyncio
import json
import logging
import sys
from typing import Any, Dict, Optional, Set

from config import Config
from errors import ConfigurationError
from raindrop_client import RaindropClient
from tools import ToolDispatcher, list_tools

# Configure logging to stderr, stdout carries the protocol
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

SERVER_NAME = "raindrop-mcp-server"
SERVER_VERSION = "1.0.0"
PROTOCOL_VERSION = "2024-11-05"


class RaindropMCPServer:
    """JSON-RPC MCP Server for Raindrop.io API"""

    def __init__(self, dispatcher: ToolDispatcher):
        self.version = SERVER_VERSION
        self.dispatcher = dispatcher
        self._pending: Set[asyncio.Task] = set()

    async def handle_message(self, message: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Handle incoming JSON-RPC message; notifications get no response"""
        method = message.get("method")
        msg_id = message.get("id")
        params = message.get("params") or {}

        if "id" not in message:
            logger.debug(f"Notification received: {method}")
            return None

        try:
            if method == "initialize":
                return await self.handle_initialize(msg_id, params)
            elif method == "ping":
                return {"jsonrpc": "2.0", "id": msg_id, "result": {}}
            elif method == "tools/list":
                return await self.handle_list_tools(msg_id)
            elif method == "tools/call":
                return await self.handle_call_tool(msg_id, params)
            else:
                return self.error_response(
                    msg_id, -32601, f"Method not found: {method}"
                )

        except Exception as e:
            logger.error(f"Error handling message: {e}", exc_info=True)
            return self.error_response(msg_id, -32603, f"Internal error: {str(e)}")

    async def handle_initialize(
        self, msg_id: Any, params: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Handle initialize request"""
        client_info = params.get("clientInfo") or {}
        logger.info(f"Initialize from client: {client_info.get('name', 'unknown')}")
        return {
            "jsonrpc": "2.0",
            "id": msg_id,
            "result": {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {"tools": {}},
                "serverInfo": {"name": SERVER_NAME, "version": self.version},
            },
        }

    async def handle_list_tools(self, msg_id: Any) -> Dict[str, Any]:
        """Handle tools/list request"""
        return {"jsonrpc": "2.0", "id": msg_id, "result": {"tools": list_tools()}}

    async def handle_call_tool(
        self, msg_id: Any, params: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Handle tools/call request"""
        tool_name = params.get("name")
        arguments = params.get("arguments") or {}

        if not isinstance(tool_name, str):
            return self.error_response(msg_id, -32602, "Tool name must be a string")
        if not isinstance(arguments, dict):
            return self.error_response(msg_id, -32602, "Tool arguments must be an object")

        logger.info(f"Calling tool: {tool_name} with args: {arguments}")

        result = await self.dispatcher.call_tool(tool_name, arguments)
        return {"jsonrpc": "2.0", "id": msg_id, "result": result}

    def error_response(self, msg_id: Any, code: int, message: str) -> Dict[str, Any]:
        """Create JSON-RPC error response"""
        return {
            "jsonrpc": "2.0",
            "id": msg_id,
            "error": {"code": code, "message": message},
        }

    def write_response(self, response: Optional[Dict[str, Any]]):
        if response is None:
            return
        sys.stdout.write(json.dumps(response) + "\n")
        sys.stdout.flush()

    async def _respond(self, message: Dict[str, Any]):
        self.write_response(await self.handle_message(message))

    def dispatch(self, message: Dict[str, Any]) -> asyncio.Task:
        """Handle a message in its own task so slow tool calls do not block others"""
        task = asyncio.ensure_future(self._respond(message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def run(self):
        """Run the MCP server (stdio transport)"""
        logger.info("Raindrop MCP Server running on stdio")

        loop = asyncio.get_event_loop()

        # Read from stdin, write to stdout
        while True:
            try:
                line = await loop.run_in_executor(None, sys.stdin.readline)

                if not line:
                    break

                line = line.strip()
                if not line:
                    continue

                # Parse JSON-RPC message
                message = json.loads(line)
                if not isinstance(message, dict):
                    logger.error(f"Ignoring non-object message: {line}")
                    continue

                self.dispatch(message)

            except json.JSONDecodeError as e:
                logger.error(f"Invalid JSON: {e}")
                continue

        # Let in-flight tool calls finish before exiting
        if self._pending:
            await asyncio.gather(*self._pending)

        logger.info("Input closed, shutting down")


async def main():
    """Main entry point"""
    try:
        config = Config.from_env()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    logging.getLogger().setLevel(config.log_level)
    logger.info(f"Using Raindrop API at {config.base_url}")

    async with RaindropClient(config) as client:
        server = RaindropMCPServer(ToolDispatcher(client))
        await server.run()


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()
