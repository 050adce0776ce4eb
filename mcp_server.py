#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Violation Lookup MCP Server.

This module implements a standard MCP (Model Context Protocol) server
over stdio that exposes traffic violation lookups, browser session health
and cache diagnostics as tools.
"""

import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from core.exceptions import InvalidTargetError, SessionInitError
from core.logger import setup_logger, get_logger
from core.lookup_manager import ViolationLookupManager
from core.models import Target, VehicleClass

DEFAULT_MAX_TARGETS = 20


class MCPServer:
    """
    Standard MCP server implementation.

    This server implements JSON-RPC 2.0 protocol and provides
    violation lookup tools.
    """

    def __init__(self, manager: Optional[ViolationLookupManager] = None, warm_up: bool = True) -> None:
        """
        Initialize MCP server.

        Args:
            manager: Lookup manager to serve (default: created on start())
            warm_up: Launch the browser on start() instead of on the first lookup
        """
        self.manager = manager
        self.warm_up = warm_up
        self.logger = get_logger("violation_lookup.mcp_server")

    async def start(self) -> None:
        """Start the server: create the lookup manager and its background work."""
        if self.manager is None:
            self.manager = ViolationLookupManager()
        await self.manager.start(warm_up=self.warm_up)
        self.logger.info("Violation Lookup MCP Server started")

    async def stop(self) -> None:
        """Stop the server and clean up resources."""
        if self.manager:
            await self.manager.close()
        self.logger.info("MCP Server stopped")

    def send_response(self, request_id: int, result: Any = None, error: Any = None) -> None:
        """
        Send JSON-RPC 2.0 response.

        Args:
            request_id: Request ID from the original request
            result: Response result (if successful)
            error: Error object (if failed)
        """
        response: Dict[str, Any] = {"jsonrpc": "2.0", "id": request_id}

        if error:
            response["error"] = error
        else:
            response["result"] = result

        print(json.dumps(response, ensure_ascii=False))
        sys.stdout.flush()

    def _send_tool_result(self, request_id: int, payload: Dict[str, Any]) -> None:
        """Send a tool result as JSON text content plus the structured payload."""
        self.send_response(
            request_id,
            {
                "content": [
                    {"type": "text", "text": json.dumps(payload, ensure_ascii=False, indent=2)}
                ],
                **payload,
            },
        )

    def _max_targets(self) -> int:
        if self.manager is None:
            return DEFAULT_MAX_TARGETS
        return int(self.manager.config.get("batch", {}).get("max_targets", DEFAULT_MAX_TARGETS))

    async def handle_initialize(self, request_id: int, params: Dict[str, Any]) -> None:
        """
        Handle initialize request.

        Args:
            request_id: Request ID
            params: Initialize parameters
        """
        result = {
            "protocolVersion": "2024-11-05",
            "capabilities": {
                "tools": {"listChanged": False},
                "resources": {"subscribe": False, "listChanged": False},
                "prompts": {"listChanged": False},
            },
            "serverInfo": {
                "name": "violation-lookup",
                "version": "1.0.0",
            },
        }
        self.send_response(request_id, result)

    async def handle_list_tools(self, request_id: int, params: Dict[str, Any]) -> None:
        """
        Handle tools/list request.

        Args:
            request_id: Request ID
            params: Request parameters
        """
        max_targets = self._max_targets()
        tools = [
            {
                "name": "lookup_violations",
                "description": (
                    "Look up traffic violations on the CSGT portal for 1 to "
                    f"{max_targets} plate numbers. Plates are looked up one after another "
                    "in a shared browser session; results are cached for 1 hour."
                ),
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "plates": {
                            "type": "array",
                            "minItems": 1,
                            "maxItems": max_targets,
                            "items": {
                                "type": "object",
                                "properties": {
                                    "plate_number": {
                                        "type": "string",
                                        "description": "Plate number, e.g. 30E43807",
                                        "pattern": "^[0-9]{2}[A-Za-z]{1,2}[0-9]{4,5}$",
                                    },
                                    "vehicle_type": {
                                        "type": "string",
                                        "enum": [member.value for member in VehicleClass],
                                        "default": VehicleClass.CAR.value,
                                    },
                                },
                                "required": ["plate_number"],
                            },
                        },
                        "use_cache": {"type": "boolean", "default": True},
                    },
                    "required": ["plates"],
                },
            },
            {
                "name": "get_session_health",
                "description": "Report whether the shared browser session is usable.",
                "inputSchema": {"type": "object", "properties": {}},
            },
            {
                "name": "check_health",
                "description": "Report overall service status, uptime and browser connection.",
                "inputSchema": {"type": "object", "properties": {}},
            },
            {
                "name": "restart_session",
                "description": "Close and relaunch the shared browser session.",
                "inputSchema": {"type": "object", "properties": {}},
            },
            {
                "name": "get_cache_stats",
                "description": "Report cache size, keys and expiry statistics.",
                "inputSchema": {"type": "object", "properties": {}},
            },
        ]

        self.send_response(request_id, {"tools": tools})

    async def handle_call_tool(self, request_id: int, params: Dict[str, Any]) -> None:
        """
        Handle tools/call request.

        Args:
            request_id: Request ID
            params: Tool call parameters containing 'name' and 'arguments'
        """
        if not self.manager:
            self.logger.error("Manager not initialized")
            self.send_response(
                request_id,
                None,
                {"code": -32603, "message": "Server not initialized"},
            )
            return

        tool_name = params.get("name")
        arguments = params.get("arguments", {}) or {}
        if not isinstance(arguments, dict):
            self.send_response(
                request_id,
                None,
                {"code": -32602, "message": "Tool arguments must be an object"},
            )
            return

        self.logger.info(f"Tool call: {tool_name}, arguments: {json.dumps(arguments, ensure_ascii=False)}")

        if tool_name == "lookup_violations":
            await self._handle_lookup_violations(request_id, arguments)
        elif tool_name == "get_session_health":
            self._send_tool_result(request_id, self.manager.get_session_health())
        elif tool_name == "check_health":
            self._send_tool_result(request_id, self.manager.check_health())
        elif tool_name == "restart_session":
            self._send_tool_result(request_id, await self.manager.restart_session())
        elif tool_name == "get_cache_stats":
            self._send_tool_result(request_id, self.manager.get_cache_stats())
        else:
            self.send_response(
                request_id,
                None,
                {"code": -32601, "message": f"Unknown tool: {tool_name}"},
            )

    def _parse_targets(self, plates: Any) -> List[Target]:
        """
        Validate the plates argument into Target objects.

        Raises:
            InvalidTargetError: If the list size or any entry is invalid
        """
        max_targets = self._max_targets()
        if not isinstance(plates, list) or not plates:
            raise InvalidTargetError("plates must be a non-empty list")
        if len(plates) > max_targets:
            raise InvalidTargetError(f"At most {max_targets} plates can be looked up at once")

        targets = []
        for item in plates:
            if not isinstance(item, dict):
                raise InvalidTargetError("Each plate must be an object with plate_number")
            targets.append(
                Target(
                    plate_number=item.get("plate_number", ""),
                    vehicle_class=item.get("vehicle_type") or VehicleClass.CAR,
                )
            )
        return targets

    async def _handle_lookup_violations(self, request_id: int, arguments: Dict[str, Any]) -> None:
        """
        Handle lookup_violations tool call.

        Args:
            request_id: Request ID
            arguments: Tool arguments containing plates and use_cache
        """
        try:
            targets = self._parse_targets(arguments.get("plates"))
        except InvalidTargetError as e:
            self.send_response(request_id, None, {"code": -32602, "message": str(e)})
            return

        use_cache = bool(arguments.get("use_cache", True))

        try:
            outcomes = await self.manager.lookup_batch(targets, use_cache=use_cache)  # type: ignore[union-attr]
        except SessionInitError as e:
            self.logger.error(f"Browser unavailable: {e}")
            self.send_response(
                request_id,
                None,
                {"code": -32603, "message": f"Browser unavailable: {e}"},
            )
            return

        successful = sum(1 for outcome in outcomes if outcome.success)
        self._send_tool_result(
            request_id,
            {
                "total": len(outcomes),
                "successful": successful,
                "failed": len(outcomes) - successful,
                "results": [outcome.to_dict() for outcome in outcomes],
            },
        )

    async def handle_list_resources(self, request_id: int, params: Dict[str, Any]) -> None:
        self.send_response(request_id, {"resources": []})

    async def handle_list_prompts(self, request_id: int, params: Dict[str, Any]) -> None:
        self.send_response(request_id, {"prompts": []})

    async def handle_request(self, message: Dict[str, Any]) -> None:
        """
        Handle incoming JSON-RPC request.

        Routes requests to appropriate handlers based on method name.

        Args:
            message: JSON-RPC message dictionary
        """
        method = message.get("method")
        request_id = message.get("id")
        params = message.get("params", {}) or {}

        # Notifications need no response
        if method and method.startswith("notifications/"):
            return

        if request_id is None:
            return

        if method == "initialize":
            await self.handle_initialize(request_id, params)
        elif method == "tools/list":
            await self.handle_list_tools(request_id, params)
        elif method == "tools/call":
            await self.handle_call_tool(request_id, params)
        elif method == "resources/list":
            await self.handle_list_resources(request_id, params)
        elif method == "prompts/list":
            await self.handle_list_prompts(request_id, params)
        else:
            self.send_response(
                request_id,
                None,
                {"code": -32601, "message": f"Unknown method: {method}"},
            )


async def main() -> None:
    """Main entry point for MCP server."""
    setup_logger(name="violation_lookup", log_level=logging.INFO)
    logger = get_logger("violation_lookup.mcp_server")

    server = MCPServer()

    try:
        await server.start()

        while True:
            try:
                line = await asyncio.get_event_loop().run_in_executor(None, sys.stdin.readline)

                if not line:
                    break

                line = line.strip()
                if not line:
                    continue

                try:
                    message = json.loads(line)
                    await server.handle_request(message)
                except json.JSONDecodeError as e:
                    logger.error(f"JSON parse error: {e}")

            except EOFError:
                break
            except Exception as e:
                logger.error(f"Request handling error: {e}", exc_info=True)

    except KeyboardInterrupt:
        logger.info("Server interrupted by user")
    except Exception as e:
        logger.error(f"Server error: {e}", exc_info=True)
    finally:
        await server.stop()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
