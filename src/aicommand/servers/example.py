"""Example provider — a tiny MCP server with two tools and one resource.

Used as the in-process built-in of ``aicommand ai`` and served over stdio by
``aicommand mcp serve``.
"""

from __future__ import annotations

from typing import Any

from aicommand.protocols.errors import ToolExecutionError
from aicommand.protocols.mcp.server import MCPServer

GREETING_URI = "example://greeting"

ADD_NUMBERS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "num1": {"type": "number", "description": "First number"},
        "num2": {"type": "number", "description": "Second number"},
    },
    "required": ["num1", "num2"],
}

GREET_USER_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {"name": {"type": "string", "description": "Name"}},
    "required": ["name"],
}


def add_numbers(arguments: dict[str, Any]) -> str:
    num1 = _number(arguments, "num1")
    num2 = _number(arguments, "num2")
    return f"The sum of {num1} and {num2} is {num1 + num2}"


def greet_user(arguments: dict[str, Any]) -> str:
    name = arguments.get("name")
    if not name:
        raise ToolExecutionError("greet-user", "Missing required argument: name")
    return f"Hello my friend, {name}"


def _number(arguments: dict[str, Any], key: str) -> int | float:
    if key not in arguments:
        raise ToolExecutionError("add-numbers", f"Missing required argument: {key}")
    value = arguments[key]
    if isinstance(value, bool):
        raise ToolExecutionError("add-numbers", f"Argument {key!r} must be a number")
    if isinstance(value, (int, float)):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ToolExecutionError("add-numbers", f"Argument {key!r} must be a number") from exc
    return int(number) if number.is_integer() else number


def build_example_server(name: str = "example") -> MCPServer:
    """Return a fresh example server named *name*."""
    server = MCPServer(name)
    server.register_tool(
        {
            "name": "add-numbers",
            "description": "Adds two numbers together",
            "inputSchema": ADD_NUMBERS_SCHEMA,
            "callable": add_numbers,
        }
    )
    server.register_tool(
        {
            "name": "greet-user",
            "description": "Greet someone",
            "inputSchema": GREET_USER_SCHEMA,
            "callable": greet_user,
        }
    )
    server.register_resource(
        {
            "name": "Greeting Text",
            "uri": GREETING_URI,
            "description": "A simple greeting message",
            "mimeType": "text/plain",
            "text": "Hello from the example MCP server!",
        }
    )
    return server
