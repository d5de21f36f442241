"""Tool/function calling codec between OpenAI and Claude schemas.

OpenAI:
    tools:       [{"type": "function", "function": {"name", "description", "parameters"}}]
    tool_choice: "auto" | "none" | {"type": "function", "function": {"name": "..."}}
    tool_calls:  [{"id", "type": "function", "function": {"name", "arguments": "<json>"}}]

Claude:
    tools:       [{"name", "description", "input_schema"}]
    tool_choice: {"type": "auto"} | {"type": "tool", "name": "..."}
    tool_use:    {"type": "tool_use", "id", "name", "input": {...}}
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Mapping, Optional

from .types import (
    EMPTY_INPUT_SCHEMA,
    TOOL_CHOICE_AUTO,
    TOOL_CHOICE_NONE,
    TOOL_CHOICE_TOOL,
    ToolChoice,
    ToolDefinition,
    ToolUseBlock,
)

logger = logging.getLogger("vertex-gateway")


def convert_tools(tools: Any) -> Optional[list[ToolDefinition]]:
    """Convert OpenAI tool definitions to Claude tool definitions.

    Entries that are not ``function`` tools are skipped. A missing or empty
    ``parameters`` schema becomes an empty object schema.
    """
    if not isinstance(tools, list) or not tools:
        return None

    converted: list[ToolDefinition] = []
    for tool in tools:
        if not isinstance(tool, Mapping) or tool.get("type") != "function":
            continue
        function = tool.get("function")
        if not isinstance(function, Mapping):
            continue
        parameters = function.get("parameters")
        if not isinstance(parameters, Mapping) or not parameters:
            parameters = copy.deepcopy(EMPTY_INPUT_SCHEMA)
        converted.append(
            ToolDefinition(
                name=str(function.get("name") or ""),
                description=function.get("description"),
                input_schema=dict(parameters),
            )
        )

    return converted or None


def convert_tool_choice(tool_choice: Any) -> Optional[ToolChoice]:
    """Convert OpenAI tool_choice to a ``ToolChoice``.

    ``"none"`` is kept as its own kind so the request translator can drop the
    tools altogether; unrecognised shapes yield ``None``.
    """
    if not tool_choice:
        return None

    if isinstance(tool_choice, str):
        if tool_choice == "auto":
            return ToolChoice(kind=TOOL_CHOICE_AUTO)
        if tool_choice == "none":
            return ToolChoice(kind=TOOL_CHOICE_NONE)
        return None

    if isinstance(tool_choice, Mapping) and tool_choice.get("type") == "function":
        function = tool_choice.get("function")
        if isinstance(function, Mapping) and function.get("name"):
            return ToolChoice(kind=TOOL_CHOICE_TOOL, name=str(function["name"]))

    return None


def _parse_arguments(arguments: Any) -> Any:
    if isinstance(arguments, str):
        try:
            return json.loads(arguments)
        except json.JSONDecodeError:
            # Passed through untouched; the upstream decides what to do with it.
            return arguments
    if isinstance(arguments, (dict, list)):
        return arguments
    return {}


def tool_call_to_block(call: Any) -> Optional[ToolUseBlock]:
    """Convert one OpenAI tool call to a Claude ``tool_use`` block."""
    if not isinstance(call, Mapping) or call.get("type") != "function":
        return None
    function = call.get("function")
    if not isinstance(function, Mapping):
        return None

    name = str(function.get("name") or "")
    return ToolUseBlock(
        id=str(call.get("id") or name),
        name=name,
        input=_parse_arguments(function.get("arguments")),
    )


def _serialize_tool_input(input_data: Any) -> str:
    """Serialize tool input to JSON text for OpenAI ``arguments``."""
    if input_data is None:
        input_data = {}
    return json.dumps(input_data, ensure_ascii=False)


def tool_use_to_call(block: ToolUseBlock, position: int = 0) -> dict[str, Any]:
    """Convert a Claude ``tool_use`` block to an OpenAI tool call."""
    return {
        "id": block.id or f"call_{position}",
        "type": "function",
        "function": {
            "name": block.name,
            "arguments": _serialize_tool_input(block.input),
        },
    }
