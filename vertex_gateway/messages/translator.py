"""OpenAI Chat Completions <-> Claude Messages translation.

This module translates OpenAI Chat Completions requests into Claude Messages
requests (as served by Vertex AI ``rawPredict``) and Claude responses back
into chat completions.

Key mappings:
- OpenAI system messages -> Claude top-level ``system`` string
- OpenAI tool messages -> Claude user message with a ``tool_result`` block
- OpenAI assistant tool_calls -> Claude ``tool_use`` blocks
- OpenAI tools/tool_choice -> Claude tools/tool_choice
- Claude stop_reason -> OpenAI finish_reason

Extensions accepted on the inbound request:
- ``claude_thinking``: passed through verbatim as Claude ``thinking``
- ``claude_metadata``: merged over ``metadata`` (extension wins)

Reference:
- Claude Messages API: https://docs.anthropic.com/en/api/messages
- OpenAI Chat Completions: https://platform.openai.com/docs/api-reference/chat
"""

from __future__ import annotations

import logging
import time
from typing import Any, Mapping, Optional

from .content import (
    blocks_to_text,
    extract_text,
    message_to_blocks,
    tool_message_to_blocks,
    upstream_role,
)
from .tools import convert_tool_choice, convert_tools, tool_use_to_call
from .types import (
    TOOL_CHOICE_NONE,
    ClaudeMessage,
    ToolUseBlock,
    UpstreamRequest,
    Usage,
    block_from_dict,
    map_stop_reason,
)

logger = logging.getLogger("vertex-gateway")

SYSTEM_SEPARATOR = "\n\n"
THINKING_EXTENSION = "claude_thinking"
METADATA_EXTENSION = "claude_metadata"


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _integer(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if not isinstance(value, int):
        return None
    return value


def _convert_stop(stop: Any) -> Optional[list[str]]:
    """Normalize OpenAI ``stop`` (string or list) to Claude stop_sequences."""
    if not stop:
        return None
    if isinstance(stop, str):
        return [stop]
    if isinstance(stop, list):
        sequences = [item for item in stop if isinstance(item, str) and item]
        return sequences or None
    return None


def _merge_metadata(metadata: Any, extension: Any) -> Optional[dict[str, Any]]:
    merged: dict[str, Any] = {}
    if isinstance(metadata, Mapping):
        merged.update(metadata)
    if isinstance(extension, Mapping):
        merged.update(extension)
    return merged or None


def chat_completions_to_claude(payload: Mapping[str, Any]) -> UpstreamRequest:
    """Translate an OpenAI Chat Completions request to a Claude request.

    Handles:
    - System messages -> one ``system`` string joined with blank lines
    - Tool results, assistant tool calls and text content
    - Tools and tool_choice (``"none"`` removes the tools entirely)
    - Parameter mapping (max_tokens, temperature, top_p, top_k, stop)
    - Metadata merge and the thinking passthrough

    Malformed fields are dropped, defaulted or omitted; this never raises.

    Args:
        payload: OpenAI Chat Completions API request body

    Returns:
        The upstream request, serialized later by ``UpstreamRequest.to_body``.
    """
    system_pieces: list[str] = []
    messages: list[ClaudeMessage] = []

    raw_messages = payload.get("messages")
    if not isinstance(raw_messages, list):
        raw_messages = []

    for msg in raw_messages:
        if not isinstance(msg, Mapping):
            continue
        role = msg.get("role")

        if role == "system":
            text = extract_text(msg.get("content"))
            if text:
                system_pieces.append(text)
            continue

        if role == "tool":
            messages.append(ClaudeMessage(role="user", content=tool_message_to_blocks(msg)))
            continue

        messages.append(ClaudeMessage(role=upstream_role(role), content=message_to_blocks(msg)))

    request = UpstreamRequest(
        messages=messages,
        system=SYSTEM_SEPARATOR.join(system_pieces) if system_pieces else None,
        max_tokens=_integer(payload.get("max_tokens")),
        temperature=_number(payload.get("temperature")),
        top_p=_number(payload.get("top_p")),
        top_k=_integer(payload.get("top_k")),
        stop_sequences=_convert_stop(payload.get("stop")),
        metadata=_merge_metadata(payload.get("metadata"), payload.get(METADATA_EXTENSION)),
        thinking=payload.get(THINKING_EXTENSION),
        stream=bool(payload.get("stream")),
    )

    tool_choice = convert_tool_choice(payload.get("tool_choice"))
    if tool_choice is not None and tool_choice.kind == TOOL_CHOICE_NONE:
        # No "disable tools" value upstream: send no tools at all.
        logger.debug("tool_choice=none, omitting tools from upstream request")
    else:
        request.tools = convert_tools(payload.get("tools"))
        request.tool_choice = tool_choice

    return request


def claude_to_chat_completion(message: Mapping[str, Any], model: str) -> dict[str, Any]:
    """Translate a Claude Messages response to an OpenAI chat completion.

    Handles:
    - Text blocks -> assistant ``content`` (concatenated, no separator)
    - tool_use blocks -> ``tool_calls`` (alongside any text)
    - thinking and other blocks are dropped
    - stop_reason -> finish_reason
    - Usage mapping (input -> prompt, output -> completion)

    Args:
        message: Claude Messages API response body
        model: The model id the client asked for

    Returns:
        OpenAI Chat Completions API response body
    """
    raw_blocks = message.get("content")
    blocks = [block_from_dict(raw) for raw in raw_blocks] if isinstance(raw_blocks, list) else []

    tool_calls: list[dict[str, Any]] = []
    for block in blocks:
        if isinstance(block, ToolUseBlock):
            tool_calls.append(tool_use_to_call(block, len(tool_calls)))

    assistant_message: dict[str, Any] = {
        "role": "assistant",
        "content": blocks_to_text(blocks),
    }
    if tool_calls:
        assistant_message["tool_calls"] = tool_calls

    now = int(time.time())
    response: dict[str, Any] = {
        "id": message.get("id") or f"chatcmpl-{now}",
        "object": "chat.completion",
        "created": now,
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": assistant_message,
                "finish_reason": map_stop_reason(message.get("stop_reason")),
            }
        ],
    }

    usage = Usage.from_upstream(message.get("usage"))
    if usage is not None:
        response["usage"] = usage.to_dict()

    return response
