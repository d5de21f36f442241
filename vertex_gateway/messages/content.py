"""OpenAI message content <-> Claude content blocks.

OpenAI content is either a plain string or a list of typed parts
(``{"type": "text", "text": ...}``, ``{"type": "image_url", ...}``).
Only text survives the trip: image and other non-text parts are dropped.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from .tools import tool_call_to_block
from .types import (
    ROLE_ASSISTANT,
    ROLE_USER,
    ContentBlock,
    TextBlock,
    ToolResultBlock,
)

logger = logging.getLogger("vertex-gateway")

TOOL_RESULT_FALLBACK_ID = "tool_use"


def extract_text(content: Any) -> str:
    """Return the text carried by an OpenAI ``message.content`` value.

    Strings are used as-is, lists keep their ``text`` parts concatenated with
    no separator, a lone ``{"type": "text"}`` part yields its text and any
    other shape yields an empty string.
    """
    if not content:
        return ""
    if isinstance(content, str):
        return content

    if isinstance(content, list):
        parts: list[str] = []
        for part in content:
            if not isinstance(part, Mapping):
                continue
            if part.get("type") == "text":
                text = part.get("text")
                if isinstance(text, str):
                    parts.append(text)
            else:
                logger.debug("Dropping non-text content part: %s", part.get("type"))
        return "".join(parts)

    if isinstance(content, Mapping) and content.get("type") == "text":
        text = content.get("text")
        return text if isinstance(text, str) else ""

    return ""


def message_to_blocks(message: Mapping[str, Any]) -> list[ContentBlock]:
    """Build the Claude content blocks for a user or assistant message.

    Assistant tool calls become ``tool_use`` blocks, followed by a trailing
    text block when the message carries non-blank text. The result is never
    empty because the upstream rejects empty content arrays.
    """
    blocks: list[ContentBlock] = []

    if message.get("role") == ROLE_ASSISTANT:
        tool_calls = message.get("tool_calls")
        if isinstance(tool_calls, list):
            for call in tool_calls:
                block = tool_call_to_block(call)
                if block is not None:
                    blocks.append(block)

    text = extract_text(message.get("content"))
    if text and text.strip():
        blocks.append(TextBlock(text=text))

    if not blocks:
        blocks.append(TextBlock(text=""))
    return blocks


def tool_message_to_blocks(message: Mapping[str, Any]) -> list[ContentBlock]:
    """Convert an OpenAI ``tool`` message to a single ``tool_result`` block."""
    tool_use_id = message.get("tool_call_id") or message.get("name") or TOOL_RESULT_FALLBACK_ID
    return [
        ToolResultBlock(
            tool_use_id=str(tool_use_id),
            content=extract_text(message.get("content")),
        )
    ]


def upstream_role(role: Any) -> str:
    """Claude only knows ``user`` and ``assistant``."""
    return ROLE_ASSISTANT if role == ROLE_ASSISTANT else ROLE_USER


def blocks_to_text(blocks: Iterable[ContentBlock]) -> str:
    """Concatenate the text blocks of a Claude message (no separator)."""
    return "".join(block.text for block in blocks if isinstance(block, TextBlock))
