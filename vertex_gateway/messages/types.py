"""Typed shapes shared by the Claude <-> OpenAI translators.

Upstream (Claude Messages) content is modelled as a closed set of block
dataclasses; anything the gateway does not translate is kept as an
``UnsupportedBlock`` so callers drop it on purpose instead of by fallthrough.
Streaming events follow the same rule with ``IgnoredEvent``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"

DONE_MARKER = "[DONE]"

EMPTY_INPUT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {},
    "additionalProperties": False,
}


@dataclass
class TextBlock:
    text: str
    type: str = field(default="text", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass
class ToolUseBlock:
    id: str
    name: str
    input: Any = field(default_factory=dict)
    type: str = field(default="tool_use", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "tool_use", "id": self.id, "name": self.name, "input": self.input}


@dataclass
class ToolResultBlock:
    tool_use_id: str
    content: Any = ""
    type: str = field(default="tool_result", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "tool_result",
            "tool_use_id": self.tool_use_id,
            "content": self.content,
        }


@dataclass
class ThinkingBlock:
    thinking: str
    signature: Optional[str] = None
    type: str = field(default="thinking", init=False)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": "thinking", "thinking": self.thinking}
        if self.signature is not None:
            data["signature"] = self.signature
        return data


@dataclass
class UnsupportedBlock:
    """A block kind the gateway does not translate (image, redacted_thinking, ...)."""

    type: str
    raw: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return dict(self.raw)


ContentBlock = Union[TextBlock, ToolUseBlock, ToolResultBlock, ThinkingBlock, UnsupportedBlock]


def block_from_dict(data: Any) -> ContentBlock:
    """Decode one upstream content block by its ``type`` discriminator."""
    if not isinstance(data, Mapping):
        return UnsupportedBlock(type="", raw={})
    block_type = data.get("type") or ""
    if block_type == "text":
        text = data.get("text")
        return TextBlock(text=text if isinstance(text, str) else "")
    if block_type == "tool_use":
        return ToolUseBlock(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            input=data.get("input"),
        )
    if block_type == "tool_result":
        return ToolResultBlock(
            tool_use_id=str(data.get("tool_use_id") or ""),
            content=data.get("content", ""),
        )
    if block_type == "thinking":
        return ThinkingBlock(
            thinking=str(data.get("thinking") or ""),
            signature=data.get("signature"),
        )
    return UnsupportedBlock(type=str(block_type), raw=dict(data))


@dataclass
class ClaudeMessage:
    role: str
    content: list[ContentBlock]

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role, "content": [block.to_dict() for block in self.content]}


@dataclass
class ToolDefinition:
    name: str
    description: Optional[str]
    input_schema: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "input_schema": self.input_schema}
        if self.description is not None:
            data["description"] = self.description
        return data


TOOL_CHOICE_AUTO = "auto"
TOOL_CHOICE_NONE = "none"
TOOL_CHOICE_TOOL = "tool"


@dataclass
class ToolChoice:
    kind: str
    name: Optional[str] = None

    def to_dict(self) -> Optional[dict[str, Any]]:
        """Upstream form. ``none`` has no upstream representation."""
        if self.kind == TOOL_CHOICE_AUTO:
            return {"type": "auto"}
        if self.kind == TOOL_CHOICE_TOOL:
            return {"type": "tool", "name": self.name}
        return None


@dataclass
class UpstreamRequest:
    """A Claude Messages request body, built fresh per call.

    Unset optional fields are left as ``None`` and omitted by ``to_body``.
    """

    messages: list[ClaudeMessage]
    system: Optional[str] = None
    tools: Optional[list[ToolDefinition]] = None
    tool_choice: Optional[ToolChoice] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    stop_sequences: Optional[list[str]] = None
    metadata: Optional[dict[str, Any]] = None
    thinking: Optional[Any] = None
    stream: bool = False

    def to_body(self, anthropic_version: Optional[str] = None) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if anthropic_version:
            body["anthropic_version"] = anthropic_version
        body["messages"] = [message.to_dict() for message in self.messages]
        body["stream"] = self.stream
        if self.system:
            body["system"] = self.system
        for name in ("max_tokens", "temperature", "top_p", "top_k"):
            value = getattr(self, name)
            if value is not None:
                body[name] = value
        if self.stop_sequences:
            body["stop_sequences"] = list(self.stop_sequences)
        if self.tools:
            body["tools"] = [tool.to_dict() for tool in self.tools]
        if self.tool_choice is not None:
            choice = self.tool_choice.to_dict()
            if choice is not None:
                body["tool_choice"] = choice
        if self.metadata:
            body["metadata"] = dict(self.metadata)
        if self.thinking:
            body["thinking"] = self.thinking
        return body


def _token_count(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


@dataclass
class Usage:
    prompt_tokens: Optional[int]
    completion_tokens: Optional[int]
    total_tokens: Optional[int]

    @classmethod
    def from_upstream(cls, usage: Any) -> Optional["Usage"]:
        """Map Claude ``input/output_tokens``; ``None`` when neither is present."""
        if not isinstance(usage, Mapping):
            return None
        prompt = _token_count(usage.get("input_tokens"))
        completion = _token_count(usage.get("output_tokens"))
        if prompt is None and completion is None:
            return None
        total = prompt + completion if prompt is not None and completion is not None else None
        return cls(prompt_tokens=prompt, completion_tokens=completion, total_tokens=total)

    def to_dict(self) -> dict[str, Any]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


STOP_REASON_MAP = {
    "end_turn": "stop",
    "max_tokens": "length",
    "stop_sequence": "stop",
    "tool_use": "tool_calls",
}


def map_stop_reason(stop_reason: Any) -> Optional[str]:
    """Convert a Claude stop_reason to an OpenAI finish_reason.

    Claude: end_turn, max_tokens, stop_sequence, tool_use, (others)
    OpenAI: stop, length, tool_calls
    """
    if not stop_reason:
        return None
    if not isinstance(stop_reason, str):
        return "stop"
    return STOP_REASON_MAP.get(stop_reason, "stop")


# -----------------------------------------------------------------------------
# Streaming events
# -----------------------------------------------------------------------------


@dataclass
class TextDeltaEvent:
    text: str


@dataclass
class MessageStopEvent:
    pass


@dataclass
class IgnoredEvent:
    """Any upstream event with no chat-completion counterpart.

    Covers tool-call (``input_json_delta``) and thinking deltas, block
    start/stop, message start/delta, ping and unknown event types.
    """

    type: str
    delta_type: Optional[str] = None


StreamEvent = Union[TextDeltaEvent, MessageStopEvent, IgnoredEvent]


def decode_stream_event(data: Any) -> StreamEvent:
    """Decode a parsed upstream SSE payload by its ``type`` discriminator."""
    if not isinstance(data, Mapping):
        return IgnoredEvent(type="")
    event_type = data.get("type")
    if not isinstance(event_type, str):
        return IgnoredEvent(type="")
    if event_type == "message_stop":
        return MessageStopEvent()
    if event_type == "content_block_delta":
        delta = data.get("delta")
        delta_type = delta.get("type") if isinstance(delta, Mapping) else None
        if delta_type == "text_delta":
            text = delta.get("text")
            return TextDeltaEvent(text=text if isinstance(text, str) else "")
        return IgnoredEvent(type=event_type, delta_type=delta_type)
    return IgnoredEvent(type=event_type)
