"""Stream adapter for converting Claude Messages SSE to OpenAI Chat Completions SSE.

Claude Messages Events:
    event: message_start
    data: {"type":"message_start","message":{...}}

    event: content_block_delta
    data: {"type":"content_block_delta","index":0,"delta":{"type":"text_delta","text":"Hello"}}

    event: message_stop
    data: {"type":"message_stop"}

OpenAI Chat Completion Events:
    data: {"choices":[{"delta":{"role":"assistant","content":"Hello"},"index":0,"finish_reason":null}]}
    data: {"choices":[{"delta":{"content":" world"},"index":0,"finish_reason":null}]}
    data: {"choices":[{"delta":{},"index":0,"finish_reason":"stop"}]}
    data: [DONE]

Only text deltas are translated. Tool-call, thinking and lifecycle events are
dropped; requests that would stream tool calls are rejected before reaching
this adapter.
"""

from __future__ import annotations

import enum
import json
import logging
import time
from typing import Any, AsyncIterator, Optional

from ..core.sse import SSEDecoder, SSEEvent, encode_sse_json
from .types import (
    DONE_MARKER,
    IgnoredEvent,
    MessageStopEvent,
    StreamEvent,
    TextDeltaEvent,
    decode_stream_event,
)

logger = logging.getLogger("vertex-gateway")

FINISH_STOP = "stop"
FINISH_ERROR = "error"


class StreamState(enum.Enum):
    AWAITING_FIRST_DELTA = "awaiting_first_delta"
    STREAMING = "streaming"
    STOPPED = "stopped"
    ERRORED = "errored"


class ClaudeToChatStreamAdapter:
    """Converts a Claude Messages SSE byte stream to chat completion chunks.

    The adapter is private to one stream. It keeps:
    - the partial-event buffer (inside ``SSEDecoder``)
    - the stable chunk id and model
    - the state machine deciding role markers and termination
    """

    def __init__(self, model: str, completion_id: Optional[str] = None):
        """Initialize the stream adapter.

        Args:
            model: Model name reported in every chunk
            completion_id: Chunk id for the whole stream (default ``chatcmpl-<ms>``)
        """
        self.model = model
        self.completion_id = completion_id or f"chatcmpl-{int(time.time() * 1000)}"
        self.state = StreamState.AWAITING_FIRST_DELTA
        self.decoder = SSEDecoder()
        self.skipped_events = 0

    @property
    def finished(self) -> bool:
        return self.state in (StreamState.STOPPED, StreamState.ERRORED)

    async def adapt_stream(self, claude_stream: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        """Transform a Claude SSE stream into OpenAI chat completion SSE frames.

        Args:
            claude_stream: Raw upstream bytes in transport order

        Yields:
            ``data: <json>\\n\\n`` frames, ending with ``data: [DONE]\\n\\n``
        """
        try:
            async for chunk in claude_stream:
                for frame in self.feed(chunk):
                    yield frame
                if self.finished:
                    break
        except Exception as exc:
            if self.finished:
                logger.debug("Ignoring upstream error after stream end: %s", exc)
                return
            logger.error("Upstream stream failed mid-response: %s", exc)
            for frame in self._terminate(FINISH_ERROR, StreamState.ERRORED):
                yield frame
            return

        if not self.finished:
            leftover = self.decoder.flush()
            if leftover and leftover.strip():
                self.skipped_events += 1
                logger.debug(
                    "Dropping incomplete trailing SSE fragment: %s", leftover[:100]
                )
            logger.debug("Upstream ended without message_stop, synthesizing stop")
            for frame in self._terminate(FINISH_STOP, StreamState.STOPPED):
                yield frame

    def feed(self, chunk: bytes) -> list[bytes]:
        """Process one transport read and return the frames it produces."""
        output: list[bytes] = []
        if self.finished:
            return output
        for sse_event in self.decoder.feed(chunk):
            event = self._parse_event(sse_event)
            if event is None:
                continue
            output.extend(self._dispatch(event))
            if self.finished:
                break
        return output

    def _parse_event(self, sse_event: SSEEvent) -> Optional[StreamEvent]:
        data = sse_event.data
        if not data or data == DONE_MARKER:
            return None
        try:
            parsed = json.loads(data)
        except json.JSONDecodeError:
            self.skipped_events += 1
            logger.debug("ClaudeStreamAdapter: Failed to parse: %s", data[:100])
            return None
        return decode_stream_event(parsed)

    def _dispatch(self, event: StreamEvent) -> list[bytes]:
        if isinstance(event, TextDeltaEvent):
            if not event.text:
                return []
            delta: dict[str, Any] = {}
            if self.state is StreamState.AWAITING_FIRST_DELTA:
                delta["role"] = "assistant"
                self.state = StreamState.STREAMING
            delta["content"] = event.text
            return [self._emit_chunk(delta, None)]

        if isinstance(event, MessageStopEvent):
            return self._terminate(FINISH_STOP, StreamState.STOPPED)

        if isinstance(event, IgnoredEvent):
            logger.debug(
                "ClaudeStreamAdapter: Dropping %s event (delta=%s)",
                event.type,
                event.delta_type,
            )
        return []

    def _terminate(self, finish_reason: str, final_state: StreamState) -> list[bytes]:
        self.state = final_state
        return [self._emit_chunk({}, finish_reason), self._emit_done()]

    def _emit_chunk(self, delta: dict[str, Any], finish_reason: Optional[str]) -> bytes:
        """Emit one ``chat.completion.chunk`` frame.

        Args:
            delta: The choice delta
            finish_reason: ``None`` while streaming, ``stop`` or ``error`` at the end

        Returns:
            SSE formatted bytes
        """
        payload = {
            "id": self.completion_id,
            "object": "chat.completion.chunk",
            "created": int(time.time()),
            "model": self.model,
            "choices": [
                {
                    "index": 0,
                    "delta": delta,
                    "finish_reason": finish_reason,
                }
            ],
        }
        return encode_sse_json(payload)

    def _emit_done(self) -> bytes:
        return SSEEvent(data=DONE_MARKER).encode()


async def adapt_claude_stream_to_chat(
    model: str,
    claude_stream: AsyncIterator[bytes],
    completion_id: Optional[str] = None,
) -> AsyncIterator[bytes]:
    """Convenience function to adapt a Claude stream to OpenAI chat chunks.

    Args:
        model: Model name
        claude_stream: Input Claude Messages SSE stream
        completion_id: Optional fixed chunk id

    Yields:
        OpenAI chat completion SSE frames
    """
    adapter = ClaudeToChatStreamAdapter(model, completion_id)
    async for frame in adapter.adapt_stream(claude_stream):
        yield frame
