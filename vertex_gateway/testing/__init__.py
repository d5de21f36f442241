"""Testing utilities for in-process gateway simulations."""

from .fake_upstream import (
    FakeVertex,
    UpstreamResponse,
    build_claude_message,
    build_claude_stream_events,
    encode_claude_event,
)

__all__ = [
    "FakeVertex",
    "UpstreamResponse",
    "build_claude_message",
    "build_claude_stream_events",
    "encode_claude_event",
]
