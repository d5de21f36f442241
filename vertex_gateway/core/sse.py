"""SSE (Server-Sent Events) framing utilities."""

from __future__ import annotations

import codecs
import json
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class SSEEvent:
    data: Optional[str]
    other_lines: list[str] = field(default_factory=list)

    def encode(self) -> bytes:
        lines: list[str] = []
        lines.extend(self.other_lines)
        if self.data is not None:
            for item in self.data.split("\n"):
                if item:
                    lines.append(f"data: {item}")
                else:
                    lines.append("data:")
        text = "\n".join(lines) + "\n\n"
        return text.encode("utf-8")


def encode_sse_json(payload: Any) -> bytes:
    """Encode a JSON payload as a single ``data:`` frame."""
    return SSEEvent(data=json.dumps(payload, ensure_ascii=False)).encode()


class SSEDecoder:
    """Incremental SSE decoder.

    Bytes are appended to an internal buffer that is scanned for the blank
    line delimiting events. Complete events are removed and returned; a
    partial trailing event stays buffered until the next ``feed``.
    """

    def __init__(self) -> None:
        self._buffer = ""
        # Multi-byte characters may straddle two transport reads.
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, chunk: bytes) -> list[SSEEvent]:
        if not chunk:
            return []
        text = self._decoder.decode(chunk)
        self._buffer += text
        # Normalize line endings once a trailing "\r" can no longer be half of "\r\n".
        if self._buffer.endswith("\r"):
            head, tail = self._buffer[:-1], "\r"
        else:
            head, tail = self._buffer, ""
        self._buffer = head.replace("\r\n", "\n").replace("\r", "\n") + tail
        events: list[SSEEvent] = []

        while True:
            sep_index = self._buffer.find("\n\n")
            if sep_index == -1:
                break
            raw_event = self._buffer[:sep_index]
            self._buffer = self._buffer[sep_index + 2:]
            if not raw_event.strip():
                continue
            events.append(self._parse_event(raw_event))

        return events

    def flush(self) -> Optional[bytes]:
        leftover = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        if not leftover:
            return None
        return leftover.encode("utf-8")

    @staticmethod
    def _parse_event(raw: str) -> SSEEvent:
        data_lines: list[str] = []
        other_lines: list[str] = []
        for line in raw.split("\n"):
            line = line.strip()
            if not line:
                continue
            if line.startswith("data:"):
                data_lines.append(line[5:].lstrip())
            else:
                other_lines.append(line)
        data = "\n".join(data_lines) if data_lines else None
        return SSEEvent(data=data, other_lines=other_lines)
