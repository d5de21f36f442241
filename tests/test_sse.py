"""Tests for the SSE module."""

from vertex_gateway.core.sse import SSEDecoder, SSEEvent, encode_sse_json


def test_sse_decoder_emits_event_for_complete_chunk():
    """Test that SSEDecoder emits an event for a complete SSE chunk."""
    decoder = SSEDecoder()
    events = decoder.feed(b"data: hello\n\n")
    assert len(events) == 1
    assert events[0].data == "hello"
    assert events[0].other_lines == []


def test_sse_decoder_keeps_partial_event_buffered():
    decoder = SSEDecoder()
    assert decoder.feed(b"event: ping\ndata: {\"type\"") == []
    events = decoder.feed(b': "ping"}\n\n')
    assert len(events) == 1
    assert events[0].data == '{"type": "ping"}'
    assert events[0].other_lines == ["event: ping"]


def test_sse_decoder_multiple_events_in_one_chunk():
    decoder = SSEDecoder()
    events = decoder.feed(b"data: a\n\ndata: b\n\ndata: c")
    assert [event.data for event in events] == ["a", "b"]
    assert decoder.flush() == b"data: c"


def test_sse_decoder_normalizes_crlf():
    decoder = SSEDecoder()
    events = decoder.feed(b"event: x\r\ndata: one\r\n\r\ndata: two\r")
    assert [event.data for event in events] == ["one"]
    # The trailing "\r" may still be half of "\r\n".
    events = decoder.feed(b"\n\r\n")
    assert [event.data for event in events] == ["two"]


def test_sse_decoder_joins_multiline_data():
    decoder = SSEDecoder()
    events = decoder.feed(b"data: line1\ndata: line2\n\n")
    assert events[0].data == "line1\nline2"


def test_sse_decoder_event_without_data():
    decoder = SSEDecoder()
    events = decoder.feed(b": keep-alive comment\n\n")
    assert events[0].data is None


def test_sse_decoder_utf8_split_across_chunks():
    """A multi-byte character split between reads is decoded intact."""
    encoded = "data: Grüße 👋\n\n".encode("utf-8")
    split = encoded.index("ü".encode("utf-8")) + 1
    decoder = SSEDecoder()
    assert decoder.feed(encoded[:split]) == []
    events = decoder.feed(encoded[split:])
    assert events[0].data == "Grüße 👋"


def test_sse_decoder_flush_empty():
    decoder = SSEDecoder()
    decoder.feed(b"data: x\n\n")
    assert decoder.flush() is None


def test_sse_event_encode():
    assert SSEEvent(data="[DONE]").encode() == b"data: [DONE]\n\n"
    assert SSEEvent(data="a\nb", other_lines=["event: x"]).encode() == (
        b"event: x\ndata: a\ndata: b\n\n"
    )


def test_encode_sse_json_keeps_unicode():
    assert encode_sse_json({"text": "é"}) == 'data: {"text": "é"}\n\n'.encode("utf-8")
