"""
Unit tests for the binary event-stream decoder.
"""

import struct
import zlib

import pytest

from shared.aws.eventstream import (
    EventStreamDecoder,
    EventStreamError,
    MalformedFrame,
    decode_frame,
    encode_frame,
    parse_headers,
)


def delta_frame(text: str) -> bytes:
    return encode_frame(
        {":event-type": "contentBlockDelta", ":message-type": "event", ":content-type": "application/json"},
        {"contentBlockIndex": 0, "delta": {"text": text}},
    )


def corrupt_payload(frame: bytes) -> bytes:
    """Flip a payload byte without fixing the message CRC."""
    data = bytearray(frame)
    data[-6] ^= 0xFF
    return bytes(data)


class TestDecodeFrame:
    """Tests for single-frame decoding."""

    def test_decode_delta(self) -> None:
        message = decode_frame(delta_frame("Hello"))

        assert message.event_type == "contentBlockDelta"
        assert message.message_type == "event"
        assert message.payload["delta"]["text"] == "Hello"
        assert message.headers[":content-type"] == "application/json"
        assert not message.is_exception

    def test_empty_payload(self) -> None:
        message = decode_frame(encode_frame({":event-type": "messageStart"}, b""))
        assert message.payload == {}

    def test_exception_frame(self) -> None:
        frame = encode_frame(
            {":message-type": "exception", ":exception-type": "throttlingException"},
            {"message": "Too many requests"},
        )
        message = decode_frame(frame)

        assert message.is_exception
        assert message.headers[":exception-type"] == "throttlingException"

    def test_checksum_mismatch(self) -> None:
        with pytest.raises(MalformedFrame, match="checksum"):
            decode_frame(corrupt_payload(delta_frame("Hello")))

    def test_checksum_skipped_when_disabled(self) -> None:
        frame = bytearray(delta_frame("Hello"))
        frame[-1] ^= 0xFF
        message = decode_frame(bytes(frame), verify_checksum=False)
        assert message.payload["delta"]["text"] == "Hello"


class TestParseHeaders:
    """Tests for header block parsing."""

    def test_skips_non_string_types(self) -> None:
        block = bytearray()
        # int header (type 4)
        block += bytes([3]) + b"num" + bytes([4]) + struct.pack(">i", 42)
        # bool true header (type 0)
        block += bytes([4]) + b"flag" + bytes([0])
        # uuid header (type 9)
        block += bytes([2]) + b"id" + bytes([9]) + b"\x00" * 16
        # string header (type 7)
        block += bytes([11]) + b":event-type" + bytes([7]) + struct.pack(">H", 5) + b"hello"

        assert parse_headers(bytes(block)) == {":event-type": "hello"}

    def test_unknown_type_rejected(self) -> None:
        block = bytes([3]) + b"bad" + bytes([42]) + b"\x00\x00"
        with pytest.raises(MalformedFrame, match="unknown header type"):
            parse_headers(block)

    def test_overrun_rejected(self) -> None:
        block = bytes([3]) + b"str" + bytes([7]) + struct.pack(">H", 50) + b"short"
        with pytest.raises(MalformedFrame):
            parse_headers(block)


class TestEventStreamDecoder:
    """Tests for incremental decoding."""

    def test_single_chunk(self) -> None:
        decoder = EventStreamDecoder()
        messages = decoder.feed(delta_frame("Hello"))

        assert len(messages) == 1
        assert messages[0].payload["delta"]["text"] == "Hello"
        assert decoder.pending_bytes == 0

    @pytest.mark.parametrize("cuts", [(1, 2), (5, 13), (11, 12), (20, 40)])
    def test_split_into_three_chunks(self, cuts: tuple[int, int]) -> None:
        """Test that a frame split into three chunks decodes the same as one."""
        frame = delta_frame("Split across chunks")
        first, second = cuts
        whole = EventStreamDecoder().feed(frame)

        decoder = EventStreamDecoder()
        messages = []
        messages += decoder.feed(frame[:first])
        messages += decoder.feed(frame[first:second])
        messages += decoder.feed(frame[second:])

        assert len(messages) == 1
        assert messages[0].event_type == whole[0].event_type
        assert messages[0].payload == whole[0].payload
        assert messages[0].headers == whole[0].headers

    def test_multiple_frames_in_one_chunk(self) -> None:
        decoder = EventStreamDecoder()
        messages = decoder.feed(delta_frame("a") + delta_frame("b") + delta_frame("c")[:10])

        assert [m.payload["delta"]["text"] for m in messages] == ["a", "b"]
        assert decoder.pending_bytes == 10

    def test_corrupt_frame_dropped(self) -> None:
        """Test that a corrupted frame yields nothing but later frames decode."""
        decoder = EventStreamDecoder()
        stream = delta_frame("first") + corrupt_payload(delta_frame("broken")) + delta_frame("third")

        messages = decoder.feed(stream)

        assert [m.payload["delta"]["text"] for m in messages] == ["first", "third"]
        assert decoder.dropped_frames == 1

    def test_invalid_json_dropped(self) -> None:
        decoder = EventStreamDecoder()
        messages = decoder.feed(encode_frame({":event-type": "x"}, b"{not json") + delta_frame("ok"))

        assert [m.payload["delta"]["text"] for m in messages] == ["ok"]
        assert decoder.dropped_frames == 1

    def test_unknown_header_type_dropped(self) -> None:
        header_block = bytes([3]) + b"bad" + bytes([42])
        body = b"{}"
        total = 12 + len(header_block) + len(body) + 4
        prelude = struct.pack(">II", total, len(header_block))
        prelude += struct.pack(">I", zlib.crc32(prelude) & 0xFFFFFFFF)
        message = prelude + header_block + body
        frame = message + struct.pack(">I", zlib.crc32(message) & 0xFFFFFFFF)

        decoder = EventStreamDecoder()
        assert decoder.feed(frame + delta_frame("after"))[0].payload["delta"]["text"] == "after"
        assert decoder.dropped_frames == 1

    @pytest.mark.parametrize("length", [0, 15, 16 * 1024 * 1024 + 1])
    def test_impossible_length_raises(self, length: int) -> None:
        decoder = EventStreamDecoder()
        with pytest.raises(EventStreamError):
            decoder.feed(struct.pack(">III", length, 0, 0))

    @pytest.mark.asyncio
    async def test_iter_messages(self) -> None:
        frame = delta_frame("Hello") + delta_frame(" world")

        async def chunks():
            for i in range(0, len(frame), 7):
                yield frame[i : i + 7]

        decoder = EventStreamDecoder()
        texts = [m.payload["delta"]["text"] async for m in decoder.iter_messages(chunks())]

        assert texts == ["Hello", " world"]
