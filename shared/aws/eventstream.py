"""
Event-Stream Frame Decoder
==========================

Incremental decoder for the length-prefixed binary message framing
(``application/vnd.amazon.eventstream``) used by streaming Bedrock calls.

Frame layout:
- 12-byte prelude: total length (u32 BE, includes the trailing CRC),
  headers length (u32 BE), prelude CRC (u32 BE)
- headers block: ``[u8 name len][name][u8 type][value]`` repeated
- payload: JSON bytes up to ``total length - 4``
- message CRC (u32 BE) over everything before it

The decoder knows nothing about model semantics. It yields one
``EventStreamMessage`` per well-formed frame.

Version: 0.1.0
"""

import json
import struct
import zlib
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from shared.logging import get_logger


logger = get_logger(__name__)


PRELUDE_LENGTH = 12
CRC_LENGTH = 4
MIN_FRAME_LENGTH = PRELUDE_LENGTH + CRC_LENGTH
MAX_FRAME_LENGTH = 16 * 1024 * 1024

STRING_HEADER = 7

# Width of fixed-size header values; None means u16 length-prefixed.
HEADER_VALUE_WIDTHS: dict[int, int | None] = {
    0: 0,  # bool true
    1: 0,  # bool false
    2: 1,  # byte
    3: 2,  # short
    4: 4,  # integer
    5: 8,  # long
    6: None,  # byte array
    7: None,  # string
    8: 8,  # timestamp
    9: 16,  # uuid
}


class EventStreamError(Exception):
    """Framing was lost and the stream cannot be resynchronized."""


class MalformedFrame(Exception):
    """A single frame could not be decoded."""


@dataclass
class EventStreamMessage:
    """One decoded frame."""

    event_type: str
    payload: Any
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def message_type(self) -> str:
        return self.headers.get(":message-type", "event")

    @property
    def is_exception(self) -> bool:
        return self.message_type in ("exception", "error")


def parse_headers(block: bytes) -> dict[str, str]:
    """
    Parse a headers block, keeping string-typed values only.

    Raises:
        MalformedFrame: On an unknown type tag or a value overrunning the block
    """
    headers: dict[str, str] = {}
    offset = 0
    end = len(block)

    while offset < end:
        name_length = block[offset]
        offset += 1
        name = block[offset : offset + name_length].decode("utf-8", errors="replace")
        offset += name_length
        if offset >= end:
            raise MalformedFrame(f"header {name!r} has no type tag")

        value_type = block[offset]
        offset += 1

        if value_type not in HEADER_VALUE_WIDTHS:
            raise MalformedFrame(f"unknown header type {value_type}")

        width = HEADER_VALUE_WIDTHS[value_type]
        if width is None:
            if offset + 2 > end:
                raise MalformedFrame(f"header {name!r} truncated")
            (width,) = struct.unpack_from(">H", block, offset)
            offset += 2

        if offset + width > end:
            raise MalformedFrame(f"header {name!r} overruns block")

        if value_type == STRING_HEADER:
            headers[name] = block[offset : offset + width].decode("utf-8")
        offset += width

    return headers


def decode_frame(frame: bytes, verify_checksum: bool = True) -> EventStreamMessage:
    """
    Decode one complete frame.

    Raises:
        MalformedFrame: If the frame is internally inconsistent
    """
    total_length, headers_length = struct.unpack_from(">II", frame, 0)
    headers_end = PRELUDE_LENGTH + headers_length
    payload_end = total_length - CRC_LENGTH

    if headers_end > payload_end:
        raise MalformedFrame("headers block overruns frame")

    if verify_checksum:
        (expected,) = struct.unpack_from(">I", frame, payload_end)
        if zlib.crc32(frame[:payload_end]) & 0xFFFFFFFF != expected:
            raise MalformedFrame("message checksum mismatch")

    headers = parse_headers(frame[PRELUDE_LENGTH:headers_end])

    raw_payload = frame[headers_end:payload_end]
    try:
        payload = json.loads(raw_payload) if raw_payload else {}
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedFrame(f"payload is not JSON: {e}") from e

    return EventStreamMessage(
        event_type=headers.get(":event-type", ""),
        payload=payload,
        headers=headers,
    )


class EventStreamDecoder:
    """
    Streaming frame decoder.

    Accepts arbitrary byte chunks, buffers until a full frame is available,
    and returns every complete frame decoded so far. Corrupt frames are
    dropped and decoding continues with the next frame.

    Example:
        >>> decoder = EventStreamDecoder()
        >>> async for chunk in response.aiter_bytes():
        ...     for message in decoder.feed(chunk):
        ...         handle(message.event_type, message.payload)
    """

    def __init__(self, verify_checksum: bool = True) -> None:
        self.verify_checksum = verify_checksum
        self._buffer = bytearray()
        self.dropped_frames = 0

    @property
    def pending_bytes(self) -> int:
        """Bytes buffered but not yet forming a complete frame."""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> list[EventStreamMessage]:
        """
        Add bytes and return all frames completed by them.

        Raises:
            EventStreamError: If a prelude declares an impossible length
        """
        self._buffer.extend(chunk)
        messages: list[EventStreamMessage] = []

        while len(self._buffer) >= PRELUDE_LENGTH:
            (total_length,) = struct.unpack_from(">I", self._buffer, 0)
            if total_length < MIN_FRAME_LENGTH or total_length > MAX_FRAME_LENGTH:
                raise EventStreamError(f"invalid frame length {total_length}")

            if len(self._buffer) < total_length:
                break

            frame = bytes(self._buffer[:total_length])
            del self._buffer[:total_length]

            try:
                messages.append(decode_frame(frame, self.verify_checksum))
            except (MalformedFrame, UnicodeDecodeError, struct.error) as e:
                self.dropped_frames += 1
                logger.debug("eventstream_frame_dropped", error=str(e), length=total_length)

        return messages

    async def iter_messages(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[EventStreamMessage]:
        """Decode an async byte stream into messages."""
        async for chunk in chunks:
            for message in self.feed(chunk):
                yield message


def encode_frame(headers: dict[str, str], payload: Any) -> bytes:
    """
    Encode a frame with string headers and a JSON payload.

    Used to build fixtures and local fakes of the streaming endpoint.
    """
    header_block = bytearray()
    for name, value in headers.items():
        name_bytes = name.encode("utf-8")
        value_bytes = value.encode("utf-8")
        header_block += struct.pack(">B", len(name_bytes)) + name_bytes
        header_block += struct.pack(">BH", STRING_HEADER, len(value_bytes)) + value_bytes

    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
    total_length = PRELUDE_LENGTH + len(header_block) + len(body) + CRC_LENGTH

    prelude = struct.pack(">II", total_length, len(header_block))
    prelude += struct.pack(">I", zlib.crc32(prelude) & 0xFFFFFFFF)
    message = prelude + bytes(header_block) + body
    return message + struct.pack(">I", zlib.crc32(message) & 0xFFFFFFFF)
