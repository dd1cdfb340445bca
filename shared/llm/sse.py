"""
Text SSE Decoding
=================

Line-oriented decoder for ``data: <json>`` Server-Sent-Events streams
returned by OpenAI-compatible chat completion endpoints.

Version: 0.1.0
"""

import json
from typing import Any

from shared.logging import get_logger


logger = get_logger(__name__)

DONE_SENTINEL = "[DONE]"


class SSEDataDecoder:
    """
    Incremental decoder for ``data:`` lines.

    Partial lines at a chunk boundary are buffered and joined with the next
    chunk. Once the ``[DONE]`` sentinel is seen, further input is ignored.

    Example:
        >>> decoder = SSEDataDecoder()
        >>> decoder.feed('data: {"a": 1}\\n\\ndata: {"a"')
        [{'a': 1}]
        >>> decoder.feed(': 2}\\n\\n')
        [{'a': 2}]
    """

    def __init__(self) -> None:
        self._buffer = ""
        self.done = False

    def feed(self, text: str) -> list[dict[str, Any]]:
        """Add decoded text and return every JSON object completed by it."""
        if self.done:
            return []

        self._buffer += text
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()

        events: list[dict[str, Any]] = []
        for raw_line in lines:
            line = raw_line.rstrip("\r")
            if not line.startswith("data:"):
                continue

            data = line[5:].strip()
            if data == DONE_SENTINEL:
                self.done = True
                self._buffer = ""
                break
            if not data:
                continue

            try:
                event = json.loads(data)
            except json.JSONDecodeError:
                logger.debug("sse_line_skipped", line=data[:200])
                continue
            if isinstance(event, dict):
                events.append(event)

        return events

    def flush(self) -> list[dict[str, Any]]:
        """Decode a trailing line left without a newline at end of stream."""
        if self.done or not self._buffer:
            return []
        return self.feed("\n")
