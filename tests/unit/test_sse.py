"""
Unit tests for the text SSE data decoder.
"""

from shared.llm.sse import SSEDataDecoder


class TestSSEDataDecoder:
    """Tests for SSEDataDecoder."""

    def test_complete_lines(self) -> None:
        decoder = SSEDataDecoder()
        events = decoder.feed('data: {"n": 1}\n\ndata: {"n": 2}\n\n')
        assert events == [{"n": 1}, {"n": 2}]

    def test_partial_line_buffered(self) -> None:
        """Test that a line split across chunks is joined."""
        decoder = SSEDataDecoder()

        assert decoder.feed('data: {"text": "Hel') == []
        assert decoder.feed('lo"}\n\n') == [{"text": "Hello"}]

    def test_done_sentinel_stops(self) -> None:
        decoder = SSEDataDecoder()
        events = decoder.feed('data: {"n": 1}\n\ndata: [DONE]\n\ndata: {"n": 2}\n\n')

        assert events == [{"n": 1}]
        assert decoder.done
        assert decoder.feed('data: {"n": 3}\n\n') == []

    def test_ignores_non_data_lines(self) -> None:
        decoder = SSEDataDecoder()
        events = decoder.feed(': keep-alive\nevent: message\nid: 7\ndata: {"n": 1}\n\n')
        assert events == [{"n": 1}]

    def test_crlf_lines(self) -> None:
        decoder = SSEDataDecoder()
        assert decoder.feed('data: {"n": 1}\r\n\r\n') == [{"n": 1}]

    def test_invalid_json_skipped(self) -> None:
        decoder = SSEDataDecoder()
        events = decoder.feed('data: {broken\n\ndata: {"n": 2}\n\n')
        assert events == [{"n": 2}]

    def test_flush_trailing_line(self) -> None:
        decoder = SSEDataDecoder()
        assert decoder.feed('data: {"n": 1}') == []
        assert decoder.flush() == [{"n": 1}]

    def test_flush_empty(self) -> None:
        assert SSEDataDecoder().flush() == []
