"""Tests for the SSE module."""

from falproxy.core.sse import SSE_DONE, SSEJSONDecoder, format_sse_data


class TestFormatSseData:
    def test_formats_data_frame(self):
        assert format_sse_data({"a": 1}) == b'data: {"a": 1}\n\n'

    def test_keeps_non_ascii(self):
        assert format_sse_data({"text": "你好"}) == 'data: {"text": "你好"}\n\n'.encode("utf-8")

    def test_done_frame(self):
        assert SSE_DONE == b"data: [DONE]\n\n"


class TestSSEJSONDecoder:
    def test_decodes_complete_events(self):
        decoder = SSEJSONDecoder()

        payloads = decoder.feed(b'data: {"output": "a"}\n\ndata: {"output": "ab"}\n\n')

        assert payloads == [{"output": "a"}, {"output": "ab"}]

    def test_buffers_events_split_across_chunks(self):
        decoder = SSEJSONDecoder()

        assert decoder.feed(b'data: {"out') == []
        assert decoder.feed(b'put": "a"}\n') == []
        assert decoder.feed(b"\n") == [{"output": "a"}]

    def test_ignores_comments_done_and_malformed(self):
        decoder = SSEJSONDecoder()

        payloads = decoder.feed(
            b": keep-alive\n\n"
            b"event: message\ndata: not json\n\n"
            b"data: [DONE]\n\n"
            b'data: {"ok": true}\n\n'
        )

        assert payloads == [{"ok": True}]

    def test_handles_crlf_line_endings(self):
        decoder = SSEJSONDecoder()

        assert decoder.feed(b'data: {"a": 1}\r\n\r\n') == [{"a": 1}]

    def test_flush_emits_unterminated_event(self):
        decoder = SSEJSONDecoder()

        assert decoder.feed(b'data: {"output": "tail", "partial": false}') == []
        assert decoder.flush() == [{"output": "tail", "partial": False}]
        assert decoder.flush() == []

    def test_joins_multiline_data(self):
        decoder = SSEJSONDecoder()

        assert decoder.feed(b'data: {"a":\ndata: 1}\n\n') == [{"a": 1}]

    def test_character_split_between_chunks(self):
        decoder = SSEJSONDecoder()
        data = 'data: {"output": "你好"}\n\n'.encode("utf-8")
        cut = data.index("好".encode("utf-8")) + 1

        assert decoder.feed(data[:cut]) == []
        assert decoder.feed(data[cut:]) == [{"output": "你好"}]

    def test_flush_after_character_split_in_unterminated_event(self):
        decoder = SSEJSONDecoder()
        char = "好".encode("utf-8")

        assert decoder.feed(b'data: {"output": "' + char[:2]) == []
        assert decoder.feed(char[2:] + b'"}') == []
        assert decoder.flush() == [{"output": "好"}]
