from __future__ import annotations

import json

from agentrelay.relay.decoder import EventDecoder, decode_line
from agentrelay.relay.events import TextDelta, ToolCallEnd, ToolCallStart, ToolMetadata, Unknown


def _line(payload: dict[str, object]) -> str:
    return "data: " + json.dumps(payload, ensure_ascii=False)


STREAM = (
    "\n".join(
        [
            _line(
                {
                    "type": "step-start",
                    "payload": {
                        "request": {
                            "body": {
                                "tools": [
                                    {"name": "_0", "description": "Reverses text"},
                                    {"name": "_1"},
                                ]
                            }
                        }
                    },
                }
            ),
            _line({"type": "tool-call", "payload": {"toolName": "_0"}}),
            _line({"type": "tool-result", "payload": {}}),
            "data: {not valid json",
            _line({"type": "text-delta", "payload": {"text": "¡olleH "}}),
            _line({"type": "text-delta", "payload": {"text": "🌍"}}),
            _line({"type": "finish"}),
            "data: [DONE]",
            "",
        ]
    )
).encode("utf-8")


def _decode_all(chunks: list[bytes]) -> list[object]:
    decoder = EventDecoder()
    events: list[object] = []
    for chunk in chunks:
        events.extend(decoder.feed(chunk))
    events.extend(decoder.close())
    return events


def test_decodes_stream_fed_whole() -> None:
    assert _decode_all([STREAM]) == [
        ToolMetadata(internal_ref="_0", display_id=None, description="Reverses text"),
        ToolCallStart("_0"),
        ToolCallEnd(),
        TextDelta("¡olleH "),
        TextDelta("🌍"),
        Unknown("finish"),
    ]


def test_any_split_offset_yields_same_events() -> None:
    expected = _decode_all([STREAM])
    for offset in range(1, len(STREAM)):
        assert _decode_all([STREAM[:offset], STREAM[offset:]]) == expected, offset


def test_byte_by_byte_feed_yields_same_events() -> None:
    expected = _decode_all([STREAM])
    assert _decode_all([STREAM[i : i + 1] for i in range(len(STREAM))]) == expected


def test_partial_line_is_kept_until_newline() -> None:
    decoder = EventDecoder()
    assert decoder.feed(b'data: {"type":"text-delta","payload":{"text":"Hel') == []
    assert decoder.feed(b'lo"}}\n') == [TextDelta("Hello")]


def test_close_flushes_unterminated_last_line() -> None:
    decoder = EventDecoder()
    assert decoder.feed(b'data: {"type":"text","text":"tail"}') == []
    assert decoder.close() == [TextDelta("tail")]
    assert decoder.close() == []


def test_done_sentinel_is_not_an_event() -> None:
    assert decode_line("data: [DONE]") == []


def test_invalid_json_and_non_objects_are_skipped() -> None:
    assert decode_line("data: {not valid json") == []
    assert decode_line("data: [1, 2]") == []
    assert decode_line('data: "text"') == []


def test_lines_without_marker_are_ignored() -> None:
    assert decode_line("event: message") == []
    assert decode_line("") == []
    assert decode_line(": keep-alive") == []


def test_carriage_returns_are_stripped() -> None:
    decoder = EventDecoder()
    assert decoder.feed(b'data: {"type":"text","text":"hi"}\r\n') == [TextDelta("hi")]


def test_text_field_fallbacks_take_first_non_empty() -> None:
    assert decode_line(_line({"type": "text-delta", "payload": {"text": ""}, "text": "b"})) == [TextDelta("b")]
    assert decode_line(_line({"type": "content", "content": "c"})) == [TextDelta("c")]
    assert decode_line(_line({"type": "text", "text": "a", "content": "c"})) == [TextDelta("a")]


def test_text_frame_without_text_is_unknown() -> None:
    assert decode_line(_line({"type": "text-delta", "payload": {}})) == [Unknown("text-delta")]


def test_tool_call_ref_fallbacks() -> None:
    assert decode_line(_line({"type": "tool_call_start", "tool_name": "_2"})) == [ToolCallStart("_2")]
    assert decode_line(_line({"type": "tool-call-start", "toolName": "_3"})) == [ToolCallStart("_3")]
    assert decode_line(_line({"type": "tool-call"})) == [ToolCallStart("tool")]


def test_tool_call_end_variants() -> None:
    assert decode_line(_line({"type": "tool-call-end"})) == [ToolCallEnd()]
    assert decode_line(_line({"type": "tool-result"})) == [ToolCallEnd()]


def test_step_start_keeps_tool_ids() -> None:
    line = _line(
        {
            "type": "step-start",
            "payload": {"request": {"body": {"tools": [{"name": "_0", "id": "all-caps", "description": "Caps"}]}}},
        }
    )
    assert decode_line(line) == [ToolMetadata(internal_ref="_0", display_id="all-caps", description="Caps")]


def test_step_start_tool_with_id_only() -> None:
    line = _line(
        {
            "type": "step-start",
            "payload": {"request": {"body": {"tools": [{"name": "_3", "id": "word-count"}, {"name": "_4"}]}}},
        }
    )
    assert decode_line(line) == [ToolMetadata(internal_ref="_3", display_id="word-count", description="")]


def test_step_start_without_tools_is_unknown() -> None:
    assert decode_line(_line({"type": "step-start", "payload": {}})) == [Unknown("step-start")]


def test_unrecognized_types_are_unknown() -> None:
    assert decode_line(_line({"type": "reasoning-delta"})) == [Unknown("reasoning-delta")]
    assert decode_line(_line({"no": "type"})) == [Unknown(None)]
