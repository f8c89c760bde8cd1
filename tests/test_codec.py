import asyncio
import io
import json

import pytest

from podshell.core.catalog import CommandType, Request, Response
from podshell.core.codec import (
    INCOMPLETE,
    AsyncFrameReader,
    FrameDecoder,
    FrameReader,
    encode_frame,
    write_frame,
)
from podshell.utils.exceptions import DecodeError, TransportClosedError


def _decode_all(data: bytes, chunk: int = 0) -> list:
    decoder = FrameDecoder()
    frames = []
    pieces = [data[i:i + chunk] for i in range(0, len(data), chunk)] if chunk else [data]
    for piece in pieces:
        decoder.feed(piece)
        while True:
            frame = decoder.next_frame()
            if frame is INCOMPLETE:
                break
            frames.append(frame)
    decoder.feed_eof()
    while True:
        frame = decoder.next_frame()
        if frame is INCOMPLETE:
            break
        frames.append(frame)
    return frames


def test_encode_is_compact_and_newline_terminated() -> None:
    raw = encode_frame(Request(id="1", type=CommandType.PING))
    assert raw == b'{"id":"1","type":"PING"}\n'


def test_encode_keeps_non_ascii() -> None:
    raw = encode_frame(Response.ok("logs", "héllo ✓"))
    assert "héllo ✓".encode("utf-8") in raw


def test_back_to_back_documents_without_separator() -> None:
    assert _decode_all(b'{"a":1}{"b":2}[3]') == [{"a": 1}, {"b": 2}, [3]]


def test_whitespace_between_documents_ignored() -> None:
    assert _decode_all(b'  {"a":1}\n\n\t{"b":2}\r\n') == [{"a": 1}, {"b": 2}]


def test_byte_at_a_time_feeding() -> None:
    data = encode_frame({"id": "x", "text": "br}ace\" and \\ ✓"}) * 3
    frames = _decode_all(data, chunk=1)
    assert frames == [{"id": "x", "text": "br}ace\" and \\ ✓"}] * 3


def test_scalar_documents() -> None:
    assert _decode_all(b'"s" 12 true null') == ["s", 12, True, None]


def test_trailing_number_needs_eof() -> None:
    decoder = FrameDecoder()
    decoder.feed(b"123")
    assert decoder.next_frame() is INCOMPLETE
    decoder.feed_eof()
    assert decoder.next_frame() == 123


def test_invalid_start_raises() -> None:
    decoder = FrameDecoder()
    decoder.feed(b"}{")
    with pytest.raises(DecodeError):
        decoder.next_frame()


def test_malformed_object_raises() -> None:
    decoder = FrameDecoder()
    decoder.feed(b'{"id": "1", "type": }')
    with pytest.raises(DecodeError):
        decoder.next_frame()


def test_truncated_frame_at_eof_raises() -> None:
    decoder = FrameDecoder()
    decoder.feed(b'{"id":"1"')
    assert decoder.next_frame() is INCOMPLETE
    decoder.feed_eof()
    with pytest.raises(DecodeError):
        decoder.next_frame()


def test_oversized_frame_raises() -> None:
    decoder = FrameDecoder(max_frame_bytes=16)
    decoder.feed(b'{"data":"' + b"x" * 64)
    with pytest.raises(DecodeError):
        decoder.next_frame()


def test_invalid_utf8_raises() -> None:
    decoder = FrameDecoder()
    with pytest.raises(DecodeError):
        decoder.feed(b'{"a":"\xff"}')


def test_frame_reader_iterates_until_clean_eof() -> None:
    stream = io.BytesIO(b'{"id":"1"}\n{"id":"2"}\n')
    assert [f["id"] for f in FrameReader(stream)] == ["1", "2"]


def test_frame_reader_eof_error_on_empty_stream() -> None:
    with pytest.raises(EOFError):
        FrameReader(io.BytesIO(b"  \n")).read_frame()


def test_frame_reader_null_frame_is_not_eof() -> None:
    reader = FrameReader(io.BytesIO(b"null\n"))
    assert reader.read_frame() is None
    with pytest.raises(EOFError):
        reader.read_frame()


def test_write_frame_flushes() -> None:
    stream = io.BytesIO()
    write_frame(stream, Response.ok("1", "PONG"))
    assert json.loads(stream.getvalue()) == {"id": "1", "success": True, "data": "PONG"}


@pytest.mark.asyncio
async def test_async_reader_frames_then_closed() -> None:
    reader = asyncio.StreamReader()
    reader.feed_data(b'{"id":"1","success":true}{"id":"2",')
    reader.feed_data(b'"success":false,"error":"x"}')
    reader.feed_eof()
    frames = AsyncFrameReader(reader)
    assert (await frames.read_frame())["id"] == "1"
    assert (await frames.read_frame())["error"] == "x"
    with pytest.raises(TransportClosedError):
        await frames.read_frame()


@pytest.mark.asyncio
async def test_async_reader_truncated_frame() -> None:
    reader = asyncio.StreamReader()
    reader.feed_data(b'{"id":"1"')
    reader.feed_eof()
    with pytest.raises(DecodeError):
        await AsyncFrameReader(reader).read_frame()


def test_unbalanced_frame_fails_before_stream_ends() -> None:
    decoder = FrameDecoder()
    decoder.feed(b'{"id" 1\n{"id":"1","type":"PING"}\n')
    with pytest.raises(DecodeError):
        decoder.next_frame()


def test_bad_token_inside_open_array_fails_immediately() -> None:
    decoder = FrameDecoder()
    decoder.feed(b'[1, 2 3')
    with pytest.raises(DecodeError):
        decoder.next_frame()


@pytest.mark.parametrize(
    "head,tail",
    [
        (b'{"id":"1","ty', b'pe":"PING"}'),
        (b'{"id":"1","n":1', b'2.5e3}'),
        (b'{"id":"1","n":1.', b'5}'),
        (b'{"id":"1","n":2e', b'-3}'),
        (b'{"id":"1","ok":tr', b'ue}'),
        (b'{"id":"1","s":"\\u00', b'e9"}'),
        (b'{"id":"1",', b'"type":"PING"}'),
        (b'[-', b'1]'),
    ],
)
def test_split_points_wait_for_more_bytes(head: bytes, tail: bytes) -> None:
    decoder = FrameDecoder()
    decoder.feed(head)
    assert decoder.next_frame() is INCOMPLETE
    decoder.feed(tail)
    assert decoder.next_frame() == json.loads(head + tail)


def test_number_split_across_chunks() -> None:
    decoder = FrameDecoder()
    decoder.feed(b"1.")
    assert decoder.next_frame() is INCOMPLETE
    decoder.feed(b"5 ")
    assert decoder.next_frame() == 1.5


def test_large_frame_in_small_chunks() -> None:
    frame = encode_frame({"id": "big", "data": ["x" * 100] * 500})
    assert _decode_all(frame, chunk=512) == [json.loads(frame)]
