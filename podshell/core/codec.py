"""Self-delimiting JSON framing

Frames are JSON documents written back to back. The encoder terminates each
document with a newline, but the decoder does not rely on it: whitespace
between documents is skipped and a document ends where its JSON value ends.

A frame that cannot be parsed leaves the stream desynchronized. The decoder
raises ``DecodeError`` at the first bad token, even while the stream is
still open, and does not try to find the next document.
"""

import asyncio
import codecs
import json
import re
from typing import Any, BinaryIO, Iterator, Optional

from ..utils.config import Config
from ..utils.exceptions import DecodeError, TransportClosedError

_WHITESPACE = " \t\r\n"
_LITERALS = ("true", "false", "null", "NaN", "Infinity", "-Infinity")
_NUMBER_TAIL = re.compile(r"(?:\.\d*)?(?:[eE][-+]?\d*)?\Z")

READ_CHUNK = 65536

# Returned by FrameDecoder.next_frame when more bytes are needed
INCOMPLETE = object()


def encode_frame(message: Any) -> bytes:
    """Serialize a catalog message (or plain dict) to one frame"""
    obj = message.to_dict() if hasattr(message, "to_dict") else message
    return (json.dumps(obj, separators=(",", ":"), ensure_ascii=False) + "\n").encode("utf-8")


class FrameDecoder:
    """Incremental decoder for back-to-back JSON documents

    Feed raw bytes with ``feed()`` and pull complete documents with
    ``next_frame()``. Call ``feed_eof()`` once the stream has ended so a
    trailing partial document is reported instead of waiting forever.
    """

    def __init__(self, max_frame_bytes: Optional[int] = None):
        self._utf8 = codecs.getincrementaldecoder("utf-8")()
        self._json = json.JSONDecoder()
        self._buffer = ""
        self._eof = False
        self._max = max_frame_bytes or Config.MAX_FRAME_BYTES
        self._stalled_at = -1

    @property
    def at_eof(self) -> bool:
        return self._eof

    def feed(self, data: bytes) -> None:
        try:
            self._buffer += self._utf8.decode(data)
        except UnicodeDecodeError as e:
            raise DecodeError(f"invalid UTF-8 in stream: {e}")

    def feed_eof(self) -> None:
        try:
            self._buffer += self._utf8.decode(b"", final=True)
        except UnicodeDecodeError as e:
            raise DecodeError(f"truncated UTF-8 sequence at end of stream: {e}")
        self._eof = True

    def has_pending(self) -> bool:
        """True if non-whitespace bytes are buffered"""
        return bool(self._buffer.strip(_WHITESPACE))

    def next_frame(self) -> Any:
        """Return the next complete document, or INCOMPLETE if more bytes are needed

        Raises:
            DecodeError: buffered bytes cannot be a JSON document
        """
        start = 0
        while start < len(self._buffer) and self._buffer[start] in _WHITESPACE:
            start += 1
        if start:
            self._buffer = self._buffer[start:]
        if not self._buffer:
            return INCOMPLETE
        if len(self._buffer) == self._stalled_at and not self._eof:
            return INCOMPLETE

        buf = self._buffer
        try:
            value, end = self._json.raw_decode(buf)
        except json.JSONDecodeError as e:
            if not self._truncated(e):
                raise DecodeError(f"{e.msg} (line {e.lineno} column {e.colno})")
            if self._eof:
                raise DecodeError("unexpected end of stream inside a frame")
            return self._need_more()

        # A bare number only ends at a delimiter or end of stream
        if (
            isinstance(value, (int, float))
            and not isinstance(value, bool)
            and not self._eof
            and _NUMBER_TAIL.match(buf, end)
        ):
            return self._need_more()

        self._buffer = buf[end:]
        self._stalled_at = -1
        return value

    def _need_more(self) -> Any:
        if len(self._buffer) > self._max:
            raise DecodeError(f"frame exceeds {self._max} bytes")
        self._stalled_at = len(self._buffer)
        return INCOMPLETE

    @staticmethod
    def _truncated(error: json.JSONDecodeError) -> bool:
        """True if the parse failed only because the buffer stops early"""
        if error.msg.startswith("Unterminated string"):
            return True
        rest = error.doc[error.pos:]
        if not rest.strip(_WHITESPACE):
            return True
        if error.msg.startswith("Invalid \\u"):
            return '"' not in rest
        if error.msg == "Expecting value" and any(lit.startswith(rest) for lit in _LITERALS):
            return True
        # "1." or "2e-" cut off inside a container
        return _NUMBER_TAIL.match(rest) is not None


class FrameReader:
    """Blocking frame reader over a binary stream (stdin, socket file, pipe)"""

    def __init__(self, stream: BinaryIO, decoder: Optional[FrameDecoder] = None):
        self._stream = stream
        self._read = getattr(stream, "read1", None) or stream.read
        self._decoder = decoder or FrameDecoder()

    def read_frame(self) -> Any:
        """Return the next document

        Raises:
            EOFError: stream ended cleanly between frames
            DecodeError: malformed frame or stream ended mid-frame
        """
        while True:
            frame = self._decoder.next_frame()
            if frame is not INCOMPLETE:
                return frame
            if self._decoder.at_eof:
                raise EOFError("end of stream")
            chunk = self._read(READ_CHUNK)
            if not chunk:
                self._decoder.feed_eof()
                if not self._decoder.has_pending():
                    raise EOFError("end of stream")
                continue
            self._decoder.feed(chunk)

    def __iter__(self) -> Iterator[Any]:
        while True:
            try:
                yield self.read_frame()
            except EOFError:
                return


def write_frame(stream: BinaryIO, message: Any) -> None:
    """Write one frame and flush it"""
    stream.write(encode_frame(message))
    stream.flush()


class AsyncFrameReader:
    """Frame reader over an ``asyncio.StreamReader``"""

    def __init__(self, reader: asyncio.StreamReader, decoder: Optional[FrameDecoder] = None):
        self._reader = reader
        self._decoder = decoder or FrameDecoder()

    async def read_frame(self) -> Any:
        """Wait for the next document

        Raises:
            TransportClosedError: stream ended cleanly between frames
            DecodeError: malformed frame or stream ended mid-frame
        """
        while True:
            frame = self._decoder.next_frame()
            if frame is not INCOMPLETE:
                return frame
            if self._decoder.at_eof:
                raise TransportClosedError("agent stream closed")
            chunk = await self._reader.read(READ_CHUNK)
            if not chunk:
                self._decoder.feed_eof()
                if not self._decoder.has_pending():
                    raise TransportClosedError("agent stream closed")
                continue
            self._decoder.feed(chunk)
