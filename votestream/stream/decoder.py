# ==============================================
# JSON Stream Decoder
# ==============================================
#
# PURPOSE:
#   The stream is a sequence of independent JSON objects with no
#   framing other than the objects themselves. Bytes arrive in
#   arbitrary chunks, so object boundaries are found by tracking
#   brace depth outside of strings, and each complete object is then
#   parsed with json.loads.
#
#   Whitespace between objects (including keep-alive newlines) is
#   skipped. Anything else outside an object is malformed and raises
#   StreamDecodeError, which ends the connection like any other error.
#
# ==============================================

import codecs
import json
from typing import Iterable, Iterator, List

from votestream.errors import StreamDecodeError
from votestream.models import StreamRecord

_WHITESPACE = " \t\r\n"


class JSONStreamDecoder:
    """Incremental splitter/decoder for concatenated JSON objects."""

    def __init__(self, max_object_chars: int = 1 << 20):
        self.max_object_chars = max_object_chars
        self._text_decoder = codecs.getincrementaldecoder("utf-8")()
        self._buffer = ""
        # Scan state for the object currently being assembled
        self._pos = 0
        self._depth = 0
        self._in_string = False
        self._escaped = False

    @property
    def pending(self) -> bool:
        """True if a partial object is buffered."""
        return bool(self._buffer.strip(_WHITESPACE))

    def feed(self, data: bytes) -> List[dict]:
        """
        Add bytes and return every object completed by them.

        Raises:
            StreamDecodeError: on malformed input.
        """
        try:
            self._buffer += self._text_decoder.decode(data)
        except UnicodeDecodeError as e:
            raise StreamDecodeError(f"invalid UTF-8 in stream: {e}") from e

        objects = []
        while True:
            obj = self._next_object()
            if obj is None:
                break
            objects.append(obj)

        if len(self._buffer) > self.max_object_chars:
            raise StreamDecodeError(
                f"object exceeds {self.max_object_chars} characters without terminating"
            )
        return objects

    def close(self) -> None:
        """Signal end of stream; raises if a partial object is left over."""
        if self.pending:
            raise StreamDecodeError("stream ended inside a JSON object")

    def _next_object(self):
        buf = self._buffer

        if self._depth == 0:
            start = 0
            while start < len(buf) and buf[start] in _WHITESPACE:
                start += 1
            if start == len(buf):
                self._buffer = ""
                self._pos = 0
                return None
            if buf[start] != "{":
                raise StreamDecodeError(f"unexpected character {buf[start]!r} between objects")
            buf = self._buffer = buf[start:]
            self._pos = 0

        i = self._pos
        while i < len(buf):
            ch = buf[i]
            i += 1
            if self._in_string:
                if self._escaped:
                    self._escaped = False
                elif ch == "\\":
                    self._escaped = True
                elif ch == '"':
                    self._in_string = False
            elif ch == '"':
                self._in_string = True
            elif ch in "{[":
                self._depth += 1
            elif ch in "}]":
                self._depth -= 1
                if self._depth == 0:
                    unit, self._buffer = buf[:i], buf[i:]
                    self._pos = 0
                    try:
                        return json.loads(unit)
                    except json.JSONDecodeError as e:
                        raise StreamDecodeError(f"malformed JSON object: {e}") from e
        self._pos = i
        return None


def iter_records(chunks: Iterable[bytes]) -> Iterator[StreamRecord]:
    """
    Decode a byte stream into StreamRecords.

    Iteration ends when the chunks run out. Errors from the underlying
    iterable propagate unchanged; decode problems raise StreamDecodeError.
    """
    decoder = JSONStreamDecoder()
    for chunk in chunks:
        if not chunk:
            continue
        for obj in decoder.feed(chunk):
            yield StreamRecord.from_json(obj)
    decoder.close()
