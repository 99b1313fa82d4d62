"""Line splitting over arbitrarily chunked byte streams.

:class:`LineReader` knows nothing about envelopes. It buffers the
incomplete tail of the last chunk and only hands out whole lines, so a
chunk boundary may fall anywhere, including inside a multi-byte character.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

DELIM = b"\n"


class LineReader:
    """Incremental line splitter.

    Usage::

        reader = LineReader()
        for chunk in chunks:
            for line in reader.feed(chunk):
                handle(line)
        tail = reader.flush()
        if tail is not None:
            handle(tail)

    Lines are returned without the terminator; a trailing ``\\r`` is also
    dropped so CRLF files read the same as LF files.
    """

    def __init__(self) -> None:
        self._buf = bytearray()
        self._closed = False

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet returned as a line."""
        return len(self._buf)

    def feed(self, data: bytes) -> list[bytes]:
        if self._closed:
            raise ValueError("LineReader already flushed")
        self._buf.extend(data)
        lines: list[bytes] = []
        start = 0
        while True:
            nl = self._buf.find(DELIM, start)
            if nl == -1:
                break
            lines.append(_strip_cr(bytes(self._buf[start:nl])))
            start = nl + 1
        if start:
            del self._buf[:start]
        return lines

    def flush(self) -> bytes | None:
        """Return the final unterminated line, or None if there is none."""
        self._closed = True
        if not self._buf:
            return None
        tail = _strip_cr(bytes(self._buf))
        self._buf.clear()
        return tail


def _strip_cr(line: bytes) -> bytes:
    return line[:-1] if line.endswith(b"\r") else line


def iter_lines(chunks: Iterable[bytes]) -> Iterator[bytes]:
    """Yield every line of a chunked byte stream, including an unterminated tail."""
    reader = LineReader()
    for chunk in chunks:
        yield from reader.feed(chunk)
    tail = reader.flush()
    if tail is not None:
        yield tail
