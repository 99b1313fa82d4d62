"""
Streaming codec for the envelope file format.

Wire format (UTF-8 text, one record per line)::

    === BEGIN <PRODUCT> ===
    <PRODUCT> <metadata line 1>
    <PRODUCT> <metadata line 2>
    ...
    === END <PRODUCT> ===
    <base64 ciphertext chunk 1>
    <base64 ciphertext chunk 2>
    ...

Decoding is a three-state machine (``AWAITING_HEADER → IN_METADATA →
IN_BODY``) driven by :class:`~coffer.envelope.lines.LineReader`. Only
``IN_BODY`` may end the stream. The metadata is parsed in full before the
first body chunk is produced, and body chunks are decoded one line at a
time so memory use does not grow with the file.

Usage::

    metadata, body = read_envelope(iter_file_chunks(path))
    for chunk in body:
        ...

    for line in encode(metadata, ciphertext_chunks):
        out.write(line)
"""

from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import Iterable, Iterator
from enum import Enum
from pathlib import Path

from ..core.config import DEFAULT_PRODUCT
from ..core.exceptions import FormatError
from .lines import LineReader
from .metadata import EnvelopeMetadata

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024
COMMENT = "# coffer envelope"


class DecoderState(Enum):
    AWAITING_HEADER = "awaiting_header"
    IN_METADATA = "in_metadata"
    IN_BODY = "in_body"


def header_line(product: str = DEFAULT_PRODUCT) -> str:
    return f"=== BEGIN {product} ==="


def footer_line(product: str = DEFAULT_PRODUCT) -> str:
    return f"=== END {product} ==="


# ============================================================================
# Decoding
# ============================================================================


class EnvelopeDecoder:
    """Push-style decoder.

    Feed raw bytes in any chunking; each :meth:`feed` returns the events it
    completed: the :class:`EnvelopeMetadata` exactly once, then ciphertext
    ``bytes`` chunks. Call :meth:`close` at end of stream.
    """

    def __init__(self, product: str = DEFAULT_PRODUCT) -> None:
        self.product = product
        self.state = DecoderState.AWAITING_HEADER
        self.metadata: EnvelopeMetadata | None = None
        self._header = header_line(product).encode("utf-8")
        self._footer = footer_line(product).encode("utf-8")
        self._tag = product.encode("utf-8")
        self._tag_prefix = self._tag + b" "
        self._meta_lines: list[str] = []
        self._lines = LineReader()
        self._line_no = 0

    def feed(self, data: bytes) -> list[EnvelopeMetadata | bytes]:
        events: list[EnvelopeMetadata | bytes] = []
        for line in self._lines.feed(data):
            self._handle_line(line, events)
        return events

    def close(self) -> list[EnvelopeMetadata | bytes]:
        """Flush the final unterminated line and check the stream ended in the body."""
        events: list[EnvelopeMetadata | bytes] = []
        tail = self._lines.flush()
        if tail is not None:
            self._handle_line(tail, events)
        if self.state is DecoderState.AWAITING_HEADER:
            raise FormatError("Invalid file signature: envelope header missing")
        if self.state is DecoderState.IN_METADATA:
            raise FormatError("Invalid file signature: envelope footer missing")
        return events

    def _handle_line(self, line: bytes, events: list[EnvelopeMetadata | bytes]) -> None:
        self._line_no += 1
        if self.state is DecoderState.IN_BODY:
            chunk = self._decode_body_line(line)
            if chunk:
                events.append(chunk)
        elif self.state is DecoderState.IN_METADATA:
            if line == self._footer:
                self.metadata = self._parse_metadata()
                self.state = DecoderState.IN_BODY
                events.append(self.metadata)
            elif line.startswith(self._tag_prefix) or line == self._tag:
                self._meta_lines.append(self._decode_text(line[len(self._tag_prefix) :]))
            else:
                raise FormatError(f"Invalid file signature: untagged metadata line {self._line_no}")
        else:
            if line != self._header:
                raise FormatError("Invalid file signature: envelope header missing")
            self.state = DecoderState.IN_METADATA

    def _decode_text(self, raw: bytes) -> str:
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FormatError(f"Metadata line {self._line_no} is not UTF-8") from exc

    def _decode_body_line(self, line: bytes) -> bytes:
        try:
            return base64.b64decode(line, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise FormatError(f"Body line {self._line_no} is not valid base64") from exc

    def _parse_metadata(self) -> EnvelopeMetadata:
        text = "\n".join(self._meta_lines) + "\n"
        self._meta_lines = []
        metadata = EnvelopeMetadata.from_yaml(text)
        logger.debug("Parsed envelope metadata with %d recipient(s)", len(metadata.recipients))
        return metadata


def decode(chunks: Iterable[bytes], product: str = DEFAULT_PRODUCT) -> Iterator[EnvelopeMetadata | bytes]:
    """Lazily decode an envelope: the metadata first, then ciphertext chunks."""
    decoder = EnvelopeDecoder(product)
    for data in chunks:
        yield from decoder.feed(data)
    yield from decoder.close()


def read_envelope(
    chunks: Iterable[bytes], product: str = DEFAULT_PRODUCT
) -> tuple[EnvelopeMetadata, Iterator[bytes]]:
    """Split an envelope into its metadata and a lazy body iterator.

    Consumes input up to and including the footer, so framing errors in
    the header or metadata are raised here, before any body is returned.
    """
    events = decode(chunks, product)
    # decode() always yields the metadata before any chunk, or raises
    first = next(events, None)
    if not isinstance(first, EnvelopeMetadata):
        raise FormatError("Invalid file signature: no envelope metadata")
    return first, _body_only(events)


def _body_only(events: Iterator[EnvelopeMetadata | bytes]) -> Iterator[bytes]:
    for event in events:
        if isinstance(event, bytes):
            yield event


def iter_file_chunks(path: Path | str, chunk_size: int = READ_CHUNK_SIZE) -> Iterator[bytes]:
    """Read a file lazily; the handle is closed when the iterator finishes."""
    with open(path, "rb") as f:
        while True:
            data = f.read(chunk_size)
            if not data:
                return
            yield data


# ============================================================================
# Encoding
# ============================================================================


def encode(
    metadata: EnvelopeMetadata,
    ciphertext_chunks: Iterable[bytes],
    product: str = DEFAULT_PRODUCT,
) -> Iterator[bytes]:
    """Serialize an envelope, one output line per yielded ``bytes``."""
    yield (header_line(product) + "\n").encode("utf-8")
    yield f"{product} {COMMENT}\n".encode()
    for line in metadata.to_yaml().splitlines():
        yield f"{product} {line}\n".encode()
    yield (footer_line(product) + "\n").encode("utf-8")
    for chunk in ciphertext_chunks:
        if chunk:
            yield base64.b64encode(chunk) + b"\n"
