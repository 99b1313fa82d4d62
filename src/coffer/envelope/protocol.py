"""Opening, decrypting and resealing envelopes.

Every entry point takes the caller's :class:`~coffer.identity.keys.Identity`
and the format settings explicitly; nothing is looked up from ambient
configuration.

Lifecycle of one envelope instance (see :class:`EnvelopeSession`)::

    UNOPENED → OPEN(content key, metadata) → DECRYPTING | RESEALING → CLOSED

Signatures are verified once, when the envelope is opened; decryption
relies on that and does not verify again. Writing always goes to a
temporary file beside the destination which replaces it only once fully
written, so an interrupted reseal leaves the previous version intact.
"""

from __future__ import annotations

import errno
import logging
from contextlib import closing
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO

from ..core.config import DEFAULT_CHUNK_SIZE, DEFAULT_PRODUCT
from ..core.exceptions import EnvelopeStateError, FormatError, InvalidSignatureError, RecipientError
from ..core.files import atomic_write, scratch_beside
from ..identity.keys import Identity, RecipientCandidate
from .cipher import decrypt_stream, derive_iv, encrypt_stream, iter_chunks, new_content_key
from .codec import encode, iter_file_chunks, read_envelope
from .metadata import EnvelopeMetadata
from .registry import rewrap_for, unwrap_content_key, verify_all

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpenedEnvelope:
    """Authenticated metadata plus the recovered content key."""

    metadata: EnvelopeMetadata
    content_key: bytes
    existed: bool


def open_or_create(path: Path | str, identity: Identity, *, product: str = DEFAULT_PRODUCT) -> OpenedEnvelope:
    """Authenticate an existing envelope, or start a new one.

    For an existing file: parse the metadata, verify every signature and
    unwrap the content key for *identity*. For a missing file: draw a fresh
    content key with *identity* as the only recipient.

    Raises:
        FormatError: If the envelope framing or metadata is malformed.
        InvalidSignatureError: If any signature fails.
        AccessDeniedError: If *identity* is not a recipient.
    """
    path = Path(path)
    if not path.exists():
        content_key = new_content_key()
        metadata = rewrap_for([identity.candidate()], content_key)
        logger.info("Starting new envelope %s for %s", path, identity.email)
        return OpenedEnvelope(metadata=metadata, content_key=content_key, existed=False)

    with closing(iter_file_chunks(path)) as chunks:
        metadata, _body = read_envelope(chunks, product)
    verify_all(metadata)
    content_key = unwrap_content_key(metadata, identity)
    logger.info("Opened envelope %s as %s", path, identity.email)
    return OpenedEnvelope(metadata=metadata, content_key=content_key, existed=True)


def decrypt_to(
    path: Path | str,
    metadata: EnvelopeMetadata,
    content_key: bytes,
    sink: BinaryIO,
    *,
    product: str = DEFAULT_PRODUCT,
) -> int:
    """Stream the decrypted body of *path* into *sink*.

    *metadata* and *content_key* come from :func:`open_or_create`. A file
    that does not exist yet decrypts to nothing.

    Returns:
        Number of plaintext bytes written.

    Raises:
        FormatError: If framing is broken, the file was resealed since it
            was opened, or the body does not decrypt.
    """
    path = Path(path)
    if not path.exists():
        return 0

    written = 0
    with closing(iter_file_chunks(path)) as chunks:
        file_metadata, body = read_envelope(chunks, product)
        if file_metadata.ephemeral_point != metadata.ephemeral_point:
            raise FormatError("Envelope was resealed since it was opened")
        for piece in decrypt_stream(content_key, derive_iv(metadata.ephemeral_point), body):
            sink.write(piece)
            written += len(piece)
    logger.debug("Decrypted %d byte(s) from %s", written, path)
    return written


def encrypt_from(
    path: Path | str,
    metadata: EnvelopeMetadata,
    content_key: bytes,
    source: BinaryIO,
    *,
    product: str = DEFAULT_PRODUCT,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> None:
    """Encrypt *source* to completion and publish it as the envelope at *path*.

    The destination is replaced only after the whole stream has been
    written and flushed; on any error the partial output is removed and the
    error re-raised.
    """
    path = Path(path)
    ciphertext = encrypt_stream(content_key, derive_iv(metadata.ephemeral_point), iter_chunks(source, chunk_size))
    with atomic_write(path, suffix=".coffer") as out:
        for line in encode(metadata, ciphertext, product):
            out.write(line)
    logger.info("Wrote envelope %s for %d recipient(s)", path, len(metadata.recipients))


def seal_from(
    path: Path | str,
    identity: Identity,
    source: BinaryIO,
    *,
    product: str = DEFAULT_PRODUCT,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> OpenedEnvelope:
    """Replace the plaintext of *path* with *source*.

    Keeps the current recipients but always reseals with a new content key
    and ephemeral key, so no key/IV pair encrypts two versions of a file.
    Creates the envelope, with *identity* as sole recipient, if missing.
    """
    opened = open_or_create(path, identity, product=product)
    if opened.existed:
        content_key = new_content_key()
        metadata = rewrap_for(opened.metadata.candidates(), content_key)
        opened = OpenedEnvelope(metadata=metadata, content_key=content_key, existed=True)
    encrypt_from(path, opened.metadata, opened.content_key, source, product=product, chunk_size=chunk_size)
    return opened


def mutate_recipients(
    path: Path | str,
    identity: Identity,
    *,
    add: RecipientCandidate | None = None,
    remove: bytes | None = None,
    product: str = DEFAULT_PRODUCT,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> OpenedEnvelope:
    """Add and/or remove one recipient, then reseal.

    *add* replaces an existing entry with the same public key; *remove* is a
    public point. The new envelope always has a new content key and a new
    ephemeral key. The old plaintext passes through a 0600 scratch file
    beside *path*, deleted before returning.

    Raises:
        FileNotFoundError: If *path* does not exist.
        InvalidSignatureError: If *add* or any remaining recipient fails to verify.
        RecipientError: If *remove* is not a recipient or nobody would be left.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(errno.ENOENT, "Envelope does not exist", str(path))

    opened = open_or_create(path, identity, product=product)
    candidates = opened.metadata.candidates()

    if remove is not None:
        kept = [c for c in candidates if c.public_point != remove]
        if len(kept) == len(candidates):
            raise RecipientError("Recipient to remove is not in this envelope")
        candidates = kept

    if add is not None:
        if not add.verify():
            raise InvalidSignatureError(
                f"Invalid user signature for {add.profile.email}",
                email=add.profile.email,
            )
        candidates = [c for c in candidates if c.public_point != add.public_point]
        candidates.append(add)

    if all(c.public_point != identity.public_point for c in candidates):
        logger.warning("%s is removing their own access to %s", identity.email, path)

    content_key = new_content_key()
    metadata = rewrap_for(candidates, content_key)

    with scratch_beside(path, suffix=".plain") as plaintext:
        decrypt_to(path, opened.metadata, opened.content_key, plaintext, product=product)
        plaintext.seek(0)
        encrypt_from(path, metadata, content_key, plaintext, product=product, chunk_size=chunk_size)

    logger.info("Resealed %s for %d recipient(s)", path, len(metadata.recipients))
    return OpenedEnvelope(metadata=metadata, content_key=content_key, existed=True)


# =============================================================================
# Session
# =============================================================================


class EnvelopeState(Enum):
    UNOPENED = "unopened"
    OPEN = "open"
    DECRYPTING = "decrypting"
    RESEALING = "resealing"
    CLOSED = "closed"


class EnvelopeSession:
    """One linear, non-reentrant pass over an envelope.

    Example::

        with EnvelopeSession(path, identity) as session:
            session.open()
            session.decrypt_to(sys.stdout.buffer)

    After :meth:`decrypt_to` or :meth:`reseal` the session is closed; open a
    new one for the next operation.
    """

    def __init__(
        self,
        path: Path | str,
        identity: Identity,
        *,
        product: str = DEFAULT_PRODUCT,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.path = Path(path)
        self.identity = identity
        self.product = product
        self.chunk_size = chunk_size
        self.state = EnvelopeState.UNOPENED
        self._opened: OpenedEnvelope | None = None

    @property
    def metadata(self) -> EnvelopeMetadata:
        return self._require_open().metadata

    @property
    def existed(self) -> bool:
        return self._require_open().existed

    def open(self) -> OpenedEnvelope:
        if self.state is not EnvelopeState.UNOPENED:
            raise EnvelopeStateError("Envelope session already used", state=self.state.value)
        try:
            self._opened = open_or_create(self.path, self.identity, product=self.product)
        except BaseException:
            self.state = EnvelopeState.CLOSED
            raise
        self.state = EnvelopeState.OPEN
        return self._opened

    def decrypt_to(self, sink: BinaryIO) -> int:
        opened = self._require_open()
        self.state = EnvelopeState.DECRYPTING
        try:
            return decrypt_to(self.path, opened.metadata, opened.content_key, sink, product=self.product)
        finally:
            self.close()

    def reseal(self, source: BinaryIO) -> OpenedEnvelope:
        """Encrypt *source* for the current recipients under a fresh key."""
        opened = self._require_open()
        self.state = EnvelopeState.RESEALING
        try:
            if opened.existed:
                content_key = new_content_key()
                metadata = rewrap_for(opened.metadata.candidates(), content_key)
                opened = OpenedEnvelope(metadata=metadata, content_key=content_key, existed=True)
            encrypt_from(
                self.path,
                opened.metadata,
                opened.content_key,
                source,
                product=self.product,
                chunk_size=self.chunk_size,
            )
            return opened
        finally:
            self.close()

    def close(self) -> None:
        self._opened = None
        self.state = EnvelopeState.CLOSED

    def __enter__(self) -> EnvelopeSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _require_open(self) -> OpenedEnvelope:
        if self.state is not EnvelopeState.OPEN or self._opened is None:
            raise EnvelopeStateError("Envelope session is not open", state=self.state.value)
        return self._opened
