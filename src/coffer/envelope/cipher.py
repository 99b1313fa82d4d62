"""Content cipher: AES-256-CBC with PKCS#7 padding.

The body is processed as a stream: every call to the generators below
yields whatever whole blocks are ready, and padding is added or checked
only when the input is exhausted. Chunk boundaries on the way in and the
way out need not match; only the concatenated bytes do.

The IV is the first 16 bytes of the envelope's ephemeral public point, so
a fresh ephemeral key per reseal gives a fresh IV. Content keys are also
wrapped for recipients with the same construction (:func:`wrap_key`).
"""

from __future__ import annotations

import secrets
from collections.abc import Iterable, Iterator
from typing import BinaryIO

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..core.exceptions import FormatError

KEY_SIZE = 32
IV_SIZE = 16
BLOCK_BITS = 128
DEFAULT_CHUNK_SIZE = 1024


def new_content_key() -> bytes:
    """A fresh random 256-bit content key."""
    return secrets.token_bytes(KEY_SIZE)


def derive_iv(ephemeral_point: bytes) -> bytes:
    """IV for both body encryption and key wrapping."""
    if len(ephemeral_point) < IV_SIZE:
        raise FormatError("Ephemeral public key too short to derive an IV")
    return ephemeral_point[:IV_SIZE]


def _cipher(key: bytes, iv: bytes) -> Cipher:
    if len(key) != KEY_SIZE:
        raise ValueError(f"AES-256 key must be {KEY_SIZE} bytes, got {len(key)}")
    return Cipher(algorithms.AES(key), modes.CBC(iv))


def encrypt_stream(key: bytes, iv: bytes, chunks: Iterable[bytes]) -> Iterator[bytes]:
    """Encrypt a plaintext stream; yields non-empty ciphertext chunks."""
    encryptor = _cipher(key, iv).encryptor()
    padder = padding.PKCS7(BLOCK_BITS).padder()
    for chunk in chunks:
        out = encryptor.update(padder.update(chunk))
        if out:
            yield out
    out = encryptor.update(padder.finalize()) + encryptor.finalize()
    if out:
        yield out


def decrypt_stream(key: bytes, iv: bytes, chunks: Iterable[bytes]) -> Iterator[bytes]:
    """Decrypt a ciphertext stream; yields non-empty plaintext chunks.

    Raises:
        FormatError: When the stream ends on a partial block or the final
            padding is wrong (wrong key, truncated or altered body).
    """
    decryptor = _cipher(key, iv).decryptor()
    unpadder = padding.PKCS7(BLOCK_BITS).unpadder()
    for chunk in chunks:
        out = unpadder.update(decryptor.update(chunk))
        if out:
            yield out
    try:
        out = unpadder.update(decryptor.finalize()) + unpadder.finalize()
    except ValueError as exc:
        raise FormatError("Envelope body does not decrypt under the content key") from exc
    if out:
        yield out


def wrap_key(secret: bytes, iv: bytes, content_key: bytes) -> bytes:
    """Encrypt a content key under an ECDH secret (48 bytes out)."""
    return b"".join(encrypt_stream(secret, iv, [content_key]))


def unwrap_key(secret: bytes, iv: bytes, wrapped: bytes) -> bytes:
    return b"".join(decrypt_stream(secret, iv, [wrapped]))


def iter_chunks(source: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
    """Read *source* to completion in *chunk_size* pieces."""
    while True:
        chunk = source.read(chunk_size)
        if not chunk:
            return
        yield chunk
