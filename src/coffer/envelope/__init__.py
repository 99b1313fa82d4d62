"""Envelope engine: file format, recipient registry, content cipher and protocol.

Typical use::

    from coffer.envelope import EnvelopeSession

    with EnvelopeSession(path, identity) as session:
        session.open()
        session.decrypt_to(sink)
"""

from coffer.envelope.codec import DecoderState, EnvelopeDecoder, decode, encode, read_envelope
from coffer.envelope.metadata import EnvelopeMetadata, RecipientEntry
from coffer.envelope.protocol import (
    EnvelopeSession,
    EnvelopeState,
    OpenedEnvelope,
    decrypt_to,
    encrypt_from,
    mutate_recipients,
    open_or_create,
    seal_from,
)
from coffer.envelope.registry import (
    find_recipient,
    match_recipient,
    rewrap_for,
    unwrap_content_key,
    verify_all,
)

__all__ = [
    "DecoderState",
    "EnvelopeDecoder",
    "EnvelopeMetadata",
    "EnvelopeSession",
    "EnvelopeState",
    "OpenedEnvelope",
    "RecipientEntry",
    "decode",
    "decrypt_to",
    "encode",
    "encrypt_from",
    "find_recipient",
    "match_recipient",
    "mutate_recipients",
    "open_or_create",
    "read_envelope",
    "rewrap_for",
    "seal_from",
    "unwrap_content_key",
    "verify_all",
]
