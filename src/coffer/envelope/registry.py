"""Recipient registry: who may open an envelope, and with which key.

Verification order matters: the signature over the whole recipient list
(made with the envelope's ephemeral key) is checked before any single
entry is looked at, so a tampered list is rejected as a whole. Only then is
each entry's own profile signature checked.

Wrapping a content key for a recipient::

    secret  = ECDH(ephemeral_private, recipient_public)
    wrapped = AES-256-CBC(secret, iv=ephemeral_public[:16], content_key)

The recipient recomputes the same secret from their private key and the
ephemeral public key stored in the envelope.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from cryptography.hazmat.primitives.asymmetric import ec

from ..core.exceptions import AccessDeniedError, FormatError, InvalidSignatureError, RecipientError
from ..identity.keys import (
    CURVE,
    Identity,
    RecipientCandidate,
    derive_shared_secret,
    encode_point,
    sign,
    verify,
)
from .cipher import KEY_SIZE, derive_iv, unwrap_key, wrap_key
from .metadata import EnvelopeMetadata, RecipientEntry, recipients_payload

logger = logging.getLogger(__name__)


def find_recipient(metadata: EnvelopeMetadata, identity: Identity) -> RecipientEntry | None:
    """Linear scan for the entry whose public point is the identity's."""
    return metadata.find(identity.public_point)


def match_recipient(metadata: EnvelopeMetadata, selector: str) -> RecipientEntry:
    """Find an entry by handle, email or base64 public key.

    Raises:
        RecipientError: If nothing matches or the selector is ambiguous.
    """
    matches = [
        entry
        for entry in metadata.recipients
        if selector in (entry.profile.handle, entry.profile.email, entry.candidate.public_key_b64)
    ]
    if not matches:
        raise RecipientError(f"No recipient matches {selector}")
    if len(matches) > 1:
        raise RecipientError(f"{selector} matches {len(matches)} recipients; use the public key")
    return matches[0]


def verify_all(metadata: EnvelopeMetadata) -> None:
    """Check the list signature, then every entry's profile signature.

    Raises:
        InvalidSignatureError: On the first signature that fails. ``index``
            is None for the list signature, else the entry position.
    """
    if not verify(metadata.ephemeral_point, metadata.signed_payload(), metadata.signature):
        raise InvalidSignatureError("Invalid meta signature")
    for index, entry in enumerate(metadata.recipients):
        if not entry.candidate.verify():
            raise InvalidSignatureError(
                f"Invalid user signature for {entry.profile.email}",
                index=index,
                email=entry.profile.email,
            )
    logger.debug("Verified envelope signatures for %d recipient(s)", len(metadata.recipients))


def unwrap_content_key(metadata: EnvelopeMetadata, identity: Identity) -> bytes:
    """Recover the content key for *identity*.

    Raises:
        AccessDeniedError: If the identity is not a recipient.
        FormatError: If the wrapped key does not decrypt to a 32-byte key.
    """
    entry = find_recipient(metadata, identity)
    if entry is None:
        raise AccessDeniedError(
            f"{identity.email} does not have access to this file",
            public_key=identity.candidate().public_key_b64,
        )
    secret = identity.shared_secret(metadata.ephemeral_point)
    try:
        content_key = unwrap_key(secret, derive_iv(metadata.ephemeral_point), entry.wrapped_key)
    except FormatError as exc:
        raise FormatError(f"Wrapped key for {identity.email} does not decrypt") from exc
    if len(content_key) != KEY_SIZE:
        raise FormatError(f"Wrapped key for {identity.email} has the wrong length")
    return content_key


def rewrap_for(recipients: Iterable[RecipientCandidate], content_key: bytes) -> EnvelopeMetadata:
    """Build fresh metadata granting *recipients* access to *content_key*.

    A new ephemeral keypair is generated for every call and its private half
    is dropped before returning. All recipient signatures are checked before
    any key is wrapped, so one bad recipient fails the whole reseal.

    Raises:
        RecipientError: If the set is empty or has a duplicate public key.
        InvalidSignatureError: If a recipient's profile signature fails.
    """
    candidates = list(recipients)
    if not candidates:
        raise RecipientError("An envelope needs at least one recipient")
    if len(content_key) != KEY_SIZE:
        raise ValueError(f"Content key must be {KEY_SIZE} bytes")

    seen: set[bytes] = set()
    for index, candidate in enumerate(candidates):
        if candidate.public_point in seen:
            raise RecipientError(f"Duplicate recipient {candidate.profile.email}")
        seen.add(candidate.public_point)
        if not candidate.verify():
            raise InvalidSignatureError(
                f"Invalid user signature for {candidate.profile.email}",
                index=index,
                email=candidate.profile.email,
            )

    ephemeral = ec.generate_private_key(CURVE)
    ephemeral_point = encode_point(ephemeral.public_key())
    iv = derive_iv(ephemeral_point)

    entries = tuple(
        RecipientEntry(
            candidate=candidate,
            wrapped_key=wrap_key(derive_shared_secret(ephemeral, candidate.public_point), iv, content_key),
        )
        for candidate in candidates
    )
    signature = sign(ephemeral, recipients_payload(entries))
    del ephemeral

    logger.info("Wrapped content key for %d recipient(s)", len(entries))
    return EnvelopeMetadata(ephemeral_point=ephemeral_point, recipients=entries, signature=signature)
