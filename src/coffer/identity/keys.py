"""Identities: secp256k1 keypairs with a self-signed profile.

An :class:`Identity` is owned by one participant and never leaves their
machine except as its public half, the :class:`RecipientCandidate` (what an
"invite" carries and what the contact book stores).

The profile signature is ECDSA/SHA-512 over the compact JSON of
``{"user", "email", "pub"}`` in that order, ``user`` (the handle) only when
set and ``pub`` being the base64 of the uncompressed public point. This is
the byte form SENO-ENCRYPTOR invites and envelopes are signed over.
Anyone holding a candidate can check it offline with :func:`verify_profile`.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from ..core.exceptions import FormatError

CURVE = ec.SECP256K1()
SCALAR_SIZE = 32
POINT_SIZE = 65
SIGNATURE_HASH = hashes.SHA512

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def b64(data: bytes) -> str:
    """Encode bytes as standard base64 text."""
    return base64.b64encode(data).decode("ascii")


def b64decode(text: str, what: str = "value") -> bytes:
    """Decode strict base64, raising :class:`FormatError` on garbage."""
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError, TypeError) as exc:
        raise FormatError(f"Invalid base64 in {what}") from exc


def compact_json(obj: Any) -> bytes:
    """JSON in insertion order with no whitespace, UTF-8.

    Same bytes as JavaScript's ``JSON.stringify`` for the string-only
    records signed here; keys are never sorted.
    """
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def encode_point(public_key: ec.EllipticCurvePublicKey) -> bytes:
    """Uncompressed X9.62 encoding of a public key (65 bytes)."""
    return public_key.public_bytes(Encoding.X962, PublicFormat.UncompressedPoint)


def load_point(point: bytes) -> ec.EllipticCurvePublicKey:
    """Load a secp256k1 public point, raising :class:`FormatError` if invalid.

    Only the uncompressed encoding is accepted so that byte equality of
    points means key equality.
    """
    if len(point) != POINT_SIZE or point[0] != 0x04:
        raise FormatError("Public key is not an uncompressed secp256k1 point")
    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(CURVE, point)
    except ValueError as exc:
        raise FormatError("Invalid secp256k1 public key") from exc


def sign(private_key: ec.EllipticCurvePrivateKey, data: bytes) -> bytes:
    """ECDSA/SHA-512 signature (DER)."""
    return private_key.sign(data, ec.ECDSA(SIGNATURE_HASH()))


def verify(point: bytes, data: bytes, signature: bytes) -> bool:
    """Check an ECDSA/SHA-512 signature. Invalid keys simply fail."""
    try:
        public_key = load_point(point)
        public_key.verify(signature, data, ec.ECDSA(SIGNATURE_HASH()))
        return True
    except (FormatError, InvalidSignature):
        return False


def derive_shared_secret(private_key: ec.EllipticCurvePrivateKey, other_point: bytes) -> bytes:
    """ECDH agreement; returns the 32-byte shared x-coordinate.

    Used on the sender side with an ephemeral key and on the recipient side
    with the long-term key; both yield the same secret.
    """
    return private_key.exchange(ec.ECDH(), load_point(other_point))


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Profile:
    """Self-attested profile fields."""

    email: str
    handle: str | None = None

    def signed_fields(self, point: bytes) -> dict[str, str]:
        fields: dict[str, str] = {}
        if self.handle:
            fields["user"] = self.handle
        fields["email"] = self.email
        fields["pub"] = b64(point)
        return fields

    def display(self) -> str:
        if self.handle:
            return f"{self.handle} <{self.email}>"
        return self.email


def profile_payload(point: bytes, profile: Profile) -> bytes:
    """Bytes covered by a profile signature."""
    return compact_json(profile.signed_fields(point))


def verify_profile(point: bytes, profile: Profile, signature: bytes) -> bool:
    """Verify that *signature* binds *profile* to *point*."""
    return verify(point, profile_payload(point, profile), signature)


@dataclass(frozen=True)
class RecipientCandidate:
    """Public half of an identity: point, profile and profile signature."""

    public_point: bytes
    profile: Profile
    signature: bytes

    @property
    def public_key_b64(self) -> str:
        return b64(self.public_point)

    def verify(self) -> bool:
        return verify_profile(self.public_point, self.profile, self.signature)

    def to_dict(self) -> dict[str, str]:
        """Invite / contact-book representation."""
        data = self.profile.signed_fields(self.public_point)
        data["sig"] = b64(self.signature)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecipientCandidate:
        """Parse an invite. Structure is checked, the signature is not."""
        if not isinstance(data, dict):
            raise FormatError("Recipient must be a mapping")
        for name in ("pub", "email", "sig"):
            if not isinstance(data.get(name), str):
                raise FormatError(f"Recipient field '{name}' missing or not a string")
        handle = data.get("user")
        if handle is not None and not isinstance(handle, str):
            raise FormatError("Recipient field 'user' must be a string")
        return cls(
            public_point=b64decode(data["pub"], "recipient public key"),
            profile=Profile(email=data["email"], handle=handle or None),
            signature=b64decode(data["sig"], "recipient signature"),
        )


@dataclass(frozen=True)
class Identity:
    """A participant's keypair and signed profile.

    Immutable: changing the profile means generating a new identity.
    """

    private_key: ec.EllipticCurvePrivateKey
    profile: Profile
    signature: bytes

    @property
    def public_point(self) -> bytes:
        return encode_point(self.private_key.public_key())

    @property
    def private_scalar(self) -> bytes:
        return self.private_key.private_numbers().private_value.to_bytes(SCALAR_SIZE, "big")

    @property
    def email(self) -> str:
        return self.profile.email

    @classmethod
    def from_private_scalar(cls, scalar: bytes, profile: Profile, signature: bytes) -> Identity:
        """Rebuild an identity from its persisted scalar."""
        if len(scalar) != SCALAR_SIZE:
            raise FormatError(f"Private key must be {SCALAR_SIZE} bytes, got {len(scalar)}")
        try:
            private_key = ec.derive_private_key(int.from_bytes(scalar, "big"), CURVE)
        except ValueError as exc:
            raise FormatError("Private key is out of range for secp256k1") from exc
        return cls(private_key=private_key, profile=profile, signature=signature)

    def candidate(self) -> RecipientCandidate:
        return RecipientCandidate(
            public_point=self.public_point,
            profile=self.profile,
            signature=self.signature,
        )

    def sign(self, data: bytes) -> bytes:
        return sign(self.private_key, data)

    def verify(self) -> bool:
        """Sanity check of the identity's own profile signature."""
        return verify_profile(self.public_point, self.profile, self.signature)

    def shared_secret(self, other_point: bytes) -> bytes:
        return derive_shared_secret(self.private_key, other_point)


def generate(profile: Profile) -> Identity:
    """Create a new keypair and self-sign *profile* with it."""
    private_key = ec.generate_private_key(CURVE)
    point = encode_point(private_key.public_key())
    signature = sign(private_key, profile_payload(point, profile))
    return Identity(private_key=private_key, profile=profile, signature=signature)
