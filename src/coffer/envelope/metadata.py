"""Envelope metadata model and its YAML text form.

De-tagged, the metadata block of an envelope reads::

    key: <ephemeral public point, base64>
    users:
    - user: alice
      email: alice@example.com
      pub: <recipient public point, base64>
      sig: <profile signature, base64>
      enc: <wrapped content key, base64>
    sig: <signature of the users list by the ephemeral key, base64>

Parsing is strict about structure: anything missing or of the wrong type is
a :class:`FormatError`. Signatures are *not* checked here, see
:mod:`coffer.envelope.registry`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import yaml

from ..core.exceptions import FormatError
from ..identity.keys import Profile, RecipientCandidate, b64, b64decode, compact_json


@dataclass(frozen=True)
class RecipientEntry:
    """One recipient of an envelope and their wrapped copy of the content key."""

    candidate: RecipientCandidate
    wrapped_key: bytes

    @property
    def public_point(self) -> bytes:
        return self.candidate.public_point

    @property
    def profile(self) -> Profile:
        return self.candidate.profile

    @property
    def signature(self) -> bytes:
        return self.candidate.signature

    def to_dict(self) -> dict[str, str]:
        data = self.candidate.to_dict()
        data["enc"] = b64(self.wrapped_key)
        return data

    @classmethod
    def from_dict(cls, data: Any) -> RecipientEntry:
        candidate = RecipientCandidate.from_dict(data)
        if not isinstance(data.get("enc"), str):
            raise FormatError("Recipient field 'enc' missing or not a string")
        return cls(candidate=candidate, wrapped_key=b64decode(data["enc"], "wrapped key"))


@dataclass(frozen=True)
class EnvelopeMetadata:
    """Everything above the body: ephemeral key, recipients, list signature."""

    ephemeral_point: bytes
    recipients: tuple[RecipientEntry, ...]
    signature: bytes

    def signed_payload(self) -> bytes:
        return recipients_payload(self.recipients)

    def find(self, public_point: bytes) -> RecipientEntry | None:
        for entry in self.recipients:
            if entry.public_point == public_point:
                return entry
        return None

    def candidates(self) -> list[RecipientCandidate]:
        return [entry.candidate for entry in self.recipients]

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": b64(self.ephemeral_point),
            "users": [entry.to_dict() for entry in self.recipients],
            "sig": b64(self.signature),
        }

    @classmethod
    def from_dict(cls, data: Any) -> EnvelopeMetadata:
        if not isinstance(data, dict):
            raise FormatError("Envelope metadata must be a mapping")
        if not isinstance(data.get("key"), str) or not isinstance(data.get("sig"), str):
            raise FormatError("Envelope metadata needs 'key' and 'sig' strings")
        users = data.get("users")
        if not isinstance(users, list) or not users:
            raise FormatError("Envelope metadata needs a non-empty 'users' list")

        entries = tuple(RecipientEntry.from_dict(user) for user in users)
        seen: set[bytes] = set()
        for entry in entries:
            if entry.public_point in seen:
                raise FormatError(f"Duplicate recipient {entry.candidate.public_key_b64}")
            seen.add(entry.public_point)

        return cls(
            ephemeral_point=b64decode(data["key"], "ephemeral key"),
            recipients=entries,
            signature=b64decode(data["sig"], "metadata signature"),
        )

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, default_flow_style=False)

    @classmethod
    def from_yaml(cls, text: str) -> EnvelopeMetadata:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise FormatError(f"Envelope metadata is not valid YAML: {exc}") from exc
        return cls.from_dict(data)


def recipients_payload(recipients: tuple[RecipientEntry, ...] | list[RecipientEntry]) -> bytes:
    """Bytes covered by the ephemeral key's signature: the ordered users list.

    Each record keeps the field order ``user, email, pub, sig, enc``.
    """
    return compact_json([entry.to_dict() for entry in recipients])
