"""Identity management for Coffer: one secp256k1 keypair per participant.

Key concepts:
- **Identity**: private key + self-signed profile (handle, email).
- **RecipientCandidate**: the public half, exchanged as an "invite".
- **ContactBook**: local aliases for candidates received from others.

Trust is bootstrapped manually: an invite is only as trustworthy as the
channel it arrived through. Signatures bind profile to key, nothing more.
"""

from coffer.identity.contacts import ContactBook
from coffer.identity.keys import (
    Identity,
    Profile,
    RecipientCandidate,
    derive_shared_secret,
    generate,
    verify_profile,
)
from coffer.identity.store import load_identity, save_identity

__all__ = [
    "ContactBook",
    "Identity",
    "Profile",
    "RecipientCandidate",
    "derive_shared_secret",
    "generate",
    "load_identity",
    "save_identity",
    "verify_profile",
]
