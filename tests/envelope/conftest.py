"""Fixtures shared by the envelope tests."""

from __future__ import annotations

import base64
import io
import os

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from coffer.envelope.cipher import new_content_key
from coffer.envelope.metadata import EnvelopeMetadata
from coffer.envelope.protocol import encrypt_from
from coffer.envelope.registry import rewrap_for

SENO = "SENO-ENCRYPTOR"


@pytest.fixture
def content_key() -> bytes:
    return new_content_key()


@pytest.fixture
def shared_metadata(alice, bob, content_key) -> EnvelopeMetadata:
    """Metadata granting alice and bob access to ``content_key``."""
    return rewrap_for([alice.candidate(), bob.candidate()], content_key)


@pytest.fixture
def make_envelope(tmp_path):
    """Write an envelope for the given identities and return its path."""

    def factory(plaintext: bytes, *identities, name: str = "secret.txt", chunk_size: int = 1024):
        key = new_content_key()
        metadata = rewrap_for([i.candidate() for i in identities], key)
        path = tmp_path / name
        encrypt_from(path, metadata, key, io.BytesIO(plaintext), chunk_size=chunk_size)
        return path

    return factory


# ============================================================================
# SENO-ENCRYPTOR envelopes
# ============================================================================


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _stringify(record: dict[str, str]) -> str:
    # JSON.stringify of a flat record of base64 / email strings
    return "{" + ",".join(f'"{k}":"{v}"' for k, v in record.items()) + "}"


def _cbc(key: bytes, iv: bytes):
    return Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()


@pytest.fixture
def seno_envelope(tmp_path):
    """Write an envelope byte for byte the way SENO-ENCRYPTOR does.

    Built with ``cryptography`` and string formatting only, so it does not
    share any encoding code with coffer. Recipients are ``(identity, user)``
    pairs; ``user`` None leaves the field out, as ``init``/``invite`` do.
    The body is encrypted ``read_size`` bytes at a time and every cipher
    update becomes one line, so reads shorter than a block give empty lines
    and the final padded block gets a line of its own.
    """

    def factory(plaintext: bytes, *members, name: str = "legacy.txt", read_size: int = 1024):
        content_key = os.urandom(32)
        ephemeral = ec.generate_private_key(ec.SECP256K1())
        ephemeral_point = ephemeral.public_key().public_bytes(Encoding.X962, PublicFormat.UncompressedPoint)
        iv = ephemeral_point[:16]

        users = []
        for identity, user in members:
            profile = {"user": user} if user else {}
            profile["email"] = identity.email
            profile["pub"] = _b64(identity.public_point)
            record = dict(profile)
            record["sig"] = _b64(identity.sign(_stringify(profile).encode()))
            secret = ephemeral.exchange(ec.ECDH(), identity.private_key.public_key())
            wrap = _cbc(secret, iv)
            record["enc"] = _b64(wrap.update(content_key + bytes([16]) * 16) + wrap.finalize())
            users.append(record)

        users_json = "[" + ",".join(_stringify(u) for u in users) + "]"
        meta_sig = ephemeral.sign(users_json.encode(), ec.ECDSA(hashes.SHA512()))

        yaml_lines = [f"key: {_b64(ephemeral_point)}", "users:"]
        for record in users:
            for i, (field, value) in enumerate(record.items()):
                yaml_lines.append(f"  - {field}: {value}" if i == 0 else f"    {field}: {value}")
        yaml_lines.append(f"sig: {_b64(meta_sig)}")
        yaml_text = "\n".join(yaml_lines) + "\n"

        out = [f"=== BEGIN {SENO} ===\n", f"{SENO} # https://github.com/senomas/encryptor\n"]
        out.append("\n".join(f"{SENO} {line}" for line in yaml_text.split("\n")))
        out.append(f"\n=== END {SENO} ===\n")

        body = _cbc(content_key, iv)
        for start in range(0, len(plaintext), read_size):
            out.append(_b64(body.update(plaintext[start : start + read_size])) + "\n")
        pad = 16 - len(plaintext) % 16
        out.append(_b64(body.update(bytes([pad]) * pad) + body.finalize()) + "\n")

        path = tmp_path / name
        path.write_text("".join(out), encoding="utf-8")
        return path

    return factory
