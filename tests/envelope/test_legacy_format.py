"""Tests for reading and resealing envelopes written by SENO-ENCRYPTOR.

Tests cover:
- The exact byte layout the original tool writes
- Profile records with and without the ``user`` field
- Resealing a legacy envelope under the same product tag
"""

from __future__ import annotations

import base64
import io

import pytest

from coffer.core.exceptions import AccessDeniedError, FormatError, InvalidSignatureError
from coffer.envelope.codec import iter_file_chunks, read_envelope
from coffer.envelope.protocol import decrypt_to, mutate_recipients, open_or_create, seal_from

SENO = "SENO-ENCRYPTOR"

PLAINTEXT = b"db_password: hunter2\napi_token: 0123456789abcdef\n" * 40


def _read(path, identity) -> bytes:
    opened = open_or_create(path, identity, product=SENO)
    sink = io.BytesIO()
    decrypt_to(path, opened.metadata, opened.content_key, sink, product=SENO)
    return sink.getvalue()


class TestLayout:
    """The writer fixture reproduces what the original tool puts on disk."""

    def test_framing_quirks_present(self, seno_envelope, carol):
        raw = seno_envelope(b"hi\n", (carol, None), read_size=7).read_bytes()

        assert raw.startswith(b"=== BEGIN SENO-ENCRYPTOR ===\nSENO-ENCRYPTOR # https://")
        assert b"\nSENO-ENCRYPTOR \n=== END SENO-ENCRYPTOR ===\n" in raw
        body = raw.split(b"=== END SENO-ENCRYPTOR ===\n", 1)[1]
        lines = body.split(b"\n")
        # one empty update line for the 3-byte read, then the final block
        assert lines[0] == b""
        assert len(base64.b64decode(lines[1])) == 16
        assert lines[2:] == [b""]

    def test_record_field_order(self, seno_envelope, alice):
        raw = seno_envelope(b"x", (alice, "alice")).read_text()
        records = [line[len(SENO) + 1 :] for line in raw.splitlines() if line.startswith(f"{SENO}   ")]
        fields = [record.split(":", 1)[0].strip(" -") for record in records]
        assert fields == ["user", "email", "pub", "sig", "enc"]


class TestOpenLegacy:
    def test_sole_recipient_without_user(self, seno_envelope, carol):
        path = seno_envelope(PLAINTEXT, (carol, None))
        assert _read(path, carol) == PLAINTEXT

    @pytest.mark.parametrize("length", [0, 1, 15, 16, 17, 1024, 1025])
    def test_block_boundaries(self, seno_envelope, carol, length):
        plaintext = bytes(range(256)) * 5
        path = seno_envelope(plaintext[:length], (carol, None))
        assert _read(path, carol) == plaintext[:length]

    @pytest.mark.parametrize("read_size", [1, 7, 16, 1024])
    def test_empty_and_short_body_lines(self, seno_envelope, carol, read_size):
        path = seno_envelope(PLAINTEXT, (carol, None), read_size=read_size)
        assert _read(path, carol) == PLAINTEXT

    def test_recipient_with_user_field(self, seno_envelope, alice, carol):
        path = seno_envelope(PLAINTEXT, (alice, "alice"), (carol, None))

        opened = open_or_create(path, alice, product=SENO)
        assert [e.profile.handle for e in opened.metadata.recipients] == ["alice", None]
        assert _read(path, alice) == PLAINTEXT
        assert _read(path, carol) == PLAINTEXT

    def test_metadata_parses_with_comment_and_blank_tag_line(self, seno_envelope, carol):
        path = seno_envelope(b"x", (carol, None))
        metadata, _body = read_envelope(iter_file_chunks(path), SENO)
        assert metadata.recipients[0].profile.email == "carol@example.com"

    def test_outsider_denied(self, seno_envelope, carol, dave):
        path = seno_envelope(PLAINTEXT, (carol, None))
        with pytest.raises(AccessDeniedError):
            open_or_create(path, dave, product=SENO)

    def test_tampered_email_rejected(self, seno_envelope, alice, carol):
        path = seno_envelope(PLAINTEXT, (alice, "alice"), (carol, None))
        path.write_bytes(path.read_bytes().replace(b"carol@example.com", b"carla@example.com"))
        with pytest.raises(InvalidSignatureError, match="meta"):
            open_or_create(path, alice, product=SENO)

    def test_default_product_rejects_legacy_file(self, seno_envelope, carol):
        path = seno_envelope(PLAINTEXT, (carol, None))
        with pytest.raises(FormatError):
            open_or_create(path, carol)


class TestResealLegacy:
    def test_add_recipient_keeps_legacy_records(self, seno_envelope, alice, bob, carol):
        path = seno_envelope(PLAINTEXT, (alice, "alice"), (carol, None))
        before = open_or_create(path, alice, product=SENO).metadata

        mutate_recipients(path, carol, add=bob.candidate(), product=SENO)

        assert path.read_bytes().startswith(b"=== BEGIN SENO-ENCRYPTOR ===\n")
        after = open_or_create(path, bob, product=SENO).metadata
        assert after.recipients[0].candidate == before.recipients[0].candidate
        assert after.recipients[1].candidate == before.recipients[1].candidate
        for identity in (alice, bob, carol):
            assert _read(path, identity) == PLAINTEXT

    def test_seal_new_plaintext(self, seno_envelope, alice, carol):
        path = seno_envelope(PLAINTEXT, (alice, "alice"), (carol, None))
        seal_from(path, carol, io.BytesIO(b"rotated\n"), product=SENO)
        assert _read(path, alice) == b"rotated\n"
