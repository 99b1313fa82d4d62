"""Tests for coffer.identity.keys - keypairs, profiles, signatures, ECDH."""

from __future__ import annotations

import json

import pytest

from coffer.core.exceptions import FormatError
from coffer.identity.keys import (
    POINT_SIZE,
    SCALAR_SIZE,
    Identity,
    Profile,
    RecipientCandidate,
    b64,
    b64decode,
    compact_json,
    derive_shared_secret,
    generate,
    load_point,
    profile_payload,
    verify,
    verify_profile,
)

# ============================================================================
# Helpers
# ============================================================================


class TestEncodingHelpers:
    def test_compact_json_keeps_insertion_order(self):
        assert compact_json({"b": 1, "a": [1, 2]}) == b'{"b":1,"a":[1,2]}'

    def test_compact_json_keeps_unicode(self):
        assert compact_json({"n": "é"}) == '{"n":"é"}'.encode()

    def test_b64decode_rejects_garbage(self):
        with pytest.raises(FormatError, match="identity key"):
            b64decode("not base64!!", "identity key")

    def test_b64_roundtrip(self):
        assert b64decode(b64(b"\x00\xff")) == b"\x00\xff"


class TestLoadPoint:
    def test_rejects_wrong_length(self, alice):
        with pytest.raises(FormatError):
            load_point(alice.public_point[:-1])

    def test_rejects_compressed_prefix(self, alice):
        with pytest.raises(FormatError):
            load_point(b"\x02" + alice.public_point[1:])

    def test_rejects_point_off_curve(self):
        with pytest.raises(FormatError):
            load_point(b"\x04" + b"\x01" * (POINT_SIZE - 1))

    def test_verify_with_bad_point_is_false(self):
        assert verify(b"\x04" + b"\x00" * 64, b"data", b"sig") is False


# ============================================================================
# Identity
# ============================================================================


class TestGenerate:
    def test_generated_identity_verifies(self, alice):
        assert alice.verify()
        assert len(alice.public_point) == POINT_SIZE
        assert alice.public_point[0] == 0x04
        assert len(alice.private_scalar) == SCALAR_SIZE

    def test_fresh_keys_each_time(self):
        profile = Profile(email="x@example.com")
        assert generate(profile).public_point != generate(profile).public_point

    def test_from_private_scalar_restores_key(self, alice):
        restored = Identity.from_private_scalar(alice.private_scalar, alice.profile, alice.signature)
        assert restored.public_point == alice.public_point
        assert restored.verify()

    def test_from_private_scalar_wrong_size(self, alice):
        with pytest.raises(FormatError):
            Identity.from_private_scalar(b"\x01" * 31, alice.profile, alice.signature)

    def test_from_private_scalar_zero(self, alice):
        with pytest.raises(FormatError):
            Identity.from_private_scalar(b"\x00" * SCALAR_SIZE, alice.profile, alice.signature)

    def test_sign_and_verify(self, alice):
        sig = alice.sign(b"payload")
        assert verify(alice.public_point, b"payload", sig)
        assert not verify(alice.public_point, b"payload2", sig)


class TestProfileSignature:
    def test_payload_fields(self, alice):
        payload = json.loads(profile_payload(alice.public_point, alice.profile))
        assert payload == {"user": "alice", "email": "alice@example.com", "pub": b64(alice.public_point)}

    def test_payload_without_handle(self, carol):
        payload = json.loads(profile_payload(carol.public_point, carol.profile))
        assert "user" not in payload

    def test_payload_bytes_match_stringify_order(self, alice, carol):
        alice_pub = b64(alice.public_point)
        carol_pub = b64(carol.public_point)
        expected = '{"user":"alice","email":"alice@example.com","pub":"%s"}' % alice_pub
        assert profile_payload(alice.public_point, alice.profile) == expected.encode()
        expected = '{"email":"carol@example.com","pub":"%s"}' % carol_pub
        assert profile_payload(carol.public_point, carol.profile) == expected.encode()

    def test_changed_email_fails(self, alice):
        forged = Profile(email="mallory@example.com", handle="alice")
        assert not verify_profile(alice.public_point, forged, alice.signature)

    def test_changed_handle_fails(self, alice):
        forged = Profile(email="alice@example.com", handle="mallory")
        assert not verify_profile(alice.public_point, forged, alice.signature)

    def test_signature_bound_to_key(self, alice, bob):
        assert not verify_profile(bob.public_point, alice.profile, alice.signature)

    def test_display(self, alice, carol):
        assert alice.profile.display() == "alice <alice@example.com>"
        assert carol.profile.display() == "carol@example.com"


# ============================================================================
# Recipient candidates
# ============================================================================


class TestRecipientCandidate:
    def test_candidate_verifies(self, alice):
        candidate = alice.candidate()
        assert candidate.verify()
        assert candidate.public_key_b64 == b64(alice.public_point)

    def test_invite_roundtrip(self, alice):
        data = alice.candidate().to_dict()
        assert list(data) == ["user", "email", "pub", "sig"]
        parsed = RecipientCandidate.from_dict(json.loads(json.dumps(data)))
        assert parsed == alice.candidate()
        assert parsed.verify()

    def test_seno_encryptor_invite_with_user_field(self, dave):
        pub = b64(dave.public_point)
        signed = '{"user":"dee","email":"dee@example.com","pub":"%s"}' % pub
        invite = json.loads(
            '{"user": "dee", "email": "dee@example.com", "pub": "%s", "sig": "%s"}'
            % (pub, b64(dave.sign(signed.encode())))
        )
        candidate = RecipientCandidate.from_dict(invite)
        assert candidate.profile == Profile(email="dee@example.com", handle="dee")
        assert candidate.verify()

    def test_seno_encryptor_invite_without_user(self, dave):
        pub = b64(dave.public_point)
        signed = '{"email":"dee@example.com","pub":"%s"}' % pub
        invite = {"email": "dee@example.com", "pub": pub, "sig": b64(dave.sign(signed.encode()))}
        assert RecipientCandidate.from_dict(invite).verify()

    def test_from_dict_missing_field(self, alice):
        data = alice.candidate().to_dict()
        del data["sig"]
        with pytest.raises(FormatError, match="sig"):
            RecipientCandidate.from_dict(data)

    def test_from_dict_not_a_mapping(self):
        with pytest.raises(FormatError):
            RecipientCandidate.from_dict(["pub", "email"])

    def test_from_dict_bad_handle_type(self, alice):
        data = alice.candidate().to_dict()
        data["user"] = 42
        with pytest.raises(FormatError):
            RecipientCandidate.from_dict(data)

    def test_from_dict_does_not_verify(self, alice):
        """Parsing is structural; a tampered invite parses but fails verify()."""
        data = alice.candidate().to_dict()
        data["email"] = "mallory@example.com"
        candidate = RecipientCandidate.from_dict(data)
        assert not candidate.verify()


# ============================================================================
# ECDH
# ============================================================================


class TestSharedSecret:
    def test_symmetric(self, alice, bob):
        assert alice.shared_secret(bob.public_point) == bob.shared_secret(alice.public_point)
        assert len(alice.shared_secret(bob.public_point)) == 32

    def test_distinct_pairs_distinct_secrets(self, alice, bob, carol):
        assert alice.shared_secret(bob.public_point) != alice.shared_secret(carol.public_point)

    def test_invalid_point(self, alice):
        with pytest.raises(FormatError):
            derive_shared_secret(alice.private_key, b"\x04" + b"\x00" * 64)
