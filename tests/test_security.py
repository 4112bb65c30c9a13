"""Tests for credential hashing and user id derivation."""

import hashlib

from markhub.utils.clock import MonotonicClock
from markhub.utils.security import (
    create_session_token,
    decode_token,
    derive_user_id,
    hash_password,
    verify_password,
)


class TestDeriveUserId:
    def test_lowercases_and_prefixes(self):
        assert derive_user_id("Alice") == "user_alice"

    def test_replaces_non_alphanumerics(self):
        assert derive_user_id("john.doe@example") == "user_john_doe_example"

    def test_is_stable(self):
        assert derive_user_id("Bob99") == derive_user_id("Bob99")

    def test_distinct_names_can_collide(self):
        assert derive_user_id("a.b") == derive_user_id("a_b")
        assert derive_user_id("A-B") == derive_user_id("a b")


class TestPasswordHash:
    def test_unsalted_sha256_hex(self):
        assert hash_password("secret") == hashlib.sha256(b"secret").hexdigest()

    def test_same_password_same_digest(self):
        assert hash_password("pw12") == hash_password("pw12")

    def test_verify(self):
        digest = hash_password("pw12")
        assert verify_password("pw12", digest)
        assert not verify_password("pw13", digest)


class TestSessionToken:
    def test_round_trip_subject(self):
        token = create_session_token("user_alice")
        payload = decode_token(token)
        assert payload["sub"] == "user_alice"
        assert payload["type"] == "session"

    def test_garbage_token(self):
        assert decode_token("not-a-token") is None


class TestMonotonicClock:
    def test_never_goes_backwards(self):
        readings = iter([100, 200, 150, 300])
        clock = MonotonicClock(lambda: next(readings))
        assert [clock(), clock(), clock(), clock()] == [100, 200, 200, 300]
