"""
Tests for the commutative cipher and hash commitments.
"""

import pytest

from OT import (
    CipherGroup,
    CommutativeCipher,
    DEFAULT_GROUP,
    DIGEST_SIZE,
    VALID_SECRETS,
    digest,
    verify,
)

# 2039 = 2 * 1019 + 1, both prime
SMALL_GROUP = CipherGroup(prime=2039)


class TestCipherGroup:
    """Test subgroup membership and encoding."""

    def test_default_group_order(self):
        assert DEFAULT_GROUP.prime.bit_length() == 2048
        assert DEFAULT_GROUP.order * 2 + 1 == DEFAULT_GROUP.prime

    def test_contains_rejects_edges(self):
        p = DEFAULT_GROUP.prime
        for value in (0, 1, p, p + 4):
            assert not DEFAULT_GROUP.contains(value)

    def test_minus_one_is_not_a_residue(self):
        # p = 3 (mod 4) for the RFC 3526 prime
        assert not DEFAULT_GROUP.contains(DEFAULT_GROUP.prime - 1)

    def test_encoded_values_are_members(self):
        for value in VALID_SECRETS:
            assert DEFAULT_GROUP.contains(DEFAULT_GROUP.encode(value))

    def test_decode_inverts_encode(self):
        for value in VALID_SECRETS:
            encoded = DEFAULT_GROUP.encode(value)
            assert DEFAULT_GROUP.decode(encoded, VALID_SECRETS) == value

    def test_decode_rejects_unknown_element(self):
        with pytest.raises(ValueError):
            DEFAULT_GROUP.decode(DEFAULT_GROUP.encode(7), VALID_SECRETS)

    def test_encode_rejects_small_values(self):
        with pytest.raises(ValueError):
            DEFAULT_GROUP.encode(1)


class TestCommutativeCipher:
    """Test key layers commute and invert."""

    def test_decrypt_inverts_encrypt(self):
        cipher = CommutativeCipher.random()
        element = DEFAULT_GROUP.encode(3)
        ciphertext = cipher.encrypt(element)
        assert ciphertext != element
        assert cipher.decrypt(ciphertext) == element

    def test_layers_commute(self):
        alice = CommutativeCipher.random()
        bob = CommutativeCipher.random()
        element = DEFAULT_GROUP.encode(5)

        ab = bob.encrypt(alice.encrypt(element))
        ba = alice.encrypt(bob.encrypt(element))
        assert ab == ba

        # Remove layers in the opposite order they were applied
        assert bob.decrypt(alice.decrypt(ab)) == element
        assert alice.decrypt(bob.decrypt(ab)) == element

    def test_small_group(self):
        alice = CommutativeCipher.random(SMALL_GROUP)
        bob = CommutativeCipher.random(SMALL_GROUP)
        for value in VALID_SECRETS:
            element = SMALL_GROUP.encode(value)
            layered = bob.encrypt(alice.encrypt(element))
            assert SMALL_GROUP.decode(alice.decrypt(bob.decrypt(layered)), VALID_SECRETS) == value

    def test_rejects_non_members(self):
        cipher = CommutativeCipher.random()
        with pytest.raises(ValueError):
            cipher.encrypt(1)
        with pytest.raises(ValueError):
            cipher.decrypt(DEFAULT_GROUP.prime - 1)

    def test_key_range(self):
        with pytest.raises(ValueError):
            CommutativeCipher(1)
        with pytest.raises(ValueError):
            CommutativeCipher(DEFAULT_GROUP.order)

    def test_repr_hides_keys(self):
        cipher = CommutativeCipher(12345)
        assert "12345" not in repr(cipher)


class TestCommitment:
    """Test SHA3-256 commitments."""

    def test_known_vectors(self):
        assert digest(b"").hex() == (
            "a7ffc6f8bf1ed76651c14756a061d662f580ff4de43b49fa82d80a4b80f8434a"
        )
        assert digest(b"abc").hex() == (
            "3a985da74fe225b2045c172d6bd390bd855f086e3e9d525b46bfe24511431532"
        )

    def test_size(self):
        assert DIGEST_SIZE == 32
        assert len(digest(b"mask")) == DIGEST_SIZE

    def test_verify(self):
        data = bytes(range(16))
        commitment = digest(data)
        assert verify(data, commitment)

        tampered = bytearray(data)
        tampered[3] ^= 0x01
        assert not verify(bytes(tampered), commitment)
