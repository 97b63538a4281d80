"""
Commutative Encryption Module

This module provides the commutative cipher used by the two-message oblivious
transfer. It is a Pohlig-Hellman (SRA) exponentiation cipher working in the
subgroup of quadratic residues modulo a safe prime p = 2q + 1:

    encrypt(m) = m^e mod p
    decrypt(c) = c^d mod p      where e * d = 1 (mod q)

Because exponents multiply, keys can be applied and removed in any order:

    decrypt_A(decrypt_B(encrypt_A(encrypt_B(m)))) == m

Small integers are squared before encryption so that every value lives in the
prime-order subgroup. Without that step the Legendre symbol of a ciphertext
would reveal whether the plaintext was a residue.
"""

import secrets
from dataclasses import dataclass
from typing import Iterable

# RFC 3526 group 14: 2048-bit MODP safe prime
RFC3526_2048_PRIME = int(
    "FFFFFFFFFFFFFFFFC90FDAA22168C234C4C6628B80DC1CD1"
    "29024E088A67CC74020BBEA63B139B22514A08798E3404DD"
    "EF9519B3CD3A431B302B0A6DF25F14374FE1356D6D51C245"
    "E485B576625E7EC6F44C42E9A637ED6B0BFF5CB6F406B7ED"
    "EE386BFB5A899FA5AE9F24117C4B1FE649286651ECE45B3D"
    "C2007CB8A163BF0598DA48361C55D39A69163FA8FD24CF5F"
    "83655D23DCA3AD961C62F356208552BB9ED529077096966D"
    "670C354E4ABC9804F1746C08CA18217C32905E462E36CE3B"
    "E39E772C180E86039B2783A2EC07A28FB5C55DF06F4C52C9"
    "DE2BCBF6955817183995497CEA956AE515D2261898FA0510"
    "15728E5A8AACAA68FFFFFFFFFFFFFFFF",
    16,
)


@dataclass(frozen=True)
class CipherGroup:
    """
    The quadratic-residue subgroup of Z_p* for a safe prime p.

    The subgroup has prime order q = (p - 1) / 2, so every exponent in
    [1, q - 1] is invertible and every non-identity element generates it.
    """

    prime: int = RFC3526_2048_PRIME

    @property
    def order(self) -> int:
        """Order q of the subgroup."""
        return (self.prime - 1) // 2

    def contains(self, element: int) -> bool:
        """Check that element is a non-identity member of the subgroup."""
        if not 1 < element < self.prime:
            return False
        return pow(element, self.order, self.prime) == 1

    def encode(self, value: int) -> int:
        """
        Map a small positive integer into the subgroup by squaring it.

        Args:
            value: Integer in [2, sqrt(p))

        Returns:
            The group element value^2 mod p
        """
        if value < 2 or value * value >= self.prime:
            raise ValueError(f"Value {value} cannot be encoded in this group")
        return value * value % self.prime

    def decode(self, element: int, allowed: Iterable[int]) -> int:
        """
        Map a group element back to the small integer it encodes.

        Squaring is not injective on arbitrary integers, so decoding is a
        lookup among the values the caller is prepared to accept.

        Raises:
            ValueError: If element encodes none of the allowed values
        """
        for value in allowed:
            if self.encode(value) == element:
                return value
        raise ValueError("Group element does not encode an allowed value")


DEFAULT_GROUP = CipherGroup()


class CommutativeCipher:
    """
    One party's keypair for the commutative cipher.

    The encryption exponent and its inverse are private to the party that
    generated them; only ciphertexts ever leave the object.
    """

    def __init__(self, encryption_key: int, group: CipherGroup = DEFAULT_GROUP):
        """
        Initialize the cipher from an encryption exponent.

        Args:
            encryption_key: Exponent in [2, q - 1]
            group: Group to work in (defaults to the RFC 3526 2048-bit group)
        """
        if not 2 <= encryption_key < group.order:
            raise ValueError("Encryption key out of range")
        self.group = group
        self._encryption_key = encryption_key
        self._decryption_key = pow(encryption_key, -1, group.order)

    @classmethod
    def random(cls, group: CipherGroup = DEFAULT_GROUP) -> "CommutativeCipher":
        """Generate a fresh random keypair."""
        encryption_key = 2 + secrets.randbelow(group.order - 2)
        return cls(encryption_key, group)

    def encrypt(self, element: int) -> int:
        """
        Add this party's key layer to a group element.

        Raises:
            ValueError: If element is not in the group
        """
        self._check(element)
        return pow(element, self._encryption_key, self.group.prime)

    def decrypt(self, element: int) -> int:
        """
        Remove this party's key layer from a group element.

        Works whether or not other parties' layers are still applied,
        which is the property the oblivious transfer relies on.

        Raises:
            ValueError: If element is not in the group
        """
        self._check(element)
        return pow(element, self._decryption_key, self.group.prime)

    def _check(self, element: int):
        if not self.group.contains(element):
            raise ValueError("Value is not an element of the cipher group")

    def __repr__(self) -> str:
        return f"CommutativeCipher(group_bits={self.group.prime.bit_length()})"
