"""
Hash Commitment Module

A commitment is the SHA3-256 digest of the committed bytes. Publishing the
digest binds the committer to the bytes (finding another preimage means
breaking the hash) while hiding them, as long as the bytes carry enough
randomness.

The hashing goes through the cryptography library so that the primitive can
be swapped for another digest algorithm in one place.
"""

import hmac

from cryptography.hazmat.primitives import hashes

DIGEST_ALGORITHM = hashes.SHA3_256
DIGEST_SIZE = DIGEST_ALGORITHM.digest_size


def digest(data: bytes) -> bytes:
    """
    Compute the commitment to a byte string.

    Args:
        data: The bytes to commit to

    Returns:
        bytes: A DIGEST_SIZE-byte digest
    """
    hasher = hashes.Hash(DIGEST_ALGORITHM())
    hasher.update(bytes(data))
    return hasher.finalize()


def verify(data: bytes, commitment: bytes) -> bool:
    """Check that data opens commitment (constant-time comparison)."""
    return hmac.compare_digest(digest(data), bytes(commitment))
