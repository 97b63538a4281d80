"""
OT Package

This package implements the cryptographic building blocks of the two-party
match protocol.

Modules:
- commutative_cipher: Pohlig-Hellman cipher whose key layers commute
- commitment: SHA3-256 hash commitments
- oblivious_transfer: 1-out-of-2 oblivious transfer of tagged secrets

Usage:
    from OT import OTSender, OTChooser, SecretCategory

    sender = OTSender()
    sender.prepare(own_mask=1, own_love=True)
    chooser = OTChooser(SecretCategory.LOVE)

    request = chooser.select(sender.encrypt_secrets())
    secret = chooser.finalize(sender.blind_decrypt(request))
"""

from .commutative_cipher import (
    CipherGroup,
    CommutativeCipher,
    DEFAULT_GROUP,
    RFC3526_2048_PRIME,
)

from .commitment import DIGEST_SIZE, digest, verify

from .oblivious_transfer import (
    EncryptedPair,
    OTChooser,
    OTIntegrityError,
    OTSender,
    Secret,
    SecretCategory,
    SecretPair,
    VALID_SECRETS,
)

__all__ = [
    "CipherGroup",
    "CommutativeCipher",
    "DEFAULT_GROUP",
    "RFC3526_2048_PRIME",
    "DIGEST_SIZE",
    "digest",
    "verify",
    "EncryptedPair",
    "OTChooser",
    "OTIntegrityError",
    "OTSender",
    "Secret",
    "SecretCategory",
    "SecretPair",
    "VALID_SECRETS",
]
