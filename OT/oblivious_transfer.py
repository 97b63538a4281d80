"""
Oblivious Secret Transfer based on commutative encryption

This module implements a 1-out-of-2 oblivious transfer that needs only two
messages after the sender's offer, using the commutative cipher from our
separate module.

Roles are fixed for a run:
1. OTSender holds two tagged secrets, one for each category the chooser might
   pick (Friendship or Love).
2. OTChooser holds a selection and wants exactly the secret of that category.

Flow:
    sender.prepare(mask, love)          -> SecretPair (plain, stays local)
    sender.encrypt_secrets()            -> EncryptedPair      (to chooser)
    chooser.select(encrypted_pair)      -> decrypt request    (to sender)
    sender.blind_decrypt(request)       -> decrypt result     (to chooser)
    chooser.finalize(result)            -> selected secret

The chooser re-encrypts the ciphertext it picked under its own key, so the
sender only ever sees a fresh-looking group element. The sender strips its own
layer without being able to read what is underneath, and the chooser strips
the last layer to read the one secret it selected.

Secrets are small integers: a category tag in bits 1-2 and a one-bit payload
in bit 0, so valid secrets are exactly 2, 3 (Friendship) and 4, 5 (Love).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .commutative_cipher import CommutativeCipher

logger = logging.getLogger(__name__)


class OTIntegrityError(RuntimeError):
    """Raised when a transferred value is malformed or of the wrong category."""


class SecretCategory(Enum):
    """Category tags; disjoint from the payload bit."""

    FRIENDSHIP = 0b10
    LOVE = 0b100


VALID_SECRETS = (2, 3, 4, 5)


class Secret:
    """
    Encoding helpers for tagged secrets.
    Secrets travel as plain ints; this class only groups the bit twiddling.
    """

    @staticmethod
    def encode(category: SecretCategory, payload: int) -> int:
        """Combine a category tag and a payload bit into a secret."""
        if payload not in (0, 1):
            raise ValueError("Payload must be a single bit")
        return category.value | payload

    @staticmethod
    def category_of(secret: int) -> SecretCategory:
        """
        Return the category a secret is tagged with.

        Raises:
            ValueError: If secret is not one of VALID_SECRETS
        """
        if secret not in VALID_SECRETS:
            raise ValueError(f"Not a valid secret: {secret}")
        return SecretCategory(secret & ~1)

    @staticmethod
    def payload_of(secret: int) -> int:
        """Return the payload bit of a secret."""
        return secret & 1


@dataclass(frozen=True)
class SecretPair:
    """The sender's two plain secrets."""

    friendship: int
    love: int

    def for_category(self, category: SecretCategory) -> int:
        if category == SecretCategory.LOVE:
            return self.love
        return self.friendship


@dataclass(frozen=True)
class EncryptedPair:
    """Both secrets as group elements under the sender's key."""

    friendship: int
    love: int

    def for_category(self, category: SecretCategory) -> int:
        if category == SecretCategory.LOVE:
            return self.love
        return self.friendship


class OTSender:
    """
    The Sender in the commutative-encryption oblivious transfer.

    The sender offers two secrets and lets the chooser open exactly one,
    without learning which one was opened.
    """

    def __init__(self, cipher: Optional[CommutativeCipher] = None):
        """
        Initialize the sender.

        Args:
            cipher: The sender's keypair. A fresh random one if omitted.
        """
        self.cipher = cipher or CommutativeCipher.random()
        self.secrets: Optional[SecretPair] = None
        self._answered = False

    def prepare(self, own_mask: int, own_love: bool) -> SecretPair:
        """
        Step 1: Build the two secrets, pre-masked with the sender's mask bit.

        The Friendship secret never depends on the sender's choice: if the
        chooser picks Friendship the answer is Friendship whatever the sender
        chose, so that branch must not carry the sender's choice at all.
        The Love secret carries the sender's real choice.

        Args:
            own_mask: The sender's mask bit
            own_love: Whether the sender chose Love

        Returns:
            SecretPair: The plain secrets (kept local)
        """
        if self.secrets is not None:
            raise RuntimeError("Secrets have already been prepared")
        if own_mask not in (0, 1):
            raise ValueError("Mask must be a single bit")

        self.secrets = SecretPair(
            # zero means friendship
            friendship=Secret.encode(SecretCategory.FRIENDSHIP, 0 ^ own_mask),
            # one means love
            love=Secret.encode(SecretCategory.LOVE, int(own_love) ^ own_mask),
        )
        return self.secrets

    def encrypt_secrets(self) -> EncryptedPair:
        """
        Step 2: Encrypt both secrets under the sender's key.

        Returns:
            EncryptedPair: The two ciphertexts to send to the chooser
        """
        if self.secrets is None:
            raise RuntimeError("Must call prepare() before encrypt_secrets()")

        group = self.cipher.group
        encrypted = EncryptedPair(
            friendship=self.cipher.encrypt(group.encode(self.secrets.friendship)),
            love=self.cipher.encrypt(group.encode(self.secrets.love)),
        )
        logger.debug("Sender encrypted both secrets")
        return encrypted

    def blind_decrypt(self, decrypt_request: int) -> int:
        """
        Step 4: Remove the sender's layer from the chooser's request.

        The value still carries the chooser's layer, so the sender cannot
        interpret the result. This is answered once per run: a second answer
        would let the chooser open both secrets.

        Args:
            decrypt_request: The chooser's re-encrypted ciphertext

        Returns:
            int: The value with only the chooser's layer left

        Raises:
            OTIntegrityError: If the request is not a group element
        """
        if self.secrets is None:
            raise RuntimeError("Must call prepare() before blind_decrypt()")
        if self._answered:
            raise RuntimeError("Decrypt request has already been answered")

        try:
            result = self.cipher.decrypt(decrypt_request)
        except ValueError as e:
            raise OTIntegrityError(f"Invalid decrypt request: {e}") from e

        self._answered = True
        logger.debug("Sender answered decrypt request")
        return result


class OTChooser:
    """
    The Chooser in the commutative-encryption oblivious transfer.

    The chooser has a secret selection and learns exactly the secret of that
    category without revealing which one it picked.
    """

    def __init__(
        self, selection: SecretCategory, cipher: Optional[CommutativeCipher] = None
    ):
        """
        Initialize the chooser with their secret selection.

        Args:
            selection: The category whose secret the chooser wants
            cipher: The chooser's keypair. A fresh random one if omitted.
        """
        if not isinstance(selection, SecretCategory):
            raise ValueError("Selection must be a SecretCategory")

        self.selection = selection
        self.cipher = cipher or CommutativeCipher.random()
        self._selected: Optional[int] = None
        self.secret: Optional[int] = None

    def select(self, encrypted: EncryptedPair) -> int:
        """
        Step 3: Pick the ciphertext for our selection and add our own layer.

        Args:
            encrypted: The sender's two ciphertexts

        Returns:
            int: The decrypt request to send back to the sender

        Raises:
            OTIntegrityError: If the offered ciphertexts are malformed
        """
        if self._selected is not None:
            raise RuntimeError("A ciphertext has already been selected")

        group = self.cipher.group
        if not (group.contains(encrypted.friendship) and group.contains(encrypted.love)):
            raise OTIntegrityError("Offered ciphertexts are not group elements")
        if encrypted.friendship == encrypted.love:
            raise OTIntegrityError("Offered ciphertexts are identical")

        self._selected = encrypted.for_category(self.selection)
        logger.debug("Chooser selected a ciphertext")
        return self.cipher.encrypt(self._selected)

    def finalize(self, decrypt_result: int) -> int:
        """
        Step 5: Remove our own layer and recover the selected secret.

        Args:
            decrypt_result: The sender's answer to our decrypt request

        Returns:
            int: The selected secret in the clear

        Raises:
            OTIntegrityError: If the result does not decode to a secret of
                the selected category
        """
        if self._selected is None:
            raise RuntimeError("Must call select() before finalize()")
        if self.secret is not None:
            raise RuntimeError("Transfer has already been finalized")

        try:
            element = self.cipher.decrypt(decrypt_result)
            secret = self.cipher.group.decode(element, VALID_SECRETS)
        except ValueError as e:
            raise OTIntegrityError(f"Decrypt result is not a secret: {e}") from e

        if Secret.category_of(secret) != self.selection:
            raise OTIntegrityError(
                f"Expected a {self.selection.name} secret, got tag {secret & ~1:#b}"
            )

        self.secret = secret
        return secret
