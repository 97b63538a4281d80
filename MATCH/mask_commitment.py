"""
Mask Commitment Module

Each party hides its share of the output behind a random mask bit. The mask
is drawn as a string of random bytes; the bit is the low bit of the first
byte and the whole string is what gets committed. The protocol runs in two
phases:

1. Commit: both parties exchange commitments before anything else happens.
2. Reveal: at the end, the fair reveal service opens both masks at once and
   every opened mask is checked against the commitment received in phase 1.
"""

import logging
import secrets
from typing import Optional, Tuple

from OT import digest, verify

from .channel import Channel
from .errors import CommitmentBindingError
from .fair_reveal import TrustedRevealService
from .messages import MaskCommitment
from .params import MatchParams

logger = logging.getLogger(__name__)


def mask_bit(mask_bytes: bytes) -> int:
    """Extract the mask bit from the raw mask bytes."""
    return mask_bytes[0] & 1


class MaskCommitmentExchange:
    """
    Generates, commits to, and finally reveals one party's mask.
    One instance per party per run; the mask is never regenerated.
    """

    def __init__(
        self,
        channel: Channel,
        reveal_service: TrustedRevealService,
        params: Optional[MatchParams] = None,
    ):
        self.channel = channel
        self.reveal_service = reveal_service
        self.params = params or MatchParams()
        self.mask_bytes: Optional[bytes] = None
        self.commitment: Optional[bytes] = None
        self.peer_commitment: Optional[bytes] = None

    def commit(self) -> Tuple[int, bytes]:
        """
        Draw a fresh mask and commit to it.

        Returns:
            tuple: (mask_bit, commitment)
        """
        if self.commitment is not None:
            raise RuntimeError("Mask has already been committed")

        self.mask_bytes = secrets.token_bytes(self.params.mask_size)
        self.commitment = digest(self.mask_bytes)
        return mask_bit(self.mask_bytes), self.commitment

    async def exchange_commitments(self, local: bytes) -> bytes:
        """
        Send our commitment and wait for the peer's.

        Args:
            local: Our commitment, as returned by commit()

        Returns:
            bytes: The peer's commitment

        Raises:
            CommitmentBindingError: If the peer echoes our own commitment
        """
        if self.peer_commitment is not None:
            raise RuntimeError("Commitments have already been exchanged")

        self.channel.send(MaskCommitment.create(self.channel.role, local))
        message = await self.channel.recv(MaskCommitment)
        if message.commitment == bytes(local):
            raise CommitmentBindingError("Peer sent back our own commitment")
        self.peer_commitment = message.commitment
        logger.debug("[%s] Commitments exchanged", self.channel.role.value)
        return self.peer_commitment

    async def reveal(self, local_mask_bytes: bytes, peer_commitment: bytes) -> int:
        """
        Open both masks through the fair reveal service.

        Args:
            local_mask_bytes: Our raw mask bytes
            peer_commitment: The commitment the peer sent earlier

        Returns:
            int: The peer's mask bit

        Raises:
            CommitmentBindingError: If the resolved preimage is missing, has
                the wrong size or does not hash to peer_commitment
        """
        revealer = self.reveal_service.create_revealer(local_mask_bytes)
        revealer.add(peer_commitment)
        resolved = await revealer.resolve()

        try:
            preimage = resolved.get_preimage(peer_commitment)
        except KeyError:
            raise CommitmentBindingError("No preimage was resolved for the peer commitment")

        if len(preimage) != self.params.mask_size:
            raise CommitmentBindingError(
                f"Peer mask has {len(preimage)} bytes, expected {self.params.mask_size}"
            )
        if not verify(preimage, peer_commitment):
            raise CommitmentBindingError("Peer mask does not match its commitment")

        logger.debug("[%s] Peer mask revealed and verified", self.channel.role.value)
        return mask_bit(preimage)
