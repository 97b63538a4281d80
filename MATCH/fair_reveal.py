"""
Fair Reveal Module

A trusted coordinator that swaps committed secrets only once every party has
deposited its own. Without it, the party that receives the other's mask first
could abort before giving up its own (selective failure).

Usage:
    service = TrustedRevealService()
    revealer = service.create_revealer(own_raw_mask)
    revealer.add(peer_commitment)
    resolved = await revealer.resolve()
    peer_raw_mask = resolved.get_preimage(peer_commitment)

The service indexes deposits by their commitment. It does not vouch for the
binding of what it returns; callers check every preimage against the
commitment they were given earlier.
"""

import asyncio
import logging
from typing import Dict, List

from OT import digest

logger = logging.getLogger(__name__)


class ResolvedPreimages:
    """Map from commitment to the preimage the service resolved for it."""

    def __init__(self, preimages: Dict[bytes, bytes]):
        self._preimages = dict(preimages)

    def get_preimage(self, commitment: bytes) -> bytes:
        """
        Look up the preimage of a commitment.

        Raises:
            KeyError: If no party deposited a preimage for the commitment
        """
        return self._preimages[bytes(commitment)]

    def __contains__(self, commitment: bytes) -> bool:
        return bytes(commitment) in self._preimages

    def __len__(self) -> int:
        return len(self._preimages)


class TrustedHashRevealer:
    """One party's handle on the reveal service."""

    def __init__(self, service: "TrustedRevealService", revealer_id: int):
        self._service = service
        self._revealer_id = revealer_id
        self.commitments: List[bytes] = []

    def add(self, commitment: bytes) -> None:
        """Register a commitment whose preimage this party wants."""
        self.commitments.append(bytes(commitment))
        self._service._mark_added(self._revealer_id)

    async def resolve(self) -> ResolvedPreimages:
        """
        Wait until every party has deposited and registered, then resolve.

        Returns:
            ResolvedPreimages for the commitments this party added
        """
        if not self.commitments:
            raise RuntimeError("Must call add() before resolve()")
        return await self._service._resolve(self.commitments)


class TrustedRevealService:
    """
    In-process trusted coordinator for a fixed number of parties.

    Nothing resolves until all parties have deposited a preimage and
    registered the commitments they want opened.
    """

    def __init__(self, participants: int = 2):
        if participants < 2:
            raise ValueError("A reveal needs at least 2 participants")
        self.participants = participants
        self._preimages: Dict[bytes, bytes] = {}
        self._added: set = set()
        self._next_id = 0
        self._ready = asyncio.Event()

    def create_revealer(self, preimage: bytes) -> TrustedHashRevealer:
        """
        Deposit a party's raw secret and hand back its revealer.

        Args:
            preimage: The raw bytes behind the party's commitment

        Raises:
            RuntimeError: If every participant has already deposited
        """
        if self._next_id >= self.participants:
            raise RuntimeError("All participants have already deposited")

        self._preimages[digest(preimage)] = bytes(preimage)
        revealer = TrustedHashRevealer(self, self._next_id)
        self._next_id += 1
        logger.debug("Reveal service received deposit %d/%d", self._next_id, self.participants)
        self._check_ready()
        return revealer

    def _mark_added(self, revealer_id: int):
        self._added.add(revealer_id)
        self._check_ready()

    def _check_ready(self):
        if self._next_id == self.participants and len(self._added) == self.participants:
            self._ready.set()

    async def _resolve(self, commitments: List[bytes]) -> ResolvedPreimages:
        await self._ready.wait()
        return ResolvedPreimages(
            {c: self._lookup(c) for c in commitments if c in self._preimages}
        )

    def _lookup(self, commitment: bytes) -> bytes:
        return self._preimages[commitment]
