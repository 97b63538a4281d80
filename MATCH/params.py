"""
Parameters for the match protocol.

Key parameters:
- mask_size: Bytes of randomness behind each mask bit. The mask bit is the
  low bit of the first byte; the remaining bytes keep the commitment hiding.
- participants: Number of parties the fair reveal waits for (always 2)
- group: Group used by the commutative cipher
"""

from dataclasses import dataclass

from OT import CipherGroup, DEFAULT_GROUP


@dataclass
class MatchParams:
    """Parameters for one run of the match protocol."""

    mask_size: int = 16  # Bytes of randomness per mask
    participants: int = 2  # Parties taking part in the fair reveal
    group: CipherGroup = DEFAULT_GROUP

    def __post_init__(self):
        if self.mask_size < 1:
            raise ValueError("mask_size must be at least 1")
        if self.participants != 2:
            raise ValueError("The match protocol supports exactly 2 participants")
        if not isinstance(self.group, CipherGroup):
            raise ValueError("group must be a CipherGroup")

    def __repr__(self) -> str:
        return (
            f"MatchParams(mask_size={self.mask_size}, "
            f"participants={self.participants}, "
            f"group_bits={self.group.prime.bit_length()})"
        )
