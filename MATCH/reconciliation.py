"""
Outcome Reconciliation Module

Turns the transferred secret and both revealed masks into the final outcome.

The joiner only ever sees its secret's payload, which is the host's answer
XOR the host's mask. It adds its own mask before sending it on:

    masked_output = payload ^ joiner_mask

Once both masks are revealed, either side removes them:

    raw = masked_output ^ host_mask ^ joiner_mask

which leaves 0 if the joiner picked Friendship, or the host's Love bit if the
joiner picked Love.

A party that chose Friendship knows the answer must be Friendship. If the
arithmetic says Love, the peer deviated (opened the Love branch while
reporting Friendship, or tampered with a message). The result is forced back
to Friendship and the event stays local: telling the peer would tell it what
we chose. Forcing can only suppress a Love result, never create one, so a
cheater gains nothing it could not already show on its own screen.
"""

import logging

from OT import Secret

from .match_types import Choice, Role

logger = logging.getLogger(__name__)


def masked_output(secret: int, own_mask: int) -> int:
    """
    Joiner side: hide the secret's payload under the joiner's own mask.

    Args:
        secret: The secret recovered from the oblivious transfer
        own_mask: The joiner's (still unrevealed) mask bit

    Returns:
        int: The bit to send to the host
    """
    return Secret.payload_of(secret) ^ own_mask


def reconcile(masked: int, own_mask: int, peer_mask: int) -> int:
    """Remove both masks from the masked output."""
    total_mask = (own_mask ^ peer_mask) & 1
    return (masked ^ total_mask) & 1


def enforce_friendship_floor(raw: int, own_choice: Choice, role: Role) -> int:
    """
    Force a Friendship result when our own choice rules out Love.

    Both values are computed whatever the inputs; only the local log line
    depends on whether a correction happened.

    Args:
        raw: The reconciled output bit
        own_choice: This party's private choice
        role: This party's role (for the log line only)

    Returns:
        int: The corrected output bit
    """
    friendship = int(own_choice == Choice.FRIENDSHIP)
    forced = friendship & raw
    corrected = raw & (forced ^ 1)

    if forced:
        logger.warning(
            "[%s] Peer did not follow the protocol. Possibly malicious. "
            "Refusing to acknowledge love result.",
            role.value,
        )
    return corrected


def outcome_of(raw: int) -> Choice:
    """Map the final bit to the outcome vocabulary."""
    return Choice.LOVE if raw else Choice.FRIENDSHIP
