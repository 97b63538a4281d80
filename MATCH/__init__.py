"""
MATCH Protocol Package

This package implements the two-party match protocol: each party privately
picks Friendship or Love, and both learn only whether they both picked Love.

Modules:
- match_types: Choice, roles and session states
- params: Protocol parameters
- messages: Typed, validated wire messages
- channel: Message channel with validation at the boundary
- fair_reveal: Trusted service that opens commitments simultaneously
- mask_commitment: Mask generation, commitment and reveal
- reconciliation: Output recovery and the Friendship floor
- match_protocol: Host and joiner sessions and a local runner

Usage:
    from MATCH import Choice, MatchProtocol

    protocol = MatchProtocol()
    host_outcome, joiner_outcome = await protocol.execute(Choice.LOVE, Choice.LOVE)
"""

from .match_types import Choice, HostState, JoinerState, Role

from .errors import (
    CommitmentBindingError,
    MatchProtocolError,
    MessageSchemaError,
    ProtocolStateError,
    UnexpectedMessageError,
)

from .params import MatchParams

from .messages import (
    DecryptRequest,
    DecryptResult,
    EncryptedSecrets,
    MaskCommitment,
    MaskedOutput,
    decode_message,
    encode_message,
)

from .channel import Channel

from .fair_reveal import ResolvedPreimages, TrustedHashRevealer, TrustedRevealService

from .mask_commitment import MaskCommitmentExchange

from .match_protocol import (
    HostSession,
    JoinerSession,
    MatchProtocol,
    run_host_protocol,
    run_joiner_protocol,
)

__all__ = [
    "Choice",
    "HostState",
    "JoinerState",
    "Role",
    "CommitmentBindingError",
    "MatchProtocolError",
    "MessageSchemaError",
    "ProtocolStateError",
    "UnexpectedMessageError",
    "MatchParams",
    "DecryptRequest",
    "DecryptResult",
    "EncryptedSecrets",
    "MaskCommitment",
    "MaskedOutput",
    "decode_message",
    "encode_message",
    "Channel",
    "ResolvedPreimages",
    "TrustedHashRevealer",
    "TrustedRevealService",
    "MaskCommitmentExchange",
    "HostSession",
    "JoinerSession",
    "MatchProtocol",
    "run_host_protocol",
    "run_joiner_protocol",
]
