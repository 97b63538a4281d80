"""
Errors raised by the match protocol.

Every MatchProtocolError is fatal for the session: the session moves to
ABORTED and nothing is retried. MessageSchemaError is the exception: the
channel logs and drops frames that fail validation.
"""


class MatchProtocolError(RuntimeError):
    """Base class for errors that abort a session."""


class UnexpectedMessageError(MatchProtocolError):
    """A well-formed message arrived out of order or twice."""


class ProtocolStateError(MatchProtocolError):
    """A session was driven through an illegal transition or reused."""


class CommitmentBindingError(MatchProtocolError):
    """A revealed preimage does not hash to the commitment made earlier."""


class MessageSchemaError(ValueError):
    """A frame is not a valid protocol message."""
