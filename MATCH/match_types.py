"""
Match Types Module

Enumerations shared by the match protocol: each party's private choice,
the role it plays, and the states each role moves through.
"""

from enum import Enum

from OT import SecretCategory


class Choice(Enum):
    """A party's private input, and the vocabulary of the final outcome."""

    FRIENDSHIP = "friendship"
    LOVE = "love"

    @property
    def category(self) -> SecretCategory:
        """The oblivious transfer category this choice selects."""
        if self == Choice.LOVE:
            return SecretCategory.LOVE
        return SecretCategory.FRIENDSHIP


class Role(Enum):
    """Fixed roles: the host sends secrets, the joiner chooses one."""

    HOST = "host"
    JOINER = "joiner"

    @property
    def peer(self) -> "Role":
        return Role.JOINER if self == Role.HOST else Role.HOST


class HostState(Enum):
    """States of the host (sender) session, in order."""

    INIT = "init"
    COMMITMENTS_EXCHANGED = "commitments_exchanged"
    SECRETS_SENT = "secrets_sent"
    AWAITING_DECRYPT_REQUEST = "awaiting_decrypt_request"
    DECRYPT_RESULT_SENT = "decrypt_result_sent"
    AWAITING_MASKED_OUTPUT = "awaiting_masked_output"
    AWAITING_REVEAL = "awaiting_reveal"
    RESOLVED = "resolved"
    ABORTED = "aborted"


class JoinerState(Enum):
    """States of the joiner (chooser) session, in order."""

    INIT = "init"
    COMMITMENTS_EXCHANGED = "commitments_exchanged"
    AWAITING_SECRET_PAIR = "awaiting_secret_pair"
    DECRYPT_REQUEST_SENT = "decrypt_request_sent"
    AWAITING_DECRYPT_RESULT = "awaiting_decrypt_result"
    MASKED_OUTPUT_SENT = "masked_output_sent"
    AWAITING_REVEAL = "awaiting_reveal"
    RESOLVED = "resolved"
    ABORTED = "aborted"
