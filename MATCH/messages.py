"""
Message types for the match protocol.

Every message is a JSON object tagged with the sending role ("from") and a
type discriminator ("type"):

| Message        | value                                   | Direction      |
|----------------|-----------------------------------------|----------------|
| maskCommitment | hex digest                              | both, once     |
| encryptedSecrets | {"friendship": int-str, "love": int-str} | host -> joiner |
| decryptRequest | int-str                                 | joiner -> host |
| decryptResult  | int-str                                 | host -> joiner |
| maskedOutput   | 0 or 1                                  | joiner -> host |

Group elements travel as decimal strings because they are far larger than
what JSON numbers carry safely.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, TypeAdapter, ValidationError

from OT import DIGEST_SIZE

from .errors import MessageSchemaError
from .match_types import Role

# 2048-bit group elements have at most 617 decimal digits
_ELEMENT_PATTERN = r"^[1-9][0-9]{0,699}$"
_DIGEST_PATTERN = rf"^[0-9a-f]{{{2 * DIGEST_SIZE}}}$"


class _Message(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    sender: Role = Field(alias="from")


class MaskCommitment(_Message):
    """Commitment to the sender's raw mask bytes."""

    type: Literal["maskCommitment"] = "maskCommitment"
    value: str = Field(pattern=_DIGEST_PATTERN)

    @classmethod
    def create(cls, sender: Role, commitment: bytes) -> "MaskCommitment":
        return cls(sender=sender, value=bytes(commitment).hex())

    @property
    def commitment(self) -> bytes:
        return bytes.fromhex(self.value)


class EncryptedSecretsValue(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    friendship: str = Field(pattern=_ELEMENT_PATTERN)
    love: str = Field(pattern=_ELEMENT_PATTERN)


class EncryptedSecrets(_Message):
    """Both secrets encrypted under the host's key."""

    type: Literal["encryptedSecrets"] = "encryptedSecrets"
    value: EncryptedSecretsValue

    @classmethod
    def create(cls, sender: Role, friendship: int, love: int) -> "EncryptedSecrets":
        return cls(
            sender=sender,
            value=EncryptedSecretsValue(friendship=str(friendship), love=str(love)),
        )


class DecryptRequest(_Message):
    """The joiner's selected ciphertext, re-encrypted under its own key."""

    type: Literal["decryptRequest"] = "decryptRequest"
    value: str = Field(pattern=_ELEMENT_PATTERN)

    @classmethod
    def create(cls, sender: Role, element: int) -> "DecryptRequest":
        return cls(sender=sender, value=str(element))

    @property
    def element(self) -> int:
        return int(self.value)


class DecryptResult(_Message):
    """The decrypt request with the host's layer removed."""

    type: Literal["decryptResult"] = "decryptResult"
    value: str = Field(pattern=_ELEMENT_PATTERN)

    @classmethod
    def create(cls, sender: Role, element: int) -> "DecryptResult":
        return cls(sender=sender, value=str(element))

    @property
    def element(self) -> int:
        return int(self.value)


class MaskedOutput(_Message):
    """The joiner's payload bit XOR its own mask."""

    type: Literal["maskedOutput"] = "maskedOutput"
    value: StrictInt = Field(ge=0, le=1)


Message = Annotated[
    Union[MaskCommitment, EncryptedSecrets, DecryptRequest, DecryptResult, MaskedOutput],
    Field(discriminator="type"),
]

_MESSAGE_ADAPTER = TypeAdapter(Message)


def encode_message(message: _Message) -> bytes:
    """Serialize a message to the JSON bytes sent over the channel."""
    return message.model_dump_json(by_alias=True).encode("utf-8")


def decode_message(frame: object) -> _Message:
    """
    Parse and validate a frame received from the channel.

    Args:
        frame: Raw frame as delivered by the transport

    Returns:
        The validated message model

    Raises:
        MessageSchemaError: If the frame is not bytes or not a valid message
    """
    if not isinstance(frame, (bytes, bytearray)):
        raise MessageSchemaError(f"Expected bytes, got {type(frame).__name__}")
    try:
        return _MESSAGE_ADAPTER.validate_json(bytes(frame))
    except ValidationError as e:
        raise MessageSchemaError(
            f"Invalid message: {e.error_count()} validation error(s)"
        ) from e
