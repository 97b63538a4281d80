"""
Message Channel Module

A Channel is one party's end of a bidirectional, ordered message pipe.
Frames are JSON bytes; they are validated here, at the boundary, before any
message reaches a protocol session:

- frames that are not valid messages are logged and dropped;
- frames claiming to come from the receiver's own role are logged and dropped;
- a valid message of an unexpected type is fatal (out-of-order or duplicate);
- a valid message still queued once a session is done is fatal (ensure_drained).

Channel.pair() connects two in-memory endpoints through asyncio queues.
Other transports only need to feed frames into the inbox and drain the outbox.
"""

import asyncio
import logging
from typing import Optional, Tuple, Type, TypeVar

from .errors import MessageSchemaError, UnexpectedMessageError
from .match_types import Role
from .messages import decode_message, encode_message

logger = logging.getLogger(__name__)

M = TypeVar("M")


class Channel:
    """One endpoint of a message channel between the host and the joiner."""

    def __init__(
        self,
        role: Role,
        inbox: Optional[asyncio.Queue] = None,
        outbox: Optional[asyncio.Queue] = None,
    ):
        """
        Initialize an endpoint.

        Args:
            role: The role of the party owning this endpoint
            inbox: Queue of frames arriving from the peer
            outbox: Queue of frames leaving for the peer
        """
        self.role = role
        self.inbox = inbox if inbox is not None else asyncio.Queue()
        self.outbox = outbox if outbox is not None else asyncio.Queue()
        self.dropped_frames = 0

    @classmethod
    def pair(cls) -> Tuple["Channel", "Channel"]:
        """
        Create two connected endpoints.

        Returns:
            tuple: (host_channel, joiner_channel)
        """
        host_to_joiner: asyncio.Queue = asyncio.Queue()
        joiner_to_host: asyncio.Queue = asyncio.Queue()
        host = cls(Role.HOST, inbox=joiner_to_host, outbox=host_to_joiner)
        joiner = cls(Role.JOINER, inbox=host_to_joiner, outbox=joiner_to_host)
        return host, joiner

    def send(self, message) -> None:
        """
        Send a message to the peer. Never blocks.

        Raises:
            ValueError: If the message is not tagged with this endpoint's role
        """
        if message.sender != self.role:
            raise ValueError(
                f"Cannot send a {message.sender.value} message from the {self.role.value} side"
            )
        self.send_frame(encode_message(message))

    def send_frame(self, frame: bytes) -> None:
        """Put a raw frame on the wire."""
        self.outbox.put_nowait(frame)

    async def recv(self, message_type: Type[M]) -> M:
        """
        Wait for the next valid message from the peer.

        Args:
            message_type: The message class the caller expects next

        Returns:
            The validated message

        Raises:
            UnexpectedMessageError: If the next valid message has another type
        """
        while True:
            message = self._accept(await self.inbox.get())
            if message is None:
                continue

            if not isinstance(message, message_type):
                raise UnexpectedMessageError(
                    f"Expected {message_type.__name__}, got {type(message).__name__}"
                )

            return message

    def ensure_drained(self) -> None:
        """
        Check, without waiting, that the peer has nothing left queued.

        Invalid frames are dropped as in recv().

        Raises:
            UnexpectedMessageError: If a valid message from the peer is still
                waiting (a duplicate or a message past the end of the run)
        """
        while True:
            try:
                frame = self.inbox.get_nowait()
            except asyncio.QueueEmpty:
                return

            message = self._accept(frame)
            if message is not None:
                raise UnexpectedMessageError(
                    f"Unexpected {type(message).__name__} after the last expected message"
                )

    def _accept(self, frame):
        """Validate a frame; invalid ones are dropped and give None."""
        try:
            message = decode_message(frame)
        except MessageSchemaError as e:
            self._drop(str(e))
            return None

        if message.sender != self.role.peer:
            self._drop(f"frame claims to come from {message.sender.value}")
            return None
        return message

    def _drop(self, reason: str):
        self.dropped_frames += 1
        logger.warning("[%s] Dropping frame: %s", self.role.value, reason)
