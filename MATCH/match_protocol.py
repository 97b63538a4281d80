"""
Match Protocol Implementation

This module implements the complete two-party match protocol: both parties
learn whether they both chose Love, and nothing else about each other's
choice. The protocol works by:
1. Exchanging commitments to a random mask bit per party
2. Running an oblivious transfer: the host offers one secret per category,
   the joiner opens the one matching its own choice
3. The joiner sending its secret's payload, masked with its own mask bit
4. Revealing both masks through the fair reveal service
5. Each side removing both masks and applying the Friendship floor

Key insight for the secrets:
The Friendship secret's payload is always 0 (masked), the Love secret's
payload is the host's Love bit (masked). So the joiner's choice selects
between "Friendship regardless" and "whatever the host chose", which is
exactly AND of the two choices.

Each session is a strict state machine: every transition is driven by one
message sent or received, messages out of order are fatal, and a session
runs at most once.
"""

import asyncio
import logging
from typing import Callable, Optional, Tuple

from OT import CommutativeCipher, EncryptedPair, OTChooser, OTSender

from .channel import Channel
from .errors import ProtocolStateError
from .fair_reveal import TrustedRevealService
from .mask_commitment import MaskCommitmentExchange
from .match_types import Choice, HostState, JoinerState, Role
from .messages import (
    DecryptRequest,
    DecryptResult,
    EncryptedSecrets,
    MaskedOutput,
)
from .params import MatchParams
from .reconciliation import (
    enforce_friendship_floor,
    masked_output,
    outcome_of,
    reconcile,
)

logger = logging.getLogger(__name__)


class _MatchSession:
    """State shared by both roles for one protocol run."""

    role: Role
    states = None

    def __init__(
        self,
        channel: Channel,
        reveal_service: TrustedRevealService,
        choice: Choice,
        params: Optional[MatchParams] = None,
    ):
        if channel.role != self.role:
            raise ValueError(f"A {self.role.value} session needs a {self.role.value} channel")
        if not isinstance(choice, Choice):
            raise ValueError("choice must be a Choice")

        self.channel = channel
        self.choice = choice
        self.params = params or MatchParams()
        self.exchange = MaskCommitmentExchange(channel, reveal_service, self.params)
        self.state = self.states.INIT
        self.outcome: Optional[Choice] = None
        self._started = False

    def _cipher(self) -> CommutativeCipher:
        return CommutativeCipher.random(self.params.group)

    def _advance(self, expected, new):
        """Move from expected to new, refusing any other transition."""
        if self.state != expected:
            raise ProtocolStateError(
                f"Cannot move to {new.name} from {self.state.name}, expected {expected.name}"
            )
        logger.debug("[%s] %s -> %s", self.role.value, self.state.name, new.name)
        self.state = new

    async def run(self) -> Choice:
        """
        Run the session to completion.

        Returns:
            Choice: LOVE if both parties chose Love, FRIENDSHIP otherwise

        Raises:
            ProtocolStateError: If the session has already been run
            MatchProtocolError, OTIntegrityError: On any fatal protocol
                failure; the session is left ABORTED
        """
        if self._started:
            raise ProtocolStateError("A session can only be run once")
        self._started = True

        try:
            return await self._run()
        except (Exception, asyncio.CancelledError):
            logger.debug("[%s] Aborted in state %s", self.role.value, self.state.name)
            self.state = self.states.ABORTED
            raise

    async def _run(self) -> Choice:
        raise NotImplementedError


class HostSession(_MatchSession):
    """
    The host (sender) in the match protocol.
    Responsible for:
    1. Offering the two secrets through oblivious transfer
    2. Answering the joiner's single decrypt request
    3. Reconciling the masked output and guarding against a false Love
    """

    role = Role.HOST
    states = HostState

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.sender = OTSender(self._cipher())

    async def _run(self) -> Choice:
        S = HostState
        mask, commitment = self.exchange.commit()
        peer_commitment = await self.exchange.exchange_commitments(commitment)
        self._advance(S.INIT, S.COMMITMENTS_EXCHANGED)

        self.sender.prepare(mask, self.choice == Choice.LOVE)
        encrypted = self.sender.encrypt_secrets()
        self.channel.send(
            EncryptedSecrets.create(self.role, encrypted.friendship, encrypted.love)
        )
        self._advance(S.COMMITMENTS_EXCHANGED, S.SECRETS_SENT)

        self._advance(S.SECRETS_SENT, S.AWAITING_DECRYPT_REQUEST)
        request = await self.channel.recv(DecryptRequest)
        result = self.sender.blind_decrypt(request.element)
        self.channel.send(DecryptResult.create(self.role, result))
        self._advance(S.AWAITING_DECRYPT_REQUEST, S.DECRYPT_RESULT_SENT)

        self._advance(S.DECRYPT_RESULT_SENT, S.AWAITING_MASKED_OUTPUT)
        masked = (await self.channel.recv(MaskedOutput)).value
        self._advance(S.AWAITING_MASKED_OUTPUT, S.AWAITING_REVEAL)

        peer_mask = await self.exchange.reveal(self.exchange.mask_bytes, peer_commitment)
        raw = reconcile(masked, mask, peer_mask)
        raw = enforce_friendship_floor(raw, self.choice, self.role)
        self.channel.ensure_drained()

        self.outcome = outcome_of(raw)
        self._advance(S.AWAITING_REVEAL, S.RESOLVED)
        return self.outcome


class JoinerSession(_MatchSession):
    """
    The joiner (chooser) in the match protocol.
    Responsible for:
    1. Opening the secret that matches its own choice
    2. Sending the secret's payload under its own mask
    3. Reconciling the same output as the host
    """

    role = Role.JOINER
    states = JoinerState

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.chooser = OTChooser(self.choice.category, self._cipher())

    async def _run(self) -> Choice:
        S = JoinerState
        mask, commitment = self.exchange.commit()
        peer_commitment = await self.exchange.exchange_commitments(commitment)
        self._advance(S.INIT, S.COMMITMENTS_EXCHANGED)

        self._advance(S.COMMITMENTS_EXCHANGED, S.AWAITING_SECRET_PAIR)
        offer = (await self.channel.recv(EncryptedSecrets)).value
        request = self.chooser.select(
            EncryptedPair(friendship=int(offer.friendship), love=int(offer.love))
        )
        self.channel.send(DecryptRequest.create(self.role, request))
        self._advance(S.AWAITING_SECRET_PAIR, S.DECRYPT_REQUEST_SENT)

        self._advance(S.DECRYPT_REQUEST_SENT, S.AWAITING_DECRYPT_RESULT)
        result = await self.channel.recv(DecryptResult)
        secret = self.chooser.finalize(result.element)
        masked = masked_output(secret, mask)
        self.channel.send(MaskedOutput(sender=self.role, value=masked))
        self._advance(S.AWAITING_DECRYPT_RESULT, S.MASKED_OUTPUT_SENT)

        self._advance(S.MASKED_OUTPUT_SENT, S.AWAITING_REVEAL)
        peer_mask = await self.exchange.reveal(self.exchange.mask_bytes, peer_commitment)
        raw = reconcile(masked, mask, peer_mask)
        raw = enforce_friendship_floor(raw, self.choice, self.role)
        self.channel.ensure_drained()

        self.outcome = outcome_of(raw)
        self._advance(S.AWAITING_REVEAL, S.RESOLVED)
        return self.outcome


async def run_host_protocol(
    channel: Channel,
    reveal_service: TrustedRevealService,
    choice: Choice,
    params: Optional[MatchParams] = None,
) -> Choice:
    """Run one host session over channel and return the outcome."""
    return await HostSession(channel, reveal_service, choice, params).run()


async def run_joiner_protocol(
    channel: Channel,
    reveal_service: TrustedRevealService,
    choice: Choice,
    params: Optional[MatchParams] = None,
) -> Choice:
    """Run one joiner session over channel and return the outcome."""
    return await JoinerSession(channel, reveal_service, choice, params).run()


class MatchProtocol:
    """
    Runs both roles of the match protocol in one process.

    Each call to execute() builds a fresh channel pair, reveal service and
    pair of sessions; nothing carries over between runs.
    """

    def __init__(
        self,
        params: Optional[MatchParams] = None,
        channel_factory: Callable[[], Tuple[Channel, Channel]] = Channel.pair,
    ):
        """
        Args:
            params: Protocol parameters shared by both sessions
            channel_factory: Returns a connected (host_channel, joiner_channel)
                pair; called once per run
        """
        self.params = params or MatchParams()
        self.channel_factory = channel_factory
        self.host_session: Optional[HostSession] = None
        self.joiner_session: Optional[JoinerSession] = None

    async def execute(self, host_choice: Choice, joiner_choice: Choice) -> Tuple[Choice, Choice]:
        """
        Execute the complete protocol.

        Args:
            host_choice: The host's private choice
            joiner_choice: The joiner's private choice

        Returns:
            tuple: (host_outcome, joiner_outcome)

        Raises:
            The first fatal error of either session; the other session is
            cancelled since it would wait forever.
        """
        host_channel, joiner_channel = self.channel_factory()
        reveal_service = TrustedRevealService(self.params.participants)

        self.host_session = HostSession(host_channel, reveal_service, host_choice, self.params)
        self.joiner_session = JoinerSession(
            joiner_channel, reveal_service, joiner_choice, self.params
        )

        host_task = asyncio.ensure_future(self.host_session.run())
        joiner_task = asyncio.ensure_future(self.joiner_session.run())

        done, pending = await asyncio.wait(
            {host_task, joiner_task}, return_when=asyncio.FIRST_EXCEPTION
        )
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        for task in (host_task, joiner_task):
            if task in done and task.exception() is not None:
                raise task.exception()

        return host_task.result(), joiner_task.result()
