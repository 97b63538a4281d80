"""
Tests for the match protocol: honest runs, cheating peers and session misuse.
"""

import asyncio
import logging
import secrets

import pytest

from MATCH import (
    Channel,
    Choice,
    CommitmentBindingError,
    DecryptRequest,
    DecryptResult,
    EncryptedSecrets,
    HostSession,
    HostState,
    JoinerSession,
    JoinerState,
    MaskCommitment,
    MaskCommitmentExchange,
    MaskedOutput,
    MatchParams,
    MatchProtocol,
    ProtocolStateError,
    Role,
    TrustedRevealService,
    UnexpectedMessageError,
    run_host_protocol,
    run_joiner_protocol,
)
from OT import OTIntegrityError, OTSender, digest

F, L = Choice.FRIENDSHIP, Choice.LOVE
TIMEOUT = 30


class FlippingChannel(Channel):
    """A joiner that flips its masked output after computing it honestly."""

    def send(self, message):
        if isinstance(message, MaskedOutput):
            message = MaskedOutput(sender=message.sender, value=message.value ^ 1)
        super().send(message)


class ConstantOutputChannel(Channel):
    """A joiner that reports a fixed masked output whatever it computed."""

    forced_value = 0

    def send(self, message):
        if isinstance(message, MaskedOutput):
            message = MaskedOutput(sender=message.sender, value=self.forced_value)
        super().send(message)


class DuplicateOutputChannel(Channel):
    """A joiner that follows its masked output with a conflicting copy."""

    def send(self, message):
        super().send(message)
        if isinstance(message, MaskedOutput):
            super().send(MaskedOutput(sender=message.sender, value=message.value ^ 1))


class DuplicateResultChannel(Channel):
    """A host that sends its decrypt result twice."""

    def send(self, message):
        super().send(message)
        if isinstance(message, DecryptResult):
            super().send(message)


def tampered(channel_class, role=Role.JOINER):
    """Channel factory putting one side on a tampering channel."""

    def factory():
        host, joiner = Channel.pair()
        if role == Role.JOINER:
            joiner = channel_class(Role.JOINER, inbox=host.outbox, outbox=host.inbox)
        else:
            host = channel_class(Role.HOST, inbox=joiner.outbox, outbox=joiner.inbox)
        return host, joiner

    return factory


class CorruptingRevealService(TrustedRevealService):
    """A broken reveal service that flips one byte of every preimage."""

    def _lookup(self, commitment):
        preimage = bytearray(super()._lookup(commitment))
        preimage[-1] ^= 0x01
        return bytes(preimage)


async def execute(protocol, host_choice, joiner_choice):
    return await asyncio.wait_for(protocol.execute(host_choice, joiner_choice), TIMEOUT)


class TestHonestRuns:
    """Both parties follow the protocol."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "host_choice, joiner_choice, expected",
        [(L, L, L), (L, F, F), (F, L, F), (F, F, F)],
    )
    async def test_outcome(self, host_choice, joiner_choice, expected):
        protocol = MatchProtocol()
        host_outcome, joiner_outcome = await execute(protocol, host_choice, joiner_choice)

        assert host_outcome == expected
        assert joiner_outcome == expected
        assert protocol.host_session.state == HostState.RESOLVED
        assert protocol.joiner_session.state == JoinerState.RESOLVED

    @pytest.mark.asyncio
    async def test_repeated_runs_are_independent(self):
        protocol = MatchProtocol()
        for _ in range(3):
            assert await execute(protocol, L, L) == (L, L)
            assert await execute(protocol, L, F) == (F, F)

    @pytest.mark.asyncio
    async def test_functional_entry_points(self):
        host_channel, joiner_channel = Channel.pair()
        service = TrustedRevealService()

        outcomes = await asyncio.wait_for(
            asyncio.gather(
                run_host_protocol(host_channel, service, L),
                run_joiner_protocol(joiner_channel, service, L),
            ),
            TIMEOUT,
        )
        assert outcomes == [L, L]

    @pytest.mark.asyncio
    async def test_no_frames_dropped(self):
        protocol = MatchProtocol(MatchParams(mask_size=32))
        await execute(protocol, F, L)
        assert protocol.host_session.channel.dropped_frames == 0
        assert protocol.joiner_session.channel.dropped_frames == 0


class TestCheatingJoiner:
    """The host's Friendship floor against a tampered masked output."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("joiner_choice", [F, L])
    async def test_flipped_output_forced_to_friendship(self, joiner_choice, caplog):
        protocol = MatchProtocol(channel_factory=tampered(FlippingChannel))

        with caplog.at_level(logging.WARNING):
            host_outcome, joiner_outcome = await execute(protocol, F, joiner_choice)

        assert host_outcome == F
        assert joiner_outcome == F
        assert protocol.host_session.state == HostState.RESOLVED
        assert protocol.joiner_session.state == JoinerState.RESOLVED
        assert "Refusing to acknowledge love result" in caplog.text

    @pytest.mark.asyncio
    @pytest.mark.parametrize("forced_value", [0, 1])
    @pytest.mark.parametrize("joiner_choice", [F, L])
    async def test_any_reported_output(self, forced_value, joiner_choice):
        channel_class = type(
            "Forced", (ConstantOutputChannel,), {"forced_value": forced_value}
        )
        for _ in range(3):
            protocol = MatchProtocol(channel_factory=tampered(channel_class))
            host_outcome, _ = await execute(protocol, F, joiner_choice)
            assert host_outcome == F


class TestCommitmentBinding:
    """A revealed mask must open the commitment made at the start."""

    @pytest.mark.asyncio
    async def test_exchange_rejects_mutated_mask(self):
        host_channel, joiner_channel = Channel.pair()
        service = CorruptingRevealService()
        host = MaskCommitmentExchange(host_channel, service)
        joiner = MaskCommitmentExchange(joiner_channel, service)

        _, host_commitment = host.commit()
        _, joiner_commitment = joiner.commit()
        await asyncio.gather(
            host.exchange_commitments(host_commitment),
            joiner.exchange_commitments(joiner_commitment),
        )

        results = await asyncio.gather(
            host.reveal(host.mask_bytes, host.peer_commitment),
            joiner.reveal(joiner.mask_bytes, joiner.peer_commitment),
            return_exceptions=True,
        )
        assert all(isinstance(r, CommitmentBindingError) for r in results)

    @pytest.mark.asyncio
    async def test_exchange_reveals_peer_mask(self):
        host_channel, joiner_channel = Channel.pair()
        service = TrustedRevealService()
        host = MaskCommitmentExchange(host_channel, service)
        joiner = MaskCommitmentExchange(joiner_channel, service)

        host_mask, host_commitment = host.commit()
        joiner_mask, joiner_commitment = joiner.commit()
        assert host_commitment == digest(host.mask_bytes)
        assert host_mask == host.mask_bytes[0] & 1

        peers = await asyncio.gather(
            host.exchange_commitments(host_commitment),
            joiner.exchange_commitments(joiner_commitment),
        )
        assert peers == [joiner_commitment, host_commitment]

        revealed = await asyncio.gather(
            host.reveal(host.mask_bytes, joiner_commitment),
            joiner.reveal(joiner.mask_bytes, host_commitment),
        )
        assert revealed == [joiner_mask, host_mask]

    def test_commit_once(self):
        host_channel, _ = Channel.pair()
        exchange = MaskCommitmentExchange(host_channel, TrustedRevealService())
        exchange.commit()
        with pytest.raises(RuntimeError):
            exchange.commit()

    @pytest.mark.asyncio
    async def test_echoed_commitment(self):
        host_channel, rogue = Channel.pair()
        host = HostSession(host_channel, TrustedRevealService(), L)

        async def rogue_joiner():
            message = await rogue.recv(MaskCommitment)
            rogue.send(MaskCommitment.create(Role.JOINER, message.commitment))

        results = await asyncio.wait_for(
            asyncio.gather(host.run(), rogue_joiner(), return_exceptions=True), TIMEOUT
        )
        assert isinstance(results[0], CommitmentBindingError)
        assert host.state == HostState.ABORTED

    @pytest.mark.asyncio
    async def test_protocol_aborts(self):
        host_channel, joiner_channel = Channel.pair()
        service = CorruptingRevealService()
        host = HostSession(host_channel, service, L)
        joiner = JoinerSession(joiner_channel, service, L)

        results = await asyncio.wait_for(
            asyncio.gather(host.run(), joiner.run(), return_exceptions=True), TIMEOUT
        )
        assert all(isinstance(r, CommitmentBindingError) for r in results)
        assert host.state == HostState.ABORTED
        assert joiner.state == JoinerState.ABORTED
        assert host.outcome is None


class TestMessageOrdering:
    """Out-of-order and duplicate messages abort the session."""

    @pytest.mark.asyncio
    async def test_duplicate_commitment(self):
        host_channel, rogue = Channel.pair()
        host = HostSession(host_channel, TrustedRevealService(), F)
        commitment = MaskCommitment.create(Role.JOINER, digest(secrets.token_bytes(16)))
        rogue.send(commitment)
        rogue.send(commitment)

        with pytest.raises(UnexpectedMessageError):
            await asyncio.wait_for(host.run(), TIMEOUT)
        assert host.state == HostState.ABORTED

    @pytest.mark.asyncio
    async def test_duplicate_masked_output(self):
        protocol = MatchProtocol(channel_factory=tampered(DuplicateOutputChannel))

        with pytest.raises(UnexpectedMessageError):
            await execute(protocol, L, L)
        assert protocol.host_session.state == HostState.ABORTED
        assert protocol.host_session.outcome is None

    @pytest.mark.asyncio
    async def test_duplicate_decrypt_result(self):
        protocol = MatchProtocol(
            channel_factory=tampered(DuplicateResultChannel, role=Role.HOST)
        )

        with pytest.raises(UnexpectedMessageError):
            await execute(protocol, L, F)
        assert protocol.joiner_session.state == JoinerState.ABORTED
        assert protocol.joiner_session.outcome is None

    @pytest.mark.asyncio
    async def test_decrypt_result_before_secrets(self):
        rogue, joiner_channel = Channel.pair()
        joiner = JoinerSession(joiner_channel, TrustedRevealService(), L)
        rogue.send(MaskCommitment.create(Role.HOST, digest(secrets.token_bytes(16))))
        rogue.send(DecryptResult.create(Role.HOST, 4))

        with pytest.raises(UnexpectedMessageError):
            await asyncio.wait_for(joiner.run(), TIMEOUT)
        assert joiner.state == JoinerState.ABORTED

    @pytest.mark.asyncio
    async def test_echoed_request_detected(self):
        rogue, joiner_channel = Channel.pair()
        joiner = JoinerSession(joiner_channel, TrustedRevealService(), L)

        async def rogue_host():
            rogue.send(MaskCommitment.create(Role.HOST, digest(secrets.token_bytes(16))))
            await rogue.recv(MaskCommitment)
            sender = OTSender()
            sender.prepare(0, True)
            offer = sender.encrypt_secrets()
            rogue.send(EncryptedSecrets.create(Role.HOST, offer.friendship, offer.love))
            request = await rogue.recv(DecryptRequest)
            # Echo the request back without removing the host's layer
            rogue.send(DecryptResult.create(Role.HOST, request.element))

        results = await asyncio.wait_for(
            asyncio.gather(joiner.run(), rogue_host(), return_exceptions=True), TIMEOUT
        )
        assert isinstance(results[0], OTIntegrityError)
        assert joiner.state == JoinerState.ABORTED


class TestSessionLifecycle:
    """Sessions are single-use and bound to their role."""

    @pytest.mark.asyncio
    async def test_run_once(self):
        protocol = MatchProtocol()
        await execute(protocol, L, L)
        with pytest.raises(ProtocolStateError):
            await protocol.host_session.run()

    def test_role_mismatch(self):
        host_channel, joiner_channel = Channel.pair()
        with pytest.raises(ValueError):
            HostSession(joiner_channel, TrustedRevealService(), L)
        with pytest.raises(ValueError):
            JoinerSession(host_channel, TrustedRevealService(), L)

    def test_choice_type(self):
        host_channel, _ = Channel.pair()
        with pytest.raises(ValueError):
            HostSession(host_channel, TrustedRevealService(), "love")

    def test_illegal_transition(self):
        host_channel, _ = Channel.pair()
        session = HostSession(host_channel, TrustedRevealService(), L)
        with pytest.raises(ProtocolStateError):
            session._advance(HostState.SECRETS_SENT, HostState.AWAITING_DECRYPT_REQUEST)
