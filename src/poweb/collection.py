# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import auto
from typing import Final, Self, TypeAlias

from poweb.exceptions import ClientBindingError, ProtocolViolationError, ServerConnectionError, ServerShutdownError, SessionClosedError, TransportError
from poweb.handshake import NonceSigner, respond_to_challenge
from poweb.link import CloseCode, CloseKind, CloseReason, ConnectionClosed, DuplexChannel
from poweb.messages import InvalidMessageError, ParcelAck, ParcelDelivery
from poweb.python.types import MarkerEnum, StringEnum

__all__ = 'STREAMING_MODE_HEADER', 'CollectedParcel', 'ParcelCollectionSession', 'SessionState', 'StreamingMode'


logger = logging.getLogger(__name__)


STREAMING_MODE_HEADER: Final = 'X-Relaynet-Streaming-Mode'


ChannelConnector: TypeAlias = Callable[[], Awaitable[DuplexChannel]]


class StreamingMode(StringEnum):
    KEEP_ALIVE = 'keep-alive'
    CLOSE_UPON_COMPLETION = 'close-upon-completion'


class SessionState(MarkerEnum):
    AwaitingChallenge = auto()
    Active = auto()
    Closing = auto()
    Closed = auto()


@dataclass(frozen=True)
class CollectedParcel:
    delivery_id: str
    parcel_serialized: bytes = field(repr=False)
    session: 'ParcelCollectionSession' = field(repr=False, compare=False)

    async def ack(self) -> None:
        """Tell the server that the parcel was safely stored and must not be delivered again"""
        await self.session.acknowledge(self.delivery_id)


class ParcelCollectionSession:
    """
    The client side of a parcel collection over a persistent channel.

    The session answers the server's handshake challenge and then exposes
    the parcels delivered by the server as an asynchronous iterator, which
    ends when the server closes the connection normally or the session is
    cancelled, and raises if the collection ends for any other reason.

    Parcels are never acknowledged implicitly: each one must be acknowledged
    with CollectedParcel.ack() once it has been processed, and every call
    sends an acknowledgement, even if the same parcel was acknowledged before.

    Used as an asynchronous context manager, the session connects to the
    server and completes the handshake on entry and cancels itself on exit.
    """

    def __init__(self, nonce_signers: Sequence[NonceSigner], *, connector: ChannelConnector | None = None) -> None:
        if not nonce_signers:
            raise ValueError('At least one nonce signer must be specified')
        self.nonce_signers = tuple(nonce_signers)
        self.close_reason: CloseReason | None = None
        self._connector = connector
        self._channel: DuplexChannel | None = None
        self._state = SessionState.AwaitingChallenge
        self._send_lock = asyncio.Lock()
        self._consumed = False

    def __repr__(self) -> str:
        return f'<{self.__class__.__qualname__}: {self._state.name}>'

    @property
    def state(self) -> SessionState:
        return self._state

    async def start(self, channel: DuplexChannel) -> None:
        if self._channel is not None or self._state is not SessionState.AwaitingChallenge:
            raise RuntimeError('The parcel collection session was already started')
        self._channel = channel
        try:
            frame = await channel.receive()
        except ConnectionClosed as exc:
            self._set_closed(exc.reason)
            match exc.reason.kind:
                case CloseKind.PROTOCOL_VIOLATION:
                    raise ClientBindingError(f'The server refused the handshake ({exc.reason})') from exc
                case CloseKind.SERVER_SHUTDOWN:
                    raise ServerShutdownError(f'The server is shutting down ({exc.reason})') from exc
                case _:
                    raise ServerConnectionError(f'The server closed the connection before the handshake was completed ({exc.reason})') from exc
        except TransportError:
            self._state = SessionState.Closed
            raise
        try:
            response = respond_to_challenge(frame, self.nonce_signers)
        except ProtocolViolationError:
            await self._abort('Invalid handshake challenge')
            raise
        await self._send(response.to_wire())
        self._state = SessionState.Active
        logger.debug('Parcel collection handshake completed')

    async def acknowledge(self, delivery_id: str) -> None:
        if self._state is SessionState.AwaitingChallenge:
            raise RuntimeError('Parcels cannot be acknowledged before the handshake is completed')
        if self._state is not SessionState.Active:
            raise SessionClosedError(f'Cannot acknowledge parcel delivery {delivery_id!r}: the parcel collection is closed')
        async with self._send_lock:
            # acks accepted before cancel() are still sent while closing
            if self._state is SessionState.Closed:
                raise SessionClosedError(f'Cannot acknowledge parcel delivery {delivery_id!r}: the parcel collection is closed')
            logger.debug('Acknowledging parcel delivery %r', delivery_id)
            await self._send(ParcelAck(delivery_id).to_text())

    async def cancel(self) -> None:
        match self._state:
            case SessionState.Closing | SessionState.Closed:
                return
            case SessionState.AwaitingChallenge if self._channel is None:
                self._state = SessionState.Closed
                return
        assert self._channel is not None  # noqa: S101 (used by type checkers)
        self._state = SessionState.Closing
        logger.debug('Closing parcel collection')
        try:
            # wait for the acknowledgements that are already being sent
            async with self._send_lock:
                await self._channel.close(CloseCode.NORMAL)
        finally:
            self._set_closed(CloseReason(CloseCode.NORMAL))

    def __aiter__(self) -> AsyncIterator[CollectedParcel]:
        if self._state is SessionState.AwaitingChallenge:
            raise RuntimeError('The parcel collection session was not started')
        if self._consumed:
            raise RuntimeError('The collected parcels can only be iterated once per session')
        if self._state is not SessionState.Active:
            raise SessionClosedError('Cannot collect parcels: the parcel collection is closed')
        self._consumed = True
        return self._collect()

    async def __aenter__(self) -> Self:
        if self._connector is None:
            raise RuntimeError(f'{self!r} has no channel connector and must be started explicitly')
        channel = await self._connector()
        try:
            await self.start(channel)
        except BaseException:
            with contextlib.suppress(TransportError):
                await self.cancel()
            raise
        return self

    async def __aexit__(self, exc_type: object, exc_value: object, exc_traceback: object) -> None:
        await self.cancel()

    async def _collect(self) -> AsyncIterator[CollectedParcel]:
        assert self._channel is not None  # noqa: S101 (used by type checkers)
        while self._state is SessionState.Active:
            try:
                frame = await self._channel.receive()
            except ConnectionClosed as exc:
                if self._state is not SessionState.Active:
                    return
                self._set_closed(exc.reason)
                if (error := exc.reason.error()) is not None:
                    raise error from exc
                return
            except TransportError:
                if self._state is not SessionState.Active:
                    return
                self._state = SessionState.Closed
                raise
            if self._state is not SessionState.Active:
                return
            try:
                if isinstance(frame, str):
                    raise InvalidMessageError('Received a text frame instead of a parcel delivery')
                delivery = ParcelDelivery.from_wire(frame)
            except InvalidMessageError as exc:
                await self._abort('Invalid parcel delivery')
                raise ProtocolViolationError('The server sent an invalid parcel delivery') from exc
            logger.debug('Received parcel delivery %r', delivery.delivery_id)
            yield CollectedParcel(delivery.delivery_id, delivery.parcel_serialized, self)

    async def _send(self, data: bytes | str) -> None:
        assert self._channel is not None  # noqa: S101 (used by type checkers)
        try:
            await self._channel.send(data)
        except TransportError:
            self._state = SessionState.Closed
            raise

    async def _abort(self, reason: str) -> None:
        assert self._channel is not None  # noqa: S101 (used by type checkers)
        logger.warning('Closing parcel collection because of a protocol violation: %s', reason)
        self._set_closed(CloseReason(CloseCode.POLICY_VIOLATION, reason))
        with contextlib.suppress(TransportError):
            await self._channel.close(CloseCode.POLICY_VIOLATION, reason)

    def _set_closed(self, reason: CloseReason) -> None:
        self._state = SessionState.Closed
        if self.close_reason is None:
            self.close_reason = reason
        logger.debug('Parcel collection closed (%s)', reason)
