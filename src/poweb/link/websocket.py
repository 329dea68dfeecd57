# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import logging
from collections.abc import Mapping
from typing import ClassVar, Protocol, Self

import aiohttp
from aiohttp import WSMsgType

from poweb.exceptions import ServerConnectionError

from .lifecycle import CloseCode, CloseReason, ConnectionClosed

__all__ = 'DuplexChannel', 'WebSocketChannel'


logger = logging.getLogger(__name__)


class DuplexChannel(Protocol):
    """
    A persistent, message oriented, bidirectional connection.

    Binary frames are received as bytes and text frames as str. When the
    connection is closed by the peer or found to be closed, receive raises
    ConnectionClosed carrying the close code and reason.
    """

    async def receive(self) -> bytes | str: ...

    async def send(self, data: bytes | str) -> None: ...

    async def close(self, code: int = CloseCode.NORMAL, reason: str = '') -> None: ...


class WebSocketChannel:
    """
    A duplex channel over an aiohttp client WebSocket.

    The close code reported by aiohttp is only trusted after a close frame
    was exchanged. A connection that ends without one is reported as an
    abnormal closure (1006).
    """

    # no limit: a parcel delivery can carry up to 4 GiB
    max_message_size: ClassVar[int] = 0

    def __init__(self, websocket: aiohttp.ClientWebSocketResponse) -> None:
        self._websocket = websocket
        self._close_reason: CloseReason | None = None

    def __repr__(self) -> str:
        return f'<{self.__class__.__qualname__}: closed={self.closed}>'

    @property
    def closed(self) -> bool:
        return self._websocket.closed

    @classmethod
    async def connect(cls, session: aiohttp.ClientSession, url: str, *, headers: Mapping[str, str] | None = None) -> Self:
        try:
            websocket = await session.ws_connect(url, headers=headers, autoclose=True, autoping=True, max_msg_size=cls.max_message_size)
        except aiohttp.WSServerHandshakeError as exc:
            raise ServerConnectionError(f'The server refused the WebSocket connection (HTTP {exc.status})') from exc
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise ServerConnectionError(f'Failed to connect to {url}') from exc
        logger.debug('Connected to %s', url)
        return cls(websocket)

    async def receive(self) -> bytes | str:
        message = await self._websocket.receive()
        match message.type:
            case WSMsgType.BINARY | WSMsgType.TEXT:
                return message.data
            case WSMsgType.CLOSE:
                self._close_reason = CloseReason(message.data, message.extra or '')
                raise ConnectionClosed(self._close_reason)
            case WSMsgType.CLOSING | WSMsgType.CLOSED:
                raise ConnectionClosed(self._close_reason or CloseReason(CloseCode.ABNORMAL_CLOSURE, 'The connection was closed without a close frame'))
            case WSMsgType.ERROR:
                raise ServerConnectionError('The connection to the server was lost') from message.data
            case _:
                raise ServerConnectionError(f'Received an unexpected WebSocket frame: {message.type!r}')

    async def send(self, data: bytes | str) -> None:
        try:
            if isinstance(data, str):
                await self._websocket.send_str(data)
            else:
                await self._websocket.send_bytes(data)
        except (aiohttp.ClientError, ConnectionError) as exc:
            raise ServerConnectionError('The connection to the server was lost') from exc

    async def close(self, code: int = CloseCode.NORMAL, reason: str = '') -> None:
        if self._close_reason is None:
            self._close_reason = CloseReason(code, reason)
        try:
            await self._websocket.close(code=code, message=reason.encode())
        except (aiohttp.ClientError, ConnectionError) as exc:
            raise ServerConnectionError('The connection to the server was lost') from exc
