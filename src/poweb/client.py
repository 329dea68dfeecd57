# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import logging
from base64 import b64encode
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Self

import aiohttp
from aiohttp import hdrs

from poweb.collection import STREAMING_MODE_HEADER, ParcelCollectionSession, StreamingMode
from poweb.configuration import ClientConfiguration
from poweb.content import RESPONSE_CONTENT_TYPES, PoWebContentType, validate_content_type
from poweb.exceptions import ClientBindingError, MalformedBodyError, RejectedParcelError, ServerBindingError, ServerConnectionError
from poweb.handshake import NonceSigner
from poweb.link import DuplexChannel, WebSocketChannel
from poweb.messages import InvalidMessageError, PrivateNodeRegistration
from poweb.trust.keys import PublicKey, get_public_key_digest

__all__ = 'PoWebClient',  # noqa: COM818


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Response:
    status: int
    content_type: str | None
    body: bytes


class PoWebClient:
    """
    Client for the PoWeb binding of a gateway.

    The client owns an aiohttp session which is created on first use and
    must be released with close(), or by using the client as an async
    context manager.
    """

    rejected_parcel_status: int = 422

    def __init__(self, configuration: ClientConfiguration, *, session: aiohttp.ClientSession | None = None) -> None:
        self.configuration = configuration
        self._session = session
        self._owns_session = session is None
        self._closed = False

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}({self.configuration!r})'

    @classmethod
    def init_local(cls, port: int = ClientConfiguration.default_local_port) -> Self:
        return cls(ClientConfiguration.local(port))

    @classmethod
    def init_remote(cls, host: str, port: int = ClientConfiguration.default_remote_port) -> Self:
        return cls(ClientConfiguration.remote(host, port))

    @property
    def base_url(self) -> str:
        return self.configuration.base_url

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._session is not None and self._owns_session:
            await self._session.close()

    async def pre_register_node(self, public_key: PublicKey) -> bytes:
        """Request the authorization to register the private node that owns the key"""
        digest = get_public_key_digest(public_key)
        response = await self._post('/pre-registrations', digest.encode('ascii'), PoWebContentType.PRE_REGISTRATION)
        self._check_status(response)
        validate_content_type(response.content_type, RESPONSE_CONTENT_TYPES['pre-register'])
        return response.body

    async def register_node(self, pnrr_serialized: bytes) -> PrivateNodeRegistration:
        response = await self._post('/nodes', pnrr_serialized, PoWebContentType.REGISTRATION_REQUEST)
        self._check_status(response)
        validate_content_type(response.content_type, RESPONSE_CONTENT_TYPES['register'])
        try:
            return PrivateNodeRegistration.from_wire(response.body)
        except InvalidMessageError as exc:
            raise MalformedBodyError('The server returned a malformed registration') from exc

    async def deliver_parcel(self, parcel_serialized: bytes, signer: NonceSigner) -> None:
        countersignature = b64encode(signer.sign(parcel_serialized).to_wire()).decode('ascii')
        headers = {hdrs.AUTHORIZATION: f'Relaynet-Countersignature {countersignature}'}
        response = await self._post('/parcels', parcel_serialized, PoWebContentType.PARCEL, headers=headers)
        if response.status == self.rejected_parcel_status:
            raise RejectedParcelError('The server rejected the parcel')
        self._check_status(response)

    def collect_parcels(self, nonce_signers: Sequence[NonceSigner], *, streaming_mode: StreamingMode = StreamingMode.KEEP_ALIVE) -> ParcelCollectionSession:
        """
        Return a parcel collection session for the nodes that own the signers.

        The session must be entered as an async context manager, which opens
        the connection and completes the handshake:

            async with client.collect_parcels([signer]) as collection:
                async for parcel in collection:
                    store(parcel.parcel_serialized)
                    await parcel.ack()
        """

        async def connect() -> DuplexChannel:
            headers = {STREAMING_MODE_HEADER: streaming_mode.value}
            return await WebSocketChannel.connect(self._get_session(), self.configuration.websocket_url, headers=headers)

        return ParcelCollectionSession(nonce_signers, connector=connect)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise RuntimeError(f'{self!r} is closed')
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    async def _post(self, path: str, body: bytes, content_type: str, *, headers: Mapping[str, str] | None = None) -> Response:
        url = f'{self.base_url}{path}'
        request_headers = {hdrs.CONTENT_TYPE: content_type, **(headers or {})}
        logger.debug('POST %s (%s, %d bytes)', url, content_type, len(body))
        try:
            async with self._get_session().post(url, data=body, headers=request_headers, allow_redirects=False) as response:
                return Response(status=response.status, content_type=response.headers.get(hdrs.CONTENT_TYPE), body=await response.read())
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise ServerConnectionError(f'Failed to connect to {url}') from exc

    @staticmethod
    def _check_status(response: Response) -> None:
        match response.status:
            case status if 200 <= status < 300:  # noqa: PLR2004
                return
            case status if 400 <= status < 500:  # noqa: PLR2004
                raise ClientBindingError(f'The server reports that the client violated binding (HTTP {status})')
            case status if 500 <= status < 600:  # noqa: PLR2004
                raise ServerConnectionError(f'The server was unable to fulfil the request (HTTP {status})')
            case status:
                raise ServerBindingError(f'Received unexpected status (HTTP {status})')

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type: object, exc_value: object, exc_traceback: object) -> None:
        await self.close()
