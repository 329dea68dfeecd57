# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from dataclasses import dataclass
from functools import cached_property
from ipaddress import IPv6Address, ip_address
from typing import ClassVar, Self

import idna

__all__ = 'ClientConfiguration', 'idna_encode'


def idna_encode(string: str, /) -> str:
    """Turn a string into an ASCII representation by encoding it with IDNA"""
    return idna.encode(string, uts46=True).decode('ascii')


@dataclass(frozen=True)
class ClientConfiguration:
    host: str
    port: int
    use_tls: bool = True

    api_prefix: ClassVar[str] = '/v1'
    collection_path: ClassVar[str] = '/parcel-collection'

    default_local_port: ClassVar[int] = 276
    default_remote_port: ClassVar[int] = 443

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError('The host cannot be empty')
        if not 0 < self.port < 2**16:
            raise ValueError(f'Invalid port number: {self.port!r}')

    @classmethod
    def local(cls, port: int = default_local_port) -> Self:
        """The configuration for a gateway running on this host, which listens without TLS"""
        return cls('127.0.0.1', port, use_tls=False)

    @classmethod
    def remote(cls, host: str, port: int = default_remote_port) -> Self:
        return cls(host, port, use_tls=True)

    @cached_property
    def _netloc(self) -> str:
        try:
            address = ip_address(self.host)
        except ValueError:
            return f'{idna_encode(self.host)}:{self.port}'
        if isinstance(address, IPv6Address):
            return f'[{address}]:{self.port}'
        return f'{address}:{self.port}'

    @property
    def base_url(self) -> str:
        scheme = 'https' if self.use_tls else 'http'
        return f'{scheme}://{self._netloc}{self.api_prefix}'

    @property
    def websocket_url(self) -> str:
        scheme = 'wss' if self.use_tls else 'ws'
        return f'{scheme}://{self._netloc}{self.api_prefix}{self.collection_path}'
