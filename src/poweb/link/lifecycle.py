# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from dataclasses import dataclass
from enum import IntEnum, auto

from poweb.exceptions import ClientBindingError, PoWebError, ServerConnectionError, ServerShutdownError
from poweb.python.types import MarkerEnum

__all__ = 'CloseCode', 'CloseKind', 'CloseReason', 'ConnectionClosed'


class CloseCode(IntEnum):
    """WebSocket close codes (RFC 6455, section 7.4)"""

    NORMAL = 1000
    GOING_AWAY = 1001
    PROTOCOL_ERROR = 1002
    UNSUPPORTED_DATA = 1003
    ABNORMAL_CLOSURE = 1006
    INVALID_TEXT = 1007
    POLICY_VIOLATION = 1008
    MESSAGE_TOO_BIG = 1009
    MANDATORY_EXTENSION = 1010
    INTERNAL_ERROR = 1011
    SERVICE_RESTART = 1012
    TRY_AGAIN_LATER = 1013

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}.{self.name}'


class CloseKind(MarkerEnum):
    NORMAL = auto()
    SERVER_SHUTDOWN = auto()
    PROTOCOL_VIOLATION = auto()
    ABNORMAL = auto()


_close_kinds = {
    CloseCode.NORMAL: CloseKind.NORMAL,
    CloseCode.GOING_AWAY: CloseKind.SERVER_SHUTDOWN,
    CloseCode.SERVICE_RESTART: CloseKind.SERVER_SHUTDOWN,
    CloseCode.TRY_AGAIN_LATER: CloseKind.SERVER_SHUTDOWN,
    CloseCode.PROTOCOL_ERROR: CloseKind.PROTOCOL_VIOLATION,
    CloseCode.UNSUPPORTED_DATA: CloseKind.PROTOCOL_VIOLATION,
    CloseCode.INVALID_TEXT: CloseKind.PROTOCOL_VIOLATION,
    CloseCode.POLICY_VIOLATION: CloseKind.PROTOCOL_VIOLATION,
    CloseCode.MESSAGE_TOO_BIG: CloseKind.PROTOCOL_VIOLATION,
}


@dataclass(frozen=True)
class CloseReason:
    code: int
    reason: str = ''

    def __str__(self) -> str:
        return f'code: {self.code}, reason: {self.reason or "none"}'

    @property
    def kind(self) -> CloseKind:
        return _close_kinds.get(self.code, CloseKind.ABNORMAL)

    def error(self) -> PoWebError | None:
        """Return the error that this closure represents for the peer that received it (None for a normal closure)"""
        match self.kind:
            case CloseKind.NORMAL:
                return None
            case CloseKind.SERVER_SHUTDOWN:
                return ServerShutdownError(f'The server is shutting down ({self})')
            case CloseKind.PROTOCOL_VIOLATION:
                return ClientBindingError(f'The server closed the connection because of a protocol violation ({self})')
            case CloseKind.ABNORMAL:
                return ServerConnectionError(f'The server closed the connection unexpectedly ({self})')


class ConnectionClosed(Exception):  # noqa: N818
    """Raised by a duplex channel when it receives a close frame or finds the connection closed."""

    def __init__(self, reason: CloseReason) -> None:
        super().__init__(str(reason))
        self.reason = reason
