# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later


__all__ = (  # noqa: RUF022
    'PoWebError',
    'TransportError',
    'ServerConnectionError',
    'ServerShutdownError',
    'BindingError',
    'ServerBindingError',
    'ContentTypeError',
    'MalformedBodyError',
    'ProtocolViolationError',
    'ClientBindingError',
    'RejectedParcelError',
    'SessionClosedError',
)


class PoWebError(Exception):
    """Base class for all the errors raised by the PoWeb binding."""


class TransportError(PoWebError):
    """
    Raised when the network transport fails.

    The ``__cause__`` attribute holds the error reported by the underlying
    transport library, when there is one.

    """


class ServerConnectionError(TransportError):
    """
    Raised when the server cannot be reached, drops the connection or is
    unable to fulfil a request because of an internal problem.

    """


class ServerShutdownError(ServerConnectionError):
    """Raised when the server closes the parcel collection because it is going away."""


class BindingError(PoWebError):
    """Base class for violations of the PoWeb binding by either party."""


class ServerBindingError(BindingError):
    """Raised when the server does not behave as the binding requires."""


class ContentTypeError(ServerBindingError):
    """Raised when a response declares a media type other than the expected one."""

    def __init__(self, content_type: str | None) -> None:
        super().__init__(f'The server returned an invalid Content-Type ({content_type})')
        self.content_type = content_type


class MalformedBodyError(ServerBindingError):
    """
    Raised when a response body cannot be deserialized.

    The ``__cause__`` attribute holds the deserialization error.

    """


class ProtocolViolationError(ServerBindingError):
    """
    Raised when the server sends a message that is out of sequence or that
    cannot be parsed on the parcel collection channel.

    """


class ClientBindingError(BindingError):
    """Raised when the server reports that this client violated the binding."""


class RejectedParcelError(ClientBindingError):
    """Raised when the server refuses to accept a delivered parcel."""


class SessionClosedError(PoWebError):
    """
    Raised when attempting to use a parcel collection session after it
    has been closed, either explicitly or by the server.

    """
