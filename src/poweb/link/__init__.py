# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from .lifecycle import CloseCode, CloseKind, CloseReason, ConnectionClosed
from .websocket import DuplexChannel, WebSocketChannel

__all__ = 'CloseCode', 'CloseKind', 'CloseReason', 'ConnectionClosed', 'DuplexChannel', 'WebSocketChannel'
