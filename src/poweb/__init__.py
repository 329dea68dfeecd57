# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from .__info__ import __version__
from .client import PoWebClient
from .collection import CollectedParcel, ParcelCollectionSession, SessionState, StreamingMode
from .configuration import ClientConfiguration
from .content import PoWebContentType

__all__ = 'ClientConfiguration', 'CollectedParcel', 'ParcelCollectionSession', 'PoWebClient', 'PoWebContentType', 'SessionState', 'StreamingMode', '__version__'
