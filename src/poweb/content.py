# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from collections.abc import Mapping
from types import MappingProxyType
from typing import Final

from poweb.exceptions import ContentTypeError
from poweb.python.types import StringEnum

__all__ = 'PoWebContentType', 'RESPONSE_CONTENT_TYPES', 'validate_content_type'


class PoWebContentType(StringEnum):
    PRE_REGISTRATION = 'text/plain'
    REGISTRATION_AUTHORIZATION = 'application/vnd+relaycorp.awala.pnra'
    REGISTRATION_REQUEST = 'application/vnd+relaycorp.awala.pnrr'
    REGISTRATION = 'application/vnd+relaycorp.awala.pnr'
    PARCEL = 'application/vnd.awala.parcel'


# The media type each operation expects in a successful response
RESPONSE_CONTENT_TYPES: Final[Mapping[str, PoWebContentType]] = MappingProxyType({
    'pre-register': PoWebContentType.REGISTRATION_AUTHORIZATION,
    'register': PoWebContentType.REGISTRATION,
})


def validate_content_type(actual: str | None, expected: str) -> None:
    """
    Check that a response declared exactly the expected media type.

    The comparison is a plain string comparison: media type parameters and
    wildcards are not interpreted, so any deviation is refused.
    """
    if actual != expected:
        raise ContentTypeError(actual)
