# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import pytest

from poweb import PoWebContentType
from poweb.content import RESPONSE_CONTENT_TYPES, validate_content_type
from poweb.exceptions import ContentTypeError, ServerBindingError


class TestContentTypes:

    def test_media_types(self) -> None:
        assert PoWebContentType.PRE_REGISTRATION == 'text/plain'
        assert PoWebContentType.REGISTRATION_AUTHORIZATION == 'application/vnd+relaycorp.awala.pnra'
        assert PoWebContentType.REGISTRATION_REQUEST == 'application/vnd+relaycorp.awala.pnrr'
        assert PoWebContentType.REGISTRATION == 'application/vnd+relaycorp.awala.pnr'
        assert PoWebContentType.PARCEL == 'application/vnd.awala.parcel'
        assert f'{PoWebContentType.PARCEL}' == 'application/vnd.awala.parcel'

    def test_response_content_types(self) -> None:
        assert RESPONSE_CONTENT_TYPES['pre-register'] is PoWebContentType.REGISTRATION_AUTHORIZATION
        assert RESPONSE_CONTENT_TYPES['register'] is PoWebContentType.REGISTRATION
        with pytest.raises(TypeError):
            RESPONSE_CONTENT_TYPES['deliver'] = PoWebContentType.PARCEL  # type: ignore[index]

    def test_validation(self) -> None:
        validate_content_type('application/vnd+relaycorp.awala.pnr', PoWebContentType.REGISTRATION)

        for content_type in ('application/json', 'application/vnd+relaycorp.awala.pnr; charset=utf-8', 'APPLICATION/VND+RELAYCORP.AWALA.PNR', '*/*', '', None):
            with pytest.raises(ContentTypeError) as exc_info:
                validate_content_type(content_type, PoWebContentType.REGISTRATION)
            assert exc_info.value.content_type == content_type
            assert isinstance(exc_info.value, ServerBindingError)

    def test_error_message(self) -> None:
        assert str(ContentTypeError('application/json')) == 'The server returned an invalid Content-Type (application/json)'
        assert str(ContentTypeError(None)) == 'The server returned an invalid Content-Type (None)'
