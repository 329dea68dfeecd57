# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import unittest
from base64 import b64decode

from mockserver import MockPoWebServer
from pki import make_gateway_ca, make_signer
from poweb import PoWebClient, PoWebContentType
from poweb.exceptions import ClientBindingError, RejectedParcelError, ServerConnectionError
from poweb.messages import NonceSignature


class TestParcelDelivery(unittest.IsolatedAsyncioTestCase):
    parcel_serialized = b'The parcel'

    @classmethod
    def setUpClass(cls) -> None:
        cls.signer = make_signer(make_gateway_ca())

    async def asyncSetUp(self) -> None:
        self.server = MockPoWebServer()
        await self.server.start()
        self.client = PoWebClient(self.server.configuration)

    async def asyncTearDown(self) -> None:
        await self.client.close()
        await self.server.close()

    async def test_request_method_and_endpoint(self) -> None:
        self.server.respond(status=202)
        await self.client.deliver_parcel(self.parcel_serialized, self.signer)
        request, = self.server.requests
        self.assertEqual(request.method, 'POST')
        self.assertEqual(request.path, '/v1/parcels')

    async def test_request_content_type(self) -> None:
        self.server.respond(status=202)
        await self.client.deliver_parcel(self.parcel_serialized, self.signer)
        self.assertEqual(self.server.requests[0].content_type, PoWebContentType.PARCEL)

    async def test_request_body_is_the_parcel(self) -> None:
        self.server.respond(status=202)
        await self.client.deliver_parcel(self.parcel_serialized, self.signer)
        self.assertEqual(self.server.requests[0].body, self.parcel_serialized)

    async def test_countersignature(self) -> None:
        self.server.respond(status=202)
        await self.client.deliver_parcel(self.parcel_serialized, self.signer)
        scheme, _, credentials = self.server.requests[0].headers['Authorization'].partition(' ')
        self.assertEqual(scheme, 'Relaynet-Countersignature')
        countersignature = NonceSignature.from_wire(b64decode(credentials))
        self.assertEqual(countersignature.certificate, self.signer.certificate)
        countersignature.verify(self.parcel_serialized)
        with self.assertRaises(ValueError):
            countersignature.verify(b'Another parcel')

    async def test_rejected_parcel(self) -> None:
        self.server.respond(status=422)
        with self.assertRaises(RejectedParcelError):
            await self.client.deliver_parcel(self.parcel_serialized, self.signer)

    async def test_other_client_errors(self) -> None:
        self.server.respond(status=403)
        with self.assertRaises(ClientBindingError) as context:
            await self.client.deliver_parcel(self.parcel_serialized, self.signer)
        self.assertNotIsInstance(context.exception, RejectedParcelError)

    async def test_server_error(self) -> None:
        self.server.respond(status=500)
        with self.assertRaises(ServerConnectionError):
            await self.client.deliver_parcel(self.parcel_serialized, self.signer)
