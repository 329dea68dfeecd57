# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from io import BytesIO

import pytest

from pki import make_gateway_ca, make_registration, make_signer
from poweb.messages import (
    CertificationPath,
    Challenge,
    ChallengeResponse,
    InvalidMessageError,
    MessageType,
    NonceSignature,
    ParcelAck,
    ParcelDelivery,
    PrivateNodeRegistration,
)
from poweb.messages.datamodel import Opaque16Adapter, Opaque24Adapter, Opaque32Adapter, String8Adapter, UInt8Adapter, byte_length
from poweb.trust import KeyType


class TestDataModel:

    def test_byte_length(self) -> None:
        assert byte_length(0) == 0
        assert byte_length(2**8 - 1) == 1
        assert byte_length(2**16 - 1) == 2
        assert byte_length(2**24 - 1) == 3
        assert byte_length(2**32 - 1) == 4

    def test_unsigned_adapters(self) -> None:
        assert UInt8Adapter.from_wire(BytesIO(bytes(4))) == 0
        assert UInt8Adapter.to_wire(255) == b'\xff'

        with pytest.raises(ValueError, match='Insufficient data in buffer to extract'):
            UInt8Adapter.from_wire(b'')
        with pytest.raises(ValueError, match='Value is out of range for'):
            UInt8Adapter.validate(-1)
        with pytest.raises(ValueError, match='Value is out of range for'):
            UInt8Adapter.validate(256)

    def test_bytes_adapters(self) -> None:
        for adapter, sizelen in ((Opaque16Adapter, 2), (Opaque24Adapter, 3), (Opaque32Adapter, 4)):
            assert adapter._sizelen_ == sizelen
            assert adapter.to_wire(b'test') == (4).to_bytes(sizelen, byteorder='big') + b'test'
            assert adapter.from_wire(adapter.to_wire(b'')) == b''

            with pytest.raises(ValueError, match='Insufficient data in buffer to extract the opaque bytes length'):
                adapter.from_wire(b'')
            with pytest.raises(ValueError, match='Insufficient data in buffer to extract the opaque bytes'):
                adapter.from_wire(adapter.to_wire(b'test')[:-1])

        with pytest.raises(ValueError, match='Value is too long for opaque bytes '):
            Opaque16Adapter.validate(bytes(2**16))

    def test_string_adapters(self) -> None:
        assert String8Adapter.to_wire('test') == b'\x04test'
        assert String8Adapter.from_wire(b'\x02\xc3\xa9') == '\xe9'

        with pytest.raises(ValueError, match='Value is too long for opaque bytes '):
            String8Adapter.to_wire(256 * 'x')
        with pytest.raises(ValueError, match='Cannot decode bytes to string'):
            String8Adapter.from_wire(b'\x01\xff')


class TestMessages:

    def test_challenge(self) -> None:
        assert Challenge(b'nonce').to_wire() == b'\x01\x00\x05nonce'
        assert Challenge.from_wire(b'\x01\x00\x05nonce') == Challenge(b'nonce')

        with pytest.raises(InvalidMessageError, match='Cannot deserialize Challenge: Insufficient data'):
            Challenge.from_wire(b'\x01\x00')
        with pytest.raises(InvalidMessageError, match='Cannot deserialize Challenge: Unexpected trailing data'):
            Challenge.from_wire(b'\x01\x00\x05nonce!')
        with pytest.raises(InvalidMessageError, match='Cannot deserialize Challenge: Expected a challenge message, got a parcel_delivery message'):
            Challenge.from_wire(ParcelDelivery('delivery', b'parcel').to_wire())
        with pytest.raises(InvalidMessageError, match='Cannot deserialize Challenge: '):
            Challenge.from_wire(b'\x07')
        with pytest.raises(InvalidMessageError):
            Challenge.from_wire(b'')

    def test_challenge_response(self) -> None:
        authority = make_gateway_ca()
        signers = [make_signer(authority), make_signer(authority, KeyType.ECDSA)]
        response = ChallengeResponse([signer.sign(b'nonce') for signer in signers])
        data = response.to_wire()

        assert data[0] == MessageType.challenge_response
        assert data[1] == len(signers)
        parsed = ChallengeResponse.from_wire(data)
        assert [signature.certificate for signature in parsed.nonce_signatures] == [signer.certificate for signer in signers]
        for signature in parsed.nonce_signatures:
            signature.verify(b'nonce')

        with pytest.raises(ValueError, match='between 1 and 255 nonce signatures'):
            ChallengeResponse([])
        with pytest.raises(ValueError, match='between 1 and 255 nonce signatures'):
            ChallengeResponse(256 * [response.nonce_signatures[0]])
        with pytest.raises(InvalidMessageError, match='Cannot deserialize ChallengeResponse: '):
            ChallengeResponse.from_wire(b'\x02\x00')
        with pytest.raises(InvalidMessageError, match='Cannot deserialize ChallengeResponse: '):
            ChallengeResponse.from_wire(data[:-1])

    def test_parcel_delivery(self) -> None:
        delivery = ParcelDelivery('the-id', b'the parcel')
        assert delivery.to_wire() == b'\x03\x06the-id\x00\x00\x00\x0athe parcel'
        assert ParcelDelivery.from_wire(delivery.to_wire()) == delivery

        with pytest.raises(ValueError, match='The delivery id cannot be empty'):
            ParcelDelivery('', b'parcel')
        with pytest.raises(InvalidMessageError, match='Cannot deserialize ParcelDelivery: The delivery id cannot be empty'):
            ParcelDelivery.from_wire(b'\x03\x00\x00\x00\x00\x00')
        with pytest.raises(InvalidMessageError, match='Cannot deserialize ParcelDelivery: '):
            ParcelDelivery.from_wire(b'\x03\x06the-id\x00\x00')

    def test_private_node_registration(self) -> None:
        registration = make_registration(make_gateway_ca())
        parsed = PrivateNodeRegistration.from_wire(registration.to_wire())
        assert parsed == registration
        assert parsed.private_node_certificate == registration.private_node_certification_path.leaf_certificate
        assert parsed.gateway_certificate == registration.gateway_certification_path.leaf_certificate
        assert len(parsed.private_node_certification_path.certificate_authorities) == 2
        assert len(parsed.gateway_certification_path.certificate_authorities) == 1

        with pytest.raises(InvalidMessageError, match='Cannot deserialize PrivateNodeRegistration: '):
            PrivateNodeRegistration.from_wire(b'\x04\x00\x00\x03abc\x00\x00\x00\x03abc\x00')

    def test_parcel_ack(self) -> None:
        assert ParcelAck('the-id').to_text() == 'the-id'

        with pytest.raises(ValueError, match='The delivery id cannot be empty'):
            ParcelAck('')


class TestElements:

    def test_nonce_signature(self) -> None:
        signer = make_signer(make_gateway_ca(), KeyType.ECDSA)
        signature = signer.sign(b'nonce')
        parsed = NonceSignature.from_wire(signature.to_wire())
        assert parsed == signature
        parsed.verify(b'nonce')

        with pytest.raises(ValueError, match='The signature does not match the data'):
            parsed.verify(b'another nonce')

    def test_certification_path(self) -> None:
        authority = make_gateway_ca()
        path = authority.certification_path
        assert path.certificate_authorities == (authority.parent.certificate,)
        assert CertificationPath.from_wire(path.to_wire()) == path

        with pytest.raises(ValueError, match='Insufficient data in buffer to extract the opaque bytes'):
            CertificationPath.from_wire(path.to_wire()[:-1])

        leaf_only = CertificationPath(authority.certificate)
        assert CertificationPath.from_wire(leaf_only.to_wire()).certificate_authorities == ()
