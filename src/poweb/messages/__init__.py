# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Messages exchanged with a PoWeb server.

Binary messages share the same layout: a one byte message type followed by
the message fields. Variable length fields are prefixed with their length,
using the minimal number of bytes able to express the maximum field size.
All integers are represented in network byte order.

    Challenge                 type(1)  nonce<0..2^16-1>
    ChallengeResponse         type(2)  uint8 count  NonceSignature[count]
    ParcelDelivery            type(3)  delivery_id<1..2^8-1>  parcel<0..2^32-1>
    PrivateNodeRegistration   type(4)  CertificationPath  CertificationPath

    NonceSignature            signature<0..2^16-1>  certificate<0..2^24-1>
    CertificationPath         leaf<0..2^24-1>  uint8 count  certificate<0..2^24-1>[count]

Parcel acknowledgements are sent as text frames that contain the delivery id.

"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from io import BytesIO
from typing import ClassVar, Self

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ed448 import Ed448PublicKey
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from cryptography.hazmat.primitives.serialization import Encoding

from .datamodel import MessageType, Opaque16Adapter, Opaque24Adapter, Opaque32Adapter, String8Adapter, UInt8Adapter, WireData, read_buffer
from .exceptions import InvalidMessageError

__all__ = (  # noqa: RUF022
    'Message',
    'Challenge',
    'ChallengeResponse',
    'ParcelDelivery',
    'PrivateNodeRegistration',

    'NonceSignature',
    'CertificationPath',
    'ParcelAck',

    'InvalidMessageError',
    'MessageType',
)


def _certificate_from_wire(buffer: BytesIO) -> x509.Certificate:
    return x509.load_der_x509_certificate(Opaque24Adapter.from_wire(buffer))


def _certificate_to_wire(certificate: x509.Certificate) -> bytes:
    return Opaque24Adapter.to_wire(certificate.public_bytes(Encoding.DER))


@dataclass(frozen=True)
class NonceSignature:
    signature: bytes
    certificate: x509.Certificate

    @classmethod
    def from_wire(cls, buffer: WireData) -> Self:
        buffer = read_buffer(buffer)
        signature = Opaque16Adapter.from_wire(buffer)
        return cls(signature=signature, certificate=_certificate_from_wire(buffer))

    def to_wire(self) -> bytes:
        return Opaque16Adapter.to_wire(self.signature) + _certificate_to_wire(self.certificate)

    def verify(self, data: bytes) -> None:
        """Raise ValueError unless this is a signature of data made with the certificate's key"""
        public_key = self.certificate.public_key()
        try:
            match public_key:
                case Ed25519PublicKey() | Ed448PublicKey():
                    public_key.verify(self.signature, data)
                case ec.EllipticCurvePublicKey():
                    public_key.verify(self.signature, data, ec.ECDSA(hashes.SHA256()))
                case _:
                    raise ValueError(f'Unsupported signer key type: {public_key.__class__.__qualname__!r}')
        except InvalidSignature as exc:
            raise ValueError('The signature does not match the data') from exc


@dataclass(frozen=True)
class CertificationPath:
    leaf_certificate: x509.Certificate
    certificate_authorities: Sequence[x509.Certificate] = ()

    @classmethod
    def from_wire(cls, buffer: WireData) -> Self:
        buffer = read_buffer(buffer)
        leaf_certificate = _certificate_from_wire(buffer)
        count = UInt8Adapter.from_wire(buffer)
        return cls(leaf_certificate, tuple(_certificate_from_wire(buffer) for _ in range(count)))

    def to_wire(self) -> bytes:
        data = _certificate_to_wire(self.leaf_certificate) + UInt8Adapter.to_wire(len(self.certificate_authorities))
        return data + b''.join(_certificate_to_wire(certificate) for certificate in self.certificate_authorities)


class Message:
    _type_: ClassVar[MessageType]

    @classmethod
    def from_wire(cls, data: bytes | bytearray | memoryview) -> Self:
        buffer = BytesIO(data)
        try:
            message_type = MessageType(UInt8Adapter.from_wire(buffer))
            if message_type is not cls._type_:
                raise ValueError(f'Expected a {cls._type_.name} message, got a {message_type.name} message')
            message = cls._fields_from_wire(buffer)
            if buffer.read(1):
                raise ValueError('Unexpected trailing data after the message')
        except ValueError as exc:
            raise InvalidMessageError(f'Cannot deserialize {cls.__qualname__}: {exc}') from exc
        return message

    def to_wire(self) -> bytes:
        return UInt8Adapter.to_wire(self._type_) + self._fields_to_wire()

    @classmethod
    def _fields_from_wire(cls, buffer: BytesIO) -> Self:
        raise NotImplementedError

    def _fields_to_wire(self) -> bytes:
        raise NotImplementedError


@dataclass(frozen=True)
class Challenge(Message):
    _type_: ClassVar[MessageType] = MessageType.challenge

    nonce: bytes

    @classmethod
    def _fields_from_wire(cls, buffer: BytesIO) -> Self:
        return cls(nonce=Opaque16Adapter.from_wire(buffer))

    def _fields_to_wire(self) -> bytes:
        return Opaque16Adapter.to_wire(self.nonce)


@dataclass(frozen=True)
class ChallengeResponse(Message):
    _type_: ClassVar[MessageType] = MessageType.challenge_response

    nonce_signatures: Sequence[NonceSignature]

    def __post_init__(self) -> None:
        if not 0 < len(self.nonce_signatures) <= 2**8 - 1:
            raise ValueError('A challenge response must contain between 1 and 255 nonce signatures')

    @classmethod
    def _fields_from_wire(cls, buffer: BytesIO) -> Self:
        count = UInt8Adapter.from_wire(buffer)
        return cls(nonce_signatures=tuple(NonceSignature.from_wire(buffer) for _ in range(count)))

    def _fields_to_wire(self) -> bytes:
        return UInt8Adapter.to_wire(len(self.nonce_signatures)) + b''.join(signature.to_wire() for signature in self.nonce_signatures)


@dataclass(frozen=True)
class ParcelDelivery(Message):
    _type_: ClassVar[MessageType] = MessageType.parcel_delivery

    delivery_id: str
    parcel_serialized: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if not self.delivery_id:
            raise ValueError('The delivery id cannot be empty')

    @classmethod
    def _fields_from_wire(cls, buffer: BytesIO) -> Self:
        delivery_id = String8Adapter.from_wire(buffer)
        return cls(delivery_id=delivery_id, parcel_serialized=Opaque32Adapter.from_wire(buffer))

    def _fields_to_wire(self) -> bytes:
        return String8Adapter.to_wire(self.delivery_id) + Opaque32Adapter.to_wire(self.parcel_serialized)


@dataclass(frozen=True)
class PrivateNodeRegistration(Message):
    _type_: ClassVar[MessageType] = MessageType.private_node_registration

    private_node_certification_path: CertificationPath
    gateway_certification_path: CertificationPath

    @property
    def private_node_certificate(self) -> x509.Certificate:
        return self.private_node_certification_path.leaf_certificate

    @property
    def gateway_certificate(self) -> x509.Certificate:
        return self.gateway_certification_path.leaf_certificate

    @classmethod
    def _fields_from_wire(cls, buffer: BytesIO) -> Self:
        private_node_certification_path = CertificationPath.from_wire(buffer)
        return cls(private_node_certification_path, CertificationPath.from_wire(buffer))

    def _fields_to_wire(self) -> bytes:
        return self.private_node_certification_path.to_wire() + self.gateway_certification_path.to_wire()


@dataclass(frozen=True)
class ParcelAck:
    delivery_id: str

    def __post_init__(self) -> None:
        if not self.delivery_id:
            raise ValueError('The delivery id cannot be empty')

    def to_text(self) -> str:
        return self.delivery_id
