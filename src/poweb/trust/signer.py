# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from dataclasses import dataclass

from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ec import EllipticCurvePrivateKey
from cryptography.hazmat.primitives.asymmetric.ed448 import Ed448PrivateKey
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.x509 import Certificate

from poweb.messages import NonceSignature

from .keys import PrivateKey, hash_algorithm

__all__ = 'Signer',  # noqa: COM818


@dataclass(frozen=True)
class Signer:
    """Sign handshake nonces and parcel countersignatures with a node's private key"""

    private_key: PrivateKey
    certificate: Certificate

    def __post_init__(self) -> None:
        if self.private_key.public_key() != self.certificate.public_key():
            raise ValueError('The certificate and the private key do not match each other!')

    def sign(self, data: bytes) -> NonceSignature:
        key = self.private_key
        match key:
            case Ed25519PrivateKey() | Ed448PrivateKey():
                signature = key.sign(data)
            case EllipticCurvePrivateKey():
                signature = key.sign(data, ec.ECDSA(hash_algorithm(key)))
            case _:
                raise TypeError(f'Unsupported key type: {key.__class__.__qualname__!r}')
        return NonceSignature(signature=signature, certificate=self.certificate)
