# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import hashlib
from os import PathLike
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import TypeAlias

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ec import EllipticCurvePrivateKey, EllipticCurvePublicKey
from cryptography.hazmat.primitives.asymmetric.ed448 import Ed448PrivateKey, Ed448PublicKey
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.serialization import BestAvailableEncryption, Encoding, NoEncryption, PrivateFormat, PublicFormat, load_pem_private_key

from poweb.python.types import MarkerEnum

__all__ = 'KeyType', 'PrivateKey', 'PublicKey', 'get_public_key_digest', 'load_private_key', 'save_private_key'


PrivateKey: TypeAlias = Ed25519PrivateKey | Ed448PrivateKey | EllipticCurvePrivateKey
PublicKey: TypeAlias = Ed25519PublicKey | Ed448PublicKey | EllipticCurvePublicKey


class KeyType(MarkerEnum):
    ED25519 = 'ED25519'
    ED448 = 'ED448'
    ECDSA = 'ECDSA'

    def generate(self) -> PrivateKey:
        match self:
            case KeyType.ED25519:
                return Ed25519PrivateKey.generate()
            case KeyType.ED448:
                return Ed448PrivateKey.generate()
            case KeyType.ECDSA:
                return ec.generate_private_key(ec.SECP256R1())


def get_public_key_digest(public_key: PublicKey) -> str:
    """Return the hex encoded SHA-256 digest of the DER SubjectPublicKeyInfo encoding of the key"""
    return hashlib.sha256(public_key.public_bytes(Encoding.DER, PublicFormat.SubjectPublicKeyInfo)).hexdigest()


def hash_algorithm(key: PrivateKey) -> hashes.SHA256 | None:
    """Return a hash algorithm that is suitable for signing with the key"""
    match key:
        case Ed25519PrivateKey() | Ed448PrivateKey():
            return None
        case EllipticCurvePrivateKey():
            return hashes.SHA256()
        case _:
            raise TypeError(f'Unsupported key type: {key.__class__.__qualname__!r}')


def load_private_key(path: str | PathLike[str], *, password: str | None = None) -> PrivateKey:
    key_data = Path(path).expanduser().read_bytes()
    key = load_pem_private_key(key_data, password=password.encode() if password is not None else None)
    match key:
        case Ed25519PrivateKey() | Ed448PrivateKey() | EllipticCurvePrivateKey():
            return key
        case _:
            raise TypeError(f'Unsupported key type: {key.__class__.__qualname__!r} (expected one of Ed25519, Ed448 or ECDSA)')


def save_private_key(key: PrivateKey, path: str | PathLike[str], *, password: str | None = None) -> None:
    key_encryption = BestAvailableEncryption(password.encode()) if password is not None else NoEncryption()
    key_data = key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, key_encryption)
    path = Path(path).expanduser()
    with NamedTemporaryFile(dir=path.parent, delete=False) as tempfile:
        tempfile.write(key_data)
    Path(tempfile.name).replace(path)
    path.chmod(0o600)
