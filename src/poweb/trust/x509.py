# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from functools import cached_property
from os import PathLike
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Self

from cryptography import x509
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.x509 import Certificate, CertificateBuilder, Name
from cryptography.x509.oid import NameOID

from poweb.messages import CertificationPath

from .keys import KeyType, PrivateKey, PublicKey, hash_algorithm

__all__ = 'CA', 'load_certificate', 'make_name', 'save_certificate'


def make_name(common_name: str, organization: str | None = None) -> Name:
    attributes = [x509.NameAttribute(NameOID.COMMON_NAME, common_name)]
    if organization is not None:
        attributes.insert(0, x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization))
    return Name(attributes)


@dataclass
class CA:
    """
    A certificate authority able to issue node certificates.

    Gateways act as certificate authorities for the private nodes they
    register, so a registration carries two certification paths: the one
    of the private node, issued by the gateway, and the one of the gateway.
    """

    private_key: PrivateKey
    certificate: Certificate
    parent: Self | None = None

    def __post_init__(self) -> None:
        if self.private_key.public_key() != self.certificate.public_key():
            raise ValueError('The certificate and the private key do not match each other!')
        if not self.certificate.extensions.get_extension_for_class(x509.BasicConstraints).value.ca:
            raise ValueError('The certificate is not a CA!')

    @cached_property
    def path_length(self) -> int | None:
        return self.certificate.extensions.get_extension_for_class(x509.BasicConstraints).value.path_length

    @property
    def certification_path(self) -> CertificationPath:
        authorities = []
        parent = self.parent
        while parent is not None:
            authorities.append(parent.certificate)
            parent = parent.parent
        return CertificationPath(self.certificate, tuple(authorities))

    @classmethod
    def new(cls, subject: Name, private_key: KeyType | PrivateKey = KeyType.ED25519, parent_ca: Self | None = None, years: int | None = None) -> Self:
        if not subject:
            raise ValueError('The subject name must have at least one name attribute')
        if parent_ca is not None:
            if parent_ca.path_length == 0:
                raise ValueError('The parent CA cannot create any other intermediary CAs')
            path_length = None if parent_ca.path_length is None else parent_ca.path_length - 1
            issuer = parent_ca.certificate.subject
            years = years or 10
            start_date = datetime.now(tz=UTC)
            end_date = min(start_date.replace(year=start_date.year + years), parent_ca.certificate.not_valid_after_utc)
        else:
            path_length = None
            issuer = subject
            years = years or 30
            start_date = datetime.now(tz=UTC)
            end_date = start_date.replace(year=start_date.year + years)

        if isinstance(private_key, KeyType):
            private_key = private_key.generate()

        public_key = private_key.public_key()

        cert_builder = CertificateBuilder(
            issuer_name=issuer,
            subject_name=subject,
            public_key=public_key,
            serial_number=x509.random_serial_number(),
            not_valid_before=start_date,
            not_valid_after=end_date,
        ).add_extension(
            x509.BasicConstraints(ca=True, path_length=path_length),
            critical=True,
        ).add_extension(
            x509.SubjectKeyIdentifier.from_public_key(public_key),
            critical=False,
        )
        signing_key = parent_ca.private_key if parent_ca is not None else private_key
        certificate = cert_builder.sign(signing_key, algorithm=hash_algorithm(signing_key))

        return cls(private_key, certificate, parent_ca)

    def issue_certificate(self, public_key: PublicKey, *, subject: Name, days: int = 180) -> Certificate:
        start_date = datetime.now(tz=UTC)
        end_date = start_date + timedelta(days=days)
        if end_date > self.certificate.not_valid_after_utc:
            raise ValueError(f'The requested period of {days} days exceeds the lifetime of this certificate authority')

        cert_builder = CertificateBuilder(
            issuer_name=self.certificate.subject,
            subject_name=subject,
            public_key=public_key,
            serial_number=x509.random_serial_number(),
            not_valid_before=start_date,
            not_valid_after=end_date,
        ).add_extension(
            x509.BasicConstraints(ca=False, path_length=None),
            critical=True,
        ).add_extension(
            x509.SubjectKeyIdentifier.from_public_key(public_key),
            critical=False,
        ).add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(self.certificate.extensions.get_extension_for_class(x509.SubjectKeyIdentifier).value),
            critical=False,
        )

        return cert_builder.sign(self.private_key, algorithm=hash_algorithm(self.private_key))

    def issue_certification_path(self, public_key: PublicKey, *, subject: Name, days: int = 180) -> CertificationPath:
        path = self.certification_path
        certificate = self.issue_certificate(public_key, subject=subject, days=days)
        return CertificationPath(certificate, (path.leaf_certificate, *path.certificate_authorities))


def load_certificate(path: str | PathLike[str]) -> Certificate:
    return x509.load_pem_x509_certificate(Path(path).expanduser().read_bytes())


def save_certificate(certificate: Certificate, path: str | PathLike[str]) -> None:
    certificate_data = certificate.public_bytes(Encoding.PEM)
    path = Path(path).expanduser()
    with NamedTemporaryFile(dir=path.parent, delete=False) as tempfile:
        tempfile.write(certificate_data)
    Path(tempfile.name).replace(path)
    path.chmod(0o644)
