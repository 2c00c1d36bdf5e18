"""PEM codec for RSA keys and certificates, plus the X.509 signing primitive."""
from __future__ import annotations

import datetime
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union

from cryptography import x509
from cryptography.exceptions import InternalError, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID

from minica.common.errors import (
    EntropyExhausted,
    MalformedCertificate,
    MalformedKey,
    SigningFailure,
)
from minica.common.utils import as_utc, b64e

logger = logging.getLogger(__name__)

CERTIFICATE_TYPE = "CERTIFICATE"
PRIVATE_KEY_TYPE = "RSA PRIVATE KEY"

SERIAL_NUMBER_BYTES = 20
PUBLIC_EXPONENT = 65537
PEM_LINE_WIDTH = 64

# the x509 encoder cannot represent earlier times
EARLIEST_UTC_TIME = datetime.datetime(1950, 1, 1)

_PEM_BEGIN = re.compile(rb"-----BEGIN ([^-\r\n]+)-----")


class SecureRandom:
    """Cryptographically secure randomness provider.

    Serial numbers are drawn from the injected `source`, so tests can pass a
    deterministic or failing one. RSA key generation and signature padding
    always use OpenSSL's CSPRNG; cryptography offers no hook to replace it,
    so `generate_rsa` only maps its failures to EntropyExhausted.
    """

    def __init__(self, source: Callable[[int], bytes] = os.urandom):
        self._source = source

    def read(self, size: int) -> bytes:
        try:
            data = self._source(size)
        except (OSError, NotImplementedError) as exc:
            raise EntropyExhausted(f"secure random read: {exc}") from exc
        if len(data) != size:
            raise EntropyExhausted(f"secure random read: got {len(data)} of {size} bytes")
        return data

    def generate_rsa(self, bit_size: int) -> rsa.RSAPrivateKey:
        try:
            return rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=bit_size)
        except InternalError as exc:
            raise EntropyExhausted(f"rsa key generation: {exc}") from exc


SYSTEM_RANDOM = SecureRandom()


@dataclass
class KeyUsageFlags:
    cert_sign: bool = False
    crl_sign: bool = False

    def to_extension(self) -> x509.KeyUsage:
        return x509.KeyUsage(
            digital_signature=False,
            content_commitment=False,
            key_encipherment=False,
            data_encipherment=False,
            key_agreement=False,
            key_cert_sign=self.cert_sign,
            crl_sign=self.crl_sign,
            encipher_only=False,
            decipher_only=False,
        )


@dataclass
class CertificateTemplate:
    """Unsigned certificate: the fields `sign` turns into a DER certificate."""

    serial_number: int
    subject: x509.Name
    not_before: datetime.datetime
    not_after: datetime.datetime
    key_usage: KeyUsageFlags
    extended_key_usage: List[x509.ObjectIdentifier] = field(
        default_factory=lambda: [ExtendedKeyUsageOID.SERVER_AUTH]
    )
    basic_constraints_valid: bool = False
    is_ca: bool = False
    max_path_len: int = -1
    max_path_len_zero: bool = False
    dns_names: List[str] = field(default_factory=list)

    def path_length(self) -> Optional[int]:
        if self.max_path_len > 0:
            return self.max_path_len
        if self.max_path_len == 0 and self.max_path_len_zero:
            return 0
        return None


Issuer = Union[CertificateTemplate, x509.Certificate]


# ----------------------------------------------------------------------
# Keys
# ----------------------------------------------------------------------
def generate_key(bit_size: int, rng: SecureRandom = SYSTEM_RANDOM) -> rsa.RSAPrivateKey:
    logger.debug("generating %d-bit RSA key", bit_size)
    return rng.generate_rsa(bit_size)


def decode_key(data: bytes) -> rsa.RSAPrivateKey:
    match = _PEM_BEGIN.search(data)
    if match is None:
        raise MalformedKey("no PEM block found")
    label = match.group(1).decode("ascii", "replace")
    if label != PRIVATE_KEY_TYPE:
        raise MalformedKey(f"expected a {PRIVATE_KEY_TYPE} block, got {label!r}")
    try:
        key = serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise MalformedKey(f"parse private key: {exc}") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise MalformedKey(f"expected an RSA private key, got {type(key).__name__}")
    return key


def encode_key(key: rsa.RSAPrivateKey) -> bytes:
    # TraditionalOpenSSL for RSA is the PKCS#1 "RSA PRIVATE KEY" block
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


# ----------------------------------------------------------------------
# Certificates
# ----------------------------------------------------------------------
def decode_certificate(data: bytes) -> x509.Certificate:
    try:
        return x509.load_pem_x509_certificate(data)
    except ValueError as exc:
        raise MalformedCertificate(f"parse certificate: {exc}") from exc


def encode_certificate(der: bytes) -> bytes:
    body = b64e(der)
    lines = [f"-----BEGIN {CERTIFICATE_TYPE}-----"]
    lines += [body[i : i + PEM_LINE_WIDTH] for i in range(0, len(body), PEM_LINE_WIDTH)]
    lines.append(f"-----END {CERTIFICATE_TYPE}-----")
    return ("\n".join(lines) + "\n").encode("ascii")


def new_serial_number(rng: SecureRandom = SYSTEM_RANDOM) -> int:
    """Return 20 random bytes read as a non-negative big-endian integer."""
    return int.from_bytes(rng.read(SERIAL_NUMBER_BYTES), "big")


def _naive_utc(when: datetime.datetime) -> datetime.datetime:
    return as_utc(when).replace(tzinfo=None, microsecond=0)


def _issuer_key_identifier(issuer: Issuer) -> Optional[x509.AuthorityKeyIdentifier]:
    if not isinstance(issuer, x509.Certificate):
        return None
    try:
        ski = issuer.extensions.get_extension_for_class(x509.SubjectKeyIdentifier)
    except x509.ExtensionNotFound:
        return None
    return x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ski.value)


def sign(
    template: CertificateTemplate,
    issuer: Issuer,
    subject_public_key: rsa.RSAPublicKey,
    issuer_private_key: rsa.RSAPrivateKey,
) -> bytes:
    """Sign `template` as issued by `issuer` and return the DER certificate.

    `issuer` is the template itself for a self-signed root, otherwise the
    parent's certificate; only its subject name (and key identifier, when it
    has one) is used.
    """
    not_before = _naive_utc(template.not_before)
    not_after = _naive_utc(template.not_after)
    for what, when in (("not before", not_before), ("not after", not_after)):
        if when < EARLIEST_UTC_TIME:
            raise SigningFailure(f"sign certificate: {what} date {when} is earlier than 1950")

    # constructor arguments skip the setter checks, so inverted windows and
    # full 160-bit serials reach the encoder unchanged
    builder = x509.CertificateBuilder(
        issuer_name=issuer.subject,
        subject_name=template.subject,
        public_key=subject_public_key,
        serial_number=template.serial_number,
        not_valid_before=not_before,
        not_valid_after=not_after,
    )
    builder = builder.add_extension(template.key_usage.to_extension(), critical=True)
    if template.extended_key_usage:
        builder = builder.add_extension(
            x509.ExtendedKeyUsage(template.extended_key_usage), critical=False
        )
    if template.basic_constraints_valid:
        builder = builder.add_extension(
            x509.BasicConstraints(
                ca=template.is_ca,
                path_length=template.path_length() if template.is_ca else None,
            ),
            critical=True,
        )
    if template.dns_names:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(n) for n in template.dns_names]),
            critical=False,
        )
    if template.is_ca:
        builder = builder.add_extension(
            x509.SubjectKeyIdentifier.from_public_key(subject_public_key), critical=False
        )
    aki = _issuer_key_identifier(issuer)
    if aki is not None:
        builder = builder.add_extension(aki, critical=False)

    try:
        cert = builder.sign(private_key=issuer_private_key, algorithm=hashes.SHA256())
    except (ValueError, TypeError, UnsupportedAlgorithm, InternalError) as exc:
        raise SigningFailure(f"sign certificate: {exc}") from exc

    logger.debug("signed serial %x for %s", template.serial_number, template.subject.rfc4514_string())
    return cert.public_bytes(serialization.Encoding.DER)
