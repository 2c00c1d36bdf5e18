"""X.509 inspection: issued-by, validity window, SAN, basic constraints."""
from __future__ import annotations

import datetime
from typing import List, Optional

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding

from minica.common.errors import MiniCAError
from minica.common.utils import colon_hex, sha256_hex, utc_now
from minica.crypto import codec


class BadCertificate(MiniCAError):
    """Raised when a certificate check fails."""


def load_certificate_pem(path: str) -> x509.Certificate:
    with open(path, "rb") as f:
        return codec.decode_certificate(f.read())


def is_valid_at(cert: x509.Certificate, at: Optional[datetime.datetime] = None) -> bool:
    now = at or utc_now()
    return cert.not_valid_before_utc <= now <= cert.not_valid_after_utc


def verify_cert_signed_by(cert: x509.Certificate, issuer_cert: x509.Certificate):
    if cert.issuer != issuer_cert.subject:
        raise BadCertificate(
            f"Issuer mismatch: {cert.issuer.rfc4514_string()!r} != "
            f"{issuer_cert.subject.rfc4514_string()!r}"
        )
    try:
        issuer_cert.public_key().verify(
            cert.signature,
            cert.tbs_certificate_bytes,
            padding.PKCS1v15(),
            cert.signature_hash_algorithm,
        )
    except InvalidSignature as e:
        raise BadCertificate("Certificate not signed by the given issuer") from e


def get_san_dns_names(cert: x509.Certificate) -> List[str]:
    """DNS names from the SAN extension, in certificate order (empty if missing)."""
    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return []
    return san.value.get_values_for_type(x509.DNSName)


def get_basic_constraints(cert: x509.Certificate) -> Optional[x509.BasicConstraints]:
    try:
        return cert.extensions.get_extension_for_class(x509.BasicConstraints).value
    except x509.ExtensionNotFound:
        return None


def is_ca_certificate(cert: x509.Certificate) -> bool:
    bc = get_basic_constraints(cert)
    return bc is not None and bc.ca is True


def get_key_usage(cert: x509.Certificate) -> Optional[x509.KeyUsage]:
    try:
        return cert.extensions.get_extension_for_class(x509.KeyUsage).value
    except x509.ExtensionNotFound:
        return None


def fingerprint(cert: x509.Certificate) -> str:
    return colon_hex(sha256_hex(cert.public_bytes(serialization.Encoding.DER)))


def describe_certificate(cert: x509.Certificate) -> List[str]:
    """Human-readable summary lines for the CLI."""
    lines = [
        f"Subject    : {cert.subject.rfc4514_string()}",
        f"Issuer     : {cert.issuer.rfc4514_string()}",
        f"Serial     : {cert.serial_number:x}",
        f"Not Before : {cert.not_valid_before_utc}",
        f"Not After  : {cert.not_valid_after_utc}",
    ]
    bc = get_basic_constraints(cert)
    if bc is not None and bc.ca:
        path_len = "unlimited" if bc.path_length is None else bc.path_length
        lines.append(f"CA         : yes (path length {path_len})")
    else:
        lines.append("CA         : no")
    names = get_san_dns_names(cert)
    if names:
        lines.append(f"DNS Names  : {', '.join(names)}")
    lines.append(f"SHA-256    : {fingerprint(cert)}")
    if not is_valid_at(cert):
        lines.append("Warning    : certificate is not valid at the current time")
    return lines
