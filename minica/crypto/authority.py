"""Root, intermediate and leaf authorities: templates, signing, load/save."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import Sequence, Tuple, Union

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa

from minica.common.errors import IOFailure, NoSignedBytes
from minica.common.models import CertificateRequestData
from minica.crypto import codec
from minica.crypto.codec import CertificateTemplate, KeyUsageFlags, SecureRandom

logger = logging.getLogger(__name__)

KEY_SIZE = 2048

KEY_EXTENSION = "pem"
CERT_EXTENSION = "crt"

DIR_MODE = 0o777
KEY_FILE_MODE = 0o600
CERT_FILE_MODE = 0o644


@dataclass(frozen=True)
class BundlePaths:
    key_path: Path
    cert_path: Path


@dataclass(frozen=True)
class LoadedAuthority:
    """Key and certificate read from disk. Can sign children, cannot be saved."""

    key: rsa.RSAPrivateKey
    certificate: x509.Certificate


@dataclass(frozen=True)
class FreshAuthority:
    """Authority created in this process, holding its signed DER bytes."""

    key: rsa.RSAPrivateKey
    template: CertificateTemplate
    signed: bytes

    @cached_property
    def certificate(self) -> x509.Certificate:
        return x509.load_der_x509_certificate(self.signed)

    def save(self, directory: Union[str, Path], name: str) -> BundlePaths:
        return save_authority(self, directory, name)


Authority = Union[FreshAuthority, LoadedAuthority]


def bundle_paths(directory: Union[str, Path], name: str) -> BundlePaths:
    directory = Path(directory)
    return BundlePaths(
        key_path=directory / f"{name}.{KEY_EXTENSION}",
        cert_path=directory / f"{name}.{CERT_EXTENSION}",
    )


# ----------------------------------------------------------------------
# Creation
# ----------------------------------------------------------------------
def _ca_template(data: CertificateRequestData, serial: int, max_path_len: int) -> CertificateTemplate:
    return CertificateTemplate(
        serial_number=serial,
        subject=data.subject.to_name(),
        not_before=data.validity.not_before,
        not_after=data.validity.not_after,
        key_usage=KeyUsageFlags(cert_sign=True, crl_sign=True),
        basic_constraints_valid=True,
        is_ca=True,
        max_path_len=max_path_len,
        max_path_len_zero=False,
    )


def make_root_authority(
    data: CertificateRequestData, rng: SecureRandom = codec.SYSTEM_RANDOM
) -> FreshAuthority:
    """Create a self-signed root CA allowing two more CA levels below it."""
    key = codec.generate_key(KEY_SIZE, rng)
    template = _ca_template(data, codec.new_serial_number(rng), max_path_len=2)

    signed = codec.sign(template, template, key.public_key(), key)
    logger.info("created root authority %s", template.subject.rfc4514_string())
    return FreshAuthority(key=key, template=template, signed=signed)


def make_intermediate_authority(
    data: CertificateRequestData,
    parent: Authority,
    rng: SecureRandom = codec.SYSTEM_RANDOM,
) -> FreshAuthority:
    """Create a CA signed by `parent` allowing one more CA level below it."""
    key = codec.generate_key(KEY_SIZE, rng)
    template = _ca_template(data, codec.new_serial_number(rng), max_path_len=1)

    signed = codec.sign(template, parent.certificate, key.public_key(), parent.key)
    logger.info(
        "created intermediate authority %s issued by %s",
        template.subject.rfc4514_string(),
        parent.certificate.subject.rfc4514_string(),
    )
    return FreshAuthority(key=key, template=template, signed=signed)


def make_leaf_certificate(
    data: CertificateRequestData,
    parent: Authority,
    dns_names: Sequence[str] = (),
    rng: SecureRandom = codec.SYSTEM_RANDOM,
) -> FreshAuthority:
    """Create an end-entity certificate signed by `parent`.

    `dns_names` go into the subjectAltName extension in the given order; an
    empty sequence leaves the extension out. The leaf carries no basic
    constraints, so it is never a CA.
    """
    key = codec.generate_key(KEY_SIZE, rng)
    template = CertificateTemplate(
        serial_number=codec.new_serial_number(rng),
        subject=data.subject.to_name(),
        not_before=data.validity.not_before,
        not_after=data.validity.not_after,
        key_usage=KeyUsageFlags(crl_sign=True),
        is_ca=False,
        max_path_len_zero=True,
        dns_names=list(dns_names),
    )

    signed = codec.sign(template, parent.certificate, key.public_key(), parent.key)
    logger.info(
        "created leaf certificate %s issued by %s (%d DNS names)",
        template.subject.rfc4514_string(),
        parent.certificate.subject.rfc4514_string(),
        len(template.dns_names),
    )
    return FreshAuthority(key=key, template=template, signed=signed)


# ----------------------------------------------------------------------
# Persistence
# ----------------------------------------------------------------------
def _read_file(path: Path, what: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as exc:
        raise IOFailure(f"open {what} file: {exc}") from exc


def load_authority(directory: Union[str, Path], name: str) -> Tuple[LoadedAuthority, BundlePaths]:
    """Read `<directory>/<name>.pem` and `<directory>/<name>.crt`."""
    paths = bundle_paths(directory, name)

    key = codec.decode_key(_read_file(paths.key_path, "key"))
    cert = codec.decode_certificate(_read_file(paths.cert_path, "cert"))

    logger.debug("loaded authority %s from %s", cert.subject.rfc4514_string(), paths.cert_path)
    return LoadedAuthority(key=key, certificate=cert), paths


def _write_file(path: Path, data: bytes, mode: int, what: str) -> None:
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    except OSError as exc:
        raise IOFailure(f"ca {what} creation: {exc}") from exc

    with os.fdopen(fd, "wb") as f:
        # explicit chmod: the open mode is filtered by umask and ignored for existing files
        try:
            os.fchmod(f.fileno(), mode)
        except OSError as exc:
            raise IOFailure(f"ca {what} chmod: {exc}") from exc
        try:
            f.write(data)
        except OSError as exc:
            raise IOFailure(f"ca {what} write: {exc}") from exc


def save_authority(
    authority: Authority, directory: Union[str, Path], name: str
) -> BundlePaths:
    """Write the key (0600) then the certificate (0644) of a fresh authority.

    Not transactional: if the certificate write fails the key file is left
    behind.
    """
    if not isinstance(authority, FreshAuthority) or not authority.signed:
        raise NoSignedBytes("cannot save imported certificate authority")

    directory = Path(directory)
    if not directory.is_dir():
        try:
            directory.mkdir(mode=DIR_MODE)
        except OSError as exc:
            raise IOFailure(f"ca directory creation: {exc}") from exc

    paths = bundle_paths(directory, name)
    _write_file(paths.key_path, codec.encode_key(authority.key), KEY_FILE_MODE, "key")
    _write_file(paths.cert_path, codec.encode_certificate(authority.signed), CERT_FILE_MODE, "cert")

    logger.debug("saved bundle %s / %s", paths.key_path, paths.cert_path)
    return paths
