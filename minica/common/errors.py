"""Error kinds raised by the CA builder and codec."""
from __future__ import annotations


class MiniCAError(Exception):
    """Base class for every error this package raises."""


class IOFailure(MiniCAError):
    """Opening, creating, reading, writing or chmod-ing a bundle file failed."""


class MalformedKey(MiniCAError):
    """Key PEM block is missing or its payload is not an RSA PKCS#1 key."""


class MalformedCertificate(MiniCAError):
    """Certificate PEM block is missing or its payload is not DER X.509."""


class SigningFailure(MiniCAError):
    """The signing backend rejected the template or keys."""


class NoSignedBytes(MiniCAError):
    """Only a freshly signed authority can be saved; a loaded one cannot."""


class EntropyExhausted(MiniCAError):
    """The secure random source failed. Callers must not continue."""
