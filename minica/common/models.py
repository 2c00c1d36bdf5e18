"""Pydantic models: subject identity, validity window, certificate request data."""
from __future__ import annotations

import datetime
import re

from cryptography import x509
from cryptography.x509.name import _ASN1Type
from cryptography.x509.oid import NameOID
from pydantic import BaseModel

# characters allowed in an ASN.1 PrintableString
_PRINTABLE = re.compile(r"[A-Za-z0-9 '()+,\-./:=?]*")


def _country_attribute(value: str) -> x509.NameAttribute:
    # country codes are not length-checked; values PrintableString cannot hold
    # are encoded as UTF8String instead
    if _PRINTABLE.fullmatch(value):
        return x509.NameAttribute(NameOID.COUNTRY_NAME, value, _validate=False)
    return x509.NameAttribute(
        NameOID.COUNTRY_NAME, value, _ASN1Type.UTF8String, _validate=False
    )


class SubjectIdentity(BaseModel):
    # free-form, copied verbatim into the subject
    country: str = ""
    organization: str = ""
    common_name: str = ""

    def to_name(self) -> x509.Name:
        # empty fields are left out of the name
        attrs = []
        if self.country:
            attrs.append(_country_attribute(self.country))
        if self.organization:
            attrs.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, self.organization))
        if self.common_name:
            attrs.append(x509.NameAttribute(NameOID.COMMON_NAME, self.common_name))
        return x509.Name(attrs)


class ValidityWindow(BaseModel):
    # an inverted window is accepted; the certificate is then never valid
    not_before: datetime.datetime
    not_after: datetime.datetime


class CertificateRequestData(BaseModel):
    subject: SubjectIdentity
    validity: ValidityWindow
