"""Helper signatures: b64e, sha256_hex, utc_now."""
from __future__ import annotations

import base64
import datetime
from hashlib import sha256


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")


def sha256_hex(data: bytes) -> str:
    return sha256(data).hexdigest()


def colon_hex(digest_hex: str) -> str:
    # AB:CD:... the way openssl prints fingerprints
    return ":".join(digest_hex[i : i + 2] for i in range(0, len(digest_hex), 2)).upper()


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)


def as_utc(when: datetime.datetime) -> datetime.datetime:
    """Return `when` as an aware UTC datetime; naive values are taken as UTC."""
    if when.tzinfo is None:
        return when.replace(tzinfo=datetime.timezone.utc)
    return when.astimezone(datetime.timezone.utc)
