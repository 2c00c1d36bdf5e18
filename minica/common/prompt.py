"""Interactive input: subject fields, validity dates, SAN DNS names."""
from __future__ import annotations

import datetime
from typing import Callable, List

from minica.common.config import DEFAULT_DATE_FORMAT
from minica.common.models import CertificateRequestData, SubjectIdentity, ValidityWindow
from minica.common.utils import utc_now

InputFn = Callable[[str], str]


def prompt_string(label: str, input_fn: InputFn = input) -> str:
    try:
        return input_fn(label)
    except EOFError:
        return ""


def parse_date(text: str, fmt: str = DEFAULT_DATE_FORMAT) -> datetime.datetime:
    # strptime leaves %Z results naive; dates are entered in UTC
    parsed = datetime.datetime.strptime(text, fmt)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def prompt_date(label: str, fmt: str = DEFAULT_DATE_FORMAT, input_fn: InputFn = input) -> datetime.datetime:
    """Ask until a date parses; an empty answer means now."""
    while True:
        text = prompt_string(label, input_fn).strip()
        if not text:
            return utc_now()
        try:
            return parse_date(text, fmt)
        except ValueError:
            print("Invalid date")


def prompt_subject(input_fn: InputFn = input) -> SubjectIdentity:
    return SubjectIdentity(
        country=prompt_string("Country Code: ", input_fn),
        organization=prompt_string("Organization: ", input_fn),
        common_name=prompt_string("Common Name: ", input_fn),
    )


def prompt_request_data(fmt: str = DEFAULT_DATE_FORMAT, input_fn: InputFn = input) -> CertificateRequestData:
    subject = prompt_subject(input_fn)
    not_before = prompt_date("Not Before (YYYY-MM-DD hh:mm:ss UTC): ", fmt, input_fn)
    not_after = prompt_date("Not After (YYYY-MM-DD hh:mm:ss UTC):  ", fmt, input_fn)
    return CertificateRequestData(
        subject=subject,
        validity=ValidityWindow(not_before=not_before, not_after=not_after),
    )


def prompt_dns_names(input_fn: InputFn = input) -> List[str]:
    print("SAN DNS Names (empty to stop):")
    names: List[str] = []
    while True:
        answer = prompt_string(f"DNS.{len(names) + 1} = ", input_fn).strip()
        if not answer:
            return names
        names.append(answer)
