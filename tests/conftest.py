import datetime

import pytest

from minica.common.models import CertificateRequestData, SubjectIdentity, ValidityWindow
from minica.crypto.authority import (
    make_intermediate_authority,
    make_leaf_certificate,
    make_root_authority,
)

START = datetime.datetime(2026, 1, 1, tzinfo=datetime.timezone.utc)


@pytest.fixture(scope="session")
def make_request():
    def _make(common_name, days=365, start=START, country="US", organization="Acme"):
        return CertificateRequestData(
            subject=SubjectIdentity(
                country=country, organization=organization, common_name=common_name
            ),
            validity=ValidityWindow(
                not_before=start, not_after=start + datetime.timedelta(days=days)
            ),
        )

    return _make


@pytest.fixture(scope="session")
def root_ca(make_request):
    return make_root_authority(make_request("Acme Root"))


@pytest.fixture(scope="session")
def mid_ca(make_request, root_ca):
    return make_intermediate_authority(make_request("Acme Mid", days=180), root_ca)


@pytest.fixture(scope="session")
def leaf_cert(make_request, mid_ca):
    return make_leaf_certificate(
        make_request("www.example.com", days=90), mid_ca, ["example.com", "www.example.com"]
    )


@pytest.fixture
def scripted():
    """Build an input function that replays answers and records the labels."""

    def _make(answers):
        it = iter(answers)
        labels = []

        def input_fn(label):
            labels.append(label)
            try:
                return next(it)
            except StopIteration:
                raise EOFError from None

        input_fn.labels = labels
        return input_fn

    return _make
