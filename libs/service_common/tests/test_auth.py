"""Tests for the service-to-service bearer token check."""

import pytest

from service_common.auth import bearer_headers, check_service_token
from service_common.errors import Forbidden, Unauthorized


def test_matching_token_passes():
    check_service_token("Bearer s3cret", "s3cret")


def test_missing_header_is_unauthorized():
    with pytest.raises(Unauthorized) as exc_info:
        check_service_token(None, "s3cret")
    assert exc_info.value.status_code == 401


@pytest.mark.parametrize(
    "header",
    ["Bearer wrong", "Bearer s3cret2", "Basic s3cret", "Bearer", "s3cret"],
)
def test_mismatch_is_forbidden(header):
    with pytest.raises(Forbidden) as exc_info:
        check_service_token(header, "s3cret")
    assert exc_info.value.status_code == 403


def test_unconfigured_token_rejects_everything():
    with pytest.raises(Forbidden):
        check_service_token("Bearer ", "")


def test_bearer_headers():
    assert bearer_headers("abc") == {"Authorization": "Bearer abc"}
