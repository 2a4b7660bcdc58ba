from __future__ import annotations

import httpx
import pytest

from app.core.errors import IdentityError, ValidationFailed
from app.services.identity import IdentityClient, validate_nickname


@pytest.mark.parametrize("value", ["길동", "Kim 123", "  홍길동  ", "a" * 20])
def test_valid_nicknames(value) -> None:
    assert validate_nickname(value) == value.strip()


@pytest.mark.parametrize("value", ["", "a", "a" * 21, "kim!", "김  철수"])
def test_invalid_nicknames(value) -> None:
    with pytest.raises(ValidationFailed) as excinfo:
        validate_nickname(value)
    assert excinfo.value.code == "invalid_nickname"


def test_identity_error_statuses() -> None:
    client = IdentityClient(
        "https://identity.test",
        "anon",
        transport=httpx.MockTransport(lambda request: httpx.Response(422, json={"msg": "weak password"})),
    )

    with pytest.raises(IdentityError) as excinfo:
        client.sign_up("a@x.com", "123", metadata={"nickname": "길동"})

    assert excinfo.value.status_code == 422
    assert excinfo.value.log_as_failure is False
    assert "weak password" in excinfo.value.message


def test_identity_server_error_is_a_failure() -> None:
    client = IdentityClient(
        "https://identity.test/",
        "anon",
        transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom")),
    )

    with pytest.raises(IdentityError) as excinfo:
        client.get_user("token")

    assert excinfo.value.status_code == 502
    assert excinfo.value.log_as_failure is True


def test_verify_otp_rejects_unknown_type() -> None:
    client = IdentityClient("https://identity.test", "anon", transport=httpx.MockTransport(lambda request: httpx.Response(500)))

    with pytest.raises(ValidationFailed):
        client.verify_otp("hash", "sms")
