from datetime import timedelta

import pytest
from fastapi import HTTPException

from eod_backend.fastapi.core.utils import normalize_email, slugify, strip_accents
from eod_backend.security.auth import create_user_token, verify_access_token
from eod_backend.security.password import hash_password, verify_password


def test_password_round_trip():
    hashed = hash_password("staff-pass-123")
    assert hashed != "staff-pass-123"
    assert verify_password("staff-pass-123", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("staff-pass-123", "")


def test_long_passwords_are_accepted():
    password = "ź" * 80
    assert verify_password(password, hash_password(password))


def test_token_carries_user_claims():
    token = create_user_token("1f0e", "kasia@coco.pl", "staff")
    payload = verify_access_token(token)
    assert payload["sub"] == "1f0e"
    assert payload["email"] == "kasia@coco.pl"
    assert payload["role"] == "staff"


def test_expired_token_rejected():
    token = create_user_token("1f0e", "kasia@coco.pl", "staff", expires_delta=timedelta(seconds=-1))
    with pytest.raises(HTTPException) as excinfo:
        verify_access_token(token)
    assert excinfo.value.status_code == 401


def test_text_helpers():
    assert strip_accents("Łódź Żoliborz") == "Lodz Zoliborz"
    assert slugify("  Sushi -- Old Town! ") == "sushi-old-town"
    assert normalize_email("  Kasia@Coco.PL ") == "kasia@coco.pl"
