from datetime import timedelta

import pytest
from jose import jwt

import config
from security import create_access_token


@pytest.fixture
def valid_token(make_user):
    return create_access_token(make_user())


@pytest.mark.parametrize("header", [
    None,
    "",
    "not.a.jwt",
    jwt.encode({"_id": "507f1f77bcf86cd799439011"}, "some-other-secret", algorithm="HS256"),
    jwt.encode({"sub": "507f1f77bcf86cd799439011"}, config.SECRET_KEY, algorithm="HS256"),
])
def test_require_sign_in_rejects_bad_tokens_uniformly(client, header):
    headers = {} if header is None else {"Authorization": header}
    res = client.get("/api/v1/auth/user-auth", headers=headers)
    assert res.status_code == 401
    assert res.json() == {"success": False, "message": "Invalid or expired token"}


def test_require_sign_in_rejects_expired_token(client, make_user):
    token = create_access_token(make_user(), expires_delta=timedelta(minutes=-1))
    res = client.get("/api/v1/auth/user-auth", headers={"Authorization": token})
    assert res.status_code == 401


def test_bearer_prefix_is_not_parsed(client, valid_token):
    res = client.get("/api/v1/auth/user-auth", headers={"Authorization": f"Bearer {valid_token}"})
    assert res.status_code == 401


def test_raw_token_is_accepted(client, valid_token):
    assert client.get("/api/v1/auth/user-auth", headers={"Authorization": valid_token}).status_code == 200


def test_is_admin_lookup_failure_is_500(client):
    token = create_access_token("not-an-object-id")
    res = client.get("/api/v1/auth/admin-auth", headers={"Authorization": token})
    assert res.status_code == 500
    assert res.json() == {"success": False, "message": "Internal server error"}


def test_is_admin_unknown_user_is_refused(client):
    token = create_access_token("507f1f77bcf86cd799439011")
    res = client.get("/api/v1/auth/admin-auth", headers={"Authorization": token})
    assert res.status_code == 401
