import pytest
from jose import jwt

from conftest import TEST_JWT_SECRET, make_settings
from graphgate.core.errors import InvalidRequestError
from graphgate.graphql.context import RequestDescriptor, build_context


def _token(claims, secret=TEST_JWT_SECRET):
    return jwt.encode(claims, secret, algorithm="HS256")


def test_anonymous_request_has_no_identity():
    context = build_context(RequestDescriptor(), settings=make_settings())

    assert context.identity is None
    assert context.is_authenticated is False
    assert context.request_id is None


def test_bearer_token_identifies_caller():
    descriptor = RequestDescriptor(
        headers={"Authorization": f"Bearer {_token({'sub': 'user-1', 'roles': ['admin']})}"},
    )

    context = build_context(descriptor, settings=make_settings())

    assert context.identity.user_id == "user-1"
    assert context.identity.roles == ["admin"]
    assert context.is_authenticated is True


def test_auth_cookie_is_used_without_header():
    descriptor = RequestDescriptor(cookies={"auth_token": _token({"sub": "cookie-user"})})

    context = build_context(descriptor, settings=make_settings())

    assert context.identity.user_id == "cookie-user"
    assert context.identity.roles == []


@pytest.mark.parametrize("header", ["Basic abc", "Bearer", "Bearer   ", "token"])
def test_malformed_authorization_header_is_rejected(header):
    with pytest.raises(InvalidRequestError):
        build_context(RequestDescriptor(headers={"Authorization": header}), settings=make_settings())


def test_token_signed_with_other_key_is_rejected():
    descriptor = RequestDescriptor(
        headers={"Authorization": f"Bearer {_token({'sub': 'user-1'}, secret='other')}"},
    )

    with pytest.raises(InvalidRequestError):
        build_context(descriptor, settings=make_settings())


def test_token_without_subject_is_rejected():
    descriptor = RequestDescriptor(headers={"Authorization": f"Bearer {_token({'roles': ['x']})}"})

    with pytest.raises(InvalidRequestError):
        build_context(descriptor, settings=make_settings())


def test_single_role_string_is_accepted():
    descriptor = RequestDescriptor(
        headers={"Authorization": f"Bearer {_token({'sub': 'user-1', 'roles': 'admin'})}"},
    )

    assert build_context(descriptor, settings=make_settings()).identity.roles == ["admin"]


@pytest.mark.parametrize("roles", [5, {"admin": True}, ["admin", 1], True])
def test_malformed_roles_claim_is_rejected(roles):
    descriptor = RequestDescriptor(
        headers={"Authorization": f"Bearer {_token({'sub': 'user-1', 'roles': roles})}"},
    )

    with pytest.raises(InvalidRequestError):
        build_context(descriptor, settings=make_settings())


def test_request_metadata_is_copied():
    descriptor = RequestDescriptor(
        headers={
            "X-Request-Id": "req-42",
            "User-Agent": "pytest",
            "Origin": "http://localhost:3000",
        },
        client_host="10.0.0.5",
        method="GET",
        path="/api/graphql",
    )

    context = build_context(descriptor, settings=make_settings(), database="shared-handle")

    assert context.request_id == "req-42"
    assert context.user_agent == "pytest"
    assert context.origin == "http://localhost:3000"
    assert context.client_host == "10.0.0.5"
    assert context.database == "shared-handle"
    assert context.method == "GET"
    assert context.path == "/api/graphql"


def test_forwarded_for_is_honoured_only_behind_trusted_proxy():
    descriptor = RequestDescriptor(
        headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
        client_host="10.0.0.1",
    )

    trusted = build_context(descriptor, settings=make_settings(trust_proxy=True))
    direct = build_context(descriptor, settings=make_settings(trust_proxy=False))

    assert trusted.client_host == "203.0.113.7"
    assert direct.client_host == "10.0.0.1"


def test_context_is_deterministic():
    descriptor = RequestDescriptor(
        headers={"Authorization": f"Bearer {_token({'sub': 'user-1'})}", "X-Request-Id": "abc"},
    )
    settings = make_settings()

    assert build_context(descriptor, settings=settings) == build_context(descriptor, settings=settings)
