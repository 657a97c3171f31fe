"""
Per-request GraphQL context.

``build_context`` is a pure function of a ``RequestDescriptor`` so it can be
tested without a running server. ``make_context_getter`` adapts it to the
FastAPI dependency strawberry's router expects.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from jose import JWTError, jwt
from starlette.requests import Request
from strawberry.fastapi import BaseContext

from graphgate.core.config import Settings
from graphgate.core.errors import InvalidRequestError

AUTH_COOKIE = "auth_token"
REQUEST_ID_HEADER = "x-request-id"


@dataclass(frozen=True)
class RequestDescriptor:
    """Transport-independent view of an incoming request."""
    headers: Mapping[str, str] = field(default_factory=dict)
    cookies: Mapping[str, str] = field(default_factory=dict)
    client_host: Optional[str] = None
    method: str = "POST"
    path: str = "/"

    def __post_init__(self):
        object.__setattr__(self, "headers", {k.lower(): v for k, v in self.headers.items()})

    @classmethod
    def from_request(cls, request: Request) -> "RequestDescriptor":
        return cls(
            headers=dict(request.headers),
            cookies=dict(request.cookies),
            client_host=request.client.host if request.client else None,
            method=request.method,
            path=request.url.path,
        )


@dataclass(frozen=True)
class Identity:
    """The caller a bearer token was issued to."""
    user_id: str
    roles: List[str] = field(default_factory=list)
    claims: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RequestContext(BaseContext):
    """
    Context handed to every resolver of one request.

    ``identity`` is ``None`` for anonymous requests. ``database`` is the
    process-wide connection, shared by reference.
    """
    request_id: Optional[str] = None
    identity: Optional[Identity] = None
    client_host: Optional[str] = None
    user_agent: Optional[str] = None
    origin: Optional[str] = None
    method: Optional[str] = None
    path: Optional[str] = None
    database: Any = None

    def __post_init__(self):
        super().__init__()

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None


def extract_token(descriptor: RequestDescriptor) -> Optional[str]:
    """
    Find the caller's token in the Authorization header or auth cookie.

    Raises:
        InvalidRequestError: If an Authorization header is present but is
            not a bearer credential
    """
    auth_header = descriptor.headers.get("authorization")
    if auth_header is not None:
        parts = auth_header.split(" ", 1)
        if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
            raise InvalidRequestError("Malformed Authorization header, expected 'Bearer <token>'")
        return parts[1].strip()

    return descriptor.cookies.get(AUTH_COOKIE) or None


def decode_identity(token: str, settings: Settings) -> Identity:
    """
    Verify a token and turn its claims into an identity.

    Raises:
        InvalidRequestError: If the token cannot be verified, has no subject
            or carries a roles claim that is not a list of strings
    """
    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise InvalidRequestError("Invalid bearer token") from e

    subject = claims.get("sub")
    if not subject:
        raise InvalidRequestError("Invalid token claims")

    return Identity(user_id=str(subject), roles=_roles(claims.get("roles")), claims=claims)


def _roles(claim: Any) -> List[str]:
    if claim is None:
        return []
    if isinstance(claim, str):
        return [claim]
    if isinstance(claim, (list, tuple)) and all(isinstance(role, str) for role in claim):
        return list(claim)
    raise InvalidRequestError("Invalid token claims")


def client_address(descriptor: RequestDescriptor, trust_proxy: bool) -> Optional[str]:
    """Client address, taken from X-Forwarded-For when behind a trusted proxy."""
    if trust_proxy:
        forwarded = descriptor.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return descriptor.client_host


def build_context(
    descriptor: RequestDescriptor,
    *,
    settings: Settings,
    database: Any = None,
) -> RequestContext:
    """
    Derive the resolver context for one request.

    Missing optional data never fails: a request without a token gets an
    anonymous context.

    Raises:
        InvalidRequestError: If required data is present but malformed
    """
    token = extract_token(descriptor)
    identity = decode_identity(token, settings) if token else None

    return RequestContext(
        request_id=descriptor.headers.get(REQUEST_ID_HEADER),
        identity=identity,
        client_host=client_address(descriptor, settings.trust_proxy),
        user_agent=descriptor.headers.get("user-agent"),
        origin=descriptor.headers.get("origin"),
        method=descriptor.method,
        path=descriptor.path,
        database=database,
    )


def make_context_getter(settings: Settings, database: Any) -> Callable:
    """Create the context dependency for strawberry's FastAPI router."""

    async def get_context(request: Request) -> RequestContext:
        return build_context(
            RequestDescriptor.from_request(request),
            settings=settings,
            database=database,
        )

    return get_context
