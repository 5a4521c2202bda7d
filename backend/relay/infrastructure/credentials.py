"""JWT Credential Resolver — opaque token → Principal, identity → role.

Invariants:
    - Tokens are HS256 JWTs signed with settings.jwt_secret_key and issued by
      settings.jwt_issuer; exp, iat and iss are required
    - Any decode failure (expired, bad signature, wrong issuer, missing claims,
      unknown role) raises AuthenticationError and nothing else
    - role_of() never consults the token: the directory is the source of truth
      for other identities

Design Decisions:
    - Claims "sub"/"role", with the legacy "USERNAME"/"ROLE" claim names accepted
      as fallbacks so tokens minted by the previous identity service still resolve
    - issue_token() lives here so the identity service and tests mint tokens
      with exactly the claims this resolver expects
"""

import logging
from datetime import datetime, timedelta, timezone

import jwt

from relay.config import Settings
from relay.core.boundary_protocols import RoleDirectory
from relay.core.domain_types import Identity, Principal, Role
from relay.core.errors import AuthenticationError

logger = logging.getLogger(__name__)

_IDENTITY_CLAIMS = ("sub", "USERNAME")
_ROLE_CLAIMS = ("role", "ROLE")


class JwtCredentialResolver:
    """CredentialResolver for tokens minted by the identity service."""

    def __init__(self, settings: Settings, directory: RoleDirectory):
        self._secret = settings.jwt_secret_key
        self._issuer = settings.jwt_issuer
        self._algorithm = settings.jwt_algorithm
        self._directory = directory

    async def resolve_identity(self, token: str) -> Principal:
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                issuer=self._issuer,
                options={"require": ["exp", "iat", "iss"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(f"Invalid token: {e}")

        identity = _first_claim(claims, _IDENTITY_CLAIMS)
        raw_role = _first_claim(claims, _ROLE_CLAIMS)
        if not identity or not raw_role:
            raise AuthenticationError("Missing required claims in token")
        try:
            role = Role(raw_role)
        except ValueError:
            raise AuthenticationError(f"Unknown role in token: {raw_role}")
        return Principal(identity=Identity(identity), role=role)

    async def role_of(self, identity: Identity) -> Role | None:
        return await self._directory.get_role(identity)


def _first_claim(claims: dict, names: tuple[str, ...]) -> str | None:
    for name in names:
        value = claims.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def issue_token(
    identity: str,
    role: Role,
    settings: Settings,
    *,
    now: datetime | None = None,
    expires_in: int | None = None,
) -> str:
    """Mint a token this resolver accepts."""
    issued_at = now or datetime.now(timezone.utc)
    lifetime = settings.jwt_expiry_seconds if expires_in is None else expires_in
    return jwt.encode(
        {
            "sub": identity,
            "role": role.value,
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=lifetime),
            "iss": settings.jwt_issuer,
        },
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
