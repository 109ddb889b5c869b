"""Identity token handling.

The caller identity arrives as a signed JWT issued by the identity provider.
Only the user id and the claims are consumed here; the provider's
protocol details stay outside this service.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from gestor.core.config import get_settings


@dataclass(frozen=True)
class Identity:
    """Authenticated caller: user id plus token claims."""

    uid: str
    claims: dict[str, Any] = field(default_factory=dict)

    @property
    def email(self) -> str:
        return str(self.claims.get("email") or "")


def create_identity_token(
    uid: str,
    claims: dict[str, Any] | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed identity token.

    Used by local tooling and tests; production tokens come from the
    identity provider signed with the same secret.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    to_encode = dict(claims or {})
    to_encode.update({
        "sub": uid,
        "iat": now,
        "exp": now + (expires_delta or timedelta(hours=1)),
    })

    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_identity_token(token: str) -> Identity | None:
    """Decode and validate an identity token.

    Returns:
        The caller identity, or None when the token is invalid or expired
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    uid = payload.get("sub") or payload.get("uid")
    if not uid:
        return None

    claims = {k: v for k, v in payload.items() if k not in ("sub", "iat", "exp")}
    return Identity(uid=str(uid), claims=claims)
