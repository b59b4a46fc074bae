# enchls/security/auth.py
import os
import logging
import re
from dataclasses import dataclass, field
from typing import Any
from fastapi import Header, HTTPException
import jwt  # PyJWT

logger = logging.getLogger(__name__)

AUTH_TYPE = os.getenv("AUTH_TYPE", "API_KEY").strip().upper()
API_KEY   = os.getenv("API_KEY", "")

JWT_ALG         = os.getenv("JWT_ALG", "HS256")
JWT_SIGNING_KEY = os.getenv("JWT_SIGNING_KEY", "")
JWT_AUDIENCE    = os.getenv("JWT_AUDIENCE", "enchls")
ISSUER          = os.getenv("ISSUER", "")

# API key holders are operators: they may read asset metadata.
API_KEY_SCOPES = ["metadata.read"]

@dataclass
class AuthPrincipal:
    """Represents an authenticated principal."""
    id: str
    subject: str | None = None
    issuer: str | None = None
    scopes: list[str] = field(default_factory=list)

def _unauth(detail: str):
    logger.warning("Auth failed: %s", detail)
    raise HTTPException(status_code=401, detail="Unauthorized")

def _require_api_key(x_api_key: str | None = Header(default=None, alias="X-API-Key")) -> AuthPrincipal:
    """Simple header-based API key auth."""
    if not API_KEY:
        _unauth("API_KEY not configured")
    if not x_api_key:
        _unauth("Missing X-API-Key header")
    if x_api_key != API_KEY:
        _unauth("Invalid API key")
    return AuthPrincipal(id="api-key", subject="api-key", issuer="local", scopes=list(API_KEY_SCOPES))

_SPLIT_RE = re.compile(r"[,\s]+")

def _to_list(v: Any) -> list[str]:
    """Coerce a space/comma delimited string or a list to list[str]."""
    if v is None:
        return []
    if isinstance(v, (list, tuple)):
        return [str(x) for x in v if str(x).strip()]
    return [p for p in _SPLIT_RE.split(str(v)) if p]

def _require_bearer(authorization: str | None = Header(default=None)) -> AuthPrincipal:
    """Validate a Bearer JWT and build AuthPrincipal from its scope claims."""
    if not authorization:
        _unauth("Missing Authorization header")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        _unauth("Malformed Authorization header")

    token = parts[1]
    try:
        payload = jwt.decode(
            token,
            JWT_SIGNING_KEY,
            algorithms=[JWT_ALG],
            audience=JWT_AUDIENCE,
            issuer=ISSUER or None,
            leeway=30,
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        _unauth("Token expired")
    except jwt.InvalidAudienceError:
        _unauth("Bad audience")
    except jwt.InvalidIssuerError:
        _unauth("Bad issuer")
    except jwt.InvalidSignatureError:
        _unauth("Bad signature")
    except jwt.PyJWTError as e:
        _unauth(f"JWT error: {e}")

    scopes: list[str] = []
    for claim in ("scope", "scopes", "scp"):
        for s in _to_list(payload.get(claim)):
            if s not in scopes:
                scopes.append(s)
    return AuthPrincipal(
        id=payload["sub"],
        subject=payload.get("sub"),
        issuer=payload.get("iss"),
        scopes=scopes,
    )

require_api_key = _require_api_key
require_bearer  = _require_bearer

__all__ = ["require_api_key", "require_bearer", "AuthPrincipal", "AUTH_TYPE"]
