# Re-export security primitives from a single namespace.
from .auth import require_api_key, require_bearer, AuthPrincipal
from .authz import require_scopes

__all__ = ["require_api_key", "require_bearer", "AuthPrincipal", "require_scopes"]
