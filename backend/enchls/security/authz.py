# enchls/security/authz.py
from fastapi import HTTPException

def require_scopes(principal, *allowed: str) -> None:
    """Allow if the principal holds any scope from `allowed`, else 403."""
    if set(principal.scopes or []).intersection(allowed):
        return
    raise HTTPException(status_code=403, detail="Forbidden")
