from typing import Any, Dict

SENSITIVE_KEYS = {
    'password', 'secret', 'key', 'token',
    'api_key', 'apikey', 'auth', 'credential'
}

def mask_value(v: str) -> str:
    if len(v) > 6:
        return f"{v[:2]}{'*' * (len(v)-4)}{v[-2:]}"
    return '*' * len(v)

def mask_sensitive_values(data: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively mask sensitive values (e.g. master_key) in dictionaries."""
    masked = {}
    for k, v in data.items():
        if isinstance(v, dict):
            masked[k] = mask_sensitive_values(v)
        elif isinstance(v, list):
            masked[k] = [mask_sensitive_values(i) if isinstance(i, dict) else i for i in v]
        elif isinstance(v, str) and any(sens in k.lower() for sens in SENSITIVE_KEYS):
            masked[k] = mask_value(v)
        else:
            masked[k] = v
    return masked
