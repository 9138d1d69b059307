from typing import Dict, Iterable, Optional


def normalize_choice(
    value: Optional[str],
    allowed: Iterable[str],
    field: str,
    aliases: Optional[Dict[str, str]] = None,
) -> Optional[str]:
    """Lower-case an enum-like string and check it against the allowed values."""
    if value is None:
        return None
    v = str(value).strip().lower()
    if aliases and v in aliases:
        v = aliases[v]
    allowed = list(allowed)
    if v not in allowed:
        raise ValueError(f"Invalid {field} value. Must be one of: " + ", ".join(allowed))
    return v


def empty_to_none(v):
    if v is None:
        return None
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v
