from __future__ import annotations

from typing import Optional

ZERO_IDENTITY = "0x" + "0" * 40


def is_null_identity(identity: Optional[str]) -> bool:
    """True for None, blank strings and the all-zero address."""
    if identity is None:
        return True
    value = str(identity).strip()
    if not value:
        return True
    if value.lower().startswith("0x") and len(value) > 2:
        return set(value[2:]) == {"0"}
    return False
