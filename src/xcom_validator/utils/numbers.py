import re
from typing import Optional

_SIGNED_INT_RE = re.compile(r"-?[0-9]+")
_UNSIGNED_INT_RE = re.compile(r"[0-9]+")


def parse_int(text: str, signed: bool = True) -> Optional[int]:
    """Decimal integer text to int, or None. No whitespace, no '+', no exponent."""
    pattern = _SIGNED_INT_RE if signed else _UNSIGNED_INT_RE
    if not isinstance(text, str) or not pattern.fullmatch(text):
        return None
    return int(text)
